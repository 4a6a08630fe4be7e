"""
Entry point for running DustGatherer as a module.

Usage:
    python -m dustgatherer [command] [options]
"""

from dustgatherer.cli import main

if __name__ == "__main__":
    main()
