"""
DustGatherer - personal inventory tracker

Track items from purchase through scheduling and listing to sale, with
portable backups of the whole inventory.

Key Features:
    - Local SQLite record store for inventory items
    - Item photos kept in a managed image directory
    - Single-file ZIP backups containing items and photos
    - Restore with skip, replace or import-as-new conflict handling
"""

__version__ = "0.1.0"

from dustgatherer.config.settings import Settings, load_config

__all__ = [
    "__version__",
    "Settings",
    "load_config",
]
