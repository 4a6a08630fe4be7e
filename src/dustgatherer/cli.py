"""
Command-line interface for DustGatherer.

Provides commands for initialization, recording and listing inventory items,
and creating, inspecting and restoring backup archives.

Uses Python's argparse module (no external CLI libraries).
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from datetime import date
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any, NoReturn

from dustgatherer import __version__
from dustgatherer.config.settings import (
    DEFAULT_CONFIG_DIR,
    VALID_CONFLICT_STRATEGIES,
    ConfigurationError,
    Settings,
    get_config_path,
    load_config,
    save_config,
)

logger = logging.getLogger(__name__)

# Global verbosity settings (set during main() based on args)
_quiet_mode = False
_verbose_level = 0

# How many per-item import errors are printed before summarizing the rest
MAX_ERRORS_SHOWN = 5


def set_output_mode(quiet: bool = False, verbose: int = 0) -> None:
    """
    Set the output mode for the CLI.

    Args:
        quiet: If True, suppress non-essential output.
        verbose: Verbosity level (0=normal, 1+=verbose).
    """
    global _quiet_mode, _verbose_level
    _quiet_mode = quiet
    _verbose_level = verbose


def output(message: str = "", force: bool = False) -> None:
    """Print a message to stdout, respecting quiet mode."""
    if force or not _quiet_mode:
        print(message)


def output_error(message: str) -> None:
    """Print an error message (always shown, even in quiet mode)."""
    print(message, file=sys.stderr)


def progress_printer(label: str):
    """
    Build a progress callback that prints whole-percent steps.

    Nothing is printed in quiet mode, and a percentage is printed at most once.
    """
    last = {"percent": -1}

    def report(fraction: float) -> None:
        percent = int(fraction * 100)
        if percent != last["percent"] and not _quiet_mode:
            last["percent"] = percent
            print(f"\r{label}: {percent:3d}%", end="\n" if percent >= 100 else "", flush=True)

    return report


def create_parser() -> argparse.ArgumentParser:
    """Create and configure the argument parser for DustGatherer CLI."""
    parser = argparse.ArgumentParser(
        prog="dustgatherer",
        description="Personal inventory tracker with portable backups",
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"dustgatherer {__version__}",
    )

    parser.add_argument(
        "--config",
        metavar="PATH",
        help="Override config file location (default: ~/.dustgatherer/config.yaml)",
    )

    parser.add_argument(
        "-v", "--verbose",
        action="count",
        default=0,
        help="Increase output verbosity (can be repeated)",
    )

    parser.add_argument(
        "-q", "--quiet",
        action="store_true",
        help="Suppress non-essential output",
    )

    subparsers = parser.add_subparsers(
        title="commands",
        dest="command",
        metavar="<command>",
    )

    # info command
    info_parser = subparsers.add_parser(
        "info",
        help="Show paths and storage statistics",
    )
    info_parser.add_argument(
        "--json",
        action="store_true",
        help="Output as JSON",
    )
    info_parser.set_defaults(func=cmd_info)

    # init command
    init_parser = subparsers.add_parser(
        "init",
        help="Initialize DustGatherer configuration and storage",
    )
    init_parser.set_defaults(func=cmd_init)

    # add command
    add_parser = subparsers.add_parser(
        "add",
        help="Record a purchased item",
    )
    add_parser.add_argument("title", help="Item title")
    add_parser.add_argument(
        "--price",
        required=True,
        help="Purchase price (e.g. 12.50)",
    )
    add_parser.add_argument(
        "--date",
        dest="purchase_date",
        metavar="YYYY-MM-DD",
        help="Purchase date (default: today)",
    )
    add_parser.add_argument("--category", default="", help="Item category")
    add_parser.add_argument("--location", default="", help="Where the item was bought")
    add_parser.add_argument("--notes", default="", help="Free-form notes")
    add_parser.add_argument(
        "--image",
        metavar="FILE",
        help="Photo of the item to copy into the image store",
    )
    add_parser.set_defaults(func=cmd_add)

    # list command
    list_parser = subparsers.add_parser(
        "list",
        help="List inventory items",
    )
    list_parser.add_argument(
        "--format",
        choices=["table", "json"],
        default="table",
        help="Output format (default: table)",
    )
    list_parser.set_defaults(func=cmd_list)

    # export command
    export_parser = subparsers.add_parser(
        "export",
        help="Create a backup archive of all items and images",
    )
    export_parser.add_argument(
        "--output",
        "-o",
        metavar="PATH",
        help="Output file or directory (default: backup.output_dir from config)",
    )
    export_parser.set_defaults(func=cmd_export)

    # preview command
    preview_parser = subparsers.add_parser(
        "preview",
        help="Show what a backup archive contains without importing it",
    )
    preview_parser.add_argument(
        "backup_file",
        metavar="FILE",
        help="Path to backup archive (.zip)",
    )
    preview_parser.set_defaults(func=cmd_preview)

    # import command
    import_parser = subparsers.add_parser(
        "import",
        help="Restore items from a backup archive",
    )
    import_parser.add_argument(
        "backup_file",
        metavar="FILE",
        help="Path to backup archive (.zip)",
    )
    import_parser.add_argument(
        "--strategy",
        choices=sorted(VALID_CONFLICT_STRATEGIES),
        help="How to handle items that already exist (default: from config)",
    )
    import_parser.add_argument(
        "--force",
        action="store_true",
        help="Skip confirmation prompt",
    )
    import_parser.set_defaults(func=cmd_import)

    return parser


def setup_logging(verbose: int, quiet: bool) -> None:
    """Configure logging based on verbosity level."""
    if quiet:
        level = logging.WARNING
    elif verbose == 0:
        level = logging.INFO
    else:
        level = logging.DEBUG

    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


def _load_settings(args: argparse.Namespace) -> Settings:
    config_path = Path(args.config) if args.config else None
    settings = load_config(config_path)
    if not args.verbose and not args.quiet:
        logging.getLogger().setLevel(settings.log_level)
    return settings


def _open_stores(settings: Settings):
    """Create the record store and image store for the configured data directory."""
    from dustgatherer.storage import ImageStore, InventoryStore

    return InventoryStore(Path(settings.data_dir)), ImageStore(settings.images_dir)


def _build_manager(settings: Settings):
    from dustgatherer.backup import BackupManager

    store, images = _open_stores(settings)
    return BackupManager(store, images)


def cmd_info(args: argparse.Namespace) -> int:
    """Show paths and storage statistics."""
    settings = _load_settings(args)
    store, images = _open_stores(settings)

    info: dict[str, Any] = {
        "version": __version__,
        "config_file": str(Path(args.config) if args.config else get_config_path()),
        "data_dir": settings.data_dir,
        "images_dir": str(images.images_dir),
        "backup_dir": settings.backup.output_dir,
        "conflict_strategy": settings.backup.conflict_strategy,
        "item_count": store.count(),
    }

    if args.json:
        output(json.dumps(info, indent=2), force=True)
        return 0

    output("DustGatherer Information")
    output("=" * 50)
    output()
    output(f"Version: {info['version']}")
    output()
    output("Paths:")
    output(f"  Config file: {info['config_file']}")
    output(f"  Data directory: {info['data_dir']}")
    output(f"  Images directory: {info['images_dir']}")
    output(f"  Backup directory: {info['backup_dir']}")
    output()
    output(f"Items: {info['item_count']:,}")
    output(f"Default conflict strategy: {info['conflict_strategy']}")
    return 0


def cmd_init(args: argparse.Namespace) -> int:
    """Initialize DustGatherer configuration and storage."""
    config_path = Path(args.config) if args.config else get_config_path()

    output("DustGatherer Initialization")
    output("=" * 50)
    output()

    if config_path.exists():
        output(f"DustGatherer is already initialized: {config_path}")
        output(f"To reset, delete {DEFAULT_CONFIG_DIR} and run init again.")
        return 0

    settings = Settings()
    try:
        save_config(settings, config_path)
    except ConfigurationError as e:
        output_error(f"Error creating configuration: {e}")
        return 1
    output(f"Configuration file created: {config_path}")

    _open_stores(settings)
    Path(settings.backup.output_dir).mkdir(parents=True, exist_ok=True)

    output(f"Data directory: {settings.data_dir}")
    output()
    output("Initialization complete.")
    return 0


def cmd_add(args: argparse.Namespace) -> int:
    """Record a purchased item."""
    from dustgatherer.storage import InventoryItem
    from dustgatherer.storage.image_store import extension_of

    try:
        price = Decimal(args.price)
    except InvalidOperation:
        output_error(f"Error: Invalid price: {args.price}")
        return 1

    try:
        purchase_date = date.fromisoformat(args.purchase_date) if args.purchase_date else date.today()
    except ValueError:
        output_error(f"Error: Invalid date: {args.purchase_date}")
        return 1

    settings = _load_settings(args)
    store, images = _open_stores(settings)

    image_path = None
    if args.image:
        source = Path(args.image)
        if not source.is_file():
            output_error(f"Error: Image file not found: {source}")
            return 1
        with open(source, "rb") as f:
            image_path = images.save_blob(f, extension_of(source.name))

    item = InventoryItem(
        title=args.title,
        purchase_price=price,
        purchase_date=purchase_date,
        image_path=image_path,
        purchase_location=args.location,
        category=args.category,
        notes=args.notes,
    )
    item_id = store.insert(item)
    output(f"Added item {item_id}: {item.title}")
    return 0


def cmd_list(args: argparse.Namespace) -> int:
    """List inventory items."""
    settings = _load_settings(args)
    store, _ = _open_stores(settings)
    items = store.get_all()

    if args.format == "json":
        rows = [
            {
                "id": item.id,
                "title": item.title,
                "status": item.status.value,
                "purchase_price": str(item.purchase_price),
                "purchase_date": item.purchase_date.isoformat(),
                "has_image": item.image_path is not None,
            }
            for item in items
        ]
        output(json.dumps(rows, indent=2), force=True)
        return 0

    if not items:
        output("No items.")
        return 0

    output(f"{'ID':>5}  {'Status':<10}  {'Price':>10}  {'Purchased':<10}  Title")
    output("-" * 60)
    for item in items:
        output(
            f"{item.id:>5}  {item.status.value:<10}  {item.purchase_price:>10}  "
            f"{item.purchase_date.isoformat():<10}  {item.title}"
        )
    return 0


def cmd_export(args: argparse.Namespace) -> int:
    """Create a backup archive of all items and images."""
    settings = _load_settings(args)
    manager = _build_manager(settings)

    output_path = Path(args.output) if args.output else Path(settings.backup.output_dir)
    if not args.output:
        output_path.mkdir(parents=True, exist_ok=True)

    output("DustGatherer Export")
    output("=" * 50)
    output()

    result = manager.export_archive(output_path, on_progress=progress_printer("Exporting"))

    if not result.success:
        output()
        output_error(f"Export failed: {result.error}")
        return 1

    output()
    output("Backup created successfully!")
    output()
    output(f"  File: {result.path}")
    output(f"  Size: {result.size_bytes:,} bytes")
    output(f"  Items: {result.item_count}")
    output(f"  Images: {result.image_count}")
    output()
    output("To restore from this backup, run:")
    output(f"  dustgatherer import {result.path}")
    return 0


def cmd_preview(args: argparse.Namespace) -> int:
    """Show what a backup archive contains without importing it."""
    backup_path = Path(args.backup_file)
    if not backup_path.exists():
        output_error(f"Error: Backup file not found: {backup_path}")
        return 1

    settings = _load_settings(args)
    manager = _build_manager(settings)
    result = manager.preview_archive(backup_path)

    if not result.success:
        output_error(f"Cannot read backup: {result.error}")
        return 1

    manifest = result.manifest
    output("Backup information:")
    output(f"  Created: {manifest.created_at}")
    output(f"  Created by version: {manifest.producer_version}")
    output(f"  Format version: {manifest.format_version}")
    output(f"  Items: {result.item_count}")
    return 0


def cmd_import(args: argparse.Namespace) -> int:
    """Restore items from a backup archive."""
    from dustgatherer.backup import ConflictStrategy

    backup_path = Path(args.backup_file)
    if not backup_path.exists():
        output_error(f"Error: Backup file not found: {backup_path}")
        return 1

    settings = _load_settings(args)
    strategy = ConflictStrategy(args.strategy or settings.backup.conflict_strategy)
    manager = _build_manager(settings)

    output("DustGatherer Import")
    output("=" * 50)
    output()
    output(f"Backup file: {backup_path}")

    preview = manager.preview_archive(backup_path)
    if not preview.success:
        output_error(f"Cannot import backup: {preview.error}")
        return 1

    output(f"Items in backup: {preview.item_count}")
    output(f"Conflict strategy: {strategy.value}")
    output()

    if not args.force:
        response = input(f"Import {preview.item_count} items? [y/N]: ").strip().lower()
        if response not in ("y", "yes"):
            output("Import cancelled.")
            return 0

    result = manager.import_archive(
        backup_path, strategy, on_progress=progress_printer("Importing")
    )

    if not result.success:
        output()
        output_error(f"Import failed: {result.error}")
        return 1

    outcome = result.outcome
    output()
    output("Import completed!")
    output()
    output(f"  Items in backup: {outcome.total_items}")
    output(f"  Imported: {outcome.imported_count}")
    output(f"  Skipped: {outcome.skipped_count}")

    if outcome.errors:
        output()
        output(f"Errors ({len(outcome.errors)}):")
        for line in outcome.errors[:MAX_ERRORS_SHOWN]:
            output(f"  - {line}")
        remaining = len(outcome.errors) - MAX_ERRORS_SHOWN
        if remaining > 0:
            output(f"  ... and {remaining} more")

    return 0


def main() -> NoReturn:
    """Main entry point for DustGatherer CLI."""
    parser = create_parser()
    args = parser.parse_args()

    setup_logging(args.verbose, args.quiet)
    set_output_mode(args.quiet, args.verbose)

    if args.command is None:
        parser.print_help()
        sys.exit(0)

    try:
        exit_code = args.func(args)
        sys.exit(exit_code)
    except KeyboardInterrupt:
        output("\nOperation cancelled.")
        sys.exit(130)
    except ConfigurationError as e:
        output_error(f"Configuration error: {e}")
        sys.exit(2)
    except Exception as e:
        if args.verbose > 0:
            raise
        output_error(f"Error: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
