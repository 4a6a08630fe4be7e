"""
Inventory record store for DustGatherer.

This module provides the InventoryStore class which persists inventory items
in a SQLite database. It is the record store consumed by the backup engine:
exports read a snapshot through get_all(), imports reconcile through
get_by_id(), update() and insert_many().

Storage Structure:
    data/
        dustgatherer.db                     # SQLite database
        images/
            item_{uuid}.{ext}               # Item photos (see ImageStore)

Thread Safety:
    The store uses a connection-per-operation pattern. Multiple processes
    should use separate InventoryStore instances.
"""

from __future__ import annotations

import logging
import sqlite3
from collections.abc import Generator, Iterable
from contextlib import contextmanager
from datetime import UTC, datetime
from pathlib import Path

from dustgatherer.storage.models import InventoryItem, now_millis

logger = logging.getLogger(__name__)


class StorageError(Exception):
    """Base exception for storage errors."""

    pass


class ItemNotFoundError(StorageError):
    """Raised when an item to update does not exist."""

    pass


# Database schema version for migrations
SCHEMA_VERSION = 1

DATABASE_FILE = "dustgatherer.db"

CREATE_TABLES_SQL = """
CREATE TABLE IF NOT EXISTS schema_version (
    version INTEGER PRIMARY KEY,
    applied_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS inventory_items (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    title TEXT NOT NULL,
    description TEXT NOT NULL DEFAULT '',
    purchase_price TEXT NOT NULL,
    selling_price TEXT,
    purchase_date TEXT NOT NULL,
    scheduled_post_date TEXT,
    posted_date TEXT,
    sold_date TEXT,
    image_path TEXT,
    purchase_location TEXT NOT NULL DEFAULT '',
    category TEXT NOT NULL DEFAULT '',
    notes TEXT NOT NULL DEFAULT '',
    created_at INTEGER NOT NULL,
    updated_at INTEGER NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_items_created_at ON inventory_items(created_at);
CREATE INDEX IF NOT EXISTS idx_items_scheduled ON inventory_items(scheduled_post_date);
"""

_COLUMNS = (
    "id",
    "title",
    "description",
    "purchase_price",
    "selling_price",
    "purchase_date",
    "scheduled_post_date",
    "posted_date",
    "sold_date",
    "image_path",
    "purchase_location",
    "category",
    "notes",
    "created_at",
    "updated_at",
)

_INSERT_SQL = (
    f"INSERT INTO inventory_items ({', '.join(_COLUMNS)}) "
    f"VALUES ({', '.join(':' + c for c in _COLUMNS)})"
)

_UPDATE_SQL = (
    "UPDATE inventory_items SET "
    + ", ".join(f"{c} = :{c}" for c in _COLUMNS if c != "id")
    + " WHERE id = :id"
)


class InventoryStore:
    """
    Persistent storage for inventory items.

    Example:
        store = InventoryStore(data_dir=Path("./data"))

        item_id = store.insert(item)
        item = store.get_by_id(item_id)
        store.update(item.copy(notes="listed twice"))

        ids = store.insert_many(items)

    Attributes:
        data_dir: Base directory for all data storage.
        db_path: Path to the SQLite database file.
    """

    def __init__(self, data_dir: Path | str | None = None) -> None:
        """
        Initialize the inventory store.

        Args:
            data_dir: Base directory for data storage. Defaults to ~/.dustgatherer/data
        """
        if data_dir is None:
            data_dir = Path.home() / ".dustgatherer" / "data"
        elif isinstance(data_dir, str):
            data_dir = Path(data_dir)

        self.data_dir = data_dir
        self.db_path = data_dir / DATABASE_FILE

        self.data_dir.mkdir(parents=True, exist_ok=True)
        self._init_database()

    def _init_database(self) -> None:
        """Initialize the database schema."""
        with self._get_connection() as conn:
            conn.executescript(CREATE_TABLES_SQL)

            cursor = conn.execute(
                "SELECT version FROM schema_version ORDER BY version DESC LIMIT 1"
            )
            row = cursor.fetchone()

            if row is None:
                conn.execute(
                    "INSERT INTO schema_version (version, applied_at) VALUES (?, ?)",
                    (SCHEMA_VERSION, datetime.now(UTC).isoformat()),
                )
                logger.info(f"Initialized database schema version {SCHEMA_VERSION}")
            elif row[0] < SCHEMA_VERSION:
                logger.warning(
                    f"Database schema version {row[0]} is older than "
                    f"expected version {SCHEMA_VERSION}"
                )

    @contextmanager
    def _get_connection(self) -> Generator[sqlite3.Connection, None, None]:
        """
        Get a database connection with proper settings.

        Yields:
            SQLite connection with row factory set.
        """
        conn = sqlite3.connect(
            str(self.db_path),
            isolation_level=None,  # Autocommit mode, we manage transactions manually
            check_same_thread=False,
        )
        conn.row_factory = sqlite3.Row
        try:
            yield conn
        finally:
            conn.close()

    def get_all(self) -> list[InventoryItem]:
        """
        Get a snapshot of every item, newest first.

        Returns:
            List of InventoryItem objects.
        """
        with self._get_connection() as conn:
            cursor = conn.execute(
                "SELECT * FROM inventory_items ORDER BY created_at DESC, id DESC"
            )
            return [InventoryItem.from_row(row) for row in cursor.fetchall()]

    def get_by_id(self, item_id: int) -> InventoryItem | None:
        """
        Get a single item by id.

        Args:
            item_id: Item identifier.

        Returns:
            InventoryItem or None if not found.
        """
        with self._get_connection() as conn:
            cursor = conn.execute(
                "SELECT * FROM inventory_items WHERE id = ?", (item_id,)
            )
            row = cursor.fetchone()
            return None if row is None else InventoryItem.from_row(row)

    def count(self) -> int:
        """Number of stored items."""
        with self._get_connection() as conn:
            (total,) = conn.execute("SELECT COUNT(*) FROM inventory_items").fetchone()
            return total

    def insert(self, item: InventoryItem) -> int:
        """
        Insert an item.

        An item id of 0 lets the database assign a fresh one; a non-zero id
        is stored as given.

        Returns:
            The id of the stored row.
        """
        with self._get_connection() as conn:
            cursor = conn.execute(_INSERT_SQL, item.to_row())
            return cursor.lastrowid

    def insert_many(self, items: Iterable[InventoryItem]) -> list[int]:
        """
        Insert multiple items in a single transaction.

        Args:
            items: Items to insert.

        Returns:
            Ids of the stored rows, in input order.
        """
        ids: list[int] = []
        with self._get_connection() as conn:
            conn.execute("BEGIN TRANSACTION")
            try:
                for item in items:
                    cursor = conn.execute(_INSERT_SQL, item.to_row())
                    ids.append(cursor.lastrowid)
                conn.execute("COMMIT")
            except Exception:
                conn.execute("ROLLBACK")
                raise
        logger.debug(f"Inserted {len(ids)} items")
        return ids

    def update(self, item: InventoryItem) -> None:
        """
        Overwrite an existing item, stamping updated_at with the current time.

        Raises:
            ItemNotFoundError: If no item with this id exists.
        """
        if not item.id:
            raise ItemNotFoundError("Cannot update an item without an id")

        row = item.copy(updated_at=now_millis()).to_row()
        with self._get_connection() as conn:
            cursor = conn.execute(_UPDATE_SQL, row)
            if cursor.rowcount == 0:
                raise ItemNotFoundError(f"Item not found: {item.id}")

    def delete(self, item_id: int) -> bool:
        """
        Delete an item by id.

        Returns:
            True if a row was deleted.
        """
        with self._get_connection() as conn:
            cursor = conn.execute("DELETE FROM inventory_items WHERE id = ?", (item_id,))
            return cursor.rowcount > 0
