"""
Tests for the inventory storage layer.

Uses Python's unittest module.
Tests item persistence, bulk inserts, updates and image storage.
"""

from __future__ import annotations

import io
import shutil
import tempfile
import unittest
from datetime import date
from decimal import Decimal
from pathlib import Path

from dustgatherer.storage import (
    ImageStore,
    InventoryItem,
    InventoryStore,
    ItemNotFoundError,
    ItemStatus,
)
from dustgatherer.storage.image_store import extension_of


def make_item(title: str = "Brass lamp", **changes) -> InventoryItem:
    fields = dict(
        title=title,
        purchase_price=Decimal("12.50"),
        purchase_date=date(2024, 3, 1),
        created_at=1_700_000_000_000,
        updated_at=1_700_000_000_000,
    )
    fields.update(changes)
    return InventoryItem(**fields)


class TestInventoryItem(unittest.TestCase):
    """Tests for the InventoryItem dataclass."""

    def test_status_inventory_by_default(self) -> None:
        """Test an item with no lifecycle dates is in inventory."""
        self.assertEqual(make_item().status, ItemStatus.INVENTORY)

    def test_status_precedence(self) -> None:
        """Test sold wins over posted, which wins over scheduled."""
        item = make_item(scheduled_post_date=date(2024, 4, 1))
        self.assertEqual(item.status, ItemStatus.SCHEDULED)

        item = item.copy(posted_date=date(2024, 4, 2))
        self.assertEqual(item.status, ItemStatus.POSTED)

        item = item.copy(sold_date=date(2024, 4, 9))
        self.assertEqual(item.status, ItemStatus.SOLD)

    def test_profit_only_when_sold_with_price(self) -> None:
        """Test profit requires both a sold date and a selling price."""
        item = make_item(selling_price=Decimal("30.00"))
        self.assertIsNone(item.profit)

        item = item.copy(sold_date=date(2024, 5, 1))
        self.assertEqual(item.profit, Decimal("17.50"))

    def test_timestamps_default_to_now(self) -> None:
        """Test created_at and updated_at are filled in when not given."""
        item = InventoryItem(
            title="Vase",
            purchase_price=Decimal("3"),
            purchase_date=date(2024, 1, 1),
        )
        self.assertGreater(item.created_at, 0)
        self.assertEqual(item.updated_at, item.created_at)


class TestInventoryStore(unittest.TestCase):
    """Tests for InventoryStore."""

    def setUp(self) -> None:
        """Create a store in a temporary directory."""
        self.temp_dir = tempfile.mkdtemp()
        self.store = InventoryStore(Path(self.temp_dir))

    def tearDown(self) -> None:
        """Clean up temporary directory."""
        shutil.rmtree(self.temp_dir, ignore_errors=True)

    def test_database_created(self) -> None:
        """Test the database file is created on init."""
        self.assertTrue(self.store.db_path.exists())

    def test_insert_assigns_id(self) -> None:
        """Test inserting an unsaved item assigns a fresh id."""
        item_id = self.store.insert(make_item())

        self.assertGreater(item_id, 0)
        self.assertEqual(self.store.count(), 1)

    def test_insert_keeps_explicit_id(self) -> None:
        """Test inserting an item with an id stores it under that id."""
        item_id = self.store.insert(make_item(id=5))

        self.assertEqual(item_id, 5)
        self.assertIsNotNone(self.store.get_by_id(5))

    def test_get_by_id_round_trip(self) -> None:
        """Test every field survives a store round trip."""
        original = make_item(
            description="Art deco",
            selling_price=Decimal("45.00"),
            scheduled_post_date=date(2024, 3, 10),
            posted_date=date(2024, 3, 11),
            sold_date=date(2024, 3, 20),
            image_path="/tmp/item_x.jpg",
            purchase_location="Flea market",
            category="Lighting",
            notes="Needs new cord",
        )
        item_id = self.store.insert(original)

        loaded = self.store.get_by_id(item_id)

        self.assertEqual(loaded, original.copy(id=item_id))

    def test_get_by_id_missing(self) -> None:
        """Test a missing id returns None."""
        self.assertIsNone(self.store.get_by_id(999))

    def test_get_all_newest_first(self) -> None:
        """Test get_all orders by creation time, newest first."""
        self.store.insert(make_item("old", created_at=1000, updated_at=1000))
        self.store.insert(make_item("new", created_at=2000, updated_at=2000))

        titles = [item.title for item in self.store.get_all()]

        self.assertEqual(titles, ["new", "old"])

    def test_insert_many(self) -> None:
        """Test bulk insert returns ids in input order."""
        ids = self.store.insert_many([make_item("a"), make_item("b"), make_item("c")])

        self.assertEqual(len(ids), 3)
        self.assertEqual(len(set(ids)), 3)
        self.assertEqual(self.store.get_by_id(ids[1]).title, "b")

    def test_insert_many_is_atomic(self) -> None:
        """Test a failing row rolls back the whole bulk insert."""
        self.store.insert(make_item(id=7))

        with self.assertRaises(Exception):
            self.store.insert_many([make_item("fresh"), make_item("clash", id=7)])

        self.assertEqual(self.store.count(), 1)

    def test_update_in_place(self) -> None:
        """Test update overwrites fields and stamps updated_at."""
        item_id = self.store.insert(make_item())
        item = self.store.get_by_id(item_id)

        self.store.update(item.copy(notes="relisted"))

        updated = self.store.get_by_id(item_id)
        self.assertEqual(updated.notes, "relisted")
        self.assertGreater(updated.updated_at, item.updated_at)
        self.assertEqual(self.store.count(), 1)

    def test_update_missing_raises(self) -> None:
        """Test updating an unknown id raises ItemNotFoundError."""
        with self.assertRaises(ItemNotFoundError):
            self.store.update(make_item(id=42))

    def test_delete(self) -> None:
        """Test deleting an item."""
        item_id = self.store.insert(make_item())

        self.assertTrue(self.store.delete(item_id))
        self.assertFalse(self.store.delete(item_id))
        self.assertEqual(self.store.count(), 0)


class TestImageStore(unittest.TestCase):
    """Tests for ImageStore."""

    def setUp(self) -> None:
        """Create an image store in a temporary directory."""
        self.temp_dir = tempfile.mkdtemp()
        self.images = ImageStore(Path(self.temp_dir) / "images")

    def tearDown(self) -> None:
        """Clean up temporary directory."""
        shutil.rmtree(self.temp_dir, ignore_errors=True)

    def test_save_bytes(self) -> None:
        """Test saving raw bytes."""
        path = self.images.save_blob(b"\x89PNG data", "png")

        self.assertTrue(Path(path).is_file())
        self.assertTrue(Path(path).name.startswith("item_"))
        self.assertTrue(path.endswith(".png"))
        with self.images.open_for_read(path) as f:
            self.assertEqual(f.read(), b"\x89PNG data")

    def test_save_stream(self) -> None:
        """Test saving from a binary stream."""
        path = self.images.save_blob(io.BytesIO(b"jpeg bytes"))

        self.assertTrue(path.endswith(".jpg"))
        self.assertEqual(Path(path).read_bytes(), b"jpeg bytes")

    def test_names_are_unique(self) -> None:
        """Test two saves never share a file name."""
        first = self.images.save_blob(b"a")
        second = self.images.save_blob(b"a")

        self.assertNotEqual(first, second)

    def test_no_temp_files_left(self) -> None:
        """Test only the final image remains after a save."""
        self.images.save_blob(b"a")

        names = [p.name for p in self.images.images_dir.iterdir()]
        self.assertEqual(len(names), 1)
        self.assertFalse(names[0].endswith(".part"))

    def test_resolve(self) -> None:
        """Test resolve returns existing files only."""
        path = self.images.save_blob(b"a")

        self.assertEqual(self.images.resolve(path), Path(path))
        self.assertIsNone(self.images.resolve(None))
        self.assertIsNone(self.images.resolve(str(Path(self.temp_dir) / "missing.jpg")))

    def test_delete(self) -> None:
        """Test deleting a stored image."""
        path = self.images.save_blob(b"a")

        self.assertTrue(self.images.delete(path))
        self.assertFalse(self.images.delete(path))

    def test_extension_of(self) -> None:
        """Test extensions are sanitized with a jpg fallback."""
        self.assertEqual(extension_of("photo.PNG"), "png")
        self.assertEqual(extension_of("photo"), "jpg")
        self.assertEqual(extension_of("photo.../../x"), "jpg")
        self.assertEqual(extension_of("archive.tar.gz"), "gz")
