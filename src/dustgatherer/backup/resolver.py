"""
Conflict resolution for imported archive items.

Decision table:

    existing   strategy            action
    --------   -----------------   ----------------
    absent     any                 INSERT_AS_NEW
    present    SKIP_EXISTING       SKIP
    present    REPLACE_EXISTING    REPLACE_EXISTING
    present    IMPORT_AS_NEW       INSERT_AS_NEW
"""

from __future__ import annotations

from typing import assert_never

from dustgatherer.backup.models import ConflictAction, ConflictStrategy
from dustgatherer.storage.models import InventoryItem


def resolve(existing: InventoryItem | None, strategy: ConflictStrategy) -> ConflictAction:
    """Decide what to do with an archive item given the matching local item, if any."""
    if existing is None:
        return ConflictAction.INSERT_AS_NEW

    match strategy:
        case ConflictStrategy.SKIP_EXISTING:
            return ConflictAction.SKIP
        case ConflictStrategy.REPLACE_EXISTING:
            return ConflictAction.REPLACE_EXISTING
        case ConflictStrategy.IMPORT_AS_NEW:
            return ConflictAction.INSERT_AS_NEW
        case _:
            assert_never(strategy)
