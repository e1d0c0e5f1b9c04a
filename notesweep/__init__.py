"""
notesweep

Filter and bulk-mutation engine for notes held in an item store.

Quick Start:
    from notesweep import Sweeper, DeletionRequest, SQLiteItemStore

    sweeper = Sweeper(SQLiteItemStore(Path("items.db")))
    sweeper.add("TestNoteOne", "some text")
    result = sweeper.delete(DeletionRequest(labels=("TestNoteOne",)))
    print(result.succeeded)

CLI Usage:
    notesweep get -f 'title==TestNoteOne'
    notesweep delete --title '^T.*ote' --regex
    notesweep wipe --yes

Environment Variables:
    NOTESWEEP_HOME      - Override the home directory (default ~/.notesweep)
    NOTESWEEP_API_URL   - Remote item API URL
    NOTESWEEP_API_KEY   - Remote item API key
    NOTESWEEP_VERBOSE   - Set to 1 for debug logging
"""

from .api import DeletionRequest, Sweeper, WipeRequest
from .errors import (
    CacheMiss,
    DecodeError,
    SnapshotError,
    StoreError,
    SweepError,
    ValidationError,
)
from .filters import (
    MISSING,
    Comparator,
    FilterSet,
    Predicate,
    evaluate,
    evaluate_filter_set,
    parse_predicate,
    select,
)
from .item_store import SQLiteItemStore
from .items import deduplicate, filter_tombstoned, project_references
from .protocol import ItemStoreProtocol
from .snapshot import SnapshotCache, load_snapshot, save_snapshot
from .types import (
    NOTE_TYPE,
    Item,
    ItemDraft,
    ItemReference,
    ItemState,
    MutationResult,
    SubmitResult,
)

__version__ = "0.1.0"
__all__ = [
    "Sweeper",
    "DeletionRequest",
    "WipeRequest",
    "FilterSet",
    "Predicate",
    "Comparator",
    "MISSING",
    "evaluate",
    "evaluate_filter_set",
    "parse_predicate",
    "select",
    "deduplicate",
    "filter_tombstoned",
    "project_references",
    "save_snapshot",
    "load_snapshot",
    "SnapshotCache",
    "ItemStoreProtocol",
    "SQLiteItemStore",
    "Item",
    "ItemDraft",
    "ItemReference",
    "ItemState",
    "MutationResult",
    "SubmitResult",
    "NOTE_TYPE",
    "SweepError",
    "ValidationError",
    "StoreError",
    "SnapshotError",
    "CacheMiss",
    "DecodeError",
]
