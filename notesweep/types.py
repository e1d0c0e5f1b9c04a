"""
Data types for the filter and bulk-mutation engine.
"""

from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional


# Default item type for notes
NOTE_TYPE = "Note"

# Field holding an item's label; exact and pattern deletion match against it
LABEL_FIELD = "title"
BODY_FIELD = "text"


def utc_now() -> str:
    """Current UTC timestamp in canonical format: YYYY-MM-DDTHH:MM:SS.

    Timestamps are assigned by item stores and treated as opaque by the engine.
    """
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S")


class ItemState(Enum):
    """Lifecycle state of an item. The only transition is LIVE -> TOMBSTONED."""
    LIVE = "live"
    TOMBSTONED = "tombstoned"


@dataclass(frozen=True)
class Item:
    """
    A unit of stored content, already decrypted by the store.

    Items are immutable. Tombstoning returns a new Item, so a collection
    shared between batches is never modified in place.
    """
    id: str
    content_type: str = NOTE_TYPE
    fields: dict[str, Any] = field(default_factory=dict)
    deleted: bool = False
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    @property
    def state(self) -> ItemState:
        return ItemState.TOMBSTONED if self.deleted else ItemState.LIVE

    @property
    def title(self) -> str:
        """The label field, or empty string if the item has none."""
        value = self.fields.get(LABEL_FIELD)
        return "" if value is None else str(value)

    @property
    def text(self) -> str:
        value = self.fields.get(BODY_FIELD)
        return "" if value is None else str(value)

    def tombstone(self) -> "Item":
        """Return this item in the TOMBSTONED state.

        Idempotent: a tombstoned item returns itself, so replaying a batch
        produces the same submission.
        """
        if self.deleted:
            return self
        return replace(self, deleted=True)

    def to_dict(self) -> dict[str, Any]:
        """JSON-compatible representation used by the HTTP store and CLI output."""
        return {
            "id": self.id,
            "content_type": self.content_type,
            "fields": dict(self.fields),
            "deleted": self.deleted,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Item":
        return cls(
            id=data["id"],
            content_type=data.get("content_type", NOTE_TYPE),
            fields=dict(data.get("fields") or {}),
            deleted=bool(data.get("deleted", False)),
            created_at=data.get("created_at"),
            updated_at=data.get("updated_at"),
        )

    def __hash__(self) -> int:
        # fields is a dict; identity plus state is enough for set membership
        return hash((self.id, self.content_type, self.deleted))


@dataclass(frozen=True)
class ItemDraft:
    """Content for a new item; the store assigns identifier and timestamps."""
    content_type: str
    fields: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class ItemReference:
    """Lightweight (identifier, type) view of an item. Carries no content."""
    id: str
    content_type: str


@dataclass
class SubmitResult:
    """Outcome of one submit call against an item store.

    ``errors`` maps identifiers the store rejected to its error message.
    """
    succeeded: int = 0
    errors: dict[str, str] = field(default_factory=dict)

    def __add__(self, other: "SubmitResult") -> "SubmitResult":
        merged = dict(self.errors)
        merged.update(other.errors)
        return SubmitResult(succeeded=self.succeeded + other.succeeded, errors=merged)


@dataclass
class MutationResult:
    """
    Result of a delete or wipe.

    Partial success is reported as is: ``succeeded`` is the number of items
    the store confirmed, ``failed`` maps rejected identifiers to the error.
    """
    succeeded: int = 0
    failed: dict[str, str] = field(default_factory=dict)
    matched: list[Item] = field(default_factory=list)

    @property
    def count(self) -> int:
        return self.succeeded

    @property
    def partial(self) -> bool:
        """True if the store rejected some, but not necessarily all, matched items."""
        return bool(self.failed)
