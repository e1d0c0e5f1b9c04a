"""
Protocol definition for item stores.

The item store is the authoritative, network-backed source of items. It
handles authentication, transport, retries and encryption; the engine only
sees decrypted items through this interface.

Implemented by:
- SQLiteItemStore (local file, for development and offline use)
- RemoteItemStore (HTTP client to a sync API)
- External backends registered under the ``notesweep.backends`` entry point
"""

from typing import TYPE_CHECKING, Optional, Protocol, runtime_checkable

from .types import Item, ItemDraft, SubmitResult

if TYPE_CHECKING:
    from .filters import FilterSet


@runtime_checkable
class ItemStoreProtocol(Protocol):
    """
    Narrow interface the engine consumes. All calls are fallible.

    Stores raise StoreError for authentication, network and quota failures.
    ``submit`` reports per-item rejections in its result rather than raising.
    """

    @property
    def batch_size(self) -> int:
        """Maximum number of items accepted by one submit call."""
        ...

    def fetch(
        self,
        content_type: str,
        hints: Optional["FilterSet"] = None,
    ) -> list[Item]:
        """Return the current collection for a type.

        May contain duplicates and tombstoned items. ``hints`` is advisory:
        a store may use it to narrow the fetch, the engine re-evaluates.
        """
        ...

    def submit(self, items: list[Item]) -> SubmitResult: ...

    def create(self, draft: ItemDraft) -> Item: ...

    def close(self) -> None: ...
