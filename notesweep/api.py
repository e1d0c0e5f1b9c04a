"""
Core API for selecting and bulk-mutating items in an item store.

The Sweeper resolves requests against the store's current collection and
submits tombstoned items back in batches. It holds no state between calls
beyond its collaborators; requests passed in are never modified.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Iterable, Optional, Union

from .errors import StoreError, ValidationError
from .filters import Comparator, FilterSet, Predicate, select
from .items import live_items, project_references
from .protocol import ItemStoreProtocol
from .snapshot import SnapshotCache
from .types import (
    BODY_FIELD,
    LABEL_FIELD,
    NOTE_TYPE,
    Item,
    ItemDraft,
    ItemReference,
    MutationResult,
    SubmitResult,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DeletionRequest:
    """
    Items to delete, by identifier and/or label.

    With ``regex=False`` each label must equal an item's title exactly
    (case-sensitive). With ``regex=True`` each label is a regular expression
    searched (unanchored) in the title. Identifier and label matches are
    unioned.
    """
    identifiers: tuple[str, ...] = ()
    labels: tuple[str, ...] = ()
    regex: bool = False
    content_type: str = NOTE_TYPE

    def __post_init__(self):
        object.__setattr__(self, "identifiers", tuple(self.identifiers))
        object.__setattr__(self, "labels", tuple(self.labels))
        if not self.identifiers and not self.labels:
            raise ValidationError("Deletion request needs at least one identifier or label")

    def to_filter_set(self) -> FilterSet:
        """Express the request as an ANY filter set (compiles patterns eagerly)."""
        label_op = Comparator.MATCHES if self.regex else Comparator.EQUALS
        predicates = [Predicate("id", Comparator.EQUALS, i) for i in self.identifiers]
        predicates += [Predicate(LABEL_FIELD, label_op, label) for label in self.labels]
        return FilterSet(
            predicates=tuple(predicates),
            match_any=True,
            content_type=self.content_type,
        )


@dataclass(frozen=True)
class WipeRequest:
    """Delete every live item of one type."""
    item_type: str = NOTE_TYPE


Request = Union[FilterSet, DeletionRequest, WipeRequest]


@dataclass
class _BatchOutcome:
    items: list[Item]
    result: SubmitResult = field(default_factory=SubmitResult)
    error: Optional[StoreError] = None


class Sweeper:
    """
    Filter and bulk-mutation engine over an item store.

    Args:
        store: The item store to read from and write to
        cache: Optional snapshot cache consulted by ``get``
        max_workers: Number of batches submitted in parallel (1 = sequential)
    """

    def __init__(
        self,
        store: ItemStoreProtocol,
        *,
        cache: Optional[SnapshotCache] = None,
        max_workers: int = 1,
    ):
        self._store = store
        self._cache = cache
        self._max_workers = max(1, max_workers)

    @property
    def store(self) -> ItemStoreProtocol:
        return self._store

    def close(self) -> None:
        self._store.close()

    # -------------------------------------------------------------------------
    # Read path
    # -------------------------------------------------------------------------

    def get(
        self,
        filter_set: Optional[FilterSet] = None,
        *,
        content_type: Optional[str] = None,
        use_cache: bool = True,
    ) -> list[Item]:
        """
        Return live items matching a filter set, in fetch order.

        Without a filter set, returns every live item of ``content_type``.
        """
        if content_type is None:
            content_type = filter_set.content_type if filter_set else NOTE_TYPE

        if use_cache and self._cache is not None:
            items = self._cache.get(content_type)
            if items is None:
                items = live_items(self._store.fetch(content_type))
                try:
                    self._cache.put(content_type, items)
                except OSError as e:
                    logger.warning("Could not write snapshot for %s: %s", content_type, e)
            else:
                logger.debug("Using cached snapshot for %s (%d items)", content_type, len(items))
        else:
            items = self._store.fetch(content_type, hints=filter_set)

        matched = select(items, filter_set)
        logger.debug("Selected %d %s item(s)", len(matched), content_type)
        return matched

    def references(self, content_type: str = NOTE_TYPE) -> list[ItemReference]:
        """(identifier, type) references for every live item of a type."""
        return project_references(self.get(content_type=content_type, use_cache=True))

    # -------------------------------------------------------------------------
    # Write path
    # -------------------------------------------------------------------------

    def add(self, title: str, text: str = "", *, content_type: str = NOTE_TYPE) -> Item:
        """Create one item; returns it with its store-assigned identifier."""
        draft = ItemDraft(content_type=content_type, fields={LABEL_FIELD: title, BODY_FIELD: text})
        item = self._store.create(draft)
        self._invalidate(content_type)
        logger.info("Created %s %s", content_type, item.id)
        return item

    def delete(self, request: DeletionRequest) -> MutationResult:
        """Tombstone every live item matched by a deletion request.

        Zero matches is not an error; the result has ``succeeded == 0`` and
        the store is not written to.
        """
        filter_set = request.to_filter_set()
        items = self._store.fetch(request.content_type)
        matched = select(items, filter_set)
        logger.debug(
            "Deletion request matched %d of %d fetched %s item(s)",
            len(matched), len(items), request.content_type,
        )
        return self._tombstone(matched, request.content_type)

    def delete_by_identifiers(
        self, identifiers: Iterable[str], *, content_type: str = NOTE_TYPE,
    ) -> MutationResult:
        return self.delete(DeletionRequest(identifiers=tuple(identifiers), content_type=content_type))

    def delete_by_labels(
        self,
        labels: Iterable[str],
        *,
        regex: bool = False,
        content_type: str = NOTE_TYPE,
    ) -> MutationResult:
        return self.delete(
            DeletionRequest(labels=tuple(labels), regex=regex, content_type=content_type)
        )

    def wipe(self, item_type: str = NOTE_TYPE) -> MutationResult:
        """
        Tombstone every live item of a type.

        Works from a single fetch: items created concurrently after it may
        survive, but no live item from the fetch is skipped. Calling again on
        a wiped type returns 0.
        """
        targets = live_items(self._store.fetch(item_type))
        logger.debug("Wipe of %s found %d live item(s)", item_type, len(targets))
        return self._tombstone(targets, item_type)

    def execute(self, request: Request) -> Union[list[Item], MutationResult]:
        """Dispatch a caller-built request to get, delete or wipe."""
        if isinstance(request, FilterSet):
            return self.get(request)
        if isinstance(request, DeletionRequest):
            return self.delete(request)
        if isinstance(request, WipeRequest):
            return self.wipe(request.item_type)
        raise ValidationError(f"Unsupported request type: {type(request).__name__}")

    # -------------------------------------------------------------------------
    # Batch submission
    # -------------------------------------------------------------------------

    def _tombstone(self, matched: list[Item], content_type: str) -> MutationResult:
        if not matched:
            logger.info("No live %s items matched; nothing deleted", content_type)
            return MutationResult(succeeded=0, matched=[])

        tombstones = [item.tombstone() for item in matched]
        try:
            submitted = self._submit_batches(tombstones)
        finally:
            self._invalidate(content_type)

        result = MutationResult(
            succeeded=submitted.succeeded,
            failed=dict(submitted.errors),
            matched=list(matched),
        )
        if result.failed:
            logger.warning(
                "Deleted %d of %d %s item(s); %d rejected by the store",
                result.succeeded, len(matched), content_type, len(result.failed),
            )
        else:
            logger.info("Deleted %d %s item(s)", result.succeeded, content_type)
        return result

    def _submit_batches(self, items: list[Item]) -> SubmitResult:
        """
        Submit items in store-sized batches and sum the results.

        Each batch reports its own result; totals are summed once every
        batch has finished. If any batch raised StoreError, a StoreError is
        raised carrying the exact count confirmed by the other batches.
        Any other exception (cancellation, interrupt) propagates unchanged.
        """
        size = max(1, int(self._store.batch_size))
        batches = [items[i:i + size] for i in range(0, len(items), size)]

        if self._max_workers == 1 or len(batches) == 1:
            outcomes = [self._submit_one(batch) for batch in batches]
        else:
            workers = min(self._max_workers, len(batches))
            executor = ThreadPoolExecutor(max_workers=workers, thread_name_prefix="notesweep-submit")
            futures = [executor.submit(self._submit_one, batch) for batch in batches]
            try:
                outcomes = [f.result() for f in futures]
            except BaseException:
                for f in futures:
                    f.cancel()
                raise
            finally:
                executor.shutdown(wait=True)

        total = SubmitResult()
        for outcome in outcomes:
            total = total + outcome.result

        failures = [o for o in outcomes if o.error is not None]
        if failures:
            failed_ids: list[str] = []
            for o in failures:
                failed_ids += o.error.failed_ids or [item.id for item in o.items]
            failed_ids += [i for i in total.errors if i not in failed_ids]
            raise StoreError(
                f"{len(failures)} of {len(batches)} batch(es) failed "
                f"({total.succeeded} item(s) confirmed): {failures[0].error}",
                succeeded=total.succeeded,
                failed_ids=failed_ids,
            )
        return total

    def _submit_one(self, batch: list[Item]) -> _BatchOutcome:
        try:
            result = self._store.submit(batch)
        except StoreError as e:
            logger.warning("Batch of %d item(s) failed: %s", len(batch), e)
            # A store may confirm part of a batch before failing
            return _BatchOutcome(
                items=batch,
                result=SubmitResult(succeeded=e.succeeded),
                error=e,
            )
        return _BatchOutcome(items=batch, result=result)

    def _invalidate(self, content_type: str) -> None:
        if self._cache is None:
            return
        try:
            self._cache.invalidate(content_type)
        except OSError as e:
            logger.warning("Could not remove snapshot for %s: %s", content_type, e)
