"""Tests for batch submission: partial failure, parallel accounting, cancellation."""

import pytest
from conftest import FakeItemStore, make_item

from notesweep.api import Sweeper
from notesweep.errors import StoreError


def _store_with_notes(count, batch_size):
    return FakeItemStore([make_item(f"n{i:02d}", f"Note {i}") for i in range(count)], batch_size=batch_size)


class TestBatching:
    def test_items_split_by_store_batch_size(self):
        store = _store_with_notes(25, batch_size=10)
        result = Sweeper(store).wipe()
        assert result.succeeded == 25
        assert [len(b) for b in store.submitted_batches] == [10, 10, 5]

    def test_submitted_items_are_tombstoned_copies(self):
        store = _store_with_notes(3, batch_size=10)
        originals = store.all()
        result = Sweeper(store).wipe()
        assert all(i.deleted for i in store.submitted_batches[0])
        # matched items are the live versions, untouched
        assert result.matched == originals
        assert not any(i.deleted for i in originals)

    @pytest.mark.parametrize("workers", [1, 3, 8])
    def test_parallel_counts_are_exact(self, workers):
        store = _store_with_notes(47, batch_size=5)
        result = Sweeper(store, max_workers=workers).wipe()
        assert result.succeeded == 47
        assert store.submit_calls == 10
        assert store.live() == []


class TestPartialFailure:
    def test_rejected_items_reported_per_item(self):
        store = _store_with_notes(6, batch_size=4)
        store.reject_ids = {"n01", "n04"}

        result = Sweeper(store).wipe()

        assert result.succeeded == 4
        assert set(result.failed) == {"n01", "n04"}
        assert result.partial
        assert {i.id for i in store.live()} == {"n01", "n04"}

    @pytest.mark.parametrize("workers", [1, 4])
    def test_failing_batch_raises_with_exact_count(self, workers):
        store = _store_with_notes(9, batch_size=3)
        store.fail_batches = {1}

        with pytest.raises(StoreError) as exc_info:
            Sweeper(store, max_workers=workers).wipe()

        err = exc_info.value
        assert err.succeeded == 6
        assert len(err.failed_ids) == 3
        assert len(store.live()) == 3
        # every batch was attempted
        assert store.submit_calls == 3

    def test_failing_batch_plus_rejections(self):
        store = _store_with_notes(6, batch_size=3)
        store.fail_batches = {0}
        store.reject_ids = {"n05"}

        with pytest.raises(StoreError) as exc_info:
            Sweeper(store).wipe()

        assert exc_info.value.succeeded == 2
        assert set(exc_info.value.failed_ids) == {"n00", "n01", "n02", "n05"}

    def test_fetch_failure_reports_no_count(self):
        store = _store_with_notes(3, batch_size=3)
        store.fail_fetch = StoreError("auth expired")

        with pytest.raises(StoreError, match="auth expired"):
            Sweeper(store).wipe()
        assert store.submit_calls == 0


class TestCancellation:
    @pytest.mark.parametrize("workers", [1, 4])
    def test_non_store_errors_propagate_unchanged(self, workers):
        store = _store_with_notes(9, batch_size=3)
        store.raise_in_submit = TimeoutError("cancelled by caller")

        with pytest.raises(TimeoutError):
            Sweeper(store, max_workers=workers).wipe()

    def test_keyboard_interrupt_propagates(self):
        store = _store_with_notes(2, batch_size=3)
        store.raise_in_submit = KeyboardInterrupt()

        with pytest.raises(KeyboardInterrupt):
            Sweeper(store).delete_by_labels(["Note 1"])
