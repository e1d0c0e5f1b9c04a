"""
Shared pytest fixtures for notesweep tests.

Every test gets its own store: nothing is shared across tests, so tests can
run in any order.
"""

import threading
import uuid
from pathlib import Path

import pytest

from notesweep.api import Sweeper
from notesweep.errors import StoreError
from notesweep.item_store import SQLiteItemStore
from notesweep.types import Item, ItemDraft, SubmitResult, utc_now


def make_item(id=None, title="untitled", text="", *, deleted=False, content_type="Note", **fields):
    """Build an Item with title/text fields plus any extras."""
    all_fields = {"title": title, "text": text}
    all_fields.update(fields)
    return Item(
        id=id or str(uuid.uuid4()),
        content_type=content_type,
        fields=all_fields,
        deleted=deleted,
    )


class FakeItemStore:
    """
    In-memory item store with injectable failures.

    Mirrors a sync server: fetch returns tombstoned items too, and can be
    told to repeat items as overlapping pages would.
    """

    def __init__(self, items=None, batch_size=150):
        self._items: dict[str, Item] = {}
        self._order: list[str] = []
        self._lock = threading.Lock()
        self.batch_size = batch_size

        self.duplicate_on_fetch = False
        self.fail_fetch: Exception | None = None
        self.fail_create: Exception | None = None
        self.fail_batches: set[int] = set()  # 0-based submit call numbers that raise
        self.raise_in_submit: BaseException | None = None
        self.reject_ids: set[str] = set()

        self.fetch_calls = 0
        self.submit_calls = 0
        self.submitted_batches: list[list[Item]] = []
        self.closed = False

        for item in items or []:
            self._put(item)

    def _put(self, item: Item) -> None:
        if item.id not in self._items:
            self._order.append(item.id)
        self._items[item.id] = item

    def fetch(self, content_type, hints=None):
        self.fetch_calls += 1
        if self.fail_fetch is not None:
            raise self.fail_fetch
        with self._lock:
            items = [self._items[i] for i in self._order
                     if self._items[i].content_type == content_type]
        if self.duplicate_on_fetch:
            items = items + items[: len(items) // 2]
        return items

    def submit(self, items):
        with self._lock:
            call = self.submit_calls
            self.submit_calls += 1
            self.submitted_batches.append(list(items))
        if self.raise_in_submit is not None:
            raise self.raise_in_submit
        if call in self.fail_batches:
            raise StoreError(f"simulated failure in batch {call}", failed_ids=[i.id for i in items])
        result = SubmitResult()
        with self._lock:
            for item in items:
                if item.id in self.reject_ids or item.id not in self._items:
                    result.errors[item.id] = "rejected"
                    continue
                self._items[item.id] = item
                result.succeeded += 1
        return result

    def create(self, draft: ItemDraft) -> Item:
        if self.fail_create is not None:
            raise self.fail_create
        now = utc_now()
        item = Item(
            id=str(uuid.uuid4()),
            content_type=draft.content_type,
            fields=dict(draft.fields),
            created_at=now,
            updated_at=now,
        )
        with self._lock:
            self._put(item)
        return item

    def close(self):
        self.closed = True

    # Test helpers

    def live(self, content_type="Note"):
        return [i for i in self._items.values() if i.content_type == content_type and not i.deleted]

    def all(self):
        return [self._items[i] for i in self._order]


@pytest.fixture(autouse=True)
def isolated_home(tmp_path, monkeypatch):
    """Point NOTESWEEP_HOME at a temp dir so nothing touches ~/.notesweep."""
    home = tmp_path / "home"
    monkeypatch.setenv("NOTESWEEP_HOME", str(home))
    monkeypatch.delenv("NOTESWEEP_API_URL", raising=False)
    monkeypatch.delenv("NOTESWEEP_API_KEY", raising=False)
    return home


@pytest.fixture
def fake_store():
    """A fresh, empty in-memory store."""
    return FakeItemStore()


@pytest.fixture
def sqlite_store(tmp_path):
    """A fresh SQLite store in the test's temp directory."""
    store = SQLiteItemStore(tmp_path / "items.db")
    yield store
    store.close()


@pytest.fixture
def sweeper(sqlite_store):
    """Sweeper over a fresh SQLite store, no snapshot cache."""
    return Sweeper(sqlite_store)


@pytest.fixture
def fake_sweeper(fake_store):
    return Sweeper(fake_store)
