"""
Item store using SQLite.

A local stand-in for the remote sync service: same contract, same
soft-delete behavior. Tombstoned items stay in the table and are returned
by fetch, exactly as a sync server returns deleted items until they are
purged.
"""

import json
import logging
import sqlite3
import threading
import uuid
from pathlib import Path
from typing import Optional

from .errors import StoreError
from .types import Item, ItemDraft, SubmitResult, utc_now

logger = logging.getLogger(__name__)

# Items per submit call, matching the page size of common sync servers
DEFAULT_BATCH_SIZE = 150


class SQLiteItemStore:
    """
    SQLite-backed item store.

    Safe to share across the threads of one process: writes are serialized
    by a lock and each submit call runs in a single transaction.
    """

    def __init__(self, db_path: Path, batch_size: int = DEFAULT_BATCH_SIZE):
        """
        Args:
            db_path: Path to SQLite database file
            batch_size: Maximum items accepted per submit call
        """
        self._db_path = Path(db_path)
        self._batch_size = batch_size
        self._lock = threading.Lock()
        self._conn: Optional[sqlite3.Connection] = None
        self._init_db()

    def _init_db(self) -> None:
        """Initialize the SQLite database."""
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._conn = sqlite3.connect(str(self._db_path), check_same_thread=False)
        self._conn.row_factory = sqlite3.Row

        self._conn.execute("""
            CREATE TABLE IF NOT EXISTS items (
                id TEXT PRIMARY KEY,
                content_type TEXT NOT NULL,
                fields_json TEXT NOT NULL DEFAULT '{}',
                deleted INTEGER NOT NULL DEFAULT 0,
                created_at TEXT NOT NULL,
                updated_at TEXT NOT NULL
            )
        """)

        # Index for fetch by type
        self._conn.execute("""
            CREATE INDEX IF NOT EXISTS idx_items_content_type
            ON items(content_type)
        """)

        self._conn.commit()

    @property
    def batch_size(self) -> int:
        return self._batch_size

    # -------------------------------------------------------------------------
    # Read Operations
    # -------------------------------------------------------------------------

    def fetch(self, content_type: str, hints=None) -> list[Item]:
        """
        All items of a type in insertion order, tombstoned ones included.

        ``hints`` is accepted for protocol compatibility and ignored.
        """
        try:
            with self._lock:
                cursor = self._conn.execute("""
                    SELECT id, content_type, fields_json, deleted, created_at, updated_at
                    FROM items
                    WHERE content_type = ?
                    ORDER BY rowid
                """, (content_type,))
                rows = cursor.fetchall()
        except sqlite3.Error as e:
            raise StoreError(f"Fetch of {content_type} failed: {e}") from e

        return [self._row_to_item(row) for row in rows]

    def get(self, id: str) -> Optional[Item]:
        """Get one item by identifier, tombstoned or not."""
        with self._lock:
            row = self._conn.execute("""
                SELECT id, content_type, fields_json, deleted, created_at, updated_at
                FROM items
                WHERE id = ?
            """, (id,)).fetchone()
        return None if row is None else self._row_to_item(row)

    def count(self, content_type: str, include_deleted: bool = False) -> int:
        """Count items of a type."""
        sql = "SELECT COUNT(*) FROM items WHERE content_type = ?"
        if not include_deleted:
            sql += " AND deleted = 0"
        with self._lock:
            return self._conn.execute(sql, (content_type,)).fetchone()[0]

    # -------------------------------------------------------------------------
    # Write Operations
    # -------------------------------------------------------------------------

    def create(self, draft: ItemDraft) -> Item:
        """Insert a new item with a fresh identifier."""
        now = utc_now()
        item = Item(
            id=str(uuid.uuid4()),
            content_type=draft.content_type,
            fields=dict(draft.fields),
            deleted=False,
            created_at=now,
            updated_at=now,
        )
        try:
            with self._lock, self._conn:
                self._conn.execute("""
                    INSERT INTO items
                    (id, content_type, fields_json, deleted, created_at, updated_at)
                    VALUES (?, ?, ?, 0, ?, ?)
                """, (
                    item.id,
                    item.content_type,
                    json.dumps(item.fields, ensure_ascii=False),
                    now,
                    now,
                ))
        except sqlite3.Error as e:
            raise StoreError(f"Create failed: {e}") from e
        return item

    def submit(self, items: list[Item]) -> SubmitResult:
        """
        Save changed items in one transaction.

        Unknown identifiers are rejected per item; everything else is saved.
        """
        if len(items) > self._batch_size:
            raise StoreError(
                f"Batch of {len(items)} exceeds limit of {self._batch_size}",
                failed_ids=[item.id for item in items],
            )

        result = SubmitResult()
        now = utc_now()
        try:
            with self._lock, self._conn:
                for item in items:
                    cursor = self._conn.execute("""
                        UPDATE items
                        SET fields_json = ?, deleted = ?, updated_at = ?
                        WHERE id = ? AND content_type = ?
                    """, (
                        json.dumps(item.fields, ensure_ascii=False),
                        1 if item.deleted else 0,
                        now,
                        item.id,
                        item.content_type,
                    ))
                    if cursor.rowcount > 0:
                        result.succeeded += 1
                    else:
                        result.errors[item.id] = "item not found"
        except sqlite3.Error as e:
            # The transaction was rolled back; nothing in this batch was saved
            raise StoreError(
                f"Submit failed: {e}", failed_ids=[item.id for item in items]
            ) from e

        logger.debug("Saved %d item(s), rejected %d", result.succeeded, len(result.errors))
        return result

    def close(self) -> None:
        """Close the database connection."""
        if self._conn is not None:
            self._conn.close()
            self._conn = None

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False

    @staticmethod
    def _row_to_item(row: sqlite3.Row) -> Item:
        return Item(
            id=row["id"],
            content_type=row["content_type"],
            fields=json.loads(row["fields_json"]),
            deleted=bool(row["deleted"]),
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )
