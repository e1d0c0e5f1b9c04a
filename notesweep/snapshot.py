"""
Local snapshot cache.

A snapshot is any picklable value written whole to a single file and read
whole. The file layout is:

    magic (4 bytes, b"NSWP") | version (1 byte) | payload length (8 bytes, big-endian)
    | SHA-256 of payload (32 bytes) | pickled payload

Writes go to a temporary file next to the destination and are moved into
place with os.replace, so a reader sees either the previous snapshot or the
new one. A file that is truncated or otherwise damaged raises DecodeError;
a missing file raises CacheMiss. Neither is ever reported as an empty value.
"""

import hashlib
import logging
import os
import pickle
import re
import struct
import tempfile
import time
from pathlib import Path
from typing import Any, Optional, Union

from .errors import CacheMiss, DecodeError
from .types import Item

logger = logging.getLogger(__name__)

SNAPSHOT_MAGIC = b"NSWP"
SNAPSHOT_VERSION = 1
_HEADER = struct.Struct(">4sBQ32s")

PathLike = Union[str, os.PathLike]


def save_snapshot(path: PathLike, value: Any) -> None:
    """
    Serialize ``value`` to ``path``, replacing any existing snapshot atomically.

    Creates parent directories as needed. Raises TypeError/pickle errors for
    values that cannot be serialized, before the destination is touched.
    """
    path = Path(path)
    payload = pickle.dumps(value, protocol=pickle.HIGHEST_PROTOCOL)
    header = _HEADER.pack(
        SNAPSHOT_MAGIC,
        SNAPSHOT_VERSION,
        len(payload),
        hashlib.sha256(payload).digest(),
    )

    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=path.parent)
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(header)
            f.write(payload)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp_name, path)
    except BaseException:
        try:
            os.unlink(tmp_name)
        except OSError:
            pass
        raise


def load_snapshot(path: PathLike) -> Any:
    """
    Read a snapshot written by save_snapshot.

    Raises:
        CacheMiss: no file at ``path``
        DecodeError: the file exists but is not a complete, valid snapshot
    """
    path = Path(path)
    try:
        data = path.read_bytes()
    except FileNotFoundError as e:
        raise CacheMiss(f"No snapshot at {path}") from e

    if len(data) < _HEADER.size:
        raise DecodeError(f"Snapshot {path} is truncated ({len(data)} bytes)")

    magic, version, length, digest = _HEADER.unpack_from(data)
    if magic != SNAPSHOT_MAGIC:
        raise DecodeError(f"Snapshot {path} has wrong format marker")
    if version != SNAPSHOT_VERSION:
        raise DecodeError(f"Snapshot {path} has unsupported version {version}")

    payload = data[_HEADER.size:]
    if len(payload) != length:
        raise DecodeError(
            f"Snapshot {path} payload is {len(payload)} bytes, expected {length}"
        )
    if hashlib.sha256(payload).digest() != digest:
        raise DecodeError(f"Snapshot {path} failed checksum")

    try:
        return pickle.loads(payload)
    except Exception as e:
        raise DecodeError(f"Snapshot {path} could not be unpickled: {e}") from e


_UNSAFE_NAME_CHARS = re.compile(r"[^A-Za-z0-9_.-]")


class SnapshotCache:
    """
    Per-type snapshots of fetched item collections.

    Used by the read path to skip a remote fetch when a recent snapshot
    exists. ``ttl`` is in seconds; zero or negative disables expiry.
    """

    def __init__(self, directory: Path, ttl: float = 300.0):
        self._directory = Path(directory)
        self._ttl = ttl

    def path_for(self, content_type: str) -> Path:
        name = _UNSAFE_NAME_CHARS.sub("_", content_type) or "_"
        return self._directory / f"{name}.snapshot"

    def get(self, content_type: str) -> Optional[list[Item]]:
        """Cached items for a type, or None when missing, expired or unreadable."""
        path = self.path_for(content_type)
        try:
            value = load_snapshot(path)
        except CacheMiss:
            logger.debug("No snapshot for %s", content_type)
            return None
        except DecodeError as e:
            logger.warning("Ignoring unreadable snapshot: %s", e)
            return None

        fetched_at = value.get("fetched_at") if isinstance(value, dict) else None
        if (
            not isinstance(value, dict)
            or value.get("content_type") != content_type
            or not isinstance(value.get("items"), list)
            or not isinstance(fetched_at, (int, float))
        ):
            logger.warning("Ignoring snapshot %s: unexpected contents", path)
            return None
        age = time.time() - fetched_at
        if self._ttl > 0 and age > self._ttl:
            logger.debug("Snapshot for %s expired (%.0fs old)", content_type, age)
            return None
        return list(value["items"])

    def put(self, content_type: str, items: list[Item]) -> None:
        save_snapshot(self.path_for(content_type), {
            "content_type": content_type,
            "fetched_at": time.time(),
            "items": list(items),
        })

    def invalidate(self, content_type: str) -> None:
        self.path_for(content_type).unlink(missing_ok=True)
