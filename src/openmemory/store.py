"""
Blob stores: opaque key/value persistence for the serialised collection.
"""

from __future__ import annotations

import re
from pathlib import Path
from typing import Protocol

_UNSAFE_KEY_CHARS = re.compile(r"[^A-Za-z0-9._-]")


class BlobStore(Protocol):
    def get(self, key: str) -> bytes | None: ...

    def set(self, key: str, value: bytes) -> None: ...


class InMemoryBlobStore:
    """Dict-backed store; contents vanish with the process."""

    def __init__(self, initial: dict[str, bytes] | None = None) -> None:
        self.blobs: dict[str, bytes] = dict(initial or {})

    def get(self, key: str) -> bytes | None:
        return self.blobs.get(key)

    def set(self, key: str, value: bytes) -> None:
        self.blobs[key] = value


class FileBlobStore:
    """
    Persistent store keeping one ``<key>.json`` file per key under *path*.

    Writes go to a temporary sibling first and are moved into place, so a
    crash mid-write never leaves a truncated blob behind.
    """

    def __init__(self, path: str | Path = "./openmemory_db") -> None:
        self.path = Path(path).expanduser()

    def _file_for(self, key: str) -> Path:
        return self.path / f"{_UNSAFE_KEY_CHARS.sub('_', key)}.json"

    # ------------------------------------------------------------------
    # Read operations
    # ------------------------------------------------------------------

    def get(self, key: str) -> bytes | None:
        """Return the stored bytes, or ``None`` if *key* was never written."""
        target = self._file_for(key)
        if not target.exists():
            return None
        return target.read_bytes()

    # ------------------------------------------------------------------
    # Write operations
    # ------------------------------------------------------------------

    def set(self, key: str, value: bytes) -> None:
        target = self._file_for(key)
        target.parent.mkdir(parents=True, exist_ok=True)
        tmp = target.with_suffix(".json.tmp")
        tmp.write_bytes(value)
        tmp.replace(target)
