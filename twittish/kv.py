"""Key-value byte stores the persistence adapter writes snapshots to.

Any store matching the protocol can be injected:

    get(key) -> bytes | None
    put(key, data) -> None

Two implementations are provided:

    FileStore    one file per key under a base directory. Writes go to a
                 temporary file first and are moved into place, so a reader
                 sees either the old snapshot or the new one, never half.
    MemoryStore  a dict. Used by tests and for throwaway sessions.
"""

from __future__ import annotations

import logging
import os
import re
from pathlib import Path
from typing import Protocol

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Protocol
# ---------------------------------------------------------------------------

class KeyValueStore(Protocol):
    def get(self, key: str) -> bytes | None: ...

    def put(self, key: str, data: bytes) -> None: ...


# ---------------------------------------------------------------------------
# FileStore
# ---------------------------------------------------------------------------

_KEY_RE = re.compile(r"^[A-Za-z0-9_.-]+$")


def valid_key(key: str) -> bool:
    """Keys become file names, so path separators and blanks are refused."""
    return bool(_KEY_RE.fullmatch(key))


class FileStore:
    """Stores each key as `{base}/{key}.json`.

    Args:
        base_path: Directory holding the files. Created if missing.
    """

    def __init__(self, base_path: Path) -> None:
        self._base = Path(base_path)
        self._base.mkdir(parents=True, exist_ok=True)

    def _path(self, key: str) -> Path:
        if not valid_key(key):
            raise ValueError(f"Invalid store key {key!r}")
        return self._base / f"{key}.json"

    def get(self, key: str) -> bytes | None:
        path = self._path(key)
        if not path.is_file():
            return None
        return path.read_bytes()

    def put(self, key: str, data: bytes) -> None:
        path = self._path(key)
        tmp = path.with_suffix(".json.tmp")
        tmp.write_bytes(data)
        os.replace(tmp, path)
        logger.debug("wrote %s (%d bytes)", path, len(data))


# ---------------------------------------------------------------------------
# MemoryStore
# ---------------------------------------------------------------------------

class MemoryStore:
    """In-process store. Nothing survives the interpreter."""

    def __init__(self, initial: dict[str, bytes] | None = None) -> None:
        self.data: dict[str, bytes] = dict(initial or {})

    def get(self, key: str) -> bytes | None:
        return self.data.get(key)

    def put(self, key: str, data: bytes) -> None:
        self.data[key] = data
