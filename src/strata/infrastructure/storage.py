"""
File storage primitives shared by the configuration stores.

Writes go to a temporary file in the destination directory and are moved into
place with ``os.replace``, so a failed write leaves the previous file intact.
Low-level ``OSError``s are wrapped in ``StorageError``.
"""

import os
import tempfile
import threading
from pathlib import Path
from typing import Dict, Union

from strata.infrastructure.exceptions import StorageError


PathLike = Union[str, Path]


def atomic_write_bytes(path: PathLike, data: bytes) -> None:
    """Replace ``path`` with ``data``, creating parent directories as needed."""
    target = Path(path)
    tmp_name = None
    try:
        target.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(prefix=f".{target.name}.", suffix=".tmp", dir=target.parent)
        with os.fdopen(fd, "wb") as f:
            f.write(data)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp_name, target)
        tmp_name = None
    except OSError as e:
        raise StorageError(f"Failed to write {target}: {e}", path=str(target), operation="write") from e
    finally:
        if tmp_name is not None and os.path.exists(tmp_name):
            os.unlink(tmp_name)


def atomic_write_text(path: PathLike, text: str, encoding: str = "utf-8") -> None:
    atomic_write_bytes(path, text.encode(encoding))


def copy_file(source: PathLike, destination: PathLike) -> None:
    """Copy file contents, atomically replacing ``destination``."""
    try:
        data = Path(source).read_bytes()
    except OSError as e:
        raise StorageError(
            f"Failed to copy {source} to {destination}: {e}",
            path=str(source),
            operation="copy"
        ) from e
    atomic_write_bytes(destination, data)


class PathLockRegistry:
    """Hands out one re-entrant lock per resolved file path."""

    def __init__(self):
        self._locks: Dict[str, threading.RLock] = {}
        self._guard = threading.Lock()

    def lock_for(self, path: PathLike) -> threading.RLock:
        key = str(Path(path).resolve())
        with self._guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = threading.RLock()
                self._locks[key] = lock
            return lock
