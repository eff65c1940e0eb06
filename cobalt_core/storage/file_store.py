"""Filesystem-backed blob store.

Persists each named blob as ``{base_dir}/{name}.json``.  Blob names are
re-validated on every access to prevent path traversal, and writes go
through a temporary sibling file plus ``os.replace`` so a crash never
leaves a half-written blob behind.

Blocking file I/O runs in a worker thread via :func:`asyncio.to_thread`.
"""

from __future__ import annotations

import asyncio
import logging
import os
from pathlib import Path

from cobalt_core.exceptions import StorageError

logger = logging.getLogger(__name__)

_SUFFIX = ".json"


def _is_safe_name(name: str) -> bool:
    """Check if a blob name is safe for filesystem operations.

    Rejects path traversal, slashes, null bytes, and dotfiles.
    """
    if not name:
        return False
    if "\x00" in name:
        return False
    if "/" in name or "\\" in name:
        return False
    if ".." in name:
        return False
    return not name.startswith(".")


class FileStore:
    """Filesystem :class:`~cobalt_core.storage.base.PersistentStore`.

    Args:
        base_dir: Root directory for blob files.
            Defaults to ``data/cobalt`` relative to the working directory.
    """

    def __init__(self, base_dir: Path | None = None) -> None:
        self.base_dir = base_dir or Path("data/cobalt")

    def _path_for(self, name: str) -> Path:
        if not _is_safe_name(name):
            msg = f"Unsafe blob name rejected: {name!r}"
            raise StorageError(msg, name=name)
        return self.base_dir / f"{name}{_SUFFIX}"

    async def get(self, name: str) -> bytes | None:
        path = self._path_for(name)
        try:
            return await asyncio.to_thread(_read_bytes, path)
        except OSError as e:
            raise StorageError(f"Failed to read {name}: {e}", name=name) from e

    async def set(self, name: str, data: bytes) -> None:
        path = self._path_for(name)
        try:
            await asyncio.to_thread(_write_bytes_atomic, path, data)
        except OSError as e:
            raise StorageError(f"Failed to write {name}: {e}", name=name) from e

        logger.debug("Blob stored: %s (%d bytes)", path, len(data))


def _read_bytes(path: Path) -> bytes | None:
    if not path.is_file():
        return None
    return path.read_bytes()


def _write_bytes_atomic(path: Path, data: bytes) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = path.with_name(f"{path.name}.tmp")
    tmp.write_bytes(data)
    os.replace(tmp, path)
