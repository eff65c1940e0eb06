"""Persistent store contract consumed by the registry and diagnostics.

The core never talks to a disk or database driver directly.  It reads and
writes opaque byte blobs keyed by name through this protocol; the
surrounding application injects the concrete backend.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable


@runtime_checkable
class PersistentStore(Protocol):
    """Async key/value store of named byte blobs.

    Both operations may fail with a generic I/O error; implementations
    shipped with the core raise :class:`~cobalt_core.exceptions.StorageError`.
    """

    async def get(self, name: str) -> bytes | None:
        """Return the blob stored under ``name``, or None if absent."""
        ...

    async def set(self, name: str, data: bytes) -> None:
        """Store ``data`` under ``name``, replacing any previous blob."""
        ...
