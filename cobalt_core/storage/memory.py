"""In-process blob store.

Used by tests and by hosts that don't need durability across restarts.
"""

from __future__ import annotations

import logging

logger = logging.getLogger(__name__)


class MemoryStore:
    """Dict-backed :class:`~cobalt_core.storage.base.PersistentStore`.

    Args:
        initial: Optional blobs to pre-populate the store with.
    """

    def __init__(self, initial: dict[str, bytes] | None = None) -> None:
        self._blobs: dict[str, bytes] = dict(initial or {})
        self.write_count = 0

    async def get(self, name: str) -> bytes | None:
        return self._blobs.get(name)

    async def set(self, name: str, data: bytes) -> None:
        self._blobs[name] = bytes(data)
        self.write_count += 1
        logger.debug("Stored blob %s (%d bytes)", name, len(data))

    def names(self) -> list[str]:
        """Names of all stored blobs."""
        return sorted(self._blobs)
