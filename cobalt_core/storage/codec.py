"""JSON blob codec built on pydantic ``TypeAdapter``.

Engines encode their snapshots into transport-neutral JSON bytes before
handing them to a :class:`~cobalt_core.storage.base.PersistentStore`.
Decoding fails open: an unparsable or schema-incompatible blob is logged
and reported as "no prior state" so startup falls back to defaults.
"""

from __future__ import annotations

import logging
from typing import Any, Generic, TypeVar

from pydantic import TypeAdapter, ValidationError

logger = logging.getLogger(__name__)

T = TypeVar("T")


class JsonCodec(Generic[T]):
    """Encode/decode values of a fixed type to JSON bytes.

    Args:
        type_: The Python type of the payload (e.g. ``list[AppError]``).
        name: Label used in log messages.
        by_alias: Dump field aliases instead of attribute names.
    """

    def __init__(self, type_: Any, *, name: str = "blob", by_alias: bool = False) -> None:
        self._adapter: TypeAdapter[T] = TypeAdapter(type_)
        self.name = name
        self.by_alias = by_alias

    def encode(self, value: T) -> bytes:
        return self._adapter.dump_json(value, by_alias=self.by_alias)

    def decode(self, data: bytes | None) -> T | None:
        """Decode a blob, returning None when it is absent or unreadable."""
        if not data:
            return None
        try:
            return self._adapter.validate_json(data)
        except (ValidationError, ValueError):
            logger.warning(
                "Discarding unreadable %s blob (%d bytes), falling back to defaults",
                self.name,
                len(data),
                exc_info=True,
            )
            return None
