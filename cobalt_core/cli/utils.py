"""Shared CLI helpers."""

from __future__ import annotations

import json
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Any

from rich.console import Console

from cobalt_core.context import CoreContext

console = Console()


@asynccontextmanager
async def open_core() -> AsyncGenerator[CoreContext, None]:
    """Start a core context over the configured file store."""
    core = CoreContext.from_settings()
    await core.start()
    try:
        yield core
    finally:
        await core.aclose()


def parse_value(raw: str) -> Any:
    """Parse a command-line value as JSON, falling back to the raw string.

    ``true``/``42``/``"x"`` become bool/int/str; ``dark`` stays ``"dark"``.
    """
    try:
        return json.loads(raw)
    except json.JSONDecodeError:
        return raw


def format_value(value: Any) -> str:
    return json.dumps(value) if not isinstance(value, str) else value
