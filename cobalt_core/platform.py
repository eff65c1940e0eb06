"""Platform collaborators injected into the engines.

The core never reads the wall clock, generates random identifiers, or
looks up version strings on its own; the host passes these in so tests
can pin them.
"""

from __future__ import annotations

import time
import uuid
from collections.abc import Callable
from typing import TYPE_CHECKING

from cobalt_core.schema import WireModel

if TYPE_CHECKING:
    from cobalt_core.config import CoreSettings

Clock = Callable[[], float]
"""Returns the current time as float epoch seconds."""

IdFactory = Callable[[], str]
"""Returns a short random token used to make identifiers unique."""


def system_clock() -> float:
    return time.time()


def random_token() -> str:
    return uuid.uuid4().hex[:9]


class PlatformInfo(WireModel):
    """App and platform identification stamped on exports."""

    app_version: str
    platform: str
    device_id: str | None = None

    @classmethod
    def from_settings(cls, settings: CoreSettings) -> PlatformInfo:
        return cls(
            app_version=settings.app_version,
            platform=settings.platform,
            device_id=settings.device_id,
        )
