"""Shared test fixtures for Cobalt core.

Provides in-memory stores, a controllable clock, and engines wired to
them so tests never touch the filesystem or the wall clock unless they
ask for it.
"""

import itertools
from pathlib import Path

import pytest

from cobalt_core.config import CoreSettings
from cobalt_core.diagnostics import DiagnosticsManager
from cobalt_core.platform import PlatformInfo
from cobalt_core.registry import SettingsRegistry
from cobalt_core.storage import MemoryStore

# =============================================================================
# CLOCK / IDS
# =============================================================================


class FakeClock:
    """Manually advanced clock returning float epoch seconds."""

    def __init__(self, start: float = 1_700_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def id_factory():
    """Deterministic token source: tok1, tok2, ..."""
    counter = itertools.count(1)
    return lambda: f"tok{next(counter)}"


# =============================================================================
# SETTINGS
# =============================================================================


@pytest.fixture
def test_settings(tmp_path: Path) -> CoreSettings:
    """Provide core settings with safe defaults."""
    return CoreSettings(
        debug=False,
        storage_dir=tmp_path / "store",
        app_version="9.9.9",
        platform="testos",
        device_id="device-1",
    )


@pytest.fixture
def platform_info() -> PlatformInfo:
    return PlatformInfo(app_version="9.9.9", platform="testos", device_id="device-1")


# =============================================================================
# ENGINES
# =============================================================================


@pytest.fixture
def store() -> MemoryStore:
    return MemoryStore()


@pytest.fixture
def registry(store: MemoryStore, clock: FakeClock, platform_info: PlatformInfo) -> SettingsRegistry:
    return SettingsRegistry(store, clock=clock, platform=platform_info)


@pytest.fixture
def diagnostics(store: MemoryStore, clock: FakeClock, id_factory) -> DiagnosticsManager:
    return DiagnosticsManager(store, clock=clock, id_factory=id_factory, session_id="session-1")
