"""Unit-test conftest: a registry pre-loaded with the sample catalogue."""

from __future__ import annotations

import pytest

from cobalt_core.registry import SettingsRegistry
from tests.helpers.settings import GENERAL, NETWORK, SAMPLE_DEFINITIONS


@pytest.fixture
def sample_registry(registry: SettingsRegistry) -> SettingsRegistry:
    registry.register_category(GENERAL)
    registry.register_category(NETWORK)
    for definition in SAMPLE_DEFINITIONS:
        registry.register_setting(definition)
    return registry
