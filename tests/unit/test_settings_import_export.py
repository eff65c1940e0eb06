"""Unit tests for settings export/import."""

import logging

import pytest

from cobalt_core.registry import SettingsExport, SettingsRegistry, ValueSource
from cobalt_core.storage import MemoryStore
from tests.helpers.settings import SAMPLE_DEFINITIONS


def _fresh_registry(clock, platform_info) -> SettingsRegistry:
    registry = SettingsRegistry(MemoryStore(), clock=clock, platform=platform_info)
    for definition in SAMPLE_DEFINITIONS:
        registry.register_setting(definition)
    return registry


class TestExport:
    def test_export_of_defaults_is_empty(self, sample_registry):
        export = sample_registry.export_settings()
        assert export.settings == {}
        assert export.version == "1.0"

    @pytest.mark.asyncio
    async def test_export_contains_non_default_values_and_metadata(self, sample_registry, clock):
        await sample_registry.set("theme", "dark")
        await sample_registry.set("test-number", 77)

        export = sample_registry.export_settings()

        assert export.settings == {"theme": "dark", "test-number": 77}
        assert export.timestamp == clock.now
        assert export.metadata.app_version == "9.9.9"
        assert export.metadata.platform == "testos"
        assert export.metadata.device_id == "device-1"

    @pytest.mark.asyncio
    async def test_wire_format_is_camel_case(self, sample_registry):
        await sample_registry.set("flag", False)
        wire = sample_registry.export_settings().to_wire()

        assert set(wire) == {"version", "timestamp", "settings", "metadata"}
        assert wire["metadata"] == {"appVersion": "9.9.9", "platform": "testos", "deviceId": "device-1"}
        assert wire["settings"] == {"flag": False}


class TestImport:
    @pytest.mark.asyncio
    async def test_round_trip_into_fresh_registry(self, sample_registry, clock, platform_info):
        await sample_registry.set("theme", "dark")
        await sample_registry.set("nickname", "sparrow")
        await sample_registry.set("proxy.enabled", True)
        export = sample_registry.export_settings()

        target = _fresh_registry(clock, platform_info)
        result = await target.import_settings(export)

        assert result.imported == 3
        assert result.skipped == 0
        assert result.errors == []
        for key, value in export.settings.items():
            assert target.get(key) == value
            assert target.get_value(key).source == ValueSource.IMPORT

    @pytest.mark.asyncio
    async def test_round_trip_through_wire_dict(self, sample_registry, clock, platform_info):
        await sample_registry.set("test-number", 33)
        wire = sample_registry.export_settings().to_wire()

        target = _fresh_registry(clock, platform_info)
        await target.import_settings(wire)

        assert target.get("test-number") == 33

    @pytest.mark.asyncio
    async def test_unknown_key_is_skipped_not_an_error(self, sample_registry):
        result = await sample_registry.import_settings(
            {"version": "1.0", "settings": {"not.here": 1, "flag": False}}
        )
        assert result.skipped == 1
        assert result.imported == 1
        assert result.errors == []

    @pytest.mark.asyncio
    async def test_invalid_value_is_reported_and_import_continues(self, sample_registry):
        result = await sample_registry.import_settings(
            {"version": "1.0", "settings": {"test-number": 500, "theme": "light"}}
        )

        assert result.imported == 1
        assert len(result.errors) == 1
        assert result.errors[0].startswith("test-number: ")
        assert sample_registry.get("test-number") == 10
        assert sample_registry.get("theme") == "light"

    @pytest.mark.asyncio
    async def test_unknown_version_still_imports(self, sample_registry, caplog):
        with caplog.at_level(logging.WARNING, logger="cobalt_core.registry.manager"):
            result = await sample_registry.import_settings({"version": "2.5", "settings": {"flag": False}})

        assert result.imported == 1
        assert "unrecognised version" in caplog.text

    @pytest.mark.asyncio
    async def test_payload_without_settings_rejected(self, sample_registry):
        with pytest.raises(ValueError, match="no settings mapping"):
            await sample_registry.import_settings({"version": "1.0"})

    def test_export_model_accepts_wire_aliases(self):
        export = SettingsExport.model_validate(
            {
                "version": "1.0",
                "timestamp": 1.0,
                "settings": {"a": 1},
                "metadata": {"appVersion": "1.2.3", "platform": "ios"},
            }
        )
        assert export.metadata.app_version == "1.2.3"
        assert export.metadata.device_id is None
