"""Unit tests for SettingsRegistry reads, writes and resets."""

import asyncio
import itertools
import json

import pytest

from cobalt_core.exceptions import UnregisteredKeyError
from cobalt_core.registry import SettingCategory, SettingsRegistry, SettingType, ValueSource
from tests.helpers.settings import make_definition


class TestRegistration:
    def test_registered_key_starts_at_default(self, sample_registry):
        record = sample_registry.get_value("test-number")
        assert sample_registry.get("test-number") == 10
        assert record.is_default is True
        assert record.source == ValueSource.SYSTEM

    def test_reregistering_keeps_current_value(self, sample_registry):
        definition = sample_registry.get_definition("flag")
        sample_registry.register_setting(definition.model_copy(update={"label": "Renamed"}))
        assert sample_registry.get_definition("flag").label == "Renamed"
        assert sample_registry.get("flag") is True

    def test_unknown_key_reads_none(self, sample_registry):
        assert sample_registry.get("missing") is None
        assert sample_registry.get_value("missing") is None
        assert sample_registry.get_definition("missing") is None

    def test_categories_sorted_by_order(self, registry):
        registry.register_category(SettingCategory(id="b", label="B", order=2))
        registry.register_category(SettingCategory(id="a", label="A", order=1))
        registry.register_category(SettingCategory(id="c", label="C", order=3))
        assert [c.id for c in registry.get_categories()] == ["a", "b", "c"]

    @pytest.mark.parametrize("order", list(itertools.permutations(["Zeta", "alpha", "Mu"])))
    def test_get_by_category_sorted_by_label(self, registry, order):
        for label in order:
            registry.register_setting(make_definition(f"k.{label}", label=label))

        labels = [entry.definition.label for entry in registry.get_by_category("general")]

        assert labels == ["alpha", "Mu", "Zeta"]

    def test_get_by_category_filters(self, sample_registry):
        keys = [entry.definition.key for entry in sample_registry.get_by_category("network")]
        assert keys == ["proxy.host", "proxy.enabled"]


class TestSet:
    @pytest.mark.asyncio
    async def test_set_then_get_returns_value(self, sample_registry, clock):
        clock.advance(5)
        await sample_registry.set("test-number", 42)

        record = sample_registry.get_value("test-number")
        assert sample_registry.get("test-number") == 42
        assert record.is_default is False
        assert record.source == ValueSource.USER
        assert record.last_modified == clock.now

    @pytest.mark.asyncio
    async def test_setting_default_value_marks_default(self, sample_registry):
        await sample_registry.set("test-number", 42)
        await sample_registry.set("test-number", 10)
        assert sample_registry.get_value("test-number").is_default is True

    @pytest.mark.asyncio
    async def test_unregistered_key_rejected(self, sample_registry):
        with pytest.raises(UnregisteredKeyError, match="Setting missing is not registered"):
            await sample_registry.set("missing", 1)

    @pytest.mark.asyncio
    async def test_set_persists_value_map(self, sample_registry, store):
        await sample_registry.set("flag", False)
        assert store.write_count == 1
        assert "cobalt-settings-v1" in store.names()

    @pytest.mark.asyncio
    async def test_boolean_scenario(self, registry):
        registry.register_setting(make_definition("a", type=SettingType.BOOLEAN, default_value=True))
        assert registry.get("a") is True

        await registry.set("a", False)
        assert registry.get("a") is False

        await registry.reset("a")
        assert registry.get("a") is True

    @pytest.mark.asyncio
    async def test_concurrent_writes_are_serialized(self, sample_registry, store):
        seen = []
        sample_registry.observe("test-number").subscribe(seen.append)

        await asyncio.gather(*(sample_registry.set("test-number", n) for n in (1, 2, 3, 4, 5)))

        assert seen == [10, 1, 2, 3, 4, 5]
        assert sample_registry.get("test-number") == 5
        stored = dict(json.loads(store._blobs["cobalt-settings-v1"]))
        assert stored["test-number"]["value"] == 5
        assert store.write_count == 5


class TestSetMany:
    @pytest.mark.asyncio
    async def test_applies_all_valid_updates(self, sample_registry):
        errors = await sample_registry.set_many({"flag": False, "theme": "dark"})

        assert errors == []
        assert sample_registry.get("flag") is False
        assert sample_registry.get("theme") == "dark"

    @pytest.mark.asyncio
    async def test_failures_do_not_stop_the_batch(self, sample_registry):
        errors = await sample_registry.set_many({"test-number": 500, "missing": 1, "theme": "dark"})

        assert len(errors) == 2
        assert errors[0].startswith("test-number: ")
        assert errors[1] == "missing: Setting missing is not registered"
        assert sample_registry.get("test-number") == 10
        assert sample_registry.get("theme") == "dark"

    @pytest.mark.asyncio
    async def test_source_is_recorded(self, sample_registry):
        await sample_registry.set_many({"flag": False}, ValueSource.IMPORT)
        assert sample_registry.get_value("flag").source == ValueSource.IMPORT


class TestValidate:
    def test_valid_value(self, sample_registry):
        assert sample_registry.validate("test-number", 50) is None

    def test_rejected_value_message(self, sample_registry):
        message = sample_registry.validate("test-number", 500)
        assert "at most 100" in message
        assert sample_registry.get("test-number") == 10

    def test_type_mismatch(self, sample_registry):
        assert sample_registry.validate("flag", "yes") is not None

    def test_unregistered_key(self, sample_registry):
        assert sample_registry.validate("missing", 1) == "Setting missing is not registered"


class TestObserve:
    @pytest.mark.asyncio
    async def test_observe_emits_once_per_change(self, sample_registry):
        seen = []
        sample_registry.observe("test-number").subscribe(seen.append)

        await sample_registry.set("test-number", 50)
        await sample_registry.set("flag", False)
        await sample_registry.set("test-number", 50)

        assert seen == [10, 50]

    @pytest.mark.asyncio
    async def test_observe_all_sees_whole_map(self, sample_registry):
        snapshots = []
        sample_registry.observe_all().subscribe(snapshots.append)

        await sample_registry.set("theme", "dark")

        assert len(snapshots) == 2
        assert snapshots[-1]["theme"].value == "dark"
        assert snapshots[0]["theme"].value == "auto"

    def test_observe_unknown_key_yields_none(self, sample_registry):
        seen = []
        sample_registry.observe("missing").subscribe(seen.append)
        assert seen == [None]


class TestReset:
    @pytest.mark.asyncio
    async def test_reset_restores_default(self, sample_registry):
        await sample_registry.set("nickname", "sparrow")
        await sample_registry.reset("nickname")

        record = sample_registry.get_value("nickname")
        assert record.value == "guest"
        assert record.is_default is True
        assert record.source == ValueSource.SYSTEM

    @pytest.mark.asyncio
    async def test_reset_unregistered_key(self, sample_registry):
        with pytest.raises(UnregisteredKeyError):
            await sample_registry.reset("missing")

    @pytest.mark.asyncio
    async def test_reset_all(self, sample_registry):
        await sample_registry.set("flag", False)
        await sample_registry.set("proxy.host", "proxy.lan")

        errors = await sample_registry.reset_all()

        assert errors == []
        assert all(record.is_default for record in sample_registry.values.values())

    @pytest.mark.asyncio
    async def test_reset_all_reports_invalid_defaults(self, registry):
        registry.register_setting(make_definition("ok", default_value="x"))
        registry.register_setting(
            make_definition("bad", type=SettingType.NUMBER, default_value=500, max=100)
        )

        errors = await registry.reset_all()

        assert len(errors) == 1
        assert errors[0].startswith("bad: ")
        assert "at most 100" in errors[0]
        assert registry.get("ok") == "x"

    @pytest.mark.asyncio
    async def test_reset_all_continues_past_raising_rule(self, registry):
        registry.register_setting(make_definition("picky", default_value="bad", validation=lambda v: {"ok": None}[v]))
        registry.register_setting(make_definition("count", type=SettingType.NUMBER, default_value=0))
        await registry.set("count", 5)

        errors = await registry.reset_all()

        assert len(errors) == 1
        assert errors[0].startswith("picky: ")
        assert registry.get("count") == 0

    @pytest.mark.asyncio
    async def test_reset_category_only_touches_that_category(self, sample_registry):
        await sample_registry.set("flag", False)
        await sample_registry.set("proxy.enabled", True)

        errors = await sample_registry.reset_category("network")

        assert errors == []
        assert sample_registry.get("proxy.enabled") is False
        assert sample_registry.get("flag") is False


class TestSearch:
    def test_search_matches_label_description_key_and_category(self, sample_registry):
        keys = {result.definition.key for result in sample_registry.search("proxy")}
        assert keys == {"proxy.enabled", "proxy.host"}

        assert [r.definition.key for r in sample_registry.search("devices")] == ["nickname"]
        assert {r.definition.key for r in sample_registry.search("network")} == {
            "proxy.enabled",
            "proxy.host",
        }

    def test_search_is_case_insensitive_and_ranked(self, sample_registry):
        results = sample_registry.search("THEME")
        assert results[0].definition.key == "theme"
        assert results == sorted(results, key=lambda r: r.relevance, reverse=True)

    def test_blank_query_returns_nothing(self, sample_registry):
        assert sample_registry.search("   ") == []

    def test_no_match(self, sample_registry):
        assert sample_registry.search("bluetooth") == []


class TestDependencies:
    @pytest.mark.asyncio
    async def test_reports_disabled_boolean_dependency(self, sample_registry):
        assert sample_registry.validate_dependencies("proxy.host") == [
            "Proxy host requires Use proxy to be enabled"
        ]

        await sample_registry.set("proxy.enabled", True)

        assert sample_registry.validate_dependencies("proxy.host") == []

    def test_reports_unregistered_dependency(self, registry):
        registry.register_setting(make_definition("child", dependencies=("ghost",)))
        assert registry.validate_dependencies("child") == ["Dependency ghost is not registered"]

    def test_no_dependencies(self, sample_registry):
        assert sample_registry.validate_dependencies("flag") == []
        assert sample_registry.validate_dependencies("missing") == []


class TestRestartRequired:
    @pytest.mark.asyncio
    async def test_lists_non_default_restart_settings(self, sample_registry):
        assert sample_registry.get_restart_required_settings() == []

        await sample_registry.set("proxy.host", "proxy.lan")

        assert sample_registry.get_restart_required_settings() == ["proxy.host"]


class TestDefaultsCatalogue:
    def test_register_defaults(self, registry: SettingsRegistry):
        from cobalt_core.registry import register_defaults

        register_defaults(registry)

        assert [c.id for c in registry.get_categories()] == ["app", "downloads", "scanner", "performance"]
        assert registry.get("app.theme") == "auto"
        assert registry.get("downloads.maxConcurrent") == 3
        assert registry.get("scanner.timeout") == 5000
        assert registry.get("performance.enableMonitoring") is True
