"""Unit tests for CoreContext wiring and lifecycle."""

import asyncio

import pytest

from cobalt_core import CoreContext
from cobalt_core.storage import FileStore, MemoryStore


class TestCoreContext:
    @pytest.mark.asyncio
    async def test_start_registers_builtin_catalogue(self, test_settings, clock):
        async with CoreContext(MemoryStore(), settings=test_settings, clock=clock) as core:
            assert core.registry.get("app.theme") == "auto"
            assert len(core.registry.get_categories()) == 4

    @pytest.mark.asyncio
    async def test_start_without_builtin_catalogue(self, test_settings):
        core = CoreContext(MemoryStore(), settings=test_settings)
        await core.start(register_builtin=False)
        assert core.registry.definitions == []
        await core.aclose()

    @pytest.mark.asyncio
    async def test_state_survives_restart(self, test_settings, clock):
        store = MemoryStore()
        async with CoreContext(store, settings=test_settings, clock=clock) as core:
            await core.registry.set("downloads.maxConcurrent", 5)
            core.diagnostics.log_error("X", "m", "s")

        async with CoreContext(store, settings=test_settings, clock=clock) as core:
            assert core.registry.get("downloads.maxConcurrent") == 5
            assert core.diagnostics.get_stats().total == 1

        assert store.names() == ["cobalt-errors-v1", "cobalt-settings-v1"]

    @pytest.mark.asyncio
    async def test_from_settings_uses_file_store(self, test_settings):
        core = CoreContext.from_settings(test_settings)
        assert isinstance(core.store, FileStore)
        assert core.store.base_dir == test_settings.storage_dir

        async with core:
            await core.registry.set("app.theme", "dark")
        assert (test_settings.storage_dir / "cobalt-settings-v1.json").exists()

    @pytest.mark.asyncio
    async def test_export_metadata_from_settings(self, test_settings):
        async with CoreContext(MemoryStore(), settings=test_settings) as core:
            metadata = core.registry.export_settings().metadata
        assert metadata.app_version == "9.9.9"
        assert metadata.platform == "testos"

    @pytest.mark.asyncio
    async def test_install_handler(self, test_settings):
        loop = asyncio.get_running_loop()
        loop.set_exception_handler(lambda _loop, _context: None)
        core = CoreContext(MemoryStore(), settings=test_settings)
        await core.start(install_handler=True)

        loop.call_exception_handler({"message": "stray", "exception": RuntimeError("stray")})
        assert core.diagnostics.errors[0].code == "UNHANDLED_PROMISE_REJECTION"

        await core.aclose()
        loop.set_exception_handler(None)

    @pytest.mark.asyncio
    async def test_contexts_are_independent(self, test_settings):
        async with CoreContext(MemoryStore(), settings=test_settings) as one:
            async with CoreContext(MemoryStore(), settings=test_settings) as two:
                await one.registry.set("app.theme", "light")
                assert two.registry.get("app.theme") == "auto"

    @pytest.mark.asyncio
    async def test_debug_enables_stack_capture(self, test_settings):
        settings = test_settings.model_copy(update={"debug": True})
        async with CoreContext(MemoryStore(), settings=settings) as core:
            error_id = core.diagnostics.log_error("X", "m", "s")
            assert core.diagnostics.get_error(error_id).stack_trace
