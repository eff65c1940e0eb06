"""Process-wide core context.

The host builds one :class:`CoreContext` at startup and hands its
``registry`` and ``diagnostics`` to every consumer.  Tests build as many
independent contexts as they like.

Usage:
    async with CoreContext(FileStore(Path("data"))) as core:
        core.registry.observe("app.theme").subscribe(apply_theme)
        await core.registry.set("app.theme", "dark")
"""

from __future__ import annotations

import logging
from collections.abc import Callable

from cobalt_core.config import CoreSettings, get_settings
from cobalt_core.diagnostics import DiagnosticsManager, NotificationPolicy, install_asyncio_handler
from cobalt_core.platform import Clock, IdFactory, PlatformInfo, random_token, system_clock
from cobalt_core.registry import SettingsRegistry, register_defaults
from cobalt_core.storage import FileStore, PersistentStore

logger = logging.getLogger(__name__)


class CoreContext:
    """Owns one settings registry and one diagnostics manager.

    Args:
        store: Backend shared by both engines (each uses its own blob).
        settings: Configuration; defaults to ``get_settings()``.
        clock: Time source for both engines.
        id_factory: Random token source for error ids.
        platform: Export metadata; defaults to values from ``settings``.
        policy: Notification rules for the diagnostics manager.
    """

    def __init__(
        self,
        store: PersistentStore,
        *,
        settings: CoreSettings | None = None,
        clock: Clock = system_clock,
        id_factory: IdFactory = random_token,
        platform: PlatformInfo | None = None,
        policy: NotificationPolicy | None = None,
    ) -> None:
        self.settings = settings or get_settings()
        self.store = store
        self.platform = platform or PlatformInfo.from_settings(self.settings)

        self.registry = SettingsRegistry(
            store,
            storage_key=self.settings.settings_storage_key,
            clock=clock,
            platform=self.platform,
        )
        self.diagnostics = DiagnosticsManager(
            store,
            storage_key=self.settings.errors_storage_key,
            clock=clock,
            id_factory=id_factory,
            max_stored_errors=self.settings.max_stored_errors,
            persisted_error_limit=self.settings.persisted_error_limit,
            capture_stack_traces=self.settings.debug,
            policy=policy,
        )
        self._uninstall_handler: Callable[[], None] | None = None

    @classmethod
    def from_settings(cls, settings: CoreSettings | None = None, **kwargs) -> CoreContext:
        """Build a context over a FileStore rooted at ``settings.storage_dir``."""
        settings = settings or get_settings()
        return cls(FileStore(settings.storage_dir), settings=settings, **kwargs)

    async def start(
        self,
        *,
        register_builtin: bool = True,
        install_handler: bool = False,
    ) -> None:
        """Register the built-in catalogue and restore persisted state.

        Args:
            register_builtin: Register the built-in categories and settings.
            install_handler: Route unhandled loop exceptions to diagnostics.
        """
        if register_builtin:
            register_defaults(self.registry)
        restored_settings = await self.registry.load()
        restored_errors = await self.diagnostics.load()
        if install_handler:
            self._uninstall_handler = install_asyncio_handler(self.diagnostics)
        logger.info(
            "Core context started (%d settings, %d errors restored)",
            restored_settings,
            restored_errors,
        )

    async def aclose(self) -> None:
        """Flush pending diagnostics writes and release timers/handlers."""
        await self.diagnostics.flush()
        self.diagnostics.close()
        if self._uninstall_handler is not None:
            self._uninstall_handler()
            self._uninstall_handler = None

    async def __aenter__(self) -> CoreContext:
        await self.start()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()
