"""Built-in settings catalogue.

Registers the categories and settings every app build ships with.
Hosts may register more on top before calling ``load()``.
"""

from __future__ import annotations

from cobalt_core.registry.manager import SettingsRegistry
from cobalt_core.registry.models import SettingCategory, SettingDefinition, SettingOption, SettingType

DEFAULT_CATEGORIES: tuple[SettingCategory, ...] = (
    SettingCategory(
        id="app",
        label="Application",
        description="General application settings",
        icon="settings",
        order=1,
    ),
    SettingCategory(
        id="downloads",
        label="Downloads",
        description="Download management settings",
        icon="download",
        order=2,
    ),
    SettingCategory(
        id="scanner",
        label="Network Scanner",
        description="Network scanning configuration",
        icon="search",
        order=3,
    ),
    SettingCategory(
        id="performance",
        label="Performance",
        description="Performance and optimization settings",
        icon="zap",
        order=4,
    ),
)

DEFAULT_SETTINGS: tuple[SettingDefinition, ...] = (
    SettingDefinition(
        key="app.theme",
        category="app",
        label="Theme",
        description="Choose the app theme",
        type=SettingType.SELECT,
        default_value="auto",
        options=(
            SettingOption(label="Light", value="light"),
            SettingOption(label="Dark", value="dark"),
            SettingOption(label="Auto", value="auto"),
        ),
    ),
    SettingDefinition(
        key="app.notifications",
        category="app",
        label="Enable Notifications",
        description="Show notifications for completed operations",
        type=SettingType.BOOLEAN,
        default_value=True,
    ),
    SettingDefinition(
        key="downloads.maxConcurrent",
        category="downloads",
        label="Max Concurrent Downloads",
        description="Maximum number of simultaneous downloads",
        type=SettingType.RANGE,
        default_value=3,
        min=1,
        max=10,
        step=1,
    ),
    SettingDefinition(
        key="downloads.autoResume",
        category="downloads",
        label="Auto Resume",
        description="Automatically resume downloads when connection is restored",
        type=SettingType.BOOLEAN,
        default_value=True,
    ),
    SettingDefinition(
        key="scanner.timeout",
        category="scanner",
        label="Scan Timeout (ms)",
        description="Timeout for individual port scans",
        type=SettingType.NUMBER,
        default_value=5000,
        min=1000,
        max=30000,
    ),
    SettingDefinition(
        key="scanner.concurrency",
        category="scanner",
        label="Concurrent Scans",
        description="Number of ports to scan simultaneously",
        type=SettingType.RANGE,
        default_value=50,
        min=1,
        max=200,
        step=1,
    ),
    SettingDefinition(
        key="performance.enableMonitoring",
        category="performance",
        label="Enable Performance Monitoring",
        description="Monitor app performance metrics",
        type=SettingType.BOOLEAN,
        default_value=True,
    ),
)


def register_defaults(registry: SettingsRegistry) -> None:
    """Register the built-in categories and settings."""
    for category in DEFAULT_CATEGORIES:
        registry.register_category(category)
    for definition in DEFAULT_SETTINGS:
        registry.register_setting(definition)
