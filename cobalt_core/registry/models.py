"""Settings registry data model.

Definitions and categories are registered once at startup and never
change.  Values are immutable records replaced wholesale on every write.
"""

from __future__ import annotations

from enum import StrEnum
from typing import Any

from pydantic import Field, field_validator

from cobalt_core.platform import PlatformInfo
from cobalt_core.registry.rules import ValidationRule, coerce_rules
from cobalt_core.schema import WireModel

EXPORT_VERSION = "1.0"


class SettingType(StrEnum):
    """Declared value type of a setting."""

    BOOLEAN = "boolean"
    NUMBER = "number"
    STRING = "string"
    SELECT = "select"
    RANGE = "range"
    COLOR = "color"


class ValueSource(StrEnum):
    """Who wrote a setting value."""

    USER = "user"
    SYSTEM = "system"
    IMPORT = "import"


class SettingOption(WireModel):
    """One choice of a select setting."""

    label: str
    value: Any


class SettingCategory(WireModel):
    """Group of settings shown together."""

    id: str
    label: str
    description: str | None = None
    icon: str | None = None
    order: int = 0


class SettingDefinition(WireModel):
    """Immutable schema entry for one setting key."""

    key: str = Field(..., min_length=1)
    category: str
    label: str
    description: str | None = None
    type: SettingType
    default_value: Any
    validation: tuple[ValidationRule, ...] = ()
    options: tuple[SettingOption, ...] | None = None
    min: int | float | None = None
    max: int | float | None = None
    step: int | float | None = None
    dependencies: tuple[str, ...] = ()
    is_advanced: bool = False
    requires_restart: bool = False

    @field_validator("validation", mode="before")
    @classmethod
    def _wrap_callables(cls, value: Any) -> tuple[Any, ...]:
        return coerce_rules(value)

    @property
    def is_numeric(self) -> bool:
        return self.type in (SettingType.NUMBER, SettingType.RANGE)

    def option_values(self) -> list[Any]:
        return [option.value for option in self.options or ()]


class SettingValue(WireModel):
    """Current value of one setting plus provenance."""

    key: str
    value: Any
    is_default: bool
    last_modified: float
    source: ValueSource


class SettingEntry(WireModel):
    """A definition paired with its current value."""

    definition: SettingDefinition
    value: SettingValue


class SearchResult(SettingEntry):
    """A search hit with its relevance score."""

    relevance: float


class ExportMetadata(WireModel):
    app_version: str
    platform: str
    device_id: str | None = None

    @classmethod
    def from_platform(cls, platform: PlatformInfo) -> ExportMetadata:
        return cls(**platform.model_dump())


class SettingsExport(WireModel):
    """Portable snapshot of non-default setting values."""

    version: str = EXPORT_VERSION
    timestamp: float
    settings: dict[str, Any] = Field(default_factory=dict)
    metadata: ExportMetadata

    def to_wire(self) -> dict[str, Any]:
        """Dump in the camelCase wire format."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class ImportResult(WireModel):
    """Outcome of :meth:`SettingsRegistry.import_settings`."""

    imported: int = 0
    skipped: int = 0
    errors: list[str] = Field(default_factory=list)
