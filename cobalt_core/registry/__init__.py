"""Settings registry.

Schema-validated, reactive, persisted key/value configuration.
"""

from cobalt_core.registry.defaults import register_defaults
from cobalt_core.registry.manager import SettingsRegistry
from cobalt_core.registry.models import (
    ImportResult,
    SearchResult,
    SettingCategory,
    SettingDefinition,
    SettingEntry,
    SettingOption,
    SettingsExport,
    SettingType,
    SettingValue,
    ValueSource,
)
from cobalt_core.registry.rules import CustomRule, LengthRule, OneOfRule, PatternRule

__all__ = [
    # Registry
    "SettingsRegistry",
    "register_defaults",
    # Models
    "ImportResult",
    "SearchResult",
    "SettingCategory",
    "SettingDefinition",
    "SettingEntry",
    "SettingOption",
    "SettingType",
    "SettingValue",
    "SettingsExport",
    "ValueSource",
    # Rules
    "CustomRule",
    "LengthRule",
    "OneOfRule",
    "PatternRule",
]
