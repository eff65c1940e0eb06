"""Write-time validation pipeline for setting values.

Checks run in a fixed order and stop at the first failure:

1. the definition's validation rules (:class:`SettingValidationError`)
2. the declared type (:class:`SettingTypeError`)
3. min/max bounds for number and range settings (:class:`SettingRangeError`)
4. option membership for select settings with options
   (:class:`SettingValidationError`)
"""

from __future__ import annotations

import math
from typing import Any

from cobalt_core.exceptions import SettingRangeError, SettingTypeError, SettingValidationError
from cobalt_core.registry.models import SettingDefinition, SettingType

_STRING_TYPES = (SettingType.STRING, SettingType.SELECT, SettingType.COLOR)


def matches_type(value: Any, setting_type: SettingType) -> bool:
    """Check a value's runtime type against a declared setting type."""
    if setting_type == SettingType.BOOLEAN:
        return isinstance(value, bool)
    if setting_type in (SettingType.NUMBER, SettingType.RANGE):
        # bool is an int subclass but never a number setting
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            return False
        return not (isinstance(value, float) and math.isnan(value))
    if setting_type in _STRING_TYPES:
        return isinstance(value, str)
    return True


def validate_value(definition: SettingDefinition, value: Any) -> None:
    """Run the validation pipeline, raising on the first failure."""
    key = definition.key

    for rule in definition.validation:
        reason = rule.check(value)
        if reason:
            raise SettingValidationError(
                f"Invalid value for {key}: {reason}", key=key, reason=reason
            )

    if not matches_type(value, definition.type):
        raise SettingTypeError(
            f"Invalid type for {key}: expected {definition.type}",
            key=key,
            expected=str(definition.type),
        )

    if definition.is_numeric:
        if definition.min is not None and value < definition.min:
            raise SettingRangeError(
                f"Value for {key} must be at least {definition.min}",
                key=key,
                bound=definition.min,
            )
        if definition.max is not None and value > definition.max:
            raise SettingRangeError(
                f"Value for {key} must be at most {definition.max}",
                key=key,
                bound=definition.max,
            )

    if definition.type == SettingType.SELECT and definition.options:
        allowed = definition.option_values()
        if value not in allowed:
            reason = f"must be one of {', '.join(map(str, allowed))}"
            raise SettingValidationError(
                f"Invalid value for {key}: {reason}", key=key, reason=reason
            )
