"""Cobalt exception hierarchy.

Base exceptions for the settings registry and the storage layer, with
correlation ID support.

Usage:
    from cobalt_core.exceptions import SettingsError, StorageError

    try:
        await registry.set("scanner.timeout", 500)
    except SettingsError as e:
        logger.warning("Rejected setting", extra={"correlation_id": e.correlation_id})
"""

import uuid


class CobaltError(Exception):
    """Base exception for all Cobalt core errors.

    Carries a correlation_id for tracing errors across layers.
    """

    def __init__(self, message: str, *, correlation_id: str | None = None):
        self.correlation_id = correlation_id or str(uuid.uuid4())
        super().__init__(message)


class SettingsError(CobaltError):
    """Errors from settings registry operations.

    Every settings error names the key it was raised for.
    """

    def __init__(self, message: str, *, key: str, **kwargs):
        self.key = key
        super().__init__(message, **kwargs)


class UnregisteredKeyError(SettingsError, KeyError):
    """An operation referenced a key with no registered definition."""

    def __init__(self, key: str, **kwargs):
        super().__init__(f"Setting {key} is not registered", key=key, **kwargs)

    def __str__(self) -> str:
        # KeyError would otherwise repr() the message
        return str(self.args[0])


class SettingValidationError(SettingsError, ValueError):
    """A validation rule rejected a value."""

    def __init__(self, message: str, *, key: str, reason: str | None = None, **kwargs):
        self.reason = reason or message
        super().__init__(message, key=key, **kwargs)


class SettingTypeError(SettingsError, TypeError):
    """A value's runtime type does not match the declared setting type."""

    def __init__(self, message: str, *, key: str, expected: str, **kwargs):
        self.expected = expected
        super().__init__(message, key=key, **kwargs)


class SettingRangeError(SettingsError, ValueError):
    """A numeric value fell outside the declared min/max bounds."""

    def __init__(self, message: str, *, key: str, bound: float, **kwargs):
        self.bound = bound
        super().__init__(message, key=key, **kwargs)


class StorageError(CobaltError):
    """Errors from persistent store I/O."""

    def __init__(self, message: str, *, name: str | None = None, **kwargs):
        self.name = name
        super().__init__(message, **kwargs)
