"""Notification derivation policy.

Turns one logged :class:`AppError` into one :class:`ErrorNotification`:

========  ======  ==============  =========
severity  type    title           duration
========  ======  ==============  =========
critical  modal   Critical Error  (stays)
high      banner  Error           10s
medium    toast   Warning         5s
low       silent  Notice          3s
========  ======  ==============  =========

Network and timeout errors get a Retry action until they've been retried
three times.  Every notification gets a Dismiss action.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from typing import Any

from cobalt_core.diagnostics.models import (
    ActionStyle,
    AppError,
    ErrorCode,
    ErrorNotification,
    NotificationAction,
    NotificationType,
    Severity,
)

_TYPES: dict[Severity, NotificationType] = {
    Severity.CRITICAL: NotificationType.MODAL,
    Severity.HIGH: NotificationType.BANNER,
    Severity.MEDIUM: NotificationType.TOAST,
    Severity.LOW: NotificationType.SILENT,
}

_TITLES: dict[Severity, str] = {
    Severity.CRITICAL: "Critical Error",
    Severity.HIGH: "Error",
    Severity.MEDIUM: "Warning",
    Severity.LOW: "Notice",
}

# User-facing text per code; other codes show the raw message
_CODE_MESSAGES: dict[str, str] = {
    ErrorCode.NETWORK_ERROR: "Network connection failed. Please check your internet connection.",
    ErrorCode.VALIDATION_ERROR: "Please check your input and try again.",
    ErrorCode.JS_ERROR: "An unexpected error occurred. The app will continue to work.",
    ErrorCode.TIMEOUT_ERROR: "The operation took too long. Please try again.",
}

DEFAULT_DURATIONS: dict[Severity, float | None] = {
    Severity.CRITICAL: None,
    Severity.HIGH: 10.0,
    Severity.MEDIUM: 5.0,
    Severity.LOW: 3.0,
}

RETRYABLE_CODES = frozenset({ErrorCode.NETWORK_ERROR, ErrorCode.TIMEOUT_ERROR})
MAX_RETRIES = 3


class NotificationPolicy:
    """Severity- and code-driven notification rules.

    Args:
        durations: Auto-hide delay in seconds per severity; None keeps
            the notification until dismissed.
        max_retries: Retry is offered while ``retry_count`` is below this.
    """

    def __init__(
        self,
        durations: Mapping[Severity, float | None] | None = None,
        max_retries: int = MAX_RETRIES,
    ) -> None:
        self.durations = {**DEFAULT_DURATIONS, **(durations or {})}
        self.max_retries = max_retries

    def type_for(self, error: AppError) -> NotificationType:
        return _TYPES.get(error.severity, NotificationType.TOAST)

    def title_for(self, error: AppError) -> str:
        return _TITLES.get(error.severity, "Error")

    def message_for(self, error: AppError) -> str:
        return _CODE_MESSAGES.get(error.code, error.message)

    def is_retryable(self, error: AppError) -> bool:
        return error.code in RETRYABLE_CODES and error.retry_count < self.max_retries

    def auto_hides(self, error: AppError) -> bool:
        return error.severity != Severity.CRITICAL

    def duration_for(self, error: AppError) -> float | None:
        if not self.auto_hides(error):
            return None
        return self.durations.get(error.severity) or None

    def build(
        self,
        error: AppError,
        *,
        notification_id: str,
        on_retry: Callable[[], Any],
        on_dismiss: Callable[[], Any],
    ) -> ErrorNotification:
        """Derive the notification for a freshly logged error."""
        actions: list[NotificationAction] = []
        if self.is_retryable(error):
            actions.append(NotificationAction(label="Retry", style=ActionStyle.DEFAULT, handler=on_retry))
        actions.append(NotificationAction(label="Dismiss", style=ActionStyle.CANCEL, handler=on_dismiss))

        return ErrorNotification(
            id=notification_id,
            error=error,
            type=self.type_for(error),
            title=self.title_for(error),
            message=self.message_for(error),
            actions=tuple(actions),
            auto_hide=self.auto_hides(error),
            duration=self.duration_for(error),
        )
