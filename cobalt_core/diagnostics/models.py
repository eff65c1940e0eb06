"""Diagnostics data model.

Errors are immutable records; resolving or retrying one replaces the
stored record with an updated copy.  Notifications are derived from
errors and never persisted.
"""

from __future__ import annotations

from collections.abc import Callable
from enum import StrEnum
from typing import Any

from pydantic import ConfigDict, Field

from cobalt_core.schema import WireModel


class Severity(StrEnum):
    """Severity tier, orthogonal to the error code."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class ErrorCode(StrEnum):
    """Well-known error codes.

    ``code`` on :class:`AppError` is a free string; hosts may log their
    own codes alongside these.
    """

    JS_ERROR = "JS_ERROR"  # raised exception captured by log_exception
    NETWORK_ERROR = "NETWORK_ERROR"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    TIMEOUT_ERROR = "TIMEOUT_ERROR"
    UNHANDLED_PROMISE_REJECTION = "UNHANDLED_PROMISE_REJECTION"  # unhandled task exception
    STORAGE_ERROR = "STORAGE_ERROR"


class NotificationType(StrEnum):
    """Presentation channel of a notification."""

    TOAST = "toast"
    MODAL = "modal"
    BANNER = "banner"
    SILENT = "silent"


class ActionStyle(StrEnum):
    DEFAULT = "default"
    DESTRUCTIVE = "destructive"
    CANCEL = "cancel"


class ErrorContext(WireModel):
    """Where the error happened, as far as the UI knows."""

    model_config = ConfigDict(extra="allow")

    screen: str | None = None
    action: str | None = None
    user_agent: str | None = None
    network_state: str | None = None


class AppError(WireModel):
    """One structured failure record."""

    id: str
    code: str
    message: str
    details: dict[str, Any] | None = None
    source: str
    severity: Severity
    timestamp: float
    session_id: str
    stack_trace: str | None = None
    context: ErrorContext | None = None
    resolved: bool = False
    resolved_at: float | None = None
    retry_count: int = 0


class ErrorStats(WireModel):
    """Rolling statistics over the in-memory error log."""

    total: int
    by_source: dict[str, int]
    by_severity: dict[str, int]
    recent_errors: list[AppError]
    critical_errors: list[AppError]
    unresolved: int


class NotificationAction(WireModel):
    """Button offered with a notification."""

    label: str
    style: ActionStyle = ActionStyle.DEFAULT
    handler: Callable[[], Any] = Field(exclude=True, repr=False)

    def invoke(self) -> Any:
        return self.handler()


class ErrorNotification(WireModel):
    """Policy-derived presentation instruction for an error."""

    id: str
    error: AppError
    type: NotificationType
    title: str
    message: str
    actions: tuple[NotificationAction, ...] = ()
    auto_hide: bool = True
    duration: float | None = None

    def action(self, label: str) -> NotificationAction | None:
        """Find an action by label."""
        return next((action for action in self.actions if action.label == label), None)


class ErrorExport(WireModel):
    """Read-only diagnostic dump."""

    timestamp: float
    session_id: str
    stats: ErrorStats
    errors: list[AppError]
