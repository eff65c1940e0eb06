"""Diagnostics manager.

Structured error log, rolling statistics, and severity-driven user
notifications.
"""

from cobalt_core.diagnostics.handlers import install_asyncio_handler
from cobalt_core.diagnostics.manager import DiagnosticsManager
from cobalt_core.diagnostics.models import (
    ActionStyle,
    AppError,
    ErrorCode,
    ErrorContext,
    ErrorNotification,
    ErrorStats,
    NotificationAction,
    NotificationType,
    Severity,
)
from cobalt_core.diagnostics.policy import NotificationPolicy

__all__ = [
    # Manager
    "DiagnosticsManager",
    "NotificationPolicy",
    "install_asyncio_handler",
    # Models
    "ActionStyle",
    "AppError",
    "ErrorCode",
    "ErrorContext",
    "ErrorNotification",
    "ErrorStats",
    "NotificationAction",
    "NotificationType",
    "Severity",
]
