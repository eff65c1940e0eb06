"""Global error capture.

Routes exceptions nobody handled (a task that failed without being
awaited, a callback that raised) into the diagnostics manager as
``UNHANDLED_PROMISE_REJECTION`` errors.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from typing import Any

from cobalt_core.diagnostics.manager import DiagnosticsManager, exception_message
from cobalt_core.diagnostics.models import ErrorCode, Severity

logger = logging.getLogger(__name__)

GLOBAL_SOURCE = "GlobalErrorHandler"


def install_asyncio_handler(
    manager: DiagnosticsManager,
    loop: asyncio.AbstractEventLoop | None = None,
) -> Callable[[], None]:
    """Log unhandled loop exceptions through ``manager``.

    The previously installed handler (or the loop's default handler) still
    runs after the error is recorded.

    Args:
        manager: Where to record the errors.
        loop: Loop to hook; defaults to the running loop.

    Returns:
        A function that restores the previous handler.
    """
    loop = loop or asyncio.get_running_loop()
    previous = loop.get_exception_handler()

    def handle(event_loop: asyncio.AbstractEventLoop, context: dict[str, Any]) -> None:
        exc = context.get("exception")
        message = exception_message(exc) if exc is not None else context.get("message")
        message = message or "Unhandled promise rejection"
        manager.log_error(
            ErrorCode.UNHANDLED_PROMISE_REJECTION,
            message,
            GLOBAL_SOURCE,
            Severity.HIGH,
            {
                "reason": _safe_repr(exc) if exc is not None else None,
                "context_message": context.get("message"),
            },
        )
        if previous is not None:
            previous(event_loop, context)
        else:
            event_loop.default_exception_handler(context)

    loop.set_exception_handler(handle)
    logger.debug("Installed diagnostics exception handler on %r", loop)

    def uninstall() -> None:
        loop.set_exception_handler(previous)

    return uninstall


def _safe_repr(exc: BaseException) -> str:
    try:
        return repr(exc)
    except Exception:
        return f"<{type(exc).__name__}>"
