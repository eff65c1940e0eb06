"""Diagnostics manager.

Keeps a bounded, most-recent-first log of structured errors and a queue of
notifications derived from them, both exposed as reactive cells.  A
smaller tail of the log is persisted so it survives restarts.

Logging must never be able to crash its caller, so every public logging
path catches its own failures and reports them through the standard
``logging`` module only.  Persistence is best-effort for the same reason:
a failed write is logged at WARNING and retried on the next change or on
:meth:`DiagnosticsManager.flush`.

Mutations are synchronous and guarded by a re-entrant lock; persistence
runs as asyncio tasks on the caller's running loop, each writing the
latest snapshot.  Without a running loop, writes are deferred to flush().
"""

from __future__ import annotations

import asyncio
import inspect
import logging
import threading
import traceback
from collections import Counter
from collections.abc import Callable, Mapping
from typing import Any

from pydantic_core import to_jsonable_python

from cobalt_core.diagnostics.models import (
    AppError,
    ErrorCode,
    ErrorContext,
    ErrorExport,
    ErrorNotification,
    ErrorStats,
    Severity,
)
from cobalt_core.diagnostics.policy import NotificationPolicy
from cobalt_core.exceptions import StorageError
from cobalt_core.platform import Clock, IdFactory, random_token, system_clock
from cobalt_core.reactive import ValueCell
from cobalt_core.storage import JsonCodec, PersistentStore

logger = logging.getLogger(__name__)

DEFAULT_STORAGE_KEY = "cobalt-errors-v1"
DEFAULT_MAX_STORED_ERRORS = 1000
DEFAULT_PERSISTED_ERROR_LIMIT = 100

RECENT_WINDOW_SECONDS = 24 * 60 * 60
RECENT_ERROR_LIMIT = 10
EXPORT_ERROR_LIMIT = 100

RETRY_SOURCE = "DiagnosticsManager.retry_error"
RUN_SOURCE = "DiagnosticsManager.run"

_LOG_LEVELS: dict[Severity, int] = {
    Severity.LOW: logging.INFO,
    Severity.MEDIUM: logging.WARNING,
    Severity.HIGH: logging.ERROR,
    Severity.CRITICAL: logging.CRITICAL,
}

ContextLike = ErrorContext | Mapping[str, Any] | None


class DiagnosticsManager:
    """Structured error log with notification derivation.

    Args:
        store: Backend holding the persisted error tail.
        storage_key: Blob name for the error tail.
        clock: Source of error timestamps.
        id_factory: Random token generator for error/notification ids.
        max_stored_errors: In-memory retention bound (oldest dropped).
        persisted_error_limit: How many of the newest errors are persisted.
        capture_stack_traces: Attach the call stack to every logged error.
        policy: Notification rules.
        session_id: Identifier stamped on every error; defaults to the
            start time in milliseconds.
    """

    def __init__(
        self,
        store: PersistentStore,
        *,
        storage_key: str = DEFAULT_STORAGE_KEY,
        clock: Clock = system_clock,
        id_factory: IdFactory = random_token,
        max_stored_errors: int = DEFAULT_MAX_STORED_ERRORS,
        persisted_error_limit: int = DEFAULT_PERSISTED_ERROR_LIMIT,
        capture_stack_traces: bool = False,
        policy: NotificationPolicy | None = None,
        session_id: str | None = None,
    ) -> None:
        self._store = store
        self._storage_key = storage_key
        self._clock = clock
        self._id_factory = id_factory
        self._max_stored_errors = max_stored_errors
        self._persisted_error_limit = persisted_error_limit
        self._capture_stack_traces = capture_stack_traces
        self.policy = policy or NotificationPolicy()
        self.session_id = session_id or str(int(clock() * 1000))

        self._errors: ValueCell[tuple[AppError, ...]] = ValueCell((), name="errors")
        self._notifications: ValueCell[tuple[ErrorNotification, ...]] = ValueCell((), name="notifications")
        self._lock = threading.RLock()
        self._persist_lock = asyncio.Lock()
        self._pending_writes: set[asyncio.Task[None]] = set()
        self._dirty = False
        self._timers: dict[str, asyncio.TimerHandle] = {}
        self._retry_operations: dict[str, Callable[[], Any]] = {}
        self._codec: JsonCodec[list[AppError]] = JsonCodec(list[AppError], name="errors")

    # ─── Reads ───────────────────────────────────────────────────────────────

    @property
    def errors(self) -> tuple[AppError, ...]:
        """Current error log, newest first."""
        return self._errors.value

    @property
    def notifications(self) -> tuple[ErrorNotification, ...]:
        """Current notification queue, newest first."""
        return self._notifications.value

    def observe_errors(self) -> ValueCell[tuple[AppError, ...]]:
        return self._errors

    def observe_notifications(self) -> ValueCell[tuple[ErrorNotification, ...]]:
        return self._notifications

    def get_error(self, error_id: str) -> AppError | None:
        return next((error for error in self._errors.value if error.id == error_id), None)

    def get_stats(self) -> ErrorStats:
        """Compute statistics over the current log."""
        errors = self._errors.value
        threshold = self._clock() - RECENT_WINDOW_SECONDS

        by_source: Counter[str] = Counter(error.source for error in errors)
        by_severity: Counter[str] = Counter(str(error.severity) for error in errors)

        return ErrorStats(
            total=len(errors),
            by_source=dict(by_source),
            by_severity=dict(by_severity),
            recent_errors=[error for error in errors if error.timestamp > threshold][:RECENT_ERROR_LIMIT],
            critical_errors=[
                error for error in errors if error.severity == Severity.CRITICAL and not error.resolved
            ],
            unresolved=sum(1 for error in errors if not error.resolved),
        )

    def export_errors(self) -> str:
        """Serialize session id, stats and the newest errors as JSON."""
        export = ErrorExport(
            timestamp=self._clock(),
            session_id=self.session_id,
            stats=self.get_stats(),
            errors=list(self._errors.value[:EXPORT_ERROR_LIMIT]),
        )
        return export.model_dump_json(by_alias=True, indent=2)

    # ─── Logging ─────────────────────────────────────────────────────────────

    def log_error(
        self,
        code: str,
        message: str,
        source: str,
        severity: Severity | str = Severity.MEDIUM,
        details: Mapping[str, Any] | None = None,
        context: ContextLike = None,
    ) -> str:
        """Record an error and derive its notification.

        Never raises.

        Returns:
            The new error's id.
        """
        now = self._clock()
        error_id = f"error_{int(now * 1000)}_{self._id_factory()}"
        try:
            error = AppError(
                id=error_id,
                code=str(code),
                message=message,
                details=_jsonable(details),
                source=source,
                severity=Severity(severity),
                timestamp=now,
                session_id=self.session_id,
                stack_trace=_current_stack() if self._capture_stack_traces else None,
                context=_coerce_context(context),
            )
            with self._lock:
                self._errors.publish((error, *self._errors.value)[: self._max_stored_errors])

            logger.log(_LOG_LEVELS[error.severity], "[%s] %s (source=%s)", error.code, message, source)
            self._schedule_persist()
            self._notify(error)
        except Exception:
            logger.exception("Failed to record diagnostic %s from %s", code, source)
        return error_id

    def log_exception(self, exc: BaseException, source: str, context: ContextLike = None) -> str:
        """Record a raised exception as a high-severity JS_ERROR."""
        return self.log_error(
            ErrorCode.JS_ERROR,
            exception_message(exc),
            source,
            Severity.HIGH,
            {
                "name": type(exc).__name__,
                "stack": _format_exception(exc),
            },
            context,
        )

    def log_network_error(
        self,
        url: str,
        status: int,
        status_text: str,
        source: str,
        context: ContextLike = None,
    ) -> str:
        """Record a failed request; 5xx responses are high severity."""
        return self.log_error(
            ErrorCode.NETWORK_ERROR,
            f"Network request failed: {status} {status_text}",
            source,
            Severity.HIGH if status >= 500 else Severity.MEDIUM,
            {
                "url": url,
                "status": status,
                "status_text": status_text,
            },
            context,
        )

    def log_validation_error(
        self,
        field: str,
        value: Any,
        rule: str,
        source: str,
        context: ContextLike = None,
    ) -> str:
        """Record rejected user input at low severity."""
        return self.log_error(
            ErrorCode.VALIDATION_ERROR,
            f"Validation failed for {field}: {rule}",
            source,
            Severity.LOW,
            {
                "field": field,
                "value": value,
                "rule": rule,
            },
            context,
        )

    def log_timeout(
        self,
        operation: str,
        timeout: float,
        source: str,
        context: ContextLike = None,
    ) -> str:
        """Record an operation that exceeded its deadline."""
        return self.log_error(
            ErrorCode.TIMEOUT_ERROR,
            f"{operation} timed out after {timeout:g}s",
            source,
            Severity.MEDIUM,
            {
                "operation": operation,
                "timeout": timeout,
            },
            context,
        )

    # ─── Resolution / retry ──────────────────────────────────────────────────

    def resolve_error(self, error_id: str) -> bool:
        """Mark an error resolved.

        Idempotent: an already resolved error keeps its first
        ``resolved_at``.

        Returns:
            False if no error has that id.
        """
        now = self._clock()
        updated = self._replace_error(
            error_id,
            lambda error: error if error.resolved else error.model_copy(update={"resolved": True, "resolved_at": now}),
        )
        if updated is None:
            return False
        self._retry_operations.pop(error_id, None)
        self._schedule_persist()
        return True

    def retry_error(
        self,
        error_id: str,
        retry_fn: Callable[[], Any] | None = None,
    ) -> asyncio.Future[Any] | None:
        """Count a retry attempt and optionally run the retry.

        ``retry_fn`` may be sync or async and defaults to the operation
        that produced the error through :meth:`run`.  If it fails, the failure is
        logged as a new error; it is never fed back into this error's
        retry path.

        Returns:
            The scheduled future when ``retry_fn`` returned an awaitable.
        """
        updated = self._replace_error(
            error_id,
            lambda error: error.model_copy(update={"retry_count": error.retry_count + 1}),
        )
        if updated is None:
            return None
        self._schedule_persist()
        logger.debug("Retrying %s (attempt %d)", error_id, updated.retry_count)

        retry_fn = retry_fn or self._retry_operations.get(error_id)
        if retry_fn is None:
            return None

        try:
            result = retry_fn()
        except Exception as e:
            self.log_exception(e, RETRY_SOURCE)
            return None

        if not inspect.isawaitable(result):
            return None

        try:
            asyncio.get_running_loop()
        except RuntimeError:
            logger.warning("Retry of %s returned an awaitable outside an event loop; dropped", error_id)
            if inspect.iscoroutine(result):
                result.close()
            return None

        future = asyncio.ensure_future(result)
        future.add_done_callback(self._on_retry_done)
        return future

    def _on_retry_done(self, future: asyncio.Future[Any]) -> None:
        if future.cancelled():
            return
        exc = future.exception()
        if exc is not None:
            self.log_exception(exc, RETRY_SOURCE)

    # ─── Clearing ────────────────────────────────────────────────────────────

    def clear_errors(self) -> None:
        with self._lock:
            self._errors.publish(())
            self._retry_operations.clear()
        self._schedule_persist()

    def clear_resolved_errors(self) -> None:
        with self._lock:
            self._errors.publish(tuple(error for error in self._errors.value if not error.resolved))
            self._forget_dropped_operations()
        self._schedule_persist()

    # ─── Guarded operations ──────────────────────────────────────────────────

    async def run(
        self,
        operation: Callable[[], Any],
        source: str = RUN_SOURCE,
        context: ContextLike = None,
    ) -> Any:
        """Run ``operation`` and record its failure instead of raising.

        ``operation`` may be sync or async.  A :class:`StorageError` is
        recorded as STORAGE_ERROR, anything else as JS_ERROR.  The
        operation is remembered against the new error so that
        ``retry_error(error_id)`` (or the notification's Retry action)
        runs it again.

        Returns:
            The operation's result, or None if it failed.
        """
        try:
            result = operation()
            if inspect.isawaitable(result):
                result = await result
        except StorageError as e:
            error_id = self.log_error(
                ErrorCode.STORAGE_ERROR,
                exception_message(e),
                source,
                Severity.HIGH,
                {"name": type(e).__name__, "storage_key": e.name, "correlation_id": e.correlation_id},
                context,
            )
        except Exception as e:
            error_id = self.log_exception(e, source, context)
        else:
            return result

        with self._lock:
            self._retry_operations[error_id] = operation
            if len(self._retry_operations) > self._max_stored_errors:
                self._forget_dropped_operations()
        return None

    # ─── Notifications ───────────────────────────────────────────────────────

    def dismiss_notification(self, notification_id: str) -> None:
        timer = self._timers.pop(notification_id, None)
        if timer is not None:
            timer.cancel()
        with self._lock:
            remaining = tuple(n for n in self._notifications.value if n.id != notification_id)
            if len(remaining) != len(self._notifications.value):
                self._notifications.publish(remaining)

    def clear_notifications(self) -> None:
        self._cancel_timers()
        with self._lock:
            self._notifications.publish(())

    def _notify(self, error: AppError) -> None:
        now_ms = int(self._clock() * 1000)
        notification_id = f"notification_{now_ms}_{self._id_factory()}"

        def dismiss() -> None:
            self.resolve_error(error.id)
            self.dismiss_notification(notification_id)

        notification = self.policy.build(
            error,
            notification_id=notification_id,
            on_retry=lambda: self.retry_error(error.id),
            on_dismiss=dismiss,
        )
        with self._lock:
            self._notifications.publish((notification, *self._notifications.value))

        if notification.auto_hide and notification.duration:
            self._schedule_dismiss(notification.id, notification.duration)

    def _schedule_dismiss(self, notification_id: str, delay: float) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.debug("No running loop; notification %s stays until dismissed", notification_id)
            return
        self._timers[notification_id] = loop.call_later(delay, self.dismiss_notification, notification_id)

    def _cancel_timers(self) -> None:
        for timer in self._timers.values():
            timer.cancel()
        self._timers.clear()

    # ─── Persistence ─────────────────────────────────────────────────────────

    async def load(self) -> int:
        """Restore the persisted error tail behind anything already logged.

        Unreadable storage is treated as an empty log.

        Returns:
            Number of restored errors.
        """
        try:
            data = await self._store.get(self._storage_key)
        except Exception:
            logger.warning("Failed to read stored errors, starting empty", exc_info=True)
            return 0

        restored = self._codec.decode(data)
        if not restored:
            return 0

        with self._lock:
            known = {error.id for error in self._errors.value}
            merged = (*self._errors.value, *(error for error in restored if error.id not in known))
            self._errors.publish(merged[: self._max_stored_errors])

        logger.info("Restored %d stored errors", len(restored))
        return len(restored)

    async def flush(self) -> None:
        """Wait for scheduled writes and write any deferred changes."""
        if self._pending_writes:
            await asyncio.gather(*list(self._pending_writes), return_exceptions=True)
        if self._dirty:
            await self._persist()

    def close(self) -> None:
        """Cancel pending auto-hide timers."""
        self._cancel_timers()

    def _schedule_persist(self) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            self._dirty = True
            return
        task = loop.create_task(self._persist())
        self._pending_writes.add(task)
        task.add_done_callback(self._pending_writes.discard)

    async def _persist(self) -> None:
        async with self._persist_lock:
            self._dirty = False
            tail = list(self._errors.value[: self._persisted_error_limit])
            try:
                await self._store.set(self._storage_key, self._codec.encode(tail))
            except Exception:
                self._dirty = True
                logger.warning("Failed to persist error log", exc_info=True)

    # ─── Internals ───────────────────────────────────────────────────────────

    def _replace_error(self, error_id: str, fn: Callable[[AppError], AppError]) -> AppError | None:
        with self._lock:
            errors = self._errors.value
            for index, error in enumerate(errors):
                if error.id == error_id:
                    updated = fn(error)
                    if updated is not error:
                        self._errors.publish((*errors[:index], updated, *errors[index + 1 :]))
                    return updated
        return None

    def _forget_dropped_operations(self) -> None:
        # Caller holds self._lock
        known = {error.id for error in self._errors.value}
        for error_id in [key for key in self._retry_operations if key not in known]:
            del self._retry_operations[error_id]


def _jsonable(details: Mapping[str, Any] | None) -> dict[str, Any] | None:
    if details is None:
        return None
    return to_jsonable_python(dict(details), serialize_unknown=True)


def _coerce_context(context: ContextLike) -> ErrorContext | None:
    if context is None or isinstance(context, ErrorContext):
        return context
    return ErrorContext.model_validate(dict(context))


def _current_stack() -> str:
    # Drop the frames of log_error and this helper
    return "".join(traceback.format_stack()[:-2])


def exception_message(exc: BaseException) -> str:
    """``str(exc)``, or the exception's class name if that is empty or raises."""
    try:
        return str(exc) or type(exc).__name__
    except Exception:
        return type(exc).__name__


def _format_exception(exc: BaseException) -> str:
    try:
        return "".join(traceback.format_exception(exc))
    except Exception:
        return ""
