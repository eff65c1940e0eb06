"""Reactive value container.

A :class:`ValueCell` holds the current value of some state, lets callers
read it synchronously, and notifies subscribers on every change.  Each
subscription replays the current value immediately, so a subscriber never
has to combine a read with a subscribe.

Derived views (:meth:`Observable.map`) remap the value and suppress
consecutive duplicates per subscriber, which is how the settings registry
exposes a single key out of the whole value map::

    cell = ValueCell({"a": 1, "b": 2})
    view = cell.map(lambda values: values["a"])
    sub = view.subscribe(print)      # prints 1
    cell.publish({"a": 1, "b": 3})   # nothing: "a" didn't change
    cell.publish({"a": 5, "b": 3})   # prints 5
    sub.unsubscribe()

Callbacks run synchronously, in subscription order, while the cell's
lock is held, so every subscriber observes published values in the exact
order they were published.
"""

from __future__ import annotations

import asyncio
import itertools
import logging
import operator
import threading
from collections.abc import AsyncIterator, Callable
from typing import Any, Generic, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")
U = TypeVar("U")

_UNSET: Any = object()


class Subscription:
    """Handle returned by ``subscribe``.

    ``unsubscribe()`` is idempotent.  A subscription removed while a
    publish is in flight is not called again.  Usable as a context manager.
    """

    def __init__(self, callback: Callable[[Any], None], detach: Callable[[Subscription], None]):
        self._callback = callback
        self._detach = detach
        self.active = True

    def unsubscribe(self) -> None:
        if not self.active:
            return
        self.active = False
        self._detach(self)

    def _deliver(self, value: Any) -> None:
        if not self.active:
            return
        try:
            self._callback(value)
        except Exception:
            logger.exception("Subscriber callback %r failed", self._callback)

    def __enter__(self) -> Subscription:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.unsubscribe()


class Observable(Generic[T]):
    """Read side shared by cells and derived views."""

    @property
    def value(self) -> T:
        raise NotImplementedError

    def subscribe(self, callback: Callable[[T], None]) -> Subscription:
        raise NotImplementedError

    def map(
        self,
        fn: Callable[[T], U],
        *,
        equals: Callable[[U, U], bool] = operator.eq,
    ) -> DerivedView[U]:
        """Derive a view that remaps values and drops consecutive duplicates."""
        return DerivedView(self, fn, equals=equals)

    async def stream(self, *, maxsize: int = 0) -> AsyncIterator[T]:
        """Iterate over values asynchronously, starting with the current one.

        Must be consumed on the loop that publishes.  With a bounded
        ``maxsize``, values published while the queue is full are dropped
        and logged.
        """
        queue: asyncio.Queue[T] = asyncio.Queue(maxsize=maxsize)
        subscription = self.subscribe(queue.put_nowait)
        try:
            while True:
                yield await queue.get()
        finally:
            subscription.unsubscribe()


class ValueCell(Observable[T]):
    """Mutable holder of an immutable value with ordered notification.

    Args:
        initial: The starting value.
        name: Label used in log messages.
    """

    def __init__(self, initial: T, *, name: str = "cell") -> None:
        self.name = name
        self._value = initial
        self._subscriptions: dict[int, Subscription] = {}
        self._ids = itertools.count()
        self._lock = threading.RLock()

    @property
    def value(self) -> T:
        return self._value

    @property
    def subscriber_count(self) -> int:
        return len(self._subscriptions)

    def subscribe(self, callback: Callable[[T], None]) -> Subscription:
        if not callable(callback):
            raise ValueError("Callback must be callable")

        sub_id = next(self._ids)
        subscription = Subscription(
            callback, lambda _sub: self._subscriptions.pop(sub_id, None)
        )
        with self._lock:
            self._subscriptions[sub_id] = subscription
            subscription._deliver(self._value)
        return subscription

    def publish(self, value: T) -> None:
        """Replace the current value and notify every subscriber."""
        with self._lock:
            self._value = value
            for subscription in list(self._subscriptions.values()):
                subscription._deliver(value)

    def update(self, fn: Callable[[T], T]) -> T:
        """Publish ``fn(current)`` atomically and return the new value."""
        with self._lock:
            new_value = fn(self._value)
            self.publish(new_value)
            return new_value


class DerivedView(Observable[U]):
    """Read-only projection of another observable.

    Each subscriber gets the projected current value on subscribe and is
    called again only when the projection changes.
    """

    def __init__(
        self,
        source: Observable[Any],
        fn: Callable[[Any], U],
        *,
        equals: Callable[[U, U], bool] = operator.eq,
    ) -> None:
        self._source = source
        self._fn = fn
        self._equals = equals

    @property
    def value(self) -> U:
        return self._fn(self._source.value)

    def subscribe(self, callback: Callable[[U], None]) -> Subscription:
        if not callable(callback):
            raise ValueError("Callback must be callable")

        last: list[Any] = [_UNSET]

        def on_source(source_value: Any) -> None:
            projected = self._fn(source_value)
            previous = last[0]
            if previous is not _UNSET and (previous is projected or self._equals(previous, projected)):
                return
            last[0] = projected
            callback(projected)

        return self._source.subscribe(on_source)
