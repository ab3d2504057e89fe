from __future__ import annotations

import logging
from typing import Callable, Generic, List, Protocol, TypeVar


logger = logging.getLogger(__name__)

T = TypeVar("T")

Subscriber = Callable[[T, T], None]
Unsubscribe = Callable[[], None]


class ObservableCell(Protocol[T]):
    def get(self) -> T:
        ...

    def set(self, value: T) -> None:
        ...

    def subscribe(self, fn: Subscriber[T]) -> Unsubscribe:
        ...


class Cell(Generic[T]):
    """
    Single-value holder that notifies subscribers synchronously on write.

    - Every `set` call notifies each subscriber exactly once with `(old, new)`,
      even when the value is unchanged.
    - Subscribers run in subscription order on the writer's thread. One that
      raises is logged and skipped; the rest still run.
    """

    def __init__(self, value: T) -> None:
        self._value = value
        self._subscribers: List[Subscriber[T]] = []

    @property
    def value(self) -> T:
        return self._value

    def get(self) -> T:
        return self._value

    def set(self, value: T) -> None:
        old = self._value
        self._value = value
        for fn in list(self._subscribers):
            try:
                fn(old, value)
            except Exception:
                logger.exception("Cell subscriber %r raised an exception.", fn)

    def subscribe(self, fn: Subscriber[T]) -> Unsubscribe:
        self._subscribers.append(fn)

        def _unsub() -> None:
            try:
                self._subscribers.remove(fn)
            except ValueError:
                pass

        return _unsub
