"""Subscriber list for index update notifications."""

from __future__ import annotations

import logging
from typing import Callable, Generic, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class UpdateChannel(Generic[T]):
    """Broadcast a value to every subscriber, in subscription order.

    A failing subscriber is logged and skipped; it never prevents the
    remaining subscribers from being called or the publisher from continuing.
    """

    def __init__(self) -> None:
        self._subscribers: list[Callable[[T], None]] = []

    def subscribe(self, callback: Callable[[T], None]) -> Callable[[], None]:
        """Register *callback*; returns a function that unregisters it."""
        self._subscribers.append(callback)

        def _unsubscribe() -> None:
            try:
                self._subscribers.remove(callback)
            except ValueError:
                pass

        return _unsubscribe

    def publish(self, value: T) -> None:
        for callback in list(self._subscribers):
            try:
                callback(value)
            except Exception:
                logger.exception("Index update subscriber failed: %r", callback)

    def __len__(self) -> int:
        return len(self._subscribers)
