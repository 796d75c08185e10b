"""Shared reference counter for active spans and their continuations."""

from __future__ import annotations

import threading


class RefCount:
    """
    Counter shared by one adopted span and every continuation forked from it.

    ``increment``/``decrement`` return the new value; exactly one
    ``decrement`` call observes zero.
    """

    def __init__(self, initial: int = 1) -> None:
        self._value = initial
        self._lock = threading.Lock()

    def increment(self) -> int:
        with self._lock:
            self._value += 1
            return self._value

    def decrement(self) -> int:
        with self._lock:
            self._value -= 1
            return self._value

    @property
    def value(self) -> int:
        with self._lock:
            return self._value

    def __repr__(self) -> str:
        return f"RefCount({self.value})"
