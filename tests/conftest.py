"""
Shared test doubles: deterministic random source, manual clock and a lock
that lets a test run code at the exact moment a critical section ends.
"""

import random
import threading
from typing import Callable, Optional

import pytest


class FixedRandom(random.Random):
    """
    random() always returns ``value``.

    uniform(a, b) is derived from random(), so with the default 0.5 every
    symmetric noise draw is exactly zero.
    """

    def __init__(self, value: float = 0.5):
        super().__init__(0)
        self.value = value

    def random(self) -> float:
        return self.value


class FakeClock:
    """Monotonic clock advanced by hand."""

    def __init__(self, start: float = 0.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class InterleavingLock:
    """
    Re-entrant lock that runs ``after_release`` once, right after the
    outermost release. Used to slip a command in between two steps that
    another thread would otherwise run back to back.
    """

    def __init__(self):
        self._lock = threading.RLock()
        self._depth = 0
        self.after_release: Optional[Callable[[], None]] = None

    def __enter__(self):
        self._lock.acquire()
        self._depth += 1
        return self

    def __exit__(self, *exc_info):
        self._depth -= 1
        self._lock.release()
        if self._depth == 0 and self.after_release is not None:
            callback, self.after_release = self.after_release, None
            callback()
        return False


@pytest.fixture
def fixed_rng() -> FixedRandom:
    return FixedRandom()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()
