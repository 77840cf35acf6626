"""Time and identifier sources injected into the coordinator."""

from __future__ import annotations

import itertools
import threading
import uuid
from datetime import datetime, timedelta, timezone
from typing import Callable, Protocol

from .models import as_utc

IdGenerator = Callable[[], str]


class Clock(Protocol):
    def now(self) -> datetime: ...


class SystemClock:
    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class ManualClock:
    """Clock that only moves when told to. Used by tests and the console's simulated time."""

    def __init__(self, start: datetime | None = None):
        self._now = as_utc(start) if start is not None else datetime.now(timezone.utc)
        self._lock = threading.Lock()

    def now(self) -> datetime:
        with self._lock:
            return self._now

    def set(self, moment: datetime) -> None:
        with self._lock:
            self._now = as_utc(moment)

    def advance(self, delta: timedelta | None = None, **kwargs: float) -> datetime:
        step = delta if delta is not None else timedelta(**kwargs)
        with self._lock:
            self._now += step
            return self._now


class CounterIdGenerator:
    """Monotonic, thread-safe booking ids such as ``bk-000001``."""

    def __init__(self, prefix: str = "bk", width: int = 6):
        self._prefix = prefix
        self._width = width
        self._counter = itertools.count(1)
        self._lock = threading.Lock()

    def __call__(self) -> str:
        with self._lock:
            value = next(self._counter)
        return f"{self._prefix}-{value:0{self._width}d}"


def uuid_id_generator() -> str:
    return uuid.uuid4().hex


def make_id_generator(strategy: str) -> IdGenerator:
    if strategy == "counter":
        return CounterIdGenerator()
    if strategy == "uuid":
        return uuid_id_generator
    raise ValueError(f"Unknown booking id strategy: {strategy!r}")
