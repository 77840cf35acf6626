"""FIFO waitlist of booking ids for a single conference."""

from __future__ import annotations

from collections import deque
from typing import Callable, Iterator


class WaitlistQueue:
    """Ordered queue of waitlisted booking ids.

    Rebuilding operations (``remove_if`` and ``move_to_back``) keep the relative
    order of every id they do not touch.
    """

    def __init__(self) -> None:
        self._ids: deque[str] = deque()

    def __len__(self) -> int:
        return len(self._ids)

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._ids))

    def __contains__(self, booking_id: object) -> bool:
        return booking_id in self._ids

    def push_back(self, booking_id: str) -> None:
        self._ids.append(booking_id)

    def peek_front(self) -> str | None:
        return self._ids[0] if self._ids else None

    def pop_front(self) -> str | None:
        return self._ids.popleft() if self._ids else None

    def remove_if(self, predicate: Callable[[str], bool]) -> list[str]:
        kept: deque[str] = deque()
        removed: list[str] = []
        for booking_id in self._ids:
            if predicate(booking_id):
                removed.append(booking_id)
            else:
                kept.append(booking_id)
        self._ids = kept
        return removed

    def move_to_back(self, booking_id: str) -> bool:
        if not self.remove_if(lambda current: current == booking_id):
            return False
        self._ids.append(booking_id)
        return True

    def snapshot(self) -> list[str]:
        return list(self._ids)
