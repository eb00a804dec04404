"""
Bounded history of recent actions.

The buffer is an explicit ring buffer owned by a single PatternDetector.
Appending past capacity evicts the oldest action.
"""

from __future__ import annotations

from collections import deque
from typing import Deque, Iterator, List

from common.models.actions import ActionEvent

DEFAULT_CAPACITY = 50


class HistoryBuffer:
    """Insertion-ordered, bounded sequence of ActionEvent."""

    def __init__(self, capacity: int = DEFAULT_CAPACITY) -> None:
        if capacity < 1:
            raise ValueError("History capacity must be >= 1")
        self._items: Deque[ActionEvent] = deque(maxlen=capacity)

    @property
    def capacity(self) -> int:
        return self._items.maxlen or 0

    def append(self, event: ActionEvent) -> None:
        self._items.append(event)

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[ActionEvent]:
        return iter(self._items)

    def snapshot(self) -> List[ActionEvent]:
        """Copy of the buffer contents, oldest first."""
        return list(self._items)

    def tail(self, count: int) -> List[ActionEvent]:
        """The `count` most recent actions, oldest first."""
        if count <= 0:
            return []
        return list(self._items)[-count:]
