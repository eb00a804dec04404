"""
Workflow model for Autoflow.

A workflow is a contiguous, chronologically ordered slice of the durable
event log, produced on demand by `ledger.segmentation.segmenter`. It is
never persisted: every read of the log re-derives the workflows.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterator, List, Optional

from .actions import ActionEvent, PersistedEvent, hostname_or_default


@dataclass
class Workflow:
    """
    Ordered group of persisted events separated from its neighbours by a
    gap longer than the segmentation threshold.
    """

    events: List[PersistedEvent] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.events)

    def __iter__(self) -> Iterator[PersistedEvent]:
        return iter(self.events)

    @property
    def actions(self) -> List[ActionEvent]:
        """Action events in order, as handed to the replay engine."""
        return [e.data for e in self.events if e.data is not None]

    @property
    def start(self) -> Optional[int]:
        """Timestamp of the first event, in milliseconds."""
        return self.events[0].timestamp if self.events else None

    @property
    def end(self) -> Optional[int]:
        """Timestamp of the last event, in milliseconds."""
        return self.events[-1].timestamp if self.events else None

    @property
    def domain(self) -> str:
        """Hostname of the first action, or "Unknown"."""
        actions = self.actions
        if not actions:
            return "Unknown"
        return hostname_or_default(actions[0].url)
