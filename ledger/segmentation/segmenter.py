"""
Workflow segmentation for Autoflow.

Partitions the durable event log into workflows by temporal gaps: two
consecutive events (in timestamp order) belong to the same workflow unless
they are more than `gap_ms` apart. A gap of exactly `gap_ms` does not
split.

Input order is not assumed; events are stable-sorted by timestamp first,
so equal timestamps keep their log order. Events without a timestamp are
dropped.
"""

from __future__ import annotations

from typing import Iterable, List

from common.config import SegmentationConfig
from common.models.actions import PersistedEvent
from common.models.workflow import Workflow

DEFAULT_GAP_MS = SegmentationConfig().gap_ms


def segment(
    events: Iterable[PersistedEvent],
    gap_ms: int = DEFAULT_GAP_MS,
) -> List[Workflow]:
    """
    Group `events` into chronologically ordered workflows.

    Pure function: the input is not modified.
    """
    valid = [e for e in events if e.timestamp is not None]
    valid.sort(key=lambda e: e.timestamp)

    workflows: List[Workflow] = []
    current: List[PersistedEvent] = []

    for event in valid:
        if current and event.timestamp - current[-1].timestamp > gap_ms:
            workflows.append(Workflow(events=current))
            current = []
        current.append(event)

    if current:
        workflows.append(Workflow(events=current))
    return workflows
