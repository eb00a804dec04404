"""
Replay package.

This package contains the building blocks for re-enacting recorded
workflows:

- Page capabilities (ElementLocator, PageActuator) and their DOM
  snapshot implementation.
- The replay engine with its step state machine and outcomes.
- The page-context agent answering "execute-workflow" requests.
- Tab targeting and the control-context workflow runner.

It does NOT render anything; presentation layers consume RunStatus and
ReplayOutcome objects.
"""

from .locator import ElementLocator, PageActuator, SnapshotPage
from .engine import (
    ActionDispatchError,
    CancellationToken,
    ElementLookupError,
    ElementResolutionTimeout,
    ReplayCancelled,
    ReplayEngine,
    ReplayError,
    ReplayOutcome,
    ReplayStatus,
    StepState,
)
from .page_agent import LOST_TRACK_MESSAGE, PageAgent
from .tabs import InMemoryTabRegistry, Tab, TabRegistry, TabTargeter
from .control import RunStatus, WorkflowRunner

__all__ = [
    # locator
    "ElementLocator",
    "PageActuator",
    "SnapshotPage",
    # engine
    "ActionDispatchError",
    "CancellationToken",
    "ElementLookupError",
    "ElementResolutionTimeout",
    "ReplayCancelled",
    "ReplayEngine",
    "ReplayError",
    "ReplayOutcome",
    "ReplayStatus",
    "StepState",
    # page agent
    "LOST_TRACK_MESSAGE",
    "PageAgent",
    # tabs
    "InMemoryTabRegistry",
    "Tab",
    "TabRegistry",
    "TabTargeter",
    # control
    "RunStatus",
    "WorkflowRunner",
]
