"""
Cross-context message envelopes.

Three structured messages travel between the execution contexts:

- "new-action": observer (page) -> detector, fire-and-forget.
- "execute-workflow": control -> page, request/acknowledgement.
- "refresh-dashboard": detector -> control, fire-and-forget hint that the
  durable log changed.

Messages are plain dicts on the wire; these dataclasses give them a typed
shape at both ends.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Union

from .actions import ActionEvent

NEW_ACTION = "new-action"
EXECUTE_WORKFLOW = "execute-workflow"
REFRESH_DASHBOARD = "refresh-dashboard"


class MessageError(ValueError):
    """Raised when a payload is not a recognized message."""


@dataclass(frozen=True)
class NewActionMessage:
    data: ActionEvent

    type: str = NEW_ACTION

    def to_dict(self) -> Dict[str, Any]:
        return {"type": self.type, "data": self.data.to_dict()}


@dataclass(frozen=True)
class ExecuteWorkflowMessage:
    actions: List[ActionEvent] = field(default_factory=list)

    type: str = EXECUTE_WORKFLOW

    def to_dict(self) -> Dict[str, Any]:
        return {"type": self.type, "actions": [a.to_dict() for a in self.actions]}


@dataclass(frozen=True)
class RefreshDashboardMessage:
    type: str = REFRESH_DASHBOARD

    def to_dict(self) -> Dict[str, Any]:
        return {"type": self.type}


Message = Union[NewActionMessage, ExecuteWorkflowMessage, RefreshDashboardMessage]


def parse_message(payload: Dict[str, Any]) -> Message:
    """
    Decode a wire payload into a typed message.

    Raises:
        MessageError for unknown types or malformed bodies.
    """
    if not isinstance(payload, dict):
        raise MessageError("Message payload must be an object")

    msg_type = payload.get("type")
    try:
        if msg_type == NEW_ACTION:
            return NewActionMessage(data=ActionEvent.from_dict(payload["data"]))
        if msg_type == EXECUTE_WORKFLOW:
            raw_actions = payload.get("actions") or []
            if not isinstance(raw_actions, list):
                raise MessageError("'actions' must be a list")
            return ExecuteWorkflowMessage(
                actions=[ActionEvent.from_dict(a) for a in raw_actions]
            )
        if msg_type == REFRESH_DASHBOARD:
            return RefreshDashboardMessage()
    except (KeyError, TypeError, ValueError) as exc:
        if isinstance(exc, MessageError):
            raise
        raise MessageError(f"Malformed {msg_type!r} message: {exc}") from exc

    raise MessageError(f"Unknown message type: {msg_type!r}")
