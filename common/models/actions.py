"""
Action model for Autoflow.

An action event is one observed user interaction (a click or a committed
input) on a single interface element. Action events flow from the page
observer into the live pattern detector and the durable event log, and are
later replayed verbatim by the replay engine.

This module also defines the records derived from action events:

- PersistedEvent: an action event as stored in the durable log.
- Proposal: a detected repeated sequence offered to the user.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple
from urllib.parse import urlsplit

from .fingerprints import Fingerprint


class MalformedUrlError(ValueError):
    """Raised when an action url cannot be split into hostname and path."""


class EventType(str, Enum):
    """Kind of interaction captured by the observer."""

    CLICK = "click"
    INPUT = "input"


def parse_url(url: str) -> Tuple[str, str]:
    """
    Return (hostname, pathname) for an absolute url.

    Raises:
        MalformedUrlError if the url is relative, empty, or unparsable.
    """
    try:
        parts = urlsplit(url or "")
        hostname = parts.hostname or ""
    except ValueError as exc:
        raise MalformedUrlError(f"Invalid url {url!r}: {exc}") from exc

    if not parts.scheme:
        raise MalformedUrlError(f"Invalid url {url!r}: missing scheme")
    if parts.scheme in ("http", "https") and not hostname:
        raise MalformedUrlError(f"Invalid url {url!r}: missing hostname")

    return hostname, parts.path or "/"


def hostname_or_default(url: str, default: str = "Unknown") -> str:
    """Hostname of `url`, or `default` when the url is malformed."""
    try:
        hostname, _ = parse_url(url)
    except MalformedUrlError:
        return default
    return hostname or default


@dataclass(frozen=True)
class ActionEvent:
    """
    One observed interaction.

    Attributes:
        event_type:
            CLICK or INPUT.
        fingerprint:
            Fingerprint of the target element.
        timestamp:
            Milliseconds since the epoch.
        url:
            Location of the page the interaction happened on.
        value:
            Committed value; only set for INPUT events. Password fields are
            never observed, so this never carries a password.
    """

    event_type: EventType
    fingerprint: Fingerprint
    timestamp: int
    url: str
    value: Optional[str] = None

    def same_shape(self, other: "ActionEvent") -> bool:
        """
        True when both events target the same structural path with the
        same event type. Values, urls and timestamps are not compared.
        """
        return (
            self.event_type == other.event_type
            and self.fingerprint.path == other.fingerprint.path
        )

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to the camelCase wire format."""
        data: Dict[str, Any] = {
            "eventType": self.event_type.value,
            "fingerprint": self.fingerprint.to_dict(),
            "timestamp": self.timestamp,
            "url": self.url,
        }
        if self.value is not None:
            data["value"] = self.value
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ActionEvent":
        """
        Build an ActionEvent from its wire format.

        Raises:
            ValueError (or KeyError/TypeError) if a required field is
            missing or has the wrong shape.
        """
        value = data.get("value")
        return cls(
            event_type=EventType(data["eventType"]),
            fingerprint=Fingerprint.from_dict(data["fingerprint"]),
            timestamp=int(data["timestamp"]),
            url=str(data.get("url") or ""),
            value=None if value is None else str(value),
        )


@dataclass(frozen=True)
class PersistedEvent:
    """
    Durable log record wrapping an ActionEvent.

    `data` is None when the stored payload could not be decoded; such
    records carry no timestamp and are dropped by segmentation.
    """

    id: int
    data: Optional[ActionEvent]

    @property
    def timestamp(self) -> Optional[int]:
        return self.data.timestamp if self.data is not None else None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "data": self.data.to_dict() if self.data is not None else None,
        }

    @classmethod
    def from_dict(cls, record: Dict[str, Any]) -> "PersistedEvent":
        """
        Build a PersistedEvent from a stored record.

        An undecodable payload yields `data=None` instead of an error so
        that one bad record never hides the rest of the log.
        """
        payload = record.get("data")
        data: Optional[ActionEvent] = None
        if isinstance(payload, dict):
            try:
                data = ActionEvent.from_dict(payload)
            except (KeyError, TypeError, ValueError):
                data = None
        return cls(id=int(record["id"]), data=data)


@dataclass
class Proposal:
    """
    Candidate automation built from a detected repeated sequence.

    `domain` and `path` are derived from the url of the first action.
    """

    id: int
    actions: List[ActionEvent] = field(default_factory=list)
    domain: str = ""
    path: str = "/"

    @classmethod
    def from_actions(cls, proposal_id: int, actions: List[ActionEvent]) -> "Proposal":
        """
        Build a proposal from a detected pattern.

        Raises:
            MalformedUrlError if the first action's url is malformed.
            ValueError if `actions` is empty.
        """
        if not actions:
            raise ValueError("A proposal needs at least one action")
        domain, path = parse_url(actions[0].url)
        return cls(id=proposal_id, actions=list(actions), domain=domain, path=path)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "actions": [a.to_dict() for a in self.actions],
            "domain": self.domain,
            "path": self.path,
        }
