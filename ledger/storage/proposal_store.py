"""
Pending-proposal storage for Autoflow.

At most one proposal is pending at any time. The slot is a single-value
register: every detection overwrites it (last write wins, no merge). The
presentation layer reads it; the detector only writes it.

A PendingIndicator makes the pending state visible to the user. The
browser host shows it as a badge on the extension icon; BadgeIndicator is
the in-process reference implementation.
"""

from __future__ import annotations

import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional

from common.models.actions import Proposal

PENDING_BADGE_TEXT = "!"
PENDING_BADGE_COLOR = "#00FF00"


class ProposalSlot:
    """Thread-safe single-slot store for the pending proposal."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._proposal: Optional[Proposal] = None

    def set(self, proposal: Proposal) -> None:
        """Store `proposal`, replacing any pending one."""
        with self._lock:
            self._proposal = proposal

    def get(self) -> Optional[Proposal]:
        with self._lock:
            return self._proposal

    def clear(self) -> Optional[Proposal]:
        """Remove and return the pending proposal, if any."""
        with self._lock:
            proposal, self._proposal = self._proposal, None
            return proposal


class PendingIndicator(ABC):
    """Visible marker telling the user a proposal is waiting."""

    @abstractmethod
    def show_pending(self) -> None:
        raise NotImplementedError

    @abstractmethod
    def clear(self) -> None:
        raise NotImplementedError


@dataclass
class BadgeIndicator(PendingIndicator):
    """
    Badge-style indicator: a short text on a coloured background.

    `text` is empty while nothing is pending.
    """

    text: str = ""
    color: Optional[str] = None

    def show_pending(self) -> None:
        self.text = PENDING_BADGE_TEXT
        self.color = PENDING_BADGE_COLOR

    def clear(self) -> None:
        self.text = ""
        self.color = None

    @property
    def is_pending(self) -> bool:
        return bool(self.text)
