"""
Repeated-sequence detection for Autoflow.

The detector keeps a bounded history of recent actions. After every new
action it takes the most recent K actions as a candidate pattern and
slides a window of size K over the whole history, counting the windows
whose actions have the same structural path and event type as the
candidate at every offset. Values, urls and timestamps are ignored: the
question is "has this shape repeated enough", not exact replay.

Overlapping windows are all counted, and the candidate's own trailing
window always counts as one match. When the count reaches the threshold
the candidate becomes the pending proposal.
"""

from __future__ import annotations

import logging
import time
from typing import Callable, List, Optional

from common.config import DetectionConfig
from common.models.actions import ActionEvent, MalformedUrlError, Proposal
from ledger.storage.proposal_store import PendingIndicator, ProposalSlot
from .history import HistoryBuffer

LOG = logging.getLogger(__name__)

Clock = Callable[[], int]


def _now_ms() -> int:
    return int(time.time() * 1000)


def count_matches(history: List[ActionEvent], pattern: List[ActionEvent]) -> int:
    """
    Number of windows in `history` with the same shape as `pattern`.

    Windows start at every index from 0 to len(history) - len(pattern)
    inclusive and may overlap.
    """
    k = len(pattern)
    if k == 0 or len(history) < k:
        return 0

    matches = 0
    for start in range(len(history) - k + 1):
        if all(history[start + j].same_shape(pattern[j]) for j in range(k)):
            matches += 1
    return matches


class PatternDetector:
    """
    Owner of the history buffer and writer of the pending proposal.

    Typical usage from the capture pipeline:

        detector = PatternDetector(slot=ProposalSlot(), indicator=BadgeIndicator())
        detector.record(action)   # once per observed interaction
    """

    def __init__(
        self,
        *,
        slot: ProposalSlot,
        indicator: Optional[PendingIndicator] = None,
        config: Optional[DetectionConfig] = None,
        clock: Optional[Clock] = None,
    ) -> None:
        self._config = config or DetectionConfig()
        self._config.validate()
        self._history = HistoryBuffer(self._config.history_capacity)
        self._slot = slot
        self._indicator = indicator
        self._clock = clock or _now_ms

    @property
    def history(self) -> HistoryBuffer:
        return self._history

    @property
    def config(self) -> DetectionConfig:
        return self._config

    def record(self, event: ActionEvent) -> Optional[Proposal]:
        """
        Append `event` to the history and run detection.

        Returns:
            The proposal that was emitted, or None.
        """
        self._history.append(event)
        return self._analyze()

    def _analyze(self) -> Optional[Proposal]:
        k = self._config.pattern_length
        if len(self._history) < 2 * k:
            return None

        history = self._history.snapshot()
        candidate = history[-k:]
        matches = count_matches(history, candidate)
        LOG.debug("Candidate pattern matched %d window(s)", matches)

        if matches < self._config.repeat_threshold:
            return None

        try:
            proposal = Proposal.from_actions(self._clock(), candidate)
        except MalformedUrlError as exc:
            LOG.warning("Pattern detected but proposal skipped: %s", exc)
            return None

        LOG.info(
            "Pattern detected on %s%s (%d matches)",
            proposal.domain,
            proposal.path,
            matches,
        )
        self._slot.set(proposal)
        if self._indicator is not None:
            self._indicator.show_pending()
        return proposal
