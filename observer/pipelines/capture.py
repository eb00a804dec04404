"""
Capture pipeline for Autoflow.

This module wires the detector context together:

- A NotificationChannel carrying "new-action" messages from the pages.
- The durable EventLog (replay path).
- The PatternDetector (live detection path).

Every observed action is persisted and then fed to the detector; the two
paths are independent, so a storage failure does not stop detection and
vice versa. After each new action a "refresh-dashboard" hint is published
on the optional refresh channel.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Optional

from common.channels import NotificationChannel
from common.config import DetectionConfig
from common.models.messages import Message, NewActionMessage, RefreshDashboardMessage
from ledger.storage.event_log import EventLog, EventLogError
from ledger.storage.proposal_store import BadgeIndicator, PendingIndicator, ProposalSlot
from ..detection.pattern_detector import PatternDetector

LOG = logging.getLogger(__name__)


@dataclass
class CapturePipeline:
    """
    Receiver of observed actions in the detector context.

    Typical usage:

        pipeline = CapturePipeline.with_defaults(log=JsonLinesEventLog(path))
        pipeline.attach(observer_channel)
    """

    log: EventLog
    detector: PatternDetector
    refresh_channel: Optional[NotificationChannel] = None
    received: int = field(default=0, init=False)

    @classmethod
    def with_defaults(
        cls,
        log: EventLog,
        *,
        slot: Optional[ProposalSlot] = None,
        indicator: Optional[PendingIndicator] = None,
        config: Optional[DetectionConfig] = None,
        refresh_channel: Optional[NotificationChannel] = None,
    ) -> "CapturePipeline":
        """Wire a default ProposalSlot, BadgeIndicator and PatternDetector."""
        detector = PatternDetector(
            slot=slot or ProposalSlot(),
            indicator=indicator or BadgeIndicator(),
            config=config,
        )
        return cls(log=log, detector=detector, refresh_channel=refresh_channel)

    def attach(self, channel: NotificationChannel) -> None:
        channel.subscribe(self.handle_message)

    def handle_message(self, message: Message) -> None:
        if not isinstance(message, NewActionMessage):
            return

        self.received += 1
        event = message.data

        try:
            self.log.append(event)
        except EventLogError as exc:
            LOG.error("Failed to persist action: %s", exc)

        self.detector.record(event)

        if self.refresh_channel is not None:
            self.refresh_channel.send(RefreshDashboardMessage())
