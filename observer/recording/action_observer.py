"""
Page-side action observer for Autoflow.

`ActionObserver` is the listener a page context installs for clicks and
committed input changes. For each interaction it:

- Skips password fields entirely; their values never leave the page.
- Fingerprints the target element.
- Builds an ActionEvent stamped with the page url and the current time.
- Sends a "new-action" notification to the detector context.

It does not detect patterns or persist anything itself; see
`observer.pipelines.capture` for the receiving side.
"""

from __future__ import annotations

import logging
import time
from typing import Callable, Optional

from common.channels import NotificationChannel
from common.models.actions import ActionEvent, EventType
from common.models.messages import NewActionMessage
from observer.core.fingerprint_engine import generate_fingerprint
from observer.drivers.web.dom_adapter import DOMSnapshotNode

LOG = logging.getLogger(__name__)

UrlProvider = Callable[[], str]
Clock = Callable[[], int]


def _now_ms() -> int:
    return int(time.time() * 1000)


class ActionObserver:
    """
    Turn raw page interactions into "new-action" notifications.

    Args:
        channel: Notification channel towards the detector context.
        url_provider: Callable returning the page's current location.
        clock: Millisecond clock; defaults to wall time.
    """

    def __init__(
        self,
        channel: NotificationChannel,
        url_provider: UrlProvider,
        *,
        clock: Optional[Clock] = None,
    ) -> None:
        self._channel = channel
        self._url_provider = url_provider
        self._clock = clock or _now_ms
        self._recording = True

    # ------------------------------------------------------------------ #
    # Recording switch
    # ------------------------------------------------------------------ #

    @property
    def recording(self) -> bool:
        return self._recording

    def pause(self) -> None:
        self._recording = False

    def resume(self) -> None:
        self._recording = True

    # ------------------------------------------------------------------ #
    # Listeners
    # ------------------------------------------------------------------ #

    def handle_click(self, target: DOMSnapshotNode) -> Optional[ActionEvent]:
        """Listener for `click`. Returns the emitted event, if any."""
        return self._emit(EventType.CLICK, target)

    def handle_change(self, target: DOMSnapshotNode) -> Optional[ActionEvent]:
        """Listener for `change`; records the committed value."""
        return self._emit(EventType.INPUT, target, value=target.value)

    def _emit(
        self,
        event_type: EventType,
        target: DOMSnapshotNode,
        *,
        value: Optional[str] = None,
    ) -> Optional[ActionEvent]:
        if not self._recording or target.input_type == "password":
            return None

        event = ActionEvent(
            event_type=event_type,
            fingerprint=generate_fingerprint(target),
            timestamp=self._clock(),
            url=self._url_provider(),
            value=value,
        )
        LOG.debug("Observed %s on %s", event_type.value, event.fingerprint.css_path)
        self._channel.send(NewActionMessage(data=event))
        return event
