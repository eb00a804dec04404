"""
In-process message channels between Autoflow execution contexts.

Two channel kinds are provided:

- NotificationChannel: one-way, fire-and-forget delivery to every
  subscriber (observer -> detector feed, refresh hints).
- RequestChannel: request/acknowledgement delivery to the single listener
  registered for a target (control -> page replay dispatch).

Both deliver each message at most once and never retry. A host that runs
the contexts in separate processes can replace these with a real
transport while keeping the same method names.
"""

from __future__ import annotations

import inspect
import logging
import threading
from typing import Any, Awaitable, Callable, Dict, List, Union

from common.models.messages import Message

LOG = logging.getLogger(__name__)

NotificationHandler = Callable[[Message], None]
Ack = Dict[str, Any]
RequestListener = Callable[[Message], Union[Ack, Awaitable[Ack]]]


class TransportError(Exception):
    """
    Raised when a request cannot be delivered, e.g. because no listener
    is registered in the target context.
    """


class NotificationChannel:
    """
    One-way pub-sub channel.

    Handlers run in subscription order. A handler that raises is logged
    and skipped; the remaining handlers still receive the message.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._handlers: List[NotificationHandler] = []

    def subscribe(self, handler: NotificationHandler) -> None:
        with self._lock:
            self._handlers.append(handler)

    def unsubscribe(self, handler: NotificationHandler) -> bool:
        """Remove `handler`. Returns True if it was subscribed."""
        with self._lock:
            try:
                self._handlers.remove(handler)
                return True
            except ValueError:
                return False

    def send(self, message: Message) -> None:
        """Deliver `message` once to every current subscriber."""
        with self._lock:
            snapshot = list(self._handlers)

        for handler in snapshot:
            try:
                handler(message)
            except Exception:
                LOG.exception("Error in notification handler %r", handler)


class RequestChannel:
    """
    Request/acknowledgement channel keyed by target id (typically a tab id).

    Each target has at most one listener. `request()` awaits the
    listener's acknowledgement; delivery failures raise TransportError and
    are not retried.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._listeners: Dict[Any, RequestListener] = {}

    def register(self, target: Any, listener: RequestListener) -> None:
        """Install `listener` for `target`, replacing any previous one."""
        with self._lock:
            self._listeners[target] = listener

    def unregister(self, target: Any) -> None:
        with self._lock:
            self._listeners.pop(target, None)

    def has_listener(self, target: Any) -> bool:
        with self._lock:
            return target in self._listeners

    async def request(self, target: Any, message: Message) -> Ack:
        """
        Send `message` to the listener of `target` and return its ack.

        Raises:
            TransportError if no listener is registered for `target` or
            the listener fails before acknowledging.
        """
        with self._lock:
            listener = self._listeners.get(target)

        if listener is None:
            raise TransportError(f"No listener registered for target {target!r}")

        try:
            ack = listener(message)
            if inspect.isawaitable(ack):
                ack = await ack
        except TransportError:
            raise
        except Exception as exc:
            raise TransportError(
                f"Listener for target {target!r} failed: {exc}"
            ) from exc

        return dict(ack or {})
