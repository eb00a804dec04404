"""
Page-context agent for workflow replay.

The agent is the page side of the control -> page request channel. It
registers itself for its tab, accepts "execute-workflow" requests,
acknowledges them immediately and runs the replay in the background, so
the page context stays responsive while the replay polls and waits.
Replays on one page never overlap: a request that arrives mid-replay
waits until the running one has finished.

A replay that does not complete is logged and reported once through
`on_failure`; the browser host shows it to the user as an alert.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable, Dict, List, Optional, Union

from common.channels import RequestChannel
from common.models.messages import ExecuteWorkflowMessage, Message, parse_message
from .engine import CancellationToken, ReplayEngine, ReplayOutcome

LOG = logging.getLogger(__name__)

LOST_TRACK_MESSAGE = "Autoflow lost track of the workflow. Please intervene."

FailureCallback = Callable[[ReplayOutcome, str], None]


class PageAgent:
    """
    Listener for replay requests in one page context.

    Typical usage:

        agent = PageAgent(engine, on_failure=show_alert)
        agent.attach(channel, tab_id)
        ...
        outcomes = await agent.wait_idle()
    """

    def __init__(
        self,
        engine: ReplayEngine,
        *,
        on_failure: Optional[FailureCallback] = None,
    ) -> None:
        self._engine = engine
        self._on_failure = on_failure
        # One replay drives the page at a time; later requests queue behind it.
        self._lock = asyncio.Lock()
        # In-flight tasks (running or queued) in start order, with their tokens.
        self._tasks: Dict["asyncio.Task[ReplayOutcome]", CancellationToken] = {}
        self.last_outcome: Optional[ReplayOutcome] = None

    @property
    def busy(self) -> bool:
        return bool(self._tasks)

    def attach(self, channel: RequestChannel, target: Any) -> None:
        """Register this agent as the listener for `target` on `channel`."""
        channel.register(target, self.handle_message)

    async def handle_message(self, message: Union[Message, Dict[str, Any]]) -> Dict[str, Any]:
        """
        Handle one request, given as a typed message or a wire dict.

        A request arriving while another replay runs is queued and starts
        once the running one has finished.

        Returns:
            {"status": "started", "steps": n} for execute-workflow,
            {"status": "ignored"} for anything else.

        Raises:
            MessageError if a wire dict cannot be decoded.
        """
        if isinstance(message, dict):
            message = parse_message(message)
        if not isinstance(message, ExecuteWorkflowMessage):
            return {"status": "ignored"}

        LOG.info("Starting automation with %d step(s)", len(message.actions))
        token = CancellationToken()
        task = asyncio.create_task(self._run(message, token))
        self._tasks[task] = token
        task.add_done_callback(self._on_task_done)
        return {"status": "started", "steps": len(message.actions)}

    async def _run(self, message: ExecuteWorkflowMessage, token: CancellationToken) -> ReplayOutcome:
        async with self._lock:
            outcome = await self._engine.replay(message.actions, cancel=token)
        if not outcome.completed:
            LOG.error(
                "Automation failed at step %s: %s",
                outcome.failed_step,
                outcome.reason,
            )
            if self._on_failure is not None:
                self._on_failure(outcome, LOST_TRACK_MESSAGE)
        return outcome

    def _on_task_done(self, task: "asyncio.Task[ReplayOutcome]") -> None:
        self._tasks.pop(task, None)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            LOG.error("Automation task crashed: %s", exc, exc_info=exc)
            return
        self.last_outcome = task.result()

    def cancel(self) -> None:
        """Cancel the running replay and every replay queued behind it."""
        for token in list(self._tasks.values()):
            token.cancel()

    async def wait_idle(self) -> List[ReplayOutcome]:
        """Wait for every in-flight replay and return their outcomes in start order."""
        tasks = list(self._tasks)
        if not tasks:
            return []
        return list(await asyncio.gather(*tasks))
