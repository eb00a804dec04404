"""
Control-context workflow runner.

This is what a dashboard's "Run this automation" button calls. It turns
a Workflow into an "execute-workflow" request, finds (or opens) the tab to
run it in and sends the request over the RequestChannel.

The runner only reports whether the page context accepted the request;
the replay itself runs in the page context. Delivery failures are
reported once and never retried.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

from common.channels import RequestChannel, TransportError
from common.models.messages import ExecuteWorkflowMessage
from common.models.workflow import Workflow
from .tabs import TabTargeter

LOG = logging.getLogger(__name__)

EMPTY_WORKFLOW_MESSAGE = "Error: Workflow is empty."
UNREACHABLE_MESSAGE = "Error: Could not connect to page. Reload the target page."
STARTED_MESSAGE = "Automation started! Switch to the tab to watch."


@dataclass
class RunStatus:
    """
    Outcome of a run request, as shown in the dashboard status line.
    """

    ok: bool
    message: str
    tab_id: Optional[int] = None
    ack: Optional[Dict[str, Any]] = None


class WorkflowRunner:
    """
    Dispatch workflows from the control context to a page context.

    Typical usage:

        runner = WorkflowRunner(channel=channel, targeter=TabTargeter(registry))
        status = await runner.run(workflow)
        show(status.message)
    """

    def __init__(self, *, channel: RequestChannel, targeter: TabTargeter) -> None:
        self._channel = channel
        self._targeter = targeter

    async def run(self, workflow: Workflow) -> RunStatus:
        actions = workflow.actions
        if not actions:
            return RunStatus(ok=False, message=EMPTY_WORKFLOW_MESSAGE)

        tab = await self._targeter.find_target_tab(actions[0].url)
        LOG.info("Targeting tab %s with %d step(s)", tab.id, len(actions))

        try:
            ack = await self._channel.request(tab.id, ExecuteWorkflowMessage(actions=actions))
        except TransportError as exc:
            LOG.warning("Could not reach tab %s: %s", tab.id, exc)
            return RunStatus(ok=False, message=UNREACHABLE_MESSAGE, tab_id=tab.id)

        return RunStatus(ok=True, message=STARTED_MESSAGE, tab_id=tab.id, ack=ack)
