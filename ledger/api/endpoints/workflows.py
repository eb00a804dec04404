"""
Workflow endpoint helpers for Autoflow.

This module defines a small, framework-agnostic layer over the durable
event log that a dashboard or popup can render.

A *workflow* here is a segment of the event log (see
`ledger.segmentation.segmenter`). Workflows are re-derived on every call
and addressed by their 1-based position in chronological order, the way
the dashboard numbers them ("Workflow 1", "Workflow 2", ...).

It does NOT render anything. Methods return JSON-serializable dicts.

Typical usage from a presentation layer:

    handler = WorkflowHandler(log=event_log)

    def sidebar():
        return handler.list_workflows()["workflows"]

    def details(number: int):
        try:
            return handler.get_workflow(number)
        except WorkflowError as e:
            return {"error": str(e)}
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List

from common.config import SegmentationConfig
from common.models.actions import PersistedEvent
from common.models.workflow import Workflow
from ledger.segmentation.segmenter import segment
from ledger.storage.event_log import EventLog, load_events


class WorkflowError(Exception):
    """
    Raised when a requested workflow does not exist.

    Presentation layers should show this as a "not found" message.
    """


@dataclass
class WorkflowHandler:
    """
    Read-only workflow queries over an EventLog.

    A storage failure yields an empty listing, never an exception.
    """

    log: EventLog
    config: SegmentationConfig = field(default_factory=SegmentationConfig)

    def workflows(self) -> List[Workflow]:
        """Current workflows, oldest first."""
        return segment(load_events(self.log), gap_ms=self.config.gap_ms)

    # ------------------------------------------------------------------ #
    # Retrieval
    # ------------------------------------------------------------------ #

    def list_workflows(self) -> Dict[str, Any]:
        """
        List all workflows as sidebar entries.

        Response:
            {
              "workflows": [
                {"number": 1, "domain": "example.com", "steps": 4,
                 "start": <ms>, "end": <ms>},
                ...
              ]
            }
        """
        return {
            "workflows": [
                self._summary(number, wf)
                for number, wf in enumerate(self.workflows(), start=1)
            ]
        }

    def get_workflow(self, number: int) -> Dict[str, Any]:
        """
        Retrieve one workflow by its 1-based number.

        Response:
            {
              "number": 2,
              "domain": "example.com",
              "events": [
                {"event_type": "click", "timestamp": <ms>,
                 "target": "BUTTON", "value": null},
                ...
              ],
              "actions": [ <ActionEvent wire dict>, ... ]
            }

        Raises:
            WorkflowError if no workflow has this number.
        """
        return self._details(number, self.get_workflow_object(number))

    def get_workflow_object(self, number: int) -> Workflow:
        """Same lookup as get_workflow(), returning the Workflow itself."""
        workflows = self.workflows()
        if number < 1 or number > len(workflows):
            raise WorkflowError(f"Workflow {number} not found")
        return workflows[number - 1]

    # ------------------------------------------------------------------ #
    # Internal helpers
    # ------------------------------------------------------------------ #

    @staticmethod
    def _summary(number: int, workflow: Workflow) -> Dict[str, Any]:
        return {
            "number": number,
            "domain": workflow.domain,
            "steps": len(workflow),
            "start": workflow.start,
            "end": workflow.end,
        }

    def _details(self, number: int, workflow: Workflow) -> Dict[str, Any]:
        return {
            "number": number,
            "domain": workflow.domain,
            "events": [self._event_row(e) for e in workflow],
            "actions": [a.to_dict() for a in workflow.actions],
        }

    @staticmethod
    def _event_row(event: PersistedEvent) -> Dict[str, Any]:
        data = event.data
        if data is None:
            return {"event_type": "unknown", "timestamp": None, "target": "Element", "value": None}
        return {
            "event_type": data.event_type.value,
            "timestamp": data.timestamp,
            "target": data.fingerprint.tag_name or "Element",
            "value": data.value,
        }
