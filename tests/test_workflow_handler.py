"""Tests for workflow listing and the export script."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from common.config import SegmentationConfig
from common.models.actions import PersistedEvent
from ledger.api.endpoints.workflows import WorkflowError, WorkflowHandler
from ledger.storage.event_log import InMemoryEventLog, JsonLinesEventLog
from scripts.export_workflows import main


@pytest.fixture
def log(make_action) -> InMemoryEventLog:
    log = InMemoryEventLog()
    for ts in (0, 60000):
        log.append(make_action(timestamp=ts, url="https://example.com/login"))
    log.append(make_action(timestamp=400000, url="https://shop.example.org/cart", value="2"))
    return log


class TestWorkflowHandler:
    def test_list_workflows(self, log) -> None:
        listing = WorkflowHandler(log).list_workflows()
        assert listing == {
            "workflows": [
                {"number": 1, "domain": "example.com", "steps": 2, "start": 0, "end": 60000},
                {"number": 2, "domain": "shop.example.org", "steps": 1, "start": 400000, "end": 400000},
            ]
        }

    def test_get_workflow(self, log) -> None:
        details = WorkflowHandler(log).get_workflow(2)

        assert details["number"] == 2
        assert details["events"] == [
            {"event_type": "click", "timestamp": 400000, "target": "BUTTON", "value": "2"}
        ]
        assert details["actions"][0]["url"] == "https://shop.example.org/cart"

    def test_unknown_number(self, log) -> None:
        handler = WorkflowHandler(log)
        with pytest.raises(WorkflowError):
            handler.get_workflow(0)
        with pytest.raises(WorkflowError):
            handler.get_workflow(3)

    def test_gap_is_configurable(self, log) -> None:
        handler = WorkflowHandler(log, config=SegmentationConfig(gap_ms=1000000))
        assert len(handler.workflows()) == 1

    def test_unreadable_log_lists_nothing(self, tmp_path: Path) -> None:
        assert WorkflowHandler(JsonLinesEventLog(tmp_path)).list_workflows() == {"workflows": []}

    def test_workflow_without_decodable_events(self) -> None:
        class StaticLog(InMemoryEventLog):
            def get_all(self):
                return [PersistedEvent(id=1, data=None)]

        assert WorkflowHandler(StaticLog()).list_workflows() == {"workflows": []}


class TestExportScript:
    def _write_log(self, path: Path, make_action) -> None:
        log = JsonLinesEventLog(path)
        log.append(make_action(timestamp=0))
        log.append(make_action(timestamp=900000))

    def test_list(self, tmp_path: Path, make_action, capsys) -> None:
        path = tmp_path / "events.jsonl"
        self._write_log(path, make_action)

        assert main(["--log", str(path), "list"]) == 0
        out = capsys.readouterr().out
        assert "Workflow 1" in out
        assert "Workflow 2" in out

    def test_export_one(self, tmp_path: Path, make_action) -> None:
        path = tmp_path / "events.jsonl"
        output = tmp_path / "out" / "wf.json"
        self._write_log(path, make_action)

        assert main(["--log", str(path), "export", "--number", "2", "--output", str(output)]) == 0
        data = json.loads(output.read_text(encoding="utf-8"))
        assert data["number"] == 2
        assert data["events"][0]["timestamp"] == 900000

    def test_export_missing_workflow(self, tmp_path: Path, make_action) -> None:
        path = tmp_path / "events.jsonl"
        self._write_log(path, make_action)
        assert main(["--log", str(path), "export", "--number", "5"]) == 1

    def test_export_all(self, tmp_path: Path, make_action) -> None:
        path = tmp_path / "events.jsonl"
        self._write_log(path, make_action)
        out_dir = tmp_path / "exports"

        assert main(["--log", str(path), "export-all", "--output-dir", str(out_dir)]) == 0
        assert sorted(p.name for p in out_dir.iterdir()) == ["workflow_1.json", "workflow_2.json"]

    def test_bad_config(self, tmp_path: Path, make_action) -> None:
        path = tmp_path / "events.jsonl"
        self._write_log(path, make_action)
        assert main(["--log", str(path), "--config", str(tmp_path / "missing.yml"), "list"]) == 2
