"""Tests for the durable event log implementations."""

from __future__ import annotations

import json
from pathlib import Path

from common.models.actions import EventType
from ledger.storage.event_log import InMemoryEventLog, JsonLinesEventLog, load_events


class TestInMemoryEventLog:
    def test_ids_are_monotonic(self, make_action) -> None:
        log = InMemoryEventLog()
        records = [log.append(make_action()) for _ in range(3)]

        assert [r.id for r in records] == [1, 2, 3]
        assert log.get_all() == records
        assert len(log) == 3


class TestJsonLinesEventLog:
    def test_persists_across_instances(self, tmp_path: Path, make_action) -> None:
        path = tmp_path / "nested" / "events.jsonl"
        action = make_action(event_type=EventType.INPUT, value="hello")
        JsonLinesEventLog(path).append(action)

        reopened = JsonLinesEventLog(path)
        second = reopened.append(make_action())
        records = reopened.get_all()

        assert second.id == 2
        assert [r.id for r in records] == [1, 2]
        assert records[0].data == action

    def test_missing_file_is_empty(self, tmp_path: Path) -> None:
        assert JsonLinesEventLog(tmp_path / "absent.jsonl").get_all() == []

    def test_skips_unreadable_lines(self, tmp_path: Path, make_action) -> None:
        path = tmp_path / "events.jsonl"
        good = {"id": 1, "data": make_action().to_dict()}
        undecodable = {"id": 2, "data": {"eventType": "hover"}}
        path.write_text(
            "\n".join([json.dumps(good), "{not json", json.dumps(undecodable), ""]),
            encoding="utf-8",
        )

        records = JsonLinesEventLog(path).get_all()

        assert [r.id for r in records] == [1, 2]
        assert records[0].data is not None
        assert records[1].data is None
        assert records[1].timestamp is None

    def test_load_events_recovers_from_storage_failure(self, tmp_path: Path) -> None:
        # A directory cannot be read as a log file.
        assert load_events(JsonLinesEventLog(tmp_path)) == []
