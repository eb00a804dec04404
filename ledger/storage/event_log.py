"""
Durable event log for Autoflow.

The event log is the append-only record of every observed action. Each
append assigns a monotonic integer id. Records are never modified after
being written; deletion is left to an external retention/export process.

Two implementations share the same interface:

- InMemoryEventLog: reference implementation for tests and embedding.
- JsonLinesEventLog: one JSON object per line in a file, safe to reopen.

`load_events()` is the read path used by segmentation and the workflow
endpoints: a storage failure is logged and turns into an empty result so
that consumers only ever see an empty or partial log.
"""

from __future__ import annotations

import json
import logging
import threading
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, List, Optional, Union

from common.models.actions import ActionEvent, PersistedEvent

LOG = logging.getLogger(__name__)


class EventLogError(Exception):
    """Raised when the event log cannot be read or written."""


class EventLog(ABC):
    """Append-only store of PersistedEvent records."""

    @abstractmethod
    def append(self, event: ActionEvent) -> PersistedEvent:
        """Persist `event` and return the stored record with its new id."""
        raise NotImplementedError

    @abstractmethod
    def get_all(self) -> List[PersistedEvent]:
        """Return every stored record in id order."""
        raise NotImplementedError

    def __len__(self) -> int:
        return len(self.get_all())


class InMemoryEventLog(EventLog):
    """
    In-memory implementation of the event log.

    Ids start at 1 and increase by one per append.
    """

    def __init__(self) -> None:
        self._records: List[PersistedEvent] = []
        self._next_id = 1
        self._lock = threading.RLock()

    def append(self, event: ActionEvent) -> PersistedEvent:
        with self._lock:
            record = PersistedEvent(id=self._next_id, data=event)
            self._next_id += 1
            self._records.append(record)
            return record

    def get_all(self) -> List[PersistedEvent]:
        with self._lock:
            return list(self._records)

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)


class JsonLinesEventLog(EventLog):
    """
    File-backed event log, one JSON record per line.

    Record shape:
        {"id": <int>, "data": <ActionEvent wire dict>}

    Lines that are not valid JSON are skipped with a warning on read; a
    record whose payload cannot be decoded is returned with `data=None`.
    """

    def __init__(self, path: Union[str, Path]) -> None:
        self._path = Path(path)
        self._lock = threading.RLock()
        self._next_id: Optional[int] = None

    @property
    def path(self) -> Path:
        return self._path

    def append(self, event: ActionEvent) -> PersistedEvent:
        with self._lock:
            if self._next_id is None:
                self._next_id = self._scan_next_id()
            record = PersistedEvent(id=self._next_id, data=event)
            line = json.dumps(record.to_dict(), separators=(",", ":"), ensure_ascii=False)
            try:
                self._path.parent.mkdir(parents=True, exist_ok=True)
                with self._path.open("a", encoding="utf-8") as f:
                    f.write(line + "\n")
            except OSError as exc:
                raise EventLogError(f"Cannot append to {self._path}: {exc}") from exc
            self._next_id += 1
            return record

    def get_all(self) -> List[PersistedEvent]:
        with self._lock:
            return self._read_records()

    def _scan_next_id(self) -> int:
        records = self._read_records()
        return max((r.id for r in records), default=0) + 1

    def _read_records(self) -> List[PersistedEvent]:
        if not self._path.exists():
            return []
        try:
            with self._path.open("r", encoding="utf-8") as f:
                lines = f.readlines()
        except OSError as exc:
            raise EventLogError(f"Cannot read {self._path}: {exc}") from exc

        records: Dict[int, PersistedEvent] = {}
        for lineno, line in enumerate(lines, start=1):
            line = line.strip()
            if not line:
                continue
            try:
                raw = json.loads(line)
                record = PersistedEvent.from_dict(raw)
            except (json.JSONDecodeError, KeyError, TypeError, ValueError, AttributeError):
                LOG.warning("Skipping unreadable record at %s:%d", self._path, lineno)
                continue
            records[record.id] = record
        return [records[i] for i in sorted(records)]


def load_events(log: EventLog) -> List[PersistedEvent]:
    """
    Read all records from `log`, recovering from storage failures.

    Returns:
        The records, or an empty list if the log is unreadable.
    """
    try:
        return log.get_all()
    except EventLogError as exc:
        LOG.error("Could not load events: %s", exc)
        return []
