"""Tests for the history buffer and the repeated-sequence detector."""

from __future__ import annotations

import itertools
from typing import List

import pytest

from common.config import ConfigError, DetectionConfig
from common.models.actions import ActionEvent, EventType
from ledger.storage.proposal_store import BadgeIndicator, ProposalSlot
from observer.detection.history import HistoryBuffer
from observer.detection.pattern_detector import PatternDetector, count_matches

P = "#login > button:nth-of-type(1)"
Q = "#login > button:nth-of-type(2)"
A = "#form > input:nth-of-type(1)"
B = "#form > input:nth-of-type(2)"
C = "#form > button:nth-of-type(1)"


@pytest.fixture
def slot() -> ProposalSlot:
    return ProposalSlot()


@pytest.fixture
def badge() -> BadgeIndicator:
    return BadgeIndicator()


@pytest.fixture
def detector(slot: ProposalSlot, badge: BadgeIndicator) -> PatternDetector:
    ids = itertools.count(1)
    return PatternDetector(slot=slot, indicator=badge, clock=lambda: next(ids))


def _feed(detector: PatternDetector, events: List[ActionEvent]) -> list:
    return [detector.record(e) for e in events]


class TestHistoryBuffer:
    def test_evicts_oldest_past_capacity(self, make_action) -> None:
        buffer = HistoryBuffer(capacity=50)
        events = [make_action() for _ in range(60)]
        for e in events:
            buffer.append(e)
        assert len(buffer) == 50
        assert buffer.snapshot()[0] is events[10]
        assert buffer.tail(2) == events[-2:]

    def test_rejects_zero_capacity(self) -> None:
        with pytest.raises(ValueError):
            HistoryBuffer(capacity=0)


class TestCountMatches:
    def test_counts_overlapping_windows(self, make_action) -> None:
        history = [make_action(P) for _ in range(6)]
        assert count_matches(history, history[-3:]) == 4

    def test_ignores_values_and_urls(self, make_action) -> None:
        first = make_action(A, event_type=EventType.INPUT, value="x", url="https://a.com/")
        second = make_action(A, event_type=EventType.INPUT, value="y", url="https://b.com/")
        assert count_matches([first], [second]) == 1


class TestPatternDetector:
    def test_no_detection_below_two_patterns(self, detector, slot, make_action) -> None:
        results = _feed(detector, [make_action(P) for _ in range(5)])
        assert results == [None] * 5
        assert slot.get() is None

    def test_long_literal_run_is_detected(self, detector, slot, make_action) -> None:
        results = _feed(detector, [make_action(P) for _ in range(6)])
        assert results[-1] is not None
        assert slot.get() is results[-1]

    def test_three_repetitions_create_proposal(self, detector, slot, badge, make_action) -> None:
        events = [make_action(path, url="https://example.com/form") for path in (A, B, C) * 3]
        results = _feed(detector, events)

        assert results[:8] == [None] * 8
        proposal = results[8]
        assert proposal is not None
        assert [a.fingerprint.css_path for a in proposal.actions] == [A, B, C]
        assert proposal.domain == "example.com"
        assert proposal.path == "/form"
        assert slot.get() is proposal
        assert badge.text == "!"
        assert badge.color == "#00FF00"

    def test_pattern_repeated_elsewhere_in_history(self, detector, slot, make_action) -> None:
        # P P P Q, then P P Q twice more: only the final P P Q has three matches.
        paths = [P, P, P, Q, P, P, Q, P, P, Q]
        results = _feed(detector, [make_action(p) for p in paths])

        assert results[:9] == [None] * 9
        proposal = results[9]
        assert proposal is not None
        assert len(proposal.actions) == 3
        assert [a.fingerprint.css_path for a in proposal.actions] == [P, P, Q]

    def test_event_type_must_match(self, detector, slot, make_action) -> None:
        events = [make_action(path) for path in (A, B, C) * 2]
        events += [make_action(A), make_action(B), make_action(C, event_type=EventType.INPUT)]
        results = _feed(detector, events)
        assert results[-1] is None
        assert slot.get() is None

    def test_malformed_url_skips_proposal(self, detector, slot, badge, make_action) -> None:
        events = [make_action(path, url="not a url") for path in (A, B, C) * 3]
        assert _feed(detector, events)[-1] is None
        assert slot.get() is None
        assert not badge.is_pending

    def test_new_detection_overwrites_pending_proposal(self, detector, slot, make_action) -> None:
        events = [make_action(path) for path in (A, B, C) * 3]
        first = _feed(detector, events)[-1]
        second = detector.record(make_action(A))

        assert first is not None and second is not None
        assert second.id != first.id
        assert [a.fingerprint.css_path for a in second.actions] == [B, C, A]
        assert slot.get() is second

    def test_invalid_config_is_rejected(self, slot) -> None:
        with pytest.raises(ConfigError):
            PatternDetector(slot=slot, config=DetectionConfig(pattern_length=3, history_capacity=5))


class TestProposalSlot:
    def test_clear_returns_pending(self, slot, detector, make_action) -> None:
        proposal = _feed(detector, [make_action(P) for _ in range(6)])[-1]
        assert slot.clear() is proposal
        assert slot.get() is None

    def test_badge_clear(self, badge) -> None:
        badge.show_pending()
        assert badge.is_pending
        badge.clear()
        assert badge.text == ""
        assert badge.color is None
