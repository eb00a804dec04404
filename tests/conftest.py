"""Shared fixtures for the Autoflow test suite."""

from __future__ import annotations

import itertools
from typing import Callable, Optional, Sequence, Union

import pytest

from common.config import ReplayConfig
from common.models.actions import ActionEvent, EventType, PersistedEvent
from common.models.fingerprints import Fingerprint, split_css_path
from observer.drivers.web.dom_adapter import DOMSnapshotNode, parse_html_to_dom
from player.locator import SnapshotPage

PAGE_HTML = """
<html>
  <body>
    <div id="login">
      <button class="primary">Sign in</button>
      <button class="secondary">Forgot password</button>
      <input type="text" name="username">
      <input type="password" name="password">
    </div>
    <div class="results">
      <ul>
        <li>First result</li>
        <li>Second result</li>
      </ul>
    </div>
    <div hidden><a>Hidden link</a></div>
  </body>
</html>
"""

SIGN_IN_PATH = "#login > button:nth-of-type(1)"

ActionFactory = Callable[..., ActionEvent]
PersistedFactory = Callable[..., PersistedEvent]


# ---------------------------------------------------------------------------
# Page fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def document() -> DOMSnapshotNode:
    """Freshly parsed login/results page."""
    return parse_html_to_dom(PAGE_HTML)


@pytest.fixture
def page(document: DOMSnapshotNode) -> SnapshotPage:
    return SnapshotPage(document)


@pytest.fixture
def page_factory() -> Callable[[], SnapshotPage]:
    """Build independent pages over fresh copies of the document."""
    return lambda: SnapshotPage(parse_html_to_dom(PAGE_HTML))


@pytest.fixture
def fast_replay_config() -> ReplayConfig:
    """Replay timing shrunk so failing steps time out quickly."""
    return ReplayConfig(resolve_timeout=0.05, frame_interval=0.0, settle_delay=0.0)


# ---------------------------------------------------------------------------
# Action fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def make_action() -> ActionFactory:
    """
    Factory for ActionEvent objects.

    Timestamps default to an increasing sequence (1000, 2000, ...).
    """
    clock = itertools.count(1000, 1000)

    def factory(
        path: Union[str, Sequence[str]] = SIGN_IN_PATH,
        *,
        event_type: EventType = EventType.CLICK,
        timestamp: Optional[int] = None,
        url: str = "https://example.com/login",
        value: Optional[str] = None,
        snippet: str = "",
        tag_name: str = "BUTTON",
    ) -> ActionEvent:
        segments = split_css_path(path) if isinstance(path, str) else tuple(path)
        return ActionEvent(
            event_type=event_type,
            fingerprint=Fingerprint(path=segments, snippet=snippet, tag_name=tag_name),
            timestamp=next(clock) if timestamp is None else timestamp,
            url=url,
            value=value,
        )

    return factory


@pytest.fixture
def make_persisted(make_action: ActionFactory) -> PersistedFactory:
    """Factory for PersistedEvent records at a given timestamp."""
    ids = itertools.count(1)

    def factory(timestamp: int, **kwargs) -> PersistedEvent:
        return PersistedEvent(id=next(ids), data=make_action(timestamp=timestamp, **kwargs))

    return factory
