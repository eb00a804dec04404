"""
Tab targeting for workflow replay.

Before a workflow can run, the control context needs a page context on
the workflow's site. TabTargeter looks for an open tab whose hostname
matches the first action's url and brings it to the front; if there is
none it opens the url in a new tab and waits a fixed settle period before
treating it as ready.

The host's tab API is abstracted as a TabRegistry. InMemoryTabRegistry is
the reference implementation used by tests and headless embeddings.
"""

from __future__ import annotations

import asyncio
import itertools
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from common.config import TabConfig
from common.models.actions import MalformedUrlError, parse_url

LOG = logging.getLogger(__name__)


@dataclass
class Tab:
    id: int
    url: str
    active: bool = False

    @property
    def hostname(self) -> Optional[str]:
        try:
            return parse_url(self.url)[0]
        except MalformedUrlError:
            return None


class TabRegistry(ABC):
    """Host tab API."""

    @abstractmethod
    def query(self) -> List[Tab]:
        raise NotImplementedError

    @abstractmethod
    def activate(self, tab_id: int) -> None:
        raise NotImplementedError

    @abstractmethod
    def create(self, url: str) -> Tab:
        raise NotImplementedError


@dataclass
class InMemoryTabRegistry(TabRegistry):
    """Tabs kept in a dict; ids are assigned from 1 upward."""

    tabs: Dict[int, Tab] = field(default_factory=dict)
    _ids: "itertools.count[int]" = field(default_factory=lambda: itertools.count(1))

    def open(self, url: str) -> Tab:
        """Register an already-open tab (not activated)."""
        tab = Tab(id=next(self._ids), url=url)
        self.tabs[tab.id] = tab
        return tab

    def query(self) -> List[Tab]:
        return list(self.tabs.values())

    def activate(self, tab_id: int) -> None:
        for tab in self.tabs.values():
            tab.active = tab.id == tab_id

    def create(self, url: str) -> Tab:
        tab = self.open(url)
        self.activate(tab.id)
        return tab


class TabTargeter:
    """Find or open the tab a workflow should run in."""

    def __init__(self, registry: TabRegistry, config: Optional[TabConfig] = None) -> None:
        self._registry = registry
        self._config = config or TabConfig()

    async def find_target_tab(self, url: str) -> Tab:
        """
        Return a tab on the same hostname as `url`, opening one if needed.

        A malformed url is matched literally against tab hostnames.
        """
        try:
            target_host = parse_url(url)[0]
        except MalformedUrlError:
            target_host = url

        for tab in self._registry.query():
            if tab.hostname and tab.hostname == target_host:
                self._registry.activate(tab.id)
                LOG.debug("Reusing tab %s for %s", tab.id, target_host)
                return tab

        tab = self._registry.create(url)
        LOG.info("Opened tab %s for %s; waiting %.1fs", tab.id, url, self._config.settle_delay)
        await asyncio.sleep(self._config.settle_delay)
        return tab
