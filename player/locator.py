"""
Live page interfaces for the replay engine.

The replay engine never touches a document directly. It depends on two
narrow capabilities:

- ElementLocator: find elements and tell whether they are rendered.
- PageActuator: bring an element into view, highlight it and dispatch
  synthetic interaction events to it.

A browser bridge implements both against the real DOM. SnapshotPage
implements both against a `DOMSnapshotNode` document, which is what the
tests and headless embeddings use.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from common.models.fingerprints import parse_segment
from observer.drivers.web.dom_adapter import (
    DOMSnapshotNode,
    get_element_by_id,
    get_elements_by_tag_name,
    has_rendered_extent,
)

LOG = logging.getLogger(__name__)

Element = Any
EventListener = Callable[[DOMSnapshotNode, str], None]


class ElementLocator(ABC):
    """Capability to look up live elements from fingerprint data."""

    @abstractmethod
    def find_by_path(self, path: Sequence[str]) -> Optional[Element]:
        """Element whose current structural path equals `path`, or None."""
        raise NotImplementedError

    @abstractmethod
    def find_by_tag_and_text(self, tag_name: str, text: str) -> Optional[Element]:
        """First element with `tag_name` whose rendered text contains `text`."""
        raise NotImplementedError

    @abstractmethod
    def is_visible(self, element: Element) -> bool:
        """True if `element` has a non-zero rendered extent."""
        raise NotImplementedError


class PageActuator(ABC):
    """Capability to act on elements returned by an ElementLocator."""

    @abstractmethod
    def scroll_into_view(self, element: Element) -> None:
        raise NotImplementedError

    @abstractmethod
    def set_highlight(self, element: Element, style: Optional[str]) -> None:
        """Apply an outline style, or remove it when `style` is None."""
        raise NotImplementedError

    @abstractmethod
    def dispatch(self, element: Element, event_type: str) -> None:
        """Dispatch a bubbling, cancelable synthetic event."""
        raise NotImplementedError

    @abstractmethod
    def focus(self, element: Element) -> None:
        raise NotImplementedError

    @abstractmethod
    def blur(self, element: Element) -> None:
        raise NotImplementedError

    @abstractmethod
    def set_value(self, element: Element, value: str) -> None:
        raise NotImplementedError


# --------------------------------------------------------------------------- #
# DOM snapshot implementation
# --------------------------------------------------------------------------- #


@dataclass
class SnapshotPage(ElementLocator, PageActuator):
    """
    ElementLocator + PageActuator over a DOMSnapshotNode document.

    Every dispatched event is appended to `dispatched` as
    (event_type, element). Listeners registered with `add_event_listener`
    run synchronously on dispatch and may mutate the document, which is
    how tests model pages that react to clicks.
    """

    document: DOMSnapshotNode
    dispatched: List[Tuple[str, DOMSnapshotNode]] = field(default_factory=list)
    scrolled: List[DOMSnapshotNode] = field(default_factory=list)
    focused: Optional[DOMSnapshotNode] = None
    _listeners: Dict[Tuple[int, str], List[EventListener]] = field(
        default_factory=lambda: defaultdict(list)
    )

    # --- ElementLocator ---------------------------------------------------

    def find_by_path(self, path: Sequence[str]) -> Optional[DOMSnapshotNode]:
        if not path:
            return None
        try:
            parsed = [parse_segment(s) for s in path]
        except ValueError as exc:
            LOG.debug("Unresolvable path %r: %s", list(path), exc)
            return None

        current: Optional[DOMSnapshotNode] = None
        for index, (element_id, tag, ordinal) in enumerate(parsed):
            if element_id is not None:
                scope = self.document if index == 0 else current
                current = get_element_by_id(scope, element_id) if scope is not None else None
                if current is not None and index > 0 and current.parent is not scope:
                    current = None
            else:
                parent = self.document if index == 0 else current
                current = self._nth_of_type(parent, tag, ordinal) if parent is not None else None
            if current is None:
                return None
        return current

    def find_by_tag_and_text(self, tag_name: str, text: str) -> Optional[DOMSnapshotNode]:
        if not tag_name:
            return None
        for node in get_elements_by_tag_name(self.document, tag_name):
            if text in node.inner_text():
                return node
        return None

    def is_visible(self, element: DOMSnapshotNode) -> bool:
        return has_rendered_extent(element)

    # --- PageActuator -----------------------------------------------------

    def scroll_into_view(self, element: DOMSnapshotNode) -> None:
        self.scrolled.append(element)

    def set_highlight(self, element: DOMSnapshotNode, style: Optional[str]) -> None:
        if style is None:
            element.attributes.pop("data-autoflow-outline", None)
        else:
            element.attributes["data-autoflow-outline"] = style

    def dispatch(self, element: DOMSnapshotNode, event_type: str) -> None:
        self.dispatched.append((event_type, element))
        # Events bubble: run listeners on the element and its ancestors.
        node: Optional[DOMSnapshotNode] = element
        while node is not None:
            for listener in list(self._listeners.get((id(node), event_type), [])):
                listener(element, event_type)
            node = node.parent

    def focus(self, element: DOMSnapshotNode) -> None:
        self.focused = element

    def blur(self, element: DOMSnapshotNode) -> None:
        if self.focused is element:
            self.focused = None

    def set_value(self, element: DOMSnapshotNode, value: str) -> None:
        element.value = value

    # --- helpers ----------------------------------------------------------

    def add_event_listener(
        self, element: DOMSnapshotNode, event_type: str, listener: EventListener
    ) -> None:
        self._listeners[(id(element), event_type)].append(listener)

    def events_for(self, element: DOMSnapshotNode) -> List[str]:
        """Event types dispatched to `element`, in order."""
        return [etype for etype, el in self.dispatched if el is element]

    @staticmethod
    def _nth_of_type(
        parent: DOMSnapshotNode, tag: Optional[str], ordinal: Optional[int]
    ) -> Optional[DOMSnapshotNode]:
        if tag is None or ordinal is None or ordinal < 1:
            return None
        same_tag = [c for c in parent.children if c.tag == tag]
        if ordinal > len(same_tag):
            return None
        return same_tag[ordinal - 1]
