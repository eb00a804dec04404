"""
DOM adapter for the Autoflow web driver.

This module provides a small, dependency-free model of a live web
document that the fingerprint engine, the observer and the replay engine
all operate on.

It does **not** talk to a browser directly. Another layer (a browser
extension bridge, a Selenium/Playwright wrapper, or a test) is
responsible for building a DOMSnapshotNode tree, either node by node or
from HTML via `parse_html_to_dom`, and for keeping layout information
(`rect`) current when it has access to it.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from html.parser import HTMLParser
from typing import Dict, Iterator, List, Optional

# Elements that never have a closing tag in HTML.
_VOID_TAGS = frozenset(
    {
        "area",
        "base",
        "br",
        "col",
        "embed",
        "hr",
        "img",
        "input",
        "link",
        "meta",
        "source",
        "track",
        "wbr",
    }
)

DOCUMENT_TAG = "document"


# --------------------------------------------------------------------------- #
# DOM snapshot model
# --------------------------------------------------------------------------- #


@dataclass(frozen=True)
class Rect:
    """Rendered box of an element, in CSS pixels."""

    x: float = 0.0
    y: float = 0.0
    width: float = 0.0
    height: float = 0.0

    @property
    def has_extent(self) -> bool:
        return self.width > 0 or self.height > 0


@dataclass(eq=False)
class DOMSnapshotNode:
    """
    Minimal, framework-agnostic DOM node.

    Nodes compare by identity, like live DOM elements.

    Attributes:
        tag:
            Lowercase tag name (e.g. "button", "a", "input"). The synthetic
            root produced by `parse_html_to_dom` uses the tag "document".
        attributes:
            Mapping of attribute name -> value (e.g. {"id": "submit-btn"}).
        text:
            Text content directly associated with this node (no children).
        children:
            Child nodes in DOM order.
        parent:
            Parent node, or None for a root/detached node.
        rect:
            Rendered box if the driver knows it; None means "layout
            unknown" and visibility falls back to inline styles.
    """

    tag: str
    attributes: Dict[str, str] = field(default_factory=dict)
    text: str = ""
    children: List["DOMSnapshotNode"] = field(default_factory=list)
    parent: Optional["DOMSnapshotNode"] = field(default=None, repr=False)
    rect: Optional[Rect] = None

    def __post_init__(self) -> None:
        self.tag = self.tag.lower()
        for child in self.children:
            child.parent = self

    # --- tree editing -----------------------------------------------------

    def append_child(self, child: "DOMSnapshotNode") -> "DOMSnapshotNode":
        """Attach `child` as the last child of this node and return it."""
        if child.parent is not None:
            child.parent.remove_child(child)
        child.parent = self
        self.children.append(child)
        return child

    def remove_child(self, child: "DOMSnapshotNode") -> None:
        self.children = [c for c in self.children if c is not child]
        child.parent = None

    # --- attributes -------------------------------------------------------

    @property
    def element_id(self) -> str:
        return (self.attributes.get("id") or "").strip()

    @property
    def class_name(self) -> str:
        return self.attributes.get("class") or ""

    @property
    def tag_name(self) -> str:
        """Upper-case tag name, as `Element.tagName` reports it."""
        return self.tag.upper()

    @property
    def input_type(self) -> str:
        return (self.attributes.get("type") or "").lower().strip()

    @property
    def value(self) -> str:
        return self.attributes.get("value", "")

    @value.setter
    def value(self, new_value: str) -> None:
        self.attributes["value"] = new_value

    # --- traversal --------------------------------------------------------

    def iter_descendants(self) -> Iterator["DOMSnapshotNode"]:
        """Yield all descendants in document order (self excluded)."""
        for child in self.children:
            yield child
            yield from child.iter_descendants()

    def root(self) -> "DOMSnapshotNode":
        node = self
        while node.parent is not None:
            node = node.parent
        return node

    def inner_text(self) -> str:
        """
        Text of this node and its descendants, joined with spaces.

        Hidden subtrees are skipped, mirroring what a browser renders.
        """
        pieces: List[str] = []

        def visit(n: DOMSnapshotNode) -> None:
            if not _style_visible(n):
                return
            if n.text:
                pieces.append(n.text.strip())
            for child in n.children:
                visit(child)

        visit(self)
        return " ".join(p for p in pieces if p).strip()


# --------------------------------------------------------------------------- #
# Queries
# --------------------------------------------------------------------------- #


def get_element_by_id(root: DOMSnapshotNode, element_id: str) -> Optional[DOMSnapshotNode]:
    """First node under `root` (inclusive) whose id equals `element_id`."""
    if root.element_id == element_id:
        return root
    for node in root.iter_descendants():
        if node.element_id == element_id:
            return node
    return None


def get_elements_by_tag_name(root: DOMSnapshotNode, tag: str) -> List[DOMSnapshotNode]:
    """All descendants of `root` with the given tag, in document order."""
    tag = tag.lower()
    return [n for n in root.iter_descendants() if n.tag == tag]


def same_tag_siblings(node: DOMSnapshotNode) -> List[DOMSnapshotNode]:
    """Children of `node.parent` sharing its tag (including `node`)."""
    if node.parent is None:
        return [node]
    return [c for c in node.parent.children if c.tag == node.tag]


def _style_visible(node: DOMSnapshotNode) -> bool:
    style = (node.attributes.get("style") or "").replace(" ", "").lower()
    if "display:none" in style:
        return False
    if "hidden" in node.attributes:
        return False
    return True


def has_rendered_extent(node: DOMSnapshotNode) -> bool:
    """
    Basic visibility check.

    With layout information the element needs a non-zero box. Without it
    we rely on attributes only: the element and every ancestor must be
    attached to a document and not hidden through `display:none` or the
    `hidden` attribute.
    """
    if node.rect is not None:
        return node.rect.has_extent

    current: Optional[DOMSnapshotNode] = node
    while current is not None:
        if not _style_visible(current):
            return False
        if current.parent is None and current.tag != DOCUMENT_TAG:
            # Detached from any document: nothing is rendered.
            return False
        current = current.parent
    return True


# --------------------------------------------------------------------------- #
# HTML -> DOMSnapshotNode
# --------------------------------------------------------------------------- #


class _HTMLToDOMParser(HTMLParser):
    """
    Simple HTML -> DOMSnapshotNode converter using the stdlib HTMLParser.

    This is NOT a full browser DOM implementation, but it keeps element
    nesting, attributes and text, which is all fingerprinting needs.
    """

    def __init__(self) -> None:
        super().__init__(convert_charrefs=True)
        # Synthetic root to handle multiple top-level elements
        self._root = DOMSnapshotNode(tag=DOCUMENT_TAG)
        self._stack: List[DOMSnapshotNode] = [self._root]

    @property
    def root(self) -> DOMSnapshotNode:
        return self._root

    def handle_starttag(self, tag: str, attrs: List[tuple[str, Optional[str]]]) -> None:
        attrs_dict: Dict[str, str] = {}
        for k, v in attrs:
            attrs_dict[k] = v if v is not None else ""

        node = DOMSnapshotNode(tag=tag.lower(), attributes=attrs_dict)
        self._stack[-1].append_child(node)
        if node.tag not in _VOID_TAGS:
            self._stack.append(node)

    def handle_startendtag(self, tag: str, attrs: List[tuple[str, Optional[str]]]) -> None:
        attrs_dict = {k: (v if v is not None else "") for k, v in attrs}
        self._stack[-1].append_child(DOMSnapshotNode(tag=tag.lower(), attributes=attrs_dict))

    def handle_endtag(self, tag: str) -> None:
        tag = tag.lower()
        # Pop up to the matching open element; ignore stray end tags.
        for depth in range(len(self._stack) - 1, 0, -1):
            if self._stack[depth].tag == tag:
                del self._stack[depth:]
                return

    def handle_data(self, data: str) -> None:
        text = data.strip()
        if not text:
            return
        current = self._stack[-1]
        if current.text:
            current.text += " " + text
        else:
            current.text = text


def parse_html_to_dom(html: str) -> DOMSnapshotNode:
    """
    Parse raw HTML into a DOMSnapshotNode tree.

    The root node has tag "document" and its children correspond to
    top-level elements (<html>, etc.).
    """
    parser = _HTMLToDOMParser()
    parser.feed(html)
    parser.close()
    return parser.root
