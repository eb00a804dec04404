"""
Element fingerprints for Autoflow.

A fingerprint is a structural identity descriptor for one interface
element, captured at observation time. It is what the observer records
with every action and what the replay engine resolves back to a live
element later on.

This module provides:

- The Fingerprint value object.
- Helpers to build and split selector path segments.

The fingerprint is computed by `observer.core.fingerprint_engine`; this
module only holds the data and its wire (de)serialization, so that it can
be shared by every context without pulling in DOM code.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Dict, Iterable, Optional, Tuple

PATH_SEPARATOR = " > "

# Maximum number of characters of rendered text kept as a fallback signal.
SNIPPET_LENGTH = 20

_ORDINAL_SEGMENT_RE = re.compile(r"^(?P<tag>[a-z0-9_-]+):nth-of-type\((?P<ordinal>\d+)\)$")


def id_segment(element_id: str) -> str:
    """Return an id-anchored selector segment, e.g. ``#login``."""
    return f"#{element_id}"


def ordinal_segment(tag: str, ordinal: int) -> str:
    """Return a tag + 1-based ordinal segment, e.g. ``div:nth-of-type(2)``."""
    return f"{tag.lower()}:nth-of-type({ordinal})"


def parse_segment(segment: str) -> Tuple[Optional[str], Optional[str], Optional[int]]:
    """
    Split a selector segment into its parts.

    Returns:
        (element_id, tag, ordinal). For an id anchor only `element_id` is
        set; for an ordinal segment only `tag` and `ordinal` are set.

    Raises:
        ValueError if the segment has neither shape.
    """
    segment = segment.strip()
    if segment.startswith("#") and len(segment) > 1:
        return segment[1:], None, None

    match = _ORDINAL_SEGMENT_RE.match(segment)
    if match is None:
        raise ValueError(f"Unrecognized selector segment: {segment!r}")
    return None, match.group("tag"), int(match.group("ordinal"))


def split_css_path(css_path: str) -> Tuple[str, ...]:
    """
    Split a ``" > "``-joined path into its segments.

    Only the spaced separator splits, so ids such as ``#a>b`` stay whole.
    """
    return tuple(part.strip() for part in css_path.split(PATH_SEPARATOR) if part.strip())


@dataclass(frozen=True)
class Fingerprint:
    """
    Immutable descriptor of one interface element.

    Attributes:
        path:
            Selector segments ordered from document root to element. The
            first segment is an id anchor whenever the upward walk hit an
            element carrying an id.
        snippet:
            Leading part (at most SNIPPET_LENGTH characters) of the element's
            rendered text. Only used as a fallback when the path no longer
            resolves.
        class_name:
            Class attribute at observation time. Informational.
        tag_name:
            Upper-case tag name, as the DOM reports it. The text fallback
            uses it to select candidate elements.
    """

    path: Tuple[str, ...]
    snippet: str = ""
    class_name: str = ""
    tag_name: str = ""

    def __post_init__(self) -> None:
        if not self.path:
            raise ValueError("Fingerprint path must contain at least one segment")
        # Allow lists from callers while keeping the object hashable.
        object.__setattr__(self, "path", tuple(self.path))

    @property
    def css_path(self) -> str:
        """Path segments joined into a single selector string."""
        return PATH_SEPARATOR.join(self.path)

    @property
    def is_id_anchored(self) -> bool:
        """True if the path starts at an element id."""
        return self.path[0].startswith("#")

    # --- serialization --------------------------------------------------------

    def to_dict(self) -> Dict[str, Any]:
        """
        Serialize to the wire format exchanged between contexts.

        Keys: "cssPath", "path", "innerText", "className", "tagName".
        "path" keeps the exact segments; "cssPath" is the display form.
        """
        return {
            "cssPath": self.css_path,
            "path": list(self.path),
            "innerText": self.snippet,
            "className": self.class_name,
            "tagName": self.tag_name,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Fingerprint":
        """
        Reconstruct a Fingerprint from its wire format.

        A "path" list is preferred; a bare "cssPath" string is split on
        the " > " separator.
        """
        raw_path = data.get("path")
        if raw_path is None:
            raw_path = split_css_path(str(data.get("cssPath") or ""))
        return cls(
            path=tuple(str(p) for p in raw_path),
            snippet=str(data.get("innerText") or data.get("snippet") or ""),
            class_name=str(data.get("className") or ""),
            tag_name=str(data.get("tagName") or ""),
        )


def fingerprint_from_segments(
    segments: Iterable[str],
    *,
    snippet: str = "",
    class_name: str = "",
    tag_name: str = "",
) -> Fingerprint:
    """Convenience constructor that truncates the snippet to SNIPPET_LENGTH."""
    return Fingerprint(
        path=tuple(segments),
        snippet=(snippet or "")[:SNIPPET_LENGTH],
        class_name=class_name,
        tag_name=tag_name,
    )
