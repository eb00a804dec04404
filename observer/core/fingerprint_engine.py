"""
Fingerprint engine for the Autoflow observer.

This module bridges between live DOM nodes (see
`observer.drivers.web.dom_adapter`) and the `Fingerprint` value object in
`common.models.fingerprints`.

The structural path is built by walking from the element toward the
document root:

- A node carrying an id contributes `#id` and ends the walk; ids are
  assumed unique and are the strongest stabilizer available.
- Any other node contributes `tag:nth-of-type(n)`, its 1-based position
  among the parent's children with the same tag.

Segments are returned root-to-leaf. The result is deterministic for a
stable DOM; a page whose structure changes between observation and replay
may no longer match, which the replay engine's text fallback mitigates.
"""

from __future__ import annotations

from typing import List

from common.models.fingerprints import (
    Fingerprint,
    fingerprint_from_segments,
    id_segment,
    ordinal_segment,
)
from observer.drivers.web.dom_adapter import DOMSnapshotNode, same_tag_siblings


def _segment_for(node: DOMSnapshotNode) -> str:
    if node.element_id:
        return id_segment(node.element_id)
    siblings = same_tag_siblings(node)
    ordinal = next(i for i, s in enumerate(siblings, start=1) if s is node)
    return ordinal_segment(node.tag, ordinal)


def structural_path(element: DOMSnapshotNode) -> List[str]:
    """
    Compute the root-to-leaf selector path of `element`.

    Never empty: an element without a parent yields its own segment.
    """
    segments: List[str] = []
    current = element

    while current.parent is not None:
        segment = _segment_for(current)
        segments.append(segment)
        if current.element_id:
            break
        current = current.parent

    if not segments:
        segments.append(_segment_for(element))

    segments.reverse()
    return segments


def generate_fingerprint(element: DOMSnapshotNode) -> Fingerprint:
    """
    Derive the Fingerprint of `element`.

    The element should be attached to its document; a detached node only
    produces a single-segment path.
    """
    return fingerprint_from_segments(
        structural_path(element),
        snippet=element.inner_text(),
        class_name=element.class_name,
        tag_name=element.tag_name,
    )
