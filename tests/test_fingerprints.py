"""Tests for structural paths and the Fingerprint value object."""

from __future__ import annotations

import pytest

from common.models.fingerprints import (
    SNIPPET_LENGTH,
    Fingerprint,
    parse_segment,
    split_css_path,
)
from observer.core.fingerprint_engine import generate_fingerprint, structural_path
from observer.drivers.web.dom_adapter import (
    DOMSnapshotNode,
    get_element_by_id,
    get_elements_by_tag_name,
    parse_html_to_dom,
)
from player.locator import SnapshotPage


class TestStructuralPath:
    def test_walk_stops_at_id_anchor(self, document: DOMSnapshotNode) -> None:
        button = get_elements_by_tag_name(document, "button")[0]
        assert structural_path(button) == ["#login", "button:nth-of-type(1)"]

    def test_element_with_id_is_its_own_anchor(self, document: DOMSnapshotNode) -> None:
        login = get_element_by_id(document, "login")
        assert structural_path(login) == ["#login"]

    def test_ordinal_counts_only_same_tag_siblings(self, document: DOMSnapshotNode) -> None:
        username = get_elements_by_tag_name(document, "input")[0]
        second_button = get_elements_by_tag_name(document, "button")[1]
        assert structural_path(username)[-1] == "input:nth-of-type(1)"
        assert structural_path(second_button)[-1] == "button:nth-of-type(2)"

    def test_path_without_ids_reaches_document_root(self, document: DOMSnapshotNode) -> None:
        second_li = get_elements_by_tag_name(document, "li")[1]
        assert structural_path(second_li) == [
            "html:nth-of-type(1)",
            "body:nth-of-type(1)",
            "div:nth-of-type(2)",
            "ul:nth-of-type(1)",
            "li:nth-of-type(2)",
        ]

    def test_detached_element_yields_single_segment(self) -> None:
        node = DOMSnapshotNode(tag="SPAN")
        assert structural_path(node) == ["span:nth-of-type(1)"]

    def test_path_is_deterministic(self, document: DOMSnapshotNode) -> None:
        li = get_elements_by_tag_name(document, "li")[0]
        assert structural_path(li) == structural_path(li)


class TestGenerateFingerprint:
    def test_captures_text_class_and_tag(self, document: DOMSnapshotNode) -> None:
        button = get_elements_by_tag_name(document, "button")[0]
        fp = generate_fingerprint(button)
        assert fp.css_path == "#login > button:nth-of-type(1)"
        assert fp.snippet == "Sign in"
        assert fp.class_name == "primary"
        assert fp.tag_name == "BUTTON"
        assert fp.is_id_anchored

    def test_snippet_is_truncated(self) -> None:
        root = DOMSnapshotNode(tag="document")
        button = root.append_child(
            DOMSnapshotNode(tag="button", text="Continue to the next checkout step")
        )
        fp = generate_fingerprint(button)
        assert fp.snippet == "Continue to the next"
        assert len(fp.snippet) == SNIPPET_LENGTH

    def test_hidden_descendants_do_not_contribute_text(self, document: DOMSnapshotNode) -> None:
        body = get_elements_by_tag_name(document, "body")[0]
        assert "Hidden link" not in body.inner_text()

    def test_element_without_text_has_empty_snippet(self, document: DOMSnapshotNode) -> None:
        username = get_elements_by_tag_name(document, "input")[0]
        assert generate_fingerprint(username).snippet == ""


class TestFingerprintModel:
    def test_empty_path_is_rejected(self) -> None:
        with pytest.raises(ValueError):
            Fingerprint(path=())

    def test_wire_format_keys(self) -> None:
        fp = Fingerprint(path=("#a", "b:nth-of-type(1)"), snippet="x", class_name="c", tag_name="B")
        assert fp.to_dict() == {
            "cssPath": "#a > b:nth-of-type(1)",
            "path": ["#a", "b:nth-of-type(1)"],
            "innerText": "x",
            "className": "c",
            "tagName": "B",
        }

    def test_from_dict_splits_css_path(self) -> None:
        fp = Fingerprint.from_dict({"cssPath": "#login > button:nth-of-type(1)", "tagName": "BUTTON"})
        assert fp.path == ("#login", "button:nth-of-type(1)")
        assert fp.snippet == ""

    def test_split_css_path_ignores_blank_segments(self) -> None:
        assert split_css_path(" #a >  > div:nth-of-type(2) ") == ("#a", "div:nth-of-type(2)")

    def test_split_css_path_keeps_unspaced_brackets(self) -> None:
        assert split_css_path("#a>b > button:nth-of-type(1)") == ("#a>b", "button:nth-of-type(1)")

    def test_parse_segment_shapes(self) -> None:
        assert parse_segment("#login") == ("login", None, None)
        assert parse_segment("li:nth-of-type(3)") == (None, "li", 3)
        with pytest.raises(ValueError):
            parse_segment("div.card")


class TestBracketInId:
    def test_wire_round_trip_keeps_segments(self) -> None:
        fp = Fingerprint(path=("#a>b", "button:nth-of-type(1)"), snippet="Go", tag_name="BUTTON")
        assert Fingerprint.from_dict(fp.to_dict()) == fp

    def test_observed_path_resolves_after_round_trip(self) -> None:
        document = parse_html_to_dom('<div id="a>b"><button>Go</button></div>')
        button = get_elements_by_tag_name(document, "button")[0]

        fp = Fingerprint.from_dict(generate_fingerprint(button).to_dict())

        assert fp.path == ("#a>b", "button:nth-of-type(1)")
        assert SnapshotPage(document).find_by_path(fp.path) is button
