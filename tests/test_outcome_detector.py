"""Tests for action outcome detection."""

from src.executor.outcome_detector import (
    detect_action_outcome,
    element_state_changed,
    is_same_page_target,
    normalize_url,
)
from src.models.site_model import ElementMeta

from conftest import make_snapshot


class TestDetectActionOutcome:
    """Tests for detect_action_outcome rule precedence."""

    def test_url_change_wins(self):
        before = make_snapshot("https://example.com/")
        after = make_snapshot("https://example.com/about", dialog_count=2, dom_hash="dom-b")
        outcome = detect_action_outcome(before, after)
        assert outcome.type == "url_changed"
        assert outcome.success is True
        assert outcome.details == "URL changed from https://example.com/ to https://example.com/about"

    def test_dialog_beats_dom_change(self):
        outcome = detect_action_outcome(make_snapshot(), make_snapshot(dialog_count=1, dom_hash="dom-b"))
        assert outcome.type == "dialog_opened"
        assert outcome.details == "Dialog count increased from 0 to 1"

    def test_dialog_closing_is_not_an_open(self):
        outcome = detect_action_outcome(make_snapshot(dialog_count=1), make_snapshot(dialog_count=0))
        assert outcome.type == "no_change"

    def test_dom_hash_change(self):
        outcome = detect_action_outcome(make_snapshot(), make_snapshot(dom_hash="dom-b"))
        assert (outcome.type, outcome.details) == ("dom_changed", "DOM structure changed")

    def test_text_change(self):
        outcome = detect_action_outcome(make_snapshot(), make_snapshot(visible_text_hash="text-b"))
        assert (outcome.type, outcome.details) == ("dom_changed", "Visible text content changed")

    def test_control_state_change(self):
        outcome = detect_action_outcome(make_snapshot(), make_snapshot(interactive_state_hash="state-b"))
        assert (outcome.type, outcome.details) == ("dom_changed", "Form control state changed")

    def test_no_change(self):
        outcome = detect_action_outcome(make_snapshot(), make_snapshot(scroll_y=400))
        assert outcome.type == "no_change"
        assert outcome.success is False


class TestSamePageTarget:
    """Tests for URL normalization and same-page link detection."""

    def test_normalize_drops_fragment_and_trailing_slash(self):
        assert normalize_url("https://example.com/docs/#intro") == "https://example.com/docs"

    def test_fragment_link_is_same_page(self):
        assert is_same_page_target("#pricing", "https://example.com/")

    def test_relative_link_to_current_page(self):
        assert is_same_page_target("/docs/", "https://example.com/docs")

    def test_other_page(self):
        assert not is_same_page_target("/about", "https://example.com/")

    def test_missing_href(self):
        assert not is_same_page_target(None, "https://example.com/")


class TestElementStateChanged:
    """Tests for in-place toggle detection."""

    def test_aria_expanded_toggle(self):
        assert element_state_changed(ElementMeta(aria_expanded="false"), ElementMeta(aria_expanded="true"))

    def test_class_change(self):
        assert element_state_changed(ElementMeta(class_name="tab"), ElementMeta(class_name="tab active"))

    def test_unchanged(self):
        meta = ElementMeta(aria_pressed="true")
        assert not element_state_changed(meta, ElementMeta(aria_pressed="true"))

    def test_missing_side(self):
        assert not element_state_changed(ElementMeta(), None)
