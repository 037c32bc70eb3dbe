"""Outcome detection: classifies what an action did by comparing page snapshots."""

from __future__ import annotations

from typing import Optional
from urllib.parse import urljoin, urlparse, urlunparse

from src.models.site_model import ActionOutcome, ElementMeta, PageSnapshot

_TOGGLE_ATTRIBUTES = ("aria_expanded", "aria_pressed", "aria_checked", "data_state", "class_name")


def detect_action_outcome(before: PageSnapshot, after: PageSnapshot) -> ActionOutcome:
    """Classify the change between two snapshots. The first matching rule wins."""
    if before.url != after.url:
        return ActionOutcome(
            type="url_changed", success=True,
            details=f"URL changed from {before.url} to {after.url}",
        )
    if after.dialog_count > before.dialog_count:
        return ActionOutcome(
            type="dialog_opened", success=True,
            details=f"Dialog count increased from {before.dialog_count} to {after.dialog_count}",
        )
    if before.dom_hash != after.dom_hash:
        return ActionOutcome(type="dom_changed", success=True, details="DOM structure changed")
    if before.visible_text_hash != after.visible_text_hash:
        return ActionOutcome(type="dom_changed", success=True, details="Visible text content changed")
    if before.interactive_state_hash != after.interactive_state_hash:
        return ActionOutcome(type="dom_changed", success=True, details="Form control state changed")
    return ActionOutcome(
        type="no_change", success=False,
        details="Page URL, structure, text and control state are unchanged",
    )


def normalize_url(url: str) -> str:
    """Drop the fragment and any trailing slash."""
    try:
        parsed = urlparse(url)
    except ValueError:
        parsed = None
    if parsed is None or not parsed.scheme:
        return url.split("#", 1)[0].rstrip("/")
    return urlunparse(parsed._replace(fragment="")).rstrip("/")


def is_same_page_target(href: Optional[str], current_url: Optional[str]) -> bool:
    """True when a link points at the page that is already open."""
    if not href or not current_url:
        return False
    return normalize_url(urljoin(current_url, href)) == normalize_url(current_url)


def element_state_changed(before: Optional[ElementMeta], after: Optional[ElementMeta]) -> bool:
    """True when a clicked element toggled its own state in place."""
    if before is None or after is None:
        return False
    return any(getattr(before, attr) != getattr(after, attr) for attr in _TOGGLE_ATTRIBUTES)
