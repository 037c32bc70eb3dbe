"""Page state and site structure data structures produced by the browser layer."""

from __future__ import annotations

from typing import Literal, Optional

from pydantic import ConfigDict, Field

from .base import CamelModel


class PageSnapshot(CamelModel):
    """Structural fingerprint of a page, compared before/after each action."""

    model_config = ConfigDict(frozen=True)

    url: str
    dom_hash: str
    visible_text_hash: str
    interactive_state_hash: str
    element_count: int = 0
    text_length: int = 0
    dialog_count: int = 0
    scroll_x: float = 0
    scroll_y: float = 0
    timestamp: int = 0  # epoch ms


class ElementMeta(CamelModel):
    href: Optional[str] = None
    aria_expanded: Optional[str] = None
    aria_pressed: Optional[str] = None
    aria_checked: Optional[str] = None
    data_state: Optional[str] = None
    class_name: Optional[str] = None


class ActionOutcome(CamelModel):
    type: Literal["url_changed", "dialog_opened", "dom_changed", "no_change"]
    success: bool
    details: str = ""


class LinkInfo(CamelModel):
    href: str
    text: str = ""


class SitemapUrl(CamelModel):
    loc: str
    lastmod: Optional[str] = None
    priority: Optional[float] = None
    changefreq: Optional[str] = None


class SitemapResult(CamelModel):
    urls: list[SitemapUrl] = Field(default_factory=list)
    source: Literal["sitemap.xml", "robots.txt", "crawled", "none"] = "none"
