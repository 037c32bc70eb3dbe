"""Phase 4: site discovery on the shared discovery browser."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from src.browser.agent_browser import AgentBrowser
from src.crawler.sitemap import crawl_links, fetch_sitemap
from src.models.config import ValidationConfig
from src.models.site_model import SitemapResult, SitemapUrl
from src.models.test_result import TestExecutionSummary
from src.utils.async_utils import with_timeout
from src.validation.events import ProgressCallback, emit, emit_log, emit_phase_complete, emit_phase_start

logger = logging.getLogger(__name__)

PHASE = "discovery"
SITEMAP_TIMEOUT_MS = 15000
MIN_SITEMAP_URLS = 3
INITIAL_SCREENSHOT = "00-initial.png"


@dataclass
class DiscoveryResult:
    initial_snapshot: str
    sitemap: SitemapResult


async def discover_pages(browser: AgentBrowser, config: ValidationConfig) -> SitemapResult:
    """Sitemap first; a thin sitemap is replaced by crawled links when those find more."""
    try:
        sitemap = await with_timeout(
            fetch_sitemap(browser, config.url), SITEMAP_TIMEOUT_MS, "Sitemap fetch",
        )
        if len(sitemap.urls) < MIN_SITEMAP_URLS:
            crawled = await crawl_links(browser, config.url, config.max_pages)
            if len(crawled.urls) > len(sitemap.urls):
                sitemap = crawled
    except Exception as e:
        logger.warning("Site discovery failed, testing the start page only: %s", e)
        sitemap = SitemapResult(urls=[SitemapUrl(loc=config.url)], source="none")
    if not sitemap.urls:
        sitemap = SitemapResult(urls=[SitemapUrl(loc=config.url)], source=sitemap.source)
    return sitemap


async def run_discovery_phase(
    config: ValidationConfig,
    browser: AgentBrowser,
    screenshot_dir: str | Path,
    summary: TestExecutionSummary,
    on_progress: Optional[ProgressCallback] = None,
) -> DiscoveryResult:
    logger.info("--- Stage 4: Discovery ---")
    emit_phase_start(on_progress, PHASE)
    emit_log(on_progress, "Discovering site structure...")

    await browser.open(config.url)
    initial_snapshot = await browser.snapshot()
    summary.pages_visited.append(config.url)

    initial_screenshot = str(Path(screenshot_dir) / INITIAL_SCREENSHOT)
    await browser.screenshot(initial_screenshot)
    summary.screenshots.append(initial_screenshot)

    sitemap = await discover_pages(browser, config)

    emit(
        on_progress, "sitemap",
        urls=[u.to_json_dict() for u in sitemap.urls],
        source=sitemap.source,
        totalPages=len(sitemap.urls),
    )
    emit_log(on_progress, f"Discovered {len(sitemap.urls)} pages (source: {sitemap.source})")
    emit_phase_complete(on_progress, PHASE)
    return DiscoveryResult(initial_snapshot=initial_snapshot, sitemap=sitemap)
