"""Sitemap discovery: sitemap.xml, robots.txt references, then on-page links."""

from __future__ import annotations

import logging
import re
from typing import Optional

from src.browser.agent_browser import AgentBrowser
from src.models.site_model import SitemapResult, SitemapUrl
from src.url_utils import dedupe_key, is_public_page, site_root

logger = logging.getLogger(__name__)

MAX_SITEMAP_URLS = 50
MAX_CHILD_SITEMAPS = 3
MAX_ROBOTS_SITEMAPS = 2
SITEMAP_PATHS = ("/sitemap.xml", "/sitemap_index.xml", "/sitemap-index.xml")

_URL_BLOCK_RE = re.compile(r"<url>([\s\S]*?)</url>")
_SITEMAP_BLOCK_RE = re.compile(r"<sitemap>([\s\S]*?)</sitemap>")
_LOC_RE = re.compile(r"<loc>(.*?)</loc>", re.DOTALL)
_LASTMOD_RE = re.compile(r"<lastmod>(.*?)</lastmod>", re.DOTALL)
_PRIORITY_RE = re.compile(r"<priority>(.*?)</priority>", re.DOTALL)
_CHANGEFREQ_RE = re.compile(r"<changefreq>(.*?)</changefreq>", re.DOTALL)


def _first(pattern: re.Pattern, block: str) -> Optional[str]:
    match = pattern.search(block)
    return match.group(1).strip() if match else None


def parse_xml_sitemap(xml: str) -> list[SitemapUrl]:
    """Parse ``<url>`` entries, then any ``<sitemap>`` index entries, in document order."""
    urls: list[SitemapUrl] = []
    for block in _URL_BLOCK_RE.findall(xml):
        loc = _first(_LOC_RE, block)
        if not loc:
            continue
        priority = _first(_PRIORITY_RE, block)
        try:
            priority_value = float(priority) if priority else None
        except ValueError:
            priority_value = None
        urls.append(SitemapUrl(
            loc=loc,
            lastmod=_first(_LASTMOD_RE, block),
            priority=priority_value,
            changefreq=_first(_CHANGEFREQ_RE, block),
        ))
    for block in _SITEMAP_BLOCK_RE.findall(xml):
        loc = _first(_LOC_RE, block)
        if loc:
            urls.append(SitemapUrl(loc=loc))
    return urls


def parse_robots_sitemaps(robots_txt: str) -> list[str]:
    sitemaps = []
    for line in robots_txt.split("\n"):
        if line.strip().lower().startswith("sitemap:"):
            url = line[line.index(":") + 1:].strip()
            if url:
                sitemaps.append(url)
    return sitemaps


def is_sitemap_index(urls: list[SitemapUrl]) -> bool:
    return bool(urls) and all(u.loc.endswith(".xml") for u in urls)


def filter_public_urls(urls: list[SitemapUrl], base_url: str) -> list[SitemapUrl]:
    """Keep same-host public pages, first occurrence wins."""
    seen: set[str] = set()
    kept = []
    for url in urls:
        if not is_public_page(url.loc, base_url):
            continue
        key = dedupe_key(url.loc)
        if key in seen:
            continue
        seen.add(key)
        kept.append(url)
    return kept


async def _fetch(browser: AgentBrowser, url: str) -> Optional[str]:
    try:
        return await browser.fetch_text(url)
    except Exception as e:
        logger.debug("Fetch failed for %s: %s", url, e)
        return None


async def _read_sitemap(browser: AgentBrowser, url: str) -> list[SitemapUrl]:
    xml = await _fetch(browser, url)
    if not xml:
        return []
    urls = parse_xml_sitemap(xml)
    if not is_sitemap_index(urls):
        return urls
    children: list[SitemapUrl] = []
    for child in urls[:MAX_CHILD_SITEMAPS]:
        child_xml = await _fetch(browser, child.loc)
        if child_xml:
            children.extend(parse_xml_sitemap(child_xml))
    return children


async def fetch_sitemap(browser: AgentBrowser, base_url: str) -> SitemapResult:
    """Find the site's public pages from its sitemap, capped at 50 URLs.

    Returns an empty result with source ``none`` when neither the
    well-known sitemap paths nor robots.txt yield anything usable.
    """
    base = site_root(base_url)

    for path in SITEMAP_PATHS:
        filtered = filter_public_urls(await _read_sitemap(browser, base + path), base)
        if filtered:
            logger.info("Sitemap %s: %d public URLs", path, len(filtered))
            return SitemapResult(urls=filtered[:MAX_SITEMAP_URLS], source="sitemap.xml")

    robots = await _fetch(browser, f"{base}/robots.txt")
    if robots:
        for sitemap_url in parse_robots_sitemaps(robots)[:MAX_ROBOTS_SITEMAPS]:
            xml = await _fetch(browser, sitemap_url)
            if not xml:
                continue
            filtered = filter_public_urls(parse_xml_sitemap(xml), base)
            if filtered:
                logger.info("Sitemap via robots.txt: %d public URLs", len(filtered))
                return SitemapResult(urls=filtered[:MAX_SITEMAP_URLS], source="robots.txt")

    logger.info("No usable sitemap found for %s", base)
    return SitemapResult(urls=[], source="none")


async def crawl_links(browser: AgentBrowser, start_url: str, max_pages: int) -> SitemapResult:
    """Collect same-host public links from the page the browser is showing.

    The start URL is always first.
    """
    links = await browser.get_links()
    candidates = [SitemapUrl(loc=start_url)] + [SitemapUrl(loc=link.href) for link in links]
    urls = filter_public_urls(candidates, start_url)
    if not urls or dedupe_key(urls[0].loc) != dedupe_key(start_url):
        urls.insert(0, SitemapUrl(loc=start_url))
    return SitemapResult(urls=urls[:max_pages], source="crawled")
