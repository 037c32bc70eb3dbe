"""Agent browser: one Playwright page driven by selector strings and snapshots."""

from __future__ import annotations

import asyncio
import hashlib
import json
import logging
import time
from pathlib import Path
from typing import Any, Optional

from playwright.async_api import Browser, BrowserContext, Page, Playwright, async_playwright

from src.models.site_model import ElementMeta, LinkInfo, PageSnapshot
from src.utils.browser_stealth import create_stealth_context, launch_stealth_browser

logger = logging.getLogger(__name__)

DEFAULT_VIEWPORT = {"width": 1366, "height": 900}
SNAPSHOT_ELEMENT_LIMIT = 250

_RETRYABLE_MARKERS = (
    "timeout",
    "net::",
    "navigation",
    "target closed",
    "connection refused",
    "econnreset",
    "econnrefused",
)

# Serializes the interactive elements into one line each for the LLM.
_SNAPSHOT_JS = """
(limit) => {
    const sel = 'a[href], button, input, select, textarea, summary, [role=button], [role=link], '
        + '[role=tab], [role=menuitem], [role=checkbox], [role=switch], [role=combobox], '
        + '[contenteditable=true], [tabindex]:not([tabindex="-1"])';
    const visible = (el) => {
        const r = el.getBoundingClientRect();
        const s = window.getComputedStyle(el);
        return r.width > 0 && r.height > 0 && s.visibility !== 'hidden' && s.display !== 'none';
    };
    const lines = [];
    lines.push(`page: ${document.title || '(untitled)'} <${location.href}>`);
    document.querySelectorAll('h1, h2, h3').forEach((h) => {
        const t = (h.innerText || '').trim().replace(/\\s+/g, ' ').slice(0, 80);
        if (t && visible(h)) lines.push(`${h.tagName.toLowerCase()} "${t}"`);
    });
    let count = 0;
    for (const el of document.querySelectorAll(sel)) {
        if (count >= limit) break;
        if (!visible(el)) continue;
        const tag = el.tagName.toLowerCase();
        const text = (el.innerText || el.value || el.getAttribute('aria-label') || '')
            .trim().replace(/\\s+/g, ' ').slice(0, 60);
        const attrs = [];
        if (el.id) attrs.push(`#${el.id}`);
        for (const a of ['name', 'type', 'role', 'placeholder', 'href', 'aria-expanded']) {
            const v = el.getAttribute(a);
            if (v) attrs.push(`${a}="${v.slice(0, 80)}"`);
        }
        if (el.disabled) attrs.push('disabled');
        lines.push(`- ${tag}${text ? ` "${text}"` : ''} ${attrs.join(' ')}`.trimEnd());
        count++;
    }
    return lines.join('\\n');
}
"""

# Raw material for PageSnapshot; hashing happens on the Python side.
_PAGE_STATE_JS = """
() => {
    const structure = [];
    const walk = (el, depth) => {
        if (depth > 12) return;
        for (const child of el.children) {
            structure.push(`${depth}:${child.tagName}`);
            walk(child, depth + 1);
        }
    };
    if (document.body) walk(document.body, 0);
    const controls = Array.from(document.querySelectorAll('input, select, textarea, [aria-expanded], [aria-pressed], [aria-checked]'))
        .map((el) => [
            el.tagName,
            el.value ?? '',
            el.checked ? '1' : '0',
            el.getAttribute('aria-expanded') ?? '',
            el.getAttribute('aria-pressed') ?? '',
            el.getAttribute('aria-checked') ?? '',
        ].join('|'));
    const dialogs = Array.from(document.querySelectorAll('dialog[open], [role=dialog], [role=alertdialog], [aria-modal=true]'))
        .filter((el) => el.getBoundingClientRect().height > 0);
    const text = document.body ? document.body.innerText || '' : '';
    return {
        url: location.href,
        structure: structure.join(','),
        text: text,
        controls: controls.join(';'),
        elementCount: document.getElementsByTagName('*').length,
        dialogCount: dialogs.length,
        scrollX: window.scrollX,
        scrollY: window.scrollY,
    };
}
"""

_ELEMENT_META_JS = """
(el) => ({
    href: el.getAttribute('href'),
    ariaExpanded: el.getAttribute('aria-expanded'),
    ariaPressed: el.getAttribute('aria-pressed'),
    ariaChecked: el.getAttribute('aria-checked'),
    dataState: el.getAttribute('data-state'),
    className: el.getAttribute('class'),
})
"""

_LINKS_JS = """
() => Array.from(document.querySelectorAll('a[href]'))
    .map((a) => ({href: a.href, text: (a.textContent || '').trim().slice(0, 100)}))
"""

_STABILITY_JS = """
([windowMs, maxMs]) => new Promise((resolve) => {
    let timer = null;
    const done = () => { observer.disconnect(); clearTimeout(cap); resolve(true); };
    const observer = new MutationObserver(() => {
        clearTimeout(timer);
        timer = setTimeout(done, windowMs);
    });
    observer.observe(document, {subtree: true, childList: true, attributes: true, characterData: true});
    timer = setTimeout(done, windowMs);
    const cap = setTimeout(() => { observer.disconnect(); clearTimeout(timer); resolve(false); }, maxMs);
})
"""


def _digest(value: str) -> str:
    return hashlib.sha256(value.encode()).hexdigest()[:16]


def is_retryable_error(error: Exception) -> bool:
    """True for timeouts, network failures and torn-down navigation targets."""
    msg = str(error).lower()
    return any(marker in msg for marker in _RETRYABLE_MARKERS)


def normalize_selector(selector: str) -> str:
    """Map the shorthand selector forms the agent may produce onto Playwright selectors.

    ``text:Foo`` and ``label:Foo`` become ``text=Foo``; ``a:Foo`` and
    ``button:Foo`` become ``:has-text`` selectors. Everything else passes through.
    """
    if selector.startswith("@e"):
        raise ValueError(
            f'Element refs like "{selector}" are not supported. Use text or CSS selectors instead.'
        )
    if selector.startswith("text:"):
        return f"text={selector[5:]}"
    if selector.startswith("label:"):
        return f"text={selector[6:]}"
    if selector.startswith("a:") and not selector.startswith("a:has"):
        return f'a:has-text("{selector[2:]}")'
    if selector.startswith("button:") and not selector.startswith("button:has"):
        return f'button:has-text("{selector[7:]}")'
    return selector


class AgentBrowser:
    """A single browser session used by the agent loop, discovery and probes.

    The browser is launched lazily on the first call that needs a page, so
    constructing one is free.
    """

    def __init__(
        self,
        headless: bool = True,
        timeout: int = 60000,
        navigation_timeout: int = 45000,
        action_timeout: int = 15000,
        max_retries: int = 3,
        retry_delay_ms: int = 1000,
        viewport: Optional[dict] = None,
    ):
        self.headless = headless
        self.timeout = timeout
        self.navigation_timeout = navigation_timeout
        self.action_timeout = action_timeout
        self.max_retries = max_retries
        self.retry_delay_ms = retry_delay_ms
        self.viewport = dict(viewport or DEFAULT_VIEWPORT)
        self._playwright: Optional[Playwright] = None
        self._browser: Optional[Browser] = None
        self._context: Optional[BrowserContext] = None
        self._page: Optional[Page] = None

    async def _ensure_page(self) -> Page:
        if self._page is None:
            self._playwright = await async_playwright().start()
            self._browser = await launch_stealth_browser(self._playwright, headless=self.headless)
            self._context = await create_stealth_context(self._browser, viewport=self.viewport)
            self._context.set_default_timeout(self.timeout)
            self._context.set_default_navigation_timeout(self.navigation_timeout)
            self._page = await self._context.new_page()
        return self._page

    async def _with_retry(self, label: str, operation, retries: Optional[int] = None) -> Any:
        """Retry transient failures with exponential backoff (1s, 2s, 4s)."""
        attempts = self.max_retries if retries is None else retries
        last_error: Optional[Exception] = None
        for attempt in range(attempts + 1):
            try:
                return await operation()
            except Exception as e:
                last_error = e
                if not is_retryable_error(e) or attempt >= attempts:
                    raise
                delay = self.retry_delay_ms * (2 ** attempt)
                logger.debug("%s retry %d/%d after %dms: %s", label, attempt + 1, attempts, delay, e)
                await asyncio.sleep(delay / 1000)
        raise last_error  # pragma: no cover

    async def get_playwright_page(self) -> Page:
        return await self._ensure_page()

    async def open(self, url: str) -> None:
        page = await self._ensure_page()
        await self._with_retry(
            f"open {url}",
            lambda: page.goto(url, wait_until="domcontentloaded", timeout=self.navigation_timeout),
        )

    async def snapshot(self) -> str:
        page = await self._ensure_page()
        return await self._with_retry(
            "snapshot", lambda: page.evaluate(_SNAPSHOT_JS, SNAPSHOT_ELEMENT_LIMIT),
        )

    async def click(self, selector: str) -> None:
        page = await self._ensure_page()
        target = normalize_selector(selector)
        await self._with_retry(
            f"click {selector}",
            lambda: page.locator(target).first.click(timeout=self.action_timeout),
            retries=1,
        )

    async def fill(self, selector: str, text: str) -> None:
        page = await self._ensure_page()
        target = normalize_selector(selector)
        await self._with_retry(
            f"fill {selector}",
            lambda: page.locator(target).first.fill(text, timeout=self.action_timeout),
            retries=1,
        )

    async def hover(self, selector: str) -> None:
        page = await self._ensure_page()
        target = normalize_selector(selector)
        await page.locator(target).first.hover(timeout=self.action_timeout)

    async def press(self, key: str) -> None:
        page = await self._ensure_page()
        await page.keyboard.press(key)

    async def screenshot(self, path: str) -> None:
        page = await self._ensure_page()
        Path(path).parent.mkdir(parents=True, exist_ok=True)
        await self._with_retry("screenshot", lambda: page.screenshot(path=path), retries=2)

    async def take_page_snapshot(self) -> PageSnapshot:
        page = await self._ensure_page()
        raw = await page.evaluate(_PAGE_STATE_JS)
        return PageSnapshot(
            url=raw["url"],
            dom_hash=_digest(raw["structure"]),
            visible_text_hash=_digest(raw["text"]),
            interactive_state_hash=_digest(raw["controls"]),
            element_count=raw["elementCount"],
            text_length=len(raw["text"]),
            dialog_count=raw["dialogCount"],
            scroll_x=raw["scrollX"],
            scroll_y=raw["scrollY"],
            timestamp=int(time.time() * 1000),
        )

    async def get_element_meta(self, selector: str) -> Optional[ElementMeta]:
        """Attributes used to tell in-place toggles apart from dead clicks."""
        page = await self._ensure_page()
        locator = page.locator(normalize_selector(selector)).first
        if await locator.count() == 0:
            return None
        data = await locator.evaluate(_ELEMENT_META_JS)
        return ElementMeta.model_validate(data)

    async def eval_json(self, script: str) -> Any:
        """Evaluate a JS expression in the page and return its JSON value."""
        page = await self._ensure_page()
        result = await page.evaluate(script)
        if isinstance(result, str):
            try:
                return json.loads(result)
            except json.JSONDecodeError:
                return result
        return result

    async def set_viewport_size(self, width: int, height: int) -> None:
        page = await self._ensure_page()
        self.viewport = {"width": width, "height": height}
        await page.set_viewport_size(self.viewport)

    async def wait_for_stability(self, window_ms: int = 300, max_ms: int = 3000) -> bool:
        """Wait until the DOM has been quiet for *window_ms*. False when *max_ms* elapsed first."""
        page = await self._ensure_page()
        try:
            await page.wait_for_load_state("domcontentloaded", timeout=max_ms)
            return await page.evaluate(_STABILITY_JS, [window_ms, max_ms])
        except Exception as e:
            logger.debug("Stability wait interrupted: %s", e)
            return False

    async def get_links(self) -> list[LinkInfo]:
        page = await self._ensure_page()
        try:
            raw = await page.evaluate(_LINKS_JS)
        except Exception as e:
            logger.debug("Link extraction failed: %s", e)
            return []
        return [LinkInfo(href=item["href"], text=item.get("text", "")) for item in raw]

    async def fetch_text(self, url: str) -> Optional[str]:
        """GET *url* through the browser context. None for non-2xx responses."""
        await self._ensure_page()
        response = await self._context.request.get(url, timeout=self.navigation_timeout)
        try:
            if not response.ok:
                return None
            return await response.text()
        finally:
            await response.dispose()

    async def close(self) -> None:
        if self._context:
            await self._context.close()
        if self._browser:
            await self._browser.close()
        if self._playwright:
            await self._playwright.stop()
        self._page = None
        self._context = None
        self._browser = None
        self._playwright = None


def create_agent_browser(config) -> AgentBrowser:
    """Build an AgentBrowser from a ValidationConfig."""
    return AgentBrowser(
        headless=config.headless,
        timeout=config.browser_timeout,
        navigation_timeout=config.navigation_timeout,
        action_timeout=config.action_timeout,
    )
