"""Browser stealth utilities: reduces bot detection signals in Playwright."""

from __future__ import annotations

from typing import Optional

from playwright.async_api import Browser, BrowserContext, Playwright

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) "
    "AppleWebKit/537.36 (KHTML, like Gecko) "
    "Chrome/122.0.0.0 Safari/537.36"
)

LAUNCH_ARGS = [
    "--disable-blink-features=AutomationControlled",
    "--disable-dev-shm-usage",
]

_STEALTH_INIT_SCRIPT = """
Object.defineProperty(navigator, 'webdriver', { get: () => false });

Object.defineProperty(navigator, 'languages', {
    get: () => ['en-US', 'en'],
});

// Headless Chrome exposes no plugins
Object.defineProperty(navigator, 'plugins', {
    get: () => {
        const plugins = [
            { name: 'Chrome PDF Plugin', filename: 'internal-pdf-viewer' },
            { name: 'Chrome PDF Viewer', filename: 'mhjfbmdgcfjbbpaeojofohoefgiehjai' },
        ];
        plugins.length = 2;
        return plugins;
    },
});

if (!window.chrome) {
    window.chrome = { runtime: {} };
}
"""


async def launch_stealth_browser(playwright: Playwright, headless: bool = True) -> Browser:
    """Launch Chromium with automation flags suppressed."""
    return await playwright.chromium.launch(headless=headless, args=LAUNCH_ARGS)


def build_context_options(viewport: dict, user_agent: Optional[str] = None) -> dict:
    return {
        "viewport": viewport,
        "user_agent": user_agent or DEFAULT_USER_AGENT,
        "locale": "en-US",
        "extra_http_headers": {"Accept-Language": "en-US,en;q=0.9"},
        "ignore_https_errors": True,
    }


async def create_stealth_context(
    browser: Browser,
    viewport: dict,
    user_agent: Optional[str] = None,
) -> BrowserContext:
    """Create a browser context with the stealth init script installed."""
    context = await browser.new_context(**build_context_options(viewport, user_agent))
    await context.add_init_script(_STEALTH_INIT_SCRIPT)
    return context
