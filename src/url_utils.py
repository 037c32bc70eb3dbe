"""Shared URL utilities: dedupe keys, host checks and public-page filtering."""

from __future__ import annotations

from urllib.parse import urlparse

# Pages that need an account, are machine endpoints, or are not HTML.
NON_PUBLIC_PATTERNS = (
    "/login", "/signin", "/signup", "/register",
    "/auth", "/oauth", "/sso",
    "/admin", "/dashboard", "/account", "/profile", "/settings",
    "/api/", "/webhook", "/callback",
    "/logout", "/signout",
    ".pdf", ".jpg", ".png", ".gif", ".svg", ".xml", ".json",
)


def dedupe_key(url: str) -> str:
    """Normalize a URL for deduplication: no fragment, no trailing slash, sorted query."""
    parsed = urlparse(url)
    path = parsed.path.rstrip("/") or "/"
    query = ""
    if parsed.query:
        params = sorted(parsed.query.split("&"))
        query = "?" + "&".join(params)
    return f"{parsed.scheme}://{parsed.netloc}{path}{query}"


def site_root(url: str) -> str:
    return url.rstrip("/")


def same_host(url: str, base_url: str) -> bool:
    try:
        host = urlparse(url).hostname
    except ValueError:
        return False
    return host is not None and host == urlparse(base_url).hostname


def is_public_page(url: str, base_url: str) -> bool:
    """Same host as *base_url*, http(s), and not an auth/admin/API/asset path."""
    try:
        parsed = urlparse(url)
    except ValueError:
        return False
    if parsed.scheme not in ("http", "https") or not same_host(url, base_url):
        return False
    path = parsed.path.lower()
    return not any(pattern in path for pattern in NON_PUBLIC_PATTERNS)
