"""Action runner: translates agent actions into AgentBrowser calls."""

from __future__ import annotations

import logging
from typing import Optional
from urllib.parse import urlparse

from src.browser.agent_browser import AgentBrowser
from src.errors import ActionError
from src.models.test_plan import AgentAction

logger = logging.getLogger(__name__)


def _hostname(url: str) -> Optional[str]:
    try:
        return urlparse(url).hostname
    except ValueError:
        return None


def is_in_domain(hostname: str, target_domain: str) -> bool:
    """Same host, or a subdomain of it."""
    return hostname == target_domain or hostname.endswith(f".{target_domain}")


def _require_selector(action: AgentAction) -> str:
    if not action.selector:
        raise ActionError(f"{action.type} requires a selector", action_type=action.type)
    return action.selector


async def execute_action(browser: AgentBrowser, action: AgentAction, target_domain: str) -> None:
    """Execute one non-terminal agent action.

    Clicks on links to other domains are skipped (the link exists, the agent
    simply does not leave the site); explicit navigation elsewhere raises.
    """
    logger.debug("Running action: %s | selector=%s | value=%s",
                 action.type, action.selector, action.value)

    match action.type:
        case "click":
            selector = _require_selector(action)
            try:
                meta = await browser.get_element_meta(selector)
            except Exception as e:
                logger.debug("Element meta unavailable for %s: %s", selector, e)
                meta = None
            if meta and meta.href:
                link_host = _hostname(meta.href)
                if link_host and not is_in_domain(link_host, target_domain):
                    logger.debug("Skipping click on external link %s", meta.href)
                    return
            await browser.click(selector)

        case "fill":
            await browser.fill(_require_selector(action), action.value or "")

        case "press":
            await browser.press(action.value or "Enter")

        case "hover":
            await browser.hover(_require_selector(action))

        case "scroll":
            await browser.press("PageUp" if action.value == "up" else "PageDown")

        case "navigate":
            if not action.value:
                raise ActionError("navigate requires a URL", action_type="navigate")
            host = _hostname(action.value)
            if host and not is_in_domain(host, target_domain):
                raise ActionError(
                    f"Cannot navigate to external domain: {host}. Stay on {target_domain}",
                    action_type="navigate",
                )
            await browser.open(action.value)

        case "wait" | "assert":
            # Stability wait follows every action; assertions are judged from the next observation.
            pass

        case _:
            raise ActionError(f"Unknown action type: {action.type}", action_type=action.type)


def format_action(action: AgentAction) -> str:
    """Render an action the way the agent history shows it, e.g. ``click(#save)``."""
    match action.type:
        case "click" | "hover":
            return f"{action.type}({action.selector})"
        case "fill":
            return f'fill({action.selector}, "{action.value}")'
        case "press" | "scroll" | "navigate" | "wait" | "assert":
            return f"{action.type}({action.value})"
        case _:
            return action.type
