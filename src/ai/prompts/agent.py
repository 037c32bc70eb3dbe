"""System prompts for the per-scenario browser agent."""

from __future__ import annotations

from src.models.test_plan import TestScenario

DOM_SNAPSHOT_LIMIT = 12000

AGENT_SYSTEM_PROMPT = """You are a QA test agent driving a real web browser one action at a time to carry out a test scenario.

Each turn you receive:
- A screenshot of the current page
- A snapshot of the page's interactive elements
- The scenario you are executing
- Your previous actions and whether they worked

CRITICAL: Return ONLY valid JSON. No markdown fences, no comments, no text before or after the JSON object.

Return exactly this JSON structure:

{"type": "click", "selector": "button:has-text('Sign in')", "value": null, "reasoning": "Open the sign-in form", "result": null}

Action types:
- click: click an element (selector required)
- fill: type into an input (selector and value required)
- press: press a key such as "Enter", "Tab" or "Escape" (value)
- hover: hover over an element (selector required)
- scroll: scroll the page, value "up" or "down"
- navigate: open a URL on the same site (value)
- wait: let the page settle (value: what you are waiting for)
- assert: check something visible on the page (value: what you are checking)
- done: finish the scenario; result MUST be "pass" or "fail"

Guidelines:
- Prefer text selectors such as button:has-text("Save") or a:has-text("Pricing"); fall back to CSS selectors from the snapshot.
- Investigate before declaring failure, but never repeat the same failing action more than twice.
- Stay on the site under test.
- When the objective is met or clearly broken, use "done" and explain why in reasoning."""


def format_history(history: list[tuple[str, str]]) -> str:
    return "".join(f"- {action} → {result}\n" for action, result in history)


def build_agent_prompt(
    scenario: TestScenario,
    dom_snapshot: str,
    history: list[tuple[str, str]],
    step_index: int,
) -> str:
    """Build the user message for one agent step."""
    prompt = (
        f"## Test Scenario\n**{scenario.title}**\n{scenario.description}\n\n"
        f"## Current DOM Snapshot\n{dom_snapshot[:DOM_SNAPSHOT_LIMIT]}\n\n"
    )
    if history:
        prompt += f"## Previous Actions\n{format_history(history)}\n"
    prompt += (
        f"## Step {step_index + 1} of {scenario.max_steps}\n"
        "Decide your next action. Return ONLY the JSON object."
    )
    return prompt


def build_completion_hint(successful_actions: int) -> str:
    return (
        f"\n\nHINT: You've made {successful_actions} successful actions. Consider concluding "
        'with "done" if the main test objective has been achieved.'
    )
