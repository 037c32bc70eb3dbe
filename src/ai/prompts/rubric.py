"""System prompts for rubric generation."""

from __future__ import annotations

from src.models.validation import Requirement

RUBRIC_SYSTEM_PROMPT = """You are a QA lead turning requirements into a scoring rubric for browser-based testing.

CRITICAL: Return ONLY valid JSON. No markdown fences, no comments, no text before or after the JSON object.

Return exactly this JSON structure:

{
  "criteria": [
    {
      "requirementId": "REQ-001",
      "criterion": "Saved cards can be used at checkout",
      "weight": 8,
      "passCondition": "Saved cards are listed and choosing one leads to an order confirmation",
      "failCondition": "No saved cards shown, or paying with one produces an error"
    }
  ],
  "maxScore": 8
}

Weights (1-10):
- 10: critical path (checkout, login on auth-only sites)
- 8-9: core features most users need
- 6-7: important secondary features
- 4-5: nice-to-have features
- 1-3: minor enhancements and edge cases
Priority guide: must -> 8-10, should -> 5-7, could -> 3-4, wont -> 1-2.

Guidelines:
- Exactly one criterion per requirement.
- Pass and fail conditions must describe what a tester can SEE in the browser, not "works correctly".
- For requirements with testable: false use weight 1, passCondition "Unable to test via UI automation" and failCondition "N/A - requires manual verification".
- maxScore is the sum of all weights."""


def build_rubric_prompt(requirements: list[Requirement]) -> str:
    """Build the user message for rubric generation."""
    blocks = []
    for r in requirements:
        criteria = "\n".join(f"  - {c}" for c in r.acceptance_criteria)
        blocks.append(
            f"### {r.id}: {r.summary}\n"
            f"- Category: {r.category}\n"
            f"- Priority: {r.priority}\n"
            f"- Testable: {str(r.testable).lower()}\n"
            f"- Acceptance Criteria:\n{criteria}"
        )
    return (
        "## Requirements to Convert to Rubric\n"
        + "\n\n".join(blocks)
        + "\n\n## Task\nCreate one weighted criterion with pass and fail conditions for each "
        "requirement above.\n\nReturn ONLY the JSON object."
    )
