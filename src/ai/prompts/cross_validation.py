"""System prompts for cross-validating execution evidence against requirements."""

from __future__ import annotations

from src.models.test_result import TestExecutionSummary
from src.models.validation import Requirement, RubricCriterion

MAX_SCENARIOS_IN_PROMPT = 20
MAX_STEPS_PER_SCENARIO_IN_PROMPT = 6
MAX_TOTAL_STEPS_IN_PROMPT = 120
MAX_ERRORS_IN_PROMPT = 30
MAX_SCREENSHOTS_IN_PROMPT = 80

CROSS_VALIDATION_SYSTEM_PROMPT = """You are a QA analyst judging test evidence against written requirements. Decide for every requirement whether the evidence shows it passed, partially passed, failed, or was never exercised.

CRITICAL: Return ONLY valid JSON. No markdown fences, no comments, no text before or after the JSON object.

Return exactly this JSON structure:

{
  "results": [
    {
      "requirementId": "REQ-001",
      "status": "pass",
      "score": 90,
      "evidence": ["/tmp/shots/scenario-login-step-2.png"],
      "reasoning": "The login form accepted valid credentials and the dashboard heading appeared."
    }
  ]
}

Status and score bands:
- pass: pass condition clearly met (80-100)
- partial: core behavior works but with gaps or issues (40-79)
- fail: fail condition applies (0-39)
- not_tested: nothing in the evidence exercised this requirement (score 0)

Guidelines:
- Return a result for EVERY requirement listed.
- Cite only screenshot paths that appear in the evidence; use [] when none apply.
- Deterministic probe results are measurements, not opinions: prefer them over scenario narratives for keyboard, layout, performance and accessibility requirements.
- Reasoning must name the UI elements observed and compare them to the acceptance criteria."""


def _format_requirements(requirements: list[Requirement], criteria: list[RubricCriterion]) -> str:
    by_id = {c.requirement_id: c for c in criteria}
    blocks = []
    for r in requirements:
        criterion = by_id.get(r.id)
        accept = "\n".join(f"  - {c}" for c in r.acceptance_criteria)
        blocks.append(
            f"### {r.id}: {r.summary}\n"
            f"- Acceptance Criteria:\n{accept}\n"
            f"- Pass Condition: {criterion.pass_condition if criterion else 'N/A'}\n"
            f"- Fail Condition: {criterion.fail_condition if criterion else 'N/A'}"
        )
    return "\n\n".join(blocks)


def _format_scenarios(summary: TestExecutionSummary) -> str:
    if not summary.scenario_runs:
        return ""
    blocks = []
    for run in summary.scenario_runs[:MAX_SCENARIOS_IN_PROMPT]:
        req_ids = f" [Requirements: {', '.join(run.requirement_ids)}]" if run.requirement_ids else ""
        steps = "\n".join(
            f"  {i + 1}. {s.action} → {'OK' if s.success else 'FAIL'}"
            + (f" ({s.error})" if s.error else "")
            for i, s in enumerate(run.steps[:MAX_STEPS_PER_SCENARIO_IN_PROMPT])
        )
        blocks.append(
            f"### {run.scenario_id}: {run.title}{req_ids}\n"
            f"Status: {run.status}\nSummary: {run.summary}\n{steps}"
        )
    return "\n## Scenario Results\n" + "\n\n".join(blocks)


def _format_probes(summary: TestExecutionSummary) -> str:
    if not summary.probe_results:
        return ""
    lines = []
    for probe in summary.probe_results:
        lines.append(f"### {probe.id} ({probe.kind}): {probe.status}")
        lines.append(probe.summary)
        if probe.covered_requirement_ids:
            lines.append(f"- Requirements: {', '.join(probe.covered_requirement_ids)}")
        if probe.metrics:
            lines.append("- Metrics: " + ", ".join(f"{k}={v}" for k, v in probe.metrics.items()))
        for finding in probe.findings or []:
            lines.append(f"- {finding}")
        if probe.evidence:
            lines.append(f"- Evidence: {', '.join(probe.evidence)}")
    return "\n## Deterministic Probe Results\n" + "\n".join(lines)


def build_cross_validation_prompt(
    requirements: list[Requirement],
    criteria: list[RubricCriterion],
    summary: TestExecutionSummary,
) -> str:
    """Build the user message for cross-validation, capping every evidence list."""
    steps_text = "\n".join(
        f"{i + 1}. {s.type}"
        + (f' on "{s.selector}"' if s.selector else "")
        + f" → {s.result}"
        + (f" [screenshot: {s.screenshot}]" if s.screenshot else "")
        for i, s in enumerate(summary.steps_executed[:MAX_TOTAL_STEPS_IN_PROMPT])
    )
    errors_text = ""
    if summary.errors:
        errors_text = "\n## Errors Encountered\n" + "\n".join(
            f"- {e}" for e in summary.errors[:MAX_ERRORS_IN_PROMPT]
        )
    screenshots = list(dict.fromkeys(summary.screenshots))[:MAX_SCREENSHOTS_IN_PROMPT]

    return (
        f"## Requirements to Validate\n{_format_requirements(requirements, criteria)}\n\n"
        "## Test Execution Summary\n"
        f"Pages visited: {', '.join(summary.pages_visited)}\n"
        f"Screenshots captured: {', '.join(screenshots)}\n\n"
        f"## Steps Executed\n{steps_text}\n"
        f"{_format_scenarios(summary)}\n"
        f"{_format_probes(summary)}\n"
        f"{errors_text}\n\n"
        "## Task\n"
        "For each requirement decide status, score, evidence and reasoning. Consider whether "
        "execution covered it at all, whether acceptance criteria were demonstrably met, and "
        "whether errors affected it.\n\n"
        "Return ONLY the JSON object."
    )
