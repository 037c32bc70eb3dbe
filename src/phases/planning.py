"""Phase 5: requirement-linked scenario planning, with gap rounds for uncovered requirements."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

from src.ai.client import AIClient
from src.browser.agent_browser import AgentBrowser
from src.models.config import ValidationConfig
from src.models.site_model import SitemapResult
from src.models.test_plan import TestScenario
from src.models.validation import Requirement
from src.planner.analyzer import analyze_page
from src.planner.schema_validator import dedupe_scenario_ids, validate_scenarios
from src.validation.events import ProgressCallback, emit, emit_log, emit_phase_complete, emit_phase_start

logger = logging.getLogger(__name__)

PHASE = "planning"


def plannable_requirements(requirements: list[Requirement]) -> list[Requirement]:
    return [r for r in requirements if r.testable and r.priority != "wont"]


def requirement_goals(requirements: list[Requirement]) -> str:
    return "; ".join(f"{r.id}: {r.summary}" for r in requirements)


def covered_requirement_ids(scenarios: list[TestScenario]) -> set[str]:
    return {rid for s in scenarios for rid in (s.requirement_ids or [])}


def uncovered_requirements(requirements: list[Requirement], scenarios: list[TestScenario]) -> list[Requirement]:
    covered = covered_requirement_ids(scenarios)
    return [r for r in plannable_requirements(requirements) if r.id not in covered]


def gap_round_pages(urls: list[str], round_index: int, per_round: int) -> list[str]:
    """Pages for one gap round, rotating through *urls* so rounds look at different pages."""
    if not urls or per_round <= 0:
        return []
    count = min(per_round, len(urls))
    start = (round_index * per_round) % len(urls)
    return [urls[(start + i) % len(urls)] for i in range(count)]


class ScenarioPlanner:
    """Accumulates scenarios across page analyses up to the configured total."""

    def __init__(
        self,
        config: ValidationConfig,
        browser: AgentBrowser,
        llm: AIClient,
        screenshot_dir: str | Path,
        on_progress: Optional[ProgressCallback] = None,
    ):
        self.config = config
        self.browser = browser
        self.llm = llm
        self.screenshot_dir = screenshot_dir
        self.on_progress = on_progress
        self.scenarios: list[TestScenario] = []

    @property
    def full(self) -> bool:
        return len(self.scenarios) >= self.config.max_total_scenarios

    async def analyze(self, url: str, goals: str) -> int:
        """Analyze one page and keep what fits. Returns the number of scenarios added."""
        if self.full:
            return 0
        try:
            found = await analyze_page(
                self.browser, url, self.llm, self.screenshot_dir,
                max_scenarios=self.config.max_scenarios_per_page,
                step_limit=self.config.max_steps_per_scenario,
                goals=goals or None,
            )
        except Exception as e:
            emit_log(self.on_progress, f"Failed to analyze {url}: {e}", "warn")
            return 0

        room = self.config.max_total_scenarios - len(self.scenarios)
        taken = {s.id for s in self.scenarios}
        added = dedupe_scenario_ids(found[:room], taken)
        self.scenarios.extend(added)
        logger.debug("Page %s: %d scenarios", url, len(added))
        return len(added)


async def run_planning_phase(
    config: ValidationConfig,
    requirements: list[Requirement],
    sitemap: SitemapResult,
    browser: AgentBrowser,
    llm: AIClient,
    screenshot_dir: str | Path,
    on_progress: Optional[ProgressCallback] = None,
) -> list[TestScenario]:
    logger.info("--- Stage 5: Planning ---")
    emit_phase_start(on_progress, PHASE)
    emit_log(on_progress, "Generating requirement-linked test plan...")

    planner = ScenarioPlanner(config, browser, llm, screenshot_dir, on_progress)
    goals = requirement_goals(plannable_requirements(requirements))
    pages = [u.loc for u in sitemap.urls[:config.max_pages]] or [config.url]

    for url in pages:
        if planner.full:
            break
        await planner.analyze(url, goals)
    emit_log(on_progress, f"Generated {len(planner.scenarios)} test scenarios from {len(pages)} pages")

    for round_index in range(config.gap_rounds):
        uncovered = uncovered_requirements(requirements, planner.scenarios)
        if not uncovered or planner.full:
            break
        round_pages = gap_round_pages(pages, round_index, config.gap_pages_per_round)
        if not round_pages:
            break
        emit_log(
            on_progress,
            f"Gap round {round_index + 1}: {len(uncovered)} uncovered requirements, "
            f"analyzing {len(round_pages)} pages",
        )
        gap_goals = requirement_goals(uncovered)
        before = covered_requirement_ids(planner.scenarios)
        for url in round_pages:
            await planner.analyze(url, gap_goals)
        if covered_requirement_ids(planner.scenarios) == before:
            emit_log(on_progress, f"Gap round {round_index + 1} covered no new requirements; stopping")
            break

    scenarios = planner.scenarios
    for problem in validate_scenarios(scenarios):
        logger.warning("Scenario check: %s", problem)

    remaining = uncovered_requirements(requirements, scenarios)
    if remaining:
        emit_log(
            on_progress,
            f"{len(remaining)} requirements have no planned scenario: {', '.join(r.id for r in remaining)}",
            "warn",
        )

    emit(
        on_progress, "scenarios_planned",
        scenarios=[s.to_json_dict() for s in scenarios],
        totalCount=len(scenarios),
    )
    emit_phase_complete(on_progress, PHASE)
    return scenarios
