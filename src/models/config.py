"""Configuration models for the validation engine."""

from __future__ import annotations

import json
import os
from pathlib import Path

from pydantic import BaseModel, Field, field_validator

DEFAULT_AI_MODEL = "claude-sonnet-4-20250514"


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name, "")
    try:
        return int(raw)
    except ValueError:
        return default


def _env_bool(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None:
        return default
    return raw.strip().lower() != "false"


class ValidationConfig(BaseModel):
    # Inputs
    spec_file: str
    url: str
    output_dir: str = "./validation-reports"

    # AI settings
    ai_model: str = DEFAULT_AI_MODEL
    ai_max_tokens: int = 8000

    # Planning budgets
    max_pages: int = 50
    max_scenarios_per_page: int = 8
    max_steps_per_scenario: int = 14
    gap_rounds: int = 4  # extra planning rounds for uncovered requirements
    gap_pages_per_round: int = 3
    max_total_scenarios: int = 60

    # Execution
    parallel_browsers: int = 5
    browser_timeout: int = 60000  # ms
    navigation_timeout: int = 45000  # ms
    action_timeout: int = 15000  # ms
    headless: bool = True

    # Probes
    enable_probes: bool = True
    perf_load_budget_ms: int = 2000
    perf_ui_budget_ms: int = 100

    # Local run storage
    runs_dir: str = ".ui-qa-runs"

    @field_validator(
        "max_pages", "max_scenarios_per_page", "max_steps_per_scenario",
        "parallel_browsers", "browser_timeout", "navigation_timeout",
        "action_timeout", "max_total_scenarios",
    )
    @classmethod
    def must_be_positive(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("must be a positive integer")
        return v

    @field_validator("gap_rounds", "gap_pages_per_round")
    @classmethod
    def must_not_be_negative(cls, v: int) -> int:
        if v < 0:
            raise ValueError("must not be negative")
        return v

    @classmethod
    def from_env(cls, spec_file: str, url: str, output_dir: str = "./validation-reports") -> "ValidationConfig":
        """Build a config from environment variables, falling back to defaults."""
        return cls(
            spec_file=spec_file,
            url=url,
            output_dir=output_dir,
            ai_model=os.environ.get("AI_MODEL") or DEFAULT_AI_MODEL,
            max_pages=_env_int("MAX_PAGES", 50),
            max_scenarios_per_page=_env_int("MAX_SCENARIOS_PER_PAGE", 8),
            max_steps_per_scenario=_env_int("MAX_STEPS_PER_SCENARIO", 14),
            parallel_browsers=_env_int("PARALLEL_BROWSERS", 5),
            browser_timeout=_env_int("BROWSER_TIMEOUT", 60000),
            navigation_timeout=_env_int("NAVIGATION_TIMEOUT", 45000),
            action_timeout=_env_int("ACTION_TIMEOUT", 15000),
            gap_rounds=_env_int("VALIDATION_GAP_ROUNDS", 4),
            gap_pages_per_round=_env_int("VALIDATION_GAP_PAGES_PER_ROUND", 3),
            max_total_scenarios=_env_int("VALIDATION_MAX_TOTAL_SCENARIOS", 60),
            enable_probes=_env_bool("VALIDATION_ENABLE_PROBES", True),
            perf_load_budget_ms=_env_int("VALIDATION_PERF_LOAD_BUDGET_MS", 2000),
            perf_ui_budget_ms=_env_int("VALIDATION_PERF_UI_BUDGET_MS", 100),
        )

    @property
    def scenario_timeout_ms(self) -> int:
        """Per-scenario deadline: four browser timeouts, never under three minutes."""
        return max(4 * self.browser_timeout, 180_000)

    @classmethod
    def load(cls, path: str | Path) -> "ValidationConfig":
        """Load config from a JSON file."""
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Config file not found: {path}")
        with open(path) as f:
            data = json.load(f)
        return cls(**data)

    def save(self, path: str | Path) -> None:
        """Save config to a JSON file."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w") as f:
            json.dump(self.model_dump(), f, indent=2)
