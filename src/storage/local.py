"""Local run store: one directory per run holding run.json and copied screenshots."""

from __future__ import annotations

import json
import logging
import re
import shutil
import time
from pathlib import Path
from typing import Any, Literal, Optional

from pydantic import Field

from src.models.base import CamelModel

logger = logging.getLogger(__name__)

DEFAULT_RUNS_DIR = ".ui-qa-runs"
RUN_FILE = "run.json"
SCREENSHOTS_DIR = "screenshots"

_LABEL_UNSAFE_RE = re.compile(r"[^a-zA-Z0-9]")


class ScreenshotRecord(CamelModel):
    step_index: int
    label: str
    filename: str
    local_path: str


class LocalRunData(CamelModel):
    run_id: str
    url: str
    goals: str = ""
    status: Literal["running", "completed", "failed"] = "running"
    score: Optional[int] = None
    summary: Optional[str] = None
    report: Optional[dict[str, Any]] = None
    error: Optional[str] = None
    started_at: int = 0
    completed_at: Optional[int] = None
    screenshots: list[ScreenshotRecord] = Field(default_factory=list)


def _now_ms() -> int:
    return int(time.time() * 1000)


def screenshot_filename(step_index: int, label: str) -> str:
    return f"step-{step_index:03d}-{_LABEL_UNSAFE_RE.sub('-', label)}.png"


class LocalRunStore:
    """Persists run metadata and evidence under ``{root}/{run_id}/``."""

    def __init__(self, root: str | Path = DEFAULT_RUNS_DIR):
        self.root = Path(root)

    def run_dir(self, run_id: str) -> Path:
        return self.root / run_id

    def _ensure_run_dir(self, run_id: str) -> Path:
        run_dir = self.run_dir(run_id)
        (run_dir / SCREENSHOTS_DIR).mkdir(parents=True, exist_ok=True)
        return run_dir

    def _write(self, data: LocalRunData) -> None:
        path = self._ensure_run_dir(data.run_id) / RUN_FILE
        with open(path, "w", encoding="utf-8") as f:
            json.dump(data.to_json_dict(), f, indent=2)

    def create_run(self, run_id: str, url: str, goals: str = "") -> LocalRunData:
        data = LocalRunData(run_id=run_id, url=url, goals=goals, started_at=_now_ms())
        self._write(data)
        logger.debug("Created local run %s in %s", run_id, self.run_dir(run_id))
        return data

    def get_run(self, run_id: str) -> Optional[LocalRunData]:
        path = self.run_dir(run_id) / RUN_FILE
        try:
            with open(path, encoding="utf-8") as f:
                return LocalRunData.model_validate(json.load(f))
        except FileNotFoundError:
            return None
        except (OSError, ValueError) as e:
            logger.warning("Unreadable run record %s: %s", path, e)
            return None

    def _update(self, run_id: str, **updates: Any) -> LocalRunData:
        existing = self.get_run(run_id)
        if existing is None:
            raise KeyError(f"Run {run_id} not found")
        updated = existing.model_copy(update=updates)
        self._write(updated)
        return updated

    def save_screenshot(self, run_id: str, source_path: str, step_index: int, label: str) -> dict[str, str]:
        """Copy a screenshot into the run and record it. Returns ``{"localPath": ...}``."""
        run_dir = self._ensure_run_dir(run_id)
        filename = screenshot_filename(step_index, label)
        dest = run_dir / SCREENSHOTS_DIR / filename
        shutil.copyfile(source_path, dest)

        data = self.get_run(run_id)
        if data is not None:
            data.screenshots.append(ScreenshotRecord(
                step_index=step_index, label=label, filename=filename, local_path=str(dest),
            ))
            self._write(data)
        return {"localPath": str(dest)}

    def complete_run(
        self, run_id: str, score: int, summary: str, report: Optional[dict[str, Any]] = None,
    ) -> LocalRunData:
        return self._update(
            run_id, status="completed", score=score, summary=summary,
            report=report, completed_at=_now_ms(),
        )

    def fail_run(self, run_id: str, error: str) -> LocalRunData:
        return self._update(run_id, status="failed", error=error, completed_at=_now_ms())

    def list_runs(self) -> list[LocalRunData]:
        """All readable runs, newest first."""
        if not self.root.is_dir():
            return []
        runs = [run for d in self.root.iterdir() if d.is_dir() and (run := self.get_run(d.name))]
        return sorted(runs, key=lambda r: r.started_at, reverse=True)
