"""Requirement, rubric, probe and traceability data structures."""

from __future__ import annotations

from typing import Literal, Optional

from pydantic import Field

from .base import CamelModel

RequirementCategory = Literal["functional", "ui", "accessibility", "performance", "security"]
RequirementPriority = Literal["must", "should", "could", "wont"]
RequirementStatus = Literal["pass", "partial", "fail", "not_tested"]
ProbeKind = Literal["keyboard", "responsive", "performance", "accessibility"]
ProbeStatus = Literal["pass", "partial", "fail", "error"]


class SourceLocation(CamelModel):
    file: str = ""
    line: Optional[int] = None
    section: Optional[str] = None


class Requirement(CamelModel):
    id: str = Field(pattern=r"^REQ-\d{3}$")
    source_location: SourceLocation = Field(default_factory=SourceLocation)
    raw_text: str = Field(min_length=1)
    summary: str = Field(min_length=1)
    category: RequirementCategory
    priority: RequirementPriority
    testable: bool
    acceptance_criteria: list[str] = Field(min_length=1)


class ExtractedRequirements(CamelModel):
    requirements: list[Requirement]


class RubricCriterion(CamelModel):
    requirement_id: str
    criterion: str = Field(min_length=1)
    weight: float = Field(ge=1, le=10)
    pass_condition: str = Field(min_length=1)
    fail_condition: str = Field(min_length=1)


class Rubric(CamelModel):
    criteria: list[RubricCriterion]
    max_score: float = Field(default=0, ge=0)  # always recomputed from weights


class RequirementResult(CamelModel):
    requirement_id: str
    status: RequirementStatus
    score: float = Field(ge=0, le=100)
    evidence: list[str] = Field(default_factory=list)
    reasoning: str = ""


class CrossValidationResults(CamelModel):
    results: list[RequirementResult]


class ValidationProbeResult(CamelModel):
    id: str
    kind: ProbeKind
    status: ProbeStatus
    summary: str
    evidence: list[str] = Field(default_factory=list)
    covered_requirement_ids: list[str] = Field(default_factory=list)
    metrics: Optional[dict[str, float]] = None
    findings: Optional[list[str]] = None


class ProbeSummary(CamelModel):
    total: int = 0
    passed: int = 0
    failed: int = 0  # fail + error


class TraceabilityReport(CamelModel):
    spec_file: str
    url: str
    requirements: list[Requirement] = Field(default_factory=list)
    rubric: Rubric
    results: list[RequirementResult] = Field(default_factory=list)
    probe_results: list[ValidationProbeResult] = Field(default_factory=list)
    probe_summary: Optional[ProbeSummary] = None
    overall_score: int = 0
    coverage_score: int = 0
    summary: str = ""
    timestamp: int = 0  # epoch ms
