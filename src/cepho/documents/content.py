"""Structured content payloads accepted by the document composer.

One payload type per template:
- ExecutiveSummaryContent: executive_summary
- InnovationBriefContent: innovation_brief
- ReportContent: every other document type
"""

from __future__ import annotations

from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field


class ExecutiveSummaryContent(BaseModel):
    """Content of a two-page Executive Summary."""

    model_config = ConfigDict(frozen=True)

    title: str = Field(..., min_length=1)
    overview: str = Field(..., description="Executive summary paragraph")
    key_findings: list[str] = Field(default_factory=list)
    recommendations: list[str] = Field(default_factory=list)
    next_steps: list[str] = Field(default_factory=list)


class ExpertViewpoint(BaseModel):
    """One expert panel member's view on an assessment."""

    model_config = ConfigDict(frozen=True)

    expert_name: str
    role: str
    viewpoint: str
    score: float = Field(..., ge=0.0, le=100.0)
    recommendation: str = Field(..., description="e.g. 'proceed_with_caution'")


class StrategicAssessment(BaseModel):
    """One strategic assessment of an idea."""

    model_config = ConfigDict(frozen=True)

    type: str = Field(..., description="Assessment kind, e.g. 'market_analysis'")
    score: float = Field(..., ge=0.0, le=100.0)
    findings: str
    expert_viewpoints: list[ExpertViewpoint] = Field(default_factory=list)


class InvestmentScenario(BaseModel):
    """One investment scenario row."""

    model_config = ConfigDict(frozen=True)

    name: str
    amount: float = Field(..., ge=0.0, description="Investment in GBP")
    projected_return: str
    risk_level: str
    timeline: str


class Decision(StrEnum):
    """Final recommendation decision for an innovation brief."""

    PROCEED = "proceed"
    REFINE = "refine"
    PIVOT = "pivot"
    REJECT = "reject"


class FinalRecommendation(BaseModel):
    """Decision, rationale and next steps closing an innovation brief."""

    model_config = ConfigDict(frozen=True)

    decision: Decision
    rationale: str
    next_steps: list[str] = Field(default_factory=list)


class Idea(BaseModel):
    """The idea an innovation brief assesses."""

    model_config = ConfigDict(frozen=True)

    title: str = Field(..., min_length=1)
    description: str
    source: str


class InnovationBriefContent(BaseModel):
    """Content of a five-page Innovation Brief."""

    model_config = ConfigDict(frozen=True)

    idea: Idea
    assessments: list[StrategicAssessment] = Field(default_factory=list)
    investment_scenarios: list[InvestmentScenario] = Field(default_factory=list)
    final_recommendation: FinalRecommendation

    @property
    def title(self) -> str:
        return f"Innovation Brief: {self.idea.title}"


class ReportSection(BaseModel):
    """A titled free-text section of a generic report."""

    model_config = ConfigDict(frozen=True)

    heading: str = Field(..., min_length=1)
    body: str = ""
    bullets: list[str] = Field(default_factory=list)


class ReportContent(BaseModel):
    """Content of a generic report (full report, daily brief, ...)."""

    model_config = ConfigDict(frozen=True)

    title: str = Field(..., min_length=1)
    summary: str
    sections: list[ReportSection] = Field(default_factory=list)
    recommendations: list[str] = Field(default_factory=list)
    next_steps: list[str] = Field(default_factory=list)


DocumentContent = ExecutiveSummaryContent | InnovationBriefContent | ReportContent
