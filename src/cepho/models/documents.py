"""CEPHO Document Domain Models

Pydantic models for generated documents, their scoring matrices, QA results
and sign-off records.

Invariants:
- All records are frozen; lifecycle changes produce new copies
- DocumentMetadata.updated_at is never earlier than created_at
- QACheckResult.passed is derived from the six checks, never stored
- ScoringMatrixEntry.weighted_score is derived from score and weight
"""

from __future__ import annotations

from datetime import datetime
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, computed_field, model_validator

SYSTEM_IDENTITY = "CEPHO.AI"
REVIEWER_IDENTITY = "Chief of Staff"
INITIAL_VERSION = "1.0"


class DocumentType(StrEnum):
    """Supported document kinds. Each kind has a fixed ID prefix."""

    EXECUTIVE_SUMMARY = "executive_summary"
    INNOVATION_BRIEF = "innovation_brief"
    FULL_REPORT = "full_report"
    INVESTMENT_ANALYSIS = "investment_analysis"
    STRATEGIC_ASSESSMENT = "strategic_assessment"
    PROJECT_GENESIS = "project_genesis"
    DAILY_BRIEF = "daily_brief"
    EVENING_REVIEW = "evening_review"

    @property
    def prefix(self) -> str:
        """Two-letter prefix used in document IDs."""
        return _TYPE_PREFIXES[self]

    @property
    def label(self) -> str:
        """Human-readable name, e.g. 'Executive Summary'."""
        return self.value.replace("_", " ").title()


_TYPE_PREFIXES: dict[DocumentType, str] = {
    DocumentType.EXECUTIVE_SUMMARY: "ES",
    DocumentType.INNOVATION_BRIEF: "IB",
    DocumentType.FULL_REPORT: "FR",
    DocumentType.INVESTMENT_ANALYSIS: "IA",
    DocumentType.STRATEGIC_ASSESSMENT: "SA",
    DocumentType.PROJECT_GENESIS: "PG",
    DocumentType.DAILY_BRIEF: "DB",
    DocumentType.EVENING_REVIEW: "ER",
}


class _RankedEnum(StrEnum):
    """StrEnum ordered by declaration order instead of by string value."""

    @property
    def rank(self) -> int:
        return list(type(self)).index(self)

    def __lt__(self, other: Any) -> bool:
        if not isinstance(other, type(self)):
            return NotImplemented
        return self.rank < other.rank

    def __le__(self, other: Any) -> bool:
        if not isinstance(other, type(self)):
            return NotImplemented
        return self.rank <= other.rank

    def __gt__(self, other: Any) -> bool:
        if not isinstance(other, type(self)):
            return NotImplemented
        return self.rank > other.rank

    def __ge__(self, other: Any) -> bool:
        if not isinstance(other, type(self)):
            return NotImplemented
        return self.rank >= other.rank

    @property
    def label(self) -> str:
        """Capitalised display form, e.g. 'Confidential'."""
        return self.value.replace("_", " ").capitalize()


class Classification(_RankedEnum):
    """Confidentiality label: public < internal < confidential < restricted."""

    PUBLIC = "public"
    INTERNAL = "internal"
    CONFIDENTIAL = "confidential"
    RESTRICTED = "restricted"


class DocumentStatus(_RankedEnum):
    """Document lifecycle: draft -> pending_review -> approved -> final."""

    DRAFT = "draft"
    PENDING_REVIEW = "pending_review"
    APPROVED = "approved"
    FINAL = "final"


class DocumentMetadata(BaseModel):
    """Identity and lifecycle record for a single generated document."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., min_length=1, description="Globally unique document ID")
    title: str = Field(..., description="Document title")
    type: DocumentType = Field(..., description="Document kind")
    version: str = Field(default=INITIAL_VERSION, description="Document version")
    author: str = Field(default=SYSTEM_IDENTITY, description="Authoring system identity")
    classification: Classification = Field(..., description="Confidentiality label")
    status: DocumentStatus = Field(default=DocumentStatus.DRAFT, description="Lifecycle status")
    created_at: datetime = Field(..., description="Creation timestamp")
    updated_at: datetime = Field(..., description="Last lifecycle change timestamp")

    @model_validator(mode="after")
    def _updated_not_before_created(self) -> DocumentMetadata:
        if self.updated_at < self.created_at:
            raise ValueError(
                f"updated_at ({self.updated_at.isoformat()}) precedes "
                f"created_at ({self.created_at.isoformat()})"
            )
        return self


class ScoringMatrixEntry(BaseModel):
    """One evaluated dimension of a scoring matrix."""

    model_config = ConfigDict(frozen=True)

    dimension: str = Field(..., min_length=1, description="Dimension label")
    score: float = Field(..., ge=0.0, le=100.0, description="Score 0-100")
    weight: float = Field(..., ge=0.0, description="Weight as a percentage")
    assessment: str = Field(default="", description="Free-text assessment")

    @computed_field  # type: ignore[prop-decorator]
    @property
    def weighted_score(self) -> float:
        """score * weight / 100."""
        return self.score * self.weight / 100.0


class ScoreRating(BaseModel):
    """One band of the fixed scoring scale."""

    model_config = ConfigDict(frozen=True)

    rating: str
    low: int
    high: int
    colour: str
    meaning: str

    def contains(self, score: float) -> bool:
        """Return True if score lies within this band (inclusive)."""
        return self.low <= score <= self.high


class QACheckResult(BaseModel):
    """Output of one QA pass over a composed document."""

    model_config = ConfigDict(frozen=True)

    brand_compliance: bool
    content_quality: bool
    accuracy: bool
    completeness: bool
    formatting: bool
    classification: bool
    issues: tuple[str, ...] = ()
    recommendations: tuple[str, ...] = ()

    @computed_field  # type: ignore[prop-decorator]
    @property
    def passed(self) -> bool:
        """AND of all six checks."""
        return all(self.checks.values())

    @property
    def checks(self) -> dict[str, bool]:
        """The six checks keyed by field name, in a fixed order."""
        return {name: getattr(self, name) for name in QA_CHECK_FIELDS}

    @property
    def failed_checks(self) -> list[str]:
        """Names of checks that did not pass."""
        return [name for name, ok in self.checks.items() if not ok]


QA_CHECK_FIELDS: tuple[str, ...] = (
    "brand_compliance",
    "content_quality",
    "accuracy",
    "completeness",
    "formatting",
    "classification",
)


class SignOffBlock(BaseModel):
    """Immutable attestation pairing a QA result with status and classification."""

    model_config = ConfigDict(frozen=True)

    prepared_by: str = Field(default=SYSTEM_IDENTITY)
    reviewed_by: str = Field(default=REVIEWER_IDENTITY)
    date: str = Field(..., description="en-GB long date, e.g. '17 October 2026'")
    status: DocumentStatus
    classification: Classification
    qa_result: QACheckResult
    document_id: str | None = Field(default=None, description="Document this block attests")
    signed_at: datetime = Field(..., description="UTC timestamp of the sign-off")


def format_long_date(moment: datetime) -> str:
    """Format a timestamp as an en-GB long date ('07 March 2026')."""
    return moment.strftime("%d %B %Y")
