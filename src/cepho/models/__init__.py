"""CEPHO Domain Models: Pydantic models for generated documents."""

from cepho.models.documents import (
    QA_CHECK_FIELDS,
    REVIEWER_IDENTITY,
    SYSTEM_IDENTITY,
    Classification,
    DocumentMetadata,
    DocumentStatus,
    DocumentType,
    QACheckResult,
    ScoreRating,
    ScoringMatrixEntry,
    SignOffBlock,
    format_long_date,
)

__all__ = [
    "QA_CHECK_FIELDS",
    "REVIEWER_IDENTITY",
    "SYSTEM_IDENTITY",
    "Classification",
    "DocumentMetadata",
    "DocumentStatus",
    "DocumentType",
    "QACheckResult",
    "ScoreRating",
    "ScoringMatrixEntry",
    "SignOffBlock",
    "format_long_date",
]
