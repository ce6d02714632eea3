"""Document Composer

Assembles a typed content payload into a canonical markdown document for
a given document type.

Contract:
- A fresh document ID and creation timestamp are captured per call; nothing
  else depends on time or the network
- The scoring section is rendered only when a non-empty matrix is supplied
- Metadata is created in status "draft"
- Invalid scoring input (empty matrix, zero weights) fails closed
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from datetime import UTC, datetime

from cepho.documents.content import (
    DocumentContent,
    ExecutiveSummaryContent,
    InnovationBriefContent,
    ReportContent,
)
from cepho.documents.ids import DocumentIdGenerator, generate_document_id
from cepho.documents.templates import (
    DocumentIdentity,
    render_executive_summary,
    render_innovation_brief,
    render_report,
)
from cepho.models.documents import (
    Classification,
    DocumentMetadata,
    DocumentStatus,
    DocumentType,
    ScoringMatrixEntry,
    format_long_date,
)

logger = logging.getLogger(__name__)

Renderer = Callable[[DocumentContent, DocumentIdentity, Sequence[ScoringMatrixEntry] | None], str]


class DocumentCompositionError(Exception):
    """Raised when a document cannot be composed from the given input."""

    def __init__(self, message: str, code: str = "COMPOSITION_ERROR") -> None:
        super().__init__(message)
        self.code = code
        self.message = message


@dataclass(frozen=True)
class ComposedDocument:
    """Composed markdown text plus its draft metadata."""

    text: str
    metadata: DocumentMetadata


@dataclass(frozen=True)
class _Template:
    content_type: type
    render: Renderer


_EXECUTIVE_SUMMARY = _Template(ExecutiveSummaryContent, render_executive_summary)
_INNOVATION_BRIEF = _Template(InnovationBriefContent, render_innovation_brief)
_REPORT = _Template(ReportContent, render_report)

TEMPLATES: dict[DocumentType, _Template] = {
    DocumentType.EXECUTIVE_SUMMARY: _EXECUTIVE_SUMMARY,
    DocumentType.INNOVATION_BRIEF: _INNOVATION_BRIEF,
    DocumentType.FULL_REPORT: _REPORT,
    DocumentType.INVESTMENT_ANALYSIS: _REPORT,
    DocumentType.STRATEGIC_ASSESSMENT: _REPORT,
    DocumentType.PROJECT_GENESIS: _REPORT,
    DocumentType.DAILY_BRIEF: _REPORT,
    DocumentType.EVENING_REVIEW: _REPORT,
}


def content_type_for(document_type: DocumentType) -> type:
    """Return the content payload class expected for a document type."""
    return TEMPLATES[document_type].content_type


def compose_document(
    document_type: DocumentType,
    content: DocumentContent,
    scoring_matrix: Sequence[ScoringMatrixEntry] | None = None,
    classification: Classification = Classification.INTERNAL,
    *,
    target_status: DocumentStatus = DocumentStatus.FINAL,
    id_generator: DocumentIdGenerator | None = None,
    clock: Callable[[], datetime] | None = None,
) -> ComposedDocument:
    """Compose a document of the given type.

    Args:
        document_type: Kind of document; selects the template.
        content: Content payload matching the template.
        scoring_matrix: Optional scoring matrix; omitted means no scoring section.
        classification: Confidentiality label.
        target_status: Status shown in the quality assurance footer.
        id_generator: ID generator override. Defaults to the process-wide one.
        clock: UTC clock override.

    Returns:
        ComposedDocument with markdown text and draft metadata.

    Raises:
        DocumentCompositionError: If the content payload does not match the type.
        EmptyScoringMatrixError: If an innovation brief has no assessments.
        DegenerateWeightsError: If the scoring matrix weights sum to zero.
    """
    template = TEMPLATES.get(document_type)
    if template is None:
        raise DocumentCompositionError(
            f"No template registered for document type '{document_type}'",
            code="UNKNOWN_DOCUMENT_TYPE",
        )
    if not isinstance(content, template.content_type):
        raise DocumentCompositionError(
            f"Document type '{document_type.value}' requires "
            f"{template.content_type.__name__}, got {type(content).__name__}",
            code="CONTENT_TYPE_MISMATCH",
        )

    document_id = (
        id_generator.generate(document_type)
        if id_generator is not None
        else generate_document_id(document_type)
    )
    now = (clock or _utc_now)()
    identity = DocumentIdentity(
        document_id=document_id,
        document_type=document_type,
        date=format_long_date(now),
        classification=classification,
        target_status=target_status,
    )

    text = template.render(content, identity, scoring_matrix or None)

    metadata = DocumentMetadata(
        id=document_id,
        title=content.title,
        type=document_type,
        classification=classification,
        status=DocumentStatus.DRAFT,
        created_at=now,
        updated_at=now,
    )
    logger.info(
        "Composed %s %s (%d chars, scoring=%s)",
        document_type.value,
        document_id,
        len(text),
        bool(scoring_matrix),
    )
    return ComposedDocument(text=text, metadata=metadata)


def _utc_now() -> datetime:
    return datetime.now(UTC)
