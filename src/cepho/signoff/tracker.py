"""Sign-off Tracker: sign-off blocks and the document status lifecycle.

Lifecycle: draft -> pending_review -> approved -> final.

Invariants:
- Transitions only move forward; skipping forward is allowed
- A final document never changes status again
- Status changes return a new DocumentMetadata copy with a bumped updated_at
- sign_off is pure construction: a block with a failed QA result is legal
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import UTC, datetime

from cepho.models.documents import (
    Classification,
    DocumentMetadata,
    DocumentStatus,
    QACheckResult,
    SignOffBlock,
    format_long_date,
)


class SignOffError(Exception):
    """Base class for lifecycle errors."""

    def __init__(self, message: str, code: str) -> None:
        super().__init__(message)
        self.message = message
        self.code = code


class InvalidStatusTransitionError(SignOffError):
    """Raised when a status change would not move the document forward."""

    def __init__(self, current: DocumentStatus, target: DocumentStatus) -> None:
        super().__init__(
            f"Cannot move document from '{current.value}' to '{target.value}': "
            "status only moves forward",
            code="INVALID_STATUS_TRANSITION",
        )
        self.current = current
        self.target = target


class DocumentFinalizedError(SignOffError):
    """Raised on any status change of a final document."""

    def __init__(self, document_id: str, target: DocumentStatus) -> None:
        super().__init__(
            f"Document {document_id} is final; cannot move it to '{target.value}'",
            code="DOCUMENT_FINALIZED",
        )
        self.document_id = document_id
        self.target = target


def _utc_now() -> datetime:
    return datetime.now(UTC)


def sign_off(
    status: DocumentStatus,
    classification: Classification,
    qa_result: QACheckResult,
    *,
    document_id: str | None = None,
    clock: Callable[[], datetime] | None = None,
) -> SignOffBlock:
    """Build a sign-off block for a QA pass.

    Args:
        status: Status the document is signed off at.
        classification: Confidentiality label.
        qa_result: The QA result this block attests.
        document_id: Document the block belongs to (required for the ledger).
        clock: UTC clock override.

    Returns:
        A new immutable SignOffBlock.
    """
    now = (clock or _utc_now)()
    return SignOffBlock(
        date=format_long_date(now),
        status=status,
        classification=classification,
        qa_result=qa_result,
        document_id=document_id,
        signed_at=now,
    )


def can_transition(current: DocumentStatus, target: DocumentStatus) -> bool:
    """Return True if current -> target is a legal status change."""
    return current is not DocumentStatus.FINAL and target > current


def advance_status(
    metadata: DocumentMetadata,
    target: DocumentStatus,
    *,
    clock: Callable[[], datetime] | None = None,
) -> DocumentMetadata:
    """Move a document forward in its lifecycle.

    Args:
        metadata: Current metadata.
        target: Target status; must be strictly after the current one.
        clock: UTC clock override.

    Returns:
        New metadata copy with status=target and a bumped updated_at.

    Raises:
        DocumentFinalizedError: If the document is already final.
        InvalidStatusTransitionError: If target is at or behind the current status.
    """
    if metadata.status is DocumentStatus.FINAL:
        raise DocumentFinalizedError(metadata.id, target)
    if not can_transition(metadata.status, target):
        raise InvalidStatusTransitionError(metadata.status, target)

    now = max((clock or _utc_now)(), metadata.updated_at)
    return metadata.model_copy(update={"status": target, "updated_at": now})
