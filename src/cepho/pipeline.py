"""Document Pipeline

Orchestrates one document from structured content to a signed-off artifact:
1. Brand formatting of caller text (optional)
2. Composition (draft)
3. Submission for review (pending_review)
4. QA review
5. Sign-off at the requested status and metadata advanced to it
6. Artifact storage, then the sign-off is recorded in the ledger

Invariants:
- Audit events: document.generation.started|completed|failed,
  document.qa.completed, document.signoff.recorded
- Audit sink failure is fatal (AuditSinkError propagated)
- Domain errors propagate unchanged; anything else is wrapped in
  DocumentPipelineError(code="INTERNAL_ERROR")
- document.signoff.recorded is emitted before step 6, so any failure before
  step 6 (including that audit write) leaves no ledger entry and nothing stored
- A failed QA result does not block the requested status; it is recorded
  and surfaced through GeneratedDocument.qa_passed
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from cepho.audit.sink import (
    EVENT_GENERATION_COMPLETED,
    EVENT_GENERATION_FAILED,
    EVENT_GENERATION_STARTED,
    EVENT_QA_COMPLETED,
    EVENT_SIGNOFF_RECORDED,
    AuditSink,
    AuditSinkError,
    JsonlFileAuditSink,
    build_audit_event,
)
from cepho.brand.compliance import BrandComplianceReport, check_brand_compliance, format_for_brand
from cepho.brand.rules import BrandRules, BrandRulesError
from cepho.config import PipelineSettings
from cepho.documents.composer import DocumentCompositionError, compose_document
from cepho.documents.content import DocumentContent
from cepho.documents.ids import DocumentIdGenerator
from cepho.models.documents import (
    Classification,
    DocumentMetadata,
    DocumentStatus,
    DocumentType,
    QACheckResult,
    ScoringMatrixEntry,
    SignOffBlock,
)
from cepho.qa.backends import build_qa_llm_client
from cepho.qa.orchestrator import QAOrchestrator, QAServiceError
from cepho.scoring.engine import ScoringError
from cepho.signoff.ledger import SignOffLedger
from cepho.signoff.tracker import SignOffError, advance_status, sign_off
from cepho.storage.artifact_store import (
    ArtifactStore,
    ArtifactStoreError,
    FilesystemArtifactStore,
    StoredArtifact,
)

logger = logging.getLogger(__name__)

SIGN_OFF_STATUSES: tuple[DocumentStatus, ...] = (DocumentStatus.APPROVED, DocumentStatus.FINAL)

_DOMAIN_ERRORS = (
    ScoringError,
    DocumentCompositionError,
    QAServiceError,
    SignOffError,
    ArtifactStoreError,
    BrandRulesError,
)


class DocumentPipelineError(Exception):
    """Raised when the pipeline fails outside the known domain errors."""

    def __init__(self, message: str, code: str = "PIPELINE_ERROR") -> None:
        super().__init__(message)
        self.code = code
        self.message = message


@dataclass(frozen=True)
class GeneratedDocument:
    """A composed, reviewed and signed-off document."""

    text: str
    metadata: DocumentMetadata
    sign_off: SignOffBlock
    brand_report: BrandComplianceReport
    artifact: StoredArtifact | None = None

    @property
    def qa_result(self) -> QACheckResult:
        return self.sign_off.qa_result

    @property
    def qa_passed(self) -> bool:
        return self.sign_off.qa_result.passed

    @property
    def finalized_with_failed_qa(self) -> bool:
        """True when the document reached final although QA did not pass."""
        return self.metadata.status is DocumentStatus.FINAL and not self.qa_passed


def _format_strings(value: Any, rules: BrandRules | None) -> Any:
    if isinstance(value, str):
        return format_for_brand(value, rules)
    if isinstance(value, list):
        return [_format_strings(item, rules) for item in value]
    if isinstance(value, dict):
        return {key: _format_strings(item, rules) for key, item in value.items()}
    return value


def apply_brand_formatting(
    content: DocumentContent, rules: BrandRules | None = None
) -> DocumentContent:
    """Return a copy of a content payload with every text field brand-formatted."""
    formatted = _format_strings(content.model_dump(), rules)
    return type(content).model_validate(formatted)


class DocumentPipeline:
    """Composes, reviews, signs off and stores documents.

    Emits audit events with fatal sink behavior.
    """

    def __init__(
        self,
        *,
        orchestrator: QAOrchestrator,
        audit_sink: AuditSink,
        ledger: SignOffLedger | None = None,
        store: ArtifactStore | None = None,
        brand_rules: BrandRules | None = None,
        id_generator: DocumentIdGenerator | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        """Initialize the pipeline.

        Args:
            orchestrator: QA orchestrator used for review.
            audit_sink: Audit event sink (fail-closed on failure).
            ledger: Sign-off ledger. Defaults to a new empty ledger.
            store: Artifact store. If None, documents are not persisted.
            brand_rules: Brand rules override. Defaults to the packaged rules.
            id_generator: Document ID generator override.
            clock: UTC clock override used for all timestamps.
        """
        self._orchestrator = orchestrator
        self._audit_sink = audit_sink
        self._ledger = ledger if ledger is not None else SignOffLedger()
        self._store = store
        self._brand_rules = brand_rules
        self._id_generator = id_generator
        self._clock = clock

    @classmethod
    def from_settings(
        cls,
        settings: PipelineSettings,
        *,
        audit_sink: AuditSink | None = None,
        store: ArtifactStore | None = None,
    ) -> DocumentPipeline:
        """Build a pipeline from resolved settings.

        Raises:
            ValueError: If the anthropic backend is selected without an API key.
        """
        orchestrator = QAOrchestrator(
            build_qa_llm_client(settings.qa_backend),
            timeout_seconds=settings.qa_timeout_seconds,
            excerpt_chars=settings.qa_excerpt_chars,
        )
        return cls(
            orchestrator=orchestrator,
            audit_sink=audit_sink or JsonlFileAuditSink(settings.audit_log_path),
            store=store if store is not None else FilesystemArtifactStore(settings.artifact_dir),
        )

    @property
    def ledger(self) -> SignOffLedger:
        """The sign-off ledger this pipeline records to."""
        return self._ledger

    async def generate(
        self,
        document_type: DocumentType,
        content: DocumentContent,
        *,
        scoring_matrix: Sequence[ScoringMatrixEntry] | None = None,
        classification: Classification = Classification.INTERNAL,
        target_status: DocumentStatus = DocumentStatus.FINAL,
        brand_format: bool = True,
    ) -> GeneratedDocument:
        """Generate one document end to end.

        Args:
            document_type: Kind of document.
            content: Content payload matching the document type.
            scoring_matrix: Optional scoring matrix.
            classification: Confidentiality label.
            target_status: Status to sign off at (approved or final).
            brand_format: Brand-format caller text before composition.

        Returns:
            GeneratedDocument with text, metadata, sign-off and brand report.

        Raises:
            DocumentPipelineError: On an invalid target status or unexpected failure.
            ScoringError, DocumentCompositionError, QAServiceError, SignOffError,
            ArtifactStoreError, BrandRulesError: Propagated unchanged.
            AuditSinkError: On audit sink failure (fatal).
        """
        generation_id = str(uuid.uuid4())
        self._emit_audit(
            EVENT_GENERATION_STARTED,
            generation_id,
            None,
            document_type=document_type.value,
            classification=classification.value,
            target_status=target_status.value,
        )

        document_id: str | None = None
        try:
            if target_status not in SIGN_OFF_STATUSES:
                raise DocumentPipelineError(
                    f"Documents can only be signed off as "
                    f"{' or '.join(s.value for s in SIGN_OFF_STATUSES)}, "
                    f"got '{target_status.value}'",
                    code="INVALID_TARGET_STATUS",
                )

            if brand_format:
                content = apply_brand_formatting(content, self._brand_rules)

            composed = compose_document(
                document_type,
                content,
                scoring_matrix,
                classification,
                target_status=target_status,
                id_generator=self._id_generator,
                clock=self._clock,
            )
            document_id = composed.metadata.id
            metadata = advance_status(
                composed.metadata, DocumentStatus.PENDING_REVIEW, clock=self._clock
            )

            qa_result = await self._orchestrator.run_qa(composed.text, metadata)
            self._emit_audit(
                EVENT_QA_COMPLETED,
                generation_id,
                document_id,
                passed=qa_result.passed,
                failed_checks=qa_result.failed_checks,
                issue_count=len(qa_result.issues),
            )

            block = sign_off(
                target_status,
                classification,
                qa_result,
                document_id=document_id,
                clock=self._clock,
            )
            metadata = advance_status(metadata, target_status, clock=self._clock)

            # Audited before persisting; a sink failure stores nothing.
            self._emit_audit(
                EVENT_SIGNOFF_RECORDED,
                generation_id,
                document_id,
                status=block.status.value,
                qa_passed=qa_result.passed,
                signed_at=block.signed_at.isoformat(),
            )
            artifact = None
            if self._store is not None:
                history = [*self._ledger.history(document_id), block]
                artifact = self._store.save(composed.text, metadata, history)
            self._ledger.record(block)

            result = GeneratedDocument(
                text=composed.text,
                metadata=metadata,
                sign_off=block,
                brand_report=check_brand_compliance(composed.text, self._brand_rules),
                artifact=artifact,
            )
            if result.finalized_with_failed_qa:
                logger.warning(
                    "Document %s finalized with failed QA checks %s",
                    document_id,
                    qa_result.failed_checks,
                )

            self._emit_audit(
                EVENT_GENERATION_COMPLETED,
                generation_id,
                document_id,
                status=metadata.status.value,
                qa_passed=result.qa_passed,
                sha256=artifact.sha256 if artifact is not None else None,
            )
            logger.info(
                "Generated %s %s status=%s qa_passed=%s",
                document_type.value,
                document_id,
                metadata.status.value,
                result.qa_passed,
            )
            return result

        except AuditSinkError:
            raise
        except (DocumentPipelineError, *_DOMAIN_ERRORS) as exc:
            self._emit_audit(
                EVENT_GENERATION_FAILED,
                generation_id,
                document_id,
                error_type=getattr(exc, "code", type(exc).__name__),
                error=str(exc),
            )
            raise
        except Exception as exc:
            self._emit_audit(
                EVENT_GENERATION_FAILED,
                generation_id,
                document_id,
                error_type="INTERNAL_ERROR",
                error=str(exc),
            )
            raise DocumentPipelineError(
                message=f"Document generation failed: {exc}",
                code="INTERNAL_ERROR",
            ) from exc

    def _emit_audit(
        self,
        event_type: str,
        generation_id: str,
        document_id: str | None,
        **details: Any,
    ) -> None:
        """Emit an audit event. Fail-closed on sink failure.

        Raises:
            AuditSinkError: If the audit sink fails.
        """
        event = build_audit_event(
            event_type, generation_id=generation_id, document_id=document_id, **details
        )
        try:
            self._audit_sink.emit(event)
        except AuditSinkError:
            raise
        except Exception as exc:
            raise AuditSinkError(f"Audit sink failure for event '{event_type}': {exc}") from exc
