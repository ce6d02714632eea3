"""Tests for sign-off blocks, the status lifecycle and the sign-off ledger."""

from __future__ import annotations

import threading
from collections.abc import Callable
from datetime import UTC, datetime, timedelta

import pytest

from cepho.models.documents import (
    Classification,
    DocumentMetadata,
    DocumentStatus,
    DocumentType,
    QACheckResult,
)
from cepho.signoff import (
    DocumentFinalizedError,
    InvalidStatusTransitionError,
    SignOffLedger,
    advance_status,
    can_transition,
    sign_off,
)

CREATED = datetime(2026, 3, 7, 9, 0, tzinfo=UTC)


def _qa(**overrides: bool) -> QACheckResult:
    checks = {
        "brand_compliance": True,
        "content_quality": True,
        "accuracy": True,
        "completeness": True,
        "formatting": True,
        "classification": True,
    }
    checks.update(overrides)
    return QACheckResult(**checks)


def _metadata(status: DocumentStatus = DocumentStatus.DRAFT) -> DocumentMetadata:
    return DocumentMetadata(
        id="CEPHO-ES-TEST1",
        title="Test",
        type=DocumentType.EXECUTIVE_SUMMARY,
        classification=Classification.INTERNAL,
        status=status,
        created_at=CREATED,
        updated_at=CREATED,
    )


class TestQACheckResult:
    """passed is the AND of the six checks."""

    def test_all_true_passes(self) -> None:
        assert _qa().passed is True

    @pytest.mark.parametrize(
        "check",
        [
            "brand_compliance",
            "content_quality",
            "accuracy",
            "completeness",
            "formatting",
            "classification",
        ],
    )
    def test_any_false_fails(self, check: str) -> None:
        result = _qa(**{check: False})
        assert result.passed is False
        assert result.failed_checks == [check]

    def test_passed_cannot_be_set(self) -> None:
        """passed is computed; an input value is ignored."""
        result = QACheckResult.model_validate({**_qa(accuracy=False).checks, "passed": True})
        assert result.passed is False


class TestSignOff:
    """Sign-off block construction."""

    def test_block_fields(self, fixed_clock: Callable[[], datetime]) -> None:
        qa = _qa()
        block = sign_off(
            DocumentStatus.FINAL,
            Classification.CONFIDENTIAL,
            qa,
            document_id="CEPHO-ES-1",
            clock=fixed_clock,
        )
        assert block.prepared_by == "CEPHO.AI"
        assert block.reviewed_by == "Chief of Staff"
        assert block.date == "07 March 2026"
        assert block.status is DocumentStatus.FINAL
        assert block.classification is Classification.CONFIDENTIAL
        assert block.qa_result == qa
        assert block.signed_at == fixed_clock()

    def test_failed_qa_can_be_signed(self) -> None:
        """A failed QA result is recorded, not rejected."""
        block = sign_off(DocumentStatus.FINAL, Classification.INTERNAL, _qa(accuracy=False))
        assert block.qa_result.passed is False

    def test_block_is_immutable(self) -> None:
        block = sign_off(DocumentStatus.APPROVED, Classification.INTERNAL, _qa())
        with pytest.raises(ValueError):
            block.status = DocumentStatus.FINAL  # type: ignore[misc]


class TestAdvanceStatus:
    """Forward-only lifecycle."""

    def test_forward_step(self) -> None:
        later = CREATED + timedelta(minutes=5)
        updated = advance_status(
            _metadata(), DocumentStatus.PENDING_REVIEW, clock=lambda: later
        )
        assert updated.status is DocumentStatus.PENDING_REVIEW
        assert updated.updated_at == later
        assert updated.created_at == CREATED
        assert updated.id == "CEPHO-ES-TEST1"

    def test_original_is_unchanged(self) -> None:
        original = _metadata()
        advance_status(original, DocumentStatus.APPROVED)
        assert original.status is DocumentStatus.DRAFT

    def test_skipping_forward_is_allowed(self) -> None:
        updated = advance_status(_metadata(DocumentStatus.PENDING_REVIEW), DocumentStatus.FINAL)
        assert updated.status is DocumentStatus.FINAL

    @pytest.mark.parametrize(
        ("current", "target"),
        [
            (DocumentStatus.APPROVED, DocumentStatus.DRAFT),
            (DocumentStatus.PENDING_REVIEW, DocumentStatus.PENDING_REVIEW),
            (DocumentStatus.APPROVED, DocumentStatus.PENDING_REVIEW),
        ],
    )
    def test_backwards_or_same_rejected(
        self, current: DocumentStatus, target: DocumentStatus
    ) -> None:
        with pytest.raises(InvalidStatusTransitionError) as exc_info:
            advance_status(_metadata(current), target)
        assert exc_info.value.code == "INVALID_STATUS_TRANSITION"

    @pytest.mark.parametrize("target", list(DocumentStatus))
    def test_final_is_terminal(self, target: DocumentStatus) -> None:
        with pytest.raises(DocumentFinalizedError):
            advance_status(_metadata(DocumentStatus.FINAL), target)

    def test_clock_behind_updated_at_keeps_timestamps_ordered(self) -> None:
        """A clock earlier than updated_at never moves updated_at backwards."""
        earlier = CREATED - timedelta(hours=1)
        updated = advance_status(_metadata(), DocumentStatus.APPROVED, clock=lambda: earlier)
        assert updated.updated_at == CREATED

    def test_can_transition(self) -> None:
        assert can_transition(DocumentStatus.DRAFT, DocumentStatus.FINAL) is True
        assert can_transition(DocumentStatus.FINAL, DocumentStatus.FINAL) is False
        assert can_transition(DocumentStatus.APPROVED, DocumentStatus.DRAFT) is False

    def test_metadata_rejects_updated_before_created(self) -> None:
        with pytest.raises(ValueError):
            DocumentMetadata(
                id="X",
                title="T",
                type=DocumentType.DAILY_BRIEF,
                classification=Classification.PUBLIC,
                created_at=CREATED,
                updated_at=CREATED - timedelta(seconds=1),
            )


class TestSignOffLedger:
    """Append-only history."""

    def test_history_is_append_only_and_ordered(self) -> None:
        ledger = SignOffLedger()
        first = ledger.record(
            sign_off(DocumentStatus.APPROVED, Classification.INTERNAL, _qa(), document_id="D1")
        )
        second = ledger.record(
            sign_off(
                DocumentStatus.FINAL,
                Classification.INTERNAL,
                _qa(formatting=False),
                document_id="D1",
            )
        )
        assert ledger.history("D1") == [first, second]
        assert ledger.latest("D1") == second
        assert ledger.history("other") == []
        assert ledger.latest("other") is None

    def test_returned_history_is_a_copy(self) -> None:
        ledger = SignOffLedger()
        ledger.record(
            sign_off(DocumentStatus.FINAL, Classification.INTERNAL, _qa(), document_id="D1")
        )
        ledger.history("D1").clear()
        assert len(ledger.history("D1")) == 1

    def test_recorded_block_cannot_be_rewritten(self) -> None:
        """Issues and recommendations of a recorded block are read-only."""
        ledger = SignOffLedger()
        qa = QACheckResult(
            **_qa(accuracy=False).checks,
            issues=["Score outside the 0-100 scale: 120/100"],
            recommendations=["Recheck the scoring matrix"],
        )
        block = ledger.record(
            sign_off(DocumentStatus.FINAL, Classification.INTERNAL, qa, document_id="D1")
        )

        with pytest.raises(AttributeError):
            block.qa_result.issues.append("tampered")  # type: ignore[attr-defined]
        with pytest.raises(AttributeError):
            block.qa_result.recommendations.clear()  # type: ignore[attr-defined]
        with pytest.raises(ValueError):
            block.qa_result.issues = ()  # type: ignore[misc]

        recorded = ledger.history("D1")[0].qa_result
        assert recorded.issues == ("Score outside the 0-100 scale: 120/100",)
        assert recorded.recommendations == ("Recheck the scoring matrix",)

    def test_block_without_document_id_rejected(self) -> None:
        with pytest.raises(ValueError):
            SignOffLedger().record(sign_off(DocumentStatus.FINAL, Classification.INTERNAL, _qa()))

    def test_concurrent_records_are_all_kept(self) -> None:
        ledger = SignOffLedger()
        block = sign_off(DocumentStatus.FINAL, Classification.INTERNAL, _qa(), document_id="D1")

        def worker() -> None:
            for _ in range(100):
                ledger.record(block)

        threads = [threading.Thread(target=worker) for _ in range(4)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert len(ledger.history("D1")) == 400
        assert ledger.document_ids() == ["D1"]
