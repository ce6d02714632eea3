"""Tests for the QA orchestrator: prompt, parsing, retries, brand signal."""

from __future__ import annotations

import asyncio
import json
import threading
import time
from pathlib import Path
from typing import Any

import pytest

from cepho.documents import ComposedDocument, ExecutiveSummaryContent, compose_document
from cepho.models.documents import DocumentType, QACheckResult
from cepho.qa import (
    LLMCallError,
    QAOrchestrator,
    QAServiceError,
    TransientLLMError,
    build_qa_prompt,
    parse_qa_response,
)
from cepho.qa.orchestrator import DEFAULT_PROMPT_PATH, load_response_schema

ALL_PASS: dict[str, Any] = {
    "brand_compliance": True,
    "content_quality": True,
    "accuracy": True,
    "completeness": True,
    "formatting": True,
    "classification": True,
    "issues": [],
    "recommendations": [],
}


class StubLLMClient:
    """Returns queued responses in order; exceptions in the queue are raised."""

    def __init__(self, *responses: str | BaseException) -> None:
        self._responses = list(responses)
        self.prompts: list[str] = []
        self.json_modes: list[bool] = []
        self._lock = threading.Lock()

    def call(self, prompt: str, *, json_mode: bool = False) -> str:
        with self._lock:
            self.prompts.append(prompt)
            self.json_modes.append(json_mode)
            response = self._responses.pop(0)
        if isinstance(response, BaseException):
            raise response
        return response


class SlowLLMClient:
    """Blocks for a fixed delay before answering."""

    def __init__(self, delay: float, response: str) -> None:
        self._delay = delay
        self._response = response
        self.calls = 0

    def call(self, prompt: str, *, json_mode: bool = False) -> str:
        self.calls += 1
        time.sleep(self._delay)
        return self._response


def _orchestrator(client: Any, **kwargs: Any) -> QAOrchestrator:
    kwargs.setdefault("retry_delay_seconds", 0)
    return QAOrchestrator(client, **kwargs)


@pytest.fixture
def composed(executive_summary_content: ExecutiveSummaryContent) -> ComposedDocument:
    return compose_document(DocumentType.EXECUTIVE_SUMMARY, executive_summary_content)


class TestParseQAResponse:
    """Fail-closed parsing of the reviewer's verdict."""

    def test_full_response(self) -> None:
        result = parse_qa_response(json.dumps({**ALL_PASS, "issues": ["Minor typo"]}))
        assert result.passed is True
        assert result.issues == ("Minor typo",)

    def test_markdown_fences_are_stripped(self) -> None:
        raw = "```json\n" + json.dumps(ALL_PASS) + "\n```"
        assert parse_qa_response(raw).passed is True

    def test_missing_checks_default_to_true(self, caplog: pytest.LogCaptureFixture) -> None:
        """Omitted checks pass and the omission is logged."""
        with caplog.at_level("WARNING", logger="cepho.qa.orchestrator"):
            result = parse_qa_response(json.dumps({"accuracy": False}))
        assert result.accuracy is False
        assert result.completeness is True
        assert result.issues == ()
        assert "omitted checks" in caplog.text

    def test_passed_key_is_ignored(self) -> None:
        """passed is recomputed locally from the six checks."""
        result = parse_qa_response(json.dumps({**ALL_PASS, "formatting": False, "passed": True}))
        assert result.passed is False
        assert result.failed_checks == ["formatting"]

    @pytest.mark.parametrize(
        "raw",
        [
            "not json at all",
            "[1, 2, 3]",
            json.dumps({**ALL_PASS, "accuracy": "yes"}),
            json.dumps({**ALL_PASS, "issues": "one issue"}),
            json.dumps({**ALL_PASS, "issues": [1, 2]}),
        ],
    )
    def test_malformed_responses_fail_closed(self, raw: str) -> None:
        with pytest.raises(QAServiceError) as exc_info:
            parse_qa_response(raw)
        assert exc_info.value.code == "MALFORMED_RESPONSE"


class TestBuildQAPrompt:
    """Prompt layout."""

    def test_prompt_carries_context_and_schema(self, composed: ComposedDocument) -> None:
        prompt = build_qa_prompt(
            "Review this.", composed.text, composed.metadata, brand_findings=["x"]
        )
        context_block = prompt.split("CONTEXT PAYLOAD:\n", 1)[1].split("\n\nRESPONSE SCHEMA:")[0]
        context = json.loads(context_block)

        assert prompt.startswith("Review this.")
        assert context["document_id"] == composed.metadata.id
        assert context["document_type"] == "executive_summary"
        assert context["classification"] == "Internal"
        assert context["brand_findings"] == ["x"]
        assert context["excerpt_truncated"] is False
        assert "Key Findings" in context["required_sections"]
        assert json.dumps(load_response_schema(), sort_keys=True, indent=2) in prompt

    def test_excerpt_is_truncated(self, composed: ComposedDocument) -> None:
        prompt = build_qa_prompt("", composed.text, composed.metadata, excerpt_chars=40)
        context_block = prompt.split("CONTEXT PAYLOAD:\n", 1)[1].split("\n\nRESPONSE SCHEMA:")[0]
        context = json.loads(context_block)
        assert context["document_excerpt"] == composed.text[:40]
        assert context["excerpt_truncated"] is True

    def test_packaged_prompt_exists(self) -> None:
        assert DEFAULT_PROMPT_PATH.exists()
        assert "brand_compliance" in DEFAULT_PROMPT_PATH.read_text(encoding="utf-8")


class TestRunQA:
    """End-to-end review against stub clients."""

    def test_all_checks_pass(self, composed: ComposedDocument) -> None:
        client = StubLLMClient(json.dumps(ALL_PASS))
        result = asyncio.run(_orchestrator(client).run_qa(composed.text, composed.metadata))

        assert isinstance(result, QACheckResult)
        assert result.passed is True
        assert client.json_modes == [True]
        assert len(client.prompts) == 1

    def test_one_failed_check_fails_qa(self, composed: ComposedDocument) -> None:
        client = StubLLMClient(json.dumps({**ALL_PASS, "accuracy": False}))
        result = asyncio.run(_orchestrator(client).run_qa(composed.text, composed.metadata))
        assert result.passed is False
        assert result.failed_checks == ["accuracy"]

    def test_brand_findings_are_merged(self, composed: ComposedDocument) -> None:
        """Local brand issues override a permissive reviewer."""
        text = composed.text + "\nThis is a paradox.\n"
        client = StubLLMClient(json.dumps(ALL_PASS))
        result = asyncio.run(_orchestrator(client).run_qa(text, composed.metadata))

        assert result.brand_compliance is False
        assert result.passed is False
        assert result.issues == ('Brand: Contains dramatic vocabulary: "paradox"',)
        assert 'Contains dramatic vocabulary: \\"paradox\\"' in client.prompts[0]

    def test_brand_signal_can_be_disabled(self, composed: ComposedDocument) -> None:
        text = composed.text + "\nThis is a paradox.\n"
        client = StubLLMClient(json.dumps(ALL_PASS))
        result = asyncio.run(
            _orchestrator(client, use_brand_signal=False).run_qa(text, composed.metadata)
        )
        assert result.passed is True

    def test_transient_failure_is_retried_once(self, composed: ComposedDocument) -> None:
        client = StubLLMClient(TransientLLMError("rate limited"), json.dumps(ALL_PASS))
        result = asyncio.run(_orchestrator(client).run_qa(composed.text, composed.metadata))
        assert result.passed is True
        assert len(client.prompts) == 2

    def test_connection_error_is_retried_once(self, composed: ComposedDocument) -> None:
        client = StubLLMClient(ConnectionError("reset"), json.dumps(ALL_PASS))
        result = asyncio.run(_orchestrator(client).run_qa(composed.text, composed.metadata))
        assert result.passed is True
        assert len(client.prompts) == 2

    def test_second_transient_failure_raises_unavailable(
        self, composed: ComposedDocument
    ) -> None:
        client = StubLLMClient(TransientLLMError("down"), TransientLLMError("still down"))
        with pytest.raises(QAServiceError) as exc_info:
            asyncio.run(_orchestrator(client).run_qa(composed.text, composed.metadata))
        assert exc_info.value.code == "UNAVAILABLE"
        assert len(client.prompts) == 2

    def test_malformed_response_is_not_retried(self, composed: ComposedDocument) -> None:
        client = StubLLMClient("garbage", json.dumps(ALL_PASS))
        with pytest.raises(QAServiceError) as exc_info:
            asyncio.run(_orchestrator(client).run_qa(composed.text, composed.metadata))
        assert exc_info.value.code == "MALFORMED_RESPONSE"
        assert len(client.prompts) == 1

    def test_non_retryable_client_error(self, composed: ComposedDocument) -> None:
        client = StubLLMClient(LLMCallError("bad request"), json.dumps(ALL_PASS))
        with pytest.raises(QAServiceError) as exc_info:
            asyncio.run(_orchestrator(client).run_qa(composed.text, composed.metadata))
        assert exc_info.value.code == "LLM_ERROR"
        assert len(client.prompts) == 1

    def test_timeout_on_every_attempt(self, composed: ComposedDocument) -> None:
        client = SlowLLMClient(0.3, json.dumps(ALL_PASS))
        orchestrator = _orchestrator(client, timeout_seconds=0.05)
        with pytest.raises(QAServiceError) as exc_info:
            asyncio.run(orchestrator.run_qa(composed.text, composed.metadata))
        assert exc_info.value.code == "TIMEOUT"
        assert client.calls == 2

    def test_cancellation_propagates(self, composed: ComposedDocument) -> None:
        client = SlowLLMClient(0.3, json.dumps(ALL_PASS))
        orchestrator = _orchestrator(client, timeout_seconds=5)

        async def scenario() -> None:
            task = asyncio.create_task(orchestrator.run_qa(composed.text, composed.metadata))
            await asyncio.sleep(0.05)
            task.cancel()
            await task

        with pytest.raises(asyncio.CancelledError):
            asyncio.run(scenario())
        assert client.calls == 1

    def test_invalid_settings_rejected(self) -> None:
        with pytest.raises(ValueError):
            QAOrchestrator(StubLLMClient(), timeout_seconds=0)
        with pytest.raises(ValueError):
            QAOrchestrator(StubLLMClient(), excerpt_chars=0)

    def test_missing_prompt_file(self, composed: ComposedDocument, tmp_path: Path) -> None:
        orchestrator = _orchestrator(
            StubLLMClient(json.dumps(ALL_PASS)), prompt_path=tmp_path / "missing.md"
        )
        with pytest.raises(FileNotFoundError):
            asyncio.run(orchestrator.run_qa(composed.text, composed.metadata))
