"""Tests for the QA LLM clients and backend selection."""

from __future__ import annotations

import asyncio
import json
import os
from typing import Any
from unittest.mock import MagicMock, patch

import httpx
import pytest

from cepho.documents import ExecutiveSummaryContent, compose_document
from cepho.models.documents import Classification, DocumentType
from cepho.qa import (
    DeterministicQALLMClient,
    LLMCallError,
    QAOrchestrator,
    TransientLLMError,
    build_qa_llm_client,
    build_qa_prompt,
)

_REQUEST = httpx.Request("POST", "https://api.anthropic.com/v1/messages")


def _review(
    text: str,
    classification: Classification = Classification.INTERNAL,
    **kwargs: Any,
) -> dict[str, Any]:
    composed = compose_document(
        DocumentType.EXECUTIVE_SUMMARY,
        ExecutiveSummaryContent(title="T", overview="o"),
        classification=classification,
    )
    prompt = build_qa_prompt("Review.", text, composed.metadata, **kwargs)
    return json.loads(DeterministicQALLMClient().call(prompt, json_mode=True))


class TestDeterministicQALLMClient:
    """Rule-based verdicts derived from the excerpt."""

    def test_composed_document_passes(
        self, executive_summary_content: ExecutiveSummaryContent
    ) -> None:
        """A freshly composed, clean document passes every check."""
        composed = compose_document(DocumentType.EXECUTIVE_SUMMARY, executive_summary_content)
        orchestrator = QAOrchestrator(DeterministicQALLMClient())
        result = asyncio.run(orchestrator.run_qa(composed.text, composed.metadata))
        assert result.passed is True, result.issues
        assert result.issues == ()

    def test_missing_section_fails_completeness(
        self, executive_summary_content: ExecutiveSummaryContent
    ) -> None:
        composed = compose_document(DocumentType.EXECUTIVE_SUMMARY, executive_summary_content)
        text = composed.text.replace("## Next Steps", "## Later")
        verdict = _review(text)
        assert verdict["completeness"] is False
        assert "Missing required section: Next Steps" in verdict["issues"]

    def test_truncated_excerpt_does_not_fail_completeness(
        self, executive_summary_content: ExecutiveSummaryContent
    ) -> None:
        composed = compose_document(DocumentType.EXECUTIVE_SUMMARY, executive_summary_content)
        verdict = _review(composed.text, excerpt_chars=200)
        assert verdict["completeness"] is True
        assert verdict["recommendations"]

    def test_placeholder_text_fails_content_quality(
        self, executive_summary_content: ExecutiveSummaryContent
    ) -> None:
        composed = compose_document(DocumentType.EXECUTIVE_SUMMARY, executive_summary_content)
        verdict = _review(composed.text + "\nTBD\n")
        assert verdict["content_quality"] is False

    def test_score_above_100_fails_accuracy(
        self, executive_summary_content: ExecutiveSummaryContent
    ) -> None:
        composed = compose_document(DocumentType.EXECUTIVE_SUMMARY, executive_summary_content)
        verdict = _review(composed.text + "\nScore: 120/100\n")
        assert verdict["accuracy"] is False

    def test_second_title_fails_formatting(
        self, executive_summary_content: ExecutiveSummaryContent
    ) -> None:
        composed = compose_document(DocumentType.EXECUTIVE_SUMMARY, executive_summary_content)
        verdict = _review(composed.text + "\n# Another Title\n")
        assert verdict["formatting"] is False

    def test_classification_label_must_match(
        self, executive_summary_content: ExecutiveSummaryContent
    ) -> None:
        """A document labelled Internal reviewed as Restricted fails."""
        composed = compose_document(DocumentType.EXECUTIVE_SUMMARY, executive_summary_content)
        verdict = _review(composed.text, classification=Classification.RESTRICTED)
        assert verdict["classification"] is False

    def test_prompt_without_context_raises(self) -> None:
        with pytest.raises(LLMCallError):
            DeterministicQALLMClient().call("no payload here")


class TestAnthropicLLMClient:
    """AnthropicLLMClient with a mocked SDK."""

    def _make_client(self) -> Any:
        with patch.dict(os.environ, {"ANTHROPIC_API_KEY": "test-key"}):
            from cepho.qa.anthropic_client import AnthropicLLMClient

            return AnthropicLLMClient(model="test-model")

    def test_missing_api_key_fails_closed(self) -> None:
        from cepho.qa.anthropic_client import AnthropicLLMClient

        with pytest.raises(ValueError, match="ANTHROPIC_API_KEY"):
            AnthropicLLMClient()

    def test_call_uses_temperature_zero_and_json_instruction(self) -> None:
        client = self._make_client()
        mock_response = MagicMock()
        mock_response.content = [MagicMock(text='{"accuracy": true}')]
        client._client.messages.create = MagicMock(return_value=mock_response)

        assert client.call("prompt", json_mode=True) == '{"accuracy": true}'
        kwargs = client._client.messages.create.call_args.kwargs
        assert kwargs["temperature"] == 0
        assert kwargs["model"] == "test-model"
        assert "JSON" in kwargs["system"]

    def test_model_from_environment(self) -> None:
        with patch.dict(
            os.environ,
            {"ANTHROPIC_API_KEY": "test-key", "CEPHO_ANTHROPIC_MODEL_QA": "env-model"},
        ):
            from cepho.qa.anthropic_client import AnthropicLLMClient

            assert AnthropicLLMClient().model == "env-model"

    def test_rate_limit_is_transient(self) -> None:
        import anthropic

        client = self._make_client()
        error = anthropic.RateLimitError(
            "slow down", response=httpx.Response(429, request=_REQUEST), body=None
        )
        client._client.messages.create = MagicMock(side_effect=error)
        with pytest.raises(TransientLLMError):
            client.call("prompt")

    def test_server_error_is_transient(self) -> None:
        import anthropic

        client = self._make_client()
        error = anthropic.InternalServerError(
            "boom", response=httpx.Response(503, request=_REQUEST), body=None
        )
        client._client.messages.create = MagicMock(side_effect=error)
        with pytest.raises(TransientLLMError):
            client.call("prompt")

    def test_connection_error_is_transient(self) -> None:
        import anthropic

        client = self._make_client()
        client._client.messages.create = MagicMock(
            side_effect=anthropic.APIConnectionError(request=_REQUEST)
        )
        with pytest.raises(TransientLLMError):
            client.call("prompt")

    def test_client_error_is_not_transient(self) -> None:
        import anthropic

        client = self._make_client()
        error = anthropic.BadRequestError(
            "bad", response=httpx.Response(400, request=_REQUEST), body=None
        )
        client._client.messages.create = MagicMock(side_effect=error)
        with pytest.raises(LLMCallError) as exc_info:
            client.call("prompt")
        assert not isinstance(exc_info.value, TransientLLMError)


class TestBuildQALLMClient:
    """Backend selection."""

    def test_default_is_deterministic(self) -> None:
        assert isinstance(build_qa_llm_client(), DeterministicQALLMClient)

    @patch.dict(os.environ, {"CEPHO_QA_BACKEND": "anthropic", "ANTHROPIC_API_KEY": "test-key"})
    def test_env_selects_anthropic(self) -> None:
        from cepho.qa.anthropic_client import AnthropicLLMClient

        assert isinstance(build_qa_llm_client(), AnthropicLLMClient)

    @patch.dict(os.environ, {"CEPHO_QA_BACKEND": "anthropic"})
    def test_anthropic_without_key_fails_closed(self) -> None:
        with pytest.raises(ValueError):
            build_qa_llm_client()

    def test_unknown_backend_rejected(self) -> None:
        with pytest.raises(ValueError, match="Unknown QA backend"):
            build_qa_llm_client("openai")
