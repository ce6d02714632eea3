"""Anthropic LLM client implementing the LLMClient protocol.

Uses the Anthropic Python SDK to call Claude models. Provider-agnostic
from the caller's perspective: only the LLMClient.call() interface is exposed.

Retries are owned by the QA orchestrator, so this client makes exactly one
request per call and classifies failures instead:
- Rate limits, 5xx responses, connection errors and SDK timeouts raise
  TransientLLMError
- Any other API error raises LLMCallError

Configuration via environment variables:
- ANTHROPIC_API_KEY: Required. Fail-closed if missing.
- CEPHO_ANTHROPIC_MODEL_QA: Model for QA review (default: claude-sonnet-4-20250514).
"""

from __future__ import annotations

import logging
import os

import anthropic

from cepho.qa.llm_client import LLMCallError, TransientLLMError

logger = logging.getLogger(__name__)

ANTHROPIC_MODEL_ENV = "CEPHO_ANTHROPIC_MODEL_QA"
DEFAULT_MODEL = "claude-sonnet-4-20250514"
REQUEST_TIMEOUT_SECONDS = 120
MAX_TOKENS = 2048

_JSON_ONLY_INSTRUCTION = (
    "You MUST respond with valid JSON only. No markdown, no explanation, "
    "no code fences. Output raw JSON."
)


class AnthropicLLMClient:
    """Anthropic-backed LLM client implementing the LLMClient protocol.

    Calls Claude via the Anthropic SDK. Temperature is fixed at 0 for
    repeatable verdicts.

    Fail-closed: raises ValueError if ANTHROPIC_API_KEY is not set.
    """

    def __init__(
        self,
        *,
        model: str | None = None,
        max_tokens: int | None = None,
        timeout_seconds: float | None = None,
    ) -> None:
        """Initialize the Anthropic client.

        Args:
            model: Model identifier override. If not provided, reads from
                CEPHO_ANTHROPIC_MODEL_QA, falling back to DEFAULT_MODEL.
            max_tokens: Maximum output tokens per request.
            timeout_seconds: SDK request timeout.

        Raises:
            ValueError: If ANTHROPIC_API_KEY is not set in the environment.
        """
        api_key = os.environ.get("ANTHROPIC_API_KEY", "")
        if not api_key:
            raise ValueError(
                "ANTHROPIC_API_KEY environment variable is required "
                "when using the Anthropic backend. "
                "Set CEPHO_QA_BACKEND=deterministic to use the deterministic client."
            )

        self._model = model or os.environ.get(ANTHROPIC_MODEL_ENV, DEFAULT_MODEL)
        self._max_tokens = max_tokens or MAX_TOKENS
        self._client: anthropic.Anthropic = anthropic.Anthropic(
            api_key=api_key,
            timeout=timeout_seconds or REQUEST_TIMEOUT_SECONDS,
            max_retries=0,
        )

    @property
    def model(self) -> str:
        """Model identifier used for requests."""
        return self._model

    def call(self, prompt: str, *, json_mode: bool = False) -> str:
        """Make one LLM call via the Anthropic API and return raw response text.

        Args:
            prompt: The full prompt text to send.
            json_mode: If True, instruct the model to return JSON.

        Returns:
            Raw response string from the LLM.

        Raises:
            TransientLLMError: On rate limits, 5xx, timeouts and connection errors.
            LLMCallError: On any other API error or an empty response.
        """
        messages: list[anthropic.types.MessageParam] = [{"role": "user", "content": prompt}]

        try:
            response = self._client.messages.create(
                model=self._model,
                max_tokens=self._max_tokens,
                temperature=0,
                system=_JSON_ONLY_INSTRUCTION if json_mode else "",
                messages=messages,
            )
        except anthropic.RateLimitError as exc:
            logger.warning("Anthropic rate limit for model %s", self._model)
            raise TransientLLMError("Anthropic rate limit exceeded") from exc
        except anthropic.APIStatusError as exc:
            if exc.status_code >= 500:
                logger.warning("Anthropic server error %d", exc.status_code)
                raise TransientLLMError(f"Anthropic server error: {exc.status_code}") from exc
            raise LLMCallError(f"Anthropic API error (non-retryable): {exc.status_code}") from exc
        except anthropic.APIConnectionError as exc:
            # APITimeoutError is a subclass of APIConnectionError
            logger.warning("Anthropic connection error: %s", exc)
            raise TransientLLMError("Anthropic connection error") from exc

        if not response.content:
            raise LLMCallError("Anthropic returned an empty response")
        text_block = response.content[0]
        if hasattr(text_block, "text"):
            return str(text_block.text)
        return str(text_block)
