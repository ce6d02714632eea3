"""QA reviewer backend selection from environment configuration."""

from __future__ import annotations

import os

from cepho.qa.llm_client import DeterministicQALLMClient, LLMClient

QA_BACKEND_ENV = "CEPHO_QA_BACKEND"
BACKEND_DETERMINISTIC = "deterministic"
BACKEND_ANTHROPIC = "anthropic"
QA_BACKENDS = (BACKEND_DETERMINISTIC, BACKEND_ANTHROPIC)


def build_qa_llm_client(backend: str | None = None) -> LLMClient:
    """Build the LLM client for QA review.

    Reads CEPHO_QA_BACKEND (default: deterministic) when backend is None.
    Fail-closed: raises ValueError if anthropic backend selected but key missing.

    Args:
        backend: Explicit backend name, overriding the environment.

    Returns:
        An LLMClient implementation instance.

    Raises:
        ValueError: If the backend name is unknown, or the anthropic backend
            is selected and ANTHROPIC_API_KEY is unset.
    """
    name = (backend or os.environ.get(QA_BACKEND_ENV, BACKEND_DETERMINISTIC)).strip().lower()

    if name == BACKEND_ANTHROPIC:
        from cepho.qa.anthropic_client import AnthropicLLMClient

        return AnthropicLLMClient()
    if name == BACKEND_DETERMINISTIC:
        return DeterministicQALLMClient()
    raise ValueError(f"Unknown QA backend '{name}'; expected one of {', '.join(QA_BACKENDS)}")
