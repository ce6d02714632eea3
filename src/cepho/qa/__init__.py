"""CEPHO QA Orchestrator

Automated review of composed documents by a reasoning service behind the
provider-agnostic LLMClient protocol.
"""

from cepho.qa.backends import QA_BACKENDS, build_qa_llm_client
from cepho.qa.llm_client import (
    DeterministicQALLMClient,
    LLMCallError,
    LLMClient,
    TransientLLMError,
)
from cepho.qa.orchestrator import (
    QAOrchestrator,
    QAServiceError,
    build_qa_prompt,
    parse_qa_response,
)

__all__ = [
    "QA_BACKENDS",
    "DeterministicQALLMClient",
    "LLMCallError",
    "LLMClient",
    "QAOrchestrator",
    "QAServiceError",
    "TransientLLMError",
    "build_qa_llm_client",
    "build_qa_prompt",
    "parse_qa_response",
]
