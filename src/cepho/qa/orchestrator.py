"""QA Orchestrator: automated quality review of composed documents.

Sends a composed document to the reasoning service (an injected LLMClient)
and turns its structured verdict into a QACheckResult.

Invariants:
- The client call runs in a worker thread bounded by a timeout; the event
  loop is never blocked on I/O
- Transient failures (timeout, TransientLLMError, ConnectionError) are
  retried exactly once; malformed responses are never retried
- The response must be a JSON object matching the QA response schema
  (types enforced); anything else fails closed with MALFORMED_RESPONSE
- Missing check fields default to True and are logged
- "passed" is always recomputed locally from the six checks
- Local brand findings are merged into the verdict when enabled
- asyncio.CancelledError propagates untouched
"""

from __future__ import annotations

import asyncio
import json
import logging
import re
from collections.abc import Sequence
from functools import lru_cache
from pathlib import Path
from typing import Any

from jsonschema import Draft202012Validator

from cepho.brand.compliance import BrandComplianceReport, check_brand_compliance
from cepho.brand.rules import BrandRules
from cepho.documents.templates import REQUIRED_SECTIONS
from cepho.models.documents import QA_CHECK_FIELDS, DocumentMetadata, QACheckResult
from cepho.qa.llm_client import (
    CONTEXT_MARKER,
    SCHEMA_MARKER,
    LLMCallError,
    LLMClient,
    TransientLLMError,
)

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 60.0
DEFAULT_EXCERPT_CHARS = 5000
MAX_ATTEMPTS = 2
RETRY_DELAY_SECONDS = 0.5
BRAND_ISSUE_PREFIX = "Brand: "

_PACKAGE_DIR = Path(__file__).resolve().parent
DEFAULT_PROMPT_PATH = _PACKAGE_DIR / "prompts" / "qa_review.md"
RESPONSE_SCHEMA_PATH = _PACKAGE_DIR / "schemas" / "qa_check.schema.json"


class QAServiceError(Exception):
    """Raised when the QA reviewer is unreachable or returns an unusable verdict.

    Codes:
    - MALFORMED_RESPONSE: not JSON, not an object, or wrong field types
    - TIMEOUT: every attempt exceeded the timeout
    - UNAVAILABLE: every attempt failed with a transient error
    - LLM_ERROR: the client failed with a non-retryable error
    """

    def __init__(self, message: str, code: str) -> None:
        super().__init__(message)
        self.message = message
        self.code = code


@lru_cache(maxsize=1)
def load_response_schema() -> dict[str, Any]:
    """Load the strict QA response schema sent to the reviewer."""
    with RESPONSE_SCHEMA_PATH.open("r", encoding="utf-8") as f:
        schema: dict[str, Any] = json.load(f)
    Draft202012Validator.check_schema(schema)
    return schema


@lru_cache(maxsize=1)
def _lenient_validator() -> Draft202012Validator:
    # Same field types as the strict schema; every field optional and
    # unknown keys (e.g. "passed") tolerated.
    schema = dict(load_response_schema())
    schema.pop("required", None)
    schema.pop("additionalProperties", None)
    return Draft202012Validator(schema)


def _strip_markdown_fences(text: str) -> str:
    """Strip markdown code fences from LLM response text."""
    stripped = text.strip()
    fence_pattern = re.compile(
        r"```(?:json)?\s*\n?(.*?)\n?\s*```",
        re.DOTALL,
    )
    match = fence_pattern.search(stripped)
    if match:
        return match.group(1).strip()
    return stripped


def parse_qa_response(raw: str) -> QACheckResult:
    """Parse the reviewer's raw response into a QACheckResult. Fail-closed.

    Args:
        raw: Raw response string from the LLM.

    Returns:
        QACheckResult with missing checks defaulted to True.

    Raises:
        QAServiceError: MALFORMED_RESPONSE if the payload is not a JSON object
            or a present field has the wrong type.
    """
    if not isinstance(raw, str):
        raise QAServiceError(
            f"QA reviewer returned {type(raw).__name__}, expected text",
            code="MALFORMED_RESPONSE",
        )
    cleaned = _strip_markdown_fences(raw)
    try:
        parsed = json.loads(cleaned)
    except json.JSONDecodeError as exc:
        raise QAServiceError(
            f"QA reviewer returned invalid JSON: {exc}", code="MALFORMED_RESPONSE"
        ) from exc

    if not isinstance(parsed, dict):
        raise QAServiceError(
            f"QA reviewer returned non-object JSON: got {type(parsed).__name__}",
            code="MALFORMED_RESPONSE",
        )

    errors = sorted(_lenient_validator().iter_errors(parsed), key=lambda e: list(e.path))
    if errors:
        details = "; ".join(
            f"{'/'.join(str(p) for p in err.path) or '$'}: {err.message}" for err in errors
        )
        raise QAServiceError(
            f"QA reviewer response failed schema validation: {details}",
            code="MALFORMED_RESPONSE",
        )

    missing = [name for name in QA_CHECK_FIELDS if name not in parsed]
    if missing:
        logger.warning("QA response omitted checks %s; treating them as passed", missing)

    return QACheckResult(
        **{name: parsed.get(name, True) for name in QA_CHECK_FIELDS},
        issues=tuple(parsed.get("issues", ())),
        recommendations=tuple(parsed.get("recommendations", ())),
    )


def build_qa_prompt(
    instructions: str,
    text: str,
    metadata: DocumentMetadata,
    *,
    excerpt_chars: int = DEFAULT_EXCERPT_CHARS,
    brand_findings: Sequence[str] = (),
) -> str:
    """Build the QA review prompt.

    Layout: instructions, a CONTEXT PAYLOAD JSON block (document identity,
    required sections, brand findings and the excerpt), then the RESPONSE
    SCHEMA the reviewer must satisfy.
    """
    excerpt = text[:excerpt_chars]
    payload = {
        "brand_findings": list(brand_findings),
        "classification": metadata.classification.label,
        "document_excerpt": excerpt,
        "document_id": metadata.id,
        "document_type": metadata.type.value,
        "excerpt_truncated": len(text) > excerpt_chars,
        "required_sections": list(REQUIRED_SECTIONS[metadata.type]),
        "title": metadata.title,
    }
    schema = load_response_schema()
    return (
        f"{instructions.rstrip()}\n\n"
        f"{CONTEXT_MARKER}{json.dumps(payload, sort_keys=True, indent=2)}"
        f"{SCHEMA_MARKER}\n{json.dumps(schema, sort_keys=True, indent=2)}\n"
    )


def merge_brand_signal(result: QACheckResult, report: BrandComplianceReport) -> QACheckResult:
    """Fold local brand findings into the reviewer's verdict."""
    if report.compliant:
        return result
    return result.model_copy(
        update={
            "brand_compliance": False,
            "issues": (*result.issues, *(BRAND_ISSUE_PREFIX + i for i in report.issues)),
        }
    )


class QAOrchestrator:
    """Runs QA review of composed documents against an injected LLMClient."""

    def __init__(
        self,
        llm_client: LLMClient,
        *,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        excerpt_chars: int = DEFAULT_EXCERPT_CHARS,
        use_brand_signal: bool = True,
        brand_rules: BrandRules | None = None,
        prompt_path: Path | None = None,
        retry_delay_seconds: float = RETRY_DELAY_SECONDS,
    ) -> None:
        """Initialize the orchestrator.

        Args:
            llm_client: Provider-agnostic LLM client (required).
            timeout_seconds: Per-attempt timeout for the client call.
            excerpt_chars: Maximum document characters sent for review.
            use_brand_signal: Merge local brand findings into the verdict.
            brand_rules: Brand rules override. Defaults to the packaged rules.
            prompt_path: Override path to the review instructions.
            retry_delay_seconds: Pause before the single retry.

        Raises:
            ValueError: If timeout_seconds or excerpt_chars is not positive.
        """
        if timeout_seconds <= 0:
            raise ValueError(f"timeout_seconds must be positive, got {timeout_seconds}")
        if excerpt_chars <= 0:
            raise ValueError(f"excerpt_chars must be positive, got {excerpt_chars}")
        self._llm_client = llm_client
        self._timeout_seconds = timeout_seconds
        self._excerpt_chars = excerpt_chars
        self._use_brand_signal = use_brand_signal
        self._brand_rules = brand_rules
        self._prompt_path = prompt_path or DEFAULT_PROMPT_PATH
        self._retry_delay_seconds = retry_delay_seconds
        self._instructions: str | None = None

    def _load_instructions(self) -> str:
        if self._instructions is None:
            if not self._prompt_path.exists():
                raise FileNotFoundError(f"QA prompt file not found: {self._prompt_path}")
            self._instructions = self._prompt_path.read_text(encoding="utf-8")
        return self._instructions

    async def run_qa(self, text: str, metadata: DocumentMetadata) -> QACheckResult:
        """Review a composed document.

        Args:
            text: Composed markdown text.
            metadata: The document's metadata (type, title, classification).

        Returns:
            QACheckResult; passed is the AND of the six checks.

        Raises:
            QAServiceError: If the reviewer is unreachable or its verdict is unusable.
        """
        brand_report = (
            check_brand_compliance(text, self._brand_rules) if self._use_brand_signal else None
        )
        prompt = build_qa_prompt(
            self._load_instructions(),
            text,
            metadata,
            excerpt_chars=self._excerpt_chars,
            brand_findings=brand_report.issues if brand_report is not None else (),
        )

        raw = await self._call_with_retry(prompt, metadata.id)
        result = parse_qa_response(raw)
        if brand_report is not None:
            result = merge_brand_signal(result, brand_report)

        logger.info(
            "QA for %s: passed=%s failed_checks=%s issues=%d",
            metadata.id,
            result.passed,
            result.failed_checks,
            len(result.issues),
        )
        return result

    async def _call_with_retry(self, prompt: str, document_id: str) -> str:
        last_code = "UNAVAILABLE"
        last_error: BaseException | None = None
        for attempt in range(1, MAX_ATTEMPTS + 1):
            try:
                return await asyncio.wait_for(
                    asyncio.to_thread(self._llm_client.call, prompt, json_mode=True),
                    timeout=self._timeout_seconds,
                )
            except TimeoutError as exc:
                last_code, last_error = "TIMEOUT", exc
                logger.warning(
                    "QA call for %s timed out after %.1fs (attempt %d/%d)",
                    document_id,
                    self._timeout_seconds,
                    attempt,
                    MAX_ATTEMPTS,
                )
            except (TransientLLMError, ConnectionError) as exc:
                last_code, last_error = "UNAVAILABLE", exc
                logger.warning(
                    "QA call for %s failed transiently (attempt %d/%d): %s",
                    document_id,
                    attempt,
                    MAX_ATTEMPTS,
                    exc,
                )
            except LLMCallError as exc:
                raise QAServiceError(f"QA reviewer call failed: {exc}", code="LLM_ERROR") from exc
            except Exception as exc:
                raise QAServiceError(
                    f"QA reviewer call failed: {type(exc).__name__}: {exc}", code="LLM_ERROR"
                ) from exc

            if attempt < MAX_ATTEMPTS and self._retry_delay_seconds > 0:
                await asyncio.sleep(self._retry_delay_seconds)

        raise QAServiceError(
            f"QA reviewer unreachable after {MAX_ATTEMPTS} attempts: {last_error}",
            code=last_code,
        ) from last_error
