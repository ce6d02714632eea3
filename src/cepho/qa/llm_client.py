"""Provider-agnostic LLM client interface + deterministic QA reviewer.

LLMClient: Protocol for making LLM calls (provider-agnostic).
LLMCallError / TransientLLMError: failures raised by client implementations.
DeterministicQALLMClient: Rule-based QA verdicts for tests, demos and the
default CLI backend. No external calls are made.
"""

from __future__ import annotations

import json
import logging
import re
from typing import Any, Protocol

from cepho.brand.compliance import check_brand_compliance
from cepho.documents.templates import LOGO_LINE

logger = logging.getLogger(__name__)

CONTEXT_MARKER = "CONTEXT PAYLOAD:\n"
SCHEMA_MARKER = "\n\nRESPONSE SCHEMA:"

MIN_CONTENT_WORDS = 20

_PLACEHOLDER = re.compile(r"\b(?:TODO|TBD|TBC|lorem ipsum)\b|\[insert", re.IGNORECASE)
_SCORE = re.compile(r"(\d+(?:\.\d+)?)/100\b")


class LLMCallError(Exception):
    """Raised by an LLM client when a call fails and retrying will not help."""


class TransientLLMError(LLMCallError):
    """Raised by an LLM client for failures worth one retry.

    Rate limits, provider 5xx responses and dropped connections.
    """


class LLMClient(Protocol):
    """Provider-agnostic interface for LLM calls."""

    def call(self, prompt: str, *, json_mode: bool = False) -> str:
        """Make an LLM call and return the raw response text.

        Args:
            prompt: The full prompt text to send.
            json_mode: If True, request JSON-formatted output.

        Returns:
            Raw response string from the LLM.
        """
        ...


class DeterministicQALLMClient:
    """Deterministic QA reviewer: derives the six checks from fixed rules.

    Parses the CONTEXT PAYLOAD block of the QA prompt and inspects the
    document excerpt it carries:
    - brand_compliance: the excerpt passes the local brand validator
    - content_quality: no placeholder text, at least MIN_CONTENT_WORDS words
    - accuracy: every "N/100" score lies within 0..100
    - completeness: every required section heading is present (not judged
      past a truncation boundary)
    - formatting: exactly one "#" title, document opens with the logo or title
    - classification: the classification label appears in the header
    """

    def call(self, prompt: str, *, json_mode: bool = False) -> str:
        """Return a deterministic QA verdict for the prompt's excerpt.

        Args:
            prompt: The full QA prompt (includes the CONTEXT PAYLOAD block).
            json_mode: Ignored; always returns JSON.

        Returns:
            JSON string with the six checks, issues and recommendations.

        Raises:
            LLMCallError: If the prompt carries no parseable CONTEXT PAYLOAD.
        """
        context = self._extract_context(prompt)
        return json.dumps(self._review(context), sort_keys=True)

    def _extract_context(self, prompt: str) -> dict[str, Any]:
        start = prompt.find(CONTEXT_MARKER)
        if start < 0:
            raise LLMCallError("QA prompt has no CONTEXT PAYLOAD block")
        start += len(CONTEXT_MARKER)
        end = prompt.find(SCHEMA_MARKER, start)
        block = prompt[start:] if end < 0 else prompt[start:end]
        try:
            context = json.loads(block)
        except json.JSONDecodeError as exc:
            raise LLMCallError(f"QA prompt CONTEXT PAYLOAD is not JSON: {exc}") from exc
        if not isinstance(context, dict):
            raise LLMCallError("QA prompt CONTEXT PAYLOAD must be a JSON object")
        return context

    def _review(self, context: dict[str, Any]) -> dict[str, Any]:
        excerpt = str(context.get("document_excerpt", ""))
        truncated = bool(context.get("excerpt_truncated", False))
        issues: list[str] = []
        recommendations: list[str] = []

        brand_ok = check_brand_compliance(excerpt).compliant
        if not brand_ok:
            issues.append("Document wording does not follow brand guidelines")
            recommendations.append("Apply brand formatting to the source content and regenerate")

        words = excerpt.split()
        placeholder = _PLACEHOLDER.search(excerpt)
        content_ok = placeholder is None and len(words) >= MIN_CONTENT_WORDS
        if placeholder is not None:
            issues.append(f'Placeholder text found: "{placeholder.group(0)}"')
        elif not content_ok:
            issues.append(f"Document body is too short ({len(words)} words)")

        out_of_range = [m.group(0) for m in _SCORE.finditer(excerpt) if float(m.group(1)) > 100]
        accuracy_ok = not out_of_range
        for score in out_of_range:
            issues.append(f"Score outside the 0-100 scale: {score}")

        required = [str(s) for s in context.get("required_sections", [])]
        missing = [s for s in required if not _has_heading(excerpt, s)]
        completeness_ok = not missing or truncated
        if missing and not truncated:
            issues.extend(f"Missing required section: {section}" for section in missing)
        if truncated:
            recommendations.append(
                "Excerpt was truncated; review the sections beyond it manually"
            )

        titles = [line for line in excerpt.splitlines() if line.startswith("# ")]
        opening = excerpt.lstrip()
        formatting_ok = len(titles) == 1 and (
            opening.startswith(LOGO_LINE) or opening.startswith("# ")
        )
        if not formatting_ok:
            issues.append(f"Expected exactly one top-level title, found {len(titles)}")

        label = str(context.get("classification", ""))
        classification_ok = bool(label) and f"**Classification:** {label}" in excerpt
        if not classification_ok:
            issues.append(f'Classification label "{label}" missing from document header')

        return {
            "accuracy": accuracy_ok,
            "brand_compliance": brand_ok,
            "classification": classification_ok,
            "completeness": completeness_ok,
            "content_quality": content_ok,
            "formatting": formatting_ok,
            "issues": issues,
            "recommendations": recommendations,
        }


def _has_heading(text: str, heading: str) -> bool:
    pattern = re.compile(rf"^#{{1,3}} {re.escape(heading)}\s*$", re.MULTILINE)
    return pattern.search(text) is not None
