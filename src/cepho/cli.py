"""CEPHO CLI - Deterministic command-line interface for the document pipeline.

Usage:
    cepho rate <score>
    cepho overall [--input PATH]
    cepho format-brand [--input PATH]
    cepho check-brand [--input PATH]
    cepho generate --type TYPE [--input PATH] [--classification C] [--status S]
                   [--out-dir DIR] [--no-brand-format]

Inputs are read from stdin when --input is omitted. All results are JSON on
stdout with sorted keys; logs go to stderr (--log-level, default WARNING).

Exit codes:
    0: Success / compliant / QA passed
    1: Internal error (including an unreachable QA reviewer)
    2: Invalid input / non-compliant text / QA failed
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import math
import sys
from typing import Any

from pydantic import ValidationError

from cepho.audit.sink import JsonlFileAuditSink
from cepho.brand.compliance import check_brand_compliance, format_for_brand
from cepho.brand.rules import BrandRulesError
from cepho.config import ConfigError, PipelineSettings
from cepho.documents.composer import DocumentCompositionError, content_type_for
from cepho.models.documents import (
    Classification,
    DocumentStatus,
    DocumentType,
    ScoringMatrixEntry,
)
from cepho.pipeline import SIGN_OFF_STATUSES, DocumentPipeline
from cepho.qa.orchestrator import QAServiceError
from cepho.scoring.engine import ScoringError, rate_score, weighted_overall_score
from cepho.storage.artifact_store import FilesystemArtifactStore

logger = logging.getLogger(__name__)

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")


def _output_json(data: dict[str, Any]) -> None:
    """Output JSON to stdout with deterministic ordering."""
    print(json.dumps(data, sort_keys=True, indent=2, ensure_ascii=False))


def _make_error_result(code: str, message: str) -> dict[str, Any]:
    """Create a failed result dict with a single error."""
    return {"errors": [{"code": code, "message": message}], "pass": False}


def _read_input(input_path: str | None) -> tuple[str | None, str | None]:
    """Read raw text from a file or stdin.

    Returns:
        Tuple of (content, error_message). If error_message is not None,
        content should be ignored.
    """
    try:
        if input_path:
            with open(input_path, encoding="utf-8") as f:
                return f.read(), None
        return sys.stdin.read(), None
    except FileNotFoundError:
        return None, f"File not found: {input_path}"
    except OSError as e:
        return None, f"Cannot read input: {e}"


def _load_json_input(input_path: str | None) -> tuple[Any, str | None]:
    """Load JSON from file or stdin.

    Returns:
        Tuple of (parsed_data, error_message).
    """
    content, error = _read_input(input_path)
    if error is not None:
        return None, error
    if not content or not content.strip():
        return None, "Empty input"
    try:
        return json.loads(content), None
    except json.JSONDecodeError as e:
        return None, f"Invalid JSON: {e}"


def _finite_float(value: str) -> float:
    """argparse type for a finite number; NaN and infinities have no JSON form."""
    try:
        number = float(value)
    except ValueError as e:
        raise argparse.ArgumentTypeError(f"invalid number: '{value}'") from e
    if not math.isfinite(number):
        raise argparse.ArgumentTypeError(f"score must be a finite number, got '{value}'")
    return number


def _parse_matrix(raw: Any) -> list[ScoringMatrixEntry]:
    """Validate a scoring matrix given as a list or {"entries": [...]}.

    Raises:
        ValueError: If the shape is wrong.
        ValidationError: If an entry is invalid.
    """
    if isinstance(raw, dict) and "entries" in raw:
        raw = raw["entries"]
    if not isinstance(raw, list):
        raise ValueError("Scoring matrix must be a JSON list of entries")
    return [ScoringMatrixEntry.model_validate(item) for item in raw]


def cmd_rate(args: argparse.Namespace) -> int:
    """Print the rating band for a score. Always exits 0."""
    rating = rate_score(args.score)
    _output_json({"score": args.score, **rating.model_dump(mode="json")})
    return 0


def cmd_overall(args: argparse.Namespace) -> int:
    """Compute the weighted overall score of a scoring matrix.

    Exit codes:
        0: Score computed
        2: Invalid input, empty matrix or zero weights
    """
    data, error_msg = _load_json_input(args.input)
    if error_msg is not None:
        _output_json(_make_error_result("INVALID_JSON", error_msg))
        return 2

    try:
        entries = _parse_matrix(data)
        overall = weighted_overall_score(entries)
    except (ValueError, ValidationError) as e:
        _output_json(_make_error_result("INVALID_INPUT", str(e)))
        return 2
    except ScoringError as e:
        _output_json(_make_error_result(e.code, e.message))
        return 2

    _output_json(
        {
            "entries": [entry.model_dump(mode="json") for entry in entries],
            "overall_score": overall,
            "rating": rate_score(overall).model_dump(mode="json"),
        }
    )
    return 0


def cmd_format_brand(args: argparse.Namespace) -> int:
    """Print brand-formatted text."""
    text, error_msg = _read_input(args.input)
    if error_msg is not None or text is None:
        _output_json(_make_error_result("INVALID_INPUT", error_msg or "No input"))
        return 2
    _output_json({"text": format_for_brand(text)})
    return 0


def cmd_check_brand(args: argparse.Namespace) -> int:
    """Check text against brand guidelines.

    Exit codes:
        0: Compliant
        2: Not compliant or unreadable input
    """
    text, error_msg = _read_input(args.input)
    if error_msg is not None or text is None:
        _output_json(_make_error_result("INVALID_INPUT", error_msg or "No input"))
        return 2
    report = check_brand_compliance(text)
    _output_json(report.to_dict())
    return 0 if report.compliant else 2


def cmd_generate(args: argparse.Namespace) -> int:
    """Generate, review, sign off and store one document.

    Input JSON: {"content": {...}, "scoring_matrix": [...]} where
    scoring_matrix is optional.

    Exit codes:
        0: Document generated and QA passed
        1: QA reviewer unreachable or internal error
        2: Invalid input, or document generated but QA failed
    """
    data, error_msg = _load_json_input(args.input)
    if error_msg is not None:
        _output_json(_make_error_result("INVALID_JSON", error_msg))
        return 2
    if not isinstance(data, dict) or not isinstance(data.get("content"), dict):
        _output_json(
            _make_error_result("INVALID_INPUT", 'Input must be an object with a "content" object')
        )
        return 2

    document_type = DocumentType(args.type)
    try:
        content = content_type_for(document_type).model_validate(data["content"])
        matrix = _parse_matrix(data["scoring_matrix"]) if data.get("scoring_matrix") else None
        settings = PipelineSettings.from_env()
    except (ValueError, ValidationError, ConfigError) as e:
        _output_json(_make_error_result("INVALID_INPUT", str(e)))
        return 2

    store = FilesystemArtifactStore(args.out_dir or settings.artifact_dir)
    pipeline = DocumentPipeline.from_settings(
        settings,
        audit_sink=JsonlFileAuditSink(settings.audit_log_path),
        store=store,
    )

    try:
        generated = asyncio.run(
            pipeline.generate(
                document_type,
                content,
                scoring_matrix=matrix,
                classification=Classification(args.classification),
                target_status=DocumentStatus(args.status),
                brand_format=not args.no_brand_format,
            )
        )
    except (ScoringError, DocumentCompositionError, BrandRulesError) as e:
        _output_json(_make_error_result(getattr(e, "code", "INVALID_INPUT"), str(e)))
        return 2
    except QAServiceError as e:
        _output_json(_make_error_result(e.code, e.message))
        return 1

    result: dict[str, Any] = {
        "artifact": generated.artifact.location if generated.artifact else None,
        "brand": generated.brand_report.to_dict(),
        "document_id": generated.metadata.id,
        "pass": generated.qa_passed,
        "qa": generated.qa_result.model_dump(mode="json"),
        "sha256": generated.artifact.sha256 if generated.artifact else None,
        "status": generated.metadata.status.value,
    }
    _output_json(result)
    return 0 if generated.qa_passed else 2


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog="cepho",
        description="CEPHO - Document generation and quality assurance pipeline",
    )
    parser.add_argument(
        "--log-level",
        choices=LOG_LEVELS,
        default="WARNING",
        help="Log level for stderr logging (default: WARNING)",
    )

    subparsers = parser.add_subparsers(dest="command", help="Commands")

    rate_parser = subparsers.add_parser("rate", help="Rate a 0-100 score")
    rate_parser.add_argument("score", type=_finite_float, help="Score to rate")

    overall_parser = subparsers.add_parser(
        "overall",
        help="Weighted overall score of a scoring matrix",
    )
    overall_parser.add_argument(
        "--input",
        default=None,
        metavar="PATH",
        help="Path to matrix JSON (reads from stdin if omitted)",
    )

    for name, help_text in (
        ("format-brand", "Apply brand formatting to text"),
        ("check-brand", "Check text against brand guidelines"),
    ):
        brand_parser = subparsers.add_parser(name, help=help_text)
        brand_parser.add_argument(
            "--input",
            default=None,
            metavar="PATH",
            help="Path to text file (reads from stdin if omitted)",
        )

    generate_parser = subparsers.add_parser(
        "generate",
        help="Compose, review, sign off and store a document",
    )
    generate_parser.add_argument(
        "--type",
        required=True,
        choices=[t.value for t in DocumentType],
        help="Document type",
    )
    generate_parser.add_argument(
        "--input",
        default=None,
        metavar="PATH",
        help="Path to content JSON (reads from stdin if omitted)",
    )
    generate_parser.add_argument(
        "--classification",
        choices=[c.value for c in Classification],
        default=Classification.INTERNAL.value,
        help="Classification label (default: internal)",
    )
    generate_parser.add_argument(
        "--status",
        choices=[s.value for s in SIGN_OFF_STATUSES],
        default=DocumentStatus.FINAL.value,
        help="Status to sign off at (default: final)",
    )
    generate_parser.add_argument(
        "--out-dir",
        default=None,
        metavar="DIR",
        help="Artifact directory (default: CEPHO_ARTIFACT_DIR)",
    )
    generate_parser.add_argument(
        "--no-brand-format",
        action="store_true",
        default=False,
        help="Compose the content as given, without brand formatting",
    )

    return parser


COMMAND_DISPATCH = {
    "rate": cmd_rate,
    "overall": cmd_overall,
    "format-brand": cmd_format_brand,
    "check-brand": cmd_check_brand,
    "generate": cmd_generate,
}


def main(argv: list[str] | None = None) -> int:
    """Main entry point.

    Exit codes:
        0: Success
        1: Internal error (unexpected)
        2: Invalid input / check failed
    """
    try:
        parser = create_parser()
        args = parser.parse_args(argv)
        logging.basicConfig(
            level=getattr(logging, args.log_level),
            stream=sys.stderr,
            format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        )

        if args.command is None:
            parser.print_help()
            return 0

        return COMMAND_DISPATCH[args.command](args)

    except Exception as e:
        # Fail-closed: unexpected errors return exit code 1
        logger.exception("Unexpected CLI failure")
        _output_json(_make_error_result("INTERNAL_ERROR", str(e)))
        return 1


if __name__ == "__main__":
    sys.exit(main())
