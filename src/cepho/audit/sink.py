"""Audit event sinks for the document pipeline.

Provides append-only sinks for document lifecycle events. All sinks
implement the AuditSink protocol.

Design requirements:
- Append-only: never truncate/overwrite
- Fail closed: any IO or serialization failure raises AuditSinkError
- Deterministic: sorted keys, no extra whitespace
"""

from __future__ import annotations

import json
import logging
import os
import threading
import uuid
from datetime import UTC, datetime
from pathlib import Path
from typing import Any, Protocol, runtime_checkable

logger = logging.getLogger(__name__)

AUDIT_LOG_PATH_ENV = "CEPHO_AUDIT_LOG_PATH"
DEFAULT_AUDIT_LOG_PATH = "./var/audit/audit_events.jsonl"

EVENT_GENERATION_STARTED = "document.generation.started"
EVENT_GENERATION_COMPLETED = "document.generation.completed"
EVENT_GENERATION_FAILED = "document.generation.failed"
EVENT_QA_COMPLETED = "document.qa.completed"
EVENT_SIGNOFF_RECORDED = "document.signoff.recorded"


class AuditSinkError(Exception):
    """Raised when audit event emission fails. Always fatal to the caller."""


@runtime_checkable
class AuditSink(Protocol):
    """Protocol for audit event sinks.

    All implementations must be append-only and fail closed on errors.
    """

    def emit(self, event: dict[str, Any]) -> None:
        """Emit an audit event to the sink.

        Raises:
            AuditSinkError: If emission fails for any reason
        """
        ...


def build_audit_event(
    event_type: str,
    *,
    generation_id: str,
    document_id: str | None = None,
    **details: Any,
) -> dict[str, Any]:
    """Build an audit event envelope.

    Args:
        event_type: One of the EVENT_* constants.
        generation_id: Correlates every event of one pipeline run.
        document_id: Document the event concerns, once it has an ID.
        **details: Event-specific fields, stored under "details".

    Returns:
        Event dict with event_id, event_type, generation_id, document_id,
        occurred_at and details.
    """
    return {
        "event_id": str(uuid.uuid4()),
        "event_type": event_type,
        "generation_id": generation_id,
        "document_id": document_id,
        "occurred_at": datetime.now(UTC).isoformat().replace("+00:00", "Z"),
        "details": details,
    }


class JsonlFileAuditSink:
    """Append-only JSONL file sink for audit events.

    Configuration:
    - File path from env CEPHO_AUDIT_LOG_PATH (default: ./var/audit/audit_events.jsonl)
    - Creates parent directories if missing
    - Appends one line per event: json.dumps(event, sort_keys=True, separators=(",", ":")) + "\\n"
    """

    def __init__(self, file_path: str | Path | None = None) -> None:
        """Initialize the JSONL file sink.

        Args:
            file_path: Override path for the audit log file.
                       If None, reads from CEPHO_AUDIT_LOG_PATH env var,
                       falling back to DEFAULT_AUDIT_LOG_PATH.
        """
        if file_path is not None:
            self._file_path = Path(file_path)
        else:
            self._file_path = Path(os.environ.get(AUDIT_LOG_PATH_ENV) or DEFAULT_AUDIT_LOG_PATH)
        self._lock = threading.Lock()

    @property
    def file_path(self) -> Path:
        """Return the configured file path."""
        return self._file_path

    def emit(self, event: dict[str, Any]) -> None:
        """Append an audit event to the JSONL file.

        Raises:
            AuditSinkError: If serialization, directory creation or the write fails
        """
        try:
            line = json.dumps(event, sort_keys=True, separators=(",", ":")) + "\n"
        except (TypeError, ValueError) as e:
            raise AuditSinkError(f"Failed to serialize audit event: {e}") from e

        parent = self._file_path.parent
        try:
            parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise AuditSinkError(f"Failed to create audit log directory {parent}: {e}") from e

        try:
            with self._lock, open(self._file_path, mode="a", encoding="utf-8") as f:
                f.write(line)
        except OSError as e:
            raise AuditSinkError(f"Failed to write audit event to {self._file_path}: {e}") from e


class InMemoryAuditSink:
    """In-memory audit sink for testing (no disk writes)."""

    def __init__(self) -> None:
        """Initialize the in-memory sink."""
        self._events: list[dict[str, Any]] = []
        self._lock = threading.Lock()

    def emit(self, event: dict[str, Any]) -> None:
        """Store a JSON round-tripped copy of the event.

        Raises:
            AuditSinkError: If the event is not JSON-serializable
        """
        try:
            line = json.dumps(event, sort_keys=True, separators=(",", ":"))
        except (TypeError, ValueError) as e:
            raise AuditSinkError(f"Failed to serialize audit event: {e}") from e
        with self._lock:
            self._events.append(json.loads(line))

    @property
    def events(self) -> list[dict[str, Any]]:
        """Return all emitted events."""
        with self._lock:
            return list(self._events)

    def event_types(self) -> list[str]:
        """Return the event_type of every emitted event, in order."""
        return [event["event_type"] for event in self.events]

    def clear(self) -> None:
        """Clear all stored events."""
        with self._lock:
            self._events.clear()


def get_audit_sink() -> AuditSink:
    """Return the configured audit sink (JSONL file)."""
    return JsonlFileAuditSink()
