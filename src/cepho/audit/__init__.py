"""Audit events for the document pipeline."""

from cepho.audit.sink import (
    EVENT_GENERATION_COMPLETED,
    EVENT_GENERATION_FAILED,
    EVENT_GENERATION_STARTED,
    EVENT_QA_COMPLETED,
    EVENT_SIGNOFF_RECORDED,
    AuditSink,
    AuditSinkError,
    InMemoryAuditSink,
    JsonlFileAuditSink,
    build_audit_event,
    get_audit_sink,
)

__all__ = [
    "EVENT_GENERATION_COMPLETED",
    "EVENT_GENERATION_FAILED",
    "EVENT_GENERATION_STARTED",
    "EVENT_QA_COMPLETED",
    "EVENT_SIGNOFF_RECORDED",
    "AuditSink",
    "AuditSinkError",
    "InMemoryAuditSink",
    "JsonlFileAuditSink",
    "build_audit_event",
    "get_audit_sink",
]
