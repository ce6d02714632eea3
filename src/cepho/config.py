"""Pipeline configuration from environment variables.

Environment variables:
    CEPHO_QA_BACKEND: QA reviewer backend, deterministic | anthropic (default: deterministic)
    CEPHO_QA_TIMEOUT_SECONDS: Per-attempt QA call timeout (default: 60)
    CEPHO_QA_EXCERPT_CHARS: Document characters sent for review (default: 5000)
    CEPHO_AUDIT_LOG_PATH: Audit JSONL file (default: ./var/audit/audit_events.jsonl)
    CEPHO_ARTIFACT_DIR: Directory for finished documents (default: ./var/documents)

CEPHO_BRAND_RULES_PATH, CEPHO_ANTHROPIC_MODEL_QA and ANTHROPIC_API_KEY are
read by the modules that use them.
"""

from __future__ import annotations

import os
from dataclasses import dataclass

from cepho.audit.sink import AUDIT_LOG_PATH_ENV, DEFAULT_AUDIT_LOG_PATH
from cepho.qa.backends import BACKEND_DETERMINISTIC, QA_BACKEND_ENV, QA_BACKENDS
from cepho.qa.orchestrator import DEFAULT_EXCERPT_CHARS, DEFAULT_TIMEOUT_SECONDS
from cepho.storage.artifact_store import ARTIFACT_DIR_ENV, DEFAULT_ARTIFACT_DIR

QA_TIMEOUT_ENV = "CEPHO_QA_TIMEOUT_SECONDS"
QA_EXCERPT_CHARS_ENV = "CEPHO_QA_EXCERPT_CHARS"


class ConfigError(Exception):
    """Raised when an environment variable holds an invalid value."""


@dataclass(frozen=True)
class PipelineSettings:
    """Resolved pipeline configuration."""

    qa_backend: str = BACKEND_DETERMINISTIC
    qa_timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS
    qa_excerpt_chars: int = DEFAULT_EXCERPT_CHARS
    audit_log_path: str = DEFAULT_AUDIT_LOG_PATH
    artifact_dir: str = DEFAULT_ARTIFACT_DIR

    def __post_init__(self) -> None:
        """Validate configuration values."""
        if self.qa_backend not in QA_BACKENDS:
            raise ConfigError(
                f"{QA_BACKEND_ENV} must be one of {', '.join(QA_BACKENDS)}, "
                f"got '{self.qa_backend}'"
            )
        if self.qa_timeout_seconds <= 0:
            raise ConfigError(
                f"{QA_TIMEOUT_ENV} must be a positive number, got {self.qa_timeout_seconds}"
            )
        if self.qa_excerpt_chars <= 0:
            raise ConfigError(
                f"{QA_EXCERPT_CHARS_ENV} must be a positive integer, got {self.qa_excerpt_chars}"
            )

    @classmethod
    def from_env(cls) -> PipelineSettings:
        """Load settings from environment variables.

        Raises:
            ConfigError: If any value is invalid.
        """
        return cls(
            qa_backend=_get_env_str(QA_BACKEND_ENV, BACKEND_DETERMINISTIC).lower(),
            qa_timeout_seconds=_parse_positive_float(QA_TIMEOUT_ENV, DEFAULT_TIMEOUT_SECONDS),
            qa_excerpt_chars=_parse_positive_int(QA_EXCERPT_CHARS_ENV, DEFAULT_EXCERPT_CHARS),
            audit_log_path=_get_env_str(AUDIT_LOG_PATH_ENV, DEFAULT_AUDIT_LOG_PATH),
            artifact_dir=_get_env_str(ARTIFACT_DIR_ENV, DEFAULT_ARTIFACT_DIR),
        )


def _get_env_str(key: str, default: str = "") -> str:
    """Get a string from the environment; blank means default."""
    return os.environ.get(key, "").strip() or default


def _parse_positive_int(env_var: str, default: int) -> int:
    """Parse a positive integer from an environment variable.

    Raises:
        ConfigError: If the value is set but not a positive integer.
    """
    raw = os.environ.get(env_var, "").strip()
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError as e:
        raise ConfigError(f"{env_var} must be a positive integer, got '{raw}'") from e
    if value <= 0:
        raise ConfigError(f"{env_var} must be a positive integer, got {value}")
    return value


def _parse_positive_float(env_var: str, default: float) -> float:
    """Parse a positive number from an environment variable.

    Raises:
        ConfigError: If the value is set but not a positive number.
    """
    raw = os.environ.get(env_var, "").strip()
    if not raw:
        return default
    try:
        value = float(raw)
    except ValueError as e:
        raise ConfigError(f"{env_var} must be a positive number, got '{raw}'") from e
    if not value > 0:
        raise ConfigError(f"{env_var} must be a positive number, got {value}")
    return value
