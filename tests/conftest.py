"""Pytest configuration and fixtures for CEPHO tests.

This module provides common fixtures and configuration for all tests.
"""

from __future__ import annotations

from collections.abc import Callable, Iterator
from datetime import UTC, datetime
from pathlib import Path

import pytest

from cepho.audit.sink import AUDIT_LOG_PATH_ENV
from cepho.brand.rules import CEPHO_BRAND_RULES_PATH_ENV, clear_brand_rules_cache
from cepho.documents.content import ExecutiveSummaryContent
from cepho.models.documents import ScoringMatrixEntry

FIXED_NOW = datetime(2026, 3, 7, 9, 30, tzinfo=UTC)


@pytest.fixture(autouse=True)
def isolate_environment(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> Iterator[None]:
    """Keep every test away from the real audit log, env overrides and rule cache."""
    monkeypatch.setenv(AUDIT_LOG_PATH_ENV, str(tmp_path / "audit" / "events.jsonl"))
    for name in (
        CEPHO_BRAND_RULES_PATH_ENV,
        "CEPHO_QA_BACKEND",
        "CEPHO_QA_TIMEOUT_SECONDS",
        "CEPHO_QA_EXCERPT_CHARS",
        "CEPHO_ARTIFACT_DIR",
        "CEPHO_ANTHROPIC_MODEL_QA",
        "ANTHROPIC_API_KEY",
    ):
        monkeypatch.delenv(name, raising=False)
    clear_brand_rules_cache()
    yield
    clear_brand_rules_cache()


@pytest.fixture
def fixed_clock() -> Callable[[], datetime]:
    """UTC clock frozen at 2026-03-07 09:30."""
    return lambda: FIXED_NOW


@pytest.fixture
def executive_summary_content() -> ExecutiveSummaryContent:
    """Executive Summary payload with clean, brand-compliant wording."""
    return ExecutiveSummaryContent(
        title="Market Entry Review",
        overview=(
            "The proposed entry into the regional logistics market shows steady demand "
            "and a clear route to profitability within three years."
        ),
        key_findings=[
            "Demand has grown by twelve percent a year since 2022.",
            "Two incumbents hold most of the market but service levels are uneven.",
        ],
        recommendations=["Proceed with a pilot in one region."],
        next_steps=["Appoint a pilot lead.", "Agree the pilot budget."],
    )


@pytest.fixture
def scoring_matrix() -> list[ScoringMatrixEntry]:
    """Matrix whose weighted overall score is exactly 71 (Good)."""
    return [
        ScoringMatrixEntry(dimension="Market", score=90, weight=50, assessment="Strong demand"),
        ScoringMatrixEntry(dimension="Team", score=60, weight=30, assessment="Gaps in sales"),
        ScoringMatrixEntry(dimension="Finance", score=40, weight=20, assessment="Thin margins"),
    ]
