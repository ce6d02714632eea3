"""Scoring engine.

Pure functions over the fixed scoring scale:
1. rate_score: map a numeric score to exactly one band (Poor for anything
   outside 0-100, including NaN)
2. weighted_overall_score: sum(weighted_score) / sum(weight) * 100

Fail-closed: an empty matrix or a zero weight sum raises instead of
fabricating a score.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Iterable, Sequence

from cepho.models.documents import ScoreRating, ScoringMatrixEntry
from cepho.scoring.scale import POOR, SCORE_MAX, SCORE_MIN, SCORING_SCALE

logger = logging.getLogger(__name__)


class ScoringError(Exception):
    """Base class for invalid scoring input."""

    def __init__(self, message: str, code: str = "SCORING_ERROR") -> None:
        super().__init__(message)
        self.code = code
        self.message = message


class EmptyScoringMatrixError(ScoringError):
    """Raised when an overall score is requested for an empty matrix."""

    def __init__(self, message: str = "Scoring matrix must contain at least one entry") -> None:
        super().__init__(message, code="EMPTY_SCORING_MATRIX")


class DegenerateWeightsError(ScoringError):
    """Raised when the weights of a scoring matrix sum to zero."""

    def __init__(self, message: str = "Scoring matrix weights sum to zero") -> None:
        super().__init__(message, code="DEGENERATE_WEIGHTS")


def rate_score(score: float) -> ScoreRating:
    """Map a score to its rating band.

    Each band covers [low, next band's low); the top band is closed at 100.
    Integer scores therefore land exactly on the published ranges, and a
    fractional score between two ranges (e.g. 70.5) takes the lower band.

    Args:
        score: Score, expected in [0, 100].

    Returns:
        The matching ScoreRating. Poor for NaN or out-of-range input.
    """
    if not isinstance(score, int | float) or math.isnan(score):
        return POOR
    if score < SCORE_MIN or score > SCORE_MAX:
        return POOR
    for band in SCORING_SCALE:
        if score >= band.low:
            return band
    return POOR


def build_entry(
    dimension: str,
    score: float,
    weight: float,
    assessment: str = "",
) -> ScoringMatrixEntry:
    """Build a ScoringMatrixEntry; weighted_score is derived."""
    return ScoringMatrixEntry(
        dimension=dimension,
        score=score,
        weight=weight,
        assessment=assessment,
    )


def total_weighted_score(entries: Iterable[ScoringMatrixEntry]) -> float:
    """Sum of weighted scores, order-independent."""
    return math.fsum(entry.weighted_score for entry in entries)


def weighted_overall_score(entries: Sequence[ScoringMatrixEntry]) -> float:
    """Compute the weighted overall score of a scoring matrix.

    overall = sum(weighted_score) / sum(weight) * 100

    Weights are percentages and need not sum to 100; the division normalises
    them. math.fsum keeps the result independent of entry order.

    Args:
        entries: Scoring matrix entries.

    Returns:
        Overall score, in [0, 100] when every input score is.

    Raises:
        EmptyScoringMatrixError: If entries is empty.
        DegenerateWeightsError: If the weights sum to zero.
    """
    if not entries:
        raise EmptyScoringMatrixError()

    total_weight = math.fsum(entry.weight for entry in entries)
    if total_weight <= 0.0:
        raise DegenerateWeightsError(
            f"Scoring matrix weights sum to {total_weight}; "
            f"cannot compute an overall score for {len(entries)} entries"
        )

    if not math.isclose(total_weight, 100.0):
        logger.debug("Scoring matrix weights sum to %.4f, normalising", total_weight)

    return total_weighted_score(entries) * 100.0 / total_weight


def mean_score(scores: Sequence[float]) -> float:
    """Equal-weight overall score of a list of raw scores.

    Raises:
        EmptyScoringMatrixError: If scores is empty.
    """
    if not scores:
        raise EmptyScoringMatrixError("At least one assessment score is required")
    entries = [build_entry(f"item-{i}", score, 1.0) for i, score in enumerate(scores)]
    return weighted_overall_score(entries)
