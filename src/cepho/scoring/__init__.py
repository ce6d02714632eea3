"""CEPHO Scoring: rating bands and weighted overall scores.

Deterministic and side-effect free. Invalid matrices fail closed.
"""

from cepho.scoring.engine import (
    DegenerateWeightsError,
    EmptyScoringMatrixError,
    ScoringError,
    build_entry,
    mean_score,
    rate_score,
    total_weighted_score,
    weighted_overall_score,
)
from cepho.scoring.scale import SCORING_SCALE

__all__ = [
    "SCORING_SCALE",
    "DegenerateWeightsError",
    "EmptyScoringMatrixError",
    "ScoringError",
    "build_entry",
    "mean_score",
    "rate_score",
    "total_weighted_score",
    "weighted_overall_score",
]
