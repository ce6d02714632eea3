"""CEPHO scoring scale.

Five fixed, ordered, non-overlapping bands over 0-100. Colour and meaning
text are shown next to the rating in composed documents.
"""

from __future__ import annotations

from cepho.models.documents import ScoreRating

EXCELLENT = ScoreRating(
    rating="Excellent",
    low=86,
    high=100,
    colour="green",
    meaning="Highly favourable, proceed with confidence",
)
GOOD = ScoreRating(
    rating="Good",
    low=71,
    high=85,
    colour="lightGreen",
    meaning="Favourable, minor refinements needed",
)
AVERAGE = ScoreRating(
    rating="Average",
    low=51,
    high=70,
    colour="amber",
    meaning="Acceptable with caveats, needs attention",
)
BELOW_AVERAGE = ScoreRating(
    rating="Below Average",
    low=31,
    high=50,
    colour="orange",
    meaning="Significant concerns, major refinement needed",
)
POOR = ScoreRating(
    rating="Poor",
    low=0,
    high=30,
    colour="red",
    meaning="High risk, recommend against or pivot",
)

# Highest band first; lookup scans in this order.
SCORING_SCALE: tuple[ScoreRating, ...] = (EXCELLENT, GOOD, AVERAGE, BELOW_AVERAGE, POOR)

SCORE_MIN = 0.0
SCORE_MAX = 100.0
