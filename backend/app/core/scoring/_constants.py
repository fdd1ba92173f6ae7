"""
Constants for result calculation.

Grade boundaries are expressed on the 0-100 scaled score. Grade D is not a
fixed boundary: it starts at the test's passing score.
"""

from decimal import Decimal
from typing import Dict

# Minimum scaled score for each fixed grade, highest first
GRADE_THRESHOLDS: Dict[str, Decimal] = {
    "A": Decimal("90"),
    "B": Decimal("80"),
    "C": Decimal("70"),
}
PASSING_GRADE = "D"
FAILING_GRADE = "E"

# Trait callouts in recommendations
TRAIT_STRENGTH_THRESHOLD = 80
TRAIT_DEVELOPMENT_THRESHOLD = 40

# Recommendation score bands for passed attempts
EXCELLENT_SCORE_BAND = Decimal("90")
GOOD_SCORE_BAND = Decimal("80")

# Per-answer breakdown multipliers (baseline model)
BREAKDOWN_SCALED_MULTIPLIER = Decimal("10")
BREAKDOWN_PERCENTILE_MULTIPLIER = Decimal("20")

# Rating scale bounds used for personality traits
RATING_MIN = 1
RATING_MAX = 5

CALCULATION_METHOD = "standard_scoring"
