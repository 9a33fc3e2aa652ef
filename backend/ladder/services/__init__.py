"""Internal application services.

``rating`` and ``validation`` are pure helpers; ``store``, ``approval``,
``commentary`` and ``live`` perform I/O and are imported explicitly.
"""

from .validation import (
    ValidationError,
    validate_best_of,
    validate_match_type,
    validate_pin,
    validate_rosters,
    validate_set_scores,
)
from .rating import RatingChange, compute_rating_updates, expected_score, team_rating

__all__ = [
    "ValidationError",
    "validate_best_of",
    "validate_match_type",
    "validate_pin",
    "validate_rosters",
    "validate_set_scores",
    "RatingChange",
    "compute_rating_updates",
    "expected_score",
    "team_rating",
]
