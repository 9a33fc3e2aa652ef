import math
from typing import Mapping, NamedTuple, Sequence

from ..config import DEFAULT_RATING

K_FACTOR = 32


class RatingChange(NamedTuple):
    player_id: str
    previous_rating: int
    new_rating: int

    @property
    def delta(self) -> int:
        return self.new_rating - self.previous_rating


def expected_score(rating: float, opponent_rating: float) -> float:
    """Probability that a side rated ``rating`` beats ``opponent_rating``."""

    return 1 / (1 + 10 ** ((opponent_rating - rating) / 400))


def team_rating(ratings: Sequence[float]) -> float:
    """Mean rating of a team; an empty team counts as a fresh player."""

    if not ratings:
        return float(DEFAULT_RATING)
    return sum(ratings) / len(ratings)


def _round_half_up(value: float) -> int:
    # Python's round() is banker's rounding; 16.5 must become 17.
    return math.floor(value + 0.5)


def _resolved(ids: Sequence[str], ratings: Mapping[str, int]) -> list[str]:
    return [pid for pid in ids if ratings.get(pid) is not None]


def compute_rating_updates(
    team_a: Sequence[str],
    team_b: Sequence[str],
    winner: str,
    ratings: Mapping[str, int],
    k: int = K_FACTOR,
) -> list[RatingChange]:
    """Return the Elo rating change for every player of a two-team match.

    Each team is rated by the mean of its members' current ratings. The team
    delta ``round(k * (actual - expected))`` is applied unchanged to every
    member of that team, so doubles partners always move together.

    Players missing from ``ratings`` are skipped: they contribute nothing to
    their team's mean and receive no change.
    """

    if winner not in ("A", "B"):
        raise ValueError(f"winner must be 'A' or 'B', got {winner!r}")

    resolved_a = _resolved(team_a, ratings)
    resolved_b = _resolved(team_b, ratings)

    rating_a = team_rating([ratings[pid] for pid in resolved_a])
    rating_b = team_rating([ratings[pid] for pid in resolved_b])

    expected_a = expected_score(rating_a, rating_b)
    expected_b = expected_score(rating_b, rating_a)

    actual_a = 1 if winner == "A" else 0
    actual_b = 1 - actual_a

    delta_a = _round_half_up(k * (actual_a - expected_a))
    delta_b = _round_half_up(k * (actual_b - expected_b))

    changes: list[RatingChange] = []
    for pid in resolved_a:
        previous = int(ratings[pid])
        changes.append(RatingChange(pid, previous, previous + delta_a))
    for pid in resolved_b:
        previous = int(ratings[pid])
        changes.append(RatingChange(pid, previous, previous + delta_b))
    return changes
