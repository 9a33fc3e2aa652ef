from typing import Any, Dict, List, Optional, Sequence

from ..config import MAX_PIN_BYTES, MAX_PIN_LENGTH, MIN_PIN_LENGTH
from ..models import BEST_OF_OPTIONS, ROSTER_SIZES

MAX_NAME_LENGTH = 50


class ValidationError(Exception):
    """Raised when submitted match or registration data is invalid."""

    def __init__(self, detail: str) -> None:
        super().__init__(detail)
        self.detail = detail


def validate_match_type(match_type: Any) -> str:
    if not isinstance(match_type, str) or match_type.upper() not in ROSTER_SIZES:
        allowed = ", ".join(sorted(ROSTER_SIZES))
        raise ValidationError(f"Match type must be one of: {allowed}.")
    return match_type.upper()


def validate_best_of(best_of: Any) -> int:
    if isinstance(best_of, bool) or best_of not in BEST_OF_OPTIONS:
        allowed = ", ".join(str(n) for n in BEST_OF_OPTIONS)
        raise ValidationError(f"Best-of must be one of: {allowed}.")
    return int(best_of)


def validate_rosters(
    match_type: str, team_a: Sequence[str], team_b: Sequence[str]
) -> None:
    """Check roster sizes against the match type and that the teams are disjoint.

    Rules:
    - each team holds exactly 1 (SINGLES) or 2 (DOUBLES) player ids
    - ids are non-empty strings and unique within a team
    - no player appears on both teams
    """

    size = ROSTER_SIZES[validate_match_type(match_type)]
    for label, team in (("A", team_a), ("B", team_b)):
        ids = list(team or [])
        if any(not isinstance(pid, str) or not pid.strip() for pid in ids):
            raise ValidationError(f"Team {label} contains an empty player id.")
        if len(ids) != size:
            noun = "player" if size == 1 else "players"
            raise ValidationError(
                f"Team {label} must have exactly {size} {noun} for {match_type.lower()}."
            )
        if len(set(ids)) != len(ids):
            raise ValidationError(f"Team {label} lists the same player twice.")

    overlap = sorted(set(team_a) & set(team_b))
    if overlap:
        raise ValidationError(
            "Players cannot be on both teams: " + ", ".join(overlap)
        )


def validate_set_scores(
    sets: List[Dict[str, Any]],
    *,
    max_sets: Optional[int] = 7,
    max_points_per_side: Optional[int] = 999,
) -> None:
    """Validate a list of set score dictionaries.

    Rules:
    - Number of sets must be <= ``max_sets`` (if provided); zero sets is fine
      for a match abandoned before the first set finished
    - Each set must be an object ``{A, B}``
    - ``A`` and ``B`` must be integers >= 0 (booleans are rejected)
    - Ties are not allowed
    """

    if not isinstance(sets, list):
        raise ValidationError("Sets must be a list.")
    if max_sets is not None and len(sets) > max_sets:
        raise ValidationError(f"Too many sets. Max allowed is {max_sets}.")

    for i, s in enumerate(sets, start=1):
        if not isinstance(s, dict):
            raise ValidationError(f"Set #{i} must be an object with fields A and B.")
        if "A" not in s or "B" not in s:
            raise ValidationError(f"Set #{i} must include both A and B.")

        vA, vB = s["A"], s["B"]

        # bool is a subclass of int
        if isinstance(vA, bool) or isinstance(vB, bool):
            raise ValidationError(f"Set #{i} scores must be integers (not booleans).")

        try:
            a = int(vA)
            b = int(vB)
        except (TypeError, ValueError):
            raise ValidationError(f"Set #{i} scores must be integers.")

        if a < 0 or b < 0:
            raise ValidationError(f"Set #{i} scores must be >= 0.")
        if a == b:
            raise ValidationError(f"Set #{i} cannot be a tie.")
        if max_points_per_side is not None and (
            a > max_points_per_side or b > max_points_per_side
        ):
            raise ValidationError(
                f"Set #{i} scores must be <= {max_points_per_side}."
            )


def validate_pin(pin: Any) -> str:
    if not isinstance(pin, str) or not pin:
        raise ValidationError("PIN is required.")
    if len(pin) < MIN_PIN_LENGTH:
        raise ValidationError(f"PIN must be at least {MIN_PIN_LENGTH} characters.")
    if len(pin) > MAX_PIN_LENGTH:
        raise ValidationError(f"PIN must be at most {MAX_PIN_LENGTH} characters.")
    if len(pin.encode("utf-8")) > MAX_PIN_BYTES:
        raise ValidationError(f"PIN must be at most {MAX_PIN_BYTES} bytes when encoded.")
    return pin


def normalize_player_name(name: Any) -> str:
    """Trim and collapse whitespace; raise if nothing is left."""

    if not isinstance(name, str):
        raise ValidationError("Name must be a string.")
    collapsed = " ".join(name.split())
    if not collapsed:
        raise ValidationError("Name is required.")
    if len(collapsed) > MAX_NAME_LENGTH:
        raise ValidationError(f"Name must be at most {MAX_NAME_LENGTH} characters.")
    return collapsed
