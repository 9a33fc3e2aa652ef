"""Table tennis scoring engine.

Rally-point scoring to 11 points with a win-by-2 requirement; the first team
to win ``bestOf // 2 + 1`` sets takes the match.

A live match walks through three phases:

``SETUP``
    match type, best-of format and rosters are collected (``SETUP`` events)
    and checked when the ``START`` event arrives.
``PLAYING``
    ``POINT`` events advance the current set. Finished sets are appended to
    ``state["sets"]`` and the live score resets to 0-0.
``SUMMARY``
    the match is decided; further points are refused.

Points cannot be taken back: an ``UNDO`` event is always refused.
"""

import copy
from typing import Dict, Iterable, Optional

from ..services.validation import (
    ValidationError,
    validate_best_of,
    validate_match_type,
    validate_rosters,
)

SETUP = "SETUP"
PLAYING = "PLAYING"
SUMMARY = "SUMMARY"


class ScoringError(ValueError):
    """Raised when an event is not allowed in the current phase."""


class UndoNotSupported(ScoringError):
    pass


def init_state(config: Dict) -> Dict:
    """Initialise scoreboard state for a match in the SETUP phase.

    Config keys:
    - matchType: ``"SINGLES"`` (default) or ``"DOUBLES"``
    - bestOf: 1, 3 (default), 5 or 7
    - pointsTo: points required to win a set (default 11)
    - winBy: margin required to win a set (default 2)
    """
    return {
        "phase": SETUP,
        "config": {
            "matchType": validate_match_type(config.get("matchType", "SINGLES")),
            "bestOf": validate_best_of(config.get("bestOf", 3)),
            "pointsTo": config.get("pointsTo", 11),
            "winBy": config.get("winBy", 2),
        },
        "teams": {"A": [], "B": []},
        "points": {"A": 0, "B": 0},
        "games": {"A": 0, "B": 0},
        "sets": [],
        "winner": None,
    }


def _other(side: str) -> str:
    return "B" if side == "A" else "A"


def sets_needed(best_of: int) -> int:
    return best_of // 2 + 1


def set_winner(a: int, b: int, points_to: int = 11, win_by: int = 2) -> Optional[str]:
    """Return ``"A"``/``"B"`` if the score ``a``-``b`` ends a set, else ``None``.

    >>> set_winner(11, 9)
    'A'
    >>> set_winner(11, 10) is None
    True
    >>> set_winner(10, 12)
    'B'
    """
    if a >= points_to and a - b >= win_by:
        return "A"
    if b >= points_to and b - a >= win_by:
        return "B"
    return None


def _setup(event: Dict, state: Dict) -> Dict:
    if state["phase"] != SETUP:
        raise ScoringError("match setup is closed once play has started")

    # validate everything before touching the state
    cfg = dict(state["config"])
    teams = {side: list(ids) for side, ids in state["teams"].items()}
    if "matchType" in event:
        cfg["matchType"] = validate_match_type(event["matchType"])
    if "bestOf" in event:
        cfg["bestOf"] = validate_best_of(event["bestOf"])
    for side, key in (("A", "teamA"), ("B", "teamB")):
        if key in event:
            ids = event[key]
            if not isinstance(ids, (list, tuple)):
                raise ValidationError(f"Team {side} must be a list of player ids.")
            teams[side] = list(ids)

    state["config"] = cfg
    state["teams"] = teams
    return state


def _start(state: Dict) -> Dict:
    if state["phase"] != SETUP:
        raise ScoringError("match has already started")
    validate_rosters(
        state["config"]["matchType"], state["teams"]["A"], state["teams"]["B"]
    )
    state["phase"] = PLAYING
    return state


def _point(side: str, state: Dict) -> Dict:
    if state["phase"] == SETUP:
        raise ScoringError("match has not started")
    if state["phase"] == SUMMARY:
        raise ScoringError("match is already decided")

    cfg = state["config"]
    state["points"][side] += 1
    pa, pb = state["points"]["A"], state["points"]["B"]

    won = set_winner(pa, pb, cfg.get("pointsTo", 11), cfg.get("winBy", 2))
    if won is None:
        return state

    state["sets"].append({"A": pa, "B": pb})
    state["games"][won] += 1
    state["points"]["A"] = state["points"]["B"] = 0

    if state["games"][won] >= sets_needed(cfg["bestOf"]):
        state["winner"] = won
        state["phase"] = SUMMARY
    return state


def apply(event: Dict, state: Dict) -> Dict:
    """Apply a SETUP, START, POINT or UNDO event to the current state."""
    kind = event.get("type")
    if kind == "UNDO":
        raise UndoNotSupported("recorded points cannot be undone")
    if kind == "SETUP":
        return _setup(event, state)
    if kind == "START":
        return _start(state)
    if kind == "POINT" and event.get("by") in ("A", "B"):
        return _point(event["by"], state)
    raise ScoringError("invalid table tennis event")


def set_wins(sets: Iterable[Dict]) -> Dict[str, int]:
    wins = {"A": 0, "B": 0}
    for s in sets:
        wins["A" if s["A"] > s["B"] else "B"] += 1
    return wins


def summary(state: Dict) -> Dict:
    return {
        "phase": state["phase"],
        "config": state["config"],
        "teams": state["teams"],
        "points": state["points"],
        "games": state["games"],
        "sets": state["sets"],
        "winner": state["winner"],
    }


def _rally(a: int, b: int) -> list[str]:
    """Point sequence reaching ``a``-``b`` without a side pulling ahead early."""
    winner = "A" if a > b else "B"
    loser = _other(winner)
    high, low = max(a, b), min(a, b)
    order: list[str] = []
    for _ in range(low):
        order.extend((loser, winner))
    order.extend([winner] * (high - low))
    return order


def record_sets(set_scores, state: Dict) -> Dict:
    """Replay final set scores point by point and return the resulting state.

    ``set_scores`` is an iterable of ``{"A": a, "B": b}`` mappings or
    ``(a, b)`` tuples and ``state`` must be in the PLAYING phase. The input
    state is left untouched. A ``ScoringError`` is raised for a score that is
    not a legal finished set (``11-10``, ``15-10``) or for a set played after
    the match was already decided.
    """
    state = copy.deepcopy(state)
    if state["phase"] == SETUP:
        raise ScoringError("match has not started")

    for i, score in enumerate(set_scores, start=1):
        if isinstance(score, dict):
            a, b = int(score["A"]), int(score["B"])
        else:
            a, b = (int(v) for v in score)
        if state["phase"] == SUMMARY:
            raise ScoringError(f"Set #{i} was played after the match was decided.")
        if a == b:
            raise ScoringError(f"Set #{i} cannot be a tie.")

        finished_before = len(state["sets"])
        rally = _rally(a, b)
        for n, side in enumerate(rally, start=1):
            state = _point(side, state)
            if len(state["sets"]) > finished_before and n < len(rally):
                last = state["sets"][-1]
                raise ScoringError(
                    f"Set #{i} ({a}-{b}) is not a valid score: "
                    f"the set ends at {last['A']}-{last['B']}."
                )
        if len(state["sets"]) == finished_before:
            raise ScoringError(f"Set #{i} ({a}-{b}) is not finished.")

    return state
