"""Hand-off from a finished live match to a submission payload."""

from __future__ import annotations

from typing import Dict, Mapping

import httpx

from ..schemas import MatchCreate
from ..scoring import table_tennis
from ..time_utils import utcnow
from .commentary import MatchFacts, generate_summary


async def finish_match(
    state: Dict,
    player_names: Mapping[str, str],
    *,
    commentary_client: httpx.AsyncClient | None = None,
) -> MatchCreate:
    """Build the PENDING submission for a match in the SUMMARY phase.

    Commentary is requested once here; a failing text service only costs the
    fallback string.
    """

    if state["phase"] != table_tennis.SUMMARY:
        raise table_tennis.ScoringError("match is not finished yet")

    teams = state["teams"]
    facts = MatchFacts(
        match_type=state["config"]["matchType"],
        team_a=[player_names.get(pid, "Unknown") for pid in teams["A"]],
        team_b=[player_names.get(pid, "Unknown") for pid in teams["B"]],
        winner=state["winner"],
        sets=state["sets"],
    )
    commentary = await generate_summary(facts, client=commentary_client)
    return MatchCreate(
        type=state["config"]["matchType"],
        teamA=list(teams["A"]),
        teamB=list(teams["B"]),
        sets=list(state["sets"]),
        bestOf=state["config"]["bestOf"],
        winnerTeam=state["winner"],
        commentary=commentary,
        playedAt=utcnow(),
    )
