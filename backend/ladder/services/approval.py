"""Two-party confirmation of match results.

A submitted match starts PENDING. Only ``approve_match`` changes ratings and
win/loss counters, and it does so in the same transaction that moves the
match to APPROVED. ``reject_match`` never touches players.
"""

from __future__ import annotations

import asyncio
import logging
import uuid
import weakref
from typing import NamedTuple

import httpx
from sqlalchemy.ext.asyncio import AsyncSession

from ..exceptions import InvalidMatchState, InvalidRequest, MatchNotFound
from ..models import APPROVED, PENDING, REJECTED, Match, Player
from ..schemas import MatchCreate
from ..scoring import table_tennis
from . import store
from .commentary import MatchFacts, generate_summary
from .rating import RatingChange, compute_rating_updates
from .validation import ValidationError, validate_rosters, validate_set_scores

logger = logging.getLogger(__name__)


class ApprovalResult(NamedTuple):
    match: Match
    players: list[Player]
    rating_changes: list[RatingChange]


_match_locks: "weakref.WeakValueDictionary[str, asyncio.Lock]" = (
    weakref.WeakValueDictionary()
)


def _match_lock(match_id: str) -> asyncio.Lock:
    lock = _match_locks.get(match_id)
    if lock is None:
        lock = asyncio.Lock()
        _match_locks[match_id] = lock
    return lock


def replay_draft(draft: MatchCreate) -> dict:
    """Run the draft through the scoring engine and return the final state.

    Raises ``InvalidRequest`` for bad rosters, illegal set scores or a declared
    winner that the sets do not support.
    """

    sets = [{"A": s.A, "B": s.B} for s in draft.sets]
    try:
        validate_rosters(draft.type, draft.teamA, draft.teamB)
        validate_set_scores(sets, max_sets=draft.bestOf)
        state = table_tennis.init_state(
            {"matchType": draft.type, "bestOf": draft.bestOf}
        )
        state = table_tennis.apply(
            {"type": "SETUP", "teamA": draft.teamA, "teamB": draft.teamB}, state
        )
        state = table_tennis.apply({"type": "START"}, state)
        state = table_tennis.record_sets(sets, state)
    except (ValidationError, table_tennis.ScoringError) as exc:
        raise InvalidRequest(str(exc), code="match_validation_error") from exc

    if draft.winnerTeam is not None and draft.winnerTeam != state["winner"]:
        expected = state["winner"] or "none"
        raise InvalidRequest(
            f"Declared winner {draft.winnerTeam} does not match the set scores "
            f"(winner: {expected}).",
            code="match_validation_error",
        )
    return state


async def submit_match(
    session: AsyncSession,
    draft: MatchCreate,
    submitted_by: str,
    *,
    commentary_client: httpx.AsyncClient | None = None,
) -> Match:
    """Store ``draft`` as a PENDING match. Ratings are not touched."""

    state = replay_draft(draft)

    async with store.store_errors(session, "submit"):
        players = await store.read_players_by_ids(
            session, draft.teamA + draft.teamB
        )
        missing = sorted(set(draft.teamA + draft.teamB) - set(players))
        if missing:
            raise InvalidRequest(
                "unknown players: " + ", ".join(missing),
                code="match_unknown_players",
            )

        commentary = draft.commentary
        if commentary is None:
            facts = MatchFacts(
                match_type=draft.type,
                team_a=[players[pid].name for pid in draft.teamA],
                team_b=[players[pid].name for pid in draft.teamB],
                winner=state["winner"],
                sets=state["sets"],
            )
            commentary = await generate_summary(facts, client=commentary_client)

        match = Match(
            id=uuid.uuid4().hex,
            match_type=draft.type,
            team_a_ids=list(draft.teamA),
            team_b_ids=list(draft.teamB),
            sets=state["sets"],
            winner_team=state["winner"],
            status=PENDING,
            best_of=draft.bestOf,
            submitted_by=submitted_by,
            commentary=commentary,
        )
        if draft.playedAt is not None:
            match.created_at = draft.playedAt
        await store.append_match(session, match)

    logger.info(
        "Match %s submitted by %s (winner=%s)",
        match.id,
        submitted_by,
        match.winner_team,
    )
    return match


def _require_pending(match: Match | None, match_id: str) -> Match:
    if match is None:
        raise MatchNotFound(match_id)
    if match.status != PENDING:
        raise InvalidMatchState(match_id, f"already {match.status.lower()}")
    return match


async def approve_match(
    session: AsyncSession, match_id: str, *, decided_by: str | None = None
) -> ApprovalResult:
    """Approve a PENDING match and apply its rating changes exactly once."""

    async with _match_lock(match_id):
        async with store.store_errors(session, "approve"):
            match = _require_pending(await store.get_match(session, match_id), match_id)
            winner = match.winner_team
            if winner not in ("A", "B"):
                raise InvalidMatchState(match_id, "no winning team declared")

            # current ratings come from the open transaction, never the cache
            players = await store.read_players_by_ids(session, match.player_ids)
            ratings = {pid: p.rating for pid, p in players.items()}
            changes = compute_rating_updates(
                match.team_a_ids, match.team_b_ids, winner, ratings
            )

            winners = set(match.team_a_ids if winner == "A" else match.team_b_ids)
            updates = []
            for change in changes:
                player = players[change.player_id]
                won = change.player_id in winners
                updates.append(
                    store.PlayerUpdate(
                        id=change.player_id,
                        rating=change.new_rating,
                        wins=player.wins + (1 if won else 0),
                        losses=player.losses + (0 if won else 1),
                    )
                )

            claimed = await store.update_match_status(
                session,
                match_id,
                APPROVED,
                decided_by=decided_by,
                rating_changes=[
                    {
                        "playerId": c.player_id,
                        "previousRating": c.previous_rating,
                        "newRating": c.new_rating,
                    }
                    for c in changes
                ],
            )
            if not claimed:
                await session.rollback()
                raise InvalidMatchState(match_id, "already decided")
            await store.update_players(session, updates)
            await session.commit()

            await session.refresh(match)
            all_players = await store.read_players(session)

    await store.invalidate(store.PLAYERS, store.MATCHES)
    logger.info(
        "Match %s approved by %s: %s",
        match_id,
        decided_by,
        ", ".join(f"{c.player_id}{c.delta:+d}" for c in changes) or "no rating changes",
    )
    return ApprovalResult(match, all_players, changes)


async def reject_match(
    session: AsyncSession, match_id: str, *, decided_by: str | None = None
) -> Match:
    """Reject a PENDING match. Players are never modified."""

    async with _match_lock(match_id):
        async with store.store_errors(session, "reject"):
            match = _require_pending(await store.get_match(session, match_id), match_id)
            claimed = await store.update_match_status(
                session, match_id, REJECTED, decided_by=decided_by
            )
            if not claimed:
                await session.rollback()
                raise InvalidMatchState(match_id, "already decided")
            await session.commit()
            await session.refresh(match)

    await store.invalidate(store.MATCHES)
    logger.info("Match %s rejected by %s", match_id, decided_by)
    return match
