# backend/ladder/routers/matches.py
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from ..cache import read_cache
from ..db import get_session
from ..exceptions import (
    InvalidRequest,
    MatchForbidden,
    MatchNotFound,
    ProblemDetail,
)
from ..models import MATCH_STATUSES, Match, Player
from ..schemas import (
    ApprovalOut,
    MatchCreate,
    MatchOut,
    RatingChangeOut,
    RejectionOut,
    SetScore,
)
from ..services import store
from ..services.approval import approve_match, reject_match, submit_match
from ..time_utils import coerce_utc
from .auth import get_current_player, limiter, rate_limits_disabled
from .players import player_out

# Resource-only prefix; versioning is added in main.py
router = APIRouter(
    prefix="/matches",
    tags=["matches"],
    responses={
        403: {"model": ProblemDetail},
        404: {"model": ProblemDetail},
        409: {"model": ProblemDetail},
    },
)


def submit_rate_limit() -> str:
    if rate_limits_disabled():
        return "1000/second"
    return "30/minute"


def _rating_change_out(raw: dict) -> RatingChangeOut:
    previous = int(raw["previousRating"])
    new = int(raw["newRating"])
    return RatingChangeOut(
        playerId=raw["playerId"],
        previousRating=previous,
        newRating=new,
        delta=new - previous,
    )


def match_out(m: Match) -> MatchOut:
    changes = None
    if m.rating_changes is not None:
        changes = [_rating_change_out(c) for c in m.rating_changes]
    return MatchOut(
        id=m.id,
        createdAt=coerce_utc(m.created_at),
        type=m.match_type,
        teamA=list(m.team_a_ids or []),
        teamB=list(m.team_b_ids or []),
        sets=[SetScore(A=s["A"], B=s["B"]) for s in (m.sets or [])],
        winnerTeam=m.winner_team,
        status=m.status,
        bestOf=m.best_of,
        submittedBy=m.submitted_by,
        commentary=m.commentary,
        decidedBy=m.decided_by,
        decidedAt=coerce_utc(m.decided_at),
        ratingChanges=changes,
    )


def _require_opponent(match: Match, player: Player) -> None:
    """Only a participant other than the submitter may decide a match."""

    if player.id not in match.player_ids:
        raise MatchForbidden("only players in this match can decide it")
    if player.id == match.submitted_by:
        raise MatchForbidden("the submitter cannot decide their own match")


async def _load_match(session: AsyncSession, mid: str) -> Match:
    async with store.store_errors(session, "get match"):
        match = await store.get_match(session, mid)
    if match is None:
        raise MatchNotFound(mid)
    return match


# GET /api/v0/matches
@router.get("", response_model=list[MatchOut])
async def list_matches(
    status: Optional[str] = Query(None),
    player_id: Optional[str] = Query(None, alias="playerId"),
    session: AsyncSession = Depends(get_session),
):
    if status is not None:
        status = status.strip().upper()
        if status not in MATCH_STATUSES:
            raise InvalidRequest(
                f"status must be one of {', '.join(MATCH_STATUSES)}",
                code="match_invalid_status",
            )
    key = (store.MATCHES, status, player_id)
    cached = await read_cache.get(key)
    if cached is not None:
        return cached
    generation = read_cache.generation(store.MATCHES)
    async with store.store_errors(session, "list matches"):
        rows = await store.read_matches(session, status=status, player_id=player_id)
    result = [match_out(m) for m in rows]
    await read_cache.set(key, result, generation=generation)
    return result


@router.post("", response_model=MatchOut, status_code=201)
@limiter.limit(submit_rate_limit)
async def create_match(
    request: Request,
    body: MatchCreate,
    session: AsyncSession = Depends(get_session),
    current: Player = Depends(get_current_player),
):
    """Submit a finished match for confirmation by an opponent."""

    if current.id not in body.teamA + body.teamB:
        raise MatchForbidden("you can only submit matches you played in")
    match = await submit_match(session, body, current.id)
    return match_out(match)


@router.get("/{mid}", response_model=MatchOut)
async def get_match(mid: str, session: AsyncSession = Depends(get_session)):
    return match_out(await _load_match(session, mid))


@router.patch("/{mid}/approve", response_model=ApprovalOut)
async def approve(
    mid: str,
    session: AsyncSession = Depends(get_session),
    current: Player = Depends(get_current_player),
):
    _require_opponent(await _load_match(session, mid), current)
    result = await approve_match(session, mid, decided_by=current.id)
    return ApprovalOut(
        match=match_out(result.match),
        players=[player_out(p) for p in result.players],
        ratingChanges=[
            RatingChangeOut(
                playerId=c.player_id,
                previousRating=c.previous_rating,
                newRating=c.new_rating,
                delta=c.delta,
            )
            for c in result.rating_changes
        ],
    )


@router.patch("/{mid}/reject", response_model=RejectionOut)
async def reject(
    mid: str,
    session: AsyncSession = Depends(get_session),
    current: Player = Depends(get_current_player),
):
    _require_opponent(await _load_match(session, mid), current)
    match = await reject_match(session, mid, decided_by=current.id)
    return RejectionOut(match=match_out(match))
