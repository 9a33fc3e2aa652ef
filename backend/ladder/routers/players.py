from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from ..cache import read_cache
from ..db import get_session
from ..exceptions import PlayerNotFound, ProblemDetail
from ..models import Player
from ..schemas import PlayerOut
from ..services import store

router = APIRouter(
    prefix="/players",
    tags=["players"],
    responses={404: {"model": ProblemDetail}},
)

LEADERBOARD_CACHE_KEY = (store.PLAYERS, "leaderboard")


def player_out(p: Player) -> PlayerOut:
    return PlayerOut(
        id=p.id,
        name=p.name,
        rating=p.rating,
        wins=p.wins,
        losses=p.losses,
        avatarUrl=p.avatar_url,
    )


# GET /api/v0/players
@router.get("", response_model=list[PlayerOut])
async def list_players(session: AsyncSession = Depends(get_session)):
    """All players, highest rating first."""
    cached = await read_cache.get(LEADERBOARD_CACHE_KEY)
    if cached is not None:
        return cached
    generation = read_cache.generation(store.PLAYERS)
    async with store.store_errors(session, "list players"):
        rows = await store.read_players(session)
    result = [player_out(p) for p in rows]
    await read_cache.set(LEADERBOARD_CACHE_KEY, result, generation=generation)
    return result


@router.get("/{player_id}", response_model=PlayerOut)
async def get_player(player_id: str, session: AsyncSession = Depends(get_session)):
    async with store.store_errors(session, "get player"):
        p = await store.get_player(session, player_id)
    if not p:
        raise PlayerNotFound(player_id)
    return player_out(p)
