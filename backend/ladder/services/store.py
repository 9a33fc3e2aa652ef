"""Row store for players and matches.

Reads return ORM rows refreshed from the database. ``append_*`` helpers commit
on their own; ``update_*`` helpers only stage statements so the caller can
commit several of them as one transaction.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, NamedTuple, Sequence

from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from ..cache import read_cache
from ..exceptions import PlayerNameTaken, UpstreamUnavailable
from ..models import Match, PENDING, Player
from ..time_utils import utcnow

logger = logging.getLogger(__name__)

PLAYERS = "players"
MATCHES = "matches"


class PlayerUpdate(NamedTuple):
    id: str
    rating: int
    wins: int
    losses: int


@asynccontextmanager
async def store_errors(session: AsyncSession, operation: str) -> AsyncIterator[None]:
    """Turn database failures into ``UpstreamUnavailable`` after a rollback."""

    try:
        yield
    except SQLAlchemyError as exc:
        logger.exception("Store failure during %s", operation)
        await session.rollback()
        raise UpstreamUnavailable("match store") from exc


async def read_players(session: AsyncSession) -> list[Player]:
    stmt = (
        select(Player)
        .order_by(Player.rating.desc(), func.lower(Player.name))
        .execution_options(populate_existing=True)
    )
    return list((await session.execute(stmt)).scalars().all())


async def read_players_by_ids(
    session: AsyncSession, player_ids: Sequence[str]
) -> dict[str, Player]:
    ids = {pid for pid in player_ids if pid}
    if not ids:
        return {}
    stmt = (
        select(Player)
        .where(Player.id.in_(ids))
        .execution_options(populate_existing=True)
    )
    rows = (await session.execute(stmt)).scalars().all()
    return {p.id: p for p in rows}


async def get_player(session: AsyncSession, player_id: str) -> Player | None:
    return await session.get(Player, player_id, populate_existing=True)


async def find_player_by_name(session: AsyncSession, name: str) -> Player | None:
    stmt = select(Player).where(func.lower(Player.name) == name.strip().lower())
    return (await session.execute(stmt)).scalar_one_or_none()


async def read_matches(
    session: AsyncSession,
    *,
    status: str | None = None,
    player_id: str | None = None,
) -> list[Match]:
    """Matches newest first, optionally filtered by status and participant."""

    stmt = select(Match).execution_options(populate_existing=True)
    if status:
        stmt = stmt.where(Match.status == status)
    stmt = stmt.order_by(Match.created_at.desc(), Match.id.desc())
    rows = list((await session.execute(stmt)).scalars().all())
    if player_id:
        # roster columns are JSON lists; filter here so SQLite and Postgres agree
        rows = [m for m in rows if player_id in m.player_ids]
    return rows


async def get_match(session: AsyncSession, match_id: str) -> Match | None:
    return await session.get(Match, match_id, populate_existing=True)


async def append_player(session: AsyncSession, player: Player) -> Player:
    session.add(player)
    try:
        await session.commit()
    except IntegrityError:
        # unique index on lower(name) lost a race with another registration
        await session.rollback()
        raise PlayerNameTaken(player.name)
    await read_cache.invalidate_kind(PLAYERS)
    return player


async def append_match(session: AsyncSession, match: Match) -> Match:
    session.add(match)
    await session.commit()
    await session.refresh(match)
    await read_cache.invalidate_kind(MATCHES)
    return match


async def update_players(
    session: AsyncSession, updates: Sequence[PlayerUpdate]
) -> None:
    now = utcnow()
    for upd in updates:
        await session.execute(
            update(Player)
            .where(Player.id == upd.id)
            .values(
                rating=upd.rating,
                wins=upd.wins,
                losses=upd.losses,
                updated_at=now,
            )
            .execution_options(synchronize_session=False)
        )


async def update_match_status(
    session: AsyncSession,
    match_id: str,
    status: str,
    *,
    expected_status: str = PENDING,
    decided_by: str | None = None,
    rating_changes: list[dict[str, Any]] | None = None,
) -> bool:
    """Move a match to ``status`` only if it is still ``expected_status``.

    Returns ``False`` when no row matched, i.e. another request already
    decided the match (or it does not exist).
    """

    values: dict[str, Any] = {
        "status": status,
        "decided_by": decided_by,
        "decided_at": utcnow(),
    }
    if rating_changes is not None:
        values["rating_changes"] = rating_changes
    result = await session.execute(
        update(Match)
        .where(Match.id == match_id, Match.status == expected_status)
        .values(**values)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1


async def invalidate(*kinds: str) -> None:
    await read_cache.invalidate_kind(*kinds)
