from sqlalchemy import (
    Column,
    String,
    DateTime,
    ForeignKey,
    JSON,
    Integer,
    Text,
    Index,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.sql import func

from .config import DEFAULT_RATING
from .db import Base

SINGLES = "SINGLES"
DOUBLES = "DOUBLES"
ROSTER_SIZES = {SINGLES: 1, DOUBLES: 2}

PENDING = "PENDING"
APPROVED = "APPROVED"
REJECTED = "REJECTED"
MATCH_STATUSES = (PENDING, APPROVED, REJECTED)

BEST_OF_OPTIONS = (1, 3, 5, 7)


class Player(Base):
    __tablename__ = "player"
    id = Column(String, primary_key=True)
    name = Column(String, nullable=False)
    rating = Column(Integer, nullable=False, default=DEFAULT_RATING)
    wins = Column(Integer, nullable=False, default=0)
    losses = Column(Integer, nullable=False, default=0)
    avatar_url = Column(String, nullable=True)
    # never serialised; see schemas.PlayerOut
    pin_hash = Column(String, nullable=False)
    pin_salt = Column(String, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        Index("uq_player_name_lower", func.lower(name), unique=True),
    )


class Match(Base):
    __tablename__ = "match"
    id = Column(String, primary_key=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    match_type = Column(String, nullable=False)  # "SINGLES" | "DOUBLES"
    team_a_ids = Column(JSON().with_variant(JSONB, "postgresql"), nullable=False)
    team_b_ids = Column(JSON().with_variant(JSONB, "postgresql"), nullable=False)
    # ordered list of {"A": int, "B": int}
    sets = Column(JSON, nullable=False, default=list)
    winner_team = Column(String(1), nullable=True)  # "A" | "B" | NULL
    status = Column(String, nullable=False, default=PENDING)
    best_of = Column(Integer, nullable=False)
    submitted_by = Column(String, ForeignKey("player.id"), nullable=False)
    commentary = Column(Text, nullable=True)
    decided_by = Column(String, ForeignKey("player.id"), nullable=True)
    decided_at = Column(DateTime(timezone=True), nullable=True)
    # [{"playerId", "previousRating", "newRating"}], written on approval
    rating_changes = Column(JSON, nullable=True)

    __table_args__ = (
        Index("ix_match_status", "status"),
    )

    @property
    def player_ids(self) -> list[str]:
        return list(self.team_a_ids or []) + list(self.team_b_ids or [])
