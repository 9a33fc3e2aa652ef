from typing import Any, Dict, List, Literal, Optional
from datetime import datetime
from pydantic import BaseModel, Field, model_validator, field_validator

from .time_utils import require_utc


class SetScore(BaseModel):
    A: int = Field(..., ge=0)
    B: int = Field(..., ge=0)

    @model_validator(mode="before")
    def _coerce(cls, value: Any) -> Dict[str, int]:
        """Allow set scores as ``{A, B}``, ``{teamAScore, teamBScore}`` or a pair."""
        if isinstance(value, dict):
            if "teamAScore" in value or "teamBScore" in value:
                return {"A": value.get("teamAScore"), "B": value.get("teamBScore")}
            return value
        if isinstance(value, (list, tuple)) and len(value) == 2:
            return {"A": value[0], "B": value[1]}
        if hasattr(value, "A") or hasattr(value, "B"):
            return {"A": getattr(value, "A", None), "B": getattr(value, "B", None)}
        raise TypeError("Set scores must be a mapping or 2-item tuple/list.")


class PlayerOut(BaseModel):
    """Public player information; PIN hash and salt never leave the store."""
    id: str
    name: str
    rating: int
    wins: int
    losses: int
    avatarUrl: Optional[str] = None


class RegisterIn(BaseModel):
    name: str = Field(..., min_length=1, max_length=50)
    pin: str


class LoginIn(BaseModel):
    playerId: str = Field(..., min_length=1)
    pin: str


class AuthOut(BaseModel):
    """Returned on successful registration or login."""
    player: PlayerOut
    access_token: str
    token_type: str = "bearer"


class MatchCreate(BaseModel):
    """A finished (or abandoned) match as produced by the live scorer."""

    type: Literal["SINGLES", "DOUBLES"]
    teamA: List[str]
    teamB: List[str]
    sets: List[SetScore] = Field(default_factory=list)
    bestOf: Literal[1, 3, 5, 7] = 3
    winnerTeam: Optional[Literal["A", "B"]] = None
    commentary: Optional[str] = Field(default=None, max_length=2000)
    playedAt: Optional[datetime] = None

    @model_validator(mode="before")
    def _normalize_type(cls, data: Any) -> Any:
        if isinstance(data, dict) and isinstance(data.get("type"), str):
            data = dict(data)
            data["type"] = data["type"].strip().upper()
        return data

    @field_validator("playedAt")
    def _normalize_played_at(cls, v: datetime | None) -> datetime | None:
        return require_utc(v, field_name="playedAt")

    @field_validator("commentary")
    def _strip_commentary(cls, v: str | None) -> str | None:
        if v is None:
            return None
        return v.strip() or None


class RatingChangeOut(BaseModel):
    playerId: str
    previousRating: int
    newRating: int
    delta: int


class MatchOut(BaseModel):
    id: str
    createdAt: Optional[datetime] = None
    type: str
    teamA: List[str]
    teamB: List[str]
    sets: List[SetScore]
    winnerTeam: Optional[str] = None
    status: str
    bestOf: int
    submittedBy: str
    commentary: Optional[str] = None
    decidedBy: Optional[str] = None
    decidedAt: Optional[datetime] = None
    ratingChanges: Optional[List[RatingChangeOut]] = None


class ApprovalOut(BaseModel):
    match: MatchOut
    players: List[PlayerOut]
    ratingChanges: List[RatingChangeOut]


class RejectionOut(BaseModel):
    match: MatchOut
