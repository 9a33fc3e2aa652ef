import os
import uuid
from datetime import timedelta
from urllib.parse import quote

import jwt
from fastapi import APIRouter, Depends, Header, Request
from fastapi.responses import JSONResponse
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from sqlalchemy.ext.asyncio import AsyncSession

from ..config import DEFAULT_RATING
from ..db import get_session
from ..exceptions import (
    InvalidCredentials,
    InvalidPin,
    InvalidRequest,
    PlayerNameTaken,
    http_problem,
)
from ..models import Player
from ..schemas import AuthOut, LoginIn, PlayerOut, RegisterIn
from ..services import store
from ..services.credentials import hash_credential, verify_credential
from ..services.validation import ValidationError, normalize_player_name, validate_pin
from ..time_utils import utcnow
from .players import player_out


def get_jwt_secret() -> str:
    secret = os.getenv("JWT_SECRET")
    if not secret:
        raise RuntimeError("JWT_SECRET environment variable is required")
    if len(secret) < 32 or secret.lower() in {"secret", "changeme", "default"}:
        raise RuntimeError(
            "JWT_SECRET must be at least 32 characters and not a common default"
        )
    return secret


JWT_ALG = "HS256"
JWT_EXPIRE_SECONDS = int(os.getenv("JWT_EXPIRE_SECONDS", "86400"))
AVATAR_URL_TEMPLATE = "https://api.dicebear.com/7.x/thumbs/svg?seed={seed}"


def rate_limits_disabled() -> bool:
    return (os.getenv("DISABLE_AUTH_RATE_LIMITS") or "").lower() == "true"


def _get_client_ip(request: Request) -> str:
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        parts = [ip.strip() for ip in forwarded.split(",") if ip.strip()]
        if parts:
            return parts[-1]
    real_ip = request.headers.get("X-Real-IP")
    if real_ip:
        return real_ip
    return request.client.host if request.client else ""


limiter = Limiter(key_func=_get_client_ip)
router = APIRouter(prefix="/auth", tags=["auth"])


def register_rate_limit() -> str:
    if rate_limits_disabled():
        return "1000/second"
    return "5/minute"


def login_rate_limit() -> str:
    if rate_limits_disabled():
        return "1000/second"
    return "10/minute"


async def rate_limit_handler(request: Request, exc: RateLimitExceeded):
    detail = exc.detail if isinstance(exc.detail, str) else ""
    if detail:
        message = f"rate limit exceeded: {detail}"
    else:
        message = "rate limit exceeded: please wait before submitting another request."
    return JSONResponse(
        status_code=429,
        content={
            "detail": message,
            "code": "rate_limit_exceeded",
        },
    )


def create_token(player: Player) -> str:
    now = utcnow()
    payload = {
        "sub": player.id,
        "name": player.name,
        "iat": now,
        "exp": now + timedelta(seconds=JWT_EXPIRE_SECONDS),
    }
    return jwt.encode(payload, get_jwt_secret(), algorithm=JWT_ALG)


def _auth_out(player: Player) -> AuthOut:
    return AuthOut(player=player_out(player), access_token=create_token(player))


async def register_player(body: RegisterIn, session: AsyncSession) -> Player:
    """Create a player with the default rating; names are unique ignoring case."""

    try:
        name = normalize_player_name(body.name)
    except ValidationError as exc:
        raise InvalidRequest(exc.detail, code="auth_invalid_name") from exc
    try:
        pin = validate_pin(body.pin)
    except ValidationError as exc:
        raise InvalidPin(exc.detail) from exc

    async with store.store_errors(session, "register"):
        if await store.find_player_by_name(session, name):
            raise PlayerNameTaken(name)

        hashed = hash_credential(pin)
        player = Player(
            id=uuid.uuid4().hex,
            name=name,
            rating=DEFAULT_RATING,
            wins=0,
            losses=0,
            avatar_url=AVATAR_URL_TEMPLATE.format(seed=quote(name)),
            pin_hash=hashed.hash,
            pin_salt=hashed.salt,
        )
        await store.append_player(session, player)
    return player


async def login_player(body: LoginIn, session: AsyncSession) -> Player:
    async with store.store_errors(session, "login"):
        player = await store.get_player(session, body.playerId)
    # unknown id and wrong PIN look the same to the caller
    if player is None or not verify_credential(body.pin, player.pin_hash, player.pin_salt):
        raise InvalidCredentials()
    return player


@router.post("/register", response_model=AuthOut)
@limiter.limit(register_rate_limit)
async def register(
    request: Request,
    body: RegisterIn,
    session: AsyncSession = Depends(get_session),
) -> AuthOut:
    player = await register_player(body, session)
    return _auth_out(player)


@router.post("/login", response_model=AuthOut)
@limiter.limit(login_rate_limit)
async def login(
    request: Request,
    body: LoginIn,
    session: AsyncSession = Depends(get_session),
) -> AuthOut:
    player = await login_player(body, session)
    return _auth_out(player)


def _extract_bearer_token(authorization: str | None) -> str:
    if not authorization:
        raise http_problem(
            status_code=401,
            detail="missing token",
            code="auth_missing_token",
        )
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        raise http_problem(
            status_code=401,
            detail="invalid token",
            code="auth_invalid_token",
        )
    return token.strip()


async def get_current_player(
    authorization: str | None = Header(None),
    session: AsyncSession = Depends(get_session),
) -> Player:
    token = _extract_bearer_token(authorization)
    try:
        payload = jwt.decode(token, get_jwt_secret(), algorithms=[JWT_ALG])
    except jwt.ExpiredSignatureError:
        raise http_problem(
            status_code=401,
            detail="token expired",
            code="auth_token_expired",
        )
    except jwt.PyJWTError:
        raise http_problem(
            status_code=401,
            detail="invalid token",
            code="auth_invalid_token",
        )
    player_id = payload.get("sub")
    async with store.store_errors(session, "resolve player"):
        player = await store.get_player(session, player_id) if player_id else None
    if player is None:
        raise http_problem(
            status_code=401,
            detail="invalid token",
            code="auth_invalid_token",
        )
    return player


@router.get("/me", response_model=PlayerOut)
async def read_me(current: Player = Depends(get_current_player)):
    return player_out(current)
