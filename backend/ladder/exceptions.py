from fastapi import HTTPException
from pydantic import BaseModel
from typing import Optional


class ProblemDetail(BaseModel):
    """RFC 7807 compliant error response."""

    type: str = "about:blank"
    title: str
    detail: Optional[str] = None
    status: int
    instance: Optional[str] = None
    code: str


class DomainException(Exception):
    """Base class for domain-specific exceptions."""

    def __init__(
        self,
        status_code: int,
        title: str,
        *,
        code: str,
        detail: str | None = None,
        type_: str = "about:blank",
    ) -> None:
        super().__init__(detail or title)
        self.status_code = status_code
        self.title = title
        self.detail = detail
        self.type = type_
        self.code = code


class InvalidRequest(DomainException):
    """Client-correctable input problem (bad roster, set scores, PIN)."""

    def __init__(self, detail: str, *, code: str = "validation_error") -> None:
        super().__init__(
            status_code=422,
            title="Invalid request",
            detail=detail,
            code=code,
        )


class InvalidPin(InvalidRequest):
    def __init__(self, detail: str) -> None:
        super().__init__(detail, code="auth_invalid_pin")


class PlayerNameTaken(DomainException):
    def __init__(self, name: str) -> None:
        super().__init__(
            status_code=400,
            title="Name taken",
            detail=f"player name '{name}' is already taken",
            code="player_name_taken",
        )


class InvalidCredentials(DomainException):
    def __init__(self) -> None:
        super().__init__(
            status_code=401,
            title="Invalid credentials",
            detail="invalid credentials",
            code="auth_invalid_credentials",
        )


class PlayerNotFound(DomainException):
    def __init__(self, player_id: str) -> None:
        super().__init__(
            status_code=404,
            title="Player not found",
            detail=f"player '{player_id}' not found",
            code="player_not_found",
        )


class MatchNotFound(DomainException):
    def __init__(self, match_id: str) -> None:
        super().__init__(
            status_code=404,
            title="Match not found",
            detail=f"match '{match_id}' not found",
            code="match_not_found",
        )


class InvalidMatchState(DomainException):
    def __init__(self, match_id: str, reason: str) -> None:
        super().__init__(
            status_code=409,
            title="Invalid match state",
            detail=f"match '{match_id}': {reason}",
            code="match_invalid_state",
        )


class MatchForbidden(DomainException):
    def __init__(self, detail: str) -> None:
        super().__init__(
            status_code=403,
            title="Forbidden",
            detail=detail,
            code="match_forbidden",
        )


class UpstreamUnavailable(DomainException):
    def __init__(self, service: str) -> None:
        super().__init__(
            status_code=503,
            title="Service unavailable",
            detail=f"{service} is unavailable, nothing was saved",
            code="upstream_unavailable",
        )


def http_problem(
    status_code: int,
    detail: str,
    code: str,
    *,
    headers: Optional[dict[str, str]] = None,
) -> HTTPException:
    """Create an HTTPException with an attached problem code."""

    exc = HTTPException(status_code=status_code, detail=detail, headers=headers)
    setattr(exc, "code", code)
    return exc
