"""Best-effort match commentary from an external text-generation API.

Nothing here raises into the caller: a missing API key, a timeout, an HTTP
error or an unexpected payload all yield ``FALLBACK_COMMENTARY``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Sequence

import httpx

from .. import config

LOGGER = logging.getLogger(__name__)

FALLBACK_COMMENTARY = "Match recording complete."


@dataclass(frozen=True)
class MatchFacts:
    match_type: str
    team_a: Sequence[str]
    team_b: Sequence[str]
    winner: str | None
    sets: Sequence[dict] = field(default_factory=list)

    def team_label(self, side: str) -> str:
        names = self.team_a if side == "A" else self.team_b
        return " & ".join(names) or "Unknown"

    def score_line(self) -> str:
        return ", ".join(f"{s['A']}-{s['B']}" for s in self.sets)


def build_prompt(facts: MatchFacts) -> str:
    winner = facts.team_label(facts.winner) if facts.winner else "undecided"
    return (
        "Write a short, exciting, 2-sentence sports commentary for a table "
        "tennis match.\n"
        f"Format: {facts.match_type.title()}.\n"
        f"Team A: {facts.team_label('A')}.\n"
        f"Team B: {facts.team_label('B')}.\n"
        f"Winner: {winner}.\n"
        f"Set scores: {facts.score_line() or 'none'}.\n"
        "Make it sound like a professional sports broadcast recap."
    )


def _extract_text(payload: dict) -> str:
    parts = payload["candidates"][0]["content"]["parts"]
    return "".join(part.get("text", "") for part in parts).strip()


async def generate_summary(
    facts: MatchFacts, *, client: httpx.AsyncClient | None = None
) -> str:
    """Return commentary text for ``facts`` or the fallback string."""

    api_key = config.COMMENTARY_API_KEY
    if not api_key:
        LOGGER.info("COMMENTARY_API_KEY not set; using fallback commentary")
        return FALLBACK_COMMENTARY

    url = f"{config.COMMENTARY_API_URL}/{config.COMMENTARY_MODEL}:generateContent"
    body = {"contents": [{"parts": [{"text": build_prompt(facts)}]}]}
    headers = {"x-goog-api-key": api_key}

    owns_client = client is None
    if owns_client:
        client = httpx.AsyncClient(timeout=config.COMMENTARY_TIMEOUT_SECONDS)
    try:
        response = await client.post(url, json=body, headers=headers)
        response.raise_for_status()
        text = _extract_text(response.json())
    except Exception:
        LOGGER.warning("Commentary generation failed", exc_info=True)
        return FALLBACK_COMMENTARY
    finally:
        if owns_client:
            await client.aclose()

    return text or FALLBACK_COMMENTARY
