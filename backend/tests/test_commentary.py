import json
import logging

import httpx
import pytest

from ladder import config
from ladder.services.commentary import (
    FALLBACK_COMMENTARY,
    MatchFacts,
    build_prompt,
    generate_summary,
)

FACTS = MatchFacts(
    match_type="SINGLES",
    team_a=["Alice"],
    team_b=["Bob"],
    winner="A",
    sets=[{"A": 11, "B": 7}, {"A": 11, "B": 9}],
)


def _client(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


def test_prompt_mentions_players_and_scores():
    prompt = build_prompt(FACTS)

    assert "Team A: Alice." in prompt
    assert "Winner: Alice." in prompt
    assert "11-7, 11-9" in prompt


@pytest.mark.anyio
async def test_without_api_key_returns_fallback_without_calling_out():
    def handler(request):
        raise AssertionError("no request expected")

    async with _client(handler) as client:
        assert await generate_summary(FACTS, client=client) == FALLBACK_COMMENTARY


@pytest.mark.anyio
async def test_returns_generated_text(monkeypatch):
    monkeypatch.setattr(config, "COMMENTARY_API_KEY", "test-key")
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url)
        seen["key"] = request.headers["x-goog-api-key"]
        seen["body"] = json.loads(request.content)
        return httpx.Response(
            200,
            json={"candidates": [{"content": {"parts": [{"text": " What a rally! "}]}}]},
        )

    async with _client(handler) as client:
        text = await generate_summary(FACTS, client=client)

    assert text == "What a rally!"
    assert seen["url"].endswith(f"/{config.COMMENTARY_MODEL}:generateContent")
    assert seen["key"] == "test-key"
    assert "Alice" in seen["body"]["contents"][0]["parts"][0]["text"]


@pytest.mark.anyio
@pytest.mark.parametrize(
    "response",
    [
        httpx.Response(500, text="boom"),
        httpx.Response(200, json={"candidates": []}),
        httpx.Response(200, json={"candidates": [{"content": {"parts": [{"text": "  "}]}}]}),
    ],
    ids=["server-error", "no-candidates", "blank-text"],
)
async def test_failures_fall_back(monkeypatch, caplog, response):
    monkeypatch.setattr(config, "COMMENTARY_API_KEY", "test-key")

    async with _client(lambda request: response) as client:
        with caplog.at_level(logging.WARNING):
            text = await generate_summary(FACTS, client=client)

    assert text == FALLBACK_COMMENTARY


@pytest.mark.anyio
async def test_network_error_falls_back(monkeypatch, caplog):
    monkeypatch.setattr(config, "COMMENTARY_API_KEY", "test-key")

    def handler(request):
        raise httpx.ConnectTimeout("timed out", request=request)

    async with _client(handler) as client:
        with caplog.at_level(logging.WARNING):
            text = await generate_summary(FACTS, client=client)

    assert text == FALLBACK_COMMENTARY
    assert "Commentary generation failed" in caplog.text
