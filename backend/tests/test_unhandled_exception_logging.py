import logging

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.exc import OperationalError

from ladder.main import app
from ladder.services import store


@pytest.fixture
def client():
    with TestClient(app, raise_server_exceptions=False) as c:
        yield c


def test_route_failure_is_logged_and_rendered_as_problem(client, monkeypatch, caplog):
    async def broken_read(session):
        raise KeyError("rating")

    monkeypatch.setattr(store, "read_players", broken_read)

    with caplog.at_level(logging.ERROR, logger="ladder.main"):
        resp = client.get("/api/v0/players")

    assert resp.status_code == 500
    assert resp.headers["content-type"].startswith("application/problem+json")
    body = resp.json()
    assert body["code"] == "internal_server_error"
    assert body["status"] == 500
    assert body["instance"] == "/api/v0/players"
    record = next(r for r in caplog.records if r.message == "Unhandled exception")
    assert record.exc_info[0] is KeyError


def test_store_outage_becomes_503_with_instance(client, monkeypatch, caplog):
    async def unavailable(session, match_id):
        raise OperationalError("SELECT match", {}, Exception("connection refused"))

    monkeypatch.setattr(store, "get_match", unavailable)

    with caplog.at_level(logging.ERROR, logger="ladder.services.store"):
        resp = client.get("/api/v0/matches/m-42")

    assert resp.status_code == 503
    body = resp.json()
    assert body["code"] == "upstream_unavailable"
    assert body["instance"] == "/api/v0/matches/m-42"
    assert "nothing was saved" in body["detail"]
    assert "Store failure during get match" in caplog.text


def test_domain_errors_carry_request_path(client):
    resp = client.get("/api/v0/players/nobody")

    assert resp.status_code == 404
    assert resp.json() == {
        "type": "about:blank",
        "title": "Player not found",
        "detail": "player 'nobody' not found",
        "status": 404,
        "instance": "/api/v0/players/nobody",
        "code": "player_not_found",
    }
