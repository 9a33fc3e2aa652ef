import pytest
from fastapi.testclient import TestClient

from ladder.main import app
from ladder.services.commentary import FALLBACK_COMMENTARY

PREFIX = "/api/v0"

BEST_OF_THREE = [{"A": 11, "B": 5}, {"A": 7, "B": 11}, {"A": 11, "B": 9}]


@pytest.fixture
def client():
    with TestClient(app) as c:
        yield c


class Player:
    def __init__(self, client, name):
        resp = client.post(f"{PREFIX}/auth/register", json={"name": name, "pin": "4821"})
        assert resp.status_code == 200, resp.text
        self.id = resp.json()["player"]["id"]
        self.headers = {"Authorization": f"Bearer {resp.json()['access_token']}"}


@pytest.fixture
def players(client):
    return {name: Player(client, name) for name in ("alice", "bob", "carol", "dave")}


def submit(client, submitter, team_a, team_b, sets=BEST_OF_THREE, **extra):
    body = {
        "type": "DOUBLES" if len(team_a) == 2 else "SINGLES",
        "teamA": [p.id for p in team_a],
        "teamB": [p.id for p in team_b],
        "sets": sets,
        "bestOf": 3,
        **extra,
    }
    return client.post(f"{PREFIX}/matches", json=body, headers=submitter.headers)


def ratings(client):
    return {
        p["id"]: (p["rating"], p["wins"], p["losses"])
        for p in client.get(f"{PREFIX}/players").json()
    }


def test_submit_creates_pending_match_without_touching_ratings(client, players):
    alice, bob = players["alice"], players["bob"]
    before = ratings(client)

    resp = submit(client, alice, [alice], [bob])

    assert resp.status_code == 201, resp.text
    match = resp.json()
    assert match["status"] == "PENDING"
    assert match["winnerTeam"] == "A"
    assert match["submittedBy"] == alice.id
    assert match["commentary"] == FALLBACK_COMMENTARY
    assert match["ratingChanges"] is None
    assert ratings(client) == before


def test_stored_match_round_trips(client, players):
    alice, bob = players["alice"], players["bob"]
    mid = submit(client, alice, [alice], [bob]).json()["id"]

    resp = client.get(f"{PREFIX}/matches/{mid}")

    assert resp.status_code == 200
    match = resp.json()
    assert match["teamA"] == [alice.id]
    assert match["teamB"] == [bob.id]
    assert match["sets"] == BEST_OF_THREE
    assert match["status"] == "PENDING"
    assert match["bestOf"] == 3
    assert match["type"] == "SINGLES"


def test_approve_applies_elo_and_win_loss_once(client, players):
    alice, bob = players["alice"], players["bob"]
    mid = submit(client, alice, [alice], [bob]).json()["id"]

    resp = client.patch(f"{PREFIX}/matches/{mid}/approve", headers=bob.headers)

    assert resp.status_code == 200, resp.text
    body = resp.json()
    assert body["match"]["status"] == "APPROVED"
    assert body["match"]["decidedBy"] == bob.id
    changes = {c["playerId"]: c for c in body["ratingChanges"]}
    assert changes[alice.id]["delta"] == 16
    assert changes[bob.id]["delta"] == -16
    by_id = {p["id"]: p for p in body["players"]}
    assert by_id[alice.id]["rating"] == 1216 and by_id[alice.id]["wins"] == 1
    assert by_id[bob.id]["rating"] == 1184 and by_id[bob.id]["losses"] == 1

    after = ratings(client)
    assert after[alice.id] == (1216, 1, 0)
    assert after[bob.id] == (1184, 0, 1)

    again = client.patch(f"{PREFIX}/matches/{mid}/approve", headers=bob.headers)
    assert again.status_code == 409
    assert again.json()["code"] == "match_invalid_state"
    assert ratings(client) == after


def test_leaderboard_reflects_approval_despite_cache(client, players):
    alice, bob = players["alice"], players["bob"]
    mid = submit(client, alice, [alice], [bob], sets=[{"A": 3, "B": 11}] * 2).json()["id"]

    first = client.get(f"{PREFIX}/players").json()
    client.patch(f"{PREFIX}/matches/{mid}/approve", headers=bob.headers)
    second = client.get(f"{PREFIX}/players").json()

    assert [p["rating"] for p in first] == [1200] * 4
    assert second[0]["id"] == bob.id
    assert second[0]["rating"] == 1216


def test_doubles_approval_moves_all_four_players(client, players):
    alice, bob, carol, dave = (players[n] for n in ("alice", "bob", "carol", "dave"))
    mid = submit(client, alice, [alice, bob], [carol, dave]).json()["id"]

    resp = client.patch(f"{PREFIX}/matches/{mid}/approve", headers=dave.headers)

    assert resp.status_code == 200, resp.text
    deltas = {c["playerId"]: c["delta"] for c in resp.json()["ratingChanges"]}
    assert deltas == {alice.id: 16, bob.id: 16, carol.id: -16, dave.id: -16}

    # a teammate of the approver cannot approve a second time
    again = client.patch(f"{PREFIX}/matches/{mid}/approve", headers=carol.headers)
    assert again.status_code == 409


def test_reject_never_touches_players(client, players):
    alice, bob = players["alice"], players["bob"]
    mid = submit(client, alice, [alice], [bob]).json()["id"]
    before = ratings(client)

    resp = client.patch(f"{PREFIX}/matches/{mid}/reject", headers=bob.headers)

    assert resp.status_code == 200
    assert resp.json()["match"]["status"] == "REJECTED"
    assert ratings(client) == before

    approve = client.patch(f"{PREFIX}/matches/{mid}/approve", headers=bob.headers)
    assert approve.status_code == 409
    assert ratings(client) == before


def test_approve_without_winner_changes_nothing(client, players):
    alice, bob = players["alice"], players["bob"]
    resp = submit(client, alice, [alice], [bob], sets=[{"A": 11, "B": 5}])
    assert resp.status_code == 201
    assert resp.json()["winnerTeam"] is None
    mid = resp.json()["id"]
    before = ratings(client)

    resp = client.patch(f"{PREFIX}/matches/{mid}/approve", headers=bob.headers)

    assert resp.status_code == 409
    assert resp.json()["code"] == "match_invalid_state"
    assert ratings(client) == before
    assert client.get(f"{PREFIX}/matches/{mid}").json()["status"] == "PENDING"


@pytest.mark.parametrize("actor", ["alice", "carol"], ids=["submitter", "outsider"])
def test_only_an_opponent_may_decide(client, players, actor):
    alice, bob = players["alice"], players["bob"]
    mid = submit(client, alice, [alice], [bob]).json()["id"]

    for action in ("approve", "reject"):
        resp = client.patch(
            f"{PREFIX}/matches/{mid}/{action}", headers=players[actor].headers
        )
        assert resp.status_code == 403
        assert resp.json()["code"] == "match_forbidden"


def test_decide_unknown_match_is_404(client, players):
    resp = client.patch(f"{PREFIX}/matches/missing/approve", headers=players["bob"].headers)

    assert resp.status_code == 404
    assert resp.json()["code"] == "match_not_found"
    assert client.get(f"{PREFIX}/matches/missing").status_code == 404


def test_submit_requires_authentication(client, players):
    alice, bob = players["alice"], players["bob"]
    body = {"type": "SINGLES", "teamA": [alice.id], "teamB": [bob.id], "sets": BEST_OF_THREE}

    resp = client.post(f"{PREFIX}/matches", json=body)

    assert resp.status_code == 401


def test_submitter_must_be_on_a_roster(client, players):
    alice, bob, carol = players["alice"], players["bob"], players["carol"]

    resp = submit(client, carol, [alice], [bob])

    assert resp.status_code == 403


@pytest.mark.parametrize(
    "sets, extra",
    [
        ([{"A": 11, "B": 10}], {}),
        ([{"A": 15, "B": 10}], {}),
        ([{"A": 11, "B": 1}, {"A": 11, "B": 2}, {"A": 11, "B": 3}], {}),
        (BEST_OF_THREE, {"winnerTeam": "B"}),
    ],
    ids=["no-margin", "overshoot", "extra-set", "wrong-winner"],
)
def test_submit_rejects_inconsistent_scores(client, players, sets, extra):
    alice, bob = players["alice"], players["bob"]

    resp = submit(client, alice, [alice], [bob], sets=sets, **extra)

    assert resp.status_code == 422
    assert resp.json()["code"] == "match_validation_error"


def test_submit_rejects_bad_rosters(client, players):
    alice, bob = players["alice"], players["bob"]

    overlap = submit(client, alice, [alice, bob], [bob, alice])
    assert overlap.status_code == 422

    resp = client.post(
        f"{PREFIX}/matches",
        json={"type": "SINGLES", "teamA": [alice.id], "teamB": ["ghost"], "sets": []},
        headers=alice.headers,
    )
    assert resp.status_code == 422
    assert resp.json()["code"] == "match_unknown_players"


def test_list_matches_filters(client, players):
    alice, bob, carol = players["alice"], players["bob"], players["carol"]
    first = submit(client, alice, [alice], [bob]).json()["id"]
    second = submit(client, carol, [carol], [bob]).json()["id"]
    client.patch(f"{PREFIX}/matches/{first}/approve", headers=bob.headers)

    all_ids = {m["id"] for m in client.get(f"{PREFIX}/matches").json()}
    assert all_ids == {first, second}

    pending = client.get(f"{PREFIX}/matches", params={"status": "pending"}).json()
    assert [m["id"] for m in pending] == [second]

    for_alice = client.get(f"{PREFIX}/matches", params={"playerId": alice.id}).json()
    assert [m["id"] for m in for_alice] == [first]

    bad = client.get(f"{PREFIX}/matches", params={"status": "LOST"})
    assert bad.status_code == 422
