#!/usr/bin/env python3
"""Score a table tennis match point by point and submit it for approval.

The submitting player logs in with their PIN; the finished match is stored as
PENDING until an opponent approves or rejects it.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from typing import Dict, Mapping, Optional, Tuple

import httpx

from ladder.scoring import table_tennis
from ladder.services.live import finish_match
from ladder.services.validation import ValidationError

PROMPT = "[a] point A  [b] point B  [u] undo  [s] summary  [q] quit > "


def handle_command(command: str, state: Dict) -> Tuple[Dict, Optional[str]]:
    """Apply one console command to ``state``; return the new state and a message."""

    command = command.strip().lower()
    try:
        if command in ("a", "b"):
            return table_tennis.apply({"type": "POINT", "by": command.upper()}, state), None
        if command == "u":
            return table_tennis.apply({"type": "UNDO"}, state), None
        if command == "s":
            return state, json.dumps(table_tennis.summary(state), indent=2)
    except table_tennis.ScoringError as exc:
        return state, str(exc)
    return state, f"unknown command {command!r}"


def scoreboard(state: Dict, names: Mapping[str, str]) -> str:
    wins = table_tennis.set_wins(state["sets"])
    teams = state["teams"]
    label_a = " & ".join(names.get(pid, pid) for pid in teams["A"])
    label_b = " & ".join(names.get(pid, pid) for pid in teams["B"])
    return (
        f"{label_a} {state['points']['A']} ({wins['A']})"
        f"  -  "
        f"({wins['B']}) {state['points']['B']} {label_b}"
    )


async def _login(client: httpx.AsyncClient, player_id: str, pin: str) -> str:
    resp = await client.post("/auth/login", json={"playerId": player_id, "pin": pin})
    if resp.status_code != 200:
        raise RuntimeError(f"login failed: {resp.json().get('detail')}")
    return resp.json()["access_token"]


async def _player_names(client: httpx.AsyncClient) -> Dict[str, str]:
    resp = await client.get("/players")
    resp.raise_for_status()
    return {p["id"]: p["name"] for p in resp.json()}


async def main() -> None:
    parser = argparse.ArgumentParser(
        description="Score a table tennis match live and submit it for approval."
    )
    parser.add_argument("--api-url", default="http://localhost:8000/api/v0")
    parser.add_argument("--player-id", required=True, help="Submitting player id")
    parser.add_argument("--pin", required=True, help="Submitting player's PIN")
    parser.add_argument("--type", default="SINGLES", choices=["SINGLES", "DOUBLES"])
    parser.add_argument("--best-of", type=int, default=3, choices=[1, 3, 5, 7])
    parser.add_argument("--team-a", nargs="+", required=True, help="Team A player ids")
    parser.add_argument("--team-b", nargs="+", required=True, help="Team B player ids")
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Print the submission instead of sending it.",
    )
    args = parser.parse_args()

    state = table_tennis.init_state({"matchType": args.type, "bestOf": args.best_of})
    try:
        state = table_tennis.apply(
            {"type": "SETUP", "teamA": args.team_a, "teamB": args.team_b}, state
        )
        state = table_tennis.apply({"type": "START"}, state)
    except (table_tennis.ScoringError, ValidationError) as exc:
        parser.error(str(exc))

    async with httpx.AsyncClient(base_url=args.api_url, timeout=15.0) as client:
        token = await _login(client, args.player_id, args.pin)
        names = await _player_names(client)

        while state["phase"] == table_tennis.PLAYING:
            print(scoreboard(state, names))
            command = input(PROMPT)
            if command.strip().lower() == "q":
                print("Match abandoned; nothing submitted.")
                return
            state, message = handle_command(command, state)
            if message:
                print(message)

        print(scoreboard(state, names))
        draft = await finish_match(state, names)
        print(draft.commentary)
        payload = draft.model_dump(mode="json")

        if args.dry_run:
            print(json.dumps(payload, indent=2))
            return

        resp = await client.post(
            "/matches", json=payload, headers={"Authorization": f"Bearer {token}"}
        )
        if resp.status_code != 201:
            print(f"Submission failed: {resp.json().get('detail')}", file=sys.stderr)
            sys.exit(1)
        print(f"Submitted match {resp.json()['id']}; waiting for an opponent to approve.")


if __name__ == "__main__":
    asyncio.run(main())
