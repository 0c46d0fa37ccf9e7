#!/usr/bin/env python3
from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from typing import Any, Dict, Optional

import websockets

logging.basicConfig(level=logging.INFO)

# ManualClient is a terminal seat at a room: it renders every room_state and
# turns typed commands into protocol messages.

HELP = """Commands:
  start                 deal a hand (host only)
  bot                   add a bot to a free seat (host only)
  blinds SB BB          change the blinds (host only)
  fold | check | call   act on your turn
  bet N | raise N       bet or raise to a street total of N
  allin                 commit the rest of your stack
  quit                  leave the room"""


class ManualClient:
    def __init__(self, url: str, name: str, join_code: Optional[str]) -> None:
        self.url = url
        self.name = name
        self.join_code = join_code
        self.code: Optional[str] = None
        self.player_id: Optional[str] = None
        self.websocket: Optional[Any] = None

    async def run(self) -> None:
        async with websockets.connect(self.url) as ws:
            self.websocket = ws
            if self.join_code:
                await self._send({"type": "join_room", "code": self.join_code, "name": self.name})
            else:
                await self._send({"type": "create_room", "name": self.name})
            reader = asyncio.create_task(self._read_loop())
            try:
                await self._input_loop()
            finally:
                reader.cancel()

    async def _read_loop(self) -> None:
        assert self.websocket is not None
        async for raw in self.websocket:
            msg = json.loads(raw)
            msg_type = msg.get("type")
            if msg_type in ("room_created", "joined"):
                self.code = msg["code"]
                self.player_id = msg["player_id"]
                print(f"\n>>> In room {self.code} (share this code to invite players)")
            elif msg_type == "room_state":
                self._render(msg["state"])
            elif msg_type == "error":
                print(f"\n>>> Error {msg.get('code')}: {msg.get('msg')}")
            else:
                print(json.dumps(msg, indent=2))

    async def _input_loop(self) -> None:
        print(HELP)
        while True:
            line = await asyncio.to_thread(sys.stdin.readline)
            if not line:
                return
            parts = line.strip().lower().split()
            if not parts:
                continue
            if parts[0] in ("quit", "exit"):
                return
            payload = self._command(parts)
            if payload is None:
                print(HELP)
                continue
            await self._send(payload)

    def _command(self, parts: list[str]) -> Optional[Dict[str, Any]]:
        word, args = parts[0], parts[1:]
        base: Dict[str, Any] = {"code": self.code}
        if word == "start":
            return {"type": "start_hand", **base}
        if word == "bot":
            return {"type": "add_bot", **base}
        if word == "blinds" and len(args) == 2:
            return {"type": "set_blinds", "small_blind": args[0], "big_blind": args[1], **base}
        if word in ("fold", "check", "call"):
            return {"type": "action", "action": word, **base}
        if word in ("bet", "raise") and len(args) == 1:
            return {"type": "action", "action": word, "amount": args[0], **base}
        if word in ("allin", "all-in"):
            return {"type": "action", "action": "all-in", **base}
        return None

    def _render(self, state: Dict[str, Any]) -> None:
        you = state.get("you", {})
        board = " ".join(state.get("community", [])) or "--"
        print(
            f"\n>>> {state['code']} | {state['state']}/{state['stage']} | Board {board} | "
            f"Pot={state['pot']} | Bet={state['current_bet']} | Blinds {state['small_blind']}/{state['big_blind']}"
        )
        for player in state.get("players", []):
            marker = "→" if player["seat"] == state.get("current_seat") else " "
            tags = []
            if player["seat"] == state.get("dealer_seat"):
                tags.append("BTN")
            if player["id"] == you.get("id"):
                tags.append("ME")
            if player["id"] == state.get("host_id"):
                tags.append("HOST")
            if player["folded"]:
                tags.append("FOLD")
            if player["all_in"]:
                tags.append("ALL-IN")
            label = f" [{','.join(tags)}]" if tags else ""
            hole = " ".join(player.get("hole", [])) or "--"
            print(
                f"  {marker}Seat {player['seat']}: {player['name']:<20} stack={player['stack']:>6} "
                f"bet={player['bet_this_round']:>5} hole={hole}{label}"
            )
        if state.get("equity"):
            print(f"Odds: {state['equity']}")
        if "legal" in you:
            print(
                f"Your turn: {'/'.join(you['legal'])} | to call={you['to_call']} | "
                f"raise to {you['min_raise_to']}-{you['max_raise_to']}"
            )
        winner = state.get("winner_info")
        if winner and state["state"] in ("reveal", "showdown"):
            print(f"Winner: {winner['player_names']} ({winner['description']}) +{winner['amount']}")
        for line in state.get("log", [])[-3:]:
            print(f"  {line}")

    async def _send(self, payload: Dict[str, Any]) -> None:
        assert self.websocket is not None
        await self.websocket.send(json.dumps(payload))


def parse_args(argv: list[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Hold'em room manual client")
    parser.add_argument("--url", default="ws://127.0.0.1:3000")
    parser.add_argument("--name", required=True)
    parser.add_argument("--join", metavar="CODE", help="Join an existing room instead of creating one")
    return parser.parse_args(argv)


def main(argv: list[str]) -> None:
    args = parse_args(argv)
    client = ManualClient(url=args.url, name=args.name, join_code=args.join)
    try:
        asyncio.run(client.run())
    except KeyboardInterrupt:
        print("\nSession closed")


if __name__ == "__main__":
    main(sys.argv[1:])
