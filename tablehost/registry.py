from __future__ import annotations

import logging
import math
import random
import re
import secrets
from typing import Callable, Dict, Optional

from holdem.betting import IllegalAction
from holdem.models import ActionKind, Outcome, RoomState, TableConfig, TimerKind, TimerRequest
from holdem.room import Room

from .bots import BotPolicy, baseline_strategy, bot_view

LOGGER = logging.getLogger("holdem_rooms")

# Omits 0/O/1/I.
ROOM_ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"
CODE_LENGTH = 6
NAME_LIMIT = 20


class RoomError(Exception):
    """A join/create request that must be refused to the caller only."""

    def __init__(self, code: str, msg: str) -> None:
        super().__init__(msg)
        self.code = code
        self.msg = msg


def clean_name(raw: object, default: str) -> str:
    name = raw.strip() if isinstance(raw, str) else ""
    return name[:NAME_LIMIT] or default


def clean_code(raw: object) -> str:
    code = raw.upper() if isinstance(raw, str) else ""
    return re.sub(r"[^A-Z0-9]", "", code)[:10]


def _as_int(raw: object) -> Optional[int]:
    if isinstance(raw, bool):
        return None
    if isinstance(raw, int):
        return raw
    if isinstance(raw, str):
        try:
            raw = float(raw)
        except ValueError:
            return None
    # json.loads turns 1e999 into inf.
    if isinstance(raw, float) and math.isfinite(raw):
        return int(raw)
    return None


class RoomRegistry:
    """Owns every live room and exposes the command surface clients drive."""

    def __init__(
        self,
        config: TableConfig,
        policy: BotPolicy = baseline_strategy,
        rng: Optional[random.Random] = None,
    ) -> None:
        self.config = config
        self.policy = policy
        self.rng = rng
        self.rooms: Dict[str, Room] = {}
        self.membership: Dict[str, str] = {}

    def room_of(self, player_id: str) -> Optional[Room]:
        code = self.membership.get(player_id)
        return self.rooms.get(code) if code else None

    def _new_code(self) -> str:
        while True:
            code = "".join(secrets.choice(ROOM_ALPHABET) for _ in range(CODE_LENGTH))
            if code not in self.rooms:
                return code

    def _room_rng(self) -> Optional[random.Random]:
        if self.rng is None:
            return None
        return random.Random(self.rng.getrandbits(64))

    # Membership ------------------------------------------------------

    def create_room(self, player_id: str, name: object) -> Room:
        if player_id in self.membership:
            raise RoomError("ALREADY_SEATED", "Already seated in a room.")
        display = clean_name(name, "Host")
        room = Room(self._new_code(), self.config, host_id=player_id, rng=self._room_rng())
        room.seat_player(player_id, display)
        room.add_log(f"{display} created the lobby.")
        self.rooms[room.code] = room
        self.membership[player_id] = room.code
        LOGGER.info("Room %s created by %s", room.code, display)
        return room

    def join_room(self, player_id: str, code: object, name: object) -> Room:
        if player_id in self.membership:
            raise RoomError("ALREADY_SEATED", "Already seated in a room.")
        room = self.rooms.get(clean_code(code))
        if room is None:
            raise RoomError("ROOM_NOT_FOUND", "Room not found.")
        if len(room.players) >= self.config.seats:
            raise RoomError("ROOM_FULL", "Room is full.")
        if room.state != RoomState.LOBBY:
            raise RoomError("GAME_IN_PROGRESS", "Game already started; join while the room is in the lobby.")
        try:
            player = room.seat_player(player_id, clean_name(name, "Player"))
        except RuntimeError:
            raise RoomError("ROOM_FULL", "Room is full.") from None
        self.membership[player_id] = room.code
        LOGGER.info("Player %s joined room %s at seat %s", player.name, room.code, player.seat)
        return room

    def disconnect(self, player_id: str) -> Optional[Outcome]:
        code = self.membership.pop(player_id, None)
        room = self.rooms.get(code) if code else None
        if room is None:
            return None
        outcome = room.disconnect(player_id)
        if not room.has_humans():
            del self.rooms[room.code]
            LOGGER.info("Room %s closed; no players left", room.code)
        return outcome

    # Host-only commands ------------------------------------------------

    def _hosted_room(self, player_id: str, code: object) -> Optional[Room]:
        room = self.rooms.get(clean_code(code))
        if room is None or room.host_id != player_id:
            return None
        return room

    def set_blinds(self, player_id: str, code: object, small_blind: object, big_blind: object) -> Optional[Outcome]:
        room = self._hosted_room(player_id, code)
        if room is None:
            return None
        return self._apply(room, lambda: room.set_blinds(_as_int(small_blind), _as_int(big_blind)))

    def start_hand(self, player_id: str, code: object) -> Optional[Outcome]:
        room = self._hosted_room(player_id, code)
        if room is None or room.state not in (RoomState.LOBBY, RoomState.SHOWDOWN):
            return None
        room.add_log("Game started!")
        return self._apply(room, room.begin_hand)

    def add_bot(self, player_id: str, code: object) -> Optional[Outcome]:
        room = self._hosted_room(player_id, code)
        if room is None:
            return None
        bot_id = f"bot:{secrets.token_hex(4)}"
        name = f"Bot-{secrets.randbelow(9000) + 1000}"
        try:
            player = room.seat_player(bot_id, name, is_bot=True)
        except RuntimeError:
            return None
        return Outcome(events=[{"ev": "JOIN", "seat": player.seat, "bot": True}])

    # Play --------------------------------------------------------------

    def submit_action(self, player_id: str, code: object, kind: object, amount: object = None) -> Optional[Outcome]:
        room = self.rooms.get(clean_code(code))
        if room is None or player_id not in room.players:
            return None
        try:
            action = ActionKind(str(kind).strip().lower())
        except ValueError:
            LOGGER.debug("Unknown action %r in room %s", kind, room.code)
            return None
        return self._apply(room, lambda: room.submit_action(player_id, action, _as_int(amount)))

    def fire_timer(self, code: str, request: TimerRequest) -> Optional[Outcome]:
        room = self.rooms.get(code)
        if room is None:
            return None
        if request.kind == TimerKind.BOT:
            return self._bot_turn(room, request)
        outcome = room.fire_timer(request)
        return outcome if outcome.changed else None

    def _bot_turn(self, room: Room, request: TimerRequest) -> Optional[Outcome]:
        bot = room.bot_to_act(request)
        if bot is None:
            return None
        kind, amount = self.policy(bot_view(room, bot))
        outcome = self.submit_action(bot.player_id, room.code, kind.value, amount)
        if outcome is None:
            # Same preference as a timed-out human: check, then call, then fold.
            LOGGER.warning("Bot %s produced an illegal %s; falling back", bot.name, kind.value)
            outcome = self.submit_action(bot.player_id, room.code, ActionKind.CALL.value)
        if outcome is None:
            outcome = self.submit_action(bot.player_id, room.code, ActionKind.FOLD.value)
        return outcome

    def _apply(self, room: Room, transition: Callable[[], Outcome]) -> Optional[Outcome]:
        try:
            outcome = transition()
        except IllegalAction as exc:
            LOGGER.debug("Ignored request in room %s: %s", room.code, exc)
            return None
        return outcome if outcome.changed else None
