from __future__ import annotations

import asyncio
import json
import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from http import HTTPStatus
from typing import Dict, Optional, Tuple

import websockets
from websockets.asyncio.server import ServerConnection, serve

from holdem.models import Outcome, TableConfig, TimerKind, TimerRequest
from holdem.room import Room

from .registry import RoomError, RoomRegistry

LOGGER = logging.getLogger("holdem_host")

# HostServer glues the room registry to websocket clients. Engine calls are
# synchronous and never await, so each message is applied to completion
# before the next one is looked at; timers re-enter through the same path.


@dataclass
class ClientSession:
    player_id: str
    websocket: ServerConnection


def _process_request(connection: ServerConnection, request):
    """Answer plain HTTP health checks; let websocket upgrades through."""
    if request.headers.get("Upgrade", "").lower() == "websocket":
        return None
    if request.path in {"/", "/health", "/healthz"}:
        return connection.respond(HTTPStatus.OK, "holdem server running\n")
    return connection.respond(HTTPStatus.NOT_FOUND, "not found\n")


class HostServer:
    def __init__(self, config: TableConfig, registry: Optional[RoomRegistry] = None) -> None:
        self.config = config
        self.registry = registry or RoomRegistry(config)
        self.sessions: Dict[str, ClientSession] = {}
        self.timers: Dict[Tuple[str, TimerKind], Tuple[TimerRequest, asyncio.Task]] = {}

    async def start(self, host: str = "0.0.0.0", port: int = 3000) -> None:
        async with serve(self._handle_connection, host, port, process_request=_process_request):
            LOGGER.info("Hold'em server listening on %s:%s", host, port)
            await asyncio.Future()

    async def _handle_connection(self, websocket: ServerConnection) -> None:
        session = ClientSession(player_id=uuid.uuid4().hex, websocket=websocket)
        self.sessions[session.player_id] = session
        LOGGER.info("Client %s connected", session.player_id)
        try:
            async for raw in websocket:
                message = self._decode(raw)
                if message is None:
                    await self._send_error(websocket, code="BAD_JSON", msg="Expected a JSON object")
                    continue
                await self._dispatch(session, message)
        except websockets.ConnectionClosed:
            pass
        finally:
            self.sessions.pop(session.player_id, None)
            await self._handle_disconnect(session)
        LOGGER.info("Client %s disconnected", session.player_id)

    async def _dispatch(self, session: ClientSession, message: Dict[str, object]) -> None:
        msg_type = message.get("type")
        player_id = session.player_id
        code = message.get("code")

        if msg_type in ("create_room", "join_room"):
            try:
                if msg_type == "create_room":
                    room = self.registry.create_room(player_id, message.get("name"))
                else:
                    room = self.registry.join_room(player_id, code, message.get("name"))
            except RoomError as exc:
                await self._send_error(session.websocket, code=exc.code, msg=exc.msg)
                return
            reply = "room_created" if msg_type == "create_room" else "joined"
            await self._send_json(session.websocket, reply, {"code": room.code, "player_id": player_id})
            await self._publish(room.code, Outcome())
            return

        if msg_type == "set_blinds":
            outcome = self.registry.set_blinds(
                player_id, code, message.get("small_blind"), message.get("big_blind")
            )
        elif msg_type == "start_hand":
            outcome = self.registry.start_hand(player_id, code)
        elif msg_type == "add_bot":
            outcome = self.registry.add_bot(player_id, code)
        elif msg_type == "action":
            outcome = self.registry.submit_action(player_id, code, message.get("action"), message.get("amount"))
        else:
            await self._send_error(session.websocket, code="UNKNOWN_TYPE", msg="Unsupported message type")
            return

        # Rejected commands are dropped without a reply.
        if outcome is not None:
            room = self.registry.room_of(player_id)
            if room is not None:
                await self._publish(room.code, outcome)

    async def _handle_disconnect(self, session: ClientSession) -> None:
        room = self.registry.room_of(session.player_id)
        outcome = self.registry.disconnect(session.player_id)
        if room is None or outcome is None:
            return
        if room.code not in self.registry.rooms:
            self._drop_timers(room.code)
            return
        await self._publish(room.code, outcome)

    # Timers ----------------------------------------------------------

    def _schedule(self, code: str, request: TimerRequest) -> None:
        key = (code, request.kind)
        previous = self.timers.pop(key, None)
        if previous:
            previous[1].cancel()
        task = asyncio.create_task(self._fire_later(code, request))
        self.timers[key] = (request, task)

    async def _fire_later(self, code: str, request: TimerRequest) -> None:
        await asyncio.sleep(request.delay_ms / 1000)
        key = (code, request.kind)
        current = self.timers.get(key)
        if current and current[0] is request:
            self.timers.pop(key, None)
        try:
            outcome = self.registry.fire_timer(code, request)
        except Exception:  # noqa: BLE001
            LOGGER.exception("Timer %s crashed for room %s", request.kind.value, code)
            return
        if outcome is not None:
            await self._publish(code, outcome)

    def _cancel_stale_timers(self, room: Room) -> None:
        for key, (request, task) in list(self.timers.items()):
            if key[0] != room.code:
                continue
            marker = room.action_seq if request.kind == TimerKind.BOT else room.generation
            if request.generation != marker:
                task.cancel()
                self.timers.pop(key, None)

    def _drop_timers(self, code: str) -> None:
        for key in [key for key in self.timers if key[0] == code]:
            _, task = self.timers.pop(key)
            task.cancel()

    # Fan-out ---------------------------------------------------------

    async def _publish(self, code: str, outcome: Outcome) -> None:
        room = self.registry.rooms.get(code)
        if room is None:
            self._drop_timers(code)
            return
        # A fresh transition supersedes any pending bot move for an older turn.
        self._cancel_stale_timers(room)
        for request in outcome.timers:
            self._schedule(code, request)

        # Snapshots are taken before the first await so every viewer sees the same state.
        targets = [
            (session.websocket, room.snapshot_for(player_id))
            for player_id, session in list(self.sessions.items())
            if player_id in room.players
        ]
        if not targets:
            return
        await asyncio.gather(
            *(self._send_json(socket, "room_state", {"state": snapshot}) for socket, snapshot in targets),
            return_exceptions=True,
        )

    async def _send_json(self, websocket: ServerConnection, msg_type: str, payload: Dict[str, object]) -> None:
        try:
            await websocket.send(self._envelope(msg_type, payload))
        except websockets.ConnectionClosed:
            pass

    async def _send_error(self, websocket: ServerConnection, code: str, msg: str) -> None:
        await self._send_json(websocket, "error", {"code": code, "msg": msg})

    def _envelope(self, msg_type: str, payload: Dict[str, object]) -> str:
        body = {"type": msg_type, "v": 1, "ts": datetime.now(timezone.utc).isoformat()}
        body.update(payload)
        return json.dumps(body)

    def _decode(self, raw: object) -> Optional[Dict[str, object]]:
        try:
            message = json.loads(raw)
        except (TypeError, ValueError):
            return None
        return message if isinstance(message, dict) else None
