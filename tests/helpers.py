from __future__ import annotations

import random
from typing import Iterable, Optional, Sequence

from holdem.betting import legal_options
from holdem.cards import Deck, full_deck, parse_cards
from holdem.models import ActionKind, Outcome, RoomState, TableConfig, TimerKind, TimerRequest
from holdem.room import Room


def create_room(
    *,
    players: int = 3,
    stacks: Optional[Sequence[int]] = None,
    sb: int = 10,
    bb: int = 20,
    seed: int = 42,
    **config: int,
) -> Room:
    """A lobby room with `players` humans named p0, p1, ... in seats 0, 1, ..."""
    room = Room("TEST01", TableConfig(sb=sb, bb=bb, **config), host_id="p0", rng=random.Random(seed))
    for idx in range(players):
        room.seat_player(f"p{idx}", f"Player{idx}")
    for idx, stack in enumerate(stacks or []):
        room.players[f"p{idx}"].stack = stack
    return room


def stacked_deck(top: Iterable[str]) -> Deck:
    """Deck whose draws return `top` in order, then the rest of the pack."""
    cards = parse_cards(list(top))
    rest = [card for card in full_deck() if card not in set(cards)]
    return Deck(rest + cards[::-1])


def stack_deck(monkeypatch, top: Iterable[str]) -> None:
    labels = list(top)
    monkeypatch.setattr(Deck, "fresh", classmethod(lambda cls, rng=None: stacked_deck(labels)))


def actor(room: Room) -> str:
    player = room.player_at(room.current_seat)
    assert player is not None, "nobody to act"
    return player.player_id


def act(room: Room, player_id: str, kind: str, amount: Optional[int] = None) -> Outcome:
    return room.submit_action(player_id, ActionKind(kind), amount)


def check_or_call(room: Room) -> Outcome:
    pid = actor(room)
    legal = legal_options(room, room.players[pid])["legal"]
    return act(room, pid, "check" if "check" in legal else "call")


def play_passively(room: Room) -> None:
    """Check or call every decision until the betting is over."""
    while room.state == RoomState.HAND:
        check_or_call(room)


def fire(room: Room, kind: TimerKind) -> Outcome:
    return room.fire_timer(TimerRequest(kind, 0, room.generation))


def total_chips(room: Room) -> int:
    return sum(player.stack for player in room.players.values()) + room.pot


def cards_in_play(room: Room) -> list:
    holes = [card for player in room.players.values() for card in player.hole]
    return holes + list(room.community) + list(room.deck.cards)
