from __future__ import annotations

import random
from dataclasses import dataclass
from typing import Callable, Optional, Tuple

from holdem.betting import legal_options
from holdem.models import ActionKind, Player, Stage
from holdem.room import Room

_RNG = random.Random()

Decision = Tuple[ActionKind, Optional[int]]


@dataclass(frozen=True)
class BotView:
    """Read-only facts a bot may base its decision on."""

    stage: Stage
    stack: int
    bet_this_round: int
    current_bet: int
    big_blind: int
    to_call: int
    min_raise_to: int
    max_raise_to: int
    hole: Tuple[str, ...]


BotPolicy = Callable[[BotView], Decision]


def bot_view(room: Room, player: Player) -> BotView:
    options = legal_options(room, player)
    return BotView(
        stage=room.stage,
        stack=player.stack,
        bet_this_round=player.bet_this_round,
        current_bet=room.current_bet,
        big_blind=room.big_blind,
        to_call=max(0, room.current_bet - player.bet_this_round),
        min_raise_to=int(options["min_raise_to"]),
        max_raise_to=int(options["max_raise_to"]),
        hole=tuple(card.label for card in player.hole),
    )


def baseline_strategy(view: BotView, rng: Optional[random.Random] = None) -> Decision:
    """House bot: occasional min bets when unopposed, cheap calls otherwise."""
    rng = rng or _RNG

    if view.to_call == 0:
        if rng.random() < 0.35 and view.stack > view.big_blind:
            desired = min(view.bet_this_round + view.big_blind, view.bet_this_round + view.stack)
            return ActionKind.BET, desired
        # Calling nothing is a check.
        return ActionKind.CALL, None

    if view.to_call <= max(1, view.stack // 4) or rng.random() < 0.25:
        return ActionKind.CALL, None
    return ActionKind.FOLD, None
