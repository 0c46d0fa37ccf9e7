from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, FrozenSet, List, Optional

from .cards import Card

MAX_SEATS = 8


class RoomState(str, Enum):
    LOBBY = "lobby"
    HAND = "hand"
    REVEAL = "reveal"
    SHOWDOWN = "showdown"


class Stage(str, Enum):
    PREFLOP = "preflop"
    FLOP = "flop"
    TURN = "turn"
    RIVER = "river"


class ActionKind(str, Enum):
    FOLD = "fold"
    CHECK = "check"
    CALL = "call"
    BET = "bet"
    RAISE = "raise"
    ALL_IN = "all-in"


class TimerKind(str, Enum):
    SHOWDOWN = "showdown"
    NEXT_HAND = "next_hand"
    BOT = "bot"


@dataclass
class TableConfig:
    seats: int = MAX_SEATS
    starting_stack: int = 2_000
    sb: int = 10
    bb: int = 20
    reveal_delay_ms: int = 3_000
    next_hand_delay_ms: int = 3_500
    bot_delay_ms: int = 800
    bot_jitter_ms: int = 600
    log_limit: int = 200
    log_tail: int = 40
    equity_trials: int = 500

    def __post_init__(self) -> None:
        if not 2 <= self.seats <= MAX_SEATS:
            raise ValueError(f"seats must be between 2 and {MAX_SEATS}")
        if self.sb < 1 or self.bb <= self.sb:
            raise ValueError("blinds must satisfy 0 < sb < bb")


@dataclass
class Player:
    player_id: str
    name: str
    seat: int
    stack: int
    connected: bool = True
    is_bot: bool = False
    folded: bool = False
    all_in: bool = False
    bet_this_round: int = 0
    committed: int = 0
    has_acted: bool = False
    hole: List[Card] = field(default_factory=list)
    last_action: Optional[str] = None

    def reset_for_hand(self) -> None:
        # Busted players sit the hand out as folded spectators.
        self.folded = self.stack <= 0
        self.all_in = False
        self.bet_this_round = 0
        self.committed = 0
        self.has_acted = False
        self.hole.clear()
        self.last_action = None

    def reset_for_round(self) -> None:
        self.bet_this_round = 0
        if not self.folded and not self.all_in:
            self.has_acted = False

    @property
    def can_act(self) -> bool:
        return not self.folded and not self.all_in and self.stack > 0


@dataclass(frozen=True)
class Pot:
    amount: int
    eligible: FrozenSet[str]


@dataclass(frozen=True)
class TimerRequest:
    """A delayed re-entry into the room; stale once `generation` moves on."""

    kind: TimerKind
    delay_ms: int
    generation: int
    seat: Optional[int] = None


@dataclass
class Outcome:
    """Effects of one transition: events to broadcast and timers to schedule."""

    events: List[Dict[str, object]] = field(default_factory=list)
    timers: List[TimerRequest] = field(default_factory=list)

    @property
    def changed(self) -> bool:
        return bool(self.events)

    def extend(self, other: "Outcome") -> None:
        self.events.extend(other.events)
        self.timers.extend(other.timers)
