"""Authoritative Texas Hold'em room engine shared by the host server and tests."""

from .betting import IllegalAction, legal_options, round_closed
from .cards import Card, Deck, RANKS, SUITS, parse_cards
from .evaluator import RankedHand, best_of, evaluate_best
from .models import ActionKind, Outcome, Player, Pot, RoomState, Stage, TableConfig, TimerKind, TimerRequest
from .pots import build_side_pots, split_pot
from .room import Room
from .seats import SeatView, next_seat

__all__ = [
    "Card",
    "Deck",
    "RANKS",
    "SUITS",
    "parse_cards",
    "RankedHand",
    "best_of",
    "evaluate_best",
    "IllegalAction",
    "legal_options",
    "round_closed",
    "ActionKind",
    "Outcome",
    "Player",
    "Pot",
    "RoomState",
    "Stage",
    "TableConfig",
    "TimerKind",
    "TimerRequest",
    "build_side_pots",
    "split_pot",
    "Room",
    "SeatView",
    "next_seat",
]
