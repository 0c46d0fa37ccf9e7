from __future__ import annotations

import random
from dataclasses import dataclass
from typing import List, Optional, Sequence

RANKS = "AKQJT98765432"
SUITS = "shdc"
SUIT_SYMBOLS = {"s": "♠", "h": "♥", "d": "♦", "c": "♣"}
HIDDEN = "??"


@dataclass(frozen=True)
class Card:
    rank: str
    suit: str

    def __post_init__(self) -> None:
        if self.rank not in RANKS:
            raise ValueError(f"Invalid rank: {self.rank}")
        if self.suit not in SUITS:
            raise ValueError(f"Invalid suit: {self.suit}")

    @property
    def label(self) -> str:
        return f"{self.rank}{self.suit}"

    @property
    def pretty(self) -> str:
        return f"{self.rank}{SUIT_SYMBOLS[self.suit]}"


def full_deck() -> List[Card]:
    return [Card(rank, suit) for rank in RANKS[::-1] for suit in SUITS]


class Deck:
    """Face-down cards for one hand. The top of the deck is the end of the list."""

    def __init__(self, cards: Sequence[Card]) -> None:
        self.cards: List[Card] = list(cards)

    @classmethod
    def fresh(cls, rng: Optional[random.Random] = None) -> "Deck":
        cards = full_deck()
        (rng or random.Random()).shuffle(cards)
        return cls(cards)

    def draw(self) -> Card:
        if not self.cards:
            raise RuntimeError("Deck exhausted")
        return self.cards.pop()

    def draw_many(self, count: int) -> List[Card]:
        return [self.draw() for _ in range(count)]

    def __len__(self) -> int:
        return len(self.cards)


def labels(cards: Sequence[Card]) -> List[str]:
    return [card.label for card in cards]


def pretty(cards: Sequence[Card]) -> str:
    return " ".join(card.pretty for card in cards)


def parse_label(label: str) -> Card:
    if len(label) != 2:
        raise ValueError(f"Invalid card label: {label}")
    return Card(label[0], label[1])


def parse_cards(card_labels: Sequence[str]) -> List[Card]:
    return [parse_label(label) for label in card_labels]
