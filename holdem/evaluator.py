from __future__ import annotations

import itertools
from dataclasses import dataclass
from typing import Dict, Hashable, Iterable, List, Mapping, Optional, Sequence, Tuple, TypeVar

from .cards import Card

RANK_ORDER = "23456789TJQKA"
RANK_VALUE = {rank: idx for idx, rank in enumerate(RANK_ORDER, start=2)}
VALUE_RANK = {value: rank for rank, value in RANK_VALUE.items()}

CATEGORY_NAMES = (
    "High Card",
    "Pair",
    "Two Pair",
    "Three of a Kind",
    "Straight",
    "Flush",
    "Full House",
    "Four of a Kind",
    "Straight Flush",
)

K = TypeVar("K", bound=Hashable)


@dataclass(frozen=True, order=True)
class RankedHand:
    """Best five-card hand out of 5-7 cards. Instances compare by strength."""

    category: int
    kickers: Tuple[int, ...]

    @property
    def name(self) -> str:
        if self.category == 8 and self.kickers[0] == 14:
            return "Royal Flush"
        return CATEGORY_NAMES[self.category]

    @property
    def descr(self) -> str:
        top = VALUE_RANK[self.kickers[0]]
        if self.category == 2:
            return f"{self.name}, {top}'s & {VALUE_RANK[self.kickers[1]]}'s"
        if self.category == 6:
            return f"{self.name}, {top}'s over {VALUE_RANK[self.kickers[1]]}'s"
        if self.category in (4, 5, 8):
            return f"{self.name}, {top} High"
        if self.category == 0:
            return f"{top} High"
        return f"{self.name}, {top}'s"


def evaluate_best(cards: Sequence[Card]) -> RankedHand:
    """Rank the best five-card combination out of 5 to 7 cards."""
    if not 5 <= len(cards) <= 7:
        raise ValueError(f"Expected 5-7 cards, got {len(cards)}")
    best: Optional[RankedHand] = None
    for combo in itertools.combinations(cards, 5):
        rank = _evaluate_five(combo)
        if best is None or rank > best:
            best = rank
    assert best is not None
    return best


def best_of(hands: Mapping[K, RankedHand]) -> List[K]:
    """Keys of every hand tied for the top rank, in mapping order."""
    if not hands:
        return []
    top = max(hands.values())
    return [key for key, hand in hands.items() if hand == top]


def _evaluate_five(cards: Iterable[Card]) -> RankedHand:
    cards = list(cards)
    ranks = sorted((RANK_VALUE[card.rank] for card in cards), reverse=True)
    is_flush = len({card.suit for card in cards}) == 1
    straight_high = _straight_high(ranks)

    counts: Dict[int, int] = {}
    for value in ranks:
        counts[value] = counts.get(value, 0) + 1
    # Highest multiplicity first, then highest rank.
    grouped = sorted(counts.items(), key=lambda item: (item[1], item[0]), reverse=True)
    shape = [count for _, count in grouped]
    ordered = tuple(value for value, _ in grouped)

    if straight_high and is_flush:
        return RankedHand(8, (straight_high,))
    if shape[0] == 4:
        return RankedHand(7, ordered)
    if shape[:2] == [3, 2]:
        return RankedHand(6, ordered)
    if is_flush:
        return RankedHand(5, tuple(ranks))
    if straight_high:
        return RankedHand(4, (straight_high,))
    if shape[0] == 3:
        return RankedHand(3, ordered)
    if shape[:2] == [2, 2]:
        return RankedHand(2, ordered)
    if shape[0] == 2:
        return RankedHand(1, ordered)
    return RankedHand(0, tuple(ranks))


def _straight_high(ranks: Sequence[int]) -> Optional[int]:
    distinct = sorted(set(ranks), reverse=True)
    if len(distinct) != 5:
        return None
    if distinct[0] - distinct[4] == 4:
        return distinct[0]
    if distinct == [14, 5, 4, 3, 2]:  # wheel
        return 5
    return None
