"""Spectator-only win-chance estimate for the players still in a hand."""

from __future__ import annotations

import random
from typing import Dict, List, Mapping, Optional, Sequence

from .cards import Card, full_deck
from .evaluator import best_of, evaluate_best


def estimate_equity(
    holes: Mapping[str, Sequence[Card]],
    board: Sequence[Card],
    trials: int,
    *,
    rng: Optional[random.Random] = None,
) -> Dict[str, int]:
    """Percent chance (0-100) that each hand wins, ties counted as shared wins.

    A complete board is ranked exactly; otherwise the remaining board cards
    are sampled `trials` times from the unseen cards.
    """
    if len(holes) < 2:
        return {}
    rng = rng or random.Random()
    seen = {card for hole in holes.values() for card in hole} | set(board)
    unseen: List[Card] = [card for card in full_deck() if card not in seen]
    missing = 5 - len(board)

    wins = {pid: 0.0 for pid in holes}
    rounds = 1 if missing <= 0 else max(1, trials)
    for _ in range(rounds):
        runout = list(board) + (rng.sample(unseen, missing) if missing > 0 else [])
        ranked = {pid: evaluate_best(list(hole) + runout) for pid, hole in holes.items()}
        winners = best_of(ranked)
        for pid in winners:
            wins[pid] += 1 / len(winners)

    return {pid: round(100 * won / rounds) for pid, won in wins.items()}
