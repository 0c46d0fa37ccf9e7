from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Sequence

from .cards import Card
from .evaluator import RankedHand, best_of, evaluate_best
from .models import Player
from .pots import build_side_pots, split_pot


@dataclass
class PotResult:
    amount: int
    winners: List[str]
    hand: RankedHand


@dataclass
class ShowdownResult:
    hands: Dict[str, RankedHand] = field(default_factory=dict)
    payouts: Dict[str, int] = field(default_factory=dict)
    pots: List[PotResult] = field(default_factory=list)


def resolve_showdown(players: Sequence[Player], community: Sequence[Card]) -> ShowdownResult:
    """Rank every live hand and pay each side pot to its best eligible hand(s).

    `players` must be in seat order; that order decides who takes the odd chip.
    Stacks are credited in place.
    """
    result = ShowdownResult()
    for player in players:
        if not player.folded:
            result.hands[player.player_id] = evaluate_best(list(player.hole) + list(community))

    for pot in build_side_pots(players):
        contenders = {pid: hand for pid, hand in result.hands.items() if pid in pot.eligible}
        winners = best_of(contenders)
        if not winners:
            continue
        for pid, amount in split_pot(pot.amount, winners).items():
            result.payouts[pid] = result.payouts.get(pid, 0) + amount
        result.pots.append(PotResult(amount=pot.amount, winners=winners, hand=contenders[winners[0]]))

    for player in players:
        player.stack += result.payouts.get(player.player_id, 0)
    return result
