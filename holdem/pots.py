"""Side-pot construction and pot splitting."""

from __future__ import annotations

from typing import Dict, Iterable, List, Sequence

from .models import Player, Pot


def build_side_pots(players: Iterable[Player]) -> List[Pot]:
    """Layer the hand's commitments into a main pot and side pots.

    Each distinct committed level L (previous level P) yields a slice of
    ``(L - P) * contributors`` chips, contestable by contributors who have not
    folded. A slice nobody live can win is folded into the neighbouring pot,
    so the pots always add up to the total committed.
    """
    contributors = [player for player in players if player.committed > 0]
    levels = sorted({player.committed for player in contributors})

    pots: List[Pot] = []
    dead = 0
    previous = 0
    for level in levels:
        in_slice = [player for player in contributors if player.committed >= level]
        amount = (level - previous) * len(in_slice)
        eligible = frozenset(player.player_id for player in in_slice if not player.folded)
        previous = level
        if not eligible:
            dead += amount
            continue
        pots.append(Pot(amount=amount + dead, eligible=eligible))
        dead = 0

    if dead and pots:
        last = pots[-1]
        pots[-1] = Pot(amount=last.amount + dead, eligible=last.eligible)
    return pots


def split_pot(amount: int, winners: Sequence[str]) -> Dict[str, int]:
    """Even integer split; the odd chips all go to the first winner."""
    if not winners:
        return {}
    share, remainder = divmod(amount, len(winners))
    payouts = {winner: share for winner in winners}
    payouts[winners[0]] += remainder
    return payouts
