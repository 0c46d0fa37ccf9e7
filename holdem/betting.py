"""Street-level betting rules: legal actions, raise sizing and round closure."""

from __future__ import annotations

from typing import TYPE_CHECKING, Dict, Iterable, Optional

from .models import ActionKind, Player

if TYPE_CHECKING:
    from .room import Room


class IllegalAction(ValueError):
    """Raised for an action the rules do not allow; callers treat it as a no-op."""


def commit_chips(room: "Room", player: Player, wanted: int) -> int:
    pay = max(0, min(wanted, player.stack))
    player.stack -= pay
    player.bet_this_round += pay
    player.committed += pay
    room.pot += pay
    if player.stack == 0:
        player.all_in = True
    return pay


def min_raise_to(room: "Room") -> int:
    if room.current_bet == 0:
        return room.big_blind
    return room.current_bet + room.min_raise


def round_closed(players: Iterable[Player], current_bet: int) -> bool:
    """Every live, non-all-in player has acted and matched the bet (vacuously true)."""
    contenders = [player for player in players if not player.folded and not player.all_in]
    return all(player.has_acted and player.bet_this_round == current_bet for player in contenders)


def legal_options(room: "Room", player: Player) -> Dict[str, object]:
    """Legal moves for the acting player plus the numbers a client needs to offer them."""
    to_call = max(0, room.current_bet - player.bet_this_round)
    full_commitment = player.bet_this_round + player.stack
    legal = [ActionKind.FOLD, ActionKind.CHECK if to_call == 0 else ActionKind.CALL]
    if player.stack > 0 and full_commitment > room.current_bet:
        legal.append(ActionKind.BET if room.current_bet == 0 else ActionKind.RAISE)
    if player.stack > 0:
        legal.append(ActionKind.ALL_IN)
    return {
        "legal": [kind.value for kind in legal],
        "to_call": min(to_call, player.stack),
        "min_raise_to": min(min_raise_to(room), full_commitment),
        "max_raise_to": full_commitment,
    }


def apply_action(room: "Room", player: Player, kind: ActionKind, amount: Optional[int]) -> Dict[str, object]:
    if kind == ActionKind.FOLD:
        return _fold(player)
    if kind == ActionKind.CHECK:
        return _check(room, player)
    if kind == ActionKind.CALL:
        return _call(room, player)
    if kind in (ActionKind.BET, ActionKind.RAISE):
        if amount is None or amount <= 0:
            raise IllegalAction("Bet requires a positive amount")
        return _bet_to(room, player, amount)
    if kind == ActionKind.ALL_IN:
        if player.stack <= 0:
            raise IllegalAction("No chips to commit")
        event = _bet_to(room, player, player.bet_this_round + player.stack)
        event["ev"] = "ALL_IN"
        return event
    raise IllegalAction(f"Unsupported action {kind}")


def _fold(player: Player) -> Dict[str, object]:
    player.folded = True
    player.has_acted = True
    player.last_action = "fold"
    return {"ev": "FOLD", "seat": player.seat}


def _check(room: "Room", player: Player) -> Dict[str, object]:
    if player.bet_this_round != room.current_bet:
        raise IllegalAction("Cannot check when facing a bet")
    player.has_acted = True
    player.last_action = "check"
    return {"ev": "CHECK", "seat": player.seat}


def _call(room: "Room", player: Player) -> Dict[str, object]:
    call_amount = max(0, room.current_bet - player.bet_this_round)
    if call_amount == 0:
        return _check(room, player)
    paid = commit_chips(room, player, call_amount)
    player.has_acted = True
    player.last_action = f"call all-in {paid}" if player.all_in else f"call {paid}"
    return {"ev": "CALL", "seat": player.seat, "amount": paid, "all_in": player.all_in}


def _bet_to(room: "Room", player: Player, target: int) -> Dict[str, object]:
    previous_bet = room.current_bet
    full_commitment = player.bet_this_round + player.stack
    total = min(target, full_commitment)
    # An all-in below the minimum is still allowed.
    if total < min_raise_to(room) and total != full_commitment:
        raise IllegalAction("Raise below minimum")
    to_pay = total - player.bet_this_round
    if to_pay <= 0:
        raise IllegalAction("Nothing to commit")

    commit_chips(room, player, to_pay)
    if total > previous_bet:
        room.current_bet = total
        # Incomplete raises keep the old increment but still reopen the action.
        if total - previous_bet >= room.min_raise:
            room.min_raise = total - previous_bet
        for other in room.players.values():
            if other is player or other.folded or other.all_in:
                continue
            other.has_acted = False

    player.has_acted = True
    verb = "bet" if previous_bet == 0 else "raise"
    player.last_action = f"{verb} all-in to {room.current_bet}" if player.all_in else f"{verb} to {room.current_bet}"
    return {
        "ev": verb.upper(),
        "seat": player.seat,
        "to": room.current_bet,
        "amount": to_pay,
        "all_in": player.all_in,
    }
