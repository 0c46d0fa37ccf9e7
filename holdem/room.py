from __future__ import annotations

import random
import time
from collections import deque
from typing import Deque, Dict, List, Optional

from .betting import IllegalAction, apply_action, commit_chips, legal_options, round_closed
from .cards import HIDDEN, Card, Deck, labels, pretty
from .equity import estimate_equity
from .evaluator import evaluate_best
from .models import (
    ActionKind,
    Outcome,
    Player,
    RoomState,
    Stage,
    TableConfig,
    TimerKind,
    TimerRequest,
)
from .seats import SeatView, next_seat
from .showdown import resolve_showdown

# Room keeps one table's state in memory. No sockets or clocks live here:
# every transition returns an Outcome describing events to broadcast and
# timers the caller should schedule.

STREETS = {
    Stage.PREFLOP: (Stage.FLOP, 3),
    Stage.FLOP: (Stage.TURN, 1),
    Stage.TURN: (Stage.RIVER, 1),
}


class Room:
    """Authoritative Texas Hold'em state machine for a single table."""

    def __init__(
        self,
        code: str,
        config: TableConfig,
        host_id: str,
        rng: Optional[random.Random] = None,
    ) -> None:
        self.code = code
        self.config = config
        self.host_id = host_id
        self.rng = rng or random.Random()
        self.state = RoomState.LOBBY
        self.stage = Stage.PREFLOP
        self.dealer_seat: Optional[int] = None
        self.current_seat: Optional[int] = None
        self.small_blind = config.sb
        self.big_blind = config.bb
        self.pot = 0
        self.current_bet = 0
        self.min_raise = config.bb
        self.community: List[Card] = []
        self.deck = Deck([])
        self.players: Dict[str, Player] = {}
        self.log: Deque[str] = deque(maxlen=config.log_limit)
        self.winner_info: Optional[Dict[str, object]] = None
        self.hand_no = 0
        self.generation = 0
        self.action_seq = 0
        self.pot_awarded = False

    # Seats -----------------------------------------------------------

    def seat_player(self, player_id: str, name: str, *, is_bot: bool = False) -> Player:
        if player_id in self.players:
            raise ValueError("Player already seated")
        seat = self._free_seat()
        if seat is None:
            raise RuntimeError("Room is full")
        player = Player(
            player_id=player_id,
            name=name,
            seat=seat,
            stack=self.config.starting_stack,
            is_bot=is_bot,
            # Anyone seated mid-hand waits for the next deal.
            folded=self.state != RoomState.LOBBY,
        )
        self.players[player_id] = player
        suffix = " (bot)" if is_bot else ""
        self.add_log(f"{name}{suffix} joined (seat {seat}).")
        return player

    def _free_seat(self) -> Optional[int]:
        used = {player.seat for player in self.players.values()}
        for seat in range(self.config.seats):
            if seat not in used:
                return seat
        return None

    def players_by_seat(self) -> List[Player]:
        return sorted(self.players.values(), key=lambda player: player.seat)

    def player_at(self, seat: Optional[int]) -> Optional[Player]:
        for player in self.players.values():
            if player.seat == seat:
                return player
        return None

    def seat_views(self) -> tuple:
        return tuple(
            SeatView(seat=p.seat, folded=p.folded, all_in=p.all_in, stack=p.stack)
            for p in self.players_by_seat()
        )

    def active_seats(self) -> List[int]:
        return [player.seat for player in self.players_by_seat() if player.stack > 0]

    def has_humans(self) -> bool:
        return any(player.connected and not player.is_bot for player in self.players.values())

    def _next(self, from_seat: Optional[int], **filters: bool) -> Optional[int]:
        return next_seat(self.seat_views(), from_seat, self.config.seats, **filters)

    def _reassign_host(self) -> None:
        host = self.players.get(self.host_id)
        if host is not None and host.connected:
            return
        for player in self.players_by_seat():
            if player.connected and not player.is_bot:
                self.host_id = player.player_id
                self.add_log(f"{player.name} is now the host.")
                return

    def add_log(self, message: str) -> None:
        self.log.append(f"[{time.strftime('%H:%M:%S')}] {message}")

    # Lobby commands --------------------------------------------------

    def set_blinds(self, small_blind: Optional[int], big_blind: Optional[int]) -> Outcome:
        if self.state in (RoomState.HAND, RoomState.REVEAL):
            raise IllegalAction("Blinds are fixed while a hand is running")
        sb = max(1, int(small_blind or self.small_blind))
        bb = max(sb + 1, int(big_blind or self.big_blind))
        self.small_blind = sb
        self.big_blind = bb
        self.min_raise = bb
        self.add_log(f"Blinds set to {sb}/{bb}.")
        return Outcome(events=[{"ev": "BLINDS", "sb": sb, "bb": bb}])

    def remove_player(self, player_id: str) -> Outcome:
        player = self.players.pop(player_id, None)
        if player is None:
            return Outcome()
        self.add_log(f"{player.name} left the lobby.")
        self._reassign_host()
        return Outcome(events=[{"ev": "LEAVE", "seat": player.seat}])

    def disconnect(self, player_id: str) -> Outcome:
        player = self.players.get(player_id)
        if player is None:
            return Outcome()
        player.connected = False
        self.add_log(f"{player.name} disconnected.")
        outcome = Outcome(events=[{"ev": "DISCONNECT", "seat": player.seat}])

        if self.state == RoomState.LOBBY:
            outcome.extend(self.remove_player(player_id))
            return outcome
        if self.state == RoomState.HAND and self.current_seat == player.seat and player.can_act:
            outcome.extend(self._auto_fold(player))
        self._reassign_host()
        return outcome

    # Hand lifecycle --------------------------------------------------

    def begin_hand(self) -> Outcome:
        if self.state in (RoomState.HAND, RoomState.REVEAL):
            raise IllegalAction("Hand already in progress")
        active = self.active_seats()
        if len(active) < 2:
            self.state = RoomState.LOBBY
            self.add_log("Need at least 2 players with chips to start.")
            return Outcome(events=[{"ev": "WAITING"}])

        self.hand_no += 1
        self.generation += 1
        self.action_seq += 1
        self.state = RoomState.HAND
        self.stage = Stage.PREFLOP
        self.community = []
        self.deck = Deck.fresh(self.rng)
        self.pot = 0
        self.current_bet = 0
        self.min_raise = self.big_blind
        self.current_seat = None
        self.winner_info = None
        self.pot_awarded = False
        for player in self.players.values():
            player.reset_for_hand()

        if self.dealer_seat is None:
            self.dealer_seat = active[0]
        else:
            self.dealer_seat = self._next(self.dealer_seat, require_stack=True)

        heads_up = len(active) == 2
        blinds = self._post_blinds(heads_up)
        self._deal_hole_cards()

        if heads_up:
            first = self.dealer_seat
            dealer = self.player_at(first)
            if dealer is None or not dealer.can_act:
                first = self._next(first, require_stack=True)
        else:
            first = self._next(blinds["bb_seat"], require_stack=True)
        self.current_seat = first
        self.add_log(
            f"Hand #{self.hand_no} started. Dealer: seat {self.dealer_seat}. Action on seat {self.current_seat}."
        )

        outcome = Outcome(
            events=[
                {"ev": "START_HAND", "hand_no": self.hand_no, "dealer": self.dealer_seat},
                blinds,
            ]
        )
        if round_closed(self.players.values(), self.current_bet):
            outcome.extend(self._close_round())
        else:
            outcome.extend(self._prompt_actor())
        return outcome

    def _post_blinds(self, heads_up: bool) -> Dict[str, object]:
        # Heads-up the dealer posts the small blind.
        if heads_up:
            sb_seat = self.dealer_seat
        else:
            sb_seat = self._next(self.dealer_seat, include_all_in=True)
        bb_seat = self._next(sb_seat, include_all_in=True)
        sb_player = self.player_at(sb_seat)
        bb_player = self.player_at(bb_seat)
        assert sb_player and bb_player

        sb_paid = commit_chips(self, sb_player, self.small_blind)
        bb_paid = commit_chips(self, bb_player, self.big_blind)
        self.current_bet = max(sb_player.bet_this_round, bb_player.bet_this_round)
        self.min_raise = self.big_blind
        self.add_log(
            f"Blinds posted: SB seat {sb_seat} ({sb_paid}), BB seat {bb_seat} ({bb_paid})."
        )
        return {
            "ev": "POST_BLINDS",
            "sb_seat": sb_seat,
            "bb_seat": bb_seat,
            "sb": sb_paid,
            "bb": bb_paid,
        }

    def _deal_hole_cards(self) -> None:
        dealt_in = [player for player in self.players.values() if not player.folded]
        order: List[int] = []
        seat = self.dealer_seat
        for _ in dealt_in:
            seat = self._next(seat, include_all_in=True)
            order.append(seat)
        for _ in range(2):
            for seat in order:
                player = self.player_at(seat)
                assert player
                player.hole.append(self.deck.draw())

    def submit_action(self, player_id: str, kind: ActionKind, amount: Optional[int] = None) -> Outcome:
        player = self.players.get(player_id)
        if player is None:
            raise IllegalAction("Unknown player")
        if self.state != RoomState.HAND:
            raise IllegalAction("No hand in progress")
        if self.current_seat is None or player.seat != self.current_seat:
            raise IllegalAction("Not your turn")
        if player.folded or player.all_in:
            raise IllegalAction("Player cannot act")

        event = apply_action(self, player, ActionKind(kind), amount)
        self.action_seq += 1
        self._log_action(player, event)
        outcome = Outcome(events=[{**event, "player_id": player.player_id}])
        outcome.extend(self._after_action())
        return outcome

    def _auto_fold(self, player: Player) -> Outcome:
        event = apply_action(self, player, ActionKind.FOLD, None)
        player.last_action = "disconnect fold"
        self.action_seq += 1
        self.add_log(f"{player.name} auto-folds (disconnect).")
        outcome = Outcome(events=[{**event, "player_id": player.player_id, "auto": True}])
        outcome.extend(self._after_action())
        return outcome

    def _after_action(self) -> Outcome:
        survivors = [player for player in self.players.values() if not player.folded]
        if len(survivors) == 1:
            return self._award_to_survivor(survivors[0])
        if round_closed(self.players.values(), self.current_bet):
            return self._close_round()
        self.current_seat = self._next(self.current_seat, require_stack=True)
        return self._prompt_actor()

    def _prompt_actor(self) -> Outcome:
        player = self.player_at(self.current_seat)
        if player is None:
            return Outcome()
        if not player.connected and not player.is_bot:
            return self._auto_fold(player)
        if player.is_bot:
            delay = self.config.bot_delay_ms + self.rng.randint(0, self.config.bot_jitter_ms)
            return Outcome(
                timers=[TimerRequest(TimerKind.BOT, delay, self.action_seq, seat=player.seat)]
            )
        return Outcome()

    def _close_round(self) -> Outcome:
        if any(player.can_act for player in self.players.values()):
            return self.advance_stage()
        # Everyone live is all in: run the board out.
        outcome = Outcome()
        while self.stage != Stage.RIVER:
            outcome.events.append(self._deal_street())
        outcome.extend(self._enter_reveal())
        return outcome

    def advance_stage(self) -> Outcome:
        if self.stage == Stage.RIVER:
            return self._enter_reveal()
        outcome = Outcome(events=[self._deal_street()])
        self._start_betting_round()
        outcome.extend(self._prompt_actor())
        return outcome

    def _deal_street(self) -> Dict[str, object]:
        stage, count = STREETS[self.stage]
        cards = self.deck.draw_many(count)
        self.community.extend(cards)
        self.stage = stage
        if stage == Stage.FLOP:
            self.add_log(f"Flop: {pretty(self.community)}")
        else:
            self.add_log(f"{stage.value.capitalize()}: {cards[0].pretty}")
        return {"ev": stage.name, "cards": labels(cards)}

    def _start_betting_round(self) -> None:
        self.current_bet = 0
        self.min_raise = self.big_blind
        for player in self.players.values():
            player.reset_for_round()
        self.current_seat = self._next(self.dealer_seat, require_stack=True)
        self.add_log(f"Betting starts with seat {self.current_seat}.")

    def _enter_reveal(self) -> Outcome:
        self.state = RoomState.REVEAL
        self.current_seat = None
        self.generation += 1
        self.add_log("Reveal!")
        return Outcome(
            events=[{"ev": "REVEAL"}],
            timers=[TimerRequest(TimerKind.SHOWDOWN, self.config.reveal_delay_ms, self.generation)],
        )

    def _award_to_survivor(self, player: Player) -> Outcome:
        amount = self.pot
        player.stack += amount
        self.pot = 0
        self.pot_awarded = True
        self.winner_info = {
            "player_ids": [player.player_id],
            "player_names": player.name,
            "hand": "Winning hand",
            "description": "Everyone else folded",
            "amount": amount,
            "pots": [{"amount": amount, "player_ids": [player.player_id], "hand": None}],
        }
        self.add_log(f"{player.name} wins the pot ({amount}); everyone else folded.")
        outcome = Outcome(
            events=[{"ev": "POT_AWARD", "seat": player.seat, "player_id": player.player_id, "amount": amount}]
        )
        outcome.extend(self._enter_reveal())
        return outcome

    def fire_timer(self, request: TimerRequest) -> Outcome:
        """Apply a scheduled transition unless the room has already moved on."""
        if request.generation != self.generation:
            return Outcome()
        if request.kind == TimerKind.SHOWDOWN and self.state == RoomState.REVEAL:
            return self._showdown()
        if request.kind == TimerKind.NEXT_HAND and self.state == RoomState.SHOWDOWN:
            return self._next_hand()
        return Outcome()

    def _showdown(self) -> Outcome:
        outcome = Outcome()
        if not self.pot_awarded:
            outcome.events.extend(self._pay_showdown())
        self.state = RoomState.SHOWDOWN
        self.current_seat = None
        self.generation += 1
        outcome.events.append({"ev": "SHOWDOWN"})
        outcome.timers.append(
            TimerRequest(TimerKind.NEXT_HAND, self.config.next_hand_delay_ms, self.generation)
        )
        return outcome

    def _pay_showdown(self) -> List[Dict[str, object]]:
        seated = self.players_by_seat()
        result = resolve_showdown(seated, self.community)
        self.pot = 0
        names = {player.player_id: player.name for player in seated}

        events: List[Dict[str, object]] = []
        for player in seated:
            hand = result.hands.get(player.player_id)
            if hand is None:
                continue
            self.add_log(f"{player.name} shows {pretty(player.hole)} ({hand.name}: {hand.descr})")
            events.append(
                {"ev": "SHOW", "seat": player.seat, "hole": labels(player.hole), "rank": hand.name}
            )
        pots = []
        for pot in result.pots:
            winners = ", ".join(names[pid] for pid in pot.winners)
            self.add_log(f"Pot {pot.amount} -> {winners} ({pot.hand.descr})")
            pots.append({"amount": pot.amount, "player_ids": list(pot.winners), "hand": pot.hand.name})
        for pid, amount in result.payouts.items():
            events.append({"ev": "POT_AWARD", "player_id": pid, "amount": amount})

        if result.pots:
            main = result.pots[0]
            self.winner_info = {
                "player_ids": list(main.winners),
                "player_names": ", ".join(names[pid] for pid in main.winners),
                "hand": main.hand.name,
                "description": main.hand.descr,
                "amount": main.amount,
                "pots": pots,
            }
        return events

    def _next_hand(self) -> Outcome:
        outcome = Outcome()
        for player in [p for p in self.players.values() if not p.connected and not p.is_bot]:
            outcome.extend(self.remove_player(player.player_id))
        for player in self.players.values():
            player.reset_for_hand()
        if len(self.active_seats()) >= 2:
            outcome.extend(self.begin_hand())
            return outcome
        self.state = RoomState.LOBBY
        self.stage = Stage.PREFLOP
        self.generation += 1
        self.add_log("Waiting for at least 2 players with chips to continue.")
        outcome.events.append({"ev": "LOBBY"})
        return outcome

    def bot_to_act(self, request: TimerRequest) -> Optional[Player]:
        """The bot a BOT timer was scheduled for, if it is still that bot's turn."""
        if request.generation != self.action_seq or self.state != RoomState.HAND:
            return None
        if request.seat is None or request.seat != self.current_seat:
            return None
        player = self.player_at(request.seat)
        if player is None or not player.is_bot or not player.can_act:
            return None
        return player

    def _log_action(self, player: Player, event: Dict[str, object]) -> None:
        kind = event["ev"]
        tail = " (all-in)" if event.get("all_in") else ""
        if kind == "FOLD":
            self.add_log(f"{player.name} folds.")
        elif kind == "CHECK":
            self.add_log(f"{player.name} checks.")
        elif kind == "CALL":
            self.add_log(f"{player.name} calls {event['amount']}{tail}.")
        elif kind == "ALL_IN":
            self.add_log(f"{player.name} goes all-in to {event['to']}.")
        else:
            verb = "bets" if kind == "BET" else "raises"
            self.add_log(f"{player.name} {verb} to {event['to']}{tail}.")

    # Snapshots -------------------------------------------------------

    def is_spectator(self, player: Optional[Player]) -> bool:
        # Busted and holding no cards: nothing left to hide from them.
        return player is not None and player.stack <= 0 and not player.hole

    def snapshot_for(self, viewer_id: str) -> Dict[str, object]:
        viewer = self.players.get(viewer_id)
        spectator = self.is_spectator(viewer)
        revealed = self.state in (RoomState.REVEAL, RoomState.SHOWDOWN)
        in_hand = self.state == RoomState.HAND
        board_out = len(self.community) >= 3

        players = []
        for player in self.players_by_seat():
            if revealed or spectator or player.player_id == viewer_id:
                hole = labels(player.hole)
            else:
                hole = [HIDDEN, HIDDEN] if player.hole else []
            hand_rank = None
            if spectator and in_hand and board_out and player.hole and not player.folded:
                ranked = evaluate_best(player.hole + self.community)
                hand_rank = {"name": ranked.name, "descr": ranked.descr}
            players.append(
                {
                    "id": player.player_id,
                    "name": player.name,
                    "seat": player.seat,
                    "stack": player.stack,
                    "folded": player.folded,
                    "all_in": player.all_in,
                    "bet_this_round": player.bet_this_round,
                    "committed": player.committed,
                    "connected": player.connected,
                    "is_bot": player.is_bot,
                    "last_action": player.last_action,
                    "hole": hole,
                    "hand_rank": hand_rank,
                }
            )

        you: Dict[str, object] = {
            "id": viewer_id,
            "seat": viewer.seat if viewer else None,
            "is_spectator": spectator,
        }
        if viewer is not None and in_hand and viewer.seat == self.current_seat and viewer.can_act:
            you.update(legal_options(self, viewer))

        equity = None
        if spectator and in_hand:
            holes = {p.player_id: p.hole for p in self.players.values() if not p.folded and p.hole}
            equity = estimate_equity(holes, self.community, self.config.equity_trials) or None

        return {
            "code": self.code,
            "host_id": self.host_id,
            "state": self.state.value,
            "stage": self.stage.value,
            "hand_no": self.hand_no,
            "dealer_seat": self.dealer_seat,
            "small_blind": self.small_blind,
            "big_blind": self.big_blind,
            "pot": self.pot,
            "community": labels(self.community),
            "current_seat": self.current_seat,
            "current_bet": self.current_bet,
            "min_raise": self.min_raise,
            "players": players,
            "you": you,
            "equity": equity,
            "winner_info": self.winner_info,
            "log": list(self.log)[-self.config.log_tail :],
            "ts": int(time.time() * 1000),
        }
