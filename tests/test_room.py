import pytest

from holdem.betting import IllegalAction
from holdem.models import RoomState, Stage, TableConfig, TimerKind, TimerRequest
from holdem.pots import build_side_pots
from holdem.room import Room

from .helpers import act, actor, cards_in_play, create_room, fire, play_passively, stack_deck, total_chips


def test_seat_player_assigns_lowest_free_seat_and_rejects_overflow():
    room = create_room(players=0, seats=3)
    assert [room.seat_player(f"x{idx}", f"X{idx}").seat for idx in range(3)] == [0, 1, 2]
    room.remove_player("x1")
    assert room.seat_player("late", "Late").seat == 1
    with pytest.raises(RuntimeError, match="Room is full"):
        room.seat_player("overflow", "Overflow")
    with pytest.raises(ValueError, match="already seated"):
        room.seat_player("x0", "Again")


def test_table_config_rejects_bad_settings():
    with pytest.raises(ValueError, match="seats"):
        TableConfig(seats=9)
    with pytest.raises(ValueError, match="blinds"):
        TableConfig(sb=20, bb=20)


def test_heads_up_dealer_posts_small_blind_and_acts_first():
    room = create_room(players=2, stacks=[1000, 1000])
    room.begin_hand()
    assert room.dealer_seat == 0
    assert room.players["p0"].bet_this_round == 10
    assert room.players["p1"].bet_this_round == 20
    assert actor(room) == "p0"

    act(room, "p0", "call")
    act(room, "p1", "check")
    assert room.stage == Stage.FLOP
    assert len(room.community) == 3
    assert room.current_bet == 0
    assert room.pot == 40
    # Post-flop the non-dealer speaks first.
    assert actor(room) == "p1"


def test_three_handed_blinds_and_first_actor():
    room = create_room()
    outcome = room.begin_hand()
    blinds = outcome.events[1]
    assert blinds == {"ev": "POST_BLINDS", "sb_seat": 1, "bb_seat": 2, "sb": 10, "bb": 20}
    assert actor(room) == "p0"
    assert all(len(player.hole) == 2 for player in room.players.values())


def test_dealer_button_rotates_between_hands():
    room = create_room()
    room.begin_hand()
    act(room, "p0", "fold")
    act(room, "p1", "fold")
    fire(room, TimerKind.SHOWDOWN)
    fire(room, TimerKind.NEXT_HAND)
    assert room.hand_no == 2
    assert room.dealer_seat == 1
    assert actor(room) == "p1"


def test_lone_survivor_is_paid_exactly_once(monkeypatch):
    room = create_room()
    room.begin_hand()
    act(room, "p0", "fold")
    outcome = act(room, "p1", "fold")

    assert [event["ev"] for event in outcome.events] == ["FOLD", "POT_AWARD", "REVEAL"]
    assert room.state == RoomState.REVEAL
    assert room.pot == 0
    assert room.players["p2"].stack == 2010
    assert room.winner_info["description"] == "Everyone else folded"

    def _fail(*args, **kwargs):
        raise AssertionError("showdown evaluated after the pot was already awarded")

    monkeypatch.setattr("holdem.room.resolve_showdown", _fail)
    outcome = fire(room, TimerKind.SHOWDOWN)
    assert room.state == RoomState.SHOWDOWN
    assert room.players["p2"].stack == 2010
    assert total_chips(room) == 6000
    assert outcome.timers[0].kind == TimerKind.NEXT_HAND


def test_side_pots_with_short_all_in():
    room = create_room(stacks=[50, 1000, 1000])
    room.begin_hand()
    act(room, "p0", "all-in")
    act(room, "p1", "raise", 200)
    act(room, "p2", "call")
    assert room.stage == Stage.FLOP
    # The short stack is all in, so the flop opens with the small blind.
    assert actor(room) == "p1"
    play_passively(room)

    pots = build_side_pots(room.players_by_seat())
    assert [(pot.amount, sorted(pot.eligible)) for pot in pots] == [
        (150, ["p0", "p1", "p2"]),
        (300, ["p1", "p2"]),
    ]
    assert room.state == RoomState.REVEAL
    fire(room, TimerKind.SHOWDOWN)
    assert room.pot == 0
    assert total_chips(room) == 2050
    assert len(room.winner_info["pots"]) == 2


def test_split_pot_odd_chip_goes_to_lowest_seat(monkeypatch):
    # Deal order from the dealer's left: p1, p2, p0, then the board.
    stack_deck(monkeypatch, ["4c", "2h", "2c", "5d", "3s", "3d", "As", "Kh", "Qd", "Jc", "Th"])
    room = create_room(sb=5, bb=10, stacks=[1000, 1000, 1000])
    room.begin_hand()
    act(room, "p0", "call")
    act(room, "p1", "fold")
    act(room, "p2", "check")
    play_passively(room)
    assert room.pot == 25

    outcome = fire(room, TimerKind.SHOWDOWN)
    awards = {event["player_id"]: event["amount"] for event in outcome.events if event["ev"] == "POT_AWARD"}
    assert awards == {"p0": 13, "p2": 12}
    assert room.players["p0"].stack == 1003
    assert room.players["p1"].stack == 995
    assert room.players["p2"].stack == 1002
    assert room.winner_info["player_ids"] == ["p0", "p2"]
    assert room.winner_info["hand"] == "Straight"


def test_everyone_all_in_runs_out_the_board():
    room = create_room(players=2, stacks=[500, 500])
    room.begin_hand()
    act(room, "p0", "all-in")
    outcome = act(room, "p1", "call")
    streets = [event["ev"] for event in outcome.events if event["ev"] in ("FLOP", "TURN", "RIVER")]
    assert streets == ["FLOP", "TURN", "RIVER"]
    assert room.state == RoomState.REVEAL
    assert len(room.community) == 5
    assert outcome.timers == [TimerRequest(TimerKind.SHOWDOWN, room.config.reveal_delay_ms, room.generation)]

    cards = cards_in_play(room)
    assert len(cards) == 52
    assert len(set(cards)) == 52


def test_covering_player_keeps_betting_after_opponent_all_in():
    room = create_room(players=2, stacks=[500, 1000])
    room.begin_hand()
    act(room, "p0", "all-in")
    outcome = act(room, "p1", "call")
    streets = [event["ev"] for event in outcome.events if event["ev"] in ("FLOP", "TURN", "RIVER")]
    assert streets == ["FLOP"]
    assert room.state == RoomState.HAND
    assert room.stage == Stage.FLOP
    assert room.current_bet == 0
    assert actor(room) == "p1"
    assert "check" in room.snapshot_for("p1")["you"]["legal"]

    act(room, "p1", "check")
    assert room.stage == Stage.TURN
    assert actor(room) == "p1"
    act(room, "p1", "bet", 100)
    assert room.stage == Stage.RIVER
    act(room, "p1", "check")
    assert room.state == RoomState.REVEAL

    fire(room, TimerKind.SHOWDOWN)
    assert total_chips(room) == 1500
    # The unmatched turn bet can only come back to the covering player.
    assert room.players["p1"].stack >= 500


def test_blind_that_covers_the_stack_still_gets_cards():
    room = create_room(players=2, stacks=[1000, 15])
    room.begin_hand()
    p1 = room.players["p1"]
    assert p1.all_in and p1.committed == 15
    assert len(p1.hole) == 2
    act(room, "p0", "call")
    assert room.stage == Stage.FLOP
    assert actor(room) == "p0"
    play_passively(room)
    assert room.state == RoomState.REVEAL
    assert len(room.community) == 5


def test_busted_players_sit_out_and_begin_hand_needs_two_stacks():
    room = create_room(stacks=[0, 500, 500])
    room.begin_hand()
    assert room.players["p0"].folded and not room.players["p0"].hole
    assert {room.dealer_seat, room.current_seat} == {1}

    room = create_room(stacks=[0, 500, 0])
    outcome = room.begin_hand()
    assert outcome.events == [{"ev": "WAITING"}]
    assert room.state == RoomState.LOBBY


def test_begin_hand_rejected_while_hand_running():
    room = create_room()
    room.begin_hand()
    with pytest.raises(IllegalAction, match="already in progress"):
        room.begin_hand()
    with pytest.raises(IllegalAction, match="Blinds are fixed"):
        room.set_blinds(50, 100)


def test_set_blinds_clamps_values():
    room = create_room()
    room.set_blinds(0, 0)
    assert (room.small_blind, room.big_blind) == (10, 20)
    room.set_blinds(30, 25)
    assert (room.small_blind, room.big_blind) == (30, 31)
    room.set_blinds(None, 200)
    assert (room.small_blind, room.big_blind) == (30, 200)


def test_stale_timers_are_ignored():
    room = create_room()
    room.begin_hand()
    act(room, "p0", "fold")
    act(room, "p1", "fold")
    stale = TimerRequest(TimerKind.SHOWDOWN, 0, room.generation - 1)
    assert not room.fire_timer(stale).changed
    assert room.state == RoomState.REVEAL

    outcome = fire(room, TimerKind.SHOWDOWN)
    next_hand = outcome.timers[0]
    # Host starts the next hand early; the queued auto-deal must not deal again.
    room.begin_hand()
    assert room.hand_no == 2
    assert not room.fire_timer(next_hand).changed
    assert room.hand_no == 2


def test_disconnected_player_auto_folds_on_turn():
    room = create_room()
    room.begin_hand()
    outcome = room.disconnect("p0")
    assert room.players["p0"].folded
    assert room.players["p0"].last_action == "disconnect fold"
    assert any(event.get("auto") for event in outcome.events)
    assert actor(room) == "p1"

    # Pruned at the next-hand boundary.
    act(room, "p1", "fold")
    fire(room, TimerKind.SHOWDOWN)
    fire(room, TimerKind.NEXT_HAND)
    assert "p0" not in room.players
    assert room.host_id == "p1"
    assert room.state == RoomState.HAND


def test_disconnect_in_lobby_removes_player():
    room = create_room()
    room.disconnect("p1")
    assert "p1" not in room.players
    room.disconnect("p0")
    assert room.host_id == "p2"


def test_disconnected_player_is_skipped_when_action_reaches_them():
    room = create_room()
    room.begin_hand()
    room.disconnect("p2")
    assert not room.players["p2"].folded
    act(room, "p0", "call")
    act(room, "p1", "call")
    assert room.players["p2"].folded
    assert room.stage == Stage.FLOP


def test_bot_turn_produces_timer_with_action_sequence():
    room = create_room(players=1, bot_delay_ms=100, bot_jitter_ms=0)
    room.seat_player("bot:1", "Bot-1", is_bot=True)
    room.begin_hand()
    outcome = act(room, "p0", "call")
    assert outcome.timers == [TimerRequest(TimerKind.BOT, 100, room.action_seq, seat=1)]
    bot = room.bot_to_act(outcome.timers[0])
    assert bot is room.players["bot:1"]

    stale = TimerRequest(TimerKind.BOT, 100, room.action_seq - 1, seat=1)
    assert room.bot_to_act(stale) is None


def test_player_seated_mid_hand_waits_for_next_deal():
    room = create_room()
    room.begin_hand()
    late = room.seat_player("p3", "Late")
    assert late.folded and not late.hole
    act(room, "p0", "fold")
    act(room, "p1", "fold")
    fire(room, TimerKind.SHOWDOWN)
    fire(room, TimerKind.NEXT_HAND)
    assert len(late.hole) == 2


def test_next_hand_returns_to_lobby_when_one_stack_left(monkeypatch):
    stack_deck(monkeypatch, ["2c", "Ah", "7d", "Ad", "Kc", "9s", "5h", "3d", "Jc"])
    room = create_room(players=2, stacks=[100, 100])
    room.begin_hand()
    act(room, "p0", "all-in")
    act(room, "p1", "call")
    fire(room, TimerKind.SHOWDOWN)
    assert room.players["p0"].stack == 200
    outcome = fire(room, TimerKind.NEXT_HAND)
    assert room.state == RoomState.LOBBY
    assert outcome.events[-1] == {"ev": "LOBBY"}


def test_log_is_bounded():
    room = Room("LOGS01", TableConfig(log_limit=5), host_id="p0")
    for idx in range(10):
        room.add_log(f"line {idx}")
    assert len(room.log) == 5
    assert room.log[-1].endswith("line 9")
    assert room.log[-1].startswith("[")
