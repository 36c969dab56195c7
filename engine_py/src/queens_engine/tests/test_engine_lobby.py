"""
Tests for joining, starting, leaving and reconnecting.
"""

import pytest

from queens_engine.constants import GameStatus, HAND_SIZE
from queens_engine.errors import (
    GameError, GAME_ALREADY_STARTED, NOT_ENOUGH_PLAYERS, NOT_HOST, ROOM_FULL
)
from queens_engine.rules import RoomOptions

from conftest import give_turn, queen_named, total_cards


def test_first_player_becomes_host(make_game):
    game = make_game(count=2, start=False)
    assert game.host_id == "p1"
    assert game.status == GameStatus.LOBBY
    assert [p.id for p in game.players] == ["p1", "p2"]


def test_room_full_after_five(make_game):
    game = make_game(count=5, start=False)
    with pytest.raises(GameError) as exc:
        game.add_player("p6", "Player 6", "conn-6")
    assert exc.value.code == ROOM_FULL
    assert len(game.players) == 5


def test_cannot_start_alone(make_game):
    game = make_game(count=1, start=False)
    with pytest.raises(GameError) as exc:
        game.start()
    assert exc.value.code == NOT_ENOUGH_PLAYERS
    assert game.status == GameStatus.LOBBY


def test_start_deals_five_each(make_game, timers):
    game = make_game(count=2)

    assert game.status == GameStatus.PLAYING
    assert all(len(p.hand) == HAND_SIZE for p in game.players)
    assert game.deck.count == 57
    assert all(not q.is_awake for q in game.queens)
    assert game.current_player in game.players
    assert len(timers.live) == 1
    assert game.turn_deadline is not None


def test_cannot_join_or_start_twice_once_playing(make_game):
    game = make_game(count=2)
    with pytest.raises(GameError) as exc:
        game.add_player("p3", "Player 3", "conn-3")
    assert exc.value.code == GAME_ALREADY_STARTED
    with pytest.raises(GameError) as exc:
        game.start()
    assert exc.value.code == GAME_ALREADY_STARTED


def test_settings_clamped_and_host_only(make_game):
    game = make_game(count=2, start=False)

    game.update_settings(RoomOptions(turn_time_limit=2), "p1")
    assert game.turn_duration == 5
    game.update_settings(RoomOptions(turnTimeLimit=600), "p1")
    assert game.turn_duration == 60

    with pytest.raises(GameError) as exc:
        game.update_settings(RoomOptions(turn_time_limit=30), "p2")
    assert exc.value.code == NOT_HOST
    assert game.turn_duration == 60


def test_turn_duration_used_for_deadline(make_game, timers, clock):
    game = make_game(count=2, start=False)
    game.update_settings(RoomOptions(turn_time_limit=20))
    game.start()
    assert timers.last.interval == 20
    assert game.turn_deadline == clock.now + 20


def test_disconnect_keeps_seat_and_hand(make_game):
    game = make_game(count=2)
    player = game.get_player("p2")
    hand = list(player.hand)

    game.mark_disconnected("conn-2")
    assert not player.connected
    assert len(game.players) == 2

    game.mark_reconnected("p2", "conn-9")
    assert player.connected
    assert player.connection_id == "conn-9"
    assert player.hand == hand


def test_reconnect_rearms_timer_for_current_player(make_game, timers):
    game = make_game(count=2)
    current = game.current_player
    game.mark_disconnected(current.connection_id)
    game.close()
    assert not game.timer_active

    game.mark_reconnected(current.id, "conn-new")
    assert game.timer_active


def test_turn_skips_disconnected_players(make_game):
    game = make_game(count=3)
    give_turn(game, "p1")
    game.mark_disconnected("conn-2")

    game.handle_debug_command({"type": "SWITCH_TURN"})
    assert game.current_player.id == "p3"


def test_leave_returns_cards_and_queens(make_game):
    game = make_game(count=3)
    leaver = game.get_player("p3")
    queen = game.queens[0]
    game._set_owner(queen, leaver)
    before = total_cards(game)

    game.remove_player("p3")

    assert game.get_player("p3") is None
    assert not queen.is_awake and queen.owner_id is None
    assert total_cards(game) == before


def test_leave_moves_host(make_game):
    game = make_game(count=3, start=False)
    game.remove_player("p1")
    assert game.host_id == "p2"


def test_leave_below_minimum_resets_to_lobby(make_game, timers):
    game = make_game(count=2)
    game.remove_player("p2")

    assert game.status == GameStatus.LOBBY
    assert game.players[0].hand == []
    assert not timers.live


def test_current_player_leaving_passes_turn(make_game):
    game = make_game(count=3)
    give_turn(game, "p2")
    game.remove_player("p2")

    assert game.current_player.id == "p3"
    assert game.timer_active


def test_reset_returns_to_lobby(make_game):
    game = make_game(count=2)
    game.reset()

    assert game.status == GameStatus.LOBBY
    assert game.deck.count == 67
    assert all(p.hand == [] and p.queen_ids == [] for p in game.players)
    assert game.winner_id is None


def test_empty_requester_is_not_host(make_game):
    game = make_game(count=2, start=False)
    with pytest.raises(GameError) as exc:
        game.update_settings(RoomOptions(turn_time_limit=7), "")
    assert exc.value.code == NOT_HOST
    assert game.turn_duration == 60


def test_current_player_leaving_skips_disconnected_seat(make_game):
    game = make_game(count=3)
    give_turn(game, "p1")
    game.mark_disconnected("conn-2")

    game.remove_player("p1")

    assert game.current_player.id == "p3"
    assert game.timer_active


def test_leave_runs_win_check(make_game):
    game = make_game(count=3)
    give_turn(game, "p1")
    p1 = game.get_player("p1")
    for name in ("Heart Queen", "Book Queen", "Pancake Queen"):
        game._set_owner(queen_named(game, name), p1)

    game.remove_player("p3")

    assert game.status == GameStatus.FINISHED
    assert game.winner_id == "p1"
    assert not game.timer_active
