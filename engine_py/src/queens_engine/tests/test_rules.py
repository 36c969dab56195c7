"""
Tests for configuration models and action parsing.
"""

import pytest

from queens_engine.actions import (
    ActionType, DebugCommand, DiscardAction, PlayCardAction, parse_action
)
from queens_engine.constants import CardType, GameStatus, win_target
from queens_engine.errors import GameError, INVALID_ACTION
from queens_engine.rules import RoomOptions, ServerSettings


def test_room_options_clamp():
    assert RoomOptions(turnTimeLimit=1).turn_time_limit == 5
    assert RoomOptions(turn_time_limit=45).turn_time_limit == 45
    assert RoomOptions().turn_time_limit is None


def test_server_settings_from_env(monkeypatch):
    monkeypatch.setenv("PORT", "9001")
    monkeypatch.setenv("RELOAD", "TRUE")
    monkeypatch.setenv("LOG_LEVEL", "DEBUG")
    monkeypatch.setenv("ROOM_STALE_SECONDS", "120")
    monkeypatch.setenv("DEFAULT_TURN_TIME_LIMIT", "3")

    settings = ServerSettings.from_env()

    assert settings.port == 9001
    assert settings.reload is True
    assert settings.log_level == "debug"
    assert settings.room_stale_seconds == 120
    assert settings.room_sweep_interval == 60
    assert settings.default_turn_time_limit == 5


def test_win_targets():
    assert win_target(2) == (50, 5)
    assert win_target(3) == (50, 5)
    assert win_target(4) == (40, 4)
    assert win_target(5) == (40, 4)


def test_parse_action_variants():
    action = parse_action({"type": "PLAY_CARD", "playerId": "p1", "payload": {"cardId": "c1"}})
    assert isinstance(action, PlayCardAction)
    assert action.payload.card_id == "c1"

    action = parse_action({"type": "DISCARD", "playerId": "p1", "payload": None})
    assert isinstance(action, DiscardAction)
    assert action.type == ActionType.DISCARD
    assert action.payload.card_ids == []


def test_parse_action_unknown_type_is_none():
    assert parse_action({"type": "FLY", "playerId": "p1"}) is None
    assert parse_action({"playerId": "p1"}) is None


def test_parse_action_malformed_payload():
    with pytest.raises(GameError) as exc:
        parse_action({"type": "DISCARD", "playerId": "p1", "payload": {"cardIds": "abc"}})
    assert exc.value.code == INVALID_ACTION

    with pytest.raises(GameError):
        parse_action({"type": "WAKE_QUEEN"})


def test_debug_command_accessors():
    command = DebugCommand.model_validate({"type": "GIVE_CARD", "payload": {"card_type": "KNIGHT"}})
    assert command.card_type == CardType.KNIGHT
    assert command.status is None

    command = DebugCommand.model_validate({"type": "SET_GAME_STATUS", "payload": {"status": "LOBBY"}})
    assert command.status == GameStatus.LOBBY
