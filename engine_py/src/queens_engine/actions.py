"""
Action and debug command models.
"""

from enum import Enum
from typing import Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError
from pydantic.alias_generators import to_camel

from .constants import CardType, GameStatus
from .errors import GameError, INVALID_ACTION


class ActionType(str, Enum):
    """Gameplay action types."""
    PLAY_CARD = "PLAY_CARD"
    DISCARD = "DISCARD"
    WAKE_QUEEN = "WAKE_QUEEN"


class DebugCommandType(str, Enum):
    """Diagnostic control commands."""
    SET_GAME_STATUS = "SET_GAME_STATUS"
    RESET_GAME = "RESET_GAME"
    GIVE_CARD = "GIVE_CARD"
    SWITCH_TURN = "SWITCH_TURN"
    WAKE_ALL_QUEENS = "WAKE_ALL_QUEENS"
    SLEEP_ALL_QUEENS = "SLEEP_ALL_QUEENS"


class _Payload(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class PlayCardPayload(_Payload):
    card_id: Optional[str] = None
    target_player_id: Optional[str] = None
    target_queen_id: Optional[str] = None


class DiscardPayload(_Payload):
    card_ids: List[str] = Field(default_factory=list)


class WakeQueenPayload(_Payload):
    target_queen_id: Optional[str] = None


class PlayCardAction(_Payload):
    type: Literal[ActionType.PLAY_CARD] = ActionType.PLAY_CARD
    player_id: str
    payload: PlayCardPayload = Field(default_factory=PlayCardPayload)


class DiscardAction(_Payload):
    type: Literal[ActionType.DISCARD] = ActionType.DISCARD
    player_id: str
    payload: DiscardPayload = Field(default_factory=DiscardPayload)


class WakeQueenAction(_Payload):
    type: Literal[ActionType.WAKE_QUEEN] = ActionType.WAKE_QUEEN
    player_id: str
    payload: WakeQueenPayload = Field(default_factory=WakeQueenPayload)


GameAction = Union[PlayCardAction, DiscardAction, WakeQueenAction]

ACTION_MAP = {
    ActionType.PLAY_CARD: PlayCardAction,
    ActionType.DISCARD: DiscardAction,
    ActionType.WAKE_QUEEN: WakeQueenAction,
}


def parse_action(data: Dict[str, Any]) -> Optional[GameAction]:
    """
    Parse a raw action envelope ``{type, playerId, payload}``.

    Returns:
        The typed action, or None for action types the engine does not handle

    Raises:
        GameError: If a known action type carries a malformed payload
    """
    try:
        action_type = ActionType(data.get("type"))
    except ValueError:
        return None

    envelope = dict(data)
    envelope["type"] = action_type
    if envelope.get("payload") is None:
        envelope.pop("payload", None)

    try:
        return ACTION_MAP[action_type].model_validate(envelope)
    except ValidationError as e:
        raise GameError(INVALID_ACTION, f"Invalid action data: {e.errors()[0]['msg']}")


class DebugCommand(_Payload):
    """Diagnostic command; bypasses gameplay rules."""
    type: DebugCommandType
    payload: Dict[str, Any] = Field(default_factory=dict)

    @property
    def status(self) -> Optional[GameStatus]:
        value = self.payload.get("status")
        return GameStatus(value) if value else None

    @property
    def card_type(self) -> Optional[CardType]:
        value = self.payload.get("cardType") or self.payload.get("card_type")
        return CardType(value) if value else None
