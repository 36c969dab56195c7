"""
WebSocket event models and validation.
"""

import time
from enum import Enum
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError
from pydantic.alias_generators import to_camel

from ..actions import DebugCommand
from ..rules import RoomOptions


class EventType(str, Enum):
    """Inbound event types."""
    CREATE_ROOM = "create_room"
    JOIN_ROOM = "join_room"
    GET_AVAILABLE_ROOMS = "get_available_rooms"
    START_GAME = "start_game"
    PLAY_ACTION = "play_action"
    RESTART_GAME = "restart_game"
    LEAVE_ROOM = "leave_room"
    UPDATE_GAME_SETTINGS = "update_game_settings"
    DEBUG_COMMAND = "debug_command"
    CLIENT_LOG = "client_log"


class OutboundEventType(str, Enum):
    """Outbound event types."""
    ROOM_CREATED = "room_created"
    GAME_STATE_UPDATE = "game_state_update"
    AVAILABLE_ROOMS_UPDATE = "available_rooms_update"
    ERROR = "error"


class BaseEvent(BaseModel):
    """Base event model."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    type: EventType


class CreateRoomEvent(BaseEvent):
    type: EventType = EventType.CREATE_ROOM
    player_name: str = Field(..., min_length=1, max_length=30)
    user_id: str = Field(..., min_length=1, max_length=64)
    settings: Optional[RoomOptions] = None


class JoinRoomEvent(BaseEvent):
    type: EventType = EventType.JOIN_ROOM
    room_id: str = Field(..., min_length=1, max_length=50)
    player_name: str = Field(..., min_length=1, max_length=30)
    user_id: str = Field(..., min_length=1, max_length=64)


class GetAvailableRoomsEvent(BaseEvent):
    type: EventType = EventType.GET_AVAILABLE_ROOMS


class StartGameEvent(BaseEvent):
    type: EventType = EventType.START_GAME
    room_id: str


class PlayActionEvent(BaseEvent):
    """Gameplay action; the acting player is taken from the connection."""
    type: EventType = EventType.PLAY_ACTION
    room_id: str
    action: Dict[str, Any]


class RestartGameEvent(BaseEvent):
    type: EventType = EventType.RESTART_GAME
    room_id: str


class LeaveRoomEvent(BaseEvent):
    type: EventType = EventType.LEAVE_ROOM
    room_id: str


class UpdateSettingsEvent(BaseEvent):
    type: EventType = EventType.UPDATE_GAME_SETTINGS
    room_id: str
    player_id: Optional[str] = None  # accepted but not trusted; the socket's seat decides
    settings: RoomOptions


class DebugCommandEvent(BaseEvent):
    type: EventType = EventType.DEBUG_COMMAND
    room_id: str
    command: DebugCommand


class ClientLogEvent(BaseEvent):
    """Log line forwarded from a client; extra fields are kept as metadata."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")

    type: EventType = EventType.CLIENT_LOG
    level: str = "info"
    message: str = ""


InboundEvent = Union[
    CreateRoomEvent,
    JoinRoomEvent,
    GetAvailableRoomsEvent,
    StartGameEvent,
    PlayActionEvent,
    RestartGameEvent,
    LeaveRoomEvent,
    UpdateSettingsEvent,
    DebugCommandEvent,
    ClientLogEvent
]


# Outbound event models
class RoomCreatedEvent(BaseModel):
    type: OutboundEventType = OutboundEventType.ROOM_CREATED
    room_id: str
    timestamp: float


class GameStateUpdateEvent(BaseModel):
    type: OutboundEventType = OutboundEventType.GAME_STATE_UPDATE
    state: Dict[str, Any]
    timestamp: float


class AvailableRoomsUpdateEvent(BaseModel):
    type: OutboundEventType = OutboundEventType.AVAILABLE_ROOMS_UPDATE
    rooms: List[Dict[str, Any]]
    timestamp: float


class ErrorEvent(BaseModel):
    type: OutboundEventType = OutboundEventType.ERROR
    code: str
    message: str
    timestamp: float


EVENT_MAP = {
    EventType.CREATE_ROOM: CreateRoomEvent,
    EventType.JOIN_ROOM: JoinRoomEvent,
    EventType.GET_AVAILABLE_ROOMS: GetAvailableRoomsEvent,
    EventType.START_GAME: StartGameEvent,
    EventType.PLAY_ACTION: PlayActionEvent,
    EventType.RESTART_GAME: RestartGameEvent,
    EventType.LEAVE_ROOM: LeaveRoomEvent,
    EventType.UPDATE_GAME_SETTINGS: UpdateSettingsEvent,
    EventType.DEBUG_COMMAND: DebugCommandEvent,
    EventType.CLIENT_LOG: ClientLogEvent,
}


def parse_inbound_event(data: Dict[str, Any]) -> InboundEvent:
    """
    Parse raw event data into appropriate event model.

    Args:
        data: Raw event data from WebSocket

    Returns:
        Parsed event model

    Raises:
        ValueError: If event type is invalid or data is malformed
    """
    if not isinstance(data, dict):
        raise ValueError("Event must be a JSON object")

    event_type = data.get("type")
    if not event_type:
        raise ValueError("Missing event type")

    try:
        event_type = EventType(event_type)
    except ValueError:
        raise ValueError(f"Invalid event type: {event_type}")

    try:
        return EVENT_MAP[event_type].model_validate(data)
    except ValidationError as e:
        raise ValueError(f"Invalid event data: {e.errors()[0]['msg']}")


def create_error_event(code: str, message: str) -> ErrorEvent:
    return ErrorEvent(code=code, message=message, timestamp=time.time())


def create_room_created_event(room_id: str) -> RoomCreatedEvent:
    return RoomCreatedEvent(room_id=room_id, timestamp=time.time())


def create_state_event(state: Dict[str, Any]) -> GameStateUpdateEvent:
    return GameStateUpdateEvent(state=state, timestamp=time.time())


def create_rooms_event(rooms: List[Dict[str, Any]]) -> AvailableRoomsUpdateEvent:
    return AvailableRoomsUpdateEvent(rooms=rooms, timestamp=time.time())
