"""WebSocket server for real-time multiplayer communication"""

import asyncio
import logging
import uuid
from typing import Any, Dict, Optional

import orjson
from fastapi import WebSocket, WebSocketDisconnect
from pydantic import BaseModel

from .errors import GameError, INTERNAL_ERROR, INVALID_EVENT, NOT_HOST, PLAYER_NOT_FOUND
from .registry import RoomRegistry
from .rules import ServerSettings
from .serialization import get_public_room_info, sanitize_state
from .ws.events import (
    ClientLogEvent, CreateRoomEvent, DebugCommandEvent, GetAvailableRoomsEvent,
    JoinRoomEvent, LeaveRoomEvent, PlayActionEvent, RestartGameEvent, StartGameEvent,
    UpdateSettingsEvent, create_error_event, create_room_created_event,
    create_rooms_event, create_state_event, parse_inbound_event
)

logger = logging.getLogger(__name__)


class ConnectionManager:
    """Open sockets keyed by connection id."""

    def __init__(self):
        self.active_connections: Dict[str, WebSocket] = {}

    async def connect(self, websocket: WebSocket) -> str:
        await websocket.accept()
        connection_id = str(uuid.uuid4())
        self.active_connections[connection_id] = websocket
        logger.info(f"Connection {connection_id} opened")
        return connection_id

    def disconnect(self, connection_id: str):
        if self.active_connections.pop(connection_id, None) is not None:
            logger.info(f"Connection {connection_id} closed")

    async def send_personal_message(self, message: BaseModel, connection_id: str):
        websocket = self.active_connections.get(connection_id)
        if websocket is None:
            return
        try:
            await websocket.send_text(orjson.dumps(message.model_dump(mode="json")).decode())
        except Exception as e:
            logger.error(f"Error sending message to {connection_id}: {e}")
            self.disconnect(connection_id)

    async def broadcast(self, message: BaseModel):
        for connection_id in list(self.active_connections):
            await self.send_personal_message(message, connection_id)


class GameWebSocketManager:
    """
    Glue between sockets and the room registry. Engine calls are
    synchronous and cheap, so handlers call them directly; only turn
    timeouts arrive from another thread and get marshalled onto the loop.
    """

    def __init__(self, settings: Optional[ServerSettings] = None, **registry_kwargs):
        self.settings = settings or ServerSettings()
        self.registry = RoomRegistry.from_settings(
            self.settings, on_state_change=self._on_timer_state_change, **registry_kwargs
        )
        self.connection_manager = ConnectionManager()
        self.loop: Optional[asyncio.AbstractEventLoop] = None
        self._sweeper: Optional[asyncio.Task] = None

    async def start(self):
        self.loop = asyncio.get_running_loop()
        self._sweeper = asyncio.create_task(self.registry.run_sweeper(self.settings.room_sweep_interval))
        logger.info("Game manager started")

    async def stop(self):
        if self._sweeper:
            self._sweeper.cancel()
            try:
                await self._sweeper
            except asyncio.CancelledError:
                pass
            self._sweeper = None
        self.registry.close()
        logger.info("Game manager stopped")

    async def handle_websocket(self, websocket: WebSocket):
        connection_id = await self.connection_manager.connect(websocket)

        try:
            while True:
                data = await websocket.receive_text()
                await self.handle_message(data, connection_id)
        except WebSocketDisconnect:
            logger.info(f"WebSocket disconnected for connection {connection_id}")
        finally:
            self.connection_manager.disconnect(connection_id)
            result = self.registry.handle_disconnect(connection_id)
            if result:
                room_id, _ = result
                await self.broadcast_game_state(room_id)
                await self.broadcast_room_list()

    async def handle_message(self, data: str, connection_id: str):
        try:
            event = parse_inbound_event(orjson.loads(data))
        except ValueError as e:
            await self.send_error(connection_id, INVALID_EVENT, str(e))
            return

        try:
            await self.dispatch(event, connection_id)
        except GameError as e:
            logger.warning(f"Rejected {event.type.value} from {connection_id}: {e.message}")
            await self.send_error(connection_id, e.code, e.message)
        except ValueError as e:
            await self.send_error(connection_id, INVALID_EVENT, str(e))
        except Exception as e:
            logger.exception(f"Error handling message {event.type.value}: {e}")
            await self.send_error(connection_id, INTERNAL_ERROR, "Internal server error")

    async def dispatch(self, event, connection_id: str):
        if isinstance(event, CreateRoomEvent):
            await self.create_room(event, connection_id)
        elif isinstance(event, JoinRoomEvent):
            await self.join_room(event, connection_id)
        elif isinstance(event, GetAvailableRoomsEvent):
            await self.connection_manager.send_personal_message(self._rooms_event(), connection_id)
        elif isinstance(event, StartGameEvent):
            game = self.registry.require_room(event.room_id)
            if not self._player_for(connection_id, event.room_id):
                raise GameError(PLAYER_NOT_FOUND, "Player not identified")
            game.start()
            logger.info(f"Game started in room {event.room_id}")
            await self.broadcast_game_state(event.room_id)
            await self.broadcast_room_list()
        elif isinstance(event, PlayActionEvent):
            await self.play_action(event, connection_id)
        elif isinstance(event, RestartGameEvent):
            game = self.registry.require_room(event.room_id)
            if self._player_for(connection_id, event.room_id) != game.host_id:
                raise GameError(NOT_HOST, "Only host can restart the game")
            game.reset()
            await self.broadcast_game_state(event.room_id)
            await self.broadcast_room_list()
        elif isinstance(event, LeaveRoomEvent):
            game = self.registry.leave_room(event.room_id, connection_id)
            if game:
                await self.broadcast_game_state(event.room_id)
            await self.broadcast_room_list()
        elif isinstance(event, UpdateSettingsEvent):
            game = self.registry.require_room(event.room_id)
            # The requester is whoever is seated on this socket, never a claimed id
            requester = self._player_for(connection_id, event.room_id)
            if not requester:
                raise GameError(NOT_HOST, "Only host can update settings")
            game.update_settings(event.settings, requester)
            await self.broadcast_game_state(event.room_id)
        elif isinstance(event, DebugCommandEvent):
            self.registry.require_room(event.room_id).handle_debug_command(event.command)
            await self.broadcast_game_state(event.room_id)
        elif isinstance(event, ClientLogEvent):
            level = logging.getLevelName(event.level.upper())
            if not isinstance(level, int):
                level = logging.INFO
            logger.log(level, f"[CLIENT] {event.message}",
                       extra={"client_meta": event.model_extra, "connection_id": connection_id})

    async def create_room(self, event: CreateRoomEvent, connection_id: str):
        game = self.registry.create_room(event.settings)
        try:
            self.registry.join_room(game.id, event.user_id, event.player_name, connection_id)
        except GameError:
            self.registry.leave_room(game.id, connection_id)
            raise
        await self.connection_manager.send_personal_message(
            create_room_created_event(game.id), connection_id
        )
        await self.broadcast_game_state(game.id)
        await self.broadcast_room_list()

    async def join_room(self, event: JoinRoomEvent, connection_id: str):
        self.registry.join_room(event.room_id, event.user_id, event.player_name, connection_id)
        await self.broadcast_game_state(event.room_id)
        await self.broadcast_room_list()

    async def play_action(self, event: PlayActionEvent, connection_id: str):
        game = self.registry.require_room(event.room_id)
        player_id = self._player_for(connection_id, event.room_id)
        if not player_id:
            raise GameError(PLAYER_NOT_FOUND, "Player not identified")

        action: Dict[str, Any] = dict(event.action)
        action.pop("player_id", None)
        action["playerId"] = player_id

        logger.info(f"Processing action {action.get('type')} for player {player_id} in room {event.room_id}")
        game.handle_action(action)
        await self.broadcast_game_state(event.room_id)

    async def send_error(self, connection_id: str, code: str, message: str):
        await self.connection_manager.send_personal_message(create_error_event(code, message), connection_id)

    async def broadcast_game_state(self, room_id: str):
        game = self.registry.get_room(room_id)
        if not game:
            return
        state = game.get_state()
        bindings = [
            (cid, pid) for cid, (rid, pid) in list(self.registry.connections.items())
            if rid == room_id
        ]
        for connection_id, player_id in bindings:
            await self.connection_manager.send_personal_message(
                create_state_event(sanitize_state(state, player_id)), connection_id
            )

    async def broadcast_room_list(self):
        await self.connection_manager.broadcast(self._rooms_event())

    def _rooms_event(self):
        return create_rooms_event([get_public_room_info(r) for r in self.registry.list_joinable()])

    def _player_for(self, connection_id: str, room_id: str) -> Optional[str]:
        binding = self.registry.connections.get(connection_id)
        if binding and binding[0] == room_id:
            return binding[1]
        return None

    def _on_timer_state_change(self, state: Dict[str, Any]):
        # Runs on the timer thread
        if self.loop is None or self.loop.is_closed():
            return
        asyncio.run_coroutine_threadsafe(self.broadcast_game_state(state["room_id"]), self.loop)
