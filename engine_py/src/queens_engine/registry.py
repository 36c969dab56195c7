"""Room registry: creates, finds and garbage-collects rooms"""

import asyncio
import logging
import random
import threading
import time
import uuid
from typing import Callable, Dict, List, Optional, Tuple

from .constants import GameStatus, STALE_ROOM_SECONDS
from .engine import Game, StateCallback
from .errors import raise_error, ROOM_NOT_FOUND
from .models import RoomInfo
from .rules import RoomOptions, ServerSettings

logger = logging.getLogger(__name__)


class RoomRegistry:
    """
    Owns every live room plus the connection id -> (room id, player id) index
    used to route disconnects. Construct one per process and start
    ``run_sweeper`` next to it.
    """

    def __init__(
        self,
        on_state_change: Optional[StateCallback] = None,
        timer_factory: Callable = threading.Timer,
        clock: Callable[[], float] = time.time,
        stale_after: float = STALE_ROOM_SECONDS,
        default_turn_time_limit: Optional[int] = None,
        rng: Optional[random.Random] = None,
    ):
        self.rooms: Dict[str, Game] = {}
        self.connections: Dict[str, Tuple[str, str]] = {}
        self.stale_after = stale_after
        self._on_state_change = on_state_change
        self._timer_factory = timer_factory
        self._clock = clock
        self._default_turn_time_limit = default_turn_time_limit
        self._rng = rng
        self._lock = threading.Lock()

    @classmethod
    def from_settings(cls, settings: ServerSettings, **kwargs) -> 'RoomRegistry':
        return cls(
            stale_after=settings.room_stale_seconds,
            default_turn_time_limit=settings.default_turn_time_limit,
            **kwargs
        )

    def create_room(self, options: Optional[RoomOptions] = None) -> Game:
        room_id = str(uuid.uuid4())[:8]
        kwargs = {}
        if self._default_turn_time_limit:
            kwargs['default_turn_time_limit'] = self._default_turn_time_limit
        if self._rng is not None:
            kwargs['rng'] = random.Random(self._rng.random())

        game = Game(
            room_id,
            on_state_change=self._on_state_change,
            options=options,
            timer_factory=self._timer_factory,
            clock=self._clock,
            **kwargs
        )
        with self._lock:
            self.rooms[room_id] = game
        logger.info(f"Room {room_id} created")
        return game

    def get_room(self, room_id: str) -> Optional[Game]:
        with self._lock:
            return self.rooms.get(room_id)

    def require_room(self, room_id: str) -> Game:
        game = self.get_room(room_id)
        if not game:
            raise_error(ROOM_NOT_FOUND, "Room not found")
        return game

    def list_joinable(self) -> List[RoomInfo]:
        """Rooms still in the lobby, newest first."""
        with self._lock:
            games = list(self.rooms.values())
        rooms = [
            RoomInfo(room_id=g.id, player_count=len(g.players), created_at=g.created_at)
            for g in games if g.status == GameStatus.LOBBY
        ]
        return sorted(rooms, key=lambda r: r.created_at, reverse=True)

    def join_room(self, room_id: str, player_id: str, name: str, connection_id: str) -> Game:
        """Join, or rebind a returning player's new connection."""
        game = self.require_room(room_id)

        if game.get_player(player_id):
            self._unbind_player(room_id, player_id)
            game.mark_reconnected(player_id, connection_id)
        else:
            game.add_player(player_id, name, connection_id)

        with self._lock:
            self.connections[connection_id] = (room_id, player_id)
        return game

    def leave_room(self, room_id: str, connection_id: str) -> Optional[Game]:
        """
        Explicitly remove the player bound to ``connection_id``.

        Returns:
            The room, or None if it does not exist or was deleted because
            it became empty
        """
        game = self.get_room(room_id)
        if not game:
            return None

        with self._lock:
            binding = self.connections.pop(connection_id, None)
        player_id = binding[1] if binding and binding[0] == room_id else None
        if player_id is None:
            player = next((p for p in game.players if p.connection_id == connection_id), None)
            player_id = player.id if player else None
        if player_id:
            game.remove_player(player_id)

        if not game.players:
            self._delete_room(room_id)
            return None
        return game

    def handle_disconnect(self, connection_id: str) -> Optional[Tuple[str, Game]]:
        """Mark the player on this connection as gone without removing them."""
        with self._lock:
            binding = self.connections.pop(connection_id, None)
            game = self.rooms.get(binding[0]) if binding else None
        if not game:
            return None
        game.mark_disconnected(connection_id)
        return game.id, game

    def sweep(self, now: Optional[float] = None) -> List[str]:
        """
        Delete rooms older than the staleness window in which nobody is
        connected (rooms with no players count as abandoned too).

        Returns:
            IDs of the deleted rooms
        """
        now = self._clock() if now is None else now
        with self._lock:
            candidates = list(self.rooms.values())

        removed = []
        for game in candidates:
            if now - game.created_at > self.stale_after and not any(p.connected for p in game.players):
                self._delete_room(game.id)
                removed.append(game.id)

        if removed:
            logger.info(f"Swept {len(removed)} stale rooms: {removed}")
        return removed

    async def run_sweeper(self, interval: float):
        """Sweep forever on a fixed interval; cancel the task to stop."""
        try:
            while True:
                await asyncio.sleep(interval)
                self.sweep()
        except asyncio.CancelledError:
            logger.info("Room sweeper stopped")
            raise

    def close(self):
        with self._lock:
            room_ids = list(self.rooms)
        for room_id in room_ids:
            self._delete_room(room_id)

    def _delete_room(self, room_id: str):
        with self._lock:
            game = self.rooms.pop(room_id, None)
            stale = [cid for cid, (rid, _) in self.connections.items() if rid == room_id]
            for cid in stale:
                del self.connections[cid]
        if game:
            game.close()
            logger.info(f"Room {room_id} deleted")

    def _unbind_player(self, room_id: str, player_id: str):
        with self._lock:
            stale = [cid for cid, binding in self.connections.items() if binding == (room_id, player_id)]
            for cid in stale:
                del self.connections[cid]
