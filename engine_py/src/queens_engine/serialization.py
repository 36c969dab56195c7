"""
State serialization and sanitization utilities.
"""

from dataclasses import asdict
from typing import Any, Dict, Optional

from .models import Card, Queen, RoomInfo


def serialize_card(card: Card) -> Dict[str, Any]:
    return {
        "id": card.id,
        "type": card.type.value,
        "name": card.name,
        "value": card.value
    }


def serialize_queen(queen: Queen) -> Dict[str, Any]:
    return {
        "id": queen.id,
        "name": queen.name,
        "points": queen.points,
        "is_awake": queen.is_awake,
        "owner_id": queen.owner_id
    }


def serialize_game(game) -> Dict[str, Any]:
    """
    Build the full state snapshot of a room.

    Args:
        game: Game to serialize; the caller holds its lock

    Returns:
        JSON-ready dictionary; the top of the discard pile is its last element
    """
    current = game.current_player
    pending = game.pending_selection
    deadline = game.turn_deadline

    return {
        "room_id": game.id,
        "status": game.status.value,
        "host_id": game.host_id,
        "players": [
            {
                "id": player.id,
                "name": player.name,
                "hand": [serialize_card(c) for c in player.hand],
                "awoken_queens": [serialize_queen(q) for q in game.queens_of(player)],
                "score": game.score(player),
                "is_connected": player.connected
            }
            for player in game.players
        ],
        "current_turn_player_id": current.id if current else None,
        "queens": [serialize_queen(q) for q in game.queens],
        "draw_pile_count": game.deck.count,
        "discard_pile": [serialize_card(c) for c in game.discard_pile],
        "last_action": asdict(game.last_action) if game.last_action else None,
        "winner_id": game.winner_id,
        "pending_queen_selection": {
            "player_id": pending.player_id,
            "picks_remaining": pending.picks_remaining
        } if pending else None,
        "turn_deadline": int(deadline * 1000) if deadline is not None else None,
        "turn_time_limit": game.turn_duration
    }


def sanitize_state(state: Dict[str, Any], viewer_id: Optional[str] = None) -> Dict[str, Any]:
    """
    Hide other players' hands from a snapshot before sending it to a viewer.

    Args:
        state: Full snapshot from ``serialize_game``
        viewer_id: ID of the player viewing the state (to show their cards)

    Returns:
        Copy of the snapshot where every other hand is replaced by a count
    """
    sanitized = dict(state)
    players = []
    for player in state["players"]:
        player = dict(player)
        player["hand_count"] = len(player["hand"])
        if player["id"] != viewer_id:
            player["hand"] = []
        players.append(player)
    sanitized["players"] = players
    return sanitized


def get_public_room_info(info: RoomInfo) -> Dict[str, Any]:
    """Get public information about a room for listings."""
    return {
        "room_id": info.room_id,
        "player_count": info.player_count,
        "created_at": int(info.created_at * 1000)
    }
