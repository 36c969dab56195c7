"""Game models and data structures"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from .constants import CardType


@dataclass(frozen=True)
class Card:
    id: str
    type: CardType
    name: Optional[str] = None
    value: Optional[int] = None  # number cards only


@dataclass
class Queen:
    id: str
    name: str
    points: int
    is_awake: bool = False
    owner_id: Optional[str] = None


@dataclass
class Player:
    id: str
    name: str
    connection_id: str
    hand: List[Card] = field(default_factory=list)
    queen_ids: List[str] = field(default_factory=list)  # maintained by Game only
    connected: bool = True

    def find_card(self, card_id: Optional[str]) -> Optional[Card]:
        return next((c for c in self.hand if c.id == card_id), None)

    def find_card_of_type(self, card_type: CardType) -> Optional[Card]:
        return next((c for c in self.hand if c.type == card_type), None)

    def remove_card(self, card_id: str) -> Optional[Card]:
        for i, card in enumerate(self.hand):
            if card.id == card_id:
                return self.hand.pop(i)
        return None


@dataclass
class PendingSelection:
    player_id: str
    picks_remaining: int = 1


@dataclass
class LastAction:
    type: str
    player_id: str
    player_name: str
    payload: Dict[str, Any] = field(default_factory=dict)
    outcome: Optional[str] = None


@dataclass
class RoomInfo:
    room_id: str
    player_count: int
    created_at: float
