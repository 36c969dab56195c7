"""
Card supply and queen pool construction.
"""

import logging
import random
import uuid
from typing import Iterable, List, Optional

from .constants import (
    CardType, KING_NAMES, KNIGHT_NAMES, DRAGON_COUNT, POTION_COUNT,
    WAND_COUNT, JESTER_COUNT, NUMBER_VALUES, NUMBER_COPIES, QUEENS_DATA
)
from .models import Card, Queen

logger = logging.getLogger(__name__)


def new_card(card_type: CardType, name: Optional[str] = None, value: Optional[int] = None) -> Card:
    return Card(id=str(uuid.uuid4()), type=card_type, name=name, value=value)


def create_cards() -> List[Card]:
    """Build the full, unshuffled 67 card catalog."""
    cards = []

    for king in KING_NAMES:
        cards.append(new_card(CardType.KING, king))
    for knight in KNIGHT_NAMES:
        cards.append(new_card(CardType.KNIGHT, knight))
    for i in range(DRAGON_COUNT):
        cards.append(new_card(CardType.DRAGON, f"Dragon {i + 1}"))
    for i in range(POTION_COUNT):
        cards.append(new_card(CardType.POTION, f"Sleeping Potion {i + 1}"))
    for i in range(WAND_COUNT):
        cards.append(new_card(CardType.WAND, f"Wand {i + 1}"))
    for i in range(JESTER_COUNT):
        cards.append(new_card(CardType.JESTER, f"Jester {i + 1}"))

    for num in NUMBER_VALUES:
        for _ in range(NUMBER_COPIES):
            cards.append(new_card(CardType.NUMBER, str(num), num))

    return cards


def create_queens(rng: Optional[random.Random] = None) -> List[Queen]:
    """
    Create the 16 sleeping queens in a shuffled order.

    Args:
        rng: Optional random source for deterministic shuffling

    Returns:
        Fresh list of queens, all asleep and unowned
    """
    queens = [
        Queen(id=str(uuid.uuid4()), name=name, points=points)
        for name, points in QUEENS_DATA
    ]
    (rng or random).shuffle(queens)
    return queens


class Deck:
    """Draw pile. The top of the pile is the end of ``cards``."""

    def __init__(self, rng: Optional[random.Random] = None, cards: Optional[List[Card]] = None):
        self.rng = rng or random.Random()
        self.cards: List[Card] = create_cards() if cards is None else list(cards)
        self.shuffle()

    def shuffle(self):
        self.rng.shuffle(self.cards)

    def draw(self) -> Optional[Card]:
        if not self.cards:
            return None
        return self.cards.pop()

    @property
    def count(self) -> int:
        return len(self.cards)

    def recycle(self, cards: Iterable[Card]):
        """Put cards (normally the discard pile) back and reshuffle."""
        cards = list(cards)
        self.cards.extend(cards)
        self.shuffle()
        logger.debug(f"Recycled {len(cards)} cards into the draw pile")
