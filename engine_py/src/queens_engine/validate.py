"""
Validation helpers for discards and queen ownership.
"""

from typing import Iterable, List, Optional, Sequence

from .constants import CardType, PREDATOR_PAIR
from .errors import CARD_NOT_IN_HAND, INVALID_DISCARD
from .models import Card, Player


class ValidationResult:
    """Result of discard validation."""

    def __init__(
        self,
        valid: bool,
        error_code: Optional[str] = None,
        error_message: Optional[str] = None,
        cards: Optional[List[Card]] = None
    ):
        self.valid = valid
        self.error_code = error_code
        self.error_message = error_message
        self.cards = cards or []

    @classmethod
    def success(cls, cards: List[Card]) -> 'ValidationResult':
        return cls(valid=True, cards=cards)

    @classmethod
    def error(cls, error_code: str, error_message: str) -> 'ValidationResult':
        return cls(valid=False, error_code=error_code, error_message=error_message)


def can_subset_sum(numbers: Iterable[int], target: int) -> bool:
    """
    Check whether some subset of ``numbers`` adds up to ``target``.

    Tracks the set of reachable partial sums instead of enumerating
    partitions, discarding anything that overshoots the target.
    """
    reachable = {0}
    for num in numbers:
        new_sums = set()
        for partial in reachable:
            current = partial + num
            if current == target:
                return True
            if current < target:
                new_sums.add(current)
        reachable |= new_sums
    return target in reachable


def is_valid_discard_values(values: Sequence[int]) -> bool:
    """
    A discard is valid if it is a single card, or if the values can be split
    into two groups with equal sums. That covers pairs (5 = 5), simple
    equations (2 + 3 = 5) and longer ones (3 + 6 = 4 + 5).
    """
    if not values:
        return False
    if len(values) == 1:
        return True
    total = sum(values)
    if total % 2:
        return False
    return can_subset_sum(sorted(values), total // 2)


def validate_discard(player: Player, card_ids: List[str]) -> ValidationResult:
    """
    Validate a discard selection for a player.

    Args:
        player: Player discarding
        card_ids: IDs of the cards to discard

    Returns:
        ValidationResult carrying the resolved cards on success
    """
    if not card_ids:
        return ValidationResult.error(INVALID_DISCARD, "No cards selected")
    if len(set(card_ids)) != len(card_ids):
        return ValidationResult.error(INVALID_DISCARD, "Duplicate cards selected")

    cards = [player.find_card(card_id) for card_id in card_ids]
    if any(card is None for card in cards):
        return ValidationResult.error(CARD_NOT_IN_HAND, "Cards not in hand")
    if any(card.type != CardType.NUMBER for card in cards):
        return ValidationResult.error(INVALID_DISCARD, "Only number cards can be discarded")

    if not is_valid_discard_values([card.value or 0 for card in cards]):
        return ValidationResult.error(INVALID_DISCARD, "Invalid discard combination")

    return ValidationResult.success(cards)


def is_predator_conflict(owned_names: Iterable[str], queen_name: str) -> bool:
    """True if taking ``queen_name`` would give a player both predator queens."""
    first, second = PREDATOR_PAIR
    owned = set(owned_names)
    if queen_name == first:
        return second in owned
    if queen_name == second:
        return first in owned
    return False
