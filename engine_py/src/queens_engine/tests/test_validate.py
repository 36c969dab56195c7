"""
Tests for discard validation and the predator rule.
"""

import pytest

from queens_engine.constants import CardType
from queens_engine.deck import new_card
from queens_engine.errors import CARD_NOT_IN_HAND, INVALID_DISCARD
from queens_engine.models import Player
from queens_engine.validate import (
    can_subset_sum, is_predator_conflict, is_valid_discard_values, validate_discard
)


def make_player(*cards):
    return Player(id="p1", name="Alice", connection_id="c1", hand=list(cards))


def number(value):
    return new_card(CardType.NUMBER, str(value), value)


@pytest.mark.parametrize("values", [[7], [4, 4], [2, 3, 5], [1, 2, 3], [3, 6, 4, 5], [1, 1, 1, 1]])
def test_valid_discard_values(values):
    assert is_valid_discard_values(values)


@pytest.mark.parametrize("values", [[], [2, 3, 6], [4, 5], [1, 2, 4], [10, 1, 2]])
def test_invalid_discard_values(values):
    assert not is_valid_discard_values(values)


def test_subset_sum():
    assert can_subset_sum([1, 4, 6], 5)
    assert not can_subset_sum([3, 8], 5)
    assert can_subset_sum([], 0)


def test_validate_discard_resolves_cards():
    cards = [number(2), number(3), number(5)]
    player = make_player(*cards, new_card(CardType.KING, "hat"))

    result = validate_discard(player, [c.id for c in cards])
    assert result.valid
    assert result.cards == cards


def test_validate_discard_rejects_empty_selection():
    result = validate_discard(make_player(number(1)), [])
    assert not result.valid
    assert result.error_code == INVALID_DISCARD
    assert result.error_message == "No cards selected"


def test_validate_discard_rejects_duplicates():
    card = number(4)
    result = validate_discard(make_player(card), [card.id, card.id])
    assert not result.valid
    assert result.error_message == "Duplicate cards selected"


def test_validate_discard_rejects_cards_not_held():
    result = validate_discard(make_player(number(4)), ["missing"])
    assert result.error_code == CARD_NOT_IN_HAND


def test_validate_discard_rejects_action_cards():
    king = new_card(CardType.KING, "hat")
    result = validate_discard(make_player(king), [king.id])
    assert result.error_code == INVALID_DISCARD
    assert result.error_message == "Only number cards can be discarded"


def test_validate_discard_rejects_bad_equation():
    cards = [number(2), number(3), number(6)]
    result = validate_discard(make_player(*cards), [c.id for c in cards])
    assert result.error_message == "Invalid discard combination"


def test_predator_conflict():
    assert is_predator_conflict(["Cat Queen"], "Dog Queen")
    assert is_predator_conflict(["Dog Queen", "Rose Queen"], "Cat Queen")
    assert not is_predator_conflict(["Cat Queen"], "Rose Queen")
    assert not is_predator_conflict([], "Cat Queen")
