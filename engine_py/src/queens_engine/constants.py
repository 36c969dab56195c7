"""Game constants and card catalog"""

from enum import Enum
from typing import List, Tuple


class CardType(str, Enum):
    KING = 'KING'
    KNIGHT = 'KNIGHT'
    DRAGON = 'DRAGON'
    POTION = 'POTION'
    WAND = 'WAND'
    JESTER = 'JESTER'
    NUMBER = 'NUMBER'


class GameStatus(str, Enum):
    LOBBY = 'LOBBY'
    PLAYING = 'PLAYING'
    FINISHED = 'FINISHED'


KING_NAMES = ['bubble-gum', 'chess', 'cookie', 'fire', 'hat', 'pasta', 'puzzle', 'tie-dye']
KNIGHT_NAMES = ['black', 'blue', 'green', 'red']
DRAGON_COUNT = 3
POTION_COUNT = 4
WAND_COUNT = 3
JESTER_COUNT = 5
NUMBER_VALUES = range(1, 11)
NUMBER_COPIES = 4

DECK_SIZE = (len(KING_NAMES) + len(KNIGHT_NAMES) + DRAGON_COUNT + POTION_COUNT
             + WAND_COUNT + JESTER_COUNT + len(NUMBER_VALUES) * NUMBER_COPIES)

QUEENS_DATA: List[Tuple[str, int]] = [
    ('Book Queen', 15),
    ('Butterfly Queen', 10),
    ('Cake Queen', 5),
    ('Cat Queen', 15),
    ('Dog Queen', 15),
    ('Heart Queen', 20),
    ('Ice Cream Queen', 5),
    ('Ladybug Queen', 10),
    ('Sunflower Queen', 10),
    ('Moon Queen', 10),
    ('Pancake Queen', 15),
    ('Peacock Queen', 10),
    ('Rainbow Queen', 5),
    ('Rose Queen', 5),
    ('Starfish Queen', 5),
    ('Strawberry Queen', 10),
]

# Nobody may hold both of these at once
PREDATOR_PAIR = ('Cat Queen', 'Dog Queen')
PROTECTED_QUEEN = 'Strawberry Queen'
BONUS_QUEEN = 'Rose Queen'
BONUS_KING = 'tie-dye'

HAND_SIZE = 5
MIN_PLAYERS = 2
MAX_PLAYERS = 5

# Win thresholds: (points, queens)
LARGE_TABLE_PLAYERS = 4
LARGE_TABLE_TARGET = (40, 4)
SMALL_TABLE_TARGET = (50, 5)

DEFAULT_TURN_TIME_LIMIT = 60
MIN_TURN_TIME_LIMIT = 5
MAX_TURN_TIME_LIMIT = 60

STALE_ROOM_SECONDS = 2 * 60 * 60
SWEEP_INTERVAL_SECONDS = 60

DEBUG_NUMBER_VALUE = 5


def win_target(player_count: int) -> Tuple[int, int]:
    """Points and queen count needed to win at a table of this size."""
    if player_count >= LARGE_TABLE_PLAYERS:
        return LARGE_TABLE_TARGET
    return SMALL_TABLE_TARGET


def clamp_turn_time_limit(seconds: int) -> int:
    return max(MIN_TURN_TIME_LIMIT, min(MAX_TURN_TIME_LIMIT, seconds))
