"""
Shared fixtures: a manual timer so turn deadlines fire only when a test
says so, plus helpers to set up started games.
"""

import random

import pytest

from queens_engine.constants import CardType
from queens_engine.engine import Game


class FakeTimer:
    """Stand-in for ``threading.Timer`` that fires on demand."""

    def __init__(self, interval, function, args=None, kwargs=None):
        self.interval = interval
        self.function = function
        self.args = args or ()
        self.kwargs = kwargs or {}
        self.daemon = False
        self.started = False
        self.cancelled = False

    def start(self):
        self.started = True

    def cancel(self):
        self.cancelled = True

    def fire(self):
        self.function(*self.args, **self.kwargs)


class FakeTimerFactory:
    def __init__(self):
        self.timers = []

    def __call__(self, interval, function, args=None, kwargs=None):
        timer = FakeTimer(interval, function, args, kwargs)
        self.timers.append(timer)
        return timer

    @property
    def live(self):
        return [t for t in self.timers if t.started and not t.cancelled]

    @property
    def last(self):
        return self.timers[-1] if self.timers else None


class FakeClock:
    def __init__(self, now=1_000_000.0):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


@pytest.fixture
def timers():
    return FakeTimerFactory()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def make_game(timers, clock):
    """Build a game with ``count`` joined players, optionally started."""
    def _make(count=2, start=True, seed=7, on_state_change=None):
        game = Game(
            "room-1",
            on_state_change=on_state_change,
            rng=random.Random(seed),
            timer_factory=timers,
            clock=clock,
        )
        for i in range(count):
            game.add_player(f"p{i + 1}", f"Player {i + 1}", f"conn-{i + 1}")
        if start:
            game.start()
        return game
    return _make


def give_turn(game, player_id):
    """Point the turn at ``player_id`` without touching anything else."""
    game.current_turn_index = [p.id for p in game.players].index(player_id)


def queen_named(game, name):
    return next(q for q in game.queens if q.name == name)


def total_cards(game):
    return (game.deck.count + len(game.discard_pile)
            + sum(len(p.hand) for p in game.players))


def _matches(card, card_type, value, name):
    if card.type != card_type:
        return False
    if value is not None and card.value != value:
        return False
    return name is None or card.name == name


def pull_card(game, card_type, value=None, name=None):
    """
    Take a matching card out of the draw pile, or out of someone's hand
    (who then gets a number card from the pile in its place).
    """
    for i, card in enumerate(game.deck.cards):
        if _matches(card, card_type, value, name):
            return game.deck.cards.pop(i)
    for player in game.players:
        for i, card in enumerate(player.hand):
            if _matches(card, card_type, value, name):
                player.hand[i] = pull_card(game, CardType.NUMBER)
                return card
    raise LookupError(f"No {card_type} left to pull")


def set_hand(game, player, *wanted):
    """
    Replace a player's hand with cards pulled from the draw pile; the old
    hand goes to the bottom of the pile so card totals stay the same.
    Each entry is a CardType or a (CardType, value_or_name) tuple.
    """
    game.deck.cards[0:0] = player.hand
    player.hand = []
    for item in wanted:
        if isinstance(item, tuple):
            card_type, key = item
            if isinstance(key, int):
                player.hand.append(pull_card(game, card_type, value=key))
            else:
                player.hand.append(pull_card(game, card_type, name=key))
        else:
            player.hand.append(pull_card(game, item))
    return player.hand


def stack_deck(game, *cards):
    """Put cards on top of the draw pile; the last one is drawn first."""
    for card in cards:
        game.deck.cards.append(card)
