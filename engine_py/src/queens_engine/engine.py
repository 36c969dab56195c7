"""Per-room game engine: turn order, card effects and the turn deadline"""

import logging
import random
import threading
import time
from typing import Any, Callable, Dict, List, Optional, Union

from .actions import (
    DebugCommand, DebugCommandType, DiscardAction, GameAction, PlayCardAction,
    PlayCardPayload, DiscardPayload, WakeQueenAction, WakeQueenPayload, parse_action
)
from .constants import (
    BONUS_KING, BONUS_QUEEN, CardType, DEBUG_NUMBER_VALUE, DEFAULT_TURN_TIME_LIMIT,
    GameStatus, HAND_SIZE, MAX_PLAYERS, MIN_PLAYERS, PROTECTED_QUEEN, win_target
)
from .deck import Deck, create_queens, new_card
from .errors import (
    raise_error, CARD_NOT_IN_HAND, CARD_NOT_PLAYABLE, GAME_ALREADY_STARTED,
    GAME_NOT_IN_PROGRESS, INVALID_TARGET, NO_PENDING_SELECTION, NOT_ENOUGH_PLAYERS,
    NOT_HOST, NOT_YOUR_TURN, PENDING_SELECTION, PLAYER_NOT_FOUND, QUEEN_NOT_AVAILABLE,
    QUEEN_PROTECTED, ROOM_FULL, TARGET_NOT_OWNER, TARGET_REQUIRED
)
from .models import Card, LastAction, PendingSelection, Player, Queen
from .rules import RoomOptions
from .serialization import serialize_game
from .timer import TurnTimer
from .validate import is_predator_conflict, validate_discard

logger = logging.getLogger(__name__)

StateCallback = Callable[[Dict[str, Any]], None]


class Game:
    """
    One room. All mutation goes through the public methods below, each of
    which holds the room lock, so actions, connection changes and turn
    timeouts never interleave.
    """

    def __init__(
        self,
        room_id: str,
        on_state_change: Optional[StateCallback] = None,
        options: Optional[RoomOptions] = None,
        rng: Optional[random.Random] = None,
        timer_factory: Callable = threading.Timer,
        clock: Callable[[], float] = time.time,
        default_turn_time_limit: int = DEFAULT_TURN_TIME_LIMIT,
    ):
        self.id = room_id
        self.host_id: Optional[str] = None
        self.players: List[Player] = []
        self.rng = rng or random.Random()
        self.deck = Deck(self.rng)
        self.queens: List[Queen] = create_queens(self.rng)
        self.discard_pile: List[Card] = []
        self.status = GameStatus.LOBBY
        self.current_turn_index = 0
        self.last_action: Optional[LastAction] = None
        self.winner_id: Optional[str] = None
        self.pending_selection: Optional[PendingSelection] = None
        self.clock = clock
        self.created_at = clock()
        self.turn_duration = default_turn_time_limit

        self._on_state_change = on_state_change
        self._lock = threading.RLock()
        self._timer = TurnTimer(self._handle_turn_timeout, timer_factory, clock)

        if options:
            self.update_settings(options)

    # ------------------------------------------------------------------
    # Lookups

    @property
    def current_player(self) -> Optional[Player]:
        if not self.players:
            return None
        return self.players[self.current_turn_index % len(self.players)]

    @property
    def turn_deadline(self) -> Optional[float]:
        return self._timer.deadline

    @property
    def timer_active(self) -> bool:
        return self._timer.active

    def get_player(self, player_id: Optional[str]) -> Optional[Player]:
        return next((p for p in self.players if p.id == player_id), None)

    def get_queen(self, queen_id: Optional[str]) -> Optional[Queen]:
        return next((q for q in self.queens if q.id == queen_id), None)

    def queens_of(self, player: Player) -> List[Queen]:
        return [q for q in (self.get_queen(qid) for qid in player.queen_ids) if q]

    def score(self, player: Player) -> int:
        return sum(q.points for q in self.queens_of(player))

    def get_state(self) -> Dict[str, Any]:
        with self._lock:
            return serialize_game(self)

    # ------------------------------------------------------------------
    # Lobby and connections

    def update_settings(self, options: RoomOptions, requesting_player_id: Optional[str] = None):
        with self._lock:
            # None means an internal call such as room creation
            if requesting_player_id is not None and requesting_player_id != self.host_id:
                logger.warning(f"Room {self.id}: settings change refused for {requesting_player_id}, host is {self.host_id}")
                raise_error(NOT_HOST, "Only host can update settings")
            if options.turn_time_limit:
                self.turn_duration = options.turn_time_limit
                logger.info(f"Room {self.id}: turn duration set to {self.turn_duration}s")

    def add_player(self, player_id: str, name: str, connection_id: str) -> Player:
        with self._lock:
            if self.status != GameStatus.LOBBY:
                raise_error(GAME_ALREADY_STARTED, "Game already started")
            if len(self.players) >= MAX_PLAYERS:
                raise_error(ROOM_FULL, "Room is full")

            if not self.players or not self.host_id:
                self.host_id = player_id
                logger.info(f"Room {self.id}: host set to {name} ({player_id})")

            player = Player(id=player_id, name=name, connection_id=connection_id)
            self.players.append(player)
            logger.info(f"Room {self.id}: {name} ({player_id}) joined at seat {len(self.players) - 1}")
            return player

    def remove_player(self, player_id: str):
        """Explicit departure. The leaver's cards and queens go back to the table."""
        with self._lock:
            player = self.get_player(player_id)
            if not player:
                return

            seat = self.players.index(player)
            was_current = seat == self.current_turn_index
            picker_left = bool(self.pending_selection and self.pending_selection.player_id == player_id)

            self.discard_pile.extend(player.hand)
            player.hand = []
            for queen in self.queens_of(player):
                self._set_owner(queen, None)
            self.players.pop(seat)
            logger.info(f"Room {self.id}: {player.name} ({player_id}) left")

            if player_id == self.host_id:
                self.host_id = self.players[0].id if self.players else None
                if self.host_id:
                    logger.info(f"Room {self.id}: host left, new host is {self.host_id}")

            if self.status == GameStatus.PLAYING and len(self.players) < MIN_PLAYERS:
                logger.info(f"Room {self.id}: not enough players left, back to lobby")
                self._reset()
                return
            if not self.players:
                self.current_turn_index = 0
                return

            if seat < self.current_turn_index:
                self.current_turn_index -= 1
            self.current_turn_index %= len(self.players)

            if self.status != GameStatus.PLAYING:
                return
            if was_current:
                # The next seat slid into the leaver's index
                self.pending_selection = None
                self._timer.cancel()
                self._seat_next_connected(self.current_turn_index)
                self._start_turn()
            elif picker_left:
                self.pending_selection = None
                self._end_turn(self.current_player)

            self._check_win_condition()

    def mark_disconnected(self, connection_id: str) -> Optional[Player]:
        with self._lock:
            player = next((p for p in self.players if p.connection_id == connection_id), None)
            if player:
                player.connected = False
                logger.info(f"Room {self.id}: {player.name} disconnected")
            return player

    def mark_reconnected(self, player_id: str, connection_id: str) -> Optional[Player]:
        with self._lock:
            player = self.get_player(player_id)
            if not player:
                return None
            player.connected = True
            player.connection_id = connection_id
            logger.info(f"Room {self.id}: {player.name} reconnected")

            current = self.current_player
            if (self.status == GameStatus.PLAYING and not self.winner_id
                    and current is player and not self._timer.active):
                self._arm_timer()
            return player

    def start(self):
        with self._lock:
            if self.status != GameStatus.LOBBY:
                raise_error(GAME_ALREADY_STARTED, "Game already started")
            if len(self.players) < MIN_PLAYERS:
                raise_error(NOT_ENOUGH_PLAYERS, "Not enough players")

            self.status = GameStatus.PLAYING
            self.deck.shuffle()
            for player in self.players:
                for _ in range(HAND_SIZE):
                    card = self.deck.draw()
                    if card:
                        player.hand.append(card)

            self.current_turn_index = self.rng.randrange(len(self.players))
            self._arm_timer()
            logger.info(f"Room {self.id}: game started with {len(self.players)} players, "
                        f"{self.current_player.name} goes first")

    def close(self):
        """Stop the turn timer; called when the room is discarded."""
        with self._lock:
            self._timer.cancel()

    # ------------------------------------------------------------------
    # Actions

    def handle_action(self, action: Union[GameAction, Dict[str, Any]]) -> Dict[str, Any]:
        """
        Validate and apply one gameplay action.

        Args:
            action: Typed action, or a raw ``{type, playerId, payload}`` envelope

        Returns:
            The state snapshot after the action

        Raises:
            GameError: If the action is rejected; nothing is changed in that case
        """
        with self._lock:
            if isinstance(action, dict):
                action = parse_action(action)
            if action is None:
                return serialize_game(self)

            player = self.get_player(action.player_id)
            if not player:
                raise_error(PLAYER_NOT_FOUND, "Player not found")
            if self.status != GameStatus.PLAYING:
                raise_error(GAME_NOT_IN_PROGRESS, "Game is not in progress")

            pending = self.pending_selection
            is_pick = (pending is not None and isinstance(action, WakeQueenAction)
                       and pending.player_id == player.id)
            if pending and not is_pick:
                raise_error(PENDING_SELECTION, "Waiting for queen selection")
            if not is_pick and self.current_player is not player:
                raise_error(NOT_YOUR_TURN, "Not your turn")

            record = self._describe(action, player)
            if isinstance(action, PlayCardAction):
                record.outcome = self._resolve_play_card(player, action.payload, record)
            elif isinstance(action, DiscardAction):
                record.outcome = self._resolve_discard(player, action.payload, record)
            elif isinstance(action, WakeQueenAction):
                record.outcome = self._resolve_wake_queen(player, action.payload)

            self.last_action = record
            logger.info(f"Room {self.id}: {player.name} {record.type} -> {record.outcome}")

            self._check_win_condition()
            return serialize_game(self)

    def _describe(self, action: GameAction, player: Player) -> LastAction:
        """Capture the action with display names before it changes anything."""
        payload = action.payload.model_dump(exclude_none=True)

        if isinstance(action, PlayCardAction):
            card = player.find_card(action.payload.card_id)
            if card:
                payload['card_type'] = card.type.value
                payload['card_name'] = card.name
            queen = self.get_queen(action.payload.target_queen_id)
            if queen:
                payload['target_queen_name'] = queen.name
            target = self.get_player(action.payload.target_player_id)
            if target:
                payload['target_player_name'] = target.name
        elif isinstance(action, DiscardAction):
            payload['count'] = len(action.payload.card_ids)
        elif isinstance(action, WakeQueenAction):
            queen = self.get_queen(action.payload.target_queen_id)
            if queen:
                payload['target_queen_name'] = queen.name

        return LastAction(type=action.type.value, player_id=player.id,
                          player_name=player.name, payload=payload)

    def _resolve_play_card(self, player: Player, payload: PlayCardPayload, record: LastAction) -> str:
        card = player.find_card(payload.card_id)
        if not card:
            raise_error(CARD_NOT_IN_HAND, "Card not in hand")

        should_end_turn = True
        if card.type == CardType.KING:
            outcome = self._play_king(player, card, payload.target_queen_id)
        elif card.type == CardType.KNIGHT:
            outcome = self._play_knight(player, card, payload.target_player_id, payload.target_queen_id)
        elif card.type == CardType.POTION:
            outcome = self._play_potion(player, card, payload.target_player_id, payload.target_queen_id)
        elif card.type == CardType.JESTER:
            should_end_turn, outcome = self._play_jester(player, card, record)
        elif card.type == CardType.NUMBER:
            raise_error(CARD_NOT_PLAYABLE, "Use DISCARD action for numbers")
        else:
            # Dragons and Wands only ever react to an attack
            raise_error(CARD_NOT_PLAYABLE, "Cannot play this card directly")

        if should_end_turn and not self.pending_selection:
            self._end_turn(player)
        return outcome

    def _play_king(self, player: Player, card: Card, target_queen_id: Optional[str]) -> str:
        if not target_queen_id:
            raise_error(TARGET_REQUIRED, "Must select a queen")
        queen = self.get_queen(target_queen_id)
        if not queen or queen.is_awake:
            raise_error(QUEEN_NOT_AVAILABLE, "Queen not available")

        self._discard_card(player, card.id)

        if card.name == BONUS_KING and any(not q.is_awake and q is not queen for q in self.queens):
            self._add_pending_pick(player.id, 1)

        return self._wake_queen(player, queen)

    def _play_knight(self, player: Player, card: Card,
                     target_player_id: Optional[str], target_queen_id: Optional[str]) -> str:
        target, queen = self._validate_attack(player, target_player_id, target_queen_id, "stolen")

        self._discard_card(player, card.id)

        dragon = target.find_card_of_type(CardType.DRAGON)
        if dragon:
            self._discard_card(target, dragon.id)
            self._draw_card(target)
            logger.info(f"Room {self.id}: {target.name} blocked a knight with a dragon")
            return "blocked"

        if is_predator_conflict((q.name for q in self.queens_of(player)), queen.name):
            return "conflict"

        self._set_owner(queen, player)
        return "stolen"

    def _play_potion(self, player: Player, card: Card,
                     target_player_id: Optional[str], target_queen_id: Optional[str]) -> str:
        target, queen = self._validate_attack(player, target_player_id, target_queen_id, "put to sleep")

        self._discard_card(player, card.id)

        wand = target.find_card_of_type(CardType.WAND)
        if wand:
            self._discard_card(target, wand.id)
            self._draw_card(target)
            logger.info(f"Room {self.id}: {target.name} blocked a potion with a wand")
            return "blocked"

        self._set_owner(queen, None)
        return "slept"

    def _validate_attack(self, player: Player, target_player_id: Optional[str],
                         target_queen_id: Optional[str], verb: str):
        if not target_player_id or not target_queen_id:
            raise_error(TARGET_REQUIRED, "Target required")
        target = self.get_player(target_player_id)
        if not target:
            raise_error(INVALID_TARGET, "Target player not found")
        if target is player:
            raise_error(INVALID_TARGET, "Cannot target yourself")

        queen = self.get_queen(target_queen_id)
        if not queen or queen.owner_id != target.id:
            raise_error(TARGET_NOT_OWNER, "Target player does not have that queen")
        if queen.name == PROTECTED_QUEEN:
            raise_error(QUEEN_PROTECTED, f"{PROTECTED_QUEEN} cannot be {verb}")
        return target, queen

    def _play_jester(self, player: Player, card: Card, record: LastAction):
        """Reveal until something happens. Returns (should_end_turn, outcome)."""
        self._discard_card(player, card.id)

        while True:
            revealed = self.deck.draw()
            if revealed is None:
                self._reshuffle_discard()
                if self.deck.count == 0:
                    return True, "nothing_revealed"
                continue

            record.payload['revealed_card_type'] = revealed.type.value
            record.payload['revealed_card_name'] = revealed.name

            if revealed.type != CardType.NUMBER:
                player.hand.append(revealed)
                return False, "card_drawn"

            self.discard_pile.append(revealed)
            count = revealed.value or 0
            target_index = (self.current_turn_index + count - 1) % len(self.players)
            picker = self.players[target_index]
            record.payload['revealed_value'] = count
            record.payload['picker_id'] = picker.id
            record.payload['picker_name'] = picker.name
            self._add_pending_pick(picker.id, 1)
            return True, "pick_assigned"

    def _resolve_wake_queen(self, player: Player, payload: WakeQueenPayload) -> str:
        pending = self.pending_selection
        if not pending:
            raise_error(NO_PENDING_SELECTION, "No pending queen selection")
        if pending.player_id != player.id:
            raise_error(NOT_YOUR_TURN, "Not your turn to pick a queen")
        if not payload.target_queen_id:
            raise_error(TARGET_REQUIRED, "Must select a queen")
        queen = self.get_queen(payload.target_queen_id)
        if not queen or queen.is_awake:
            raise_error(QUEEN_NOT_AVAILABLE, "Queen not available")

        if pending.picks_remaining > 0:
            pending.picks_remaining -= 1

        outcome = self._wake_queen(player, queen)

        if self.pending_selection.picks_remaining <= 0:
            self.pending_selection = None
            # The turn that ends is the turn owner's, not necessarily the picker's
            self._end_turn(self.current_player)
        return outcome

    def _resolve_discard(self, player: Player, payload: DiscardPayload, record: LastAction) -> str:
        result = validate_discard(player, payload.card_ids)
        if not result.valid:
            raise_error(result.error_code, result.error_message)

        record.payload['values'] = [card.value for card in result.cards]
        for card in result.cards:
            self._discard_card(player, card.id)
        for _ in result.cards:
            self._draw_card(player)

        self._end_turn(player)
        return "discarded"

    # ------------------------------------------------------------------
    # Shared effect helpers

    def _set_owner(self, queen: Queen, player: Optional[Player]):
        """The one place queen ownership changes."""
        if queen.owner_id:
            previous = self.get_player(queen.owner_id)
            if previous and queen.id in previous.queen_ids:
                previous.queen_ids.remove(queen.id)

        if player is None:
            queen.owner_id = None
            queen.is_awake = False
        else:
            queen.owner_id = player.id
            queen.is_awake = True
            player.queen_ids.append(queen.id)

    def _wake_queen(self, player: Player, queen: Queen) -> str:
        if is_predator_conflict((q.name for q in self.queens_of(player)), queen.name):
            # The play is spent but the queen keeps sleeping
            return "conflict"

        self._set_owner(queen, player)

        if queen.name == BONUS_QUEEN and any(not q.is_awake for q in self.queens):
            self._add_pending_pick(player.id, 1)
        return "woken"

    def _add_pending_pick(self, player_id: str, count: int):
        pending = self.pending_selection
        if pending and pending.player_id == player_id:
            pending.picks_remaining += count
            return
        self.pending_selection = PendingSelection(player_id=player_id, picks_remaining=count)
        # The picker gets a fresh deadline
        self._arm_timer()

    def _discard_card(self, player: Player, card_id: str):
        card = player.remove_card(card_id)
        if card:
            self.discard_pile.append(card)

    def _draw_card(self, player: Player) -> Optional[Card]:
        if self.deck.count == 0:
            self._reshuffle_discard()
        card = self.deck.draw()
        if card:
            player.hand.append(card)
        return card

    def _reshuffle_discard(self):
        if not self.discard_pile:
            return
        logger.info(f"Room {self.id}: deck empty, reshuffling {len(self.discard_pile)} discards")
        self.deck.recycle(self.discard_pile)
        self.discard_pile = []

    # ------------------------------------------------------------------
    # Turn flow

    def _end_turn(self, player: Optional[Player]):
        self._timer.cancel()

        if player is not None:
            while len(player.hand) < HAND_SIZE:
                if self.deck.count == 0 and not self.discard_pile:
                    break
                self._draw_card(player)

        if not self.players:
            return

        self._seat_next_connected(self.current_turn_index + 1)
        self._start_turn()

    def _seat_next_connected(self, start: int):
        """Give the turn to the first connected seat from ``start``, at most one lap."""
        n = len(self.players)
        for offset in range(n):
            index = (start + offset) % n
            if self.players[index].connected:
                self.current_turn_index = index
                return
        self.current_turn_index = start % n

    def _start_turn(self):
        nxt = self.current_player
        if self.status == GameStatus.PLAYING and not self.winner_id and nxt and nxt.connected:
            self._arm_timer()

    def _arm_timer(self):
        self._timer.arm(self.turn_duration)

    def _handle_turn_timeout(self, token: int):
        with self._lock:
            if not self._timer.claim(token):
                return
            player = self.current_player
            if self.status != GameStatus.PLAYING or player is None:
                return
            logger.info(f"Room {self.id}: turn timeout for {player.name}")
            self.pending_selection = None
            self._end_turn(player)
            state = serialize_game(self)

        if self._on_state_change:
            self._on_state_change(state)

    def _check_win_condition(self):
        points_to_win, queens_to_win = win_target(len(self.players))

        winner = next(
            (p for p in self.players
             if self.score(p) >= points_to_win or len(p.queen_ids) >= queens_to_win),
            None
        )
        if winner is None and self.players and all(q.is_awake for q in self.queens):
            # max() keeps the earliest seat on equal scores
            winner = max(self.players, key=self.score)

        if winner:
            self.status = GameStatus.FINISHED
            self.winner_id = winner.id
            self.pending_selection = None
            self._timer.cancel()
            logger.info(f"Room {self.id}: {winner.name} wins with {self.score(winner)} points")

    # ------------------------------------------------------------------
    # Diagnostics

    def reset(self):
        with self._lock:
            self._reset()

    def _reset(self):
        self._timer.cancel()
        self.status = GameStatus.LOBBY
        self.deck = Deck(self.rng)
        self.queens = create_queens(self.rng)
        self.discard_pile = []
        self.winner_id = None
        self.last_action = None
        self.pending_selection = None
        self.current_turn_index = 0
        for player in self.players:
            player.hand = []
            player.queen_ids = []
        logger.info(f"Room {self.id}: reset to lobby")

    def handle_debug_command(self, command: Union[DebugCommand, Dict[str, Any]]) -> Dict[str, Any]:
        """Apply a diagnostic command. These bypass the gameplay rules."""
        if isinstance(command, dict):
            command = DebugCommand.model_validate(command)

        with self._lock:
            logger.info(f"Room {self.id}: debug command {command.type.value}")

            if command.type == DebugCommandType.SET_GAME_STATUS:
                self._debug_set_status(command.status)
            elif command.type == DebugCommandType.RESET_GAME:
                self._reset()
            elif command.type == DebugCommandType.GIVE_CARD:
                player = self.current_player
                card_type = command.card_type
                if player and card_type:
                    value = DEBUG_NUMBER_VALUE if card_type == CardType.NUMBER else None
                    player.hand.append(new_card(card_type, f"Debug {card_type.value}", value))
            elif command.type == DebugCommandType.SWITCH_TURN:
                if self.players:
                    self.pending_selection = None
                    self._end_turn(self.current_player)
            elif command.type == DebugCommandType.WAKE_ALL_QUEENS:
                player = self.current_player
                if player:
                    for queen in self.queens:
                        if not queen.is_awake:
                            self._set_owner(queen, player)
            elif command.type == DebugCommandType.SLEEP_ALL_QUEENS:
                for queen in self.queens:
                    if queen.is_awake:
                        self._set_owner(queen, None)

            return serialize_game(self)

    def _debug_set_status(self, status: Optional[GameStatus]):
        if status is None:
            return
        if status == GameStatus.PLAYING and self.status == GameStatus.LOBBY:
            if len(self.players) >= MIN_PLAYERS:
                self.start()
            return

        self.status = status
        if status == GameStatus.FINISHED and not self.winner_id and self.players:
            self.winner_id = self.players[0].id
        if status != GameStatus.PLAYING:
            self._timer.cancel()
