# engine_py/src/queens_engine/errors.py

class GameError(Exception):
    """Base exception for game-related errors."""
    def __init__(self, code: str, message: str):
        self.code = code
        self.message = message
        super().__init__(f"[{code}] {message}")

# Specific error codes
NOT_YOUR_TURN = "NOT_YOUR_TURN"
PENDING_SELECTION = "PENDING_SELECTION"
NO_PENDING_SELECTION = "NO_PENDING_SELECTION"
CARD_NOT_IN_HAND = "CARD_NOT_IN_HAND"
CARD_NOT_PLAYABLE = "CARD_NOT_PLAYABLE"
TARGET_REQUIRED = "TARGET_REQUIRED"
INVALID_TARGET = "INVALID_TARGET"
TARGET_NOT_OWNER = "TARGET_NOT_OWNER"
QUEEN_PROTECTED = "QUEEN_PROTECTED"
QUEEN_NOT_AVAILABLE = "QUEEN_NOT_AVAILABLE"
INVALID_DISCARD = "INVALID_DISCARD"
ROOM_NOT_FOUND = "ROOM_NOT_FOUND"
ROOM_FULL = "ROOM_FULL"
GAME_ALREADY_STARTED = "GAME_ALREADY_STARTED"
NOT_ENOUGH_PLAYERS = "NOT_ENOUGH_PLAYERS"
NOT_HOST = "NOT_HOST"
PLAYER_NOT_FOUND = "PLAYER_NOT_FOUND"
GAME_NOT_IN_PROGRESS = "GAME_NOT_IN_PROGRESS"
INVALID_ACTION = "INVALID_ACTION"
INVALID_EVENT = "INVALID_EVENT"
INTERNAL_ERROR = "INTERNAL_ERROR"

# Helper function to raise common errors
def raise_error(code: str, message: str):
    raise GameError(code, message)
