"""
Per-room turn deadline.
"""

import logging
import threading
import time
from typing import Callable, Optional

logger = logging.getLogger(__name__)


class TurnTimer:
    """
    A single pending turn deadline.

    Arming replaces any previous deadline. When the deadline passes,
    ``on_expire`` is called with the token of the arming that produced it;
    the owner must call ``claim(token)`` while holding its own lock and only
    act if that returns True. A superseded expiry that was already running
    when it got cancelled is discarded that way, so each arming fires at
    most once.

    Args:
        on_expire: Callback receiving the arming token
        timer_factory: ``threading.Timer``-compatible constructor
        clock: Returns the current time in seconds
    """

    def __init__(
        self,
        on_expire: Callable[[int], None],
        timer_factory: Callable = threading.Timer,
        clock: Callable[[], float] = time.time,
    ):
        self._on_expire = on_expire
        self._timer_factory = timer_factory
        self._clock = clock
        self._lock = threading.Lock()
        self._handle = None
        self._token = 0
        self.deadline: Optional[float] = None

    @property
    def active(self) -> bool:
        return self._handle is not None

    def arm(self, duration: float) -> float:
        """Start a fresh deadline ``duration`` seconds from now."""
        with self._lock:
            self._cancel_handle()
            self._token += 1
            token = self._token
            self.deadline = self._clock() + duration
            handle = self._timer_factory(duration, self._fire, args=(token,))
            handle.daemon = True
            self._handle = handle
        handle.start()
        return self.deadline

    def cancel(self):
        with self._lock:
            self._cancel_handle()
            self._token += 1
            self.deadline = None

    def claim(self, token: int) -> bool:
        """Consume the expiry for ``token`` if it is still the live arming."""
        with self._lock:
            if token != self._token or self._handle is None:
                return False
            self._handle = None
            self.deadline = None
            return True

    def _cancel_handle(self):
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    def _fire(self, token: int):
        try:
            self._on_expire(token)
        except Exception as e:
            logger.exception(f"Turn timeout handler failed: {e}")
