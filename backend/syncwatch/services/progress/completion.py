"""
Auto-close after a terminal snapshot.

The subscription stays open for a grace period so the host can show the
final state, then a one-shot loop callback closes it.
"""

import asyncio
import logging
from datetime import datetime, timedelta
from enum import Enum
from typing import Callable, Optional

from syncwatch.core.config import DEFAULT_AUTO_CLOSE_SECONDS

logger = logging.getLogger(__name__)


class CompletionState(str, Enum):
    IDLE = "idle"
    ARMED = "armed"


class CompletionController:
    """
    One-shot deferred close, armed at most once per monitor session.

    Once ARMED the controller stays ARMED (even after firing or being
    cancelled) until reset() starts a new session.
    """

    def __init__(
        self,
        delay: float = DEFAULT_AUTO_CLOSE_SECONDS,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self._delay = delay
        self._clock = clock
        self._state = CompletionState.IDLE
        self._handle: Optional[asyncio.TimerHandle] = None
        self._deadline: Optional[datetime] = None

    @property
    def state(self) -> CompletionState:
        return self._state

    @property
    def deadline(self) -> Optional[datetime]:
        """Wall-clock time the pending action fires, None if nothing is pending."""
        return self._deadline

    @property
    def is_pending(self) -> bool:
        return self._handle is not None

    def arm(self, action: Callable[[], None]) -> bool:
        """
        Schedule action after the grace period.

        Returns:
            False if the controller was already armed this session
        """
        if self._state is CompletionState.ARMED:
            logger.debug("Auto-close already armed for this session, ignoring")
            return False

        loop = asyncio.get_running_loop()
        self._state = CompletionState.ARMED
        self._deadline = self._clock() + timedelta(seconds=self._delay)
        self._handle = loop.call_later(self._delay, self._fire, action)
        logger.info(f"Auto-close armed: closing in {self._delay:g}s")
        return True

    def cancel(self) -> None:
        """Drop the pending action, if any. Does not allow re-arming."""
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None
            logger.debug("Auto-close cancelled")
        self._deadline = None

    def reset(self) -> None:
        """Cancel and return to IDLE for a new session."""
        self.cancel()
        self._state = CompletionState.IDLE

    def _fire(self, action: Callable[[], None]) -> None:
        self._handle = None
        self._deadline = None
        logger.info("Auto-closing sync progress stream after completion delay")
        action()
