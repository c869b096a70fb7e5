"""
Reconnect backoff and connection attempt bookkeeping.

``BackoffPolicy`` decides how long a client must wait between connection
attempts. ``AttemptWindow`` keeps a bounded rolling window of attempts per
client identity and is shared by every session in the process.
"""

import logging
import threading
import time
from collections import defaultdict, deque
from dataclasses import dataclass
from typing import Callable, Deque, Dict, List, Optional

from realtime_webrtc.config.constants import (
    BACKOFF_BASE_DELAY,
    BACKOFF_CAP_DELAY,
    LOGGER_NAME,
    RATE_LIMIT_ESCALATION_STEP,
    RATE_LIMIT_MAX_DELAY,
    RATE_LIMIT_MIN_DELAY,
    SESSION_ATTEMPT_WINDOW,
)

logger = logging.getLogger(LOGGER_NAME)


class BackoffPolicy:
    """
    Exponential backoff with a sticky rate-limit floor.

    The required delay between two attempts is
    ``max(base, rate_limit_delay, min(cap, base * 2 ** consecutive_failures))``.
    Only a successful connection resets the failure counter and clears the
    rate-limit delay.
    """

    def __init__(
        self,
        base_delay: float = BACKOFF_BASE_DELAY,
        cap_delay: float = BACKOFF_CAP_DELAY,
        rate_limit_min: float = RATE_LIMIT_MIN_DELAY,
        rate_limit_max: float = RATE_LIMIT_MAX_DELAY,
        rate_limit_step: float = RATE_LIMIT_ESCALATION_STEP,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.base_delay = base_delay
        self.cap_delay = cap_delay
        self.rate_limit_min = rate_limit_min
        self.rate_limit_max = rate_limit_max
        self.rate_limit_step = rate_limit_step
        self.clock = clock
        self.consecutive_failures = 0
        self.rate_limit_delay = 0.0
        self.last_attempt: Optional[float] = None

    @property
    def required_delay(self) -> float:
        exponential = min(self.cap_delay, self.base_delay * 2 ** self.consecutive_failures)
        return max(self.base_delay, self.rate_limit_delay, exponential)

    def remaining(self, now: Optional[float] = None) -> float:
        """Seconds left before the next attempt is allowed (0 when allowed)."""
        if self.last_attempt is None:
            return 0.0
        now = self.clock() if now is None else now
        return max(0.0, self.required_delay - (now - self.last_attempt))

    def mark_attempt(self, now: Optional[float] = None) -> None:
        self.last_attempt = self.clock() if now is None else now

    def record_failure(self) -> None:
        self.consecutive_failures += 1
        logger.debug(
            f"Connection failure recorded (consecutive: {self.consecutive_failures}, "
            f"next delay: {self.required_delay:.0f}s)"
        )

    def record_rate_limit(self) -> float:
        """
        Escalate the sticky rate-limit delay and return its new value.

        The cooldown is measured from the moment the rate limit was seen, so a
        limit reported late in a long session still blocks reconnecting.
        """
        self.last_attempt = self.clock()
        if self.rate_limit_delay < self.rate_limit_min:
            self.rate_limit_delay = self.rate_limit_min
        else:
            self.rate_limit_delay = min(
                self.rate_limit_max, self.rate_limit_delay + self.rate_limit_step
            )
        logger.warning(f"Rate limit detected, enforcing {self.rate_limit_delay:.0f}s cooldown")
        return self.rate_limit_delay

    def record_success(self) -> None:
        self.consecutive_failures = 0
        self.rate_limit_delay = 0.0

    def reset(self) -> None:
        self.record_success()
        self.last_attempt = None


@dataclass
class ConnectionAttempt:
    timestamp: float
    outcome: str


class AttemptWindow:
    """
    Rolling window of connection attempts keyed by client identity.

    Writes append first and then evict entries older than the window, which
    keeps memory bounded without an explicit teardown.
    """

    def __init__(
        self,
        window: float = SESSION_ATTEMPT_WINDOW,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.window = window
        self.clock = clock
        self._attempts: Dict[str, Deque[ConnectionAttempt]] = defaultdict(deque)
        self._lock = threading.Lock()

    def record(self, identity: str, outcome: str, now: Optional[float] = None) -> int:
        """Record an attempt and return the number of attempts in the window."""
        now = self.clock() if now is None else now
        with self._lock:
            attempts = self._attempts[identity]
            attempts.append(ConnectionAttempt(now, outcome))
            self._prune(identity, now)
            return len(self._attempts.get(identity, ()))

    def count(self, identity: str, outcome: Optional[str] = None, now: Optional[float] = None) -> int:
        now = self.clock() if now is None else now
        with self._lock:
            self._prune(identity, now)
            attempts = self._attempts.get(identity, ())
            if outcome is None:
                return len(attempts)
            return sum(1 for attempt in attempts if attempt.outcome == outcome)

    def attempts(self, identity: str) -> List[ConnectionAttempt]:
        with self._lock:
            return list(self._attempts.get(identity, ()))

    def identities(self) -> List[str]:
        now = self.clock()
        with self._lock:
            for identity in list(self._attempts):
                self._prune(identity, now)
            return list(self._attempts)

    def _prune(self, identity: str, now: float) -> None:
        attempts = self._attempts.get(identity)
        if attempts is None:
            return
        while attempts and now - attempts[0].timestamp > self.window:
            attempts.popleft()
        if not attempts:
            del self._attempts[identity]
