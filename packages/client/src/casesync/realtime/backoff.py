"""Backoff scheduler — exponential retry delays and cancellable timers.

Learn: Three small pieces:
1. delay_for_attempt() — pure function, min(initial * 2^n, maximum)
2. CancellableTimer — owns every pending loop.call_later handle, so a
   teardown can cancel all of them in one call
3. BackoffScheduler — applies the policy (delay + attempt cap) on top
   of the timer

The scheduler never touches connection state. When the attempt cap is
reached it simply refuses (returns None) and the manager decides what
the terminal state looks like.
"""

import asyncio
from dataclasses import dataclass
from typing import Callable, Optional

import structlog

logger = structlog.get_logger()

INITIAL_DELAY = 1.0  # seconds
MAX_DELAY = 30.0  # seconds
MAX_RECONNECT_ATTEMPTS = 5


def delay_for_attempt(
    attempt: int,
    initial: float = INITIAL_DELAY,
    maximum: float = MAX_DELAY,
) -> float:
    """Delay in seconds before retry number `attempt` (zero-based)."""
    if attempt < 0:
        raise ValueError(f"attempt must be >= 0, got {attempt}")
    # Cap the exponent so huge attempt numbers can't overflow the float
    return min(initial * 2 ** min(attempt, 62), maximum)


class TimerHandle:
    """Opaque token returned by CancellableTimer.start()."""

    __slots__ = ("delay", "_handle", "_cancelled", "_fired")

    def __init__(self, delay: float):
        self.delay = delay
        self._handle: Optional[asyncio.TimerHandle] = None
        self._cancelled = False
        self._fired = False

    @property
    def active(self) -> bool:
        return not (self._cancelled or self._fired)


class CancellableTimer:
    """Loop-backed timer that tracks every pending callback.

    Must be used from inside the running event loop.
    """

    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None):
        self._loop = loop
        self._pending: set[TimerHandle] = set()

    @property
    def pending(self) -> int:
        return len(self._pending)

    def start(self, delay: float, callback: Callable[[], None]) -> TimerHandle:
        loop = self._loop or asyncio.get_running_loop()
        handle = TimerHandle(delay)

        def fire() -> None:
            self._pending.discard(handle)
            if handle._cancelled:
                return
            handle._fired = True
            callback()

        handle._handle = loop.call_later(delay, fire)
        self._pending.add(handle)
        return handle

    def cancel(self, handle: Optional[TimerHandle]) -> None:
        if handle is None or not handle.active:
            return
        handle._cancelled = True
        if handle._handle is not None:
            handle._handle.cancel()
        self._pending.discard(handle)

    def cancel_all(self) -> None:
        for handle in list(self._pending):
            self.cancel(handle)


@dataclass
class BackoffPolicy:
    """Retry policy: exponential delays with a hard attempt cap."""

    initial_delay: float = INITIAL_DELAY
    max_delay: float = MAX_DELAY
    max_attempts: int = MAX_RECONNECT_ATTEMPTS

    @classmethod
    def from_settings(cls, settings) -> "BackoffPolicy":
        return cls(
            initial_delay=settings.initial_reconnect_delay,
            max_delay=settings.max_reconnect_delay,
            max_attempts=settings.max_reconnect_attempts,
        )

    def delay_for(self, failures: int) -> float:
        """Delay after `failures` consecutive failures (1 → initial delay)."""
        return delay_for_attempt(max(failures - 1, 0), self.initial_delay, self.max_delay)

    def exhausted(self, failures: int) -> bool:
        return failures >= self.max_attempts


class BackoffScheduler:
    """Schedules reconnect callbacks according to a BackoffPolicy."""

    def __init__(self, policy: BackoffPolicy, timer):
        self.policy = policy
        self.timer = timer

    def schedule_retry(
        self, callback: Callable[[], None], failures: int
    ) -> Optional[TimerHandle]:
        """Defer `callback` by the backoff delay for `failures`.

        `failures` counts the failure being handled. Returns None once the
        attempt cap is reached — no timer is started in that case.
        """
        if self.policy.exhausted(failures):
            logger.warning(
                "realtime.retry_budget_exhausted",
                failures=failures,
                max_attempts=self.policy.max_attempts,
            )
            return None

        delay = self.policy.delay_for(failures)
        logger.info("realtime.retry_scheduled", failures=failures, delay=delay)
        return self.timer.start(delay, callback)

    def cancel(self, handle: Optional[TimerHandle]) -> None:
        self.timer.cancel(handle)

    def cancel_all(self) -> None:
        self.timer.cancel_all()
