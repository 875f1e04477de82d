"""
Simulated Clock for playcheck.

Provides a virtual, monotonically advancing time source for playback
scenarios. Nothing in here reads the wall clock: time only moves when the
harness (or the player through a scheduled wake) asks it to.

Time is an integer number of microseconds.
"""

import heapq
import itertools
import logging
import threading
from dataclasses import dataclass, field
from typing import Callable, List, Optional

logger = logging.getLogger(__name__)


WakeCallback = Callable[[], None]


class ClockMisuseError(RuntimeError):
    """
    Raised when the clock is asked to move backwards or to wake in the past.

    This always indicates a bug in the harness or in the engine under test
    and is never converted into a test assertion failure.
    """


class ClockStallError(RuntimeError):
    """Raised when a blocking wait is requested on a clock that cannot advance itself."""


@dataclass(order=True)
class _PendingWake:
    deadline_us: int
    order: int
    callback: WakeCallback = field(compare=False)
    cancelled: bool = field(default=False, compare=False)


class WakeHandle:
    """Handle returned by SimulatedClock.schedule_wake()."""

    def __init__(self, clock: "SimulatedClock", wake: _PendingWake) -> None:
        self._clock = clock
        self._wake = wake

    @property
    def deadline_us(self) -> int:
        return self._wake.deadline_us

    @property
    def active(self) -> bool:
        """True until the wake fires or is cancelled."""
        return not self._wake.cancelled

    def cancel(self) -> None:
        """Withdraw the wake. Cancelling a fired or cancelled wake is a no-op."""
        self._clock._cancel(self._wake)


class SimulatedClock:
    """
    Virtual time source with a queue of one-shot wake callbacks.

    When auto-advancing, any call that would otherwise wait for time to pass
    jumps straight to the nearest scheduled wake and fires it, so the cost of
    a scenario is bounded by its event count rather than its media duration.

    Wakes fire in (deadline, registration order). Callbacks run outside the
    internal lock and may schedule further wakes.
    """

    def __init__(self, start_us: int = 0, auto_advancing: bool = False) -> None:
        """
        Initialize simulated clock.

        Args:
            start_us: Initial virtual time in microseconds (must be >= 0)
            auto_advancing: Whether idle waits jump to the next pending wake

        Raises:
            ClockMisuseError: If start_us is negative
        """
        if start_us < 0:
            raise ClockMisuseError(f"Clock cannot start at negative time {start_us}")
        self._now_us = start_us
        self._auto_advancing = auto_advancing
        self._wakes: List[_PendingWake] = []
        self._order = itertools.count()
        self._pending = 0
        self._fired = 0
        self._lock = threading.RLock()

    @property
    def is_auto_advancing(self) -> bool:
        return self._auto_advancing

    @property
    def pending_wake_count(self) -> int:
        with self._lock:
            return self._pending

    @property
    def fired_wake_count(self) -> int:
        """Total number of wake callbacks fired since construction."""
        with self._lock:
            return self._fired

    def now(self) -> int:
        """Return the current virtual time in microseconds."""
        with self._lock:
            return self._now_us

    def next_wake_time(self) -> Optional[int]:
        """Return the deadline of the earliest pending wake, or None."""
        with self._lock:
            self._discard_cancelled_head()
            if not self._wakes:
                return None
            return self._wakes[0].deadline_us

    def schedule_wake(self, deadline_us: int, callback: WakeCallback) -> WakeHandle:
        """
        Register a one-shot callback invoked once now() >= deadline_us.

        A wake scheduled exactly at now() is due immediately but still only
        fires from run_due_wakes()/drain_or_advance()/advance_to(), never
        re-entrantly from here.

        Args:
            deadline_us: Virtual time at which the callback becomes due
            callback: Zero-argument callable

        Returns:
            WakeHandle that can cancel the wake

        Raises:
            ClockMisuseError: If deadline_us is in the past
        """
        with self._lock:
            if deadline_us < self._now_us:
                raise ClockMisuseError(
                    f"Cannot schedule wake at {deadline_us}us, clock is already at {self._now_us}us"
                )
            wake = _PendingWake(deadline_us, next(self._order), callback)
            heapq.heappush(self._wakes, wake)
            self._pending += 1
        return WakeHandle(self, wake)

    def schedule_wake_after(self, delay_us: int, callback: WakeCallback) -> WakeHandle:
        """Register a wake delay_us after the current time."""
        if delay_us < 0:
            raise ClockMisuseError(f"Wake delay must be non-negative, got {delay_us}us")
        with self._lock:
            return self.schedule_wake(self._now_us + delay_us, callback)

    def advance_to(self, target_us: int) -> None:
        """
        Move time forward to target_us, firing every wake due on the way.

        Each wake observes now() equal to its own deadline when it fires.

        Raises:
            ClockMisuseError: If target_us is before now()
        """
        with self._lock:
            if target_us < self._now_us:
                raise ClockMisuseError(
                    f"Cannot move clock backwards from {self._now_us}us to {target_us}us"
                )
        while True:
            wake = self._pop_due(target_us)
            if wake is None:
                break
            self._fire(wake)
        with self._lock:
            # A callback cannot have moved time past target_us without going
            # through advance_to() itself, which keeps time monotonic.
            if target_us > self._now_us:
                self._now_us = target_us

    def advance_by(self, delta_us: int) -> None:
        """Move time forward by delta_us (must be non-negative)."""
        if delta_us < 0:
            raise ClockMisuseError(f"Cannot advance clock by negative delta {delta_us}us")
        self.advance_to(self.now() + delta_us)

    def run_due_wakes(self) -> int:
        """
        Fire every wake whose deadline is <= now().

        Wakes scheduled by the callbacks themselves for the current time are
        fired in the same call.

        Returns:
            Number of wakes fired
        """
        fired = 0
        while True:
            wake = self._pop_due(self.now())
            if wake is None:
                return fired
            self._fire(wake)
            fired += 1

    def drain_or_advance(self) -> bool:
        """
        Perform one cooperative step of the simulated timeline.

        Fires all wakes that are already due. If none were due and the clock
        is auto-advancing, jumps to the next pending deadline and fires the
        wakes due there.

        Returns:
            True if any wake fired, False if no progress was possible
        """
        if self.run_due_wakes():
            return True
        if not self._auto_advancing:
            return False
        next_deadline = self.next_wake_time()
        if next_deadline is None:
            return False
        logger.debug(f"[CLOCK] Auto-advancing {self.now()}us -> {next_deadline}us")
        self.advance_to(next_deadline)
        return True

    def wait_until(self, target_us: int) -> None:
        """
        Block (cooperatively) until now() >= target_us.

        Raises:
            ClockStallError: If the clock is not auto-advancing and target_us
                has not been reached yet
        """
        if self.now() >= target_us:
            return
        if not self._auto_advancing:
            raise ClockStallError(
                f"Clock at {self.now()}us cannot reach {target_us}us without auto-advance"
            )
        self.advance_to(target_us)

    def _pop_due(self, limit_us: int) -> Optional[_PendingWake]:
        with self._lock:
            self._discard_cancelled_head()
            if not self._wakes or self._wakes[0].deadline_us > limit_us:
                return None
            wake = heapq.heappop(self._wakes)
            wake.cancelled = True
            self._pending -= 1
            if wake.deadline_us > self._now_us:
                self._now_us = wake.deadline_us
            return wake

    def _fire(self, wake: _PendingWake) -> None:
        with self._lock:
            self._fired += 1
        wake.callback()

    def _cancel(self, wake: _PendingWake) -> None:
        with self._lock:
            if wake.cancelled:
                return
            wake.cancelled = True
            self._pending -= 1

    def _discard_cancelled_head(self) -> None:
        while self._wakes and self._wakes[0].cancelled:
            heapq.heappop(self._wakes)
