"""
Clock module for playcheck.

Virtual time used to make playback scenarios deterministic.
"""

from playcheck.clock.simulated_clock import (
    ClockMisuseError,
    ClockStallError,
    SimulatedClock,
    WakeHandle,
)

__all__ = ["SimulatedClock", "WakeHandle", "ClockMisuseError", "ClockStallError"]
