"""
Harness-level failures for playcheck.

Playback divergence is reported through AssertionError subclasses (see
playcheck.golden); the errors here signal that the harness itself could not
produce a verdict.
"""


class HarnessError(RuntimeError):
    """Base class for failures of the harness rather than of the engine's output."""


class NonTerminationError(HarnessError):
    """
    Raised when a scenario does not reach a terminal state.

    Attributes:
        events_processed: Clock wakes fired before giving up
        state: Player state when the run was abandoned
        stalled: True if the clock could make no further progress, False if
            the event budget was exhausted
    """

    def __init__(self, message: str, events_processed: int, state: str, stalled: bool = False) -> None:
        super().__init__(message)
        self.events_processed = events_processed
        self.state = state
        self.stalled = stalled


class OutputNotReadyError(HarnessError):
    """Raised when a playback output is requested before the player reached a terminal state."""
