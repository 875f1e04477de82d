"""
Playback Driver for playcheck.

Runs one scenario end to end: builds a fresh clock, renderer layer, player
and recorder, feeds the playlist, drives the clock until the player reaches
a terminal state and always releases the player afterwards.
"""

import logging
from dataclasses import dataclass
from typing import Iterable, Optional

from playcheck.clock.simulated_clock import SimulatedClock
from playcheck.config import HarnessConfig
from playcheck.driver.scenario import Scenario
from playcheck.engine.player import PlaybackState, Player
from playcheck.engine.source_factory import MediaSourceFactory, load_source_factory
from playcheck.errors import NonTerminationError
from playcheck.golden.dump_file_asserts import ComparisonMode, check_output
from playcheck.recorder.playback_output import PlaybackOutput, PlaybackOutputRecorder
from playcheck.renderers.factory import CapturingRenderersFactory

logger = logging.getLogger(__name__)


class UnexpectedTerminalStateError(AssertionError):
    """The scenario ended in a terminal state other than the expected one."""

    def __init__(self, scenario_name: str, expected: PlaybackState, actual: PlaybackState,
                 error_code: Optional[str] = None) -> None:
        self.scenario_name = scenario_name
        self.expected = expected
        self.actual = actual
        self.error_code = error_code
        message = f"Scenario {scenario_name!r} ended in {actual.value}, expected {expected.value}"
        if error_code:
            message += f" (player error {error_code})"
        super().__init__(message)


@dataclass(frozen=True)
class TerminalOutcome:
    """
    Result of running a scenario to completion.

    Attributes:
        scenario_name: Scenario that was run
        state: Terminal state reached
        output: Recorded playback output
        error_code: Player error code when state is FAILED
        events_processed: Clock wakes fired during the run
        final_time_us: Simulated time when the run stopped
    """
    scenario_name: str
    state: PlaybackState
    output: PlaybackOutput
    error_code: Optional[str]
    events_processed: int
    final_time_us: int


def run_until_playback_state(
    player: Player,
    clock: SimulatedClock,
    states: Iterable[PlaybackState],
    max_events: int,
) -> int:
    """
    Drive the clock until the player is in one of states.

    Each iteration is a single clock.drain_or_advance() step; the budget
    counts clock wakes fired, so an engine that keeps rescheduling itself
    forever is stopped deterministically.

    Args:
        player: Player to observe
        clock: Clock the player schedules its work on
        states: Target states
        max_events: Maximum number of clock wakes to fire (must be > 0)

    Returns:
        Number of clock wakes fired

    Raises:
        ValueError: If max_events <= 0 or states is empty
        NonTerminationError: If the budget is exhausted or the clock can make
            no further progress before a target state is reached
    """
    targets = frozenset(states)
    if not targets:
        raise ValueError("At least one target state is required")
    if max_events <= 0:
        raise ValueError(f"max_events must be > 0, got {max_events}")

    start_fired = clock.fired_wake_count
    while player.playback_state not in targets:
        processed = clock.fired_wake_count - start_fired
        if processed >= max_events:
            raise NonTerminationError(
                f"No state in {sorted(s.value for s in targets)} after {processed} events "
                f"(state {player.playback_state.value} at {clock.now()}us)",
                events_processed=processed,
                state=player.playback_state.value,
            )
        if not clock.drain_or_advance():
            raise NonTerminationError(
                f"Clock stalled at {clock.now()}us in state {player.playback_state.value} "
                f"with {clock.pending_wake_count} pending wakes",
                events_processed=processed,
                state=player.playback_state.value,
                stalled=True,
            )
    return clock.fired_wake_count - start_fired


class PlaybackDriver:
    """
    Runs scenarios against the reference player.

    Every run gets its own clock, renderer layer, player and recorder;
    nothing is shared between runs except the media source factory, which
    holds no playback state.
    """

    def __init__(self, config: Optional[HarnessConfig] = None,
                 media_source_factory: Optional[MediaSourceFactory] = None) -> None:
        """
        Initialize driver.

        Args:
            config: Harness configuration (defaults to HarnessConfig())
            media_source_factory: Source factory; defaults to the one named by
                config.source_factory, else a plain one rooted at config.asset_root

        Raises:
            ValueError: If config.source_factory cannot be loaded
        """
        self.config = config or HarnessConfig()
        if media_source_factory is None:
            media_source_factory = self._default_source_factory()
        self.media_source_factory = media_source_factory

    def _default_source_factory(self) -> MediaSourceFactory:
        if self.config.source_factory:
            return load_source_factory(
                self.config.source_factory,
                self.config.asset_root,
                audio_buffer_samples=self.config.audio_buffer_samples,
            )
        return MediaSourceFactory(
            asset_root=self.config.asset_root,
            audio_buffer_samples=self.config.audio_buffer_samples,
        )

    def run(self, scenario: Scenario) -> TerminalOutcome:
        """
        Run scenario to a terminal state.

        The player is released on every exit path, including errors raised
        while driving it.

        Raises:
            NonTerminationError: If no terminal state is reached within the budget
        """
        max_events = scenario.max_events or self.config.max_events
        clock = SimulatedClock(auto_advancing=scenario.auto_advancing)
        renderers_factory = CapturingRenderersFactory()
        player = Player(
            clock,
            renderers_factory,
            media_source_factory=self.media_source_factory,
            work_interval_us=self.config.work_interval_us,
        )
        logger.info(f"[DRIVER] Running scenario {scenario.name!r} ({len(scenario.playlist)} items)")
        try:
            recorder = PlaybackOutputRecorder.register(player, renderers_factory)
            player.add_media_items(scenario.playlist)
            player.prepare()
            player.play()
            events = run_until_playback_state(
                player, clock, (PlaybackState.ENDED, PlaybackState.FAILED), max_events
            )
            output = recorder.dump()
            error = player.player_error
            outcome = TerminalOutcome(
                scenario_name=scenario.name,
                state=player.playback_state,
                output=output,
                error_code=error.code if error is not None else None,
                events_processed=events,
                final_time_us=clock.now(),
            )
        finally:
            player.release()

        logger.info(
            f"[DRIVER] Scenario {scenario.name!r} reached {outcome.state.value} after "
            f"{outcome.events_processed} events at {outcome.final_time_us}us ({len(outcome.output)} records)"
        )
        return outcome

    def verify(self, scenario: Scenario, mode: ComparisonMode = ComparisonMode.ASSERT) -> TerminalOutcome:
        """
        Run scenario and check it against its reference dump.

        Args:
            scenario: Scenario to run
            mode: ASSERT compares with the reference; UPDATE rewrites it

        Returns:
            The run's outcome

        Raises:
            UnexpectedTerminalStateError: If the terminal state is not the expected one
            DumpMismatchError: If the output differs from the reference
            MissingReferenceError: If the reference dump does not exist (ASSERT mode)
            NonTerminationError: If no terminal state is reached within the budget
        """
        outcome = self.run(scenario)
        if outcome.state is not scenario.expected_state:
            raise UnexpectedTerminalStateError(
                scenario.name, scenario.expected_state, outcome.state, outcome.error_code
            )
        check_output(outcome.output, scenario.dump_path, mode, dump_root=self.config.dump_root)
        return outcome
