"""
Driver module for playcheck.

Scenario loading and the run-until-terminal playback driver.
"""

from playcheck.driver.playback_driver import (
    PlaybackDriver,
    TerminalOutcome,
    UnexpectedTerminalStateError,
    run_until_playback_state,
)
from playcheck.driver.scenario import Scenario, ScenarioError, load_scenarios

__all__ = [
    "PlaybackDriver",
    "Scenario",
    "ScenarioError",
    "TerminalOutcome",
    "UnexpectedTerminalStateError",
    "load_scenarios",
    "run_until_playback_state",
]
