"""
Shared pytest fixtures for playcheck contract tests.

Media lives in a per-session temporary asset root holding a copy of the
committed WAV and WebVTT fixtures. Reference dumps are read from the
committed playbackdumps directory and never written by the test run.
"""

import shutil

import pytest

from playcheck.clock.simulated_clock import SimulatedClock
from playcheck.config import HarnessConfig
from playcheck.driver.playback_driver import PlaybackDriver
from playcheck.engine.player import Player
from playcheck.renderers.factory import CapturingRenderersFactory
from playcheck.tests.contracts.test_doubles import (
    ASSETS_DIR,
    DUMP_ROOT,
    create_media_source_factory,
)


@pytest.fixture(scope="session")
def asset_root(tmp_path_factory):
    """Copy of the committed media fixtures."""
    root = tmp_path_factory.mktemp("assets")
    shutil.copytree(ASSETS_DIR, root, dirs_exist_ok=True)
    return root


@pytest.fixture
def dump_root():
    return DUMP_ROOT


@pytest.fixture
def media_source_factory(asset_root):
    return create_media_source_factory(asset_root)


@pytest.fixture
def harness_config(asset_root, dump_root):
    """Configuration pointing at the test assets and committed reference dumps."""
    return HarnessConfig(dump_root=dump_root, asset_root=asset_root, max_events=10_000)


@pytest.fixture
def driver(harness_config, media_source_factory):
    return PlaybackDriver(harness_config, media_source_factory=media_source_factory)


@pytest.fixture
def clock():
    """Manually driven clock (no auto-advance)."""
    return SimulatedClock()


@pytest.fixture
def auto_clock():
    return SimulatedClock(auto_advancing=True)


@pytest.fixture
def renderers_factory():
    return CapturingRenderersFactory()


@pytest.fixture
def player(auto_clock, renderers_factory, media_source_factory):
    """Player on an auto-advancing clock; released after the test."""
    p = Player(auto_clock, renderers_factory, media_source_factory=media_source_factory)
    yield p
    p.release()
