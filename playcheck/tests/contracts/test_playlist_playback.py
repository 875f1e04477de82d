"""
Golden playback tests for playlists.

Each scenario plays a short playlist to completion on an auto-advancing
simulated clock and compares the captured output with its committed
reference dump. Regenerate the dumps with:

    PLAYCHECK_ASSET_ROOT=playcheck/tests/assets \\
    PLAYCHECK_DUMP_ROOT=playcheck/tests/playbackdumps \\
    python -m playcheck update playcheck/tests/scenarios/playlists.json \\
        --source-factory playcheck.tests.contracts.test_doubles:create_media_source_factory
"""

import pytest

from playcheck.driver.scenario import Scenario, load_scenarios
from playcheck.engine.media_item import MediaItem, SubtitleConfiguration
from playcheck.engine.player import PlaybackState
from playcheck.golden.dump_file_asserts import ComparisonMode
from playcheck.tests.contracts.test_doubles import (
    BEAR_OPUS_URI,
    PREROLL_MP4_URI,
    SAMPLE_MP4_URI,
    SAMPLE_WAV_URI,
    SCENARIO_FILE,
    TYPICAL_VTT_URI,
)
from playcheck.track_format import SelectionFlags


class TestPlaylistPlayback:
    """Playlists of mixed containers play back item by item."""

    def test_wav_then_mka(self, driver):
        scenario = Scenario(
            name="wav_then_mka",
            playlist=(MediaItem.from_uri(SAMPLE_WAV_URI), MediaItem.from_uri(BEAR_OPUS_URI)),
            dump_path="playlists/wav_then_mka.dump",
        )
        outcome = driver.verify(scenario, ComparisonMode.ASSERT)
        assert outcome.state is PlaybackState.ENDED

    def test_mka_then_wav(self, driver):
        scenario = Scenario(
            name="mka_then_wav",
            playlist=(MediaItem.from_uri(BEAR_OPUS_URI), MediaItem.from_uri(SAMPLE_WAV_URI)),
            dump_path="playlists/mka_then_wav.dump",
        )
        driver.verify(scenario)

    def test_mp4_with_side_loaded_subtitles(self, driver):
        scenario = Scenario(
            name="mp4_with_subtitles",
            playlist=(
                MediaItem.from_uri(PREROLL_MP4_URI),
                MediaItem(
                    uri=SAMPLE_MP4_URI,
                    subtitle_configurations=(
                        SubtitleConfiguration(
                            uri=TYPICAL_VTT_URI,
                            mime_type="text/vtt",
                            language="en",
                            selection_flags=SelectionFlags.DEFAULT,
                        ),
                    ),
                ),
            ),
            dump_path="playlists/mp4_with_subtitles.dump",
        )
        outcome = driver.verify(scenario)

        text_records = outcome.output.for_track("text")
        assert [r.kind for r in text_records] == [
            "FORMAT_CHANGED", "BUFFER_RECEIVED", "BUFFER_RECEIVED", "TRACK_ENDED",
        ]


@pytest.mark.parametrize("scenario", load_scenarios(SCENARIO_FILE), ids=lambda s: s.name)
def test_committed_scenarios(driver, scenario):
    """Every scenario in the committed scenario file matches its reference dump."""
    outcome = driver.verify(scenario)
    assert outcome.state is scenario.expected_state
