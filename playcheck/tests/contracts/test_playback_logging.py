"""
Logging tests for a playback run.

Log records carry a bracketed component tag and never reach the dump.
"""

import logging

from playcheck.driver.scenario import Scenario
from playcheck.engine.media_item import MediaItem
from playcheck.tests.contracts.test_doubles import BEAR_OPUS_URI, SAMPLE_WAV_URI


def _scenario(*uris):
    return Scenario("logged", tuple(MediaItem.from_uri(u) for u in uris), "logged.dump")


class TestComponentTags:

    def test_run_logs_player_and_driver_milestones(self, driver, caplog):
        with caplog.at_level(logging.INFO):
            driver.run(_scenario(SAMPLE_WAV_URI, BEAR_OPUS_URI))

        messages = [r.getMessage() for r in caplog.records]
        assert any(m.startswith("[DRIVER] Running scenario 'logged'") for m in messages)
        assert any(m.startswith("[PLAYER] Media item 1 started: " + BEAR_OPUS_URI) for m in messages)
        assert any(m.startswith("[SOURCE] Loaded WAV " + SAMPLE_WAV_URI) for m in messages)
        assert any(m.startswith("[PLAYER] Released in state ENDED") for m in messages)
        assert any("reached ENDED" in m for m in messages)

    def test_failure_is_logged_as_error(self, driver, caplog):
        with caplog.at_level(logging.INFO):
            driver.run(_scenario("asset:///media/clip.ogv"))

        errors = [r for r in caplog.records if r.levelno == logging.ERROR]
        assert len(errors) == 1
        assert errors[0].name == "playcheck.engine.player"
        assert "[PLAYER] Playback failed on media item 0" in errors[0].getMessage()

    def test_logging_does_not_change_output(self, driver, caplog):
        scenario = _scenario(SAMPLE_WAV_URI)
        with caplog.at_level(logging.CRITICAL):
            quiet = driver.run(scenario).output.to_text()
        with caplog.at_level(logging.DEBUG):
            verbose = driver.run(scenario).output.to_text()
        assert quiet == verbose
        assert "[" not in verbose.replace("# playcheck-dump v1", "")
