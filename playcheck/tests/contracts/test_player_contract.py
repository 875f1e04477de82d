"""
Contract tests for the reference Player.

Tests cover:
- State machine (IDLE -> BUFFERING -> READY -> ENDED / FAILED)
- Strictly sequential items; tracks of consecutive items never interleave
- Disabling renderers whose track is absent from the next item
- Decode-only samples are skipped, not rendered
- All progress happens through clock wakes
- release() halts work and rejects further use
"""

import pytest

from playcheck.clock.simulated_clock import SimulatedClock
from playcheck.engine.media_item import MediaItem
from playcheck.engine.media_source import ERROR_CODE_IO_FILE_NOT_FOUND
from playcheck.engine.player import (
    MediaItemTransitionReason,
    PlaybackState,
    Player,
    PlayerReleasedError,
)
from playcheck.renderers.factory import CapturingRenderersFactory
from playcheck.renderers.track_event import BufferReceived, BufferSkipped, TrackDisabled
from playcheck.tests.contracts.test_doubles import (
    BEAR_OPUS_URI,
    PREROLL_MP4_URI,
    SAMPLE_WAV_URI,
    FailingMediaSource,
    RecordingPlayerListener,
)
from playcheck.track_format import TrackType


def _run(player, clock, limit=10_000):
    for _ in range(limit):
        if player.playback_state.is_terminal:
            return
        assert clock.drain_or_advance(), "Player stalled"
    pytest.fail("Player did not reach a terminal state")


class TestStateMachine:
    """Player states follow IDLE -> BUFFERING -> READY -> ENDED."""

    def test_single_item_states(self, player, auto_clock):
        listener = RecordingPlayerListener()
        player.add_listener(listener)
        assert player.playback_state is PlaybackState.IDLE

        player.add_media_item(MediaItem.from_uri(SAMPLE_WAV_URI))
        player.prepare()
        assert player.playback_state is PlaybackState.BUFFERING
        player.play()
        _run(player, auto_clock)

        assert listener.states == [PlaybackState.BUFFERING, PlaybackState.READY, PlaybackState.ENDED]
        assert listener.calls[1] == ("transition", 0, SAMPLE_WAV_URI, MediaItemTransitionReason.INITIAL)

    def test_prepare_empty_playlist_raises(self, player):
        with pytest.raises(RuntimeError):
            player.prepare()

    def test_prepare_twice_is_ignored(self, player):
        player.add_media_item(MediaItem.from_uri(SAMPLE_WAV_URI))
        player.prepare()
        player.prepare()
        assert player.playback_state is PlaybackState.BUFFERING

    def test_cannot_add_items_after_end(self, player, auto_clock):
        player.add_media_item(MediaItem.from_uri(BEAR_OPUS_URI))
        player.prepare()
        player.play()
        _run(player, auto_clock)
        with pytest.raises(RuntimeError):
            player.add_media_item(MediaItem.from_uri(SAMPLE_WAV_URI))

    def test_work_interval_must_be_positive(self, auto_clock):
        with pytest.raises(ValueError):
            Player(auto_clock, CapturingRenderersFactory(), work_interval_us=0)


class TestSequentialItems:
    """Item N's tracks end before item N+1's tracks start."""

    def test_no_interleaving_between_items(self, player, auto_clock, renderers_factory):
        listener = RecordingPlayerListener()
        player.add_listener(listener)
        player.add_media_items([MediaItem.from_uri(SAMPLE_WAV_URI), MediaItem.from_uri(BEAR_OPUS_URI)])
        player.prepare()
        player.play()
        _run(player, auto_clock)

        audio = renderers_factory.renderer_for(TrackType.AUDIO).events
        kinds = [e.kind for e in audio]
        assert kinds == [
            "FORMAT_CHANGED", "BUFFER_RECEIVED", "BUFFER_RECEIVED", "TRACK_ENDED",
            "FORMAT_CHANGED", "BUFFER_SKIPPED", "BUFFER_RECEIVED", "BUFFER_RECEIVED", "BUFFER_RECEIVED",
            "TRACK_ENDED",
        ]
        assert audio[0].format.sample_mime_type == "audio/raw"
        assert audio[4].format.sample_mime_type == "audio/opus"
        transitions = [c for c in listener.calls if c[0] == "transition"]
        assert transitions[1] == ("transition", 1, BEAR_OPUS_URI, MediaItemTransitionReason.AUTO)

    def test_absent_track_is_disabled_on_next_item(self, player, auto_clock, renderers_factory):
        player.add_media_items([MediaItem.from_uri(PREROLL_MP4_URI), MediaItem.from_uri(SAMPLE_WAV_URI)])
        player.prepare()
        player.play()
        _run(player, auto_clock)

        video = renderers_factory.renderer_for(TrackType.VIDEO)
        assert isinstance(video.events[-1], TrackDisabled)
        assert not video.is_enabled
        assert [e.kind for e in renderers_factory.renderer_for(TrackType.TEXT).events] == []

    def test_buffers_delivered_in_timestamp_then_track_order(self, player, auto_clock, renderers_factory):
        seen = []
        renderers_factory.add_event_listener(seen.append)
        player.add_media_item(MediaItem.from_uri(PREROLL_MP4_URI))
        player.prepare()
        player.play()
        _run(player, auto_clock)

        buffers = [(e.timestamp_us, e.track) for e in seen if isinstance(e, BufferReceived)]
        assert buffers == [(0, "audio"), (0, "video"), (23219, "audio"), (40000, "video")]

    def test_decode_only_samples_are_skipped(self, player, auto_clock, renderers_factory):
        player.add_media_item(MediaItem.from_uri(BEAR_OPUS_URI))
        player.prepare()
        player.play()
        _run(player, auto_clock)

        skipped = [e for e in renderers_factory.renderer_for(TrackType.AUDIO).events if isinstance(e, BufferSkipped)]
        assert len(skipped) == 1
        assert skipped[0].reason == "decode_only"
        assert skipped[0].timestamp_us == 0


class TestClockDrivenProgress:
    """The player only progresses through wakes on its clock."""

    def test_nothing_happens_without_clock_progress(self, renderers_factory, media_source_factory):
        clock = SimulatedClock()
        player = Player(clock, renderers_factory, media_source_factory=media_source_factory)
        player.add_media_item(MediaItem.from_uri(SAMPLE_WAV_URI))
        player.prepare()
        player.play()

        assert player.playback_state is PlaybackState.BUFFERING
        assert renderers_factory.sequencer.emitted_count == 0
        assert clock.pending_wake_count == 1

        clock.run_due_wakes()
        assert player.playback_state is PlaybackState.READY
        assert clock.next_wake_time() == player.work_interval_us
        player.release()

    def test_playback_duration_follows_media_duration(self, player, auto_clock):
        player.add_media_item(MediaItem.from_uri(SAMPLE_WAV_URI))
        player.prepare()
        player.play()
        _run(player, auto_clock)
        # 250ms of media at a 10ms work interval ends on the tick at 240ms
        assert auto_clock.now() == 240_000

    def test_pause_stops_and_play_resumes(self, player, auto_clock):
        player.add_media_item(MediaItem.from_uri(SAMPLE_WAV_URI))
        player.prepare()
        player.play()
        auto_clock.drain_or_advance()
        auto_clock.drain_or_advance()
        position = player.current_position_us

        player.pause()
        auto_clock.drain_or_advance()
        assert player.current_position_us == position
        assert not auto_clock.drain_or_advance(), "Paused player MUST NOT schedule further work"

        player.play()
        _run(player, auto_clock)
        assert player.playback_state is PlaybackState.ENDED


class TestFailure:
    """Source errors move the player to FAILED."""

    def test_missing_file_fails(self, player, auto_clock):
        listener = RecordingPlayerListener()
        player.add_listener(listener)
        player.add_media_item(MediaItem.from_uri("asset:///media/wav/missing.wav"))
        player.prepare()
        player.play()
        _run(player, auto_clock)

        assert player.playback_state is PlaybackState.FAILED
        assert player.player_error.code == ERROR_CODE_IO_FILE_NOT_FOUND
        assert listener.calls[-2] == ("error", ERROR_CODE_IO_FILE_NOT_FOUND, "asset:///media/wav/missing.wav")
        assert listener.states[-1] is PlaybackState.FAILED

    def test_failure_on_second_item_ends_first_item_tracks(self, player, auto_clock, media_source_factory,
                                                           renderers_factory):
        media_source_factory.register("asset:///broken.mka", lambda: FailingMediaSource("asset:///broken.mka", "E_TEST"))
        player.add_media_items([MediaItem.from_uri(BEAR_OPUS_URI), MediaItem.from_uri("asset:///broken.mka")])
        player.prepare()
        player.play()
        _run(player, auto_clock)

        assert player.playback_state is PlaybackState.FAILED
        assert player.player_error.code == "E_TEST"
        assert renderers_factory.renderer_for(TrackType.AUDIO).events[-1].kind == "TRACK_ENDED"


class TestRelease:
    """release() halts all pending work synchronously."""

    def test_release_cancels_pending_work(self, player, auto_clock, renderers_factory):
        player.add_media_item(MediaItem.from_uri(SAMPLE_WAV_URI))
        player.prepare()
        player.play()
        auto_clock.drain_or_advance()
        emitted = renderers_factory.sequencer.emitted_count

        player.release()

        assert player.is_released
        assert auto_clock.pending_wake_count == 0
        assert not auto_clock.drain_or_advance()
        assert renderers_factory.sequencer.emitted_count == emitted

    def test_control_calls_after_release_raise(self, player):
        player.release()
        player.release()
        with pytest.raises(PlayerReleasedError):
            player.play()
        with pytest.raises(PlayerReleasedError):
            player.add_media_item(MediaItem.from_uri(SAMPLE_WAV_URI))
        with pytest.raises(PlayerReleasedError):
            player.prepare()


class ReleasingPlayerListener(RecordingPlayerListener):
    """Releases the player from inside a callback once `when` matches."""

    def __init__(self, player, when):
        super().__init__()
        self.player = player
        self.when = when

    def on_playback_state_changed(self, state):
        super().on_playback_state_changed(state)
        if self.when(self.calls[-1]):
            self.player.release()

    def on_media_item_transition(self, index, item, reason):
        super().on_media_item_transition(index, item, reason)
        if self.when(self.calls[-1]):
            self.player.release()


def _drain(clock, limit=1_000):
    for _ in range(limit):
        if not clock.drain_or_advance():
            return
    pytest.fail("Clock kept making progress after release")


class TestReleaseFromCallback:
    """release() called from inside a player or renderer callback halts the work loop."""

    def test_release_from_state_listener(self, player, auto_clock, renderers_factory):
        releasing = ReleasingPlayerListener(player, lambda call: call == ("state", PlaybackState.READY))
        later = RecordingPlayerListener()
        player.add_listener(releasing)
        player.add_listener(later)
        player.add_media_item(MediaItem.from_uri(SAMPLE_WAV_URI))
        player.prepare()
        player.play()

        _drain(auto_clock)

        assert player.is_released
        assert auto_clock.pending_wake_count == 0
        assert releasing.states == [PlaybackState.BUFFERING, PlaybackState.READY]
        assert later.states == [PlaybackState.BUFFERING], "listeners MUST NOT be called after release"
        events = renderers_factory.renderer_for(TrackType.AUDIO).events
        assert [e.kind for e in events] == ["FORMAT_CHANGED"]

    def test_release_from_transition_listener(self, player, auto_clock, renderers_factory):
        releasing = ReleasingPlayerListener(player, lambda call: call[0] == "transition" and call[1] == 1)
        player.add_listener(releasing)
        player.add_media_items([MediaItem.from_uri(SAMPLE_WAV_URI), MediaItem.from_uri(BEAR_OPUS_URI)])
        player.prepare()
        player.play()

        _drain(auto_clock)

        assert player.is_released
        assert player.current_media_item_index == 1
        events = renderers_factory.renderer_for(TrackType.AUDIO).events
        assert events[-1].kind == "TRACK_ENDED"
        assert sum(1 for e in events if e.kind == "FORMAT_CHANGED") == 1

    def test_release_from_sequencer_listener(self, player, auto_clock, renderers_factory):
        received = []

        def release_on_first_buffer(event):
            if isinstance(event, BufferReceived):
                received.append(event)
                player.release()

        renderers_factory.add_event_listener(release_on_first_buffer)
        player.add_media_item(MediaItem.from_uri(PREROLL_MP4_URI))
        player.prepare()
        player.play()

        _drain(auto_clock)

        assert player.is_released
        assert auto_clock.pending_wake_count == 0
        assert len(received) == 1, "no buffer MUST be delivered after release"
        assert received[0].track_type is TrackType.AUDIO
        video = renderers_factory.renderer_for(TrackType.VIDEO).events
        assert not any(isinstance(e, BufferReceived) for e in video)
