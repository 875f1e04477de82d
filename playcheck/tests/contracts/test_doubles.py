"""
Test doubles (fakes, stubs, mocks) for playcheck contract tests.

Container formats the engine does not parse (Matroska, MP4) are stood in
for by StaticMediaSource builders with declared tracks and sample layouts.
The committed sample.wav (2000 mono 16-bit frames of a 440Hz sine at 8kHz)
matches what create_test_wav_file() synthesizes; other WAV layouts are
synthesized with numpy per test.
"""

import wave
from pathlib import Path
from typing import List, Tuple

import numpy as np

from playcheck.engine.media_item import MediaItem
from playcheck.engine.media_source import MediaSource, MediaSourceError, StaticMediaSource
from playcheck.engine.player import MediaItemTransitionReason, PlaybackState
from playcheck.engine.source_factory import MediaSourceFactory
from playcheck.track_format import Sample, SampleFlags, TrackFormat, TrackType


# Committed WAV layout: 2000 mono 16-bit frames @ 8kHz = 250ms
SAMPLE_WAV_URI = "asset:///media/wav/sample.wav"
SAMPLE_WAV_RATE = 8000
SAMPLE_WAV_FRAMES = 2000
SAMPLE_WAV_CHANNELS = 1

BEAR_OPUS_URI = "asset:///media/mka/bear-opus.mka"
PREROLL_MP4_URI = "asset:///media/mp4/preroll-5s.mp4"
SAMPLE_MP4_URI = "asset:///media/mp4/sample.mp4"
TYPICAL_VTT_URI = "asset:///media/webvtt/typical.vtt"
ENDLESS_URI = "asset:///media/endless.stream"

ASSETS_DIR = Path(__file__).parent.parent / "assets"
DUMP_ROOT = Path(__file__).parent.parent / "playbackdumps"
SCENARIO_FILE = Path(__file__).parent.parent / "scenarios" / "playlists.json"


def create_test_wav_file(
    path: Path,
    frames: int = SAMPLE_WAV_FRAMES,
    sample_rate: int = SAMPLE_WAV_RATE,
    channels: int = SAMPLE_WAV_CHANNELS,
    frequency: float = 440.0,
) -> None:
    """
    Create a 16-bit PCM WAV file with a sine wave.

    Args:
        path: Path to create WAV file
        frames: Number of PCM frames
        sample_rate: Sample rate in Hz
        channels: Number of channels (the same signal on every channel)
        frequency: Frequency of sine wave in Hz
    """
    t = np.arange(frames) / sample_rate
    mono = (np.sin(2 * np.pi * frequency * t) * 0.8 * 32767).astype(np.int16)
    interleaved = np.repeat(mono, channels)

    path.parent.mkdir(parents=True, exist_ok=True)
    with wave.open(str(path), "wb") as wav:
        wav.setnchannels(channels)
        wav.setsampwidth(2)
        wav.setframerate(sample_rate)
        wav.writeframes(interleaved.tobytes())


def create_bear_opus_source(uri: str = BEAR_OPUS_URI) -> StaticMediaSource:
    """Opus in Matroska: one decode-only pre-roll buffer, then three 20ms packets."""
    return StaticMediaSource(
        uri,
        tracks=[
            TrackFormat(
                sample_mime_type="audio/opus",
                id="1",
                codecs="opus",
                channel_count=2,
                sample_rate=48000,
                language="und",
            )
        ],
        samples=[
            Sample(TrackType.AUDIO, 0, 3, SampleFlags.KEY_FRAME | SampleFlags.DECODE_ONLY),
            Sample(TrackType.AUDIO, 0, 291, SampleFlags.KEY_FRAME),
            Sample(TrackType.AUDIO, 20000, 274, SampleFlags.KEY_FRAME),
            Sample(TrackType.AUDIO, 40000, 268, SampleFlags.KEY_FRAME),
        ],
        duration_us=60000,
    )


def create_mp4_source(uri: str) -> StaticMediaSource:
    """H.264 + AAC in MP4: two video frames (one key frame) and two audio frames."""
    return StaticMediaSource(
        uri,
        tracks=[
            TrackFormat(
                sample_mime_type="video/avc",
                id="1",
                codecs="avc1.64001F",
                width=1080,
                height=720,
                frame_rate=25.0,
            ),
            TrackFormat(
                sample_mime_type="audio/mp4a-latm",
                id="2",
                codecs="mp4a.40.2",
                channel_count=2,
                sample_rate=44100,
            ),
        ],
        samples=[
            Sample(TrackType.VIDEO, 0, 5000, SampleFlags.KEY_FRAME),
            Sample(TrackType.VIDEO, 40000, 900),
            Sample(TrackType.AUDIO, 0, 370, SampleFlags.KEY_FRAME),
            Sample(TrackType.AUDIO, 23219, 371, SampleFlags.KEY_FRAME),
        ],
        duration_us=50000,
    )


def create_endless_source(uri: str = ENDLESS_URI) -> StaticMediaSource:
    """A source whose duration is never reached within any sane event budget."""
    return StaticMediaSource(
        uri,
        tracks=[TrackFormat(sample_mime_type="audio/raw", channel_count=1, sample_rate=8000)],
        samples=[Sample(TrackType.AUDIO, 0, 16, SampleFlags.KEY_FRAME)],
        duration_us=10 ** 15,
    )


def create_media_source_factory(asset_root: Path, audio_buffer_samples: int = 1024) -> MediaSourceFactory:
    """
    MediaSourceFactory with the static Matroska/MP4 stand-ins registered.

    Also the source factory the CLI uses to regenerate the committed playlist
    dumps (--source-factory playcheck.tests.contracts.test_doubles:create_media_source_factory).
    """
    factory = MediaSourceFactory(asset_root=asset_root, audio_buffer_samples=audio_buffer_samples)
    factory.register(BEAR_OPUS_URI, create_bear_opus_source)
    factory.register(PREROLL_MP4_URI, lambda: create_mp4_source(PREROLL_MP4_URI))
    factory.register(SAMPLE_MP4_URI, lambda: create_mp4_source(SAMPLE_MP4_URI))
    factory.register(ENDLESS_URI, create_endless_source)
    return factory


class FailingMediaSource(MediaSource):
    """Source that fails to prepare with the given error code."""

    def __init__(self, uri: str, code: str) -> None:
        super().__init__(uri)
        self.code = code

    def _open(self) -> None:
        raise MediaSourceError(self.code, self.uri, "Simulated open failure")

    @property
    def tracks(self):
        return {}

    @property
    def duration_us(self):
        return None

    def samples(self):
        return iter(())


class RecordingPlayerListener:
    """PlayerListener that keeps every callback in order."""

    def __init__(self):
        self.calls: List[Tuple] = []

    @property
    def states(self) -> List[PlaybackState]:
        return [c[1] for c in self.calls if c[0] == "state"]

    def on_playback_state_changed(self, state: PlaybackState) -> None:
        self.calls.append(("state", state))

    def on_media_item_transition(self, index: int, item: MediaItem, reason: MediaItemTransitionReason) -> None:
        self.calls.append(("transition", index, item.uri, reason))

    def on_player_error(self, error: MediaSourceError) -> None:
        self.calls.append(("error", error.code, error.uri))
