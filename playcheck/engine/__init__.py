"""
Engine module for playcheck.

This package contains the reference playlist engine the harness drives:
media items, media sources and the clock-driven player.
"""

from playcheck.engine.media_item import MediaItem, SubtitleConfiguration
from playcheck.engine.media_source import (
    MediaSource,
    MediaSourceError,
    MergingMediaSource,
    StaticMediaSource,
    UnsupportedMediaError,
)
from playcheck.engine.player import (
    MediaItemTransitionReason,
    PlaybackState,
    Player,
    PlayerListener,
    PlayerReleasedError,
)
from playcheck.engine.source_factory import MediaSourceFactory, load_source_factory
from playcheck.track_format import (
    Sample,
    SampleFlags,
    SelectionFlags,
    TrackFormat,
    TrackType,
)
from playcheck.engine.wav_source import WavMediaSource
from playcheck.engine.webvtt_source import WebVttMediaSource

__all__ = [
    "MediaItem",
    "SubtitleConfiguration",
    "MediaSource",
    "MediaSourceError",
    "MergingMediaSource",
    "StaticMediaSource",
    "UnsupportedMediaError",
    "MediaSourceFactory",
    "load_source_factory",
    "WavMediaSource",
    "WebVttMediaSource",
    "Player",
    "PlayerListener",
    "PlayerReleasedError",
    "PlaybackState",
    "MediaItemTransitionReason",
    "Sample",
    "SampleFlags",
    "SelectionFlags",
    "TrackFormat",
    "TrackType",
]
