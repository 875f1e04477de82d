"""
Renderers module for playcheck.

This package contains the capturing renderers that replace real decoders
and outputs, recording structural track events instead.
"""

from playcheck.renderers.base_renderer import BaseCapturingRenderer, RendererStateError
from playcheck.renderers.capturing_renderers import (
    AudioCapturingRenderer,
    MetadataCapturingRenderer,
    TextCapturingRenderer,
    VideoCapturingRenderer,
)
from playcheck.renderers.factory import CapturingRenderersFactory
from playcheck.renderers.sequencer import EventSequencer
from playcheck.renderers.track_event import (
    BufferReceived,
    BufferSkipped,
    FormatChanged,
    TrackDisabled,
    TrackEnded,
    TrackEvent,
)

__all__ = [
    "BaseCapturingRenderer",
    "RendererStateError",
    "AudioCapturingRenderer",
    "VideoCapturingRenderer",
    "TextCapturingRenderer",
    "MetadataCapturingRenderer",
    "CapturingRenderersFactory",
    "EventSequencer",
    "TrackEvent",
    "FormatChanged",
    "BufferReceived",
    "BufferSkipped",
    "TrackDisabled",
    "TrackEnded",
]
