"""
Base class for capturing renderers.

A capturing renderer stands in for a real audio, video, text or metadata
renderer. It accepts the fixed renderer capability set, validates each call
and records it as a TrackEvent through the shared EventSequencer.
"""

import logging
from abc import ABC, abstractmethod
from typing import List, Optional, Sequence

from playcheck.track_format import TrackFormat, TrackType
from playcheck.renderers.sequencer import EventSequencer
from playcheck.renderers.track_event import (
    BufferReceived,
    BufferSkipped,
    FormatChanged,
    TrackDisabled,
    TrackEnded,
    TrackEvent,
)

logger = logging.getLogger(__name__)


class RendererStateError(RuntimeError):
    """Raised when the engine drives a renderer out of order (e.g. buffers before a format)."""


class BaseCapturingRenderer(ABC):
    """
    Abstract base class for all capturing renderers.

    A capturing renderer stands in for a real decoder + output for one track
    type. Every notification is turned into a TrackEvent, appended to the
    renderer's own history and forwarded through the shared sequencer.
    Payloads are never decoded or kept.
    """

    track_type: TrackType

    def __init__(self, sequencer: EventSequencer) -> None:
        self._sequencer = sequencer
        self._events: List[TrackEvent] = []
        self._format: Optional[TrackFormat] = None
        self._enabled = False
        self._released = False
        self._discarded = 0

    @property
    @abstractmethod
    def format_field_names(self) -> Sequence[str]:
        """TrackFormat attributes recorded on a format change, in dump order."""
        ...

    @property
    def events(self) -> List[TrackEvent]:
        return list(self._events)

    @property
    def current_format(self) -> Optional[TrackFormat]:
        return self._format

    @property
    def is_enabled(self) -> bool:
        return self._enabled

    @property
    def discarded_count(self) -> int:
        """Number of calls ignored because they arrived after release()."""
        return self._discarded

    def on_format_changed(self, fmt: TrackFormat) -> Optional[TrackEvent]:
        """Record a format change; also (re)enables the renderer."""
        if self._reject_after_release("format change"):
            return None
        self.validate_format(fmt)
        self._format = fmt
        self._enabled = True
        pairs = tuple(fmt.dump_fields(self.format_field_names))
        return self._record(
            lambda seq: FormatChanged(seq, self.track_type, fmt, pairs)
        )

    def on_buffer_enqueued(self, timestamp_us: int, flags: int, size_bytes: int) -> Optional[TrackEvent]:
        """
        Record a sample buffer handed to the renderer.

        Raises:
            ValueError: If timestamp_us or size_bytes is negative
            RendererStateError: If no format has been received yet
        """
        if self._reject_after_release("buffer"):
            return None
        if timestamp_us < 0:
            raise ValueError(f"Buffer timestamp must be non-negative, got {timestamp_us}")
        if size_bytes < 0:
            raise ValueError(f"Buffer size must be non-negative, got {size_bytes}")
        self._require_format("buffer")
        return self._record(
            lambda seq: BufferReceived(seq, self.track_type, timestamp_us, int(flags), size_bytes)
        )

    def on_buffer_skipped(self, reason: str, timestamp_us: Optional[int] = None) -> Optional[TrackEvent]:
        """Record a buffer the engine decided not to render."""
        if self._reject_after_release("skipped buffer"):
            return None
        if not reason:
            raise ValueError("A skipped buffer must carry a reason")
        self._require_format("skipped buffer")
        return self._record(
            lambda seq: BufferSkipped(seq, self.track_type, reason, timestamp_us)
        )

    def on_disabled(self) -> Optional[TrackEvent]:
        if self._reject_after_release("disable"):
            return None
        self._enabled = False
        self._format = None
        return self._record(lambda seq: TrackDisabled(seq, self.track_type))

    def on_ended(self) -> Optional[TrackEvent]:
        if self._reject_after_release("end of track"):
            return None
        self._require_format("end of track")
        return self._record(lambda seq: TrackEnded(seq, self.track_type))

    def validate_format(self, fmt: TrackFormat) -> None:
        """Hook for subclasses to reject formats that make no sense for their track type."""
        return

    def release(self) -> None:
        """Stop recording. Safe to call multiple times."""
        if not self._released:
            logger.debug(f"[RENDERER] {self.track_type.value} renderer released after {len(self._events)} events")
        self._released = True
        self._enabled = False

    def _record(self, build) -> TrackEvent:
        event = self._sequencer.emit(build)
        self._events.append(event)
        return event

    def _require_format(self, what: str) -> None:
        if self._format is None:
            raise RendererStateError(
                f"{self.track_type.value} renderer received a {what} before any format"
            )

    def _reject_after_release(self, what: str) -> bool:
        if not self._released:
            return False
        self._discarded += 1
        logger.warning(f"[RENDERER] Ignoring {what} on released {self.track_type.value} renderer")
        return True
