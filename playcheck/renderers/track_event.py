"""
Track events recorded by the capturing renderers.

Each renderer call becomes exactly one immutable TrackEvent carrying the
sequence index assigned by the shared EventSequencer.
"""

from dataclasses import dataclass
from typing import ClassVar, List, Optional, Tuple

from playcheck.track_format import TrackFormat, TrackType, format_value

FieldPairs = Tuple[Tuple[str, str], ...]


@dataclass(frozen=True)
class TrackEvent:
    """
    Base class for all renderer events.

    Attributes:
        sequence: Position in the scenario-wide event log
        track_type: Track type of the renderer that received the call
    """
    kind: ClassVar[str] = "TRACK_EVENT"

    sequence: int
    track_type: TrackType

    @property
    def track(self) -> str:
        return self.track_type.value

    def fields(self) -> List[Tuple[str, str]]:
        """Event-specific payload as ordered (key, value) string pairs."""
        return []


@dataclass(frozen=True)
class FormatChanged(TrackEvent):
    """The renderer was handed a new format; format_fields is what the renderer type cares about."""
    kind: ClassVar[str] = "FORMAT_CHANGED"

    format: TrackFormat
    format_fields: FieldPairs

    def fields(self) -> List[Tuple[str, str]]:
        return list(self.format_fields)


@dataclass(frozen=True)
class BufferReceived(TrackEvent):
    kind: ClassVar[str] = "BUFFER_RECEIVED"

    timestamp_us: int
    flags: int
    size: int

    def fields(self) -> List[Tuple[str, str]]:
        return [
            ("timeUs", format_value(self.timestamp_us)),
            ("flags", format_value(int(self.flags))),
            ("size", format_value(self.size)),
        ]


@dataclass(frozen=True)
class BufferSkipped(TrackEvent):
    kind: ClassVar[str] = "BUFFER_SKIPPED"

    reason: str
    timestamp_us: Optional[int] = None

    def fields(self) -> List[Tuple[str, str]]:
        pairs = []
        if self.timestamp_us is not None:
            pairs.append(("timeUs", format_value(self.timestamp_us)))
        pairs.append(("reason", self.reason))
        return pairs


@dataclass(frozen=True)
class TrackDisabled(TrackEvent):
    kind: ClassVar[str] = "TRACK_DISABLED"


@dataclass(frozen=True)
class TrackEnded(TrackEvent):
    kind: ClassVar[str] = "TRACK_ENDED"
