"""
Track model for the reference playback engine.

Defines track types, format descriptors and sample records. These are the
structural facts the capturing renderers record; sample payloads are never
kept.
"""

from dataclasses import dataclass
from enum import Enum, IntFlag
from typing import Iterable, List, Optional, Tuple, Union

FieldValue = Union[int, float, str]


class TrackType(Enum):
    """Track types, declared in the fixed order used for renderers and dumps."""

    AUDIO = "audio"
    VIDEO = "video"
    TEXT = "text"
    METADATA = "metadata"

    @property
    def rank(self) -> int:
        return _TRACK_TYPE_ORDER.index(self)


_TRACK_TYPE_ORDER = list(TrackType)


class SampleFlags(IntFlag):
    """Per-buffer flags carried from the source to the renderer."""

    NONE = 0
    KEY_FRAME = 1
    DECODE_ONLY = 2
    LAST_SAMPLE = 4


class SelectionFlags(IntFlag):
    """Track selection flags for side-loaded and embedded tracks."""

    NONE = 0
    DEFAULT = 1
    FORCED = 2
    AUTOSELECT = 4

    @classmethod
    def from_names(cls, names: Iterable[str]) -> "SelectionFlags":
        """
        Build flags from names such as ["default", "forced"].

        Raises:
            ValueError: If a name is unknown
        """
        flags = cls.NONE
        for name in names:
            try:
                flags |= cls[name.strip().upper()]
            except KeyError:
                raise ValueError(f"Unknown selection flag: {name!r}")
        return flags


@dataclass(frozen=True)
class TrackFormat:
    """
    Format descriptor of one track.

    Only the fields relevant to a track type are normally set; unset fields
    are None and never appear in dumps.
    """
    sample_mime_type: str
    id: Optional[str] = None
    codecs: Optional[str] = None
    bitrate: Optional[int] = None
    channel_count: Optional[int] = None
    sample_rate: Optional[int] = None
    pcm_encoding: Optional[int] = None
    width: Optional[int] = None
    height: Optional[int] = None
    frame_rate: Optional[float] = None
    language: Optional[str] = None
    selection_flags: int = 0
    label: Optional[str] = None

    def dump_fields(self, names: Iterable[str]) -> List[Tuple[str, str]]:
        """
        Render the requested fields as (key, value) string pairs.

        Fields are emitted in the order given; None values and zero
        selection flags are left out so dumps stay compact.
        """
        pairs = []
        for name in names:
            value = getattr(self, name)
            if value is None:
                continue
            if name == "selection_flags" and not value:
                continue
            pairs.append((_camel(name), format_value(value)))
        return pairs


@dataclass(frozen=True)
class Sample:
    """
    One sample buffer produced by a media source.

    size is the payload length in bytes; the payload itself is not carried.
    """
    track_type: TrackType
    timestamp_us: int
    size: int
    flags: int = SampleFlags.NONE

    @property
    def is_decode_only(self) -> bool:
        return bool(self.flags & SampleFlags.DECODE_ONLY)


def format_value(value: FieldValue) -> str:
    """Render a scalar the same way on every run and every machine."""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, IntFlag):
        return str(int(value))
    if isinstance(value, float):
        if value.is_integer():
            return str(int(value))
        return repr(value)
    return str(value)


def _camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part.capitalize() for part in rest)
