"""
Media Item Model for playcheck.

Defines MediaItem and SubtitleConfiguration, the playlist entries a
scenario hands to the player.
"""

from dataclasses import dataclass, field
from typing import Optional, Tuple


@dataclass(frozen=True)
class SubtitleConfiguration:
    """
    A side-loaded subtitle track attached to a media item.

    Attributes:
        uri: Location of the subtitle file
        mime_type: Subtitle MIME type (e.g. "text/vtt")
        language: Optional BCP 47 language tag
        selection_flags: SelectionFlags bitmask (default, forced, autoselect)
        label: Optional human readable label
    """
    uri: str
    mime_type: str
    language: Optional[str] = None
    selection_flags: int = 0
    label: Optional[str] = None


@dataclass(frozen=True)
class MediaItem:
    """
    One playlist entry.

    Attributes:
        uri: Location of the main media
        subtitle_configurations: Side-loaded subtitle tracks, in order
        media_id: Optional identifier; defaults to the URI
    """
    uri: str
    subtitle_configurations: Tuple[SubtitleConfiguration, ...] = field(default=())
    media_id: Optional[str] = None

    @classmethod
    def from_uri(cls, uri: str) -> "MediaItem":
        return cls(uri=uri)

    @property
    def id(self) -> str:
        return self.media_id or self.uri
