"""
Concrete capturing renderers, one per track type.

They share the BaseCapturingRenderer contract and differ only in which
format fields they record and which MIME types they accept.
"""

from typing import Sequence, Tuple

from playcheck.track_format import TrackFormat, TrackType
from playcheck.renderers.base_renderer import BaseCapturingRenderer, RendererStateError


class _MimeCheckedRenderer(BaseCapturingRenderer):
    accepted_mime_prefixes: Tuple[str, ...] = ()

    def validate_format(self, fmt: TrackFormat) -> None:
        if not fmt.sample_mime_type.startswith(self.accepted_mime_prefixes):
            raise RendererStateError(
                f"{self.track_type.value} renderer cannot accept format {fmt.sample_mime_type}"
            )


class AudioCapturingRenderer(_MimeCheckedRenderer):
    track_type = TrackType.AUDIO
    accepted_mime_prefixes = ("audio/",)

    @property
    def format_field_names(self) -> Sequence[str]:
        return (
            "id",
            "sample_mime_type",
            "codecs",
            "bitrate",
            "channel_count",
            "sample_rate",
            "pcm_encoding",
            "language",
        )


class VideoCapturingRenderer(_MimeCheckedRenderer):
    track_type = TrackType.VIDEO
    accepted_mime_prefixes = ("video/", "image/")

    @property
    def format_field_names(self) -> Sequence[str]:
        return ("id", "sample_mime_type", "codecs", "bitrate", "width", "height", "frame_rate")


class TextCapturingRenderer(_MimeCheckedRenderer):
    track_type = TrackType.TEXT
    accepted_mime_prefixes = ("text/", "application/x-subrip", "application/ttml+xml")

    @property
    def format_field_names(self) -> Sequence[str]:
        return ("id", "sample_mime_type", "language", "selection_flags", "label")


class MetadataCapturingRenderer(_MimeCheckedRenderer):
    track_type = TrackType.METADATA
    accepted_mime_prefixes = ("application/",)

    @property
    def format_field_names(self) -> Sequence[str]:
        return ("id", "sample_mime_type")
