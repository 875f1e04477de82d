"""
WebVTT subtitle source.

Parses cue timings only; styling, regions and cue settings are ignored.
Each cue becomes one TEXT sample whose size is the UTF-8 length of the cue
text.
"""

import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterator, List, Optional

from playcheck.engine.media_item import SubtitleConfiguration
from playcheck.engine.media_source import (
    ERROR_CODE_IO_FILE_NOT_FOUND,
    ERROR_CODE_IO_UNSPECIFIED,
    ERROR_CODE_PARSING_CONTAINER_MALFORMED,
    MediaSource,
    MediaSourceError,
)
from playcheck.track_format import Sample, SampleFlags, TrackFormat, TrackType

logger = logging.getLogger(__name__)

_TIMESTAMP = re.compile(r"^(?:(\d+):)?(\d{2}):(\d{2})\.(\d{3})$")
_TIMING_LINE = re.compile(r"^(\S+)\s+-->\s+(\S+)")
_SKIPPED_BLOCKS = ("NOTE", "STYLE", "REGION")


@dataclass(frozen=True)
class WebVttCue:
    start_us: int
    end_us: int
    text: str


def parse_timestamp(value: str) -> int:
    """
    Parse a WebVTT timestamp ("mm:ss.ttt" or "hh:mm:ss.ttt") to microseconds.

    Raises:
        ValueError: If the timestamp is malformed
    """
    match = _TIMESTAMP.match(value)
    if not match:
        raise ValueError(f"Invalid WebVTT timestamp: {value!r}")
    hours, minutes, seconds, millis = match.groups()
    total_ms = ((int(hours or 0) * 60 + int(minutes)) * 60 + int(seconds)) * 1000 + int(millis)
    return total_ms * 1000


def parse_webvtt(text: str) -> List[WebVttCue]:
    """
    Parse WebVTT text into cues ordered by start time.

    Raises:
        ValueError: If the header or a cue timing line is malformed
    """
    lines = text.splitlines()
    if not lines or not lines[0].startswith("WEBVTT"):
        raise ValueError("Missing WEBVTT header")

    # The header block (WEBVTT line plus optional metadata) ends at the first blank line.
    body_start = next((i for i, line in enumerate(lines) if not line.strip()), len(lines))

    blocks: List[List[str]] = []
    current: List[str] = []
    for line in lines[body_start:]:
        if line.strip():
            current.append(line.rstrip())
        elif current:
            blocks.append(current)
            current = []
    if current:
        blocks.append(current)

    cues = []
    for block in blocks:
        if block[0].startswith(_SKIPPED_BLOCKS):
            continue
        timing_index = 0 if "-->" in block[0] else 1
        if timing_index >= len(block) or "-->" not in block[timing_index]:
            raise ValueError(f"Cue without timing line: {block[0]!r}")
        match = _TIMING_LINE.match(block[timing_index])
        if not match:
            raise ValueError(f"Invalid cue timing line: {block[timing_index]!r}")
        start_us = parse_timestamp(match.group(1))
        end_us = parse_timestamp(match.group(2))
        if end_us < start_us:
            raise ValueError(f"Cue ends before it starts: {block[timing_index]!r}")
        cues.append(WebVttCue(start_us, end_us, "\n".join(block[timing_index + 1:])))

    cues.sort(key=lambda cue: cue.start_us)
    return cues


class WebVttMediaSource(MediaSource):
    """Side-loaded WebVTT subtitle track."""

    def __init__(self, config: SubtitleConfiguration, path: Path) -> None:
        super().__init__(config.uri)
        self.config = config
        self.path = Path(path)
        self._cues: Optional[List[WebVttCue]] = None

    def _open(self) -> None:
        if not self.path.exists():
            raise MediaSourceError(ERROR_CODE_IO_FILE_NOT_FOUND, self.uri, "Subtitle file not found")
        try:
            self._cues = parse_webvtt(self.path.read_text(encoding="utf-8-sig"))
        except (ValueError, UnicodeDecodeError) as e:
            raise MediaSourceError(ERROR_CODE_PARSING_CONTAINER_MALFORMED, self.uri, str(e))
        except OSError as e:
            raise MediaSourceError(ERROR_CODE_IO_UNSPECIFIED, self.uri, f"Cannot read subtitle file: {e}")
        logger.info(f"[SOURCE] Loaded WebVTT {self.uri}: {len(self._cues)} cues")

    @property
    def tracks(self) -> Dict[TrackType, TrackFormat]:
        return {
            TrackType.TEXT: TrackFormat(
                sample_mime_type=self.config.mime_type,
                language=self.config.language,
                selection_flags=self.config.selection_flags,
                label=self.config.label,
            )
        }

    @property
    def duration_us(self) -> Optional[int]:
        if not self._cues:
            return None if self._cues is None else 0
        return max(cue.end_us for cue in self._cues)

    def samples(self) -> Iterator[Sample]:
        """
        Raises:
            RuntimeError: If the source is not prepared
        """
        if self._cues is None:
            raise RuntimeError("prepare() must be called first")
        return self._cue_samples(self._cues)

    def _cue_samples(self, cues: List[WebVttCue]) -> Iterator[Sample]:
        for cue in cues:
            yield Sample(
                track_type=TrackType.TEXT,
                timestamp_us=cue.start_us,
                size=len(cue.text.encode("utf-8")),
                flags=SampleFlags.KEY_FRAME,
            )
