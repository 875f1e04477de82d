"""
Media sources for the reference playback engine.

A media source exposes the tracks of one playlist entry and an ordered
stream of Sample records. Sources never hand out decoded payloads; the
harness only needs sample boundaries, flags and sizes.
"""

import heapq
import logging
from abc import ABC, abstractmethod
from typing import Dict, Iterable, Iterator, List, Optional

from playcheck.track_format import Sample, TrackFormat, TrackType

logger = logging.getLogger(__name__)


ERROR_CODE_IO_FILE_NOT_FOUND = "ERROR_CODE_IO_FILE_NOT_FOUND"
ERROR_CODE_IO_UNSPECIFIED = "ERROR_CODE_IO_UNSPECIFIED"
ERROR_CODE_PARSING_CONTAINER_MALFORMED = "ERROR_CODE_PARSING_CONTAINER_MALFORMED"
ERROR_CODE_PARSING_CONTAINER_UNSUPPORTED = "ERROR_CODE_PARSING_CONTAINER_UNSUPPORTED"


class MediaSourceError(Exception):
    """
    Raised when a source cannot be opened or read.

    Attributes:
        code: Stable error code recorded in dumps
        uri: URI of the media that failed
    """

    def __init__(self, code: str, uri: str, message: str) -> None:
        super().__init__(f"{code}: {uri}: {message}")
        self.code = code
        self.uri = uri


class UnsupportedMediaError(MediaSourceError):
    """Raised for URIs or formats the engine has no source for."""

    def __init__(self, uri: str, message: str) -> None:
        super().__init__(ERROR_CODE_PARSING_CONTAINER_UNSUPPORTED, uri, message)


def sample_order_key(sample: Sample):
    """Deterministic delivery order: by timestamp, then by track type order."""
    return (sample.timestamp_us, sample.track_type.rank)


class MediaSource(ABC):
    """
    Base class for media sources.

    Lifecycle: prepare() once, then samples() once, then release().
    """

    def __init__(self, uri: str) -> None:
        self.uri = uri
        self._prepared = False

    @property
    def is_prepared(self) -> bool:
        return self._prepared

    def prepare(self) -> None:
        """
        Open the media and read its track layout.

        Raises:
            MediaSourceError: If the media cannot be opened
        """
        if self._prepared:
            return
        self._open()
        self._prepared = True

    @abstractmethod
    def _open(self) -> None:
        ...

    @property
    @abstractmethod
    def tracks(self) -> Dict[TrackType, TrackFormat]:
        """Formats of the tracks present, keyed by track type."""
        ...

    @property
    @abstractmethod
    def duration_us(self) -> Optional[int]:
        """Media duration, or None when unknown (live or endless media)."""
        ...

    @abstractmethod
    def samples(self) -> Iterator[Sample]:
        """Yield samples across all tracks in sample_order_key order."""
        ...

    def release(self) -> None:
        """
        Release resources held by the source.

        Subclasses should override if cleanup is needed.
        """
        pass


class StaticMediaSource(MediaSource):
    """
    In-memory source with a declared track layout and sample list.

    Used for media whose container parsing is outside the harness (Matroska,
    MP4, ...): the track formats and sample boundaries are declared up front.
    """

    def __init__(
        self,
        uri: str,
        tracks: Iterable[TrackFormat],
        samples: Iterable[Sample],
        duration_us: Optional[int] = None,
        track_types: Optional[Iterable[TrackType]] = None,
    ) -> None:
        """
        Args:
            uri: URI the source stands in for
            tracks: Track formats; the track type is derived from the MIME type
                unless track_types gives it explicitly (same order)
            samples: Sample records (any order; sorted on construction)
            duration_us: Media duration; defaults to the last sample timestamp

        Raises:
            ValueError: If a sample references a track that is not declared
        """
        super().__init__(uri)
        formats = list(tracks)
        types = list(track_types) if track_types is not None else [track_type_for(f) for f in formats]
        if len(types) != len(formats):
            raise ValueError("track_types must give one type per track")
        self._tracks: Dict[TrackType, TrackFormat] = dict(zip(types, formats))
        self._samples: List[Sample] = sorted(samples, key=sample_order_key)
        for sample in self._samples:
            if sample.track_type not in self._tracks:
                raise ValueError(f"Sample for undeclared {sample.track_type.value} track in {uri}")
        if duration_us is None:
            duration_us = self._samples[-1].timestamp_us if self._samples else 0
        self._duration_us = duration_us

    def _open(self) -> None:
        logger.debug(f"[SOURCE] Static source {self.uri}: {len(self._samples)} samples")

    @property
    def tracks(self) -> Dict[TrackType, TrackFormat]:
        return dict(self._tracks)

    @property
    def duration_us(self) -> Optional[int]:
        return self._duration_us

    def samples(self) -> Iterator[Sample]:
        return iter(self._samples)


class MergingMediaSource(MediaSource):
    """
    Combines a main source with side-loaded sources (e.g. subtitles).

    Track types must not collide; samples are merged in delivery order.
    """

    def __init__(self, main: MediaSource, side_loaded: Iterable[MediaSource]) -> None:
        super().__init__(main.uri)
        self._sources = [main] + list(side_loaded)

    def _open(self) -> None:
        seen: Dict[TrackType, str] = {}
        try:
            for source in self._sources:
                source.prepare()
                for track_type in source.tracks:
                    if track_type in seen:
                        raise MediaSourceError(
                            ERROR_CODE_PARSING_CONTAINER_UNSUPPORTED,
                            source.uri,
                            f"{track_type.value} track already provided by {seen[track_type]}",
                        )
                    seen[track_type] = source.uri
        except MediaSourceError:
            # Not yet handed to the player; release whatever was opened
            for source in self._sources:
                if source.is_prepared:
                    source.release()
            raise

    @property
    def tracks(self) -> Dict[TrackType, TrackFormat]:
        merged: Dict[TrackType, TrackFormat] = {}
        for source in self._sources:
            merged.update(source.tracks)
        return merged

    @property
    def duration_us(self) -> Optional[int]:
        # The main media defines the item duration.
        return self._sources[0].duration_us

    def samples(self) -> Iterator[Sample]:
        return heapq.merge(*(s.samples() for s in self._sources), key=sample_order_key)

    def release(self) -> None:
        for source in self._sources:
            source.release()


def track_type_for(fmt: TrackFormat) -> TrackType:
    """
    Classify a format by its MIME type.

    Raises:
        ValueError: If the MIME type matches no track type
    """
    mime = fmt.sample_mime_type
    if mime.startswith("audio/"):
        return TrackType.AUDIO
    if mime.startswith(("video/", "image/")):
        return TrackType.VIDEO
    if mime.startswith("text/") or mime in ("application/x-subrip", "application/ttml+xml"):
        return TrackType.TEXT
    if mime.startswith("application/"):
        return TrackType.METADATA
    raise ValueError(f"Cannot classify MIME type {mime!r}")
