"""
PCM WAV media source for the reference player.
"""

import logging
import wave
from pathlib import Path
from typing import Dict, Iterator, Optional

import numpy as np

from playcheck.engine.media_source import (
    ERROR_CODE_IO_FILE_NOT_FOUND,
    ERROR_CODE_IO_UNSPECIFIED,
    ERROR_CODE_PARSING_CONTAINER_MALFORMED,
    MediaSource,
    MediaSourceError,
)
from playcheck.track_format import Sample, SampleFlags, TrackFormat, TrackType

logger = logging.getLogger(__name__)


class WavMediaSource(MediaSource):
    """
    PCM WAV source split into fixed-size sample buffers.

    - Reads the whole file with the wave module
    - Views the PCM as a numpy array of whole frames (one row per frame)
    - Yields one KEY_FRAME sample per buffer_samples frames; the last buffer
      may be shorter

    The PCM itself is never handed to a renderer, only buffer boundaries.
    """

    def __init__(self, uri: str, path: Path, buffer_samples: int = 1024) -> None:
        """
        Args:
            uri: URI the playlist used for this file
            path: Resolved file path
            buffer_samples: PCM frames per sample buffer (must be > 0)

        Raises:
            ValueError: If buffer_samples <= 0
        """
        super().__init__(uri)
        if buffer_samples <= 0:
            raise ValueError(f"buffer_samples must be > 0, got {buffer_samples}")
        self.path = Path(path)
        self.buffer_samples = buffer_samples
        self._frames: Optional[np.ndarray] = None
        self._format: Optional[TrackFormat] = None
        self._sample_rate = 0

    def _open(self) -> None:
        if not self.path.exists():
            raise MediaSourceError(ERROR_CODE_IO_FILE_NOT_FOUND, self.uri, "WAV file not found")
        try:
            with wave.open(str(self.path), "rb") as wav:
                channels = wav.getnchannels()
                sample_width = wav.getsampwidth()
                sample_rate = wav.getframerate()
                raw = wav.readframes(wav.getnframes())
        except (wave.Error, EOFError) as e:
            raise MediaSourceError(ERROR_CODE_PARSING_CONTAINER_MALFORMED, self.uri, f"Invalid WAV file: {e}")
        except OSError as e:
            raise MediaSourceError(ERROR_CODE_IO_UNSPECIFIED, self.uri, f"Cannot read WAV file: {e}")
        if sample_rate <= 0 or channels <= 0:
            raise MediaSourceError(
                ERROR_CODE_PARSING_CONTAINER_MALFORMED,
                self.uri,
                f"Invalid WAV header: {channels} channels @ {sample_rate}Hz",
            )

        frame_bytes = channels * sample_width
        whole = len(raw) - len(raw) % frame_bytes
        self._frames = np.frombuffer(raw[:whole], dtype=np.uint8).reshape(-1, frame_bytes)
        self._sample_rate = sample_rate
        self._format = TrackFormat(
            sample_mime_type="audio/raw",
            bitrate=sample_rate * frame_bytes * 8,
            channel_count=channels,
            sample_rate=sample_rate,
            pcm_encoding=sample_width * 8,
        )
        logger.info(
            f"[SOURCE] Loaded WAV {self.uri}: {len(self._frames)} frames, "
            f"{channels}ch @ {sample_rate}Hz, {sample_width * 8}-bit"
        )

    @property
    def tracks(self) -> Dict[TrackType, TrackFormat]:
        if self._format is None:
            return {}
        return {TrackType.AUDIO: self._format}

    @property
    def duration_us(self) -> Optional[int]:
        if self._frames is None:
            return None
        return len(self._frames) * 1_000_000 // self._sample_rate

    def samples(self) -> Iterator[Sample]:
        """
        Yield one sample per buffer of PCM frames.

        Timestamps are derived from the frame index so they never accumulate
        rounding error.

        Raises:
            RuntimeError: If the source is not prepared (or already released)
        """
        if self._frames is None:
            raise RuntimeError("prepare() must be called first")
        return self._buffers(self._frames)

    def _buffers(self, frames: np.ndarray) -> Iterator[Sample]:
        for start in range(0, len(frames), self.buffer_samples):
            chunk = frames[start:start + self.buffer_samples]
            yield Sample(
                track_type=TrackType.AUDIO,
                timestamp_us=start * 1_000_000 // self._sample_rate,
                size=chunk.nbytes,
                flags=SampleFlags.KEY_FRAME,
            )

    def release(self) -> None:
        self._frames = None
