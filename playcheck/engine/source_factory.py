"""
Media source resolution for the reference player.

Maps playlist URIs to sources: registered builders first, then files under
the asset root by extension. Custom factories (e.g. with declared stand-ins
for containers the engine cannot parse) can be named by a
"module:callable" reference and loaded with load_source_factory().
"""

import importlib
import logging
from pathlib import Path
from typing import Callable, Dict, Optional, Union
from urllib.parse import unquote, urlparse

from playcheck.engine.media_item import MediaItem, SubtitleConfiguration
from playcheck.engine.media_source import (
    MediaSource,
    MergingMediaSource,
    UnsupportedMediaError,
)
from playcheck.engine.wav_source import WavMediaSource
from playcheck.engine.webvtt_source import WebVttMediaSource

logger = logging.getLogger(__name__)

SourceBuilder = Callable[[], MediaSource]

SUBTITLE_MIME_TYPES = ("text/vtt",)


class MediaSourceFactory:
    """
    Resolves playlist URIs to media sources.

    Resolution order:
    1. Builders registered for the exact URI (declared/static media)
    2. asset:/// URIs relative to asset_root, file:// URIs and plain paths,
       dispatched on the file extension (.wav) or subtitle MIME type

    Network schemes are not supported.
    """

    def __init__(self, asset_root: Optional[Path] = None, audio_buffer_samples: int = 1024) -> None:
        self.asset_root = Path(asset_root) if asset_root is not None else Path.cwd()
        self.audio_buffer_samples = audio_buffer_samples
        self._registered: Dict[str, SourceBuilder] = {}

    def register(self, uri: str, builder: SourceBuilder) -> None:
        """Register a builder producing a fresh source for uri on every call."""
        self._registered[uri] = builder

    def is_registered(self, uri: str) -> bool:
        return uri in self._registered

    def create(self, item: MediaItem) -> MediaSource:
        """
        Build the (unprepared) source for a playlist entry.

        Raises:
            UnsupportedMediaError: If the URI or format is not supported
        """
        main = self._create_main(item.uri)
        if not item.subtitle_configurations:
            return main
        subtitles = [self._create_subtitle(config) for config in item.subtitle_configurations]
        return MergingMediaSource(main, subtitles)

    def resolve_path(self, uri: str) -> Path:
        """
        Map an asset:///, file:// or scheme-less URI to a filesystem path.

        Raises:
            UnsupportedMediaError: For any other scheme
        """
        parsed = urlparse(uri)
        if parsed.scheme == "asset":
            return self.asset_root / unquote(parsed.path).lstrip("/")
        if parsed.scheme == "file":
            return Path(unquote(parsed.path))
        if parsed.scheme == "" or len(parsed.scheme) == 1:
            # Scheme-less, or a Windows drive letter
            return Path(uri)
        raise UnsupportedMediaError(uri, f"Unsupported URI scheme {parsed.scheme!r}")

    def _create_main(self, uri: str) -> MediaSource:
        if uri in self._registered:
            return self._registered[uri]()
        path = self.resolve_path(uri)
        if path.suffix.lower() == ".wav":
            return WavMediaSource(uri, path, buffer_samples=self.audio_buffer_samples)
        raise UnsupportedMediaError(uri, f"No extractor for {path.suffix or 'extension-less'} media")

    def _create_subtitle(self, config: SubtitleConfiguration) -> MediaSource:
        if config.uri in self._registered:
            return self._registered[config.uri]()
        if config.mime_type not in SUBTITLE_MIME_TYPES:
            raise UnsupportedMediaError(config.uri, f"Unsupported subtitle MIME type {config.mime_type}")
        return WebVttMediaSource(config, self.resolve_path(config.uri))


def load_source_factory(
    reference: str,
    asset_root: Union[str, Path],
    audio_buffer_samples: int = 1024,
) -> MediaSourceFactory:
    """
    Build a MediaSourceFactory from a "module:callable" reference.

    The callable is invoked as callable(asset_root, audio_buffer_samples=...)
    and must return a MediaSourceFactory.

    Args:
        reference: Dotted module path and attribute, e.g. "pkg.media:build_factory"
        asset_root: Root directory for asset:/// URIs
        audio_buffer_samples: PCM frames per WAV buffer

    Returns:
        The factory built by the callable

    Raises:
        ValueError: If the reference is malformed, cannot be imported or does
            not produce a MediaSourceFactory
    """
    module_name, sep, attribute = reference.partition(":")
    if not sep or not module_name or not attribute:
        raise ValueError(f"Invalid source factory {reference!r} (expected 'module:callable')")
    try:
        module = importlib.import_module(module_name)
    except ImportError as e:
        raise ValueError(f"Cannot import source factory module {module_name!r}: {e}") from e
    builder = getattr(module, attribute, None)
    if not callable(builder):
        raise ValueError(f"Source factory {reference!r} is not a callable")

    factory = builder(Path(asset_root), audio_buffer_samples=audio_buffer_samples)
    if not isinstance(factory, MediaSourceFactory):
        raise ValueError(f"Source factory {reference!r} returned {type(factory).__name__}, not MediaSourceFactory")
    logger.info(f"[SOURCE] Using source factory {reference} (asset root {factory.asset_root})")
    return factory
