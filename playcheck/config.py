"""
Configuration management for playcheck.

Reads configuration from an optional .env file and environment variables
with sensible defaults.
"""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

# Default .env file location
DEFAULT_ENV_FILE = Path("playcheck.env")

logger = logging.getLogger(__name__)


def _load_env_file() -> None:
    """Load environment variables from .env file if it exists."""
    env_path = Path(os.getenv("PLAYCHECK_ENV_FILE", str(DEFAULT_ENV_FILE)))
    if env_path.exists():
        load_dotenv(env_path, override=False)  # Don't override existing env vars


def _positive_int(name: str, default: int) -> int:
    raw = os.getenv(name, str(default))
    try:
        value = int(raw)
    except ValueError:
        raise ValueError(f"Invalid {name}: {raw} (must be an integer)")
    if value <= 0:
        raise ValueError(f"Invalid {name}: {raw} (must be > 0)")
    return value


@dataclass
class HarnessConfig:
    """playcheck configuration loaded from .env file and environment variables."""

    # Where reference dumps and test media live
    dump_root: Path = field(default_factory=lambda: Path("playbackdumps"))
    asset_root: Path = field(default_factory=lambda: Path("assets"))

    # Safety valve: clock wakes a scenario may consume before it is declared hung
    max_events: int = 100_000

    # Reference engine tuning
    work_interval_us: int = 10_000
    audio_buffer_samples: int = 1024
    # "module:callable" building the MediaSourceFactory; None for the built-in one
    source_factory: Optional[str] = None

    # Logging
    log_level: str = "INFO"

    @classmethod
    def load_config(cls) -> "HarnessConfig":
        """
        Load configuration from environment variables.

        Returns:
            HarnessConfig instance with loaded values

        Raises:
            ValueError: If configuration is invalid
        """
        _load_env_file()

        dump_root = Path(os.getenv("PLAYCHECK_DUMP_ROOT", "playbackdumps"))
        asset_root = Path(os.getenv("PLAYCHECK_ASSET_ROOT", "assets"))
        max_events = _positive_int("PLAYCHECK_MAX_EVENTS", 100_000)
        work_interval_us = _positive_int("PLAYCHECK_WORK_INTERVAL_US", 10_000)
        audio_buffer_samples = _positive_int("PLAYCHECK_AUDIO_BUFFER_SAMPLES", 1024)

        source_factory = os.getenv("PLAYCHECK_SOURCE_FACTORY", "").strip() or None
        if source_factory is not None and ":" not in source_factory:
            raise ValueError(f"Invalid PLAYCHECK_SOURCE_FACTORY: {source_factory} (expected module:callable)")

        log_level = os.getenv("PLAYCHECK_LOG_LEVEL", "INFO").upper()
        if log_level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"Invalid PLAYCHECK_LOG_LEVEL: {log_level}")

        config = cls(
            dump_root=dump_root,
            asset_root=asset_root,
            max_events=max_events,
            work_interval_us=work_interval_us,
            audio_buffer_samples=audio_buffer_samples,
            source_factory=source_factory,
            log_level=log_level,
        )
        logger.debug(f"Loaded configuration: {config}")
        return config
