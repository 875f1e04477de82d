"""
Scenario model for playcheck.

A scenario is one scripted playlist plus its expected outcome: the unit of
test execution. Scenarios are validated on construction so authoring
mistakes fail before any playback is driven.
"""

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Union

from playcheck.engine.media_item import MediaItem, SubtitleConfiguration
from playcheck.engine.player import PlaybackState
from playcheck.track_format import SelectionFlags

logger = logging.getLogger(__name__)


class ScenarioError(ValueError):
    """Raised for malformed scenarios or scenario files."""


@dataclass(frozen=True)
class Scenario:
    """
    Attributes:
        name: Unique scenario name
        playlist: Media items, played in order
        dump_path: Reference dump, relative to the dump root
        expected_state: Terminal state the run must end in
        max_events: Clock wakes allowed before the run is declared hung
            (None uses the configured default)
        auto_advancing: Whether the simulated clock skips idle gaps
    """
    name: str
    playlist: Tuple[MediaItem, ...]
    dump_path: str
    expected_state: PlaybackState = PlaybackState.ENDED
    max_events: Optional[int] = None
    auto_advancing: bool = True

    def __post_init__(self) -> None:
        if not self.name or not self.name.strip():
            raise ScenarioError("Scenario name must not be empty")
        if not isinstance(self.playlist, tuple):
            # Accept any sequence but store it immutably
            object.__setattr__(self, "playlist", tuple(self.playlist))
        if not self.playlist:
            raise ScenarioError(f"Scenario {self.name!r}: playlist must not be empty")
        for index, item in enumerate(self.playlist):
            if not isinstance(item, MediaItem):
                raise ScenarioError(f"Scenario {self.name!r}: playlist[{index}] is not a MediaItem")
            if not item.uri:
                raise ScenarioError(f"Scenario {self.name!r}: playlist[{index}] has no URI")
            for subtitle in item.subtitle_configurations:
                if not subtitle.uri or not subtitle.mime_type:
                    raise ScenarioError(
                        f"Scenario {self.name!r}: playlist[{index}] has a subtitle without URI or MIME type"
                    )
        if not self.expected_state.is_terminal:
            raise ScenarioError(
                f"Scenario {self.name!r}: expected_state must be terminal, got {self.expected_state.value}"
            )
        if not self.dump_path or not self.dump_path.endswith(".dump"):
            raise ScenarioError(f"Scenario {self.name!r}: dump path must end in .dump, got {self.dump_path!r}")
        if self.max_events is not None and self.max_events <= 0:
            raise ScenarioError(f"Scenario {self.name!r}: max_events must be > 0")

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Scenario":
        """
        Build a scenario from its JSON representation.

        Raises:
            ScenarioError: If a field is missing or has the wrong type
        """
        if not isinstance(data, dict):
            raise ScenarioError(f"Scenario entry must be an object, got {type(data).__name__}")
        name = data.get("name")
        if not isinstance(name, str):
            raise ScenarioError("Scenario entry is missing a string 'name'")
        playlist = data.get("playlist")
        if not isinstance(playlist, list):
            raise ScenarioError(f"Scenario {name!r}: 'playlist' must be a list")

        state_name = data.get("expected_state", PlaybackState.ENDED.value)
        try:
            expected_state = PlaybackState(str(state_name).upper())
        except ValueError:
            raise ScenarioError(f"Scenario {name!r}: unknown expected_state {state_name!r}")

        max_events = data.get("max_events")
        if max_events is not None and (isinstance(max_events, bool) or not isinstance(max_events, int)):
            raise ScenarioError(f"Scenario {name!r}: max_events must be an integer")

        return cls(
            name=name,
            playlist=tuple(_media_item_from_dict(name, entry) for entry in playlist),
            dump_path=str(data.get("dump", "")),
            expected_state=expected_state,
            max_events=max_events,
            auto_advancing=bool(data.get("auto_advancing", True)),
        )


def _media_item_from_dict(scenario_name: str, entry: Union[str, Dict[str, Any]]) -> MediaItem:
    if isinstance(entry, str):
        return MediaItem.from_uri(entry)
    if not isinstance(entry, dict) or not isinstance(entry.get("uri"), str):
        raise ScenarioError(f"Scenario {scenario_name!r}: playlist entries need a string 'uri'")
    subtitles = entry.get("subtitles", [])
    if not isinstance(subtitles, list):
        raise ScenarioError(f"Scenario {scenario_name!r}: 'subtitles' must be a list")
    return MediaItem(
        uri=entry["uri"],
        subtitle_configurations=tuple(_subtitle_from_dict(scenario_name, s) for s in subtitles),
        media_id=_string_field(scenario_name, entry, "media_id"),
    )


def _subtitle_from_dict(scenario_name: str, entry: Dict[str, Any]) -> SubtitleConfiguration:
    if not isinstance(entry, dict):
        raise ScenarioError(f"Scenario {scenario_name!r}: subtitle entries must be objects")
    flags = entry.get("selection_flags", [])
    try:
        if isinstance(flags, list):
            selection_flags = int(SelectionFlags.from_names(flags))
        elif isinstance(flags, int) and not isinstance(flags, bool):
            selection_flags = flags
        else:
            raise ValueError(f"selection_flags must be a list of names or an integer, got {flags!r}")
    except ValueError as e:
        raise ScenarioError(f"Scenario {scenario_name!r}: {e}")
    return SubtitleConfiguration(
        uri=_string_field(scenario_name, entry, "uri") or "",
        mime_type=_string_field(scenario_name, entry, "mime_type") or "",
        language=_string_field(scenario_name, entry, "language"),
        selection_flags=selection_flags,
        label=_string_field(scenario_name, entry, "label"),
    )


def _string_field(scenario_name: str, entry: Dict[str, Any], key: str) -> Optional[str]:
    """Optional string value of entry[key]; null and absent both give None."""
    value = entry.get(key)
    if value is not None and not isinstance(value, str):
        raise ScenarioError(f"Scenario {scenario_name!r}: {key!r} must be a string, got {value!r}")
    return value


def load_scenarios(path: Union[str, Path]) -> List[Scenario]:
    """
    Load scenarios from a JSON file of the form {"scenarios": [...]}.

    Raises:
        ScenarioError: If the file is unreadable, not valid JSON, malformed,
            or defines the same name twice
    """
    path = Path(path)
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except OSError as e:
        raise ScenarioError(f"Cannot read scenario file {path}: {e}")
    except json.JSONDecodeError as e:
        raise ScenarioError(f"Scenario file {path} is not valid JSON: {e}")

    entries = data.get("scenarios") if isinstance(data, dict) else None
    if not isinstance(entries, list):
        raise ScenarioError(f"Scenario file {path} must contain a 'scenarios' list")

    scenarios = [Scenario.from_dict(entry) for entry in entries]
    names = [s.name for s in scenarios]
    duplicates = sorted({n for n in names if names.count(n) > 1})
    if duplicates:
        raise ScenarioError(f"Scenario file {path} defines duplicate names: {', '.join(duplicates)}")
    logger.info(f"[DRIVER] Loaded {len(scenarios)} scenarios from {path}")
    return scenarios
