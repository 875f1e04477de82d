"""
Playback Output Recorder for playcheck.

Observes a player and its capturing renderers and keeps a single
append-only log of everything they report. Player events and track events
draw their sequence indexes from the same EventSequencer, so the log is a
total order across all tracks and the player.
"""

import logging
import threading
from dataclasses import dataclass
from typing import Iterable, List, Optional, Tuple

from playcheck.engine.media_item import MediaItem
from playcheck.engine.media_source import MediaSourceError
from playcheck.engine.player import MediaItemTransitionReason, PlaybackState, Player
from playcheck.errors import HarnessError, OutputNotReadyError
from playcheck.recorder.dump_format import OutputRecord, parse_dump, render_dump
from playcheck.renderers.factory import CapturingRenderersFactory
from playcheck.renderers.track_event import TrackEvent

logger = logging.getLogger(__name__)

PLAYER_TRACK = "player"

KIND_STATE_CHANGED = "STATE_CHANGED"
KIND_MEDIA_ITEM_TRANSITION = "MEDIA_ITEM_TRANSITION"
KIND_PLAYER_ERROR = "PLAYER_ERROR"


@dataclass(frozen=True)
class PlaybackOutput:
    """
    Immutable, ordered capture of one scenario run.

    Attributes:
        records: Output records in sequence order
    """
    records: Tuple[OutputRecord, ...]

    def __len__(self) -> int:
        return len(self.records)

    def to_text(self) -> str:
        """Canonical dump serialization."""
        return render_dump(self.records)

    @classmethod
    def from_text(cls, text: str) -> "PlaybackOutput":
        """
        Parse dump text back into a PlaybackOutput.

        Raises:
            DumpFormatError: If the text is not a valid dump
        """
        return cls(tuple(parse_dump(text)))

    def for_track(self, track: str) -> List[OutputRecord]:
        return [r for r in self.records if r.track == track]

    def kinds(self) -> List[Tuple[str, str]]:
        """(track, kind) pairs in order; handy for structural assertions."""
        return [(r.track, r.kind) for r in self.records]


class PlaybackOutputRecorder:
    """
    Recorder attached to one player and its renderer layer.

    Use register() rather than the constructor so listeners are attached
    before the first event can be emitted.
    """

    def __init__(self, renderers_factory: CapturingRenderersFactory) -> None:
        self._sequencer = renderers_factory.sequencer
        self._records: List[OutputRecord] = []
        self._state = PlaybackState.IDLE
        self._lock = threading.RLock()

    @classmethod
    def register(cls, player: Player, renderers_factory: CapturingRenderersFactory) -> "PlaybackOutputRecorder":
        """
        Attach a new recorder to player and renderers_factory.

        Args:
            player: Player whose state transitions, item transitions and errors are recorded
            renderers_factory: Renderer layer whose track events are recorded

        Returns:
            The attached recorder
        """
        recorder = cls(renderers_factory)
        recorder._state = player.playback_state
        renderers_factory.add_event_listener(recorder._on_track_event)
        player.add_listener(recorder)
        logger.debug("[RECORDER] Registered on player and renderer layer")
        return recorder

    @property
    def playback_state(self) -> PlaybackState:
        """Last state reported by the player."""
        return self._state

    @property
    def record_count(self) -> int:
        with self._lock:
            return len(self._records)

    def dump(self) -> PlaybackOutput:
        """
        Return the captured output.

        Raises:
            OutputNotReadyError: If the player has not reached a terminal state
        """
        with self._lock:
            if not self._state.is_terminal:
                raise OutputNotReadyError(
                    f"Playback output requested in non-terminal state {self._state.value}"
                )
            return PlaybackOutput(tuple(self._records))

    # PlayerListener

    def on_playback_state_changed(self, state: PlaybackState) -> None:
        self._state = state
        self._emit_player_event(KIND_STATE_CHANGED, [("state", state.value)])

    def on_media_item_transition(self, index: int, item: MediaItem, reason: MediaItemTransitionReason) -> None:
        self._emit_player_event(
            KIND_MEDIA_ITEM_TRANSITION,
            [("index", str(index)), ("uri", item.uri), ("reason", reason.value)],
        )

    def on_player_error(self, error: MediaSourceError) -> None:
        # Only the stable code and URI are recorded; messages may carry local paths.
        self._emit_player_event(KIND_PLAYER_ERROR, [("code", error.code), ("uri", error.uri)])

    # Internals

    def _emit_player_event(self, kind: str, fields: Iterable[Tuple[str, str]]) -> None:
        pairs = tuple(fields)
        self._sequencer.emit(lambda seq: self._append(OutputRecord(seq, PLAYER_TRACK, kind, pairs)))

    def _on_track_event(self, event: object) -> None:
        if not isinstance(event, TrackEvent):
            return
        self._append(OutputRecord(event.sequence, event.track, event.kind, tuple(event.fields())))

    def _append(self, record: OutputRecord) -> OutputRecord:
        with self._lock:
            last: Optional[OutputRecord] = self._records[-1] if self._records else None
            if last is not None and record.sequence <= last.sequence:
                raise HarnessError(
                    f"Out-of-order record {record.sequence} after {last.sequence}"
                )
            self._records.append(record)
        return record
