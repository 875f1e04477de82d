"""
Reference playlist player for playcheck.

Plays a list of media items through injected renderers, pulling all time
from an injected clock. The player has no threads: its work loop is a chain
of one-shot wakes scheduled on the clock, so a SimulatedClock fully decides
when (and whether) playback progresses.

Work loop (one tick per work interval):
- BUFFERING: open the current item's source, announce the item, hand the
  track formats to the renderers, then become READY
- READY and playing: advance the position by one interval and deliver every
  sample with a timestamp before the new position
- Once the item's samples are exhausted and its duration is reached, end
  the item's tracks and move to the next item (or ENDED)
"""

import logging
from enum import Enum
from typing import Dict, Iterable, Iterator, List, Optional, Protocol

from playcheck.clock.simulated_clock import SimulatedClock, WakeHandle
from playcheck.engine.media_item import MediaItem
from playcheck.engine.media_source import MediaSource, MediaSourceError
from playcheck.engine.source_factory import MediaSourceFactory
from playcheck.track_format import Sample, TrackType
from playcheck.renderers.base_renderer import BaseCapturingRenderer
from playcheck.renderers.factory import CapturingRenderersFactory

logger = logging.getLogger(__name__)

DEFAULT_WORK_INTERVAL_US = 10_000

SKIP_REASON_DECODE_ONLY = "decode_only"


class PlaybackState(Enum):
    IDLE = "IDLE"
    BUFFERING = "BUFFERING"
    READY = "READY"
    ENDED = "ENDED"
    FAILED = "FAILED"

    @property
    def is_terminal(self) -> bool:
        return self in (PlaybackState.ENDED, PlaybackState.FAILED)


class MediaItemTransitionReason(Enum):
    INITIAL = "initial"
    AUTO = "auto"


class PlayerReleasedError(RuntimeError):
    """Raised when a released player is used."""


class PlayerListener(Protocol):
    """
    Protocol for objects observing the player.

    Callbacks are invoked synchronously from the player's work loop.
    """

    def on_playback_state_changed(self, state: PlaybackState) -> None:
        ...

    def on_media_item_transition(self, index: int, item: MediaItem, reason: MediaItemTransitionReason) -> None:
        ...

    def on_player_error(self, error: MediaSourceError) -> None:
        ...


class Player:
    """
    Sequential playlist player driven by an injected clock.

    Items never overlap: every track of item N has ended before item N+1
    hands out its first format.
    """

    def __init__(
        self,
        clock: SimulatedClock,
        renderers_factory: CapturingRenderersFactory,
        media_source_factory: Optional[MediaSourceFactory] = None,
        work_interval_us: int = DEFAULT_WORK_INTERVAL_US,
    ) -> None:
        """
        Initialize player.

        Args:
            clock: Time source; all work is scheduled as wakes on it
            renderers_factory: Builds the renderer set (one per track type)
            media_source_factory: Resolves media items to sources
            work_interval_us: Virtual time between work loop ticks (must be > 0)

        Raises:
            ValueError: If work_interval_us <= 0
        """
        if work_interval_us <= 0:
            raise ValueError(f"work_interval_us must be > 0, got {work_interval_us}")
        self.clock = clock
        self.work_interval_us = work_interval_us
        self._source_factory = media_source_factory or MediaSourceFactory()
        self._renderers_factory = renderers_factory
        self._renderers: Dict[TrackType, BaseCapturingRenderer] = {
            r.track_type: r for r in renderers_factory.create_renderers()
        }
        self._listeners: List[PlayerListener] = []
        self._playlist: List[MediaItem] = []

        self._state = PlaybackState.IDLE
        self._play_when_ready = False
        self._released = False
        self._error: Optional[MediaSourceError] = None
        self._wake: Optional[WakeHandle] = None

        self._index = 0
        self._source: Optional[MediaSource] = None
        self._samples: Optional[Iterator[Sample]] = None
        self._pending_sample: Optional[Sample] = None
        self._exhausted = False
        self._position_us = 0
        self._active_tracks: List[TrackType] = []

    # Player control surface

    @property
    def playback_state(self) -> PlaybackState:
        return self._state

    @property
    def play_when_ready(self) -> bool:
        return self._play_when_ready

    @property
    def player_error(self) -> Optional[MediaSourceError]:
        return self._error

    @property
    def current_media_item_index(self) -> int:
        return self._index

    @property
    def media_item_count(self) -> int:
        return len(self._playlist)

    @property
    def current_position_us(self) -> int:
        """Playback position within the current item."""
        return self._position_us

    @property
    def is_released(self) -> bool:
        return self._released

    def add_listener(self, listener: PlayerListener) -> None:
        self._check_not_released()
        self._listeners.append(listener)

    def remove_listener(self, listener: PlayerListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def add_media_item(self, item: MediaItem) -> None:
        """
        Append an item to the playlist.

        Raises:
            RuntimeError: If playback has already finished
        """
        self._check_not_released()
        if self._state.is_terminal:
            raise RuntimeError(f"Cannot add media items in state {self._state.value}")
        self._playlist.append(item)

    def add_media_items(self, items: Iterable[MediaItem]) -> None:
        for item in items:
            self.add_media_item(item)

    def prepare(self) -> None:
        """
        Start loading the playlist. IDLE -> BUFFERING.

        Raises:
            RuntimeError: If the playlist is empty
        """
        self._check_not_released()
        if self._state is not PlaybackState.IDLE:
            logger.debug(f"[PLAYER] prepare() ignored in state {self._state.value}")
            return
        if not self._playlist:
            raise RuntimeError("Cannot prepare an empty playlist")
        self._set_state(PlaybackState.BUFFERING)
        self._schedule_work(self.clock.now())

    def play(self) -> None:
        self._check_not_released()
        if self._play_when_ready:
            return
        self._play_when_ready = True
        if self._state in (PlaybackState.BUFFERING, PlaybackState.READY) and self._wake is None:
            self._schedule_work(self.clock.now())

    def pause(self) -> None:
        self._check_not_released()
        self._play_when_ready = False

    def release(self) -> None:
        """
        Halt all pending work and release sources and renderers.

        After release nothing further reaches the renderers or listeners.
        Safe to call multiple times.
        """
        if self._released:
            return
        self._released = True
        if self._wake is not None:
            self._wake.cancel()
            self._wake = None
        self._release_source()
        self._renderers_factory.release()
        self._listeners.clear()
        logger.info(f"[PLAYER] Released in state {self._state.value} at {self.clock.now()}us")

    # Work loop

    def _schedule_work(self, at_us: int) -> None:
        self._wake = self.clock.schedule_wake(at_us, self._do_work)

    def _do_work(self) -> None:
        self._wake = None
        if self._released or self._state.is_terminal:
            return

        # Any renderer or listener callback may release the player; every
        # step below stops as soon as that happens.
        if self._state is PlaybackState.BUFFERING:
            if self._source is None and not self._start_item(MediaItemTransitionReason.INITIAL):
                return
            self._set_state(PlaybackState.READY)
            if self._released:
                return

        if not self._play_when_ready:
            # Paused: the loop resumes from play()
            return

        self._position_us += self.work_interval_us
        self._deliver_until(self._position_us)

        while not self._released and self._item_finished():
            self._end_item()
            if self._released:
                return
            if self._index + 1 >= len(self._playlist):
                self._set_state(PlaybackState.ENDED)
                return
            self._index += 1
            if not self._start_item(MediaItemTransitionReason.AUTO):
                return

        if not self._released:
            self._schedule_work(self.clock.now() + self.work_interval_us)

    def _start_item(self, reason: MediaItemTransitionReason) -> bool:
        item = self._playlist[self._index]
        try:
            source = self._source_factory.create(item)
            source.prepare()
        except MediaSourceError as e:
            self._fail(e)
            return False

        self._source = source
        self._samples = source.samples()
        self._pending_sample = None
        self._exhausted = False
        self._position_us = 0
        logger.info(f"[PLAYER] Media item {self._index} started: {item.uri} ({reason.value})")
        self._notify("on_media_item_transition", self._index, item, reason)
        if self._released:
            return False

        tracks = source.tracks
        self._active_tracks = [t for t in TrackType if t in tracks]
        for track_type in TrackType:
            renderer = self._renderers[track_type]
            if track_type in tracks:
                renderer.on_format_changed(tracks[track_type])
            elif renderer.is_enabled:
                renderer.on_disabled()
            if self._released:
                return False
        return True

    def _deliver_until(self, position_us: int) -> None:
        while not self._exhausted and not self._released:
            sample = self._pending_sample or next(self._samples, None)
            self._pending_sample = None
            if sample is None:
                self._exhausted = True
                return
            if sample.timestamp_us >= position_us:
                self._pending_sample = sample
                return
            renderer = self._renderers[sample.track_type]
            if sample.is_decode_only:
                renderer.on_buffer_skipped(SKIP_REASON_DECODE_ONLY, sample.timestamp_us)
            else:
                renderer.on_buffer_enqueued(sample.timestamp_us, sample.flags, sample.size)

    def _item_finished(self) -> bool:
        if not self._exhausted or self._source is None:
            return False
        duration_us = self._source.duration_us
        return duration_us is None or self._position_us >= duration_us

    def _end_item(self) -> None:
        for track_type in self._active_tracks:
            self._renderers[track_type].on_ended()
            if self._released:
                return
        logger.info(f"[PLAYER] Media item {self._index} ended at {self.clock.now()}us")
        self._release_source()

    def _fail(self, error: MediaSourceError) -> None:
        logger.error(f"[PLAYER] Playback failed on media item {self._index}: {error}")
        self._error = error
        self._release_source()
        self._notify("on_player_error", error)
        self._set_state(PlaybackState.FAILED)

    def _set_state(self, state: PlaybackState) -> None:
        if state is self._state:
            return
        logger.debug(f"[PLAYER] State {self._state.value} -> {state.value}")
        self._state = state
        self._notify("on_playback_state_changed", state)

    def _notify(self, callback: str, *args) -> None:
        for listener in list(self._listeners):
            if self._released:
                return
            getattr(listener, callback)(*args)

    def _release_source(self) -> None:
        if self._source is not None:
            self._source.release()
        self._source = None
        self._samples = None
        self._pending_sample = None

    def _check_not_released(self) -> None:
        if self._released:
            raise PlayerReleasedError("Player has been released")
