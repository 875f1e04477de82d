"""
Factory for the capturing renderer set injected into a player.
"""

import logging
from typing import Callable, Dict, List, Optional

from playcheck.track_format import TrackType
from playcheck.renderers.base_renderer import BaseCapturingRenderer
from playcheck.renderers.capturing_renderers import (
    AudioCapturingRenderer,
    MetadataCapturingRenderer,
    TextCapturingRenderer,
    VideoCapturingRenderer,
)
from playcheck.renderers.sequencer import EventSequencer

logger = logging.getLogger(__name__)

_RENDERER_CLASSES = (
    AudioCapturingRenderer,
    VideoCapturingRenderer,
    TextCapturingRenderer,
    MetadataCapturingRenderer,
)


class CapturingRenderersFactory:
    """
    Builds the capturing renderer set injected into a player.

    One renderer per track type, all sharing one EventSequencer so the
    cross-track order of events is preserved. A factory serves exactly one
    player; create_renderers() may only be called once.
    """

    def __init__(self, sequencer: Optional[EventSequencer] = None) -> None:
        self.sequencer = sequencer or EventSequencer()
        self._renderers: Dict[TrackType, BaseCapturingRenderer] = {}

    def create_renderers(self) -> List[BaseCapturingRenderer]:
        """
        Create the renderer set in track type order.

        Raises:
            RuntimeError: If renderers were already created by this factory
        """
        if self._renderers:
            raise RuntimeError("CapturingRenderersFactory already created its renderers")
        for renderer_class in _RENDERER_CLASSES:
            self._renderers[renderer_class.track_type] = renderer_class(self.sequencer)
        logger.debug(f"[RENDERER] Created {len(self._renderers)} capturing renderers")
        return self.renderers

    @property
    def renderers(self) -> List[BaseCapturingRenderer]:
        return [self._renderers[t] for t in TrackType if t in self._renderers]

    def renderer_for(self, track_type: TrackType) -> BaseCapturingRenderer:
        """
        Raises:
            KeyError: If renderers have not been created yet
        """
        return self._renderers[track_type]

    def add_event_listener(self, listener: Callable[[object], None]) -> None:
        self.sequencer.add_listener(listener)

    def remove_event_listener(self, listener: Callable[[object], None]) -> None:
        self.sequencer.remove_listener(listener)

    def release(self) -> None:
        for renderer in self.renderers:
            renderer.release()
