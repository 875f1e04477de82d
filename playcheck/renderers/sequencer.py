"""
Event sequencer shared by every capturing renderer of a scenario.

This is the single serialization point of the harness: assigning a sequence
index and delivering the event to listeners happen under one lock, so the
order listeners observe is exactly the sequence order.
"""

import logging
import threading
from typing import Callable, List, TypeVar

logger = logging.getLogger(__name__)

E = TypeVar("E")
EventListener = Callable[[object], None]


class EventSequencer:
    """Hands out strictly increasing sequence indexes and dispatches events."""

    def __init__(self) -> None:
        self._next = 0
        self._listeners: List[EventListener] = []
        self._lock = threading.RLock()

    @property
    def emitted_count(self) -> int:
        with self._lock:
            return self._next

    def add_listener(self, listener: EventListener) -> None:
        with self._lock:
            self._listeners.append(listener)

    def remove_listener(self, listener: EventListener) -> None:
        with self._lock:
            if listener in self._listeners:
                self._listeners.remove(listener)

    def emit(self, build: Callable[[int], E]) -> E:
        """
        Build an event with the next sequence index and deliver it.

        Args:
            build: Callable receiving the sequence index and returning the event

        Returns:
            The event that was delivered
        """
        with self._lock:
            sequence = self._next
            self._next += 1
            event = build(sequence)
            for listener in list(self._listeners):
                listener(event)
            return event
