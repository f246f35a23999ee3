"""Fan-out of execution events to an ordered list of sinks."""

import asyncio
import threading
from collections.abc import Sequence
from typing import Protocol

from scenario_tests.models.events import AssemblyFinished, ExecutionEvent


class EventSink[EventT](Protocol):
    """Observer receiving events one at a time."""

    def on_event(self, event: EventT, /) -> None:
        """Handle a single event."""


class EventDispatcher:
    """Delivers every event to every sink in registration order.

    ``finished`` is set once an :class:`AssemblyFinished` event has reached all
    sinks; results are only safe to read after that.
    """

    def __init__(self, sinks: Sequence[EventSink[ExecutionEvent]]) -> None:
        self.sinks = tuple(sinks)
        self.finished = asyncio.Event()
        # Sinks assume a single writer.
        self._lock = threading.Lock()

    def on_event(self, event: ExecutionEvent) -> None:
        """Forward an event to all sinks."""
        with self._lock:
            if self.finished.is_set():
                raise RuntimeError(
                    f"Received {type(event).__name__} after the run finished"
                )
            for sink in self.sinks:
                sink.on_event(event)

        if isinstance(event, AssemblyFinished):
            self.finished.set()
