"""Best-effort progress event channel for UI consumers."""

from __future__ import annotations

import asyncio
import logging
from collections import deque
from threading import Lock
from typing import Any, AsyncIterator, Callable, Deque, List, Optional

from models import ProgressEvent


logger = logging.getLogger(__name__)

ProgressCallback = Callable[[ProgressEvent], Any]

_CLOSED = object()


class ProgressChannel:
    """Bounded in-memory event buffer with optional subscribers. Emitting never blocks."""

    def __init__(self, maxlen: int = 200, stream_buffer: int = 100) -> None:
        self._events: Deque[ProgressEvent] = deque(maxlen=max(1, int(maxlen)))
        self._subscribers: List[ProgressCallback] = []
        self._streams: List[asyncio.Queue] = []
        self._stream_buffer = max(1, int(stream_buffer))
        self._lock = Lock()
        self._closed = False

    def subscribe(self, callback: ProgressCallback) -> Callable[[], None]:
        """Register a callback. Returns an unsubscribe function."""
        with self._lock:
            self._subscribers.append(callback)

        def _unsubscribe() -> None:
            with self._lock:
                if callback in self._subscribers:
                    self._subscribers.remove(callback)

        return _unsubscribe

    def emit(
        self,
        stage: str,
        percentage: float,
        message: str = "",
        *,
        sequence_index: Optional[int] = None,
        **data: Any,
    ) -> ProgressEvent:
        event = ProgressEvent(
            stage=stage,
            percentage=max(0.0, min(100.0, float(percentage))),
            message=message,
            sequence_index=sequence_index,
            data=data,
        )
        with self._lock:
            self._events.append(event)
            subscribers = list(self._subscribers)
            streams = list(self._streams)

        for callback in subscribers:
            try:
                callback(event)
            except Exception as exc:
                logger.warning("progress subscriber failed: %s", exc)

        for queue in streams:
            try:
                queue.put_nowait(event)
            except asyncio.QueueFull:
                logger.debug("progress stream full; dropping %s event", stage)

        logger.debug("[%s] %.0f%% %s", stage, event.percentage, message)
        return event

    def drain(self) -> List[ProgressEvent]:
        """Pop and return all buffered events, oldest first."""
        with self._lock:
            events = list(self._events)
            self._events.clear()
            return events

    def snapshot(self) -> List[ProgressEvent]:
        with self._lock:
            return list(self._events)

    def close(self) -> None:
        """End every active stream."""
        with self._lock:
            self._closed = True
            streams = list(self._streams)
        for queue in streams:
            try:
                queue.put_nowait(_CLOSED)
            except asyncio.QueueFull:
                queue.get_nowait()
                queue.put_nowait(_CLOSED)

    async def stream(self) -> AsyncIterator[ProgressEvent]:
        """Yield events emitted after subscription until close()."""
        queue: asyncio.Queue = asyncio.Queue(maxsize=self._stream_buffer)
        with self._lock:
            if self._closed:
                return
            self._streams.append(queue)
        try:
            while True:
                item = await queue.get()
                if item is _CLOSED:
                    return
                yield item
        finally:
            with self._lock:
                if queue in self._streams:
                    self._streams.remove(queue)

    def __aiter__(self) -> AsyncIterator[ProgressEvent]:
        return self.stream()

    def __len__(self) -> int:
        with self._lock:
            return len(self._events)
