"""Thread-safe pub/sub between the engine and its consumers.

Two kinds of subscribers:

* callbacks, invoked synchronously on the publishing thread. Exceptions are
  logged per listener and never reach the publisher. A slow callback delays
  the tick that published the event, so slow consumers (UI, network) should
  use a queue instead.
* queues, bounded; when full the oldest message is dropped so publishing
  never blocks the simulation clock.
"""

from __future__ import annotations

import logging
import queue
import threading
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Tuple

from fleetsim.config.constants import EVENT_QUEUE_SIZE

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Event:
    type: str
    data: Dict[str, Any] = field(default_factory=dict)


Listener = Callable[[Event], None]


class EventBus:
    """Fan-out of engine notifications to external subscribers."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._listeners: List[Tuple[Optional[str], Listener]] = []
        self._queues: List[Tuple[Optional[str], queue.Queue]] = []
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def subscribe(self, listener: Listener, event_type: Optional[str] = None) -> Listener:
        """Register a callback for one event type, or all types if None."""
        with self._lock:
            self._listeners.append((event_type, listener))
        return listener

    def subscribe_queue(
        self, event_type: Optional[str] = None, maxsize: int = EVENT_QUEUE_SIZE,
    ) -> queue.Queue:
        """Subscribe with a bounded Queue that receives matching events."""
        q: queue.Queue = queue.Queue(maxsize=maxsize)
        with self._lock:
            self._queues.append((event_type, q))
        return q

    def unsubscribe(self, subscriber) -> None:
        with self._lock:
            self._listeners = [(t, l) for t, l in self._listeners if l is not subscriber]
            self._queues = [(t, q) for t, q in self._queues if q is not subscriber]

    def publish(self, event_type: str, data: Optional[Dict[str, Any]] = None) -> None:
        if self._closed:
            return
        event = Event(type=event_type, data=data if data is not None else {})
        with self._lock:
            listeners = [l for t, l in self._listeners if t is None or t == event_type]
            queues = [q for t, q in self._queues if t is None or t == event_type]

        for q in queues:
            _put_drop_oldest(q, event)

        for listener in listeners:
            try:
                listener(event)
            except Exception:
                logger.exception(f"Subscriber {listener!r} failed on {event_type}")

    def close(self) -> None:
        """Stop delivery and discard anything still queued."""
        with self._lock:
            self._closed = True
            queues = [q for _, q in self._queues]
            self._listeners.clear()
            self._queues.clear()
        for q in queues:
            _drain(q)


def _put_drop_oldest(q: queue.Queue, event: Event) -> None:
    try:
        q.put_nowait(event)
    except queue.Full:
        try:
            q.get_nowait()
        except queue.Empty:
            pass
        try:
            q.put_nowait(event)
        except queue.Full:
            pass


def _drain(q: queue.Queue) -> None:
    while True:
        try:
            q.get_nowait()
        except queue.Empty:
            return
