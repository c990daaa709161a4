"""
ActivityPublisher -- in-process publish/subscribe channel for activity events.

Responsibility:
    Fans committed state changes out to listeners: callback sinks (the
    activity log writer, UI refreshers) and bounded subscriber queues for
    consumers that poll.  Keeps a bounded history so late subscribers can
    catch up on recent activity.

Architecture position:
    Kernel > Services.  Module services publish only after their
    transaction has committed, so listeners never observe rolled-back work.

Invariants enforced:
    - Fire-and-forget: a sink that raises is logged and skipped; the
      publishing operation is never affected.
    - Bounded memory: subscriber queues drop their oldest event when full;
      history keeps the newest ``replay_size`` events.
"""

import queue
import threading
from collections import deque
from typing import Callable, Deque, Iterable

from supply_kernel.domain.activity import ActivityEvent
from supply_kernel.logging_config import get_logger

logger = get_logger("services.activity")

ActivitySink = Callable[[ActivityEvent], None]


class ActivityPublisher:
    """Thread-safe broadcaster of ActivityEvent values."""

    def __init__(self, replay_size: int = 2000, queue_size: int = 400) -> None:
        self._sinks: list[ActivitySink] = []
        self._subscribers: set[queue.Queue[ActivityEvent]] = set()
        self._history: Deque[ActivityEvent] = deque(maxlen=replay_size)
        self._queue_size = queue_size
        self._lock = threading.Lock()

    # Sinks

    def add_sink(self, sink: ActivitySink) -> None:
        with self._lock:
            self._sinks.append(sink)

    def remove_sink(self, sink: ActivitySink) -> None:
        with self._lock:
            if sink in self._sinks:
                self._sinks.remove(sink)

    # Queues

    def subscribe(self) -> queue.Queue[ActivityEvent]:
        q: queue.Queue[ActivityEvent] = queue.Queue(maxsize=self._queue_size)
        with self._lock:
            self._subscribers.add(q)
        return q

    def unsubscribe(self, q: queue.Queue[ActivityEvent]) -> None:
        with self._lock:
            self._subscribers.discard(q)

    def recent(self, limit: int | None = None) -> list[ActivityEvent]:
        """Most recent events, oldest first."""
        with self._lock:
            history = list(self._history)
        if limit is not None:
            return history[-limit:] if limit > 0 else []
        return history

    # Publishing

    def publish(self, event: ActivityEvent) -> None:
        with self._lock:
            self._history.append(event)
            subscribers: Iterable[queue.Queue[ActivityEvent]] = list(self._subscribers)
            sinks = list(self._sinks)

        for q in subscribers:
            try:
                q.put_nowait(event)
            except queue.Full:
                try:
                    _ = q.get_nowait()
                    q.put_nowait(event)
                except queue.Empty:
                    pass

        for sink in sinks:
            try:
                sink(event)
            except Exception:
                logger.exception(
                    "activity_sink_failed",
                    extra={
                        "action": event.action.value,
                        "entity_type": event.entity_type,
                        "entity_id": str(event.entity_id),
                    },
                )

    def publish_all(self, events: Iterable[ActivityEvent]) -> None:
        for event in events:
            self.publish(event)
