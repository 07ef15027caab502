# src/eventtracker/buffer.py
"""Bounded buffer holding tracked events between flush cycles.

Provides a fixed-capacity FIFO that drops the oldest event on overflow.
Producers (any number of host threads) admit events; the flush scheduler
drains the whole buffer once per cycle.

Key design decisions:
- Drop-oldest backpressure: under sustained overload the most recent
  events are kept
- Eviction loop bounded by current occupancy, never an unbounded retry
- Atomic drain: swap the deque under the lock so each event is returned by
  exactly one drain or consumed by exactly one eviction
- Aggregate logging: Log every 100 evictions to prevent Warning Fatigue
"""

import threading
from collections import deque
from collections.abc import Callable

import structlog

from eventtracker.events import Event

logger = structlog.get_logger(__name__)


class BoundedBuffer:
    """Thread-safe ring buffer that drops oldest events on overflow.

    Thread Safety:
        admit() and drain_all() are safe to call from any number of threads
        without external locking. The on_evict callback runs outside the
        lock, on the admitting thread.

    Attributes:
        evicted_count: Total number of events dropped due to buffer overflow.
        admitted_count: Total number of events admitted.

    Example:
        buffer = BoundedBuffer(capacity=10)
        buffer.admit(event)
        batch = buffer.drain_all()
    """

    # Log aggregate metrics every N evictions to avoid Warning Fatigue
    _LOG_INTERVAL = 100

    def __init__(
        self,
        capacity: int = 10,
        *,
        on_evict: Callable[[Event], None] | None = None,
    ) -> None:
        """Initialize the bounded buffer.

        Args:
            capacity: Maximum number of resident events. When full, the
                oldest event is evicted on admit. Defaults to 10.
            on_evict: Optional callback invoked with each evicted event.

        Raises:
            ValueError: If capacity < 1.
        """
        if capacity < 1:
            raise ValueError(f"capacity must be >= 1, got {capacity}")
        self._capacity = capacity
        self._on_evict = on_evict
        self._lock = threading.Lock()
        self._buffer: deque[Event] = deque()
        self._admitted_count: int = 0
        self._evicted_count: int = 0
        self._last_logged_evict_count: int = 0

    def admit(self, event: Event) -> None:
        """Admit an event, evicting the oldest residents while at capacity.

        Never blocks beyond the internal lock and never fails.

        Args:
            event: The event to buffer.
        """
        evicted: list[Event] = []
        with self._lock:
            # At most len(buffer) evictions can ever be needed
            for _ in range(len(self._buffer)):
                if len(self._buffer) < self._capacity:
                    break
                evicted.append(self._buffer.popleft())
            self._buffer.append(event)
            self._admitted_count += 1

            if evicted:
                self._evicted_count += len(evicted)
                if self._evicted_count - self._last_logged_evict_count >= self._LOG_INTERVAL:
                    logger.warning(
                        "Event buffer overflow - oldest events dropped",
                        dropped_since_last_log=self._evicted_count - self._last_logged_evict_count,
                        dropped_total=self._evicted_count,
                        capacity=self._capacity,
                        hint="Consider increasing buffer capacity or flushing more often",
                    )
                    self._last_logged_evict_count = self._evicted_count

        if evicted:
            logger.debug("Removed old events from buffer", count=len(evicted))
            if self._on_evict is not None:
                for old in evicted:
                    self._on_evict(old)

    def drain_all(self) -> list[Event]:
        """Atomically remove and return every resident event.

        Returns:
            Events in FIFO order (oldest first). Empty if nothing is buffered.
        """
        with self._lock:
            drained = self._buffer
            self._buffer = deque()
        return list(drained)

    @property
    def capacity(self) -> int:
        """Maximum number of resident events."""
        return self._capacity

    @property
    def evicted_count(self) -> int:
        """Number of events dropped due to buffer overflow."""
        with self._lock:
            return self._evicted_count

    @property
    def admitted_count(self) -> int:
        """Number of events admitted since construction."""
        with self._lock:
            return self._admitted_count

    def __len__(self) -> int:
        """Return the current number of events in the buffer."""
        with self._lock:
            return len(self._buffer)
