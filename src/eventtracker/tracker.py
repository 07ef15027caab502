# src/eventtracker/tracker.py
"""EventTracker: the object the host application holds.

The EventTracker is the central hub of the agent:
1. Validates session tokens at initialize() (one-time)
2. Owns the bounded buffer and the flush scheduler
3. Accepts events from the host and from event source adapters via track()
4. Holds the endpoint URL and injects it into every delivery attempt
5. Provides a graceful stop path and health metrics

Design principles:
- track() never blocks on network I/O
- Only configuration errors are raised to the host; delivery problems are
  logged by the pipeline and never escape a flush cycle
- Events tracked before initialize() are dropped with a warning (or
  rejected with UseBeforeInitError in strict mode)
"""

from __future__ import annotations

import threading
from collections.abc import Mapping
from types import TracebackType
from typing import Any

import structlog

from eventtracker.buffer import BoundedBuffer
from eventtracker.config import TrackerSettings, validate_endpoint_url
from eventtracker.delivery import DeliveryPipeline
from eventtracker.errors import AlreadyInitializedError, UseBeforeInitError
from eventtracker.events import Event
from eventtracker.scheduler import CycleResult, FlushScheduler
from eventtracker.session import Session

logger = structlog.get_logger(__name__)


class EventTracker:
    """Buffers host events and ships them periodically to the endpoint.

    Thread Safety:
        track() is safe to call from any number of threads concurrently.
        initialize(), close() and buffer admission are serialized by an
        internal lock, so no event is admitted after close() starts.
        set_endpoint() is last-writer-wins; an in-flight delivery may use
        either the old or the new URL.

    Example:
        >>> tracker = EventTracker(TrackerSettings(endpoint_url="https://collector.example.com/e"))
        >>> tracker.initialize("0123456789abcdef", "fedcba9876543210")
        >>> tracker.track("purchase", {"sku": "A-1", "qty": 2})
        True
        >>> tracker.close()
    """

    def __init__(
        self,
        settings: TrackerSettings | None = None,
        *,
        pipeline: DeliveryPipeline | None = None,
    ) -> None:
        """Create an uninitialized tracker.

        Args:
            settings: Tracker configuration. Defaults to TrackerSettings().
            pipeline: Optional delivery pipeline. Defaults to one built from
                settings.request_timeout_seconds.
        """
        self._settings = settings if settings is not None else TrackerSettings()
        self._pipeline = pipeline if pipeline is not None else DeliveryPipeline(timeout=self._settings.request_timeout_seconds)
        self._endpoint_url = self._settings.endpoint_url
        self._state_lock = threading.Lock()
        self._session: Session | None = None
        self._buffer: BoundedBuffer | None = None
        self._scheduler: FlushScheduler | None = None
        self._closed = False
        self._dropped_before_init = 0

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    def initialize(self, api_key: str, device_id: str) -> None:
        """Validate the session and start the flush scheduler.

        The first flush cycle runs immediately.

        Args:
            api_key: Key identifying the SDK user (settings.api_key_length chars)
            device_id: Device being tracked (settings.device_id_length chars)

        Raises:
            ConfigError: If either token is invalid. Nothing is started.
            AlreadyInitializedError: If called more than once.
        """
        with self._state_lock:
            if self._session is not None or self._closed:
                raise AlreadyInitializedError("EventTracker.initialize() may only be called once")

            session = Session.create(
                api_key,
                device_id,
                api_key_length=self._settings.api_key_length,
                device_id_length=self._settings.device_id_length,
            )
            buffer = BoundedBuffer(capacity=self._settings.buffer_capacity)
            scheduler = FlushScheduler(
                buffer,
                self._deliver,
                flush_interval=self._settings.flush_interval_seconds,
            )

            self._session = session
            self._buffer = buffer
            self._scheduler = scheduler
            scheduler.start()

        logger.info(
            "Event tracker initialized",
            device_id=session.device_id,
            capacity=self._settings.buffer_capacity,
            flush_interval=self._settings.flush_interval_seconds,
        )

    def close(self, *, final_flush: bool = True) -> None:
        """Stop the scheduler and release the delivery pipeline.

        Shutdown sequence:
        1. Mark closed so new track() calls are dropped
        2. Stop the worker; optionally run one final drain-and-deliver cycle
        3. Close the HTTP client

        Safe to call multiple times, and without a prior initialize().

        Args:
            final_flush: Attempt delivery of events still buffered
        """
        with self._state_lock:
            if self._closed:
                return
            self._closed = True
            scheduler = self._scheduler

        if scheduler is not None:
            scheduler.stop(final_flush=final_flush)
        self._pipeline.close()
        logger.info("Event tracker closed", **self.health_metrics)

    def __enter__(self) -> EventTracker:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()

    # -------------------------------------------------------------------------
    # Producers
    # -------------------------------------------------------------------------

    def track(self, category: str, payload: Mapping[str, Any] | None = None) -> bool:
        """Record an event for the next flush cycle.

        Returns immediately after admission; the oldest buffered event is
        evicted if the buffer is full.

        Args:
            category: Event class ("app", "network", or host-defined)
            payload: Structured event data

        Returns:
            True if the event was buffered, False if it was dropped because
            the tracker is not initialized or already closed.

        Raises:
            ValueError: If category is empty or payload is not a copyable mapping
            UseBeforeInitError: In strict mode, when not initialized or closed
        """
        # Admission and the closed flag share the state lock, so an event is
        # either admitted before close() begins or rejected after it
        with self._state_lock:
            buffer = self._buffer
            accepted = buffer is not None and not self._closed
            if buffer is not None and accepted:
                buffer.admit(Event(category=category, payload=payload if payload is not None else {}))

        if not accepted:
            self._reject_untracked(category)
        return accepted

    def on_signal(self, category: str, payload: Mapping[str, Any]) -> bool:
        """EventSource implementation used by the source adapters."""
        return self.track(category, payload)

    def _reject_untracked(self, category: str) -> None:
        reason = "closed" if self._closed else "not initialized"
        if self._settings.strict:
            raise UseBeforeInitError(f"Cannot track '{category}': tracker is {reason}")
        with self._state_lock:
            self._dropped_before_init += 1
        logger.warning("Event dropped", category=category, reason=reason)

    # -------------------------------------------------------------------------
    # Delivery
    # -------------------------------------------------------------------------

    def _deliver(self, event: Event) -> bool:
        # Session is set before the scheduler starts and never cleared
        session = self._session
        assert session is not None
        return self._pipeline.deliver(event, session, self._endpoint_url)

    def set_endpoint(self, url: str) -> None:
        """Change the destination of all subsequent delivery attempts.

        Raises:
            ConfigError: If url is not an absolute http(s) URL
        """
        self._endpoint_url = validate_endpoint_url(url)
        logger.info("Endpoint changed", endpoint_url=url)

    def flush(self) -> CycleResult:
        """Run one drain-and-deliver cycle now, in the calling thread.

        Returns:
            Summary of the cycle (all zeros when not initialized)
        """
        scheduler = self._scheduler
        if scheduler is None:
            return CycleResult(drained=0, delivered=0, failed=0)
        return scheduler.run_cycle()

    # -------------------------------------------------------------------------
    # Introspection
    # -------------------------------------------------------------------------

    @property
    def endpoint_url(self) -> str:
        return self._endpoint_url

    @property
    def session(self) -> Session | None:
        return self._session

    @property
    def settings(self) -> TrackerSettings:
        return self._settings

    @property
    def is_initialized(self) -> bool:
        """True after a successful initialize() and before close()."""
        return self._session is not None and not self._closed

    @property
    def health_metrics(self) -> dict[str, Any]:
        """Return a snapshot of tracker health for monitoring.

        - buffered: Events currently waiting for the next cycle
        - capacity: Buffer capacity
        - events_admitted / events_evicted: Buffer counters
        - events_delivered / events_failed: Delivery outcomes
        - cycles_completed: Flush cycles run
        - events_dropped_uninitialized: track() calls rejected

        Reads are approximately consistent, which is acceptable for
        operational monitoring.
        """
        buffer = self._buffer
        scheduler = self._scheduler
        return {
            "buffered": len(buffer) if buffer is not None else 0,
            "capacity": self._settings.buffer_capacity,
            "events_admitted": buffer.admitted_count if buffer is not None else 0,
            "events_evicted": buffer.evicted_count if buffer is not None else 0,
            "events_delivered": self._pipeline.delivered_count,
            "events_failed": self._pipeline.failed_count,
            "cycles_completed": scheduler.cycles_completed if scheduler is not None else 0,
            "events_dropped_uninitialized": self._dropped_before_init,
        }
