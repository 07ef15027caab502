# src/eventtracker/delivery.py
"""Delivery pipeline: ship one event to the collection endpoint.

Each drained event is sent as its own JSON POST. Delivery is best-effort
with at-most-once attempt semantics: a failed event is logged and dropped,
never requeued, and never stops the rest of the flush cycle.

Wire shape:
    {"apiKey": "...", "deviceUID": "...", "event": "<category>",
     "data": {...payload...}, "timestamp": <epoch milliseconds>}
"""

from __future__ import annotations

import json
import threading
from typing import TYPE_CHECKING, Any

import httpx
import structlog

from eventtracker.errors import DeliveryError, SerializationError

if TYPE_CHECKING:
    from eventtracker.events import Event
    from eventtracker.session import Session

logger = structlog.get_logger(__name__)

CONTENT_TYPE = "application/json; charset=utf-8"


class DeliveryPipeline:
    """Serializes events and POSTs them to the configured endpoint.

    Wraps a shared httpx.Client for connection pooling. The endpoint URL is
    passed to every deliver() call rather than held here, so the tracker can
    change it at any time.

    Failure handling:
    - Transport errors, non-2xx responses and serialization errors are
      logged per event and counted; deliver() returns False
    - Aggregate error logging every _LOG_INTERVAL failures
    - Deliveries after close() fail the same way
    - deliver() never raises

    Thread Safety:
        httpx.Client is thread-safe. Counters are protected by a lock since
        a host-triggered flush may run alongside the background worker.

    Example:
        pipeline = DeliveryPipeline(timeout=10.0)
        ok = pipeline.deliver(event, session, "https://collector.example.com/events")
        pipeline.close()
    """

    _LOG_INTERVAL = 100  # Log every 100 total failures

    def __init__(
        self,
        *,
        timeout: float = 30.0,
        client: httpx.Client | None = None,
    ) -> None:
        """Initialize the delivery pipeline.

        Args:
            timeout: Per-request timeout in seconds (ignored when client is given)
            client: Optional pre-built httpx.Client (custom transports, tests)
        """
        self._client = client if client is not None else httpx.Client(timeout=timeout, follow_redirects=False)
        self._counter_lock = threading.Lock()
        self._delivered_count = 0
        self._failed_count = 0
        self._last_logged_failure_count = 0
        self._closed = False

    @staticmethod
    def build_payload(event: Event, session: Session) -> dict[str, Any]:
        """Build the JSON-shaped request object for one event."""
        return {
            "apiKey": session.api_key,
            "deviceUID": session.device_id,
            "event": event.category,
            "data": dict(event.payload),
            "timestamp": event.timestamp_ms,
        }

    def serialize(self, event: Event, session: Session) -> bytes:
        """Render the request body as UTF-8 JSON.

        Raises:
            SerializationError: If the payload holds values JSON cannot
                represent (objects, NaN, Infinity) or
                strings UTF-8 cannot encode (lone surrogates)
        """
        try:
            text = json.dumps(self.build_payload(event, session), allow_nan=False, ensure_ascii=False)
            return text.encode("utf-8")
        except (TypeError, ValueError) as e:
            raise SerializationError(f"Cannot serialize '{event.category}' event: {e}") from e

    def _send(self, body: bytes, endpoint_url: str) -> int:
        """POST body and return the status code.

        Raises:
            DeliveryError: On transport failure or non-2xx response
        """
        try:
            response = self._client.post(
                endpoint_url,
                content=body,
                headers={"Content-Type": CONTENT_TYPE},
            )
        except httpx.HTTPError as e:
            raise DeliveryError(f"{type(e).__name__}: {e}") from e
        except RuntimeError as e:
            # httpx raises RuntimeError when close() lands mid-request
            if not self._closed:
                raise
            raise DeliveryError("pipeline closed") from e

        if not response.is_success:
            raise DeliveryError(f"HTTP {response.status_code}", status_code=response.status_code)
        return response.status_code

    def deliver(self, event: Event, session: Session, endpoint_url: str) -> bool:
        """Make a single delivery attempt for one event.

        Args:
            event: The drained event
            session: Session identity to attach
            endpoint_url: Destination URL, read by the caller at call time

        Returns:
            True if the endpoint answered 2xx, False otherwise (including
            after close())
        """
        if self._closed:
            self._record_failure(event, DeliveryError("pipeline closed"))
            return False

        try:
            body = self.serialize(event, session)
            status_code = self._send(body, endpoint_url)
        except DeliveryError as e:
            self._record_failure(event, e)
            return False

        with self._counter_lock:
            self._delivered_count += 1
        logger.debug("Event delivered", category=event.category, status_code=status_code)
        return True

    def _record_failure(self, event: Event, error: DeliveryError) -> None:
        logger.warning(
            "Event delivery failed",
            category=event.category,
            error=str(error),
            error_type=type(error).__name__,
            status_code=error.status_code,
        )
        with self._counter_lock:
            self._failed_count += 1
            if self._failed_count - self._last_logged_failure_count >= self._LOG_INTERVAL:
                logger.error(
                    "Event deliveries failing - events dropped",
                    dropped_since_last_log=self._failed_count - self._last_logged_failure_count,
                    dropped_total=self._failed_count,
                )
                self._last_logged_failure_count = self._failed_count

    @property
    def delivered_count(self) -> int:
        """Events acknowledged with a 2xx status."""
        with self._counter_lock:
            return self._delivered_count

    @property
    def failed_count(self) -> int:
        """Events whose single delivery attempt failed."""
        with self._counter_lock:
            return self._failed_count

    def close(self) -> None:
        """Release the HTTP client. Safe to call multiple times."""
        if self._closed:
            return
        self._closed = True
        self._client.close()
