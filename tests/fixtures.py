# tests/fixtures.py
"""Reusable test doubles and helpers.

These provide:
1. RecordingPipeline - In-memory stand-in for DeliveryPipeline that captures
   delivery attempts and can simulate failures per category
2. wait_for - Polling helper for assertions on background-thread effects
3. Valid session tokens
"""

from __future__ import annotations

import threading
import time
from collections.abc import Callable
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from eventtracker.events import Event
    from eventtracker.session import Session

VALID_API_KEY = "0123456789abcdef"
VALID_DEVICE_ID = "fedcba9876543210"


class RecordingPipeline:
    """Captures delivery attempts instead of making HTTP calls.

    Example:
        pipeline = RecordingPipeline(fail_categories={"bad"})
        tracker = EventTracker(settings, pipeline=pipeline)
        ...
        assert pipeline.categories == ["a", "bad", "b"]
    """

    def __init__(
        self,
        *,
        fail_categories: frozenset[str] | set[str] = frozenset(),
        raise_categories: frozenset[str] | set[str] = frozenset(),
    ) -> None:
        self._fail_categories = set(fail_categories)
        self._raise_categories = set(raise_categories)
        self._lock = threading.Lock()
        self.attempts: list[tuple[Event, Session, str]] = []
        self.delivered_count = 0
        self.failed_count = 0
        self.close_count = 0

    def deliver(self, event: Event, session: Session, endpoint_url: str) -> bool:
        with self._lock:
            self.attempts.append((event, session, endpoint_url))
            if event.category in self._raise_categories:
                self.failed_count += 1
                raise RuntimeError(f"simulated crash for {event.category}")
            if event.category in self._fail_categories:
                self.failed_count += 1
                return False
            self.delivered_count += 1
            return True

    def close(self) -> None:
        self.close_count += 1

    @property
    def categories(self) -> list[str]:
        with self._lock:
            return [event.category for event, _, _ in self.attempts]


def wait_for(predicate: Callable[[], bool], timeout: float = 5.0, interval: float = 0.005) -> bool:
    """Poll predicate until it returns True or timeout expires."""
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(interval)
    return predicate()
