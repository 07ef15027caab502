# src/eventtracker/events.py
"""Event record tracked by the host application.

An Event is created by EventTracker.track() (or an event source adapter),
sits in the bounded buffer until drained, and is dropped after its single
delivery attempt or when evicted on overflow. It is never mutated.

Well-known categories:
- app: Host lifecycle transitions ({"ActivityState": "resumed" | "paused"})
- network: Connectivity changes ({"NetworkStateOn": bool, "IPv4": str | None})
Hosts may use any other non-empty category.
"""

import copy
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import UTC, datetime
from types import MappingProxyType
from typing import Any

APP_CATEGORY = "app"
NETWORK_CATEGORY = "network"


def _utc_now() -> datetime:
    return datetime.now(tz=UTC)


@dataclass(frozen=True, slots=True)
class Event:
    """An immutable record of something that happened in the host.

    Attributes:
        category: Event class identifier, non-empty
        payload: Structured event data, opaque to the buffer. Stored as a
            read-only deep copy, so later changes to the caller's nested
            dicts and lists do not reach the event.
        created_at: Timezone-aware UTC creation time
    """

    category: str
    payload: Mapping[str, Any] = field(default_factory=dict)
    created_at: datetime = field(default_factory=_utc_now)

    def __post_init__(self) -> None:
        if not isinstance(self.category, str) or not self.category:
            raise ValueError(f"Event category must be a non-empty string, got {self.category!r}")
        if not isinstance(self.payload, Mapping):
            raise ValueError(f"Event payload must be a mapping, got {type(self.payload).__name__}")
        if self.created_at.tzinfo is None:
            raise ValueError("Event created_at must be timezone-aware")
        try:
            payload = copy.deepcopy(dict(self.payload))
        except TypeError as e:
            raise ValueError(f"Event payload cannot be copied: {e}") from e
        # Frozen dataclass: bypass __setattr__ to store the copy
        object.__setattr__(self, "payload", MappingProxyType(payload))

    @property
    def timestamp_ms(self) -> int:
        """Creation time as integer milliseconds since the Unix epoch."""
        return int(self.created_at.timestamp() * 1000)
