"""
eventtracker: Buffered event tracking for host applications.

Accepts events from the host, holds them in a bounded drop-oldest buffer,
and ships them in order to a collection endpoint from a background thread.

Components:
- events: Event record
- session: Validated api key / device id pair
- buffer: BoundedBuffer with drop-oldest eviction and atomic drain
- delivery: DeliveryPipeline posting one JSON body per event
- scheduler: FlushScheduler running the periodic drain-and-deliver cycle
- tracker: EventTracker facade held by the host
- sources: EventSource protocol and app-lifecycle / connectivity adapters
- config: TrackerSettings and load_settings()
- errors: Exception taxonomy

Usage:
    from eventtracker import EventTracker, TrackerSettings

    tracker = EventTracker(TrackerSettings(endpoint_url="https://collector.example.com/events"))
    tracker.initialize(api_key, device_id)
    tracker.track("checkout", {"items": 3})
    ...
    tracker.close()
"""

__version__ = "0.1.0"

from eventtracker.buffer import BoundedBuffer
from eventtracker.config import TrackerSettings, load_settings
from eventtracker.delivery import DeliveryPipeline
from eventtracker.errors import (
    AlreadyInitializedError,
    ConfigError,
    DeliveryError,
    EventTrackerError,
    SerializationError,
    UseBeforeInitError,
)
from eventtracker.events import Event
from eventtracker.scheduler import CycleResult, FlushScheduler
from eventtracker.session import Session, generate_device_id
from eventtracker.sources import ConnectivityAdapter, EventSource, LifecycleAdapter, local_ipv4_address
from eventtracker.tracker import EventTracker

__all__ = [
    "AlreadyInitializedError",
    "BoundedBuffer",
    "ConfigError",
    "ConnectivityAdapter",
    "CycleResult",
    "DeliveryError",
    "DeliveryPipeline",
    "Event",
    "EventSource",
    "EventTracker",
    "EventTrackerError",
    "FlushScheduler",
    "LifecycleAdapter",
    "SerializationError",
    "Session",
    "TrackerSettings",
    "UseBeforeInitError",
    "generate_device_id",
    "load_settings",
    "local_ipv4_address",
]
