# src/eventtracker/sources.py
"""Event source adapters translating host signals into tracked events.

The host registers these adapters with its own lifecycle and network
callbacks (platform specific, outside this package). Adapters only know
the EventSource capability, which EventTracker implements.
"""

import socket
import threading
from collections.abc import Callable, Mapping
from typing import Any, Protocol, runtime_checkable

import structlog

from eventtracker.events import APP_CATEGORY, NETWORK_CATEGORY

logger = structlog.get_logger(__name__)


@runtime_checkable
class EventSource(Protocol):
    """Anything that accepts signals as (category, payload) pairs."""

    def on_signal(self, category: str, payload: Mapping[str, Any]) -> Any:
        """Record one signal. Must not block on network I/O."""
        ...


def local_ipv4_address() -> str | None:
    """Best-effort lookup of this host's primary IPv4 address.

    Connecting a UDP socket sends no packets; it only asks the kernel which
    local address would route outward.

    Returns:
        Dotted-quad address, or None when no route is available.
    """
    try:
        with socket.socket(socket.AF_INET, socket.SOCK_DGRAM) as sock:
            sock.connect(("192.0.2.1", 80))
            address: str = sock.getsockname()[0]
            return address
    except OSError:
        return None


class LifecycleAdapter:
    """Emits "app" events when the host moves to foreground or background."""

    def __init__(self, source: EventSource) -> None:
        self._source = source

    def on_resumed(self) -> None:
        logger.debug("Host resumed")
        self._source.on_signal(APP_CATEGORY, {"ActivityState": "resumed"})

    def on_paused(self) -> None:
        logger.debug("Host paused")
        self._source.on_signal(APP_CATEGORY, {"ActivityState": "paused"})


class ConnectivityAdapter:
    """Emits "network" events on connectivity state changes only.

    Keeps the last known connected state to suppress repeated identical
    notifications. The first observation is always reported. This state is
    not authoritative network status.

    Thread Safety:
        Platform callbacks may arrive on any thread; the compare-and-set of
        the last known state is done under a lock.
    """

    def __init__(
        self,
        source: EventSource,
        *,
        address_lookup: Callable[[], str | None] = local_ipv4_address,
    ) -> None:
        self._source = source
        self._address_lookup = address_lookup
        self._lock = threading.Lock()
        self._last_known_connected: bool | None = None

    @property
    def last_known_connected(self) -> bool | None:
        return self._last_known_connected

    def on_connectivity_changed(self, connected: bool) -> bool:
        """Handle a platform connectivity notification.

        Args:
            connected: Whether the device currently has connectivity

        Returns:
            True if a "network" event was emitted, False if suppressed
        """
        with self._lock:
            if self._last_known_connected is not None and self._last_known_connected == connected:
                return False
            self._last_known_connected = connected

        logger.debug("Connectivity changed", connected=connected)
        self._source.on_signal(
            NETWORK_CATEGORY,
            {"NetworkStateOn": connected, "IPv4": self._address_lookup()},
        )
        return True
