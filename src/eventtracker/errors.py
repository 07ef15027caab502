# src/eventtracker/errors.py
"""Exception taxonomy for the event tracker.

Only configuration problems (and strict-mode misuse) are raised to the host
application. Delivery and serialization errors are raised inside the
delivery pipeline, caught there, and logged - they never escape a flush cycle.
"""


class EventTrackerError(Exception):
    """Base class for all event tracker errors."""


class ConfigError(EventTrackerError):
    """Raised when tracker configuration or session tokens are invalid.

    Raised synchronously from initialize(), set_endpoint() and settings
    validation. No partial state is left behind when this is raised.

    Attributes:
        field: Name of the offending setting (e.g. "api_key")
        message: Human-readable error description
    """

    def __init__(self, field: str, message: str) -> None:
        self.field = field
        self.message = message
        super().__init__(f"Invalid '{field}': {message}")


class AlreadyInitializedError(EventTrackerError):
    """Raised when initialize() is called on an already-initialized tracker."""


class UseBeforeInitError(EventTrackerError):
    """Raised by track() before a successful initialize() in strict mode.

    In the default (non-strict) mode the event is dropped with a warning
    instead.
    """


class DeliveryError(EventTrackerError):
    """One event's HTTP exchange failed.

    Attributes:
        status_code: HTTP status when a response was received, None for
            transport-level failures.
    """

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        self.status_code = status_code
        super().__init__(message)


class SerializationError(DeliveryError):
    """An event payload could not be rendered into the JSON wire shape."""
