# src/eventtracker/session.py
"""Session identity attached to every delivered event."""

import secrets
from dataclasses import dataclass

from eventtracker.errors import ConfigError

DEFAULT_TOKEN_LENGTH = 16


def _validate_token(field: str, value: object, length: int) -> str:
    if value is None:
        raise ConfigError(field, "must not be None")
    if not isinstance(value, str):
        raise ConfigError(field, f"must be a string, got {type(value).__name__}")
    if len(value) != length:
        raise ConfigError(field, f"must be exactly {length} characters, got {len(value)}")
    return value


@dataclass(frozen=True, slots=True)
class Session:
    """Validated api key / device id pair.

    Written once by EventTracker.initialize() and read by every delivery.
    Use Session.create() rather than the constructor so tokens are validated.

    Attributes:
        api_key: Key identifying the SDK user at the collection endpoint
        device_id: Identifier of the device being tracked
    """

    api_key: str
    device_id: str

    @classmethod
    def create(
        cls,
        api_key: object,
        device_id: object,
        *,
        api_key_length: int = DEFAULT_TOKEN_LENGTH,
        device_id_length: int = DEFAULT_TOKEN_LENGTH,
    ) -> "Session":
        """Validate tokens and build a session.

        Args:
            api_key: Candidate api key
            device_id: Candidate device id
            api_key_length: Required api key length
            device_id_length: Required device id length

        Returns:
            The validated Session

        Raises:
            ConfigError: If either token is None, not a string, or the wrong length
        """
        return cls(
            api_key=_validate_token("api_key", api_key, api_key_length),
            device_id=_validate_token("device_id", device_id, device_id_length),
        )

    def __repr__(self) -> str:
        # Never log the full api key
        return f"Session(api_key='{self.api_key[:4]}...', device_id={self.device_id!r})"


def generate_device_id(length: int = DEFAULT_TOKEN_LENGTH) -> str:
    """Return a random hex device identifier of the given length.

    Hosts that have no stable device identifier of their own can generate
    one once and persist it.
    """
    if length < 1:
        raise ValueError(f"length must be >= 1, got {length}")
    return secrets.token_hex((length + 1) // 2)[:length]
