# src/eventtracker/config.py
"""
Configuration schema and loading for the event tracker.

Uses Pydantic for validation and Dynaconf for multi-source loading.
Settings are frozen (immutable) after construction.
"""

from pathlib import Path
from typing import Any

import httpx
from pydantic import BaseModel, Field, field_validator

from eventtracker.errors import ConfigError

# Placeholder test sink; hosts are expected to override it
DEFAULT_ENDPOINT_URL = "https://webhook.site/08ac3515-63a1-49a2-89ef-8f106aa8e80c"

ENV_PREFIX = "EVENTTRACKER"


def validate_endpoint_url(url: object) -> str:
    """Return url unchanged if it is an absolute http(s) URL.

    Raises:
        ConfigError: If url is not a string or not an absolute http(s) URL
    """
    if not isinstance(url, str):
        raise ConfigError("endpoint_url", f"must be a string, got {type(url).__name__}")
    try:
        parsed = httpx.URL(url)
    except httpx.InvalidURL as e:
        raise ConfigError("endpoint_url", f"{url!r} is not a valid URL: {e}") from e
    if parsed.scheme not in ("http", "https") or not parsed.host:
        raise ConfigError("endpoint_url", f"{url!r} must be an absolute http(s) URL")
    return url


class TrackerSettings(BaseModel):
    """Event tracker configuration.

    Example settings.yaml:
        endpoint_url: https://collector.example.com/events
        buffer_capacity: 50
        flush_interval_seconds: 5
    """

    model_config = {"frozen": True}

    endpoint_url: str = Field(default=DEFAULT_ENDPOINT_URL, description="Collection endpoint accepting JSON POSTs")
    buffer_capacity: int = Field(default=10, gt=0, description="Maximum events held between flushes")
    flush_interval_seconds: float = Field(default=10.0, gt=0, description="Delay between flush cycles")
    api_key_length: int = Field(default=16, gt=0, description="Required api key length")
    device_id_length: int = Field(default=16, gt=0, description="Required device id length")
    request_timeout_seconds: float = Field(default=30.0, gt=0, description="HTTP timeout per delivery")
    strict: bool = Field(default=False, description="Raise UseBeforeInitError instead of dropping early events")
    debug: bool = Field(default=False, description="Verbose logging")

    @field_validator("endpoint_url")
    @classmethod
    def _check_endpoint_url(cls, v: str) -> str:
        # ConfigError is not a ValueError; pydantic needs ValueError to wrap it
        try:
            return validate_endpoint_url(v)
        except ConfigError as e:
            raise ValueError(e.message) from e


def load_settings(config_path: Path | None = None) -> TrackerSettings:
    """Load settings from a YAML/TOML file with environment variable overrides.

    Uses Dynaconf for multi-source loading with precedence:
    1. Environment variables (EVENTTRACKER_*) - highest priority
    2. Config file (if given)
    3. Defaults from Pydantic schema - lowest priority

    Args:
        config_path: Optional path to a configuration file

    Returns:
        Validated TrackerSettings instance

    Raises:
        ValidationError: If configuration fails Pydantic validation
        FileNotFoundError: If config_path is given but doesn't exist
    """
    from dynaconf import Dynaconf

    # Explicit check for file existence (Dynaconf silently accepts missing files)
    if config_path is not None and not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    dynaconf_settings = Dynaconf(
        envvar_prefix=ENV_PREFIX,
        settings_files=[str(config_path)] if config_path is not None else [],
        environments=False,
        load_dotenv=False,
    )

    # Dynaconf returns uppercase keys; keep only fields the model knows
    known = set(TrackerSettings.model_fields)
    raw_config: dict[str, Any] = {}
    for key, value in dynaconf_settings.as_dict().items():
        name = key.lower()
        if name in known:
            raw_config[name] = value

    return TrackerSettings(**raw_config)
