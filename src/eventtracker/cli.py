# src/eventtracker/cli.py
"""eventtracker Command Line Interface.

Developer tooling for integrating the tracker: generate a device id and
send a single event to a collection endpoint to check the wiring.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import typer
from pydantic import ValidationError

from eventtracker import __version__
from eventtracker.config import TrackerSettings, load_settings
from eventtracker.delivery import DeliveryPipeline
from eventtracker.errors import ConfigError
from eventtracker.events import Event
from eventtracker.logging import configure_logging, get_logger
from eventtracker.session import Session, generate_device_id

app = typer.Typer(
    name="eventtracker",
    help="eventtracker: buffered event delivery for host applications.",
    no_args_is_help=True,
)


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        typer.echo(f"eventtracker version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool | None = typer.Option(
        None,
        "--version",
        "-V",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
) -> None:
    """eventtracker developer tools."""


@app.command("device-id")
def device_id(
    length: int = typer.Option(
        16,
        "--length",
        "-l",
        min=1,
        help="Number of characters.",
    ),
) -> None:
    """Print a freshly generated device id."""
    typer.echo(generate_device_id(length))


def _parse_data(data: str | None) -> dict[str, Any]:
    if data is None:
        return {}
    try:
        parsed = json.loads(data)
    except json.JSONDecodeError as e:
        raise typer.BadParameter(f"--data is not valid JSON: {e}") from e
    if not isinstance(parsed, dict):
        raise typer.BadParameter("--data must be a JSON object")
    return parsed


@app.command()
def send(
    api_key: str = typer.Option(..., "--api-key", "-k", help="Api key."),
    device: str = typer.Option(..., "--device-id", "-d", help="Device id."),
    category: str = typer.Option(..., "--category", "-c", help="Event category."),
    data: str | None = typer.Option(None, "--data", help="Event payload as a JSON object."),
    endpoint: str | None = typer.Option(None, "--endpoint", "-e", help="Override the endpoint URL."),
    settings_file: Path | None = typer.Option(None, "--settings", "-s", help="Settings file (YAML or TOML)."),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show debug logging."),
) -> None:
    """Deliver one event synchronously and report the outcome."""
    try:
        settings = load_settings(settings_file)
    except (FileNotFoundError, ValidationError) as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(2) from None

    configure_logging(level="DEBUG" if verbose or settings.debug else "WARNING")
    logger = get_logger(__name__)

    payload = _parse_data(data)
    try:
        if endpoint is not None:
            settings = TrackerSettings(**{**settings.model_dump(), "endpoint_url": endpoint})
        session = Session.create(
            api_key,
            device,
            api_key_length=settings.api_key_length,
            device_id_length=settings.device_id_length,
        )
        event = Event(category=category, payload=payload)
    except (ConfigError, ValidationError, ValueError) as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(2) from None

    pipeline = DeliveryPipeline(timeout=settings.request_timeout_seconds)
    try:
        ok = pipeline.deliver(event, session, settings.endpoint_url)
    finally:
        pipeline.close()

    logger.debug("Send finished", ok=ok, endpoint_url=settings.endpoint_url)
    if not ok:
        typer.echo(f"Delivery to {settings.endpoint_url} failed", err=True)
        raise typer.Exit(1)
    typer.echo(f"Delivered '{category}' event to {settings.endpoint_url}")


if __name__ == "__main__":
    app()
