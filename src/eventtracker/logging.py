# src/eventtracker/logging.py
"""Optional log setup for the CLI and for hosts without their own.

Library modules only call structlog.get_logger(). configure_logging()
routes those events and httpx's stdlib records through one structlog
ProcessorFormatter on stderr.
"""

import logging
import sys
from typing import Any

import structlog
from structlog.stdlib import ProcessorFormatter

_HTTP_CLIENT_LOGGERS = ("httpx", "httpcore")


def _strip_formatter_keys(
    logger: logging.Logger | None,
    method_name: str,
    event_dict: dict[str, Any],
) -> dict[str, Any]:
    # Always set by ProcessorFormatter
    del event_dict["_record"]
    del event_dict["_from_structlog"]
    return event_dict


def _renderers(json_output: bool) -> list[Any]:
    if json_output:
        return [
            _strip_formatter_keys,
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    return [
        _strip_formatter_keys,
        structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty()),
    ]


def configure_logging(*, json_output: bool = False, level: str = "INFO") -> None:
    """Send tracker and HTTP client logs to stderr at the given level.

    httpx and httpcore stay at WARNING or above; they log every request.
    """
    log_level = getattr(logging, level.upper())
    pre_chain: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
    ]

    structlog.configure(
        processors=[*pre_chain, ProcessorFormatter.wrap_for_formatter],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=False,
    )

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(ProcessorFormatter(processors=_renderers(json_output), foreign_pre_chain=pre_chain))

    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(log_level)
    for name in _HTTP_CLIENT_LOGGERS:
        logging.getLogger(name).setLevel(max(log_level, logging.WARNING))


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    logger: structlog.stdlib.BoundLogger = structlog.get_logger(name)
    return logger
