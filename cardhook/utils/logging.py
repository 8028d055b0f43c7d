"""Structured logging setup using structlog."""

from __future__ import annotations

import logging
import re
import sys

import structlog


_URL_RE = re.compile(r"(?P<scheme>https?://)(?P<userinfo>[^/@\s]+@)?(?P<host>[^/\s?#]+)(?P<path>[^\s?#]*)(?P<query>\?[^\s#]*)?")

# Path segments at least this long are treated as embedded tokens.
_TOKEN_SEGMENT_LEN = 16


def redact_url(text: str) -> str:
    """Mask credentials embedded in any http(s) URL found in ``text``.

    Webhook URLs carry their secret in the userinfo, the query string or a
    long opaque path segment, so all three are masked. Scheme, host and
    short path segments are kept for diagnosis.
    """

    def _mask(match: re.Match[str]) -> str:
        userinfo = "***@" if match.group("userinfo") else ""
        segments = [
            "***" if len(segment) >= _TOKEN_SEGMENT_LEN else segment
            for segment in match.group("path").split("/")
        ]
        query = "?***" if match.group("query") else ""
        return f"{match.group('scheme')}{userinfo}{match.group('host')}{'/'.join(segments)}{query}"

    return _URL_RE.sub(_mask, text)


def _filter_sensitive(
    _logger: structlog.types.WrappedLogger,
    _method: str,
    event_dict: structlog.types.EventDict,
) -> structlog.types.EventDict:
    for key, value in list(event_dict.items()):
        if isinstance(value, str) and "://" in value:
            event_dict[key] = redact_url(value)
    return event_dict


def setup_logging(level: str = "INFO", json_output: bool = False) -> None:
    """Configure structlog with optional JSON output."""
    numeric_level = getattr(logging, level.upper(), logging.INFO)

    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        _filter_sensitive,
    ]

    if json_output:
        renderer: structlog.types.Processor = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer()

    structlog.configure(
        processors=[
            *shared_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                renderer,
            ],
        )
    )

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(numeric_level)

    # Quiet noisy libraries
    for name in ("httpx", "httpcore", "asyncio"):
        logging.getLogger(name).setLevel(max(numeric_level, logging.WARNING))


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)
