"""Utility modules for cardhook."""

from cardhook.utils.logging import get_logger, redact_url, setup_logging

__all__ = [
    "get_logger",
    "redact_url",
    "setup_logging",
]
