"""
Logging utilities for the FastAPI application and the backfill worker.

Provides a consistent logging format and configuration.
"""

import logging
import sys

_NOISY_LOGGERS = ("httpx", "httpcore")


def configure_logging(level: str = "INFO") -> None:
    """Configure root logging with a sensible default format."""
    logging.basicConfig(
        level=level.upper(),
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
        stream=sys.stdout,
    )
    # Request lines from the HTTP client carry bearer-authenticated URLs.
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def mask_secret(value: str | None, *, visible: int = 4) -> str:
    """Return a log-safe rendering of a token."""
    if not value:
        return "<empty>"
    if len(value) <= visible:
        return "*" * len(value)
    return f"{value[:visible]}...({len(value)} chars)"


__all__ = ["configure_logging", "mask_secret"]
