"""Random identifier generation for contact backfill values."""

from __future__ import annotations

import secrets
import string

IDENTIFIER_ALPHABET = string.ascii_uppercase + string.ascii_lowercase


def generate_identifier(length: int) -> str:
    """Return ``length`` characters drawn uniformly from the Latin alphabet."""
    if length < 0:
        raise ValueError("Identifier length must be non-negative.")
    return "".join(secrets.choice(IDENTIFIER_ALPHABET) for _ in range(length))


__all__ = ["IDENTIFIER_ALPHABET", "generate_identifier"]
