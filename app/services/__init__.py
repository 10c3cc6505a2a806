"""Service layer exports."""

from .backfill import BackfillService, build_custom_url, needs_backfill
from .hubspot_tokens import HubSpotTokenService
from .identifiers import generate_identifier

__all__ = [
    "BackfillService",
    "HubSpotTokenService",
    "build_custom_url",
    "generate_identifier",
    "needs_backfill",
]
