"""
Factory functions to provide shared clients and services as FastAPI dependencies.
"""

from functools import lru_cache

from app.clients import (
    AuthorizationCodeSession,
    BackfillJobStore,
    HubSpotContactsClient,
    HubSpotOAuthClient,
    OAuthStateEncoder,
    TokenStore,
)
from app.core.config import get_settings
from app.services import BackfillService, HubSpotTokenService


@lru_cache()
def _settings():
    """Internal helper to cache settings for client factories."""
    return get_settings()


@lru_cache()
def get_oauth_state_encoder() -> OAuthStateEncoder:
    """Provide an OAuth state encoder keyed by the session secret."""
    settings = _settings()
    secret = settings.security.session_secret or settings.hubspot.client_secret
    return OAuthStateEncoder(secret_key=secret)


@lru_cache()
def get_code_session() -> AuthorizationCodeSession:
    """Provide the cookie-backed authorization code holder."""
    settings = _settings()
    return AuthorizationCodeSession(
        get_oauth_state_encoder(), ttl_seconds=settings.oauth.state_ttl_seconds
    )


@lru_cache()
def get_hubspot_oauth_client() -> HubSpotOAuthClient:
    """Create a singleton HubSpot OAuth client."""
    return HubSpotOAuthClient(_settings().hubspot)


@lru_cache()
def get_contacts_client() -> HubSpotContactsClient:
    """Provide HubSpot CRM contacts client instance."""
    return HubSpotContactsClient(_settings().hubspot)


@lru_cache()
def get_token_store() -> TokenStore:
    """Provide shared SQLite token store."""
    return TokenStore(_settings().database_path)


@lru_cache()
def get_job_store() -> BackfillJobStore:
    """Provide shared SQLite backfill job store."""
    return BackfillJobStore(_settings().database_path)


def get_hubspot_token_service() -> HubSpotTokenService:
    """Build the code exchange and token persistence service."""
    return HubSpotTokenService(
        oauth_client=get_hubspot_oauth_client(),
        store=get_token_store(),
    )


def get_backfill_service() -> BackfillService:
    """Build the contact backfill service."""
    return BackfillService(
        contacts_client=get_contacts_client(),
        job_store=get_job_store(),
        backfill_settings=_settings().backfill,
    )


__all__ = [
    "get_backfill_service",
    "get_code_session",
    "get_contacts_client",
    "get_hubspot_oauth_client",
    "get_hubspot_token_service",
    "get_job_store",
    "get_oauth_state_encoder",
    "get_token_store",
]
