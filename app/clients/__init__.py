"""Expose constructed client wrappers."""

from .hubspot import HubSpotContactsClient, HubSpotOAuthClient
from .job_store import BackfillJobStore
from .oauth_state import AuthorizationCodeSession, OAuthStateEncoder
from .sqlite_store import TokenStore

__all__ = [
    "AuthorizationCodeSession",
    "BackfillJobStore",
    "HubSpotContactsClient",
    "HubSpotOAuthClient",
    "OAuthStateEncoder",
    "TokenStore",
]
