"""
Exchange HubSpot authorization codes and persist the resulting tokens.
"""

from __future__ import annotations

import logging

from app.clients.hubspot import HubSpotOAuthClient
from app.clients.sqlite_store import TokenStore
from app.core.logging import mask_secret
from app.schemas.auth import TokenExchangeResult

logger = logging.getLogger(__name__)


class HubSpotTokenService:
    """Complete the OAuth exchange and upsert the token row for the portal."""

    def __init__(self, oauth_client: HubSpotOAuthClient, store: TokenStore) -> None:
        self._oauth = oauth_client
        self._store = store

    async def exchange_and_persist(
        self, code: str, posthog_access_token: str
    ) -> TokenExchangeResult:
        """
        Exchange ``code``, resolve the owning portal and store all tokens.

        Raises ``OAuthTokenExchangeError`` or ``AccountResolutionError`` from
        the OAuth client, and ``sqlite3.Error`` when the upsert fails.
        """
        access_token, refresh_token = await self._oauth.exchange_authorization_code(code)
        logger.info("Exchanged authorization code (access token %s)", mask_secret(access_token))

        portal_id = await self._oauth.get_portal_id(access_token)
        logger.info("Resolved HubSpot portal %s", portal_id)

        self._store.upsert_tokens(
            portal_id=portal_id,
            hubspot_access_token=access_token,
            hubspot_refresh_token=refresh_token,
            posthog_access_token=posthog_access_token,
        )
        logger.info("Stored tokens for portal %s", portal_id)
        return TokenExchangeResult(portal_id=portal_id, access_token=access_token)


__all__ = ["HubSpotTokenService"]
