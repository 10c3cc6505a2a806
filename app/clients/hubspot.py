"""
HubSpot API clients.

These helpers cover the OAuth code exchange, portal lookup and the CRM
contact endpoints used by the backfill job.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Tuple
from urllib.parse import urlencode

import httpx
from fastapi import status

from app.core.config import HubSpotSettings
from app.schemas.contact import Contact

logger = logging.getLogger(__name__)

CONTACT_PROPERTIES = ("custom_url", "unique_identifier", "email", "posthog_url")


class OAuthTokenExchangeError(Exception):
    """Raised when the token endpoint returns an error."""


class AccountResolutionError(Exception):
    """Raised when the portal owning an access token cannot be determined."""


class HubSpotApiError(Exception):
    """Raised when a CRM endpoint responds with a non-success status."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


def _bearer_headers(access_token: str) -> Dict[str, str]:
    return {
        "Authorization": f"Bearer {access_token}",
        "Content-Type": "application/json",
    }


def _json_object(response: httpx.Response) -> Optional[Dict[str, Any]]:
    """Decode a JSON object body, or return None when the body is anything else."""
    try:
        payload = response.json()
    except ValueError:
        return None
    return payload if isinstance(payload, dict) else None


def _body_excerpt(response: httpx.Response, limit: int = 200) -> str:
    text = response.text.strip()
    return text[:limit] if text else "<empty body>"


class HubSpotOAuthClient:
    """Build HubSpot authorization URLs and exchange authorization codes."""

    TOKEN_PATH = "/oauth/v1/token"
    ME_PATH = "/integrations/v1/me"

    def __init__(
        self,
        hubspot_settings: HubSpotSettings,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
        timeout: float = 10.0,
    ) -> None:
        self._hubspot = hubspot_settings
        self._transport = transport
        self._timeout = timeout

    @property
    def token_url(self) -> str:
        return f"{self._hubspot.api_base_url}{self.TOKEN_PATH}"

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self._timeout, transport=self._transport)

    def build_authorization_url(self, state: str) -> str:
        """Construct the HubSpot OAuth consent URL."""
        params = {
            "client_id": self._hubspot.client_id,
            "redirect_uri": str(self._hubspot.redirect_uri),
            "scope": self._hubspot.scopes,
            "state": state,
        }
        return f"{self._hubspot.authorize_url}?{urlencode(params)}"

    async def exchange_authorization_code(self, code: str) -> Tuple[str, str]:
        """
        Exchange an authorization code for tokens.

        Returns a tuple of (access_token, refresh_token).
        """
        payload = {
            "grant_type": "authorization_code",
            "client_id": self._hubspot.client_id,
            "client_secret": self._hubspot.client_secret,
            "redirect_uri": str(self._hubspot.redirect_uri),
            "code": code,
        }

        try:
            async with self._client() as client:
                response = await client.post(self.token_url, data=payload)
        except httpx.HTTPError as exc:
            raise OAuthTokenExchangeError(str(exc) or exc.__class__.__name__) from exc

        if response.status_code != status.HTTP_200_OK:
            raise OAuthTokenExchangeError(response.text)

        token_payload = _json_object(response)
        if token_payload is None:
            raise OAuthTokenExchangeError(
                f"Unexpected token response from HubSpot: {_body_excerpt(response)}"
            )
        access_token = token_payload.get("access_token")
        refresh_token = token_payload.get("refresh_token")

        if not access_token or not refresh_token:
            raise OAuthTokenExchangeError("Incomplete token payload returned from HubSpot.")

        return access_token, refresh_token

    async def get_portal_id(self, access_token: str) -> str:
        """Return the portal (account) id owning ``access_token``."""
        url = f"{self._hubspot.api_base_url}{self.ME_PATH}"
        try:
            async with self._client() as client:
                response = await client.get(
                    url, headers={"Authorization": f"Bearer {access_token}"}
                )
        except httpx.HTTPError as exc:
            raise AccountResolutionError(str(exc) or exc.__class__.__name__) from exc

        if response.status_code != status.HTTP_200_OK:
            raise AccountResolutionError(response.text)

        me_payload = _json_object(response)
        if me_payload is None:
            raise AccountResolutionError(
                f"Unexpected account response from HubSpot: {_body_excerpt(response)}"
            )
        portal_id = me_payload.get("portalId")
        if portal_id is None:
            raise AccountResolutionError("HubSpot did not return a portalId.")
        return str(portal_id)


class HubSpotContactsClient:
    """Read and patch CRM contact objects."""

    CONTACTS_PATH = "/crm/v3/objects/contacts/"

    def __init__(
        self,
        hubspot_settings: HubSpotSettings,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
        timeout: float = 10.0,
    ) -> None:
        self._hubspot = hubspot_settings
        self._transport = transport
        self._timeout = timeout

    @property
    def contacts_url(self) -> str:
        """First page of the contact listing with the properties we need."""
        query = urlencode({"properties": ",".join(CONTACT_PROPERTIES)}, safe=",")
        return f"{self._hubspot.api_base_url}{self.CONTACTS_PATH}?{query}"

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self._timeout, transport=self._transport)

    async def fetch_all_contacts(
        self, access_token: str, url: Optional[str] = None
    ) -> List[Contact]:
        """
        Page through the contact listing and return every contact.

        Follows ``paging.next.link`` until the API stops returning one. Any
        failed page aborts the whole fetch.
        """
        contacts: List[Contact] = []
        next_url: Optional[str] = url or self.contacts_url
        page = 0

        async with self._client() as client:
            while next_url:
                page += 1
                response = await client.get(next_url, headers=_bearer_headers(access_token))
                if response.status_code != status.HTTP_200_OK:
                    raise HubSpotApiError(
                        f"Failed to fetch contacts page {page}: {response.text}",
                        status_code=response.status_code,
                    )

                data: Dict[str, Any] = response.json()
                results = data.get("results") or []
                contacts.extend(Contact.model_validate(item) for item in results)
                logger.debug("Fetched contacts page %s (%s results)", page, len(results))

                next_url = ((data.get("paging") or {}).get("next") or {}).get("link")

        logger.info("Fetched %s contacts across %s pages", len(contacts), page)
        return contacts

    async def update_contact(
        self,
        contact_id: str,
        unique_identifier: str,
        custom_url: str,
        access_token: str,
    ) -> bool:
        """
        Patch ``unique_identifier`` and ``custom_url`` on a single contact.

        Failures are logged and reported through the return value so callers
        can keep processing the remaining contacts.
        """
        url = f"{self._hubspot.api_base_url}{self.CONTACTS_PATH}{contact_id}"
        body = {
            "properties": {
                "unique_identifier": unique_identifier,
                "custom_url": custom_url,
            }
        }

        try:
            async with self._client() as client:
                response = await client.patch(
                    url, json=body, headers=_bearer_headers(access_token)
                )
        except httpx.HTTPError as exc:
            logger.error("Error updating HubSpot contact %s: %s", contact_id, exc)
            return False

        if response.status_code >= status.HTTP_400_BAD_REQUEST:
            logger.error(
                "Error updating HubSpot contact %s: HTTP %s %s",
                contact_id,
                response.status_code,
                response.text,
            )
            return False

        logger.info("Updated contact %s.", contact_id)
        return True


__all__ = [
    "AccountResolutionError",
    "CONTACT_PROPERTIES",
    "HubSpotApiError",
    "HubSpotContactsClient",
    "HubSpotOAuthClient",
    "OAuthTokenExchangeError",
]
