"""Pytest configuration shared across the suite."""

from __future__ import annotations

try:
    from . import _bootstrap  # noqa: F401
except Exception:  # pragma: no cover - tests/ is not a package
    import _bootstrap  # type: ignore # noqa: F401

import json
from urllib.parse import parse_qs

import httpx
import pytest

from app.core.config import HubSpotSettings

API_BASE_URL = "https://api.hubspot.test"
CONTACTS_PATH = "/crm/v3/objects/contacts/"


class FakeHubSpotApi:
    """In-memory stand-in for the HubSpot endpoints the service calls."""

    def __init__(self) -> None:
        self.contact_pages: list[list[dict]] = [[]]
        self.failing_pages: set[int] = set()
        self.failing_contact_ids: set[str] = set()
        self.portal_id = 12345
        self.token_status = 200
        self.me_status = 200
        self.token_body: str | None = None
        self.me_body: str | None = None
        self.exchanged_codes: list[str] = []
        self.token_requests: list[dict[str, list[str]]] = []
        self.page_requests: list[str] = []
        self.patches: list[tuple[str, dict]] = []
        self.authorization_headers: list[str] = []
        self._issued = 0

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    def handler(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path
        if request.method == "POST" and path == "/oauth/v1/token":
            return self._token(request)
        if request.method == "GET" and path == "/integrations/v1/me":
            return self._me(request)
        if request.method == "GET" and path == CONTACTS_PATH:
            return self._contacts_page(request)
        if request.method == "PATCH" and path.startswith(CONTACTS_PATH):
            return self._patch_contact(request)
        return httpx.Response(404, text=f"unexpected {request.method} {path}")

    def _token(self, request: httpx.Request) -> httpx.Response:
        form = parse_qs(request.content.decode("utf-8"))
        self.token_requests.append(form)
        self.exchanged_codes.append(form["code"][0])
        if self.token_status != 200:
            return httpx.Response(self.token_status, text="invalid_grant")
        if self.token_body is not None:
            return httpx.Response(200, text=self.token_body)
        self._issued += 1
        return httpx.Response(
            200,
            json={
                "access_token": f"access-{self._issued}",
                "refresh_token": f"refresh-{self._issued}",
                "expires_in": 1800,
            },
        )

    def _me(self, request: httpx.Request) -> httpx.Response:
        self.authorization_headers.append(request.headers.get("authorization", ""))
        if self.me_status != 200:
            return httpx.Response(self.me_status, text="token not found")
        if self.me_body is not None:
            return httpx.Response(200, text=self.me_body)
        return httpx.Response(200, json={"portalId": self.portal_id})

    def _contacts_page(self, request: httpx.Request) -> httpx.Response:
        self.page_requests.append(str(request.url))
        self.authorization_headers.append(request.headers.get("authorization", ""))
        index = int(request.url.params.get("after", "0"))
        if index in self.failing_pages:
            return httpx.Response(502, text="bad gateway")
        payload: dict = {"results": self.contact_pages[index]}
        if index + 1 < len(self.contact_pages):
            payload["paging"] = {
                "next": {"link": f"{API_BASE_URL}{CONTACTS_PATH}?after={index + 1}"}
            }
        return httpx.Response(200, json=payload)

    def _patch_contact(self, request: httpx.Request) -> httpx.Response:
        contact_id = request.url.path.rsplit("/", 1)[-1]
        self.patches.append((contact_id, json.loads(request.content)))
        if contact_id in self.failing_contact_ids:
            return httpx.Response(500, text="internal error")
        return httpx.Response(200, json={"id": contact_id})


def make_contact(contact_id: str, **properties) -> dict:
    return {"id": contact_id, "properties": {"email": f"{contact_id}@example.com", **properties}}


@pytest.fixture
def anyio_backend() -> str:
    """Force AnyIO-powered tests to run against asyncio backend only."""
    return "asyncio"


@pytest.fixture
def hubspot_settings() -> HubSpotSettings:
    return HubSpotSettings(
        HUBSPOT_CLIENT_ID="client",
        HUBSPOT_CLIENT_SECRET="secret",
        HUBSPOT_REDIRECT_URI="https://example.com/auth/callback",
        HUBSPOT_API_BASE_URL=API_BASE_URL,
    )


@pytest.fixture
def fake_hubspot() -> FakeHubSpotApi:
    return FakeHubSpotApi()
