try:
    from . import _bootstrap  # noqa: F401
except Exception:  # pragma: no cover - fallback for direct execution
    import _bootstrap  # type: ignore # noqa: F401

import sqlite3

import httpx
import pytest

from app.clients.hubspot import HubSpotContactsClient, HubSpotOAuthClient
from app.clients.job_store import BackfillJobStore
from app.clients.sqlite_store import TokenStore
from app.core.config import BackfillSettings
from app.main import app
from app.services import BackfillService, HubSpotTokenService
from conftest import make_contact

pytestmark = pytest.mark.anyio

JOB_ID_HEADER = "x-backfill-job-id"


@pytest.fixture()
def overrides(tmp_path, hubspot_settings, fake_hubspot):
    from app import dependencies

    token_store = TokenStore(str(tmp_path / "app.db"))
    job_store = BackfillJobStore(str(tmp_path / "app.db"))
    token_service = HubSpotTokenService(
        oauth_client=HubSpotOAuthClient(hubspot_settings, transport=fake_hubspot.transport),
        store=token_store,
    )
    backfill_service = BackfillService(
        contacts_client=HubSpotContactsClient(
            hubspot_settings, transport=fake_hubspot.transport
        ),
        job_store=job_store,
        backfill_settings=BackfillSettings(),
    )

    app.dependency_overrides.clear()
    app.dependency_overrides.update(
        {
            dependencies.get_hubspot_token_service: lambda: token_service,
            dependencies.get_job_store: lambda: job_store,
            dependencies.get_backfill_service: lambda: backfill_service,
        }
    )

    yield token_store, job_store

    app.dependency_overrides.clear()


def _client() -> httpx.AsyncClient:
    return httpx.AsyncClient(
        transport=httpx.ASGITransport(app=app), base_url="http://testserver"
    )


async def test_landing_page_is_served() -> None:
    async with _client() as client:
        response = await client.get("/")

    assert response.status_code == 200
    assert "text/html" in response.headers["content-type"]
    assert 'name="posthogtoken"' in response.text


async def test_authorize_redirects_to_hubspot() -> None:
    async with _client() as client:
        response = await client.get("/auth/authorize")

    assert response.status_code == 307
    location = httpx.URL(response.headers["location"])
    assert str(location).startswith("https://app.hubspot.com/oauth/authorize")
    assert location.params["client_id"] == "test-client-id"
    assert location.params["state"]


async def test_callback_requires_code() -> None:
    async with _client() as client:
        response = await client.get("/auth/callback")

    assert response.status_code == 400


async def test_callback_rejects_tampered_state() -> None:
    async with _client() as client:
        response = await client.get(
            "/auth/callback", params={"code": "abc", "state": "Zm9vYmFy"}
        )

    assert response.status_code == 400


async def test_submit_exchanges_code_and_backfills(overrides, fake_hubspot) -> None:
    token_store, job_store = overrides
    fake_hubspot.contact_pages = [
        [make_contact("1"), make_contact("2", unique_identifier="keep")],
        [make_contact("3", custom_url="https://www.wintactix.com/?keep")],
    ]

    async with _client() as client:
        callback = await client.get("/auth/callback", params={"code": "auth-code"})
        assert callback.status_code == 200
        assert "text/html" in callback.headers["content-type"]

        response = await client.post("/submit", data={"posthogtoken": "phx-token"})

    assert response.status_code == 200
    assert "connected" in response.text
    assert fake_hubspot.exchanged_codes == ["auth-code"]

    row = token_store.get_tokens("12345")
    assert row["hubspot_access_token"] == "access-1"
    assert row["posthog_access_token"] == "phx-token"

    job = job_store.get_job(response.headers[JOB_ID_HEADER])
    assert job["portal_id"] == "12345"
    assert job["status"] == "completed"
    assert [contact_id for contact_id, _ in fake_hubspot.patches] == ["1"]


async def test_submit_accepts_json_body(overrides, fake_hubspot) -> None:
    token_store, _ = overrides

    async with _client() as client:
        await client.get("/auth/callback", params={"code": "auth-code"})
        response = await client.post("/submit", json={"posthogtoken": "phx-json"})

    assert response.status_code == 200
    assert token_store.get_tokens("12345")["posthog_access_token"] == "phx-json"


async def test_job_status_endpoint(overrides) -> None:
    async with _client() as client:
        await client.get("/auth/callback", params={"code": "auth-code"})
        submitted = await client.post("/submit", data={"posthogtoken": "phx-token"})
        job_id = submitted.headers[JOB_ID_HEADER]

        status_response = await client.get(f"/backfill/jobs/{job_id}")
        missing = await client.get("/backfill/jobs/does-not-exist")

    assert status_response.status_code == 200
    body = status_response.json()
    assert body["job_id"] == job_id
    assert body["status"] == "completed"
    assert body["summary"]["contacts_seen"] == 0
    assert missing.status_code == 404


async def test_submit_without_callback_is_rejected(overrides, fake_hubspot) -> None:
    async with _client() as client:
        response = await client.post("/submit", data={"posthogtoken": "phx-token"})

    assert response.status_code == 400
    assert fake_hubspot.exchanged_codes == []


async def test_submit_without_token_is_rejected(overrides) -> None:
    async with _client() as client:
        await client.get("/auth/callback", params={"code": "auth-code"})
        response = await client.post("/submit", data={})

    assert response.status_code == 400


async def test_submit_reports_exchange_failure(overrides, fake_hubspot) -> None:
    token_store, _ = overrides
    fake_hubspot.token_status = 400

    async with _client() as client:
        await client.get("/auth/callback", params={"code": "auth-code"})
        response = await client.post("/submit", data={"posthogtoken": "phx-token"})

    assert response.status_code == 500
    assert response.text.startswith("Error during authentication:")
    assert "invalid_grant" in response.text
    assert token_store.count() == 0


async def test_submit_reports_portal_lookup_failure(overrides, fake_hubspot) -> None:
    token_store, _ = overrides
    fake_hubspot.me_status = 401

    async with _client() as client:
        await client.get("/auth/callback", params={"code": "auth-code"})
        response = await client.post("/submit", data={"posthogtoken": "phx-token"})

    assert response.status_code == 500
    assert response.text.startswith("Error during getting portal id:")
    assert token_store.count() == 0


async def test_concurrent_logins_keep_their_own_codes(overrides, fake_hubspot) -> None:
    async with _client() as first, _client() as second:
        await first.get("/auth/callback", params={"code": "code-first"})
        await second.get("/auth/callback", params={"code": "code-second"})

        await first.post("/submit", data={"posthogtoken": "phx-first"})
        await second.post("/submit", data={"posthogtoken": "phx-second"})

    assert fake_hubspot.exchanged_codes == ["code-first", "code-second"]


@pytest.mark.parametrize("body", ["<html>maintenance</html>", '["not", "an", "object"]'])
async def test_submit_reports_unreadable_token_response(overrides, fake_hubspot, body) -> None:
    token_store, _ = overrides
    fake_hubspot.token_body = body

    async with _client() as client:
        await client.get("/auth/callback", params={"code": "auth-code"})
        response = await client.post("/submit", data={"posthogtoken": "phx-token"})

    assert response.status_code == 500
    assert response.text.startswith("Error during authentication:")
    assert token_store.count() == 0


@pytest.mark.parametrize("body", ["<html>maintenance</html>", "42"])
async def test_submit_reports_unreadable_portal_response(overrides, fake_hubspot, body) -> None:
    token_store, _ = overrides
    fake_hubspot.me_body = body

    async with _client() as client:
        await client.get("/auth/callback", params={"code": "auth-code"})
        response = await client.post("/submit", data={"posthogtoken": "phx-token"})

    assert response.status_code == 500
    assert response.text.startswith("Error during getting portal id:")
    assert token_store.count() == 0


class LockedTokenStore(TokenStore):
    def upsert_tokens(self, **kwargs) -> None:
        raise sqlite3.OperationalError("database is locked")


async def test_submit_reports_persistence_failure(
    tmp_path, hubspot_settings, fake_hubspot
) -> None:
    from app import dependencies

    job_store = BackfillJobStore(str(tmp_path / "app.db"))
    token_service = HubSpotTokenService(
        oauth_client=HubSpotOAuthClient(hubspot_settings, transport=fake_hubspot.transport),
        store=LockedTokenStore(str(tmp_path / "app.db")),
    )
    backfill_service = BackfillService(
        contacts_client=HubSpotContactsClient(
            hubspot_settings, transport=fake_hubspot.transport
        ),
        job_store=job_store,
        backfill_settings=BackfillSettings(),
    )
    app.dependency_overrides.update(
        {
            dependencies.get_hubspot_token_service: lambda: token_service,
            dependencies.get_job_store: lambda: job_store,
            dependencies.get_backfill_service: lambda: backfill_service,
        }
    )

    try:
        async with _client() as client:
            await client.get("/auth/callback", params={"code": "auth-code"})
            response = await client.post("/submit", data={"posthogtoken": "phx-token"})
    finally:
        app.dependency_overrides.clear()

    assert response.status_code == 500
    assert response.text == "Error during authentication: database is locked"
    assert JOB_ID_HEADER not in response.headers
    with sqlite3.connect(tmp_path / "app.db") as conn:
        (job_count,) = conn.execute("SELECT COUNT(*) FROM backfill_jobs").fetchone()
    assert job_count == 0
    assert fake_hubspot.patches == []


async def test_cors_preflight_allows_submit_from_other_origins() -> None:
    async with _client() as client:
        response = await client.options(
            "/submit",
            headers={
                "origin": "https://landing.example.com",
                "access-control-request-method": "POST",
            },
        )

    assert response.status_code == 200
    assert response.headers["access-control-allow-origin"] == "*"
