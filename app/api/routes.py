"""
FastAPI routes for the HubSpot connection flow and backfill job status.
"""

from __future__ import annotations

import logging
import sqlite3
import uuid
from datetime import datetime, timezone
from http import HTTPStatus
from pathlib import Path
from typing import Annotated, Any

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Query, Request
from fastapi.responses import FileResponse, PlainTextResponse, RedirectResponse, Response
from pydantic import ValidationError

from app.clients.hubspot import AccountResolutionError, OAuthTokenExchangeError
from app.clients.oauth_state import InvalidStateError
from app.dependencies import (
    SettingsDependency,
    get_backfill_service,
    get_code_session,
    get_hubspot_oauth_client,
    get_hubspot_token_service,
    get_job_store,
    get_oauth_state_encoder,
)
from app.schemas import BackfillJobStatus, SubmitPayload

router = APIRouter()
logger = logging.getLogger(__name__)

STATIC_DIR = Path(__file__).resolve().parents[1] / "static"
LANDING_PAGE = STATIC_DIR / "index.html"
SUCCESS_PAGE = STATIC_DIR / "success.html"

JOB_ID_HEADER = "X-Backfill-Job-Id"


async def _read_submit_payload(request: Request) -> SubmitPayload:
    """Accept the PostHog token either as JSON or as a posted form."""
    content_type = request.headers.get("content-type", "").lower()
    if "application/json" in content_type:
        data = await request.json()
    else:
        form = await request.form()
        data = dict(form)
    return SubmitPayload.model_validate(data)


@router.get("/health", status_code=HTTPStatus.OK)
async def healthcheck() -> dict:
    """Simple health endpoint for monitoring."""
    return {"status": "ok"}


@router.get("/", include_in_schema=False)
async def landing_page() -> FileResponse:
    return FileResponse(LANDING_PAGE)


@router.get("/auth/authorize")
async def start_hubspot_oauth_flow(
    oauth_client: Annotated[Any, Depends(get_hubspot_oauth_client)],
    state_encoder: Annotated[Any, Depends(get_oauth_state_encoder)],
) -> RedirectResponse:
    """Redirect the browser to the HubSpot consent screen."""
    state = state_encoder.encode(
        {
            "nonce": uuid.uuid4().hex,
            "issued_at": datetime.now(timezone.utc).isoformat(),
        }
    )
    authorization_url = oauth_client.build_authorization_url(state=state)
    return RedirectResponse(url=authorization_url, status_code=HTTPStatus.TEMPORARY_REDIRECT)


@router.get("/auth/callback")
async def handle_hubspot_oauth_callback(
    settings: SettingsDependency,
    state_encoder: Annotated[Any, Depends(get_oauth_state_encoder)],
    code_session: Annotated[Any, Depends(get_code_session)],
    code: str | None = Query(default=None, description="Authorization code from HubSpot."),
    state: str | None = Query(default=None, description="State issued by /auth/authorize."),
) -> Response:
    """Remember the authorization code for this browser and show the landing page."""
    logger.info("In auth callback")
    if not code:
        return PlainTextResponse(
            "Missing authorization code.", status_code=HTTPStatus.BAD_REQUEST
        )

    if state is not None:
        try:
            state_encoder.decode(state)
        except InvalidStateError as exc:
            return PlainTextResponse(str(exc), status_code=HTTPStatus.BAD_REQUEST)

    response = FileResponse(LANDING_PAGE)
    response.set_cookie(
        settings.oauth.session_cookie_name,
        code_session.issue(code),
        max_age=settings.oauth.state_ttl_seconds,
        httponly=True,
        samesite="lax",
        secure=settings.environment == "production",
    )
    return response


@router.post("/submit")
async def submit_posthog_token(
    request: Request,
    background_tasks: BackgroundTasks,
    settings: SettingsDependency,
    code_session: Annotated[Any, Depends(get_code_session)],
    token_service: Annotated[Any, Depends(get_hubspot_token_service)],
    job_store: Annotated[Any, Depends(get_job_store)],
    backfill_service: Annotated[Any, Depends(get_backfill_service)],
) -> Response:
    """
    Exchange the stored code, persist tokens and start the contact backfill.

    The backfill runs after the success page has been sent; its progress is
    available from ``/backfill/jobs/{job_id}``.
    """
    logger.info("In submit")
    try:
        payload = await _read_submit_payload(request)
    except (ValidationError, ValueError):
        return PlainTextResponse(
            "Missing posthogtoken.", status_code=HTTPStatus.BAD_REQUEST
        )

    cookie_value = request.cookies.get(settings.oauth.session_cookie_name)
    if not cookie_value:
        return PlainTextResponse(
            "No HubSpot authorization code found. Connect your HubSpot account first.",
            status_code=HTTPStatus.BAD_REQUEST,
        )
    try:
        code = code_session.read(cookie_value)
    except InvalidStateError as exc:
        return PlainTextResponse(str(exc), status_code=HTTPStatus.BAD_REQUEST)

    try:
        result = await token_service.exchange_and_persist(code, payload.posthogtoken)
        job_id = job_store.create_job(result.portal_id)
    except AccountResolutionError as exc:
        logger.error("Error during getting portal id: %s", exc)
        return PlainTextResponse(
            f"Error during getting portal id: {exc}",
            status_code=HTTPStatus.INTERNAL_SERVER_ERROR,
        )
    except (OAuthTokenExchangeError, sqlite3.Error) as exc:
        logger.error("Error during authentication: %s", exc)
        return PlainTextResponse(
            f"Error during authentication: {exc}",
            status_code=HTTPStatus.INTERNAL_SERVER_ERROR,
        )

    background_tasks.add_task(
        backfill_service.run_job, job_id, result.portal_id, result.access_token
    )
    logger.info("Queued backfill job %s for portal %s", job_id, result.portal_id)
    return FileResponse(SUCCESS_PAGE, headers={JOB_ID_HEADER: job_id})


@router.get(
    "/backfill/jobs/{job_id}",
    response_model=BackfillJobStatus,
    status_code=HTTPStatus.OK,
)
async def get_backfill_job_status(
    job_id: str,
    job_store: Annotated[Any, Depends(get_job_store)],
) -> BackfillJobStatus:
    """Fetch the status of a backfill job."""
    item = job_store.get_job(job_id)
    if not item:
        raise HTTPException(status_code=HTTPStatus.NOT_FOUND, detail="Job not found.")
    return BackfillJobStatus.model_validate(item)


__all__ = ["router"]
