"""Schemas related to the OAuth connection flow."""

from __future__ import annotations

from pydantic import BaseModel, Field


class SubmitPayload(BaseModel):
    """Payload sent by the landing page once HubSpot access is granted."""

    posthogtoken: str = Field(
        ..., min_length=1, description="PostHog personal access token."
    )


class TokenExchangeResult(BaseModel):
    """Outcome of a successful code exchange and token upsert."""

    portal_id: str
    access_token: str


__all__ = ["SubmitPayload", "TokenExchangeResult"]
