"""Schemas describing HubSpot CRM contact records."""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class ContactProperties(BaseModel):
    """Subset of contact properties requested from the CRM."""

    model_config = ConfigDict(extra="allow")

    email: Optional[str] = None
    custom_url: Optional[str] = None
    unique_identifier: Optional[str] = None
    posthog_url: Optional[str] = None


class Contact(BaseModel):
    """A contact object as returned by the CRM objects API."""

    model_config = ConfigDict(extra="allow")

    id: str
    properties: ContactProperties = Field(default_factory=ContactProperties)


__all__ = ["Contact", "ContactProperties"]
