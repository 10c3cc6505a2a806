"""Expose dependency helpers for FastAPI routers."""

from .clients import (
    get_backfill_service,
    get_code_session,
    get_contacts_client,
    get_hubspot_oauth_client,
    get_hubspot_token_service,
    get_job_store,
    get_oauth_state_encoder,
    get_token_store,
)
from .config import SettingsDependency, get_app_settings

__all__ = [
    "SettingsDependency",
    "get_app_settings",
    "get_backfill_service",
    "get_code_session",
    "get_contacts_client",
    "get_hubspot_oauth_client",
    "get_hubspot_token_service",
    "get_job_store",
    "get_oauth_state_encoder",
    "get_token_store",
]
