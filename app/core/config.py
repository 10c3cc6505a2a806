"""
Application configuration models and helpers.

Centralizes settings management so the FastAPI app, the backfill worker and
the maintenance scripts share a consistent configuration surface.
"""

from functools import lru_cache
from pathlib import Path
from typing import Optional

import os
import string

from pydantic import AnyHttpUrl, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def _load_env_file(path: str = ".env") -> None:
    """Best-effort load key=value pairs from a .env file without extra deps."""
    env_path = Path(path)
    if not env_path.exists():
        return
    for raw_line in env_path.read_text().splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue
        key, sep, value = line.partition("=")
        if not sep:
            continue
        key = key.strip()
        if not key or key in os.environ:
            continue
        cleaned = value.strip().strip('"').strip("'")
        os.environ[key] = cleaned


_load_env_file()


class HubSpotSettings(BaseSettings):
    """Configuration required for interacting with the HubSpot APIs."""

    model_config = SettingsConfigDict(populate_by_name=True, extra="ignore")

    client_id: str = Field(..., validation_alias="HUBSPOT_CLIENT_ID")
    client_secret: str = Field(..., validation_alias="HUBSPOT_CLIENT_SECRET")
    redirect_uri: AnyHttpUrl = Field(..., validation_alias="HUBSPOT_REDIRECT_URI")
    api_base_url: str = Field(
        "https://api.hubapi.com", validation_alias="HUBSPOT_API_BASE_URL"
    )
    authorize_url: str = Field(
        "https://app.hubspot.com/oauth/authorize",
        validation_alias="HUBSPOT_AUTHORIZE_URL",
    )
    scopes: str = Field(
        "oauth crm.objects.contacts.read crm.objects.contacts.write",
        validation_alias="HUBSPOT_SCOPES",
        description="Space or comma separated list of requested scopes.",
    )

    @field_validator("scopes", mode="before")
    @classmethod
    def _normalize_scopes(cls, value: str) -> str:
        """Support providing scopes as a comma-separated string."""
        parts = value.replace(",", " ").split()
        return " ".join(parts)

    @field_validator("api_base_url")
    @classmethod
    def _strip_trailing_slash(cls, value: str) -> str:
        return value.rstrip("/")


class OAuthSettings(BaseSettings):
    """OAuth flow configuration."""

    model_config = SettingsConfigDict(populate_by_name=True, extra="ignore")

    state_ttl_seconds: int = Field(900, validation_alias="OAUTH_STATE_TTL")
    session_cookie_name: str = Field(
        "hubspot_oauth", validation_alias="OAUTH_SESSION_COOKIE"
    )


class SecuritySettings(BaseSettings):
    """Security-related configuration."""

    model_config = SettingsConfigDict(populate_by_name=True, extra="ignore")

    session_secret: Optional[str] = Field(
        None,
        validation_alias="SESSION_SECRET",
        description=(
            "Secret used to sign OAuth state and the session cookie. "
            "Defaults to the HubSpot client secret when omitted."
        ),
    )


class BackfillSettings(BaseSettings):
    """Settings for the contact backfill job."""

    model_config = SettingsConfigDict(populate_by_name=True, extra="ignore")

    identifier_length: int = Field(6, ge=0, validation_alias="BACKFILL_IDENTIFIER_LENGTH")
    url_template: str = Field(
        "https://www.wintactix.com/?{identifier}",
        validation_alias="BACKFILL_URL_TEMPLATE",
    )

    @field_validator("url_template")
    @classmethod
    def _require_identifier_placeholder(cls, value: str) -> str:
        """Only the {identifier} placeholder may appear in the template."""
        try:
            fields = [
                (name, spec, conversion)
                for _, name, spec, conversion in string.Formatter().parse(value)
                if name is not None
            ]
        except ValueError as exc:
            raise ValueError(f"Malformed URL template: {exc}") from exc
        if not fields:
            raise ValueError("URL template must contain the {identifier} placeholder.")
        for name, spec, conversion in fields:
            if name != "identifier" or spec or conversion:
                raise ValueError(
                    "URL template may only use the plain {identifier} placeholder."
                )
        return value


class AppSettings(BaseSettings):
    """Root settings object for the FastAPI application."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        populate_by_name=True,
        extra="ignore",
    )

    environment: str = Field("development", validation_alias="APP_ENV")
    log_level: str = Field("INFO", validation_alias="APP_LOG_LEVEL")
    port: int = Field(3000, validation_alias="PORT")
    database_path: str = Field(
        "data/hubspot_tokens.db",
        validation_alias="DATABASE_PATH",
        description="SQLite database file holding token and job records.",
    )
    cors_allow_origins: str = Field(
        "*",
        validation_alias="CORS_ALLOW_ORIGINS",
        description="Comma separated origins allowed to call the API, or *.",
    )
    security: SecuritySettings = Field(default_factory=SecuritySettings)
    oauth: OAuthSettings = Field(default_factory=OAuthSettings)
    hubspot: HubSpotSettings = Field(default_factory=HubSpotSettings)
    backfill: BackfillSettings = Field(default_factory=BackfillSettings)


@lru_cache()
def get_settings() -> AppSettings:
    """Return a cached settings object."""
    return AppSettings()  # type: ignore[call-arg]


__all__ = [
    "AppSettings",
    "BackfillSettings",
    "HubSpotSettings",
    "OAuthSettings",
    "SecuritySettings",
    "get_settings",
]
