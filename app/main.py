"""
FastAPI application entrypoint for the HubSpot contact backfill service.
"""

from __future__ import annotations

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.api.routes import router
from app.core.config import get_settings
from app.core.logging import configure_logging


def create_app() -> FastAPI:
    """Factory for the FastAPI application."""
    settings = get_settings()
    configure_logging(settings.log_level)

    app = FastAPI(
        title="HubSpot Contact Backfill",
        version="0.1.0",
        description=(
            "Connects a HubSpot portal, stores its tokens alongside a PostHog "
            "token and back-fills tracking properties on its contacts."
        ),
    )
    origins = [
        origin.strip()
        for origin in settings.cors_allow_origins.split(",")
        if origin.strip()
    ]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Backfill-Job-Id"],
    )
    app.include_router(router)
    return app


app = create_app()


def run() -> None:
    """Serve the application with uvicorn on the configured port."""
    settings = get_settings()
    uvicorn.run(app, host="0.0.0.0", port=settings.port, log_level=settings.log_level.lower())


if __name__ == "__main__":  # pragma: no cover - script entry point
    run()

__all__ = ["app", "create_app", "run"]
