"""FastAPI application entrypoint."""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.api.routes import api_router
from app.config import get_settings
from app.core.logging import setup_logging
from app.core.telemetry import setup_telemetry
from trade_matcher.config import get_matcher_settings

logger = logging.getLogger(__name__)

settings = get_settings()
app = FastAPI(title=settings.app_name, version="0.1.0")
setup_logging()
setup_telemetry(app, settings)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_origin_regex=r"^https?://(localhost|127\.0\.0\.1)(:\d+)?$",
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["Content-Disposition", "traceparent", "tracestate"],
)


@app.get("/health", tags=["health"])
async def health() -> dict[str, str]:
    """Return service readiness metadata."""

    matcher_settings = get_matcher_settings()
    return {
        "status": "ok",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "default_strategy": matcher_settings.default_strategy.value,
        "buy_window": matcher_settings.buy_window.value,
    }


def configure_app() -> FastAPI:
    """Attach routes."""

    app.include_router(api_router)
    logger.info("Service configured: %s", settings.dict_for_logging())
    return app


configure_app()

__all__ = ["app", "configure_app"]
