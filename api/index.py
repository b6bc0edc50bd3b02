"""Serverless entry point: serves the content API under ``/api``."""

from __future__ import annotations

import os
import sys

import structlog
from fastapi import FastAPI, HTTPException

BASE_DIR = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
API_DIR = os.path.join(BASE_DIR, "apps", "api")
if API_DIR not in sys.path:
    sys.path.append(API_DIR)

logger = structlog.get_logger("blueprint.entrypoint")

# Mirrors the routes of blueprint.main so callers get a diagnosable 500
# rather than a 404 when the package cannot be imported.
API_ROUTES = (
    ("GET", "/api/health"),
    ("POST", "/api/content/generate"),
    ("POST", "/api/content/jobs"),
    ("GET", "/api/content/jobs/{job_id}/document"),
    ("GET", "/api/jobs/{job_id}"),
)


def import_error_app(detail: str) -> FastAPI:
    fallback = FastAPI(title="Blueprint Content API (Import Error)")

    async def unavailable() -> None:
        raise HTTPException(status_code=500, detail=detail)

    for method, path in API_ROUTES:
        fallback.add_api_route(path, unavailable, methods=[method])
    return fallback


def build_app() -> FastAPI:
    try:
        from blueprint.logging_config import configure_logging
        from blueprint.main import app as inner_app
    except Exception as exc:  # noqa: BLE001
        detail = f"{type(exc).__name__}: {exc}"
        logger.exception("api_import_failed", detail=detail)
        return import_error_app(detail)

    # Startup hooks of a mounted app never fire, so configure logging here.
    configure_logging()
    app = FastAPI(title="Blueprint Content API")
    app.mount("/api", inner_app)
    return app


app = build_app()
