from __future__ import annotations

import logging

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from hrms.core.logging import RequestLoggingMiddleware, configure_logging
from hrms.core.observability import PrometheusMiddleware, metrics_endpoint
from hrms.core.settings import Settings, settings
from hrms.db.session import engine
from hrms.routers import include_all_routers

logger = logging.getLogger(__name__)

LOCAL_ORIGIN_REGEX = r"^http://(localhost|127\.0\.0\.1)(:\d+)?$"


def check_production_settings(config: Settings) -> None:
    if "*" in (origin.strip() for origin in config.allow_origins):
        raise RuntimeError("ALLOW_ORIGINS cannot include '*' in production")
    if config.jwt_secret.startswith("change_me"):
        raise RuntimeError("JWT_SECRET must be set in production")


def create_app(config: Settings = settings) -> FastAPI:
    configure_logging(level=config.log_level)
    if config.is_production:
        check_production_settings(config)

    application = FastAPI(title=config.project_name, version=config.project_version)
    application.add_middleware(
        CORSMiddleware,
        allow_origins=config.allow_origins,
        allow_origin_regex=None if config.is_production else LOCAL_ORIGIN_REGEX,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
        allow_headers=["Authorization", "Content-Type", "X-Request-Id", "Accept"],
    )
    # Added last so it wraps the others and sees the final status code.
    application.add_middleware(PrometheusMiddleware)
    application.add_middleware(RequestLoggingMiddleware)

    application.add_api_route("/metrics", metrics_endpoint, methods=["GET"], include_in_schema=False)
    application.add_api_route("/healthz", healthcheck, methods=["GET"], tags=["health"])
    application.add_api_route("/version", version, methods=["GET"], tags=["health"])
    include_all_routers(application)
    return application


def healthcheck() -> dict[str, str]:
    try:
        with engine.connect() as connection:
            connection.execute(text("SELECT 1"))
    except SQLAlchemyError as exc:
        logger.error("Healthcheck failed: %s", exc, exc_info=True)
        raise HTTPException(status_code=503, detail="Service unavailable") from exc
    return {"status": "ok", "database": "ok"}


def version() -> dict[str, str | None]:
    return {"version": settings.project_version, "git_sha": settings.git_sha, "environment": settings.environment}


app = create_app()
