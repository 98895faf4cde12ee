"""JSON log lines on stdout plus one structured access line per request."""
from __future__ import annotations

import json
import logging
import sys
import time
import uuid
from datetime import datetime, timezone
from typing import Any, Optional

from fastapi import Request, Response
from jose import JWTError
from starlette.middleware.base import BaseHTTPMiddleware

from hrms.core.security import decode_token

# Attributes copied from ``extra=`` onto the emitted JSON object.
CONTEXT_FIELDS = (
    "request_id",
    "user_id",
    "role",
    "client",
    "path",
    "method",
    "status_code",
    "latency_ms",
    "detail",
)

SECURITY_STATUSES = {401, 403, 429}


class JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        entry.update({key: getattr(record, key) for key in CONTEXT_FIELDS if hasattr(record, key)})
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


def configure_logging(level: str = "INFO") -> None:
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JsonFormatter())
    logging.basicConfig(level=level.upper(), handlers=[handler], force=True)
    # RequestLoggingMiddleware emits the access line.
    logging.getLogger("uvicorn.access").disabled = True


def _bearer_or_cookie(request: Request) -> Optional[str]:
    scheme, _, credentials = (request.headers.get("authorization") or "").partition(" ")
    if scheme.lower() == "bearer" and credentials.strip():
        return credentials.strip()
    return request.cookies.get("access_token") or None


def _token_identity(request: Request) -> tuple[Optional[int], Optional[str]]:
    """(user id, role) claimed by the request's token, without touching the database."""
    token = _bearer_or_cookie(request)
    if not token:
        return None, None
    try:
        claims = decode_token(token)
        return int(claims["sub"]), claims.get("role")
    except (JWTError, KeyError, ValueError, TypeError):
        return None, None


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    def __init__(self, app, logger_name: str = "hrms.request") -> None:
        super().__init__(app)
        self.logger = logging.getLogger(logger_name)
        self.security_logger = logging.getLogger("security")

    def _context(self, request: Request, request_id: str, started: float) -> dict[str, Any]:
        user_id, role = _token_identity(request)
        return {
            "request_id": request_id,
            "user_id": user_id,
            "role": role,
            "client": request.client.host if request.client else None,
            "path": request.url.path,
            "method": request.method,
            "latency_ms": round((time.perf_counter() - started) * 1000, 2),
        }

    async def dispatch(self, request: Request, call_next) -> Response:
        request_id = request.headers.get("x-request-id") or uuid.uuid4().hex
        request.state.request_id = request_id
        started = time.perf_counter()
        try:
            response = await call_next(request)
        except Exception:
            self.logger.exception("unhandled_exception", extra=self._context(request, request_id, started))
            raise

        context = self._context(request, request_id, started)
        context["status_code"] = response.status_code
        self.logger.info("request", extra=context)
        if response.status_code in SECURITY_STATUSES:
            self.security_logger.info("access_denied", extra=context)

        response.headers["X-Request-Id"] = request_id
        return response
