"""
Observability Middleware.

Adds correlation IDs and structured logging context to requests.
"""

import time
import uuid
import logging
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from backend.app.core.config import settings

# Configure structured logger
logger = logging.getLogger("pet_rescue.requests")

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(level: str = None) -> None:
    """Set up root logging once at startup."""
    level = (level or settings.log_level).upper()
    logging.basicConfig(level=level, format=LOG_FORMAT)
    logging.getLogger().setLevel(level)


class ObservabilityMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next) -> Response:
        # 1. Generate or extract Correlation ID
        correlation_id = request.headers.get("X-Correlation-ID") or str(uuid.uuid4())

        start_time = time.perf_counter()
        response = await call_next(request)
        process_time = (time.perf_counter() - start_time) * 1000  # ms

        response.headers["X-Correlation-ID"] = correlation_id
        response.headers["X-Process-Time"] = f"{process_time:.2f}"

        log_data = {
            "correlation_id": correlation_id,
            "method": request.method,
            "path": request.url.path,
            "status_code": response.status_code,
            "duration_ms": round(process_time, 2),
            "ip": request.client.host if request.client else "unknown"
        }

        # Log level based on status
        if response.status_code >= 500:
            logger.error("%s %s -> %s", request.method, request.url.path, response.status_code, extra=log_data)
        elif response.status_code >= 400:
            logger.warning("%s %s -> %s", request.method, request.url.path, response.status_code, extra=log_data)
        else:
            logger.info("%s %s -> %s", request.method, request.url.path, response.status_code, extra=log_data)

        return response
