"""
Observability Middleware.

One access log line per request, tagged with a correlation id and, for
authenticated calls, the 4-digit account code and account type taken from
the bearer token.
"""

import time
import uuid
import logging
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response
from shipment_backend.app.core.jwt import bearer_claims

logger = logging.getLogger("shipments.access")


class ObservabilityMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next) -> Response:
        correlation_id = request.headers.get("X-Correlation-ID") or str(uuid.uuid4())
        claims = bearer_claims(request.headers.get("Authorization"))
        
        start_time = time.perf_counter()
        response = await call_next(request)
        duration_ms = (time.perf_counter() - start_time) * 1000
        
        response.headers["X-Correlation-ID"] = correlation_id
        response.headers["X-Process-Time"] = f"{duration_ms:.2f}"
        
        log_data = {
            "correlation_id": correlation_id,
            "method": request.method,
            "path": request.url.path,
            "status_code": response.status_code,
            "duration_ms": round(duration_ms, 2),
            "account_id": claims.get("account_id"),
            "account_type": claims.get("type"),
            "ip": request.client.host if request.client else "unknown"
        }
        
        if response.status_code >= 500:
            logger.error("%s %s -> %d", request.method, request.url.path, response.status_code, extra=log_data)
        elif response.status_code >= 400:
            logger.warning("%s %s -> %d", request.method, request.url.path, response.status_code, extra=log_data)
        else:
            logger.info("%s %s -> %d", request.method, request.url.path, response.status_code, extra=log_data)
        
        return response
