"""HTTP middleware that binds request identity (correlation, tenant, actor) to the logging context."""

import logging
import time
import uuid

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from app.core.context import actor_id_ctx, correlation_id_ctx, tenant_id_ctx

logger = logging.getLogger(__name__)

TENANT_HEADER = "X-Tenant-ID"
ACTOR_HEADER = "X-Actor-ID"
CORRELATION_HEADER = "X-Correlation-ID"


def _header(request: Request, name: str) -> str | None:
    value = (request.headers.get(name) or "").strip()
    return value or None


class CorrelationIdMiddleware(BaseHTTPMiddleware):
    """Reuse the caller's X-Correlation-ID or mint one, and echo it on the response."""

    async def dispatch(self, request: Request, call_next) -> Response:
        correlation_id = _header(request, CORRELATION_HEADER) or str(uuid.uuid4())
        request.state.correlation_id = correlation_id
        token = correlation_id_ctx.set(correlation_id)
        try:
            response = await call_next(request)
        finally:
            correlation_id_ctx.reset(token)
        response.headers[CORRELATION_HEADER] = correlation_id
        return response


class RequestContextMiddleware(BaseHTTPMiddleware):
    """
    Every route is tenant-scoped: reject requests without X-Tenant-ID.
    The actor is optional here; mutating routes enforce it through a dependency.
    """

    async def dispatch(self, request: Request, call_next) -> Response:
        tenant_id = _header(request, TENANT_HEADER)
        if tenant_id is None:
            return JSONResponse(status_code=400, content={"detail": f"{TENANT_HEADER} header is required"})

        actor_id = _header(request, ACTOR_HEADER)
        request.state.tenant_id = tenant_id
        request.state.actor_id = actor_id
        tenant_token = tenant_id_ctx.set(tenant_id)
        actor_token = actor_id_ctx.set(actor_id)
        try:
            return await call_next(request)
        finally:
            actor_id_ctx.reset(actor_token)
            tenant_id_ctx.reset(tenant_token)


class RequestLogMiddleware(BaseHTTPMiddleware):
    """One structured access line per request, with status and duration."""

    async def dispatch(self, request: Request, call_next) -> Response:
        started = time.perf_counter()
        response = await call_next(request)
        logger.info(
            "request_completed",
            extra={
                "method": request.method,
                "path": request.url.path,
                "status_code": response.status_code,
                "duration_ms": round((time.perf_counter() - started) * 1000, 2),
            },
        )
        return response
