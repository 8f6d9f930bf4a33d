# app/main.py

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.responses import JSONResponse

from app.api import dependencies
from app.api.middleware import (
    CorrelationIdMiddleware,
    RequestContextMiddleware,
    RequestLogMiddleware,
)
from app.api.routers import activity, health, notifications, projects, work_items
from app.application.exceptions import (
    ApplicationError,
    ContentionError,
    NotFoundError,
    ResultSetTooLargeError,
)
from app.config.logging import configure_logging
from app.config.settings import get_settings
from app.domain.exceptions import DomainError, DomainValidationError
from app.infrastructure.database.session import create_schema
from app.security.exceptions import AuthorizationError, TenantIsolationError

settings = get_settings()
configure_logging(settings.log_level)

logger = logging.getLogger(__name__)

# Seconds a client should wait before retrying a contended mutation.
CONTENTION_RETRY_AFTER = "1"


@asynccontextmanager
async def lifespan(app: FastAPI):
    if settings.storage_backend == "sql":
        await create_schema(dependencies.get_engine())
    logger.info("app_started", extra={"storage_backend": settings.storage_backend})
    yield
    publisher = dependencies.get_publisher()
    if publisher is not None:
        await publisher.close()


app = FastAPI(
    title=settings.app_name,
    version=settings.version,
    debug=settings.debug,
    lifespan=lifespan,
)

# Outermost last: correlation id, then tenant and actor, then the access log.
app.add_middleware(RequestLogMiddleware)
app.add_middleware(RequestContextMiddleware)
app.add_middleware(CorrelationIdMiddleware)


@app.exception_handler(DomainValidationError)
async def domain_validation_error_handler(request, exc: DomainValidationError):
    return JSONResponse(status_code=422, content={"detail": exc.message})


@app.exception_handler(DomainError)
async def domain_error_handler(request, exc: DomainError):
    return JSONResponse(status_code=400, content={"detail": exc.message})


@app.exception_handler(NotFoundError)
async def not_found_error_handler(request, exc: NotFoundError):
    return JSONResponse(status_code=404, content={"detail": exc.message})


@app.exception_handler(TenantIsolationError)
async def tenant_isolation_error_handler(request, exc: TenantIsolationError):
    return JSONResponse(status_code=403, content={"detail": exc.message})


@app.exception_handler(AuthorizationError)
async def authorization_error_handler(request, exc: AuthorizationError):
    return JSONResponse(status_code=403, content={"detail": exc.message})


@app.exception_handler(ContentionError)
async def contention_error_handler(request, exc: ContentionError):
    return JSONResponse(
        status_code=503,
        content={"detail": exc.message},
        headers={"Retry-After": CONTENTION_RETRY_AFTER},
    )


@app.exception_handler(ResultSetTooLargeError)
async def result_set_too_large_error_handler(request, exc: ResultSetTooLargeError):
    return JSONResponse(status_code=413, content={"detail": exc.message})


@app.exception_handler(ApplicationError)
async def application_error_handler(request, exc: ApplicationError):
    return JSONResponse(status_code=500, content={"detail": exc.message})


@app.exception_handler(Exception)
async def unexpected_error_handler(request, exc: Exception):
    logger.exception("unhandled_error")
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal server error"},
    )


# Routers: /health, /projects, /work-items, /activity, /notifications
app.include_router(health.router)
app.include_router(projects.router, prefix="/projects")
app.include_router(work_items.router, prefix="/work-items")
app.include_router(activity.router, prefix="/activity")
app.include_router(notifications.router, prefix="/notifications")
