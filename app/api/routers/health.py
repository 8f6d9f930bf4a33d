"""Liveness plus a storage check against the configured document backend."""

import logging

from fastapi import APIRouter, Depends, Request

from app.api.dependencies import get_gateway
from app.application.storage import Collections, DocumentGateway
from app.config.settings import get_settings

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/health")
async def health(request: Request, gateway: DocumentGateway = Depends(get_gateway)):
    settings = get_settings()
    storage = "ok"
    try:
        await gateway.get(Collections.PROJECTS, "__health__")
    except Exception:
        logger.exception("storage_check_failed")
        storage = "unavailable"
    return {
        "status": "ok" if storage == "ok" else "degraded",
        "storage": storage,
        "storage_backend": settings.storage_backend,
        "version": settings.version,
        "tenant_id": request.state.tenant_id,
        "correlation_id": request.state.correlation_id,
    }
