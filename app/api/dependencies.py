"""FastAPI dependency injection: document gateway, publisher, services, tenant, actor, correlation_id."""

import logging
from typing import Annotated, Optional

from fastapi import Depends, HTTPException, Request
from sqlalchemy.ext.asyncio import AsyncEngine

from app.application.activity_feed import ActivityFeed
from app.application.notification_dispatcher import NotificationDispatcher
from app.application.notification_inbox import NotificationInbox
from app.application.project_service import ProjectService
from app.application.sequence_allocator import SequenceAllocator
from app.application.storage import DocumentGateway, RetryPolicy
from app.application.work_item_service import WorkItemService
from app.config.settings import AppSettings, get_settings
from app.governance.audit_logger import AuditLogger
from app.governance.audit_repository import DocumentAuditRepository
from app.infrastructure.cache.document_gateway_redis import RedisDocumentGateway
from app.infrastructure.cache.redis_client import RedisClient
from app.infrastructure.database.document_gateway_db import DbDocumentGateway
from app.infrastructure.database.session import build_engine, build_sessionmaker
from app.infrastructure.memory.document_gateway_memory import InMemoryDocumentGateway
from app.infrastructure.messaging.rabbitmq_publisher import RabbitMQPublisher

_gateway: Optional[DocumentGateway] = None
_engine: Optional[AsyncEngine] = None
_publisher: Optional[RabbitMQPublisher] = None


def get_engine() -> AsyncEngine:
    """Return singleton SQLAlchemy engine (sql backend only)."""
    global _engine
    if _engine is None:
        _engine = build_engine(get_settings().database_url)
    return _engine


def build_gateway(settings: AppSettings) -> DocumentGateway:
    """Select the storage backend named by settings.storage_backend."""
    policy = RetryPolicy.from_settings(settings)
    logger = logging.getLogger("app.storage")
    if settings.storage_backend == "redis":
        return RedisDocumentGateway(RedisClient(settings.redis_url), policy, logger)
    if settings.storage_backend == "sql":
        return DbDocumentGateway(build_sessionmaker(get_engine()), policy, logger)
    return InMemoryDocumentGateway(policy, logger)


def get_gateway() -> DocumentGateway:
    """Return singleton document gateway."""
    global _gateway
    if _gateway is None:
        _gateway = build_gateway(get_settings())
    return _gateway


def get_publisher() -> Optional[RabbitMQPublisher]:
    """Return singleton RabbitMQ publisher, or None when publishing is disabled."""
    global _publisher
    settings = get_settings()
    if not settings.notifications_publish_enabled:
        return None
    if _publisher is None:
        _publisher = RabbitMQPublisher(settings.rabbitmq_url)
    return _publisher


def get_audit_logger(
    gateway: Annotated[DocumentGateway, Depends(get_gateway)],
) -> AuditLogger:
    return AuditLogger(DocumentAuditRepository(gateway), logging.getLogger("app.audit"))


async def get_project_service(
    gateway: Annotated[DocumentGateway, Depends(get_gateway)],
    audit_logger: Annotated[AuditLogger, Depends(get_audit_logger)],
) -> ProjectService:
    settings = get_settings()
    return ProjectService(
        gateway=gateway,
        audit_logger=audit_logger,
        logger=logging.getLogger("app.projects"),
        max_scan=settings.query_max_scan,
    )


async def get_work_item_service(
    gateway: Annotated[DocumentGateway, Depends(get_gateway)],
    audit_logger: Annotated[AuditLogger, Depends(get_audit_logger)],
    publisher: Annotated[Optional[RabbitMQPublisher], Depends(get_publisher)],
) -> WorkItemService:
    """Build WorkItemService with injected allocator, audit logger, dispatcher, logger."""
    settings = get_settings()
    logger = logging.getLogger("app.work_items")
    return WorkItemService(
        gateway=gateway,
        allocator=SequenceAllocator(gateway, logger),
        audit_logger=audit_logger,
        dispatcher=NotificationDispatcher(
            gateway,
            publisher,
            logging.getLogger("app.notifications"),
            publish_timeout=settings.notifications_publish_timeout_s,
        ),
        logger=logger,
        label_limit=settings.label_limit,
        names=settings.actor_display_names,
        max_scan=settings.query_max_scan,
        default_limit=settings.query_default_limit,
        max_limit=settings.query_max_limit,
    )


async def get_activity_feed(
    gateway: Annotated[DocumentGateway, Depends(get_gateway)],
) -> ActivityFeed:
    return ActivityFeed(gateway, max_scan=get_settings().query_max_scan)


async def get_notification_inbox(
    gateway: Annotated[DocumentGateway, Depends(get_gateway)],
) -> NotificationInbox:
    return NotificationInbox(
        gateway, max_scan=get_settings().query_max_scan, logger=logging.getLogger("app.notifications")
    )


def get_tenant_id(request: Request) -> str:
    """Extract tenant_id from request.state (set by middleware)."""
    return request.state.tenant_id


def get_actor_id(request: Request) -> Optional[str]:
    """Actor from X-Actor-ID, if the caller sent one."""
    return getattr(request.state, "actor_id", None)


def require_actor_id(actor_id: Annotated[Optional[str], Depends(get_actor_id)]) -> str:
    """Mutations must be attributable: 400 without X-Actor-ID."""
    if not actor_id:
        raise HTTPException(status_code=400, detail="X-Actor-ID header is required")
    return actor_id


def get_correlation_id(request: Request) -> str:
    """Extract correlation_id from request.state (set by middleware)."""
    return getattr(request.state, "correlation_id", "") or ""
