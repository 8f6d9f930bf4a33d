"""Domain layer: models, schemas, validators, exceptions. Pure business logic only."""

from app.domain.exceptions import (
    DomainError,
    DomainValidationError,
    InvalidKeyError,
    InvalidTenantError,
    SelfNotificationError,
)
from app.domain.models import (
    Comment,
    NotificationKind,
    NotificationRecord,
    Project,
    WorkItem,
    WorkItemPriority,
    WorkItemStatus,
)
from app.domain.validators import (
    derive_key_prefix,
    format_key,
    normalize_labels,
    normalize_title,
    parse_key,
    validate_key_prefix,
    validate_tenant_id,
)

__all__ = [
    "Comment",
    "DomainError",
    "DomainValidationError",
    "InvalidKeyError",
    "InvalidTenantError",
    "NotificationKind",
    "NotificationRecord",
    "Project",
    "SelfNotificationError",
    "WorkItem",
    "WorkItemPriority",
    "WorkItemStatus",
    "derive_key_prefix",
    "format_key",
    "normalize_labels",
    "normalize_title",
    "parse_key",
    "validate_key_prefix",
    "validate_tenant_id",
]
