"""Governance: append-only activity log for work item mutations. No FastAPI."""

from app.governance.audit_logger import AuditLogger, activity_type_for
from app.governance.audit_models import ActivityRecord, ActivityType
from app.governance.audit_repository import AuditRepository, DocumentAuditRepository

__all__ = [
    "ActivityRecord",
    "ActivityType",
    "AuditLogger",
    "AuditRepository",
    "DocumentAuditRepository",
    "activity_type_for",
]
