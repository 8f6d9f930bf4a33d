"""Security: tenant isolation and authorization errors. No FastAPI."""

from app.security.exceptions import AuthorizationError, SecurityError, TenantIsolationError
from app.security.tenant_context import TenantContext

__all__ = [
    "AuthorizationError",
    "SecurityError",
    "TenantContext",
    "TenantIsolationError",
]
