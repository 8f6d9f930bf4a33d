"""Strict tenant isolation for point reads. No cross-tenant access. No FastAPI."""

from typing import Optional

from app.security.exceptions import TenantIsolationError


class TenantContext:
    """Validate that request tenant matches resource tenant. No cross-tenant access."""

    @staticmethod
    def validate_access(
        resource_tenant: Optional[str],
        request_tenant: str,
        *,
        legacy_owner: Optional[str] = None,
        actor_id: Optional[str] = None,
    ) -> None:
        """
        Raise TenantIsolationError unless the resource belongs to request_tenant.

        A legacy resource written before tenant scoping (resource_tenant empty)
        is visible only to its original owner: legacy_owner must equal actor_id.
        """
        if not request_tenant:
            raise TenantIsolationError("Tenant isolation: request tenant must be non-empty")
        if not resource_tenant:
            if legacy_owner and actor_id and legacy_owner == actor_id:
                return
            raise TenantIsolationError(
                "Tenant isolation: resource has no tenant and is not owned by the requesting actor"
            )
        if resource_tenant != request_tenant:
            raise TenantIsolationError(
                f"Tenant isolation: access denied. "
                f"Resource tenant '{resource_tenant}' does not match request tenant '{request_tenant}'"
            )
