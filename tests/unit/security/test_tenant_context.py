"""Security tests: tenant isolation on point reads, legacy owner access."""

import pytest

from app.security.exceptions import TenantIsolationError
from app.security.tenant_context import TenantContext


def test_matching_tenant_passes():
    TenantContext.validate_access("tenant-A", "tenant-A")


def test_cross_tenant_access_raises_error():
    with pytest.raises(TenantIsolationError) as exc_info:
        TenantContext.validate_access("tenant-A", "tenant-B")
    assert "tenant-A" in exc_info.value.message
    assert "tenant-B" in exc_info.value.message


def test_empty_request_tenant_raises():
    with pytest.raises(TenantIsolationError):
        TenantContext.validate_access("tenant-A", "")


def test_legacy_resource_visible_to_its_owner():
    TenantContext.validate_access(None, "tenant-B", legacy_owner="u1", actor_id="u1")


def test_legacy_resource_hidden_from_other_actors():
    with pytest.raises(TenantIsolationError):
        TenantContext.validate_access(None, "tenant-B", legacy_owner="u1", actor_id="u2")


def test_legacy_resource_without_actor_raises():
    with pytest.raises(TenantIsolationError):
        TenantContext.validate_access("", "tenant-B", legacy_owner="u1")


def test_legacy_owner_never_overrides_a_foreign_tenant():
    with pytest.raises(TenantIsolationError):
        TenantContext.validate_access("tenant-A", "tenant-B", legacy_owner="u1", actor_id="u1")
