from __future__ import annotations

from typing import Any
from uuid import UUID

from salesboard.core.errors import SalesboardError


class TenantPredicateError(SalesboardError):
    """A scoped query was issued without a usable tenant identifier."""

    code = "TENANT_PREDICATE_REQUIRED"


def require_tenant_id(tenant_id: UUID | str | None) -> UUID:
    # There is no "all tenants" or "no tenant" fallback for scoped entities.
    if not tenant_id:
        raise TenantPredicateError("Tenant predicate required but tenant_id is missing")
    if isinstance(tenant_id, UUID):
        return tenant_id
    try:
        return UUID(str(tenant_id))
    except ValueError as exc:
        raise TenantPredicateError(f"Invalid tenant_id: {tenant_id!r}") from exc


def tenant_predicate(model: Any, tenant_id: UUID | str | None) -> Any:
    # Build tenant predicates through a single helper to guarantee guard coverage.
    # Equality also excludes unmigrated rows whose tenant_id is still NULL.
    return model.tenant_id == require_tenant_id(tenant_id)
