from __future__ import annotations

import logging
from typing import Any
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from salesboard.core.errors import CrossTenantReferenceError, NotFoundError, ValidationError
from salesboard.domain.associations import Association, get_association, outgoing
from salesboard.domain.models import Base, Client, Tenant
from salesboard.persistence.guards import require_tenant_id, tenant_predicate
from salesboard.persistence.repos import tenants as tenants_repo


logger = logging.getLogger(__name__)

# None means unlimited.
PLAN_LIMITS: dict[str, dict[str, int | None]] = {
    "free": {"max_users": 5, "max_clients": 50, "max_objectives": 10},
    "basic": {"max_users": 20, "max_clients": 200, "max_objectives": 50},
    "premium": {"max_users": None, "max_clients": None, "max_objectives": None},
}


async def require_active_tenant(session: AsyncSession, tenant_id: UUID | str | None) -> Tenant:
    resolved = require_tenant_id(tenant_id)
    tenant = await tenants_repo.get_tenant(session, resolved)
    if tenant is None:
        raise NotFoundError(f"Tenant {resolved} not found", tenant_id=resolved)
    return tenant


async def ensure_same_tenant(
    session: AsyncSession,
    tenant_id: UUID | str,
    association: Association | str,
    target_id: UUID,
) -> Base:
    # Load the target without a tenant filter so a foreign tenant is reported, not hidden.
    if isinstance(association, str):
        association = get_association(association)
    resolved = require_tenant_id(tenant_id)
    target_model = association.target
    result = await session.execute(select(target_model).where(target_model.id == target_id))
    target = result.scalar_one_or_none()
    if target is None:
        raise NotFoundError(
            f"{target_model.__name__} {target_id} not found",
            association=association.name,
            target_id=target_id,
        )
    if target.tenant_id != resolved:
        logger.warning(
            "cross_tenant_reference_rejected association=%s tenant_id=%s target_id=%s",
            association.name,
            resolved,
            target_id,
        )
        raise CrossTenantReferenceError(
            f"{association.name} must reference a {target_model.__name__} of the same tenant",
            association=association.name,
            target_id=target_id,
        )
    return target


async def validate_references(session: AsyncSession, entity: Base) -> None:
    # Junction rows are checked by their own writers; here we cover direct references.
    tenant_id = getattr(entity, "tenant_id", None)
    for association in outgoing(type(entity)):
        if association.junction:
            continue
        target_id = getattr(entity, association.fk_attr)
        if target_id is None:
            continue
        await ensure_same_tenant(session, tenant_id, association, target_id)


def plan_limit(tenant: Tenant, key: str) -> int | None:
    default = PLAN_LIMITS.get(tenant.plan, PLAN_LIMITS["free"]).get(key)
    if default is None:
        return None
    # Per-tenant caps stored on the row take precedence over plan defaults.
    override: Any = getattr(tenant, key, None)
    if isinstance(override, int) and override > 0:
        return override
    return default


async def check_client_quota(session: AsyncSession, tenant: Tenant) -> None:
    limit = plan_limit(tenant, "max_clients")
    if limit is None:
        return
    count = (
        await session.execute(
            select(func.count()).select_from(Client).where(tenant_predicate(Client, tenant.id))
        )
    ).scalar_one()
    if int(count) >= limit:
        raise ValidationError(
            f"Tenant {tenant.name} reached its client limit ({limit})", max_clients=limit
        )
