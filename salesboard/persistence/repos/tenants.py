from __future__ import annotations

from datetime import datetime, timezone
from typing import Any
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from salesboard.core.errors import DatabaseError, ValidationError
from salesboard.domain.models import Tenant


async def get_tenant(session: AsyncSession, tenant_id: UUID) -> Tenant | None:
    # Soft-deleted tenants are invisible to every normal path.
    result = await session.execute(
        select(Tenant).where(Tenant.id == tenant_id, Tenant.deleted_at.is_(None))
    )
    return result.scalar_one_or_none()


async def get_tenant_by_name(session: AsyncSession, name: str) -> Tenant | None:
    result = await session.execute(
        select(Tenant).where(Tenant.name == name, Tenant.deleted_at.is_(None))
    )
    return result.scalar_one_or_none()


async def create_tenant(session: AsyncSession, *, name: str, **fields: Any) -> Tenant:
    cleaned = (name or "").strip()
    if not cleaned:
        raise ValidationError("Tenant name is required")
    tenant = Tenant(name=cleaned, **fields)
    session.add(tenant)
    await session.flush()
    return tenant


async def get_or_create_tenant_by_name(session: AsyncSession, name: str, **fields: Any) -> tuple[Tenant, bool]:
    # Idempotent lookup-by-name; a concurrent creator wins and we reload its row.
    existing = await get_tenant_by_name(session, name)
    if existing is not None:
        return existing, False
    try:
        async with session.begin_nested():
            tenant = await create_tenant(session, name=name, **fields)
    except IntegrityError:
        reloaded = await get_tenant_by_name(session, name)
        if reloaded is None:
            raise DatabaseError(f"tenant {name!r} exists but is soft-deleted or unreadable")
        return reloaded, False
    return tenant, True


async def soft_delete_tenant(session: AsyncSession, tenant_id: UUID) -> bool:
    tenant = await get_tenant(session, tenant_id)
    if tenant is None:
        return False
    tenant.deleted_at = datetime.now(timezone.utc)
    return True
