from __future__ import annotations

from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from salesboard.core.errors import ValidationError
from salesboard.domain.models import Technician
from salesboard.persistence.guards import tenant_predicate
from salesboard.services.tenancy import require_active_tenant


async def get_technician(session: AsyncSession, tenant_id: UUID | str, technician_id: UUID) -> Technician | None:
    result = await session.execute(
        select(Technician).where(Technician.id == technician_id, tenant_predicate(Technician, tenant_id))
    )
    return result.scalar_one_or_none()


async def list_technicians(session: AsyncSession, tenant_id: UUID | str) -> list[Technician]:
    result = await session.execute(
        select(Technician)
        .where(tenant_predicate(Technician, tenant_id))
        .order_by(Technician.nombre, Technician.id)
    )
    return list(result.scalars().all())


async def create_technician(
    session: AsyncSession,
    tenant_id: UUID | str,
    *,
    nombre: str,
    email: str | None = None,
    especialidad: str | None = None,
) -> Technician:
    if not (nombre or "").strip():
        raise ValidationError("Technician nombre is required")
    tenant = await require_active_tenant(session, tenant_id)
    technician = Technician(tenant_id=tenant.id, nombre=nombre.strip(), email=email, especialidad=especialidad)
    session.add(technician)
    await session.flush()
    return technician
