from __future__ import annotations

from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from salesboard.core.errors import ValidationError
from salesboard.domain.models import PERSON_STATUSES, Salesperson
from salesboard.persistence.guards import tenant_predicate
from salesboard.services.tenancy import require_active_tenant


async def get_salesperson(
    session: AsyncSession, tenant_id: UUID | str, salesperson_id: UUID
) -> Salesperson | None:
    result = await session.execute(
        select(Salesperson).where(Salesperson.id == salesperson_id, tenant_predicate(Salesperson, tenant_id))
    )
    return result.scalar_one_or_none()


async def get_salesperson_unscoped(session: AsyncSession, salesperson_id: UUID) -> Salesperson | None:
    # Operator tooling only: repair scripts may target a salesperson before knowing its tenant.
    result = await session.execute(select(Salesperson).where(Salesperson.id == salesperson_id))
    return result.scalar_one_or_none()


async def list_salespersons(session: AsyncSession, tenant_id: UUID | str) -> list[Salesperson]:
    result = await session.execute(
        select(Salesperson)
        .where(tenant_predicate(Salesperson, tenant_id))
        .order_by(Salesperson.nombre, Salesperson.id)
    )
    return list(result.scalars().all())


async def create_salesperson(
    session: AsyncSession,
    tenant_id: UUID | str,
    *,
    nombre: str,
    email: str,
    estado: str = "active",
) -> Salesperson:
    if not (nombre or "").strip():
        raise ValidationError("Salesperson nombre is required")
    if not (email or "").strip():
        raise ValidationError("Salesperson email is required")
    if estado not in PERSON_STATUSES:
        raise ValidationError(f"Invalid salesperson estado: {estado}")
    tenant = await require_active_tenant(session, tenant_id)
    salesperson = Salesperson(tenant_id=tenant.id, nombre=nombre.strip(), email=email.strip(), estado=estado)
    session.add(salesperson)
    await session.flush()
    return salesperson
