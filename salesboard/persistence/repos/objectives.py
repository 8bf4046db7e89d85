from __future__ import annotations

from uuid import UUID

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from salesboard.domain.models import (
    QualitativeObjective,
    QuantitativeObjective,
    SalespersonObjective,
    SalespersonQuantitativeObjective,
    TechnicianObjective,
)
from salesboard.persistence.guards import tenant_predicate


async def get_qualitative_objective(
    session: AsyncSession, tenant_id: UUID | str, objective_id: UUID
) -> QualitativeObjective | None:
    result = await session.execute(
        select(QualitativeObjective).where(
            QualitativeObjective.id == objective_id,
            tenant_predicate(QualitativeObjective, tenant_id),
        )
    )
    return result.scalar_one_or_none()


async def list_qualitative_objectives(session: AsyncSession, tenant_id: UUID | str) -> list[QualitativeObjective]:
    result = await session.execute(
        select(QualitativeObjective)
        .where(tenant_predicate(QualitativeObjective, tenant_id))
        .order_by(QualitativeObjective.created_at, QualitativeObjective.id)
    )
    return list(result.scalars().all())


async def list_qualitative_assignments(
    session: AsyncSession, tenant_id: UUID | str, objective_id: UUID
) -> list[SalespersonObjective]:
    result = await session.execute(
        select(SalespersonObjective).where(
            SalespersonObjective.qualitative_objective_id == objective_id,
            tenant_predicate(SalespersonObjective, tenant_id),
        )
    )
    return list(result.scalars().all())


async def get_quantitative_objective(
    session: AsyncSession, tenant_id: UUID | str, objective_id: UUID
) -> QuantitativeObjective | None:
    result = await session.execute(
        select(QuantitativeObjective).where(
            QuantitativeObjective.id == objective_id,
            tenant_predicate(QuantitativeObjective, tenant_id),
        )
    )
    return result.scalar_one_or_none()


async def find_quantitative_by_name(
    session: AsyncSession, tenant_id: UUID | str, name: str, *, exclude_id: UUID | None = None
) -> list[QuantitativeObjective]:
    # Returns every match: legacy data may still hold duplicates awaiting repair.
    stmt = select(QuantitativeObjective).where(
        QuantitativeObjective.name == name,
        tenant_predicate(QuantitativeObjective, tenant_id),
    )
    if exclude_id is not None:
        stmt = stmt.where(QuantitativeObjective.id != exclude_id)
    result = await session.execute(stmt.order_by(QuantitativeObjective.created_at, QuantitativeObjective.id))
    return list(result.scalars().all())


async def list_quantitative_objectives(session: AsyncSession, tenant_id: UUID | str) -> list[QuantitativeObjective]:
    result = await session.execute(
        select(QuantitativeObjective)
        .where(tenant_predicate(QuantitativeObjective, tenant_id))
        .order_by(QuantitativeObjective.name, QuantitativeObjective.created_at)
    )
    return list(result.scalars().all())


async def get_quantitative_assignment(
    session: AsyncSession, tenant_id: UUID | str, salesperson_id: UUID, objective_id: UUID
) -> SalespersonQuantitativeObjective | None:
    result = await session.execute(
        select(SalespersonQuantitativeObjective)
        .where(
            SalespersonQuantitativeObjective.salesperson_id == salesperson_id,
            SalespersonQuantitativeObjective.quantitative_objective_id == objective_id,
            tenant_predicate(SalespersonQuantitativeObjective, tenant_id),
        )
        .order_by(SalespersonQuantitativeObjective.created_at)
        .limit(1)
    )
    return result.scalar_one_or_none()


async def get_quantitative_assignment_by_id(
    session: AsyncSession, tenant_id: UUID | str, assignment_id: UUID
) -> SalespersonQuantitativeObjective | None:
    result = await session.execute(
        select(SalespersonQuantitativeObjective).where(
            SalespersonQuantitativeObjective.id == assignment_id,
            tenant_predicate(SalespersonQuantitativeObjective, tenant_id),
        )
    )
    return result.scalar_one_or_none()


async def list_salesperson_quantitative_assignments(
    session: AsyncSession, tenant_id: UUID | str, salesperson_id: UUID
) -> list[SalespersonQuantitativeObjective]:
    result = await session.execute(
        select(SalespersonQuantitativeObjective)
        .where(
            SalespersonQuantitativeObjective.salesperson_id == salesperson_id,
            tenant_predicate(SalespersonQuantitativeObjective, tenant_id),
        )
        .order_by(SalespersonQuantitativeObjective.display_order, SalespersonQuantitativeObjective.created_at)
    )
    return list(result.scalars().all())


async def max_display_order(session: AsyncSession, tenant_id: UUID | str, salesperson_id: UUID) -> int | None:
    result = await session.execute(
        select(func.max(SalespersonQuantitativeObjective.display_order)).where(
            SalespersonQuantitativeObjective.salesperson_id == salesperson_id,
            tenant_predicate(SalespersonQuantitativeObjective, tenant_id),
        )
    )
    value = result.scalar()
    return None if value is None else int(value)


async def get_technician_objective(
    session: AsyncSession, tenant_id: UUID | str, objective_id: UUID
) -> TechnicianObjective | None:
    result = await session.execute(
        select(TechnicianObjective).where(
            TechnicianObjective.id == objective_id,
            tenant_predicate(TechnicianObjective, tenant_id),
        )
    )
    return result.scalar_one_or_none()


async def list_technician_objectives(
    session: AsyncSession, tenant_id: UUID | str, technician_id: UUID
) -> list[TechnicianObjective]:
    # A technician sees their own objectives plus every global objective of the tenant.
    result = await session.execute(
        select(TechnicianObjective)
        .where(
            tenant_predicate(TechnicianObjective, tenant_id),
            or_(
                TechnicianObjective.technician_id == technician_id,
                TechnicianObjective.is_global.is_(True),
            ),
        )
        .order_by(TechnicianObjective.is_global.desc(), TechnicianObjective.created_at)
    )
    return list(result.scalars().all())


async def sum_technician_weights(
    session: AsyncSession, tenant_id: UUID | str, technician_id: UUID
) -> tuple[float, int]:
    result = await session.execute(
        select(func.coalesce(func.sum(TechnicianObjective.weight), 0), func.count()).where(
            tenant_predicate(TechnicianObjective, tenant_id),
            TechnicianObjective.technician_id == technician_id,
            TechnicianObjective.is_global.is_(False),
        )
    )
    total, count = result.one()
    return float(total or 0), int(count or 0)
