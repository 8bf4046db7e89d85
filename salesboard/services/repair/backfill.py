from __future__ import annotations

from dataclasses import dataclass, field
import logging
from typing import Sequence
from uuid import UUID

from sqlalchemy import func, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from salesboard.core.config import get_settings
from salesboard.domain.models import (
    Base,
    Client,
    ClientService,
    QualitativeObjective,
    QuantitativeObjective,
    Salesperson,
    SalespersonObjective,
    SalespersonQuantitativeObjective,
    Service,
    Technician,
    TechnicianObjective,
)
from salesboard.persistence.repos import tenants as tenants_repo
from salesboard.services.repair.summary import SoftFailure


logger = logging.getLogger(__name__)

# Parents before children so concurrent readers never see a child attributed before its parent.
SCOPED_TABLES: tuple[type[Base], ...] = (
    Salesperson,
    Technician,
    Service,
    Client,
    QualitativeObjective,
    QuantitativeObjective,
    ClientService,
    SalespersonObjective,
    SalespersonQuantitativeObjective,
    TechnicianObjective,
)


@dataclass(frozen=True)
class BackfillSummary:
    tenant_id: UUID
    tenant_name: str
    tenant_created: bool
    updated: dict[str, int]
    soft_failures: tuple[SoftFailure, ...] = field(default_factory=tuple)

    @property
    def counts(self) -> dict[str, int]:
        return dict(self.updated)


async def count_unmigrated(
    session: AsyncSession, models: Sequence[type[Base]] = SCOPED_TABLES
) -> dict[str, int]:
    counts: dict[str, int] = {}
    for model in models:
        result = await session.execute(
            select(func.count()).select_from(model).where(model.tenant_id.is_(None))
        )
        counts[model.__tablename__] = int(result.scalar() or 0)
    return counts


async def backfill_tenants(
    session: AsyncSession,
    *,
    default_tenant_name: str | None = None,
    models: Sequence[type[Base]] = SCOPED_TABLES,
) -> BackfillSummary:
    """Attribute every NULL-tenant row to the default tenant, one committed table at a time.

    A failing table is rolled back alone and reported; earlier tables stay
    committed and a re-run picks up whatever NULL rows remain.
    """
    name = default_tenant_name or get_settings().default_tenant_name
    tenant, created = await tenants_repo.get_or_create_tenant_by_name(session, name)
    tenant_id = tenant.id
    await session.commit()
    logger.info("backfill_tenant_resolved tenant_id=%s name=%s created=%s", tenant_id, name, created)

    updated: dict[str, int] = {}
    soft_failures: list[SoftFailure] = []
    for model in models:
        table = model.__tablename__
        try:
            result = await session.execute(
                update(model).where(model.tenant_id.is_(None)).values(tenant_id=tenant_id)
            )
            await session.commit()
        except SQLAlchemyError as exc:
            await session.rollback()
            logger.warning("backfill_table_failed table=%s", table, exc_info=exc)
            soft_failures.append(SoftFailure(step="backfill", target=table, message=str(exc)))
            continue
        updated[table] = int(result.rowcount or 0)
        logger.info("backfill_table_completed table=%s rows=%s", table, updated[table])

    return BackfillSummary(
        tenant_id=tenant_id,
        tenant_name=name,
        tenant_created=created,
        updated=updated,
        soft_failures=tuple(soft_failures),
    )
