from __future__ import annotations

from dataclasses import dataclass
import logging
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from salesboard.domain.associations import ASSOCIATIONS, Association, junction_associations
from salesboard.persistence.guards import tenant_predicate
from salesboard.services.repair.backfill import count_unmigrated
from salesboard.services.repair.duplicates import DUPLICATE_TARGETS, find_conflict_keys
from salesboard.services.repair.orphans import find_orphans


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class IntegrityReport:
    duplicate_groups: dict[str, int]
    orphans: dict[str, int]
    unmigrated: dict[str, int]
    cross_tenant: dict[str, list[UUID]]

    @property
    def clean(self) -> bool:
        return not any(self.counts.values())

    @property
    def counts(self) -> dict[str, int]:
        counts: dict[str, int] = {}
        counts.update({f"duplicates.{name}": value for name, value in self.duplicate_groups.items()})
        counts.update({f"orphans.{name}": value for name, value in self.orphans.items()})
        counts.update({f"unmigrated.{name}": value for name, value in self.unmigrated.items()})
        counts.update({f"cross_tenant.{name}": len(ids) for name, ids in self.cross_tenant.items()})
        return counts


async def find_cross_tenant_rows(
    session: AsyncSession, association: Association, *, tenant_id: UUID | str | None = None
) -> list[UUID]:
    # Rows whose referenced parent carries a different tenant; NULL tenants are backfill's concern.
    source = association.source
    target = association.target
    stmt = (
        select(source.id)
        .join(target, target.id == association.fk_column)
        .where(source.tenant_id != target.tenant_id)
    )
    if tenant_id is not None:
        stmt = stmt.where(tenant_predicate(source, tenant_id))
    result = await session.execute(stmt.order_by(source.id))
    return list(result.scalars().all())


async def integrity_report(session: AsyncSession, *, tenant_id: UUID | str | None = None) -> IntegrityReport:
    duplicate_groups = {
        name: len(await find_conflict_keys(session, target, tenant_id=tenant_id))
        for name, target in DUPLICATE_TARGETS.items()
    }
    orphans = {
        association.name: len(await find_orphans(session, association, tenant_id=tenant_id))
        for association in junction_associations()
    }
    unmigrated = await count_unmigrated(session)
    cross_tenant = {
        association.name: await find_cross_tenant_rows(session, association, tenant_id=tenant_id)
        for association in ASSOCIATIONS
    }
    report = IntegrityReport(
        duplicate_groups=duplicate_groups,
        orphans=orphans,
        unmigrated=unmigrated,
        cross_tenant=cross_tenant,
    )
    logger.info("integrity_report_built tenant_id=%s clean=%s", tenant_id, report.clean)
    return report
