from __future__ import annotations

from dataclasses import dataclass, field
import logging
from uuid import UUID

from sqlalchemy import delete, exists, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from salesboard.domain.associations import Association, junction_associations
from salesboard.persistence.guards import tenant_predicate
from salesboard.services.repair.summary import SoftFailure


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class OrphanSweepSummary:
    dry_run: bool
    found: dict[str, int]
    deleted: dict[str, int]
    soft_failures: tuple[SoftFailure, ...] = field(default_factory=tuple)

    @property
    def counts(self) -> dict[str, int]:
        counts = {f"found.{name}": value for name, value in self.found.items()}
        counts.update({f"deleted.{name}": value for name, value in self.deleted.items()})
        return counts


async def find_orphans(
    session: AsyncSession, association: Association, *, tenant_id: UUID | str | None = None
) -> list[UUID]:
    # A junction row is orphaned when the parent on this side no longer exists.
    junction = association.source
    parent = association.target
    stmt = select(junction.id).where(~exists().where(parent.id == association.fk_column))
    if tenant_id is not None:
        stmt = stmt.where(tenant_predicate(junction, tenant_id))
    result = await session.execute(stmt.order_by(junction.id))
    return list(result.scalars().all())


async def sweep_orphaned_junctions(
    session: AsyncSession, *, tenant_id: UUID | str | None = None, dry_run: bool = False
) -> OrphanSweepSummary:
    found: dict[str, int] = {}
    deleted: dict[str, int] = {}
    soft_failures: list[SoftFailure] = []
    for association in junction_associations():
        orphan_ids = await find_orphans(session, association, tenant_id=tenant_id)
        found[association.name] = len(orphan_ids)
        deleted[association.name] = 0
        if not orphan_ids:
            continue
        for orphan_id in orphan_ids:
            logger.info(
                "orphan_junction_candidate association=%s row_id=%s dry_run=%s",
                association.name,
                orphan_id,
                dry_run,
            )
        if dry_run:
            continue
        junction = association.source
        try:
            result = await session.execute(delete(junction).where(junction.id.in_(orphan_ids)))
            await session.commit()
        except SQLAlchemyError as exc:
            await session.rollback()
            logger.warning("orphan_junction_delete_failed association=%s", association.name, exc_info=exc)
            soft_failures.append(SoftFailure(step="delete_orphans", target=association.name, message=str(exc)))
            continue
        deleted[association.name] = int(result.rowcount or 0)
        logger.info("orphan_junctions_deleted association=%s rows=%s", association.name, deleted[association.name])
    return OrphanSweepSummary(dry_run=dry_run, found=found, deleted=deleted, soft_failures=tuple(soft_failures))
