from __future__ import annotations

from dataclasses import dataclass
import logging
from uuid import UUID

from sqlalchemy import delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from salesboard.core.errors import NotFoundError, ReferentialConflictError
from salesboard.domain.associations import incoming
from salesboard.domain.models import Base, SalespersonObjective, SalespersonQuantitativeObjective
from salesboard.persistence.guards import require_tenant_id, tenant_predicate
from salesboard.persistence.repos import salespersons as salespersons_repo


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AssignmentRemovalSummary:
    salesperson_id: UUID
    salesperson_name: str
    quantitative_removed: int
    qualitative_removed: int

    @property
    def counts(self) -> dict[str, int]:
        return {
            "salesperson_quantitative_objectives": self.quantitative_removed,
            "salesperson_objectives": self.qualitative_removed,
        }


async def remove_salesperson_assignments(
    session: AsyncSession, salesperson_id: UUID, *, tenant_id: UUID | str | None = None
) -> AssignmentRemovalSummary:
    """Drop every objective assignment of one salesperson so the row can be deleted."""
    if tenant_id is None:
        salesperson = await salespersons_repo.get_salesperson_unscoped(session, salesperson_id)
    else:
        salesperson = await salespersons_repo.get_salesperson(session, tenant_id, salesperson_id)
    if salesperson is None:
        raise NotFoundError(f"Salesperson {salesperson_id} not found", salesperson_id=salesperson_id)

    logger.info(
        "salesperson_assignment_removal_started salesperson_id=%s tenant_id=%s",
        salesperson.id,
        salesperson.tenant_id,
    )
    quantitative = await session.execute(
        delete(SalespersonQuantitativeObjective).where(
            SalespersonQuantitativeObjective.salesperson_id == salesperson.id
        )
    )
    qualitative = await session.execute(
        delete(SalespersonObjective).where(SalespersonObjective.salesperson_id == salesperson.id)
    )
    await session.commit()
    summary = AssignmentRemovalSummary(
        salesperson_id=salesperson.id,
        salesperson_name=salesperson.nombre,
        quantitative_removed=int(quantitative.rowcount or 0),
        qualitative_removed=int(qualitative.rowcount or 0),
    )
    logger.info(
        "salesperson_assignment_removal_completed salesperson_id=%s quantitative=%s qualitative=%s",
        summary.salesperson_id,
        summary.quantitative_removed,
        summary.qualitative_removed,
    )
    return summary


async def delete_entity(
    session: AsyncSession, tenant_id: UUID | str, model: type[Base], entity_id: UUID
) -> dict[str, int]:
    """Delete one scoped entity, applying each incoming association's declared policy.

    ``restrict`` dependents block the delete with ReferentialConflictError;
    ``cascade`` dependents are removed first; ``set_null`` references are cleared.
    The explicit steps keep junctions consistent even where the database lacks FKs.
    """
    resolved = require_tenant_id(tenant_id)
    existing = await session.execute(
        select(model.id).where(model.id == entity_id, tenant_predicate(model, resolved))
    )
    if existing.scalar_one_or_none() is None:
        raise NotFoundError(f"{model.__name__} {entity_id} not found", entity_id=entity_id)

    associations = incoming(model)
    for association in associations:
        if association.on_delete != "restrict":
            continue
        dependents = (
            await session.execute(
                select(func.count()).select_from(association.source).where(association.fk_column == entity_id)
            )
        ).scalar_one()
        if dependents:
            raise ReferentialConflictError(
                f"{model.__name__} {entity_id} still has {dependents} dependent rows via {association.name}",
                association=association.name,
                dependents=dependents,
            )

    affected: dict[str, int] = {}
    for association in associations:
        source = association.source
        if association.on_delete == "cascade":
            result = await session.execute(delete(source).where(association.fk_column == entity_id))
        elif association.on_delete == "set_null":
            result = await session.execute(
                update(source).where(association.fk_column == entity_id).values({association.fk_attr: None})
            )
        else:
            continue
        affected[association.name] = int(result.rowcount or 0)
    await session.execute(delete(model).where(model.id == entity_id, model.tenant_id == resolved))
    affected[model.__tablename__] = 1
    logger.info("entity_deleted model=%s entity_id=%s affected=%s", model.__name__, entity_id, affected)
    return affected
