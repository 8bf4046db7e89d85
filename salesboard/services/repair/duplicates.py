from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
import logging
from typing import Any, Iterable, Sequence
from uuid import UUID

from sqlalchemy import delete, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from salesboard.domain.associations import Association, get_association
from salesboard.domain.models import Base, QuantitativeObjective, Service
from salesboard.persistence.guards import tenant_predicate
from salesboard.services.repair.summary import SoftFailure


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DuplicateTarget:
    # An entity with a natural-key uniqueness rule and the junction that counts its assignments.
    name: str
    entity: type[Base]
    key_attrs: tuple[str, ...]
    junction: str

    @property
    def association(self) -> Association:
        return get_association(self.junction)

    @property
    def label_attr(self) -> str:
        return self.key_attrs[-1]


DUPLICATE_TARGETS: dict[str, DuplicateTarget] = {
    "quantitative_objective": DuplicateTarget(
        name="quantitative_objective",
        entity=QuantitativeObjective,
        key_attrs=("tenant_id", "name"),
        junction="salesperson_quantitative_objective.objective",
    ),
    "service": DuplicateTarget(
        name="service",
        entity=Service,
        key_attrs=("tenant_id", "nombre"),
        junction="client_service.service",
    ),
}


@dataclass(frozen=True)
class DuplicateMember:
    id: UUID
    created_at: datetime
    assignment_count: int
    label: str


@dataclass(frozen=True)
class ConflictResolution:
    key: tuple[Any, ...]
    survivor: DuplicateMember
    victims: tuple[DuplicateMember, ...]


@dataclass(frozen=True)
class ResolutionSummary:
    target: str
    dry_run: bool
    resolutions: tuple[ConflictResolution, ...]
    deleted_ids: tuple[UUID, ...]
    deleted_junction_rows: int
    soft_failures: tuple[SoftFailure, ...] = field(default_factory=tuple)

    @property
    def survivor_ids(self) -> list[UUID]:
        return [resolution.survivor.id for resolution in self.resolutions]

    @property
    def victim_ids(self) -> list[UUID]:
        return [victim.id for resolution in self.resolutions for victim in resolution.victims]

    @property
    def discarded(self) -> dict[UUID, str]:
        # Lossy by definition: victims are deleted, not merged into the survivor.
        return {victim.id: victim.label for resolution in self.resolutions for victim in resolution.victims}

    @property
    def counts(self) -> dict[str, int]:
        return {
            "conflict_groups": len(self.resolutions),
            "victims": len(self.victim_ids),
            "deleted_entities": len(self.deleted_ids),
            "deleted_junction_rows": self.deleted_junction_rows,
        }


def choose_survivor(members: Iterable[DuplicateMember]) -> tuple[DuplicateMember, list[DuplicateMember]]:
    """Pick the member to keep from a conflict group.

    Most assignments wins; ties go to the earliest ``created_at`` and then to
    the lowest id, so the outcome never depends on retrieval order.
    """
    ordered = sorted(members, key=lambda member: (-member.assignment_count, member.created_at, str(member.id)))
    if not ordered:
        raise ValueError("conflict group is empty")
    return ordered[0], ordered[1:]


async def find_conflict_keys(
    session: AsyncSession, target: DuplicateTarget, *, tenant_id: UUID | str | None = None
) -> list[tuple[Any, ...]]:
    entity = target.entity
    key_columns = [getattr(entity, attr) for attr in target.key_attrs]
    # Unmigrated rows have no tenant yet; backfill must run before they can conflict.
    stmt = select(*key_columns).where(entity.tenant_id.is_not(None))
    if tenant_id is not None:
        stmt = stmt.where(tenant_predicate(entity, tenant_id))
    stmt = stmt.group_by(*key_columns).having(func.count() > 1).order_by(*key_columns)
    result = await session.execute(stmt)
    return [tuple(row) for row in result.all()]


async def load_members(
    session: AsyncSession, target: DuplicateTarget, key: Sequence[Any]
) -> list[DuplicateMember]:
    entity = target.entity
    junction = target.association
    label_column = getattr(entity, target.label_attr)
    stmt = (
        select(entity.id, entity.created_at, label_column, func.count(junction.source.id))
        .select_from(entity)
        .outerjoin(junction.source, junction.fk_column == entity.id)
        .where(*[getattr(entity, attr) == value for attr, value in zip(target.key_attrs, key)])
        .group_by(entity.id, entity.created_at, label_column)
    )
    result = await session.execute(stmt)
    return [
        DuplicateMember(id=row[0], created_at=row[1], assignment_count=int(row[3] or 0), label=str(row[2]))
        for row in result.all()
    ]


async def _delete_victim(
    session: AsyncSession, target: DuplicateTarget, victim: DuplicateMember, tenant_id: Any
) -> int:
    # Junction rows go first; zero rows is fine when a previous run already removed them.
    junction = target.association
    junction_result = await session.execute(delete(junction.source).where(junction.fk_column == victim.id))
    entity = target.entity
    await session.execute(delete(entity).where(entity.id == victim.id, entity.tenant_id == tenant_id))
    return int(junction_result.rowcount or 0)


async def resolve_duplicates(
    session: AsyncSession,
    target: DuplicateTarget | str = "quantitative_objective",
    *,
    tenant_id: UUID | str | None = None,
    dry_run: bool = False,
) -> ResolutionSummary:
    if isinstance(target, str):
        target = DUPLICATE_TARGETS[target]
    keys = await find_conflict_keys(session, target, tenant_id=tenant_id)
    logger.info("duplicate_scan_completed target=%s conflict_groups=%s", target.name, len(keys))

    resolutions: list[ConflictResolution] = []
    deleted_ids: list[UUID] = []
    deleted_junction_rows = 0
    soft_failures: list[SoftFailure] = []

    for key in keys:
        members = await load_members(session, target, key)
        if len(members) <= 1:
            continue
        survivor, victims = choose_survivor(members)
        resolutions.append(ConflictResolution(key=key, survivor=survivor, victims=tuple(victims)))
        logger.info(
            "duplicate_survivor_selected target=%s key=%s survivor_id=%s assignments=%s",
            target.name,
            key,
            survivor.id,
            survivor.assignment_count,
        )
        for victim in victims:
            # Log every deletion candidate before acting on it.
            logger.info(
                "duplicate_victim_candidate target=%s victim_id=%s label=%s assignments=%s dry_run=%s",
                target.name,
                victim.id,
                victim.label,
                victim.assignment_count,
                dry_run,
            )
            if dry_run:
                continue
            try:
                removed_rows = await _delete_victim(session, target, victim, key[0])
                await session.commit()
            except SQLAlchemyError as exc:
                # One victim is one atomic unit; roll it back and keep going.
                await session.rollback()
                logger.warning(
                    "duplicate_victim_delete_failed target=%s victim_id=%s",
                    target.name,
                    victim.id,
                    exc_info=exc,
                )
                soft_failures.append(SoftFailure(step="delete_victim", target=str(victim.id), message=str(exc)))
                continue
            deleted_ids.append(victim.id)
            deleted_junction_rows += removed_rows
            logger.info(
                "duplicate_victim_deleted target=%s victim_id=%s junction_rows=%s",
                target.name,
                victim.id,
                removed_rows,
            )

    return ResolutionSummary(
        target=target.name,
        dry_run=dry_run,
        resolutions=tuple(resolutions),
        deleted_ids=tuple(deleted_ids),
        deleted_junction_rows=deleted_junction_rows,
        soft_failures=tuple(soft_failures),
    )


async def resolve_duplicate_objectives(
    session: AsyncSession, *, tenant_id: UUID | str | None = None, dry_run: bool = False
) -> ResolutionSummary:
    return await resolve_duplicates(session, "quantitative_objective", tenant_id=tenant_id, dry_run=dry_run)
