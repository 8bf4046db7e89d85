from __future__ import annotations

from dataclasses import dataclass, field
import logging
from typing import Any

from sqlalchemy import inspect, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from salesboard.domain.associations import Association, junction_associations
from salesboard.services.repair.summary import SoftFailure


logger = logging.getLogger(__name__)

# Dialects that can only change constraints by rebuilding the table.
_NO_ALTER_CONSTRAINT_DIALECTS = {"sqlite"}


@dataclass(frozen=True)
class ConstraintStep:
    association: Association

    @property
    def table(self) -> str:
        return self.association.source.__tablename__

    @property
    def column(self) -> str:
        return self.association.fk_column.property.columns[0].name

    @property
    def referred_table(self) -> str:
        return self.association.target.__tablename__

    @property
    def name(self) -> str:
        return f"fk_{self.table}_{self.column}"


@dataclass(frozen=True)
class ConstraintSummary:
    added: tuple[str, ...]
    existing: tuple[str, ...]
    soft_failures: tuple[SoftFailure, ...] = field(default_factory=tuple)

    @property
    def counts(self) -> dict[str, int]:
        return {"added": len(self.added), "existing": len(self.existing), "failed": len(self.soft_failures)}


def constraint_steps() -> list[ConstraintStep]:
    return [ConstraintStep(association) for association in junction_associations()]


async def existing_foreign_keys(session: AsyncSession, table: str) -> list[dict[str, Any]]:
    connection = await session.connection()
    return await connection.run_sync(lambda sync_conn: inspect(sync_conn).get_foreign_keys(table))


def _has_constraint(foreign_keys: list[dict[str, Any]], step: ConstraintStep) -> bool:
    for fk in foreign_keys:
        if fk.get("referred_table") == step.referred_table and list(fk.get("constrained_columns") or []) == [
            step.column
        ]:
            return True
    return False


def _add_constraint_sql(session: AsyncSession, step: ConstraintStep) -> str:
    preparer = session.get_bind().dialect.identifier_preparer
    return (
        f"ALTER TABLE {preparer.quote(step.table)} "
        f"ADD CONSTRAINT {preparer.quote(step.name)} "
        f"FOREIGN KEY ({preparer.quote(step.column)}) "
        f"REFERENCES {preparer.quote(step.referred_table)} ({preparer.quote('id')}) "
        "ON DELETE CASCADE"
    )


async def ensure_junction_constraints(session: AsyncSession) -> ConstraintSummary:
    dialect = session.get_bind().dialect.name
    added: list[str] = []
    existing: list[str] = []
    soft_failures: list[SoftFailure] = []
    for step in constraint_steps():
        try:
            foreign_keys = await existing_foreign_keys(session, step.table)
        except SQLAlchemyError as exc:
            await session.rollback()
            logger.warning("constraint_inspect_failed table=%s", step.table, exc_info=exc)
            soft_failures.append(SoftFailure(step="inspect", target=step.table, message=str(exc)))
            continue
        if _has_constraint(foreign_keys, step):
            existing.append(step.name)
            continue
        if dialect in _NO_ALTER_CONSTRAINT_DIALECTS:
            logger.warning("constraint_add_unsupported constraint=%s dialect=%s", step.name, dialect)
            soft_failures.append(
                SoftFailure(
                    step="add_constraint",
                    target=step.name,
                    message=f"{dialect} cannot add foreign keys to an existing table",
                )
            )
            continue
        try:
            await session.execute(text(_add_constraint_sql(session, step)))
            await session.commit()
        except SQLAlchemyError as exc:
            await session.rollback()
            logger.warning("constraint_add_failed constraint=%s", step.name, exc_info=exc)
            soft_failures.append(SoftFailure(step="add_constraint", target=step.name, message=str(exc)))
            continue
        added.append(step.name)
        logger.info("constraint_added constraint=%s table=%s", step.name, step.table)
    return ConstraintSummary(added=tuple(added), existing=tuple(existing), soft_failures=tuple(soft_failures))
