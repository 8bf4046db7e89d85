from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
import logging
import math
from typing import Any
from uuid import UUID

from sqlalchemy import delete
from sqlalchemy.ext.asyncio import AsyncSession

from salesboard.core.errors import NotFoundError, SalesboardError, ValidationError, error_payload
from salesboard.domain.models import (
    OBJECTIVE_STATUSES,
    QUANTITATIVE_TYPES,
    QualitativeObjective,
    QuantitativeObjective,
    SalespersonObjective,
    SalespersonQuantitativeObjective,
    TechnicianObjective,
)
from salesboard.domain.schemas import (
    QualitativeObjectivePayload,
    QuantitativeObjectivePayload,
    TechnicianObjectivePayload,
    parse_payload,
)
from salesboard.persistence.repos import objectives as objectives_repo
from salesboard.services.tenancy import ensure_same_tenant, require_active_tenant


logger = logging.getLogger(__name__)

STATUS_PENDING = "pending"
STATUS_IN_PROGRESS = "in_progress"
STATUS_COMPLETED = "completed"
STATUS_NOT_COMPLETED = "not_completed"

WEIGHT_MIN = 0.0
WEIGHT_MAX = 100.0
WEIGHT_TARGET = 100.0


@dataclass(frozen=True)
class WeightSummary:
    # Soft target only: reported to dashboards, never enforced on write.
    total: float
    objective_count: int

    @property
    def balanced(self) -> bool:
        return math.isclose(self.total, WEIGHT_TARGET)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _transition_allowed(current: str, target: str) -> bool:
    # Forward-only; returning to pending is handled separately as an operator reset.
    allowed: dict[str, set[str]] = {
        STATUS_PENDING: {STATUS_IN_PROGRESS},
        STATUS_IN_PROGRESS: {STATUS_COMPLETED, STATUS_NOT_COMPLETED},
        STATUS_COMPLETED: set(),
        STATUS_NOT_COMPLETED: set(),
    }
    return target in allowed.get(current, set())


def validate_weight(weight: Any, *, upper: float = WEIGHT_MAX) -> float:
    # Out-of-range weights are rejected, never clamped.
    if weight is None or isinstance(weight, bool):
        raise ValidationError("weight is required", weight=weight)
    try:
        value = float(weight)
    except (TypeError, ValueError) as exc:
        raise ValidationError(f"weight must be numeric, got {weight!r}", weight=weight) from exc
    if math.isnan(value) or value < WEIGHT_MIN or value > upper:
        raise ValidationError(f"weight must be between {WEIGHT_MIN:g} and {upper:g}", weight=weight)
    return value


def validate_status(status: str) -> str:
    if status not in OBJECTIVE_STATUSES:
        raise ValidationError(f"Invalid status: {status!r}", status=status)
    return status


def _apply_completion_date(
    objective: TechnicianObjective, status: str, completion_date: datetime | None, at: datetime | None
) -> None:
    # completion_date exists only while the objective sits in completed.
    if status == STATUS_COMPLETED:
        objective.completion_date = completion_date or objective.completion_date or at or _utc_now()
    else:
        objective.completion_date = None


def transition_status(
    objective: TechnicianObjective,
    target: str,
    *,
    at: datetime | None = None,
    completion_date: datetime | None = None,
    operator_reset: bool = False,
) -> bool:
    """Move a technician objective along pending -> in_progress -> {completed, not_completed}.

    Any state may go back to pending only with ``operator_reset=True``. Returns
    False when the objective already is in ``target``.
    """
    validate_status(target)
    current = objective.status or STATUS_PENDING
    if target == current:
        if target == STATUS_COMPLETED and completion_date is not None:
            objective.completion_date = completion_date
        return False
    if target == STATUS_PENDING:
        if not operator_reset:
            raise ValidationError(
                f"Resetting an objective from {current} to pending requires an operator reset",
                status=current,
            )
    elif not _transition_allowed(current, target):
        raise ValidationError(f"Invalid status transition {current} -> {target}", status=current)
    objective.status = target
    _apply_completion_date(objective, target, completion_date, at)
    return True


def objective_write_error(exc: SalesboardError) -> dict[str, Any]:
    # Structured error object handed back to the request layer.
    return error_payload(exc)


async def save_technician_objective(
    session: AsyncSession,
    tenant_id: UUID | str,
    payload: TechnicianObjectivePayload | dict[str, Any],
    objective_id: UUID | None = None,
    *,
    operator_reset: bool = False,
) -> TechnicianObjective:
    if isinstance(payload, dict):
        payload = parse_payload(TechnicianObjectivePayload, payload)
    tenant = await require_active_tenant(session, tenant_id)
    weight = validate_weight(payload.weight)
    validate_status(payload.status)
    if payload.is_global and payload.technician_id is not None:
        raise ValidationError("Global objectives apply to every technician and cannot target one")
    if not payload.is_global and payload.technician_id is None:
        raise ValidationError("Non-global technician objectives require a technician_id")
    if payload.salesperson_ids:
        raise ValidationError("Technician objectives are not assigned to salespeople")
    if payload.technician_id is not None:
        await ensure_same_tenant(session, tenant.id, "technician_objective.technician", payload.technician_id)

    if objective_id is None:
        objective = TechnicianObjective(tenant_id=tenant.id, status=payload.status)
        # New rows may start in any valid status; only updates follow the state machine.
        _apply_completion_date(objective, payload.status, payload.completion_date, None)
        session.add(objective)
    else:
        existing = await objectives_repo.get_technician_objective(session, tenant.id, objective_id)
        if existing is None:
            raise NotFoundError(f"Technician objective {objective_id} not found", objective_id=objective_id)
        objective = existing
        transition_status(
            objective,
            payload.status,
            completion_date=payload.completion_date,
            operator_reset=operator_reset,
        )

    objective.technician_id = payload.technician_id
    objective.is_global = payload.is_global
    objective.text = payload.text
    objective.criteria = payload.criteria
    objective.weight = weight
    objective.evidence = payload.evidence
    objective.due_date = payload.due_date
    await session.flush()
    logger.info(
        "technician_objective_saved tenant_id=%s objective_id=%s status=%s is_global=%s",
        tenant.id,
        objective.id,
        objective.status,
        objective.is_global,
    )
    return objective


async def assign_technician_objective(
    session: AsyncSession, tenant_id: UUID | str, objective_id: UUID, technician_id: UUID
) -> TechnicianObjective:
    tenant = await require_active_tenant(session, tenant_id)
    objective = await objectives_repo.get_technician_objective(session, tenant.id, objective_id)
    if objective is None:
        raise NotFoundError(f"Technician objective {objective_id} not found", objective_id=objective_id)
    if objective.is_global:
        raise ValidationError("Global objectives cannot be assigned to a specific technician")
    await ensure_same_tenant(session, tenant.id, "technician_objective.technician", technician_id)
    objective.technician_id = technician_id
    await session.flush()
    return objective


async def weight_summary(session: AsyncSession, tenant_id: UUID | str, technician_id: UUID) -> WeightSummary:
    total, count = await objectives_repo.sum_technician_weights(session, tenant_id, technician_id)
    return WeightSummary(total=total, objective_count=count)


async def assign_qualitative_objective(
    session: AsyncSession,
    tenant_id: UUID | str,
    objective_id: UUID,
    salesperson_ids: set[UUID],
) -> list[SalespersonObjective]:
    # Replace the assignment set; re-running with the same ids changes nothing.
    tenant = await require_active_tenant(session, tenant_id)
    objective = await objectives_repo.get_qualitative_objective(session, tenant.id, objective_id)
    if objective is None:
        raise NotFoundError(f"Qualitative objective {objective_id} not found", objective_id=objective_id)
    for salesperson_id in salesperson_ids:
        await ensure_same_tenant(session, tenant.id, "salesperson_objective.salesperson", salesperson_id)

    current = await objectives_repo.list_qualitative_assignments(session, tenant.id, objective_id)
    current_ids = {row.salesperson_id for row in current}
    stale = current_ids - set(salesperson_ids)
    if stale:
        await session.execute(
            delete(SalespersonObjective).where(
                SalespersonObjective.qualitative_objective_id == objective_id,
                SalespersonObjective.tenant_id == tenant.id,
                SalespersonObjective.salesperson_id.in_(stale),
            )
        )
    for salesperson_id in sorted(set(salesperson_ids) - current_ids, key=str):
        session.add(
            SalespersonObjective(
                tenant_id=tenant.id,
                salesperson_id=salesperson_id,
                qualitative_objective_id=objective_id,
            )
        )
    await session.flush()
    return await objectives_repo.list_qualitative_assignments(session, tenant.id, objective_id)


async def save_qualitative_objective(
    session: AsyncSession,
    tenant_id: UUID | str,
    payload: QualitativeObjectivePayload | dict[str, Any],
    objective_id: UUID | None = None,
) -> QualitativeObjective:
    if isinstance(payload, dict):
        payload = parse_payload(QualitativeObjectivePayload, payload)
    tenant = await require_active_tenant(session, tenant_id)
    titulo = (payload.titulo or "").strip()
    if not titulo:
        raise ValidationError("titulo is required")
    peso = None if payload.peso is None else validate_weight(payload.peso)
    # Reject foreign salespeople before the objective row is created or changed.
    for salesperson_id in payload.salesperson_ids or ():
        await ensure_same_tenant(session, tenant.id, "salesperson_objective.salesperson", salesperson_id)

    if objective_id is None:
        objective = QualitativeObjective(tenant_id=tenant.id, titulo=titulo)
        session.add(objective)
    else:
        existing = await objectives_repo.get_qualitative_objective(session, tenant.id, objective_id)
        if existing is None:
            raise NotFoundError(f"Qualitative objective {objective_id} not found", objective_id=objective_id)
        objective = existing
    objective.titulo = titulo
    objective.descripcion = payload.descripcion
    # estado/prioridad are free-form: no ordering is enforced.
    objective.estado = payload.estado
    objective.prioridad = payload.prioridad
    objective.fecha_limite = payload.fecha_limite
    objective.peso = peso
    objective.evidencia = payload.evidencia
    objective.is_global = payload.is_global
    await session.flush()

    if payload.salesperson_ids is not None:
        await assign_qualitative_objective(session, tenant.id, objective.id, payload.salesperson_ids)
    return objective


async def set_qualitative_status(
    session: AsyncSession, tenant_id: UUID | str, objective_id: UUID, estado: str
) -> QualitativeObjective:
    tenant = await require_active_tenant(session, tenant_id)
    objective = await objectives_repo.get_qualitative_objective(session, tenant.id, objective_id)
    if objective is None:
        raise NotFoundError(f"Qualitative objective {objective_id} not found", objective_id=objective_id)
    if not (estado or "").strip():
        raise ValidationError("estado is required")
    objective.estado = estado.strip()
    await session.flush()
    return objective


async def set_qualitative_evidence(
    session: AsyncSession, tenant_id: UUID | str, objective_id: UUID, evidencia: str | None
) -> QualitativeObjective:
    tenant = await require_active_tenant(session, tenant_id)
    objective = await objectives_repo.get_qualitative_objective(session, tenant.id, objective_id)
    if objective is None:
        raise NotFoundError(f"Qualitative objective {objective_id} not found", objective_id=objective_id)
    objective.evidencia = evidencia
    await session.flush()
    return objective


async def save_quantitative_objective(
    session: AsyncSession,
    tenant_id: UUID | str,
    payload: QuantitativeObjectivePayload | dict[str, Any],
    objective_id: UUID | None = None,
) -> QuantitativeObjective:
    if isinstance(payload, dict):
        payload = parse_payload(QuantitativeObjectivePayload, payload)
    tenant = await require_active_tenant(session, tenant_id)
    name = (payload.name or "").strip()
    if not name:
        raise ValidationError("name is required")
    if payload.type not in QUANTITATIVE_TYPES:
        raise ValidationError(f"Invalid objective type: {payload.type!r}")
    validate_status(payload.status)
    if payload.company_target < 0:
        raise ValidationError("company_target must be >= 0")
    if payload.minimum_acceptable is not None and payload.minimum_acceptable < 0:
        raise ValidationError("minimum_acceptable must be >= 0")
    weight = None if payload.weight is None else validate_weight(payload.weight, upper=1.0)
    if payload.start_date and payload.end_date and payload.end_date < payload.start_date:
        raise ValidationError("end_date must not precede start_date")
    clashes = await objectives_repo.find_quantitative_by_name(session, tenant.id, name, exclude_id=objective_id)
    if clashes:
        raise ValidationError(f"A quantitative objective named {name!r} already exists", name=name)

    if objective_id is None:
        objective = QuantitativeObjective(tenant_id=tenant.id, name=name)
        session.add(objective)
    else:
        existing = await objectives_repo.get_quantitative_objective(session, tenant.id, objective_id)
        if existing is None:
            raise NotFoundError(f"Quantitative objective {objective_id} not found", objective_id=objective_id)
        objective = existing
    objective.name = name
    objective.description = payload.description
    objective.type = payload.type
    objective.company_target = payload.company_target
    objective.minimum_acceptable = payload.minimum_acceptable
    objective.weight = weight
    objective.start_date = payload.start_date
    objective.end_date = payload.end_date
    objective.status = payload.status
    objective.is_global = payload.is_global
    await session.flush()
    return objective


async def assign_quantitative_objective(
    session: AsyncSession,
    tenant_id: UUID | str,
    objective_id: UUID,
    salesperson_id: UUID,
    individual_target: float,
    display_order: int | None = None,
) -> SalespersonQuantitativeObjective:
    tenant = await require_active_tenant(session, tenant_id)
    if individual_target is None or individual_target < 0:
        raise ValidationError("individual_target must be >= 0")
    await ensure_same_tenant(
        session, tenant.id, "salesperson_quantitative_objective.objective", objective_id
    )
    await ensure_same_tenant(
        session, tenant.id, "salesperson_quantitative_objective.salesperson", salesperson_id
    )
    assignment = await objectives_repo.get_quantitative_assignment(session, tenant.id, salesperson_id, objective_id)
    if assignment is None:
        if display_order is None:
            current_max = await objectives_repo.max_display_order(session, tenant.id, salesperson_id)
            display_order = 0 if current_max is None else current_max + 1
        assignment = SalespersonQuantitativeObjective(
            tenant_id=tenant.id,
            salesperson_id=salesperson_id,
            quantitative_objective_id=objective_id,
            current_value=0,
            monthly_progress={},
            display_order=display_order,
        )
        session.add(assignment)
    elif display_order is not None:
        assignment.display_order = display_order
    assignment.individual_target = float(individual_target)
    await session.flush()
    return assignment


async def record_monthly_progress(
    session: AsyncSession,
    tenant_id: UUID | str,
    assignment_id: UUID,
    month: str | int,
    value: float,
) -> SalespersonQuantitativeObjective:
    key = f"{int(month):02d}" if str(month).isdigit() else str(month)
    if key not in {f"{number:02d}" for number in range(1, 13)}:
        raise ValidationError(f"Invalid month: {month!r}")
    if value is None or isinstance(value, bool) or math.isnan(value) or value < 0:
        raise ValidationError("Monthly progress must be a number >= 0", value=value)
    tenant = await require_active_tenant(session, tenant_id)
    assignment = await objectives_repo.get_quantitative_assignment_by_id(session, tenant.id, assignment_id)
    if assignment is None:
        raise NotFoundError(f"Assignment {assignment_id} not found", assignment_id=assignment_id)
    # Reassign a fresh dict so the JSON column change is detected.
    progress = dict(assignment.monthly_progress or {})
    progress[key] = float(value)
    assignment.monthly_progress = progress
    assignment.current_value = float(sum(progress.values()))
    await session.flush()
    return assignment


async def reorder_assignments(
    session: AsyncSession,
    tenant_id: UUID | str,
    salesperson_id: UUID,
    ordered_ids: list[UUID],
) -> list[SalespersonQuantitativeObjective]:
    tenant = await require_active_tenant(session, tenant_id)
    assignments = await objectives_repo.list_salesperson_quantitative_assignments(session, tenant.id, salesperson_id)
    by_id = {row.id: row for row in assignments}
    if set(ordered_ids) != set(by_id) or len(ordered_ids) != len(by_id):
        raise ValidationError("ordered_ids must list every assignment of the salesperson exactly once")
    for position, assignment_id in enumerate(ordered_ids):
        by_id[assignment_id].display_order = position
    await session.flush()
    return [by_id[assignment_id] for assignment_id in ordered_ids]
