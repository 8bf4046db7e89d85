from __future__ import annotations

from datetime import datetime, timezone
from uuid import uuid4

import pytest

from salesboard.core.errors import CrossTenantReferenceError, NotFoundError, ValidationError
from salesboard.domain.models import TechnicianObjective
from salesboard.persistence.db import SessionLocal
from salesboard.persistence.repos import objectives as objectives_repo
from salesboard.persistence.repos import tenants as tenants_repo
from salesboard.services.objectives import (
    assign_qualitative_objective,
    assign_quantitative_objective,
    assign_technician_objective,
    objective_write_error,
    record_monthly_progress,
    reorder_assignments,
    save_qualitative_objective,
    save_quantitative_objective,
    save_technician_objective,
    set_qualitative_evidence,
    set_qualitative_status,
    transition_status,
    validate_weight,
    weight_summary,
)
from salesboard.tests.utils.factories import (
    create_test_qualitative_objective,
    create_test_quantitative_objective,
    create_test_salesperson,
    create_test_technician,
    create_test_technician_objective,
    create_test_tenant,
)


@pytest.mark.parametrize("weight", [0, 100, 37.5])
def test_validate_weight_accepts_bounds(weight) -> None:
    assert validate_weight(weight) == float(weight)


@pytest.mark.parametrize("weight", [150, -1, None, True, "heavy", float("nan")])
def test_validate_weight_rejects_out_of_range(weight) -> None:
    # Rejected, never clamped.
    with pytest.raises(ValidationError):
        validate_weight(weight)


def test_forward_transitions_set_and_clear_completion_date() -> None:
    objective = TechnicianObjective(status="pending")
    at = datetime(2026, 10, 1, tzinfo=timezone.utc)

    assert transition_status(objective, "in_progress") is True
    assert objective.completion_date is None
    assert transition_status(objective, "completed", at=at) is True
    assert objective.completion_date == at


@pytest.mark.parametrize(
    ("current", "target"),
    [("pending", "completed"), ("completed", "in_progress"), ("not_completed", "completed")],
)
def test_invalid_transitions_are_rejected(current: str, target: str) -> None:
    objective = TechnicianObjective(status=current)
    with pytest.raises(ValidationError):
        transition_status(objective, target)
    assert objective.status == current


def test_reset_to_pending_requires_operator_and_clears_completion() -> None:
    objective = TechnicianObjective(status="completed", completion_date=datetime.now(timezone.utc))
    with pytest.raises(ValidationError):
        transition_status(objective, "pending")

    assert transition_status(objective, "pending", operator_reset=True) is True
    assert objective.status == "pending"
    assert objective.completion_date is None


def test_same_status_is_a_no_op() -> None:
    objective = TechnicianObjective(status="in_progress")
    assert transition_status(objective, "in_progress") is False


@pytest.mark.asyncio
async def test_weight_150_is_rejected_and_not_stored() -> None:
    tenant = await create_test_tenant()
    technician = await create_test_technician(tenant.id)

    async with SessionLocal() as session:
        with pytest.raises(ValidationError) as exc_info:
            await save_technician_objective(
                session, tenant.id, {"technician_id": technician.id, "text": "SLA", "weight": 150}
            )
        await session.rollback()

    assert objective_write_error(exc_info.value)["error"]["code"] == "VALIDATION_ERROR"
    async with SessionLocal() as session:
        assert await objectives_repo.list_technician_objectives(session, tenant.id, technician.id) == []


@pytest.mark.asyncio
async def test_weights_0_and_100_are_stored() -> None:
    tenant = await create_test_tenant()
    technician = await create_test_technician(tenant.id)

    async with SessionLocal() as session:
        low = await save_technician_objective(session, tenant.id, {"technician_id": technician.id, "weight": 0})
        high = await save_technician_objective(session, tenant.id, {"technician_id": technician.id, "weight": 100})
        await session.commit()

    assert (low.weight, high.weight) == (0.0, 100.0)


@pytest.mark.asyncio
async def test_global_objective_with_technician_is_rejected() -> None:
    tenant = await create_test_tenant()
    technician = await create_test_technician(tenant.id)

    async with SessionLocal() as session:
        with pytest.raises(ValidationError):
            await save_technician_objective(
                session, tenant.id, {"is_global": True, "technician_id": technician.id, "weight": 10}
            )


@pytest.mark.asyncio
async def test_global_objective_is_visible_to_every_technician_of_its_tenant() -> None:
    tenant = await create_test_tenant()
    other_tenant = await create_test_tenant()
    first = await create_test_technician(tenant.id, nombre="Uno")
    second = await create_test_technician(tenant.id, nombre="Dos")
    foreign = await create_test_technician(other_tenant.id, nombre="Otro")

    async with SessionLocal() as session:
        objective = await save_technician_objective(
            session, tenant.id, {"is_global": True, "text": "Capacitación", "weight": 10}
        )
        await session.commit()

    async with SessionLocal() as session:
        for technician in (first, second):
            visible = await objectives_repo.list_technician_objectives(session, tenant.id, technician.id)
            assert [row.id for row in visible] == [objective.id]
        assert await objectives_repo.list_technician_objectives(session, other_tenant.id, foreign.id) == []


@pytest.mark.asyncio
async def test_global_objective_cannot_be_assigned_to_a_technician() -> None:
    tenant = await create_test_tenant()
    technician = await create_test_technician(tenant.id)
    objective = await create_test_technician_objective(tenant.id, None, is_global=True)

    async with SessionLocal() as session:
        with pytest.raises(ValidationError):
            await assign_technician_objective(session, tenant.id, objective.id, technician.id)


@pytest.mark.asyncio
async def test_technician_objective_for_foreign_technician_is_rejected() -> None:
    tenant = await create_test_tenant()
    other = await create_test_tenant()
    foreign = await create_test_technician(other.id)

    async with SessionLocal() as session:
        with pytest.raises(CrossTenantReferenceError):
            await save_technician_objective(session, tenant.id, {"technician_id": foreign.id, "weight": 5})


@pytest.mark.asyncio
async def test_update_follows_state_machine() -> None:
    tenant = await create_test_tenant()
    technician = await create_test_technician(tenant.id)

    async with SessionLocal() as session:
        objective = await save_technician_objective(session, tenant.id, {"technician_id": technician.id})
        await session.commit()
        await save_technician_objective(
            session, tenant.id, {"technician_id": technician.id, "status": "in_progress"}, objective.id
        )
        updated = await save_technician_objective(
            session, tenant.id, {"technician_id": technician.id, "status": "completed"}, objective.id
        )
        await session.commit()
        assert updated.completion_date is not None

        with pytest.raises(ValidationError):
            await save_technician_objective(
                session, tenant.id, {"technician_id": technician.id, "status": "in_progress"}, objective.id
            )


@pytest.mark.asyncio
async def test_unknown_objective_update_is_not_found() -> None:
    tenant = await create_test_tenant()
    technician = await create_test_technician(tenant.id)
    async with SessionLocal() as session:
        with pytest.raises(NotFoundError):
            await save_technician_objective(session, tenant.id, {"technician_id": technician.id}, uuid4())


@pytest.mark.asyncio
async def test_weight_summary_reports_without_enforcing() -> None:
    tenant = await create_test_tenant()
    technician = await create_test_technician(tenant.id)
    await create_test_technician_objective(tenant.id, technician.id, weight=60)
    await create_test_technician_objective(tenant.id, technician.id, weight=30)
    await create_test_technician_objective(tenant.id, None, weight=50, is_global=True)

    async with SessionLocal() as session:
        summary = await weight_summary(session, tenant.id, technician.id)

    assert summary.total == 90.0
    assert summary.objective_count == 2
    assert summary.balanced is False


@pytest.mark.asyncio
async def test_qualitative_assignment_replaces_set_and_rejects_foreign_salesperson() -> None:
    tenant = await create_test_tenant()
    other = await create_test_tenant()
    first = await create_test_salesperson(tenant.id, nombre="Uno")
    second = await create_test_salesperson(tenant.id, nombre="Dos")
    foreign = await create_test_salesperson(other.id, nombre="Otro")

    async with SessionLocal() as session:
        objective = await save_qualitative_objective(
            session, tenant.id, {"titulo": "Visitas", "peso": 20, "salesperson_ids": [first.id, second.id]}
        )
        await session.commit()
        rows = await assign_qualitative_objective(session, tenant.id, objective.id, {second.id})
        await session.commit()
        assert [row.salesperson_id for row in rows] == [second.id]

        with pytest.raises(CrossTenantReferenceError):
            await assign_qualitative_objective(session, tenant.id, objective.id, {foreign.id})


@pytest.mark.asyncio
async def test_qualitative_status_is_free_form() -> None:
    tenant = await create_test_tenant()
    objective = await create_test_qualitative_objective(tenant.id)
    async with SessionLocal() as session:
        updated = await set_qualitative_status(session, tenant.id, objective.id, "en revisión")
        await session.commit()
    assert updated.estado == "en revisión"


@pytest.mark.asyncio
async def test_quantitative_name_is_unique_per_tenant() -> None:
    tenant = await create_test_tenant()
    other = await create_test_tenant()
    await create_test_quantitative_objective(tenant.id, "Ventas Q1")

    async with SessionLocal() as session:
        with pytest.raises(ValidationError):
            await save_quantitative_objective(session, tenant.id, {"name": "Ventas Q1"})
        await session.rollback()
        created = await save_quantitative_objective(session, other.id, {"name": "Ventas Q1", "weight": 0.5})
        await session.commit()
    assert created.tenant_id == other.id


@pytest.mark.asyncio
async def test_quantitative_weight_above_one_is_rejected() -> None:
    tenant = await create_test_tenant()
    async with SessionLocal() as session:
        with pytest.raises(ValidationError):
            await save_quantitative_objective(session, tenant.id, {"name": "Margen", "weight": 1.5})


@pytest.mark.asyncio
async def test_monthly_progress_sums_into_current_value() -> None:
    tenant = await create_test_tenant()
    salesperson = await create_test_salesperson(tenant.id)
    objective = await create_test_quantitative_objective(tenant.id, "Ventas Q1")

    async with SessionLocal() as session:
        assignment = await assign_quantitative_objective(session, tenant.id, objective.id, salesperson.id, 1000)
        await record_monthly_progress(session, tenant.id, assignment.id, 1, 200)
        await record_monthly_progress(session, tenant.id, assignment.id, "02", 300)
        updated = await record_monthly_progress(session, tenant.id, assignment.id, 1, 250)
        await session.commit()
        assert updated.monthly_progress == {"01": 250.0, "02": 300.0}
        assert updated.current_value == 550.0

        with pytest.raises(ValidationError):
            await record_monthly_progress(session, tenant.id, assignment.id, 13, 10)


@pytest.mark.asyncio
async def test_assignments_append_and_reorder() -> None:
    tenant = await create_test_tenant()
    salesperson = await create_test_salesperson(tenant.id)
    first = await create_test_quantitative_objective(tenant.id, "Ventas")
    second = await create_test_quantitative_objective(tenant.id, "Margen")

    async with SessionLocal() as session:
        a = await assign_quantitative_objective(session, tenant.id, first.id, salesperson.id, 10)
        b = await assign_quantitative_objective(session, tenant.id, second.id, salesperson.id, 20)
        assert (a.display_order, b.display_order) == (0, 1)

        reordered = await reorder_assignments(session, tenant.id, salesperson.id, [b.id, a.id])
        await session.commit()
        assert [row.id for row in reordered] == [b.id, a.id]
        assert (b.display_order, a.display_order) == (0, 1)

        with pytest.raises(ValidationError):
            await reorder_assignments(session, tenant.id, salesperson.id, [a.id])


@pytest.mark.asyncio
async def test_rejected_salesperson_leaves_no_qualitative_objective() -> None:
    tenant = await create_test_tenant()
    other = await create_test_tenant()
    foreign = await create_test_salesperson(other.id, nombre="Otro")

    async with SessionLocal() as session:
        with pytest.raises(CrossTenantReferenceError):
            await save_qualitative_objective(session, tenant.id, {"titulo": "Visitas", "salesperson_ids": [foreign.id]})
        await session.commit()

    async with SessionLocal() as session:
        assert await objectives_repo.list_qualitative_objectives(session, tenant.id) == []


@pytest.mark.asyncio
async def test_rejected_salesperson_leaves_existing_qualitative_objective_unchanged() -> None:
    tenant = await create_test_tenant()
    other = await create_test_tenant()
    foreign = await create_test_salesperson(other.id, nombre="Otro")
    objective = await create_test_qualitative_objective(tenant.id, "Visitas")

    async with SessionLocal() as session:
        with pytest.raises(CrossTenantReferenceError):
            await save_qualitative_objective(
                session, tenant.id, {"titulo": "Llamadas", "salesperson_ids": [foreign.id]}, objective.id
            )
        await session.commit()

    async with SessionLocal() as session:
        stored = await objectives_repo.get_qualitative_objective(session, tenant.id, objective.id)
    assert stored is not None
    assert stored.titulo == "Visitas"


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "operation",
    [
        "assign_technician_objective",
        "set_qualitative_status",
        "set_qualitative_evidence",
        "record_monthly_progress",
        "reorder_assignments",
    ],
)
async def test_writes_for_soft_deleted_tenant_are_not_found(operation: str) -> None:
    tenant = await create_test_tenant()
    technician = await create_test_technician(tenant.id)
    salesperson = await create_test_salesperson(tenant.id)
    technician_objective = await create_test_technician_objective(tenant.id, technician.id)
    qualitative = await create_test_qualitative_objective(tenant.id)
    quantitative = await create_test_quantitative_objective(tenant.id, "Ventas")
    async with SessionLocal() as session:
        assignment = await assign_quantitative_objective(session, tenant.id, quantitative.id, salesperson.id, 100)
        assert await tenants_repo.soft_delete_tenant(session, tenant.id) is True
        await session.commit()

    calls = {
        "assign_technician_objective": lambda session: assign_technician_objective(
            session, tenant.id, technician_objective.id, technician.id
        ),
        "set_qualitative_status": lambda session: set_qualitative_status(
            session, tenant.id, qualitative.id, "cumplido"
        ),
        "set_qualitative_evidence": lambda session: set_qualitative_evidence(
            session, tenant.id, qualitative.id, "acta.pdf"
        ),
        "record_monthly_progress": lambda session: record_monthly_progress(
            session, tenant.id, assignment.id, 1, 50
        ),
        "reorder_assignments": lambda session: reorder_assignments(
            session, tenant.id, salesperson.id, [assignment.id]
        ),
    }
    async with SessionLocal() as session:
        with pytest.raises(NotFoundError):
            await calls[operation](session)
        await session.commit()

    async with SessionLocal() as session:
        stored = await session.get(type(qualitative), qualitative.id)
    assert stored is not None
    assert stored.estado == "pendiente"
    assert stored.evidencia is None


@pytest.mark.asyncio
async def test_monthly_progress_rejects_nan() -> None:
    tenant = await create_test_tenant()
    salesperson = await create_test_salesperson(tenant.id)
    objective = await create_test_quantitative_objective(tenant.id, "Ventas Q1")

    async with SessionLocal() as session:
        assignment = await assign_quantitative_objective(session, tenant.id, objective.id, salesperson.id, 1000)
        await record_monthly_progress(session, tenant.id, assignment.id, 1, 200)
        with pytest.raises(ValidationError):
            await record_monthly_progress(session, tenant.id, assignment.id, 2, float("nan"))
        await session.commit()
        assert assignment.monthly_progress == {"01": 200.0}
        assert assignment.current_value == 200.0
