from __future__ import annotations

from uuid import uuid4

import pytest
from sqlalchemy import func, select

from salesboard.core.errors import NotFoundError, ReferentialConflictError
from salesboard.domain.models import (
    Client,
    ClientService,
    QuantitativeObjective,
    Salesperson,
    SalespersonObjective,
    SalespersonQuantitativeObjective,
    Service,
    Technician,
    TechnicianObjective,
)
from salesboard.persistence.db import SessionLocal
from salesboard.services.repair import delete_entity, remove_salesperson_assignments, sweep_orphaned_junctions
from salesboard.tests.utils.factories import (
    assign_test_qualitative,
    assign_test_quantitative,
    create_test_client,
    create_test_client_service,
    create_test_qualitative_objective,
    create_test_quantitative_objective,
    create_test_salesperson,
    create_test_service,
    create_test_technician,
    create_test_technician_objective,
    create_test_tenant,
    delete_without_foreign_keys,
)


async def _count(model: type) -> int:
    async with SessionLocal() as session:
        return int((await session.execute(select(func.count()).select_from(model))).scalar_one())


@pytest.mark.asyncio
async def test_orphaned_assignments_are_swept() -> None:
    tenant = await create_test_tenant()
    salesperson = await create_test_salesperson(tenant.id)
    kept = await create_test_quantitative_objective(tenant.id, "Ventas")
    dropped = await create_test_quantitative_objective(tenant.id, "Margen")
    await assign_test_quantitative(tenant.id, salesperson.id, kept.id)
    await assign_test_quantitative(tenant.id, salesperson.id, dropped.id)
    await delete_without_foreign_keys(QuantitativeObjective, dropped.id)

    async with SessionLocal() as session:
        preview = await sweep_orphaned_junctions(session, dry_run=True)
    assert preview.found["salesperson_quantitative_objective.objective"] == 1
    assert await _count(SalespersonQuantitativeObjective) == 2

    async with SessionLocal() as session:
        summary = await sweep_orphaned_junctions(session)
    assert summary.deleted["salesperson_quantitative_objective.objective"] == 1
    assert summary.soft_failures == ()
    assert await _count(SalespersonQuantitativeObjective) == 1

    async with SessionLocal() as session:
        again = await sweep_orphaned_junctions(session)
    assert sum(again.deleted.values()) == 0


@pytest.mark.asyncio
async def test_orphaned_client_services_are_swept() -> None:
    tenant = await create_test_tenant()
    client = await create_test_client(tenant.id)
    service = await create_test_service(tenant.id, "Backup")
    await create_test_client_service(tenant.id, client.id, service.id)
    await delete_without_foreign_keys(Client, client.id)

    async with SessionLocal() as session:
        summary = await sweep_orphaned_junctions(session, tenant_id=tenant.id)

    assert summary.deleted["client_service.client"] == 1
    assert await _count(ClientService) == 0


@pytest.mark.asyncio
async def test_remove_salesperson_assignments_clears_both_kinds() -> None:
    tenant = await create_test_tenant()
    salesperson = await create_test_salesperson(tenant.id)
    other = await create_test_salesperson(tenant.id, nombre="Otro")
    quantitative = await create_test_quantitative_objective(tenant.id, "Ventas")
    qualitative = await create_test_qualitative_objective(tenant.id)
    await assign_test_quantitative(tenant.id, salesperson.id, quantitative.id)
    await assign_test_quantitative(tenant.id, other.id, quantitative.id)
    await assign_test_qualitative(tenant.id, salesperson.id, qualitative.id)

    async with SessionLocal() as session:
        summary = await remove_salesperson_assignments(session, salesperson.id)

    assert summary.counts == {"salesperson_quantitative_objectives": 1, "salesperson_objectives": 1}
    assert await _count(SalespersonQuantitativeObjective) == 1
    assert await _count(SalespersonObjective) == 0


@pytest.mark.asyncio
async def test_remove_assignments_for_unknown_salesperson_is_not_found() -> None:
    async with SessionLocal() as session:
        with pytest.raises(NotFoundError):
            await remove_salesperson_assignments(session, uuid4())


@pytest.mark.asyncio
async def test_remove_assignments_respects_tenant_scope() -> None:
    tenant = await create_test_tenant()
    other = await create_test_tenant()
    salesperson = await create_test_salesperson(other.id)

    async with SessionLocal() as session:
        with pytest.raises(NotFoundError):
            await remove_salesperson_assignments(session, salesperson.id, tenant_id=tenant.id)


@pytest.mark.asyncio
async def test_salesperson_with_clients_cannot_be_deleted() -> None:
    tenant = await create_test_tenant()
    salesperson = await create_test_salesperson(tenant.id)
    await create_test_client(tenant.id, vendedor_id=salesperson.id)

    async with SessionLocal() as session:
        with pytest.raises(ReferentialConflictError) as exc_info:
            await delete_entity(session, tenant.id, Salesperson, salesperson.id)
        await session.rollback()

    assert exc_info.value.details["association"] == "client.vendedor"
    assert await _count(Salesperson) == 1


@pytest.mark.asyncio
async def test_deleting_salesperson_cascades_assignments() -> None:
    tenant = await create_test_tenant()
    salesperson = await create_test_salesperson(tenant.id)
    objective = await create_test_quantitative_objective(tenant.id, "Ventas")
    await assign_test_quantitative(tenant.id, salesperson.id, objective.id)

    async with SessionLocal() as session:
        affected = await delete_entity(session, tenant.id, Salesperson, salesperson.id)
        await session.commit()

    assert affected["salesperson_quantitative_objective.salesperson"] == 1
    assert await _count(SalespersonQuantitativeObjective) == 0
    assert await _count(QuantitativeObjective) == 1


@pytest.mark.asyncio
async def test_deleting_technician_clears_clients_and_removes_objectives() -> None:
    tenant = await create_test_tenant()
    technician = await create_test_technician(tenant.id)
    client = await create_test_client(tenant.id, tecnico_id=technician.id)
    await create_test_technician_objective(tenant.id, technician.id, weight=50)

    async with SessionLocal() as session:
        await delete_entity(session, tenant.id, Technician, technician.id)
        await session.commit()

    async with SessionLocal() as session:
        stored = await session.get(Client, client.id)
        assert stored is not None
        assert stored.tecnico_id is None
    assert await _count(TechnicianObjective) == 0


@pytest.mark.asyncio
async def test_delete_of_foreign_entity_is_not_found() -> None:
    tenant = await create_test_tenant()
    other = await create_test_tenant()
    service = await create_test_service(other.id, "Backup")

    async with SessionLocal() as session:
        with pytest.raises(NotFoundError):
            await delete_entity(session, tenant.id, Service, service.id)
