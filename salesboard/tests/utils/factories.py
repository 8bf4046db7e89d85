from __future__ import annotations

from datetime import datetime
from typing import Any
from uuid import UUID, uuid4

from sqlalchemy import text

from salesboard.domain.models import (
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
    Tenant,
)
from salesboard.persistence.db import SessionLocal


async def create_test_tenant(name: str | None = None, **fields: Any) -> Tenant:
    # Provision an isolated tenant per test so assertions never see foreign rows.
    async with SessionLocal() as session:
        tenant = Tenant(name=name or f"tenant-{uuid4().hex[:8]}", **fields)
        session.add(tenant)
        await session.commit()
        return tenant


async def create_test_salesperson(tenant_id: UUID | None, nombre: str = "Ana", email: str | None = None) -> Salesperson:
    async with SessionLocal() as session:
        salesperson = Salesperson(
            tenant_id=tenant_id, nombre=nombre, email=email or f"{uuid4().hex[:8]}@example.com"
        )
        session.add(salesperson)
        await session.commit()
        return salesperson


async def create_test_technician(tenant_id: UUID | None, nombre: str = "Tomás") -> Technician:
    async with SessionLocal() as session:
        technician = Technician(tenant_id=tenant_id, nombre=nombre)
        session.add(technician)
        await session.commit()
        return technician


async def create_test_client(tenant_id: UUID | None, nombre: str = "Cliente", **fields: Any) -> Client:
    async with SessionLocal() as session:
        client = Client(tenant_id=tenant_id, nombre=nombre, **fields)
        session.add(client)
        await session.commit()
        return client


async def create_test_service(tenant_id: UUID | None, nombre: str, categoria: str = "Soporte") -> Service:
    async with SessionLocal() as session:
        service = Service(tenant_id=tenant_id, nombre=nombre, categoria=categoria)
        session.add(service)
        await session.commit()
        return service


async def create_test_quantitative_objective(
    tenant_id: UUID | None, name: str, *, created_at: datetime | None = None, **fields: Any
) -> QuantitativeObjective:
    # Bypasses the write API on purpose so tests can seed legacy duplicates.
    async with SessionLocal() as session:
        objective = QuantitativeObjective(tenant_id=tenant_id, name=name, **fields)
        if created_at is not None:
            objective.created_at = created_at
        session.add(objective)
        await session.commit()
        return objective


async def create_test_qualitative_objective(tenant_id: UUID | None, titulo: str = "Visitas") -> QualitativeObjective:
    async with SessionLocal() as session:
        objective = QualitativeObjective(tenant_id=tenant_id, titulo=titulo)
        session.add(objective)
        await session.commit()
        return objective


async def assign_test_quantitative(
    tenant_id: UUID | None, salesperson_id: UUID, objective_id: UUID, *, display_order: int = 0
) -> SalespersonQuantitativeObjective:
    async with SessionLocal() as session:
        assignment = SalespersonQuantitativeObjective(
            tenant_id=tenant_id,
            salesperson_id=salesperson_id,
            quantitative_objective_id=objective_id,
            individual_target=100,
            display_order=display_order,
        )
        session.add(assignment)
        await session.commit()
        return assignment


async def assign_test_qualitative(
    tenant_id: UUID | None, salesperson_id: UUID, objective_id: UUID
) -> SalespersonObjective:
    async with SessionLocal() as session:
        assignment = SalespersonObjective(
            tenant_id=tenant_id, salesperson_id=salesperson_id, qualitative_objective_id=objective_id
        )
        session.add(assignment)
        await session.commit()
        return assignment


async def create_test_client_service(tenant_id: UUID | None, client_id: UUID, service_id: UUID) -> ClientService:
    async with SessionLocal() as session:
        row = ClientService(tenant_id=tenant_id, client_id=client_id, service_id=service_id)
        session.add(row)
        await session.commit()
        return row


async def create_test_technician_objective(
    tenant_id: UUID | None, technician_id: UUID | None, *, weight: float = 0, is_global: bool = False
) -> TechnicianObjective:
    async with SessionLocal() as session:
        objective = TechnicianObjective(
            tenant_id=tenant_id, technician_id=technician_id, weight=weight, is_global=is_global
        )
        session.add(objective)
        await session.commit()
        return objective


async def delete_without_foreign_keys(model: type, row_id: UUID) -> None:
    # Simulate a store that never enforced cascades, leaving junction rows behind.
    async with SessionLocal() as session:
        await session.execute(text("PRAGMA foreign_keys=OFF"))
        await session.execute(text(f"DELETE FROM {model.__tablename__} WHERE id = :id"), {"id": row_id.hex})
        await session.commit()
        await session.execute(text("PRAGMA foreign_keys=ON"))
