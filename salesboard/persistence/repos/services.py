from __future__ import annotations

from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from salesboard.core.errors import ValidationError
from salesboard.domain.models import ClientService, Service
from salesboard.persistence.guards import require_tenant_id, tenant_predicate


async def get_service_by_name(session: AsyncSession, tenant_id: UUID | str, nombre: str) -> Service | None:
    result = await session.execute(
        select(Service).where(Service.nombre == nombre, tenant_predicate(Service, tenant_id))
    )
    return result.scalar_one_or_none()


async def list_services(session: AsyncSession, tenant_id: UUID | str) -> list[Service]:
    result = await session.execute(
        select(Service).where(tenant_predicate(Service, tenant_id)).order_by(Service.categoria, Service.nombre)
    )
    return list(result.scalars().all())


async def get_or_create_service(
    session: AsyncSession,
    tenant_id: UUID | str,
    *,
    nombre: str,
    categoria: str,
    descripcion: str | None = None,
) -> tuple[Service, bool]:
    cleaned = (nombre or "").strip()
    if not cleaned:
        raise ValidationError("Service nombre is required")
    existing = await get_service_by_name(session, tenant_id, cleaned)
    if existing is not None:
        return existing, False
    service = Service(
        tenant_id=require_tenant_id(tenant_id),
        nombre=cleaned,
        categoria=categoria,
        descripcion=descripcion,
    )
    session.add(service)
    await session.flush()
    return service, True


async def get_client_service(
    session: AsyncSession, tenant_id: UUID | str, client_id: UUID, service_id: UUID
) -> ClientService | None:
    result = await session.execute(
        select(ClientService).where(
            ClientService.client_id == client_id,
            ClientService.service_id == service_id,
            tenant_predicate(ClientService, tenant_id),
        )
    )
    return result.scalar_one_or_none()


async def get_or_create_client_service(
    session: AsyncSession,
    tenant_id: UUID | str,
    *,
    client_id: UUID,
    service_id: UUID,
    nota: str | None = None,
) -> tuple[ClientService, bool]:
    # (client, service) is the idempotency key; notes on an existing pair are left untouched.
    existing = await get_client_service(session, tenant_id, client_id, service_id)
    if existing is not None:
        return existing, False
    association = ClientService(
        tenant_id=require_tenant_id(tenant_id),
        client_id=client_id,
        service_id=service_id,
        nota=nota,
    )
    session.add(association)
    await session.flush()
    return association, True


async def count_client_services(session: AsyncSession, tenant_id: UUID | str) -> int:
    result = await session.execute(
        select(func.count()).select_from(ClientService).where(tenant_predicate(ClientService, tenant_id))
    )
    return int(result.scalar() or 0)
