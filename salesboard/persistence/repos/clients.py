from __future__ import annotations

from datetime import date, datetime
from typing import Any
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from salesboard.core.errors import NotFoundError, ValidationError
from salesboard.domain.models import Client
from salesboard.persistence.guards import tenant_predicate
from salesboard.services.tenancy import (
    check_client_quota,
    ensure_same_tenant,
    require_active_tenant,
    validate_references,
)


_UPDATABLE_FIELDS = {
    "nombre",
    "vendedor_id",
    "tecnico_id",
    "contrato_soporte",
    "fecha_ultimo_relevamiento",
    "link_documento_relevamiento",
    "acciones_pendientes",
}

_REFERENCE_FIELDS = {"vendedor_id": "client.vendedor", "tecnico_id": "client.tecnico"}


def normalize_pending_actions(actions: list[dict[str, Any]] | None) -> list[dict[str, Any]] | None:
    # Keep the stored shape fixed at {action, due_date, status}.
    if actions is None:
        return None
    normalized: list[dict[str, Any]] = []
    for item in actions:
        action = str(item.get("action") or "").strip()
        if not action:
            raise ValidationError("Pending action requires a non-empty 'action'")
        due_date = item.get("due_date")
        if isinstance(due_date, (date, datetime)):
            due_date = due_date.isoformat()
        normalized.append({"action": action, "due_date": due_date, "status": item.get("status") or "pending"})
    return normalized


async def get_client(session: AsyncSession, tenant_id: UUID | str, client_id: UUID) -> Client | None:
    # Return None for tenant mismatch to keep not-found semantics.
    result = await session.execute(
        select(Client).where(Client.id == client_id, tenant_predicate(Client, tenant_id))
    )
    return result.scalar_one_or_none()


async def get_client_by_name(session: AsyncSession, tenant_id: UUID | str, nombre: str) -> Client | None:
    result = await session.execute(
        select(Client)
        .where(Client.nombre == nombre, tenant_predicate(Client, tenant_id))
        .order_by(Client.created_at, Client.id)
        .limit(1)
    )
    return result.scalar_one_or_none()


async def list_clients(session: AsyncSession, tenant_id: UUID | str) -> list[Client]:
    result = await session.execute(
        select(Client).where(tenant_predicate(Client, tenant_id)).order_by(Client.nombre, Client.id)
    )
    return list(result.scalars().all())


async def create_client(
    session: AsyncSession,
    tenant_id: UUID | str,
    *,
    nombre: str,
    vendedor_id: UUID | None = None,
    tecnico_id: UUID | None = None,
    contrato_soporte: bool = False,
    fecha_ultimo_relevamiento: datetime | None = None,
    link_documento_relevamiento: str | None = None,
    acciones_pendientes: list[dict[str, Any]] | None = None,
) -> Client:
    if not (nombre or "").strip():
        raise ValidationError("Client nombre is required")
    tenant = await require_active_tenant(session, tenant_id)
    await check_client_quota(session, tenant)
    client = Client(
        tenant_id=tenant.id,
        nombre=nombre.strip(),
        vendedor_id=vendedor_id,
        tecnico_id=tecnico_id,
        contrato_soporte=contrato_soporte,
        fecha_ultimo_relevamiento=fecha_ultimo_relevamiento,
        link_documento_relevamiento=link_documento_relevamiento,
        acciones_pendientes=normalize_pending_actions(acciones_pendientes),
    )
    # Reject cross-tenant vendedor/tecnico before anything reaches the database.
    await validate_references(session, client)
    session.add(client)
    await session.flush()
    return client


async def update_client(
    session: AsyncSession, tenant_id: UUID | str, client_id: UUID, **fields: Any
) -> Client:
    unknown = set(fields) - _UPDATABLE_FIELDS
    if unknown:
        raise ValidationError(f"Unknown client fields: {sorted(unknown)}")
    tenant = await require_active_tenant(session, tenant_id)
    client = await get_client(session, tenant.id, client_id)
    if client is None:
        raise NotFoundError(f"Client {client_id} not found", client_id=client_id)
    if "nombre" in fields and not (fields["nombre"] or "").strip():
        raise ValidationError("Client nombre is required")
    if "acciones_pendientes" in fields:
        fields["acciones_pendientes"] = normalize_pending_actions(fields["acciones_pendientes"])
    # Check incoming references before touching the row so a rejected value never autoflushes.
    for field, association in _REFERENCE_FIELDS.items():
        if fields.get(field) is not None:
            await ensure_same_tenant(session, client.tenant_id, association, fields[field])
    for key, value in fields.items():
        setattr(client, key, value)
    await session.flush()
    return client
