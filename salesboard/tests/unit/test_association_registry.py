from __future__ import annotations

import pytest

from salesboard.core.errors import NotFoundError, error_payload
from salesboard.domain.associations import (
    get_association,
    incoming,
    junction_associations,
    junction_models,
    resolve,
)
from salesboard.domain.models import (
    Client,
    ClientService,
    Salesperson,
    SalespersonObjective,
    SalespersonQuantitativeObjective,
)
from salesboard.persistence.db import SessionLocal
from salesboard.persistence.repos.tenants import get_or_create_tenant_by_name
from salesboard.tests.utils.factories import create_test_client, create_test_salesperson, create_test_tenant


def test_junction_sides_cascade() -> None:
    assert junction_models() == [ClientService, SalespersonObjective, SalespersonQuantitativeObjective]
    assert all(association.on_delete == "cascade" for association in junction_associations())


def test_incoming_edges_drive_delete_policy() -> None:
    policies = {association.name: association.on_delete for association in incoming(Salesperson)}
    assert policies == {
        "client.vendedor": "restrict",
        "salesperson_objective.salesperson": "cascade",
        "salesperson_quantitative_objective.salesperson": "cascade",
    }


def test_unknown_association_name_raises() -> None:
    with pytest.raises(KeyError):
        get_association("client.nowhere")


@pytest.mark.asyncio
async def test_resolve_follows_edge_within_tenant() -> None:
    tenant = await create_test_tenant()
    salesperson = await create_test_salesperson(tenant.id)
    client = await create_test_client(tenant.id, vendedor_id=salesperson.id)

    async with SessionLocal() as session:
        stored = await session.get(Client, client.id)
        target = await resolve(session, stored, "client.vendedor")
        assert target.id == salesperson.id
        assert await resolve(session, stored, "client.tecnico") is None
        with pytest.raises(TypeError):
            await resolve(session, stored, "client_service.client")


@pytest.mark.asyncio
async def test_get_or_create_tenant_is_idempotent() -> None:
    async with SessionLocal() as session:
        first, created = await get_or_create_tenant_by_name(session, "Default")
        await session.commit()
        again, created_again = await get_or_create_tenant_by_name(session, "Default")

    assert created is True
    assert created_again is False
    assert again.id == first.id
    assert first.features["objectives"] is True
    assert first.settings["currency"] == "UYU"


def test_error_payload_carries_code_and_details() -> None:
    payload = error_payload(NotFoundError("Client missing", client_id=7))
    assert payload == {"error": {"code": "NOT_FOUND", "message": "Client missing", "details": {"client_id": "7"}}}
