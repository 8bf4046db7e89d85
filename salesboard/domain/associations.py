from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Literal

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from salesboard.domain.models import (
    Base,
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
)


OnDelete = Literal["cascade", "restrict", "set_null"]


@dataclass(frozen=True)
class Association:
    # One foreign-key edge, named from the source side ("client.vendedor").
    name: str
    source: type[Base]
    fk_attr: str
    target: type[Base]
    on_delete: OnDelete
    junction: bool = False

    @property
    def fk_column(self) -> Any:
        return getattr(self.source, self.fk_attr)


ASSOCIATIONS: tuple[Association, ...] = (
    Association("client.vendedor", Client, "vendedor_id", Salesperson, "restrict"),
    Association("client.tecnico", Client, "tecnico_id", Technician, "set_null"),
    Association("client_service.client", ClientService, "client_id", Client, "cascade", junction=True),
    Association("client_service.service", ClientService, "service_id", Service, "cascade", junction=True),
    Association(
        "salesperson_objective.salesperson",
        SalespersonObjective,
        "salesperson_id",
        Salesperson,
        "cascade",
        junction=True,
    ),
    Association(
        "salesperson_objective.objective",
        SalespersonObjective,
        "qualitative_objective_id",
        QualitativeObjective,
        "cascade",
        junction=True,
    ),
    Association(
        "salesperson_quantitative_objective.salesperson",
        SalespersonQuantitativeObjective,
        "salesperson_id",
        Salesperson,
        "cascade",
        junction=True,
    ),
    Association(
        "salesperson_quantitative_objective.objective",
        SalespersonQuantitativeObjective,
        "quantitative_objective_id",
        QuantitativeObjective,
        "cascade",
        junction=True,
    ),
    Association("technician_objective.technician", TechnicianObjective, "technician_id", Technician, "cascade"),
)

_BY_NAME = {association.name: association for association in ASSOCIATIONS}


def get_association(name: str) -> Association:
    try:
        return _BY_NAME[name]
    except KeyError as exc:
        raise KeyError(f"Unknown association: {name}") from exc


def outgoing(model: type[Base]) -> list[Association]:
    # Edges where model holds the foreign key.
    return [association for association in ASSOCIATIONS if association.source is model]


def incoming(model: type[Base]) -> list[Association]:
    # Edges pointing at model; used to decide whether a delete cascades or is blocked.
    return [association for association in ASSOCIATIONS if association.target is model]


def junction_associations() -> list[Association]:
    return [association for association in ASSOCIATIONS if association.junction]


def junction_models() -> list[type[Base]]:
    seen: list[type[Base]] = []
    for association in junction_associations():
        if association.source not in seen:
            seen.append(association.source)
    return seen


async def resolve(session: AsyncSession, entity: Base, name: str) -> Base | None:
    # Follow a named edge with an FK lookup scoped to the entity's own tenant.
    association = get_association(name)
    if not isinstance(entity, association.source):
        raise TypeError(f"{name} does not start at {type(entity).__name__}")
    target_id = getattr(entity, association.fk_attr)
    if target_id is None:
        return None
    target = association.target
    result = await session.execute(
        select(target).where(target.id == target_id, target.tenant_id == entity.tenant_id)
    )
    return result.scalar_one_or_none()
