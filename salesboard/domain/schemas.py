from __future__ import annotations

from datetime import date, datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, Field, model_validator
from pydantic import ValidationError as PydanticValidationError

from salesboard.core.errors import ValidationError


class _AssignablePayload(BaseModel):
    # Reject unknown fields so tenant_id cannot be smuggled in the payload.
    model_config = {"extra": "forbid"}

    is_global: bool = False
    salesperson_ids: set[UUID] | None = None

    @model_validator(mode="after")
    def _default_salesperson_ids(self) -> "_AssignablePayload":
        # Non-global objectives always carry an explicit (possibly empty) assignment set.
        if not self.is_global and self.salesperson_ids is None:
            self.salesperson_ids = set()
        return self


class TechnicianObjectivePayload(_AssignablePayload):
    technician_id: UUID | None = None
    text: str | None = None
    criteria: str | None = None
    status: str = "pending"
    weight: float | None = 0
    completion_date: datetime | None = None
    due_date: date | None = None
    evidence: str | None = None


class QualitativeObjectivePayload(_AssignablePayload):
    titulo: str
    descripcion: str | None = None
    estado: str = "pendiente"
    prioridad: str | None = None
    fecha_limite: date | None = None
    peso: float | None = None
    evidencia: str | None = None


class QuantitativeObjectivePayload(BaseModel):
    model_config = {"extra": "forbid"}

    name: str
    description: str | None = None
    type: str = "number"
    company_target: float = 0
    minimum_acceptable: float | None = None
    weight: float | None = None
    start_date: date | None = None
    end_date: date | None = None
    status: str = "pending"
    is_global: bool = False


class ServiceEntry(BaseModel):
    servicio: str
    categoria: str | None = None
    nota: str | None = None


class ClientServiceRecord(BaseModel):
    cliente: str
    servicios: list[ServiceEntry] = Field(default_factory=list)


def parse_payload(model: type[BaseModel], data: dict[str, Any]) -> Any:
    # Surface schema problems through the domain taxonomy instead of pydantic's.
    try:
        return model.model_validate(data)
    except PydanticValidationError as exc:
        first = exc.errors()[0] if exc.errors() else {}
        location = ".".join(str(part) for part in first.get("loc", ()))
        message = first.get("msg", "invalid payload")
        raise ValidationError(f"{location}: {message}" if location else message) from exc
