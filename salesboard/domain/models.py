from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Any
from uuid import UUID, uuid4

from sqlalchemy import (
    JSON,
    Boolean,
    Date,
    DateTime,
    Enum,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    Uuid,
    func,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


# JSONB on Postgres, plain JSON elsewhere so the schema also builds on SQLite.
JsonType = JSON().with_variant(JSONB(), "postgresql")

TENANT_PLANS = ("free", "basic", "premium")
TENANT_STATUSES = ("active", "suspended", "cancelled")
PERSON_STATUSES = ("active", "inactive")
OBJECTIVE_STATUSES = ("pending", "in_progress", "completed", "not_completed")
QUANTITATIVE_TYPES = ("currency", "percentage", "number")

DEFAULT_TENANT_FEATURES: dict[str, bool] = {
    "objectives": True,
    "client_matrix": True,
    "dashboard": True,
    "reports": False,
    "api": False,
    "custom_branding": False,
}
DEFAULT_TENANT_SETTINGS: dict[str, str] = {
    "timezone": "America/Montevideo",
    "currency": "UYU",
    "language": "es",
    "date_format": "DD/MM/YYYY",
}


def _utc_now() -> datetime:
    # Python-side timestamps keep sub-second precision for duplicate tie-breaks.
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    pass


class TimestampMixin:
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utc_now, server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=_utc_now,
        onupdate=_utc_now,
        server_default=func.now(),
        nullable=False,
    )


def tenant_fk() -> Mapped[UUID | None]:
    # Nullable only while rows await the multi-tenant backfill; repos never expose NULL-tenant rows.
    return mapped_column(Uuid, ForeignKey("tenants.id", ondelete="CASCADE"), nullable=True, index=True)


class Tenant(TimestampMixin, Base):
    __tablename__ = "tenants"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    name: Mapped[str] = mapped_column(String, unique=True, nullable=False)
    domain: Mapped[str | None] = mapped_column(String, unique=True, nullable=True)
    plan: Mapped[str] = mapped_column(Enum(*TENANT_PLANS, name="tenant_plan"), default="free", nullable=False)
    status: Mapped[str] = mapped_column(
        Enum(*TENANT_STATUSES, name="tenant_status"), default="active", nullable=False
    )
    max_users: Mapped[int] = mapped_column(Integer, default=5, nullable=False)
    max_clients: Mapped[int] = mapped_column(Integer, default=50, nullable=False)
    features: Mapped[dict[str, Any] | None] = mapped_column(
        JsonType, default=lambda: dict(DEFAULT_TENANT_FEATURES), nullable=True
    )
    settings: Mapped[dict[str, Any] | None] = mapped_column(
        JsonType, default=lambda: dict(DEFAULT_TENANT_SETTINGS), nullable=True
    )
    # Soft delete keeps historical rows attributable; deleted tenants reject new references.
    deleted_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)


class Salesperson(TimestampMixin, Base):
    __tablename__ = "salespersons"
    __table_args__ = (UniqueConstraint("tenant_id", "email", name="uq_salespersons_tenant_email"),)

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    tenant_id: Mapped[UUID | None] = tenant_fk()
    nombre: Mapped[str] = mapped_column(String, nullable=False)
    email: Mapped[str] = mapped_column(String, nullable=False)
    estado: Mapped[str] = mapped_column(
        Enum(*PERSON_STATUSES, name="person_status"), default="active", nullable=False
    )


class Technician(TimestampMixin, Base):
    __tablename__ = "technicians"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    tenant_id: Mapped[UUID | None] = tenant_fk()
    nombre: Mapped[str] = mapped_column(String, nullable=False)
    email: Mapped[str | None] = mapped_column(String, nullable=True)
    telefono: Mapped[str | None] = mapped_column(String, nullable=True)
    especialidad: Mapped[str | None] = mapped_column(String, nullable=True)
    estado: Mapped[str] = mapped_column(
        Enum(*PERSON_STATUSES, name="person_status"), default="active", nullable=False
    )
    notas: Mapped[str | None] = mapped_column(Text, nullable=True)


class Client(TimestampMixin, Base):
    __tablename__ = "clients"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    tenant_id: Mapped[UUID | None] = tenant_fk()
    nombre: Mapped[str] = mapped_column(String, nullable=False)
    # A salesperson with clients cannot be deleted; reassign first.
    vendedor_id: Mapped[UUID | None] = mapped_column(
        Uuid, ForeignKey("salespersons.id", ondelete="RESTRICT"), nullable=True, index=True
    )
    tecnico_id: Mapped[UUID | None] = mapped_column(
        Uuid, ForeignKey("technicians.id", ondelete="SET NULL"), nullable=True, index=True
    )
    contrato_soporte: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    fecha_ultimo_relevamiento: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    link_documento_relevamiento: Mapped[str | None] = mapped_column(String, nullable=True)
    # Structured as [{"action": str, "due_date": "YYYY-MM-DD", "status": str}].
    acciones_pendientes: Mapped[list[dict[str, Any]] | None] = mapped_column(JsonType, nullable=True)


class Service(TimestampMixin, Base):
    __tablename__ = "services"
    __table_args__ = (UniqueConstraint("tenant_id", "nombre", name="uq_services_tenant_nombre"),)

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    tenant_id: Mapped[UUID | None] = tenant_fk()
    nombre: Mapped[str] = mapped_column(String, nullable=False)
    categoria: Mapped[str] = mapped_column(String, nullable=False)
    descripcion: Mapped[str | None] = mapped_column(Text, nullable=True)


class ClientService(TimestampMixin, Base):
    __tablename__ = "client_services"
    __table_args__ = (UniqueConstraint("client_id", "service_id", name="uq_client_services_pair"),)

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    tenant_id: Mapped[UUID | None] = tenant_fk()
    client_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("clients.id", ondelete="CASCADE"), nullable=False, index=True
    )
    service_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("services.id", ondelete="CASCADE"), nullable=False, index=True
    )
    nota: Mapped[str | None] = mapped_column(String(500), nullable=True)
    fecha_asignacion: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utc_now, nullable=False)


class QualitativeObjective(TimestampMixin, Base):
    __tablename__ = "qualitative_objectives"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    tenant_id: Mapped[UUID | None] = tenant_fk()
    titulo: Mapped[str] = mapped_column(String, nullable=False)
    descripcion: Mapped[str | None] = mapped_column(Text, nullable=True)
    # Free-form on purpose: no transition order is enforced for qualitative objectives.
    estado: Mapped[str] = mapped_column(String, default="pendiente", nullable=False)
    prioridad: Mapped[str | None] = mapped_column(String, nullable=True)
    fecha_limite: Mapped[date | None] = mapped_column(Date, nullable=True)
    peso: Mapped[float | None] = mapped_column(Float, nullable=True)
    evidencia: Mapped[str | None] = mapped_column(String, nullable=True)
    is_global: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)


class QuantitativeObjective(TimestampMixin, Base):
    __tablename__ = "quantitative_objectives"
    # Unique by (tenant_id, name) at write time only; legacy duplicates are resolved by repair.
    __table_args__ = (Index("ix_quantitative_objectives_tenant_name", "tenant_id", "name"),)

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    tenant_id: Mapped[UUID | None] = tenant_fk()
    name: Mapped[str] = mapped_column(String, nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    type: Mapped[str] = mapped_column(
        Enum(*QUANTITATIVE_TYPES, name="quantitative_type"), default="number", nullable=False
    )
    company_target: Mapped[float] = mapped_column(Float, default=0, nullable=False)
    minimum_acceptable: Mapped[float | None] = mapped_column(Float, nullable=True)
    weight: Mapped[float | None] = mapped_column(Float, nullable=True)
    start_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    end_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    status: Mapped[str] = mapped_column(
        Enum(*OBJECTIVE_STATUSES, name="objective_status"), default="pending", nullable=False
    )
    is_global: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)


class SalespersonObjective(TimestampMixin, Base):
    __tablename__ = "salesperson_objectives"
    __table_args__ = (
        UniqueConstraint("salesperson_id", "qualitative_objective_id", name="uq_salesperson_objectives_pair"),
    )

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    tenant_id: Mapped[UUID | None] = tenant_fk()
    salesperson_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("salespersons.id", ondelete="CASCADE"), nullable=False, index=True
    )
    qualitative_objective_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("qualitative_objectives.id", ondelete="CASCADE"), nullable=False, index=True
    )


class SalespersonQuantitativeObjective(TimestampMixin, Base):
    __tablename__ = "salesperson_quantitative_objectives"
    __table_args__ = (
        Index("ix_sqo_salesperson_display_order", "salesperson_id", "display_order"),
    )

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    tenant_id: Mapped[UUID | None] = tenant_fk()
    salesperson_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("salespersons.id", ondelete="CASCADE"), nullable=False, index=True
    )
    quantitative_objective_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("quantitative_objectives.id", ondelete="CASCADE"), nullable=False, index=True
    )
    individual_target: Mapped[float] = mapped_column(Float, default=0, nullable=False)
    current_value: Mapped[float] = mapped_column(Float, default=0, nullable=False)
    # Structured as {"01": value, "02": value, ...}; current_value is the sum.
    monthly_progress: Mapped[dict[str, float] | None] = mapped_column(JsonType, default=dict, nullable=True)
    status: Mapped[str] = mapped_column(
        Enum(*OBJECTIVE_STATUSES, name="objective_status"), default="pending", nullable=False
    )
    # Presentation order only; carries no priority semantics.
    display_order: Mapped[int] = mapped_column(Integer, default=0, nullable=False)


class TechnicianObjective(TimestampMixin, Base):
    __tablename__ = "technician_objectives"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    tenant_id: Mapped[UUID | None] = tenant_fk()
    # NULL for global objectives, which apply to every technician of the tenant.
    technician_id: Mapped[UUID | None] = mapped_column(
        Uuid, ForeignKey("technicians.id", ondelete="CASCADE"), nullable=True, index=True
    )
    text: Mapped[str | None] = mapped_column(Text, nullable=True)
    criteria: Mapped[str | None] = mapped_column(Text, nullable=True)
    status: Mapped[str] = mapped_column(
        Enum(*OBJECTIVE_STATUSES, name="technician_objective_status"),
        default="pending",
        nullable=False,
        index=True,
    )
    completion_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    due_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    weight: Mapped[float] = mapped_column(Float, default=0, nullable=False)
    evidence: Mapped[str | None] = mapped_column(String, nullable=True)
    is_global: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False, index=True)
