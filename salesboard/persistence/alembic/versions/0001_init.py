"""init single-tenant schema

Revision ID: 0001_init
Revises:
Create Date: 2026-10-01 09:00:00.000000
"""
from __future__ import annotations

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


revision = "0001_init"
down_revision = None
branch_labels = None
depends_on = None

ENUMS: dict[str, tuple[str, ...]] = {
    "person_status": ("active", "inactive"),
    "objective_status": ("pending", "in_progress", "completed", "not_completed"),
    "quantitative_type": ("currency", "percentage", "number"),
    "technician_objective_status": ("pending", "in_progress", "completed", "not_completed"),
}


def _enum(name: str) -> sa.types.TypeEngine:
    # Types are created once up front; table DDL must not try to create them again.
    values = ENUMS[name]
    return sa.Enum(*values, name=name).with_variant(
        postgresql.ENUM(*values, name=name, create_type=False), "postgresql"
    )


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    ]


def upgrade() -> None:
    bind = op.get_bind()
    for name, values in ENUMS.items():
        sa.Enum(*values, name=name).create(bind, checkfirst=True)

    op.create_table(
        "salespersons",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("nombre", sa.String(), nullable=False),
        sa.Column("email", sa.String(), nullable=False),
        sa.Column("estado", _enum("person_status"), nullable=False, server_default="active"),
        *_timestamps(),
        sa.UniqueConstraint("email", name="uq_salespersons_email"),
    )

    op.create_table(
        "technicians",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("nombre", sa.String(), nullable=False),
        sa.Column("email", sa.String(), nullable=True),
        sa.Column("telefono", sa.String(), nullable=True),
        sa.Column("especialidad", sa.String(), nullable=True),
        sa.Column("estado", _enum("person_status"), nullable=False, server_default="active"),
        sa.Column("notas", sa.Text(), nullable=True),
        *_timestamps(),
    )

    op.create_table(
        "clients",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("nombre", sa.String(), nullable=False),
        sa.Column("vendedor_id", sa.Uuid(), nullable=True),
        sa.Column("tecnico_id", sa.Uuid(), nullable=True),
        sa.Column("contrato_soporte", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("fecha_ultimo_relevamiento", sa.DateTime(timezone=True), nullable=True),
        sa.Column("link_documento_relevamiento", sa.String(), nullable=True),
        sa.Column("acciones_pendientes", sa.JSON().with_variant(postgresql.JSONB(), "postgresql"), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(["vendedor_id"], ["salespersons.id"], ondelete="RESTRICT"),
        sa.ForeignKeyConstraint(["tecnico_id"], ["technicians.id"], ondelete="SET NULL"),
    )
    op.create_index("ix_clients_vendedor_id", "clients", ["vendedor_id"])
    op.create_index("ix_clients_tecnico_id", "clients", ["tecnico_id"])

    op.create_table(
        "services",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("nombre", sa.String(), nullable=False),
        sa.Column("categoria", sa.String(), nullable=False),
        sa.Column("descripcion", sa.Text(), nullable=True),
        *_timestamps(),
        sa.UniqueConstraint("nombre", name="uq_services_nombre"),
    )

    op.create_table(
        "client_services",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("client_id", sa.Uuid(), nullable=False),
        sa.Column("service_id", sa.Uuid(), nullable=False),
        sa.Column("nota", sa.String(length=500), nullable=True),
        sa.Column("fecha_asignacion", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(["client_id"], ["clients.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["service_id"], ["services.id"], ondelete="CASCADE"),
        sa.UniqueConstraint("client_id", "service_id", name="uq_client_services_pair"),
    )
    op.create_index("ix_client_services_client_id", "client_services", ["client_id"])
    op.create_index("ix_client_services_service_id", "client_services", ["service_id"])

    op.create_table(
        "qualitative_objectives",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("titulo", sa.String(), nullable=False),
        sa.Column("descripcion", sa.Text(), nullable=True),
        sa.Column("estado", sa.String(), nullable=False, server_default="pendiente"),
        sa.Column("prioridad", sa.String(), nullable=True),
        sa.Column("fecha_limite", sa.Date(), nullable=True),
        sa.Column("peso", sa.Float(), nullable=True),
        sa.Column("evidencia", sa.String(), nullable=True),
        sa.Column("is_global", sa.Boolean(), nullable=False, server_default=sa.false()),
        *_timestamps(),
    )

    op.create_table(
        "quantitative_objectives",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("type", _enum("quantitative_type"), nullable=False, server_default="number"),
        sa.Column("company_target", sa.Float(), nullable=False, server_default="0"),
        sa.Column("minimum_acceptable", sa.Float(), nullable=True),
        sa.Column("weight", sa.Float(), nullable=True),
        sa.Column("start_date", sa.Date(), nullable=True),
        sa.Column("end_date", sa.Date(), nullable=True),
        sa.Column("status", _enum("objective_status"), nullable=False, server_default="pending"),
        sa.Column("is_global", sa.Boolean(), nullable=False, server_default=sa.false()),
        *_timestamps(),
    )

    op.create_table(
        "salesperson_objectives",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("salesperson_id", sa.Uuid(), nullable=False),
        sa.Column("qualitative_objective_id", sa.Uuid(), nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(["salesperson_id"], ["salespersons.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["qualitative_objective_id"], ["qualitative_objectives.id"], ondelete="CASCADE"),
        sa.UniqueConstraint("salesperson_id", "qualitative_objective_id", name="uq_salesperson_objectives_pair"),
    )
    op.create_index("ix_salesperson_objectives_salesperson_id", "salesperson_objectives", ["salesperson_id"])
    op.create_index(
        "ix_salesperson_objectives_qualitative_objective_id",
        "salesperson_objectives",
        ["qualitative_objective_id"],
    )

    op.create_table(
        "salesperson_quantitative_objectives",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("salesperson_id", sa.Uuid(), nullable=False),
        sa.Column("quantitative_objective_id", sa.Uuid(), nullable=False),
        sa.Column("individual_target", sa.Float(), nullable=False, server_default="0"),
        sa.Column("current_value", sa.Float(), nullable=False, server_default="0"),
        sa.Column("monthly_progress", sa.JSON().with_variant(postgresql.JSONB(), "postgresql"), nullable=True),
        sa.Column("status", _enum("objective_status"), nullable=False, server_default="pending"),
        *_timestamps(),
        sa.ForeignKeyConstraint(["salesperson_id"], ["salespersons.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["quantitative_objective_id"], ["quantitative_objectives.id"], ondelete="CASCADE"),
    )
    op.create_index(
        "ix_salesperson_quantitative_objectives_salesperson_id",
        "salesperson_quantitative_objectives",
        ["salesperson_id"],
    )
    op.create_index(
        "ix_salesperson_quantitative_objectives_quantitative_objective_id",
        "salesperson_quantitative_objectives",
        ["quantitative_objective_id"],
    )

    op.create_table(
        "technician_objectives",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("technician_id", sa.Uuid(), nullable=True),
        sa.Column("text", sa.Text(), nullable=True),
        sa.Column("criteria", sa.Text(), nullable=True),
        sa.Column("status", _enum("technician_objective_status"), nullable=False, server_default="pending"),
        sa.Column("completion_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("due_date", sa.Date(), nullable=True),
        sa.Column("weight", sa.Float(), nullable=False, server_default="0"),
        sa.Column("evidence", sa.String(), nullable=True),
        sa.Column("is_global", sa.Boolean(), nullable=False, server_default=sa.false()),
        *_timestamps(),
        sa.ForeignKeyConstraint(["technician_id"], ["technicians.id"], ondelete="CASCADE"),
    )
    op.create_index("ix_technician_objectives_technician_id", "technician_objectives", ["technician_id"])
    op.create_index("ix_technician_objectives_status", "technician_objectives", ["status"])
    op.create_index("ix_technician_objectives_is_global", "technician_objectives", ["is_global"])


def downgrade() -> None:
    op.drop_index("ix_technician_objectives_is_global", table_name="technician_objectives")
    op.drop_index("ix_technician_objectives_status", table_name="technician_objectives")
    op.drop_index("ix_technician_objectives_technician_id", table_name="technician_objectives")
    op.drop_table("technician_objectives")
    op.drop_index(
        "ix_salesperson_quantitative_objectives_quantitative_objective_id",
        table_name="salesperson_quantitative_objectives",
    )
    op.drop_index(
        "ix_salesperson_quantitative_objectives_salesperson_id",
        table_name="salesperson_quantitative_objectives",
    )
    op.drop_table("salesperson_quantitative_objectives")
    op.drop_index("ix_salesperson_objectives_qualitative_objective_id", table_name="salesperson_objectives")
    op.drop_index("ix_salesperson_objectives_salesperson_id", table_name="salesperson_objectives")
    op.drop_table("salesperson_objectives")
    op.drop_table("quantitative_objectives")
    op.drop_table("qualitative_objectives")
    op.drop_index("ix_client_services_service_id", table_name="client_services")
    op.drop_index("ix_client_services_client_id", table_name="client_services")
    op.drop_table("client_services")
    op.drop_table("services")
    op.drop_index("ix_clients_tecnico_id", table_name="clients")
    op.drop_index("ix_clients_vendedor_id", table_name="clients")
    op.drop_table("clients")
    op.drop_table("technicians")
    op.drop_table("salespersons")

    bind = op.get_bind()
    for name, values in ENUMS.items():
        sa.Enum(*values, name=name).drop(bind, checkfirst=True)
