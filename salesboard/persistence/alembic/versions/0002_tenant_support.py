"""add tenants and tenant scoping

Revision ID: 0002_tenant_support
Revises: 0001_init
Create Date: 2026-10-03 10:30:00.000000
"""
from __future__ import annotations

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


revision = "0002_tenant_support"
down_revision = "0001_init"
branch_labels = None
depends_on = None

ENUMS: dict[str, tuple[str, ...]] = {
    "tenant_plan": ("free", "basic", "premium"),
    "tenant_status": ("active", "suspended", "cancelled"),
}

# Parents before children; existing rows keep a NULL tenant until the backfill runs.
SCOPED_TABLES = (
    "salespersons",
    "technicians",
    "services",
    "clients",
    "qualitative_objectives",
    "quantitative_objectives",
    "client_services",
    "salesperson_objectives",
    "salesperson_quantitative_objectives",
    "technician_objectives",
)


def _enum(name: str) -> sa.types.TypeEngine:
    values = ENUMS[name]
    return sa.Enum(*values, name=name).with_variant(
        postgresql.ENUM(*values, name=name, create_type=False), "postgresql"
    )


def upgrade() -> None:
    bind = op.get_bind()
    for name, values in ENUMS.items():
        sa.Enum(*values, name=name).create(bind, checkfirst=True)

    op.create_table(
        "tenants",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("domain", sa.String(), nullable=True),
        sa.Column("plan", _enum("tenant_plan"), nullable=False, server_default="free"),
        sa.Column("status", _enum("tenant_status"), nullable=False, server_default="active"),
        sa.Column("max_users", sa.Integer(), nullable=False, server_default="5"),
        sa.Column("max_clients", sa.Integer(), nullable=False, server_default="50"),
        sa.Column("features", sa.JSON().with_variant(postgresql.JSONB(), "postgresql"), nullable=True),
        sa.Column("settings", sa.JSON().with_variant(postgresql.JSONB(), "postgresql"), nullable=True),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.UniqueConstraint("name", name="uq_tenants_name"),
        sa.UniqueConstraint("domain", name="uq_tenants_domain"),
    )

    for table in SCOPED_TABLES:
        with op.batch_alter_table(table) as batch_op:
            batch_op.add_column(sa.Column("tenant_id", sa.Uuid(), nullable=True))
            batch_op.create_foreign_key(f"fk_{table}_tenant_id", "tenants", ["tenant_id"], ["id"], ondelete="CASCADE")
            batch_op.create_index(f"ix_{table}_tenant_id", ["tenant_id"])

    # Global uniqueness becomes per-tenant uniqueness.
    with op.batch_alter_table("salespersons") as batch_op:
        batch_op.drop_constraint("uq_salespersons_email", type_="unique")
        batch_op.create_unique_constraint("uq_salespersons_tenant_email", ["tenant_id", "email"])
    with op.batch_alter_table("services") as batch_op:
        batch_op.drop_constraint("uq_services_nombre", type_="unique")
        batch_op.create_unique_constraint("uq_services_tenant_nombre", ["tenant_id", "nombre"])
    op.create_index("ix_quantitative_objectives_tenant_name", "quantitative_objectives", ["tenant_id", "name"])


def downgrade() -> None:
    op.drop_index("ix_quantitative_objectives_tenant_name", table_name="quantitative_objectives")
    with op.batch_alter_table("services") as batch_op:
        batch_op.drop_constraint("uq_services_tenant_nombre", type_="unique")
        batch_op.create_unique_constraint("uq_services_nombre", ["nombre"])
    with op.batch_alter_table("salespersons") as batch_op:
        batch_op.drop_constraint("uq_salespersons_tenant_email", type_="unique")
        batch_op.create_unique_constraint("uq_salespersons_email", ["email"])

    for table in reversed(SCOPED_TABLES):
        with op.batch_alter_table(table) as batch_op:
            batch_op.drop_index(f"ix_{table}_tenant_id")
            batch_op.drop_constraint(f"fk_{table}_tenant_id", type_="foreignkey")
            batch_op.drop_column("tenant_id")

    op.drop_table("tenants")
    bind = op.get_bind()
    for name, values in ENUMS.items():
        sa.Enum(*values, name=name).drop(bind, checkfirst=True)
