"""add display order to quantitative assignments

Revision ID: 0003_assignment_display_order
Revises: 0002_tenant_support
Create Date: 2026-10-06 15:45:00.000000
"""
from __future__ import annotations

from alembic import op
import sqlalchemy as sa


revision = "0003_assignment_display_order"
down_revision = "0002_tenant_support"
branch_labels = None
depends_on = None


def upgrade() -> None:
    # Existing assignments start at 0; the write API appends after the current maximum.
    with op.batch_alter_table("salesperson_quantitative_objectives") as batch_op:
        batch_op.add_column(sa.Column("display_order", sa.Integer(), nullable=False, server_default="0"))
        batch_op.create_index("ix_sqo_salesperson_display_order", ["salesperson_id", "display_order"])


def downgrade() -> None:
    with op.batch_alter_table("salesperson_quantitative_objectives") as batch_op:
        batch_op.drop_index("ix_sqo_salesperson_display_order")
        batch_op.drop_column("display_order")
