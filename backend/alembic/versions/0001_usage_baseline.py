"""Usage log and format counter tables."""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op


# Revision identifiers, used by Alembic.
revision = "0001_usage_baseline"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "usage",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("text", sa.Text(), nullable=False),
        sa.Column("tz", sa.String(length=64), nullable=False),
        sa.Column("epoch", sa.Integer(), nullable=False),
        sa.Column("format", sa.Integer(), nullable=False),
        sa.Column("conf", sa.Float(), nullable=False),
        sa.Column("method", sa.String(length=32), nullable=False),
        sa.Column("ip", sa.String(length=64), nullable=False),
        sa.Column("ts", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("idx_usage_ts", "usage", ["ts"])
    op.create_index("idx_usage_format", "usage", ["format"])
    op.create_index("idx_usage_ip", "usage", ["ip"])

    op.create_table(
        "format_usage",
        sa.Column("code", sa.String(length=1), primary_key=True),
        sa.Column("count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True, server_default=sa.func.now()),
    )


def downgrade() -> None:
    op.drop_table("format_usage")
    op.drop_index("idx_usage_ip", table_name="usage")
    op.drop_index("idx_usage_format", table_name="usage")
    op.drop_index("idx_usage_ts", table_name="usage")
    op.drop_table("usage")
