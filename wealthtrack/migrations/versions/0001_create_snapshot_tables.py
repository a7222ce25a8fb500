"""Monthly investment and net worth snapshot tables."""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op
from sqlalchemy import inspect

revision = "0001_create_snapshot_tables"
down_revision = None
branch_labels = None
depends_on = None


def _has_table(bind, table_name: str) -> bool:
    inspector = inspect(bind)
    return table_name in inspector.get_table_names()


def upgrade() -> None:
    bind = op.get_bind()

    if not _has_table(bind, "investment_snapshot"):
        op.create_table(
            "investment_snapshot",
            sa.Column("id", sa.Integer, primary_key=True),
            sa.Column("user_id", sa.Integer, nullable=False),
            sa.Column("investment_id", sa.Integer, nullable=False),
            sa.Column("year_month", sa.String(length=7), nullable=False),
            sa.Column("investment_type", sa.String(length=32), nullable=False),
            sa.Column("value_minor", sa.BigInteger, nullable=False),
            sa.Column("invested_minor", sa.BigInteger, nullable=False, server_default="0"),
            sa.Column("computed_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("CURRENT_TIMESTAMP")),
            sa.UniqueConstraint("user_id", "investment_id", "year_month", name="uq_investment_snapshot_key"),
            sa.Index("ix_investment_snapshot_user_month", "user_id", "year_month"),
        )

    if not _has_table(bind, "net_worth_snapshot"):
        op.create_table(
            "net_worth_snapshot",
            sa.Column("id", sa.Integer, primary_key=True),
            sa.Column("user_id", sa.Integer, nullable=False),
            sa.Column("year_month", sa.String(length=7), nullable=False),
            sa.Column("total_minor", sa.BigInteger, nullable=False),
            sa.Column("total_assets_minor", sa.BigInteger, nullable=False, server_default="0"),
            sa.Column("total_liabilities_minor", sa.BigInteger, nullable=False, server_default="0"),
            sa.Column("total_invested_minor", sa.BigInteger, nullable=False, server_default="0"),
            sa.Column("breakdown", sa.JSON, nullable=False),
            sa.Column("computed_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("CURRENT_TIMESTAMP")),
            sa.UniqueConstraint("user_id", "year_month", name="uq_net_worth_snapshot_key"),
            sa.Index("ix_net_worth_snapshot_user_id", "user_id"),
        )


def downgrade() -> None:
    op.drop_table("net_worth_snapshot")
    op.drop_table("investment_snapshot")
