"""Create customer and financial tables

Revision ID: 3f2a9c71d0b4
Revises:
Create Date: 2026-10-19 10:12:41.208113

"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "3f2a9c71d0b4"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "personal_users",
        sa.Column("id", sa.Integer(), autoincrement=False, nullable=False),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_personal_users_id", "personal_users", ["id"])

    op.create_table(
        "companies",
        sa.Column("id", sa.Text(), nullable=False),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_companies_id", "companies", ["id"])

    op.create_table(
        "personal_transactions",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("type", sa.Text(), nullable=False),
        sa.Column("amount", sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column("category", sa.Text(), nullable=True),
        sa.Column("description", sa.Text(), nullable=True),
        sa.ForeignKeyConstraint(["user_id"], ["personal_users.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_personal_transactions_id", "personal_transactions", ["id"])
    op.create_index("ix_personal_transactions_user_id", "personal_transactions", ["user_id"])
    op.create_index("ix_personal_transactions_date", "personal_transactions", ["date"])

    op.create_table(
        "company_monthly",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("company_id", sa.Text(), nullable=False),
        sa.Column("month", sa.Date(), nullable=False),
        sa.Column("revenue", sa.Numeric(precision=14, scale=2), nullable=False),
        sa.Column("infrastructure", sa.Numeric(precision=14, scale=2), nullable=False),
        sa.Column("personnel", sa.Numeric(precision=14, scale=2), nullable=False),
        sa.Column("marketing", sa.Numeric(precision=14, scale=2), nullable=False),
        sa.Column("services", sa.Numeric(precision=14, scale=2), nullable=False),
        sa.Column("costs", sa.Numeric(precision=14, scale=2), nullable=False),
        sa.ForeignKeyConstraint(["company_id"], ["companies.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("company_id", "month", name="uq_company_month"),
    )
    op.create_index("ix_company_monthly_id", "company_monthly", ["id"])
    op.create_index("ix_company_monthly_company_id", "company_monthly", ["company_id"])


def downgrade() -> None:
    op.drop_table("company_monthly")
    op.drop_table("personal_transactions")
    op.drop_table("companies")
    op.drop_table("personal_users")
