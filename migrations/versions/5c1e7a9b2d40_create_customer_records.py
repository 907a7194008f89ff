"""create customer records

Revision ID: 5c1e7a9b2d40
Revises:
Create Date: 2026-10-19

"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy import inspect


# revision identifiers, used by Alembic.
revision: str = "5c1e7a9b2d40"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    bind = op.get_bind()
    insp = inspect(bind)
    existing_tables = set(insp.get_table_names())

    def _has_index(table: str, name: str) -> bool:
        return any(ix.get("name") == name for ix in inspect(op.get_bind()).get_indexes(table))

    if "customer_records" not in existing_tables:
        op.create_table(
            "customer_records",
            sa.Column("pk", sa.Integer(), primary_key=True, autoincrement=True, nullable=False),
            sa.Column("id", sa.String(length=32), nullable=False),
            sa.Column("data_json", sa.Text(), nullable=False, server_default="{}"),
            sa.Column(
                "created_at",
                sa.DateTime(timezone=False),
                nullable=False,
                server_default=sa.func.current_timestamp(),
            ),
            sa.Column(
                "updated_at",
                sa.DateTime(timezone=False),
                nullable=False,
                server_default=sa.func.current_timestamp(),
            ),
            sa.UniqueConstraint("id", name="uq_customer_records_id"),
        )

    if not _has_index("customer_records", "idx_customer_records_created_at"):
        op.create_index("idx_customer_records_created_at", "customer_records", ["created_at"])


def downgrade() -> None:
    op.drop_index("idx_customer_records_created_at", table_name="customer_records")
    op.drop_table("customer_records")
