"""create domain_events table

Revision ID: 004
Revises: 003
Create Date: 2025-03-05 09:00:00.000000

"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "004"
down_revision: Union[str, None] = "003"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "domain_events",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("type", sa.String(64), nullable=False),
        sa.Column("aggregate_id", sa.Uuid(), nullable=True),
        sa.Column("payload", sa.JSON(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_domain_events_type", "domain_events", ["type"], unique=False)
    op.create_index("ix_domain_events_aggregate_id", "domain_events", ["aggregate_id"], unique=False)
    op.create_index("ix_domain_events_created_at", "domain_events", ["created_at"], unique=False)


def downgrade() -> None:
    op.drop_index("ix_domain_events_created_at", table_name="domain_events")
    op.drop_index("ix_domain_events_aggregate_id", table_name="domain_events")
    op.drop_index("ix_domain_events_type", table_name="domain_events")
    op.drop_table("domain_events")
