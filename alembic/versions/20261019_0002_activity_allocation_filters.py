"""Add activity business unit and index activity state for allocation filters."""

from __future__ import annotations

import sqlalchemy as sa

from alembic import op

revision = "20261019_0002"
down_revision = "20261019_0001"
branch_labels = None
depends_on = None


def upgrade() -> None:
    with op.batch_alter_table("activities") as batch_op:
        batch_op.add_column(sa.Column("bu_name", sa.String(), nullable=True))
    op.create_index("ix_activities_bu_name", "activities", ["bu_name"], unique=False)
    op.create_index("ix_activities_state", "activities", ["state"], unique=False)


def downgrade() -> None:
    op.drop_index("ix_activities_state", table_name="activities")
    op.drop_index("ix_activities_bu_name", table_name="activities")
    with op.batch_alter_table("activities") as batch_op:
        batch_op.drop_column("bu_name")
