"""Initial task store: users, farmers, activities, call tasks and their history."""

from __future__ import annotations

import sqlalchemy as sa

from alembic import op

revision = "20261019_0001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("user_id", sa.String(), nullable=False),
        sa.Column("display_name", sa.String(), nullable=False),
        sa.Column("email", sa.String(), nullable=False, server_default=""),
        sa.Column("role", sa.String(), nullable=False),
        sa.Column("team_lead_id", sa.String(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("1")),
        sa.Column("language_capabilities_json", sa.Text(), nullable=False, server_default="[]"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["team_lead_id"], ["users.user_id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("user_id"),
    )
    op.create_index("ix_users_display_name", "users", ["display_name"], unique=False)
    op.create_index("ix_users_role", "users", ["role"], unique=False)
    op.create_index("ix_users_team_lead_id", "users", ["team_lead_id"], unique=False)

    op.create_table(
        "farmers",
        sa.Column("farmer_id", sa.String(), nullable=False),
        sa.Column("name", sa.String(), nullable=True),
        sa.Column("mobile_number", sa.String(), nullable=True),
        sa.Column("location", sa.String(), nullable=True),
        sa.Column("preferred_language", sa.String(), nullable=True),
        sa.Column("territory", sa.String(), nullable=True),
        sa.Column("photo_url", sa.String(), nullable=True),
        sa.PrimaryKeyConstraint("farmer_id"),
    )
    op.create_index("ix_farmers_mobile_number", "farmers", ["mobile_number"], unique=False)
    op.create_index(
        "ix_farmers_preferred_language",
        "farmers",
        ["preferred_language"],
        unique=False,
    )
    op.create_index("ix_farmers_territory", "farmers", ["territory"], unique=False)

    op.create_table(
        "activities",
        sa.Column("activity_id", sa.String(), nullable=False),
        sa.Column("activity_type", sa.String(), nullable=True),
        sa.Column("activity_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("officer_name", sa.String(), nullable=True),
        sa.Column("tm_name", sa.String(), nullable=True),
        sa.Column("location", sa.String(), nullable=True),
        sa.Column("territory", sa.String(), nullable=True),
        sa.Column("state", sa.String(), nullable=True),
        sa.Column("crops_json", sa.Text(), nullable=True),
        sa.Column("products_json", sa.Text(), nullable=True),
        sa.PrimaryKeyConstraint("activity_id"),
    )
    op.create_index("ix_activities_territory", "activities", ["territory"], unique=False)

    op.create_table(
        "call_tasks",
        sa.Column("task_id", sa.String(), nullable=False),
        sa.Column("farmer_id", sa.String(), nullable=False),
        sa.Column("activity_id", sa.String(), nullable=False),
        sa.Column("status", sa.String(), nullable=False),
        sa.Column("assigned_agent_id", sa.String(), nullable=True),
        sa.Column("scheduled_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("call_started_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("retry_count", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("call_log_json", sa.Text(), nullable=True),
        sa.Column("parent_task_id", sa.String(), nullable=True),
        sa.Column("callback_number", sa.Integer(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint(
            "(status = 'unassigned') = (assigned_agent_id IS NULL)",
            name="ck_call_tasks_unassigned_has_no_agent",
        ),
        sa.ForeignKeyConstraint(["farmer_id"], ["farmers.farmer_id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["activity_id"], ["activities.activity_id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["assigned_agent_id"], ["users.user_id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("task_id"),
        sa.UniqueConstraint("activity_id", "farmer_id", name="uq_call_tasks_activity_farmer"),
    )
    op.create_index("ix_call_tasks_status", "call_tasks", ["status"], unique=False)
    op.create_index("ix_call_tasks_parent_task_id", "call_tasks", ["parent_task_id"], unique=False)
    op.create_index(
        "idx_call_tasks_status_schedule",
        "call_tasks",
        ["status", "scheduled_date", "created_at"],
        unique=False,
    )
    op.create_index(
        "idx_call_tasks_agent_queue",
        "call_tasks",
        ["assigned_agent_id", "status", "scheduled_date"],
        unique=False,
    )

    op.create_table(
        "call_task_history",
        sa.Column("history_id", sa.Integer(), nullable=False),
        sa.Column("task_id", sa.String(), nullable=False),
        sa.Column("status", sa.String(), nullable=False),
        sa.Column("notes", sa.String(), nullable=False, server_default=""),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["task_id"], ["call_tasks.task_id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("history_id"),
    )
    op.create_index(
        "ix_call_task_history_task_id",
        "call_task_history",
        ["task_id"],
        unique=False,
    )


def downgrade() -> None:
    op.drop_index("ix_call_task_history_task_id", table_name="call_task_history")
    op.drop_table("call_task_history")
    op.drop_index("idx_call_tasks_agent_queue", table_name="call_tasks")
    op.drop_index("idx_call_tasks_status_schedule", table_name="call_tasks")
    op.drop_index("ix_call_tasks_parent_task_id", table_name="call_tasks")
    op.drop_index("ix_call_tasks_status", table_name="call_tasks")
    op.drop_table("call_tasks")
    op.drop_index("ix_activities_territory", table_name="activities")
    op.drop_table("activities")
    op.drop_index("ix_farmers_territory", table_name="farmers")
    op.drop_index("ix_farmers_preferred_language", table_name="farmers")
    op.drop_index("ix_farmers_mobile_number", table_name="farmers")
    op.drop_table("farmers")
    op.drop_index("ix_users_team_lead_id", table_name="users")
    op.drop_index("ix_users_role", table_name="users")
    op.drop_index("ix_users_display_name", table_name="users")
    op.drop_table("users")
