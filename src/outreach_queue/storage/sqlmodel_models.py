"""SQLModel ORM tables for the task store and its read-only directories."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import (
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Text,
    UniqueConstraint,
)
from sqlmodel import Field, SQLModel


class AppUser(SQLModel, table=True):
    __tablename__ = "users"  # type: ignore[bad-override]

    user_id: str = Field(primary_key=True)
    display_name: str = Field(index=True)
    email: str = ""
    role: str = Field(index=True)
    team_lead_id: str | None = Field(
        default=None,
        sa_column=Column(ForeignKey("users.user_id", ondelete="SET NULL"), nullable=True, index=True),
    )
    is_active: bool = True
    language_capabilities_json: str = Field(default="[]", sa_column=Column(Text, nullable=False))
    created_at: datetime = Field(sa_column=Column(DateTime(timezone=True), nullable=False))


class Farmer(SQLModel, table=True):
    __tablename__ = "farmers"  # type: ignore[bad-override]

    farmer_id: str = Field(primary_key=True)
    name: str | None = None
    mobile_number: str | None = Field(default=None, index=True)
    location: str | None = None
    preferred_language: str | None = Field(default=None, index=True)
    territory: str | None = Field(default=None, index=True)
    photo_url: str | None = None


class Activity(SQLModel, table=True):
    __tablename__ = "activities"  # type: ignore[bad-override]

    activity_id: str = Field(primary_key=True)
    activity_type: str | None = None
    activity_date: datetime | None = Field(default=None, sa_column=Column(DateTime(timezone=True)))
    officer_name: str | None = None
    tm_name: str | None = None
    location: str | None = None
    territory: str | None = Field(default=None, index=True)
    state: str | None = Field(default=None, index=True)
    bu_name: str | None = Field(default=None, index=True)
    crops_json: str | None = Field(default=None, sa_column=Column(Text, nullable=True))
    products_json: str | None = Field(default=None, sa_column=Column(Text, nullable=True))


class CallTask(SQLModel, table=True):
    __tablename__ = "call_tasks"  # type: ignore[bad-override]
    __table_args__ = (
        UniqueConstraint("activity_id", "farmer_id", name="uq_call_tasks_activity_farmer"),
        CheckConstraint(
            "(status = 'unassigned') = (assigned_agent_id IS NULL)",
            name="ck_call_tasks_unassigned_has_no_agent",
        ),
        Index("idx_call_tasks_status_schedule", "status", "scheduled_date", "created_at"),
        Index(
            "idx_call_tasks_agent_queue",
            "assigned_agent_id",
            "status",
            "scheduled_date",
        ),
    )

    task_id: str = Field(primary_key=True)
    farmer_id: str = Field(
        sa_column=Column(ForeignKey("farmers.farmer_id", ondelete="CASCADE"), nullable=False),
    )
    activity_id: str = Field(
        sa_column=Column(ForeignKey("activities.activity_id", ondelete="CASCADE"), nullable=False),
    )
    status: str = Field(index=True)
    assigned_agent_id: str | None = Field(
        default=None,
        sa_column=Column(ForeignKey("users.user_id", ondelete="SET NULL"), nullable=True),
    )
    scheduled_date: datetime = Field(sa_column=Column(DateTime(timezone=True), nullable=False))
    call_started_at: datetime | None = Field(
        default=None,
        sa_column=Column(DateTime(timezone=True), nullable=True),
    )
    retry_count: int = 0
    call_log_json: str | None = Field(default=None, sa_column=Column(Text, nullable=True))
    parent_task_id: str | None = Field(default=None, index=True)
    callback_number: int | None = None
    created_at: datetime = Field(sa_column=Column(DateTime(timezone=True), nullable=False))
    updated_at: datetime = Field(sa_column=Column(DateTime(timezone=True), nullable=False))


class CallTaskHistory(SQLModel, table=True):
    __tablename__ = "call_task_history"  # type: ignore[bad-override]

    history_id: int | None = Field(default=None, primary_key=True)
    task_id: str = Field(
        sa_column=Column(
            ForeignKey("call_tasks.task_id", ondelete="CASCADE"),
            nullable=False,
            index=True,
        ),
    )
    status: str
    notes: str = ""
    created_at: datetime = Field(sa_column=Column(DateTime(timezone=True), nullable=False))
