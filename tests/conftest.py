"""Shared test fixtures."""

from __future__ import annotations

from collections.abc import Iterator, Sequence
from datetime import UTC, datetime, timedelta
from pathlib import Path

import pytest

from outreach_queue.config import Settings
from outreach_queue.tasks.models import Role, TaskCreate, TaskView
from outreach_queue.tasks.permissions import Caller
from outreach_queue.tasks.repository import TaskRepository
from outreach_queue.tasks.services import TaskService

BASE_TIME = datetime(2026, 10, 1, 9, 0, tzinfo=UTC)


class StoreSeeder:
    """Populates users, farmers, activities and unassigned tasks."""

    def __init__(self, repository: TaskRepository) -> None:
        self.repository = repository
        self._created = 0
        self._activities: set[str] = set()

    def user(
        self,
        user_id: str,
        *,
        name: str | None = None,
        role: Role = Role.CC_AGENT,
        team_lead_id: str | None = None,
        languages: Sequence[str] = (),
        is_active: bool = True,
    ) -> Caller:
        self.repository.upsert_user(
            user_id=user_id,
            display_name=name or user_id,
            role=role,
            email=f"{user_id}@example.com",
            team_lead_id=team_lead_id,
            is_active=is_active,
            language_capabilities=languages,
        )
        return Caller(user_id=user_id, role=role)

    def lead(self, user_id: str = "lead-1") -> Caller:
        return self.user(user_id, name=f"Lead {user_id}", role=Role.TEAM_LEAD)

    def agent(
        self,
        user_id: str,
        *,
        languages: Sequence[str] = ("Hindi",),
        team_lead_id: str = "lead-1",
        name: str | None = None,
        is_active: bool = True,
    ) -> Caller:
        return self.user(
            user_id,
            name=name,
            team_lead_id=team_lead_id,
            languages=languages,
            is_active=is_active,
        )

    def task(  # noqa: PLR0913
        self,
        task_id: str,
        *,
        language: str | None = "Hindi",
        day: int = 0,
        farmer_name: str | None = None,
        mobile_number: str | None = None,
        territory: str = "North",
        activity_id: str = "activity-1",
        state: str | None = None,
        bu_name: str | None = None,
        parent_task_id: str | None = None,
        callback_number: int | None = None,
    ) -> TaskView:
        if activity_id not in self._activities:
            self.repository.upsert_activity(
                activity_id=activity_id,
                activity_type="Field Day",
                activity_date=BASE_TIME - timedelta(days=3),
                officer_name="Officer Singh",
                location="Village A",
                territory=territory,
                state=state,
                bu_name=bu_name,
                crops=("Paddy",),
                products=("Nutrient Mix",),
            )
            self._activities.add(activity_id)
        farmer_id = f"farmer-{task_id}"
        self.repository.upsert_farmer(
            farmer_id=farmer_id,
            name=farmer_name,
            mobile_number=mobile_number,
            preferred_language=language,
            territory=territory,
        )
        self._created += 1
        return self.repository.create_task(
            TaskCreate(
                task_id=task_id,
                farmer_id=farmer_id,
                activity_id=activity_id,
                scheduled_date=BASE_TIME + timedelta(days=day),
                created_at=BASE_TIME + timedelta(seconds=self._created),
                parent_task_id=parent_task_id,
                callback_number=callback_number,
            ),
        )


@pytest.fixture()
def repository(tmp_path: Path) -> Iterator[TaskRepository]:
    repo = TaskRepository(tmp_path / "tasks.db")
    repo.init_schema()
    try:
        yield repo
    finally:
        repo.close()


@pytest.fixture()
def seeder(repository: TaskRepository) -> StoreSeeder:
    return StoreSeeder(repository)


@pytest.fixture()
def settings(tmp_path: Path) -> Settings:
    return Settings(db_path=tmp_path / "tasks.db")


@pytest.fixture()
def service(repository: TaskRepository, settings: Settings) -> TaskService:
    return TaskService(repository, settings=settings)
