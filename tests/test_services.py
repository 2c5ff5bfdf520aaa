from __future__ import annotations

from datetime import date

import allure
import pytest
from conftest import StoreSeeder

from outreach_queue.config import Settings
from outreach_queue.tasks.errors import (
    ForbiddenError,
    NotFoundError,
    ValidationError,
)
from outreach_queue.tasks.models import (
    AllocationRequest,
    CallLog,
    CallStatus,
    DateWindow,
    PendingTaskFilters,
    Role,
    TaskStatus,
    TeamTaskFilters,
    UnassignedTaskFilters,
)
from outreach_queue.tasks.permissions import Caller, Permission, authorize
from outreach_queue.tasks.repository import TaskRepository
from outreach_queue.tasks.services import TaskService

pytestmark = [
    allure.epic("Task Service"),
    allure.feature("Authorization & Operations"),
]


def _team(seeder: StoreSeeder) -> tuple[Caller, Caller, Caller]:
    lead = seeder.lead("lead-1")
    agent_1 = seeder.agent("agent-1", name="Anil", languages=("Hindi",))
    agent_2 = seeder.agent("agent-2", name="Bela", languages=("Hindi", "Telugu"))
    return lead, agent_1, agent_2


def test_agent_works_a_task_end_to_end(service: TaskService, seeder: StoreSeeder) -> None:
    lead, agent_1, _ = _team(seeder)
    seeder.task("task-1", day=0)
    seeder.task("task-2", day=1)

    result = service.allocate(lead, AllocationRequest(language="Hindi"))
    assert (result.matched_tasks, result.allocated) == (2, 2)

    task = service.next_task_for_agent(agent_1)
    assert task is not None
    assert task.task_id == "task-1"
    assert task.status == TaskStatus.IN_PROGRESS

    submitted = service.submit_call_outcome(
        agent_1,
        "task-1",
        CallLog(call_status=CallStatus.CONNECTED, crops_discussed=["Paddy"]),
    )
    assert submitted.status == TaskStatus.COMPLETED
    assert service.next_task_for_agent(agent_1) is None


def test_roles_without_scope_are_rejected(service: TaskService, seeder: StoreSeeder) -> None:
    _, agent_1, _ = _team(seeder)
    head = seeder.user("head-1", role=Role.CORE_SALES_HEAD)

    with pytest.raises(ForbiddenError):
        service.allocate(agent_1, AllocationRequest(language="Hindi"))
    with pytest.raises(ForbiddenError):
        service.list_pending_tasks(agent_1, PendingTaskFilters())
    with pytest.raises(ForbiddenError):
        service.next_task_for_agent(head)
    with pytest.raises(ForbiddenError):
        service.override_status(agent_1, "task-1", "completed")


def test_injected_authorizer_runs_before_store_access(
    repository: TaskRepository,
    settings: Settings,
    seeder: StoreSeeder,
) -> None:
    _, agent_1, _ = _team(seeder)
    checks: list[tuple[str, Permission]] = []

    def recording_authorizer(caller: Caller, permission: Permission) -> None:
        checks.append((caller.user_id, permission))
        authorize(caller, permission)

    service = TaskService(repository, settings=settings, authorizer=recording_authorizer)

    assert service.available_tasks_for_agent(agent_1) == []
    with pytest.raises(ForbiddenError):
        service.reassign_task(agent_1, "missing", "agent-2")

    assert checks == [
        ("agent-1", Permission.VIEW_OWN),
        ("agent-1", Permission.REASSIGN),
    ]


def test_agents_only_act_on_their_own_tasks(service: TaskService, seeder: StoreSeeder) -> None:
    lead, agent_1, agent_2 = _team(seeder)
    seeder.task("task-1")
    service.reassign_task(lead, "task-1", "agent-1")

    assert service.get_task(agent_1, "task-1").task_id == "task-1"
    assert service.get_task(lead, "task-1").assigned_agent_id == "agent-1"
    with pytest.raises(ForbiddenError):
        service.get_task(agent_2, "task-1")
    with pytest.raises(ForbiddenError):
        service.load_task(agent_2, "task-1", agent_id="agent-1")
    with pytest.raises(ForbiddenError):
        service.load_task(agent_2, "task-1")
    with pytest.raises(ForbiddenError):
        service.available_tasks_for_agent(agent_2, "agent-1")
    with pytest.raises(NotFoundError):
        service.get_task(lead, "task-404")
    with pytest.raises(ValidationError):
        service.get_task(lead, "bulk")


def test_reassign_requires_active_call_centre_agent(
    service: TaskService,
    seeder: StoreSeeder,
) -> None:
    lead, _, _ = _team(seeder)
    seeder.agent("retired", is_active=False)
    seeder.task("task-1")

    with pytest.raises(NotFoundError):
        service.reassign_task(lead, "task-1", "ghost")
    with pytest.raises(ValidationError):
        service.reassign_task(lead, "task-1", "retired")
    with pytest.raises(ValidationError):
        service.reassign_task(lead, "task-1", "lead-1")

    task = service.get_task(lead, "task-1")
    assert task.status == TaskStatus.UNASSIGNED
    assert task.interaction_history == ()


def test_team_scope_of_another_lead_needs_view_all(
    service: TaskService,
    seeder: StoreSeeder,
) -> None:
    lead, _, _ = _team(seeder)
    admin = seeder.user("admin-1", role=Role.MIS_ADMIN)
    seeder.lead("lead-2")
    seeder.agent("agent-9", team_lead_id="lead-2")
    seeder.task("task-1")
    service.reassign_task(lead, "task-1", "agent-9")

    with pytest.raises(ForbiddenError):
        service.list_team_tasks(lead, TeamTaskFilters(), team_lead_id="lead-2")

    page = service.list_team_tasks(admin, TeamTaskFilters(), team_lead_id="lead-2")
    assert [task.task_id for task in page.tasks] == ["task-1"]
    assert service.list_team_tasks(lead, TeamTaskFilters()).total == 0


def test_team_tasks_filter_by_status_and_paginate(
    service: TaskService,
    seeder: StoreSeeder,
) -> None:
    lead, _, _ = _team(seeder)
    for index in range(5):
        seeder.task(f"task-{index}", day=index)
    service.allocate(lead, AllocationRequest(language="Hindi"))
    service.override_status(lead, "task-0", "completed")

    page = service.list_team_tasks(lead, TeamTaskFilters(), page=2, limit=2)
    assert page.total == 5
    assert page.pages == 3
    assert [task.task_id for task in page.tasks] == ["task-2", "task-3"]

    completed = service.list_team_tasks(lead, TeamTaskFilters(status=TaskStatus.COMPLETED))
    assert [task.task_id for task in completed.tasks] == ["task-0"]

    with pytest.raises(ValidationError):
        service.list_team_tasks(lead, TeamTaskFilters(), limit=101)
    with pytest.raises(ValidationError):
        service.list_team_tasks(lead, TeamTaskFilters(), page=0)


def test_pending_tasks_filters_and_stats(service: TaskService, seeder: StoreSeeder) -> None:
    lead, _, _ = _team(seeder)
    seeder.task("task-1", farmer_name="Ramesh Patil", mobile_number="9876500001", day=0)
    seeder.task(
        "task-2",
        farmer_name="Sita Devi",
        mobile_number="9876500002",
        territory="South",
        activity_id="activity-2",
        day=1,
    )
    seeder.task("task-3", farmer_name="Mohan Lal", day=2)
    seeder.task("task-4", farmer_name="Unallocated", language="Kannada")
    service.allocate(lead, AllocationRequest(language="Hindi"))
    service.override_status(lead, "task-3", "completed")

    pending = service.list_pending_tasks(lead, PendingTaskFilters())
    assert [task.task_id for task in pending.tasks] == ["task-1", "task-2"]

    by_name = service.list_pending_tasks(lead, PendingTaskFilters(search="ramesh"))
    assert [task.task_id for task in by_name.tasks] == ["task-1"]
    by_mobile = service.list_pending_tasks(lead, PendingTaskFilters(search="500002"))
    assert [task.task_id for task in by_mobile.tasks] == ["task-2"]
    by_territory = service.list_pending_tasks(lead, PendingTaskFilters(territory="South"))
    assert [task.task_id for task in by_territory.tasks] == ["task-2"]
    by_agent = service.list_pending_tasks(lead, PendingTaskFilters(agent_id="agent-2"))
    assert [task.task_id for task in by_agent.tasks] == ["task-2"]

    stats = service.pending_task_stats(lead, PendingTaskFilters())
    assert stats[TaskStatus.SAMPLED_IN_QUEUE] == 2
    assert stats[TaskStatus.COMPLETED] == 1
    assert stats[TaskStatus.UNASSIGNED] == 1
    assert stats[TaskStatus.INVALID_NUMBER] == 0


def test_unassigned_tasks_filter_by_language_and_window(
    service: TaskService,
    seeder: StoreSeeder,
) -> None:
    lead, _, _ = _team(seeder)
    seeder.task("hindi-1", language="Hindi", day=0)
    seeder.task("hindi-2", language="Hindi", day=5)
    seeder.task("telugu-1", language="Telugu", day=0)

    page = service.list_unassigned_tasks(lead, UnassignedTaskFilters(language="Hindi"))
    assert [task.task_id for task in page.tasks] == ["hindi-1", "hindi-2"]

    windowed = service.list_unassigned_tasks(
        lead,
        UnassignedTaskFilters(
            window=DateWindow(date_from=date(2026, 10, 1), date_to=date(2026, 10, 1)),
        ),
    )
    assert [task.task_id for task in windowed.tasks] == ["hindi-1", "telugu-1"]

    with pytest.raises(ValidationError):
        service.list_unassigned_tasks(
            lead,
            UnassignedTaskFilters(
                window=DateWindow(date_from=date(2026, 10, 2), date_to=date(2026, 10, 1)),
            ),
        )


def test_allocation_overview_for_lead(service: TaskService, seeder: StoreSeeder) -> None:
    lead, agent_1, _ = _team(seeder)
    seeder.task("hindi-1", language="Hindi")
    seeder.task("telugu-1", language="Telugu")

    overview = service.allocation_overview(lead)

    assert overview.total_unassigned == 2
    assert [row.agent.agent_id for row in overview.agent_workload] == ["agent-1", "agent-2"]
    with pytest.raises(ForbiddenError):
        service.allocation_overview(agent_1)


def test_pending_search_treats_wildcards_literally(
    service: TaskService,
    seeder: StoreSeeder,
) -> None:
    lead, _, _ = _team(seeder)
    seeder.task("task-1", farmer_name="50% Organic Farm", mobile_number="98765_0001")
    seeder.task("task-2", farmer_name="Ramesh Patil", mobile_number="9876500002")
    service.allocate(lead, AllocationRequest(language="Hindi"))

    def _search(term: str) -> list[str]:
        page = service.list_pending_tasks(lead, PendingTaskFilters(search=term))
        return [task.task_id for task in page.tasks]

    assert _search("50%") == ["task-1"]
    assert _search("%") == ["task-1"]
    assert _search("_") == ["task-1"]
    assert _search("ramesh") == ["task-2"]
