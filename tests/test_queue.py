from __future__ import annotations

import logging

import allure
import pytest
from conftest import StoreSeeder

from outreach_queue.tasks import lifecycle
from outreach_queue.tasks.errors import ForbiddenError, NotFoundError
from outreach_queue.tasks.models import AgentRef, Assignment, CallLog, CallStatus, TaskStatus
from outreach_queue.tasks.queue import WorkQueueResolver
from outreach_queue.tasks.registry import AgentRegistry
from outreach_queue.tasks.repository import TaskRepository

pytestmark = [
    allure.epic("Agent Work Queue"),
    allure.feature("Next & Available Tasks"),
]


def _resolver(repository: TaskRepository) -> WorkQueueResolver:
    return WorkQueueResolver(repository, AgentRegistry(repository.engine))


def _assign(repository: TaskRepository, agent_id: str, *task_ids: str) -> None:
    repository.apply_allocation(
        [
            Assignment(task_id=task_id, agent=AgentRef(agent_id=agent_id, name=agent_id, email=""))
            for task_id in task_ids
        ],
        batch_size=200,
    )


def test_next_task_loads_earliest_due_task(repository: TaskRepository, seeder: StoreSeeder) -> None:
    seeder.lead()
    seeder.agent("agent-1")
    seeder.task("later", day=3)
    seeder.task("earliest", day=1)
    _assign(repository, "agent-1", "later", "earliest")
    resolver = _resolver(repository)

    task = resolver.next_task_for_agent("agent-1")

    assert task is not None
    assert task.task_id == "earliest"
    assert task.status == TaskStatus.IN_PROGRESS
    assert task.interaction_history[-1].notes == lifecycle.NEXT_TASK_NOTE

    again = resolver.next_task_for_agent("agent-1")
    assert again is not None
    assert again.task_id == "earliest"
    assert len(again.interaction_history) == len(task.interaction_history)


def test_next_task_breaks_ties_by_creation_then_id(
    repository: TaskRepository,
    seeder: StoreSeeder,
) -> None:
    seeder.lead()
    seeder.agent("agent-1")
    seeder.task("task-b", day=2)
    seeder.task("task-a", day=2)
    _assign(repository, "agent-1", "task-a", "task-b")

    task = _resolver(repository).next_task_for_agent("agent-1")

    assert task is not None
    assert task.task_id == "task-b"


def test_next_task_returns_none_for_empty_queue(
    repository: TaskRepository,
    seeder: StoreSeeder,
) -> None:
    seeder.lead()
    seeder.agent("agent-1")
    seeder.task("task-1")
    _assign(repository, "agent-1", "task-1")
    repository.load_task(task_id="task-1", agent_id="agent-1")
    repository.submit_call_outcome(
        task_id="task-1",
        agent_id="agent-1",
        call_log=CallLog(call_status=CallStatus.CONNECTED),
    )

    assert _resolver(repository).next_task_for_agent("agent-1") is None


def test_available_tasks_lists_open_queue_with_callback_metadata(
    repository: TaskRepository,
    seeder: StoreSeeder,
) -> None:
    seeder.lead()
    seeder.agent("agent-1")
    seeder.task("task-1", day=2)
    seeder.task("callback-1", day=1, parent_task_id="task-0", callback_number=2)
    seeder.task("done-1", day=0)
    seeder.task("pool-1", day=0)
    _assign(repository, "agent-1", "task-1", "callback-1", "done-1")
    repository.override_status(task_id="done-1", status=TaskStatus.COMPLETED)
    repository.load_task(task_id="task-1", agent_id="agent-1")

    tasks = _resolver(repository).available_tasks_for_agent("agent-1")

    assert [task.task_id for task in tasks] == ["callback-1", "task-1"]
    assert [task.status for task in tasks] == [TaskStatus.SAMPLED_IN_QUEUE, TaskStatus.IN_PROGRESS]
    assert tasks[0].parent_task_id == "task-0"
    assert tasks[0].callback_number == 2


def test_queue_requires_known_active_agent(
    repository: TaskRepository,
    seeder: StoreSeeder,
) -> None:
    seeder.lead()
    seeder.agent("retired", is_active=False)
    resolver = _resolver(repository)

    with pytest.raises(NotFoundError):
        resolver.next_task_for_agent("ghost")
    with pytest.raises(ForbiddenError):
        resolver.available_tasks_for_agent("retired")


def test_language_mismatch_is_logged_not_filtered(
    repository: TaskRepository,
    seeder: StoreSeeder,
    caplog: pytest.LogCaptureFixture,
) -> None:
    seeder.lead()
    seeder.agent("agent-1", languages=("Hindi",))
    seeder.task("task-1", language="Bengali")
    repository.reassign_task(task_id="task-1", agent_id="agent-1", agent_label="agent-1")

    with caplog.at_level(logging.WARNING, logger="outreach_queue.tasks.queue"):
        tasks = _resolver(repository).available_tasks_for_agent("agent-1")

    assert [task.task_id for task in tasks] == ["task-1"]
    assert "outside agent agent-1 capabilities" in caplog.text
