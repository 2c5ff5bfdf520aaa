"""Per-agent view of open work: the next task to dial and the full open queue."""

from __future__ import annotations

import logging

from outreach_queue.tasks import lifecycle
from outreach_queue.tasks.models import TaskStatus, TaskView
from outreach_queue.tasks.registry import AgentRegistry
from outreach_queue.tasks.repository import TaskRepository

logger = logging.getLogger(__name__)


class WorkQueueResolver:
    """Resolve an agent's open tasks ordered earliest-due first.

    Ordering is ``(scheduled_date, created_at, task_id)`` so a fixed snapshot
    always resolves to the same task. Callback metadata is passed through
    untouched.
    """

    def __init__(self, repository: TaskRepository, registry: AgentRegistry) -> None:
        self.repository = repository
        self.registry = registry

    def next_task_for_agent(self, agent_id: str) -> TaskView | None:
        """Return the head of the agent's queue, loading it if still queued.

        ``None`` means the queue is empty.
        """

        self.registry.require_active_user(agent_id)
        head = self.repository.list_open_tasks_for_agent(agent_id=agent_id, limit=1)
        if not head:
            return None
        task = head[0]
        if task.status == TaskStatus.SAMPLED_IN_QUEUE:
            return self.repository.load_task(
                task_id=task.task_id,
                agent_id=agent_id,
                note=lifecycle.NEXT_TASK_NOTE,
            )
        return task

    def available_tasks_for_agent(self, agent_id: str) -> list[TaskView]:
        agent = self.registry.require_active_user(agent_id)
        tasks = self.repository.list_open_tasks_for_agent(agent_id=agent_id)
        for task in tasks:
            language = task.farmer.preferred_language
            if agent.language_capabilities and not agent.speaks(language):
                logger.warning(
                    "Task %s language %r is outside agent %s capabilities %s",
                    task.task_id,
                    language,
                    agent_id,
                    list(agent.language_capabilities),
                )
        return tasks
