"""Transport-agnostic task operations.

Every public method takes the acting ``Caller`` and runs the injected
authorizer before touching the store. Lifecycle rules live in
``tasks.lifecycle``; this layer only wires authorization, request validation
and the components together.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence

from outreach_queue.config import Settings
from outreach_queue.tasks import lifecycle
from outreach_queue.tasks.allocator import FairAllocator
from outreach_queue.tasks.bulk import BulkMutationExecutor
from outreach_queue.tasks.errors import ForbiddenError, NotFoundError
from outreach_queue.tasks.models import (
    AllocationOverview,
    AllocationRequest,
    AllocationResult,
    BatchResult,
    CallLog,
    DateWindow,
    PendingTaskFilters,
    TaskPage,
    TaskStatus,
    TaskView,
    TeamTaskFilters,
    UnassignedTaskFilters,
)
from outreach_queue.tasks.permissions import Authorizer, Caller, Permission, authorize, has_permission
from outreach_queue.tasks.queue import WorkQueueResolver
from outreach_queue.tasks.registry import AgentRegistry
from outreach_queue.tasks.repository import TaskRepository
from outreach_queue.tasks.validation import validate_identifier, validate_page, validate_window

logger = logging.getLogger(__name__)


class TaskService:
    def __init__(
        self,
        repository: TaskRepository,
        *,
        settings: Settings,
        authorizer: Authorizer = authorize,
    ) -> None:
        self.repository = repository
        self.settings = settings
        self.authorize = authorizer
        self.registry = AgentRegistry(repository.engine)
        self.queue = WorkQueueResolver(repository, self.registry)
        self.allocator = FairAllocator(repository, self.registry, settings.allocation)
        self.bulk = BulkMutationExecutor(reassign=self._reassign, override=self._override)

    # Supervisor reads

    def allocate(
        self,
        caller: Caller,
        request: AllocationRequest,
        *,
        team_lead_id: str | None = None,
    ) -> AllocationResult:
        self.authorize(caller, Permission.REASSIGN)
        lead_id = self._team_lead_scope(caller, team_lead_id)
        result = self.allocator.allocate(team_lead_id=lead_id, request=request)
        logger.info(
            "Allocation by %s: language=%s requested=%d matched=%d allocated=%d",
            caller.user_id,
            result.language,
            result.requested_count,
            result.matched_tasks,
            result.allocated,
        )
        return result

    def list_pending_tasks(
        self,
        caller: Caller,
        filters: PendingTaskFilters,
        *,
        page: int = 1,
        limit: int | None = None,
    ) -> TaskPage:
        self.authorize(caller, Permission.VIEW_TEAM)
        page, limit = self._page(page, limit)
        validate_window(filters.window)
        return self.repository.list_pending_tasks(filters=filters, page=page, limit=limit)

    def pending_task_stats(
        self,
        caller: Caller,
        filters: PendingTaskFilters,
    ) -> dict[TaskStatus, int]:
        self.authorize(caller, Permission.VIEW_TEAM)
        validate_window(filters.window)
        return self.repository.count_tasks_by_status(filters=filters)

    def list_team_tasks(
        self,
        caller: Caller,
        filters: TeamTaskFilters,
        *,
        team_lead_id: str | None = None,
        page: int = 1,
        limit: int | None = None,
    ) -> TaskPage:
        self.authorize(caller, Permission.VIEW_TEAM)
        lead_id = self._team_lead_scope(caller, team_lead_id)
        page, limit = self._page(page, limit)
        validate_window(filters.window)
        agent_ids = [agent.user_id for agent in self.registry.team_agents(lead_id)]
        if not agent_ids:
            return TaskPage(tasks=[], page=page, limit=limit, total=0)
        return self.repository.list_team_tasks(
            agent_ids=agent_ids,
            filters=filters,
            page=page,
            limit=limit,
        )

    def list_unassigned_tasks(
        self,
        caller: Caller,
        filters: UnassignedTaskFilters,
        *,
        page: int = 1,
        limit: int | None = None,
    ) -> TaskPage:
        self.authorize(caller, Permission.VIEW_TEAM)
        page, limit = self._page(page, limit)
        validate_window(filters.window)
        return self.repository.list_unassigned_tasks(filters=filters, page=page, limit=limit)

    def allocation_overview(
        self,
        caller: Caller,
        *,
        window: DateWindow | None = None,
        team_lead_id: str | None = None,
    ) -> AllocationOverview:
        self.authorize(caller, Permission.VIEW_TEAM)
        lead_id = self._team_lead_scope(caller, team_lead_id)
        return self.allocator.overview(team_lead_id=lead_id, window=window or DateWindow())

    def get_task(self, caller: Caller, task_id: str) -> TaskView:
        """Single task; agents without team scope only see their own."""

        self.authorize(caller, Permission.VIEW_OWN)
        validate_identifier(task_id)
        task = self.repository.get_task(task_id=task_id)
        if task is None:
            raise NotFoundError(f"Task not found: {task_id}")
        if (
            not has_permission(caller.role, Permission.VIEW_TEAM)
            and task.assigned_agent_id != caller.user_id
        ):
            raise ForbiddenError("Access denied")
        return task

    # Agent work queue

    def next_task_for_agent(self, caller: Caller, agent_id: str | None = None) -> TaskView | None:
        self.authorize(caller, Permission.VIEW_OWN)
        agent_id = self._self_only(caller, agent_id)
        return self.queue.next_task_for_agent(agent_id)

    def available_tasks_for_agent(
        self,
        caller: Caller,
        agent_id: str | None = None,
    ) -> list[TaskView]:
        self.authorize(caller, Permission.VIEW_OWN)
        agent_id = validate_identifier(agent_id or caller.user_id, kind="agent")
        if agent_id != caller.user_id:
            self.authorize(caller, Permission.VIEW_TEAM)
        return self.queue.available_tasks_for_agent(agent_id)

    def load_task(self, caller: Caller, task_id: str, agent_id: str | None = None) -> TaskView:
        self.authorize(caller, Permission.VIEW_OWN)
        validate_identifier(task_id)
        agent_id = self._self_only(caller, agent_id)
        self.registry.require_active_user(agent_id)
        return self.repository.load_task(task_id=task_id, agent_id=agent_id)

    def submit_call_outcome(
        self,
        caller: Caller,
        task_id: str,
        call_log: CallLog,
        agent_id: str | None = None,
    ) -> TaskView:
        self.authorize(caller, Permission.SUBMIT)
        validate_identifier(task_id)
        agent_id = self._self_only(caller, agent_id)
        return self.repository.submit_call_outcome(
            task_id=task_id,
            agent_id=agent_id,
            call_log=call_log,
        )

    # Supervisor writes

    def reassign_task(self, caller: Caller, task_id: str, agent_id: str) -> TaskView:
        self.authorize(caller, Permission.REASSIGN)
        validate_identifier(task_id)
        validate_identifier(agent_id, kind="agent")
        return self._reassign(task_id, agent_id)

    def override_status(
        self,
        caller: Caller,
        task_id: str,
        status: str | TaskStatus,
        notes: str | None = None,
    ) -> TaskView:
        self.authorize(caller, Permission.REASSIGN)
        validate_identifier(task_id)
        return self._override(task_id, lifecycle.parse_override_target(status), notes)

    def bulk_reassign(
        self,
        caller: Caller,
        task_ids: Sequence[object],
        agent_id: str,
    ) -> BatchResult:
        self.authorize(caller, Permission.REASSIGN)
        return self.bulk.bulk_reassign(task_ids, agent_id)

    def bulk_override_status(
        self,
        caller: Caller,
        task_ids: Sequence[object],
        status: str | TaskStatus,
        notes: str | None = None,
    ) -> BatchResult:
        self.authorize(caller, Permission.REASSIGN)
        return self.bulk.bulk_override_status(task_ids, status, notes)

    def _reassign(self, task_id: str, agent_id: str) -> TaskView:
        agent = self.registry.require_assignable_agent(agent_id)
        return self.repository.reassign_task(
            task_id=task_id,
            agent_id=agent.user_id,
            agent_label=agent.email or agent.display_name,
        )

    def _override(self, task_id: str, status: TaskStatus, notes: str | None) -> TaskView:
        return self.repository.override_status(task_id=task_id, status=status, notes=notes)

    def _team_lead_scope(self, caller: Caller, team_lead_id: str | None) -> str:
        if team_lead_id is None or team_lead_id == caller.user_id:
            return caller.user_id
        validate_identifier(team_lead_id, kind="team lead")
        self.authorize(caller, Permission.VIEW_ALL)
        return team_lead_id

    def _self_only(self, caller: Caller, agent_id: str | None) -> str:
        agent_id = validate_identifier(agent_id or caller.user_id, kind="agent")
        if agent_id != caller.user_id:
            raise ForbiddenError(f"Caller {caller.user_id} cannot act for agent {agent_id}")
        return agent_id

    def _page(self, page: int, limit: int | None) -> tuple[int, int]:
        return validate_page(
            page,
            limit if limit is not None else self.settings.queue.default_page_size,
            max_limit=self.settings.queue.max_page_size,
        )
