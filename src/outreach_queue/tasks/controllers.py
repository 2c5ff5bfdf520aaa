"""Controllers for task CLI commands."""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import UTC, date, datetime, timedelta
from pathlib import Path

from outreach_queue.config import Settings
from outreach_queue.tasks import lifecycle
from outreach_queue.tasks.errors import NotFoundError, ValidationError
from outreach_queue.tasks.models import (
    AllocationRequest,
    BatchResult,
    CallLog,
    DateWindow,
    PendingTaskFilters,
    Role,
    Sentiment,
    TaskCreate,
    TaskPage,
    TaskView,
    TeamTaskFilters,
    UnassignedTaskFilters,
)
from outreach_queue.tasks.permissions import Caller
from outreach_queue.tasks.repository import TaskRepository
from outreach_queue.tasks.services import TaskService


@dataclass(slots=True)
class DbInitCommand:
    db_path: Path | None


@dataclass(slots=True)
class DemoSeedCommand:
    """CLI input for seeding a demo team and unassigned backlog."""

    db_path: Path | None
    tasks_per_language: int


@dataclass(slots=True)
class AllocateCommand:
    db_path: Path | None
    as_user: str | None
    language: str
    count: int
    date_from: date | None
    date_to: date | None
    team_lead_id: str | None = None
    bu: str | None = None
    state: str | None = None


@dataclass(slots=True)
class PendingTasksCommand:
    """CLI input for pending task listing and per-status stats."""

    db_path: Path | None
    as_user: str | None
    agent_id: str | None
    territory: str | None
    search: str | None
    date_from: date | None
    date_to: date | None
    page: int = 1
    limit: int | None = None


@dataclass(slots=True)
class TeamTasksCommand:
    db_path: Path | None
    as_user: str | None
    status: str | None
    date_from: date | None
    date_to: date | None
    team_lead_id: str | None = None
    page: int = 1
    limit: int | None = None


@dataclass(slots=True)
class UnassignedTasksCommand:
    db_path: Path | None
    as_user: str | None
    language: str | None
    date_from: date | None
    date_to: date | None
    page: int = 1
    limit: int | None = None


@dataclass(slots=True)
class OverviewCommand:
    db_path: Path | None
    as_user: str | None
    date_from: date | None
    date_to: date | None
    team_lead_id: str | None = None


@dataclass(slots=True)
class AgentQueueCommand:
    """CLI input for next/available queue commands."""

    db_path: Path | None
    as_user: str | None
    agent_id: str | None = None


@dataclass(slots=True)
class TaskCommand:
    """CLI input for single-task show/load."""

    db_path: Path | None
    as_user: str | None
    task_id: str


@dataclass(slots=True)
class SubmitCommand:
    db_path: Path | None
    as_user: str | None
    task_id: str
    call_status: str
    call_duration_seconds: int
    sentiment: str
    farmer_comments: str
    crops_discussed: tuple[str, ...] = ()
    products_discussed: tuple[str, ...] = ()
    has_purchased: bool | None = None
    willing_to_purchase: bool | None = None


@dataclass(slots=True)
class ReassignCommand:
    db_path: Path | None
    as_user: str | None
    task_id: str
    agent_id: str


@dataclass(slots=True)
class BulkReassignCommand:
    db_path: Path | None
    as_user: str | None
    task_ids: tuple[str, ...]
    agent_id: str


@dataclass(slots=True)
class SetStatusCommand:
    db_path: Path | None
    as_user: str | None
    task_id: str
    status: str
    notes: str | None


@dataclass(slots=True)
class BulkStatusCommand:
    db_path: Path | None
    as_user: str | None
    task_ids: tuple[str, ...]
    status: str
    notes: str | None


class TaskCliController:
    """Coordinates allocation, queue and lifecycle CLI operations."""

    def init_db(self, command: DbInitCommand) -> list[str]:
        settings = _settings(command.db_path)
        with _repository(settings):
            pass
        return [f"Database ready: {settings.db_path}"]

    def seed_demo(self, command: DemoSeedCommand) -> list[str]:
        """Seed one team lead, three agents and an unassigned backlog."""

        settings = _settings(command.db_path)
        with _repository(settings) as repository:
            created = _seed_demo(repository, tasks_per_language=command.tasks_per_language)
        agents = [user_id for user_id, _, role, _, _ in DEMO_USERS if role == Role.CC_AGENT]
        return [
            f"Seeded demo data: users={len(DEMO_USERS)} tasks={created}",
            "Team lead: demo-lead  Admin: demo-admin",
            "Agents: " + ", ".join(agents),
        ]

    def allocate(self, command: AllocateCommand) -> list[str]:
        settings = _settings(command.db_path)
        with _service(settings) as service:
            caller = _caller(service, settings, command.as_user)
            result = service.allocate(
                caller,
                AllocationRequest(
                    language=command.language,
                    count=command.count,
                    window=DateWindow(date_from=command.date_from, date_to=command.date_to),
                    bu=command.bu,
                    state=command.state,
                ),
                team_lead_id=command.team_lead_id,
            )

        lines = [
            "Allocation completed: "
            f"language={result.language} requested={result.requested_count or 'all'} "
            f"matched={result.matched_tasks} allocated={result.allocated}",
            "Agents: " + (", ".join(agent.name for agent in result.agents_used) or "-"),
        ]
        if result.allocated < result.matched_tasks:
            lines.append(
                f"Not allocated: {result.matched_tasks - result.allocated} "
                "(claimed concurrently or no capable agent)",
            )
        for language, count in sorted(result.skipped_by_language.items()):
            lines.append(f"  skipped language={language} tasks={count}")
        if result.errors:
            lines.append(f"Write errors: {result.error_count}")
            lines.extend(f"  {error}" for error in result.errors)
        return lines

    def pending(self, command: PendingTasksCommand) -> list[str]:
        settings = _settings(command.db_path)
        with _service(settings) as service:
            caller = _caller(service, settings, command.as_user)
            page = service.list_pending_tasks(
                caller,
                _pending_filters(command),
                page=command.page,
                limit=command.limit,
            )
        return _render_page("Pending tasks", page)

    def stats(self, command: PendingTasksCommand) -> list[str]:
        settings = _settings(command.db_path)
        with _service(settings) as service:
            caller = _caller(service, settings, command.as_user)
            counts = service.pending_task_stats(caller, _pending_filters(command))

        lines = [f"Tasks: {sum(counts.values())}"]
        for status, count in counts.items():
            lines.append(f"  {lifecycle.status_label(status)}: {count}")
        return lines

    def team(self, command: TeamTasksCommand) -> list[str]:
        settings = _settings(command.db_path)
        status = lifecycle.parse_status(command.status) if command.status else None
        with _service(settings) as service:
            caller = _caller(service, settings, command.as_user)
            page = service.list_team_tasks(
                caller,
                TeamTaskFilters(
                    status=status,
                    window=DateWindow(date_from=command.date_from, date_to=command.date_to),
                ),
                team_lead_id=command.team_lead_id,
                page=command.page,
                limit=command.limit,
            )
        return _render_page("Team tasks", page)

    def unassigned(self, command: UnassignedTasksCommand) -> list[str]:
        settings = _settings(command.db_path)
        with _service(settings) as service:
            caller = _caller(service, settings, command.as_user)
            page = service.list_unassigned_tasks(
                caller,
                UnassignedTaskFilters(
                    language=command.language,
                    window=DateWindow(date_from=command.date_from, date_to=command.date_to),
                ),
                page=command.page,
                limit=command.limit,
            )
        return _render_page("Unassigned tasks", page)

    def overview(self, command: OverviewCommand) -> list[str]:
        settings = _settings(command.db_path)
        with _service(settings) as service:
            caller = _caller(service, settings, command.as_user)
            overview = service.allocation_overview(
                caller,
                window=DateWindow(date_from=command.date_from, date_to=command.date_to),
                team_lead_id=command.team_lead_id,
            )

        lines = [f"Unassigned: {overview.total_unassigned}"]
        for row in overview.unassigned_by_language:
            lines.append(f"  {row.language}: {row.unassigned}")
        lines.append(f"Agents: {len(overview.agent_workload)}")
        for workload in overview.agent_workload:
            lines.append(
                f"  {workload.agent.name} ({workload.agent.agent_id}) "
                f"languages={','.join(workload.language_capabilities) or '-'} "
                f"queued={workload.sampled_in_queue} in_progress={workload.in_progress}",
            )
        return lines

    def show(self, command: TaskCommand) -> list[str]:
        settings = _settings(command.db_path)
        with _service(settings) as service:
            caller = _caller(service, settings, command.as_user)
            task = service.get_task(caller, command.task_id)
        return _render_task_details(task)

    def next_task(self, command: AgentQueueCommand) -> list[str]:
        settings = _settings(command.db_path)
        with _service(settings) as service:
            caller = _caller(service, settings, command.as_user)
            task = service.next_task_for_agent(caller, command.agent_id)
        if task is None:
            return ["No open tasks."]
        return _render_task_details(task)

    def available(self, command: AgentQueueCommand) -> list[str]:
        settings = _settings(command.db_path)
        with _service(settings) as service:
            caller = _caller(service, settings, command.as_user)
            tasks = service.available_tasks_for_agent(caller, command.agent_id)

        lines = [f"Open tasks: {len(tasks)}"]
        lines.extend(_task_line(task) for task in tasks)
        return lines

    def load(self, command: TaskCommand) -> list[str]:
        settings = _settings(command.db_path)
        with _service(settings) as service:
            caller = _caller(service, settings, command.as_user)
            task = service.load_task(caller, command.task_id)
        return [f"Task loaded: task_id={task.task_id} status={task.status.value}"]

    def submit(self, command: SubmitCommand) -> list[str]:
        settings = _settings(command.db_path)
        call_log = CallLog(
            call_status=lifecycle.parse_call_status(command.call_status),
            call_duration_seconds=command.call_duration_seconds,
            crops_discussed=list(command.crops_discussed),
            products_discussed=list(command.products_discussed),
            has_purchased=command.has_purchased,
            willing_to_purchase=command.willing_to_purchase,
            farmer_comments=command.farmer_comments,
            sentiment=_parse_sentiment(command.sentiment),
        )
        with _service(settings) as service:
            caller = _caller(service, settings, command.as_user)
            task = service.submit_call_outcome(caller, command.task_id, call_log)
        return [
            f"Call submitted: task_id={task.task_id} status={task.status.value} "
            f"outcome={lifecycle.outcome_label(task.status)}",
        ]

    def reassign(self, command: ReassignCommand) -> list[str]:
        settings = _settings(command.db_path)
        with _service(settings) as service:
            caller = _caller(service, settings, command.as_user)
            task = service.reassign_task(caller, command.task_id, command.agent_id)
        return [
            f"Task reassigned: task_id={task.task_id} "
            f"agent={task.assigned_agent_name or task.assigned_agent_id} "
            f"status={task.status.value}",
        ]

    def bulk_reassign(self, command: BulkReassignCommand) -> list[str]:
        settings = _settings(command.db_path)
        with _service(settings) as service:
            caller = _caller(service, settings, command.as_user)
            batch = service.bulk_reassign(caller, list(command.task_ids), command.agent_id)
        return _render_batch("Bulk reassign", batch)

    def set_status(self, command: SetStatusCommand) -> list[str]:
        settings = _settings(command.db_path)
        with _service(settings) as service:
            caller = _caller(service, settings, command.as_user)
            task = service.override_status(caller, command.task_id, command.status, command.notes)
        return [f"Task status updated: task_id={task.task_id} status={task.status.value}"]

    def bulk_status(self, command: BulkStatusCommand) -> list[str]:
        settings = _settings(command.db_path)
        with _service(settings) as service:
            caller = _caller(service, settings, command.as_user)
            batch = service.bulk_override_status(
                caller,
                list(command.task_ids),
                command.status,
                command.notes,
            )
        return _render_batch("Bulk status update", batch)


DEMO_USERS: tuple[tuple[str, str, Role, str | None, tuple[str, ...]], ...] = (
    ("demo-admin", "Demo Admin", Role.MIS_ADMIN, None, ()),
    ("demo-lead", "Demo Lead", Role.TEAM_LEAD, None, ()),
    ("demo-agent-1", "Asha Rao", Role.CC_AGENT, "demo-lead", ("Hindi", "English")),
    ("demo-agent-2", "Bikram Das", Role.CC_AGENT, "demo-lead", ("Hindi", "Telugu")),
    ("demo-agent-3", "Chitra Nair", Role.CC_AGENT, "demo-lead", ("Marathi",)),
)
DEMO_LANGUAGES = ("Hindi", "Telugu", "Marathi", "Kannada")


def _seed_demo(repository: TaskRepository, *, tasks_per_language: int) -> int:
    for user_id, name, role, team_lead_id, languages in DEMO_USERS:
        repository.upsert_user(
            user_id=user_id,
            display_name=name,
            role=role,
            email=f"{user_id}@example.com",
            team_lead_id=team_lead_id,
            language_capabilities=languages,
        )

    today = datetime.now(tz=UTC).replace(hour=9, minute=0, second=0, microsecond=0)
    created = 0
    for language in DEMO_LANGUAGES:
        activity_id = f"demo-activity-{language.lower()}"
        repository.upsert_activity(
            activity_id=activity_id,
            activity_type="Field Day",
            activity_date=today - timedelta(days=7),
            officer_name="Demo Officer",
            location="Demo Village",
            territory=f"{language} Territory",
            crops=("Paddy",),
            products=("Bio-stimulant",),
        )
        for index in range(tasks_per_language):
            farmer_id = f"demo-farmer-{language.lower()}-{index + 1}"
            repository.upsert_farmer(
                farmer_id=farmer_id,
                name=f"{language} Farmer {index + 1}",
                mobile_number=f"90000{created:05d}",
                location="Demo Village",
                preferred_language=language,
                territory=f"{language} Territory",
            )
            if repository.get_task(task_id=f"{farmer_id}-call") is not None:
                continue
            repository.create_task(
                TaskCreate(
                    task_id=f"{farmer_id}-call",
                    farmer_id=farmer_id,
                    activity_id=activity_id,
                    scheduled_date=today + timedelta(days=index % 3),
                ),
            )
            created += 1
    return created


def _settings(db_path: Path | None) -> Settings:
    settings = Settings.from_env(db_path=db_path)
    settings.validate()
    return settings


def _caller(service: TaskService, settings: Settings, as_user: str | None) -> Caller:
    user_id = as_user or settings.caller.user_id
    if not user_id:
        raise ValidationError(
            "Acting user is required: pass --as-user or set OUTREACH_QUEUE_USER_ID.",
        )
    user = service.registry.get_user(user_id)
    if user is None:
        raise NotFoundError(f"User not found: {user_id}")
    return Caller(user_id=user.user_id, role=user.role)


def _pending_filters(command: PendingTasksCommand) -> PendingTaskFilters:
    return PendingTaskFilters(
        agent_id=command.agent_id,
        territory=command.territory,
        search=command.search,
        window=DateWindow(date_from=command.date_from, date_to=command.date_to),
    )


def _parse_sentiment(value: str) -> Sentiment:
    for sentiment in Sentiment:
        if sentiment.value.lower() == value.strip().lower():
            return sentiment
    raise ValidationError(f"Invalid sentiment: {value!r}")


def _task_line(task: TaskView) -> str:
    callback = (
        f" callback={task.callback_number} parent={task.parent_task_id}"
        if task.parent_task_id
        else ""
    )
    return (
        f"  {task.task_id} status={task.status.value} "
        f"agent={task.assigned_agent_name or '-'} "
        f"farmer={task.farmer.name} language={task.farmer.preferred_language} "
        f"scheduled={task.scheduled_date.date().isoformat()}{callback}"
    )


def _render_page(title: str, page: TaskPage) -> list[str]:
    lines = [f"{title}: {page.total} (page {page.page}/{max(page.pages, 1)})"]
    lines.extend(_task_line(task) for task in page.tasks)
    return lines


def _render_task_details(task: TaskView) -> list[str]:
    lines = [
        f"Task: {task.task_id}",
        f"Status: {task.status.value} ({lifecycle.status_label(task.status)})",
        f"Agent: {task.assigned_agent_name or '-'}",
        f"Farmer: {task.farmer.name} mobile={task.farmer.mobile_number} "
        f"language={task.farmer.preferred_language} territory={task.farmer.territory}",
        f"Activity: {task.activity.activity_type} officer={task.activity.officer_name} "
        f"location={task.activity.location}",
        f"Scheduled: {task.scheduled_date.isoformat()}",
        f"Call log: {task.call_log.call_status.value if task.call_log else '-'}",
        f"History: {len(task.interaction_history)}",
    ]
    for entry in task.interaction_history:
        lines.append(f"  {entry.timestamp.isoformat()} {entry.status.value} {entry.notes}")
    return lines


def _render_batch(title: str, batch: BatchResult) -> list[str]:
    lines = [f"{title}: successful={batch.successful} failed={batch.failed}"]
    for error in batch.errors:
        lines.append(f"  failed task_id={error.task_id} code={error.code} error={error.error}")
    return lines


@contextmanager
def _repository(settings: Settings) -> Iterator[TaskRepository]:
    repository = TaskRepository(
        db_path=settings.db_path,
        busy_timeout_ms=settings.storage.busy_timeout_ms,
    )
    repository.init_schema()
    try:
        yield repository
    finally:
        repository.close()


@contextmanager
def _service(settings: Settings) -> Iterator[TaskService]:
    with _repository(settings) as repository:
        yield TaskService(repository, settings=settings)
