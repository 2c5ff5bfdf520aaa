"""CLI entrypoint for outreach-queue."""

import logging
from collections.abc import Callable
from datetime import date, datetime
from pathlib import Path

import rich_click as click

from outreach_queue import __version__
from outreach_queue.config import Settings
from outreach_queue.tasks.controllers import (
    AgentQueueCommand,
    AllocateCommand,
    BulkReassignCommand,
    BulkStatusCommand,
    DbInitCommand,
    DemoSeedCommand,
    OverviewCommand,
    PendingTasksCommand,
    ReassignCommand,
    SetStatusCommand,
    SubmitCommand,
    TaskCliController,
    TaskCommand,
    TeamTasksCommand,
    UnassignedTasksCommand,
)
from outreach_queue.tasks.errors import TaskError

click.rich_click.USE_MARKDOWN = True
TASK_CONTROLLER = TaskCliController()

DB_PATH_OPTION = click.option(
    "--db-path",
    type=click.Path(path_type=Path),
    default=None,
    help="SQLite DB path.",
)
AS_USER_OPTION = click.option(
    "--as-user",
    default=None,
    help="Acting user id. Falls back to OUTREACH_QUEUE_USER_ID.",
)
DATE_FROM_OPTION = click.option(
    "--date-from",
    type=click.DateTime(formats=["%Y-%m-%d"]),
    default=None,
    help="First scheduled day (inclusive, UTC).",
)
DATE_TO_OPTION = click.option(
    "--date-to",
    type=click.DateTime(formats=["%Y-%m-%d"]),
    default=None,
    help="Last scheduled day (inclusive, UTC).",
)
PAGE_OPTION = click.option("--page", type=click.IntRange(min=1), default=1, show_default=True)
LIMIT_OPTION = click.option(
    "--limit",
    type=click.IntRange(min=1),
    default=None,
    help="Page size. Defaults to OUTREACH_QUEUE_DEFAULT_PAGE_SIZE.",
)


@click.group()
@click.version_option(version=__version__, prog_name="outreach-queue")
def outreach_queue() -> None:
    """Call-centre task allocation and lifecycle CLI."""

    settings = Settings.from_env()
    try:
        settings.validate()
    except ValueError as error:
        raise click.ClickException(str(error)) from error
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@outreach_queue.group()
def db() -> None:
    """Database commands."""


@db.command("init")
@DB_PATH_OPTION
def db_init(db_path: Path | None) -> None:
    """Create or upgrade the task store schema."""

    _run(lambda: TASK_CONTROLLER.init_db(DbInitCommand(db_path=db_path)))


@outreach_queue.group()
def demo() -> None:
    """Demo data commands."""


@demo.command("seed")
@DB_PATH_OPTION
@click.option(
    "--tasks-per-language",
    type=click.IntRange(min=1, max=500),
    default=6,
    show_default=True,
    help="Unassigned tasks to create per demo language.",
)
def demo_seed(db_path: Path | None, tasks_per_language: int) -> None:
    """Seed a demo team and an unassigned backlog."""

    _run(
        lambda: TASK_CONTROLLER.seed_demo(
            DemoSeedCommand(db_path=db_path, tasks_per_language=tasks_per_language),
        ),
    )


@outreach_queue.group()
def tasks() -> None:
    """Task allocation, queue and lifecycle commands."""


@tasks.command("allocate")
@DB_PATH_OPTION
@AS_USER_OPTION
@click.option(
    "--language",
    required=True,
    help="Farmer language to allocate, or ALL for every language.",
)
@click.option(
    "--count",
    type=click.IntRange(min=0),
    default=0,
    show_default=True,
    help="Maximum tasks to allocate. 0 means all up to the server cap.",
)
@DATE_FROM_OPTION
@DATE_TO_OPTION
@click.option("--bu", default=None, help="Only allocate tasks of activities in this business unit.")
@click.option("--state", default=None, help="Only allocate tasks of activities in this state.")
@click.option("--team-lead", "team_lead_id", default=None, help="Team lead to allocate for.")
def tasks_allocate(  # noqa: PLR0913
    db_path: Path | None,
    as_user: str | None,
    language: str,
    count: int,
    date_from: datetime | None,
    date_to: datetime | None,
    team_lead_id: str | None,
    bu: str | None,
    state: str | None,
) -> None:
    """Distribute unassigned tasks round-robin across capable team agents."""

    _run(
        lambda: TASK_CONTROLLER.allocate(
            AllocateCommand(
                db_path=db_path,
                as_user=as_user,
                language=language,
                count=count,
                date_from=_day(date_from),
                date_to=_day(date_to),
                team_lead_id=team_lead_id,
                bu=bu,
                state=state,
            ),
        ),
    )


def _pending_options(command: Callable) -> Callable:
    for option in reversed(
        (
            DB_PATH_OPTION,
            AS_USER_OPTION,
            click.option("--agent-id", default=None, help="Only tasks assigned to this agent."),
            click.option("--territory", default=None, help="Activity territory."),
            click.option("--search", default=None, help="Farmer name or mobile number."),
            DATE_FROM_OPTION,
            DATE_TO_OPTION,
        ),
    ):
        command = option(command)
    return command


@tasks.command("pending")
@_pending_options
@PAGE_OPTION
@LIMIT_OPTION
def tasks_pending(  # noqa: PLR0913
    db_path: Path | None,
    as_user: str | None,
    agent_id: str | None,
    territory: str | None,
    search: str | None,
    date_from: datetime | None,
    date_to: datetime | None,
    page: int,
    limit: int | None,
) -> None:
    """List open (queued or in progress) tasks."""

    _run(
        lambda: TASK_CONTROLLER.pending(
            PendingTasksCommand(
                db_path=db_path,
                as_user=as_user,
                agent_id=agent_id,
                territory=territory,
                search=search,
                date_from=_day(date_from),
                date_to=_day(date_to),
                page=page,
                limit=limit,
            ),
        ),
    )


@tasks.command("stats")
@_pending_options
def tasks_stats(  # noqa: PLR0913
    db_path: Path | None,
    as_user: str | None,
    agent_id: str | None,
    territory: str | None,
    search: str | None,
    date_from: datetime | None,
    date_to: datetime | None,
) -> None:
    """Task counts per status for the given filters."""

    _run(
        lambda: TASK_CONTROLLER.stats(
            PendingTasksCommand(
                db_path=db_path,
                as_user=as_user,
                agent_id=agent_id,
                territory=territory,
                search=search,
                date_from=_day(date_from),
                date_to=_day(date_to),
            ),
        ),
    )


@tasks.command("team")
@DB_PATH_OPTION
@AS_USER_OPTION
@click.option("--status", default=None, help="Task status filter.")
@DATE_FROM_OPTION
@DATE_TO_OPTION
@click.option("--team-lead", "team_lead_id", default=None, help="Another lead's team.")
@PAGE_OPTION
@LIMIT_OPTION
def tasks_team(  # noqa: PLR0913
    db_path: Path | None,
    as_user: str | None,
    status: str | None,
    date_from: datetime | None,
    date_to: datetime | None,
    team_lead_id: str | None,
    page: int,
    limit: int | None,
) -> None:
    """List tasks assigned to the team's agents."""

    _run(
        lambda: TASK_CONTROLLER.team(
            TeamTasksCommand(
                db_path=db_path,
                as_user=as_user,
                status=status,
                date_from=_day(date_from),
                date_to=_day(date_to),
                team_lead_id=team_lead_id,
                page=page,
                limit=limit,
            ),
        ),
    )


@tasks.command("unassigned")
@DB_PATH_OPTION
@AS_USER_OPTION
@click.option("--language", default=None, help="Farmer language filter.")
@DATE_FROM_OPTION
@DATE_TO_OPTION
@PAGE_OPTION
@LIMIT_OPTION
def tasks_unassigned(  # noqa: PLR0913
    db_path: Path | None,
    as_user: str | None,
    language: str | None,
    date_from: datetime | None,
    date_to: datetime | None,
    page: int,
    limit: int | None,
) -> None:
    """List tasks waiting for allocation."""

    _run(
        lambda: TASK_CONTROLLER.unassigned(
            UnassignedTasksCommand(
                db_path=db_path,
                as_user=as_user,
                language=language,
                date_from=_day(date_from),
                date_to=_day(date_to),
                page=page,
                limit=limit,
            ),
        ),
    )


@tasks.command("overview")
@DB_PATH_OPTION
@AS_USER_OPTION
@DATE_FROM_OPTION
@DATE_TO_OPTION
@click.option("--team-lead", "team_lead_id", default=None, help="Another lead's team.")
def tasks_overview(
    db_path: Path | None,
    as_user: str | None,
    date_from: datetime | None,
    date_to: datetime | None,
    team_lead_id: str | None,
) -> None:
    """Unassigned backlog per language and open workload per agent."""

    _run(
        lambda: TASK_CONTROLLER.overview(
            OverviewCommand(
                db_path=db_path,
                as_user=as_user,
                date_from=_day(date_from),
                date_to=_day(date_to),
                team_lead_id=team_lead_id,
            ),
        ),
    )


@tasks.command("show")
@DB_PATH_OPTION
@AS_USER_OPTION
@click.option("--task-id", required=True, help="Task id.")
def tasks_show(db_path: Path | None, as_user: str | None, task_id: str) -> None:
    """Show one task with its interaction history."""

    _run(
        lambda: TASK_CONTROLLER.show(
            TaskCommand(db_path=db_path, as_user=as_user, task_id=task_id),
        ),
    )


@tasks.command("next")
@DB_PATH_OPTION
@AS_USER_OPTION
def tasks_next(db_path: Path | None, as_user: str | None) -> None:
    """Load the acting agent's next task."""

    _run(
        lambda: TASK_CONTROLLER.next_task(AgentQueueCommand(db_path=db_path, as_user=as_user)),
    )


@tasks.command("available")
@DB_PATH_OPTION
@AS_USER_OPTION
@click.option("--agent-id", default=None, help="Agent to inspect. Defaults to the acting user.")
def tasks_available(db_path: Path | None, as_user: str | None, agent_id: str | None) -> None:
    """List every open task of an agent."""

    _run(
        lambda: TASK_CONTROLLER.available(
            AgentQueueCommand(db_path=db_path, as_user=as_user, agent_id=agent_id),
        ),
    )


@tasks.command("load")
@DB_PATH_OPTION
@AS_USER_OPTION
@click.option("--task-id", required=True, help="Task id.")
def tasks_load(db_path: Path | None, as_user: str | None, task_id: str) -> None:
    """Start working a queued task."""

    _run(
        lambda: TASK_CONTROLLER.load(
            TaskCommand(db_path=db_path, as_user=as_user, task_id=task_id),
        ),
    )


@tasks.command("submit")
@DB_PATH_OPTION
@AS_USER_OPTION
@click.option("--task-id", required=True, help="Task id.")
@click.option(
    "--call-status",
    required=True,
    help="Outbound call outcome, for example Connected or Not Reachable.",
)
@click.option("--duration", type=click.IntRange(min=0), default=0, show_default=True)
@click.option("--sentiment", default="N/A", show_default=True)
@click.option("--comments", default="", help="Farmer comments.")
@click.option("--crop", "crops", multiple=True, help="Crop discussed. Can be repeated.")
@click.option("--product", "products", multiple=True, help="Product discussed. Can be repeated.")
@click.option("--purchased/--not-purchased", "has_purchased", default=None)
@click.option("--willing/--not-willing", "willing_to_purchase", default=None)
def tasks_submit(  # noqa: PLR0913
    db_path: Path | None,
    as_user: str | None,
    task_id: str,
    call_status: str,
    duration: int,
    sentiment: str,
    comments: str,
    crops: tuple[str, ...],
    products: tuple[str, ...],
    has_purchased: bool | None,
    willing_to_purchase: bool | None,
) -> None:
    """Record the call outcome and close the task."""

    _run(
        lambda: TASK_CONTROLLER.submit(
            SubmitCommand(
                db_path=db_path,
                as_user=as_user,
                task_id=task_id,
                call_status=call_status,
                call_duration_seconds=duration,
                sentiment=sentiment,
                farmer_comments=comments,
                crops_discussed=crops,
                products_discussed=products,
                has_purchased=has_purchased,
                willing_to_purchase=willing_to_purchase,
            ),
        ),
    )


@tasks.command("reassign")
@DB_PATH_OPTION
@AS_USER_OPTION
@click.option("--task-id", required=True, help="Task id.")
@click.option("--agent-id", required=True, help="New agent.")
def tasks_reassign(db_path: Path | None, as_user: str | None, task_id: str, agent_id: str) -> None:
    """Put a task back in an agent's queue, reopening it if closed."""

    _run(
        lambda: TASK_CONTROLLER.reassign(
            ReassignCommand(db_path=db_path, as_user=as_user, task_id=task_id, agent_id=agent_id),
        ),
    )


@tasks.command("set-status")
@DB_PATH_OPTION
@AS_USER_OPTION
@click.option("--task-id", required=True, help="Task id.")
@click.option("--status", required=True, help="Target status.")
@click.option("--notes", default=None, help="History note.")
def tasks_set_status(
    db_path: Path | None,
    as_user: str | None,
    task_id: str,
    status: str,
    notes: str | None,
) -> None:
    """Override the status of an assigned task."""

    _run(
        lambda: TASK_CONTROLLER.set_status(
            SetStatusCommand(
                db_path=db_path,
                as_user=as_user,
                task_id=task_id,
                status=status,
                notes=notes,
            ),
        ),
    )


@tasks.command("bulk-reassign")
@DB_PATH_OPTION
@AS_USER_OPTION
@click.option("--task-id", "task_ids", multiple=True, required=True, help="Can be repeated.")
@click.option("--agent-id", required=True, help="New agent.")
def tasks_bulk_reassign(
    db_path: Path | None,
    as_user: str | None,
    task_ids: tuple[str, ...],
    agent_id: str,
) -> None:
    """Reassign several tasks; failures are reported per task."""

    _run(
        lambda: TASK_CONTROLLER.bulk_reassign(
            BulkReassignCommand(
                db_path=db_path,
                as_user=as_user,
                task_ids=task_ids,
                agent_id=agent_id,
            ),
        ),
    )


@tasks.command("bulk-status")
@DB_PATH_OPTION
@AS_USER_OPTION
@click.option("--task-id", "task_ids", multiple=True, required=True, help="Can be repeated.")
@click.option("--status", required=True, help="Target status.")
@click.option("--notes", default=None, help="History note.")
def tasks_bulk_status(
    db_path: Path | None,
    as_user: str | None,
    task_ids: tuple[str, ...],
    status: str,
    notes: str | None,
) -> None:
    """Override the status of several tasks; failures are reported per task."""

    _run(
        lambda: TASK_CONTROLLER.bulk_status(
            BulkStatusCommand(
                db_path=db_path,
                as_user=as_user,
                task_ids=task_ids,
                status=status,
                notes=notes,
            ),
        ),
    )


def _day(value: datetime | None) -> date | None:
    return value.date() if value is not None else None


def _run(action: Callable[[], list[str]]) -> None:
    try:
        lines = action()
    except TaskError as error:
        raise click.ClickException(f"{error.code}: {error}") from error
    except ValueError as error:
        raise click.ClickException(str(error)) from error
    _emit_lines(lines)


def _emit_lines(lines: list[str]) -> None:
    for line in lines:
        click.echo(line)


if __name__ == "__main__":  # pragma: no cover
    outreach_queue()
