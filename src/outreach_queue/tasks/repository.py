"""Task store backed by SQLModel + SQLite.

Every status change is a conditional ``UPDATE ... WHERE`` followed by one
history insert in the same transaction. A zero-row match means another actor
changed the task first.
"""

from __future__ import annotations

import json
import logging
import re
from collections.abc import Iterable, Sequence
from datetime import datetime
from pathlib import Path
from typing import Any
from uuid import uuid4

from sqlalchemy import and_, func, or_
from sqlalchemy import update as sa_update
from sqlalchemy.exc import DBAPIError, SQLAlchemyError
from sqlalchemy.sql.elements import ColumnElement
from sqlmodel import Session, col, select

from outreach_queue.storage.alembic_runner import upgrade_head
from outreach_queue.storage.common import (
    build_sqlite_engine,
    dump_json,
    load_json_list,
    to_db_datetime,
    to_utc_aware_datetime,
    utc_now,
)
from outreach_queue.storage.sqlmodel_models import (
    Activity,
    AppUser,
    CallTask,
    CallTaskHistory,
    Farmer,
)
from outreach_queue.tasks import lifecycle
from outreach_queue.tasks.errors import ForbiddenError, NotFoundError, RaceLostError
from outreach_queue.tasks.models import (
    UNKNOWN,
    ActivityInfo,
    AllocationCandidate,
    AllocationWrite,
    Assignment,
    CallLog,
    DateWindow,
    FarmerInfo,
    InteractionEntry,
    PendingTaskFilters,
    Role,
    TaskCreate,
    TaskPage,
    TaskStatus,
    TaskView,
    TeamTaskFilters,
    UnassignedTaskFilters,
    normalize_language,
)
from outreach_queue.tasks.validation import window_bounds

logger = logging.getLogger(__name__)

_ZONE_SUFFIX = re.compile(r"\s+Zone$")


class TaskRepository:
    """Persistence facade for call tasks and their interaction history."""

    def __init__(self, db_path: Path, *, busy_timeout_ms: int = 5_000) -> None:
        self.db_path = db_path
        self.engine = build_sqlite_engine(db_path=db_path, busy_timeout_ms=busy_timeout_ms)

    def close(self) -> None:
        """Close underlying DB resources."""

        self.engine.dispose()

    def init_schema(self) -> None:
        """Run schema migrations."""

        upgrade_head(self.db_path, engine=self.engine)

    # Directory seeding. The engine only reads these rows; upstream sync and
    # tests use the helpers below to populate them.

    def upsert_user(  # noqa: PLR0913
        self,
        *,
        user_id: str,
        display_name: str,
        role: Role,
        email: str = "",
        team_lead_id: str | None = None,
        is_active: bool = True,
        language_capabilities: Sequence[str] = (),
    ) -> None:
        with Session(self.engine) as session:
            row = session.get(AppUser, user_id)
            if row is None:
                row = AppUser(
                    user_id=user_id,
                    display_name=display_name,
                    role=role.value,
                    created_at=to_db_datetime(utc_now()),
                )
            row.display_name = display_name
            row.role = role.value
            row.email = email
            row.team_lead_id = team_lead_id
            row.is_active = is_active
            row.language_capabilities_json = dump_json(list(language_capabilities))
            session.add(row)
            session.commit()

    def upsert_farmer(  # noqa: PLR0913
        self,
        *,
        farmer_id: str,
        name: str | None = None,
        mobile_number: str | None = None,
        location: str | None = None,
        preferred_language: str | None = None,
        territory: str | None = None,
        photo_url: str | None = None,
    ) -> None:
        with Session(self.engine) as session:
            row = session.get(Farmer, farmer_id) or Farmer(farmer_id=farmer_id)
            row.name = name
            row.mobile_number = mobile_number
            row.location = location
            row.preferred_language = preferred_language
            row.territory = territory
            row.photo_url = photo_url
            session.add(row)
            session.commit()

    def upsert_activity(  # noqa: PLR0913
        self,
        *,
        activity_id: str,
        activity_type: str | None = None,
        activity_date: datetime | None = None,
        officer_name: str | None = None,
        tm_name: str | None = None,
        location: str | None = None,
        territory: str | None = None,
        state: str | None = None,
        bu_name: str | None = None,
        crops: Sequence[str] = (),
        products: Sequence[str] = (),
    ) -> None:
        with Session(self.engine) as session:
            row = session.get(Activity, activity_id) or Activity(activity_id=activity_id)
            row.activity_type = activity_type
            row.activity_date = (
                to_db_datetime(activity_date) if activity_date is not None else None
            )
            row.officer_name = officer_name
            row.tm_name = tm_name
            row.location = location
            row.territory = territory
            row.state = state
            row.bu_name = bu_name
            row.crops_json = dump_json(list(crops))
            row.products_json = dump_json(list(products))
            session.add(row)
            session.commit()

    def create_task(self, payload: TaskCreate) -> TaskView:
        """Insert a new task in the unassigned pool."""

        now = payload.created_at or utc_now()
        task_id = payload.task_id or str(uuid4())
        with Session(self.engine) as session:
            session.add(
                CallTask(
                    task_id=task_id,
                    farmer_id=payload.farmer_id,
                    activity_id=payload.activity_id,
                    status=TaskStatus.UNASSIGNED.value,
                    assigned_agent_id=None,
                    scheduled_date=to_db_datetime(payload.scheduled_date),
                    parent_task_id=payload.parent_task_id,
                    callback_number=payload.callback_number,
                    created_at=to_db_datetime(now),
                    updated_at=to_db_datetime(now),
                ),
            )
            session.commit()
            return self._load_view(session, task_id)

    # Reads

    def get_task(self, *, task_id: str) -> TaskView | None:
        with Session(self.engine) as session:
            row = session.exec(
                _task_select().where(col(CallTask.task_id) == task_id),
            ).one_or_none()
            if row is None:
                return None
            history = self._load_history(session, [task_id])
        return _to_task_view(*row, history=history.get(task_id, []))

    def list_open_tasks_for_agent(
        self,
        *,
        agent_id: str,
        limit: int | None = None,
    ) -> list[TaskView]:
        """Agent's sampled_in_queue/in_progress tasks, earliest due first."""

        statement = (
            _task_select()
            .where(
                col(CallTask.assigned_agent_id) == agent_id,
                col(CallTask.status).in_([status.value for status in lifecycle.OPEN_STATUSES]),
            )
            .order_by(*_queue_order())
        )
        if limit is not None:
            statement = statement.limit(limit)
        return self._fetch_views(statement)

    def list_pending_tasks(
        self,
        *,
        filters: PendingTaskFilters,
        page: int,
        limit: int,
    ) -> TaskPage:
        conditions = [
            col(CallTask.status).in_([status.value for status in lifecycle.OPEN_STATUSES]),
            *_pending_conditions(filters),
        ]
        return self._page(conditions, page=page, limit=limit)

    def count_tasks_by_status(self, *, filters: PendingTaskFilters) -> dict[TaskStatus, int]:
        """Per-status totals for the pending filter set across every status."""

        conditions = _pending_conditions(filters)
        with Session(self.engine) as session:
            rows = session.exec(
                _joined_from(select(CallTask.status, func.count()))
                .where(*conditions)
                .group_by(col(CallTask.status)),
            ).all()
        counts = {status: 0 for status in TaskStatus}
        for status, count in rows:
            counts[TaskStatus(status)] = int(count)
        return counts

    def list_team_tasks(
        self,
        *,
        agent_ids: Sequence[str],
        filters: TeamTaskFilters,
        page: int,
        limit: int,
    ) -> TaskPage:
        conditions: list[ColumnElement[bool]] = [
            col(CallTask.assigned_agent_id).in_(list(agent_ids)),
            *_window_conditions(filters.window),
        ]
        if filters.status is not None:
            conditions.append(col(CallTask.status) == filters.status.value)
        return self._page(conditions, page=page, limit=limit)

    def list_unassigned_tasks(
        self,
        *,
        filters: UnassignedTaskFilters,
        page: int,
        limit: int,
    ) -> TaskPage:
        conditions: list[ColumnElement[bool]] = [
            col(CallTask.status) == TaskStatus.UNASSIGNED.value,
            *_window_conditions(filters.window),
        ]
        if filters.language:
            conditions.append(col(Farmer.preferred_language) == filters.language.strip())
        return self._page(conditions, page=page, limit=limit)

    def list_allocation_candidates(
        self,
        *,
        language: str | None,
        window: DateWindow,
        limit: int,
        bu: str | None = None,
        state: str | None = None,
    ) -> list[AllocationCandidate]:
        """Unassigned tasks with their farmer language, earliest due first.

        ``language=None`` returns every language. ``bu`` and ``state`` match
        the originating activity exactly; activities without a stored state
        match on their "<State> Zone" territory.
        """

        statement = (
            select(
                CallTask.task_id,
                Farmer.preferred_language,
                CallTask.scheduled_date,
                CallTask.created_at,
            )
            .select_from(CallTask)
            .join(Farmer, col(Farmer.farmer_id) == col(CallTask.farmer_id))
            .where(
                col(CallTask.status) == TaskStatus.UNASSIGNED.value,
                *_window_conditions(window),
            )
        )
        if language is not None:
            statement = statement.where(col(Farmer.preferred_language) == language)
        if bu or state:
            statement = statement.join(
                Activity,
                col(Activity.activity_id) == col(CallTask.activity_id),
            )
            if bu:
                statement = statement.where(col(Activity.bu_name) == bu)
            if state:
                statement = statement.where(
                    or_(
                        col(Activity.state) == state,
                        and_(
                            col(Activity.state).is_(None),
                            col(Activity.territory) == f"{state} Zone",
                        ),
                    ),
                )
        statement = statement.order_by(*_queue_order()).limit(limit)

        with Session(self.engine) as session:
            rows = session.exec(statement).all()
        return [
            AllocationCandidate(
                task_id=task_id,
                farmer_language=farmer_language,
                scheduled_date=to_utc_aware_datetime(scheduled_date),
                created_at=to_utc_aware_datetime(created_at),
            )
            for task_id, farmer_language, scheduled_date, created_at in rows
        ]

    def count_unassigned_by_language(self, *, window: DateWindow) -> dict[str | None, int]:
        """Unassigned counts keyed by display language, merged on the allocator's bucket key.

        Spellings differing only in case or surrounding spaces share one entry
        labelled with the first spelling in sort order; ``None`` collects blank
        or missing languages.
        """

        with Session(self.engine) as session:
            rows = session.exec(
                select(Farmer.preferred_language, func.count())
                .select_from(CallTask)
                .join(Farmer, col(Farmer.farmer_id) == col(CallTask.farmer_id), isouter=True)
                .where(
                    col(CallTask.status) == TaskStatus.UNASSIGNED.value,
                    *_window_conditions(window),
                )
                .group_by(col(Farmer.preferred_language)),
            ).all()

        labels: dict[str, str | None] = {}
        counts: dict[str, int] = {}
        for language, count in sorted(rows, key=lambda row: (row[0] or "").strip()):
            key = normalize_language(language)
            labels.setdefault(key, language.strip() if key else None)
            counts[key] = counts.get(key, 0) + int(count)
        return {labels[key]: total for key, total in counts.items()}

    def count_open_by_agent(
        self,
        *,
        agent_ids: Sequence[str],
        window: DateWindow,
    ) -> dict[str, dict[TaskStatus, int]]:
        if not agent_ids:
            return {}
        with Session(self.engine) as session:
            rows = session.exec(
                select(CallTask.assigned_agent_id, CallTask.status, func.count())
                .where(
                    col(CallTask.assigned_agent_id).in_(list(agent_ids)),
                    col(CallTask.status).in_(
                        [status.value for status in lifecycle.OPEN_STATUSES],
                    ),
                    *_window_conditions(window),
                )
                .group_by(col(CallTask.assigned_agent_id), col(CallTask.status)),
            ).all()
        workload: dict[str, dict[TaskStatus, int]] = {}
        for agent_id, status, count in rows:
            if agent_id is None:
                continue
            workload.setdefault(agent_id, {})[TaskStatus(status)] = int(count)
        return workload

    # Transitions

    def apply_allocation(
        self,
        assignments: Sequence[Assignment],
        *,
        batch_size: int,
    ) -> AllocationWrite:
        """Write planned assignments in batches, one transaction per batch.

        A failing batch is rolled back and recorded; later batches still run
        and earlier ones stay committed.
        """

        write = AllocationWrite()
        for start in range(0, len(assignments), batch_size):
            batch = assignments[start : start + batch_size]
            try:
                write.allocated += self._flush_allocation_batch(batch)
            except SQLAlchemyError as error:
                logger.exception(
                    "Allocation batch of %d tasks starting at %s failed",
                    len(batch),
                    batch[0].task_id,
                )
                reason = error.orig if isinstance(error, DBAPIError) else error
                write.errors.append(f"Batch of {len(batch)} from {batch[0].task_id}: {reason}")
        return write

    def _flush_allocation_batch(self, batch: Sequence[Assignment]) -> int:
        now = utc_now()
        claimed = 0
        with Session(self.engine) as session:
            for assignment in batch:
                result = session.exec(
                    sa_update(CallTask)
                    .where(
                        col(CallTask.task_id) == assignment.task_id,
                        col(CallTask.status) == TaskStatus.UNASSIGNED.value,
                    )
                    .values(
                        status=TaskStatus.SAMPLED_IN_QUEUE.value,
                        assigned_agent_id=assignment.agent.agent_id,
                        updated_at=to_db_datetime(now),
                    ),
                )
                if result.rowcount != 1:
                    logger.debug("Task %s already claimed, skipping", assignment.task_id)
                    continue
                claimed += 1
                self._add_history(
                    session=session,
                    task_id=assignment.task_id,
                    status=TaskStatus.SAMPLED_IN_QUEUE,
                    notes=lifecycle.allocation_note(
                        assignment.agent.email or assignment.agent.name,
                    ),
                )
            session.commit()
        return claimed

    def load_task(
        self,
        *,
        task_id: str,
        agent_id: str,
        note: str = lifecycle.LOAD_NOTE,
    ) -> TaskView:
        """Move an agent's queued task to in_progress; no-op if already in progress."""

        now = utc_now()
        with Session(self.engine) as session:
            row = self._get_task_row(session=session, task_id=task_id)
            _ensure_assigned_to(row, agent_id)
            if not lifecycle.ensure_loadable(TaskStatus(row.status)):
                return self._load_view(session, task_id)

            result = session.exec(
                sa_update(CallTask)
                .where(
                    col(CallTask.task_id) == task_id,
                    col(CallTask.assigned_agent_id) == agent_id,
                    col(CallTask.status) == TaskStatus.SAMPLED_IN_QUEUE.value,
                )
                .values(
                    status=TaskStatus.IN_PROGRESS.value,
                    call_started_at=to_db_datetime(now),
                    updated_at=to_db_datetime(now),
                ),
            )
            if result.rowcount != 1:
                session.rollback()
                current = self._get_task_row(session=session, task_id=task_id)
                if (
                    current.status == TaskStatus.IN_PROGRESS.value
                    and current.assigned_agent_id == agent_id
                ):
                    return self._load_view(session, task_id)
                raise RaceLostError(
                    f"Task changed concurrently while loading (task_id={task_id}, "
                    f"status={current.status}).",
                )
            self._add_history(
                session=session,
                task_id=task_id,
                status=TaskStatus.IN_PROGRESS,
                notes=note,
            )
            session.commit()
            logger.info("Task %s loaded by agent %s", task_id, agent_id)
            return self._load_view(session, task_id)

    def submit_call_outcome(
        self,
        *,
        task_id: str,
        agent_id: str,
        call_log: CallLog,
    ) -> TaskView:
        """Record the call log and move an in-progress task to its terminal status."""

        now = utc_now()
        final_status = lifecycle.terminal_status_for_outcome(call_log.call_status)
        if call_log.timestamp is None:
            call_log.timestamp = now
        with Session(self.engine) as session:
            row = self._get_task_row(session=session, task_id=task_id)
            _ensure_assigned_to(row, agent_id)
            previous = TaskStatus(row.status)
            lifecycle.ensure_submittable(previous)

            result = session.exec(
                sa_update(CallTask)
                .where(
                    col(CallTask.task_id) == task_id,
                    col(CallTask.assigned_agent_id) == agent_id,
                    col(CallTask.status) == previous.value,
                )
                .values(
                    status=final_status.value,
                    call_log_json=dump_json(call_log.to_payload()),
                    updated_at=to_db_datetime(now),
                ),
            )
            if result.rowcount != 1:
                session.rollback()
                raise RaceLostError(
                    f"Task changed concurrently while submitting (task_id={task_id}).",
                )
            self._add_history(
                session=session,
                task_id=task_id,
                status=previous,
                notes=lifecycle.SUBMIT_NOTE,
            )
            session.commit()
            logger.info(
                "Task %s submitted by agent %s: %s -> %s",
                task_id,
                agent_id,
                call_log.call_status.value,
                final_status.value,
            )
            return self._load_view(session, task_id)

    def reassign_task(self, *, task_id: str, agent_id: str, agent_label: str) -> TaskView:
        """Put a task back in an agent's queue regardless of its current status.

        Not guarded by a status condition: concurrent supervisor writes are
        last-write-wins.
        """

        now = utc_now()
        with Session(self.engine) as session:
            row = self._get_task_row(session=session, task_id=task_id)
            previous = row.status
            session.exec(
                sa_update(CallTask)
                .where(col(CallTask.task_id) == task_id)
                .values(
                    status=TaskStatus.SAMPLED_IN_QUEUE.value,
                    assigned_agent_id=agent_id,
                    updated_at=to_db_datetime(now),
                ),
            )
            self._add_history(
                session=session,
                task_id=task_id,
                status=TaskStatus.SAMPLED_IN_QUEUE,
                notes=lifecycle.reassign_note(agent_label),
            )
            session.commit()
            logger.info("Task %s reassigned to %s (was %s)", task_id, agent_id, previous)
            return self._load_view(session, task_id)

    def override_status(
        self,
        *,
        task_id: str,
        status: TaskStatus,
        notes: str | None = None,
    ) -> TaskView:
        """Force an assigned task to ``status``; last write wins."""

        now = utc_now()
        with Session(self.engine) as session:
            row = self._get_task_row(session=session, task_id=task_id)
            previous = TaskStatus(row.status)
            lifecycle.ensure_overridable(previous)
            session.exec(
                sa_update(CallTask)
                .where(col(CallTask.task_id) == task_id)
                .values(status=status.value, updated_at=to_db_datetime(now)),
            )
            self._add_history(
                session=session,
                task_id=task_id,
                status=status,
                notes=lifecycle.override_note(previous, status, notes),
            )
            session.commit()
            logger.info("Task %s status updated to %s", task_id, status.value)
            return self._load_view(session, task_id)

    # Internals

    def _page(
        self,
        conditions: Sequence[ColumnElement[bool]],
        *,
        page: int,
        limit: int,
    ) -> TaskPage:
        with Session(self.engine) as session:
            total = session.exec(
                _joined_from(select(func.count())).where(*conditions),
            ).one()
        tasks = self._fetch_views(
            _task_select()
            .where(*conditions)
            .order_by(*_queue_order())
            .offset((page - 1) * limit)
            .limit(limit),
        )
        return TaskPage(tasks=tasks, page=page, limit=limit, total=int(total))

    def _fetch_views(self, statement: Any) -> list[TaskView]:
        with Session(self.engine) as session:
            rows = session.exec(statement).all()
            history = self._load_history(session, [row[0].task_id for row in rows])
        return [
            _to_task_view(*row, history=history.get(row[0].task_id, []))
            for row in rows
        ]

    def _load_view(self, session: Session, task_id: str) -> TaskView:
        row = session.exec(_task_select().where(col(CallTask.task_id) == task_id)).one()
        history = self._load_history(session, [task_id])
        return _to_task_view(*row, history=history.get(task_id, []))

    def _load_history(
        self,
        session: Session,
        task_ids: Iterable[str],
    ) -> dict[str, list[InteractionEntry]]:
        ids = list(task_ids)
        if not ids:
            return {}
        rows = session.exec(
            select(CallTaskHistory)
            .where(col(CallTaskHistory.task_id).in_(ids))
            .order_by(col(CallTaskHistory.history_id).asc()),
        ).all()
        history: dict[str, list[InteractionEntry]] = {}
        for row in rows:
            history.setdefault(row.task_id, []).append(
                InteractionEntry(
                    history_id=row.history_id or 0,
                    timestamp=to_utc_aware_datetime(row.created_at),
                    status=TaskStatus(row.status),
                    notes=row.notes,
                ),
            )
        return history

    def _get_task_row(self, *, session: Session, task_id: str) -> CallTask:
        row = session.exec(
            select(CallTask).where(col(CallTask.task_id) == task_id),
        ).one_or_none()
        if row is None:
            raise NotFoundError(f"Task not found: {task_id}")
        return row

    def _add_history(
        self,
        *,
        session: Session,
        task_id: str,
        status: TaskStatus,
        notes: str,
    ) -> None:
        session.add(
            CallTaskHistory(
                task_id=task_id,
                status=status.value,
                notes=notes,
                created_at=to_db_datetime(utc_now()),
            ),
        )


def _task_select() -> Any:
    return (
        select(CallTask, Farmer, Activity, AppUser)
        .select_from(CallTask)
        .join(Farmer, col(Farmer.farmer_id) == col(CallTask.farmer_id), isouter=True)
        .join(Activity, col(Activity.activity_id) == col(CallTask.activity_id), isouter=True)
        .join(AppUser, col(AppUser.user_id) == col(CallTask.assigned_agent_id), isouter=True)
    )


def _joined_from(statement: Any) -> Any:
    return (
        statement.select_from(CallTask)
        .join(Farmer, col(Farmer.farmer_id) == col(CallTask.farmer_id), isouter=True)
        .join(Activity, col(Activity.activity_id) == col(CallTask.activity_id), isouter=True)
    )


def _queue_order() -> tuple[Any, ...]:
    return (
        col(CallTask.scheduled_date).asc(),
        col(CallTask.created_at).asc(),
        col(CallTask.task_id).asc(),
    )


def _window_conditions(window: DateWindow) -> list[ColumnElement[bool]]:
    start, end = window_bounds(window)
    conditions: list[ColumnElement[bool]] = []
    if start is not None:
        conditions.append(col(CallTask.scheduled_date) >= to_db_datetime(start))
    if end is not None:
        conditions.append(col(CallTask.scheduled_date) < to_db_datetime(end))
    return conditions


def _pending_conditions(filters: PendingTaskFilters) -> list[ColumnElement[bool]]:
    conditions = _window_conditions(filters.window)
    if filters.agent_id:
        conditions.append(col(CallTask.assigned_agent_id) == filters.agent_id)
    if filters.territory:
        conditions.append(col(Activity.territory) == filters.territory)
    if filters.search and filters.search.strip():
        term = filters.search.strip()
        conditions.append(
            or_(
                col(Farmer.name).icontains(term, autoescape=True),
                col(Farmer.mobile_number).contains(term, autoescape=True),
            ),
        )
    return conditions


def _ensure_assigned_to(row: CallTask, agent_id: str) -> None:
    if row.assigned_agent_id is None or row.assigned_agent_id != agent_id:
        raise ForbiddenError(f"Task {row.task_id} is not assigned to agent {agent_id}")


def _to_farmer_info(row: CallTask, farmer: Farmer | None) -> FarmerInfo:
    if farmer is None:
        return FarmerInfo(farmer_id=row.farmer_id)
    return FarmerInfo(
        farmer_id=farmer.farmer_id,
        name=farmer.name or UNKNOWN,
        mobile_number=farmer.mobile_number or UNKNOWN,
        location=farmer.location or UNKNOWN,
        preferred_language=farmer.preferred_language or UNKNOWN,
        territory=farmer.territory or UNKNOWN,
        photo_url=farmer.photo_url,
    )


def _to_activity_info(row: CallTask, activity: Activity | None) -> ActivityInfo:
    if activity is None:
        return ActivityInfo(activity_id=row.activity_id)
    return ActivityInfo(
        activity_id=activity.activity_id,
        activity_type=activity.activity_type or UNKNOWN,
        activity_date=(
            to_utc_aware_datetime(activity.activity_date)
            if activity.activity_date is not None
            else None
        ),
        officer_name=activity.officer_name or UNKNOWN,
        tm_name=activity.tm_name or "",
        location=activity.location or UNKNOWN,
        territory=activity.territory or UNKNOWN,
        state=activity.state or _state_from_territory(activity.territory),
        bu_name=activity.bu_name or "",
        crops=load_json_list(activity.crops_json),
        products=load_json_list(activity.products_json),
    )


def _state_from_territory(territory: str | None) -> str:
    """Legacy activities carry no state; their territory is "<State> Zone"."""

    if not territory or territory == UNKNOWN:
        return ""
    return _ZONE_SUFFIX.sub("", territory).strip()


def _to_call_log(raw: str | None) -> CallLog | None:
    if not raw:
        return None
    payload = json.loads(raw)
    if not isinstance(payload, dict):
        return None
    return CallLog.from_payload(payload)


def _to_task_view(
    row: CallTask,
    farmer: Farmer | None,
    activity: Activity | None,
    agent: AppUser | None,
    *,
    history: Sequence[InteractionEntry],
) -> TaskView:
    return TaskView(
        task_id=row.task_id,
        status=TaskStatus(row.status),
        assigned_agent_id=row.assigned_agent_id,
        assigned_agent_name=agent.display_name if agent is not None else None,
        farmer=_to_farmer_info(row, farmer),
        activity=_to_activity_info(row, activity),
        scheduled_date=to_utc_aware_datetime(row.scheduled_date),
        call_started_at=(
            to_utc_aware_datetime(row.call_started_at)
            if row.call_started_at is not None
            else None
        ),
        retry_count=row.retry_count,
        call_log=_to_call_log(row.call_log_json),
        parent_task_id=row.parent_task_id,
        callback_number=row.callback_number,
        created_at=to_utc_aware_datetime(row.created_at),
        updated_at=to_utc_aware_datetime(row.updated_at),
        interaction_history=tuple(history),
    )
