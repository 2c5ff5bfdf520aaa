"""Task lifecycle rules: statuses, guarded transitions and history notes.

The repository performs the writes; this module only decides whether a
transition is legal and what it leads to.

    unassigned --allocate--> sampled_in_queue --load--> in_progress --submit--> terminal

Supervisors may reassign any task back to ``sampled_in_queue`` or override an
assigned task to any status except ``unassigned``.
"""

from __future__ import annotations

from outreach_queue.tasks.errors import InvalidStateError, ValidationError
from outreach_queue.tasks.models import CallStatus, TaskStatus

OPEN_STATUSES = frozenset({TaskStatus.SAMPLED_IN_QUEUE, TaskStatus.IN_PROGRESS})
TERMINAL_STATUSES = frozenset(
    {TaskStatus.COMPLETED, TaskStatus.NOT_REACHABLE, TaskStatus.INVALID_NUMBER},
)
OVERRIDE_TARGETS = frozenset(
    {
        TaskStatus.SAMPLED_IN_QUEUE,
        TaskStatus.IN_PROGRESS,
        TaskStatus.COMPLETED,
        TaskStatus.NOT_REACHABLE,
        TaskStatus.INVALID_NUMBER,
    },
)

TASK_STATUS_LABELS: dict[TaskStatus, str] = {
    TaskStatus.UNASSIGNED: "Unassigned",
    TaskStatus.SAMPLED_IN_QUEUE: "Sampled - in queue",
    TaskStatus.IN_PROGRESS: "In Progress",
    TaskStatus.COMPLETED: "Completed",
    TaskStatus.NOT_REACHABLE: "Not Reachable",
    TaskStatus.INVALID_NUMBER: "Invalid Number",
}

LOAD_NOTE = "Task selected by agent"
NEXT_TASK_NOTE = "Task loaded by agent"
SUBMIT_NOTE = "Call interaction submitted"


def status_label(status: TaskStatus) -> str:
    return TASK_STATUS_LABELS.get(status, status.value)


def outcome_label(status: TaskStatus) -> str:
    """Reporting outcome for a status."""

    if status == TaskStatus.COMPLETED:
        return "Completed Conversation"
    if status == TaskStatus.IN_PROGRESS:
        return "In Progress"
    if status in {TaskStatus.NOT_REACHABLE, TaskStatus.INVALID_NUMBER}:
        return "Unsuccessful"
    return "Unknown"


def parse_status(value: str | TaskStatus) -> TaskStatus:
    if isinstance(value, TaskStatus):
        return value
    try:
        return TaskStatus(value.strip())
    except ValueError as error:
        raise ValidationError(f"Invalid status: {value!r}") from error


def parse_override_target(value: str | TaskStatus) -> TaskStatus:
    status = parse_status(value)
    if status not in OVERRIDE_TARGETS:
        raise ValidationError(
            f"Status {status.value!r} cannot be set by override; "
            f"allowed: {', '.join(sorted(s.value for s in OVERRIDE_TARGETS))}",
        )
    return status


def parse_call_status(value: str | CallStatus) -> CallStatus:
    if isinstance(value, CallStatus):
        return value
    try:
        return CallStatus(value.strip())
    except ValueError as error:
        raise ValidationError(f"Invalid call status: {value!r}") from error


def terminal_status_for_outcome(call_status: CallStatus) -> TaskStatus:
    if call_status == CallStatus.NOT_REACHABLE:
        return TaskStatus.NOT_REACHABLE
    if call_status == CallStatus.INVALID_NUMBER:
        return TaskStatus.INVALID_NUMBER
    return TaskStatus.COMPLETED


def ensure_loadable(status: TaskStatus) -> bool:
    """Return True when loading changes status, False for the idempotent re-load."""

    if status == TaskStatus.SAMPLED_IN_QUEUE:
        return True
    if status == TaskStatus.IN_PROGRESS:
        return False
    raise InvalidStateError(f"Task is not available to load (status={status.value}).")


def ensure_submittable(status: TaskStatus) -> None:
    if status != TaskStatus.IN_PROGRESS:
        raise InvalidStateError(
            f"Call outcome can only be submitted for in_progress tasks (status={status.value}).",
        )


def ensure_overridable(status: TaskStatus) -> None:
    if status == TaskStatus.UNASSIGNED:
        raise InvalidStateError(
            "Unassigned tasks leave the pool through allocation or reassignment only.",
        )


def override_note(previous: TaskStatus, target: TaskStatus, notes: str | None) -> str:
    if notes and notes.strip():
        return notes.strip()
    return f"Status changed from {previous.value} to {target.value}"


def allocation_note(agent_label: str) -> str:
    return f"Allocated by Team Lead (auto) to {agent_label}"


def reassign_note(agent_label: str) -> str:
    return f"Reassigned by supervisor to {agent_label}"
