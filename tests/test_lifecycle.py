from __future__ import annotations

import allure
import pytest

from outreach_queue.tasks import lifecycle
from outreach_queue.tasks.errors import InvalidStateError, ValidationError
from outreach_queue.tasks.models import CallStatus, TaskStatus

pytestmark = [
    allure.epic("Task Lifecycle"),
    allure.feature("Transition Rules"),
]


@pytest.mark.parametrize(
    ("call_status", "expected"),
    [
        (CallStatus.NOT_REACHABLE, TaskStatus.NOT_REACHABLE),
        (CallStatus.INVALID_NUMBER, TaskStatus.INVALID_NUMBER),
        (CallStatus.CONNECTED, TaskStatus.COMPLETED),
        (CallStatus.NO_ANSWER, TaskStatus.COMPLETED),
        (CallStatus.DISCONNECTED, TaskStatus.COMPLETED),
        (CallStatus.INVALID, TaskStatus.COMPLETED),
    ],
)
def test_outcome_maps_to_terminal_status(call_status: CallStatus, expected: TaskStatus) -> None:
    assert lifecycle.terminal_status_for_outcome(call_status) == expected
    assert expected in lifecycle.TERMINAL_STATUSES


def test_load_is_idempotent_only_from_in_progress() -> None:
    assert lifecycle.ensure_loadable(TaskStatus.SAMPLED_IN_QUEUE) is True
    assert lifecycle.ensure_loadable(TaskStatus.IN_PROGRESS) is False
    for status in (TaskStatus.UNASSIGNED, TaskStatus.COMPLETED, TaskStatus.NOT_REACHABLE):
        with pytest.raises(InvalidStateError):
            lifecycle.ensure_loadable(status)


def test_submit_requires_in_progress() -> None:
    lifecycle.ensure_submittable(TaskStatus.IN_PROGRESS)
    with pytest.raises(InvalidStateError, match="in_progress"):
        lifecycle.ensure_submittable(TaskStatus.SAMPLED_IN_QUEUE)


def test_override_never_targets_unassigned() -> None:
    with pytest.raises(ValidationError, match="cannot be set by override"):
        lifecycle.parse_override_target("unassigned")
    with pytest.raises(ValidationError, match="Invalid status"):
        lifecycle.parse_override_target("done")
    assert lifecycle.parse_override_target(" completed ") == TaskStatus.COMPLETED


def test_override_rejects_tasks_still_in_pool() -> None:
    with pytest.raises(InvalidStateError):
        lifecycle.ensure_overridable(TaskStatus.UNASSIGNED)
    lifecycle.ensure_overridable(TaskStatus.COMPLETED)


def test_override_note_defaults_to_status_change() -> None:
    assert (
        lifecycle.override_note(TaskStatus.IN_PROGRESS, TaskStatus.COMPLETED, None)
        == "Status changed from in_progress to completed"
    )
    assert lifecycle.override_note(TaskStatus.IN_PROGRESS, TaskStatus.COMPLETED, "  ok ") == "ok"


def test_labels_for_reporting() -> None:
    assert lifecycle.status_label(TaskStatus.SAMPLED_IN_QUEUE) == "Sampled - in queue"
    assert lifecycle.outcome_label(TaskStatus.COMPLETED) == "Completed Conversation"
    assert lifecycle.outcome_label(TaskStatus.INVALID_NUMBER) == "Unsuccessful"
    assert lifecycle.outcome_label(TaskStatus.UNASSIGNED) == "Unknown"


def test_call_status_parsing() -> None:
    assert lifecycle.parse_call_status("Not Reachable") == CallStatus.NOT_REACHABLE
    with pytest.raises(ValidationError):
        lifecycle.parse_call_status("Busy")
