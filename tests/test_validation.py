from __future__ import annotations

from datetime import UTC, date, datetime

import allure
import pytest

from outreach_queue.tasks.errors import ForbiddenError, ValidationError
from outreach_queue.tasks.models import DateWindow, Role
from outreach_queue.tasks.permissions import (
    Caller,
    Permission,
    authorize,
    has_permission,
)
from outreach_queue.tasks.validation import (
    validate_identifier,
    validate_identifiers,
    validate_page,
    validate_window,
    window_bounds,
)

pytestmark = [
    allure.epic("Task Lifecycle"),
    allure.feature("Request Guards"),
]


@pytest.mark.parametrize("value", ["bulk", "BULK", "Bulk"])
def test_bulk_token_is_never_an_identifier(value: str) -> None:
    with pytest.raises(ValidationError, match="reserved"):
        validate_identifier(value)


@pytest.mark.parametrize("value", ["", "-leading", "has space", "a" * 65, "x/y", 42, None])
def test_malformed_identifiers_are_rejected(value: object) -> None:
    with pytest.raises(ValidationError):
        validate_identifier(value)


def test_well_formed_identifiers_pass() -> None:
    assert validate_identifier("3f2c9a0e-7b1d-4f7e-9d4a-0c1b2a3d4e5f") is not None
    assert validate_identifiers(["task-1", "task_2"]) == ["task-1", "task_2"]


def test_identifier_list_must_be_a_non_empty_list() -> None:
    with pytest.raises(ValidationError, match="non-empty"):
        validate_identifiers([])
    with pytest.raises(ValidationError, match="non-empty"):
        validate_identifiers("task-1")


def test_page_bounds() -> None:
    assert validate_page(1, 100, max_limit=100) == (1, 100)
    with pytest.raises(ValidationError):
        validate_page(0, 20, max_limit=100)
    with pytest.raises(ValidationError):
        validate_page(1, 101, max_limit=100)


def test_window_covers_whole_calendar_days() -> None:
    start, end = window_bounds(DateWindow(date_from=date(2026, 10, 1), date_to=date(2026, 10, 3)))

    assert start == datetime(2026, 10, 1, tzinfo=UTC)
    assert end == datetime(2026, 10, 4, tzinfo=UTC)
    assert window_bounds(DateWindow()) == (None, None)


def test_reversed_window_is_rejected() -> None:
    with pytest.raises(ValidationError, match="after"):
        validate_window(DateWindow(date_from=date(2026, 10, 5), date_to=date(2026, 10, 1)))


def test_role_permissions() -> None:
    assert has_permission(Role.CC_AGENT, Permission.SUBMIT)
    assert not has_permission(Role.CC_AGENT, Permission.REASSIGN)
    assert has_permission(Role.TEAM_LEAD, Permission.REASSIGN)
    assert not has_permission(Role.TEAM_LEAD, Permission.VIEW_ALL)
    assert all(has_permission(Role.MIS_ADMIN, permission) for permission in Permission)
    assert not any(has_permission(Role.MARKETING_HEAD, permission) for permission in Permission)


def test_authorize_raises_forbidden() -> None:
    authorize(Caller(user_id="lead-1", role=Role.TEAM_LEAD), Permission.VIEW_TEAM)
    with pytest.raises(ForbiddenError, match="tasks.reassign"):
        authorize(Caller(user_id="agent-1", role=Role.CC_AGENT), Permission.REASSIGN)
