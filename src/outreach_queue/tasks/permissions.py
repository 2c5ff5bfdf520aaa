"""Role to permission mapping and the ``authorize`` check injected into services."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum

from outreach_queue.tasks.errors import ForbiddenError
from outreach_queue.tasks.models import Role


class Permission(str, Enum):
    VIEW_OWN = "tasks.view.own"
    VIEW_TEAM = "tasks.view.team"
    VIEW_ALL = "tasks.view.all"
    SUBMIT = "tasks.submit"
    REASSIGN = "tasks.reassign"


ROLE_PERMISSIONS: dict[Role, frozenset[Permission]] = {
    Role.CC_AGENT: frozenset({Permission.VIEW_OWN, Permission.SUBMIT}),
    Role.TEAM_LEAD: frozenset({Permission.VIEW_OWN, Permission.VIEW_TEAM, Permission.REASSIGN}),
    Role.MIS_ADMIN: frozenset(Permission),
    Role.CORE_SALES_HEAD: frozenset(),
    Role.MARKETING_HEAD: frozenset(),
}


@dataclass(frozen=True, slots=True)
class Caller:
    """Authenticated actor on whose behalf an operation runs."""

    user_id: str
    role: Role


Authorizer = Callable[[Caller, Permission], None]


def has_permission(role: Role, permission: Permission) -> bool:
    return permission in ROLE_PERMISSIONS.get(role, frozenset())


def authorize(caller: Caller, permission: Permission) -> None:
    """Raise ``ForbiddenError`` unless the caller's role grants the permission."""

    if not has_permission(caller.role, permission):
        raise ForbiddenError(
            f"Insufficient permissions: {caller.role.value} lacks {permission.value}",
        )
