"""Error taxonomy for task operations."""

from __future__ import annotations


class TaskError(Exception):
    """Base class for failures reported by task operations."""

    code = "task_error"


class NotFoundError(TaskError):
    code = "not_found"


class ForbiddenError(TaskError):
    """Caller is not the assigned agent or lacks the required scope."""

    code = "forbidden"


class InvalidStateError(TaskError):
    """Transition is not allowed from the task's current status."""

    code = "invalid_state"


class NoCapableAgentsError(TaskError):
    code = "no_capable_agents"


class ValidationError(TaskError):
    """Malformed identifier, enum value or request bound."""

    code = "validation_error"


class RaceLostError(TaskError):
    """A conditional write matched zero rows; another actor got there first."""

    code = "race_lost"
