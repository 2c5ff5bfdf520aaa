"""Best-effort bulk mutation over lists of task ids."""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence

from outreach_queue.tasks import lifecycle
from outreach_queue.tasks.errors import TaskError
from outreach_queue.tasks.models import BatchItemError, BatchResult, TaskStatus, TaskView
from outreach_queue.tasks.validation import validate_identifier, validate_identifiers

logger = logging.getLogger(__name__)

ReassignOperation = Callable[[str, str], TaskView]
OverrideOperation = Callable[[str, TaskStatus, str | None], TaskView]


class BulkMutationExecutor:
    """Apply single-task supervisor operations to each id independently.

    The whole request is validated before anything is written. After that,
    one id failing never stops or undoes the others.
    """

    def __init__(self, *, reassign: ReassignOperation, override: OverrideOperation) -> None:
        self._reassign = reassign
        self._override = override

    def bulk_reassign(self, task_ids: Sequence[object], agent_id: str) -> BatchResult:
        ids = validate_identifiers(task_ids, kind="task")
        agent_id = validate_identifier(agent_id, kind="agent")
        return self._run(ids, lambda task_id: self._reassign(task_id, agent_id), action="reassign")

    def bulk_override_status(
        self,
        task_ids: Sequence[object],
        status: str | TaskStatus,
        notes: str | None = None,
    ) -> BatchResult:
        ids = validate_identifiers(task_ids, kind="task")
        target = lifecycle.parse_override_target(status)
        return self._run(
            ids,
            lambda task_id: self._override(task_id, target, notes),
            action=f"status update to {target.value}",
        )

    def _run(
        self,
        task_ids: list[str],
        operation: Callable[[str], TaskView],
        *,
        action: str,
    ) -> BatchResult:
        batch = BatchResult()
        for task_id in task_ids:
            try:
                batch.results.append(operation(task_id))
            except TaskError as error:
                logger.debug("Bulk %s failed for task %s: %s", action, task_id, error)
                batch.errors.append(
                    BatchItemError(task_id=task_id, error=str(error), code=error.code),
                )
        logger.info(
            "Bulk %s: %d succeeded, %d failed",
            action,
            batch.successful,
            batch.failed,
        )
        return batch
