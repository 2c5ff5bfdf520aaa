"""Fair round-robin distribution of unassigned tasks to language-capable agents.

Allocation happens in two steps. ``plan`` reads one snapshot of candidates and
walks them deterministically; ``apply`` flushes the planned assignments as
conditional writes. Tasks claimed by someone else between the two steps are
simply not counted in ``allocated``; a batch whose write fails is rolled back
and reported in ``errors`` while the remaining batches are still flushed.
"""

from __future__ import annotations

import logging
from collections import Counter, deque

from outreach_queue.config import AllocationSettings
from outreach_queue.tasks.errors import NoCapableAgentsError, ValidationError
from outreach_queue.tasks.models import (
    UNKNOWN,
    AgentView,
    AgentWorkload,
    AllocationCandidate,
    AllocationOverview,
    AllocationPlan,
    AllocationRequest,
    AllocationResult,
    AllocationWrite,
    Assignment,
    DateWindow,
    LanguageBacklog,
    TaskStatus,
    normalize_language,
)
from outreach_queue.tasks.registry import AgentRegistry
from outreach_queue.tasks.repository import TaskRepository
from outreach_queue.tasks.validation import validate_window

logger = logging.getLogger(__name__)

ALL_LANGUAGES = frozenset({"all", "__all__"})
UNKNOWN_LANGUAGE_KEY = "unknown"


def is_all_languages(language: str) -> bool:
    return normalize_language(language) in ALL_LANGUAGES


class FairAllocator:
    def __init__(
        self,
        repository: TaskRepository,
        registry: AgentRegistry,
        settings: AllocationSettings,
    ) -> None:
        self.repository = repository
        self.registry = registry
        self.settings = settings

    def allocate(self, *, team_lead_id: str, request: AllocationRequest) -> AllocationResult:
        return self.apply(self.plan(team_lead_id=team_lead_id, request=request))

    def plan(self, *, team_lead_id: str, request: AllocationRequest) -> AllocationPlan:
        """Compute assignments for the lead's team without writing anything."""

        count = self._requested_count(request.count)
        validate_window(request.window)
        language = request.language.strip() if request.language else ""
        if not language:
            raise ValidationError("language is required")

        team = self.registry.team_agents(team_lead_id)
        if is_all_languages(language):
            return self._plan_all_languages(team=team, count=count, request=request)
        return self._plan_single_language(
            language=language,
            team=team,
            count=count,
            request=request,
        )

    def apply(self, plan: AllocationPlan) -> AllocationResult:
        write = AllocationWrite()
        if plan.assignments:
            write = self.repository.apply_allocation(
                plan.assignments,
                batch_size=self.settings.batch_size,
            )
        allocated = write.allocated
        if write.errors:
            logger.warning(
                "Allocation %s: %d write batches failed",
                plan.language,
                len(write.errors),
            )
        elif allocated < len(plan.assignments):
            logger.info(
                "Allocation %s: %d of %d planned tasks were already claimed",
                plan.language,
                len(plan.assignments) - allocated,
                len(plan.assignments),
            )
        logger.info(
            "Allocated %d/%d %s tasks across %d agents",
            allocated,
            len(plan.selected),
            plan.language,
            len(plan.capable_agents),
        )
        return AllocationResult(
            language=plan.language,
            requested_count=plan.requested_count,
            matched_tasks=len(plan.selected),
            allocated=allocated,
            agents_used=list(plan.capable_agents),
            skipped_by_language=dict(plan.skipped_by_language),
            errors=list(write.errors),
        )

    def overview(self, *, team_lead_id: str, window: DateWindow) -> AllocationOverview:
        """Unassigned backlog per language and the open workload of each team agent."""

        validate_window(window)
        backlog = self.repository.count_unassigned_by_language(window=window)
        unassigned = sorted(
            (
                LanguageBacklog(language=language or UNKNOWN, unassigned=count)
                for language, count in backlog.items()
            ),
            key=lambda row: (row.language == UNKNOWN, row.language.lower()),
        )

        team = self.registry.team_agents(team_lead_id)
        open_counts = self.repository.count_open_by_agent(
            agent_ids=[agent.user_id for agent in team],
            window=window,
        )
        workload = [
            AgentWorkload(
                agent=agent.to_ref(),
                language_capabilities=agent.language_capabilities,
                sampled_in_queue=open_counts.get(agent.user_id, {}).get(
                    TaskStatus.SAMPLED_IN_QUEUE,
                    0,
                ),
                in_progress=open_counts.get(agent.user_id, {}).get(TaskStatus.IN_PROGRESS, 0),
            )
            for agent in team
        ]
        return AllocationOverview(unassigned_by_language=unassigned, agent_workload=workload)

    def _requested_count(self, count: int | None) -> int:
        if count is None:
            return 0
        if not 0 <= count <= self.settings.server_cap:
            raise ValidationError(
                f"count must be between 0 and {self.settings.server_cap}, got {count}",
            )
        return count

    def _plan_single_language(
        self,
        *,
        language: str,
        team: list[AgentView],
        count: int,
        request: AllocationRequest,
    ) -> AllocationPlan:
        capable = [agent for agent in team if agent.speaks(language)]
        if not capable:
            raise NoCapableAgentsError(f"No active agents found with {language} capability")

        candidates = self.repository.list_allocation_candidates(
            language=language,
            window=request.window,
            bu=_blank_to_none(request.bu),
            state=_blank_to_none(request.state),
            limit=self.settings.server_cap,
        )
        selected = candidates[:count] if count else candidates
        assignments = [
            Assignment(task_id=candidate.task_id, agent=capable[cursor % len(capable)].to_ref())
            for cursor, candidate in enumerate(selected)
        ]
        return AllocationPlan(
            language=language,
            requested_count=count,
            capable_agents=[agent.to_ref() for agent in capable],
            selected=selected,
            assignments=assignments,
        )

    def _plan_all_languages(
        self,
        *,
        team: list[AgentView],
        count: int,
        request: AllocationRequest,
    ) -> AllocationPlan:
        if not team:
            raise NoCapableAgentsError("No active agents found in the team")

        agents_by_language: dict[str, list[AgentView]] = {}
        for agent in team:
            for capability in dict.fromkeys(
                normalize_language(cap) for cap in agent.language_capabilities
            ):
                if capability:
                    agents_by_language.setdefault(capability, []).append(agent)

        candidates = self.repository.list_allocation_candidates(
            language=None,
            window=request.window,
            bu=_blank_to_none(request.bu),
            state=_blank_to_none(request.state),
            limit=self.settings.server_cap,
        )
        selected = _take_round_robin(
            candidates,
            target=count or self.settings.server_cap,
        )

        cursors: Counter[str] = Counter()
        skipped: Counter[str] = Counter()
        assignments: list[Assignment] = []
        for candidate in selected:
            key = _language_key(candidate)
            pool = agents_by_language.get(key)
            if not pool:
                skipped[key] += 1
                continue
            assignments.append(
                Assignment(task_id=candidate.task_id, agent=pool[cursors[key] % len(pool)].to_ref()),
            )
            cursors[key] += 1

        for language, skipped_count in sorted(skipped.items()):
            logger.warning(
                "Skipped %d %s tasks: no capable agent in team",
                skipped_count,
                language,
            )
        return AllocationPlan(
            language="ALL",
            requested_count=count,
            capable_agents=[agent.to_ref() for agent in team],
            selected=selected,
            assignments=assignments,
            skipped_by_language=dict(skipped),
        )


def _language_key(candidate: AllocationCandidate) -> str:
    return normalize_language(candidate.farmer_language) or UNKNOWN_LANGUAGE_KEY


def _take_round_robin(
    candidates: list[AllocationCandidate],
    *,
    target: int,
) -> list[AllocationCandidate]:
    """Take one task per language bucket per round, buckets in alphabetical order.

    Each bucket keeps candidate order, so every round takes the earliest-due
    remaining task of each language.
    """

    buckets: dict[str, deque[AllocationCandidate]] = {}
    for candidate in candidates:
        buckets.setdefault(_language_key(candidate), deque()).append(candidate)

    keys = sorted(buckets)
    selected: list[AllocationCandidate] = []
    while len(selected) < target and any(buckets[key] for key in keys):
        for key in keys:
            if len(selected) >= target:
                break
            if buckets[key]:
                selected.append(buckets[key].popleft())
    return selected


def _blank_to_none(value: str | None) -> str | None:
    if value is None:
        return None
    return value.strip() or None
