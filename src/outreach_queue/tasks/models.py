"""Domain models for call tasks, agents and allocation."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Any

UNKNOWN = "Unknown"


class TaskStatus(str, Enum):
    """Call task lifecycle states."""

    UNASSIGNED = "unassigned"
    SAMPLED_IN_QUEUE = "sampled_in_queue"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    NOT_REACHABLE = "not_reachable"
    INVALID_NUMBER = "invalid_number"


class CallStatus(str, Enum):
    """Raw outbound call outcome reported by an agent."""

    CONNECTED = "Connected"
    DISCONNECTED = "Disconnected"
    INCOMING_NA = "Incoming N/A"
    NO_ANSWER = "No Answer"
    INVALID = "Invalid"
    NOT_REACHABLE = "Not Reachable"
    INVALID_NUMBER = "Invalid Number"


class Sentiment(str, Enum):
    POSITIVE = "Positive"
    NEGATIVE = "Negative"
    NEUTRAL = "Neutral"
    NOT_APPLICABLE = "N/A"


class Role(str, Enum):
    """User roles known to the task engine."""

    CC_AGENT = "cc_agent"
    TEAM_LEAD = "team_lead"
    MIS_ADMIN = "mis_admin"
    CORE_SALES_HEAD = "core_sales_head"
    MARKETING_HEAD = "marketing_head"


@dataclass(slots=True)
class PurchasedProduct:
    product: str = ""
    quantity: str = ""
    unit: str = "kg"


@dataclass(slots=True)
class CallLog:
    """Structured outcome captured when an agent submits a call."""

    call_status: CallStatus
    timestamp: datetime | None = None
    call_duration_seconds: int = 0
    did_attend: str | None = None
    did_recall: bool | None = None
    crops_discussed: list[str] = field(default_factory=list)
    products_discussed: list[str] = field(default_factory=list)
    has_purchased: bool | None = None
    willing_to_purchase: bool | None = None
    likely_purchase_date: str = ""
    non_purchase_reason: str = ""
    purchased_products: list[PurchasedProduct] = field(default_factory=list)
    farmer_comments: str = ""
    sentiment: Sentiment = Sentiment.NOT_APPLICABLE

    def to_payload(self) -> dict[str, Any]:
        return {
            "call_status": self.call_status.value,
            "timestamp": self.timestamp.isoformat() if self.timestamp is not None else None,
            "call_duration_seconds": self.call_duration_seconds,
            "did_attend": self.did_attend,
            "did_recall": self.did_recall,
            "crops_discussed": list(self.crops_discussed),
            "products_discussed": list(self.products_discussed),
            "has_purchased": self.has_purchased,
            "willing_to_purchase": self.willing_to_purchase,
            "likely_purchase_date": self.likely_purchase_date,
            "non_purchase_reason": self.non_purchase_reason,
            "purchased_products": [
                {"product": item.product, "quantity": item.quantity, "unit": item.unit}
                for item in self.purchased_products
            ],
            "farmer_comments": self.farmer_comments,
            "sentiment": self.sentiment.value,
        }

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> CallLog:
        timestamp = payload.get("timestamp")
        return cls(
            call_status=CallStatus(payload["call_status"]),
            timestamp=datetime.fromisoformat(timestamp) if timestamp else None,
            call_duration_seconds=int(payload.get("call_duration_seconds") or 0),
            did_attend=payload.get("did_attend"),
            did_recall=payload.get("did_recall"),
            crops_discussed=list(payload.get("crops_discussed") or []),
            products_discussed=list(payload.get("products_discussed") or []),
            has_purchased=payload.get("has_purchased"),
            willing_to_purchase=payload.get("willing_to_purchase"),
            likely_purchase_date=payload.get("likely_purchase_date") or "",
            non_purchase_reason=payload.get("non_purchase_reason") or "",
            purchased_products=[
                PurchasedProduct(
                    product=item.get("product", ""),
                    quantity=item.get("quantity", ""),
                    unit=item.get("unit", "kg"),
                )
                for item in payload.get("purchased_products") or []
            ],
            farmer_comments=payload.get("farmer_comments") or "",
            sentiment=Sentiment(payload.get("sentiment") or Sentiment.NOT_APPLICABLE.value),
        )


@dataclass(slots=True)
class InteractionEntry:
    """One append-only history row."""

    history_id: int
    timestamp: datetime
    status: TaskStatus
    notes: str


@dataclass(slots=True)
class FarmerInfo:
    farmer_id: str
    name: str = UNKNOWN
    mobile_number: str = UNKNOWN
    location: str = UNKNOWN
    preferred_language: str = UNKNOWN
    territory: str = UNKNOWN
    photo_url: str | None = None


@dataclass(slots=True)
class ActivityInfo:
    activity_id: str
    activity_type: str = UNKNOWN
    activity_date: datetime | None = None
    officer_name: str = UNKNOWN
    tm_name: str = ""
    location: str = UNKNOWN
    territory: str = UNKNOWN
    state: str = ""
    bu_name: str = ""
    crops: list[str] = field(default_factory=list)
    products: list[str] = field(default_factory=list)


@dataclass(slots=True)
class AgentRef:
    agent_id: str
    name: str
    email: str


@dataclass(slots=True)
class AgentView:
    """Read-only view of a user from the capability registry."""

    user_id: str
    display_name: str
    email: str
    role: Role
    team_lead_id: str | None
    is_active: bool
    language_capabilities: tuple[str, ...]

    def speaks(self, language: str) -> bool:
        wanted = normalize_language(language)
        return any(normalize_language(cap) == wanted for cap in self.language_capabilities)

    def to_ref(self) -> AgentRef:
        return AgentRef(agent_id=self.user_id, name=self.display_name, email=self.email)


@dataclass(slots=True)
class TaskView:
    """Readable task view with farmer/activity context and history."""

    task_id: str
    status: TaskStatus
    assigned_agent_id: str | None
    assigned_agent_name: str | None
    farmer: FarmerInfo
    activity: ActivityInfo
    scheduled_date: datetime
    call_started_at: datetime | None
    retry_count: int
    call_log: CallLog | None
    parent_task_id: str | None
    callback_number: int | None
    created_at: datetime
    updated_at: datetime
    interaction_history: tuple[InteractionEntry, ...] = ()


@dataclass(slots=True)
class TaskCreate:
    """Input payload for inserting a new unassigned task."""

    farmer_id: str
    activity_id: str
    scheduled_date: datetime
    task_id: str | None = None
    parent_task_id: str | None = None
    callback_number: int | None = None
    created_at: datetime | None = None


@dataclass(slots=True)
class DateWindow:
    """Inclusive calendar-day window on scheduled date."""

    date_from: date | None = None
    date_to: date | None = None


@dataclass(slots=True)
class PendingTaskFilters:
    agent_id: str | None = None
    territory: str | None = None
    search: str | None = None
    window: DateWindow = field(default_factory=DateWindow)


@dataclass(slots=True)
class TeamTaskFilters:
    status: TaskStatus | None = None
    window: DateWindow = field(default_factory=DateWindow)


@dataclass(slots=True)
class UnassignedTaskFilters:
    language: str | None = None
    window: DateWindow = field(default_factory=DateWindow)


@dataclass(slots=True)
class TaskPage:
    tasks: list[TaskView]
    page: int
    limit: int
    total: int

    @property
    def pages(self) -> int:
        if self.limit <= 0:
            return 0
        return -(-self.total // self.limit)


@dataclass(slots=True)
class AllocationCandidate:
    """Unassigned task row considered by the allocator."""

    task_id: str
    farmer_language: str | None
    scheduled_date: datetime
    created_at: datetime


@dataclass(slots=True)
class AllocationRequest:
    """Allocation input; ``bu`` and ``state`` narrow candidates by their activity."""

    language: str
    count: int | None = None
    window: DateWindow = field(default_factory=DateWindow)
    bu: str | None = None
    state: str | None = None


@dataclass(slots=True)
class Assignment:
    task_id: str
    agent: AgentRef


@dataclass(slots=True)
class AllocationWrite:
    """Outcome of flushing planned assignments: rows claimed and failed batches."""

    allocated: int = 0
    errors: list[str] = field(default_factory=list)


@dataclass(slots=True)
class AllocationPlan:
    """Deterministic assignment walk computed from one candidate snapshot."""

    language: str
    requested_count: int
    capable_agents: list[AgentRef]
    selected: list[AllocationCandidate]
    assignments: list[Assignment]
    skipped_by_language: dict[str, int] = field(default_factory=dict)


@dataclass(slots=True)
class AllocationResult:
    language: str
    requested_count: int
    matched_tasks: int
    allocated: int
    agents_used: list[AgentRef]
    skipped_by_language: dict[str, int] = field(default_factory=dict)
    errors: list[str] = field(default_factory=list)

    @property
    def error_count(self) -> int:
        return len(self.errors)


@dataclass(slots=True)
class BatchItemError:
    task_id: str
    error: str
    code: str


@dataclass(slots=True)
class BatchResult:
    """Best-effort bulk mutation report."""

    results: list[TaskView] = field(default_factory=list)
    errors: list[BatchItemError] = field(default_factory=list)

    @property
    def successful(self) -> int:
        return len(self.results)

    @property
    def failed(self) -> int:
        return len(self.errors)


@dataclass(slots=True)
class LanguageBacklog:
    language: str
    unassigned: int


@dataclass(slots=True)
class AgentWorkload:
    agent: AgentRef
    language_capabilities: tuple[str, ...]
    sampled_in_queue: int
    in_progress: int

    @property
    def total_open(self) -> int:
        return self.sampled_in_queue + self.in_progress


@dataclass(slots=True)
class AllocationOverview:
    unassigned_by_language: list[LanguageBacklog]
    agent_workload: list[AgentWorkload]

    @property
    def total_unassigned(self) -> int:
        return sum(row.unassigned for row in self.unassigned_by_language)


def normalize_language(value: str | None) -> str:
    """Bucket key for a language: trimmed and lower-cased."""

    return (value or "").strip().lower()
