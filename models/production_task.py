"""
Production task schemas for validation and serialization.

Also holds the status enums and the transition table that the
lifecycle service enforces.
"""

from pydantic import Field, field_validator
from typing import Optional
from enum import Enum
from datetime import date, datetime

from models.base import BaseSchema, TimestampMixin
from models.planning import OverlapInfo


class TaskStatus(str, Enum):
    """Execution status of a production task."""
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    PAUSED = "paused"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class PlanningStatus(str, Enum):
    """Planning metadata tag, independent of execution status."""
    DRAFT = "draft"
    CONFIRMED = "confirmed"
    STARTED = "started"
    COMPLETED = "completed"


TERMINAL_STATUSES = frozenset({TaskStatus.COMPLETED, TaskStatus.CANCELLED})

# Tasks that still occupy the production calendar
ACTIVE_STATUSES = frozenset({TaskStatus.PENDING, TaskStatus.IN_PROGRESS, TaskStatus.PAUSED})

# Tasks eligible to absorb article-level output in bulk registration
ALLOCATION_STATUSES = frozenset({TaskStatus.PENDING, TaskStatus.IN_PROGRESS})

ALLOWED_TRANSITIONS: dict[TaskStatus, frozenset[TaskStatus]] = {
    TaskStatus.PENDING: frozenset({TaskStatus.IN_PROGRESS, TaskStatus.COMPLETED, TaskStatus.CANCELLED}),
    TaskStatus.IN_PROGRESS: frozenset({TaskStatus.PAUSED, TaskStatus.COMPLETED, TaskStatus.CANCELLED}),
    TaskStatus.PAUSED: frozenset({TaskStatus.IN_PROGRESS, TaskStatus.COMPLETED, TaskStatus.CANCELLED}),
    # Reopen after a quality correction is the only way out of COMPLETED
    TaskStatus.COMPLETED: frozenset({TaskStatus.IN_PROGRESS}),
    TaskStatus.CANCELLED: frozenset(),
}

PRIORITY_MIN = 1
PRIORITY_MAX = 5


def is_valid_status_transition(current: TaskStatus, new: TaskStatus) -> bool:
    """
    Check if status transition is valid.

    Rules:
    - PENDING starts, completes (auto or manual) or cancels
    - IN_PROGRESS and PAUSED toggle, complete or cancel
    - COMPLETED only reopens to IN_PROGRESS through a correction
    - CANCELLED is terminal
    """
    return new in ALLOWED_TRANSITIONS[current]


# ===================
# TASK SCHEMAS
# ===================

class ProductionTaskCreate(BaseSchema):
    """
    Create a new production task.

    Required: product_id, requested_quantity, planned_start_date, planned_end_date
    Planned dates are checked by the service so the caller gets
    PLANNING_DATES_REQUIRED rather than a generic schema error.
    """

    product_id: str = Field(..., min_length=1, description="Product UUID")
    requested_quantity: int = Field(..., gt=0, description="Units to produce")
    priority: Optional[int] = Field(
        None,
        ge=PRIORITY_MIN,
        le=PRIORITY_MAX,
        description="1 = low ... 5 = critical; derived from the order when omitted"
    )
    planned_start_date: Optional[date] = Field(None, description="Planned first production day")
    planned_end_date: Optional[date] = Field(None, description="Planned last production day")
    estimated_duration_days: Optional[int] = Field(
        None, gt=0, description="Expected production days; the planned window length when omitted"
    )
    order_id: Optional[str] = Field(None, description="Order UUID (None for future tasks)")
    assigned_to: Optional[str] = Field(None, description="Assignee user id")
    notes: Optional[str] = Field(None, max_length=1000, description="Free-text notes")


class ProductionTaskUpdate(BaseSchema):
    """
    Edit a production task.

    All fields optional - only provided fields are updated.
    Requested quantity, priority, assignee, notes and planned dates
    are locked once production starts. Quantities here are absolute
    overrides, not deltas.
    """

    requested_quantity: Optional[int] = Field(None, gt=0)
    priority: Optional[int] = Field(None, ge=PRIORITY_MIN, le=PRIORITY_MAX)
    assigned_to: Optional[str] = None
    notes: Optional[str] = Field(None, max_length=1000)
    planned_start_date: Optional[date] = None
    planned_end_date: Optional[date] = None
    estimated_duration_days: Optional[int] = Field(None, gt=0)
    planning_status: Optional[PlanningStatus] = None

    produced_quantity: Optional[int] = None
    quality_quantity: Optional[int] = None
    defect_quantity: Optional[int] = None

    def locked_fields(self) -> list[str]:
        """Fields in this update that only pending tasks accept."""
        locked = [
            "requested_quantity",
            "priority",
            "assigned_to",
            "notes",
            "planned_start_date",
            "planned_end_date",
            "estimated_duration_days",
        ]
        return [name for name in locked if getattr(self, name) is not None]

    def has_progress_override(self) -> bool:
        return any(
            value is not None
            for value in (self.produced_quantity, self.quality_quantity, self.defect_quantity)
        )


class QuantityRegistration(BaseSchema):
    """
    A (produced, quality, defect) triple.

    For partial registration the values are deltas and may be negative
    (corrections). For full completion they are the final totals.
    """

    produced_quantity: int = Field(..., description="Produced units")
    quality_quantity: int = Field(..., description="Units passing quality control")
    defect_quantity: int = Field(0, description="Defective units")
    notes: Optional[str] = Field(None, max_length=1000)


class TaskCancelRequest(BaseSchema):
    """Cancel a task with a mandatory reason."""

    reason: str = Field(..., description="Why the task is cancelled")


class ProductionTaskResponse(BaseSchema, TimestampMixin):
    """Production task with all persisted fields."""

    id: str
    product_id: str
    order_id: Optional[str] = None
    requested_quantity: int
    produced_quantity: int = 0
    quality_quantity: int = 0
    defect_quantity: int = 0
    status: TaskStatus = TaskStatus.PENDING
    planning_status: PlanningStatus = PlanningStatus.DRAFT
    priority: int = 3
    sort_order: int = 0

    planned_start_date: Optional[date] = None
    planned_end_date: Optional[date] = None
    estimated_duration_days: Optional[int] = None

    created_by: Optional[str] = None
    assigned_to: Optional[str] = None
    started_by: Optional[str] = None
    completed_by: Optional[str] = None
    cancelled_by: Optional[str] = None
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None

    notes: Optional[str] = None
    cancel_reason: Optional[str] = None

    # Joined display info (optional)
    product_name: Optional[str] = None
    product_article: Optional[str] = None
    order_number: Optional[str] = None
    customer_name: Optional[str] = None

    @property
    def remaining_quantity(self) -> int:
        return max(0, self.requested_quantity - self.quality_quantity)


class ProductionTaskListResponse(BaseSchema):
    """List of production tasks with pagination."""

    data: list[ProductionTaskResponse]
    total: int
    page: int
    page_size: int
    total_pages: int


class TaskCreateResult(BaseSchema):
    """Created task plus planning feedback."""

    task: ProductionTaskResponse
    warnings: list[str] = Field(default_factory=list)
    overlaps: list[OverlapInfo] = Field(default_factory=list)


class TaskCompletionResult(BaseSchema):
    """Outcome of a one-shot completion."""

    task: ProductionTaskResponse
    overproduction_quantity: int = 0


class PartialCompletionResult(BaseSchema):
    """Outcome of an incremental registration."""

    task: ProductionTaskResponse
    was_completed: bool = False
    was_reopened: bool = False
    remaining_quantity: int = 0
    overproduction_quantity: int = 0


# ===================
# BULK REGISTRATION
# ===================

class RowStatus(str, Enum):
    """Per-row outcome of bulk registration."""
    SUCCESS = "success"
    WARNING = "warning"
    ERROR = "error"


class BulkRegistrationRow(BaseSchema):
    """One article line of a shift report."""

    article: str = Field(..., min_length=1, description="Product article")
    produced_quantity: int
    quality_quantity: int
    defect_quantity: int = 0

    @field_validator("article")
    @classmethod
    def normalize_article(cls, v: str) -> str:
        """Articles are matched case-insensitively."""
        return v.strip().upper()


class BulkRegistrationRequest(BaseSchema):
    """Register a shift's output for several articles."""

    rows: list[BulkRegistrationRow] = Field(..., min_length=1)
    production_date: Optional[date] = None
    notes: Optional[str] = Field(None, max_length=1000)


class CompleteByProductRequest(BaseSchema):
    """Register aggregate output for one product."""

    product_id: str = Field(..., min_length=1)
    produced_quantity: int
    quality_quantity: int
    defect_quantity: int = 0
    production_date: Optional[date] = None
    notes: Optional[str] = Field(None, max_length=1000)


class TaskAllocation(BaseSchema):
    """Share of a row credited to one task."""

    task_id: str
    produced_quantity: int
    quality_quantity: int
    defect_quantity: int
    was_completed: bool = False


class BulkRowResult(BaseSchema):
    """Structured report for one bulk row."""

    row_index: int
    article: Optional[str] = None
    product_id: Optional[str] = None
    status: RowStatus
    message: str
    error_code: Optional[str] = None
    allocations: list[TaskAllocation] = Field(default_factory=list)
    allocated_quality: int = 0
    overproduction_quantity: int = 0


class BulkRegistrationResponse(BaseSchema):
    """Aggregated per-row report."""

    production_date: date
    results: list[BulkRowResult]
    success_count: int = 0
    warning_count: int = 0
    error_count: int = 0
    total_quality_registered: int = 0
    total_overproduction: int = 0


# ===================
# ORDERING
# ===================

class ReorderRequest(BaseSchema):
    """Full ordered list of pending task ids."""

    task_ids: list[str] = Field(..., description="Task ids in their new order")


# ===================
# EXTRAS
# ===================

class ExtraProductionCreate(BaseSchema):
    """Extra finished goods produced alongside a task."""

    product_id: str = Field(..., min_length=1)
    quantity: int = Field(..., gt=0)
    notes: Optional[str] = Field(None, max_length=500)


class ExtraProductionResponse(BaseSchema):
    """Recorded extra production."""

    id: str
    task_id: str
    product_id: str
    quantity: int
    notes: Optional[str] = None
    created_at: datetime


# ===================
# STATISTICS
# ===================

class ProductionStats(BaseSchema):
    """Queue statistics for the dashboard."""

    by_status: dict[str, int]
    urgent_items: int = 0
    overdue_items: int = 0
    total: int = 0
