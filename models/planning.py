"""
Planning, overlap and schedule-view schemas.
"""

from dataclasses import dataclass
from pydantic import Field, model_validator
from typing import Any, Optional
from enum import Enum
from datetime import date, timedelta

from models.base import BaseSchema


# ===================
# VALUE OBJECTS
# ===================

@dataclass(frozen=True)
class PlanningWindow:
    """
    Inclusive day range used for overlap math.

    A missing bound means the window is open-ended on that side.
    """
    start: Optional[date] = None
    end: Optional[date] = None

    @classmethod
    def from_task(cls, task: Any) -> Optional["PlanningWindow"]:
        """Build from a task model or row; None when the task is unplanned."""
        if isinstance(task, dict):
            start = task.get("planned_start_date")
            end = task.get("planned_end_date")
        else:
            start = getattr(task, "planned_start_date", None)
            end = getattr(task, "planned_end_date", None)
        if isinstance(start, str):
            start = date.fromisoformat(start[:10])
        if isinstance(end, str):
            end = date.fromisoformat(end[:10])
        if start is None and end is None:
            return None
        return cls(start=start, end=end)

    @property
    def is_bounded(self) -> bool:
        return self.start is not None and self.end is not None

    @property
    def duration_days(self) -> Optional[int]:
        """Inclusive length in days, None for open-ended windows."""
        if not self.is_bounded:
            return None
        return (self.end - self.start).days + 1

    def shifted(self, days: int) -> "PlanningWindow":
        return PlanningWindow(
            start=self.start + timedelta(days=days) if self.start else None,
            end=self.end + timedelta(days=days) if self.end else None,
        )


# ===================
# OVERLAPS & SUGGESTIONS
# ===================

class OverlapInfo(BaseSchema):
    """Existing task whose window intersects a candidate window."""

    task_id: str
    product_id: Optional[str] = None
    product_name: Optional[str] = None
    overlap_days: int = Field(..., ge=0)
    start_date: Optional[date] = None
    end_date: Optional[date] = None


class AlternativeWindow(BaseSchema):
    """Candidate window that overlaps no active task."""

    start_date: date
    end_date: date
    reason: str
    confidence: float = Field(..., ge=0, le=1)


class PlanningWindowRequest(BaseSchema):
    """Candidate window to check or re-plan."""

    start_date: date
    end_date: date
    exclude_task_id: Optional[str] = None
    count: Optional[int] = Field(None, ge=1, le=10, description="Number of suggestions")

    @model_validator(mode="after")
    def end_not_before_start(self) -> "PlanningWindowRequest":
        if self.end_date < self.start_date:
            raise ValueError("end_date cannot be before start_date")
        return self


class PlanningValidationRequest(BaseSchema):
    """Dates as typed in the planning form, either may be missing."""

    planned_start_date: Optional[date] = None
    planned_end_date: Optional[date] = None


class OverlapCheckResponse(BaseSchema):
    """Overlaps for a candidate window plus alternatives when any exist."""

    has_overlaps: bool
    overlaps: list[OverlapInfo] = Field(default_factory=list)
    suggestions: list[AlternativeWindow] = Field(default_factory=list)


class PlanningValidationResult(BaseSchema):
    """Outcome of planning date validation."""

    valid: bool
    error: Optional[str] = None
    error_code: Optional[str] = None
    warnings: list[str] = Field(default_factory=list)


class OptimalPlanRequest(BaseSchema):
    """Product and quantity to plan for."""

    product_id: str = Field(..., min_length=1)
    quantity: int = Field(..., gt=0)


class OptimalPlanSuggestion(BaseSchema):
    """Estimated duration and start for a new task."""

    suggested_duration_days: int = Field(..., ge=1)
    suggested_start_date: Optional[date] = None
    suggested_end_date: Optional[date] = None
    confidence: float = Field(..., ge=0, le=1)
    reasoning: str
    history_count: int = 0
    queue_depth: int = 0


# ===================
# SCHEDULE VIEWS
# ===================

class DayBucket(str, Enum):
    """Calendar grouping relative to today."""
    OVERDUE = "overdue"
    TODAY = "today"
    TOMORROW = "tomorrow"
    LATER = "later"
    UNPLANNED = "unplanned"
    COMPLETED = "completed"


class GanttDragMode(str, Enum):
    """Which part of a Gantt bar was dragged."""
    MOVE = "move"
    RESIZE_START = "resize_start"
    RESIZE_END = "resize_end"


class GanttBar(BaseSchema):
    """Visible placement of a task inside a Gantt view."""

    task_id: str
    visible_start: date
    visible_end: date
    offset_days: int
    length_days: int
    left_pct: float
    width_pct: float
    clipped_start: bool = False
    clipped_end: bool = False


class GanttDragRequest(BaseSchema):
    """Drag of a bar, already converted from pixels to whole days."""

    mode: GanttDragMode
    delta_days: int
    view_start: date
    view_end: date

    @model_validator(mode="after")
    def view_not_inverted(self) -> "GanttDragRequest":
        if self.view_end < self.view_start:
            raise ValueError("view_end cannot be before view_start")
        return self
