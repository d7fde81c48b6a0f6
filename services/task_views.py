"""
Presentation helpers for production tasks: status and priority
descriptors, calendar day buckets and Gantt geometry.

Pure functions; pixel math is confined to pixels_to_day_offset.
"""

from dataclasses import dataclass
from datetime import date, timedelta
from typing import Iterable, Optional, Union

from models.production_task import TaskStatus, ProductionTaskResponse, PRIORITY_MIN, PRIORITY_MAX
from models.planning import PlanningWindow, DayBucket, GanttBar, GanttDragMode
from exceptions import GanttDropError

TaskLike = Union[dict, ProductionTaskResponse]


@dataclass(frozen=True)
class Descriptor:
    """Label and colour shown for a status or priority."""
    label: str
    color: str


STATUS_DESCRIPTORS: dict[TaskStatus, Descriptor] = {
    TaskStatus.PENDING: Descriptor("Pending", "#1890ff"),
    TaskStatus.IN_PROGRESS: Descriptor("In progress", "#faad14"),
    TaskStatus.PAUSED: Descriptor("Paused", "#d9d9d9"),
    TaskStatus.COMPLETED: Descriptor("Completed", "#52c41a"),
    TaskStatus.CANCELLED: Descriptor("Cancelled", "#ff4d4f"),
}

PRIORITY_DESCRIPTORS: dict[int, Descriptor] = {
    1: Descriptor("Low", "#8c8c8c"),
    2: Descriptor("Normal", "#1890ff"),
    3: Descriptor("Medium", "#13c2c2"),
    4: Descriptor("High", "#fa8c16"),
    5: Descriptor("Critical", "#f5222d"),
}

_missing_statuses = set(TaskStatus) - set(STATUS_DESCRIPTORS)
if _missing_statuses:
    raise RuntimeError(f"No descriptor for statuses: {sorted(s.value for s in _missing_statuses)}")

_missing_priorities = set(range(PRIORITY_MIN, PRIORITY_MAX + 1)) - set(PRIORITY_DESCRIPTORS)
if _missing_priorities:
    raise RuntimeError(f"No descriptor for priorities: {sorted(_missing_priorities)}")


def describe_status(status: TaskStatus) -> Descriptor:
    return STATUS_DESCRIPTORS[TaskStatus(status)]


def describe_priority(priority: int) -> Descriptor:
    return PRIORITY_DESCRIPTORS[priority]


# ===================
# DAY BUCKETS
# ===================

def _status(task: TaskLike) -> TaskStatus:
    value = task.get("status") if isinstance(task, dict) else task.status
    return TaskStatus(value or TaskStatus.PENDING.value)


def _task_id(task: TaskLike) -> str:
    return str(task["id"] if isinstance(task, dict) else task.id)


def classify_day_bucket(task: TaskLike, today: date) -> Optional[DayBucket]:
    """
    Calendar bucket of a task relative to today.

    Cancelled tasks are left out (None). The reference date is the
    planned start, or the planned end for tasks without a start.
    """
    status = _status(task)
    if status == TaskStatus.CANCELLED:
        return None
    if status == TaskStatus.COMPLETED:
        return DayBucket.COMPLETED

    window = PlanningWindow.from_task(task)
    if window is None:
        return DayBucket.UNPLANNED

    reference = window.start or window.end
    if reference < today:
        return DayBucket.OVERDUE
    if reference == today:
        return DayBucket.TODAY
    if reference == today + timedelta(days=1):
        return DayBucket.TOMORROW
    return DayBucket.LATER


def group_by_day_bucket(tasks: Iterable[TaskLike], today: date) -> dict[DayBucket, list]:
    """Every bucket present in the result, empty or not."""
    groups: dict[DayBucket, list] = {bucket: [] for bucket in DayBucket}
    for task in tasks:
        bucket = classify_day_bucket(task, today)
        if bucket is not None:
            groups[bucket].append(task)
    return groups


# ===================
# GANTT
# ===================

def gantt_bar(task: TaskLike, view_start: date, view_end: date) -> Optional[GanttBar]:
    """
    Visible placement of a task in [view_start, view_end].

    Returns None when the task lacks a bound or lies outside the view.
    """
    window = PlanningWindow.from_task(task)
    if window is None or not window.is_bounded:
        return None
    if window.end < view_start or window.start > view_end:
        return None

    visible_start = max(window.start, view_start)
    visible_end = min(window.end, view_end)
    days_in_view = (view_end - view_start).days + 1
    offset = (visible_start - view_start).days
    length = (visible_end - visible_start).days + 1

    return GanttBar(
        task_id=_task_id(task),
        visible_start=visible_start,
        visible_end=visible_end,
        offset_days=offset,
        length_days=length,
        left_pct=round(offset / days_in_view * 100, 4),
        width_pct=round(length / days_in_view * 100, 4),
        clipped_start=window.start < view_start,
        clipped_end=window.end > view_end,
    )


def gantt_bars(tasks: Iterable[TaskLike], view_start: date, view_end: date) -> list[GanttBar]:
    bars = (gantt_bar(task, view_start, view_end) for task in tasks)
    return [bar for bar in bars if bar is not None]


def apply_gantt_drag(
    window: PlanningWindow,
    mode: GanttDragMode,
    delta_days: int,
    view_start: date,
    view_end: date,
) -> PlanningWindow:
    """
    New planned window after a drag.

    move keeps the duration; resize_start and resize_end change one
    bound. Results that leave the view or invert are rejected.

    Raises:
        GanttDropError: Window unbounded, outside the view or inverted
    """
    if not window.is_bounded:
        raise GanttDropError("Only tasks with both planned dates can be dragged")

    mode = GanttDragMode(mode)
    if mode == GanttDragMode.MOVE:
        result = window.shifted(delta_days)
    elif mode == GanttDragMode.RESIZE_START:
        result = PlanningWindow(window.start + timedelta(days=delta_days), window.end)
    else:
        result = PlanningWindow(window.start, window.end + timedelta(days=delta_days))

    details = {"start": result.start.isoformat(), "end": result.end.isoformat()}
    if result.end < result.start:
        raise GanttDropError("Planned end cannot be before planned start", details)
    if result.start < view_start or result.end > view_end:
        raise GanttDropError("Task cannot be dropped outside the visible period", details)
    return result


def pixels_to_day_offset(pixel_delta: float, container_width: float, days_in_view: int) -> int:
    """Round a horizontal drag distance to whole days."""
    if container_width <= 0 or days_in_view <= 0:
        return 0
    day_width = container_width / days_in_view
    # half away from zero
    days = int(abs(pixel_delta) / day_width + 0.5)
    return days if pixel_delta >= 0 else -days
