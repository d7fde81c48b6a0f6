"""
Planning rules: date validation, overlap math and slot suggestions.

Pure functions over task rows (dicts as returned by Supabase) so the
planning service and the views can share them without I/O.

Confidence values are ranking signals only: a higher score means a
preferred suggestion, the absolute number carries no meaning.
"""

import math
from datetime import date, datetime, timedelta
from typing import Iterable, Optional

from models.planning import (
    PlanningWindow,
    OverlapInfo,
    AlternativeWindow,
    OptimalPlanSuggestion,
    PlanningValidationResult,
)
from models.production_task import TaskStatus, ACTIVE_STATUSES
from exceptions import AppError, PlanningDatesRequiredError, InvalidDateRangeError

# Confidence model
LATER_SHIFT_BASE = 0.9
EARLIER_SHIFT_BASE = 0.8
FREE_SLOT_BASE = 0.7
CONFIDENCE_STEP = 0.04
CONFIDENCE_FLOOR = 0.1

NO_HISTORY_CONFIDENCE = 0.3
HISTORY_CONFIDENCE_CAP = 0.9
QUEUE_PENALTY = 0.05


# ===================
# VALIDATION
# ===================

def validate_planning_dates(
    start: Optional[date],
    end: Optional[date],
    required: bool = True,
    warning_days: int = 30,
) -> list[str]:
    """
    Validate a planned window.

    Args:
        start: Planned start date
        end: Planned end date
        required: Both dates mandatory (task creation)
        warning_days: Windows longer than this produce a warning

    Returns:
        List of warnings (empty when the window is unremarkable)

    Raises:
        PlanningDatesRequiredError: A date is missing and required
        InvalidDateRangeError: End before start
    """
    if required and (start is None or end is None):
        raise PlanningDatesRequiredError()

    if start is None or end is None:
        return []

    if end < start:
        raise InvalidDateRangeError(start.isoformat(), end.isoformat())

    warnings = []
    duration = (end - start).days + 1
    if duration > warning_days:
        warnings.append(
            f"Planned window is {duration} days, longer than {warning_days}. "
            "Consider splitting the task into smaller ones."
        )
    return warnings


def check_planning(
    start: Optional[date],
    end: Optional[date],
    warning_days: int = 30,
) -> PlanningValidationResult:
    """Non-raising variant used by the planning form."""
    try:
        warnings = validate_planning_dates(start, end, required=True, warning_days=warning_days)
    except AppError as e:
        return PlanningValidationResult(valid=False, error=e.message, error_code=e.code)
    return PlanningValidationResult(valid=True, warnings=warnings)


# ===================
# OVERLAP MATH
# ===================

def _bounds(window: PlanningWindow) -> tuple[date, date]:
    return window.start or date.min, window.end or date.max


def windows_overlap(a: PlanningWindow, b: PlanningWindow) -> bool:
    """
    Inclusive day overlap: startA <= endB and startB <= endA.

    A missing bound is open-ended on that side.
    """
    a_start, a_end = _bounds(a)
    b_start, b_end = _bounds(b)
    return a_start <= b_end and b_start <= a_end


def overlap_days(a: PlanningWindow, b: PlanningWindow) -> int:
    """Inclusive length of the intersection; at least one window must be bounded."""
    if not windows_overlap(a, b):
        return 0
    a_start, a_end = _bounds(a)
    b_start, b_end = _bounds(b)
    return (min(a_end, b_end) - max(a_start, b_start)).days + 1


def _is_active(task: dict) -> bool:
    return TaskStatus(task.get("status") or TaskStatus.PENDING.value) in ACTIVE_STATUSES


def _planned_tasks(tasks: Iterable[dict], exclude_task_id: Optional[str]) -> list[tuple[dict, PlanningWindow]]:
    planned = []
    for task in tasks:
        if exclude_task_id is not None and str(task.get("id")) == str(exclude_task_id):
            continue
        if not _is_active(task):
            continue
        window = PlanningWindow.from_task(task)
        if window is not None:
            planned.append((task, window))
    return planned


def find_overlaps(
    candidate: PlanningWindow,
    tasks: Iterable[dict],
    exclude_task_id: Optional[str] = None,
) -> list[OverlapInfo]:
    """Active tasks whose window intersects the candidate."""
    overlaps = []
    for task, window in _planned_tasks(tasks, exclude_task_id):
        if not windows_overlap(candidate, window):
            continue
        overlaps.append(OverlapInfo(
            task_id=str(task["id"]),
            product_id=task.get("product_id"),
            product_name=task.get("product_name"),
            overlap_days=overlap_days(candidate, window),
            start_date=window.start,
            end_date=window.end,
        ))
    return overlaps


def is_free(
    candidate: PlanningWindow,
    tasks: Iterable[dict],
    exclude_task_id: Optional[str] = None,
) -> bool:
    return not any(
        windows_overlap(candidate, window)
        for _, window in _planned_tasks(tasks, exclude_task_id)
    )


# ===================
# SUGGESTIONS
# ===================

def _confidence(base: float, distance: int) -> float:
    return round(max(CONFIDENCE_FLOOR, base - CONFIDENCE_STEP * (distance - 1)), 4)


def find_free_slots(
    duration: int,
    tasks: Iterable[dict],
    today: date,
    search_days: int = 14,
    exclude_task_id: Optional[str] = None,
) -> list[tuple[PlanningWindow, int]]:
    """
    Windows of `duration` days starting 1..search_days after today
    that overlap no active task.

    Returns:
        List of (window, days_ahead)
    """
    tasks = list(tasks)
    slots = []
    for days_ahead in range(1, search_days + 1):
        start = today + timedelta(days=days_ahead)
        window = PlanningWindow(start=start, end=start + timedelta(days=duration - 1))
        if is_free(window, tasks, exclude_task_id):
            slots.append((window, days_ahead))
    return slots


def suggest_alternative_windows(
    candidate: PlanningWindow,
    tasks: Iterable[dict],
    today: date,
    count: int = 3,
    search_days: int = 14,
    exclude_task_id: Optional[str] = None,
) -> list[AlternativeWindow]:
    """
    Propose windows of the candidate's duration that overlap nothing.

    Sources, in decreasing base confidence: the nearest free shift
    later, the nearest free shift earlier (never before today), then
    the earliest free slots after today. Confidence falls with distance.
    """
    tasks = list(tasks)
    duration = candidate.duration_days
    suggestions: list[AlternativeWindow] = []

    for k in range(1, search_days + 1):
        window = candidate.shifted(k)
        if is_free(window, tasks, exclude_task_id):
            suggestions.append(AlternativeWindow(
                start_date=window.start,
                end_date=window.end,
                reason=f"Shifted {k} day{'s' if k > 1 else ''} later",
                confidence=_confidence(LATER_SHIFT_BASE, k),
            ))
            break

    for k in range(1, search_days + 1):
        window = candidate.shifted(-k)
        if window.start < today:
            break
        if is_free(window, tasks, exclude_task_id):
            suggestions.append(AlternativeWindow(
                start_date=window.start,
                end_date=window.end,
                reason=f"Shifted {k} day{'s' if k > 1 else ''} earlier",
                confidence=_confidence(EARLIER_SHIFT_BASE, k),
            ))
            break

    for window, days_ahead in find_free_slots(duration, tasks, today, search_days, exclude_task_id):
        suggestions.append(AlternativeWindow(
            start_date=window.start,
            end_date=window.end,
            reason=f"Free period {days_ahead} day{'s' if days_ahead > 1 else ''} from today",
            confidence=_confidence(FREE_SLOT_BASE, days_ahead),
        ))

    unique: dict[tuple[date, date], AlternativeWindow] = {}
    for suggestion in sorted(suggestions, key=lambda s: s.confidence, reverse=True):
        unique.setdefault((suggestion.start_date, suggestion.end_date), suggestion)

    return list(unique.values())[:count]


# ===================
# OPTIMAL PLAN
# ===================

def _as_date(value) -> Optional[date]:
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value)[:10])


def task_duration_days(task: dict) -> Optional[int]:
    """
    Days a task took: start/completion stamps, else the stored
    estimate, else the planned window.
    """
    started = _as_date(task.get("started_at"))
    completed = _as_date(task.get("completed_at"))
    if started and completed and completed >= started:
        return (completed - started).days + 1

    estimate = task.get("estimated_duration_days")
    if estimate:
        return int(estimate)

    window = PlanningWindow.from_task(task)
    if window is not None and window.is_bounded and window.end >= window.start:
        return window.duration_days
    return None


def estimate_optimal_plan(
    quantity: int,
    history: Iterable[dict],
    tasks: Iterable[dict],
    today: date,
    queue_depth: int = 0,
    search_days: int = 14,
) -> OptimalPlanSuggestion:
    """
    Estimate duration and start for a new task of `quantity` units.

    Duration scales the average historical duration by the square root
    of the quantity ratio so large batches do not explode the estimate.
    Confidence grows with history size and shrinks with the queue of
    active tasks for the same product.
    """
    samples = [
        (task_duration_days(task), int(task.get("requested_quantity") or 0))
        for task in history
    ]
    samples = [(days, qty) for days, qty in samples if days is not None and qty > 0]

    if not samples:
        duration = 1
        confidence = NO_HISTORY_CONFIDENCE
        reasoning = "No completed tasks for this product, assuming 1 day"
    else:
        avg_duration = sum(days for days, _ in samples) / len(samples)
        avg_quantity = sum(qty for _, qty in samples) / len(samples)
        duration = max(1, math.ceil(avg_duration * math.sqrt(quantity / avg_quantity)))
        confidence = min(HISTORY_CONFIDENCE_CAP, 0.5 + (len(samples) / 10) * 0.4)
        reasoning = (
            f"Based on {len(samples)} completed tasks "
            f"(average {avg_duration:.1f} days for {avg_quantity:.0f} units)"
        )

    if queue_depth:
        confidence = max(CONFIDENCE_FLOOR, confidence - QUEUE_PENALTY * queue_depth)
        reasoning += f"; {queue_depth} active task{'s' if queue_depth > 1 else ''} queued for this product"

    slots = find_free_slots(duration, tasks, today, search_days)
    start = slots[0][0].start if slots else None

    return OptimalPlanSuggestion(
        suggested_duration_days=duration,
        suggested_start_date=start,
        suggested_end_date=start + timedelta(days=duration - 1) if start else None,
        confidence=round(confidence, 4),
        reasoning=reasoning,
        history_count=len(samples),
        queue_depth=queue_depth,
    )
