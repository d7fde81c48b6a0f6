"""
Production task state machine.

    pending -> in_progress <-> paused -> completed
    pending | in_progress | paused -> cancelled

Each function checks the current status of a task row and returns the
column updates for the transition; persistence stays in the service.
"""

from datetime import datetime, timezone
from typing import Optional

from models.production_task import (
    TaskStatus,
    TERMINAL_STATUSES,
    is_valid_status_transition,
)
from services.quantity_ledger import LedgerState, QuantityTriple, meets_completion
from exceptions import (
    TaskStateError,
    InvalidStatusTransitionError,
    TaskNotDeletableError,
    TaskAlreadyCompletedError,
    CancelReasonRequiredError,
)


def utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


def current_status(task: dict) -> TaskStatus:
    return TaskStatus(task.get("status") or TaskStatus.PENDING.value)


def ensure_transition(task: dict, new_status: TaskStatus) -> TaskStatus:
    """Raise unless the table allows moving the task to new_status."""
    status = current_status(task)
    if not is_valid_status_transition(status, new_status):
        raise InvalidStatusTransitionError(status.value, new_status.value)
    return status


def start_update(task: dict, actor_id: Optional[str]) -> dict:
    """Only pending tasks start."""
    status = current_status(task)
    if status != TaskStatus.PENDING:
        raise TaskStateError(task["id"], status.value, "start")
    return {
        "status": TaskStatus.IN_PROGRESS.value,
        "started_at": utc_now(),
        "started_by": actor_id,
    }


def pause_update(task: dict) -> dict:
    status = current_status(task)
    if status != TaskStatus.IN_PROGRESS:
        raise TaskStateError(task["id"], status.value, "pause")
    return {"status": TaskStatus.PAUSED.value}


def resume_update(task: dict) -> dict:
    status = current_status(task)
    if status != TaskStatus.PAUSED:
        raise TaskStateError(task["id"], status.value, "resume")
    return {"status": TaskStatus.IN_PROGRESS.value}


def cancel_update(task: dict, reason: Optional[str], actor_id: Optional[str], min_length: int) -> dict:
    """
    Cancel from any non-terminal status.

    Registered quantities stay as they are: goods already produced
    remain credited to stock.
    """
    status = current_status(task)
    if status in TERMINAL_STATUSES:
        raise TaskStateError(task["id"], status.value, "cancel")

    cleaned = (reason or "").strip()
    if len(cleaned) < min_length:
        raise CancelReasonRequiredError(min_length)

    return {
        "status": TaskStatus.CANCELLED.value,
        "cancelled_at": utc_now(),
        "cancelled_by": actor_id,
        "cancel_reason": cleaned,
    }


def ensure_deletable(task: dict) -> None:
    """Hard delete is only for tasks that never produced anything."""
    status = current_status(task)
    if status != TaskStatus.PENDING:
        raise TaskNotDeletableError(task["id"], status.value)


def ensure_editable(task: dict) -> TaskStatus:
    status = current_status(task)
    if status in TERMINAL_STATUSES:
        raise TaskStateError(task["id"], status.value, "edit")
    return status


def ensure_registrable(task: dict, delta: QuantityTriple) -> TaskStatus:
    """
    Check that a delta registration may touch this task.

    Cancelled tasks reject everything, including in-flight requests
    issued before the cancel. Completed tasks only take corrections.
    """
    status = current_status(task)
    if status == TaskStatus.CANCELLED:
        raise TaskStateError(task["id"], status.value, "register production for")
    if status == TaskStatus.COMPLETED and not delta.is_correction:
        raise TaskAlreadyCompletedError(task["id"])
    return status


def completion_update(actor_id: Optional[str]) -> dict:
    return {
        "status": TaskStatus.COMPLETED.value,
        "completed_at": utc_now(),
        "completed_by": actor_id,
    }


def resolve_status_after_registration(
    task: dict,
    new_state: LedgerState,
    actor_id: Optional[str],
) -> tuple[dict, bool, bool]:
    """
    Status follow-up after the counters of a task changed.

    Rules:
    - quality >= requested completes the task, whatever caused the change
    - a completed task whose quality drops from at least requested to below
      it reopens to in_progress; a task closed short of requested stays closed
    - a pending task that now has output is implicitly started
    - paused and in_progress tasks otherwise keep their status

    Returns:
        Tuple of (column updates, was_completed, was_reopened)
    """
    status = current_status(task)

    if meets_completion(new_state):
        if status == TaskStatus.COMPLETED:
            return {}, False, False
        updates = completion_update(actor_id)
        if status == TaskStatus.PENDING and not task.get("started_at"):
            updates["started_at"] = updates["completed_at"]
            updates["started_by"] = actor_id
        return updates, True, False

    if status == TaskStatus.COMPLETED:
        if not meets_completion(LedgerState.from_task(task)):
            return {}, False, False
        return {
            "status": TaskStatus.IN_PROGRESS.value,
            "completed_at": None,
            "completed_by": None,
        }, False, True

    if status == TaskStatus.PENDING and new_state.produced > 0:
        return {
            "status": TaskStatus.IN_PROGRESS.value,
            "started_at": task.get("started_at") or utc_now(),
            "started_by": task.get("started_by") or actor_id,
        }, False, False

    return {}, False, False
