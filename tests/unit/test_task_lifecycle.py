"""
Unit tests for the production task state machine.

Run: pytest tests/unit/test_task_lifecycle.py -v
"""

import pytest

from models.production_task import TaskStatus, is_valid_status_transition, ALLOWED_TRANSITIONS
from services.quantity_ledger import LedgerState, QuantityTriple
from services.task_lifecycle import (
    ensure_transition,
    start_update,
    pause_update,
    resume_update,
    cancel_update,
    ensure_deletable,
    ensure_editable,
    ensure_registrable,
    resolve_status_after_registration,
)
from exceptions import (
    TaskStateError,
    InvalidStatusTransitionError,
    TaskNotDeletableError,
    TaskAlreadyCompletedError,
    CancelReasonRequiredError,
)
from tests.factories import ProductionTaskFactory


def task(status: str, **kwargs) -> dict:
    return ProductionTaskFactory.create(status=status, **kwargs)


class TestTransitionTable:
    """Tests for is_valid_status_transition."""

    def test_every_status_has_an_entry(self):
        assert set(ALLOWED_TRANSITIONS) == set(TaskStatus)

    @pytest.mark.parametrize("current,new", [
        (TaskStatus.PENDING, TaskStatus.IN_PROGRESS),
        (TaskStatus.IN_PROGRESS, TaskStatus.PAUSED),
        (TaskStatus.PAUSED, TaskStatus.IN_PROGRESS),
        (TaskStatus.PAUSED, TaskStatus.CANCELLED),
        (TaskStatus.IN_PROGRESS, TaskStatus.COMPLETED),
        (TaskStatus.COMPLETED, TaskStatus.IN_PROGRESS),
    ])
    def test_allowed(self, current, new):
        assert is_valid_status_transition(current, new)

    @pytest.mark.parametrize("current,new", [
        (TaskStatus.PENDING, TaskStatus.PAUSED),
        (TaskStatus.COMPLETED, TaskStatus.CANCELLED),
        (TaskStatus.CANCELLED, TaskStatus.IN_PROGRESS),
        (TaskStatus.CANCELLED, TaskStatus.PENDING),
    ])
    def test_rejected(self, current, new):
        assert not is_valid_status_transition(current, new)

    def test_ensure_transition_raises(self):
        with pytest.raises(InvalidStatusTransitionError):
            ensure_transition(task("cancelled"), TaskStatus.COMPLETED)


class TestStartPauseResume:
    """Tests for start, pause and resume."""

    def test_start_stamps_actor(self):
        updates = start_update(task("pending"), "user-1")
        assert updates["status"] == "in_progress"
        assert updates["started_by"] == "user-1"
        assert updates["started_at"]

    def test_start_only_from_pending(self):
        with pytest.raises(TaskStateError) as exc_info:
            start_update(task("paused"), "user-1")
        assert exc_info.value.status_code == 409

    def test_pause_and_resume(self):
        assert pause_update(task("in_progress")) == {"status": "paused"}
        assert resume_update(task("paused")) == {"status": "in_progress"}

    def test_pause_requires_in_progress(self):
        with pytest.raises(TaskStateError):
            pause_update(task("pending"))

    def test_resume_requires_paused(self):
        with pytest.raises(TaskStateError):
            resume_update(task("in_progress"))


class TestCancel:
    """Tests for cancellation."""

    def test_cancel_strips_reason(self):
        updates = cancel_update(task("paused"), "  machine broken  ", "user-2", 5)
        assert updates["status"] == "cancelled"
        assert updates["cancel_reason"] == "machine broken"
        assert updates["cancelled_by"] == "user-2"

    @pytest.mark.parametrize("reason", [None, "", "   ", "abc "])
    def test_short_reason_rejected(self, reason):
        with pytest.raises(CancelReasonRequiredError):
            cancel_update(task("pending"), reason, "user-2", 5)

    @pytest.mark.parametrize("status", ["completed", "cancelled"])
    def test_terminal_tasks_not_cancellable(self, status):
        with pytest.raises(TaskStateError):
            cancel_update(task(status), "valid reason", "user-2", 5)

    def test_cancel_does_not_touch_quantities(self):
        updates = cancel_update(task("in_progress", produced_quantity=5, quality_quantity=5), "line stopped", None, 5)
        assert "quality_quantity" not in updates
        assert "produced_quantity" not in updates


class TestGuards:
    """Tests for delete, edit and registration guards."""

    def test_delete_only_pending(self):
        ensure_deletable(task("pending"))
        for status in ("in_progress", "paused", "completed", "cancelled"):
            with pytest.raises(TaskNotDeletableError):
                ensure_deletable(task(status))

    def test_terminal_not_editable(self):
        assert ensure_editable(task("paused")) == TaskStatus.PAUSED
        with pytest.raises(TaskStateError):
            ensure_editable(task("completed"))

    def test_cancelled_rejects_registration(self):
        with pytest.raises(TaskStateError):
            ensure_registrable(task("cancelled"), QuantityTriple(5, 5, 0))

    def test_cancelled_rejects_corrections_too(self):
        with pytest.raises(TaskStateError):
            ensure_registrable(task("cancelled"), QuantityTriple(-1, -1, 0))

    def test_completed_accepts_only_corrections(self):
        ensure_registrable(task("completed"), QuantityTriple(-2, -2, 0))
        with pytest.raises(TaskAlreadyCompletedError):
            ensure_registrable(task("completed"), QuantityTriple(1, 1, 0))

    def test_paused_accepts_registration(self):
        assert ensure_registrable(task("paused"), QuantityTriple(3, 3, 0)) == TaskStatus.PAUSED


class TestResolveStatusAfterRegistration:
    """Tests for completion, reopen and implicit start."""

    def test_reaching_requested_completes(self):
        row = task("in_progress", requested_quantity=100)
        updates, completed, reopened = resolve_status_after_registration(
            row, LedgerState(requested=100, produced=110, quality=110), "user-1"
        )
        assert completed and not reopened
        assert updates["status"] == "completed"
        assert updates["completed_by"] == "user-1"

    def test_pending_task_completed_in_one_go_gets_start_stamp(self):
        row = task("pending", requested_quantity=10)
        updates, completed, _ = resolve_status_after_registration(
            row, LedgerState(requested=10, produced=10, quality=10), "user-1"
        )
        assert completed
        assert updates["started_at"] == updates["completed_at"]

    def test_correction_below_requested_reopens(self):
        row = task("completed", requested_quantity=50, produced_quantity=50, quality_quantity=50)
        updates, completed, reopened = resolve_status_after_registration(
            row, LedgerState(requested=50, produced=40, quality=40), "user-1"
        )
        assert reopened and not completed
        assert updates == {"status": "in_progress", "completed_at": None, "completed_by": None}

    def test_correction_staying_above_requested_keeps_completed(self):
        row = task("completed", requested_quantity=50, produced_quantity=60, quality_quantity=60)
        updates, completed, reopened = resolve_status_after_registration(
            row, LedgerState(requested=50, produced=55, quality=55), "user-1"
        )
        assert updates == {} and not completed and not reopened

    def test_correction_on_task_closed_short_keeps_completed(self):
        """A task completed below requested is not reopened by a correction."""
        row = task("completed", requested_quantity=100, produced_quantity=40, quality_quantity=40)
        updates, completed, reopened = resolve_status_after_registration(
            row, LedgerState(requested=100, produced=39, quality=39), "user-1"
        )
        assert updates == {} and not completed and not reopened

    def test_pending_with_output_starts(self):
        row = task("pending", requested_quantity=50)
        updates, _, _ = resolve_status_after_registration(
            row, LedgerState(requested=50, produced=5, quality=5), "user-3"
        )
        assert updates["status"] == "in_progress"
        assert updates["started_by"] == "user-3"

    def test_paused_stays_paused(self):
        row = task("paused", requested_quantity=50)
        updates, completed, reopened = resolve_status_after_registration(
            row, LedgerState(requested=50, produced=20, quality=20), "user-3"
        )
        assert updates == {} and not completed and not reopened
