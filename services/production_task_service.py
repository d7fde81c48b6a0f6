"""
Production task service.

Task lifecycle, quantity reconciliation and ordering on top of the
production_tasks table. Counter rules live in services.quantity_ledger,
status rules in services.task_lifecycle; this module reads rows,
applies those rules and persists the result.

Supabase has no multi-statement transactions, so each operation that
writes more than one row keeps a snapshot of what it overwrote and
restores it when a later write fails.
"""

from typing import Optional
from datetime import date
import structlog

from config import get_supabase_client, settings
from models.production_task import (
    TaskStatus,
    ACTIVE_STATUSES,
    ALLOCATION_STATUSES,
    ProductionTaskCreate,
    ProductionTaskUpdate,
    ProductionTaskResponse,
    QuantityRegistration,
    TaskCreateResult,
    TaskCompletionResult,
    PartialCompletionResult,
    BulkRegistrationRequest,
    BulkRegistrationResponse,
    BulkRowResult,
    CompleteByProductRequest,
    RowStatus,
    TaskAllocation,
    ExtraProductionCreate,
    ExtraProductionResponse,
    ProductionStats,
    PRIORITY_MAX,
)
from models.planning import PlanningWindow, GanttDragRequest
from models.product import ProductSummary
from models.stock import ReferenceType, StockMovementResponse
from services.product_service import ProductService
from services.order_service import OrderService
from services.stock_service import StockService
from services.quantity_ledger import (
    LedgerState,
    QuantityTriple,
    validate_triple,
    validate_delta,
    apply_delta,
    apply_absolute,
    allocate_output,
    overproduction_quantity,
    overproduction_increment,
    remaining_quantity,
)
from services.task_lifecycle import (
    utc_now,
    current_status,
    ensure_transition,
    start_update,
    pause_update,
    resume_update,
    cancel_update,
    ensure_deletable,
    ensure_editable,
    ensure_registrable,
    completion_update,
    resolve_status_after_registration,
)
from services.task_ordering import (
    priority_from_order,
    order_for_allocation,
    next_sort_order,
    dense_sort_orders,
    complete_queue_order,
)
from services.planning_rules import validate_planning_dates, find_overlaps
from services.task_views import apply_gantt_drag
from exceptions import (
    AppError,
    ProductionTaskNotFoundError,
    TaskStateError,
    LockedFieldError,
    EmptyReorderError,
    ZeroDeltaError,
    DatabaseError,
)

logger = structlog.get_logger(__name__)

TASK_SELECT = "*, products(name, article), orders(order_number, customer_name)"

# Statuses that may receive extra output records
EXTRA_STATUSES = frozenset({TaskStatus.IN_PROGRESS, TaskStatus.PAUSED, TaskStatus.COMPLETED})


def flatten_task_row(row: dict) -> dict:
    """Lift joined product/order columns to the top level of a task row."""
    flat = {k: v for k, v in row.items() if k not in ("products", "orders")}
    product = row.get("products") or {}
    order = row.get("orders") or {}
    flat.setdefault("product_name", product.get("name"))
    flat.setdefault("product_article", product.get("article"))
    flat.setdefault("order_number", order.get("order_number"))
    flat.setdefault("customer_name", order.get("customer_name"))
    return flat


def _append_note(existing: Optional[str], note: str) -> str:
    return f"{existing}\n{note}" if existing else note


class ProductionTaskService:
    """
    Production task business logic.

    Handles CRUD, lifecycle transitions and quantity reconciliation.
    """

    def __init__(
        self,
        products: Optional[ProductService] = None,
        orders: Optional[OrderService] = None,
        stock: Optional[StockService] = None,
    ):
        self.db = get_supabase_client()
        self.table = "production_tasks"
        self.extras_table = "production_task_extras"
        self.products = products or ProductService()
        self.orders = orders or OrderService()
        self.stock = stock or StockService()

    # ===================
    # ROW ACCESS
    # ===================

    def _fetch_row(self, task_id: str) -> dict:
        try:
            result = (
                self.db.table(self.table)
                .select(TASK_SELECT)
                .eq("id", task_id)
                .execute()
            )
        except Exception as e:
            logger.error("get_production_task_failed", task_id=task_id, error=str(e))
            raise DatabaseError("select", str(e))

        if not result.data:
            raise ProductionTaskNotFoundError(task_id)
        return flatten_task_row(result.data[0])

    def _fetch_rows(
        self,
        statuses: Optional[list[TaskStatus]] = None,
        product_id: Optional[str] = None,
    ) -> list[dict]:
        try:
            query = self.db.table(self.table).select(TASK_SELECT)
            if statuses:
                query = query.in_("status", [s.value for s in statuses])
            if product_id:
                query = query.eq("product_id", product_id)
            result = query.execute()
        except Exception as e:
            logger.error("list_production_tasks_failed", product_id=product_id, error=str(e))
            raise DatabaseError("select", str(e))
        return [flatten_task_row(row) for row in result.data]

    def _write(self, task_id: str, updates: dict) -> None:
        try:
            (
                self.db.table(self.table)
                .update({**updates, "updated_at": utc_now()})
                .eq("id", task_id)
                .execute()
            )
        except Exception as e:
            logger.error("update_production_task_failed", task_id=task_id, error=str(e))
            raise DatabaseError("update", str(e))

    def _restore(self, task_id: str, snapshot: dict) -> None:
        """Put back the columns captured before a failed multi-row write."""
        try:
            self.db.table(self.table).update(snapshot).eq("id", task_id).execute()
            logger.warning("production_task_restored", task_id=task_id, columns=sorted(snapshot))
        except Exception as e:
            logger.error("production_task_restore_failed", task_id=task_id, error=str(e))

    def _write_with_stock(
        self,
        row: dict,
        updates: dict,
        quality_delta: int,
        comment: str,
        actor_id: Optional[str],
    ) -> None:
        """Persist task columns, then mirror the quality change in stock."""
        snapshot = {key: row.get(key) for key in updates}
        self._write(row["id"], updates)
        try:
            self.stock.apply_quality_change(
                row["product_id"], quality_delta, row["id"], comment, actor_id
            )
        except Exception:
            self._restore(row["id"], snapshot)
            raise

    # ===================
    # READ OPERATIONS
    # ===================

    def get_by_id(self, task_id: str) -> ProductionTaskResponse:
        """
        Get a single production task by ID.

        Raises:
            ProductionTaskNotFoundError: If task doesn't exist
        """
        logger.debug("getting_production_task", task_id=task_id)
        return ProductionTaskResponse(**self._fetch_row(task_id))

    def get_all(
        self,
        page: int = 1,
        page_size: int = 50,
        status: Optional[TaskStatus] = None,
        product_id: Optional[str] = None,
        order_id: Optional[str] = None,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
    ) -> tuple[list[ProductionTaskResponse], int]:
        """
        Get production tasks with optional filters, in queue order.

        Date filters keep tasks whose planned window intersects
        [date_from, date_to].

        Returns:
            Tuple of (tasks list, total count)
        """
        logger.info(
            "getting_production_tasks",
            page=page,
            page_size=page_size,
            status=status,
            product_id=product_id
        )

        try:
            query = self.db.table(self.table).select(TASK_SELECT, count="exact")

            if status:
                query = query.eq("status", status.value)
            if product_id:
                query = query.eq("product_id", product_id)
            if order_id:
                query = query.eq("order_id", order_id)
            # A missing bound is open-ended; tasks with no window at all are left out
            if date_from or date_to:
                query = query.or_("planned_start_date.not.is.null,planned_end_date.not.is.null")
            if date_from:
                query = query.or_(f"planned_end_date.gte.{date_from.isoformat()},planned_end_date.is.null")
            if date_to:
                query = query.or_(f"planned_start_date.lte.{date_to.isoformat()},planned_start_date.is.null")

            query = (
                query.order("priority", desc=True)
                .order("sort_order")
                .order("created_at")
            )

            offset = (page - 1) * page_size
            query = query.range(offset, offset + page_size - 1)

            result = query.execute()

            tasks = [ProductionTaskResponse(**flatten_task_row(row)) for row in result.data]
            total = result.count or 0

            logger.info("production_tasks_retrieved", count=len(tasks), total=total)
            return tasks, total

        except Exception as e:
            logger.error("get_production_tasks_failed", error=str(e))
            raise DatabaseError("select", str(e))

    def get_schedule(self) -> list[ProductionTaskResponse]:
        """All tasks that belong on a calendar (everything but cancelled)."""
        statuses = [s for s in TaskStatus if s != TaskStatus.CANCELLED]
        return [ProductionTaskResponse(**row) for row in self._fetch_rows(statuses)]

    def get_active_rows(self, product_id: Optional[str] = None) -> list[dict]:
        """Rows of tasks that occupy the calendar, for planning."""
        return self._fetch_rows(list(ACTIVE_STATUSES), product_id)

    def get_completed_rows(self, product_id: str, limit: int) -> list[dict]:
        """Most recently completed tasks of a product."""
        try:
            result = (
                self.db.table(self.table)
                .select("*")
                .eq("product_id", product_id)
                .eq("status", TaskStatus.COMPLETED.value)
                .order("completed_at", desc=True)
                .limit(limit)
                .execute()
            )
            return result.data
        except Exception as e:
            logger.error("get_completed_tasks_failed", product_id=product_id, error=str(e))
            raise DatabaseError("select", str(e))

    def get_stats(self, today: Optional[date] = None) -> ProductionStats:
        """
        Queue statistics.

        urgent_items: pending tasks at the highest priority
        overdue_items: active tasks whose planned end has passed
        """
        today = today or date.today()
        rows = self._fetch_rows()

        by_status = {s.value: 0 for s in TaskStatus}
        urgent = 0
        overdue = 0
        for row in rows:
            status = current_status(row)
            by_status[status.value] += 1
            if status == TaskStatus.PENDING and int(row.get("priority") or 0) >= PRIORITY_MAX:
                urgent += 1
            window = PlanningWindow.from_task(row)
            if status in ACTIVE_STATUSES and window and window.end and window.end < today:
                overdue += 1

        return ProductionStats(
            by_status=by_status,
            urgent_items=urgent,
            overdue_items=overdue,
            total=len(rows),
        )

    # ===================
    # CREATE / EDIT / DELETE
    # ===================

    def create(
        self,
        data: ProductionTaskCreate,
        actor_id: Optional[str] = None,
        today: Optional[date] = None,
    ) -> TaskCreateResult:
        """
        Create a pending production task.

        Priority comes from the request, else from the linked order,
        else the configured default. Overlaps with active tasks are
        reported, not rejected.

        Raises:
            PlanningDatesRequiredError: Missing planned dates
            InvalidDateRangeError: End before start
            ProductNotFoundError: Unknown product
            OrderNotFoundError: Unknown order
        """
        today = today or date.today()
        logger.info(
            "creating_production_task",
            product_id=data.product_id,
            requested_quantity=data.requested_quantity,
            order_id=data.order_id
        )

        warnings = validate_planning_dates(
            data.planned_start_date,
            data.planned_end_date,
            required=True,
            warning_days=settings.planning_warning_days,
        )

        self.products.get_by_id(data.product_id)
        order = self.orders.get_summary(data.order_id)

        if data.priority is not None:
            priority = data.priority
        elif order is not None:
            priority = priority_from_order(order.priority, order.delivery_date, today)
        else:
            priority = settings.default_task_priority

        active = self.get_active_rows()
        pending = [row for row in active if current_status(row) == TaskStatus.PENDING]
        window = PlanningWindow(data.planned_start_date, data.planned_end_date)
        overlaps = find_overlaps(window, active)
        if overlaps:
            warnings.append(
                f"Planned window overlaps {len(overlaps)} active "
                f"task{'s' if len(overlaps) > 1 else ''}"
            )

        row = {
            "product_id": data.product_id,
            "order_id": data.order_id,
            "requested_quantity": data.requested_quantity,
            "produced_quantity": 0,
            "quality_quantity": 0,
            "defect_quantity": 0,
            "status": TaskStatus.PENDING.value,
            "planning_status": "draft",
            "priority": priority,
            "sort_order": next_sort_order(pending),
            "planned_start_date": data.planned_start_date.isoformat(),
            "planned_end_date": data.planned_end_date.isoformat(),
            "estimated_duration_days": data.estimated_duration_days or window.duration_days,
            "assigned_to": data.assigned_to,
            "created_by": actor_id,
            "notes": data.notes,
        }

        try:
            result = self.db.table(self.table).insert(row).execute()
        except Exception as e:
            logger.error("create_production_task_failed", product_id=data.product_id, error=str(e))
            raise DatabaseError("insert", str(e))

        task_id = result.data[0]["id"]
        logger.info(
            "production_task_created",
            task_id=task_id,
            priority=priority,
            overlaps=len(overlaps)
        )

        return TaskCreateResult(
            task=self.get_by_id(task_id),
            warnings=warnings,
            overlaps=overlaps,
        )

    def update(
        self,
        task_id: str,
        data: ProductionTaskUpdate,
        actor_id: Optional[str] = None,
    ) -> ProductionTaskResponse:
        """
        Edit a production task.

        Plan fields only change while pending; planning_status and the
        absolute progress override are accepted in any non-terminal
        status. The status is re-resolved after an override.

        Raises:
            TaskStateError: Task is completed or cancelled
            LockedFieldError: Plan field edit after production started
        """
        logger.info("updating_production_task", task_id=task_id)

        row = self._fetch_row(task_id)
        status = ensure_editable(row)

        locked = data.locked_fields()
        if locked and status != TaskStatus.PENDING:
            raise LockedFieldError(task_id, locked, status.value)

        updates = data.model_dump(
            exclude_none=True,
            exclude={"produced_quantity", "quality_quantity", "defect_quantity"},
        )
        for key in ("planned_start_date", "planned_end_date"):
            if key in updates:
                updates[key] = updates[key].isoformat()
        if "planning_status" in updates:
            updates["planning_status"] = data.planning_status.value

        if data.planned_start_date is not None or data.planned_end_date is not None:
            window = PlanningWindow.from_task({**row, **updates})
            validate_planning_dates(window.start, window.end, required=False)

        before = LedgerState.from_task(row)
        after = LedgerState(
            requested=data.requested_quantity or before.requested,
            produced=before.produced,
            quality=before.quality,
            defect=before.defect,
        )
        if data.has_progress_override():
            after = apply_absolute(after, QuantityTriple(
                produced=before.produced if data.produced_quantity is None else data.produced_quantity,
                quality=before.quality if data.quality_quantity is None else data.quality_quantity,
                defect=before.defect if data.defect_quantity is None else data.defect_quantity,
            ))
            updates.update(after.as_row())

        if data.has_progress_override() or data.requested_quantity is not None:
            status_updates, was_completed, _ = resolve_status_after_registration(row, after, actor_id)
            updates.update(status_updates)
            if was_completed:
                logger.info("production_task_auto_completed", task_id=task_id)

        if not updates:
            return ProductionTaskResponse(**row)

        self._write_with_stock(
            row,
            updates,
            after.quality - before.quality,
            "Production quantity adjusted",
            actor_id,
        )

        logger.info("production_task_updated", task_id=task_id, fields=sorted(updates))
        return self.get_by_id(task_id)

    def delete(self, task_id: str) -> bool:
        """
        Hard delete a pending task and its extras.

        Raises:
            TaskNotDeletableError: Task already started or closed
        """
        logger.info("deleting_production_task", task_id=task_id)

        row = self._fetch_row(task_id)
        ensure_deletable(row)

        try:
            self.db.table(self.extras_table).delete().eq("task_id", task_id).execute()
            self.db.table(self.table).delete().eq("id", task_id).execute()
        except Exception as e:
            logger.error("delete_production_task_failed", task_id=task_id, error=str(e))
            raise DatabaseError("delete", str(e))

        logger.info("production_task_deleted", task_id=task_id)
        return True

    # ===================
    # LIFECYCLE
    # ===================

    def start(self, task_id: str, actor_id: Optional[str] = None) -> ProductionTaskResponse:
        row = self._fetch_row(task_id)
        self._write(task_id, start_update(row, actor_id))
        logger.info("production_task_started", task_id=task_id, actor_id=actor_id)
        return self.get_by_id(task_id)

    def pause(self, task_id: str, actor_id: Optional[str] = None) -> ProductionTaskResponse:
        row = self._fetch_row(task_id)
        self._write(task_id, pause_update(row))
        logger.info("production_task_paused", task_id=task_id, actor_id=actor_id)
        return self.get_by_id(task_id)

    def resume(self, task_id: str, actor_id: Optional[str] = None) -> ProductionTaskResponse:
        row = self._fetch_row(task_id)
        self._write(task_id, resume_update(row))
        logger.info("production_task_resumed", task_id=task_id, actor_id=actor_id)
        return self.get_by_id(task_id)

    def cancel(
        self,
        task_id: str,
        reason: Optional[str],
        actor_id: Optional[str] = None,
    ) -> ProductionTaskResponse:
        """
        Cancel a non-terminal task with a mandatory reason.

        Registered quantities and their stock stay untouched.
        """
        row = self._fetch_row(task_id)
        updates = cancel_update(row, reason, actor_id, settings.cancel_reason_min_length)
        self._write(task_id, updates)
        logger.info(
            "production_task_cancelled",
            task_id=task_id,
            actor_id=actor_id,
            quality_quantity=row.get("quality_quantity")
        )
        return self.get_by_id(task_id)

    # ===================
    # RECONCILIATION
    # ===================

    def complete(
        self,
        task_id: str,
        registration: QuantityRegistration,
        actor_id: Optional[str] = None,
    ) -> TaskCompletionResult:
        """
        Close a task with its final (produced, quality, defect) totals.

        Stock moves by the difference to the quality recorded so far.

        Raises:
            InvalidStatusTransitionError: Task already completed or cancelled
            QuantityMismatchError, NegativeQuantityError: Invalid totals
        """
        logger.info("completing_production_task", task_id=task_id)

        row = self._fetch_row(task_id)
        status = ensure_transition(row, TaskStatus.COMPLETED)

        before = LedgerState.from_task(row)
        after = apply_absolute(before, QuantityTriple(
            registration.produced_quantity,
            registration.quality_quantity,
            registration.defect_quantity,
        ))

        updates = {**after.as_row(), **completion_update(actor_id)}
        if status == TaskStatus.PENDING and not row.get("started_at"):
            updates["started_at"] = updates["completed_at"]
            updates["started_by"] = actor_id
        if registration.notes:
            updates["notes"] = _append_note(row.get("notes"), f"Completion: {registration.notes}")

        self._write_with_stock(
            row,
            updates,
            after.quality - before.quality,
            "Production task completed",
            actor_id,
        )

        overproduction = overproduction_quantity(after.requested, after.quality)
        logger.info(
            "production_task_completed",
            task_id=task_id,
            quality_quantity=after.quality,
            overproduction=overproduction
        )

        return TaskCompletionResult(
            task=self.get_by_id(task_id),
            overproduction_quantity=overproduction,
        )

    def partial_complete(
        self,
        task_id: str,
        registration: QuantityRegistration,
        actor_id: Optional[str] = None,
    ) -> PartialCompletionResult:
        """
        Register a (produced, quality, defect) delta against a task.

        Negative components are corrections. The task completes when
        quality reaches requested and reopens when a correction drops
        a completed task below it.

        Raises:
            ZeroDeltaError, QuantityMismatchError: Invalid delta
            CorrectionExceedsRecordedError: Correction larger than recorded
            TaskStateError: Task is cancelled
            TaskAlreadyCompletedError: Positive delta on a completed task
        """
        delta = validate_delta(QuantityTriple(
            registration.produced_quantity,
            registration.quality_quantity,
            registration.defect_quantity,
        ))
        logger.info(
            "registering_partial_production",
            task_id=task_id,
            produced=delta.produced,
            quality=delta.quality,
            defect=delta.defect
        )

        row = self._fetch_row(task_id)
        ensure_registrable(row, delta)

        before = LedgerState.from_task(row)
        after = apply_delta(before, delta)

        status_updates, was_completed, was_reopened = resolve_status_after_registration(row, after, actor_id)
        updates = {**after.as_row(), **status_updates}
        if registration.notes:
            updates["notes"] = _append_note(row.get("notes"), registration.notes)

        comment = "Production correction" if delta.is_correction else "Partial production registered"
        self._write_with_stock(row, updates, delta.quality, comment, actor_id)

        overproduction = overproduction_increment(before, after)
        logger.info(
            "partial_production_registered",
            task_id=task_id,
            quality_quantity=after.quality,
            was_completed=was_completed,
            was_reopened=was_reopened,
            overproduction=overproduction
        )

        return PartialCompletionResult(
            task=self.get_by_id(task_id),
            was_completed=was_completed,
            was_reopened=was_reopened,
            remaining_quantity=remaining_quantity(after),
            overproduction_quantity=overproduction,
        )

    def _register_for_product(
        self,
        row_index: int,
        product: ProductSummary,
        output: QuantityTriple,
        production_date: date,
        notes: Optional[str],
        actor_id: Optional[str],
        article: Optional[str] = None,
    ) -> BulkRowResult:
        """
        Allocate one product's output over its open tasks.

        The row is all-or-nothing: every task write is undone when a
        later write of the same row fails.
        """
        validate_triple(output)
        if output.is_zero:
            raise ZeroDeltaError()

        candidates = order_for_allocation(
            self._fetch_rows(list(ALLOCATION_STATUSES), product.id)
        )
        by_id = {row["id"]: row for row in candidates}

        allocations, remainder = allocate_output(
            [(row["id"], LedgerState.from_task(row)) for row in candidates],
            output.quality,
            output.defect,
        )

        comment = f"Production {production_date.isoformat()}"
        if notes:
            comment = f"{comment}: {notes}"

        written: list[tuple[str, dict]] = []
        credited: list[tuple[int, ReferenceType, Optional[str]]] = []
        results: list[TaskAllocation] = []

        try:
            for task_id, delta in allocations:
                row = by_id[task_id]
                after = apply_delta(LedgerState.from_task(row), delta)
                status_updates, was_completed, _ = resolve_status_after_registration(row, after, actor_id)
                updates = {**after.as_row(), **status_updates}
                snapshot = {key: row.get(key) for key in updates}
                self._write(task_id, updates)
                written.append((task_id, snapshot))
                results.append(TaskAllocation(
                    task_id=task_id,
                    produced_quantity=delta.produced,
                    quality_quantity=delta.quality,
                    defect_quantity=delta.defect,
                    was_completed=was_completed,
                ))

            for allocation in results:
                if allocation.quality_quantity > 0:
                    self.stock.credit(
                        product.id, allocation.quality_quantity,
                        ReferenceType.PRODUCTION_TASK, allocation.task_id, comment, actor_id,
                    )
                    credited.append((allocation.quality_quantity, ReferenceType.PRODUCTION_TASK, allocation.task_id))
            if remainder > 0:
                self.stock.credit(
                    product.id, remainder,
                    ReferenceType.PRODUCTION_SURPLUS, None, comment, actor_id,
                )
                credited.append((remainder, ReferenceType.PRODUCTION_SURPLUS, None))

        except Exception:
            for task_id, snapshot in reversed(written):
                self._restore(task_id, snapshot)
            for quantity, reference_type, reference_id in reversed(credited):
                try:
                    self.stock.debit(
                        product.id, quantity, reference_type, reference_id,
                        f"Reverted: {comment}", actor_id,
                    )
                except Exception as e:
                    logger.error("stock_revert_failed", product_id=product.id, error=str(e))
            raise

        allocated = output.quality - remainder
        if not candidates:
            status = RowStatus.WARNING
            message = f"No active task for this product, {remainder} units credited to stock as overproduction"
        elif remainder > 0:
            status = RowStatus.WARNING
            message = (
                f"{allocated} units allocated to {len(results)} "
                f"task{'s' if len(results) != 1 else ''}, "
                f"{remainder} units of overproduction credited to stock"
            )
        else:
            status = RowStatus.SUCCESS
            message = (
                f"{allocated} units allocated to {len(results)} "
                f"task{'s' if len(results) != 1 else ''}"
            )

        logger.info(
            "production_row_registered",
            product_id=product.id,
            allocated=allocated,
            overproduction=remainder,
            tasks=len(results)
        )

        return BulkRowResult(
            row_index=row_index,
            article=article or product.article,
            product_id=product.id,
            status=status,
            message=message,
            allocations=results,
            allocated_quality=allocated,
            overproduction_quantity=remainder,
        )

    def bulk_register(
        self,
        request: BulkRegistrationRequest,
        actor_id: Optional[str] = None,
    ) -> BulkRegistrationResponse:
        """
        Register a shift report: one row per article.

        Rows are independent; a failing row is reported with status
        error and never prevents the other rows from being applied.
        """
        production_date = request.production_date or date.today()
        logger.info("bulk_registration_started", rows=len(request.rows), production_date=production_date)

        results: list[BulkRowResult] = []
        for index, line in enumerate(request.rows):
            try:
                product = self.products.get_by_article(line.article)
                results.append(self._register_for_product(
                    index,
                    product,
                    QuantityTriple(line.produced_quantity, line.quality_quantity, line.defect_quantity),
                    production_date,
                    request.notes,
                    actor_id,
                    article=line.article,
                ))
            except AppError as e:
                logger.warning("bulk_row_failed", row_index=index, article=line.article, error_code=e.code)
                results.append(BulkRowResult(
                    row_index=index,
                    article=line.article,
                    status=RowStatus.ERROR,
                    message=e.message,
                    error_code=e.code,
                ))
            except Exception as e:
                logger.error("bulk_row_failed", row_index=index, article=line.article, error=str(e))
                results.append(BulkRowResult(
                    row_index=index,
                    article=line.article,
                    status=RowStatus.ERROR,
                    message=str(e),
                    error_code="INTERNAL_ERROR",
                ))

        response = BulkRegistrationResponse(
            production_date=production_date,
            results=results,
            success_count=sum(1 for r in results if r.status == RowStatus.SUCCESS),
            warning_count=sum(1 for r in results if r.status == RowStatus.WARNING),
            error_count=sum(1 for r in results if r.status == RowStatus.ERROR),
            total_quality_registered=sum(r.allocated_quality for r in results),
            total_overproduction=sum(r.overproduction_quantity for r in results),
        )

        logger.info(
            "bulk_registration_complete",
            success=response.success_count,
            warnings=response.warning_count,
            errors=response.error_count
        )
        return response

    def complete_by_product(
        self,
        request: CompleteByProductRequest,
        actor_id: Optional[str] = None,
    ) -> BulkRowResult:
        """
        Register aggregate output for one product across its open tasks.

        Raises:
            ProductNotFoundError: Unknown product
            QuantityMismatchError, NegativeQuantityError, ZeroDeltaError: Invalid output
        """
        product = self.products.get_by_id(request.product_id)
        return self._register_for_product(
            0,
            product,
            QuantityTriple(request.produced_quantity, request.quality_quantity, request.defect_quantity),
            request.production_date or date.today(),
            request.notes,
            actor_id,
        )

    # ===================
    # ORDERING
    # ===================

    def reorder(self, task_ids: list[str]) -> list[ProductionTaskResponse]:
        """
        Persist a manual order of pending tasks as sort_order 1..n.

        Pending tasks not in task_ids keep their relative order after
        the listed ones, so the whole pending queue stays dense.

        Raises:
            EmptyReorderError: Empty list or duplicate ids
            ProductionTaskNotFoundError: Unknown id
            TaskStateError: A task is not pending
            DatabaseError: Write failed (previous order restored)
        """
        if not task_ids:
            raise EmptyReorderError()
        if len(set(task_ids)) != len(task_ids):
            raise EmptyReorderError("Reorder contains duplicate task ids")

        logger.info("reordering_production_tasks", count=len(task_ids))

        try:
            result = (
                self.db.table(self.table)
                .select("id, status, sort_order")
                .in_("id", task_ids)
                .execute()
            )
        except Exception as e:
            logger.error("reorder_lookup_failed", error=str(e))
            raise DatabaseError("select", str(e))

        rows = {row["id"]: row for row in result.data}
        for task_id in task_ids:
            row = rows.get(task_id)
            if row is None:
                raise ProductionTaskNotFoundError(task_id)
            status = current_status(row)
            if status != TaskStatus.PENDING:
                raise TaskStateError(task_id, status.value, "reorder")

        pending = self._fetch_rows([TaskStatus.PENDING])
        previous = {row["id"]: row.get("sort_order") for row in pending}
        queue = complete_queue_order(task_ids, pending)

        written: list[str] = []
        try:
            for task_id, sort_order in dense_sort_orders(queue).items():
                if previous.get(task_id) == sort_order:
                    continue
                self._write(task_id, {"sort_order": sort_order})
                written.append(task_id)
        except DatabaseError:
            for task_id in reversed(written):
                self._restore(task_id, {"sort_order": previous.get(task_id)})
            raise

        logger.info("production_tasks_reordered", count=len(queue), moved=len(written))
        return [self.get_by_id(task_id) for task_id in queue]

    def reschedule_by_drag(
        self,
        task_id: str,
        request: GanttDragRequest,
        actor_id: Optional[str] = None,
    ) -> ProductionTaskResponse:
        """
        Persist the window produced by dragging a Gantt bar.

        Raises:
            GanttDropError: Drop outside the view or inverted window
            LockedFieldError: Task already started
        """
        row = self._fetch_row(task_id)
        window = PlanningWindow.from_task(row) or PlanningWindow()
        new_window = apply_gantt_drag(
            window, request.mode, request.delta_days, request.view_start, request.view_end
        )
        logger.info(
            "production_task_dragged",
            task_id=task_id,
            mode=request.mode.value,
            delta_days=request.delta_days
        )
        return self.update(
            task_id,
            ProductionTaskUpdate(
                planned_start_date=new_window.start,
                planned_end_date=new_window.end,
            ),
            actor_id,
        )

    # ===================
    # EXTRAS & HISTORY
    # ===================

    def record_extra(
        self,
        task_id: str,
        data: ExtraProductionCreate,
        actor_id: Optional[str] = None,
    ) -> ExtraProductionResponse:
        """
        Record finished goods produced alongside a task and credit stock.

        Raises:
            TaskStateError: Task not started or cancelled
            ProductNotFoundError: Unknown product
        """
        row = self._fetch_row(task_id)
        status = current_status(row)
        if status not in EXTRA_STATUSES:
            raise TaskStateError(task_id, status.value, "record extra production for")

        product = self.products.get_by_id(data.product_id)

        try:
            result = self.db.table(self.extras_table).insert({
                "task_id": task_id,
                "product_id": product.id,
                "quantity": data.quantity,
                "notes": data.notes,
                "created_by": actor_id,
            }).execute()
        except Exception as e:
            logger.error("record_extra_failed", task_id=task_id, error=str(e))
            raise DatabaseError("insert", str(e))

        extra = result.data[0]
        try:
            self.stock.credit(
                product.id,
                data.quantity,
                ReferenceType.PRODUCTION_EXTRA,
                task_id,
                data.notes or "Extra production",
                actor_id,
            )
        except Exception:
            try:
                self.db.table(self.extras_table).delete().eq("id", extra["id"]).execute()
            except Exception as e:
                logger.error("extra_revert_failed", extra_id=extra["id"], error=str(e))
            raise

        logger.info("extra_production_recorded", task_id=task_id, product_id=product.id, quantity=data.quantity)
        return ExtraProductionResponse(**extra)

    def get_extras(self, task_id: str) -> list[ExtraProductionResponse]:
        self._fetch_row(task_id)
        try:
            result = (
                self.db.table(self.extras_table)
                .select("*")
                .eq("task_id", task_id)
                .order("created_at")
                .execute()
            )
        except Exception as e:
            logger.error("get_extras_failed", task_id=task_id, error=str(e))
            raise DatabaseError("select", str(e))
        return [ExtraProductionResponse(**row) for row in result.data]

    def get_stock_movements(self, task_id: str) -> list[StockMovementResponse]:
        self._fetch_row(task_id)
        return self.stock.get_movements_for_task(task_id)


# Singleton instance
_production_task_service: Optional[ProductionTaskService] = None


def get_production_task_service() -> ProductionTaskService:
    """Get or create ProductionTaskService instance."""
    global _production_task_service
    if _production_task_service is None:
        _production_task_service = ProductionTaskService()
    return _production_task_service
