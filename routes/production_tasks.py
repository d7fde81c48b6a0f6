"""
Production task API routes.

Commands take the acting user from the X-User-Id header.
"""

from fastapi import APIRouter, Depends, Query
from typing import Optional
from datetime import date, timedelta
import structlog

from models.production_task import (
    TaskStatus,
    ProductionTaskCreate,
    ProductionTaskUpdate,
    ProductionTaskResponse,
    ProductionTaskListResponse,
    QuantityRegistration,
    TaskCancelRequest,
    TaskCreateResult,
    TaskCompletionResult,
    PartialCompletionResult,
    BulkRegistrationRequest,
    BulkRegistrationResponse,
    BulkRowResult,
    CompleteByProductRequest,
    ReorderRequest,
    ExtraProductionCreate,
    ExtraProductionResponse,
    ProductionStats,
)
from models.planning import DayBucket, GanttBar, GanttDragRequest
from models.stock import StockMovementResponse
from services.production_task_service import get_production_task_service
from services.task_views import group_by_day_bucket, gantt_bars
from exceptions import ValidationError
from routes.common import handle_error, get_current_actor

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/api/production/tasks", tags=["Production Tasks"])


# ===================
# QUEUE & VIEWS
# ===================

@router.get("", response_model=ProductionTaskListResponse)
async def list_production_tasks(
    page: int = Query(1, ge=1, description="Page number"),
    page_size: int = Query(50, ge=1, le=200, description="Items per page"),
    status: Optional[TaskStatus] = Query(None, description="Filter by status"),
    product_id: Optional[str] = Query(None, description="Filter by product"),
    order_id: Optional[str] = Query(None, description="Filter by order"),
    date_from: Optional[date] = Query(None, description="Planned window ends on or after"),
    date_to: Optional[date] = Query(None, description="Planned window starts on or before"),
):
    """
    List production tasks in queue order (priority, then manual order).
    """
    try:
        service = get_production_task_service()

        tasks, total = service.get_all(
            page=page,
            page_size=page_size,
            status=status,
            product_id=product_id,
            order_id=order_id,
            date_from=date_from,
            date_to=date_to,
        )

        return ProductionTaskListResponse(
            data=tasks,
            total=total,
            page=page,
            page_size=page_size,
            total_pages=(total + page_size - 1) // page_size,
        )

    except Exception as e:
        return handle_error(e)


@router.get("/stats", response_model=ProductionStats)
async def get_production_stats():
    """Counts by status, urgent pending and overdue tasks."""
    try:
        return get_production_task_service().get_stats()
    except Exception as e:
        return handle_error(e)


@router.get("/calendar", response_model=dict[DayBucket, list[ProductionTaskResponse]])
async def get_production_calendar():
    """Tasks grouped into overdue / today / tomorrow / later / unplanned / completed."""
    try:
        tasks = get_production_task_service().get_schedule()
        return group_by_day_bucket(tasks, date.today())
    except Exception as e:
        return handle_error(e)


@router.get("/gantt", response_model=list[GanttBar])
async def get_production_gantt(
    view_start: Optional[date] = Query(None, description="First visible day (default: this Monday)"),
    view_end: Optional[date] = Query(None, description="Last visible day (default: view_start + 6)"),
):
    """Bars for every planned task visible in the view."""
    try:
        if view_start is None:
            today = date.today()
            view_start = today - timedelta(days=today.weekday())
        if view_end is None:
            view_end = view_start + timedelta(days=6)
        if view_end < view_start:
            raise ValidationError(
                "view_end cannot be before view_start",
                code="INVALID_DATE_RANGE",
            )

        tasks = get_production_task_service().get_schedule()
        return gantt_bars(tasks, view_start, view_end)

    except Exception as e:
        return handle_error(e)


# ===================
# BULK OPERATIONS
# ===================

@router.post("/bulk-register", response_model=BulkRegistrationResponse)
async def bulk_register_production(
    request: BulkRegistrationRequest,
    actor_id: str = Depends(get_current_actor),
):
    """
    Register a shift report by article.

    Always 200: per-row outcomes are in `results`.
    """
    try:
        return get_production_task_service().bulk_register(request, actor_id)
    except Exception as e:
        return handle_error(e)


@router.post("/complete-by-product", response_model=BulkRowResult)
async def complete_tasks_by_product(
    request: CompleteByProductRequest,
    actor_id: str = Depends(get_current_actor),
):
    """Distribute one product's output over its open tasks."""
    try:
        return get_production_task_service().complete_by_product(request, actor_id)
    except Exception as e:
        return handle_error(e)


@router.post("/reorder", response_model=list[ProductionTaskResponse])
async def reorder_production_tasks(
    request: ReorderRequest,
    actor_id: str = Depends(get_current_actor),
):
    """Persist the manual order of pending tasks."""
    try:
        logger.info("reorder_requested", actor_id=actor_id, count=len(request.task_ids))
        return get_production_task_service().reorder(request.task_ids)
    except Exception as e:
        return handle_error(e)


# ===================
# SINGLE TASK
# ===================

@router.post("", response_model=TaskCreateResult, status_code=201)
async def create_production_task(
    data: ProductionTaskCreate,
    actor_id: str = Depends(get_current_actor),
):
    """
    Create a pending task.

    Overlapping active tasks are returned in `overlaps`; they do not
    block creation.
    """
    try:
        return get_production_task_service().create(data, actor_id)
    except Exception as e:
        return handle_error(e)


@router.get("/{task_id}", response_model=ProductionTaskResponse)
async def get_production_task(task_id: str):
    try:
        return get_production_task_service().get_by_id(task_id)
    except Exception as e:
        return handle_error(e)


@router.patch("/{task_id}", response_model=ProductionTaskResponse)
async def update_production_task(
    task_id: str,
    data: ProductionTaskUpdate,
    actor_id: str = Depends(get_current_actor),
):
    """
    Edit a task.

    Raises:
        409: Task closed, or plan fields edited after production started
        422: Invalid quantities or dates
    """
    try:
        return get_production_task_service().update(task_id, data, actor_id)
    except Exception as e:
        return handle_error(e)


@router.delete("/{task_id}", status_code=204)
async def delete_production_task(
    task_id: str,
    actor_id: str = Depends(get_current_actor),
):
    """
    Hard delete a pending task.

    Raises:
        409: Task is not pending
    """
    try:
        get_production_task_service().delete(task_id)
        logger.info("production_task_delete_requested", task_id=task_id, actor_id=actor_id)
        return None
    except Exception as e:
        return handle_error(e)


@router.post("/{task_id}/start", response_model=ProductionTaskResponse)
async def start_production_task(task_id: str, actor_id: str = Depends(get_current_actor)):
    try:
        return get_production_task_service().start(task_id, actor_id)
    except Exception as e:
        return handle_error(e)


@router.post("/{task_id}/pause", response_model=ProductionTaskResponse)
async def pause_production_task(task_id: str, actor_id: str = Depends(get_current_actor)):
    try:
        return get_production_task_service().pause(task_id, actor_id)
    except Exception as e:
        return handle_error(e)


@router.post("/{task_id}/resume", response_model=ProductionTaskResponse)
async def resume_production_task(task_id: str, actor_id: str = Depends(get_current_actor)):
    try:
        return get_production_task_service().resume(task_id, actor_id)
    except Exception as e:
        return handle_error(e)


@router.post("/{task_id}/cancel", response_model=ProductionTaskResponse)
async def cancel_production_task(
    task_id: str,
    request: TaskCancelRequest,
    actor_id: str = Depends(get_current_actor),
):
    try:
        return get_production_task_service().cancel(task_id, request.reason, actor_id)
    except Exception as e:
        return handle_error(e)


@router.post("/{task_id}/complete", response_model=TaskCompletionResult)
async def complete_production_task(
    task_id: str,
    registration: QuantityRegistration,
    actor_id: str = Depends(get_current_actor),
):
    """Close a task with final totals."""
    try:
        return get_production_task_service().complete(task_id, registration, actor_id)
    except Exception as e:
        return handle_error(e)


@router.post("/{task_id}/partial-complete", response_model=PartialCompletionResult)
async def partial_complete_production_task(
    task_id: str,
    registration: QuantityRegistration,
    actor_id: str = Depends(get_current_actor),
):
    """Register a delta; negative values are corrections."""
    try:
        return get_production_task_service().partial_complete(task_id, registration, actor_id)
    except Exception as e:
        return handle_error(e)


@router.post("/{task_id}/gantt-drag", response_model=ProductionTaskResponse)
async def drag_production_task(
    task_id: str,
    request: GanttDragRequest,
    actor_id: str = Depends(get_current_actor),
):
    """Re-plan a task from a Gantt drag (move or resize)."""
    try:
        return get_production_task_service().reschedule_by_drag(task_id, request, actor_id)
    except Exception as e:
        return handle_error(e)


# ===================
# EXTRAS & HISTORY
# ===================

@router.get("/{task_id}/extras", response_model=list[ExtraProductionResponse])
async def list_task_extras(task_id: str):
    try:
        return get_production_task_service().get_extras(task_id)
    except Exception as e:
        return handle_error(e)


@router.post("/{task_id}/extras", response_model=ExtraProductionResponse, status_code=201)
async def record_task_extra(
    task_id: str,
    data: ExtraProductionCreate,
    actor_id: str = Depends(get_current_actor),
):
    """Record extra finished goods and credit them to stock."""
    try:
        return get_production_task_service().record_extra(task_id, data, actor_id)
    except Exception as e:
        return handle_error(e)


@router.get("/{task_id}/stock-movements", response_model=list[StockMovementResponse])
async def list_task_stock_movements(task_id: str):
    try:
        return get_production_task_service().get_stock_movements(task_id)
    except Exception as e:
        return handle_error(e)
