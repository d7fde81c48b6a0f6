"""
Planning service: overlap checks and window suggestions against the
current production calendar.
"""

from typing import Optional
from datetime import date
import structlog

from config import settings
from models.planning import (
    PlanningWindow,
    PlanningWindowRequest,
    PlanningValidationRequest,
    OverlapCheckResponse,
    PlanningValidationResult,
    OptimalPlanRequest,
    OptimalPlanSuggestion,
    AlternativeWindow,
)
from services.production_task_service import ProductionTaskService, get_production_task_service
from services.planning_rules import (
    check_planning,
    find_overlaps,
    suggest_alternative_windows,
    estimate_optimal_plan,
)

logger = structlog.get_logger(__name__)


class PlanningService:
    """
    Planning helpers for the task form and the Gantt view.

    All calendar data comes from active production tasks.
    """

    def __init__(self, tasks: Optional[ProductionTaskService] = None):
        self.tasks = tasks or get_production_task_service()

    def validate(self, request: PlanningValidationRequest) -> PlanningValidationResult:
        return check_planning(
            request.planned_start_date,
            request.planned_end_date,
            warning_days=settings.planning_warning_days,
        )

    def check_overlaps(
        self,
        request: PlanningWindowRequest,
        today: Optional[date] = None,
    ) -> OverlapCheckResponse:
        """
        Overlaps for a candidate window, with alternatives when any exist.
        """
        today = today or date.today()
        window = PlanningWindow(request.start_date, request.end_date)
        active = self.tasks.get_active_rows()

        overlaps = find_overlaps(window, active, request.exclude_task_id)
        suggestions = []
        if overlaps:
            suggestions = suggest_alternative_windows(
                window,
                active,
                today,
                count=request.count or settings.suggestion_count,
                search_days=settings.free_slot_search_days,
                exclude_task_id=request.exclude_task_id,
            )

        logger.info(
            "planning_overlaps_checked",
            start=request.start_date.isoformat(),
            end=request.end_date.isoformat(),
            overlaps=len(overlaps),
            suggestions=len(suggestions)
        )

        return OverlapCheckResponse(
            has_overlaps=bool(overlaps),
            overlaps=overlaps,
            suggestions=suggestions,
        )

    def suggest(
        self,
        request: PlanningWindowRequest,
        today: Optional[date] = None,
    ) -> list[AlternativeWindow]:
        """Alternative windows regardless of whether the candidate overlaps."""
        today = today or date.today()
        return suggest_alternative_windows(
            PlanningWindow(request.start_date, request.end_date),
            self.tasks.get_active_rows(),
            today,
            count=request.count or settings.suggestion_count,
            search_days=settings.free_slot_search_days,
            exclude_task_id=request.exclude_task_id,
        )

    def optimal_plan(
        self,
        request: OptimalPlanRequest,
        today: Optional[date] = None,
    ) -> OptimalPlanSuggestion:
        """
        Estimate duration and a free start date from the product's history.

        Raises:
            ProductNotFoundError: Unknown product
        """
        today = today or date.today()
        self.tasks.products.get_by_id(request.product_id)

        history = self.tasks.get_completed_rows(request.product_id, settings.optimal_plan_history_limit)
        active = self.tasks.get_active_rows()
        queue_depth = sum(1 for row in active if row.get("product_id") == request.product_id)

        suggestion = estimate_optimal_plan(
            request.quantity,
            history,
            active,
            today,
            queue_depth=queue_depth,
            search_days=settings.free_slot_search_days,
        )

        logger.info(
            "optimal_plan_estimated",
            product_id=request.product_id,
            quantity=request.quantity,
            duration_days=suggestion.suggested_duration_days,
            history_count=suggestion.history_count
        )
        return suggestion


# Singleton instance
_planning_service: Optional[PlanningService] = None


def get_planning_service() -> PlanningService:
    """Get or create PlanningService instance."""
    global _planning_service
    if _planning_service is None:
        _planning_service = PlanningService()
    return _planning_service
