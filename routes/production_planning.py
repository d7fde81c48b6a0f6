"""
Production planning API routes: overlap checks and suggestions.
"""

from fastapi import APIRouter
import structlog

from models.planning import (
    PlanningWindowRequest,
    PlanningValidationRequest,
    OverlapCheckResponse,
    PlanningValidationResult,
    OptimalPlanRequest,
    OptimalPlanSuggestion,
    AlternativeWindow,
)
from services.planning_service import get_planning_service
from routes.common import handle_error

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/api/production/planning", tags=["Production Planning"])


@router.post("/validate", response_model=PlanningValidationResult)
async def validate_planning(request: PlanningValidationRequest):
    """Check planned dates; invalid input is reported, not raised."""
    try:
        return get_planning_service().validate(request)
    except Exception as e:
        return handle_error(e)


@router.post("/overlaps", response_model=OverlapCheckResponse)
async def check_overlaps(request: PlanningWindowRequest):
    """
    Active tasks overlapping a candidate window.

    Suggestions are included only when overlaps exist.
    """
    try:
        return get_planning_service().check_overlaps(request)
    except Exception as e:
        return handle_error(e)


@router.post("/suggestions", response_model=list[AlternativeWindow])
async def suggest_windows(request: PlanningWindowRequest):
    try:
        return get_planning_service().suggest(request)
    except Exception as e:
        return handle_error(e)


@router.post("/optimal-plan", response_model=OptimalPlanSuggestion)
async def suggest_optimal_plan(request: OptimalPlanRequest):
    """Duration and start estimated from completed tasks of the product."""
    try:
        return get_planning_service().optimal_plan(request)
    except Exception as e:
        return handle_error(e)
