"""
Pydantic models for validation and serialization.
"""

from models.base import (
    BaseSchema,
    TimestampMixin,
)
from models.product import (
    ProductSummary,
    OrderPriority,
    OrderSummary,
)
from models.stock import (
    MovementType,
    ReferenceType,
    StockMovementResponse,
)
from models.planning import (
    PlanningWindow,
    OverlapInfo,
    AlternativeWindow,
    PlanningWindowRequest,
    PlanningValidationRequest,
    OverlapCheckResponse,
    PlanningValidationResult,
    OptimalPlanRequest,
    OptimalPlanSuggestion,
    DayBucket,
    GanttDragMode,
    GanttBar,
    GanttDragRequest,
)
from models.production_task import (
    TaskStatus,
    PlanningStatus,
    is_valid_status_transition,
    ProductionTaskCreate,
    ProductionTaskUpdate,
    QuantityRegistration,
    TaskCancelRequest,
    ProductionTaskResponse,
    ProductionTaskListResponse,
    TaskCreateResult,
    TaskCompletionResult,
    PartialCompletionResult,
    RowStatus,
    BulkRegistrationRow,
    BulkRegistrationRequest,
    CompleteByProductRequest,
    TaskAllocation,
    BulkRowResult,
    BulkRegistrationResponse,
    ReorderRequest,
    ExtraProductionCreate,
    ExtraProductionResponse,
    ProductionStats,
)

__all__ = [
    # Base
    "BaseSchema",
    "TimestampMixin",
    # Product / order
    "ProductSummary",
    "OrderPriority",
    "OrderSummary",
    # Stock
    "MovementType",
    "ReferenceType",
    "StockMovementResponse",
    # Planning
    "PlanningWindow",
    "OverlapInfo",
    "AlternativeWindow",
    "PlanningWindowRequest",
    "PlanningValidationRequest",
    "OverlapCheckResponse",
    "PlanningValidationResult",
    "OptimalPlanRequest",
    "OptimalPlanSuggestion",
    "DayBucket",
    "GanttDragMode",
    "GanttBar",
    "GanttDragRequest",
    # Production tasks
    "TaskStatus",
    "PlanningStatus",
    "is_valid_status_transition",
    "ProductionTaskCreate",
    "ProductionTaskUpdate",
    "QuantityRegistration",
    "TaskCancelRequest",
    "ProductionTaskResponse",
    "ProductionTaskListResponse",
    "TaskCreateResult",
    "TaskCompletionResult",
    "PartialCompletionResult",
    "RowStatus",
    "BulkRegistrationRow",
    "BulkRegistrationRequest",
    "CompleteByProductRequest",
    "TaskAllocation",
    "BulkRowResult",
    "BulkRegistrationResponse",
    "ReorderRequest",
    "ExtraProductionCreate",
    "ExtraProductionResponse",
    "ProductionStats",
]
