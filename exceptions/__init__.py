"""
Custom exceptions module.
"""

from exceptions.errors import (
    # Base exceptions
    AppError,
    NotFoundError,
    ValidationError,
    ConflictError,
    ExternalServiceError,
    DatabaseError,

    # Resolution
    ProductionTaskNotFoundError,
    ProductNotFoundError,
    ArticleNotFoundError,
    OrderNotFoundError,

    # Quantities
    QuantityMismatchError,
    NegativeQuantityError,
    ZeroDeltaError,
    CorrectionExceedsRecordedError,

    # Planning
    PlanningDatesRequiredError,
    InvalidDateRangeError,
    GanttDropError,

    # Lifecycle
    CancelReasonRequiredError,
    EmptyReorderError,
    TaskStateError,
    InvalidStatusTransitionError,
    TaskNotDeletableError,
    TaskAlreadyCompletedError,
    LockedFieldError,

    # Client
    TransportError,
    AuthenticationError,
    ApiError,
)

__all__ = [
    # Base
    "AppError",
    "NotFoundError",
    "ValidationError",
    "ConflictError",
    "ExternalServiceError",
    "DatabaseError",

    # Resolution
    "ProductionTaskNotFoundError",
    "ProductNotFoundError",
    "ArticleNotFoundError",
    "OrderNotFoundError",

    # Quantities
    "QuantityMismatchError",
    "NegativeQuantityError",
    "ZeroDeltaError",
    "CorrectionExceedsRecordedError",

    # Planning
    "PlanningDatesRequiredError",
    "InvalidDateRangeError",
    "GanttDropError",

    # Lifecycle
    "CancelReasonRequiredError",
    "EmptyReorderError",
    "TaskStateError",
    "InvalidStatusTransitionError",
    "TaskNotDeletableError",
    "TaskAlreadyCompletedError",
    "LockedFieldError",

    # Client
    "TransportError",
    "AuthenticationError",
    "ApiError",
]
