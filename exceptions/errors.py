"""
Custom exception classes for the application.

Error codes are stable strings consumed by API clients.
"""

from typing import Optional, Any
from datetime import datetime, timezone


class AppError(Exception):
    """
    Base exception for all application errors.

    All custom exceptions inherit from this.

    Attributes:
        code: Error code (e.g., "PRODUCTION_TASK_NOT_FOUND")
        message: Human-readable message
        status_code: HTTP status code
        details: Additional context
    """

    def __init__(
        self,
        code: str,
        message: str,
        status_code: int = 500,
        details: Optional[dict[str, Any]] = None
    ):
        self.code = code
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        self.timestamp = datetime.now(timezone.utc).isoformat()
        super().__init__(message)

    def to_dict(self) -> dict:
        """Convert to API response format."""
        return {
            "error": {
                "code": self.code,
                "message": self.message,
                "details": self.details,
                "timestamp": self.timestamp
            }
        }


class NotFoundError(AppError):
    """Resource not found (404)."""

    def __init__(
        self,
        resource: str,
        identifier: str,
        code: Optional[str] = None
    ):
        super().__init__(
            code=code or f"{resource.upper()}_NOT_FOUND",
            message=f"{resource} not found",
            status_code=404,
            details={"id": identifier}
        )


class ValidationError(AppError):
    """Validation failed (422)."""

    def __init__(
        self,
        message: str,
        code: str = "VALIDATION_ERROR",
        details: Optional[dict] = None
    ):
        super().__init__(
            code=code,
            message=message,
            status_code=422,
            details=details
        )


class ConflictError(AppError):
    """Conflict with current resource state (409)."""

    def __init__(
        self,
        message: str,
        code: str = "CONFLICT",
        details: Optional[dict] = None
    ):
        super().__init__(
            code=code,
            message=message,
            status_code=409,
            details=details
        )


class ExternalServiceError(AppError):
    """External service failure (503)."""

    def __init__(
        self,
        service: str,
        message: str,
        details: Optional[dict] = None
    ):
        super().__init__(
            code=f"{service.upper()}_ERROR",
            message=message,
            status_code=503,
            details={"service": service, **(details or {})}
        )


class DatabaseError(AppError):
    """Database operation failed (500)."""

    def __init__(
        self,
        operation: str,
        message: str,
        details: Optional[dict] = None
    ):
        super().__init__(
            code="DATABASE_ERROR",
            message=f"Database {operation} failed: {message}",
            status_code=500,
            details={"operation": operation, **(details or {})}
        )


# ===================
# RESOLUTION ERRORS
# ===================

class ProductionTaskNotFoundError(NotFoundError):
    """Production task not found."""

    def __init__(self, task_id: str):
        super().__init__(
            resource="Production task",
            identifier=task_id,
            code="PRODUCTION_TASK_NOT_FOUND"
        )


class ProductNotFoundError(NotFoundError):
    """Product not found."""

    def __init__(self, product_id: str):
        super().__init__(
            resource="Product",
            identifier=product_id,
            code="PRODUCT_NOT_FOUND"
        )


class ArticleNotFoundError(NotFoundError):
    """No product carries the given article."""

    def __init__(self, article: str):
        super().__init__(
            resource="Article",
            identifier=article,
            code="ARTICLE_NOT_FOUND"
        )
        self.message = f"Unknown article: {article}"


class OrderNotFoundError(NotFoundError):
    """Order not found."""

    def __init__(self, order_id: str):
        super().__init__(
            resource="Order",
            identifier=order_id,
            code="ORDER_NOT_FOUND"
        )


# ===================
# QUANTITY VALIDATION ERRORS
# ===================

class QuantityMismatchError(ValidationError):
    """Quality plus defect does not add up to produced."""

    def __init__(self, produced: int, quality: int, defect: int):
        super().__init__(
            code="QUANTITY_MISMATCH",
            message=(
                f"Quality ({quality}) + defect ({defect}) must equal "
                f"produced ({produced})"
            ),
            details={"produced": produced, "quality": quality, "defect": defect}
        )


class NegativeQuantityError(ValidationError):
    """A quantity that must be non-negative is negative."""

    def __init__(self, field: str, value: int):
        super().__init__(
            code="NEGATIVE_QUANTITY",
            message=f"{field} cannot be negative",
            details={"field": field, "value": value}
        )


class ZeroDeltaError(ValidationError):
    """Registration that changes nothing."""

    def __init__(self):
        super().__init__(
            code="ZERO_DELTA",
            message="Registration must change at least one quantity"
        )


class CorrectionExceedsRecordedError(ValidationError):
    """Negative correction larger than what is recorded."""

    def __init__(self, field: str, requested: int, recorded: int):
        super().__init__(
            code="CORRECTION_EXCEEDS_RECORDED",
            message=(
                f"Cannot remove {requested} from {field}: "
                f"only {recorded} recorded"
            ),
            details={"field": field, "requested": requested, "recorded": recorded}
        )


# ===================
# PLANNING VALIDATION ERRORS
# ===================

class PlanningDatesRequiredError(ValidationError):
    """Planned start and end dates are mandatory."""

    def __init__(self):
        super().__init__(
            code="PLANNING_DATES_REQUIRED",
            message="Planned start date and planned end date are required"
        )


class InvalidDateRangeError(ValidationError):
    """End date before start date."""

    def __init__(self, start: str, end: str):
        super().__init__(
            code="INVALID_DATE_RANGE",
            message="Planned end date cannot be before planned start date",
            details={"start": start, "end": end}
        )


class GanttDropError(ValidationError):
    """Gantt drag produced a window outside the view or inverted."""

    def __init__(self, message: str, details: Optional[dict] = None):
        super().__init__(
            code="GANTT_DROP_REJECTED",
            message=message,
            details=details
        )


class CancelReasonRequiredError(ValidationError):
    """Cancellation reason missing or too short."""

    def __init__(self, min_length: int):
        super().__init__(
            code="CANCEL_REASON_REQUIRED",
            message=f"Cancellation reason must be at least {min_length} characters",
            details={"min_length": min_length}
        )


class EmptyReorderError(ValidationError):
    """Reorder request without usable task ids."""

    def __init__(self, message: str = "Reorder requires a non-empty list of unique task ids"):
        super().__init__(
            code="INVALID_REORDER",
            message=message
        )


# ===================
# DOMAIN / STATE ERRORS
# ===================

class TaskStateError(ConflictError):
    """Operation not permitted in the task's current status."""

    def __init__(
        self,
        task_id: str,
        status: str,
        operation: str,
        code: str = "TASK_STATE_CONFLICT"
    ):
        super().__init__(
            code=code,
            message=f"Cannot {operation} a task with status {status}",
            details={"task_id": task_id, "status": status, "operation": operation}
        )


class InvalidStatusTransitionError(ConflictError):
    """Invalid status transition."""

    def __init__(self, current_status: str, new_status: str):
        super().__init__(
            code="INVALID_STATUS_TRANSITION",
            message=f"Cannot transition from {current_status} to {new_status}",
            details={
                "current_status": current_status,
                "new_status": new_status,
            }
        )


class TaskNotDeletableError(TaskStateError):
    """Only pending tasks can be deleted."""

    def __init__(self, task_id: str, status: str):
        super().__init__(
            task_id=task_id,
            status=status,
            operation="delete",
            code="TASK_NOT_DELETABLE"
        )


class TaskAlreadyCompletedError(TaskStateError):
    """Completed tasks only accept corrections."""

    def __init__(self, task_id: str):
        super().__init__(
            task_id=task_id,
            status="completed",
            operation="register additional production for",
            code="TASK_ALREADY_COMPLETED"
        )


class LockedFieldError(ConflictError):
    """Field cannot change once production started."""

    def __init__(self, task_id: str, fields: list[str], status: str):
        super().__init__(
            code="TASK_FIELDS_LOCKED",
            message=f"Fields {', '.join(fields)} can only be changed while the task is pending",
            details={"task_id": task_id, "fields": fields, "status": status}
        )


# ===================
# CLIENT ERRORS
# ===================

class TransportError(ExternalServiceError):
    """Network failure talking to the production API. Retry is user-driven."""

    def __init__(self, message: str, details: Optional[dict] = None):
        super().__init__(
            service="production_api",
            message=f"{message}. Check your connection and try again.",
            details=details
        )
        self.retryable = True


class AuthenticationError(AppError):
    """Session rejected by the server (401/403)."""

    def __init__(self, status_code: int = 401, message: str = "Session expired or access denied"):
        super().__init__(
            code="AUTHENTICATION_FAILED" if status_code == 401 else "ACCESS_DENIED",
            message=message,
            status_code=status_code
        )


class ApiError(AppError):
    """Error payload returned by the production API, surfaced verbatim."""

    def __init__(self, code: str, message: str, status_code: int, details: Optional[dict] = None):
        super().__init__(
            code=code,
            message=message,
            status_code=status_code,
            details=details
        )
