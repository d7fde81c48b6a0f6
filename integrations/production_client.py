"""
HTTP client for the production task API.

Network failures become TransportError and are never retried here;
retry is the caller's decision. A 401/403 tears the session down once
and raises AuthenticationError. Any other error payload is passed
through unchanged as ApiError.
"""

from datetime import date
from typing import Any, Optional
import requests
import structlog

from config import settings
from models.production_task import (
    TaskStatus,
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
    ExtraProductionCreate,
    ExtraProductionResponse,
    ProductionStats,
)
from models.planning import (
    PlanningWindowRequest,
    OverlapCheckResponse,
    AlternativeWindow,
    OptimalPlanRequest,
    OptimalPlanSuggestion,
    PlanningValidationRequest,
    PlanningValidationResult,
    GanttBar,
    GanttDragRequest,
)
from models.stock import StockMovementResponse
from integrations.session import SessionManager
from exceptions import TransportError, AuthenticationError, ApiError

logger = structlog.get_logger(__name__)

TASKS_PATH = "/api/production/tasks"
PLANNING_PATH = "/api/production/planning"


class ProductionApiClient:
    """One method per production command or query."""

    def __init__(
        self,
        session: SessionManager,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        http: Optional[requests.Session] = None,
    ):
        self.session = session
        self.base_url = (base_url or settings.api_base_url).rstrip("/")
        self.timeout = timeout or settings.request_timeout_seconds
        self.http = http or requests.Session()

    # ===================
    # TRANSPORT
    # ===================

    def _request(
        self,
        method: str,
        path: str,
        json: Any = None,
        params: Optional[dict] = None,
    ) -> Any:
        headers = {}
        current = self.session.current
        if current is not None:
            headers["X-User-Id"] = current.actor_id

        url = f"{self.base_url}{path}"
        try:
            response = self.http.request(
                method,
                url,
                json=json,
                params={k: v for k, v in (params or {}).items() if v is not None},
                headers=headers,
                timeout=self.timeout,
            )
        except requests.exceptions.RequestException as e:
            logger.error("production_api_unreachable", method=method, path=path, error=str(e))
            raise TransportError(f"Production API unreachable ({type(e).__name__})", {"path": path})

        if response.status_code in (401, 403):
            logger.warning("production_api_auth_failed", path=path, status=response.status_code)
            self.session.invalidate("unauthorized" if response.status_code == 401 else "forbidden")
            raise AuthenticationError(response.status_code)

        if response.status_code >= 400:
            try:
                payload = response.json()
            except ValueError:
                payload = {}
            error = payload.get("error") if isinstance(payload, dict) else None
            error = error or {}
            logger.info(
                "production_api_error",
                path=path,
                status=response.status_code,
                code=error.get("code")
            )
            raise ApiError(
                code=error.get("code") or "HTTP_ERROR",
                message=error.get("message") or response.text or f"HTTP {response.status_code}",
                status_code=response.status_code,
                details=error.get("details"),
            )

        if response.status_code == 204 or not response.content:
            return None
        return response.json()

    @staticmethod
    def _body(model) -> dict:
        return model.model_dump(mode="json", exclude_none=True)

    # ===================
    # TASKS
    # ===================

    def list_tasks(
        self,
        status: Optional[TaskStatus] = None,
        product_id: Optional[str] = None,
        page: int = 1,
        page_size: int = 200,
    ) -> list[ProductionTaskResponse]:
        data = self._request("GET", TASKS_PATH, params={
            "status": status.value if status else None,
            "product_id": product_id,
            "page": page,
            "page_size": page_size,
        })
        return [ProductionTaskResponse.model_validate(row) for row in data["data"]]

    def get_task(self, task_id: str) -> ProductionTaskResponse:
        return ProductionTaskResponse.model_validate(self._request("GET", f"{TASKS_PATH}/{task_id}"))

    def create_task(self, data: ProductionTaskCreate) -> TaskCreateResult:
        return TaskCreateResult.model_validate(self._request("POST", TASKS_PATH, json=self._body(data)))

    def update_task(self, task_id: str, data: ProductionTaskUpdate) -> ProductionTaskResponse:
        return ProductionTaskResponse.model_validate(
            self._request("PATCH", f"{TASKS_PATH}/{task_id}", json=self._body(data))
        )

    def delete_task(self, task_id: str) -> None:
        self._request("DELETE", f"{TASKS_PATH}/{task_id}")

    def _transition(self, task_id: str, action: str, body: Optional[dict] = None) -> ProductionTaskResponse:
        return ProductionTaskResponse.model_validate(
            self._request("POST", f"{TASKS_PATH}/{task_id}/{action}", json=body)
        )

    def start_task(self, task_id: str) -> ProductionTaskResponse:
        return self._transition(task_id, "start")

    def pause_task(self, task_id: str) -> ProductionTaskResponse:
        return self._transition(task_id, "pause")

    def resume_task(self, task_id: str) -> ProductionTaskResponse:
        return self._transition(task_id, "resume")

    def cancel_task(self, task_id: str, reason: str) -> ProductionTaskResponse:
        return self._transition(task_id, "cancel", {"reason": reason})

    def complete_task(self, task_id: str, registration: QuantityRegistration) -> TaskCompletionResult:
        return TaskCompletionResult.model_validate(
            self._request("POST", f"{TASKS_PATH}/{task_id}/complete", json=self._body(registration))
        )

    def partial_complete_task(self, task_id: str, registration: QuantityRegistration) -> PartialCompletionResult:
        return PartialCompletionResult.model_validate(
            self._request("POST", f"{TASKS_PATH}/{task_id}/partial-complete", json=self._body(registration))
        )

    def bulk_register(self, request: BulkRegistrationRequest) -> BulkRegistrationResponse:
        return BulkRegistrationResponse.model_validate(
            self._request("POST", f"{TASKS_PATH}/bulk-register", json=self._body(request))
        )

    def complete_by_product(self, request: CompleteByProductRequest) -> BulkRowResult:
        return BulkRowResult.model_validate(
            self._request("POST", f"{TASKS_PATH}/complete-by-product", json=self._body(request))
        )

    def reorder(self, task_ids: list[str]) -> list[ProductionTaskResponse]:
        data = self._request("POST", f"{TASKS_PATH}/reorder", json={"task_ids": task_ids})
        return [ProductionTaskResponse.model_validate(row) for row in data]

    def drag_task(self, task_id: str, request: GanttDragRequest) -> ProductionTaskResponse:
        return ProductionTaskResponse.model_validate(
            self._request("POST", f"{TASKS_PATH}/{task_id}/gantt-drag", json=self._body(request))
        )

    def record_extra(self, task_id: str, data: ExtraProductionCreate) -> ExtraProductionResponse:
        return ExtraProductionResponse.model_validate(
            self._request("POST", f"{TASKS_PATH}/{task_id}/extras", json=self._body(data))
        )

    def get_extras(self, task_id: str) -> list[ExtraProductionResponse]:
        data = self._request("GET", f"{TASKS_PATH}/{task_id}/extras")
        return [ExtraProductionResponse.model_validate(row) for row in data]

    def get_stock_movements(self, task_id: str) -> list[StockMovementResponse]:
        data = self._request("GET", f"{TASKS_PATH}/{task_id}/stock-movements")
        return [StockMovementResponse.model_validate(row) for row in data]

    # ===================
    # VIEWS
    # ===================

    def get_stats(self) -> ProductionStats:
        return ProductionStats.model_validate(self._request("GET", f"{TASKS_PATH}/stats"))

    def get_calendar(self) -> dict[str, list[ProductionTaskResponse]]:
        data = self._request("GET", f"{TASKS_PATH}/calendar")
        return {
            bucket: [ProductionTaskResponse.model_validate(row) for row in rows]
            for bucket, rows in data.items()
        }

    def get_gantt(self, view_start: date, view_end: date) -> list[GanttBar]:
        data = self._request("GET", f"{TASKS_PATH}/gantt", params={
            "view_start": view_start.isoformat(),
            "view_end": view_end.isoformat(),
        })
        return [GanttBar.model_validate(row) for row in data]

    # ===================
    # PLANNING
    # ===================

    def validate_planning(self, request: PlanningValidationRequest) -> PlanningValidationResult:
        return PlanningValidationResult.model_validate(
            self._request("POST", f"{PLANNING_PATH}/validate", json=self._body(request))
        )

    def check_overlaps(self, request: PlanningWindowRequest) -> OverlapCheckResponse:
        return OverlapCheckResponse.model_validate(
            self._request("POST", f"{PLANNING_PATH}/overlaps", json=self._body(request))
        )

    def suggest_windows(self, request: PlanningWindowRequest) -> list[AlternativeWindow]:
        data = self._request("POST", f"{PLANNING_PATH}/suggestions", json=self._body(request))
        return [AlternativeWindow.model_validate(row) for row in data]

    def optimal_plan(self, request: OptimalPlanRequest) -> OptimalPlanSuggestion:
        return OptimalPlanSuggestion.model_validate(
            self._request("POST", f"{PLANNING_PATH}/optimal-plan", json=self._body(request))
        )
