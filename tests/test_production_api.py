"""
API tests for the production routes.

Exercise the FastAPI app end to end against the in-memory database.

Run: pytest tests/test_production_api.py -v
"""

import pytest

from tests.factories import ProductFactory, ProductionTaskFactory, StockFactory

TASKS = "/api/production/tasks"
PLANNING = "/api/production/planning"


@pytest.fixture
def client(test_client_with_mock_db, mock_supabase):
    mock_supabase.set_table_data("products", [
        ProductFactory.create(id="prod-1", name="Granite Grey", article="GG-6060"),
    ])
    return test_client_with_mock_db


class TestAuthentication:
    """Commands require the acting user."""

    def test_command_without_actor_is_401(self, client, mock_supabase):
        mock_supabase.set_table_data("production_tasks", [ProductionTaskFactory.create(id="t1", product_id="prod-1")])

        response = client.post(f"{TASKS}/t1/start")

        assert response.status_code == 401
        assert response.json()["error"]["code"] == "AUTHENTICATION_FAILED"
        assert mock_supabase.row("production_tasks", "t1")["status"] == "pending"

    def test_reads_do_not_need_actor(self, client):
        response = client.get(TASKS)
        assert response.status_code == 200
        assert response.json()["total"] == 0


class TestTaskEndpoints:
    """Task CRUD and lifecycle over HTTP."""

    def test_create_and_fetch(self, client, actor_headers):
        response = client.post(TASKS, headers=actor_headers, json={
            "product_id": "prod-1",
            "requested_quantity": 50,
            "planned_start_date": "2025-03-10",
            "planned_end_date": "2025-03-12",
        })

        assert response.status_code == 201
        task = response.json()["task"]
        assert task["status"] == "pending"
        assert task["created_by"] == "user-operator-1"

        fetched = client.get(f"{TASKS}/{task['id']}")
        assert fetched.status_code == 200
        assert fetched.json()["product_name"] == "Granite Grey"

    def test_create_without_dates_is_422(self, client, actor_headers):
        response = client.post(TASKS, headers=actor_headers, json={
            "product_id": "prod-1",
            "requested_quantity": 50,
        })
        assert response.status_code == 422
        assert response.json()["error"]["code"] == "PLANNING_DATES_REQUIRED"

    def test_unknown_task_is_404(self, client):
        response = client.get(f"{TASKS}/missing")
        assert response.status_code == 404
        assert response.json()["error"]["code"] == "PRODUCTION_TASK_NOT_FOUND"

    def test_lifecycle(self, client, mock_supabase, actor_headers):
        mock_supabase.set_table_data("production_tasks", [
            ProductionTaskFactory.create(id="t1", product_id="prod-1", requested_quantity=10),
        ])

        assert client.post(f"{TASKS}/t1/start", headers=actor_headers).json()["status"] == "in_progress"
        assert client.post(f"{TASKS}/t1/pause", headers=actor_headers).json()["status"] == "paused"

        conflict = client.post(f"{TASKS}/t1/pause", headers=actor_headers)
        assert conflict.status_code == 409

        assert client.post(f"{TASKS}/t1/resume", headers=actor_headers).json()["status"] == "in_progress"
        cancelled = client.post(f"{TASKS}/t1/cancel", headers=actor_headers, json={"reason": "Line retooled"})
        assert cancelled.json()["status"] == "cancelled"

    def test_delete_started_task_is_409(self, client, mock_supabase, actor_headers):
        mock_supabase.set_table_data("production_tasks", [
            ProductionTaskFactory.create(id="t1", product_id="prod-1", status="in_progress"),
        ])
        response = client.delete(f"{TASKS}/t1", headers=actor_headers)
        assert response.status_code == 409
        assert response.json()["error"]["code"] == "TASK_NOT_DELETABLE"

    def test_delete_pending_task(self, client, mock_supabase, actor_headers):
        mock_supabase.set_table_data("production_tasks", [ProductionTaskFactory.create(id="t1", product_id="prod-1")])
        assert client.delete(f"{TASKS}/t1", headers=actor_headers).status_code == 204
        assert mock_supabase.rows("production_tasks") == []


class TestRegistrationEndpoints:
    """Quantity registration over HTTP."""

    def test_partial_complete(self, client, mock_supabase, actor_headers):
        mock_supabase.set_table_data("production_tasks", [
            ProductionTaskFactory.create(id="t1", product_id="prod-1", status="in_progress", requested_quantity=100),
        ])

        response = client.post(f"{TASKS}/t1/partial-complete", headers=actor_headers, json={
            "produced_quantity": 60, "quality_quantity": 58, "defect_quantity": 2,
        })

        body = response.json()
        assert response.status_code == 200
        assert body["remaining_quantity"] == 42
        assert body["task"]["defect_quantity"] == 2

    def test_mismatched_quantities_are_422(self, client, mock_supabase, actor_headers):
        mock_supabase.set_table_data("production_tasks", [
            ProductionTaskFactory.create(id="t1", product_id="prod-1", status="in_progress"),
        ])
        response = client.post(f"{TASKS}/t1/partial-complete", headers=actor_headers, json={
            "produced_quantity": 10, "quality_quantity": 9, "defect_quantity": 0,
        })
        assert response.status_code == 422
        assert response.json()["error"]["code"] == "QUANTITY_MISMATCH"

    def test_complete_reports_overproduction(self, client, mock_supabase, actor_headers):
        mock_supabase.set_table_data("production_tasks", [
            ProductionTaskFactory.create(id="t1", product_id="prod-1", status="in_progress", requested_quantity=10),
        ])
        response = client.post(f"{TASKS}/t1/complete", headers=actor_headers, json={
            "produced_quantity": 12, "quality_quantity": 12,
        })
        assert response.json()["overproduction_quantity"] == 2

    def test_bulk_register_mixed_rows(self, client, mock_supabase, actor_headers):
        mock_supabase.set_table_data("production_tasks", [
            ProductionTaskFactory.create(id="t1", product_id="prod-1", requested_quantity=20),
        ])

        response = client.post(f"{TASKS}/bulk-register", headers=actor_headers, json={
            "production_date": "2025-03-14",
            "rows": [
                {"article": "gg-6060", "produced_quantity": 10, "quality_quantity": 10},
                {"article": "UNKNOWN", "produced_quantity": 5, "quality_quantity": 5},
            ],
        })

        body = response.json()
        assert response.status_code == 200
        assert body["success_count"] == 1
        assert body["error_count"] == 1
        assert body["results"][1]["error_code"] == "ARTICLE_NOT_FOUND"

    def test_stock_movements(self, client, mock_supabase, actor_headers):
        mock_supabase.set_table_data("production_tasks", [
            ProductionTaskFactory.create(id="t1", product_id="prod-1", status="completed",
                                         requested_quantity=5, produced_quantity=5, quality_quantity=5),
        ])
        mock_supabase.set_table_data("stock", [StockFactory.create("prod-1", 5)])

        client.post(f"{TASKS}/t1/partial-complete", headers=actor_headers, json={
            "produced_quantity": -1, "quality_quantity": -1,
        })
        movements = client.get(f"{TASKS}/t1/stock-movements").json()

        assert len(movements) == 1
        assert movements[0]["movement_type"] == "outgoing"


class TestQueueEndpoints:
    """Reorder, views and stats."""

    def test_reorder(self, client, mock_supabase, actor_headers):
        mock_supabase.set_table_data("production_tasks", [
            ProductionTaskFactory.create(id="a", product_id="prod-1", sort_order=1),
            ProductionTaskFactory.create(id="b", product_id="prod-1", sort_order=2),
        ])
        response = client.post(f"{TASKS}/reorder", headers=actor_headers, json={"task_ids": ["b", "a"]})
        assert [t["id"] for t in response.json()] == ["b", "a"]

    def test_empty_reorder_is_422(self, client, actor_headers):
        response = client.post(f"{TASKS}/reorder", headers=actor_headers, json={"task_ids": []})
        assert response.status_code == 422

    def test_gantt_view(self, client, mock_supabase):
        mock_supabase.set_table_data("production_tasks", [
            ProductionTaskFactory.create(id="t1", product_id="prod-1",
                                         planned_start_date="2025-03-11", planned_end_date="2025-03-12"),
        ])
        response = client.get(f"{TASKS}/gantt", params={"view_start": "2025-03-10", "view_end": "2025-03-16"})
        bars = response.json()
        assert len(bars) == 1
        assert bars[0]["offset_days"] == 1

    def test_gantt_inverted_view_is_422(self, client):
        response = client.get(f"{TASKS}/gantt", params={"view_start": "2025-03-16", "view_end": "2025-03-10"})
        assert response.status_code == 422

    def test_calendar_has_every_bucket(self, client):
        response = client.get(f"{TASKS}/calendar")
        assert set(response.json()) == {"overdue", "today", "tomorrow", "later", "unplanned", "completed"}

    def test_stats(self, client, mock_supabase):
        mock_supabase.set_table_data("production_tasks", [
            ProductionTaskFactory.create(product_id="prod-1", priority=5),
        ])
        body = client.get(f"{TASKS}/stats").json()
        assert body["total"] == 1
        assert body["urgent_items"] == 1


class TestPlanningEndpoints:
    """Planning helpers over HTTP."""

    def test_validate_reports_in_body(self, client):
        response = client.post(f"{PLANNING}/validate", json={"planned_start_date": "2025-03-10"})
        assert response.status_code == 200
        assert response.json()["valid"] is False

    def test_overlaps(self, client, mock_supabase):
        mock_supabase.set_table_data("production_tasks", [
            ProductionTaskFactory.create(product_id="prod-1",
                                         planned_start_date="2025-03-11", planned_end_date="2025-03-13"),
        ])
        response = client.post(f"{PLANNING}/overlaps", json={"start_date": "2025-03-10", "end_date": "2025-03-12"})
        body = response.json()
        assert body["has_overlaps"] is True
        assert body["overlaps"][0]["overlap_days"] == 2

    def test_optimal_plan_unknown_product_is_404(self, client):
        response = client.post(f"{PLANNING}/optimal-plan", json={"product_id": "nope", "quantity": 5})
        assert response.status_code == 404
