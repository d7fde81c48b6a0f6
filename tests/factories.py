"""
Test data factories.

Rows match the database schema of each table.
"""

from datetime import datetime, timezone
from typing import Optional
from uuid import uuid4


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class ProductFactory:
    """
    Factory for products rows.

    Usage:
        product = ProductFactory.create(article="TIL-100")
    """

    _counter = 0

    @classmethod
    def _next_counter(cls) -> int:
        cls._counter += 1
        return cls._counter

    @classmethod
    def create(
        cls,
        id: Optional[str] = None,
        name: Optional[str] = None,
        article: Optional[str] = None,
        category_id: Optional[str] = None,
    ) -> dict:
        counter = cls._next_counter()
        return {
            "id": id or str(uuid4()),
            "name": name or f"Test product {counter}",
            "article": article or f"ART-{counter:04d}",
            "category_id": category_id,
            "created_at": _now(),
        }


class OrderFactory:
    """Factory for orders rows."""

    _counter = 0

    @classmethod
    def create(
        cls,
        id: Optional[str] = None,
        order_number: Optional[str] = None,
        customer_name: str = "Test customer",
        priority: str = "normal",
        delivery_date: Optional[str] = None,
    ) -> dict:
        cls._counter += 1
        return {
            "id": id or str(uuid4()),
            "order_number": order_number or f"ORD-{cls._counter:05d}",
            "customer_name": customer_name,
            "priority": priority,
            "delivery_date": delivery_date,
            "created_at": _now(),
        }


class ProductionTaskFactory:
    """
    Factory for production_tasks rows.

    Usage:
        # Pending task with defaults
        task = ProductionTaskFactory.create(product_id=product["id"])

        # Task part way through production
        task = ProductionTaskFactory.create(
            status="in_progress", requested_quantity=100,
            produced_quantity=60, quality_quantity=60,
        )
    """

    _counter = 0

    @classmethod
    def create(
        cls,
        id: Optional[str] = None,
        product_id: Optional[str] = None,
        order_id: Optional[str] = None,
        requested_quantity: int = 100,
        produced_quantity: int = 0,
        quality_quantity: int = 0,
        defect_quantity: int = 0,
        status: str = "pending",
        planning_status: str = "draft",
        priority: int = 3,
        sort_order: Optional[int] = None,
        planned_start_date: Optional[str] = None,
        planned_end_date: Optional[str] = None,
        created_at: Optional[str] = None,
        **extra,
    ) -> dict:
        cls._counter += 1
        row = {
            "id": id or str(uuid4()),
            "product_id": product_id or str(uuid4()),
            "order_id": order_id,
            "requested_quantity": requested_quantity,
            "produced_quantity": produced_quantity,
            "quality_quantity": quality_quantity,
            "defect_quantity": defect_quantity,
            "status": status,
            "planning_status": planning_status,
            "priority": priority,
            "sort_order": sort_order if sort_order is not None else cls._counter,
            "planned_start_date": planned_start_date,
            "planned_end_date": planned_end_date,
            "created_by": "user-planner-1",
            "assigned_to": None,
            "started_by": None,
            "completed_by": None,
            "cancelled_by": None,
            "started_at": None,
            "completed_at": None,
            "cancelled_at": None,
            "notes": None,
            "cancel_reason": None,
            "created_at": created_at or f"2025-03-01T08:00:{cls._counter % 60:02d}+00:00",
            "updated_at": None,
        }
        row.update(extra)
        return row


class StockFactory:
    """Factory for stock rows."""

    @classmethod
    def create(cls, product_id: str, current_stock: int = 0) -> dict:
        return {
            "id": str(uuid4()),
            "product_id": product_id,
            "current_stock": current_stock,
        }
