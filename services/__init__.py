"""
Business logic services.

Each service handles one domain area.
"""

from services.product_service import ProductService, get_product_service
from services.order_service import OrderService, get_order_service
from services.stock_service import StockService, get_stock_service
from services.production_task_service import ProductionTaskService, get_production_task_service
from services.planning_service import PlanningService, get_planning_service

__all__ = [
    "ProductService",
    "get_product_service",
    "OrderService",
    "get_order_service",
    "StockService",
    "get_stock_service",
    "ProductionTaskService",
    "get_production_task_service",
    "PlanningService",
    "get_planning_service",
]
