"""
Order lookups for production tasks.

Orders are owned by the sales module. Production reads the fields it
shows next to a task and the priority it derives task priority from.
"""

from typing import Optional
import structlog

from config import get_supabase_client
from models.product import OrderSummary
from exceptions import AppError, OrderNotFoundError, DatabaseError

logger = structlog.get_logger(__name__)


class OrderService:
    """Read-only access to customer orders."""

    def __init__(self):
        self.db = get_supabase_client()
        self.table = "orders"

    def get_summary(self, order_id: Optional[str]) -> Optional[OrderSummary]:
        """
        Get display fields of an order.

        Returns:
            OrderSummary, or None for tasks without an order

        Raises:
            OrderNotFoundError: If the order id is unknown
        """
        if not order_id:
            return None

        try:
            result = (
                self.db.table(self.table)
                .select("id, order_number, customer_name, priority, delivery_date")
                .eq("id", order_id)
                .execute()
            )

            if not result.data:
                raise OrderNotFoundError(order_id)

            row = result.data[0]
            return OrderSummary(
                id=row["id"],
                order_number=row["order_number"],
                customer_name=row.get("customer_name") or "",
                priority=row.get("priority") or "normal",
                delivery_date=row.get("delivery_date"),
            )

        except AppError:
            raise
        except Exception as e:
            logger.error("get_order_summary_failed", order_id=order_id, error=str(e))
            raise DatabaseError("select", str(e))


# Singleton instance
_order_service: Optional[OrderService] = None


def get_order_service() -> OrderService:
    """Get or create OrderService instance."""
    global _order_service
    if _order_service is None:
        _order_service = OrderService()
    return _order_service
