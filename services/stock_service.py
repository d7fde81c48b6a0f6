"""
Stock service for production output.

Finished goods enter stock when quality output is registered and leave
it when a correction removes quality units. Every change appends a
stock_movements row so task history can be shown.
"""

from typing import Optional
import structlog

from config import get_supabase_client
from models.stock import MovementType, ReferenceType, StockMovementResponse
from exceptions import AppError, ValidationError, DatabaseError

logger = structlog.get_logger(__name__)


class StockService:
    """
    Stock level and movement writes.

    Stock is kept per product in the `stock` table (current_stock).
    """

    def __init__(self):
        self.db = get_supabase_client()
        self.table = "stock"
        self.movements_table = "stock_movements"

    # ===================
    # READ OPERATIONS
    # ===================

    def get_level(self, product_id: str) -> int:
        """Current stock of a product, 0 when no row exists."""
        try:
            result = (
                self.db.table(self.table)
                .select("product_id, current_stock")
                .eq("product_id", product_id)
                .execute()
            )
        except Exception as e:
            logger.error("get_stock_level_failed", product_id=product_id, error=str(e))
            raise DatabaseError("select", str(e))

        if not result.data:
            return 0
        return int(result.data[0].get("current_stock") or 0)

    def get_movements_for_task(self, task_id: str) -> list[StockMovementResponse]:
        """Movements referencing a task, newest first."""
        logger.debug("getting_task_stock_movements", task_id=task_id)

        try:
            result = (
                self.db.table(self.movements_table)
                .select("*")
                .eq("reference_id", task_id)
                .order("created_at", desc=True)
                .execute()
            )
            return [StockMovementResponse(**row) for row in result.data]

        except Exception as e:
            logger.error("get_task_stock_movements_failed", task_id=task_id, error=str(e))
            raise DatabaseError("select", str(e))

    # ===================
    # WRITE OPERATIONS
    # ===================

    def _set_level(self, product_id: str, level: int, exists: bool) -> None:
        if exists:
            (
                self.db.table(self.table)
                .update({"current_stock": level})
                .eq("product_id", product_id)
                .execute()
            )
        else:
            self.db.table(self.table).insert({
                "product_id": product_id,
                "current_stock": level,
            }).execute()

    def _restore_level(self, product_id: str, level: int) -> None:
        try:
            self._set_level(product_id, level, exists=True)
            logger.warning("stock_level_restored", product_id=product_id, level=level)
        except Exception as e:
            logger.error("stock_level_restore_failed", product_id=product_id, error=str(e))

    def _move(
        self,
        product_id: str,
        quantity: int,
        movement_type: MovementType,
        reference_type: ReferenceType,
        reference_id: Optional[str],
        comment: Optional[str],
        user_id: Optional[str],
    ) -> int:
        if quantity <= 0:
            raise ValidationError(
                "Stock movement quantity must be positive",
                code="INVALID_STOCK_QUANTITY",
                details={"quantity": quantity}
            )

        try:
            result = (
                self.db.table(self.table)
                .select("product_id, current_stock")
                .eq("product_id", product_id)
                .execute()
            )
            exists = bool(result.data)
            current = int(result.data[0].get("current_stock") or 0) if exists else 0

            if movement_type == MovementType.INCOMING:
                new_level = current + quantity
            else:
                new_level = current - quantity
                if new_level < 0:
                    raise ValidationError(
                        f"Insufficient stock: {current} available, {quantity} requested",
                        code="INSUFFICIENT_STOCK",
                        details={"product_id": product_id, "available": current, "requested": quantity}
                    )

            self._set_level(product_id, new_level, exists)

            try:
                self.db.table(self.movements_table).insert({
                    "product_id": product_id,
                    "movement_type": movement_type.value,
                    "quantity": quantity,
                    "reference_type": reference_type.value,
                    "reference_id": reference_id,
                    "comment": comment,
                    "user_id": user_id,
                }).execute()
            except Exception:
                self._restore_level(product_id, current)
                raise

        except AppError:
            raise
        except Exception as e:
            logger.error(
                "stock_movement_failed",
                product_id=product_id,
                movement_type=movement_type.value,
                quantity=quantity,
                error=str(e)
            )
            raise DatabaseError("update", str(e))

        logger.info(
            "stock_moved",
            product_id=product_id,
            movement_type=movement_type.value,
            quantity=quantity,
            reference_type=reference_type.value,
            reference_id=reference_id,
            new_level=new_level
        )
        return new_level

    def credit(
        self,
        product_id: str,
        quantity: int,
        reference_type: ReferenceType = ReferenceType.PRODUCTION_TASK,
        reference_id: Optional[str] = None,
        comment: Optional[str] = None,
        user_id: Optional[str] = None,
    ) -> int:
        """
        Add finished goods to stock.

        Returns:
            New stock level
        """
        return self._move(
            product_id, quantity, MovementType.INCOMING,
            reference_type, reference_id, comment, user_id,
        )

    def debit(
        self,
        product_id: str,
        quantity: int,
        reference_type: ReferenceType = ReferenceType.PRODUCTION_TASK,
        reference_id: Optional[str] = None,
        comment: Optional[str] = None,
        user_id: Optional[str] = None,
    ) -> int:
        """
        Remove goods from stock.

        Raises:
            ValidationError: If stock would go below zero
        """
        return self._move(
            product_id, quantity, MovementType.OUTGOING,
            reference_type, reference_id, comment, user_id,
        )

    def apply_quality_change(
        self,
        product_id: str,
        quality_delta: int,
        task_id: Optional[str],
        comment: Optional[str] = None,
        user_id: Optional[str] = None,
    ) -> Optional[int]:
        """
        Mirror a change of a task's quality counter in stock.

        Returns:
            New stock level, or None when the delta is zero
        """
        if quality_delta > 0:
            return self.credit(product_id, quality_delta, ReferenceType.PRODUCTION_TASK, task_id, comment, user_id)
        if quality_delta < 0:
            return self.debit(product_id, -quality_delta, ReferenceType.PRODUCTION_TASK, task_id, comment, user_id)
        return None


# Singleton instance
_stock_service: Optional[StockService] = None


def get_stock_service() -> StockService:
    """Get or create StockService instance."""
    global _stock_service
    if _stock_service is None:
        _stock_service = StockService()
    return _stock_service
