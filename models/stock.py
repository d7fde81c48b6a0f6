"""
Stock movement schemas.
"""

from pydantic import Field
from typing import Optional
from enum import Enum
from datetime import datetime

from models.base import BaseSchema


class MovementType(str, Enum):
    """Direction of a stock movement."""
    INCOMING = "incoming"
    OUTGOING = "outgoing"


class ReferenceType(str, Enum):
    """What caused a stock movement."""
    PRODUCTION_TASK = "production_task"
    PRODUCTION_EXTRA = "production_extra"
    PRODUCTION_SURPLUS = "production_surplus"


class StockMovementResponse(BaseSchema):
    """Stock movement as shown in task history."""

    id: str
    product_id: str
    movement_type: MovementType
    quantity: int = Field(..., gt=0)
    reference_type: Optional[ReferenceType] = None
    reference_id: Optional[str] = None
    comment: Optional[str] = None
    user_id: Optional[str] = None
    created_at: datetime
