"""
Product and order reference schemas.

Products and orders are owned by the catalog and order modules; the
production engine only reads them for resolution and display.
"""

from pydantic import Field
from typing import Optional
from enum import Enum
from datetime import date

from models.base import BaseSchema


class ProductSummary(BaseSchema):
    """Read-only product identity used by production tasks."""

    id: str = Field(..., description="Product UUID")
    name: str = Field(..., description="Display name")
    article: Optional[str] = Field(None, description="Article code used on shift reports")
    category_name: Optional[str] = Field(None, description="Catalog category")


class OrderPriority(str, Enum):
    """Customer order priority."""
    LOW = "low"
    NORMAL = "normal"
    HIGH = "high"
    URGENT = "urgent"


class OrderSummary(BaseSchema):
    """Order fields shown next to a production task."""

    id: str
    order_number: str
    customer_name: str
    priority: OrderPriority = OrderPriority.NORMAL
    delivery_date: Optional[date] = None
