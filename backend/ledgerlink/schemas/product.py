"""Product availability schemas."""

from __future__ import annotations

from decimal import Decimal
from typing import Optional

from pydantic import BaseModel


class ProductAvailabilityResponse(BaseModel):
    product_id: Optional[int] = None
    source: str
    is_available: bool
    available_count: Optional[int] = None
    inventory_quantity: Optional[Decimal] = None
    cost_price: Optional[Decimal] = None
    selling_price: Optional[Decimal] = None
    message: str

    model_config = {"from_attributes": True}
