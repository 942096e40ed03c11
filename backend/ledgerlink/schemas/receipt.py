"""Receipt schemas."""

from __future__ import annotations

from decimal import Decimal
from typing import List

from pydantic import BaseModel


class RecipeQuantityIn(BaseModel):
    recipe_id: int
    quantity: Decimal


class InventoryQuantityIn(BaseModel):
    inventory_item_id: int
    quantity: Decimal


class ReceiptRequest(BaseModel):
    """Stock to merge into ``store_id``.

    Quantities are validated by the merger so the client gets the merger's
    failure message rather than a schema error.
    """

    store_id: int
    recipes: List[RecipeQuantityIn] = []
    inventory_items: List[InventoryQuantityIn] = []


class ReceiptResponse(BaseModel):
    success: bool
    message: str
