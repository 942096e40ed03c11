"""Recipe schemas."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Optional, List

from pydantic import BaseModel, Field


class RecipeIngredientIn(BaseModel):
    """Ingredient line as sent by the client; incomplete lines are skipped."""

    inventory_item_id: Optional[int] = None
    quantity: Optional[Decimal] = None


class RecipeSave(BaseModel):
    """Recipe creation payload.

    ``cost_price`` and ``selling_price`` override the computed values when the
    client sends them, even when they are zero.
    """

    recipe_name: str = Field(min_length=1, max_length=255)
    instructions: Optional[str] = None
    store_id: int
    ingredients: List[RecipeIngredientIn] = []
    is_on_sale: bool = False
    vat_category_id: Optional[int] = None
    product_description: Optional[str] = None
    cost_price: Optional[Decimal] = None
    selling_price: Optional[Decimal] = None

    def supplied(self, field: str) -> Optional[Decimal]:
        """Value of a caller-wins field, or None when the client left it out."""
        if field not in self.model_fields_set:
            return None
        return getattr(self, field)


class RecipeUpdate(RecipeSave):
    """Recipe update payload; the store cannot be changed."""

    recipe_name: Optional[str] = None
    store_id: Optional[int] = None


class RecipeIngredientResponse(BaseModel):
    id: int
    inventory_item_id: int
    quantity: Decimal

    model_config = {"from_attributes": True}


class RecipeDetailResponse(BaseModel):
    id: int
    name: str
    instructions: Optional[str] = None
    store_id: Optional[int] = None
    created_by: Optional[int] = None
    created_at: datetime
    updated_at: datetime
    ingredients: List[RecipeIngredientResponse] = []
    product_id: Optional[int] = None

    model_config = {"from_attributes": True}


class RecipeCreatedResponse(BaseModel):
    recipe_id: int
