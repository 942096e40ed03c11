"""Stock deduction for sales.

Sold inventory items are deducted directly; sold recipes are expanded into
their ingredient lines. On-hand quantities never go below zero: a shortfall
clamps the item at zero and is reported back, unless ``strict`` is set, in
which case nothing is deducted and ``InsufficientStockError`` is raised.
"""

import logging
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Iterable

from sqlalchemy.orm import Session, selectinload

from ledgerlink.core.exceptions import InsufficientStockError, NotFoundError
from ledgerlink.db.transaction import commit_or_conflict
from ledgerlink.models.inventory import InventoryItem
from ledgerlink.models.recipe import Recipe

logger = logging.getLogger(__name__)


@dataclass
class DeductionResult:
    success: bool = True
    insufficient_inventory_items: list[int] = field(default_factory=list)
    insufficient_recipe_ingredients: list[int] = field(default_factory=list)
    low_stock_items: list[int] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "success": self.success,
            "insufficient_inventory_items": self.insufficient_inventory_items,
            "insufficient_recipe_ingredients": self.insufficient_recipe_ingredients,
            "low_stock_items": self.low_stock_items,
        }


class StockLedger:
    """Deducts sold quantities from store inventory."""

    def __init__(self, db: Session):
        self.db = db

    def deduct(
        self,
        inventory_quantities: Iterable[tuple[int, Decimal]] = (),
        recipe_quantities: Iterable[tuple[int, Decimal]] = (),
        strict: bool = False,
        commit: bool = True,
    ) -> DeductionResult:
        """Deduct a sale's items and recipes in one unit of work."""
        result = DeductionResult()
        touched: dict[int, InventoryItem] = {}

        try:
            for item_id, quantity in inventory_quantities:
                item = self.db.get(InventoryItem, item_id)
                if item is None:
                    raise NotFoundError("Inventory item", item_id)
                if not self._take(item, Decimal(str(quantity)), strict):
                    result.insufficient_inventory_items.append(item.id)
                touched[item.id] = item

            for recipe_id, quantity in recipe_quantities:
                recipe = (
                    self.db.query(Recipe)
                    .options(selectinload(Recipe.ingredients))
                    .filter(Recipe.id == recipe_id)
                    .first()
                )
                if recipe is None:
                    raise NotFoundError("Recipe", recipe_id)

                for line in recipe.ingredients:
                    if line.quantity <= 0:
                        continue
                    ingredient = self.db.get(InventoryItem, line.inventory_item_id)
                    if ingredient is None:
                        raise NotFoundError("Inventory item", line.inventory_item_id)
                    needed = line.quantity * Decimal(str(quantity))
                    if not self._take(ingredient, needed, strict):
                        result.insufficient_recipe_ingredients.append(ingredient.id)
                    touched[ingredient.id] = ingredient
        except (NotFoundError, InsufficientStockError):
            self.db.rollback()
            raise

        result.success = not (result.insufficient_inventory_items or result.insufficient_recipe_ingredients)
        result.low_stock_items = [item.id for item in touched.values() if item.is_low_stock]

        if commit:
            commit_or_conflict(self.db)

        if not result.success:
            logger.warning(
                f"Sale deducted with shortfalls: items={result.insufficient_inventory_items} "
                f"ingredients={result.insufficient_recipe_ingredients}"
            )
        return result

    def low_stock_items(self, item_ids: Iterable[int]) -> list[InventoryItem]:
        ids = list(item_ids)
        if not ids:
            return []
        items = self.db.query(InventoryItem).filter(InventoryItem.id.in_(ids)).all()
        return [item for item in items if item.is_low_stock]

    def _take(self, item: InventoryItem, needed: Decimal, strict: bool) -> bool:
        """Deduct ``needed`` from ``item``; False when it had to be clamped at zero."""
        on_hand = item.quantity or Decimal("0")
        if on_hand >= needed:
            item.quantity = on_hand - needed
            return True
        if strict:
            raise InsufficientStockError(item.name, item.id, on_hand, needed)
        item.quantity = Decimal("0")
        return False
