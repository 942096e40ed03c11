"""Merge received stock into a destination store's inventory.

Stock arrives either as recipes (expanded into their ingredient lines) or as
raw inventory items. For every line the destination store's matching item is
incremented; when the store has no such item a copy of the source item is
created there.

Failures are reported as a ``ReceiptResult`` rather than raised, so callers
can relay the message as-is. Rolling back whatever was staged before a failure
is left to the owner of the session.
"""

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session, selectinload

from ledgerlink.core.config import settings
from ledgerlink.core.exceptions import ConcurrencyConflictError
from ledgerlink.db.base import utcnow
from ledgerlink.db.transaction import commit_or_conflict
from ledgerlink.models.inventory import InventoryItem
from ledgerlink.models.recipe import Recipe, RecipeIngredient

logger = logging.getLogger(__name__)

RECIPE_PROVENANCE = " ---- received from recipe transfer"
INVENTORY_PROVENANCE = " ---- received from inventory transfer"


@dataclass
class ReceiptResult:
    success: bool
    message: str

    def to_dict(self) -> dict:
        return {"success": self.success, "message": self.message}


class ReceiptMerger:
    """Adds received recipes and inventory items to a store.

    One merger covers one receipt: rows matched or created by an earlier call
    are reused by later calls, even before they are flushed.
    """

    def __init__(self, db: Session, link_recipe_ingredients: Optional[bool] = None):
        self.db = db
        if link_recipe_ingredients is None:
            link_recipe_ingredients = settings.receipt_links_recipe_ingredients
        self.link_recipe_ingredients = link_recipe_ingredients
        # source item id -> destination item, for lines repeated within one receipt
        self._matched: dict[int, InventoryItem] = {}

    # ===== RECIPES =====

    def receive(
        self,
        recipe_quantities: Iterable[tuple[int, Decimal]],
        destination_store_id: int,
        commit: bool = True,
    ) -> ReceiptResult:
        """Add ``ingredient quantity x recipe quantity`` for every recipe line.

        All quantities are checked before any inventory is touched. Ingredient
        lines that require nothing are skipped.
        """
        pairs = [(recipe_id, Decimal(str(quantity))) for recipe_id, quantity in (recipe_quantities or [])]
        if not pairs:
            return ReceiptResult(False, "No recipes provided.")

        for recipe_id, quantity in pairs:
            if quantity <= 0:
                return ReceiptResult(False, f"Invalid quantity for recipe ID {recipe_id}.")

        try:
            for recipe_id, quantity in pairs:
                recipe = (
                    self.db.query(Recipe)
                    .options(selectinload(Recipe.ingredients))
                    .filter(Recipe.id == recipe_id)
                    .first()
                )
                if recipe is None:
                    return ReceiptResult(False, f"Recipe with ID {recipe_id} not found.")

                for line in list(recipe.ingredients):
                    if line.quantity <= 0:
                        continue
                    total = line.quantity * quantity

                    existing = self._destination_item(line.inventory_item_id, destination_store_id)
                    if existing is not None:
                        self._increment(existing, total)
                        continue

                    template = self.db.get(InventoryItem, line.inventory_item_id)
                    if template is None:
                        return ReceiptResult(
                            False, f"Inventory item with ID {line.inventory_item_id} not found."
                        )
                    self._clone(template, destination_store_id, total, RECIPE_PROVENANCE)

                    if self.link_recipe_ingredients:
                        self.db.add(
                            RecipeIngredient(
                                recipe_id=recipe.id,
                                inventory_item_id=template.id,
                                quantity=line.quantity,
                            )
                        )

            if commit:
                commit_or_conflict(self.db)
        except ConcurrencyConflictError:
            raise
        except Exception as e:
            logger.error(f"Receiving recipes into store {destination_store_id} failed: {e}", exc_info=True)
            return ReceiptResult(False, f"An error occurred while receiving recipes: {e}")

        logger.info(f"Received {len(pairs)} recipe line(s) into store {destination_store_id}")
        return ReceiptResult(True, "Recipes received successfully.")

    # ===== INVENTORY ITEMS =====

    def receive_inventory_items(
        self,
        item_quantities: Iterable[tuple[int, Decimal]],
        destination_store_id: int,
        commit: bool = True,
    ) -> ReceiptResult:
        """Add raw inventory quantities to the destination store."""
        pairs = [(item_id, Decimal(str(quantity))) for item_id, quantity in (item_quantities or [])]
        if not pairs:
            return ReceiptResult(False, "No inventory items provided.")

        for item_id, quantity in pairs:
            if quantity <= 0:
                return ReceiptResult(False, f"Invalid quantity for inventory item ID {item_id}.")

        try:
            for item_id, quantity in pairs:
                existing = self._destination_item(item_id, destination_store_id)
                if existing is not None:
                    self._increment(existing, quantity)
                    if not (existing.description or "").endswith(INVENTORY_PROVENANCE):
                        existing.description = (existing.description or "") + INVENTORY_PROVENANCE
                    continue

                template = self.db.get(InventoryItem, item_id)
                if template is None:
                    return ReceiptResult(False, f"Inventory item with ID {item_id} not found.")
                self._clone(template, destination_store_id, quantity, INVENTORY_PROVENANCE)

            if commit:
                commit_or_conflict(self.db)
        except ConcurrencyConflictError:
            raise
        except Exception as e:
            logger.error(
                f"Receiving inventory items into store {destination_store_id} failed: {e}", exc_info=True
            )
            return ReceiptResult(False, f"An error occurred while receiving inventory items: {e}")

        logger.info(f"Received {len(pairs)} inventory line(s) into store {destination_store_id}")
        return ReceiptResult(True, "Inventory items received successfully.")

    # ===== HELPERS =====

    def _destination_item(self, source_item_id: int, store_id: int) -> Optional[InventoryItem]:
        """The destination store's counterpart of ``source_item_id``, if any.

        The source row itself counts when it already lives in the store;
        otherwise an item with the same name (case-insensitive) and unit does.
        """
        if source_item_id in self._matched:
            return self._matched[source_item_id]

        source = self.db.get(InventoryItem, source_item_id)
        if source is None:
            return None
        if source.store_id == store_id:
            match = source
        else:
            match = (
                self.db.query(InventoryItem)
                .filter(
                    InventoryItem.store_id == store_id,
                    func.lower(InventoryItem.name) == source.name.lower(),
                    InventoryItem.unit_id == source.unit_id,
                )
                .order_by(InventoryItem.id)
                .first()
            )
        if match is not None:
            self._matched[source_item_id] = match
        return match

    def _increment(self, item: InventoryItem, amount: Decimal) -> None:
        item.quantity = (item.quantity or Decimal("0")) + amount
        item.updated_at = utcnow()

    def _clone(
        self,
        template: InventoryItem,
        store_id: int,
        quantity: Decimal,
        provenance: str,
    ) -> InventoryItem:
        item = InventoryItem(
            name=template.name,
            description=(template.description or "") + provenance,
            store_id=store_id,
            unit_id=template.unit_id,
            quantity=quantity,
            cost_per_unit=template.cost_per_unit,
            minimum_quantity=template.minimum_quantity,
            category_id=template.category_id,
            supplier_id=template.supplier_id,
        )
        self.db.add(item)
        self._matched[template.id] = item
        return item
