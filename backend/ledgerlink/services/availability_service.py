"""Product availability and cost derivation.

A product is sold either straight from an inventory item or as a recipe.
Inventory-backed products are simply in or out of stock. Recipe-backed
products can be made as many times as the scarcest ingredient allows::

    available_count = min(floor(on_hand / required) for each ingredient)

Cost and selling price are derived from the ingredient costs and the VAT
rate, unless the caller supplies explicit values (caller wins).

The engine only reads. Build a new engine (or call ``describe_store_products``)
after mutations so the figures come from fresh rows.
"""

import logging
from dataclasses import dataclass
from decimal import ROUND_FLOOR, Decimal
from typing import Iterable, Optional

from sqlalchemy.orm import Session, selectinload

from ledgerlink.models.inventory import InventoryItem
from ledgerlink.models.product import Product
from ledgerlink.models.recipe import Recipe, RecipeIngredient

logger = logging.getLogger(__name__)

SOURCE_INVENTORY_ITEM = "InventoryItem"
SOURCE_RECIPE = "Recipe"
SOURCE_UNKNOWN = "Unknown"

MSG_AVAILABLE = "Available"
MSG_OUT_OF_STOCK = "Out of stock"
MSG_RECIPE_NOT_FOUND = "Recipe or ingredients not found"
MSG_NO_SOURCE = "No source"


@dataclass
class ProductAvailability:
    """Result of ``describe``: whether and how often a product can be sold."""

    product_id: Optional[int]
    source: str
    is_available: bool
    message: str
    available_count: Optional[int] = None
    inventory_quantity: Optional[Decimal] = None
    cost_price: Optional[Decimal] = None
    selling_price: Optional[Decimal] = None

    def to_dict(self) -> dict:
        return {
            "product_id": self.product_id,
            "source": self.source,
            "is_available": self.is_available,
            "available_count": self.available_count,
            "inventory_quantity": self.inventory_quantity,
            "cost_price": self.cost_price,
            "selling_price": self.selling_price,
            "message": self.message,
        }


def portions(on_hand: Decimal, required: Decimal) -> int:
    """Whole units of a recipe one ingredient line allows."""
    if required <= 0:
        return 0
    return int((Decimal(on_hand) / Decimal(required)).to_integral_value(rounding=ROUND_FLOOR))


def recipe_cost(lines: Iterable[tuple[Decimal, Decimal]], override: Optional[Decimal] = None) -> Decimal:
    """Sum of ``cost_per_unit * required_quantity`` over ``lines``.

    ``override`` is returned untouched when supplied, including zero.
    """
    if override is not None:
        return Decimal(override)
    total = Decimal("0")
    for cost_per_unit, required in lines:
        total += Decimal(cost_per_unit) * Decimal(required)
    return total


def selling_price(
    cost: Decimal,
    vat_rate: Optional[Decimal],
    override: Optional[Decimal] = None,
) -> Decimal:
    """``cost + cost * vat_rate / 100`` unless ``override`` is supplied."""
    if override is not None:
        return Decimal(override)
    if vat_rate is None:
        return Decimal(cost)
    cost = Decimal(cost)
    return cost + cost * (Decimal(vat_rate) / Decimal("100"))


class AvailabilityAndCostEngine:
    """Derives sellability, available count and prices from live state."""

    def __init__(self, db: Session):
        self.db = db

    def describe(self, product: Product) -> ProductAvailability:
        if product.inventory_item_id is not None:
            return self._describe_inventory_product(product)
        if product.recipe_id is not None:
            return self._describe_recipe_product(product)
        return ProductAvailability(
            product_id=product.id,
            source=SOURCE_UNKNOWN,
            is_available=False,
            message=MSG_NO_SOURCE,
        )

    def describe_store_products(self, store_id: int) -> list[ProductAvailability]:
        """Describe every product of a store, re-reading rows from the database."""
        products = (
            self.db.query(Product)
            .options(
                selectinload(Product.inventory_item),
                selectinload(Product.recipe)
                .selectinload(Recipe.ingredients)
                .selectinload(RecipeIngredient.inventory_item),
            )
            .filter(Product.store_id == store_id)
            .order_by(Product.name)
            .populate_existing()
            .all()
        )
        return [self.describe(product) for product in products]

    def _describe_inventory_product(self, product: Product) -> ProductAvailability:
        item = product.inventory_item
        quantity = item.quantity if item is not None else Decimal("0")
        available = item is not None and quantity > 0
        return ProductAvailability(
            product_id=product.id,
            source=SOURCE_INVENTORY_ITEM,
            is_available=available,
            message=MSG_AVAILABLE if available else MSG_OUT_OF_STOCK,
            inventory_quantity=quantity,
            cost_price=product.cost_price,
            selling_price=product.selling_price,
        )

    def _describe_recipe_product(self, product: Product) -> ProductAvailability:
        recipe = product.recipe
        if recipe is None or not recipe.ingredients:
            return ProductAvailability(
                product_id=product.id,
                source=SOURCE_RECIPE,
                is_available=False,
                message=MSG_RECIPE_NOT_FOUND,
                available_count=0,
                cost_price=product.cost_price,
                selling_price=product.selling_price,
            )

        blocking = self.first_blocking_ingredient(recipe.ingredients)
        return ProductAvailability(
            product_id=product.id,
            source=SOURCE_RECIPE,
            is_available=blocking is None,
            message=MSG_AVAILABLE if blocking is None else f"Unavailable: {blocking}",
            available_count=self.available_count(recipe.ingredients),
            cost_price=product.cost_price,
            selling_price=product.selling_price,
        )

    @staticmethod
    def first_blocking_ingredient(lines: Iterable[RecipeIngredient]) -> Optional[str]:
        """Name of the first ingredient, in iteration order, that blocks a sale."""
        for line in lines:
            ingredient = line.inventory_item
            if ingredient is None:
                return f"Missing ingredient (id:{line.inventory_item_id})"
            if ingredient.quantity < line.quantity:
                return ingredient.name or f"Ingredient {line.inventory_item_id} low"
        return None

    @staticmethod
    def available_count(lines: Iterable[RecipeIngredient]) -> int:
        counts = [
            portions(line.inventory_item.quantity if line.inventory_item is not None else Decimal("0"), line.quantity)
            for line in lines
            if line.quantity > 0
        ]
        return min(counts) if counts else 0

    def cost_for_ingredients(
        self,
        ingredients: Iterable[tuple[int, Decimal]],
        override: Optional[Decimal] = None,
    ) -> Decimal:
        """Recipe cost for ``(inventory_item_id, required_quantity)`` pairs.

        Ingredients whose inventory row is missing contribute nothing.
        """
        if override is not None:
            return recipe_cost((), override)
        lines = []
        for inventory_item_id, required in ingredients:
            item = self.db.get(InventoryItem, inventory_item_id)
            if item is None:
                logger.warning(f"Ingredient {inventory_item_id} not found while costing recipe")
                continue
            lines.append((item.cost_per_unit, required))
        return recipe_cost(lines)
