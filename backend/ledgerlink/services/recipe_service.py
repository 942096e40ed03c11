"""Recipe creation and maintenance, including the recipe's sellable product."""

import logging
from decimal import Decimal
from typing import Any, Iterable, Optional

from sqlalchemy.orm import Session, selectinload

from ledgerlink.core.exceptions import AuthorizationMismatchError, NotFoundError, ValidationError
from ledgerlink.db.transaction import commit_or_conflict
from ledgerlink.models.inventory import InventoryItem
from ledgerlink.models.product import Product
from ledgerlink.models.recipe import Recipe, RecipeIngredient
from ledgerlink.models.reference import VatCategory
from ledgerlink.schemas.recipe import RecipeSave, RecipeUpdate
from ledgerlink.services.access_service import AccessGuard
from ledgerlink.services.availability_service import AvailabilityAndCostEngine, selling_price

logger = logging.getLogger(__name__)


class RecipeService:
    """Creates and edits recipes and lists them for sale."""

    def __init__(self, db: Session):
        self.db = db
        self.guard = AccessGuard(db)
        self.engine = AvailabilityAndCostEngine(db)

    def create_recipe(self, payload: RecipeSave, actor_id: int) -> int:
        """Create a recipe and, when it is on sale, its product. Returns the recipe id."""
        if payload.is_on_sale and payload.vat_category_id is None:
            raise ValidationError("VAT category is required when the recipe is on sale.")

        self.guard.ensure_org_association(actor_id, store_ids=[payload.store_id])
        vat = self._vat_category(payload) if payload.is_on_sale else None
        lines = self._ingredient_lines(payload.ingredients)

        recipe = Recipe(
            name=payload.recipe_name,
            instructions=payload.instructions,
            store_id=payload.store_id,
            created_by=actor_id,
        )
        recipe.ingredients = lines
        self.db.add(recipe)

        if payload.is_on_sale:
            self.db.add(self._build_product(recipe, payload, vat, lines))

        commit_or_conflict(self.db)
        logger.info(f"Recipe {recipe.id} '{recipe.name}' created in store {recipe.store_id}")
        return recipe.id

    def update_recipe(self, recipe_id: int, payload: RecipeUpdate, actor_id: int) -> Recipe:
        """Replace a recipe's fields and ingredient lines.

        An existing product is left untouched; one is created only when the
        recipe goes on sale without having a product yet.
        """
        recipe = self._load(recipe_id)
        self.guard.ensure_org_association(actor_id, store_ids=[recipe.store_id])

        product = self.db.query(Product).filter(Product.recipe_id == recipe.id).first()
        needs_product = payload.is_on_sale and product is None
        if needs_product and payload.vat_category_id is None:
            raise ValidationError("VAT category is required when the recipe is on sale.")
        vat = self._vat_category(payload) if needs_product else None
        lines = self._ingredient_lines(payload.ingredients)

        if payload.recipe_name:
            recipe.name = payload.recipe_name
        if "instructions" in payload.model_fields_set:
            recipe.instructions = payload.instructions
        if "ingredients" in payload.model_fields_set:
            recipe.ingredients = lines

        if needs_product:
            self.db.add(self._build_product(recipe, payload, vat, list(recipe.ingredients)))

        commit_or_conflict(self.db)
        logger.info(f"Recipe {recipe_id} updated by user {actor_id}")
        return recipe

    def get_recipe_detail(self, recipe_id: int, actor_id: int) -> dict[str, Any]:
        recipe = (
            self.db.query(Recipe)
            .options(selectinload(Recipe.ingredients))
            .filter(Recipe.id == recipe_id)
            .first()
        )
        if recipe is None:
            raise NotFoundError("Recipe", recipe_id)
        if recipe.store_id is not None and not self.guard.validate_org_association(
            actor_id, store_ids=[recipe.store_id]
        ):
            raise AuthorizationMismatchError()

        product_id = self.db.query(Product.id).filter(Product.recipe_id == recipe.id).scalar()
        return {
            "id": recipe.id,
            "name": recipe.name,
            "instructions": recipe.instructions,
            "store_id": recipe.store_id,
            "created_by": recipe.created_by,
            "created_at": recipe.created_at,
            "updated_at": recipe.updated_at,
            "ingredients": list(recipe.ingredients),
            "product_id": product_id,
        }

    # ===== HELPERS =====

    def _load(self, recipe_id: int) -> Recipe:
        recipe = self.db.get(Recipe, recipe_id)
        if recipe is None:
            raise NotFoundError("Recipe", recipe_id)
        return recipe

    def _vat_category(self, payload: RecipeSave) -> VatCategory:
        vat = self.db.get(VatCategory, payload.vat_category_id)
        if vat is None:
            raise NotFoundError("VAT category", payload.vat_category_id)
        return vat

    def _ingredient_lines(self, ingredients: Iterable[Any]) -> list[RecipeIngredient]:
        """Ingredient rows for the complete lines; incomplete ones are dropped."""
        lines = []
        for ingredient in ingredients:
            if ingredient.inventory_item_id is None or ingredient.quantity is None:
                continue
            if ingredient.quantity <= 0:
                continue
            if self.db.get(InventoryItem, ingredient.inventory_item_id) is None:
                raise NotFoundError("Inventory item", ingredient.inventory_item_id)
            lines.append(
                RecipeIngredient(
                    inventory_item_id=ingredient.inventory_item_id,
                    quantity=Decimal(str(ingredient.quantity)),
                )
            )
        return lines

    def _build_product(
        self,
        recipe: Recipe,
        payload: RecipeSave,
        vat: Optional[VatCategory],
        lines: list[RecipeIngredient],
    ) -> Product:
        cost = self.engine.cost_for_ingredients(
            [(line.inventory_item_id, line.quantity) for line in lines],
            override=payload.supplied("cost_price"),
        )
        price = selling_price(
            cost,
            vat.vat_rate if vat is not None else None,
            override=payload.supplied("selling_price"),
        )
        return Product(
            name=recipe.name,
            description=payload.product_description,
            store_id=recipe.store_id,
            recipe=recipe,
            cost_price=cost,
            selling_price=price,
            vat_category_id=vat.id if vat is not None else None,
        )
