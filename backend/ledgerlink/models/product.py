"""Product model."""

from __future__ import annotations

from decimal import Decimal
from typing import Optional

from sqlalchemy import CheckConstraint, ForeignKey, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship, validates

from ledgerlink.db.base import Base, TimestampMixin


class Product(Base, TimestampMixin):
    """A sellable product backed by exactly one inventory item or recipe."""

    __tablename__ = "products"
    __table_args__ = (
        CheckConstraint(
            "(inventory_item_id IS NULL) <> (recipe_id IS NULL)",
            name="ck_products_single_source",
        ),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    store_id: Mapped[Optional[int]] = mapped_column(ForeignKey("stores.id"), nullable=True, index=True)
    selling_price: Mapped[Decimal] = mapped_column(Numeric(12, 3), default=Decimal("0"), nullable=False)
    cost_price: Mapped[Decimal] = mapped_column(Numeric(12, 3), default=Decimal("0"), nullable=False)
    vat_category_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("vat_categories.id"), nullable=True
    )
    inventory_item_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("inventory_items.id"), nullable=True, index=True
    )
    recipe_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("recipes.id"), nullable=True, index=True
    )

    inventory_item = relationship("InventoryItem")
    recipe = relationship("Recipe")
    vat_category = relationship("VatCategory")

    @validates("inventory_item_id", "recipe_id")
    def validate_single_source(self, key, value):
        other = "recipe_id" if key == "inventory_item_id" else "inventory_item_id"
        if value is not None and getattr(self, other) is not None:
            raise ValueError("A product is backed by an inventory item or a recipe, not both")
        return value
