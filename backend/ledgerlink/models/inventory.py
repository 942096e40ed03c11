"""Inventory item model."""

from __future__ import annotations

from decimal import Decimal
from typing import Optional

from sqlalchemy import CheckConstraint, ForeignKey, Integer, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ledgerlink.db.base import Base, TimestampMixin


class InventoryItem(Base, TimestampMixin):
    """Stock of one ingredient/good held by one store.

    ``quantity`` is mutated by sales, transfers, receipts and manual edits;
    every UPDATE is guarded by the row version.
    """

    __tablename__ = "inventory_items"
    __table_args__ = (
        CheckConstraint("quantity >= 0", name="ck_inventory_items_quantity_non_negative"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False, index=True)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    store_id: Mapped[int] = mapped_column(ForeignKey("stores.id"), nullable=False, index=True)
    unit_id: Mapped[Optional[int]] = mapped_column(ForeignKey("units.id"), nullable=True)
    quantity: Mapped[Decimal] = mapped_column(Numeric(12, 3), default=Decimal("0"), nullable=False)
    cost_per_unit: Mapped[Decimal] = mapped_column(Numeric(12, 3), default=Decimal("0"), nullable=False)
    minimum_quantity: Mapped[Optional[Decimal]] = mapped_column(Numeric(12, 3), nullable=True)
    category_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("inventory_item_categories.id"), nullable=True
    )
    supplier_id: Mapped[Optional[int]] = mapped_column(ForeignKey("suppliers.id"), nullable=True)

    # Row version; SQLAlchemy adds "WHERE version = :read" to every UPDATE and
    # raises StaleDataError when another writer got there first.
    version: Mapped[int] = mapped_column(Integer, default=1, nullable=False)

    __mapper_args__ = {"version_id_col": version}

    store = relationship("Store")
    unit = relationship("Unit")

    @property
    def is_low_stock(self) -> bool:
        return self.minimum_quantity is not None and self.quantity < self.minimum_quantity
