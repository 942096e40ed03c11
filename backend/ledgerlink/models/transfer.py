"""Inventory transfer models: inter-store stock requests."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional

from sqlalchemy import Boolean, DateTime, Enum as SAEnum, ForeignKey, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ledgerlink.db.base import Base, utcnow


class TransferStatus(str, Enum):
    """Transfer lifecycle: draft -> pending -> approved | rejected."""

    DRAFT = "draft"
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class Driver(Base):
    """Driver attached to a transfer by the sending store."""

    __tablename__ = "drivers"

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True, index=True)
    store_id: Mapped[Optional[int]] = mapped_column(ForeignKey("stores.id"), nullable=True, index=True)


class InventoryTransfer(Base):
    """A request to move stock from one store to another."""

    __tablename__ = "inventory_transfers"

    id: Mapped[int] = mapped_column(primary_key=True)
    from_store_id: Mapped[int] = mapped_column(ForeignKey("stores.id"), nullable=False, index=True)
    to_store_id: Mapped[int] = mapped_column(ForeignKey("stores.id"), nullable=False, index=True)
    status: Mapped[TransferStatus] = mapped_column(
        SAEnum(TransferStatus), default=TransferStatus.DRAFT, nullable=False, index=True
    )
    requested_by: Mapped[Optional[int]] = mapped_column(ForeignKey("users.id"), nullable=True)
    approved_by: Mapped[Optional[int]] = mapped_column(ForeignKey("users.id"), nullable=True)
    driver_id: Mapped[Optional[int]] = mapped_column(ForeignKey("drivers.id"), nullable=True)
    requested_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True, index=True)
    received_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    delivered_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)

    items: Mapped[list["TransferItem"]] = relationship(
        "TransferItem",
        back_populates="transfer",
        cascade="all, delete-orphan",
        order_by="TransferItem.id",
    )
    from_store = relationship("Store", foreign_keys=[from_store_id])
    to_store = relationship("Store", foreign_keys=[to_store_id])
    driver = relationship("Driver")

    @property
    def sent_items(self) -> list["TransferItem"]:
        return [item for item in self.items if not item.is_requested]


class TransferItem(Base):
    """A transfer line, denominated in an inventory item or in a recipe."""

    __tablename__ = "transfer_items"

    id: Mapped[int] = mapped_column(primary_key=True)
    transfer_id: Mapped[int] = mapped_column(
        ForeignKey("inventory_transfers.id", ondelete="CASCADE"), nullable=False, index=True
    )
    inventory_item_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("inventory_items.id"), nullable=True
    )
    recipe_id: Mapped[Optional[int]] = mapped_column(ForeignKey("recipes.id"), nullable=True)
    quantity: Mapped[Decimal] = mapped_column(Numeric(12, 3), nullable=False)
    # True for lines asked for by the requesting store, False for lines the
    # sending store actually ships
    is_requested: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    transfer: Mapped["InventoryTransfer"] = relationship("InventoryTransfer", back_populates="items")
