"""Inventory transfer workflow between stores of one organization.

Lifecycle::

    draft --send--> pending --approve--> approved --deliver--> (stock merged)
                           \\--reject---> rejected

The requesting store builds a draft and sends it; the sending store approves
(attaching a driver and the lines it actually ships) or rejects it. Delivery
merges the shipped lines into the requesting store's inventory.
"""

import logging
from datetime import date, datetime, time, timezone
from decimal import Decimal
from typing import Any, Iterable, Optional

from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from ledgerlink.core.exceptions import (
    InvalidTransitionError,
    NotFoundError,
    ReceiptError,
    ValidationError,
)
from ledgerlink.db.base import utcnow
from ledgerlink.db.transaction import commit_or_conflict
from ledgerlink.models.organization import Store
from ledgerlink.models.transfer import Driver, InventoryTransfer, TransferItem, TransferStatus
from ledgerlink.services.receipt_service import ReceiptMerger

logger = logging.getLogger(__name__)


def _field(line: Any, name: str) -> Any:
    if isinstance(line, dict):
        return line.get(name)
    return getattr(line, name, None)


class TransferWorkflow:
    """State machine and persistence for inventory transfers."""

    def __init__(self, db: Session):
        self.db = db

    def get(self, transfer_id: int) -> InventoryTransfer:
        transfer = self.db.get(InventoryTransfer, transfer_id)
        if transfer is None:
            raise NotFoundError("Transfer", transfer_id)
        return transfer

    # ===== DRAFT =====

    def create(
        self,
        from_store_id: int,
        to_store_id: int,
        requester_id: Optional[int],
        items: Iterable[Any] = (),
        notes: Optional[str] = None,
    ) -> InventoryTransfer:
        """Create a draft transfer with its requested lines."""
        if from_store_id == to_store_id:
            raise ValidationError("A transfer needs two different stores.")
        for store_id in (from_store_id, to_store_id):
            if self.db.get(Store, store_id) is None:
                raise NotFoundError("Store", store_id)

        lines = self._build_lines(items, is_requested=True)

        transfer = InventoryTransfer(
            from_store_id=from_store_id,
            to_store_id=to_store_id,
            status=TransferStatus.DRAFT,
            requested_by=requester_id,
            notes=notes,
        )
        transfer.items.extend(lines)
        self.db.add(transfer)
        commit_or_conflict(self.db)
        self.db.refresh(transfer)

        logger.info(
            f"Transfer {transfer.id} drafted: store {from_store_id} -> {to_store_id}, {len(lines)} line(s)"
        )
        return transfer

    def replace_items(self, transfer_id: int, items: Iterable[Any]) -> InventoryTransfer:
        """Replace every requested line of a draft."""
        transfer = self.get(transfer_id)
        if transfer.status is not TransferStatus.DRAFT:
            raise InvalidTransitionError(transfer_id, transfer.status.value, "edit")

        lines = self._build_lines(items, is_requested=True)
        transfer.items = [item for item in transfer.items if not item.is_requested] + lines
        commit_or_conflict(self.db)
        self.db.refresh(transfer)
        return transfer

    # ===== TRANSITIONS =====

    def send(self, transfer_id: int) -> InventoryTransfer:
        transfer = self.get(transfer_id)
        if transfer.status is not TransferStatus.DRAFT:
            raise InvalidTransitionError(transfer_id, transfer.status.value, TransferStatus.PENDING.value)

        transfer.status = TransferStatus.PENDING
        transfer.requested_at = utcnow()
        commit_or_conflict(self.db)
        logger.info(f"Transfer {transfer_id} sent")
        return transfer

    def approve(
        self,
        transfer_id: int,
        approving_actor_id: Optional[int],
        driver_id: Optional[int] = None,
        new_driver_name: Optional[str] = None,
        new_driver_email: Optional[str] = None,
        sent_items: Optional[Iterable[Any]] = None,
        notes: Optional[str] = None,
    ) -> InventoryTransfer:
        """Approve a pending transfer.

        Approving an already approved transfer changes nothing.
        """
        transfer = self.get(transfer_id)
        if transfer.status is TransferStatus.APPROVED:
            logger.info(f"Transfer {transfer_id} already approved; nothing to do")
            return transfer
        if transfer.status is not TransferStatus.PENDING:
            raise InvalidTransitionError(transfer_id, transfer.status.value, TransferStatus.APPROVED.value)

        driver = self._resolve_driver(transfer, driver_id, new_driver_name, new_driver_email)
        shipped = self._build_lines(sent_items or [], is_requested=False)

        transfer.status = TransferStatus.APPROVED
        transfer.approved_by = approving_actor_id
        transfer.received_at = utcnow()
        if driver is not None:
            transfer.driver = driver
        if notes is not None:
            transfer.notes = notes
        transfer.items.extend(shipped)

        commit_or_conflict(self.db)
        logger.info(f"Transfer {transfer_id} approved by user {approving_actor_id}")
        return transfer

    def reject(
        self,
        transfer_id: int,
        rejecting_actor_id: Optional[int],
        notes: Optional[str] = None,
    ) -> InventoryTransfer:
        transfer = self.get(transfer_id)
        if transfer.status is TransferStatus.REJECTED:
            logger.info(f"Transfer {transfer_id} already rejected; nothing to do")
            return transfer
        if transfer.status is not TransferStatus.PENDING:
            raise InvalidTransitionError(transfer_id, transfer.status.value, TransferStatus.REJECTED.value)

        transfer.status = TransferStatus.REJECTED
        transfer.approved_by = rejecting_actor_id
        transfer.received_at = utcnow()
        if notes is not None:
            transfer.notes = notes

        commit_or_conflict(self.db)
        logger.info(f"Transfer {transfer_id} rejected by user {rejecting_actor_id}")
        return transfer

    def deliver(self, transfer_id: int) -> InventoryTransfer:
        """Merge the shipped lines of an approved transfer into the requesting store.

        Delivery happens once; the transfer stays approved.
        """
        transfer = self.get(transfer_id)
        if transfer.status is not TransferStatus.APPROVED or transfer.delivered_at is not None:
            raise InvalidTransitionError(transfer_id, transfer.status.value, "delivered")

        inventory_lines = [
            (item.inventory_item_id, item.quantity)
            for item in transfer.sent_items
            if item.inventory_item_id is not None
        ]
        recipe_lines = [
            (item.recipe_id, item.quantity) for item in transfer.sent_items if item.recipe_id is not None
        ]

        merger = ReceiptMerger(self.db)
        try:
            for lines, receive in (
                (inventory_lines, merger.receive_inventory_items),
                (recipe_lines, merger.receive),
            ):
                if not lines:
                    continue
                result = receive(lines, transfer.to_store_id, commit=False)
                if not result.success:
                    raise ReceiptError(result.message)

            transfer.delivered_at = utcnow()
            commit_or_conflict(self.db)
        except ReceiptError:
            self.db.rollback()
            raise

        logger.info(
            f"Transfer {transfer_id} delivered to store {transfer.to_store_id}: "
            f"{len(inventory_lines)} item line(s), {len(recipe_lines)} recipe line(s)"
        )
        return transfer

    # ===== REPORTING =====

    def count_for_organization(
        self,
        org_id: int,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
    ) -> int:
        """Transfers touching any store of ``org_id``, requested within the day range."""
        org_stores = self.db.query(Store.id).filter(Store.org_id == org_id)
        query = self.db.query(func.count(InventoryTransfer.id)).filter(
            or_(
                InventoryTransfer.from_store_id.in_(org_stores),
                InventoryTransfer.to_store_id.in_(org_stores),
            )
        )
        if date_from is not None:
            start = datetime.combine(date_from, time.min, tzinfo=timezone.utc)
            query = query.filter(InventoryTransfer.requested_at >= start)
        if date_to is not None:
            end = datetime.combine(date_to, time.max, tzinfo=timezone.utc)
            query = query.filter(InventoryTransfer.requested_at <= end)
        return query.scalar() or 0

    # ===== HELPERS =====

    def _build_lines(self, items: Iterable[Any], is_requested: bool) -> list[TransferItem]:
        lines = []
        for line in items:
            quantity = _field(line, "quantity")
            if quantity is None or Decimal(str(quantity)) <= 0:
                continue
            inventory_item_id = _field(line, "inventory_item_id")
            recipe_id = _field(line, "recipe_id")
            if (inventory_item_id is None) == (recipe_id is None):
                raise ValidationError(
                    "Each transfer line needs exactly one of inventory_item_id or recipe_id."
                )
            lines.append(
                TransferItem(
                    inventory_item_id=inventory_item_id,
                    recipe_id=recipe_id,
                    quantity=Decimal(str(quantity)),
                    is_requested=is_requested,
                )
            )
        return lines

    def _resolve_driver(
        self,
        transfer: InventoryTransfer,
        driver_id: Optional[int],
        name: Optional[str],
        email: Optional[str],
    ) -> Optional[Driver]:
        """Existing driver by id, or a driver of the sending store found or created by email."""
        if driver_id is not None:
            driver = self.db.get(Driver, driver_id)
            if driver is None:
                raise NotFoundError("Driver", driver_id)
            return driver

        if not name and not email:
            return None

        if email:
            driver = (
                self.db.query(Driver)
                .filter(
                    func.lower(Driver.email) == email.lower(),
                    Driver.store_id == transfer.from_store_id,
                )
                .first()
            )
            if driver is not None:
                return driver

        if not name:
            raise ValidationError("A new driver needs a name.")
        driver = Driver(name=name, email=email, store_id=transfer.from_store_id)
        self.db.add(driver)
        return driver
