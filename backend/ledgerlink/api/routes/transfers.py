"""Inventory transfer routes."""

from datetime import date
from typing import Optional

from fastapi import APIRouter, Query, Request, status

from ledgerlink.core.exceptions import AuthorizationMismatchError
from ledgerlink.core.rate_limit import limiter
from ledgerlink.core.rbac import CurrentUser, RequireStoreManager, TokenData
from ledgerlink.db.session import DbSession
from ledgerlink.models.organization import UserRole
from ledgerlink.models.transfer import InventoryTransfer
from ledgerlink.schemas.transfer import (
    TransferApprove,
    TransferCountResponse,
    TransferCreate,
    TransferItemsReplace,
    TransferReject,
    TransferResponse,
)
from ledgerlink.services.access_service import AccessGuard
from ledgerlink.services.transfer_service import TransferWorkflow

router = APIRouter()


def _authorized_transfer(db, transfer_id: int, current_user: TokenData) -> InventoryTransfer:
    transfer = TransferWorkflow(db).get(transfer_id)
    AccessGuard(db).ensure_org_association(
        current_user.user_id, store_ids=[transfer.from_store_id, transfer.to_store_id]
    )
    return transfer


@router.post("/", response_model=TransferResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit("30/minute")
def create_transfer(request: Request, payload: TransferCreate, db: DbSession, current_user: CurrentUser):
    """Draft a transfer request from ``to_store_id`` to ``from_store_id``."""
    AccessGuard(db).ensure_org_association(
        current_user.user_id, store_ids=[payload.from_store_id, payload.to_store_id]
    )
    return TransferWorkflow(db).create(
        payload.from_store_id,
        payload.to_store_id,
        current_user.user_id,
        items=payload.items,
        notes=payload.notes,
    )


@router.get("/count", response_model=TransferCountResponse)
@limiter.limit("60/minute")
def count_transfers(
    request: Request,
    db: DbSession,
    current_user: CurrentUser,
    org_id: int = Query(...),
    date_from: Optional[date] = Query(None),
    date_to: Optional[date] = Query(None),
):
    if current_user.role is not UserRole.APP_ADMIN and current_user.org_id != org_id:
        raise AuthorizationMismatchError()
    count = TransferWorkflow(db).count_for_organization(org_id, date_from=date_from, date_to=date_to)
    return {"org_id": org_id, "count": count}


@router.put("/{transfer_id}/items", response_model=TransferResponse)
@limiter.limit("30/minute")
def replace_transfer_items(
    request: Request,
    transfer_id: int,
    payload: TransferItemsReplace,
    db: DbSession,
    current_user: CurrentUser,
):
    _authorized_transfer(db, transfer_id, current_user)
    return TransferWorkflow(db).replace_items(transfer_id, payload.items)


@router.post("/{transfer_id}/send", response_model=TransferResponse)
@limiter.limit("30/minute")
def send_transfer(request: Request, transfer_id: int, db: DbSession, current_user: CurrentUser):
    _authorized_transfer(db, transfer_id, current_user)
    return TransferWorkflow(db).send(transfer_id)


@router.post("/{transfer_id}/approve", response_model=TransferResponse)
@limiter.limit("30/minute")
def approve_transfer(
    request: Request,
    transfer_id: int,
    payload: TransferApprove,
    db: DbSession,
    current_user: RequireStoreManager,
):
    _authorized_transfer(db, transfer_id, current_user)
    return TransferWorkflow(db).approve(
        transfer_id,
        current_user.user_id,
        driver_id=payload.driver_id,
        new_driver_name=payload.new_driver_name,
        new_driver_email=payload.new_driver_email,
        sent_items=payload.items,
        notes=payload.notes,
    )


@router.post("/{transfer_id}/reject", response_model=TransferResponse)
@limiter.limit("30/minute")
def reject_transfer(
    request: Request,
    transfer_id: int,
    payload: TransferReject,
    db: DbSession,
    current_user: RequireStoreManager,
):
    _authorized_transfer(db, transfer_id, current_user)
    return TransferWorkflow(db).reject(transfer_id, current_user.user_id, notes=payload.notes)


@router.post("/{transfer_id}/deliver", response_model=TransferResponse)
@limiter.limit("30/minute")
def deliver_transfer(request: Request, transfer_id: int, db: DbSession, current_user: RequireStoreManager):
    """Merge the approved, shipped lines into the requesting store."""
    _authorized_transfer(db, transfer_id, current_user)
    return TransferWorkflow(db).deliver(transfer_id)
