"""Stock receipt routes."""

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from ledgerlink.core.rate_limit import limiter
from ledgerlink.core.rbac import RequireStoreManager
from ledgerlink.db.session import DbSession
from ledgerlink.db.transaction import commit_or_conflict
from ledgerlink.schemas.receipt import ReceiptRequest, ReceiptResponse
from ledgerlink.services.access_service import AccessGuard
from ledgerlink.services.receipt_service import ReceiptMerger

router = APIRouter()


@router.post("/", response_model=ReceiptResponse)
@limiter.limit("30/minute")
def receive_stock(request: Request, payload: ReceiptRequest, db: DbSession, current_user: RequireStoreManager):
    """Merge received inventory items and recipes into ``store_id``.

    Both kinds are received in one transaction. Responds 400 with the
    merger's message when the receipt is refused.
    """
    AccessGuard(db).ensure_org_association(current_user.user_id, store_ids=[payload.store_id])
    merger = ReceiptMerger(db)

    if payload.inventory_items:
        result = merger.receive_inventory_items(
            [(line.inventory_item_id, line.quantity) for line in payload.inventory_items],
            payload.store_id,
            commit=False,
        )
        if result.success and payload.recipes:
            result = merger.receive(
                [(line.recipe_id, line.quantity) for line in payload.recipes],
                payload.store_id,
                commit=False,
            )
    else:
        result = merger.receive(
            [(line.recipe_id, line.quantity) for line in payload.recipes],
            payload.store_id,
            commit=False,
        )

    if not result.success:
        db.rollback()
        return JSONResponse(status_code=400, content=result.to_dict())

    commit_or_conflict(db)
    return result.to_dict()
