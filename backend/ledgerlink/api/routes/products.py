"""Product availability routes."""

from typing import List

from fastapi import APIRouter, Request

from ledgerlink.core.exceptions import NotFoundError
from ledgerlink.core.rate_limit import limiter
from ledgerlink.core.rbac import CurrentUser
from ledgerlink.db.session import DbSession
from ledgerlink.models.product import Product
from ledgerlink.schemas.product import ProductAvailabilityResponse
from ledgerlink.services.access_service import AccessGuard
from ledgerlink.services.availability_service import AvailabilityAndCostEngine

router = APIRouter()


@router.get("/store/{store_id}", response_model=List[ProductAvailabilityResponse])
@limiter.limit("60/minute")
def list_store_products(request: Request, store_id: int, db: DbSession, current_user: CurrentUser):
    """Availability, available count and prices of every product of a store."""
    AccessGuard(db).ensure_org_association(current_user.user_id, store_ids=[store_id])
    return [a.to_dict() for a in AvailabilityAndCostEngine(db).describe_store_products(store_id)]


@router.get("/{product_id}/availability", response_model=ProductAvailabilityResponse)
@limiter.limit("60/minute")
def get_product_availability(request: Request, product_id: int, db: DbSession, current_user: CurrentUser):
    product = db.get(Product, product_id)
    if product is None:
        raise NotFoundError("Product", product_id)
    AccessGuard(db).ensure_org_association(current_user.user_id, store_ids=[product.store_id])
    return AvailabilityAndCostEngine(db).describe(product).to_dict()
