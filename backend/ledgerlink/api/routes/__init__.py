"""API routes."""

from fastapi import APIRouter

from ledgerlink.api.routes import products, receipts, recipes, transfers

api_router = APIRouter()

api_router.include_router(recipes.router, prefix="/recipes", tags=["recipes"])
api_router.include_router(products.router, prefix="/products", tags=["products"])
api_router.include_router(transfers.router, prefix="/transfers", tags=["transfers"])
api_router.include_router(receipts.router, prefix="/receipts", tags=["receipts"])
