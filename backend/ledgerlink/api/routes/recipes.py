"""Recipe (BOM) routes."""

from fastapi import APIRouter, Request, status

from ledgerlink.core.rate_limit import limiter
from ledgerlink.core.rbac import CurrentUser
from ledgerlink.db.session import DbSession
from ledgerlink.schemas.recipe import (
    RecipeCreatedResponse,
    RecipeDetailResponse,
    RecipeSave,
    RecipeUpdate,
)
from ledgerlink.services.recipe_service import RecipeService

router = APIRouter()


@router.post("/", response_model=RecipeCreatedResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit("30/minute")
def create_recipe(request: Request, payload: RecipeSave, db: DbSession, current_user: CurrentUser):
    """Create a recipe; when ``is_on_sale`` is set its product is created too."""
    recipe_id = RecipeService(db).create_recipe(payload, current_user.user_id)
    return {"recipe_id": recipe_id}


@router.put("/{recipe_id}", response_model=RecipeDetailResponse)
@limiter.limit("30/minute")
def update_recipe(
    request: Request,
    recipe_id: int,
    payload: RecipeUpdate,
    db: DbSession,
    current_user: CurrentUser,
):
    service = RecipeService(db)
    service.update_recipe(recipe_id, payload, current_user.user_id)
    return service.get_recipe_detail(recipe_id, current_user.user_id)


@router.get("/{recipe_id}", response_model=RecipeDetailResponse)
@limiter.limit("60/minute")
def get_recipe(request: Request, recipe_id: int, db: DbSession, current_user: CurrentUser):
    return RecipeService(db).get_recipe_detail(recipe_id, current_user.user_id)
