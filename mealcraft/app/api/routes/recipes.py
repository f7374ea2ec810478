from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from mealcraft.app.api.deps import get_current_user, get_db_session
from mealcraft.app.schemas.auth import CurrentUser
from mealcraft.app.schemas.recipe import RecipeRead
from mealcraft.app.services import recipes_service

router = APIRouter(prefix="/recipes", tags=["recipes"])


@router.get("", response_model=list[RecipeRead])
def list_recipes(
    db: Session = Depends(get_db_session),
    current_user: CurrentUser = Depends(get_current_user),
):
    return recipes_service.list_recipes_for_user(db, current_user.id)


@router.get("/{recipe_id}", response_model=RecipeRead)
def get_recipe(
    recipe_id: int,
    db: Session = Depends(get_db_session),
    current_user: CurrentUser = Depends(get_current_user),
):
    return recipes_service.get_recipe(db, current_user.id, recipe_id)
