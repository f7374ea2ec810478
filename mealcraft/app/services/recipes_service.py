from typing import List, Optional

from fastapi import HTTPException, status
from sqlalchemy import select
from sqlalchemy.orm import Session

from mealcraft.app.db import models
from mealcraft.app.schemas.auth import CurrentUser
from mealcraft.app.schemas.recipe import RecipeCreate
from mealcraft.app.services.errors import RecipeAccessError


def _owner_id(token: Optional[CurrentUser]) -> Optional[str]:
    return str(token.id) if token is not None else None


def create_recipe(db: Session, data: RecipeCreate, token: Optional[CurrentUser] = None) -> models.GeneratedRecipe:
    """Insert a generated recipe; without a token the record is anonymous."""
    recipe = models.GeneratedRecipe(
        user_id=_owner_id(token),
        ingredients=data.ingredients,
        title=data.title,
        description=data.description,
        body=data.body.model_dump(mode="json"),
        meal_type=data.meal_type,
        image_url=data.image_url,
    )
    db.add(recipe)
    db.commit()
    db.refresh(recipe)
    return recipe


def update_recipe_image(
    db: Session, recipe_id: int, image_url: str, token: Optional[CurrentUser] = None
) -> models.GeneratedRecipe:
    recipe = db.get(models.GeneratedRecipe, recipe_id)
    if recipe is None:
        raise RecipeAccessError(recipe_id)
    if recipe.user_id is not None and recipe.user_id != _owner_id(token):
        raise RecipeAccessError(recipe_id)
    recipe.image_url = image_url
    db.commit()
    db.refresh(recipe)
    return recipe


def list_recipes_for_user(db: Session, user_id: str) -> List[models.GeneratedRecipe]:
    stmt = (
        select(models.GeneratedRecipe)
        .where(models.GeneratedRecipe.user_id == str(user_id))
        .order_by(models.GeneratedRecipe.created_at.desc(), models.GeneratedRecipe.id.desc())
    )
    return list(db.scalars(stmt).all())


def get_recipe(db: Session, user_id: str, recipe_id: int) -> models.GeneratedRecipe:
    stmt = select(models.GeneratedRecipe).where(
        models.GeneratedRecipe.user_id == str(user_id), models.GeneratedRecipe.id == recipe_id
    )
    recipe = db.scalars(stmt).first()
    if not recipe:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Recipe not found")
    return recipe
