from fastapi import APIRouter, HTTPException, status

from mealcraft.app.core.config import get_settings
from mealcraft.app.schemas.session import GalleryItem, IngredientRead
from mealcraft.app.services import gallery_service, ingredient_catalog
from mealcraft.app.services.errors import UnknownIngredientError

router = APIRouter(tags=["catalog"])


@router.get("/ingredients/popular", response_model=list[IngredientRead])
def popular_ingredients():
    return ingredient_catalog.list_popular(get_settings().static_data_dir)


@router.get("/ingredients/{ingredient_id}", response_model=IngredientRead)
def get_ingredient(ingredient_id: int):
    try:
        name = ingredient_catalog.get_name(get_settings().static_data_dir, ingredient_id)
    except UnknownIngredientError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Ingredient not found")
    return {"id": ingredient_id, "name": name}


@router.get("/gallery", response_model=list[GalleryItem])
def preview_gallery():
    settings = get_settings()
    return gallery_service.list_preview_recipes(settings.static_data_dir, settings.recipe_image_public_base_url)
