import logging
from dataclasses import dataclass, field
from typing import Awaitable, Callable, List, Optional, Sequence, Tuple

import httpx
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from mealcraft.app.db import models
from mealcraft.app.db.models import MealType
from mealcraft.app.schemas.auth import CurrentUser
from mealcraft.app.schemas.recipe import RecipeCreate, RecipeDraft
from mealcraft.app.services import image_fetcher, ingredient_catalog, recipes_service
from mealcraft.app.services.errors import PersistError, PersistStep, RecipeAccessError
from mealcraft.app.services.storage.base import StorageProvider

logger = logging.getLogger(__name__)

FetchImage = Callable[[str], Awaitable[Tuple[bytes, str]]]


@dataclass
class PersistResult:
    recipe: Optional[models.GeneratedRecipe] = None
    error: Optional[PersistError] = None
    warnings: List[PersistError] = field(default_factory=list)

    @property
    def saved(self) -> bool:
        return self.recipe is not None and self.error is None

    @property
    def recipe_id(self) -> Optional[int]:
        return self.recipe.id if self.saved else None


class PersistenceGateway:
    """
    Saves a completed draft: create the record, then copy the generated image
    into durable storage and point the record at it. Only record creation
    can fail the save; the image steps degrade to the transient URL.
    """

    def __init__(self, db: Session, storage: StorageProvider, fetch_image: Optional[FetchImage] = None):
        self.db = db
        self.storage = storage
        self.fetch_image = fetch_image or image_fetcher.fetch_image

    async def persist(
        self,
        draft: RecipeDraft,
        ingredient_names: Sequence[str],
        meal_type: MealType,
        token: Optional[CurrentUser] = None,
    ) -> PersistResult:
        if not draft.is_complete:
            raise ValueError(f"Cannot persist incomplete draft, missing: {', '.join(draft.missing_fields())}")

        payload = RecipeCreate(
            ingredients=ingredient_catalog.flatten_names(ingredient_names),
            title=draft.title,
            description=draft.description,
            body=draft.body,
            meal_type=meal_type,
            image_url=draft.image_url,
        )
        try:
            recipe = recipes_service.create_recipe(self.db, payload, token)
        except SQLAlchemyError as exc:
            self.db.rollback()
            logger.exception("Failed to create recipe record for '%s'", draft.title)
            return PersistResult(error=PersistError(PersistStep.CREATE, str(exc)))

        logger.info("Saved recipe %s (%s)", recipe.id, "anonymous" if token is None else f"user {token.id}")
        result = PersistResult(recipe=recipe)

        stored_ref = await self._upload_image(recipe.id, draft.image_url, result)
        if stored_ref is not None:
            self._backfill_image(recipe.id, stored_ref, token, result)
        return result

    async def _upload_image(self, recipe_id: int, image_url: str, result: PersistResult) -> Optional[str]:
        try:
            data, content_type = await self.fetch_image(image_url)
            return self.storage.save_image(recipe_id, data, content_type)
        except (httpx.HTTPError, ValueError, RuntimeError, OSError) as exc:
            logger.warning("Image upload failed for recipe %s; keeping generated url", recipe_id, exc_info=True)
            result.warnings.append(PersistError(PersistStep.UPLOAD, str(exc)))
            return None

    def _backfill_image(
        self, recipe_id: int, stored_ref: str, token: Optional[CurrentUser], result: PersistResult
    ) -> None:
        try:
            result.recipe = recipes_service.update_recipe_image(self.db, recipe_id, stored_ref, token)
        except (SQLAlchemyError, RecipeAccessError) as exc:
            self.db.rollback()
            logger.warning("Image backfill failed for recipe %s", recipe_id, exc_info=True)
            result.warnings.append(PersistError(PersistStep.BACKFILL, str(exc)))
