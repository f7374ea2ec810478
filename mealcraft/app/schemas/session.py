from typing import List, Optional

from pydantic import BaseModel, Field

from mealcraft.app.db.models import MealType
from mealcraft.app.schemas.recipe import RecipeDraft
from mealcraft.app.services.errors import PersistError, PersistStep
from mealcraft.app.services.generation_service import GenerationSession, PersistState
from mealcraft.app.services.session_service import SessionOutcome


class GenerateRequest(BaseModel):
    ingredient_ids: List[int] = Field(min_length=1)
    # defaults to the session's current meal type
    meal_type: Optional[MealType] = None


class RegenerateRequest(BaseModel):
    # defaults to the session's last inputs
    ingredient_ids: Optional[List[int]] = None
    meal_type: Optional[MealType] = None


class MealTypeRequest(BaseModel):
    meal_type: MealType


class PersistErrorRead(BaseModel):
    step: PersistStep
    message: str

    @classmethod
    def from_error(cls, error: PersistError) -> "PersistErrorRead":
        return cls(step=error.step, message=error.message)


class SessionRead(BaseModel):
    session_id: str
    selection: List[int]
    meal_type: MealType
    draft: RecipeDraft
    recipe_id: Optional[int] = None
    persist_state: PersistState
    generating: bool
    has_draft: bool
    has_unsynced_result: bool
    can_navigate_away: bool

    @classmethod
    def from_session(cls, session: GenerationSession) -> "SessionRead":
        return cls(
            session_id=session.session_id,
            selection=session.selection,
            meal_type=session.meal_type,
            draft=session.draft,
            recipe_id=session.recipe_id,
            persist_state=session.persist_state,
            generating=session.generating,
            has_draft=session.has_draft,
            has_unsynced_result=session.has_unsynced_result,
            can_navigate_away=session.can_navigate_away,
        )


class GenerateResponse(BaseModel):
    draft: RecipeDraft
    saved: bool
    recipe_id: Optional[int] = None
    image_url: Optional[str] = None
    persist_error: Optional[PersistErrorRead] = None
    warnings: List[PersistErrorRead] = Field(default_factory=list)

    @classmethod
    def from_outcome(cls, outcome: SessionOutcome) -> "GenerateResponse":
        return cls(
            draft=outcome.draft,
            saved=outcome.saved,
            recipe_id=outcome.recipe_id,
            image_url=outcome.image_url or outcome.draft.image_url,
            persist_error=PersistErrorRead.from_error(outcome.persist_error) if outcome.persist_error else None,
            warnings=[PersistErrorRead.from_error(w) for w in outcome.warnings],
        )


class IngredientRead(BaseModel):
    id: int
    name: str


class GalleryItem(BaseModel):
    title: str
    description: str
    image_src: str
