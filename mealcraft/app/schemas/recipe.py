from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from mealcraft.app.db.models import MealType


class RecipeIngredient(BaseModel):
    name: str
    amount: Optional[str] = None


class RecipeBody(BaseModel):
    ingredients: List[RecipeIngredient]
    steps: List[str]
    prep_time_minutes: Optional[int] = None
    cook_time_minutes: Optional[int] = None
    servings: Optional[int] = None
    tips: List[str] = Field(default_factory=list)

    @field_validator("ingredients")
    @classmethod
    def validate_ingredients(cls, value: List[RecipeIngredient]) -> List[RecipeIngredient]:
        if not value:
            raise ValueError("At least one ingredient is required")
        return value

    @field_validator("steps")
    @classmethod
    def validate_steps(cls, value: List[str]) -> List[str]:
        steps = [step.strip() for step in value if step and step.strip()]
        if not steps:
            raise ValueError("At least one step is required")
        return steps


class RecipeDraft(BaseModel):
    """In-progress generation result, filled title -> image -> description -> body."""

    title: str = ""
    description: str = ""
    body: Optional[RecipeBody] = None
    image_url: str = ""

    def missing_fields(self) -> List[str]:
        missing = [name for name in ("title", "image_url", "description") if not getattr(self, name)]
        if self.body is None:
            missing.append("body")
        return missing

    @property
    def is_complete(self) -> bool:
        return not self.missing_fields()

    @property
    def is_empty(self) -> bool:
        return not (self.title or self.description or self.image_url or self.body is not None)


class RecipeCreate(BaseModel):
    ingredients: str
    title: str
    description: str
    body: RecipeBody
    meal_type: MealType = MealType.ANY
    image_url: Optional[str] = None


class RecipeRead(BaseModel):
    id: int
    user_id: Optional[str] = None
    ingredients: str
    title: str
    description: str
    body: RecipeBody
    meal_type: MealType
    image_url: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)
