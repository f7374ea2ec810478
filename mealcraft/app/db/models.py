from datetime import datetime
import enum

from sqlalchemy import Column, DateTime, Enum, Integer, JSON, String, Text

from mealcraft.app.db.base import Base


class MealType(str, enum.Enum):
    BREAKFAST = "breakfast"
    LUNCH = "lunch"
    DINNER = "dinner"
    ANY = "any"

    def toggle(self, chosen: "MealType") -> "MealType":
        """Selecting the active meal type again switches back to ``ANY``."""
        if chosen == self:
            return MealType.ANY
        return chosen


class GeneratedRecipe(Base):
    __tablename__ = "generated_recipes"

    id = Column(Integer, primary_key=True, index=True)
    # NULL for anonymous writes
    user_id = Column(String, nullable=True, index=True)
    ingredients = Column(Text, nullable=False)
    title = Column(String, nullable=False)
    description = Column(Text, nullable=False)
    body = Column(JSON, nullable=False)
    meal_type = Column(Enum(MealType, native_enum=False), nullable=False, default=MealType.ANY)
    image_url = Column(String)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
