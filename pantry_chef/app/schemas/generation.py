import hashlib
from enum import Enum
from typing import FrozenSet, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator


class DietaryRestriction(str, Enum):
    VEGETARIAN = "Vegetarian"
    VEGAN = "Vegan"
    GLUTEN_FREE = "Gluten-Free"
    DAIRY_FREE = "Dairy-Free"
    NUT_FREE = "Nut-Free"
    LOW_CARB = "Low-Carb"
    KETO = "Keto"
    HALAL = "Halal"
    KOSHER = "Kosher"


class Cuisine(str, Enum):
    ANY = "Any"
    AMERICAN = "American"
    CHINESE = "Chinese"
    FRENCH = "French"
    INDIAN = "Indian"
    ITALIAN = "Italian"
    JAPANESE = "Japanese"
    MEDITERRANEAN = "Mediterranean"
    MEXICAN = "Mexican"
    THAI = "Thai"


class GenerationRequest(BaseModel):
    ingredients: List[str] = Field(min_length=1)
    servings: int = Field(2, gt=0)
    dietary_restrictions: FrozenSet[DietaryRestriction] = frozenset()
    cuisine: Optional[Cuisine] = None
    previous_title: Optional[str] = None

    model_config = ConfigDict(frozen=True)

    @field_validator("ingredients")
    @classmethod
    def _dedupe_ingredients(cls, value: List[str]) -> List[str]:
        seen = set()
        cleaned = []
        for item in value:
            name = item.strip()
            if name and name not in seen:
                seen.add(name)
                cleaned.append(name)
        if not cleaned:
            raise ValueError("at least one ingredient is required")
        return cleaned

    @field_validator("previous_title")
    @classmethod
    def _blank_title_is_none(cls, value: Optional[str]) -> Optional[str]:
        if value is None or not value.strip():
            return None
        return value.strip()

    @property
    def effective_cuisine(self) -> Optional[Cuisine]:
        """Cuisine to put in the prompt; the "Any" sentinel means no preference."""
        if self.cuisine is None or self.cuisine == Cuisine.ANY:
            return None
        return self.cuisine

    def sorted_restrictions(self) -> List[DietaryRestriction]:
        order = list(DietaryRestriction)
        return sorted(self.dietary_restrictions, key=order.index)


class RecipeText(BaseModel):
    title: str
    cooking_time: str
    ingredients_text: str
    instructions_text: str
    chef_commentary: str

    model_config = ConfigDict(frozen=True)


class Recipe(RecipeText):
    image_urls: Tuple[str, ...] = ()

    @property
    def recipe_key(self) -> str:
        return recipe_key_for(self.title, self.instructions_text)

    @classmethod
    def from_text(cls, text: RecipeText, image_urls: List[str]) -> "Recipe":
        return cls(**text.model_dump(), image_urls=tuple(image_urls))


def recipe_key_for(title: str, instructions_text: str) -> str:
    digest = hashlib.sha256()
    digest.update(title.strip().encode("utf-8"))
    digest.update(b"\n")
    digest.update(instructions_text.strip().encode("utf-8"))
    return digest.hexdigest()


class RecipeGenerationResult(BaseModel):
    recipe: Recipe
    warnings: List[str] = Field(default_factory=list)
    placeholder_count: int = 0

    @property
    def images_degraded(self) -> bool:
        return self.placeholder_count > 0


class ScaleRequest(BaseModel):
    ingredients_text: str
    from_servings: int = Field(gt=0)
    to_servings: int = Field(gt=0)


class ScaledIngredients(BaseModel):
    ingredients_text: str
    scaled_ingredients_text: str
    from_servings: int
    to_servings: int
