import logging
from enum import Enum
from typing import Any, Dict, Optional

from pydantic import ValidationError

from pantry_chef.app.schemas.generation import GenerationRequest, RecipeText
from pantry_chef.app.services import genai_client

logger = logging.getLogger(__name__)


class GenerationErrorKind(str, Enum):
    EMPTY_RESULT = "empty_result"
    BACKEND_UNAVAILABLE = "backend_unavailable"


class GenerationError(Exception):
    """Fatal to a recipe request: no recipe text could be produced."""

    def __init__(self, kind: GenerationErrorKind, message: str):
        super().__init__(message)
        self.kind = kind
        self.message = message

    @property
    def error_code(self) -> str:
        return self.kind.value


def build_recipe_prompt(request: GenerationRequest) -> str:
    lines = [
        "You are a world-class chef. Generate a recipe based on the ingredients provided.",
        "",
        f"Ingredients: {', '.join(request.ingredients)}",
    ]
    if request.servings:
        lines += [
            "",
            f"The recipe should be for {request.servings} people. "
            "Please adjust ingredient quantities accordingly.",
        ]
    cuisine = request.effective_cuisine
    if cuisine is not None:
        lines += ["", f"The recipe should be in the style of {cuisine.value} cuisine."]
    restrictions = request.sorted_restrictions()
    if restrictions:
        lines += [
            "",
            "Important: The recipe must adhere to the following dietary restrictions: "
            f"{', '.join(r.value for r in restrictions)}. "
            "If any of the provided ingredients conflict with these restrictions, "
            "ignore the conflicting ingredients and create a valid recipe.",
        ]
    if request.previous_title:
        lines += ["", f'Please generate a different recipe than "{request.previous_title}".']
    lines += [
        "",
        "Also provide the estimated cooking time and a short, single sentence of "
        "impressive commentary about the final dish.",
        "",
        "Return ingredients as a comma separated list with quantities, and the "
        "instructions as numbered steps, one per line.",
    ]
    return "\n".join(lines)


def _coerce_recipe_text(data: Dict[str, Any]) -> Optional[RecipeText]:
    fields = {
        "title": data.get("title") or data.get("name"),
        "cooking_time": data.get("cookingTime") or data.get("cooking_time") or "",
        "ingredients_text": data.get("ingredients") or data.get("ingredients_text"),
        "instructions_text": data.get("instructions") or data.get("instructions_text"),
        "chef_commentary": data.get("chefCommentary") or data.get("chef_commentary") or "",
    }
    # Lists are tolerated and flattened into the text forms the UI expects.
    if isinstance(fields["ingredients_text"], list):
        fields["ingredients_text"] = ", ".join(str(i).strip() for i in fields["ingredients_text"])
    if isinstance(fields["instructions_text"], list):
        fields["instructions_text"] = "\n".join(str(s).strip() for s in fields["instructions_text"])
    if not fields["title"] or not fields["ingredients_text"] or not fields["instructions_text"]:
        return None
    try:
        return RecipeText(**{k: str(v).strip() for k, v in fields.items()})
    except ValidationError as exc:
        logger.warning("Recipe text failed validation: %s", exc)
        return None


async def generate_text(request: GenerationRequest) -> RecipeText:
    prompt = build_recipe_prompt(request)
    try:
        data = await genai_client.generate_recipe_json(prompt)
    except genai_client.GenAIBackendError as exc:
        logger.error("Recipe text generation failed: %s", exc)
        raise GenerationError(GenerationErrorKind.BACKEND_UNAVAILABLE, str(exc)) from exc

    recipe_text = _coerce_recipe_text(data) if data else None
    if recipe_text is None:
        logger.warning("Text backend returned no structured recipe for ingredients=%s", request.ingredients)
        raise GenerationError(GenerationErrorKind.EMPTY_RESULT, "Failed to generate recipe details.")
    logger.info("Generated recipe text: %s", recipe_text.title)
    return recipe_text
