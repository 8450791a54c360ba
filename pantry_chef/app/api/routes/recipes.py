from fastapi import APIRouter, HTTPException

from pantry_chef.app.schemas.generation import (
    GenerationRequest,
    RecipeGenerationResult,
    ScaledIngredients,
    ScaleRequest,
)
from pantry_chef.app.services import recipe_orchestrator
from pantry_chef.app.services.quantity_scaler import scale
from pantry_chef.app.services.text_generator import GenerationError

router = APIRouter(prefix="/recipes", tags=["recipes"])


@router.post("/generate", response_model=RecipeGenerationResult)
async def generate_recipe(payload: GenerationRequest):
    try:
        return await recipe_orchestrator.generate_recipe(payload)
    except GenerationError as exc:
        raise HTTPException(
            status_code=502,
            detail={
                "error_code": exc.error_code,
                "message": "Could not generate a recipe. The AI service may be temporarily unavailable.",
            },
        )


@router.post("/scale", response_model=ScaledIngredients)
def scale_ingredients(payload: ScaleRequest):
    return ScaledIngredients(
        ingredients_text=payload.ingredients_text,
        scaled_ingredients_text=scale(payload.ingredients_text, payload.from_servings, payload.to_servings),
        from_servings=payload.from_servings,
        to_servings=payload.to_servings,
    )
