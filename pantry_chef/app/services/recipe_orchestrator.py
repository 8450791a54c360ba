import logging
import time

from pantry_chef.app.schemas.generation import GenerationRequest, Recipe, RecipeGenerationResult
from pantry_chef.app.services import image_fanout, text_generator

logger = logging.getLogger(__name__)

WARNING_IMAGES_DEGRADED = "images_degraded"
RECIPE_IMAGE_COUNT = 3


async def generate_recipe(request: GenerationRequest) -> RecipeGenerationResult:
    """
    Text first, then images. A text failure raises GenerationError and no
    image call is made; image failures only degrade the result.
    """
    start = time.time()

    recipe_text = await text_generator.generate_text(request)
    image_urls = await image_fanout.generate_images(recipe_text, RECIPE_IMAGE_COUNT)

    recipe = Recipe.from_text(recipe_text, image_urls)
    placeholder_count = sum(1 for url in image_urls if image_fanout.is_placeholder(url))
    warnings = []
    if placeholder_count:
        warnings.append(WARNING_IMAGES_DEGRADED)
        logger.warning(
            "Recipe %s generated with %d/%d placeholder images", recipe.title, placeholder_count, len(image_urls)
        )

    logger.info(
        "Recipe generation finished: title=%s, images=%d, duration_ms=%d",
        recipe.title,
        len(image_urls),
        int((time.time() - start) * 1000),
    )
    return RecipeGenerationResult(recipe=recipe, warnings=warnings, placeholder_count=placeholder_count)
