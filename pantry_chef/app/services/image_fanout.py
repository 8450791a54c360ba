import asyncio
import logging
from typing import List, Optional

from pantry_chef.app.core.config import get_settings
from pantry_chef.app.schemas.generation import RecipeText
from pantry_chef.app.services import genai_client

logger = logging.getLogger(__name__)

_PROMPT_TEMPLATES = (
    'A cute, simple, and neat photorealistic image of a dish called "{title}". '
    "The main ingredients are {ingredients}. The dish should be professionally plated "
    "on a clean, modern background.",
    'Another angle of the dish "{title}" with ingredients {ingredients}. This is a simple '
    "and cute photo with a shallow depth of field, making the food look very appealing.",
    'A top-down, flat-lay photograph of the finished dish "{title}". The plating is neat '
    "and artistic. The style is cute and minimalist.",
    'A close-up, eye-level shot of "{title}" showing its texture, made with {ingredients}. '
    "Soft natural window light, rustic wooden table.",
    'A wide shot of "{title}" served on a set dinner table, with {ingredients} visible '
    "around the plate. Warm, inviting atmosphere.",
)


def placeholder_url() -> str:
    return get_settings().placeholder_image_url


def is_placeholder(url: str) -> bool:
    return url == placeholder_url()


def build_image_prompts(recipe: RecipeText, count: int) -> List[str]:
    prompts = []
    for idx in range(count):
        template = _PROMPT_TEMPLATES[idx % len(_PROMPT_TEMPLATES)]
        prompt = template.format(title=recipe.title, ingredients=recipe.ingredients_text)
        if idx >= len(_PROMPT_TEMPLATES):
            prompt += f" Variation {idx // len(_PROMPT_TEMPLATES) + 1}, use a different framing."
        prompts.append(prompt)
    return prompts


def _fit_to_count(urls: List[str], count: int) -> List[str]:
    fitted = list(urls[:count])
    while len(fitted) < count:
        fitted.append(placeholder_url())
    return fitted


async def generate_images(recipe: RecipeText, count: int) -> List[str]:
    """
    Generate `count` images for a recipe concurrently. Never raises.

    Each prompt's outcome lands at the prompt's own position; a rejected
    call or one that returns no media becomes the placeholder URL. The
    result always has exactly `count` entries.
    """
    if count <= 0:
        return []

    urls: List[str] = []
    try:
        prompts = build_image_prompts(recipe, count)
        outcomes = await asyncio.gather(
            *(genai_client.generate_image(prompt) for prompt in prompts),
            return_exceptions=True,
        )
        for idx, outcome in enumerate(outcomes):
            url: Optional[str] = None
            if isinstance(outcome, BaseException):
                logger.error("Image generation failed for prompt %d, using placeholder: %s", idx, outcome)
            elif not outcome:
                logger.error("Image generation returned no media for prompt %d, using placeholder", idx)
            else:
                url = outcome
            urls.append(url or placeholder_url())
    except Exception:  # noqa: BLE001
        logger.exception("Image generation failed, using placeholders")

    return _fit_to_count(urls, count)
