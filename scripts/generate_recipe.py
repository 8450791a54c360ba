#!/usr/bin/env python
"""
Generate a recipe (and optionally a cooking video) from the command line.

Run with:
    python scripts/generate_recipe.py chicken rice --servings 2 --cuisine Thai
    python scripts/generate_recipe.py eggs spinach --diet Vegetarian --video-out dish.mp4
"""
import argparse
import asyncio
import base64
import json
import logging
import sys
from pathlib import Path

from dotenv import load_dotenv

from pantry_chef.app.core.config import get_settings
from pantry_chef.app.schemas.generation import Cuisine, DietaryRestriction, GenerationRequest
from pantry_chef.app.services import recipe_orchestrator
from pantry_chef.app.services.quantity_scaler import scale
from pantry_chef.app.services.text_generator import GenerationError
from pantry_chef.app.services.video_job_service import VideoError, VideoJobController

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("generate_recipe")


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Generate a recipe from the ingredients you have.")
    parser.add_argument("ingredients", nargs="+", help="Ingredients on hand")
    parser.add_argument("--servings", type=int, default=None, help="Number of people to cook for")
    parser.add_argument("--cuisine", choices=[c.value for c in Cuisine], default=Cuisine.ANY.value)
    parser.add_argument(
        "--diet",
        action="append",
        choices=[d.value for d in DietaryRestriction],
        default=[],
        help="Dietary restriction (repeatable)",
    )
    parser.add_argument("--previous-title", default=None, help="Avoid repeating this recipe")
    parser.add_argument("--scale-to", type=int, default=None, help="Also print ingredients scaled to N servings")
    parser.add_argument("--video-out", type=Path, default=None, help="Generate a cooking video and write it here")
    return parser.parse_args(argv)


async def run(args: argparse.Namespace) -> int:
    settings = get_settings()
    request = GenerationRequest(
        ingredients=args.ingredients,
        servings=args.servings or settings.default_servings,
        dietary_restrictions=frozenset(DietaryRestriction(d) for d in args.diet),
        cuisine=Cuisine(args.cuisine),
        previous_title=args.previous_title,
    )
    try:
        result = await recipe_orchestrator.generate_recipe(request)
    except GenerationError as exc:
        logger.error("Could not generate a recipe (%s): %s", exc.error_code, exc.message)
        return 1

    if result.images_degraded:
        logger.warning("Could not generate all images (%d placeholders)", result.placeholder_count)

    output = result.recipe.model_dump(mode="json")
    output["image_urls"] = [url if len(url) < 120 else url[:117] + "..." for url in output["image_urls"]]
    if args.scale_to:
        output["scaled_ingredients_text"] = scale(result.recipe.ingredients_text, request.servings, args.scale_to)
    print(json.dumps(output, indent=2))

    if args.video_out:
        controller = VideoJobController(settings)
        try:
            data_uri = await controller.generate_video(result.recipe)
        except VideoError as exc:
            logger.error("Video generation failed (%s): %s", exc.error_code, exc.message)
            return 2
        args.video_out.write_bytes(base64.b64decode(data_uri.split(",", 1)[1]))
        logger.info("Wrote video to %s", args.video_out)
    return 0


def main(argv=None) -> int:
    env_path = Path(__file__).resolve().parent.parent / ".env"
    if env_path.exists():
        load_dotenv(env_path)
    return asyncio.run(run(parse_args(argv)))


if __name__ == "__main__":
    sys.exit(main())
