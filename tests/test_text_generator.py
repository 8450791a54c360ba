import pytest

from pantry_chef.app.schemas.generation import Cuisine, DietaryRestriction, GenerationRequest
from pantry_chef.app.services import genai_client, text_generator
from pantry_chef.app.services.text_generator import GenerationError, GenerationErrorKind


def _backend_recipe():
    return {
        "title": "Chicken Rice Bowl",
        "cookingTime": "25-30 minutes",
        "ingredients": "2 chicken breasts, 1 cup rice",
        "instructions": "1. Cook rice.\n2. Sear chicken.",
        "chefCommentary": "A bowl worth coming home to.",
    }


def test_prompt_includes_all_preferences():
    request = GenerationRequest(
        ingredients=["chicken", "rice"],
        servings=4,
        dietary_restrictions={DietaryRestriction.GLUTEN_FREE, DietaryRestriction.VEGAN},
        cuisine=Cuisine.THAI,
        previous_title="Chicken Fried Rice",
    )
    prompt = text_generator.build_recipe_prompt(request)
    assert "Ingredients: chicken, rice" in prompt
    assert "for 4 people" in prompt
    assert "Thai cuisine" in prompt
    assert "Vegan, Gluten-Free" in prompt
    assert "ignore the conflicting ingredients" in prompt
    assert 'different recipe than "Chicken Fried Rice"' in prompt


def test_prompt_drops_any_cuisine_and_empty_preferences():
    request = GenerationRequest(ingredients=["eggs"], cuisine=Cuisine.ANY)
    assert request.effective_cuisine is None
    prompt = text_generator.build_recipe_prompt(request)
    assert "cuisine" not in prompt
    assert "dietary restrictions" not in prompt
    assert "different recipe" not in prompt
    assert "for 2 people" in prompt


def test_request_dedupes_ingredients():
    request = GenerationRequest(ingredients=[" chicken", "rice", "chicken", ""])
    assert request.ingredients == ["chicken", "rice"]


def test_request_rejects_empty_ingredients():
    with pytest.raises(ValueError):
        GenerationRequest(ingredients=["  "])


@pytest.mark.asyncio
async def test_generate_text_maps_backend_fields(monkeypatch):
    prompts = []

    async def fake_generate(prompt):
        prompts.append(prompt)
        return _backend_recipe()

    monkeypatch.setattr(genai_client, "generate_recipe_json", fake_generate)
    text = await text_generator.generate_text(GenerationRequest(ingredients=["chicken", "rice"]))
    assert text.title == "Chicken Rice Bowl"
    assert text.cooking_time == "25-30 minutes"
    assert text.ingredients_text == "2 chicken breasts, 1 cup rice"
    assert text.instructions_text.startswith("1. Cook rice.")
    assert len(prompts) == 1


@pytest.mark.asyncio
async def test_generate_text_flattens_list_fields(monkeypatch):
    async def fake_generate(prompt):
        data = _backend_recipe()
        data["ingredients"] = ["2 eggs", "1 cup spinach"]
        data["instructions"] = ["Whisk eggs", "Cook"]
        return data

    monkeypatch.setattr(genai_client, "generate_recipe_json", fake_generate)
    text = await text_generator.generate_text(GenerationRequest(ingredients=["eggs"]))
    assert text.ingredients_text == "2 eggs, 1 cup spinach"
    assert text.instructions_text == "Whisk eggs\nCook"


@pytest.mark.asyncio
@pytest.mark.parametrize("payload", [None, {}, {"title": "Only a title"}])
async def test_empty_output_is_fatal(monkeypatch, payload):
    async def fake_generate(prompt):
        return payload

    monkeypatch.setattr(genai_client, "generate_recipe_json", fake_generate)
    with pytest.raises(GenerationError) as excinfo:
        await text_generator.generate_text(GenerationRequest(ingredients=["chicken"]))
    assert excinfo.value.kind == GenerationErrorKind.EMPTY_RESULT
    assert excinfo.value.error_code == "empty_result"


@pytest.mark.asyncio
async def test_backend_error_is_fatal(monkeypatch):
    async def fake_generate(prompt):
        raise genai_client.GenAIBackendError("boom", status_code=503)

    monkeypatch.setattr(genai_client, "generate_recipe_json", fake_generate)
    with pytest.raises(GenerationError) as excinfo:
        await text_generator.generate_text(GenerationRequest(ingredients=["chicken"]))
    assert excinfo.value.kind == GenerationErrorKind.BACKEND_UNAVAILABLE
