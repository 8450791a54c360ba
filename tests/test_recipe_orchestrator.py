import pytest

from pantry_chef.app.schemas.generation import GenerationRequest
from pantry_chef.app.services import genai_client, image_fanout, recipe_orchestrator
from pantry_chef.app.services.text_generator import GenerationError, GenerationErrorKind


def _request():
    return GenerationRequest(ingredients=["chicken", "rice"], servings=2)


def _backend_recipe():
    return {
        "title": "Chicken Rice Bowl",
        "cookingTime": "25-30 minutes",
        "ingredients": "2 chicken breasts, 1 cup rice",
        "instructions": "1. Cook rice.\n2. Sear chicken.",
        "chefCommentary": "A bowl worth coming home to.",
    }


@pytest.fixture
def text_ok(monkeypatch):
    async def fake_generate(prompt):
        return _backend_recipe()

    monkeypatch.setattr(genai_client, "generate_recipe_json", fake_generate)


@pytest.mark.asyncio
async def test_happy_path_has_three_real_images(monkeypatch, text_ok):
    async def fake_image(prompt):
        return "https://img.test/dish.png"

    monkeypatch.setattr(genai_client, "generate_image", fake_image)
    result = await recipe_orchestrator.generate_recipe(_request())
    assert result.recipe.title == "Chicken Rice Bowl"
    assert len(result.recipe.image_urls) == 3
    assert result.placeholder_count == 0
    assert result.warnings == []
    assert result.images_degraded is False


@pytest.mark.asyncio
async def test_partial_image_failure_warns_but_succeeds(monkeypatch, text_ok):
    async def fake_image(prompt):
        if prompt.startswith("A cute"):
            return "https://img.test/dish.png"
        raise genai_client.GenAIBackendError("rejected")

    monkeypatch.setattr(genai_client, "generate_image", fake_image)
    result = await recipe_orchestrator.generate_recipe(_request())
    urls = result.recipe.image_urls
    assert len(urls) == 3
    assert sum(1 for u in urls if image_fanout.is_placeholder(u)) == 2
    assert result.placeholder_count == 2
    assert result.warnings == [recipe_orchestrator.WARNING_IMAGES_DEGRADED]
    assert result.images_degraded is True


@pytest.mark.asyncio
async def test_empty_text_fails_without_image_calls(monkeypatch):
    image_calls = []

    async def fake_generate(prompt):
        return None

    async def fake_image(prompt):
        image_calls.append(prompt)
        return "https://img.test/dish.png"

    monkeypatch.setattr(genai_client, "generate_recipe_json", fake_generate)
    monkeypatch.setattr(genai_client, "generate_image", fake_image)
    with pytest.raises(GenerationError) as excinfo:
        await recipe_orchestrator.generate_recipe(_request())
    assert excinfo.value.kind == GenerationErrorKind.EMPTY_RESULT
    assert image_calls == []


@pytest.mark.asyncio
async def test_recipe_key_is_stable_for_same_content(monkeypatch, text_ok):
    async def fake_image(prompt):
        return None

    monkeypatch.setattr(genai_client, "generate_image", fake_image)
    first = await recipe_orchestrator.generate_recipe(_request())
    second = await recipe_orchestrator.generate_recipe(_request())
    assert first.recipe.recipe_key == second.recipe.recipe_key
    assert first.recipe is not second.recipe


@pytest.mark.asyncio
async def test_image_count_ignores_environment(monkeypatch, text_ok):
    requested = []

    async def fake_images(recipe_text, count):
        requested.append(count)
        return ["https://img.test/dish.png"] * count

    monkeypatch.setenv("RECIPE_IMAGE_COUNT", "2")
    monkeypatch.setattr(image_fanout, "generate_images", fake_images)
    result = await recipe_orchestrator.generate_recipe(_request())
    assert requested == [3]
    assert len(result.recipe.image_urls) == 3
