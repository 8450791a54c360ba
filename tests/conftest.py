import pytest
from fastapi.testclient import TestClient

from pantry_chef.app.main import create_app
from pantry_chef.app.schemas.generation import Recipe


class DummySettings:
    gemini_api_key = "test-key"
    genai_base_url = "https://genai.test"
    genai_api_version = "v1beta"
    text_model_name = "text"
    image_model_name = "image"
    video_model_name = "video"
    default_servings = 2
    placeholder_image_url = "https://placehold.co/600x400.png"
    text_timeout_seconds = 5.0
    image_timeout_seconds = 5.0
    fetch_timeout_seconds = 5.0
    video_duration_seconds = 8
    video_aspect_ratio = "16:9"
    video_poll_interval_seconds = 0.01
    video_timeout_seconds = 5.0
    video_job_cache_size = 32


@pytest.fixture
def dummy_settings():
    return DummySettings()


@pytest.fixture
def app():
    return create_app()


@pytest.fixture
def client(app):
    return TestClient(app)


def make_recipe(title: str = "Chicken Rice Bowl", image_urls=("data:image/png;base64,iVBORw0KGgo=",)) -> Recipe:
    return Recipe(
        title=title,
        cooking_time="25-30 minutes",
        ingredients_text="2 chicken breasts, 1 cup rice, 1 tbsp soy sauce",
        instructions_text="1. Cook the rice.\n2. Sear the chicken.\n3. Slice and serve over rice.",
        chef_commentary="You are about to have a wonderful meal!",
        image_urls=tuple(image_urls),
    )


@pytest.fixture
def recipe():
    return make_recipe()
