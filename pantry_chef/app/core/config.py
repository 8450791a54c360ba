import logging
from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    gemini_api_key: str | None = Field(None, alias="GEMINI_API_KEY")
    genai_base_url: str = Field("https://generativelanguage.googleapis.com", alias="GENAI_BASE_URL")
    genai_api_version: str = Field("v1beta", alias="GENAI_API_VERSION")
    text_model_name: str = Field("gemini-2.0-flash", alias="PANTRY_TEXT_MODEL_NAME")
    image_model_name: str = Field(
        "gemini-2.0-flash-preview-image-generation", alias="PANTRY_IMAGE_MODEL_NAME"
    )
    video_model_name: str = Field("veo-2.0-generate-001", alias="PANTRY_VIDEO_MODEL_NAME")
    default_servings: int = Field(2, alias="DEFAULT_SERVINGS")
    placeholder_image_url: str = Field("https://placehold.co/600x400.png", alias="PLACEHOLDER_IMAGE_URL")
    text_timeout_seconds: float = Field(60.0, alias="TEXT_TIMEOUT_SECONDS")
    image_timeout_seconds: float = Field(120.0, alias="IMAGE_TIMEOUT_SECONDS")
    fetch_timeout_seconds: float = Field(60.0, alias="FETCH_TIMEOUT_SECONDS")
    # Video job controls
    video_duration_seconds: int = Field(8, alias="VIDEO_DURATION_SECONDS")
    video_aspect_ratio: str = Field("16:9", alias="VIDEO_ASPECT_RATIO")
    video_poll_interval_seconds: float = Field(5.0, alias="VIDEO_POLL_INTERVAL_SECONDS")
    video_timeout_seconds: float | None = Field(600.0, alias="VIDEO_TIMEOUT_SECONDS")
    video_job_cache_size: int = Field(32, ge=1, alias="VIDEO_JOB_CACHE_SIZE")

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False, extra="ignore")


logger = logging.getLogger(__name__)


@lru_cache
def get_settings() -> Settings:
    try:
        settings = Settings()
    except PermissionError:
        logger.warning("Unable to read .env; continuing with environment variables only")
        settings = Settings(_env_file=None)
    return settings
