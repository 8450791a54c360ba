from functools import lru_cache

from pantry_chef.app.core.config import get_settings
from pantry_chef.app.services.video_job_service import VideoJobController


@lru_cache
def get_video_controller() -> VideoJobController:
    return VideoJobController(get_settings())
