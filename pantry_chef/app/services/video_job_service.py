"""
Video job controller.

Turns an already generated Recipe into a short cooking video by driving one
long-running job on the generative backend:

    submitted -> polling -> done | failed | canceled

Jobs are single-flight per recipe. The registry maps a content hash of the
recipe (title + instructions) to its VideoJob and the asyncio.Task running
it; a second request for the same recipe joins the running task or returns
the finished result instead of submitting again. Failed and canceled jobs
can be started again by a new request. Finished jobs beyond
VIDEO_JOB_CACHE_SIZE are evicted oldest first.

The poll loop runs inside its own task with an optional deadline. Callers
await it through asyncio.shield, so a caller that gives up does not cancel
the shared job; only `cancel()` does, and that ends in the `canceled` state
rather than `failed`.
"""
import asyncio
import base64
import functools
import logging
from datetime import datetime, timezone
from enum import Enum
from typing import Dict, Optional

from pantry_chef.app.core.config import get_settings
from pantry_chef.app.schemas.generation import Recipe
from pantry_chef.app.schemas.video import OperationStatus, VideoJob, VideoJobStatus
from pantry_chef.app.services import genai_client, image_fanout

logger = logging.getLogger(__name__)


class VideoErrorKind(str, Enum):
    SOURCE_IMAGE_UNAVAILABLE = "source_image_unavailable"
    SUBMISSION_REJECTED = "submission_rejected"
    REMOTE_JOB_FAILED = "remote_job_failed"
    MEDIA_MISSING = "media_missing"
    DOWNLOAD_FAILED = "download_failed"
    TIMED_OUT = "timed_out"
    CANCELED = "canceled"


class VideoError(Exception):
    """Fatal to a video request only; the recipe itself stays usable."""

    def __init__(self, kind: VideoErrorKind, message: str):
        super().__init__(message)
        self.kind = kind
        self.message = message

    @property
    def error_code(self) -> str:
        return self.kind.value


def _detect_content_type(image_bytes: bytes) -> str:
    """Detect image content type from magic bytes."""
    if image_bytes.startswith(b"\xff\xd8\xff"):
        return "image/jpeg"
    elif image_bytes.startswith(b"\x89PNG\r\n\x1a\n"):
        return "image/png"
    elif image_bytes.startswith(b"RIFF") and image_bytes[8:12] == b"WEBP":
        return "image/webp"
    else:
        return "image/png"


def representative_image(recipe: Recipe) -> Optional[str]:
    for url in recipe.image_urls:
        if not image_fanout.is_placeholder(url):
            return url
    return recipe.image_urls[0] if recipe.image_urls else None


def build_video_prompt(recipe: Recipe) -> str:
    return (
        f'Create a short, step-by-step cooking video for a recipe called "{recipe.title}".\n'
        "The video should visually demonstrate the following instructions:\n"
        f"{recipe.instructions_text}\n"
        "Use the provided image as a reference for the final dish.\n"
        "The video should be fast-paced, engaging, and have clear visuals for each step."
    )


def _touch(job: VideoJob) -> None:
    job.updated_at = datetime.now(timezone.utc)


def mark_polling(job: VideoJob, operation_name: str) -> None:
    job.operation_name = operation_name
    job.status = VideoJobStatus.POLLING
    _touch(job)


def mark_done(job: VideoJob, video_data_uri: str) -> None:
    job.status = VideoJobStatus.DONE
    job.video_data_uri = video_data_uri
    job.error_code = None
    job.error_message = None
    _touch(job)


def mark_failed(job: VideoJob, error_code: str, error_message: str) -> None:
    job.status = VideoJobStatus.FAILED
    job.video_data_uri = None
    job.error_code = error_code
    job.error_message = error_message
    _touch(job)


def mark_canceled(job: VideoJob) -> None:
    job.status = VideoJobStatus.CANCELED
    job.video_data_uri = None
    job.error_code = VideoErrorKind.CANCELED.value
    job.error_message = "Video generation was canceled"
    _touch(job)


class VideoJobController:
    def __init__(self, settings=None):
        self._settings = settings or get_settings()
        self._jobs: Dict[str, VideoJob] = {}
        self._tasks: Dict[str, asyncio.Task] = {}
        self._lock = asyncio.Lock()

    def get_job(self, recipe_key: str) -> Optional[VideoJob]:
        return self._jobs.get(recipe_key)

    def _live_task(self, recipe_key: str) -> Optional[asyncio.Task]:
        task = self._tasks.get(recipe_key)
        return task if task is not None and not task.done() else None

    async def start(self, recipe: Recipe) -> VideoJob:
        """Start (or join) the video job for a recipe and return its record without waiting."""
        key = recipe.recipe_key
        async with self._lock:
            job = self._jobs.get(key)
            if job is not None:
                if job.status == VideoJobStatus.DONE:
                    logger.info("Video for %s already generated, returning cached result", recipe.title)
                    return job
                if job.status.is_pending and self._live_task(key) is not None:
                    logger.info("Video job for %s already %s, not resubmitting", recipe.title, job.status.value)
                    return job

            self._jobs.pop(key, None)
            job = VideoJob(recipe_key=key, title=recipe.title)
            self._jobs[key] = job
            task = asyncio.create_task(self._run(job, recipe), name=f"video-job-{key[:12]}")
            task.add_done_callback(functools.partial(self._forget_task, key))
            self._tasks[key] = task
            self._evict_finished()
            logger.info("Submitted video job for %s (key=%s)", recipe.title, key[:12])
            return job

    async def generate_video(self, recipe: Recipe) -> str:
        """Return the video data URI for a recipe, waiting for the job if needed."""
        job = await self.start(recipe)
        if job.status == VideoJobStatus.DONE and job.video_data_uri:
            return job.video_data_uri

        task = self._tasks[job.recipe_key]
        try:
            return await asyncio.shield(task)
        except asyncio.CancelledError:
            if task.cancelled():
                raise VideoError(VideoErrorKind.CANCELED, "Video generation was canceled") from None
            raise

    async def cancel(self, recipe_key: str) -> bool:
        task = self._live_task(recipe_key)
        if task is None:
            return False
        task.cancel()
        await asyncio.wait({task})
        job = self._jobs.get(recipe_key)
        # A task canceled before its first step never reaches _run's handlers.
        if job is not None and job.status.is_pending:
            logger.info("Video job for %s canceled before it started", job.title)
            mark_canceled(job)
        return True

    def _forget_task(self, recipe_key: str, task: asyncio.Task) -> None:
        if self._tasks.get(recipe_key) is task:
            del self._tasks[recipe_key]
        _consume_outcome(task)

    def _evict_finished(self) -> None:
        limit = self._settings.video_job_cache_size
        finished = [key for key, job in self._jobs.items() if not job.status.is_pending and key not in self._tasks]
        for key in finished[: max(len(self._jobs) - limit, 0)]:
            logger.debug("Evicting finished video job %s", key[:12])
            del self._jobs[key]

    async def _run(self, job: VideoJob, recipe: Recipe) -> str:
        try:
            return await self._execute(job, recipe)
        except VideoError as exc:
            logger.warning("Video job for %s failed (%s): %s", recipe.title, exc.error_code, exc.message)
            mark_failed(job, exc.error_code, exc.message)
            raise
        except asyncio.CancelledError:
            logger.info("Video job for %s canceled", recipe.title)
            mark_canceled(job)
            raise
        except Exception as exc:
            logger.exception("Video job for %s crashed", recipe.title)
            mark_failed(job, "worker_error", str(exc))
            raise

    async def _execute(self, job: VideoJob, recipe: Recipe) -> str:
        settings = self._settings
        loop = asyncio.get_running_loop()
        timeout = settings.video_timeout_seconds
        deadline = loop.time() + timeout if timeout else None

        image_url = representative_image(recipe)
        if not image_url:
            raise VideoError(VideoErrorKind.SOURCE_IMAGE_UNAVAILABLE, "Recipe has no image to use as a reference")
        try:
            image_bytes = await genai_client.fetch_binary(image_url)
        except genai_client.GenAIBackendError as exc:
            raise VideoError(
                VideoErrorKind.SOURCE_IMAGE_UNAVAILABLE, f"Failed to fetch the reference image: {exc}"
            ) from exc
        if not image_bytes:
            raise VideoError(VideoErrorKind.SOURCE_IMAGE_UNAVAILABLE, "Reference image was empty")

        try:
            operation_name = await genai_client.submit_video_job(
                build_video_prompt(recipe), image_bytes, _detect_content_type(image_bytes)
            )
        except genai_client.GenAIBackendError as exc:
            raise VideoError(VideoErrorKind.SUBMISSION_REJECTED, f"Video job submission failed: {exc}") from exc
        if not operation_name:
            raise VideoError(VideoErrorKind.SUBMISSION_REJECTED, "Expected the model to return an operation")
        mark_polling(job, operation_name)

        operation = OperationStatus(name=operation_name)
        polls = 0
        while not operation.done:
            wait = settings.video_poll_interval_seconds
            if deadline is not None:
                remaining = deadline - loop.time()
                if remaining <= 0:
                    raise VideoError(
                        VideoErrorKind.TIMED_OUT, f"Video job {operation_name} did not finish within {timeout}s"
                    )
                wait = min(wait, remaining)
            await asyncio.sleep(wait)
            try:
                operation = await genai_client.check_operation(operation_name)
            except genai_client.GenAIBackendError as exc:
                raise VideoError(VideoErrorKind.REMOTE_JOB_FAILED, f"Video job status check failed: {exc}") from exc
            polls += 1
            logger.debug("Video job %s poll %d: done=%s", operation_name, polls, operation.done)

        if operation.error_message:
            raise VideoError(VideoErrorKind.REMOTE_JOB_FAILED, f"Failed to generate video: {operation.error_message}")
        if not operation.media_uri:
            raise VideoError(VideoErrorKind.MEDIA_MISSING, "Failed to find the generated video")

        params = {"key": settings.gemini_api_key} if settings.gemini_api_key else None
        try:
            video_bytes = await genai_client.fetch_binary(operation.media_uri, params=params)
        except genai_client.GenAIBackendError as exc:
            raise VideoError(VideoErrorKind.DOWNLOAD_FAILED, f"Failed to download the generated video: {exc}") from exc
        if not video_bytes:
            raise VideoError(VideoErrorKind.DOWNLOAD_FAILED, "Downloaded video was empty")

        data_uri = f"data:video/mp4;base64,{base64.b64encode(video_bytes).decode('utf-8')}"
        mark_done(job, data_uri)
        logger.info("Video job for %s done after %d polls (%d bytes)", recipe.title, polls, len(video_bytes))
        return data_uri


def _consume_outcome(task: asyncio.Task) -> None:
    # Outcomes are reported through the job record; retrieve so nothing is logged as unretrieved.
    if not task.cancelled():
        task.exception()
