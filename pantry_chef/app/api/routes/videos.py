from fastapi import APIRouter, Depends, HTTPException, status

from pantry_chef.app.api.deps import get_video_controller
from pantry_chef.app.schemas.generation import Recipe
from pantry_chef.app.schemas.video import VideoJobRead, VideoResult
from pantry_chef.app.services.video_job_service import VideoError, VideoJobController

router = APIRouter(prefix="/videos", tags=["videos"])


@router.post("", response_model=VideoJobRead, status_code=status.HTTP_202_ACCEPTED)
async def start_video(
    payload: Recipe,
    controller: VideoJobController = Depends(get_video_controller),
):
    """Start the video job for a recipe (or join the existing one) and return immediately."""
    job = await controller.start(payload)
    return VideoJobRead.from_job(job)


@router.post("/generate", response_model=VideoResult)
async def generate_video(
    payload: Recipe,
    controller: VideoJobController = Depends(get_video_controller),
):
    try:
        video_data_uri = await controller.generate_video(payload)
    except VideoError as exc:
        raise HTTPException(
            status_code=502,
            detail={"error_code": exc.error_code, "message": exc.message},
        )
    return VideoResult(recipe_key=payload.recipe_key, video_data_uri=video_data_uri)


@router.get("/{recipe_key}", response_model=VideoJobRead)
def get_video_job(
    recipe_key: str,
    controller: VideoJobController = Depends(get_video_controller),
):
    job = controller.get_job(recipe_key)
    if job is None:
        raise HTTPException(status_code=404, detail="Video job not found")
    return VideoJobRead.from_job(job)


@router.get("/{recipe_key}/result", response_model=VideoResult)
def get_video_result(
    recipe_key: str,
    controller: VideoJobController = Depends(get_video_controller),
):
    job = controller.get_job(recipe_key)
    if job is None or job.video_data_uri is None:
        raise HTTPException(status_code=404, detail="Video not available")
    return VideoResult(recipe_key=recipe_key, video_data_uri=job.video_data_uri)


@router.delete("/{recipe_key}", response_model=VideoJobRead)
async def cancel_video_job(
    recipe_key: str,
    controller: VideoJobController = Depends(get_video_controller),
):
    job = controller.get_job(recipe_key)
    if job is None:
        raise HTTPException(status_code=404, detail="Video job not found")
    await controller.cancel(recipe_key)
    return VideoJobRead.from_job(controller.get_job(recipe_key))
