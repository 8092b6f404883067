"""Video generation routes: create jobs, poll them, stream progress, download."""

import asyncio
import logging
import uuid
from pathlib import Path

from fastapi import APIRouter, Depends, HTTPException, WebSocket, WebSocketDisconnect
from fastapi.responses import FileResponse, JSONResponse

from api.dependencies import get_video_pipeline
from api.job_store import JobStore, get_job_store
from api.schemas import JobCreatedResponse, MessageResponse, VideoGenerateRequest, VideoJobResponse
from api.websocket_manager import WebSocketManager, job_message
from models.job import JobStatus
from models.video import VideoArtifact
from services.job_tracker import JobHandle
from services.scene_parser import ScriptParseError, extract_sections
from services.video_pipeline import VideoPipeline
from utils.config import load_config
from utils.logging import clear_job_context, set_job_context

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Videos"])

# WebSocket manager for video job updates
ws_manager = WebSocketManager()

# Keep references to background tasks to prevent garbage collection
_background_tasks: set = set()


def _output_path(job_id: str) -> Path:
    output_dir = Path(load_config()["video_output_dir"])
    output_dir.mkdir(parents=True, exist_ok=True)
    return output_dir / f"{job_id}.mp4"


async def _run_video_job(
    job_id: str,
    pipeline: VideoPipeline,
    store: JobStore,
    script: str,
    visual_scenes: str,
) -> None:
    """Run the pipeline for one job in the background."""
    set_job_context(job_id)
    try:
        job = await store.get_job(job_id)
        if job is None:
            logger.error(f"Job {job_id} disappeared before it started")
            return

        handle = JobHandle(job, store=store, notifier=ws_manager.notify_job)
        output_path = Path(job.output_path or _output_path(job_id))

        async def save_artifact(artifact: VideoArtifact) -> None:
            # Deleted or cleaned up mid-run; nothing would ever serve the file
            if await store.get_job(job_id) is None:
                logger.warning(f"Job {job_id} was deleted during rendering; discarding video")
                return
            await asyncio.to_thread(output_path.write_bytes, artifact.data)
            logger.info(
                f"Saved video for job {job_id}: {output_path} "
                f"({artifact.size_bytes / 1024:.1f} KB)"
            )

        await pipeline.run(script, visual_scenes, job=handle, on_artifact=save_artifact)

    except Exception as e:
        # Already recorded on the job by the pipeline
        logger.exception(f"Video job {job_id} failed: {e}")
    finally:
        clear_job_context()


@router.post(
    "/api/videos",
    summary="Start video generation",
    description="Parse the script and start rendering in the background. Returns the job ID immediately.",
    response_model=JobCreatedResponse,
    status_code=202,
    responses={400: {"description": "Script has no scenes"}},
)
async def create_video(
    request: VideoGenerateRequest,
    pipeline: VideoPipeline = Depends(get_video_pipeline),
    store: JobStore = Depends(get_job_store),
):
    """Start async video generation. Returns 202 with job_id immediately."""
    script = request.script or ""
    visual_scenes = request.visual_scenes
    if not script.strip() and request.content:
        sections = extract_sections(request.content)
        script, visual_scenes = sections.script, sections.visual_scenes

    # Reject unusable scripts before a job exists
    try:
        scenes = pipeline.prepare_scenes(script, visual_scenes)
    except ScriptParseError as e:
        raise HTTPException(status_code=400, detail=str(e))

    job_id = uuid.uuid4().hex[:12]
    job = await store.create_job(job_id, output_path=str(_output_path(job_id)))

    task = asyncio.create_task(
        _run_video_job(job_id, pipeline, store, script, visual_scenes)
    )
    _background_tasks.add(task)
    task.add_done_callback(_background_tasks.discard)

    return JSONResponse(
        status_code=202,
        content={
            "job_id": job_id,
            "status": job.status.value,
            "total_scenes": len(scenes),
            "scenes": [scene.to_dict() for scene in scenes],
        },
    )


@router.get(
    "/api/videos/jobs",
    summary="List video jobs",
    response_model=list[VideoJobResponse],
)
async def list_video_jobs(
    status: str | None = None,
    limit: int = 100,
    store: JobStore = Depends(get_job_store),
) -> list[dict]:
    """List video jobs, newest first."""
    if status is not None and status not in {s.value for s in JobStatus}:
        raise HTTPException(status_code=400, detail=f"Unknown status: {status}")
    jobs = await store.list_jobs(status=status, limit=limit)
    return [job.to_dict() for job in jobs]


@router.get(
    "/api/videos/jobs/{job_id}",
    summary="Get video job status",
    response_model=VideoJobResponse,
    responses={404: {"description": "Job not found"}},
)
async def get_video_job(job_id: str, store: JobStore = Depends(get_job_store)) -> dict:
    """Get a single video job."""
    job = await store.get_job(job_id)
    if job is None:
        raise HTTPException(status_code=404, detail="Job not found")
    return job.to_dict()


@router.get(
    "/api/videos/jobs/{job_id}/download",
    summary="Download video",
    responses={404: {"description": "Job or video not found"}, 400: {"description": "Job not completed"}},
)
async def download_video(job_id: str, store: JobStore = Depends(get_job_store)):
    """Download the MP4 of a completed job."""
    job = await store.get_job(job_id)
    if job is None:
        raise HTTPException(status_code=404, detail="Job not found")

    if job.status != JobStatus.COMPLETED:
        raise HTTPException(
            status_code=400,
            detail=f"Job is not completed (status: {job.status.value})",
        )

    if not job.output_path or not Path(job.output_path).exists():
        raise HTTPException(status_code=404, detail="Video file not found")

    return FileResponse(
        job.output_path,
        media_type="video/mp4",
        filename=f"video_{job_id}.mp4",
    )


@router.delete(
    "/api/videos/jobs/{job_id}",
    summary="Delete video job",
    response_model=MessageResponse,
    responses={404: {"description": "Job not found"}, 409: {"description": "Job still running"}},
)
async def delete_video_job(job_id: str, store: JobStore = Depends(get_job_store)) -> dict:
    """Delete a video job and its rendered file."""
    job = await store.get_job(job_id)
    if job is None:
        raise HTTPException(status_code=404, detail="Job not found")

    if not job.status.is_terminal:
        raise HTTPException(
            status_code=409,
            detail=f"Job is still running (status: {job.status.value})",
        )

    if job.output_path:
        try:
            Path(job.output_path).unlink(missing_ok=True)
        except OSError as e:
            logger.warning(f"Failed to delete video file for job {job_id}: {e}")

    await store.delete_job(job_id)
    ws_manager.cleanup(job_id)
    return {"message": "Job deleted"}


# =============================================================================
# Video WebSocket
# =============================================================================


@router.websocket("/ws/videos/{job_id}")
async def websocket_video(
    websocket: WebSocket,
    job_id: str,
    store: JobStore = Depends(get_job_store),
) -> None:
    """Push job updates to the client until it disconnects."""
    job = await store.get_job(job_id)
    if job is None:
        await websocket.accept()
        await websocket.send_json({"type": "error", "message": "Job not found"})
        await websocket.close()
        return

    await ws_manager.connect(job_id, websocket)

    try:
        # Current state first, so late subscribers catch up
        await websocket.send_json({"type": "status", "job": job.to_dict()})
        if job.status.is_terminal:
            await websocket.send_json(job_message(job))

        # Keep connection alive with ping/pong
        while True:
            try:
                data = await websocket.receive_text()
                if data == "ping":
                    await websocket.send_text("pong")
            except WebSocketDisconnect:
                break

    except Exception as e:
        logger.error(f"WebSocket error for video job {job_id}: {e}")
    finally:
        ws_manager.disconnect(job_id, websocket)
