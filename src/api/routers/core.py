"""Core routes for the SceneReel API (root and health check)."""

import shutil

from fastapi import APIRouter, Depends

from api.dependencies import get_image_gen_service
from api.schemas import HealthResponse
from services.image_generation_service import ImageGenerationService
from utils.config import load_config

router = APIRouter(tags=["Core"])


@router.get("/", summary="API root", description="Returns API name and version.")
async def root() -> dict[str, str]:
    """Root endpoint."""
    return {"message": "SceneReel API", "version": "1.0.0"}


@router.get(
    "/api/health",
    response_model=HealthResponse,
    summary="Health check",
    description="Returns server health and whether the image gateway and ffmpeg are usable.",
)
async def health(
    image_service: ImageGenerationService = Depends(get_image_gen_service),
) -> dict:
    """Health check endpoint."""
    image_health = await image_service.check_health()
    return {
        "status": "healthy",
        "image_service_configured": image_health["configured"],
        "image_model": image_health.get("model"),
        "ffmpeg_available": shutil.which(load_config()["ffmpeg_binary"]) is not None,
    }
