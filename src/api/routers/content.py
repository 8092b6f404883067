"""Production package generation routes."""

import logging

from fastapi import APIRouter, Depends, HTTPException

from api.dependencies import get_content_service
from api.schemas import ContentGenerateRequest, VideoContentResponse
from models.scene import ContentRequest
from services.content_service import ContentGenerationError, ContentGenerationService
from services.errors import ErrorKind
from services.scene_parser import extract_sections

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Content"])

# Error kind -> HTTP status for gateway failures
_ERROR_STATUS = {
    ErrorKind.RATE_LIMITED: 429,
    ErrorKind.QUOTA_EXHAUSTED: 402,
    ErrorKind.MALFORMED: 502,
    ErrorKind.MISCONFIGURED: 503,
}


@router.post(
    "/api/content",
    summary="Generate a video production package",
    description="Ask the text model for a script, visual scenes, music and thumbnail concept.",
    response_model=VideoContentResponse,
    responses={
        402: {"description": "AI gateway credits exhausted"},
        429: {"description": "AI gateway rate limit"},
        502: {"description": "Unusable AI gateway response"},
        503: {"description": "AI gateway key not configured"},
    },
)
async def generate_content(
    request: ContentGenerateRequest,
    service: ContentGenerationService = Depends(get_content_service),
) -> dict:
    """Generate a package and return it both raw and split into sections."""
    try:
        content = await service.generate_content(
            ContentRequest(
                topic=request.topic,
                video_length=request.video_length,
                style=request.style,
                target_audience=request.target_audience,
            )
        )
    except ContentGenerationError as e:
        logger.error(f"Content generation failed: {e}")
        raise HTTPException(status_code=_ERROR_STATUS.get(e.kind, 500), detail=str(e))

    sections = extract_sections(content)
    return {"content": content, **sections.to_dict()}
