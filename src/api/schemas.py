"""Pydantic request/response models for the SceneReel API."""

from pydantic import BaseModel, Field, model_validator

# =============================================================================
# Response Models
# =============================================================================


class MessageResponse(BaseModel):
    """Generic message response."""

    message: str

    model_config = {"json_schema_extra": {"examples": [{"message": "Job deleted"}]}}


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    image_service_configured: bool = False
    image_model: str | None = None
    ffmpeg_available: bool = False

    model_config = {
        "json_schema_extra": {
            "examples": [
                {"status": "healthy", "image_service_configured": True, "ffmpeg_available": True}
            ]
        }
    }


class VideoJobResponse(BaseModel):
    """Video generation job record."""

    id: str
    status: str
    progress: int = Field(ge=0, le=100)
    current_step: str | None = None
    total_scenes: int | None = None
    completed_scenes: int = 0
    error_message: str | None = None
    created_at: str
    updated_at: str

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "id": "3f2a9c1e7b4d",
                    "status": "processing",
                    "progress": 40,
                    "current_step": "Generated image 5/8",
                    "total_scenes": 8,
                    "completed_scenes": 5,
                    "error_message": None,
                    "created_at": "2026-10-19T12:00:00",
                    "updated_at": "2026-10-19T12:01:10",
                }
            ]
        }
    }


class SceneResponse(BaseModel):
    """One parsed scene."""

    timestamp: str
    text: str
    visual_description: str
    duration_seconds: int


class JobCreatedResponse(BaseModel):
    """Response when a video job is accepted, with the scenes it will render."""

    job_id: str
    status: str
    total_scenes: int
    scenes: list[SceneResponse] = []

    model_config = {
        "json_schema_extra": {
            "examples": [{"job_id": "3f2a9c1e7b4d", "status": "pending", "total_scenes": 8}]
        }
    }


class VideoContentResponse(BaseModel):
    """A generated production package, raw and split into sections."""

    content: str
    script: str
    visual_scenes: str
    music: str
    thumbnail: str


# =============================================================================
# Request Models
# =============================================================================


class ContentGenerateRequest(BaseModel):
    """Request to generate a video production package."""

    topic: str = Field(..., min_length=1, max_length=500)
    video_length: str = Field(default="5-10 minutes", max_length=100)
    style: str = Field(default="Educational", max_length=100)
    target_audience: str = Field(default="General audience", max_length=200)

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "topic": "How coral reefs recover after bleaching",
                    "video_length": "5-10 minutes",
                    "style": "Educational",
                    "target_audience": "High school students",
                }
            ]
        }
    }


class VideoGenerateRequest(BaseModel):
    """Request to render a video.

    Either ``script`` (with ``visual_scenes``) or a full production package in
    ``content`` must be given.
    """

    script: str | None = None
    visual_scenes: str = ""
    content: str | None = None

    @model_validator(mode="after")
    def check_source(self) -> "VideoGenerateRequest":
        if not (self.script and self.script.strip()) and not (
            self.content and self.content.strip()
        ):
            raise ValueError("Provide either 'script' or 'content'")
        return self

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "script": "[00:00] Welcome to the reef.\n[00:15] Corals are animals.",
                    "visual_scenes": "* Visuals: Aerial drone shot over a turquoise reef\n"
                    "* B-roll: Macro footage of coral polyps feeding at night",
                }
            ]
        }
    }
