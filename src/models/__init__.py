# Data models for scenereel
from .scene import (
    DEFAULT_SCENE_DURATION,
    DEFAULT_VISUAL_DESCRIPTION,
    ContentRequest,
    Scene,
    VideoContent,
)
from .image_generation import (
    AcquiredImage,
    GeneratedImage,
    ImageGenerationRequest,
    ImageGenerationResult,
    ImageSource,
)
from .job import InvalidJobTransition, JobStatus, VideoJob
from .video import VideoArtifact

__all__ = [
    # Script parsing
    "DEFAULT_SCENE_DURATION",
    "DEFAULT_VISUAL_DESCRIPTION",
    "ContentRequest",
    "Scene",
    "VideoContent",
    # Image generation
    "AcquiredImage",
    "GeneratedImage",
    "ImageGenerationRequest",
    "ImageGenerationResult",
    "ImageSource",
    # Jobs
    "InvalidJobTransition",
    "JobStatus",
    "VideoJob",
    # Output
    "VideoArtifact",
]
