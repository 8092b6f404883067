"""Scene and script content models."""

from dataclasses import dataclass

# Every scene is shown for the same fixed time in the slideshow
DEFAULT_SCENE_DURATION = 5

# Used when the visual scenes block ran out of descriptions
DEFAULT_VISUAL_DESCRIPTION = "a professional video scene"


@dataclass
class Scene:
    """One timestamped narration + visual unit of the output video.

    The position of a scene in the parsed list is its scene index; nothing
    else identifies it.
    """

    timestamp: str  # "MM:SS"
    text: str
    visual_description: str = DEFAULT_VISUAL_DESCRIPTION
    duration_seconds: int = DEFAULT_SCENE_DURATION

    def to_dict(self) -> dict:
        """Convert to dictionary for API responses."""
        return {
            "timestamp": self.timestamp,
            "text": self.text,
            "visual_description": self.visual_description,
            "duration_seconds": self.duration_seconds,
        }


@dataclass
class VideoContent:
    """The four sections of a generated video production package."""

    script: str = ""
    visual_scenes: str = ""
    music: str = ""
    thumbnail: str = ""

    def to_dict(self) -> dict:
        """Convert to dictionary for API responses."""
        return {
            "script": self.script,
            "visual_scenes": self.visual_scenes,
            "music": self.music,
            "thumbnail": self.thumbnail,
        }


@dataclass
class ContentRequest:
    """Parameters for generating a video production package."""

    topic: str
    video_length: str = "5-10 minutes"
    style: str = "Educational"
    target_audience: str = "General audience"
