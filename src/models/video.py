"""Video artifact model."""

from dataclasses import dataclass


@dataclass(frozen=True)
class VideoArtifact:
    """The final encoded video, held in memory and handed to the caller."""

    data: bytes
    scene_count: int
    duration_seconds: int
    content_type: str = "video/mp4"

    @property
    def size_bytes(self) -> int:
        return len(self.data)
