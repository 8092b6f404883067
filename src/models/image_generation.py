"""Models for scene image generation and acquisition."""

import base64
import binascii
from dataclasses import dataclass
from enum import Enum

DEFAULT_IMAGE_MODEL = "google/gemini-2.5-flash-image-preview"


class ImageSource(str, Enum):
    """Where an acquired scene image came from."""

    REMOTE = "remote"
    PLACEHOLDER = "placeholder"


@dataclass
class ImageGenerationRequest:
    """Request for text-to-image generation."""

    prompt: str
    model: str = DEFAULT_IMAGE_MODEL
    num_images: int = 1


@dataclass
class GeneratedImage:
    """A single generated image result.

    ``url`` is either a remote http(s) URL or a ``data:`` URL carrying the
    base64 raster inline.
    """

    url: str
    content_type: str = "image/png"


@dataclass
class ImageGenerationResult:
    """Result of an image generation request."""

    images: list[GeneratedImage]
    model: str
    prompt: str
    generation_time_ms: int


@dataclass
class AcquiredImage:
    """The image obtained for one scene, ready for assembly."""

    scene_index: int
    image_url: str
    source: ImageSource = ImageSource.REMOTE

    @property
    def is_data_url(self) -> bool:
        return self.image_url.startswith("data:")

    def decode_data_url(self) -> bytes:
        """Return the raw bytes embedded in a ``data:`` URL.

        Raises:
            ValueError: If the URL is not a base64 data URL
        """
        if not self.is_data_url:
            raise ValueError(f"Scene {self.scene_index} image is not a data URL")
        header, _, payload = self.image_url.partition(",")
        if ";base64" not in header or not payload:
            raise ValueError(f"Scene {self.scene_index} image is not base64 encoded")
        try:
            return base64.b64decode(payload, validate=True)
        except (binascii.Error, ValueError) as e:
            raise ValueError(f"Scene {self.scene_index} image payload is corrupt: {e}")


def to_data_url(data: bytes, mime_type: str = "image/png") -> str:
    """Encode raw image bytes as a base64 data URL."""
    return f"data:{mime_type};base64,{base64.b64encode(data).decode('ascii')}"
