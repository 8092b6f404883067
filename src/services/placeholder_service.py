"""Offline placeholder images for scenes the remote service cannot illustrate."""

import io
import logging

from PIL import Image, ImageDraw, ImageFont

from models.image_generation import AcquiredImage, ImageSource, to_data_url
from models.scene import Scene

logger = logging.getLogger(__name__)

PLACEHOLDER_WIDTH = 1280
PLACEHOLDER_HEIGHT = 720
MAX_CAPTION_LENGTH = 60

# (top color, bottom color) per palette entry
GRADIENT_PALETTE: list[tuple[tuple[int, int, int], tuple[int, int, int]]] = [
    ((102, 126, 234), (118, 75, 162)),  # indigo -> purple
    ((240, 147, 251), (245, 87, 108)),  # pink -> coral
    ((79, 172, 254), (0, 242, 254)),  # blue -> cyan
    ((67, 233, 123), (56, 249, 215)),  # green -> aqua
    ((250, 112, 154), (254, 225, 64)),  # rose -> yellow
    ((48, 207, 208), (51, 8, 103)),  # teal -> deep violet
]


def truncate_caption(description: str, limit: int = MAX_CAPTION_LENGTH) -> str:
    """Shorten a description to at most ``limit`` characters."""
    text = " ".join(description.split())
    if len(text) <= limit:
        return text
    return text[: limit - 3].rstrip() + "..."


def caption_lines(scene_index: int, description: str) -> tuple[str, str]:
    """Title and caption drawn on a placeholder (scene numbers are 1-based)."""
    return f"Scene {scene_index + 1}", truncate_caption(description)


def palette_for(scene_index: int) -> tuple[tuple[int, int, int], tuple[int, int, int]]:
    return GRADIENT_PALETTE[scene_index % len(GRADIENT_PALETTE)]


def _load_font(size: int) -> ImageFont.ImageFont:
    try:
        return ImageFont.truetype("DejaVuSans-Bold.ttf", size)
    except OSError:
        return ImageFont.load_default()


def _draw_centered(draw: ImageDraw.ImageDraw, y: int, text: str, font, width: int) -> None:
    left, top, right, bottom = draw.textbbox((0, 0), text, font=font)
    x = (width - (right - left)) // 2
    # Drop shadow keeps text readable on the light end of the gradient
    draw.text((x + 2, y + 2), text, font=font, fill=(0, 0, 0))
    draw.text((x, y), text, font=font, fill=(255, 255, 255))


class PlaceholderImageService:
    """Renders deterministic gradient cards: same scene in, same PNG out."""

    def __init__(self, width: int = PLACEHOLDER_WIDTH, height: int = PLACEHOLDER_HEIGHT):
        self.width = width
        self.height = height

    def render(self, scene_index: int, description: str) -> bytes:
        """Render one placeholder card as PNG bytes."""
        top, bottom = palette_for(scene_index)
        image = Image.new("RGB", (self.width, self.height))
        draw = ImageDraw.Draw(image)

        for y in range(self.height):
            ratio = y / max(1, self.height - 1)
            color = tuple(int(top[c] + (bottom[c] - top[c]) * ratio) for c in range(3))
            draw.line([(0, y), (self.width, y)], fill=color)

        title, caption = caption_lines(scene_index, description)
        _draw_centered(draw, self.height // 2 - 80, title, _load_font(72), self.width)
        _draw_centered(draw, self.height // 2 + 30, caption, _load_font(32), self.width)

        buffer = io.BytesIO()
        image.save(buffer, format="PNG")
        return buffer.getvalue()

    def acquire(self, scene_index: int, scene: Scene) -> AcquiredImage:
        """Placeholder image for one scene, encoded as a PNG data URL."""
        logger.debug(f"Rendering placeholder for scene {scene_index + 1}")
        return AcquiredImage(
            scene_index=scene_index,
            image_url=to_data_url(self.render(scene_index, scene.visual_description)),
            source=ImageSource.PLACEHOLDER,
        )
