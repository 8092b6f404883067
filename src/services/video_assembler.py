"""Video Assembler - turns one image per scene into a fixed-duration slideshow MP4."""

import asyncio
import io
import logging
from typing import Callable, Optional

import httpx
from PIL import Image, UnidentifiedImageError

from models.image_generation import AcquiredImage
from models.scene import DEFAULT_SCENE_DURATION
from models.video import VideoArtifact
from services.image_acquisition_service import IncompleteImageSetError, verify_image_set
from services.transcoding_engine import TranscodingEngine, VideoAssemblyError
from utils.progress import ENCODE_BAND, ENGINE_LOAD_BAND, FRAME_WRITE_BAND, ProgressReporter

logger = logging.getLogger(__name__)

# Frame size of the output video (libx264 with yuv420p needs even dimensions)
FRAME_WIDTH = 1280
FRAME_HEIGHT = 720

FRAME_NAME_PATTERN = "image%d.png"
OUTPUT_NAME = "output.mp4"
ENCODE_DONE_PERCENT = 95


def frame_name(scene_index: int) -> str:
    return f"image{scene_index}.png"


def build_slideshow_args(scene_count: int, scene_duration_seconds: int) -> list[str]:
    """FFmpeg arguments: each frame shown for ``scene_duration_seconds``."""
    return [
        "-framerate", f"1/{scene_duration_seconds}",
        "-start_number", "0",
        "-i", FRAME_NAME_PATTERN,
        "-c:v", "libx264",
        "-pix_fmt", "yuv420p",
        "-t", str(scene_count * scene_duration_seconds),
        OUTPUT_NAME,
    ]


def normalize_frame(data: bytes, width: int = FRAME_WIDTH, height: int = FRAME_HEIGHT) -> bytes:
    """Re-encode any raster as an RGB PNG of exactly ``width`` x ``height``.

    The image is scaled to fit and centred on a black canvas.

    Raises:
        VideoAssemblyError: If the bytes are not a readable image
    """
    try:
        with Image.open(io.BytesIO(data)) as source:
            source.load()
            image = source.convert("RGB")
    except (UnidentifiedImageError, OSError) as e:
        raise VideoAssemblyError(f"Unreadable scene image: {e}")

    if image.size != (width, height):
        image.thumbnail((width, height), Image.Resampling.LANCZOS)
        canvas = Image.new("RGB", (width, height), (0, 0, 0))
        canvas.paste(image, ((width - image.width) // 2, (height - image.height) // 2))
        image = canvas

    buffer = io.BytesIO()
    image.save(buffer, format="PNG")
    return buffer.getvalue()


class VideoAssembler:
    """Writes scene frames into a transcoding engine and encodes the slideshow."""

    def __init__(
        self,
        engine_factory: Callable[[], TranscodingEngine] = TranscodingEngine,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        self.engine_factory = engine_factory
        self.http_client = http_client or httpx.AsyncClient(timeout=60.0)

    async def assemble(
        self,
        images: list[AcquiredImage],
        scene_duration_seconds: int = DEFAULT_SCENE_DURATION,
        reporter: Optional[ProgressReporter] = None,
        scene_count: Optional[int] = None,
    ) -> VideoArtifact:
        """Encode the scene images into an MP4.

        Args:
            images: Exactly one image per scene, indices 0..N-1
            scene_duration_seconds: How long each image stays on screen
            reporter: Optional progress reporter (55-95 of the overall run)
            scene_count: Number of scenes the images must cover; defaults to
                the number of images given

        Returns:
            VideoArtifact holding the encoded bytes

        Raises:
            VideoAssemblyError: On a partial image set, an unreadable image,
                or any engine failure
        """
        if scene_duration_seconds <= 0:
            raise VideoAssemblyError("Scene duration must be positive")
        try:
            ordered = verify_image_set(
                images, len(images) if scene_count is None else scene_count
            )
        except IncompleteImageSetError as e:
            raise VideoAssemblyError(str(e))
        if not ordered:
            raise VideoAssemblyError("No scene images to assemble")

        total = len(ordered)
        await self._report(reporter, "Loading video engine...", ENGINE_LOAD_BAND.start)

        async with self.engine_factory() as engine:
            await self._report(reporter, "Video engine ready", ENGINE_LOAD_BAND.end)

            for position, image in enumerate(ordered):
                frame = await self._load_frame(image)
                await asyncio.to_thread(engine.write_file, frame_name(image.scene_index), frame)
                await self._report(
                    reporter,
                    f"Wrote frame {position + 1}/{total}",
                    FRAME_WRITE_BAND.scale(position + 1, total),
                )

            await self._report(reporter, "Encoding video...", ENCODE_BAND.start)
            await engine.exec(
                build_slideshow_args(total, scene_duration_seconds),
                description="slideshow encode",
            )
            data = await asyncio.to_thread(engine.read_file, OUTPUT_NAME)
            await self._report(reporter, "Finalizing video...", ENCODE_DONE_PERCENT)

        if not data:
            raise VideoAssemblyError("Encoder produced an empty video")

        logger.info(
            f"Assembled {total} scene(s) into {len(data) / 1024:.1f} KB of video "
            f"({total * scene_duration_seconds}s)"
        )
        return VideoArtifact(
            data=data,
            scene_count=total,
            duration_seconds=total * scene_duration_seconds,
        )

    async def _load_frame(self, image: AcquiredImage) -> bytes:
        if image.is_data_url:
            try:
                raw = image.decode_data_url()
            except ValueError as e:
                raise VideoAssemblyError(str(e))
        else:
            try:
                response = await self.http_client.get(image.image_url)
                response.raise_for_status()
            except httpx.HTTPError as e:
                raise VideoAssemblyError(
                    f"Failed to fetch image for scene {image.scene_index + 1}: {e}"
                )
            raw = response.content
        return await asyncio.to_thread(normalize_frame, raw)

    @staticmethod
    async def _report(reporter: Optional[ProgressReporter], step: str, percent: int) -> None:
        if reporter is not None:
            await reporter.report(step, percent)

    async def close(self) -> None:
        """Close the HTTP client."""
        await self.http_client.aclose()
