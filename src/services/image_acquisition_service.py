"""Image Acquisition Service - one image per scene, with retry and offline fallback.

Scenes are illustrated one at a time through the remote image service so the
gateway's throughput limits are respected. Rate-limited and other failed
requests are retried within a small attempt budget. If the gateway reports
that credits are exhausted, the whole set switches to locally rendered
placeholder cards so the run can still produce a video.
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Optional

from models.image_generation import AcquiredImage, ImageGenerationRequest, ImageSource
from models.scene import Scene
from services.errors import FINAL_KINDS, ErrorKind, SceneReelError, classify_error_message
from services.image_generation_service import (
    ImageGenerationService,
    ImageGenerationServiceError,
    build_scene_prompt,
)
from services.placeholder_service import PlaceholderImageService
from utils.progress import ACQUISITION_BAND, ProgressReporter
from utils.retry import RetryPolicy, constant_step_backoff, remaining_attempts_backoff

logger = logging.getLogger(__name__)

DEFAULT_MAX_ATTEMPTS = 3
DEFAULT_RATE_LIMIT_BACKOFF_SECONDS = 2.0
DEFAULT_TRANSIENT_BACKOFF_SECONDS = 1.0
# Pause between successful scene requests to stay under the gateway's RPM
DEFAULT_SCENE_REQUEST_DELAY_SECONDS = 1.5


class IncompleteImageSetError(SceneReelError):
    """Raised when acquisition ends without exactly one image per scene."""

    pass


def error_kind(error: BaseException) -> ErrorKind:
    """Kind carried by a service error, or classified from its message."""
    kind = getattr(error, "kind", None)
    if isinstance(kind, ErrorKind):
        return kind
    return classify_error_message(str(error))


def verify_image_set(images: list[AcquiredImage], scene_count: int) -> list[AcquiredImage]:
    """Return images sorted by scene index, or raise if any index is missing.

    Raises:
        IncompleteImageSetError: If the indices are not exactly 0..scene_count-1
    """
    ordered = sorted(images, key=lambda image: image.scene_index)
    indices = [image.scene_index for image in ordered]
    if indices != list(range(scene_count)):
        missing = sorted(set(range(scene_count)) - set(indices))
        raise IncompleteImageSetError(
            f"Expected {scene_count} scene images, got {len(images)} (missing scenes: {missing})"
        )
    return ordered


class ImageAcquisitionService:
    """Coordinates per-scene image generation, retries and fallback."""

    def __init__(
        self,
        image_service: ImageGenerationService,
        placeholder_service: Optional[PlaceholderImageService] = None,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        rate_limit_backoff_seconds: float = DEFAULT_RATE_LIMIT_BACKOFF_SECONDS,
        transient_backoff_seconds: float = DEFAULT_TRANSIENT_BACKOFF_SECONDS,
        scene_delay_seconds: float = DEFAULT_SCENE_REQUEST_DELAY_SECONDS,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        offline: bool = False,
    ):
        """Initialize the acquisition service.

        Args:
            image_service: Remote image generation client.
            placeholder_service: Offline renderer used when credits run out.
            max_attempts: Attempts per scene before giving up.
            rate_limit_backoff_seconds: Backoff step after a 429.
            transient_backoff_seconds: Backoff step after any other failure.
            scene_delay_seconds: Pause between successful scene requests.
            sleep: Awaitable sleep (tests pass a recorder).
            offline: Skip the remote service and render placeholders only.
        """
        self.image_service = image_service
        self.placeholder_service = placeholder_service or PlaceholderImageService()
        self.scene_delay_seconds = scene_delay_seconds
        self.offline = offline
        self.sleep = sleep
        self._rate_limit_backoff = remaining_attempts_backoff(
            max_attempts, rate_limit_backoff_seconds
        )
        self._transient_backoff = constant_step_backoff(transient_backoff_seconds)
        self.retry_policy = RetryPolicy(
            max_attempts=max_attempts,
            backoff=self._backoff,
            retryable=self._is_retryable,
            sleep=sleep,
        )

    def _backoff(self, attempt: int, error: BaseException) -> float:
        if error_kind(error) == ErrorKind.RATE_LIMITED:
            return self._rate_limit_backoff(attempt, error)
        return self._transient_backoff(attempt, error)

    @staticmethod
    def _is_retryable(error: BaseException) -> bool:
        return error_kind(error) not in FINAL_KINDS

    async def acquire(
        self,
        scenes: list[Scene],
        reporter: Optional[ProgressReporter] = None,
    ) -> list[AcquiredImage]:
        """Obtain exactly one image per scene, in scene order.

        Args:
            scenes: Parsed scenes (index == scene index)
            reporter: Optional progress reporter for per-scene updates

        Returns:
            One AcquiredImage per scene

        Raises:
            ImageGenerationServiceError: If a scene fails for any reason other
                than exhausted credits
        """
        if not scenes:
            raise ValueError("No scenes to illustrate")

        if self.offline:
            return await self.acquire_placeholders(scenes, reporter)

        total = len(scenes)
        images: list[AcquiredImage] = []

        for index, scene in enumerate(scenes):
            try:
                image = await self._acquire_remote(index, scene, total)
            except Exception as e:
                if error_kind(e) == ErrorKind.QUOTA_EXHAUSTED:
                    logger.warning(
                        f"Image credits exhausted at scene {index + 1}/{total} ({e}); "
                        f"switching to placeholder images"
                    )
                    return await self.acquire_placeholders(scenes, reporter)
                logger.error(f"Image generation failed for scene {index + 1}/{total}: {e}")
                raise

            images.append(image)
            await self._report(reporter, f"Generated image {index + 1}/{total}", index, total)

            if index < total - 1 and self.scene_delay_seconds > 0:
                await self.sleep(self.scene_delay_seconds)

        return verify_image_set(images, total)

    async def acquire_placeholders(
        self,
        scenes: list[Scene],
        reporter: Optional[ProgressReporter] = None,
    ) -> list[AcquiredImage]:
        """Render a placeholder for every scene. Local only, never fails."""
        total = len(scenes)
        images: list[AcquiredImage] = []
        for index, scene in enumerate(scenes):
            images.append(self.placeholder_service.acquire(index, scene))
            await self._report(
                reporter, f"Created placeholder image {index + 1}/{total}", index, total
            )
        return verify_image_set(images, total)

    async def _acquire_remote(self, index: int, scene: Scene, total: int) -> AcquiredImage:
        request = ImageGenerationRequest(
            prompt=build_scene_prompt(scene.visual_description),
            model=self.image_service.model,
            num_images=1,
        )
        logger.info(f"Generating image {index + 1}/{total}: {scene.visual_description[:60]}")
        result = await self.retry_policy.run(
            self.image_service.generate_image,
            request,
            description=f"Scene {index + 1} image",
        )
        if not result.images:
            raise ImageGenerationServiceError(
                f"No image generated for scene {index + 1}", kind=ErrorKind.MALFORMED
            )
        return AcquiredImage(
            scene_index=index,
            image_url=result.images[0].url,
            source=ImageSource.REMOTE,
        )

    @staticmethod
    async def _report(
        reporter: Optional[ProgressReporter], step: str, index: int, total: int
    ) -> None:
        if reporter is None:
            return
        await reporter.report(
            step, ACQUISITION_BAND.scale(index + 1, total), completed_scenes=index + 1
        )
