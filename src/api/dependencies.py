"""Service singletons and dependency injection for the SceneReel API."""

from services.content_service import ContentGenerationService
from services.image_acquisition_service import ImageAcquisitionService
from services.image_generation_service import ImageGenerationService
from services.placeholder_service import PlaceholderImageService
from services.transcoding_engine import TranscodingEngine
from services.video_assembler import VideoAssembler
from services.video_pipeline import VideoPipeline
from utils.config import load_config

# Service singletons
_image_gen_service: ImageGenerationService | None = None
_content_service: ContentGenerationService | None = None
_video_pipeline: VideoPipeline | None = None


def get_image_gen_service() -> ImageGenerationService:
    """Get or create the image generation service instance."""
    global _image_gen_service
    if _image_gen_service is None:
        config = load_config()
        _image_gen_service = ImageGenerationService(
            api_key=config.get("ai_gateway_api_key") or "",
            api_base=config.get("image_api_base", ""),
            model=config.get("image_model", ""),
        )
    return _image_gen_service


def get_content_service() -> ContentGenerationService:
    """Get or create the content generation service instance."""
    global _content_service
    if _content_service is None:
        config = load_config()
        _content_service = ContentGenerationService(
            api_key=config.get("ai_gateway_api_key") or "",
            api_base=config.get("image_api_base", ""),
            model=config.get("content_model", ""),
        )
    return _content_service


def get_video_pipeline() -> VideoPipeline:
    """Get or create the video pipeline instance."""
    global _video_pipeline
    if _video_pipeline is None:
        config = load_config()
        acquisition = ImageAcquisitionService(
            image_service=get_image_gen_service(),
            placeholder_service=PlaceholderImageService(),
            max_attempts=config["image_max_attempts"],
            rate_limit_backoff_seconds=config["rate_limit_backoff_seconds"],
            transient_backoff_seconds=config["transient_backoff_seconds"],
            scene_delay_seconds=config["scene_request_delay_seconds"],
        )
        ffmpeg_binary = config["ffmpeg_binary"]
        assembler = VideoAssembler(engine_factory=lambda: TranscodingEngine(ffmpeg_binary))
        _video_pipeline = VideoPipeline(
            acquisition,
            assembler,
            scene_duration_seconds=config["scene_duration_seconds"],
        )
    return _video_pipeline


async def close_services() -> None:
    """Close HTTP clients held by the singletons (application shutdown)."""
    global _image_gen_service, _content_service, _video_pipeline
    if _video_pipeline is not None:
        await _video_pipeline.assembler.close()
        _video_pipeline = None
    if _image_gen_service is not None:
        await _image_gen_service.close()
        _image_gen_service = None
    if _content_service is not None:
        await _content_service.close()
        _content_service = None
