"""Configuration loading and validation for scenereel."""

import logging
import os
import shutil
from pathlib import Path

from dotenv import load_dotenv
from rich.logging import RichHandler

# Get the project root directory (parent of src)
PROJECT_ROOT = Path(__file__).parent.parent.parent

# Load environment variables from .env file in project root
load_dotenv(PROJECT_ROOT / ".env")

# Suppressed in both the CLI and the API server
NOISY_LOGGERS = [
    "httpx",
    "httpcore",
    "aiosqlite",
    "PIL",
    "multipart",
]


def load_config() -> dict:
    """Load configuration from environment variables."""

    # Helper function to resolve paths relative to project root
    def resolve_path(path: str | None, default_relative: str) -> str:
        if not path:
            return str(PROJECT_ROOT / default_relative)
        if Path(path).is_absolute():
            return path
        return str(PROJECT_ROOT / path)

    config = {
        # AI gateway (images and text)
        "ai_gateway_api_key": os.getenv("AI_GATEWAY_API_KEY"),
        "image_api_base": os.getenv("IMAGE_API_BASE", "https://ai.gateway.lovable.dev/v1"),
        "image_model": os.getenv("IMAGE_MODEL", "google/gemini-2.5-flash-image-preview"),
        "content_model": os.getenv("CONTENT_MODEL", "google/gemini-2.5-flash"),
        # Image acquisition retry budget
        "image_max_attempts": int(os.getenv("IMAGE_MAX_ATTEMPTS", "3")),
        "rate_limit_backoff_seconds": float(os.getenv("RATE_LIMIT_BACKOFF_SECONDS", "2")),
        "transient_backoff_seconds": float(os.getenv("TRANSIENT_BACKOFF_SECONDS", "1")),
        "scene_request_delay_seconds": float(os.getenv("SCENE_REQUEST_DELAY_SECONDS", "1.5")),
        # Assembly
        "scene_duration_seconds": int(os.getenv("SCENE_DURATION_SECONDS", "5")),
        "ffmpeg_binary": os.getenv("FFMPEG_BINARY", "ffmpeg"),
        # Jobs and outputs
        "job_db_path": resolve_path(os.getenv("JOB_DB_PATH"), ".scenereel/jobs.db"),
        "video_output_dir": resolve_path(os.getenv("VIDEO_OUTPUT_DIR"), "output/videos"),
        # Logging
        "log_level": os.getenv("LOG_LEVEL", "INFO"),
        "log_json": os.getenv("LOG_JSON", "false").lower() == "true",
    }

    return config


def validate_config(config: dict) -> list[str]:
    """Validate configuration and return list of errors."""
    errors = []

    if not config.get("ai_gateway_api_key"):
        errors.append("AI_GATEWAY_API_KEY is required")

    if config.get("image_max_attempts", 0) < 1:
        errors.append("IMAGE_MAX_ATTEMPTS must be at least 1")

    for key in (
        "rate_limit_backoff_seconds",
        "transient_backoff_seconds",
        "scene_request_delay_seconds",
    ):
        if config.get(key, 0) < 0:
            errors.append(f"{key.upper()} cannot be negative")

    if config.get("scene_duration_seconds", 0) < 1:
        errors.append("SCENE_DURATION_SECONDS must be at least 1")

    if not shutil.which(config.get("ffmpeg_binary") or "ffmpeg"):
        errors.append(f"FFmpeg binary not found: {config.get('ffmpeg_binary')}")

    output_dir = config.get("video_output_dir")
    if output_dir:
        try:
            Path(output_dir).mkdir(parents=True, exist_ok=True)
        except OSError as e:
            errors.append(f"Cannot create video output folder: {e}")

    return errors


def setup_logging(log_level: str = "INFO") -> None:
    """Set up logging with Rich for terminal output (CLI entry points)."""
    logging.root.handlers.clear()

    rich_handler = RichHandler(
        show_time=True,
        show_level=True,
        show_path=False,
        rich_tracebacks=True,
        markup=False,  # Disable markup to avoid conflicts
    )

    logging.basicConfig(
        level=getattr(logging, log_level.upper()),
        handlers=[rich_handler],
        format="%(message)s",
    )

    for logger_name in NOISY_LOGGERS:
        logging.getLogger(logger_name).setLevel(logging.WARNING)
