"""Image Generation Service - scene images through an OpenAI-compatible AI gateway."""

import json
import logging
import os
import time
from typing import Any, Optional

import httpx

from models.image_generation import (
    DEFAULT_IMAGE_MODEL,
    GeneratedImage,
    ImageGenerationRequest,
    ImageGenerationResult,
)
from services.errors import ErrorKind, SceneReelError, classify_error_message, kind_from_status

logger = logging.getLogger(__name__)

# AI gateway configuration
AI_GATEWAY_API_KEY = os.getenv("AI_GATEWAY_API_KEY", "")
AI_GATEWAY_API_BASE = "https://ai.gateway.lovable.dev/v1"

# Every scene description is wrapped in this instruction
SCENE_PROMPT_TEMPLATE = (
    "Generate a high-quality, professional image for a YouTube video scene: {description}"
)


class ImageGenerationServiceError(SceneReelError):
    """Error from image generation service."""

    pass


def build_scene_prompt(description: str) -> str:
    """Wrap a scene's visual description in the fixed generation instruction."""
    return SCENE_PROMPT_TEMPLATE.format(description=description.strip())


def gateway_error_detail(response: httpx.Response) -> str:
    """Best-effort readable error text from a failed gateway response."""
    try:
        error_data = response.json()
    except (json.JSONDecodeError, ValueError):
        return response.text or f"HTTP {response.status_code}"
    if isinstance(error_data, dict):
        error = error_data.get("error")
        if isinstance(error, dict):
            return error.get("message") or json.dumps(error)
        if error:
            return str(error)
    return json.dumps(error_data)


class ImageGenerationService:
    """Text-to-image client for the AI gateway's chat-completions endpoint.

    The gateway answers with the image embedded in the assistant message,
    either as a ``data:`` URL or a hosted URL. Failures are raised as
    ImageGenerationServiceError with ``kind`` already set from the status
    code, so callers never need to inspect message text.
    """

    def __init__(
        self,
        api_key: str = "",
        api_base: str = "",
        model: str = DEFAULT_IMAGE_MODEL,
        timeout: float = 120.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        """Initialize the image generation service.

        Args:
            api_key: Gateway API key (falls back to AI_GATEWAY_API_KEY).
            api_base: Gateway base URL.
            model: Image-capable model identifier.
            timeout: Request timeout in seconds.
            client: Optional preconfigured httpx client (tests inject one).
        """
        self.api_key = api_key or AI_GATEWAY_API_KEY
        self.api_base = (api_base or AI_GATEWAY_API_BASE).rstrip("/")
        self.model = model or DEFAULT_IMAGE_MODEL
        # Long timeout for image generation (can take a while)
        self.client = client or httpx.AsyncClient(timeout=timeout)

    def is_configured(self) -> bool:
        """Check if the gateway API key is configured."""
        return bool(self.api_key)

    async def check_health(self) -> dict:
        """Report whether the service can be used."""
        if not self.is_configured():
            return {
                "configured": False,
                "available": False,
                "error": "AI_GATEWAY_API_KEY not configured",
            }
        return {"configured": True, "available": True, "model": self.model}

    async def generate_image(self, request: ImageGenerationRequest) -> ImageGenerationResult:
        """Generate images for a prompt.

        Args:
            request: The generation request

        Returns:
            ImageGenerationResult with at least one image

        Raises:
            ImageGenerationServiceError: If generation fails or the response
                carries no image
        """
        if not self.is_configured():
            raise ImageGenerationServiceError(
                "AI_GATEWAY_API_KEY not configured. Set it in your .env file.",
                kind=ErrorKind.MISCONFIGURED,
            )

        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }
        payload = {
            "model": request.model or self.model,
            "messages": [{"role": "user", "content": request.prompt}],
            "modalities": ["image", "text"],
            "n": request.num_images,
        }

        logger.info(f"Generating {request.num_images} image(s) with {payload['model']}")
        start_time = time.time()

        try:
            response = await self.client.post(
                f"{self.api_base}/chat/completions", headers=headers, json=payload
            )
            response.raise_for_status()
            result_data = response.json()
        except httpx.TimeoutException:
            raise ImageGenerationServiceError(
                "Image gateway request timed out. Try again in a few seconds."
            )
        except httpx.HTTPStatusError as e:
            detail = gateway_error_detail(e.response)
            status = e.response.status_code
            raise ImageGenerationServiceError(
                f"AI gateway error ({status}): {detail}",
                kind=kind_from_status(status, detail),
                status_code=status,
            )
        except httpx.HTTPError as e:
            raise ImageGenerationServiceError(f"Image gateway request failed: {e}")
        except (json.JSONDecodeError, ValueError):
            raise ImageGenerationServiceError(
                "Invalid JSON response from AI gateway", kind=ErrorKind.MALFORMED
            )

        generation_time_ms = int((time.time() - start_time) * 1000)
        images = self._parse_images(result_data)

        logger.info(f"Gateway generated {len(images)} image(s) in {generation_time_ms}ms")

        return ImageGenerationResult(
            images=images,
            model=payload["model"],
            prompt=request.prompt,
            generation_time_ms=generation_time_ms,
        )

    def _parse_images(self, result_data: Any) -> list[GeneratedImage]:
        """Extract images from a chat-completions payload.

        Some gateways report failures in a 200 body (``{"error": ..,
        "statusCode": 429}``); those are classified here.
        """
        if not isinstance(result_data, dict):
            raise ImageGenerationServiceError(
                "Unexpected response shape from AI gateway", kind=ErrorKind.MALFORMED
            )

        if result_data.get("error"):
            error = result_data["error"]
            message = error.get("message", str(error)) if isinstance(error, dict) else str(error)
            status = result_data.get("statusCode")
            kind = (
                kind_from_status(int(status), message)
                if isinstance(status, int)
                else classify_error_message(message)
            )
            raise ImageGenerationServiceError(
                f"AI gateway error: {message}", kind=kind, status_code=status
            )

        images: list[GeneratedImage] = []
        for choice in result_data.get("choices") or []:
            message = (choice or {}).get("message") or {}
            for item in message.get("images") or []:
                url = ((item or {}).get("image_url") or {}).get("url", "")
                if not url:
                    continue
                content_type = "image/png"
                if url.startswith("data:"):
                    content_type = url[5:].split(";", 1)[0] or content_type
                images.append(GeneratedImage(url=url, content_type=content_type))

        if not images:
            raise ImageGenerationServiceError("No image generated", kind=ErrorKind.MALFORMED)
        return images

    async def close(self) -> None:
        """Close the HTTP client."""
        await self.client.aclose()
