"""Content Generation Service - video production packages from a text model.

A package is one markdown document with four fixed sections (script with
timestamps, visual scenes, music recommendations, thumbnail concept). The
section headers are dictated in the prompt so ``extract_sections`` can split
the answer without any model-specific parsing.
"""

import json
import logging
import os
import time
from typing import Optional

import httpx

from models.scene import ContentRequest
from services.errors import ErrorKind, SceneReelError, kind_from_status
from services.image_generation_service import AI_GATEWAY_API_BASE, gateway_error_detail

logger = logging.getLogger(__name__)

AI_GATEWAY_API_KEY = os.getenv("AI_GATEWAY_API_KEY", "")
DEFAULT_CONTENT_MODEL = "google/gemini-2.5-flash"

SYSTEM_PROMPT = """You are a specialized YouTube video production AI. Generate complete, engaging video content that includes:

1. FULL SCRIPT with timestamps
2. DETAILED VISUAL DESCRIPTIONS for each scene (for stock footage or AI generation)
3. BACKGROUND MUSIC RECOMMENDATIONS with specific genres and moods
4. THUMBNAIL CONCEPT with detailed visual description

Make the content highly engaging, professional, and optimized for YouTube's algorithm. Include hooks, storytelling elements, and calls-to-action."""

USER_PROMPT_TEMPLATE = """Create a complete YouTube video production package for:

Topic: {topic}
Video Length: {video_length}
Style: {style}
Target Audience: {target_audience}

CRITICAL: You MUST use these EXACT section headers without any modifications, numbers, or extra words:

## SCRIPT
[Provide a complete, engaging script with timestamps. Include intro hook, main content sections, transitions, and outro with CTA. Mark timestamps as [00:00], [01:30], etc.]

## VISUAL SCENES
[For each major scene/timestamp, describe in detail what visuals should appear. Start each description with "Visuals:" or "B-roll:". Be specific about camera angles, settings, graphics and text overlays.]

## MUSIC RECOMMENDATIONS
[Suggest 3-5 specific background music tracks with genre, mood, tempo, and when to use them in the video.]

## THUMBNAIL CONCEPT
[Provide a detailed thumbnail design description including: main visual elements, text overlay, colors, facial expressions (if applicable), and composition.]

Make everything professional, engaging, and production-ready."""


class ContentGenerationError(SceneReelError):
    """Error from content generation service."""

    pass


def build_user_prompt(request: ContentRequest) -> str:
    return USER_PROMPT_TEMPLATE.format(
        topic=request.topic,
        video_length=request.video_length,
        style=request.style,
        target_audience=request.target_audience,
    )


class ContentGenerationService:
    """Chat-completions client that writes production packages."""

    def __init__(
        self,
        api_key: str = "",
        api_base: str = "",
        model: str = DEFAULT_CONTENT_MODEL,
        timeout: float = 180.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.api_key = api_key or AI_GATEWAY_API_KEY
        self.api_base = (api_base or AI_GATEWAY_API_BASE).rstrip("/")
        self.model = model or DEFAULT_CONTENT_MODEL
        self.client = client or httpx.AsyncClient(timeout=timeout)

    def is_configured(self) -> bool:
        return bool(self.api_key)

    async def generate_content(self, request: ContentRequest) -> str:
        """Generate the markdown production package for a topic.

        Args:
            request: Topic, length, style and audience

        Returns:
            Raw markdown content with the four section headers

        Raises:
            ContentGenerationError: With ``kind`` RATE_LIMITED on 429,
                QUOTA_EXHAUSTED on 402, MALFORMED for unusable responses
        """
        if not request.topic or not request.topic.strip():
            raise ContentGenerationError("Topic is required")
        if not self.is_configured():
            raise ContentGenerationError(
                "AI_GATEWAY_API_KEY not configured. Set it in your .env file.",
                kind=ErrorKind.MISCONFIGURED,
            )

        payload = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": build_user_prompt(request)},
            ],
        }
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }

        logger.info(
            f"Generating video content for '{request.topic}' "
            f"({request.video_length}, {request.style})"
        )
        start_time = time.time()

        try:
            response = await self.client.post(
                f"{self.api_base}/chat/completions", headers=headers, json=payload
            )
            response.raise_for_status()
            data = response.json()
        except httpx.TimeoutException:
            raise ContentGenerationError("Content generation timed out")
        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            detail = gateway_error_detail(e.response)
            kind = kind_from_status(status, detail)
            if kind == ErrorKind.RATE_LIMITED:
                message = "Rate limit exceeded. Please try again later."
            elif kind == ErrorKind.QUOTA_EXHAUSTED:
                message = "Payment required. Please add credits to your workspace."
            else:
                message = f"AI gateway error ({status}): {detail}"
            raise ContentGenerationError(message, kind=kind, status_code=status)
        except httpx.HTTPError as e:
            raise ContentGenerationError(f"Content gateway request failed: {e}")
        except (json.JSONDecodeError, ValueError):
            raise ContentGenerationError(
                "Invalid JSON response from AI gateway", kind=ErrorKind.MALFORMED
            )

        try:
            content = data["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError):
            content = None
        if not content or not isinstance(content, str):
            logger.error(f"No content in response: {json.dumps(data)[:500]}")
            raise ContentGenerationError("No content generated from AI", kind=ErrorKind.MALFORMED)

        elapsed = time.time() - start_time
        logger.info(f"Generated video content ({len(content)} chars) in {elapsed:.1f}s")
        return content

    async def close(self) -> None:
        """Close the HTTP client."""
        await self.client.aclose()
