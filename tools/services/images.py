from __future__ import annotations

import base64
import binascii
import logging
import time
from typing import Optional

from django.conf import settings
from django.core.files.base import ContentFile
from django.core.files.storage import default_storage

from ..models import ImageGeneration, ToolUsageLog

logger = logging.getLogger(__name__)

STORAGE_PREFIX = "generated-images"
SIZES = {"16:9": "1536x1024", "9:16": "1024x1536"}
DEFAULT_SIZE = "1024x1024"

AVATAR_STYLES = {
    "realistic": "photorealistic portrait, studio lighting",
    "cartoon": "cartoon style, bold outlines, vibrant colours",
    "anime": "anime style character portrait",
    "pixel": "pixel art avatar, 8-bit",
    "3d": "3D rendered character, soft lighting",
}


class ImageGenerationError(RuntimeError):
    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.generation = None


class ImageProviderNotConfigured(ImageGenerationError):
    pass


def size_for(aspect_ratio: str) -> str:
    return SIZES.get(aspect_ratio, DEFAULT_SIZE)


def is_configured() -> bool:
    return bool(settings.OPENAI_API_KEY)


def request_image(prompt: str, size: str) -> str:
    """Ask OpenAI for one image and return it base64 encoded."""
    if not is_configured():
        raise ImageProviderNotConfigured("OpenAI API key not configured")
    from openai import APIStatusError, OpenAI, OpenAIError

    client = OpenAI(api_key=settings.OPENAI_API_KEY, timeout=settings.PROVIDER_TIMEOUT_S * 4)
    try:
        resp = client.images.generate(
            model=settings.OPENAI_IMAGE_MODEL,
            prompt=prompt,
            n=1,
            size=size,
        )
    except APIStatusError as e:
        raise ImageGenerationError(f"OpenAI API error: {e.status_code} - {e.message}", status_code=e.status_code)
    except OpenAIError as e:
        raise ImageGenerationError(f"OpenAI request failed: {e}")
    if not resp.data or not resp.data[0].b64_json:
        raise ImageGenerationError("OpenAI returned no image data")
    return resp.data[0].b64_json


def avatar_prompt(prompt: str, style: str = "") -> str:
    decoration = AVATAR_STYLES.get(style.lower(), style) if style else ""
    base = f"Avatar portrait of {prompt.strip()}, centered head and shoulders, plain background"
    return f"{base}, {decoration}" if decoration else base


def generate_image(
    user,
    prompt: str,
    aspect_ratio: str = "1:1",
    kind: str = ImageGeneration.KIND_IMAGE,
    style: str = "",
    conversation=None,
    message=None,
) -> ImageGeneration:
    """
    Create the generation record, call the vendor and store the PNG.

    The record ends completed, or failed with error_message set; in the
    failure case ImageGenerationError is re-raised for the caller to map.
    """
    if not is_configured():
        raise ImageProviderNotConfigured("OpenAI API key not configured")
    if aspect_ratio not in ImageGeneration.ASPECT_RATIOS:
        aspect_ratio = "1:1"
    tool_name = ToolUsageLog.TOOL_AVATAR if kind == ImageGeneration.KIND_AVATAR else ToolUsageLog.TOOL_IMAGE
    vendor_prompt = avatar_prompt(prompt, style) if kind == ImageGeneration.KIND_AVATAR else prompt

    generation = ImageGeneration.objects.create(
        owner=user,
        conversation=conversation,
        message=message,
        kind=kind,
        prompt=prompt,
        style=style,
        aspect_ratio=aspect_ratio,
        model_used=settings.OPENAI_IMAGE_MODEL,
    )
    logger.info("Created %s generation %s for user %s", kind, generation.pk, user.pk)
    generation.mark_processing()

    started = time.monotonic()
    try:
        encoded = request_image(vendor_prompt, size_for(aspect_ratio))
        try:
            image_bytes = base64.b64decode(encoded, validate=True)
        except (binascii.Error, ValueError) as e:
            raise ImageGenerationError(f"Invalid image payload: {e}")
        elapsed_ms = int((time.monotonic() - started) * 1000)

        path = f"{STORAGE_PREFIX}/{user.pk}/{generation.pk}.png"
        if default_storage.exists(path):
            default_storage.delete(path)
        stored = default_storage.save(path, ContentFile(image_bytes))
    except ImageGenerationError as e:
        logger.error("Generation %s failed: %s", generation.pk, e)
        generation.mark_failed(str(e))
        e.generation = generation
        ToolUsageLog.record(user, tool_name, success=False, error_message=str(e), generation_id=generation.pk)
        raise

    generation.mark_completed(
        image_path=stored,
        public_url=default_storage.url(stored),
        generation_time_ms=elapsed_ms,
        file_size_bytes=len(image_bytes),
    )
    logger.info("Generation %s completed in %sms", generation.pk, elapsed_ms)
    ToolUsageLog.record(
        user, tool_name,
        generation_id=generation.pk, aspect_ratio=aspect_ratio, generation_time_ms=elapsed_ms,
    )
    return generation
