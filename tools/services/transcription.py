from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional, Tuple

from django.conf import settings

from ..models import ToolUsageLog

logger = logging.getLogger(__name__)

# Whisper accepts these; browsers report m4a under either name
ALLOWED_CONTENT_TYPES = {
    "audio/mpeg", "audio/mp4", "audio/wav", "audio/webm",
    "audio/ogg", "audio/flac", "audio/m4a", "audio/x-m4a",
}


class TranscriptionError(RuntimeError):
    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class TranscriptionNotConfigured(TranscriptionError):
    pass


class InvalidAudio(TranscriptionError):
    pass


@dataclass
class Transcript:
    text: str
    duration: Optional[float]
    model: str


def is_configured() -> bool:
    return bool(settings.OPENAI_API_KEY)


def validate_audio(uploaded_file) -> None:
    content_type = (getattr(uploaded_file, "content_type", "") or "").split(";")[0].strip().lower()
    if content_type not in ALLOWED_CONTENT_TYPES:
        raise InvalidAudio(
            f"Unsupported audio format: {content_type or 'unknown'}. "
            "Supported formats: MP3, MP4, WAV, WEBM, OGG, FLAC, M4A"
        )
    limit = settings.TRANSCRIPTION_MAX_UPLOAD_BYTES
    if uploaded_file.size > limit:
        raise InvalidAudio(f"Audio file is too large. Maximum size is {limit // (1024 * 1024)}MB.")


def request_transcription(file_name: str, data: bytes, content_type: str) -> Tuple[str, Optional[float]]:
    """Send the audio to Whisper and return (text, duration in seconds)."""
    if not is_configured():
        raise TranscriptionNotConfigured("OpenAI API key not configured")
    from openai import APIStatusError, OpenAI, OpenAIError

    client = OpenAI(api_key=settings.OPENAI_API_KEY, timeout=settings.PROVIDER_TIMEOUT_S * 4)
    try:
        resp = client.audio.transcriptions.create(
            model=settings.OPENAI_TRANSCRIPTION_MODEL,
            file=(file_name, data, content_type),
            response_format="verbose_json",
        )
    except APIStatusError as e:
        raise TranscriptionError(f"OpenAI API error: {e.status_code} - {e.message}", status_code=e.status_code)
    except OpenAIError as e:
        raise TranscriptionError(f"OpenAI request failed: {e}")
    return resp.text or "", getattr(resp, "duration", None)


def transcribe(user, uploaded_file) -> Transcript:
    validate_audio(uploaded_file)
    if not is_configured():
        raise TranscriptionNotConfigured("OpenAI API key not configured")

    model = settings.OPENAI_TRANSCRIPTION_MODEL
    logger.info("Transcribing %s (%s bytes) for user %s", uploaded_file.name, uploaded_file.size, user.pk)
    try:
        text, duration = request_transcription(uploaded_file.name, uploaded_file.read(), uploaded_file.content_type)
    except TranscriptionError as e:
        logger.error("Transcription of %s failed: %s", uploaded_file.name, e)
        ToolUsageLog.record(
            user, ToolUsageLog.TOOL_TRANSCRIPTION, success=False, error_message=str(e),
            file_name=uploaded_file.name, model=model,
        )
        raise

    ToolUsageLog.record(
        user, ToolUsageLog.TOOL_TRANSCRIPTION,
        file_name=uploaded_file.name, size_bytes=uploaded_file.size, duration=duration, model=model,
    )
    return Transcript(text=text, duration=duration, model=model)
