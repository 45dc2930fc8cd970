from __future__ import annotations

import json
import logging
from typing import Any, Dict, Iterator, List

from django.conf import settings

from .errors import ProviderError

logger = logging.getLogger(__name__)


class GeminiServiceError(ProviderError):
    pass


def _get_model_name() -> str:
    return settings.GEMINI_MODEL


def is_configured() -> bool:
    return bool(settings.GEMINI_API_KEY)


def _get_client():
    api_key = settings.GEMINI_API_KEY
    if not api_key:
        raise GeminiServiceError("Gemini API key is missing; set GEMINI_API_KEY in .env")
    try:
        import google.generativeai as genai
    except Exception as e:  # pragma: no cover - import error path
        raise GeminiServiceError(f"Gemini client not available: {e}")
    genai.configure(api_key=api_key)
    model_name = _get_model_name()
    try:
        model = genai.GenerativeModel(model_name)
    except Exception as e:
        raise GeminiServiceError(f"Gemini model init failed: {e}")
    return model


def to_gemini_messages(messages: List[Dict[str, str]]) -> List[Dict[str, Any]]:
    """
    Convert chat messages ({"role", "content"}) into Gemini contents.
    Gemini has no system role, so system text is sent as a leading user turn.
    """
    contents = []
    for msg in messages:
        role = msg.get("role", "user")
        contents.append({
            "role": "model" if role == "assistant" else "user",
            "parts": [msg.get("content", "")],
        })
    return contents


def generate_reply(messages: List[Dict[str, str]], timeout_s: int = 30) -> str:
    """
    Minimal wrapper around google-generativeai.
    - messages: list of {"role": "system"|"user"|"assistant", "content": "..."}
    Returns plain text reply or raises GeminiServiceError on failure.
    """
    try:
        model = _get_client()
        resp = model.generate_content(to_gemini_messages(messages), request_options={"timeout": timeout_s})
        text = getattr(resp, "text", None) or ""
        text = text.strip()
        if not text:
            raise GeminiServiceError("Empty response from Gemini")
        return text
    except GeminiServiceError:
        raise
    except Exception as e:
        raise GeminiServiceError(f"Gemini request failed: {e}")


def stream_reply(messages: List[Dict[str, str]], timeout_s: int = 30) -> Iterator[str]:
    try:
        model = _get_client()
        resp = model.generate_content(
            to_gemini_messages(messages),
            stream=True,
            request_options={"timeout": timeout_s},
        )
        for chunk in resp:
            text = getattr(chunk, "text", None)
            if text:
                yield text
    except GeminiServiceError:
        raise
    except Exception as e:
        raise GeminiServiceError(f"Gemini request failed: {e}")


def generate_actionable_insights(summary: Dict[str, Any], timeout_s: int = 15) -> str:
    """
    Generate actionable insights based on aggregated feedback summary data.
    """
    summary_json = json.dumps(summary, default=str, indent=2)
    prompt = (
        "You are a product operations analyst reviewing user feedback for an AI assistant.\n"
        "Using the structured data below, produce three concise, actionable recommendations "
        "for improving the assistant. Focus on clear next steps grounded in the data trends.\n\n"
        f"Feedback summary:\n{summary_json}\n\n"
        "Respond with a markdown bullet list (max 4 bullets). Start each bullet with a strong verb."
    )
    logger.info("Requesting actionable insights from Gemini")
    return generate_reply([{"role": "user", "content": prompt}], timeout_s=timeout_s)
