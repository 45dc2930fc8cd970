"""
Chat completion providers.

Every provider exposes the same two calls:
- complete(messages) -> Completion(text, usage)
- stream(messages) -> iterator of text chunks

Messages are plain dicts of {"role": "system"|"user"|"assistant", "content": str}.
"""
from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List

import requests
from django.conf import settings

from dashboard.models import FeatureFlag

from . import gemini
from .errors import ProviderError

logger = logging.getLogger(__name__)

ANTHROPIC_URL = "https://api.anthropic.com/v1/messages"
ANTHROPIC_VERSION = "2023-06-01"
DEFAULT_SYSTEM_PROMPT = "You are Hobnob AI, a helpful and intelligent assistant."


@dataclass
class Completion:
    text: str
    usage: Dict[str, Any] = field(default_factory=dict)


class ClaudeProvider:
    name = "claude"
    max_tokens = 4000

    def is_configured(self) -> bool:
        return bool(settings.ANTHROPIC_API_KEY)

    def _payload(self, messages: List[Dict[str, str]], stream: bool) -> Dict[str, Any]:
        system = next((m["content"] for m in messages if m["role"] == "system"), DEFAULT_SYSTEM_PROMPT)
        return {
            "model": settings.ANTHROPIC_MODEL,
            "system": system,
            "messages": [m for m in messages if m["role"] != "system"],
            "max_tokens": self.max_tokens,
            "stream": stream,
        }

    def _post(self, messages: List[Dict[str, str]], stream: bool) -> requests.Response:
        if not self.is_configured():
            raise ProviderError("Claude API key not configured", provider=self.name)
        try:
            resp = requests.post(
                ANTHROPIC_URL,
                headers={
                    "x-api-key": settings.ANTHROPIC_API_KEY,
                    "anthropic-version": ANTHROPIC_VERSION,
                    "content-type": "application/json",
                },
                json=self._payload(messages, stream),
                timeout=settings.PROVIDER_TIMEOUT_S,
                stream=stream,
            )
        except requests.RequestException as e:
            raise ProviderError(f"Claude request failed: {e}", provider=self.name)
        if not resp.ok:
            raise ProviderError(
                f"Claude API returned {resp.status_code}: {resp.reason}",
                status_code=resp.status_code,
                provider=self.name,
            )
        return resp

    def complete(self, messages: List[Dict[str, str]]) -> Completion:
        data = self._post(messages, stream=False).json()
        blocks = data.get("content") or []
        text = (blocks[0].get("text", "") if blocks else "").strip()
        if not text:
            raise ProviderError("No response generated from claude", provider=self.name)
        return Completion(text=text, usage=data.get("usage") or {})

    def stream(self, messages: List[Dict[str, str]]) -> Iterator[str]:
        resp = self._post(messages, stream=True)
        try:
            for line in resp.iter_lines(decode_unicode=True):
                if not line or not line.startswith("data: "):
                    continue
                data = line[6:].strip()
                if data == "[DONE]":
                    break
                try:
                    parsed = json.loads(data)
                except ValueError:
                    logger.warning("Skipping malformed Claude chunk: %s", data[:100])
                    continue
                text = (parsed.get("delta") or {}).get("text")
                if text:
                    yield text
        except requests.RequestException as e:
            raise ProviderError(f"Claude stream interrupted: {e}", provider=self.name)


class OpenAICompatibleProvider:
    """OpenAI chat completions; Grok speaks the same API on another base URL."""

    name = "openai"
    max_tokens = 2000
    temperature = 0.7

    def _api_key(self) -> str:
        return settings.OPENAI_API_KEY

    def _model(self) -> str:
        return settings.OPENAI_MODEL

    def _base_url(self):
        return None

    def is_configured(self) -> bool:
        return bool(self._api_key())

    def _client(self):
        if not self.is_configured():
            raise ProviderError(f"{self.name} API key not configured", provider=self.name)
        from openai import OpenAI

        return OpenAI(api_key=self._api_key(), base_url=self._base_url(), timeout=settings.PROVIDER_TIMEOUT_S)

    def _create(self, messages: List[Dict[str, str]], stream: bool):
        from openai import APIStatusError, OpenAIError

        client = self._client()
        try:
            return client.chat.completions.create(
                model=self._model(),
                messages=messages,
                max_tokens=self.max_tokens,
                temperature=self.temperature,
                stream=stream,
            )
        except APIStatusError as e:
            raise ProviderError(
                f"{self.name} API returned {e.status_code}: {e.message}",
                status_code=e.status_code,
                provider=self.name,
            )
        except OpenAIError as e:
            raise ProviderError(f"{self.name} request failed: {e}", provider=self.name)

    def complete(self, messages: List[Dict[str, str]]) -> Completion:
        completion = self._create(messages, stream=False)
        if not completion.choices:
            raise ProviderError(f"No response generated from {self.name}", provider=self.name)
        text = (completion.choices[0].message.content or "").strip()
        if not text:
            raise ProviderError(f"No response generated from {self.name}", provider=self.name)
        usage = completion.usage.model_dump() if completion.usage is not None else {}
        return Completion(text=text, usage=usage)

    def stream(self, messages: List[Dict[str, str]]) -> Iterator[str]:
        from openai import APIStatusError, OpenAIError

        try:
            for chunk in self._create(messages, stream=True):
                if not chunk.choices:
                    continue
                text = chunk.choices[0].delta.content
                if text:
                    yield text
        except APIStatusError as e:
            raise ProviderError(
                f"{self.name} stream returned {e.status_code}: {e.message}",
                status_code=e.status_code,
                provider=self.name,
            )
        except OpenAIError as e:
            raise ProviderError(f"{self.name} stream interrupted: {e}", provider=self.name)


class OpenAIProvider(OpenAICompatibleProvider):
    name = "openai"


class GrokProvider(OpenAICompatibleProvider):
    name = "grok"

    def _api_key(self) -> str:
        return settings.XAI_API_KEY

    def _model(self) -> str:
        return settings.XAI_MODEL

    def _base_url(self):
        return settings.XAI_BASE_URL


class DeepSeekProvider(OpenAICompatibleProvider):
    """DeepSeek V3, only offered while the deepseek-v3 feature flag is on."""

    name = "deepseek"
    flag = "deepseek-v3"

    def _api_key(self) -> str:
        return settings.DEEPSEEK_API_KEY

    def _model(self) -> str:
        return settings.DEEPSEEK_MODEL

    def _base_url(self):
        return settings.DEEPSEEK_BASE_URL

    def is_configured(self) -> bool:
        return bool(self._api_key()) and FeatureFlag.is_enabled(self.flag)


class GeminiProvider:
    name = "gemini"

    def is_configured(self) -> bool:
        return gemini.is_configured()

    def complete(self, messages: List[Dict[str, str]]) -> Completion:
        try:
            text = gemini.generate_reply(messages, timeout_s=settings.PROVIDER_TIMEOUT_S)
        except gemini.GeminiServiceError as e:
            e.provider = self.name
            raise
        return Completion(text=text)

    def stream(self, messages: List[Dict[str, str]]) -> Iterator[str]:
        return gemini.stream_reply(messages, timeout_s=settings.PROVIDER_TIMEOUT_S)


# Fallback order once the preferred provider has been tried
PROVIDER_ORDER = ("claude", "openai", "grok", "gemini", "deepseek")

REGISTRY = {
    "claude": ClaudeProvider(),
    "openai": OpenAIProvider(),
    "grok": GrokProvider(),
    "gemini": GeminiProvider(),
    "deepseek": DeepSeekProvider(),
}


def get_provider(name: str):
    try:
        return REGISTRY[name]
    except KeyError:
        raise ProviderError(f"Unknown provider '{name}'", provider=name)
