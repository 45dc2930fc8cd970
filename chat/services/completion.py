from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Optional, Sequence, Tuple

from . import providers
from .errors import AllProvidersFailed, ProviderError

logger = logging.getLogger(__name__)

ASSISTANT_NAME = "Hobnob AI"

PERSONA_PROMPT = f"""You are {ASSISTANT_NAME}, a smart, helpful, and friendly AI assistant. Your personality traits:
- Intelligent and insightful, but approachable
- Clear and concise in explanations
- Adaptable to user's needs and communication style
- Proactive in offering helpful suggestions
- Professional yet warm in tone
- Quick to understand context and provide relevant responses

Always strive to be helpful, accurate, and engaging while maintaining your distinct {ASSISTANT_NAME} identity."""

FALLBACK_MESSAGE = (
    "I'm experiencing technical difficulties at the moment. Please try again in a few moments. "
    "If the issue persists, please check your internet connection."
)

MAX_CONTEXT_MESSAGES = 15
MAX_HISTORY_MESSAGES = 5
HISTORY_TRUNCATE_CHARS = 400

REASONING_WORDS = ("code", "analyze", "explain", "debug", "algorithm", "logic", "write", "create", "complex")
QUICK_WORDS = ("quick", "simple", "hello", "hi", "what", "how", "when")
CREATIVE_WORDS = ("creative", "funny", "joke", "story", "imagine", "generate", "fun")


@dataclass
class Reply:
    text: str
    provider: str
    usage: Dict[str, Any] = field(default_factory=dict)


def add_persona(messages: List[Dict[str, str]]) -> List[Dict[str, str]]:
    if any(m.get("role") == "system" for m in messages):
        return messages
    return [{"role": "system", "content": PERSONA_PROMPT}, *messages]


def prepare_context(
    messages: Sequence[Dict[str, str]],
    history: Optional[Sequence[Dict[str, str]]] = None,
) -> List[Dict[str, str]]:
    """
    Keep the most recent request messages and prepend a short, truncated
    slice of stored history so replies keep some memory of the conversation.
    """
    recent = [{"role": m["role"], "content": m["content"]} for m in messages[-MAX_CONTEXT_MESSAGES:]]
    if not history:
        return recent
    context = [
        {"role": m["role"], "content": m["content"][:HISTORY_TRUNCATE_CHARS]}
        for m in list(history)[-MAX_HISTORY_MESSAGES:]
    ]
    return context + recent


def select_provider(messages: Sequence[Dict[str, str]]) -> str:
    last = (messages[-1].get("content") or "").lower() if messages else ""
    length = len(last)

    if length > 200 or any(word in last for word in REASONING_WORDS):
        return "claude"
    if length < 100 or any(word in last for word in QUICK_WORDS):
        return "openai"
    if any(word in last for word in CREATIVE_WORDS):
        return "grok"
    return "claude"


def provider_order(primary: Optional[str]) -> List[str]:
    order = list(providers.PROVIDER_ORDER)
    if primary in order:
        order.remove(primary)
        order.insert(0, primary)
    return order


def _candidates(primary: Optional[str]) -> List[Tuple[str, Any]]:
    candidates = []
    for name in provider_order(primary):
        provider = providers.get_provider(name)
        if provider.is_configured():
            candidates.append((name, provider))
        else:
            logger.debug("Skipping %s: not configured", name)
    return candidates


def build_messages(
    messages: Sequence[Dict[str, str]],
    history: Optional[Sequence[Dict[str, str]]] = None,
) -> List[Dict[str, str]]:
    return add_persona(prepare_context(messages, history))


def generate_reply(
    messages: Sequence[Dict[str, str]],
    provider: Optional[str] = None,
    history: Optional[Sequence[Dict[str, str]]] = None,
) -> Reply:
    """
    Run the messages through the preferred provider, falling back to the
    other configured providers. Raises AllProvidersFailed when none answer.
    """
    prepared = build_messages(messages, history)
    primary = provider or select_provider(prepared)
    last_error: Optional[ProviderError] = None

    for name, backend in _candidates(primary):
        logger.info("Trying provider %s", name)
        try:
            completion = backend.complete(prepared)
        except ProviderError as e:
            logger.warning("Provider %s failed: %s", name, e)
            last_error = e
            continue
        logger.info("Provider %s succeeded", name)
        return Reply(text=completion.text, provider=name, usage=completion.usage)

    raise _all_failed(last_error)


def stream_reply(
    messages: Sequence[Dict[str, str]],
    provider: Optional[str] = None,
    history: Optional[Sequence[Dict[str, str]]] = None,
) -> Tuple[str, Iterator[str]]:
    """
    Like generate_reply but returns (provider_name, chunk iterator).

    A provider is committed to once its first chunk arrives; failures before
    that fall through to the next provider.
    """
    prepared = build_messages(messages, history)
    primary = provider or select_provider(prepared)
    last_error: Optional[ProviderError] = None

    for name, backend in _candidates(primary):
        logger.info("Trying provider %s (stream)", name)
        try:
            chunks = iter(backend.stream(prepared))
            first = next(chunks)
        except StopIteration:
            last_error = ProviderError(f"No response generated from {name}", provider=name)
            logger.warning("Provider %s returned an empty stream", name)
            continue
        except ProviderError as e:
            logger.warning("Provider %s failed: %s", name, e)
            last_error = e
            continue
        return name, _prepend(first, chunks)

    raise _all_failed(last_error)


def _prepend(first: str, rest: Iterator[str]) -> Iterator[str]:
    yield first
    yield from rest


def _all_failed(last_error: Optional[ProviderError]) -> AllProvidersFailed:
    if last_error is None:
        logger.error("No AI providers are configured")
        return AllProvidersFailed("No AI providers are configured")
    logger.error("All providers failed; last error: %s", last_error)
    return AllProvidersFailed(
        f"All providers failed. Last error: {last_error}",
        status_code=last_error.status_code,
        provider=last_error.provider,
    )
