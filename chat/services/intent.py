from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Optional

IMAGE_KEYWORDS = (
    "generate an image",
    "create an image",
    "make an image",
    "draw an image",
    "generate a picture",
    "create a picture",
    "make a picture",
    "draw a picture",
    "show me an image",
    "show me a picture",
    "create artwork",
    "generate artwork",
    "make artwork",
    "draw me",
    "paint me",
    "illustrate",
    "visualize",
    "design an image",
    "design a picture",
    "sketch",
    "render an image",
    "produce an image",
)

_VERBS = r"(?:generate|create|make|draw|show me|paint|illustrate|visualize|design|sketch|render|produce)"
_NOUNS = r"(?:image|picture|artwork|illustration|drawing|painting|sketch|visual|graphic)"
_PREPS = r"(?:of|showing|depicting|with|featuring)"

IMAGE_PATTERNS = (
    re.compile(rf"{_VERBS}\s+(?:an?\s+)?{_NOUNS}\s+{_PREPS}\s+(.+)", re.IGNORECASE),
    re.compile(rf"(?:can you|could you|please)\s+{_VERBS}\s+(?:an?\s+)?{_NOUNS}\s+{_PREPS}?\s*(.+)", re.IGNORECASE),
    re.compile(rf"(?:i want|i need|i'd like)\s+(?:an?\s+)?{_NOUNS}\s+{_PREPS}\s+(.+)", re.IGNORECASE),
    re.compile(r"draw me\s+(.+)", re.IGNORECASE),
    re.compile(r"paint me\s+(.+)", re.IGNORECASE),
    re.compile(r"illustrate\s+(.+)", re.IGNORECASE),
    re.compile(r"visualize\s+(.+)", re.IGNORECASE),
)

_LEADING_PREP = re.compile(rf"^{_PREPS}?\s*(.+)", re.IGNORECASE | re.DOTALL)
MIN_PROMPT_CHARS = 4


@dataclass(frozen=True)
class ImageIntent:
    has_image_intent: bool
    original_message: str
    confidence: float
    image_prompt: Optional[str] = None


def analyze_message(message: str) -> ImageIntent:
    normalized = message.lower().strip()
    keyword = next((k for k in IMAGE_KEYWORDS if k in normalized), None)
    if keyword is None:
        return ImageIntent(False, message, 0.0)

    for pattern in IMAGE_PATTERNS:
        match = pattern.search(message)
        if match and match.group(1):
            prompt = match.group(1).strip()
            if len(prompt) >= MIN_PROMPT_CHARS:
                return ImageIntent(True, message, 0.9, prompt)

    # Fall back to whatever follows the keyword
    idx = normalized.find(keyword)
    after = message[idx + len(keyword):].strip()
    match = _LEADING_PREP.match(after)
    if match and len(match.group(1).strip()) >= MIN_PROMPT_CHARS:
        return ImageIntent(True, message, 0.7, match.group(1).strip())

    return ImageIntent(True, message, 0.5, message)
