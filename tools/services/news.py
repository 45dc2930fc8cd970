from __future__ import annotations

import json
import logging
import re
from typing import Any, Dict, Optional

from chat.services import completion
from chat.services.errors import ProviderError

from ..models import NewsAnalysis, ToolUsageLog

logger = logging.getLogger(__name__)

ANALYST_PROMPT = """You are a meticulous fact-checking analyst. Assess the credibility of the news content or URL the user provides.
Respond with a single JSON object and nothing else, using exactly these keys:
{"credibility_score": <integer 0-100>, "bias_level": "Minimal" | "Slight" | "Moderate" | "High",
 "explanation": "<two or three sentences>",
 "sources": [{"title": "<source name>", "url": "<url or empty>", "reliability": "High" | "Medium" | "Low"}]}"""

_JSON_OBJECT = re.compile(r"\{.*\}", re.DOTALL)
MAX_CONTENT_CHARS = 8000


class NewsAnalysisError(RuntimeError):
    pass


def credibility_level(score: int) -> str:
    if score >= 75:
        return NewsAnalysis.LEVEL_HIGH
    if score >= 50:
        return NewsAnalysis.LEVEL_MEDIUM
    if score >= 25:
        return NewsAnalysis.LEVEL_LOW
    return NewsAnalysis.LEVEL_VERY_LOW


def parse_assessment(text: str) -> Dict[str, Any]:
    """Pull the JSON verdict out of a model reply, tolerating code fences and chatter."""
    match = _JSON_OBJECT.search(text)
    if not match:
        raise NewsAnalysisError("Provider reply did not contain a JSON assessment")
    try:
        data = json.loads(match.group(0))
    except ValueError as e:
        raise NewsAnalysisError(f"Provider reply was not valid JSON: {e}")
    try:
        score = int(round(float(data["credibility_score"])))
    except (KeyError, TypeError, ValueError):
        raise NewsAnalysisError("Provider reply is missing a numeric credibility_score")

    sources = data.get("sources") or []
    if not isinstance(sources, list):
        sources = []
    return {
        "credibility_score": max(0, min(100, score)),
        "bias_level": str(data.get("bias_level") or "")[:20],
        "explanation": str(data.get("explanation") or ""),
        "sources": [s for s in sources if isinstance(s, dict)],
    }


def analyze(user, content: str = "", url: str = "", provider: Optional[str] = None) -> NewsAnalysis:
    content = content.strip()[:MAX_CONTENT_CHARS]
    url = url.strip()
    subject = content if content else f"Analyze the article at this URL: {url}"
    if content and url:
        subject = f"Source URL: {url}\n\n{content}"

    messages = [
        {"role": "system", "content": ANALYST_PROMPT},
        {"role": "user", "content": subject},
    ]
    try:
        reply = completion.generate_reply(messages, provider=provider)
        assessment = parse_assessment(reply.text)
    except (ProviderError, NewsAnalysisError) as e:
        logger.warning("News analysis failed for user %s: %s", user.pk, e)
        ToolUsageLog.record(user, ToolUsageLog.TOOL_NEWS, success=False, error_message=str(e), url=url)
        raise

    analysis = NewsAnalysis.objects.create(
        owner=user,
        content=content,
        source_url=url,
        credibility_level=credibility_level(assessment["credibility_score"]),
        provider=reply.provider,
        **assessment,
    )
    ToolUsageLog.record(
        user, ToolUsageLog.TOOL_NEWS,
        analysis_id=analysis.pk, credibility_score=analysis.credibility_score, provider=reply.provider,
    )
    return analysis
