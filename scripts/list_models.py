from __future__ import annotations

import os
import sys

from dotenv import load_dotenv


def list_gemini(api_key: str) -> int:
    try:
        import google.generativeai as genai
    except Exception as exc:  # pragma: no cover - import failure path
        print(f"Failed to import google.generativeai: {exc}", file=sys.stderr)
        return 1

    genai.configure(api_key=api_key)

    print("Available Gemini models (supporting generateContent):")
    try:
        models = genai.list_models()
    except Exception as exc:
        print(f"Failed to list Gemini models: {exc}", file=sys.stderr)
        return 1

    count = 0
    for model in models:
        methods = getattr(model, "supported_generation_methods", []) or []
        if "generateContent" in methods:
            print(f"- {model.name}")
            count += 1

    if count == 0:
        print("No models supporting generateContent were returned.")
    return 0


def list_openai(api_key: str, base_url: str | None = None, label: str = "OpenAI") -> int:
    from openai import OpenAI, OpenAIError

    client = OpenAI(api_key=api_key, base_url=base_url) if base_url else OpenAI(api_key=api_key)
    print(f"Available {label} models:")
    try:
        models = sorted(model.id for model in client.models.list())
    except OpenAIError as exc:
        print(f"Failed to list {label} models: {exc}", file=sys.stderr)
        return 1

    for name in models:
        print(f"- {name}")
    if not models:
        print(f"No {label} models were returned.")
    return 0


def main() -> int:
    load_dotenv()
    gemini_key = os.environ.get("GEMINI_API_KEY")
    openai_key = os.environ.get("OPENAI_API_KEY")
    xai_key = os.environ.get("XAI_API_KEY")
    deepseek_key = os.environ.get("DEEPSEEK_API_KEY")
    if not (gemini_key or openai_key or xai_key or deepseek_key):
        print(
            "No provider keys are set. Populate GEMINI_API_KEY, OPENAI_API_KEY, XAI_API_KEY "
            "or DEEPSEEK_API_KEY in your environment or .env file.",
            file=sys.stderr,
        )
        return 1

    status = 0
    if gemini_key:
        status |= list_gemini(gemini_key)
    if openai_key:
        status |= list_openai(openai_key)
    if xai_key:
        base_url = os.environ.get("XAI_BASE_URL", "https://api.x.ai/v1")
        status |= list_openai(xai_key, base_url=base_url, label="Grok")
    if deepseek_key:
        base_url = os.environ.get("DEEPSEEK_BASE_URL", "https://api.deepseek.com/v1")
        status |= list_openai(deepseek_key, base_url=base_url, label="DeepSeek")
    return status


if __name__ == "__main__":
    raise SystemExit(main())
