from __future__ import annotations

from typing import Optional


class ProviderError(RuntimeError):
    """A single AI vendor call failed."""

    def __init__(self, message: str, status_code: Optional[int] = None, provider: str = "") -> None:
        super().__init__(message)
        self.status_code = status_code
        self.provider = provider


class AllProvidersFailed(ProviderError):
    pass


def describe_vendor_error(error: ProviderError) -> str:
    """Map a vendor failure onto the text shown to the user."""
    code = error.status_code
    if code in (401, 403):
        return "The AI provider rejected our credentials. Please contact support."
    if code == 429:
        return "The AI provider is rate limiting requests. Please try again in a moment."
    if code is not None and code >= 500:
        return "The AI provider is temporarily unavailable. Please try again."
    if code == 400:
        return "The AI provider could not process this request."
    return str(error) or "The AI request failed. Please try again."
