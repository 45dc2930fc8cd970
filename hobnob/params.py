from __future__ import annotations

from typing import Optional

from rest_framework.request import Request


def query_int(request: Request, name: str, default: int, maximum: Optional[int] = None) -> int:
    """Read an integer query parameter, falling back to the default when missing or malformed."""
    try:
        value = int(request.query_params.get(name, default))
    except (TypeError, ValueError):
        value = default
    if value < 0:
        value = default
    if maximum is not None:
        value = min(value, maximum)
    return value
