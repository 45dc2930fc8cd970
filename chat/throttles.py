from __future__ import annotations

from rest_framework.throttling import SimpleRateThrottle


class MessageRateThrottle(SimpleRateThrottle):
    scope = "message"

    def get_cache_key(self, request, view):
        if request.method.upper() != "POST":
            return None
        if request.user and request.user.is_authenticated:
            ident = str(request.user.pk)
        else:
            ident = self.get_ident(request)
        if ident is None:
            return None
        return self.cache_key_for_ident(ident)

    def cache_key_for_ident(self, ident: str) -> str:
        return f"throttle:{self.scope}:{ident}"


class GuestRateThrottle(MessageRateThrottle):
    """Daily message allowance for anonymous visitors, keyed by client IP."""

    scope = "guest"

    def get_cache_key(self, request, view):
        if request.method.upper() != "POST":
            return None
        ident = self.get_ident(request)
        if ident is None:
            return None
        return self.cache_key_for_ident(ident)

    def remaining(self, request, view=None) -> int:
        key = self.get_cache_key(request, view)
        if key is None:
            return self.num_requests
        now = self.timer()
        history = [ts for ts in self.cache.get(key, []) if ts > now - self.duration]
        return max(0, self.num_requests - len(history))
