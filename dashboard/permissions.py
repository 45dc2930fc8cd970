from __future__ import annotations

from rest_framework.permissions import SAFE_METHODS, BasePermission

from .models import FeatureFlag


class FeatureEnabled(BasePermission):
    """Block writes to a tool whose feature flag is switched off. Views set `feature_flag`."""

    message = "This feature is currently disabled."

    def has_permission(self, request, view) -> bool:
        key = getattr(view, "feature_flag", None)
        if key is None or request.method in SAFE_METHODS:
            return True
        return FeatureFlag.is_enabled(key)
