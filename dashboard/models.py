from __future__ import annotations

from django.db import models


class FeatureFlag(models.Model):
    CATEGORY_FEATURES = "Features"
    CATEGORY_MODELS = "Models"
    CATEGORY_LIMITS = "Limits"
    CATEGORY_CHOICES = (
        (CATEGORY_FEATURES, "Features"),
        (CATEGORY_MODELS, "Models"),
        (CATEGORY_LIMITS, "Limits"),
    )

    key = models.SlugField(max_length=50, unique=True)
    name = models.CharField(max_length=100)
    description = models.CharField(max_length=255, blank=True)
    category = models.CharField(max_length=10, choices=CATEGORY_CHOICES, default=CATEGORY_FEATURES)
    enabled = models.BooleanField(default=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["category", "key"]

    @classmethod
    def is_enabled(cls, key: str) -> bool:
        # Unknown flags are treated as on so new tools work before seeding
        flag = cls.objects.filter(key=key).values_list("enabled", flat=True).first()
        return True if flag is None else flag

    def __str__(self) -> str:  # pragma: no cover
        state = "on" if self.enabled else "off"
        return f"{self.key} ({state})"
