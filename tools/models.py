from __future__ import annotations

from datetime import timedelta

from django.conf import settings
from django.db import models
from django.utils import timezone


class GenerationStatus(models.TextChoices):
    PENDING = "pending", "Pending"
    PROCESSING = "processing", "Processing"
    COMPLETED = "completed", "Completed"
    FAILED = "failed", "Failed"


TERMINAL_STATUSES = (GenerationStatus.COMPLETED, GenerationStatus.FAILED)


class StatusTrackedModel(models.Model):
    """Rows that move pending -> processing -> completed | failed."""

    status = models.CharField(max_length=12, choices=GenerationStatus.choices, default=GenerationStatus.PENDING)
    error_message = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    completed_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        abstract = True

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    def _transition(self, status: str, **fields) -> None:
        if self.is_terminal:
            raise ValueError(f"{type(self).__name__} {self.pk} is already {self.status}")
        self.status = status
        for name, value in fields.items():
            setattr(self, name, value)
        if status in TERMINAL_STATUSES:
            self.completed_at = timezone.now()
        self.save(update_fields=["status", "completed_at", *fields])

    def mark_processing(self) -> None:
        self._transition(GenerationStatus.PROCESSING)

    def mark_completed(self, **fields) -> None:
        self._transition(GenerationStatus.COMPLETED, **fields)

    def mark_failed(self, error_message: str) -> None:
        self._transition(GenerationStatus.FAILED, error_message=error_message)


class ImageGeneration(StatusTrackedModel):
    KIND_IMAGE = "image"
    KIND_AVATAR = "avatar"
    KIND_CHOICES = (
        (KIND_IMAGE, "Image"),
        (KIND_AVATAR, "Avatar"),
    )
    ASPECT_RATIOS = ("1:1", "16:9", "9:16")

    owner = models.ForeignKey(settings.AUTH_USER_MODEL, related_name="image_generations", on_delete=models.CASCADE)
    conversation = models.ForeignKey(
        "chat.Conversation", related_name="image_generations", null=True, blank=True, on_delete=models.SET_NULL
    )
    message = models.ForeignKey(
        "chat.Message", related_name="image_generations", null=True, blank=True, on_delete=models.SET_NULL
    )
    kind = models.CharField(max_length=10, choices=KIND_CHOICES, default=KIND_IMAGE)
    prompt = models.TextField()
    style = models.CharField(max_length=50, blank=True)
    aspect_ratio = models.CharField(max_length=5, default="1:1")
    model_used = models.CharField(max_length=50, blank=True)
    image_path = models.CharField(max_length=300, blank=True)
    public_url = models.CharField(max_length=500, blank=True)
    generation_time_ms = models.PositiveIntegerField(null=True, blank=True)
    file_size_bytes = models.PositiveIntegerField(null=True, blank=True)

    class Meta:
        ordering = ["-created_at", "-id"]
        indexes = [
            models.Index(fields=["owner", "created_at"], name="tools_img_owner_created_idx"),
        ]

    def __str__(self) -> str:  # pragma: no cover
        return f"{self.kind} {self.pk} ({self.status})"


def default_expiry():
    return timezone.now() + timedelta(hours=settings.DOCUMENT_RETENTION_HOURS)


class DocumentConversion(StatusTrackedModel):
    owner = models.ForeignKey(settings.AUTH_USER_MODEL, related_name="document_conversions", on_delete=models.CASCADE)
    original_file_name = models.CharField(max_length=255)
    original_file_path = models.CharField(max_length=300, blank=True)
    source_format = models.CharField(max_length=10)
    target_format = models.CharField(max_length=10)
    converted_file_path = models.CharField(max_length=300, blank=True)
    expires_at = models.DateTimeField(default=default_expiry)

    class Meta:
        ordering = ["-created_at", "-id"]
        indexes = [
            models.Index(fields=["owner", "created_at"], name="tools_doc_owner_created_idx"),
        ]

    @property
    def converted_file_name(self) -> str:
        stem = self.original_file_name.rsplit(".", 1)[0]
        return f"{stem}.{self.target_format}"

    def __str__(self) -> str:  # pragma: no cover
        return f"{self.original_file_name} -> {self.target_format} ({self.status})"


class NewsAnalysis(models.Model):
    LEVEL_HIGH = "High"
    LEVEL_MEDIUM = "Medium"
    LEVEL_LOW = "Low"
    LEVEL_VERY_LOW = "Very Low"
    LEVEL_CHOICES = (
        (LEVEL_HIGH, "High"),
        (LEVEL_MEDIUM, "Medium"),
        (LEVEL_LOW, "Low"),
        (LEVEL_VERY_LOW, "Very Low"),
    )

    owner = models.ForeignKey(settings.AUTH_USER_MODEL, related_name="news_analyses", on_delete=models.CASCADE)
    content = models.TextField(blank=True)
    source_url = models.URLField(max_length=500, blank=True)
    credibility_score = models.PositiveSmallIntegerField()
    credibility_level = models.CharField(max_length=10, choices=LEVEL_CHOICES)
    bias_level = models.CharField(max_length=20, blank=True)
    explanation = models.TextField(blank=True)
    sources = models.JSONField(default=list, blank=True)
    provider = models.CharField(max_length=20, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-created_at", "-id"]
        verbose_name_plural = "news analyses"

    def __str__(self) -> str:  # pragma: no cover
        return f"News analysis {self.pk}: {self.credibility_level}"


class ToolUsageLog(models.Model):
    TOOL_IMAGE = "image-generation"
    TOOL_AVATAR = "avatar-generation"
    TOOL_DOCUMENT = "document-converter"
    TOOL_NEWS = "fake-news-detection"
    TOOL_TRANSCRIPTION = "audio-transcription"

    user = models.ForeignKey(settings.AUTH_USER_MODEL, related_name="tool_usage_logs", on_delete=models.CASCADE)
    tool_name = models.CharField(max_length=50)
    usage_data = models.JSONField(default=dict, blank=True)
    success = models.BooleanField(default=True)
    error_message = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-created_at", "-id"]
        indexes = [
            models.Index(fields=["user", "tool_name", "created_at"], name="tools_usage_user_tool_idx"),
        ]

    @classmethod
    def record(cls, user, tool_name: str, success: bool = True, error_message: str = "", **usage_data) -> "ToolUsageLog":
        return cls.objects.create(
            user=user,
            tool_name=tool_name,
            success=success,
            error_message=error_message,
            usage_data=usage_data,
        )

    def __str__(self) -> str:  # pragma: no cover
        outcome = "ok" if self.success else "failed"
        return f"{self.tool_name} by {self.user_id} ({outcome})"
