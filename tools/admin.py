from django.contrib import admin

from .models import DocumentConversion, ImageGeneration, NewsAnalysis, ToolUsageLog


@admin.register(ImageGeneration)
class ImageGenerationAdmin(admin.ModelAdmin):
    list_display = ("id", "owner", "kind", "status", "aspect_ratio", "created_at")
    list_filter = ("kind", "status")


@admin.register(DocumentConversion)
class DocumentConversionAdmin(admin.ModelAdmin):
    list_display = ("id", "owner", "original_file_name", "source_format", "target_format", "status", "expires_at")
    list_filter = ("status", "target_format")


@admin.register(NewsAnalysis)
class NewsAnalysisAdmin(admin.ModelAdmin):
    list_display = ("id", "owner", "credibility_score", "credibility_level", "created_at")


@admin.register(ToolUsageLog)
class ToolUsageLogAdmin(admin.ModelAdmin):
    list_display = ("id", "user", "tool_name", "success", "created_at")
    list_filter = ("tool_name", "success")
