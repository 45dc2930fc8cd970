from django.contrib import admin

from .models import FeatureFlag


@admin.register(FeatureFlag)
class FeatureFlagAdmin(admin.ModelAdmin):
    list_display = ("key", "name", "category", "enabled", "updated_at")
    list_filter = ("category", "enabled")
    list_editable = ("enabled",)
