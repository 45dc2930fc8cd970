from django.contrib import admin

from .models import Profile, UserSettings


@admin.register(Profile)
class ProfileAdmin(admin.ModelAdmin):
    list_display = ("user", "username", "full_name", "updated_at")
    search_fields = ("user__email", "username", "full_name")


@admin.register(UserSettings)
class UserSettingsAdmin(admin.ModelAdmin):
    list_display = ("user", "theme", "language", "updated_at")
