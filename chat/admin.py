from django.contrib import admin

from .models import Conversation, Message, MessageFeedback


@admin.register(Conversation)
class ConversationAdmin(admin.ModelAdmin):
    list_display = ("id", "title", "owner", "is_deleted", "updated_at")
    list_filter = ("is_deleted",)
    search_fields = ("title", "owner__email")


@admin.register(Message)
class MessageAdmin(admin.ModelAdmin):
    list_display = ("id", "conversation", "role", "provider", "sequence", "created_at")
    list_filter = ("role", "provider")


@admin.register(MessageFeedback)
class MessageFeedbackAdmin(admin.ModelAdmin):
    list_display = ("id", "message", "is_helpful", "created_at")
    list_filter = ("is_helpful",)
