from __future__ import annotations

from django.conf import settings
from django.db import models, transaction
from django.utils import timezone


class Conversation(models.Model):
    DEFAULT_TITLE = "New Conversation"

    owner = models.ForeignKey(settings.AUTH_USER_MODEL, related_name="conversations", on_delete=models.CASCADE)
    title = models.CharField(max_length=200, default=DEFAULT_TITLE)
    is_deleted = models.BooleanField(default=False)
    last_message_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-updated_at", "id"]
        indexes = [
            models.Index(fields=["owner", "is_deleted", "updated_at"], name="chat_conv_owner_upd_idx"),
        ]

    def __str__(self) -> str:  # pragma: no cover
        return self.title or f"Conversation {self.pk}"


class Message(models.Model):
    ROLE_USER = "user"
    ROLE_ASSISTANT = "assistant"
    ROLE_SYSTEM = "system"
    ROLE_CHOICES = (
        (ROLE_USER, "User"),
        (ROLE_ASSISTANT, "Assistant"),
        (ROLE_SYSTEM, "System"),
    )

    conversation = models.ForeignKey(Conversation, related_name="messages", on_delete=models.CASCADE)
    role = models.CharField(max_length=10, choices=ROLE_CHOICES)
    content = models.TextField()
    attachments = models.JSONField(default=list, blank=True)
    provider = models.CharField(max_length=20, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    sequence = models.PositiveIntegerField()

    class Meta:
        ordering = ["sequence", "id"]
        unique_together = ("conversation", "sequence")
        indexes = [
            models.Index(fields=["conversation", "sequence"], name="chat_msg_conv_seq_idx"),
        ]

    def save(self, *args, **kwargs):
        if self.sequence is None:
            # Ensure sequence increments per conversation
            with transaction.atomic():
                last = (
                    Message.objects.select_for_update()
                    .filter(conversation=self.conversation)
                    .order_by("-sequence")
                    .first()
                )
                self.sequence = 1 if last is None else last.sequence + 1
                super().save(*args, **kwargs)
        else:
            super().save(*args, **kwargs)
        now = timezone.now()
        updates = {"updated_at": now}
        if self.role == self.ROLE_ASSISTANT:
            updates["last_message_at"] = now
        Conversation.objects.filter(pk=self.conversation_id).update(**updates)

    def __str__(self) -> str:  # pragma: no cover
        return f"{self.conversation_id}#{self.sequence}:{self.role}"


class MessageFeedback(models.Model):
    message = models.OneToOneField(Message, related_name="feedback", on_delete=models.CASCADE)
    conversation = models.ForeignKey(
        Conversation,
        related_name="feedbacks",
        on_delete=models.CASCADE,
        editable=False,
    )
    is_helpful = models.BooleanField()
    comment = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-created_at", "id"]
        indexes = [
            models.Index(fields=["conversation", "created_at"], name="chat_mfb_conv_created_idx"),
            models.Index(fields=["conversation", "is_helpful"], name="chat_mfb_conv_help_idx"),
        ]

    def save(self, *args, **kwargs):
        if self.message.role != Message.ROLE_ASSISTANT:
            raise ValueError("Feedback can only be attached to assistant messages.")
        self.conversation = self.message.conversation
        super().save(*args, **kwargs)

    def __str__(self) -> str:  # pragma: no cover
        status = "helpful" if self.is_helpful else "not helpful"
        return f"Feedback on message {self.message_id} ({status})"
