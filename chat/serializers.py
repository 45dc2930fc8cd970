from rest_framework import serializers

from .models import Conversation, Message, MessageFeedback
from .services.providers import PROVIDER_ORDER

MAX_MESSAGE_CHARS = 4000


class ConversationSerializer(serializers.ModelSerializer):
    class Meta:
        model = Conversation
        fields = ["id", "title", "is_deleted", "last_message_at", "created_at", "updated_at"]
        read_only_fields = ["id", "last_message_at", "created_at", "updated_at"]

    def validate_title(self, value: str) -> str:
        title = value.strip()
        if not title:
            raise serializers.ValidationError("Title cannot be empty.")
        return title


class MessageFeedbackSerializer(serializers.ModelSerializer):
    conversation = serializers.PrimaryKeyRelatedField(read_only=True)
    message = serializers.PrimaryKeyRelatedField(read_only=True)

    class Meta:
        model = MessageFeedback
        fields = ["id", "conversation", "message", "is_helpful", "comment", "created_at"]
        read_only_fields = fields


class MessageSerializer(serializers.ModelSerializer):
    feedback = MessageFeedbackSerializer(read_only=True)

    class Meta:
        model = Message
        fields = ["id", "conversation", "role", "content", "attachments", "provider", "created_at", "sequence", "feedback"]
        read_only_fields = fields


class ConversationHistorySerializer(ConversationSerializer):
    messages = MessageSerializer(many=True, read_only=True)

    class Meta(ConversationSerializer.Meta):
        fields = ConversationSerializer.Meta.fields + ["messages"]


class CreateMessageSerializer(serializers.Serializer):
    content = serializers.CharField(max_length=MAX_MESSAGE_CHARS, allow_blank=False, trim_whitespace=True)
    provider = serializers.ChoiceField(choices=PROVIDER_ORDER, required=False)
    stream = serializers.BooleanField(required=False, default=False)
    attachments = serializers.ListField(child=serializers.DictField(), required=False, default=list)

    def validate_content(self, value: str) -> str:
        text = value.strip()
        if not text:
            raise serializers.ValidationError("Message content cannot be empty.")
        return text


class CreateFeedbackSerializer(serializers.Serializer):
    is_helpful = serializers.BooleanField()
    comment = serializers.CharField(
        max_length=500,
        allow_blank=True,
        required=False,
        trim_whitespace=True,
    )

    def validate_comment(self, value: str) -> str:
        return value.strip()


class GuestMessageSerializer(serializers.Serializer):
    role = serializers.ChoiceField(choices=[Message.ROLE_USER, Message.ROLE_ASSISTANT])
    content = serializers.CharField(max_length=MAX_MESSAGE_CHARS, trim_whitespace=True)


class GuestChatSerializer(serializers.Serializer):
    messages = GuestMessageSerializer(many=True, allow_empty=False)

    def validate_messages(self, value):
        if value[-1]["role"] != Message.ROLE_USER:
            raise serializers.ValidationError("The last message must come from the user.")
        return value
