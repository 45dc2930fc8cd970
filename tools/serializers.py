from rest_framework import serializers

from .models import DocumentConversion, ImageGeneration, NewsAnalysis, ToolUsageLog
from .services import documents


class ImageGenerationSerializer(serializers.ModelSerializer):
    class Meta:
        model = ImageGeneration
        fields = [
            "id", "kind", "prompt", "style", "aspect_ratio", "model_used", "status",
            "public_url", "error_message", "generation_time_ms", "file_size_bytes",
            "conversation", "message", "created_at", "completed_at",
        ]
        read_only_fields = fields


class CreateImageSerializer(serializers.Serializer):
    prompt = serializers.CharField(max_length=4000, trim_whitespace=True)
    aspect_ratio = serializers.ChoiceField(choices=ImageGeneration.ASPECT_RATIOS, required=False, default="1:1")
    conversation = serializers.IntegerField(required=False, allow_null=True)
    message = serializers.IntegerField(required=False, allow_null=True)


class CreateAvatarSerializer(serializers.Serializer):
    prompt = serializers.CharField(max_length=1000, trim_whitespace=True)
    style = serializers.CharField(max_length=50, required=False, allow_blank=True, default="")


class DocumentConversionSerializer(serializers.ModelSerializer):
    converted_file_name = serializers.CharField(read_only=True)

    class Meta:
        model = DocumentConversion
        fields = [
            "id", "original_file_name", "converted_file_name", "source_format", "target_format",
            "status", "error_message", "created_at", "completed_at", "expires_at",
        ]
        read_only_fields = fields


class CreateConversionSerializer(serializers.Serializer):
    file = serializers.FileField()
    target_format = serializers.ChoiceField(choices=documents.SUPPORTED_TARGETS)


class NewsAnalysisSerializer(serializers.ModelSerializer):
    class Meta:
        model = NewsAnalysis
        fields = [
            "id", "content", "source_url", "credibility_score", "credibility_level",
            "bias_level", "explanation", "sources", "provider", "created_at",
        ]
        read_only_fields = fields


class CreateNewsAnalysisSerializer(serializers.Serializer):
    content = serializers.CharField(required=False, allow_blank=True, trim_whitespace=True, default="")
    url = serializers.URLField(required=False, allow_blank=True, default="")

    def validate(self, attrs):
        if not attrs.get("content") and not attrs.get("url"):
            raise serializers.ValidationError("Provide text content or a URL to analyze.")
        return attrs


class ToolUsageLogSerializer(serializers.ModelSerializer):
    class Meta:
        model = ToolUsageLog
        fields = ["id", "tool_name", "usage_data", "success", "error_message", "created_at"]
        read_only_fields = fields


class CreateTranscriptionSerializer(serializers.Serializer):
    file = serializers.FileField()
