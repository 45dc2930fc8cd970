from rest_framework import serializers

from .models import FeatureFlag


class FeatureFlagSerializer(serializers.ModelSerializer):
    class Meta:
        model = FeatureFlag
        fields = ["key", "name", "description", "category", "enabled", "updated_at"]
        read_only_fields = ["key", "category", "updated_at"]


class UpdateFeatureFlagSerializer(serializers.Serializer):
    enabled = serializers.BooleanField()
