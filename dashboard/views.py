from __future__ import annotations

import logging
from datetime import timedelta
from typing import Any, Dict

from django.conf import settings
from django.contrib.auth import get_user_model
from django.db.models import Count, Max, Q
from django.shortcuts import get_object_or_404
from django.utils import timezone
from rest_framework import status
from rest_framework.permissions import IsAdminUser
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.views import APIView

from chat.models import Conversation, Message, MessageFeedback
from chat.services import gemini
from tools.models import DocumentConversion, GenerationStatus, ImageGeneration, NewsAnalysis, ToolUsageLog

from .models import FeatureFlag
from .serializers import FeatureFlagSerializer, UpdateFeatureFlagSerializer

logger = logging.getLogger(__name__)

ACTIVE_WINDOW = timedelta(days=7)


def feedback_summary() -> Dict[str, Any]:
    feedback_qs = MessageFeedback.objects.select_related("conversation", "message")
    total = feedback_qs.count()
    helpful = feedback_qs.filter(is_helpful=True).count()
    not_helpful = total - helpful
    helpful_rate = helpful / total if total else 0.0

    per_conversation_raw = (
        feedback_qs.values("conversation_id", "conversation__title")
        .annotate(
            feedback_count=Count("id"),
            helpful_count=Count("id", filter=Q(is_helpful=True)),
            not_helpful_count=Count("id", filter=Q(is_helpful=False)),
            last_feedback_at=Max("created_at"),
        )
        .order_by("-feedback_count", "-last_feedback_at")[:20]
    )

    per_conversation = [
        {
            "conversation_id": row["conversation_id"],
            "title": row["conversation__title"],
            "feedback_count": row["feedback_count"],
            "helpful_count": row["helpful_count"],
            "not_helpful_count": row["not_helpful_count"],
            "helpful_rate": (
                row["helpful_count"] / row["feedback_count"] if row["feedback_count"] else 0.0
            ),
            "last_feedback_at": row["last_feedback_at"],
        }
        for row in per_conversation_raw
    ]

    recent_feedback = [
        {
            "id": fb.id,
            "conversation_id": fb.conversation_id,
            "message_id": fb.message_id,
            "title": fb.conversation.title,
            "is_helpful": fb.is_helpful,
            "comment": fb.comment,
            "created_at": fb.created_at,
            "message_preview": fb.message.content[:200],
            "provider": fb.message.provider,
        }
        for fb in feedback_qs.order_by("-created_at")[:10]
    ]

    per_provider = list(
        feedback_qs.values("message__provider")
        .annotate(
            feedback_count=Count("id"),
            helpful_count=Count("id", filter=Q(is_helpful=True)),
        )
        .order_by("-feedback_count")
    )

    return {
        "total_feedback": total,
        "helpful_count": helpful,
        "not_helpful_count": not_helpful,
        "helpful_rate": helpful_rate,
        "per_conversation": per_conversation,
        "per_provider": [
            {
                "provider": row["message__provider"] or "unknown",
                "feedback_count": row["feedback_count"],
                "helpful_count": row["helpful_count"],
            }
            for row in per_provider
        ],
        "recent_feedback": recent_feedback,
    }


class MetricsView(APIView):
    permission_classes = [IsAdminUser]

    def get(self, request: Request) -> Response:
        User = get_user_model()
        since = timezone.now() - ACTIVE_WINDOW

        messages_by_provider = {
            row["provider"] or "unknown": row["count"]
            for row in Message.objects.filter(role=Message.ROLE_ASSISTANT)
            .values("provider")
            .annotate(count=Count("id"))
        }
        tool_usage = {
            row["tool_name"]: {
                "total": row["total"],
                "succeeded": row["succeeded"],
                "failed": row["total"] - row["succeeded"],
            }
            for row in ToolUsageLog.objects.values("tool_name").annotate(
                total=Count("id"), succeeded=Count("id", filter=Q(success=True))
            )
        }

        data = {
            "users": {
                "total": User.objects.count(),
                "active_last_7_days": User.objects.filter(last_login__gte=since).count(),
                "new_last_7_days": User.objects.filter(date_joined__gte=since).count(),
            },
            "conversations": {
                "total": Conversation.objects.count(),
                "archived": Conversation.objects.filter(is_deleted=True).count(),
            },
            "messages": {
                "total": Message.objects.count(),
                "last_7_days": Message.objects.filter(created_at__gte=since).count(),
                "by_provider": messages_by_provider,
            },
            "images": {
                "total": ImageGeneration.objects.count(),
                "completed": ImageGeneration.objects.filter(status=GenerationStatus.COMPLETED).count(),
                "failed": ImageGeneration.objects.filter(status=GenerationStatus.FAILED).count(),
            },
            "documents": {
                "total": DocumentConversion.objects.count(),
                "completed": DocumentConversion.objects.filter(status=GenerationStatus.COMPLETED).count(),
                "failed": DocumentConversion.objects.filter(status=GenerationStatus.FAILED).count(),
            },
            "news_analyses": NewsAnalysis.objects.count(),
            "tool_usage": tool_usage,
            "tool_calls_last_7_days": ToolUsageLog.objects.filter(created_at__gte=since).count(),
        }
        return Response(data)


class FeatureFlagListView(APIView):
    permission_classes = [IsAdminUser]

    def get(self, request: Request) -> Response:
        flags = FeatureFlag.objects.all()
        return Response({"results": FeatureFlagSerializer(flags, many=True).data})


class FeatureFlagDetailView(APIView):
    permission_classes = [IsAdminUser]

    def patch(self, request: Request, key: str) -> Response:
        flag = get_object_or_404(FeatureFlag, key=key)
        serializer = UpdateFeatureFlagSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        flag.enabled = serializer.validated_data["enabled"]
        flag.save(update_fields=["enabled", "updated_at"])
        logger.info("Feature flag %s set to %s by user %s", key, flag.enabled, request.user.pk)
        return Response(FeatureFlagSerializer(flag).data)


class InsightsView(APIView):
    permission_classes = [IsAdminUser]

    def get(self, request: Request) -> Response:
        return Response(feedback_summary())


class ActionableInsightsView(APIView):
    permission_classes = [IsAdminUser]

    def post(self, request: Request) -> Response:
        summary = feedback_summary()
        try:
            insights = gemini.generate_actionable_insights(summary)
        except gemini.GeminiServiceError as e:
            logger.error("Actionable insights failed: %s", e)
            if not settings.DEBUG:
                return Response({"detail": str(e)}, status=status.HTTP_502_BAD_GATEWAY)
            insights = f"(Gemini unavailable) {e}"
        return Response({"insights": insights, "summary": summary})
