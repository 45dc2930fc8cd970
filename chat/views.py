from __future__ import annotations

import json
import logging

from django.conf import settings
from django.db.models import QuerySet
from django.http import StreamingHttpResponse
from django.shortcuts import get_object_or_404
from rest_framework import status
from rest_framework.permissions import AllowAny
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.views import APIView

from dashboard.models import FeatureFlag
from hobnob.params import query_int
from tools.models import ToolUsageLog
from tools.services import images

from .models import Conversation, Message, MessageFeedback
from .serializers import (
    ConversationHistorySerializer,
    ConversationSerializer,
    CreateFeedbackSerializer,
    CreateMessageSerializer,
    GuestChatSerializer,
    MessageFeedbackSerializer,
    MessageSerializer,
)
from .services import completion, intent
from .services.errors import AllProvidersFailed, ProviderError, describe_vendor_error
from .throttles import GuestRateThrottle, MessageRateThrottle

logger = logging.getLogger(__name__)

TITLE_MAX_CHARS = 50


def _owned_conversation(request: Request, pk: int) -> Conversation:
    return get_object_or_404(Conversation, pk=pk, owner=request.user)


def _fallback_allowed() -> bool:
    return settings.DEBUG or getattr(settings, "CHAT_ALLOW_FALLBACK", False)


def _context(conv: Conversation):
    """
    Split stored turns into (recent, history): the latest turns go to the
    provider verbatim, the few before them as truncated history.
    """
    window = completion.MAX_CONTEXT_MESSAGES + completion.MAX_HISTORY_MESSAGES
    rows = list(conv.messages.order_by("-sequence").values("role", "content")[:window])[::-1]
    split = max(len(rows) - completion.MAX_CONTEXT_MESSAGES, 0)
    return rows[split:], rows[:split]


def _auto_title(conv: Conversation, text: str) -> None:
    if conv.title != Conversation.DEFAULT_TITLE:
        return
    if conv.messages.filter(role=Message.ROLE_USER).count() != 1:
        return
    title = " ".join(text.split())[:TITLE_MAX_CHARS].strip()
    if title:
        Conversation.objects.filter(pk=conv.pk).update(title=title)


def _sse(payload: dict) -> str:
    return f"data: {json.dumps(payload)}\n\n"


class ConversationListCreateView(APIView):
    def get(self, request: Request) -> Response:
        qs: QuerySet[Conversation] = Conversation.objects.filter(
            owner=request.user, is_deleted=False
        ).order_by("-updated_at")
        limit = query_int(request, "limit", 20, maximum=100)
        offset = query_int(request, "offset", 0)
        items = qs[offset : offset + limit]
        data = ConversationSerializer(items, many=True).data
        return Response({"results": data, "count": qs.count(), "offset": offset, "limit": limit})

    def post(self, request: Request) -> Response:
        title = ((request.data or {}).get("title") or "").strip()
        conv = Conversation.objects.create(owner=request.user, title=title or Conversation.DEFAULT_TITLE)
        return Response(ConversationSerializer(conv).data, status=status.HTTP_201_CREATED)


class ConversationDetailView(APIView):
    def get(self, request: Request, pk: int) -> Response:
        conv = _owned_conversation(request, pk)
        return Response(ConversationSerializer(conv).data)

    def patch(self, request: Request, pk: int) -> Response:
        conv = _owned_conversation(request, pk)
        serializer = ConversationSerializer(conv, data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        serializer.save()
        return Response(serializer.data)

    def delete(self, request: Request, pk: int) -> Response:
        conv = _owned_conversation(request, pk)
        conv.delete()
        logger.info("Deleted conversation %s and its messages", pk)
        return Response(status=status.HTTP_204_NO_CONTENT)


class ConversationHistoryView(APIView):
    def get(self, request: Request) -> Response:
        qs = (
            Conversation.objects.filter(owner=request.user, is_deleted=False)
            .prefetch_related("messages__feedback")
            .order_by("-updated_at")
        )
        return Response({"results": ConversationHistorySerializer(qs, many=True).data})


class MessageListCreateView(APIView):
    throttle_classes = [MessageRateThrottle]

    def get(self, request: Request, pk: int) -> Response:
        conv = _owned_conversation(request, pk)
        since = query_int(request, "since", 0)
        limit = query_int(request, "limit", 50, maximum=200)
        qs = conv.messages.select_related("feedback")
        if since:
            qs = qs.filter(sequence__gt=since)
        qs = qs.order_by("sequence")[:limit]
        results = list(qs)
        return Response({
            "results": MessageSerializer(results, many=True).data,
            "lastSeq": (results[-1].sequence if results else since),
        })

    def post(self, request: Request, pk: int):
        conv = _owned_conversation(request, pk)
        serializer = CreateMessageSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        text: str = data["content"]

        # Persist user message
        user_msg = Message.objects.create(
            conversation=conv, role=Message.ROLE_USER, content=text, attachments=data["attachments"]
        )
        _auto_title(conv, text)

        detected = intent.analyze_message(text)
        if detected.has_image_intent and FeatureFlag.is_enabled(ToolUsageLog.TOOL_IMAGE) and images.is_configured():
            return self._reply_with_image(request, conv, user_msg, detected.image_prompt)

        recent, history = _context(conv)
        if data["stream"]:
            return self._stream(conv, user_msg, recent, history, data.get("provider"))

        try:
            reply = completion.generate_reply(recent, provider=data.get("provider"), history=history)
            content, provider = reply.text, reply.provider
        except AllProvidersFailed as e:
            if not _fallback_allowed():
                return Response({"detail": describe_vendor_error(e)}, status=status.HTTP_503_SERVICE_UNAVAILABLE)
            content, provider = completion.FALLBACK_MESSAGE, "fallback"

        ai_msg = Message.objects.create(conversation=conv, role=Message.ROLE_ASSISTANT, content=content, provider=provider)
        return Response({
            "user_message": MessageSerializer(user_msg).data,
            "assistant_message": MessageSerializer(ai_msg).data,
        }, status=status.HTTP_201_CREATED)

    def _reply_with_image(self, request: Request, conv: Conversation, user_msg: Message, prompt: str) -> Response:
        try:
            generation = images.generate_image(request.user, prompt, conversation=conv, message=user_msg)
        except images.ImageGenerationError as e:
            content = f"Sorry, I couldn't generate that image. {e}"
            attachments = []
            if e.generation is not None:
                attachments.append({"type": "image", "generation_id": e.generation.pk, "status": e.generation.status})
        else:
            content = f"Here's the image I generated for: {prompt}"
            attachments = [{
                "type": "image",
                "generation_id": generation.pk,
                "status": generation.status,
                "url": generation.public_url,
            }]
        ai_msg = Message.objects.create(
            conversation=conv,
            role=Message.ROLE_ASSISTANT,
            content=content,
            attachments=attachments,
            provider="openai",
        )
        return Response({
            "user_message": MessageSerializer(user_msg).data,
            "assistant_message": MessageSerializer(ai_msg).data,
        }, status=status.HTTP_201_CREATED)

    def _stream(self, conv: Conversation, user_msg: Message, recent, history, provider):
        try:
            used, chunks = completion.stream_reply(recent, provider=provider, history=history)
        except AllProvidersFailed as e:
            if not _fallback_allowed():
                return Response({"detail": describe_vendor_error(e)}, status=status.HTTP_503_SERVICE_UNAVAILABLE)
            used, chunks = "fallback", iter([completion.FALLBACK_MESSAGE])

        def events():
            parts = []
            try:
                for chunk in chunks:
                    parts.append(chunk)
                    yield _sse({"content": chunk, "provider": used})
            except ProviderError as e:
                logger.error("Stream from %s broke off: %s", used, e)
                yield _sse({"error": describe_vendor_error(e), "provider": used})
            if parts:
                ai_msg = Message.objects.create(
                    conversation=conv, role=Message.ROLE_ASSISTANT, content="".join(parts), provider=used
                )
                yield _sse({"done": True, "message_id": ai_msg.pk, "user_message_id": user_msg.pk})

        response = StreamingHttpResponse(events(), content_type="text/event-stream")
        response["Cache-Control"] = "no-cache"
        response["X-Accel-Buffering"] = "no"
        return response


class MessageFeedbackView(APIView):
    def post(self, request: Request, pk: int, message_id: int) -> Response:
        conv = _owned_conversation(request, pk)
        message = get_object_or_404(Message, pk=message_id, conversation=conv)
        if message.role != Message.ROLE_ASSISTANT:
            return Response({"detail": "Feedback is only allowed on assistant messages."}, status=status.HTTP_400_BAD_REQUEST)

        serializer = CreateFeedbackSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        payload = serializer.validated_data
        comment = payload.get("comment", "")

        feedback, created = MessageFeedback.objects.update_or_create(
            message=message,
            defaults={
                "is_helpful": payload["is_helpful"],
                "comment": comment,
            },
        )
        response_serializer = MessageFeedbackSerializer(feedback)
        return Response(
            response_serializer.data,
            status=status.HTTP_201_CREATED if created else status.HTTP_200_OK,
        )


class GuestChatView(APIView):
    permission_classes = [AllowAny]
    authentication_classes: list = []
    throttle_classes = [GuestRateThrottle]

    def post(self, request: Request) -> Response:
        serializer = GuestChatSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        messages = serializer.validated_data["messages"]

        try:
            reply = completion.generate_reply(messages)
        except AllProvidersFailed as e:
            return Response({"detail": describe_vendor_error(e)}, status=status.HTTP_503_SERVICE_UNAVAILABLE)

        return Response({
            "message": reply.text,
            "provider": reply.provider,
            "usage": reply.usage,
            "remaining": GuestRateThrottle().remaining(request, self),
        })
