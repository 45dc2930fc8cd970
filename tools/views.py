from __future__ import annotations

import logging

from django.shortcuts import get_object_or_404
from django.utils import timezone
from rest_framework import status
from rest_framework.parsers import FormParser, MultiPartParser
from rest_framework.permissions import IsAuthenticated
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.views import APIView

from chat.models import Conversation, Message
from chat.services.errors import ProviderError, describe_vendor_error
from dashboard.permissions import FeatureEnabled
from hobnob.params import query_int

from .models import DocumentConversion, ImageGeneration, NewsAnalysis, ToolUsageLog
from .serializers import (
    CreateAvatarSerializer,
    CreateConversionSerializer,
    CreateImageSerializer,
    CreateNewsAnalysisSerializer,
    CreateTranscriptionSerializer,
    DocumentConversionSerializer,
    ImageGenerationSerializer,
    NewsAnalysisSerializer,
    ToolUsageLogSerializer,
)
from .services import documents, images, news, transcription

logger = logging.getLogger(__name__)


def image_error_response(error: images.ImageGenerationError) -> Response:
    if isinstance(error, images.ImageProviderNotConfigured):
        return Response({"detail": str(error)}, status=status.HTTP_503_SERVICE_UNAVAILABLE)
    body = {"detail": str(error)}
    if error.generation is not None:
        body["generation"] = ImageGenerationSerializer(error.generation).data
    return Response(body, status=status.HTTP_502_BAD_GATEWAY)


class ImageGenerationListCreateView(APIView):
    feature_flag = ToolUsageLog.TOOL_IMAGE
    permission_classes = [IsAuthenticated, FeatureEnabled]

    def get(self, request: Request) -> Response:
        qs = ImageGeneration.objects.filter(owner=request.user)
        if request.query_params.get("status"):
            qs = qs.filter(status=request.query_params["status"])
        if request.query_params.get("kind"):
            qs = qs.filter(kind=request.query_params["kind"])
        limit = query_int(request, "limit", 20, maximum=100)
        return Response({"results": ImageGenerationSerializer(qs[:limit], many=True).data, "count": qs.count()})

    def post(self, request: Request) -> Response:
        serializer = CreateImageSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        conversation = None
        message = None
        if data.get("conversation"):
            conversation = get_object_or_404(Conversation, pk=data["conversation"], owner=request.user)
        if data.get("message"):
            message = get_object_or_404(Message, pk=data["message"], conversation__owner=request.user)

        try:
            generation = images.generate_image(
                request.user,
                data["prompt"],
                aspect_ratio=data["aspect_ratio"],
                conversation=conversation,
                message=message,
            )
        except images.ImageGenerationError as e:
            return image_error_response(e)
        return Response(ImageGenerationSerializer(generation).data, status=status.HTTP_201_CREATED)


class ImageGenerationDetailView(APIView):
    def get(self, request: Request, pk: int) -> Response:
        generation = get_object_or_404(ImageGeneration, pk=pk, owner=request.user)
        return Response(ImageGenerationSerializer(generation).data)


class AvatarCreateView(APIView):
    feature_flag = ToolUsageLog.TOOL_AVATAR
    permission_classes = [IsAuthenticated, FeatureEnabled]

    def get(self, request: Request) -> Response:
        qs = ImageGeneration.objects.filter(owner=request.user, kind=ImageGeneration.KIND_AVATAR)
        limit = query_int(request, "limit", 20, maximum=100)
        return Response({"results": ImageGenerationSerializer(qs[:limit], many=True).data, "count": qs.count()})

    def post(self, request: Request) -> Response:
        serializer = CreateAvatarSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        try:
            generation = images.generate_image(
                request.user,
                data["prompt"],
                kind=ImageGeneration.KIND_AVATAR,
                style=data["style"],
            )
        except images.ImageGenerationError as e:
            return image_error_response(e)
        return Response(ImageGenerationSerializer(generation).data, status=status.HTTP_201_CREATED)


class DocumentConversionListCreateView(APIView):
    feature_flag = ToolUsageLog.TOOL_DOCUMENT
    permission_classes = [IsAuthenticated, FeatureEnabled]
    parser_classes = [MultiPartParser, FormParser]

    def get(self, request: Request) -> Response:
        qs = DocumentConversion.objects.filter(owner=request.user, expires_at__gt=timezone.now())
        limit = query_int(request, "limit", 20, maximum=100)
        return Response({"results": DocumentConversionSerializer(qs[:limit], many=True).data, "count": qs.count()})

    def post(self, request: Request) -> Response:
        serializer = CreateConversionSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        upload = serializer.validated_data["file"]
        target = serializer.validated_data["target_format"]

        try:
            conversion = documents.convert_document(request.user, upload, target)
        except documents.ConversionError as e:
            return Response({"detail": f"Conversion failed: {e}"}, status=status.HTTP_400_BAD_REQUEST)

        return Response({
            "conversion": DocumentConversionSerializer(conversion).data,
            "download_url": documents.download_url(conversion),
            "original_file_name": conversion.original_file_name,
            "converted_file_name": conversion.converted_file_name,
        }, status=status.HTTP_201_CREATED)


class NewsAnalysisListCreateView(APIView):
    feature_flag = ToolUsageLog.TOOL_NEWS
    permission_classes = [IsAuthenticated, FeatureEnabled]

    def get(self, request: Request) -> Response:
        qs = NewsAnalysis.objects.filter(owner=request.user)
        limit = query_int(request, "limit", 20, maximum=100)
        return Response({"results": NewsAnalysisSerializer(qs[:limit], many=True).data, "count": qs.count()})

    def post(self, request: Request) -> Response:
        serializer = CreateNewsAnalysisSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        try:
            analysis = news.analyze(request.user, content=data["content"], url=data["url"])
        except ProviderError as e:
            return Response({"detail": describe_vendor_error(e)}, status=status.HTTP_502_BAD_GATEWAY)
        except news.NewsAnalysisError as e:
            return Response({"detail": str(e)}, status=status.HTTP_502_BAD_GATEWAY)
        return Response(NewsAnalysisSerializer(analysis).data, status=status.HTTP_201_CREATED)


class TranscriptionCreateView(APIView):
    feature_flag = ToolUsageLog.TOOL_TRANSCRIPTION
    permission_classes = [IsAuthenticated, FeatureEnabled]
    parser_classes = [MultiPartParser, FormParser]

    def post(self, request: Request) -> Response:
        serializer = CreateTranscriptionSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        try:
            transcript = transcription.transcribe(request.user, serializer.validated_data["file"])
        except transcription.InvalidAudio as e:
            return Response({"detail": str(e)}, status=status.HTTP_400_BAD_REQUEST)
        except transcription.TranscriptionNotConfigured as e:
            return Response({"detail": str(e)}, status=status.HTTP_503_SERVICE_UNAVAILABLE)
        except transcription.TranscriptionError as e:
            return Response({"detail": str(e)}, status=status.HTTP_502_BAD_GATEWAY)
        return Response({"text": transcript.text, "duration": transcript.duration, "model": transcript.model})


class ToolUsageListView(APIView):
    def get(self, request: Request) -> Response:
        qs = ToolUsageLog.objects.filter(user=request.user)
        if request.query_params.get("tool"):
            qs = qs.filter(tool_name=request.query_params["tool"])
        limit = query_int(request, "limit", 50, maximum=200)
        return Response({"results": ToolUsageLogSerializer(qs[:limit], many=True).data, "count": qs.count()})
