from __future__ import annotations

import logging

from django.contrib.auth import authenticate
from rest_framework import status
from rest_framework.authtoken.models import Token
from rest_framework.permissions import AllowAny
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.views import APIView

from .models import Profile, UserSettings
from .serializers import (
    ProfileSerializer,
    SignInSerializer,
    SignUpSerializer,
    UserSerializer,
    UserSettingsSerializer,
)

logger = logging.getLogger(__name__)


def _session_payload(user, token: Token) -> dict:
    return {"user": UserSerializer(user).data, "token": token.key}


class SignUpView(APIView):
    permission_classes = [AllowAny]
    authentication_classes: list = []

    def post(self, request: Request) -> Response:
        serializer = SignUpSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        user = serializer.save()
        token, _ = Token.objects.get_or_create(user=user)
        logger.info("User %s signed up", user.pk)
        return Response(_session_payload(user, token), status=status.HTTP_201_CREATED)


class SignInView(APIView):
    permission_classes = [AllowAny]
    authentication_classes: list = []

    def post(self, request: Request) -> Response:
        serializer = SignInSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        user = authenticate(request, username=data["email"], password=data["password"])
        if user is None:
            logger.info("Failed sign-in for %s", data["email"])
            return Response({"detail": "Invalid email or password."}, status=status.HTTP_400_BAD_REQUEST)
        token, _ = Token.objects.get_or_create(user=user)
        return Response(_session_payload(user, token))


class SignOutView(APIView):
    def post(self, request: Request) -> Response:
        Token.objects.filter(user=request.user).delete()
        return Response(status=status.HTTP_204_NO_CONTENT)


class MeView(APIView):
    def get(self, request: Request) -> Response:
        profile, _ = Profile.objects.get_or_create(user=request.user)
        prefs, _ = UserSettings.objects.get_or_create(user=request.user)
        return Response({
            "user": UserSerializer(request.user).data,
            "profile": ProfileSerializer(profile).data,
            "settings": UserSettingsSerializer(prefs).data,
        })


class ProfileView(APIView):
    def get(self, request: Request) -> Response:
        profile, _ = Profile.objects.get_or_create(user=request.user)
        return Response(ProfileSerializer(profile).data)

    def patch(self, request: Request) -> Response:
        profile, _ = Profile.objects.get_or_create(user=request.user)
        serializer = ProfileSerializer(profile, data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        serializer.save()
        return Response(serializer.data)


class UserSettingsView(APIView):
    def get(self, request: Request) -> Response:
        prefs, _ = UserSettings.objects.get_or_create(user=request.user)
        return Response(UserSettingsSerializer(prefs).data)

    def patch(self, request: Request) -> Response:
        prefs, _ = UserSettings.objects.get_or_create(user=request.user)
        serializer = UserSettingsSerializer(prefs, data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        serializer.save()
        return Response(serializer.data)


class AccountView(APIView):
    def delete(self, request: Request) -> Response:
        user_id = request.user.pk
        request.user.delete()
        logger.info("User %s deleted their account", user_id)
        return Response(status=status.HTTP_204_NO_CONTENT)
