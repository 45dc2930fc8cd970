import pytest
from django.contrib.auth import get_user_model
from django.core.cache import cache
from rest_framework.authtoken.models import Token
from rest_framework.test import APIClient

PASSWORD = "s3cure-Passw0rd!"


@pytest.fixture(autouse=True)
def isolated_settings(settings, tmp_path):
    cache.clear()
    settings.MEDIA_ROOT = str(tmp_path / "media")
    settings.DEBUG = False
    settings.CHAT_ALLOW_FALLBACK = False
    settings.ANTHROPIC_API_KEY = ""
    settings.OPENAI_API_KEY = ""
    settings.XAI_API_KEY = ""
    settings.GEMINI_API_KEY = ""
    settings.DEEPSEEK_API_KEY = ""
    yield
    cache.clear()


def make_user(email="alice@example.com", is_staff=False):
    User = get_user_model()
    return User.objects.create_user(username=email, email=email, password=PASSWORD, is_staff=is_staff)


def client_for(user):
    client = APIClient()
    token, _ = Token.objects.get_or_create(user=user)
    client.credentials(HTTP_AUTHORIZATION=f"Token {token.key}")
    return client


@pytest.fixture
def user(db):
    return make_user()


@pytest.fixture
def other_user(db):
    return make_user("bob@example.com")


@pytest.fixture
def staff_user(db):
    return make_user("admin@example.com", is_staff=True)


@pytest.fixture
def client(user):
    return client_for(user)


@pytest.fixture
def other_client(other_user):
    return client_for(other_user)


@pytest.fixture
def admin_client(staff_user):
    return client_for(staff_user)


@pytest.fixture
def anon_client():
    return APIClient()
