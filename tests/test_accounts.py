from django.contrib.auth import get_user_model
from rest_framework.authtoken.models import Token

from accounts.models import Profile, UserSettings
from chat.models import Conversation

PASSWORD = "s3cure-Passw0rd!"


def test_signup_creates_user_profile_and_token(anon_client, db):
    resp = anon_client.post(
        "/api/auth/signup/",
        data={"email": "New.User@Example.com", "password": PASSWORD, "full_name": "New User"},
        format="json",
    )
    assert resp.status_code == 201
    data = resp.json()
    assert data["user"]["email"] == "new.user@example.com"
    assert Token.objects.filter(key=data["token"]).exists()

    user = get_user_model().objects.get(email="new.user@example.com")
    assert Profile.objects.get(user=user).full_name == "New User"
    assert UserSettings.objects.filter(user=user).exists()


def test_signup_rejects_duplicate_email_and_weak_password(anon_client, user):
    dup = anon_client.post("/api/auth/signup/", data={"email": "ALICE@example.com", "password": PASSWORD}, format="json")
    assert dup.status_code == 400
    assert "email" in dup.json()

    weak = anon_client.post("/api/auth/signup/", data={"email": "weak@example.com", "password": "123"}, format="json")
    assert weak.status_code == 400


def test_signin_and_signout(anon_client, user):
    bad = anon_client.post("/api/auth/signin/", data={"email": "alice@example.com", "password": "wrong"}, format="json")
    assert bad.status_code == 400
    assert bad.json()["detail"] == "Invalid email or password."

    good = anon_client.post("/api/auth/signin/", data={"email": "Alice@Example.com", "password": PASSWORD}, format="json")
    assert good.status_code == 200
    token = good.json()["token"]

    anon_client.credentials(HTTP_AUTHORIZATION=f"Token {token}")
    assert anon_client.get("/api/auth/me/").status_code == 200
    assert anon_client.post("/api/auth/signout/").status_code == 204
    assert not Token.objects.filter(key=token).exists()
    assert anon_client.get("/api/auth/me/").status_code == 401


def test_me_returns_profile_and_settings(client, user):
    data = client.get("/api/auth/me/").json()
    assert data["user"]["id"] == user.id
    assert data["profile"]["username"] == ""
    assert data["settings"]["theme"] == "light"


def test_update_profile(client):
    resp = client.patch("/api/account/profile/", data={"full_name": "Alice A.", "username": "alice"}, format="json")
    assert resp.status_code == 200
    assert resp.json()["full_name"] == "Alice A."


def test_settings_patch_merges_preferences(client):
    client.patch("/api/account/settings/", data={"preferences": {"provider": "claude"}}, format="json")
    resp = client.patch(
        "/api/account/settings/",
        data={"theme": "dark", "preferences": {"stream": True}},
        format="json",
    )
    assert resp.status_code == 200
    data = resp.json()
    assert data["theme"] == "dark"
    assert data["preferences"] == {"provider": "claude", "stream": True}

    invalid = client.patch("/api/account/settings/", data={"theme": "neon"}, format="json")
    assert invalid.status_code == 400


def test_delete_account_removes_owned_rows(client, user):
    Conversation.objects.create(owner=user, title="Mine")
    resp = client.delete("/api/account/")
    assert resp.status_code == 204
    assert not get_user_model().objects.filter(id=user.id).exists()
    assert Conversation.objects.count() == 0
