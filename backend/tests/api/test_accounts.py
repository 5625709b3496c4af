# Copyright (c) 2025 DotPortion
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
API tests for account routes: users, access requests, admin invites,
feedback, OAuth and the Cognito trigger
"""

from unittest.mock import AsyncMock
from urllib.parse import parse_qs, urlparse

import httpx
import jwt
import pytest

from dotportion.core.security import create_access_token, decode_token
from dotportion.db.collections import ACTIVITY_LOGS, FEEDBACK, USERS, WAITLISTS, get_collection


@pytest.fixture
def collection(client, run):
    """Read helper: all documents of a collection"""
    def _collection(name, query=None):
        return run(get_collection(client.app.state.store, name).find, query)
    return _collection


def test_health(client):
    assert client.get("/health").json()["status"] == "ok"


class TestAuthentication:
    """Bearer token handling shared by protected routes"""

    def test_missing_token(self, client):
        response = client.get("/users/me")

        assert response.status_code == 401
        assert response.json() == {"error": "UNAUTHORIZED", "message": "No token provided"}

    def test_invalid_token(self, client):
        response = client.get("/users/me", headers={"Authorization": "Bearer not-a-token"})

        assert response.status_code == 401
        assert response.json()["message"].startswith("Invalid token")

    def test_token_without_user_id(self, client):
        token = create_access_token({"email": "ada@example.com"})

        response = client.get("/users/me", headers={"Authorization": f"Bearer {token}"})

        assert response.status_code == 401


class TestUsers:
    """Test /users/me routes"""

    def test_get_me(self, client, make_user, headers_for):
        user = make_user(cognito_sub="sub-123")

        data = client.get("/users/me", headers=headers_for(user)).json()

        assert data["_id"] == user["_id"]
        assert data["email"] == "ada@example.com"
        assert "cognito_sub" not in data

    def test_unknown_user(self, client, headers_for):
        ghost = {"_id": "missing", "email": "ghost@example.com", "name": "ghost"}
        assert client.get("/users/me", headers=headers_for(ghost)).status_code == 404

    def test_update_profile_merges(self, client, make_user, headers_for):
        user = make_user()
        headers = headers_for(user)
        client.patch("/users/me", json={"profile": {"contact_number": "555"}}, headers=headers)

        response = client.patch(
            "/users/me",
            json={"full_name": "Ada King", "profile": {"tools": ["n8n"]}},
            headers=headers,
        )

        assert response.status_code == 200
        body = response.json()
        assert body["message"] == "Profile updated successfully."
        assert body["user"]["full_name"] == "Ada King"
        assert body["user"]["profile"]["tools"] == ["n8n"]
        assert body["user"]["profile"]["contact_number"] == "555"

    def test_update_profile_requires_data(self, client, make_user, headers_for):
        response = client.patch("/users/me", json={}, headers=headers_for(make_user()))

        assert response.status_code == 400
        assert response.json()["error"] == "VALIDATION_FAILED"

    def test_update_profile_logs_activity(self, client, run, make_user, headers_for, collection):
        user = make_user()
        client.patch("/users/me", json={"full_name": "Ada King"}, headers=headers_for(user))
        run(client.app.state.activity.flush)

        logs = collection(ACTIVITY_LOGS, {"action": "update-profile"})

        assert logs[0]["user_id"] == user["_id"]
        assert logs[0]["metadata"]["request"]["full_name"] == "Ada King"

    def test_theme(self, client, make_user, headers_for):
        headers = headers_for(make_user())

        response = client.put("/users/me/theme", json={"theme": "dark"}, headers=headers)

        assert response.status_code == 201
        assert response.json()["theme"] == "dark"
        assert client.put("/users/me/theme", json={"theme": "blue"}, headers=headers).status_code == 400

    def test_tours(self, client, make_user, headers_for):
        headers = headers_for(make_user())

        assert client.get("/users/me/tours", headers=headers).json() == {"tours": {}, "isNewUser": True}

        response = client.put("/users/me/tours", json={"tourKey": "dashboard"}, headers=headers)

        assert response.json()["tours"] == {"dashboard": True}

    def test_tour_key_required(self, client, make_user, headers_for):
        response = client.put("/users/me/tours", json={"completed": True}, headers=headers_for(make_user()))

        assert response.status_code == 400
        assert response.json()["message"] == "tourKey is required"


class TestAccess:
    """Test POST /access/request"""

    def test_new_request(self, client, make_user, headers_for, collection):
        user = make_user()

        data = client.post("/access/request", headers=headers_for(user)).json()

        assert data["message"] == "Access request submitted"
        assert data["access"]["status"] == "requested"
        assert data["waitlist"]["status"] == "requested"
        assert collection(WAITLISTS)[0]["email"] == "ada@example.com"

    def test_repeat_request(self, client, make_user, headers_for):
        headers = headers_for(make_user())
        client.post("/access/request", headers=headers)

        data = client.post("/access/request", headers=headers).json()

        assert data["message"] == "Access already requested"

    def test_approved_waitlist(self, client, run, make_user, headers_for):
        waitlists = get_collection(client.app.state.store, WAITLISTS)
        run(waitlists.insert_one, {"email": "ada@example.com", "status": "approved", "type": "waitlist"})

        data = client.post("/access/request", headers=headers_for(make_user())).json()

        assert data["message"] == "Access approved"
        assert data["access"]["approved_at"] is not None


class TestAdminInvite:
    """Test POST /admin/invite"""

    @pytest.fixture(autouse=True)
    def mail(self, client):
        client.app.state.email_service.send = AsyncMock()
        return client.app.state.email_service.send

    def test_invite(self, client, make_user, headers_for, mail):
        admin = make_user(email="root@example.com", name="root", role="admin")

        data = client.post("/admin/invite", json={"email": " New@Example.com "}, headers=headers_for(admin)).json()

        assert data["success"] is True
        assert data["inviteLink"] == "http://frontend.test/auth/signin"
        assert data["waitlist"]["email"] == "new@example.com"
        assert data["waitlist"]["status"] == "approved"
        assert mail.await_args.args[0] == "new@example.com"
        assert "http://frontend.test/auth/signin" in mail.await_args.args[2]

    def test_already_invited(self, client, make_user, headers_for, mail):
        headers = headers_for(make_user(email="root@example.com", name="root", role="admin"))
        client.post("/admin/invite", json={"email": "new@example.com"}, headers=headers)

        data = client.post("/admin/invite", json={"email": "new@example.com"}, headers=headers).json()

        assert data == {"alreadyInvited": True, "message": "This email is already invited."}
        assert mail.await_count == 1

    def test_admin_only(self, client, make_user, headers_for, mail):
        response = client.post("/admin/invite", json={"email": "x@example.com"}, headers=headers_for(make_user()))

        assert response.status_code == 403
        mail.assert_not_awaited()

    def test_email_required(self, client, make_user, headers_for):
        headers = headers_for(make_user(email="root@example.com", name="root", role="admin"))

        response = client.post("/admin/invite", json={}, headers=headers)

        assert response.status_code == 400

    def test_mail_failure(self, client, make_user, headers_for, mail):
        from dotportion.core.errors import ServiceUnavailableError

        mail.side_effect = ServiceUnavailableError("Email delivery failed", service="smtp")
        headers = headers_for(make_user(email="root@example.com", name="root", role="admin"))

        response = client.post("/admin/invite", json={"email": "x@example.com"}, headers=headers)

        assert response.status_code == 500
        assert response.json()["message"] == "Failed to send invite."


class TestFeedback:
    """Test POST /feedback"""

    def test_idea(self, client, make_user, headers_for, collection):
        user = make_user()

        response = client.post("/feedback", json={"type": "idea", "message": "Dark mode"}, headers=headers_for(user))

        assert response.status_code == 201
        body = response.json()
        assert body["message"] == "Feedback submitted successfully."
        assert body["data"]["user"] == user["_id"]
        assert body["data"]["status"] == "open"
        assert collection(FEEDBACK)[0]["message"] == "Dark mode"

    def test_issue(self, client, make_user, headers_for):
        issue = {
            "type": "issue",
            "message": "Run hangs",
            "project": "p1",
            "service": "workflows",
            "severity": "high",
            "subject": "Stuck execution",
        }

        response = client.post("/feedback", json=issue, headers=headers_for(make_user()))

        assert response.status_code == 201
        assert response.json()["data"]["severity"] == "high"

    def test_invalid_issue(self, client, make_user, headers_for):
        response = client.post(
            "/feedback",
            json={"type": "issue", "message": "Run hangs"},
            headers=headers_for(make_user()),
        )

        assert response.status_code == 400
        body = response.json()
        assert body["error"] == "VALIDATION_FAILED"
        assert {tuple(e["path"])[-1] for e in body["errors"]} >= {"project", "service", "severity", "subject"}

    def test_unknown_type(self, client, make_user, headers_for):
        response = client.post("/feedback", json={"type": "praise", "message": "hi"}, headers=headers_for(make_user()))
        assert response.status_code == 400


class TestCognitoTrigger:
    """Test POST /triggers/cognito/post-confirmation"""

    def event(self, source="PostConfirmation_ConfirmSignUp", email="grace@example.com"):
        return {
            "triggerSource": source,
            "request": {"userAttributes": {
                "sub": "sub-42",
                "email": email,
                "given_name": "Grace",
                "family_name": "Hopper",
            }},
        }

    def test_creates_user(self, client, collection):
        event = self.event()

        response = client.post("/triggers/cognito/post-confirmation", json=event)

        assert response.json() == event
        users = collection(USERS)
        assert users[0]["email"] == "grace@example.com"
        assert users[0]["name"] == "grace"
        assert users[0]["full_name"] == "Hopper Grace"
        assert users[0]["is_verified"] is True

    def test_other_source_ignored(self, client, collection):
        event = self.event(source="PostConfirmation_ConfirmForgotPassword")

        assert client.post("/triggers/cognito/post-confirmation", json=event).json() == event
        assert collection(USERS) == []

    def test_existing_user_still_echoed(self, client, make_user, collection):
        make_user(email="grace@example.com", name="grace")
        event = self.event()

        assert client.post("/triggers/cognito/post-confirmation", json=event).json() == event
        assert len(collection(USERS)) == 1


class TestOAuth:
    """Test /auth routes"""

    @pytest.fixture
    def google(self, client, monkeypatch):
        monkeypatch.setenv("GOOGLE_CLIENT_ID", "google-client")
        monkeypatch.setenv("GOOGLE_CLIENT_SECRET", "google-secret")
        id_token = jwt.encode(
            {"email": "Ada@Example.com", "name": "Ada Lovelace", "picture": "http://img.test/ada.png"},
            "google-signing-key",
            algorithm="HS256",
        )

        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url.host == "oauth2.googleapis.com"
            return httpx.Response(200, json={"id_token": id_token})

        client.app.state.oauth_transport = httpx.MockTransport(handler)

    def test_redirect(self, client, monkeypatch):
        monkeypatch.setenv("GITHUB_CLIENT_ID", "gh-client")

        response = client.get("/auth/oauth/github", follow_redirects=False)

        assert response.status_code == 302
        location = urlparse(response.headers["location"])
        assert location.netloc == "github.com"
        assert parse_qs(location.query)["redirect_uri"] == ["http://api.test/auth/oauth/github/callback"]

    def test_unknown_provider(self, client):
        assert client.get("/auth/oauth/myspace", follow_redirects=False).status_code == 404

    def test_callback_requires_code(self, client):
        assert client.get("/auth/oauth/google/callback", follow_redirects=False).status_code == 400

    def test_google_callback_new_user(self, client, google, collection):
        response = client.get("/auth/oauth/google/callback", params={"code": "abc"}, follow_redirects=False)

        assert response.status_code == 302
        location = urlparse(response.headers["location"])
        assert f"{location.scheme}://{location.netloc}{location.path}" == "http://frontend.test/auth/success"
        query = parse_qs(location.query)
        assert query["new_user"] == ["true"]

        claims = decode_token(query["token"][0])
        user = collection(USERS)[0]
        assert claims["userId"] == user["_id"]
        assert user["email"] == "ada@example.com"
        assert user["auth_provider"] == "google"
        assert user["name"].startswith("adalovelace")

    def test_google_callback_existing_user(self, client, google, make_user):
        make_user()

        response = client.get("/auth/oauth/google/callback", params={"code": "abc"}, follow_redirects=False)

        query = parse_qs(urlparse(response.headers["location"]).query)
        assert query["new_user"] == ["false"]

    def test_provider_failure(self, client):
        client.app.state.oauth_transport = httpx.MockTransport(lambda request: httpx.Response(500))

        response = client.get("/auth/oauth/google/callback", params={"code": "abc"}, follow_redirects=False)

        assert response.status_code == 500
        assert response.json()["message"] == "OAuth callback failed"

    def test_set_username(self, client, make_user, headers_for):
        user = make_user()

        response = client.post("/auth/set-username", json={"username": " Countess "}, headers=headers_for(user))

        body = response.json()
        assert body["success"] is True
        assert body["user"]["name"] == "countess"
        assert body["user"]["is_new_user"] is False
        assert decode_token(body["token"])["name"] == "countess"

    def test_set_username_taken(self, client, make_user, headers_for):
        make_user(email="grace@example.com", name="grace")
        user = make_user()

        response = client.post("/auth/set-username", json={"username": "grace"}, headers=headers_for(user))

        assert response.status_code == 409

    def test_set_username_required(self, client, make_user, headers_for):
        response = client.post("/auth/set-username", json={}, headers=headers_for(make_user()))
        assert response.status_code == 400
