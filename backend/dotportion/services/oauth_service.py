# Copyright (c) 2025 DotPortion
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
OAuth Service

Google and GitHub sign-in. Exchanges the provider's authorization code,
upserts the user by email, and issues a session token.
"""

import re
import secrets
from typing import Any, Dict, Optional, Tuple
from urllib.parse import urlencode

import httpx
import jwt

from dotportion.core.config import Config
from dotportion.core.errors import (
    ConflictError,
    NotFoundError,
    ServiceUnavailableError,
    UnauthorizedError,
    ValidationError,
)
from dotportion.core.logging import get_service_logger
from dotportion.core.security import create_access_token
from dotportion.db.collections import USERS, WAITLISTS, get_collection
from dotportion.db.store import DocumentStore, DuplicateKeyError, utc_now
from dotportion.models.user import User, public_user
from dotportion.services.activity_logger import ActivityLogger
from dotportion.services.admin_service import AdminService

logger = get_service_logger("oauth")

GOOGLE_AUTH_URL = "https://accounts.google.com/o/oauth2/v2/auth"
GOOGLE_TOKEN_URL = "https://oauth2.googleapis.com/token"
GITHUB_AUTH_URL = "https://github.com/login/oauth/authorize"
GITHUB_TOKEN_URL = "https://github.com/login/oauth/access_token"
GITHUB_API_URL = "https://api.github.com"

PROVIDERS = ("google", "github")

# Attempts at a collision-free generated username
USERNAME_ATTEMPTS = 5


def generate_username(full_name: str) -> str:
    """Lower-cased name without whitespace plus 6 random hex chars."""
    return re.sub(r"\s+", "", full_name.lower()) + secrets.token_hex(3)


def sync_user_access_with_waitlist(user: Dict[str, Any], waitlist: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    """Mirror a waitlist entry's status into the user's access block."""
    if not waitlist:
        return user

    status = waitlist.get("status")
    now = utc_now()
    user["access"] = {
        "status": status,
        "source": waitlist.get("type"),
        "requested_at": waitlist.get("created_at") or now,
        "approved_at": now if status == "approved" else None,
        "rejected_at": now if status == "rejected" else None,
        "approved_by": None,
    }
    return user


def token_claims(user: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "userId": user["_id"],
        "email": user["email"],
        "name": user["name"],
        "role": user.get("role", "user"),
    }


class OAuthService:
    """
    Provider login flows.

    `transport` lets callers substitute the HTTP transport used for
    provider calls.
    """

    def __init__(
        self,
        store: DocumentStore,
        config: Config,
        admin_service: AdminService,
        activity: ActivityLogger,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        self.users = get_collection(store, USERS)
        self.waitlists = get_collection(store, WAITLISTS)
        self.config = config
        self.admin_service = admin_service
        self.activity = activity
        self.transport = transport
        self.base_url = config.base_url.rstrip("/")

    def _redirect_uri(self, provider: str) -> str:
        return f"{self.base_url}/auth/oauth/{provider}/callback"

    def _client(self, **kwargs) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self.config.http_timeout, transport=self.transport, **kwargs)

    # =========================================================================
    # Authorize URLs
    # =========================================================================

    def get_google_auth_url(self) -> str:
        client_id, _ = self.config.get_google_credentials()
        query = urlencode({
            "client_id": client_id,
            "redirect_uri": self._redirect_uri("google"),
            "response_type": "code",
            "scope": "openid email profile",
            "access_type": "offline",
        })
        return f"{GOOGLE_AUTH_URL}?{query}"

    def get_github_auth_url(self) -> str:
        client_id, _ = self.config.get_github_credentials()
        query = urlencode({
            "client_id": client_id,
            "redirect_uri": self._redirect_uri("github"),
            "scope": "user:email",
        })
        return f"{GITHUB_AUTH_URL}?{query}"

    def get_auth_url(self, provider: str) -> str:
        if provider == "google":
            return self.get_google_auth_url()
        if provider == "github":
            return self.get_github_auth_url()
        raise NotFoundError("OAuth provider", provider)

    # =========================================================================
    # Callbacks
    # =========================================================================

    async def handle_callback(self, provider: str, code: Optional[str]) -> Dict[str, Any]:
        if not code:
            raise ValidationError("Authorization code is required", field="code")
        handlers = {
            "google": self.handle_google_callback,
            "github": self.handle_github_callback,
        }
        if provider not in handlers:
            raise NotFoundError("OAuth provider", provider)

        try:
            return await handlers[provider](code)
        except (httpx.HTTPError, jwt.PyJWTError) as e:
            logger.error(f"{provider} OAuth exchange failed: {e}")
            raise ServiceUnavailableError(f"{provider} OAuth exchange failed", service=provider)

    async def handle_google_callback(self, code: str) -> Dict[str, Any]:
        client_id, client_secret = self.config.get_google_credentials()

        async with self._client() as client:
            response = await client.post(
                GOOGLE_TOKEN_URL,
                data={
                    "code": code,
                    "client_id": client_id,
                    "client_secret": client_secret,
                    "redirect_uri": self._redirect_uri("google"),
                    "grant_type": "authorization_code",
                }
            )
            response.raise_for_status()

        id_token = response.json().get("id_token")
        if not id_token:
            raise UnauthorizedError("Google did not return an id_token")

        # Received directly from Google's token endpoint over TLS
        claims = jwt.decode(id_token, options={"verify_signature": False})
        email = claims.get("email")
        if not email:
            raise UnauthorizedError("Google account has no email")

        return await self.upsert_oauth_user(
            email,
            claims.get("name") or email.split("@")[0],
            claims.get("picture"),
            "google"
        )

    async def handle_github_callback(self, code: str) -> Dict[str, Any]:
        client_id, client_secret = self.config.get_github_credentials()

        async with self._client() as client:
            token_response = await client.post(
                GITHUB_TOKEN_URL,
                json={"client_id": client_id, "client_secret": client_secret, "code": code},
                headers={"Accept": "application/json"}
            )
            token_response.raise_for_status()
            access_token = token_response.json().get("access_token")
            if not access_token:
                raise UnauthorizedError("GitHub did not return an access token")

            headers = {"Authorization": f"Bearer {access_token}"}
            profile_response = await client.get(f"{GITHUB_API_URL}/user", headers=headers)
            profile_response.raise_for_status()
            emails_response = await client.get(f"{GITHUB_API_URL}/user/emails", headers=headers)
            emails_response.raise_for_status()

        profile = profile_response.json()
        email = profile.get("email")
        if not email:
            primary = next((e for e in emails_response.json() if e.get("primary")), None)
            email = primary.get("email") if primary else None
        if not email:
            raise UnauthorizedError("GitHub account has no primary email")

        return await self.upsert_oauth_user(
            email,
            profile.get("name") or profile.get("login") or email.split("@")[0],
            profile.get("avatar_url"),
            "github"
        )

    # =========================================================================
    # Users
    # =========================================================================

    async def upsert_oauth_user(
        self,
        email: str,
        full_name: str,
        picture: Optional[str],
        provider: str
    ) -> Dict[str, Any]:
        """Create or refresh the user for an OAuth identity and issue a token."""
        email = email.strip().lower()
        user = await self.users.find_one({"email": email})
        is_new_user = user is None

        if is_new_user:
            user = await self._create_oauth_user(email, full_name, picture, provider)
            self.activity.create_log(user["_id"], "oauth-user-created", "info", {"email": email, "provider": provider})
        else:
            user = await self.users.update_one(
                {"_id": user["_id"]},
                {"is_verified": True, "is_new_user": False}
            )
            self.activity.create_log(user["_id"], "oauth-user-login", "info", {"email": email, "provider": provider})

        token = create_access_token(token_claims(user), expires_in_hours=self.config.jwt_expiry_hours)
        logger.info(f"OAuth login via {provider} for {email} (new={is_new_user})")
        return {"user": public_user(user), "token": token, "isNewUser": is_new_user}

    async def _create_oauth_user(
        self,
        email: str,
        full_name: str,
        picture: Optional[str],
        provider: str
    ) -> Dict[str, Any]:
        waitlist = await self.waitlists.find_one({"email": email})

        for attempt in range(USERNAME_ATTEMPTS):
            document = User(
                email=email,
                name=generate_username(full_name),
                full_name=full_name,
                picture=picture,
                auth_provider=provider,
                is_verified=True,
                is_new_user=True
            ).to_document()
            document = sync_user_access_with_waitlist(document, waitlist)
            try:
                user = await self.users.insert_one(document)
                break
            except DuplicateKeyError as e:
                if e.field != "name" or attempt == USERNAME_ATTEMPTS - 1:
                    raise
                logger.warning(f"Generated username collided, retrying ({attempt + 1})")

        if waitlist and waitlist.get("invited"):
            await self.admin_service.mark_invite_used(email)
        return user

    async def set_username(self, email: str, username: Optional[str]) -> Tuple[Dict[str, Any], str]:
        """
        Set the caller's username and refresh their token.

        Raises:
            ValidationError: No username given
            NotFoundError: Unknown user
            ConflictError: Username already taken
        """
        if not username or not username.strip():
            raise ValidationError("Username is required", field="username")
        username = username.strip().lower()

        user = await self.users.find_one({"email": email})
        if user is None:
            raise NotFoundError("User", email)

        taken = await self.users.find_one({"name": username})
        if taken and taken["_id"] != user["_id"]:
            raise ConflictError("Username is already taken", resource="users")

        user = await self.users.update_one(
            {"_id": user["_id"]},
            {"name": username, "is_new_user": False}
        )
        token = create_access_token(token_claims(user), expires_in_hours=self.config.jwt_expiry_hours)
        logger.info(f"Username set for {email}")
        return public_user(user), token
