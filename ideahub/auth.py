# Auth module for local and Google accounts
# Provides password hashing, the per-request identity and the route guard

import base64
import logging
import os
import secrets
from typing import Any, Dict, Optional
from urllib.parse import urlencode

import requests
from cryptography.exceptions import InvalidKey
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC
from fastapi import Request
from google.auth.transport import requests as google_requests
from google.oauth2 import id_token

from ideahub.config import GOOGLE_AUTH_URL, GOOGLE_SCOPES, GOOGLE_TOKEN_URL, PASSWORD_ITERATIONS
from ideahub.errors import NotAuthenticated, UpstreamUnavailable
from ideahub.models import User

logger = logging.getLogger(__name__)

SESSION_KEY = "sid"
OAUTH_STATE_KEY = "oauth_state"

LOCAL = "local"
GOOGLE = "google"


# --- Password hashing ---

def _kdf(salt: bytes, iterations: int) -> PBKDF2HMAC:
    return PBKDF2HMAC(
        algorithm=hashes.SHA256(),
        length=32,
        salt=salt,
        iterations=iterations,
    )


def hash_password(password: str, iterations: int = PASSWORD_ITERATIONS) -> str:
    """Hash a password as pbkdf2_sha256$iterations$salt$hash."""
    salt = os.urandom(16)
    derived = _kdf(salt, iterations).derive(password.encode())
    return "pbkdf2_sha256${}${}${}".format(
        iterations,
        base64.urlsafe_b64encode(salt).decode(),
        base64.urlsafe_b64encode(derived).decode(),
    )


def verify_password(password: str, password_hash: Optional[str]) -> bool:
    """Constant-time check of a password against a stored hash."""
    if not password_hash:
        return False
    try:
        algorithm, iterations, salt_b64, hash_b64 = password_hash.split("$")
        if algorithm != "pbkdf2_sha256":
            return False
        salt = base64.urlsafe_b64decode(salt_b64)
        expected = base64.urlsafe_b64decode(hash_b64)
        _kdf(salt, int(iterations)).verify(password.encode(), expected)
        return True
    except (InvalidKey, ValueError):
        return False


# --- Identity ---

class UserInfo:
    """Represents an authenticated user, local or federated."""
    def __init__(self, uid: str, display_name: str, auth_method: str = LOCAL,
                 email: Optional[str] = None):
        self.uid = uid
        self.display_name = display_name
        self.auth_method = auth_method
        self.email = email

    @property
    def is_federated(self) -> bool:
        return self.auth_method == GOOGLE

    @classmethod
    def from_user(cls, user: User) -> "UserInfo":
        return cls(
            uid=user.id,
            display_name=user.username,
            auth_method=user.auth_method,
            email=user.email,
        )


async def get_current_user(request: Request) -> Optional[UserInfo]:
    """
    Resolve the session cookie into a UserInfo.
    Returns None if there is no valid session.
    """
    token = request.session.get(SESSION_KEY)
    if not token:
        return None

    services = request.app.state.services
    record = await services.sessions.get(token)
    if record is None:
        request.session.pop(SESSION_KEY, None)
        return None

    user = await services.users.get(record.get("user_id", ""))
    if user is None:
        logger.warning(f"Session references missing user {record.get('user_id')}")
        await services.sessions.delete(token)
        request.session.pop(SESSION_KEY, None)
        return None
    return UserInfo.from_user(user)


async def require_auth(request: Request) -> UserInfo:
    """
    Dependency that requires an established session.
    Raises NotAuthenticated, which the app turns into a redirect to /login.
    """
    user = await get_current_user(request)
    if user is None:
        raise NotAuthenticated("Authentication required")
    return user


async def start_session(request: Request, user: User) -> None:
    """Create a server-side session for the user and bind it to the cookie."""
    services = request.app.state.services
    previous = request.session.get(SESSION_KEY)
    if previous:
        await services.sessions.delete(previous)

    token = secrets.token_urlsafe(32)
    await services.sessions.create(token, user.id, user.auth_method)
    request.session[SESSION_KEY] = token
    logger.info(f"User {user.id} signed in ({user.auth_method})")


async def end_session(request: Request) -> None:
    token = request.session.get(SESSION_KEY)
    if token:
        await request.app.state.services.sessions.delete(token)
    request.session.clear()


# --- Google OAuth ---

class GoogleOAuth:
    """OAuth 2.0 authorization-code flow against Google."""

    def __init__(self, client_id: Optional[str], client_secret: Optional[str],
                 callback_url: Optional[str], timeout: float = 10.0):
        self.client_id = client_id
        self.client_secret = client_secret
        self.callback_url = callback_url
        self.timeout = timeout

    def is_enabled(self) -> bool:
        return bool(self.client_id and self.client_secret and self.callback_url)

    def authorization_url(self, state: str) -> str:
        params = {
            "client_id": self.client_id,
            "redirect_uri": self.callback_url,
            "response_type": "code",
            "scope": " ".join(GOOGLE_SCOPES),
            "state": state,
            "prompt": "select_account",
        }
        return f"{GOOGLE_AUTH_URL}?{urlencode(params)}"

    def exchange_code(self, code: str) -> Dict[str, Any]:
        """
        Exchange an authorization code for tokens and return the verified
        id_token claims (sub, email, name, ...).
        """
        try:
            response = requests.post(GOOGLE_TOKEN_URL, data={
                "code": code,
                "client_id": self.client_id,
                "client_secret": self.client_secret,
                "redirect_uri": self.callback_url,
                "grant_type": "authorization_code",
            }, timeout=self.timeout)
        except requests.RequestException as e:
            raise UpstreamUnavailable(f"Token exchange failed: {e}") from e

        if response.status_code != 200:
            raise UpstreamUnavailable(f"Token endpoint returned HTTP {response.status_code}")

        try:
            raw_token = response.json().get("id_token")
        except ValueError as e:
            raise UpstreamUnavailable("Token endpoint returned invalid JSON") from e
        if not raw_token:
            raise UpstreamUnavailable("Token response did not include an id_token")

        try:
            return id_token.verify_oauth2_token(raw_token, google_requests.Request(), self.client_id)
        except ValueError as e:
            raise UpstreamUnavailable(f"Invalid id_token: {e}") from e
