"""
Test local accounts, sessions and Google sign-in
"""

import asyncio
from unittest.mock import MagicMock, patch
from urllib.parse import parse_qs, urlparse

import pytest

from fakes import TEST_PASSWORD, login
from ideahub.auth import GoogleOAuth, UserInfo, hash_password, verify_password
from ideahub.config import GOOGLE_AUTH_URL
from ideahub.errors import UpstreamUnavailable
from ideahub.models import User


class TestPasswordHashing:
    def test_round_trip(self):
        stored = hash_password("s3cret-pass", iterations=1000)
        assert stored.startswith("pbkdf2_sha256$1000$")
        assert verify_password("s3cret-pass", stored)
        assert not verify_password("wrong", stored)

    def test_salted(self):
        assert hash_password("same", iterations=1000) != hash_password("same", iterations=1000)

    def test_rejects_missing_or_malformed_hash(self):
        assert not verify_password("x", None)
        assert not verify_password("x", "garbage")
        assert not verify_password("x", "md5$1$abc$def")


class TestLocalLogin:
    def test_protected_route_redirects_to_login(self, client):
        response = client.get("/", follow_redirects=False)
        assert response.status_code == 303
        assert response.headers["location"] == "/login"

    def test_login_page_loads(self, client):
        response = client.get("/login")
        assert response.status_code == 200
        assert "Sign in with Google" in response.text

    def test_login_with_wrong_password(self, client, alice):
        response = client.post("/login", data={"username": "alice", "password": "nope"})
        assert response.status_code == 401
        assert "Invalid username or password" in response.text

    def test_login_unknown_user(self, client):
        response = client.post("/login", data={"username": "ghost", "password": TEST_PASSWORD})
        assert response.status_code == 401

    def test_login_shows_display_name(self, client, alice):
        login(client, "alice")
        response = client.get("/")
        assert response.status_code == 200
        assert "alice" in response.text

    def test_password_check_runs_in_worker_thread(self, client, alice):
        loops = []

        def check(password, password_hash):
            try:
                loops.append(asyncio.get_running_loop())
            except RuntimeError:
                loops.append(None)
            return verify_password(password, password_hash)

        with patch("ideahub.accounts.verify_password", side_effect=check):
            login(client, "alice")
        assert loops == [None]

    def test_logout_invalidates_session_token(self, client, alice, services):
        login(client, "alice")
        old_cookie = client.cookies.get("session")
        assert len(services.sessions.client.store) > 0

        response = client.get("/logout", follow_redirects=False)
        assert response.status_code == 303

        # replaying the old cookie no longer authenticates
        client.cookies.set("session", old_cookie)
        response = client.get("/", follow_redirects=False)
        assert response.status_code == 303
        assert response.headers["location"] == "/login"


class TestRegister:
    def test_register_creates_local_user_and_signs_in(self, client, services):
        response = client.post("/register", data={"username": "carol", "password": "long-enough"},
                               follow_redirects=False)
        assert response.status_code == 303

        user = asyncio.run(services.users.get_by_username("carol"))
        assert user.auth_method == "local"
        assert user.password_hash != "long-enough"
        assert verify_password("long-enough", user.password_hash)
        assert client.get("/", follow_redirects=False).status_code == 200

    def test_password_hashing_runs_in_worker_thread(self, client, services):
        loops = []

        def cheap_hash(password):
            try:
                loops.append(asyncio.get_running_loop())
            except RuntimeError:
                loops.append(None)
            return hash_password(password, iterations=1000)

        with patch("ideahub.accounts.hash_password", side_effect=cheap_hash):
            response = client.post("/register", data={"username": "erin", "password": "long-enough"},
                                   follow_redirects=False)
        assert response.status_code == 303
        assert loops == [None]

    def test_duplicate_username(self, client, alice):
        response = client.post("/register", data={"username": "alice", "password": "long-enough"})
        assert response.status_code == 400
        assert "already taken" in response.text

    def test_short_password(self, client):
        response = client.post("/register", data={"username": "dave", "password": "short"})
        assert response.status_code == 400


class TestGoogleLogin:
    def _start(self, client):
        response = client.get("/auth/google", follow_redirects=False)
        assert response.status_code == 303
        location = response.headers["location"]
        assert location.startswith(GOOGLE_AUTH_URL)
        return parse_qs(urlparse(location).query)["state"][0]

    def test_callback_creates_user_once(self, client, services):
        claims = {"sub": "g-123", "email": "ann@example.com", "name": "Ann"}
        with patch.object(services.google, "exchange_code", return_value=claims) as exchange:
            state = self._start(client)
            response = client.get(f"/auth/google/callback?code=abc&state={state}", follow_redirects=False)
            assert response.status_code == 303
            exchange.assert_called_once_with("abc")

            client.get("/logout")
            state = self._start(client)
            client.get(f"/auth/google/callback?code=def&state={state}", follow_redirects=False)

        user = asyncio.run(services.users.get_by_google_id("g-123"))
        assert user.auth_method == "google"
        assert user.username == "Ann"
        assert user.password_hash is None
        google_users = [k for k, v in services.users.client.store.items()
                        if k[0] == "users" and len(k) == 2 and v.get("google_id") == "g-123"]
        assert len(google_users) == 1

        page = client.get("/")
        assert page.status_code == 200
        assert "Ann" in page.text

    def test_state_mismatch_is_rejected(self, client, services):
        with patch.object(services.google, "exchange_code") as exchange:
            self._start(client)
            response = client.get("/auth/google/callback?code=abc&state=forged")
        assert response.status_code == 400
        exchange.assert_not_called()

    def test_exchange_failure(self, client, services):
        with patch.object(services.google, "exchange_code", side_effect=UpstreamUnavailable("down")):
            state = self._start(client)
            response = client.get(f"/auth/google/callback?code=abc&state={state}")
        assert response.status_code == 502

    def test_disabled_without_client_config(self, client, services):
        services.google.client_id = None
        response = client.get("/auth/google", follow_redirects=False)
        assert response.status_code == 503
        assert "not configured" in response.text


def test_user_info_tags_auth_method():
    local = UserInfo(uid="1", display_name="a")
    federated = UserInfo.from_user(User(id="2", username="b", auth_method="google", email="b@example.com"))
    assert not local.is_federated
    assert federated.is_federated
    assert federated.uid == "2"
    assert federated.display_name == "b"


class TestTokenExchange:
    def _oauth(self):
        return GoogleOAuth("client-id", "client-secret", "http://testserver/auth/google/callback")

    def test_verifies_id_token_against_client_id(self):
        response = MagicMock(status_code=200)
        response.json.return_value = {"id_token": "raw.jwt"}
        with patch("ideahub.auth.requests.post", return_value=response) as post, \
                patch("ideahub.auth.id_token.verify_oauth2_token", return_value={"sub": "g-1"}) as verify:
            claims = self._oauth().exchange_code("abc")

        assert claims == {"sub": "g-1"}
        assert post.call_args.kwargs["data"]["grant_type"] == "authorization_code"
        assert verify.call_args.args[0] == "raw.jwt"
        assert verify.call_args.args[2] == "client-id"

    def test_http_error_raises_upstream_unavailable(self):
        with patch("ideahub.auth.requests.post", return_value=MagicMock(status_code=400)):
            with pytest.raises(UpstreamUnavailable):
                self._oauth().exchange_code("abc")

    def test_invalid_token_raises_upstream_unavailable(self):
        response = MagicMock(status_code=200)
        response.json.return_value = {"id_token": "raw.jwt"}
        with patch("ideahub.auth.requests.post", return_value=response), \
                patch("ideahub.auth.id_token.verify_oauth2_token", side_effect=ValueError("bad audience")):
            with pytest.raises(UpstreamUnavailable):
                self._oauth().exchange_code("abc")
