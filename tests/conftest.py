import sys
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

# Add the project root to the path so imports work
sys.path.insert(0, str(Path(__file__).parent.parent))
sys.path.insert(0, str(Path(__file__).parent))

from fake_firestore import FakeFirestoreClient
from fakes import FakeSuggestions, FakeYouTube, login, make_user
from ideahub import database
from ideahub.auth import GoogleOAuth
from ideahub.config import Settings
from ideahub.ideas import IdeaService
from ideahub.services import AppServices
from ideahub.viewer import create_app


@pytest.fixture
def firestore_client():
    return FakeFirestoreClient()


@pytest.fixture
def youtube():
    return FakeYouTube()


@pytest.fixture
def suggestions():
    return FakeSuggestions()


@pytest.fixture
def services(firestore_client, youtube, suggestions):
    return AppServices(
        settings=Settings(session_secret="test-secret"),
        ideas=IdeaService(database.IdeaRepository(firestore_client), youtube),
        users=database.UserRepository(firestore_client),
        sessions=database.SessionRepository(firestore_client),
        youtube=youtube,
        suggestions=suggestions,
        google=GoogleOAuth("client-id", "client-secret", "http://testserver/auth/google/callback"),
    )


@pytest.fixture
def client(services):
    return TestClient(create_app(services=services))


@pytest.fixture
def alice(services):
    return make_user(services, "alice")


@pytest.fixture
def bob(services):
    return make_user(services, "bob")


@pytest.fixture
def alice_client(client, alice):
    login(client, "alice")
    return client
