# Database module for Firestore operations
# Provides owner-scoped idea storage, user accounts and server-side sessions

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from google.api_core import exceptions as gcp_exceptions
from google.cloud import firestore
from google.cloud.firestore_v1.base_query import FieldFilter

from ideahub.errors import NotFoundError
from ideahub.models import Idea, User

logger = logging.getLogger(__name__)

USERS = "users"
IDEAS = "ideas"
SESSIONS = "sessions"


def create_client(project: Optional[str] = None) -> firestore.Client:
    """Create a Firestore client using Application Default Credentials."""
    if project:
        return firestore.Client(project=project)
    return firestore.Client()


def _now() -> str:
    return datetime.utcnow().isoformat()


class IdeaRepository:
    """
    Idea documents live under users/{owner_id}/ideas, so every operation
    is addressed through the owner's sub-collection.
    """

    def __init__(self, client):
        self.client = client

    def _collection(self, owner_id: str):
        if not owner_id:
            raise NotFoundError("Idea not found")
        return self.client.collection(USERS).document(owner_id).collection(IDEAS)

    async def add(self, owner_id: str, data: Dict[str, Any]) -> Idea:
        """Store a new idea and return it with its assigned id."""
        save_data = dict(data)
        save_data["owner_id"] = owner_id
        save_data.setdefault("created_at", _now())
        save_data.setdefault("updated_at", None)

        doc_ref = self._collection(owner_id).document()
        doc_ref.set(save_data)
        logger.info(f"Created idea {doc_ref.id} for user {owner_id}")
        return Idea.from_document(doc_ref.id, save_data)

    async def get(self, owner_id: str, idea_id: str) -> Idea:
        doc = self._collection(owner_id).document(idea_id).get()
        if not doc.exists:
            raise NotFoundError("Idea not found")
        return Idea.from_document(doc.id, doc.to_dict())

    async def list_all(self, owner_id: str) -> List[Idea]:
        """List all ideas for an owner, newest first."""
        ideas = [Idea.from_document(doc.id, doc.to_dict()) for doc in self._collection(owner_id).stream()]
        ideas.sort(key=lambda idea: idea.created_at or "", reverse=True)
        return ideas

    async def update(self, owner_id: str, idea_id: str, fields: Dict[str, Any]) -> None:
        """Replace the given fields in one write. Fails if the document is absent."""
        try:
            self._collection(owner_id).document(idea_id).update(fields)
        except gcp_exceptions.NotFound:
            raise NotFoundError("Idea not found")

    async def delete(self, owner_id: str, idea_id: str) -> None:
        doc_ref = self._collection(owner_id).document(idea_id)
        doc = doc_ref.get()
        if not doc.exists:
            raise NotFoundError("Idea not found")
        doc_ref.delete()
        logger.info(f"Deleted idea {idea_id} for user {owner_id}")


class UserRepository:
    """Local and federated user accounts."""

    def __init__(self, client):
        self.client = client

    def _find_one(self, **criteria: str) -> Optional[User]:
        query = self.client.collection(USERS)
        for field, value in criteria.items():
            query = query.where(filter=FieldFilter(field, "==", value))
        for doc in query.limit(1).stream():
            return User.from_document(doc.id, doc.to_dict())
        return None

    async def get(self, user_id: str) -> Optional[User]:
        doc = self.client.collection(USERS).document(user_id).get()
        if doc.exists:
            return User.from_document(doc.id, doc.to_dict())
        return None

    async def get_by_username(self, username: str) -> Optional[User]:
        """Look up a local account. Federated display names are not unique."""
        return self._find_one(username=username, auth_method="local")

    async def get_by_google_id(self, google_id: str) -> Optional[User]:
        return self._find_one(google_id=google_id, auth_method="google")

    async def create(self, data: Dict[str, Any]) -> User:
        save_data = dict(data)
        save_data.setdefault("created_at", _now())

        doc_ref = self.client.collection(USERS).document()
        doc_ref.set(save_data)
        logger.info(f"Created {save_data.get('auth_method', 'local')} user {doc_ref.id}")
        return User.from_document(doc_ref.id, save_data)

    async def upsert_google_user(self, google_id: str, display_name: str, email: Optional[str]) -> User:
        """Return the user with this Google id, creating it on first login."""
        existing = await self.get_by_google_id(google_id)
        if existing is not None:
            return existing
        return await self.create({
            "username": display_name,
            "auth_method": "google",
            "google_id": google_id,
            "email": email,
        })


class SessionRepository:
    """Server-side session records keyed by the opaque cookie token."""

    def __init__(self, client):
        self.client = client

    async def create(self, token: str, user_id: str, auth_method: str) -> None:
        self.client.collection(SESSIONS).document(token).set({
            "user_id": user_id,
            "auth_method": auth_method,
            "created_at": _now(),
        })

    async def get(self, token: str) -> Optional[Dict[str, Any]]:
        doc = self.client.collection(SESSIONS).document(token).get()
        if doc.exists:
            return doc.to_dict()
        return None

    async def delete(self, token: str) -> None:
        self.client.collection(SESSIONS).document(token).delete()
