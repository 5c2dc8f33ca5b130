from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from ideahub.config import DEFAULT_CATEGORY, DEFAULT_STATUS


class Idea(BaseModel):
    """
    Represents a single content idea owned by a user.
    """
    id: Optional[str] = None
    title: str
    description: str
    category: str = DEFAULT_CATEGORY
    status: str = DEFAULT_STATUS
    created_at: Optional[str] = None
    updated_at: Optional[str] = None
    youtube_channel_id: Optional[str] = None
    youtube_video_id: Optional[str] = None
    is_ai_generated: bool = False
    owner_id: Optional[str] = None

    @classmethod
    def from_document(cls, doc_id: str, data: Dict[str, Any]) -> "Idea":
        return cls(id=doc_id, **{k: v for k, v in data.items() if k != "id"})


class User(BaseModel):
    """
    Represents one account, local or federated.
    """
    id: Optional[str] = None
    username: str
    password_hash: Optional[str] = None
    auth_method: str = "local"
    google_id: Optional[str] = None
    email: Optional[str] = None
    created_at: Optional[str] = None

    @classmethod
    def from_document(cls, doc_id: str, data: Dict[str, Any]) -> "User":
        return cls(id=doc_id, **{k: v for k, v in data.items() if k != "id"})


class Suggestion(BaseModel):
    title: str
    concept: str


class SuggestionBatch(BaseModel):
    """Response schema the generative model is constrained to."""
    suggestions: List[Suggestion]


class SuggestionResult(BaseModel):
    """
    Outcome of a brainstorm call. Callers must check `error` before
    reading `suggestions`.
    """
    suggestions: List[Suggestion] = Field(default_factory=list)
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None
