# Configuration settings shared across the application

import logging
import os
import secrets
from dataclasses import dataclass
from typing import Optional

logger = logging.getLogger(__name__)

# Idea defaults
DEFAULT_CATEGORY = "General"
DEFAULT_STATUS = "Draft"

# Status labels offered by the forms (the stored value is free text)
STATUS_CHOICES = ["Draft", "In Progress", "Filming", "Editing", "Published"]

# Number of recent videos shown per channel
RECENT_VIDEO_LIMIT = 3

# Gemini
DEFAULT_MODEL = "gemini-2.0-flash"
DEFAULT_SUGGESTION_TEMP = 1.0
SUGGESTION_COUNT = 5

# YouTube Data API v3
YOUTUBE_SEARCH_URL = "https://www.googleapis.com/youtube/v3/search"
YOUTUBE_CHANNELS_URL = "https://www.googleapis.com/youtube/v3/channels"
YOUTUBE_VIDEOS_URL = "https://www.googleapis.com/youtube/v3/videos"
DEFAULT_YOUTUBE_TIMEOUT = 10.0

# Google OAuth 2.0 endpoints
GOOGLE_AUTH_URL = "https://accounts.google.com/o/oauth2/v2/auth"
GOOGLE_TOKEN_URL = "https://oauth2.googleapis.com/token"
GOOGLE_SCOPES = ["openid", "email", "profile"]

# Password hashing
PASSWORD_ITERATIONS = 480000
MIN_PASSWORD_LENGTH = 8

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def _env(name: str) -> Optional[str]:
    value = os.getenv(name, "").strip()
    return value or None


@dataclass
class Settings:
    """Runtime settings read from the environment."""
    youtube_api_key: Optional[str] = None
    gemini_api_key: Optional[str] = None
    gemini_model: str = DEFAULT_MODEL
    google_client_id: Optional[str] = None
    google_client_secret: Optional[str] = None
    google_callback_url: Optional[str] = None
    session_secret: Optional[str] = None
    youtube_timeout: float = DEFAULT_YOUTUBE_TIMEOUT
    log_level: str = "INFO"
    gcp_project: Optional[str] = None

    @classmethod
    def from_env(cls) -> "Settings":
        try:
            timeout = float(os.getenv("YOUTUBE_TIMEOUT_SECONDS", DEFAULT_YOUTUBE_TIMEOUT))
            if timeout <= 0:
                raise ValueError(timeout)
        except ValueError:
            logger.warning("Invalid YOUTUBE_TIMEOUT_SECONDS, using default")
            timeout = DEFAULT_YOUTUBE_TIMEOUT

        return cls(
            youtube_api_key=_env("YOUTUBE_API_KEY"),
            gemini_api_key=_env("GEMINI_API_KEY"),
            gemini_model=_env("GEMINI_MODEL") or DEFAULT_MODEL,
            google_client_id=_env("GOOGLE_CLIENT_ID"),
            google_client_secret=_env("GOOGLE_CLIENT_SECRET"),
            google_callback_url=_env("GOOGLE_CALLBACK_URL"),
            session_secret=_env("SESSION_SECRET"),
            youtube_timeout=timeout,
            log_level=(_env("LOG_LEVEL") or "INFO").upper(),
            gcp_project=_env("GOOGLE_CLOUD_PROJECT"),
        )

    def get_session_secret(self) -> str:
        """Return the cookie signing secret, generating a throwaway one if unset."""
        if not self.session_secret:
            logger.warning("SESSION_SECRET not set. Sessions will not survive a restart.")
            self.session_secret = secrets.token_urlsafe(32)
        return self.session_secret


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(level=getattr(logging, level, logging.INFO), format=LOG_FORMAT)
