# Service container built once per application and closed on shutdown

import logging
from dataclasses import dataclass

from ideahub import database
from ideahub.auth import GoogleOAuth
from ideahub.config import Settings
from ideahub.ideas import IdeaService
from ideahub.llm import SuggestionGenerator
from ideahub.youtube import YouTubeClient

logger = logging.getLogger(__name__)


@dataclass
class AppServices:
    settings: Settings
    ideas: IdeaService
    users: database.UserRepository
    sessions: database.SessionRepository
    youtube: YouTubeClient
    suggestions: SuggestionGenerator
    google: GoogleOAuth

    def close(self) -> None:
        self.youtube.close()
        logger.info("Services closed")


def build_services(settings: Settings, client=None) -> AppServices:
    """Wire repositories and API clients from settings."""
    if client is None:
        client = database.create_client(settings.gcp_project)

    youtube = YouTubeClient(api_key=settings.youtube_api_key, timeout=settings.youtube_timeout)
    return AppServices(
        settings=settings,
        ideas=IdeaService(database.IdeaRepository(client), youtube),
        users=database.UserRepository(client),
        sessions=database.SessionRepository(client),
        youtube=youtube,
        suggestions=SuggestionGenerator(api_key=settings.gemini_api_key, model_name=settings.gemini_model),
        google=GoogleOAuth(
            settings.google_client_id,
            settings.google_client_secret,
            settings.google_callback_url,
            timeout=settings.youtube_timeout,
        ),
    )
