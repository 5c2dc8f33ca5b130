# Error types raised by the idea and account services


class IdeaHubError(Exception):
    """Base class for application errors."""


class ValidationError(IdeaHubError):
    """A required field is missing or invalid."""


class NotFoundError(IdeaHubError):
    """The document does not exist or is not owned by the caller."""


class NotAuthenticated(IdeaHubError):
    """No session is established for the request."""


class UpstreamUnavailable(IdeaHubError):
    """An external API is unconfigured, unreachable, or returned an unexpected shape."""


class NoChannelOnRecord(IdeaHubError):
    """The idea has no YouTube channel or video to build a dashboard from."""

    def __init__(self, message: str, idea=None):
        super().__init__(message)
        self.idea = idea
