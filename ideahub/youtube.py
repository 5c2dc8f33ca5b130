# YouTube Data API v3 client
# Every public method fails soft: errors are logged and turned into empty results

import logging
import re
from typing import Any, Dict, List, Optional
from urllib.parse import parse_qs, urlparse

import requests

from ideahub.config import (
    DEFAULT_YOUTUBE_TIMEOUT,
    RECENT_VIDEO_LIMIT,
    YOUTUBE_CHANNELS_URL,
    YOUTUBE_SEARCH_URL,
    YOUTUBE_VIDEOS_URL,
)
from ideahub.errors import UpstreamUnavailable

logger = logging.getLogger(__name__)

VIDEO_ID_PATTERN = re.compile(r"^[A-Za-z0-9_-]{11}$")


def extract_video_id(value: Optional[str]) -> Optional[str]:
    """
    Accept a bare video id or a YouTube URL and return the video id.

    Unrecognised input is returned stripped, so users can still store
    whatever they typed.
    """
    if not value:
        return None
    value = value.strip()
    if not value:
        return None
    if VIDEO_ID_PATTERN.match(value):
        return value

    parsed = urlparse(value if "://" in value else f"https://{value}")
    host = (parsed.hostname or "").lower()
    if host.endswith("youtu.be"):
        candidate = parsed.path.lstrip("/").split("/")[0]
        return candidate or value
    if "youtube.com" in host:
        query_id = parse_qs(parsed.query).get("v")
        if query_id:
            return query_id[0]
        parts = [p for p in parsed.path.split("/") if p]
        if len(parts) >= 2 and parts[0] in ("shorts", "embed", "live"):
            return parts[1]
    return value


def _thumbnail(snippet: Dict[str, Any]) -> Optional[str]:
    thumbnails = snippet.get("thumbnails") or {}
    for size in ("high", "medium", "default"):
        entry = thumbnails.get(size)
        if isinstance(entry, dict) and entry.get("url"):
            return entry["url"]
    return None


def _count(statistics: Dict[str, Any], key: str) -> int:
    try:
        return int(statistics.get(key, 0))
    except (TypeError, ValueError):
        return 0


class YouTubeClient:
    """Thin read-only wrapper over the YouTube Data API."""

    def __init__(self, api_key: Optional[str] = None, timeout: float = DEFAULT_YOUTUBE_TIMEOUT,
                 session: Optional[requests.Session] = None):
        self.api_key = api_key
        self.timeout = timeout
        self.session = session or requests.Session()
        if not api_key:
            logger.warning("YOUTUBE_API_KEY not found. YouTube enrichment will be disabled.")

    def is_enabled(self) -> bool:
        return bool(self.api_key)

    def close(self) -> None:
        self.session.close()

    def _get(self, url: str, params: Dict[str, Any]) -> Dict[str, Any]:
        if not self.api_key:
            raise UpstreamUnavailable("YouTube API key is not configured")

        query = dict(params)
        query["key"] = self.api_key
        try:
            response = self.session.get(url, params=query, timeout=self.timeout)
        except (requests.RequestException, ValueError) as e:
            raise UpstreamUnavailable(f"YouTube request failed: {e}") from e

        if response.status_code != 200:
            raise UpstreamUnavailable(f"YouTube returned HTTP {response.status_code}")

        try:
            payload = response.json()
        except ValueError as e:
            raise UpstreamUnavailable("YouTube returned invalid JSON") from e
        if not isinstance(payload, dict):
            raise UpstreamUnavailable("YouTube returned an unexpected payload")
        return payload

    def resolve_channel_id(self, name_query: Optional[str]) -> Optional[str]:
        """Find the id of the best-matching channel for a free-text name."""
        if not name_query or not name_query.strip():
            return None
        try:
            payload = self._get(YOUTUBE_SEARCH_URL, {
                "part": "snippet",
                "q": name_query.strip(),
                "type": "channel",
                "maxResults": 1,
            })
            items = payload.get("items") or []
            if not items:
                logger.info(f"No channel found for '{name_query}'")
                return None
            return items[0]["id"]["channelId"]
        except (UpstreamUnavailable, KeyError, TypeError, AttributeError) as e:
            logger.warning(f"Channel lookup failed for '{name_query}': {e}")
            return None

    def list_recent_videos(self, channel_id: Optional[str], limit: int = RECENT_VIDEO_LIMIT) -> List[Dict[str, Any]]:
        """Latest uploads of a channel, newest first."""
        if not channel_id:
            return []
        try:
            payload = self._get(YOUTUBE_SEARCH_URL, {
                "part": "snippet",
                "channelId": channel_id,
                "order": "date",
                "type": "video",
                "maxResults": limit,
            })
            videos = []
            for item in payload.get("items") or []:
                snippet = item.get("snippet") or {}
                videos.append({
                    "title": snippet.get("title", ""),
                    "video_id": item["id"]["videoId"],
                    "thumbnail_url": _thumbnail(snippet),
                })
            return videos[:limit]
        except (UpstreamUnavailable, KeyError, TypeError, AttributeError) as e:
            logger.warning(f"Recent videos lookup failed for channel {channel_id}: {e}")
            return []

    def get_channel_statistics(self, channel_id: Optional[str]) -> Dict[str, Any]:
        if not channel_id:
            return {}
        try:
            payload = self._get(YOUTUBE_CHANNELS_URL, {
                "part": "snippet,statistics",
                "id": channel_id,
            })
            items = payload.get("items") or []
            if not items:
                return {}
            snippet = items[0].get("snippet") or {}
            statistics = items[0].get("statistics") or {}
            return {
                "title": snippet.get("title", ""),
                "thumbnail_url": _thumbnail(snippet),
                "subscriber_count": _count(statistics, "subscriberCount"),
                "view_count": _count(statistics, "viewCount"),
                "video_count": _count(statistics, "videoCount"),
            }
        except (UpstreamUnavailable, KeyError, TypeError, AttributeError) as e:
            logger.warning(f"Channel statistics failed for {channel_id}: {e}")
            return {}

    def get_video_statistics(self, video_id: Optional[str]) -> Dict[str, Any]:
        if not video_id:
            return {}
        try:
            payload = self._get(YOUTUBE_VIDEOS_URL, {
                "part": "snippet,statistics",
                "id": video_id,
            })
            items = payload.get("items") or []
            if not items:
                return {}
            snippet = items[0].get("snippet") or {}
            statistics = items[0].get("statistics") or {}
            return {
                "title": snippet.get("title", ""),
                "published_at": snippet.get("publishedAt"),
                "view_count": _count(statistics, "viewCount"),
                "like_count": _count(statistics, "likeCount"),
                "comment_count": _count(statistics, "commentCount"),
            }
        except (UpstreamUnavailable, KeyError, TypeError, AttributeError) as e:
            logger.warning(f"Video statistics failed for {video_id}: {e}")
            return {}
