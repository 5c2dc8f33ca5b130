from __future__ import annotations

import asyncio
import logging
from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

from ideahub.config import DEFAULT_CATEGORY, DEFAULT_STATUS, RECENT_VIDEO_LIMIT
from ideahub.errors import NoChannelOnRecord, ValidationError
from ideahub.models import Idea
from ideahub.youtube import extract_video_id

logger = logging.getLogger(__name__)


@dataclass
class IdeaCard:
    idea: Idea
    recent_videos: List[Dict[str, Any]] = field(default_factory=list)


@dataclass
class IdeaDashboard:
    idea: Idea
    channel_stats: Dict[str, Any] = field(default_factory=dict)
    recent_videos: List[Dict[str, Any]] = field(default_factory=list)
    video_stats: Dict[str, Any] = field(default_factory=dict)


@dataclass
class GlobalDashboard:
    ideas: List[Idea]
    channels: List[Dict[str, Any]]
    status_counts: Dict[str, int]

    @property
    def total(self) -> int:
        return len(self.ideas)


async def settle(fn: Callable[..., Any], *args: Any, default: Any = None) -> Any:
    """
    Run a blocking call in a worker thread and return `default` if it
    raises, so one failing branch of a gather never fails the others.
    """
    try:
        return await asyncio.to_thread(fn, *args)
    except Exception as e:
        logger.warning(f"{getattr(fn, '__name__', 'call')} failed: {e}")
        return default


def _clean(value: Optional[str]) -> str:
    return (value or "").strip()


def _require(title: Optional[str], description: Optional[str]) -> None:
    if not _clean(title):
        raise ValidationError("Title is required")
    if not _clean(description):
        raise ValidationError("Description is required")


class IdeaService:
    """Owner-scoped idea operations plus YouTube enrichment."""

    def __init__(self, ideas, youtube):
        self.ideas = ideas
        self.youtube = youtube

    async def list_ideas(self, owner_id: str, status: Optional[str] = None,
                         search: Optional[str] = None) -> List[IdeaCard]:
        """
        List the owner's ideas, newest first.

        Args:
            status: keep only ideas whose status equals this label
            search: case-insensitive substring matched on title or description
        """
        ideas = await self.ideas.list_all(owner_id)

        status = _clean(status)
        if status:
            ideas = [idea for idea in ideas if idea.status == status]

        needle = _clean(search).lower()
        if needle:
            ideas = [idea for idea in ideas
                     if needle in idea.title.lower() or needle in idea.description.lower()]

        recent = await asyncio.gather(*(
            settle(self.youtube.list_recent_videos, idea.youtube_channel_id, RECENT_VIDEO_LIMIT, default=[])
            if idea.youtube_channel_id else asyncio.sleep(0, result=[])
            for idea in ideas
        ))
        return [IdeaCard(idea=idea, recent_videos=videos) for idea, videos in zip(ideas, recent)]

    async def get_idea(self, idea_id: str, owner_id: str) -> Idea:
        return await self.ideas.get(owner_id, idea_id)

    async def create_idea(self, owner_id: str, title: str, description: str,
                          category: Optional[str] = None,
                          channel_name_hint: Optional[str] = None) -> Idea:
        _require(title, description)
        category = _clean(category) or DEFAULT_CATEGORY

        channel_id = None
        hint = _clean(channel_name_hint)
        if hint and "youtube" in category.lower():
            channel_id = await settle(self.youtube.resolve_channel_id, hint)

        return await self.ideas.add(owner_id, {
            "title": _clean(title),
            "description": _clean(description),
            "category": category,
            "status": DEFAULT_STATUS,
            "youtube_channel_id": channel_id,
            "youtube_video_id": None,
            "is_ai_generated": False,
        })

    async def create_from_suggestion(self, owner_id: str, title: str, description: str,
                                     category: Optional[str] = None,
                                     ai_generated: bool = True) -> Idea:
        _require(title, description)
        return await self.ideas.add(owner_id, {
            "title": _clean(title),
            "description": _clean(description),
            "category": _clean(category) or DEFAULT_CATEGORY,
            "status": DEFAULT_STATUS,
            "youtube_channel_id": None,
            "youtube_video_id": None,
            "is_ai_generated": bool(ai_generated),
        })

    async def update_idea(self, idea_id: str, owner_id: str, fields: Dict[str, Any]) -> None:
        """Replace the editable fields of an idea in a single write."""
        _require(fields.get("title"), fields.get("description"))
        await self.ideas.update(owner_id, idea_id, {
            "title": _clean(fields.get("title")),
            "description": _clean(fields.get("description")),
            "category": _clean(fields.get("category")) or DEFAULT_CATEGORY,
            "status": _clean(fields.get("status")) or DEFAULT_STATUS,
            "youtube_video_id": extract_video_id(fields.get("youtube_video_id")),
            "updated_at": datetime.utcnow().isoformat(),
        })

    async def delete_idea(self, idea_id: str, owner_id: str) -> None:
        await self.ideas.delete(owner_id, idea_id)

    async def idea_dashboard(self, idea_id: str, owner_id: str) -> IdeaDashboard:
        idea = await self.ideas.get(owner_id, idea_id)
        if not idea.youtube_channel_id and not idea.youtube_video_id:
            raise NoChannelOnRecord("No YouTube channel or video is linked to this idea", idea=idea)

        channel_stats, recent_videos, video_stats = await asyncio.gather(
            settle(self.youtube.get_channel_statistics, idea.youtube_channel_id, default={}),
            settle(self.youtube.list_recent_videos, idea.youtube_channel_id, RECENT_VIDEO_LIMIT, default=[]),
            settle(self.youtube.get_video_statistics, idea.youtube_video_id, default={})
            if idea.youtube_video_id else asyncio.sleep(0, result={}),
        )
        return IdeaDashboard(
            idea=idea,
            channel_stats=channel_stats,
            recent_videos=recent_videos,
            video_stats=video_stats,
        )

    async def global_dashboard(self, owner_id: str) -> GlobalDashboard:
        ideas = await self.ideas.list_all(owner_id)
        channel_ids = list(dict.fromkeys(idea.youtube_channel_id for idea in ideas if idea.youtube_channel_id))

        stats = await asyncio.gather(*(
            settle(self.youtube.get_channel_statistics, channel_id, default={})
            for channel_id in channel_ids
        ))
        channels = [dict(channel_stats, channel_id=channel_id)
                    for channel_id, channel_stats in zip(channel_ids, stats)]

        return GlobalDashboard(
            ideas=ideas,
            channels=channels,
            status_counts=dict(Counter(idea.status for idea in ideas)),
        )
