"""Read side: enriched video view, channel profile and watch history.

Counts and viewer-relative flags are computed per request with COUNT / EXISTS
queries against likes and subscriptions. Fetching a video also records the view:
`views` +1 on every fetch (subject to the optional dedup window) and the video id
added once to the viewer's watch history.
"""
import logging
from datetime import datetime, timezone
from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from videohub.db.repositories import video_repo, like_repo, subscription_repo, user_repo, history_repo
from videohub.exceptions import NotFoundError
from videohub.schemas.channel import ChannelView
from videohub.schemas.video import OwnerView, VideoView, VideoSummary
from videohub.services.commands import require_text

logger = logging.getLogger(__name__)


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class VideoViewService:
    def __init__(self, view_dedup_window_seconds: int = 0):
        self.view_dedup_window_seconds = view_dedup_window_seconds

    async def _should_count_view(self, db: AsyncSession, video_id: UUID, viewer_id: UUID, now: datetime) -> bool:
        if self.view_dedup_window_seconds <= 0:
            return True
        entry = await history_repo.get_history_entry(db, viewer_id, video_id)
        if entry is None:
            return True
        elapsed = (now - _as_utc(entry.watched_at)).total_seconds()
        return elapsed >= self.view_dedup_window_seconds

    async def record_view(self, db: AsyncSession, video_id: UUID, viewer_id: UUID) -> bool:
        """Apply the side effects of a fetch. Returns True if `views` was incremented."""
        now = datetime.now(timezone.utc)
        counted = await self._should_count_view(db, video_id, viewer_id, now)
        try:
            if counted:
                await video_repo.increment_views(db, video_id)
            await history_repo.add_to_user_history(db, viewer_id, video_id, watched_at=now)
            await db.commit()
        except IntegrityError:
            # concurrent first fetch by the same viewer inserted the history row first
            await db.rollback()
            logger.info(f"Concurrent history insert for viewer {viewer_id} on video {video_id}; retrying")
            if counted:
                await video_repo.increment_views(db, video_id)
            await history_repo.add_to_user_history(db, viewer_id, video_id, watched_at=now)
            await db.commit()
        return counted

    async def get_enriched_video(self, db: AsyncSession, video_id: UUID, viewer_id: UUID) -> VideoView:
        video = await video_repo.get_video_by_id(db, video_id, with_owner=True)
        # drafts are only visible to their owner
        if not video or (not video.is_published and video.owner_id != viewer_id):
            raise NotFoundError("Video not found")

        await self.record_view(db, video_id, viewer_id)
        # reload so the response carries the view just counted
        video = await video_repo.get_video_by_id(db, video_id, with_owner=True)

        owner = video.owner
        return VideoView(
            id=video.id,
            title=video.title,
            description=video.description,
            duration=video.duration,
            video_url=video.video_url,
            thumbnail_url=video.thumbnail_url,
            views=video.views,
            created_at=video.created_at,
            owner=OwnerView(
                id=owner.id,
                username=owner.username,
                avatar_url=owner.avatar_url,
                subscribers_count=await subscription_repo.count_subscribers(db, owner.id),
                is_subscribed=await subscription_repo.is_subscribed(db, owner.id, viewer_id),
            ),
            likes_count=await like_repo.count_likes(db, video.id),
            is_liked=await like_repo.is_liked_by(db, video.id, viewer_id),
        )

    async def get_channel_profile(self, db: AsyncSession, username: str, viewer_id: UUID | None) -> ChannelView:
        username = require_text(username, "username")
        channel = await user_repo.get_user_by_username(db, username)
        if not channel:
            raise NotFoundError("Channel does not exist")

        return ChannelView(
            id=channel.id,
            username=channel.username,
            full_name=channel.full_name,
            email=channel.email,
            avatar_url=channel.avatar_url,
            cover_image_url=channel.cover_image_url,
            subscribers_count=await subscription_repo.count_subscribers(db, channel.id),
            channels_subscribed_to_count=await subscription_repo.count_subscriptions(db, channel.id),
            is_subscribed=await subscription_repo.is_subscribed(db, channel.id, viewer_id),
        )

    async def get_watch_history(
        self, db: AsyncSession, viewer_id: UUID, limit: int = 50, offset: int = 0
    ) -> list[VideoSummary]:
        entries = await history_repo.get_user_history(db, viewer_id, limit=limit, offset=offset)
        return [VideoSummary.model_validate(entry.video) for entry in entries]
