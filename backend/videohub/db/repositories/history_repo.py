from datetime import datetime, timezone
from uuid import UUID
from sqlalchemy import select, delete, or_
from sqlalchemy.orm import selectinload
from sqlalchemy.ext.asyncio import AsyncSession

from videohub.models.video import Video
from videohub.models.watch_history import WatchHistoryEntry


async def get_history_entry(session: AsyncSession, user_id: UUID, video_id: UUID) -> WatchHistoryEntry | None:
    result = await session.execute(
        select(WatchHistoryEntry).where(
            WatchHistoryEntry.user_id == user_id,
            WatchHistoryEntry.video_id == video_id,
        )
    )
    return result.scalars().first()


async def add_to_user_history(
    session: AsyncSession, user_id: UUID, video_id: UUID, watched_at: datetime | None = None
) -> WatchHistoryEntry:
    # Set semantics: at most one entry per (user, video); repeat views only bump watched_at
    history_entry = await get_history_entry(session, user_id, video_id)
    if not history_entry:
        history_entry = WatchHistoryEntry(user_id=user_id, video_id=video_id)
        if watched_at is not None:
            history_entry.watched_at = watched_at
        session.add(history_entry)
    else:
        history_entry.watched_at = watched_at or datetime.now(timezone.utc)
    await session.flush()
    return history_entry


async def get_user_history(
    session: AsyncSession, user_id: UUID, limit: int = 50, offset: int = 0
) -> list[WatchHistoryEntry]:
    """Entries newest first. Videos that became drafts stay visible only to their owner."""
    result = await session.execute(
        select(WatchHistoryEntry)
        .join(Video, WatchHistoryEntry.video_id == Video.id)
        .where(
            WatchHistoryEntry.user_id == user_id,
            or_(Video.is_published.is_(True), Video.owner_id == user_id),
        )
        .options(selectinload(WatchHistoryEntry.video).selectinload(Video.owner))
        .execution_options(populate_existing=True)
        .order_by(WatchHistoryEntry.watched_at.desc())
        .limit(limit)
        .offset(offset)
    )
    return list(result.scalars().all())


async def delete_history_by_video(session: AsyncSession, video_id: UUID) -> int:
    result = await session.execute(delete(WatchHistoryEntry).where(WatchHistoryEntry.video_id == video_id))
    return result.rowcount or 0
