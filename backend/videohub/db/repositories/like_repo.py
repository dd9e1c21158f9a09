from uuid import UUID
from sqlalchemy import select, delete, func, exists
from sqlalchemy.ext.asyncio import AsyncSession

from videohub.models.like import Like


async def count_likes(session: AsyncSession, video_id: UUID) -> int:
    result = await session.scalar(select(func.count()).select_from(Like).where(Like.video_id == video_id))
    return int(result or 0)


async def is_liked_by(session: AsyncSession, video_id: UUID, user_id: UUID | None) -> bool:
    if user_id is None:
        return False
    result = await session.scalar(
        select(exists().where(Like.video_id == video_id, Like.liked_by == user_id))
    )
    return bool(result)


async def delete_likes_by_video(session: AsyncSession, video_id: UUID) -> int:
    result = await session.execute(delete(Like).where(Like.video_id == video_id))
    return result.rowcount or 0
