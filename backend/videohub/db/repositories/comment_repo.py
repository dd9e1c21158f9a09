from uuid import UUID
from sqlalchemy import delete
from sqlalchemy.ext.asyncio import AsyncSession

from videohub.models.comment import Comment


async def delete_comments_by_video(session: AsyncSession, video_id: UUID) -> int:
    result = await session.execute(delete(Comment).where(Comment.video_id == video_id))
    return result.rowcount or 0
