from uuid import UUID
from sqlalchemy import select, update, func, or_
from sqlalchemy.orm import selectinload
from sqlalchemy.ext.asyncio import AsyncSession

from videohub.exceptions import NotFoundError, OwnershipError
from videohub.models.video import Video

SORTABLE_COLUMNS = {
    "created_at": Video.created_at,
    "views": Video.views,
    "duration": Video.duration,
    "title": Video.title,
}


async def create_video(
    session: AsyncSession,
    owner_id: UUID,
    title: str,
    description: str,
    video_url: str,
    video_external_id: str,
    thumbnail_url: str,
    thumbnail_external_id: str,
    video_format: str | None = None,
    duration: float | None = None,
) -> Video:
    video = Video(
        owner_id=owner_id,
        title=title,
        description=description,
        duration=duration,
        video_url=video_url,
        video_external_id=video_external_id,
        video_format=video_format,
        thumbnail_url=thumbnail_url,
        thumbnail_external_id=thumbnail_external_id,
        is_published=False,
        views=0,
    )
    session.add(video)
    await session.flush()
    await session.refresh(video)
    return video


async def get_video_by_id(session: AsyncSession, video_id: UUID, with_owner: bool = False) -> Video | None:
    q = select(Video).where(Video.id == video_id)
    if with_owner:
        q = q.options(selectinload(Video.owner)).execution_options(populate_existing=True)
    result = await session.execute(q)
    return result.scalars().one_or_none()


async def get_owned_video(session: AsyncSession, video_id: UUID, actor_id: UUID) -> Video:
    """Load a video for mutation. Raises NotFoundError / OwnershipError."""
    video = await get_video_by_id(session, video_id)
    if not video:
        raise NotFoundError("Video not found")
    if video.owner_id != actor_id:
        raise OwnershipError("Only the owner can modify this video")
    return video


async def update_video(
    session: AsyncSession,
    video: Video,
    title: str,
    description: str,
    thumbnail_url: str | None = None,
    thumbnail_external_id: str | None = None,
) -> Video:
    video.title = title
    video.description = description
    if thumbnail_external_id is not None:
        video.thumbnail_url = thumbnail_url
        video.thumbnail_external_id = thumbnail_external_id
    await session.flush()
    await session.refresh(video)
    return video


async def set_published(session: AsyncSession, video: Video, is_published: bool) -> Video:
    video.is_published = is_published
    await session.flush()
    await session.refresh(video)
    return video


async def increment_views(session: AsyncSession, video_id: UUID) -> None:
    # single UPDATE so concurrent fetches do not lose increments
    await session.execute(
        update(Video)
        .where(Video.id == video_id)
        .values(views=Video.views + 1)
        .execution_options(synchronize_session=False)
    )


async def delete_video(session: AsyncSession, video: Video) -> None:
    await session.delete(video)
    await session.flush()


def _published_filter(query: str | None, owner_id: UUID | None):
    clauses = [Video.is_published.is_(True)]
    if query:
        clauses.append(
            or_(
                Video.title.icontains(query, autoescape=True),
                Video.description.icontains(query, autoescape=True),
            )
        )
    if owner_id is not None:
        clauses.append(Video.owner_id == owner_id)
    return clauses


async def list_published_videos(
    session: AsyncSession,
    query: str | None,
    owner_id: UUID | None,
    sort_by: str,
    descending: bool,
    limit: int,
    offset: int,
) -> tuple[list[Video], int]:
    """One page of published videos plus the total number of matches."""
    clauses = _published_filter(query, owner_id)
    total = await session.scalar(select(func.count()).select_from(Video).where(*clauses))

    column = SORTABLE_COLUMNS[sort_by]
    order = column.desc() if descending else column.asc()
    result = await session.execute(
        select(Video)
        .where(*clauses)
        .options(selectinload(Video.owner))
        .execution_options(populate_existing=True)
        .order_by(order, Video.id)
        .limit(limit)
        .offset(offset)
    )
    return list(result.scalars().all()), int(total or 0)


async def sample_published_videos(
    session: AsyncSession, query: str | None, owner_id: UUID | None, size: int
) -> list[Video]:
    result = await session.execute(
        select(Video)
        .where(*_published_filter(query, owner_id))
        .options(selectinload(Video.owner))
        .execution_options(populate_existing=True)
        .order_by(func.random())
        .limit(size)
    )
    return list(result.scalars().all())


async def get_videos_by_owner(session: AsyncSession, owner_id: UUID) -> list[Video]:
    """All videos of an owner, drafts included."""
    result = await session.execute(
        select(Video)
        .where(Video.owner_id == owner_id)
        .options(selectinload(Video.owner))
        .execution_options(populate_existing=True)
        .order_by(Video.created_at.desc())
    )
    return list(result.scalars().all())


async def get_referenced_external_ids(session: AsyncSession) -> set[str]:
    result = await session.execute(select(Video.video_external_id, Video.thumbnail_external_id))
    referenced: set[str] = set()
    for video_external_id, thumbnail_external_id in result.all():
        referenced.add(video_external_id)
        referenced.add(thumbnail_external_id)
    return referenced

