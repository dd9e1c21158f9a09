from uuid import UUID
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from videohub.models.user import User


async def get_user_by_id(session: AsyncSession, user_id: UUID) -> User | None:
    result = await session.execute(select(User).where(User.id == user_id))
    return result.scalars().one_or_none()


async def get_user_by_username(session: AsyncSession, username: str) -> User | None:
    result = await session.execute(select(User).where(User.username == username.strip().lower()))
    return result.scalars().one_or_none()


async def create_user(
    session: AsyncSession,
    username: str,
    email: str,
    full_name: str | None = None,
    avatar_url: str | None = None,
    cover_image_url: str | None = None,
) -> User:
    user = User(
        username=username.strip().lower(),
        email=email,
        full_name=full_name,
        avatar_url=avatar_url,
        cover_image_url=cover_image_url,
    )
    session.add(user)
    await session.flush()
    await session.refresh(user)
    return user
