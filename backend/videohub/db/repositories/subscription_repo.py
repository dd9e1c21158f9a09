from uuid import UUID
from sqlalchemy import select, func, exists
from sqlalchemy.ext.asyncio import AsyncSession

from videohub.models.subscription import Subscription


async def count_subscribers(session: AsyncSession, channel_id: UUID) -> int:
    result = await session.scalar(
        select(func.count()).select_from(Subscription).where(Subscription.channel_id == channel_id)
    )
    return int(result or 0)


async def count_subscriptions(session: AsyncSession, subscriber_id: UUID) -> int:
    """How many channels this user is subscribed to."""
    result = await session.scalar(
        select(func.count()).select_from(Subscription).where(Subscription.subscriber_id == subscriber_id)
    )
    return int(result or 0)


async def is_subscribed(session: AsyncSession, channel_id: UUID, subscriber_id: UUID | None) -> bool:
    if subscriber_id is None:
        return False
    result = await session.scalar(
        select(
            exists().where(
                Subscription.channel_id == channel_id,
                Subscription.subscriber_id == subscriber_id,
            )
        )
    )
    return bool(result)
