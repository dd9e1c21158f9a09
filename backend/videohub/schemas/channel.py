from uuid import UUID
from pydantic import BaseModel


class ChannelView(BaseModel):
    id: UUID
    username: str
    full_name: str | None = None
    email: str
    avatar_url: str | None = None
    cover_image_url: str | None = None
    subscribers_count: int
    channels_subscribed_to_count: int
    is_subscribed: bool
