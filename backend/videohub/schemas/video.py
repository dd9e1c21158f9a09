from datetime import datetime
from uuid import UUID
from pydantic import BaseModel


class OwnerSummary(BaseModel):
    id: UUID
    username: str
    avatar_url: str | None = None

    class Config:
        from_attributes = True


class VideoSummary(BaseModel):
    id: UUID
    title: str
    description: str
    duration: float | None = None
    video_url: str
    thumbnail_url: str
    is_published: bool
    views: int
    created_at: datetime
    owner: OwnerSummary

    class Config:
        from_attributes = True


class OwnerView(BaseModel):
    id: UUID
    username: str
    avatar_url: str | None = None
    subscribers_count: int
    is_subscribed: bool


class VideoView(BaseModel):
    """Read model for a single video, joined with owner and like data relative to the viewer."""
    id: UUID
    title: str
    description: str
    duration: float | None = None
    video_url: str
    thumbnail_url: str
    views: int
    created_at: datetime
    owner: OwnerView
    likes_count: int
    is_liked: bool


class VideoPage(BaseModel):
    items: list[VideoSummary]
    total: int
    page: int
    limit: int
    total_pages: int
    has_next_page: bool
    has_prev_page: bool


class VideoSample(BaseModel):
    items: list[VideoSummary]
    size: int


class PublishState(BaseModel):
    is_published: bool
