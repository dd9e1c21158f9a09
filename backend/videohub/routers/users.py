from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from videohub.dependencies import get_current_user, get_optional_user, get_view_service
from videohub.db.session import get_db
from videohub.models.user import User
from videohub.schemas.channel import ChannelView
from videohub.schemas.video import VideoSummary
from videohub.services.view_service import VideoViewService

router = APIRouter()


@router.get("/c/{username}", response_model=ChannelView)
async def get_channel(
    username: str,
    db: AsyncSession = Depends(get_db),
    current_user: User | None = Depends(get_optional_user),
    view_service: VideoViewService = Depends(get_view_service),
):
    viewer_id = current_user.id if current_user else None
    return await view_service.get_channel_profile(db, username, viewer_id)


@router.get("/history", response_model=list[VideoSummary])
async def get_watch_history(
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
    view_service: VideoViewService = Depends(get_view_service),
):
    return await view_service.get_watch_history(db, current_user.id, limit=limit, offset=offset)
