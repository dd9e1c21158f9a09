from uuid import UUID
from fastapi import APIRouter, Depends, File, Form, Query, UploadFile, status
from sqlalchemy.ext.asyncio import AsyncSession

from videohub.config import settings
from videohub.dependencies import get_current_user, get_video_service, get_view_service
from videohub.db.session import get_db
from videohub.models.user import User
from videohub.schemas.video import PublishState, VideoPage, VideoSample, VideoSummary, VideoView
from videohub.services.commands import (
    UploadPayload,
    build_create_command,
    build_update_command,
    build_video_query,
)
from videohub.services.video_service import VideoLifecycleService
from videohub.services.view_service import VideoViewService

router = APIRouter()


def _as_payload(upload: UploadFile | None) -> UploadPayload | None:
    # staging streams from the spooled upload; nothing is read into memory here
    if upload is None:
        return None
    return UploadPayload(filename=upload.filename or "", source=upload, size=upload.size)


@router.post("", response_model=VideoSummary, status_code=status.HTTP_201_CREATED)
async def publish_video(
    title: str = Form(""),
    description: str = Form(""),
    videoFile: UploadFile | None = File(None),
    thumbnail: UploadFile | None = File(None),
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
    service: VideoLifecycleService = Depends(get_video_service),
):
    command = build_create_command(
        current_user.id,
        title,
        description,
        _as_payload(videoFile),
        _as_payload(thumbnail),
    )
    return await service.create_video(db, command)


@router.get("", response_model=VideoPage | VideoSample)
async def list_videos(
    query: str | None = None,
    user_id: str | None = Query(None, alias="userId"),
    sort_by: str | None = Query(None, alias="sortBy"),
    sort_type: str | None = Query(None, alias="sortType"),
    page: int | None = None,
    limit: int | None = None,
    db: AsyncSession = Depends(get_db),
    service: VideoLifecycleService = Depends(get_video_service),
):
    """Без page/limit возвращает случайную выборку опубликованных видео."""
    video_query = build_video_query(
        query=query,
        user_id=user_id,
        sort_by=sort_by,
        sort_type=sort_type,
        page=page,
        limit=limit,
        default_limit=settings.default_page_limit,
        max_limit=settings.max_page_limit,
    )
    return await service.list_videos(db, video_query)


@router.get("/mine", response_model=list[VideoSummary])
async def list_my_videos(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
    service: VideoLifecycleService = Depends(get_video_service),
):
    return await service.list_owned_videos(db, current_user.id)


@router.get("/{video_id}", response_model=VideoView)
async def get_video(
    video_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
    view_service: VideoViewService = Depends(get_view_service),
):
    return await view_service.get_enriched_video(db, video_id, current_user.id)


@router.patch("/{video_id}", response_model=VideoSummary)
async def update_video(
    video_id: UUID,
    title: str = Form(""),
    description: str = Form(""),
    thumbnail: UploadFile | None = File(None),
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
    service: VideoLifecycleService = Depends(get_video_service),
):
    command = build_update_command(
        video_id,
        current_user.id,
        title,
        description,
        _as_payload(thumbnail),
    )
    return await service.update_video(db, command)


@router.delete("/{video_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_video(
    video_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
    service: VideoLifecycleService = Depends(get_video_service),
):
    await service.delete_video(db, video_id, current_user.id)


@router.patch("/{video_id}/toggle-publish", response_model=PublishState)
async def toggle_publish(
    video_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
    service: VideoLifecycleService = Depends(get_video_service),
):
    is_published = await service.toggle_publish(db, video_id, current_user.id)
    return PublishState(is_published=is_published)
