from functools import lru_cache
from uuid import UUID
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession

from videohub.config import settings
from videohub.db.session import get_db
from videohub.db.repositories.user_repo import get_user_by_id
from videohub.models.user import User
from videohub.services.asset_store import S3AssetStore, build_s3_client
from videohub.services.auth_service import decode_access_token
from videohub.services.media import probe_duration
from videohub.services.staging import StagingArea
from videohub.services.video_service import VideoLifecycleService
from videohub.services.view_service import VideoViewService

security = HTTPBearer(auto_error=False)


async def _resolve_user(db: AsyncSession, credentials: HTTPAuthorizationCredentials | None) -> User:
    if not credentials or not credentials.credentials:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )
    payload = decode_access_token(credentials.credentials)
    if not payload or "sub" not in payload:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"},
        )
    try:
        uid = UUID(payload["sub"])
    except ValueError:
        raise HTTPException(status_code=401, detail="Invalid token")
    user = await get_user_by_id(db, uid)
    if not user:
        raise HTTPException(status_code=401, detail="User not found")
    return user


async def get_current_user(
    db: AsyncSession = Depends(get_db),
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
) -> User:
    return await _resolve_user(db, credentials)


async def get_optional_user(
    db: AsyncSession = Depends(get_db),
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
) -> User | None:
    if not credentials:
        return None
    return await _resolve_user(db, credentials)


@lru_cache
def get_asset_store() -> S3AssetStore:
    async def _probe(path):
        return await probe_duration(path, ffprobe_path=settings.ffprobe_path)

    return S3AssetStore(
        client=build_s3_client(settings),
        bucket=settings.s3_bucket,
        public_base_url=settings.public_base_url,
        upload_attempts=settings.asset_upload_attempts,
        duration_probe=_probe,
    )


@lru_cache
def get_staging_area() -> StagingArea:
    return StagingArea(settings.staging_dir)


def get_video_service(
    asset_store: S3AssetStore = Depends(get_asset_store),
    staging: StagingArea = Depends(get_staging_area),
) -> VideoLifecycleService:
    return VideoLifecycleService(
        asset_store=asset_store,
        staging=staging,
        max_video_size=settings.max_video_size,
        max_image_size=settings.max_image_size,
        sample_size=settings.sample_size,
    )


def get_view_service() -> VideoViewService:
    return VideoViewService(view_dedup_window_seconds=settings.view_dedup_window_seconds)
