"""Video lifecycle: create / update / delete / publish across staging, asset store and DB.

Ordering rules:
- create: stage both payloads, upload both, then write the record. Any failure
  undoes the uploads that already happened; the record is never written partially.
- update: a replaced thumbnail is deleted remotely only after the new metadata is committed.
- delete: dependents and the record are removed and committed first, remote assets last.
  Remote deletion is best-effort, so a failure there leaves an orphan for the sweep.
"""
import logging
from dataclasses import dataclass, field
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from videohub.db.repositories import video_repo, like_repo, comment_repo, history_repo
from videohub.schemas.video import VideoSummary, VideoPage, VideoSample
from videohub.services.asset_store import AssetKind, AssetRef, DeleteResult, S3AssetStore
from videohub.services.commands import CreateVideoCommand, UpdateVideoCommand, VideoQuery
from videohub.services.saga import Saga
from videohub.services.staging import StagingArea

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DeletionReport:
    video_id: UUID
    likes_deleted: int
    comments_deleted: int
    history_deleted: int
    assets: list[DeleteResult] = field(default_factory=list)

    @property
    def orphaned_assets(self) -> list[str]:
        return [r.external_id for r in self.assets if not r.ok]


class VideoLifecycleService:
    def __init__(
        self,
        asset_store: S3AssetStore,
        staging: StagingArea,
        max_video_size: int | None = None,
        max_image_size: int | None = None,
        sample_size: int = 10,
    ):
        self.asset_store = asset_store
        self.staging = staging
        self.max_video_size = max_video_size
        self.max_image_size = max_image_size
        self.sample_size = sample_size

    def _discard(self, kind: AssetKind):
        async def compensate(context: dict, asset: AssetRef) -> None:
            await self.asset_store.delete(asset.external_id, kind)
        return compensate

    async def _summary(self, db: AsyncSession, video_id: UUID) -> VideoSummary:
        video = await video_repo.get_video_by_id(db, video_id, with_owner=True)
        return VideoSummary.model_validate(video)

    async def create_video(self, db: AsyncSession, command: CreateVideoCommand) -> VideoSummary:
        async def persist(context: dict):
            video_asset: AssetRef = context["video_asset"]
            thumbnail_asset: AssetRef = context["thumbnail_asset"]
            try:
                video = await video_repo.create_video(
                    db,
                    owner_id=command.actor_id,
                    title=command.title,
                    description=command.description,
                    video_url=video_asset.url,
                    video_external_id=video_asset.external_id,
                    video_format=video_asset.format,
                    duration=video_asset.duration_seconds,
                    thumbnail_url=thumbnail_asset.url,
                    thumbnail_external_id=thumbnail_asset.external_id,
                )
                await db.commit()
            except Exception:
                await db.rollback()
                raise
            return video.id

        async with self.staging.scope() as scope:
            saga = (
                Saga("create_video")
                .step("video_file", lambda ctx: scope.stage(
                    command.video.source, command.video.filename, max_size=self.max_video_size))
                .step("thumbnail_file", lambda ctx: scope.stage(
                    command.thumbnail.source, command.thumbnail.filename, max_size=self.max_image_size))
                .step("video_asset", lambda ctx: self.asset_store.upload(ctx["video_file"], AssetKind.video),
                      compensate=self._discard(AssetKind.video))
                .step("thumbnail_asset", lambda ctx: self.asset_store.upload(ctx["thumbnail_file"], AssetKind.image),
                      compensate=self._discard(AssetKind.image))
                .step("video_id", persist)
            )
            context = await saga.run()

        logger.info(f"User {command.actor_id} created video {context['video_id']} (draft)")
        return await self._summary(db, context["video_id"])

    async def update_video(self, db: AsyncSession, command: UpdateVideoCommand) -> VideoSummary:
        video = await video_repo.get_owned_video(db, command.video_id, command.actor_id)

        if command.thumbnail is None:
            await video_repo.update_video(db, video, command.title, command.description)
            await db.commit()
            return await self._summary(db, video.id)

        previous_thumbnail = video.thumbnail_external_id

        async def persist(context: dict):
            thumbnail_asset: AssetRef = context["thumbnail_asset"]
            try:
                await video_repo.update_video(
                    db,
                    video,
                    command.title,
                    command.description,
                    thumbnail_url=thumbnail_asset.url,
                    thumbnail_external_id=thumbnail_asset.external_id,
                )
                await db.commit()
            except Exception:
                await db.rollback()
                raise
            return video.id

        async with self.staging.scope() as scope:
            await (
                Saga("update_video")
                .step("thumbnail_file", lambda ctx: scope.stage(
                    command.thumbnail.source, command.thumbnail.filename, max_size=self.max_image_size))
                .step("thumbnail_asset", lambda ctx: self.asset_store.upload(ctx["thumbnail_file"], AssetKind.image),
                      compensate=self._discard(AssetKind.image))
                .step("video_id", persist)
                .run()
            )

        # only now is nothing pointing at the old thumbnail
        await self.asset_store.delete(previous_thumbnail, AssetKind.image)
        logger.info(f"User {command.actor_id} updated video {video.id}")
        return await self._summary(db, video.id)

    async def delete_video(self, db: AsyncSession, video_id: UUID, actor_id: UUID) -> DeletionReport:
        video = await video_repo.get_owned_video(db, video_id, actor_id)
        video_external_id = video.video_external_id
        thumbnail_external_id = video.thumbnail_external_id

        try:
            likes_deleted = await like_repo.delete_likes_by_video(db, video.id)
            comments_deleted = await comment_repo.delete_comments_by_video(db, video.id)
            history_deleted = await history_repo.delete_history_by_video(db, video.id)
            await video_repo.delete_video(db, video)
            await db.commit()
        except Exception:
            await db.rollback()
            raise

        results = [
            await self.asset_store.delete(video_external_id, AssetKind.video),
            await self.asset_store.delete(thumbnail_external_id, AssetKind.image),
        ]
        report = DeletionReport(
            video_id=video_id,
            likes_deleted=likes_deleted,
            comments_deleted=comments_deleted,
            history_deleted=history_deleted,
            assets=results,
        )
        if report.orphaned_assets:
            logger.warning(
                f"Video {video_id} deleted but remote assets remain orphaned: {', '.join(report.orphaned_assets)}"
            )
        logger.info(
            f"User {actor_id} deleted video {video_id} "
            f"(likes={likes_deleted}, comments={comments_deleted}, history={history_deleted})"
        )
        return report

    async def toggle_publish(self, db: AsyncSession, video_id: UUID, actor_id: UUID) -> bool:
        video = await video_repo.get_owned_video(db, video_id, actor_id)
        video = await video_repo.set_published(db, video, not video.is_published)
        await db.commit()
        logger.info(f"Video {video_id} is_published={video.is_published}")
        return video.is_published

    async def list_videos(self, db: AsyncSession, query: VideoQuery) -> VideoPage | VideoSample:
        if query.sample_mode:
            videos = await video_repo.sample_published_videos(db, query.query, query.owner_id, self.sample_size)
            items = [VideoSummary.model_validate(v) for v in videos]
            return VideoSample(items=items, size=len(items))

        offset = (query.page - 1) * query.limit
        videos, total = await video_repo.list_published_videos(
            db,
            query.query,
            query.owner_id,
            sort_by=query.sort_by,
            descending=query.descending,
            limit=query.limit,
            offset=offset,
        )
        total_pages = (total + query.limit - 1) // query.limit
        return VideoPage(
            items=[VideoSummary.model_validate(v) for v in videos],
            total=total,
            page=query.page,
            limit=query.limit,
            total_pages=total_pages,
            has_next_page=query.page < total_pages,
            has_prev_page=query.page > 1,
        )

    async def list_owned_videos(self, db: AsyncSession, actor_id: UUID) -> list[VideoSummary]:
        videos = await video_repo.get_videos_by_owner(db, actor_id)
        return [VideoSummary.model_validate(v) for v in videos]
