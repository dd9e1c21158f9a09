"""
Tests for the video lifecycle coordinator: create / update / delete / publish / list.
"""
import uuid
from io import BytesIO

import pytest
from fastapi import UploadFile
from sqlalchemy import select, func

from videohub.db.repositories import history_repo, video_repo
from videohub.exceptions import NotFoundError, OwnershipError, UpstreamStorageError, ValidationError
from videohub.models.comment import Comment
from videohub.models.like import Like
from videohub.models.video import Video
from videohub.schemas.video import VideoPage, VideoSample
from videohub.services.commands import (
    UploadPayload,
    build_create_command,
    build_update_command,
    build_video_query,
)


def create_command(owner, title="My clip", description="A description"):
    return build_create_command(
        owner.id,
        title,
        description,
        UploadPayload("clip.mp4", b"video-bytes"),
        UploadPayload("thumb.png", b"thumb-bytes"),
    )


async def count_videos(db) -> int:
    return await db.scalar(select(func.count()).select_from(Video))


class TestCreateVideo:

    async def test_create_uploads_both_assets_and_starts_as_draft(self, db, video_service, s3_client, alice):
        summary = await video_service.create_video(db, create_command(alice))

        assert summary.is_published is False
        assert summary.views == 0
        assert summary.owner.id == alice.id
        assert summary.title == "My clip"

        video = await video_repo.get_video_by_id(db, summary.id)
        assert video.video_external_id in s3_client.objects
        assert video.thumbnail_external_id in s3_client.objects
        assert video.video_format == "mp4"

    async def test_staged_files_removed_after_success(self, db, video_service, staging, alice):
        await video_service.create_video(db, create_command(alice))
        assert list(staging.base_dir.iterdir()) == []

    async def test_thumbnail_upload_failure_compensates_video_upload(
        self, db, video_service, s3_client, staging, alice
    ):
        s3_client.fail_upload_prefixes.add("images/")

        with pytest.raises(UpstreamStorageError):
            await video_service.create_video(db, create_command(alice))

        assert await count_videos(db) == 0
        # the video that did upload was deleted again
        assert s3_client.objects == {}
        assert any(key.startswith("videos/") for key in s3_client.delete_calls)
        assert list(staging.base_dir.iterdir()) == []

    async def test_video_upload_failure_writes_nothing(self, db, video_service, s3_client, staging, alice):
        s3_client.fail_upload_prefixes.add("videos/")

        with pytest.raises(UpstreamStorageError):
            await video_service.create_video(db, create_command(alice))

        assert await count_videos(db) == 0
        assert s3_client.objects == {}
        assert list(staging.base_dir.iterdir()) == []

    async def test_persist_failure_deletes_uploaded_assets(
        self, db, video_service, s3_client, staging, alice, monkeypatch
    ):
        async def broken_create(*args, **kwargs):
            raise RuntimeError("db down")

        monkeypatch.setattr(video_repo, "create_video", broken_create)

        with pytest.raises(RuntimeError):
            await video_service.create_video(db, create_command(alice))

        assert s3_client.objects == {}
        assert len(s3_client.delete_calls) == 2
        assert list(staging.base_dir.iterdir()) == []

    async def test_oversized_video_is_rejected_before_upload(self, db, video_service, s3_client, staging, alice):
        command = build_create_command(
            alice.id, "t", "d",
            UploadPayload("huge.mp4", b"x" * (video_service.max_video_size + 1)),
            UploadPayload("thumb.png", b"i"),
        )

        with pytest.raises(ValidationError):
            await video_service.create_video(db, command)

        assert s3_client.upload_calls == []
        assert list(staging.base_dir.iterdir()) == []

    async def test_oversized_stream_is_cut_off_while_staging(self, db, video_service, s3_client, staging, alice):
        """A streamed upload without a declared size is rejected once it passes the limit."""
        oversized = UploadFile(file=BytesIO(b"x" * (video_service.max_video_size + 1)), filename="huge.mp4")
        command = build_create_command(
            alice.id, "t", "d", UploadPayload("huge.mp4", oversized), UploadPayload("thumb.png", b"i")
        )

        with pytest.raises(ValidationError):
            await video_service.create_video(db, command)

        assert s3_client.upload_calls == []
        assert list(staging.base_dir.iterdir()) == []
        assert await count_videos(db) == 0


class TestUpdateVideo:

    async def test_update_metadata_only(self, db, video_service, s3_client, alice, make_video):
        video = await make_video(alice)

        summary = await video_service.update_video(
            db, build_update_command(video.id, alice.id, "New title", "New description")
        )

        assert summary.title == "New title"
        assert summary.description == "New description"
        assert summary.thumbnail_url == video.thumbnail_url
        assert s3_client.upload_calls == []

    async def test_new_thumbnail_replaces_old_after_commit(self, db, video_service, s3_client, alice, make_video):
        video = await make_video(alice)
        old_thumbnail = video.thumbnail_external_id

        summary = await video_service.update_video(
            db,
            build_update_command(video.id, alice.id, "t", "d", UploadPayload("new.jpg", b"new-thumb")),
        )

        reloaded = await video_repo.get_video_by_id(db, video.id)
        assert reloaded.thumbnail_external_id != old_thumbnail
        assert reloaded.thumbnail_external_id in s3_client.objects
        assert summary.thumbnail_url.endswith(reloaded.thumbnail_external_id)
        assert s3_client.delete_calls == [old_thumbnail]

    async def test_thumbnail_upload_failure_keeps_old_record(self, db, video_service, s3_client, alice, make_video):
        video = await make_video(alice, title="Original")
        s3_client.upload_failures = 1

        with pytest.raises(UpstreamStorageError):
            await video_service.update_video(
                db,
                build_update_command(video.id, alice.id, "Changed", "d", UploadPayload("new.jpg", b"x")),
            )

        reloaded = await video_repo.get_video_by_id(db, video.id)
        assert reloaded.title == "Original"
        assert s3_client.delete_calls == []

    async def test_persist_failure_keeps_old_thumbnail(
        self, db, video_service, s3_client, staging, alice, make_video, monkeypatch
    ):
        """The old thumbnail is only deleted once the new metadata is committed."""
        video = await make_video(alice, title="Original")
        video_id, old_thumbnail = video.id, video.thumbnail_external_id
        s3_client.objects[old_thumbnail] = (b"old", None)

        async def broken_update(*args, **kwargs):
            raise RuntimeError("db down")

        monkeypatch.setattr(video_repo, "update_video", broken_update)

        with pytest.raises(RuntimeError):
            await video_service.update_video(
                db,
                build_update_command(video_id, alice.id, "Changed", "d", UploadPayload("new.jpg", b"new-thumb")),
            )

        assert old_thumbnail not in s3_client.delete_calls
        # only the old thumbnail is left; the new upload was compensated
        assert list(s3_client.objects) == [old_thumbnail]
        assert list(staging.base_dir.iterdir()) == []
        reloaded = await video_repo.get_video_by_id(db, video_id)
        assert reloaded.title == "Original"
        assert reloaded.thumbnail_external_id == old_thumbnail

    async def test_non_owner_cannot_update(self, db, video_service, alice, bob, make_video):
        video = await make_video(alice, title="Original")

        with pytest.raises(OwnershipError):
            await video_service.update_video(db, build_update_command(video.id, bob.id, "Hijacked", "d"))

        reloaded = await video_repo.get_video_by_id(db, video.id)
        assert reloaded.title == "Original"

    async def test_update_missing_video(self, db, video_service, alice):
        with pytest.raises(NotFoundError):
            await video_service.update_video(db, build_update_command(uuid.uuid4(), alice.id, "t", "d"))


class TestDeleteVideo:

    async def test_delete_removes_dependents_record_and_assets(
        self, db, video_service, s3_client, alice, bob, make_video, count_rows
    ):
        video = await make_video(alice)
        s3_client.objects[video.video_external_id] = (b"v", None)
        s3_client.objects[video.thumbnail_external_id] = (b"t", None)
        db.add(Like(video_id=video.id, liked_by=bob.id))
        db.add(Comment(video_id=video.id, owner_id=bob.id, content="nice"))
        await history_repo.add_to_user_history(db, bob.id, video.id)
        await db.commit()

        report = await video_service.delete_video(db, video.id, alice.id)

        assert (report.likes_deleted, report.comments_deleted, report.history_deleted) == (1, 1, 1)
        assert report.orphaned_assets == []
        assert await video_repo.get_video_by_id(db, video.id) is None
        assert await count_rows(Like, video_id=video.id) == 0
        assert await count_rows(Comment, video_id=video.id) == 0
        assert s3_client.objects == {}

    async def test_remote_delete_failure_still_deletes_record(self, db, video_service, s3_client, alice, make_video):
        video = await make_video(alice)
        s3_client.fail_delete_keys.add(video.video_external_id)

        report = await video_service.delete_video(db, video.id, alice.id)

        assert report.orphaned_assets == [video.video_external_id]
        assert await video_repo.get_video_by_id(db, video.id) is None

    async def test_non_owner_cannot_delete(self, db, video_service, s3_client, alice, bob, make_video):
        video = await make_video(alice)

        with pytest.raises(OwnershipError):
            await video_service.delete_video(db, video.id, bob.id)

        assert await video_repo.get_video_by_id(db, video.id) is not None
        assert s3_client.delete_calls == []


class TestTogglePublish:

    async def test_toggle_twice_restores_state(self, db, video_service, alice, make_video):
        video = await make_video(alice, published=False)

        assert await video_service.toggle_publish(db, video.id, alice.id) is True
        assert await video_service.toggle_publish(db, video.id, alice.id) is False

    async def test_non_owner_cannot_toggle(self, db, video_service, alice, bob, make_video):
        video = await make_video(alice, published=False)

        with pytest.raises(OwnershipError):
            await video_service.toggle_publish(db, video.id, bob.id)

        reloaded = await video_repo.get_video_by_id(db, video.id)
        assert reloaded.is_published is False

    async def test_toggle_missing_video(self, db, video_service, alice):
        with pytest.raises(NotFoundError):
            await video_service.toggle_publish(db, uuid.uuid4(), alice.id)


class TestListVideos:

    async def test_listing_shows_only_published(self, db, video_service, alice, make_video):
        published = await make_video(alice, published=True)
        await make_video(alice, published=False)

        page = await video_service.list_videos(db, build_video_query(page=1, limit=10))

        assert isinstance(page, VideoPage)
        assert [v.id for v in page.items] == [published.id]
        assert page.total == 1

    async def test_paging_and_sorting(self, db, video_service, alice, make_video):
        for views in (5, 50, 20):
            await make_video(alice, views=views)

        first = await video_service.list_videos(
            db, build_video_query(sort_by="views", sort_type="desc", page=1, limit=2)
        )
        second = await video_service.list_videos(
            db, build_video_query(sort_by="views", sort_type="desc", page=2, limit=2)
        )

        assert [v.views for v in first.items] == [50, 20]
        assert [v.views for v in second.items] == [5]
        assert (first.total, first.total_pages) == (3, 2)
        assert first.has_next_page and not first.has_prev_page
        assert second.has_prev_page and not second.has_next_page

    async def test_text_and_owner_filters(self, db, video_service, alice, bob, make_video):
        await make_video(alice, title="Cooking pasta")
        await make_video(alice, title="Gardening", description="tomatoes and PASTA sauce")
        await make_video(bob, title="Pasta by bob")

        by_text = await video_service.list_videos(db, build_video_query(query="pasta", page=1))
        by_owner = await video_service.list_videos(
            db, build_video_query(query="pasta", user_id=str(alice.id), page=1)
        )

        assert by_text.total == 3
        assert by_owner.total == 2
        assert all(v.owner.id == alice.id for v in by_owner.items)

    async def test_sample_mode_returns_bounded_published_subset(self, db, video_service, alice, make_video):
        for _ in range(5):
            await make_video(alice, published=True)
        for _ in range(3):
            await make_video(alice, published=False)

        sample = await video_service.list_videos(db, build_video_query())

        assert isinstance(sample, VideoSample)
        assert sample.size == video_service.sample_size == 3
        assert all(v.is_published for v in sample.items)

    async def test_owned_videos_include_drafts(self, db, video_service, alice, bob, make_video):
        await make_video(alice, published=True)
        await make_video(alice, published=False)
        await make_video(bob)

        mine = await video_service.list_owned_videos(db, alice.id)

        assert len(mine) == 2
        assert {v.is_published for v in mine} == {True, False}
