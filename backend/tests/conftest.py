import os
import threading
from datetime import datetime, timezone

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")

import pytest
from botocore.exceptions import ClientError
from httpx import ASGITransport, AsyncClient
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

import videohub.models  # noqa: F401
from videohub.db.base import Base
from videohub.db.repositories import user_repo, video_repo
from videohub.services.asset_store import S3AssetStore
from videohub.services.staging import StagingArea
from videohub.services.video_service import VideoLifecycleService
from videohub.services.view_service import VideoViewService


class FakePaginator:
    def __init__(self, client):
        self.client = client

    def paginate(self, Bucket, Prefix=""):
        contents = [
            {"Key": key, "LastModified": modified}
            for key, (_, modified) in sorted(self.client.objects.items())
            if key.startswith(Prefix)
        ]
        yield {"Contents": contents} if contents else {}


class FakeS3Client:
    """In-memory stand-in for a boto3 S3 client with failure injection."""

    def __init__(self):
        self.objects: dict[str, tuple[bytes, datetime]] = {}
        self.upload_calls: list[str] = []
        self.delete_calls: list[str] = []
        self.upload_failures = 0
        self.fail_upload_prefixes: set[str] = set()
        self.fail_delete_keys: set[str] = set()
        self._lock = threading.Lock()

    def _error(self, operation: str) -> ClientError:
        return ClientError({"Error": {"Code": "500", "Message": "injected failure"}}, operation)

    def upload_file(self, filename, bucket, key, ExtraArgs=None):
        with self._lock:
            self.upload_calls.append(key)
            if self.upload_failures > 0:
                self.upload_failures -= 1
                raise self._error("PutObject")
            if any(key.startswith(prefix) for prefix in self.fail_upload_prefixes):
                raise self._error("PutObject")
            with open(filename, "rb") as f:
                self.objects[key] = (f.read(), datetime.now(timezone.utc))

    def delete_object(self, Bucket, Key):
        with self._lock:
            self.delete_calls.append(Key)
            if Key in self.fail_delete_keys:
                raise self._error("DeleteObject")
            self.objects.pop(Key, None)
        return {}

    def get_paginator(self, name):
        assert name == "list_objects_v2"
        return FakePaginator(self)


@pytest.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
async def db(engine):
    session_maker = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    async with session_maker() as session:
        yield session


@pytest.fixture
def s3_client():
    return FakeS3Client()


@pytest.fixture
def asset_store(s3_client):
    return S3AssetStore(
        client=s3_client,
        bucket="test-bucket",
        public_base_url="http://assets.test/test-bucket",
        retry_wait_seconds=0,
    )


@pytest.fixture
def staging(tmp_path):
    return StagingArea(tmp_path / "staging")


@pytest.fixture
def video_service(asset_store, staging):
    return VideoLifecycleService(
        asset_store=asset_store,
        staging=staging,
        max_video_size=1024 * 1024,
        max_image_size=64 * 1024,
        sample_size=3,
    )


@pytest.fixture
def view_service():
    return VideoViewService()


@pytest.fixture
async def alice(db):
    user = await user_repo.create_user(db, "alice", "alice@example.com", full_name="Alice A")
    await db.commit()
    return user


@pytest.fixture
async def bob(db):
    user = await user_repo.create_user(db, "bob", "bob@example.com", full_name="Bob B")
    await db.commit()
    return user


@pytest.fixture
def count_rows(db):
    """Number of rows of `model` matching the given column values."""
    async def _count(model, **filters):
        return await db.scalar(
            select(func.count()).select_from(model).where(*(getattr(model, k) == v for k, v in filters.items()))
        )

    return _count


@pytest.fixture
def make_video(db):
    """Insert a video row directly, bypassing uploads."""
    counter = {"n": 0}

    async def _make(owner, title=None, description="some description", published=True, views=0, duration=None):
        counter["n"] += 1
        n = counter["n"]
        video = await video_repo.create_video(
            db,
            owner_id=owner.id,
            title=title or f"video {n}",
            description=description,
            video_url=f"http://assets.test/test-bucket/videos/v{n}.mp4",
            video_external_id=f"videos/v{n}.mp4",
            thumbnail_url=f"http://assets.test/test-bucket/images/t{n}.png",
            thumbnail_external_id=f"images/t{n}.png",
            duration=duration,
        )
        video.is_published = published
        video.views = views
        await db.commit()
        return video

    return _make


@pytest.fixture
async def client(db, video_service, view_service):
    from videohub.main import app
    from videohub.db.session import get_db
    from videohub.dependencies import get_video_service, get_view_service

    async def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_video_service] = lambda: video_service
    app.dependency_overrides[get_view_service] = lambda: view_service
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers():
    from videohub.services.auth_service import create_access_token

    def _headers(user):
        return {"Authorization": f"Bearer {create_access_token({'sub': str(user.id)})}"}

    return _headers
