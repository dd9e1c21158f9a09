"""Gateway to the remote object store holding video and thumbnail payloads.

Uploads are all-or-nothing: any provider failure surfaces as UpstreamStorageError.
Deletes are best-effort: failures come back as a DeleteResult and are logged, never raised.
"""
import asyncio
import enum
import functools
import logging
import mimetypes
import uuid
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Awaitable, Callable

import boto3
from boto3.exceptions import Boto3Error
from botocore.exceptions import BotoCoreError, ClientError
from tenacity import AsyncRetrying, retry_if_exception_type, stop_after_attempt, wait_exponential

from videohub.exceptions import UpstreamStorageError
from videohub.services.staging import StagedFile

logger = logging.getLogger(__name__)

PROVIDER_ERRORS = (BotoCoreError, ClientError, Boto3Error, OSError)


class AssetKind(str, enum.Enum):
    video = "video"
    image = "image"


KEY_PREFIXES = {
    AssetKind.video: "videos/",
    AssetKind.image: "images/",
}


@dataclass(frozen=True)
class AssetRef:
    url: str
    external_id: str
    format: str | None = None
    duration_seconds: float | None = None


@dataclass(frozen=True)
class RemoteObject:
    external_id: str
    last_modified: datetime | None = None


@dataclass(frozen=True)
class DeleteResult:
    external_id: str
    kind: AssetKind
    ok: bool
    error: str | None = None


def build_s3_client(settings):
    return boto3.client(
        "s3",
        endpoint_url=settings.s3_endpoint_url,
        aws_access_key_id=settings.s3_access_key,
        aws_secret_access_key=settings.s3_secret_key,
        region_name=settings.s3_region,
    )


async def _no_probe(path: Path) -> float | None:
    return None


class S3AssetStore:
    def __init__(
        self,
        client,
        bucket: str,
        public_base_url: str,
        upload_attempts: int = 1,
        retry_wait_seconds: float = 0.5,
        duration_probe: Callable[[Path], Awaitable[float | None]] | None = None,
    ):
        self.client = client
        self.bucket = bucket
        self.public_base_url = public_base_url.rstrip("/")
        self.upload_attempts = max(1, upload_attempts)
        self.retry_wait_seconds = retry_wait_seconds
        self.duration_probe = duration_probe or _no_probe

    def url_for(self, external_id: str) -> str:
        return f"{self.public_base_url}/{external_id}"

    async def _run(self, fn, *args, **kwargs):
        # boto3 is blocking; keep it off the event loop
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, functools.partial(fn, *args, **kwargs))

    async def upload(self, handle: StagedFile, kind: AssetKind) -> AssetRef:
        # The key is chosen once, so a retried attempt overwrites rather than duplicates
        external_id = f"{KEY_PREFIXES[kind]}{uuid.uuid4().hex}{handle.suffix}"
        content_type = mimetypes.guess_type(handle.original_name or handle.path.name)[0] or "application/octet-stream"

        try:
            async for attempt in AsyncRetrying(
                stop=stop_after_attempt(self.upload_attempts),
                wait=wait_exponential(multiplier=self.retry_wait_seconds, max=10),
                retry=retry_if_exception_type(PROVIDER_ERRORS),
                reraise=True,
            ):
                with attempt:
                    await self._run(
                        self.client.upload_file,
                        str(handle.path),
                        self.bucket,
                        external_id,
                        ExtraArgs={"ContentType": content_type},
                    )
        except PROVIDER_ERRORS as e:
            logger.error(f"Upload of {kind.value} '{handle.original_name}' failed: {e}")
            raise UpstreamStorageError(
                f"Failed to upload {kind.value} to asset store: {e}", kind=kind.value, external_id=external_id
            ) from e

        duration = await self.duration_probe(handle.path) if kind is AssetKind.video else None
        logger.info(f"Uploaded {kind.value} {external_id} ({handle.size} bytes)")
        return AssetRef(
            url=self.url_for(external_id),
            external_id=external_id,
            format=handle.suffix.lstrip(".") or None,
            duration_seconds=duration,
        )

    async def delete(self, external_id: str, kind: AssetKind) -> DeleteResult:
        if not external_id:
            return DeleteResult(external_id="", kind=kind, ok=True)
        try:
            await self._run(self.client.delete_object, Bucket=self.bucket, Key=external_id)
        except Exception as e:
            logger.warning(f"Best-effort delete of {kind.value} {external_id} failed: {e}")
            return DeleteResult(external_id=external_id, kind=kind, ok=False, error=str(e))
        logger.info(f"Deleted {kind.value} {external_id} from asset store")
        return DeleteResult(external_id=external_id, kind=kind, ok=True)

    async def list_objects(self, kind: AssetKind) -> list[RemoteObject]:
        def _list() -> list[RemoteObject]:
            objects = []
            paginator = self.client.get_paginator("list_objects_v2")
            for page in paginator.paginate(Bucket=self.bucket, Prefix=KEY_PREFIXES[kind]):
                for obj in page.get("Contents", []):
                    objects.append(RemoteObject(external_id=obj["Key"], last_modified=obj.get("LastModified")))
            return objects

        try:
            return await self._run(_list)
        except PROVIDER_ERRORS as e:
            raise UpstreamStorageError(f"Failed to list {kind.value} assets: {e}", kind=kind.value) from e
