"""Local staging area for uploaded bytes.

Uploaded payloads are written to a private temp file before they are pushed to
the asset store. Every handle obtained inside ``StagingArea.scope()`` is released
when the scope exits, whatever the outcome.
"""
import logging
import tempfile
import uuid
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from pathlib import Path
from typing import AsyncIterator, Protocol

import aiofiles

from videohub.exceptions import ValidationError

logger = logging.getLogger(__name__)

CHUNK_SIZE = 1024 * 1024  # 1MB


class ChunkSource(Protocol):
    async def read(self, size: int = -1) -> bytes: ...


async def _iter_chunks(source: bytes | ChunkSource) -> AsyncIterator[bytes]:
    if isinstance(source, bytes):
        for start in range(0, len(source), CHUNK_SIZE):
            yield source[start:start + CHUNK_SIZE]
        return
    while chunk := await source.read(CHUNK_SIZE):
        yield chunk


def _too_large(filename: str, max_size: int) -> str:
    return f"File '{filename}' exceeds maximum allowed size of {max_size / (1024 * 1024):.1f}MB"


@dataclass(frozen=True)
class StagedFile:
    path: Path
    original_name: str
    size: int

    @property
    def suffix(self) -> str:
        return self.path.suffix.lower()


@dataclass
class StagingScope:
    """Handles staged within one operation; released together on exit."""
    area: "StagingArea"
    handles: list[StagedFile] = field(default_factory=list)

    async def stage(self, source: bytes | ChunkSource, filename: str, max_size: int | None = None) -> StagedFile:
        handle = await self.area.stage(source, filename, max_size=max_size)
        self.handles.append(handle)
        return handle


class StagingArea:
    def __init__(self, base_dir: str | Path):
        self.base_dir = Path(base_dir)
        self.base_dir.mkdir(parents=True, exist_ok=True)

    async def stage(self, source: bytes | ChunkSource, filename: str, max_size: int | None = None) -> StagedFile:
        """Stream ``source`` chunk by chunk into a new file under the staging dir and return its handle.

        ``source`` is raw bytes or anything with an async ``read(size)``, such as an ``UploadFile``.
        """
        declared = len(source) if isinstance(source, bytes) else getattr(source, "size", None)
        if max_size is not None and declared is not None and declared > max_size:
            raise ValidationError(_too_large(filename, max_size))
        suffix = Path(filename or "").suffix.lower()
        with tempfile.NamedTemporaryFile(
            delete=False, dir=self.base_dir, prefix=f"{uuid.uuid4().hex}_", suffix=suffix
        ) as tmp_file:
            tmp_path = Path(tmp_file.name)

        written = 0
        try:
            async with aiofiles.open(tmp_path, "wb") as f:
                async for chunk in _iter_chunks(source):
                    written += len(chunk)
                    if max_size is not None and written > max_size:
                        raise ValidationError(_too_large(filename, max_size))
                    await f.write(chunk)
            if written == 0:
                raise ValidationError(f"File '{filename}' is empty")
        except BaseException:
            # the file exists on disk but no handle was handed out yet
            self.release(StagedFile(path=tmp_path, original_name=filename, size=written))
            raise

        logger.debug(f"Staged {filename} -> {tmp_path} ({written} bytes)")
        return StagedFile(path=tmp_path, original_name=filename, size=written)

    def release(self, handle: StagedFile | None) -> None:
        """Remove a staged file. Releasing a missing or already-removed handle is a no-op."""
        if handle is None:
            return
        try:
            handle.path.unlink(missing_ok=True)
            logger.debug(f"Released staged file: {handle.path}")
        except OSError as e:
            logger.error(f"Failed to release staged file {handle.path}: {e}")

    @asynccontextmanager
    async def scope(self) -> AsyncIterator[StagingScope]:
        staging_scope = StagingScope(area=self)
        try:
            yield staging_scope
        finally:
            for handle in staging_scope.handles:
                self.release(handle)
