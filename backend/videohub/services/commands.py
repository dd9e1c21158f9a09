"""Upfront validation: raw inputs in, fully-populated command values out.

Everything downstream of these builders can rely on every field being present
and well-formed; anything else is rejected with ValidationError before any
side effect happens.
"""
from dataclasses import dataclass
from uuid import UUID

from videohub.db.repositories.video_repo import SORTABLE_COLUMNS
from videohub.exceptions import ValidationError
from videohub.services.staging import ChunkSource

SORT_DIRECTIONS = ("asc", "desc")


@dataclass(frozen=True)
class UploadPayload:
    """An uploaded part: raw bytes or an async readable that is streamed into staging."""
    filename: str
    source: bytes | ChunkSource
    size: int | None = None

    @property
    def known_size(self) -> int | None:
        if isinstance(self.source, bytes):
            return len(self.source)
        return self.size


@dataclass(frozen=True)
class CreateVideoCommand:
    actor_id: UUID
    title: str
    description: str
    video: UploadPayload
    thumbnail: UploadPayload


@dataclass(frozen=True)
class UpdateVideoCommand:
    video_id: UUID
    actor_id: UUID
    title: str
    description: str
    thumbnail: UploadPayload | None = None


@dataclass(frozen=True)
class VideoQuery:
    query: str | None
    owner_id: UUID | None
    sort_by: str
    descending: bool
    page: int | None
    limit: int | None

    @property
    def sample_mode(self) -> bool:
        return self.page is None and self.limit is None


def parse_id(value: UUID | str | None, field_name: str = "id") -> UUID:
    if isinstance(value, UUID):
        return value
    if not value or not str(value).strip():
        raise ValidationError(f"{field_name} is required")
    try:
        return UUID(str(value).strip())
    except ValueError:
        raise ValidationError(f"Invalid {field_name}")


def require_text(value: str | None, field_name: str) -> str:
    text = (value or "").strip()
    if not text:
        raise ValidationError(f"{field_name} is required")
    return text


def require_payload(payload: UploadPayload | None, field_name: str) -> UploadPayload:
    # an unknown size is checked again while streaming into staging
    if payload is None or payload.known_size == 0:
        raise ValidationError(f"{field_name} is required")
    return payload


def build_create_command(
    actor_id: UUID | str,
    title: str | None,
    description: str | None,
    video: UploadPayload | None,
    thumbnail: UploadPayload | None,
) -> CreateVideoCommand:
    return CreateVideoCommand(
        actor_id=parse_id(actor_id, "actorId"),
        title=require_text(title, "title"),
        description=require_text(description, "description"),
        video=require_payload(video, "videoFile"),
        thumbnail=require_payload(thumbnail, "thumbnail"),
    )


def build_update_command(
    video_id: UUID | str,
    actor_id: UUID | str,
    title: str | None,
    description: str | None,
    thumbnail: UploadPayload | None = None,
) -> UpdateVideoCommand:
    if thumbnail is not None and thumbnail.known_size == 0:
        raise ValidationError("thumbnail is empty")
    return UpdateVideoCommand(
        video_id=parse_id(video_id, "videoId"),
        actor_id=parse_id(actor_id, "actorId"),
        title=require_text(title, "title"),
        description=require_text(description, "description"),
        thumbnail=thumbnail,
    )


def build_video_query(
    query: str | None = None,
    user_id: UUID | str | None = None,
    sort_by: str | None = None,
    sort_type: str | None = None,
    page: int | None = None,
    limit: int | None = None,
    default_limit: int = 10,
    max_limit: int = 100,
) -> VideoQuery:
    sort_by = sort_by or "created_at"
    if sort_by not in SORTABLE_COLUMNS:
        raise ValidationError(f"Invalid sortBy, expected one of: {', '.join(SORTABLE_COLUMNS)}")
    sort_type = (sort_type or "desc").lower()
    if sort_type not in SORT_DIRECTIONS:
        raise ValidationError("Invalid sortType, expected 'asc' or 'desc'")

    if page is not None or limit is not None:
        page = 1 if page is None else page
        limit = default_limit if limit is None else limit
        if page < 1:
            raise ValidationError("page must be >= 1")
        if limit < 1:
            raise ValidationError("limit must be >= 1")
        limit = min(limit, max_limit)

    text = (query or "").strip() or None
    owner_id = parse_id(user_id, "userId") if user_id else None
    return VideoQuery(
        query=text,
        owner_id=owner_id,
        sort_by=sort_by,
        descending=sort_type == "desc",
        page=page,
        limit=limit,
    )
