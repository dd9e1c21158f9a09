import uuid
from sqlalchemy import String, DateTime, ForeignKey, Text, Integer, Float, Boolean, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship
from datetime import datetime

from videohub.db.base import Base


class Video(Base):
    __tablename__ = "videos"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    # owner is set once on create and never reassigned
    owner_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    duration: Mapped[float | None] = mapped_column(Float, nullable=True)  # seconds, probed from the upload

    video_url: Mapped[str] = mapped_column(String(1024), nullable=False)
    video_external_id: Mapped[str] = mapped_column(String(512), nullable=False)
    video_format: Mapped[str | None] = mapped_column(String(32), nullable=True)
    thumbnail_url: Mapped[str] = mapped_column(String(1024), nullable=False)
    thumbnail_external_id: Mapped[str] = mapped_column(String(512), nullable=False)

    is_published: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, index=True)
    views: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=datetime.utcnow, index=True)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=datetime.utcnow, onupdate=datetime.utcnow
    )

    owner = relationship("User", lazy="raise")
