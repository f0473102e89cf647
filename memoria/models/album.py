"""
Album model for organizing photos into collections.
"""
from datetime import datetime
from typing import Optional

from sqlalchemy import Boolean, DateTime, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from memoria.database import Base, utcnow


class Album(Base):
    """Album owned by exactly one user; holds photos and an optional cover."""

    __tablename__ = "albums"
    __table_args__ = (
        Index("ix_albums_user_id_created_at", "user_id", "created_at"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id"), index=True, nullable=False
    )

    # Album information
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    category: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)

    # Cover photo. Not a foreign key: photos reference albums, and the
    # album/photo services keep this pointing at one of the album's photos.
    cover_photo_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    is_public: Mapped[bool] = mapped_column(Boolean, index=True, nullable=False)

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)

    def __repr__(self) -> str:
        return f"<Album(id={self.id}, title={self.title})>"
