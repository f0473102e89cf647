"""
Photo model for storing photo metadata.
Image bytes live in object storage; rows hold the object keys.
"""
from datetime import datetime
from typing import List, Optional

from sqlalchemy import JSON, DateTime, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from memoria.database import Base, utcnow


class Photo(Base):
    """Photo inside an album. `user_id` is copied from the album owner."""

    __tablename__ = "photos"
    __table_args__ = (
        Index("ix_photos_album_id_created_at", "album_id", "created_at"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    album_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("albums.id"), index=True, nullable=False
    )
    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id"), index=True, nullable=False
    )

    title: Mapped[str] = mapped_column(String(255), nullable=False)

    # Storage keys
    storage_id: Mapped[str] = mapped_column(String(500), nullable=False)
    thumbnail_storage_id: Mapped[str] = mapped_column(String(500), nullable=False)

    # Optional metadata
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    tags: Mapped[Optional[List[str]]] = mapped_column(JSON, nullable=True)

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, index=True)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)

    def __repr__(self) -> str:
        return f"<Photo(id={self.id}, album_id={self.album_id})>"
