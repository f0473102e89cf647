"""
Album service: album lifecycle and album queries.
"""
from typing import List, Optional, Tuple

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from memoria.database import utcnow
from memoria.exceptions import InvalidInputError, NotFoundError, UnauthorizedError
from memoria.models.album import Album
from memoria.models.photo import Photo
from memoria.models.user import User
from memoria.schemas.album import AlbumCreate, AlbumUpdate
from memoria.utils.logger import log_info
from memoria.utils.ownership import ensure_owner
from memoria.utils.pagination import clamp_limit, paginate
from memoria.utils.prometheus_metrics import album_operations_total, search_requests_total


def can_view_album(album: Album, viewer: Optional[User]) -> bool:
    """Public albums are visible to everyone, private ones to their owner only."""
    return album.is_public or (viewer is not None and viewer.id == album.user_id)


def matches_text(needle: str, *fields) -> bool:
    """Case-insensitive substring match over strings and lists of strings."""
    for value in fields:
        if not value:
            continue
        if isinstance(value, (list, tuple)):
            if any(needle in str(item).lower() for item in value):
                return True
        elif needle in str(value).lower():
            return True
    return False


class AlbumService:
    """
    Service for handling album operations.
    Every mutation checks ownership before its first write.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    # ============== Album CRUD ==============

    async def create_album(self, user: User, album_data: AlbumCreate) -> Album:
        """
        Create a new album with no cover photo.

        Args:
            user: Owner of the album
            album_data: Album creation data

        Returns:
            Created Album model
        """
        now = utcnow()
        album = Album(
            user_id=user.id,
            title=album_data.title,
            description=album_data.description,
            category=album_data.category,
            is_public=album_data.is_public,
            cover_photo_id=None,
            created_at=now,
            updated_at=now,
        )

        self.db.add(album)
        await self.db.flush()
        await self.db.refresh(album)
        album_operations_total.labels(operation="create", result="success").inc()
        log_info("Album created", event="album", user_id=user.id, album_id=album.id)
        return album

    async def update_album(self, album_id: int, user: User, update_data: AlbumUpdate) -> Album:
        """
        Apply a partial update.

        Only fields present in the request are applied. `updated_at` moves
        on every successful call, including an empty patch.

        Raises:
            NotFoundError: If the album does not exist
            UnauthorizedError: If `user` does not own the album
            InvalidInputError: If the cover photo is not in this album
        """
        album = await self._get_album_for_write(album_id, user, "update")
        fields = update_data.model_dump(exclude_unset=True)

        cover_photo_id = fields.get("cover_photo_id")
        if cover_photo_id is not None:
            result = await self.db.execute(
                select(Photo.id).where(Photo.id == cover_photo_id, Photo.album_id == album.id)
            )
            if result.scalar_one_or_none() is None:
                album_operations_total.labels(operation="update", result="failure").inc()
                raise InvalidInputError("Cover photo must be a photo of this album")

        for name, value in fields.items():
            setattr(album, name, value)
        album.updated_at = utcnow()

        await self.db.flush()
        album_operations_total.labels(operation="update", result="success").inc()
        log_info("Album updated", event="album", album_id=album.id, fields=sorted(fields))
        return album

    async def delete_album(self, album_id: int, user: User) -> int:
        """
        Delete an album and all of its photos.

        Photos are removed and flushed before the album row. Stored image
        objects are left in place.

        Returns:
            Number of photos removed

        Raises:
            NotFoundError: If the album does not exist
            UnauthorizedError: If `user` does not own the album
        """
        album = await self._get_album_for_write(album_id, user, "delete")

        result = await self.db.execute(select(Photo).where(Photo.album_id == album.id))
        photos = list(result.scalars().all())
        for photo in photos:
            await self.db.delete(photo)
        await self.db.flush()

        await self.db.delete(album)
        await self.db.flush()

        album_operations_total.labels(operation="delete", result="success").inc()
        log_info("Album deleted", event="album", album_id=album_id, photos_deleted=len(photos))
        return len(photos)

    async def _get_album_for_write(self, album_id: int, user: User, operation: str) -> Album:
        album = await self._get_album(album_id)
        if album is None:
            album_operations_total.labels(operation=operation, result="failure").inc()
            raise NotFoundError("Album not found")
        try:
            ensure_owner(user, album.user_id, "album", album.id)
        except UnauthorizedError:
            album_operations_total.labels(operation=operation, result="failure").inc()
            raise
        return album

    async def _get_album(self, album_id: int) -> Optional[Album]:
        result = await self.db.execute(select(Album).where(Album.id == album_id))
        return result.scalar_one_or_none()

    # ============== Queries ==============

    async def get_album_by_id(self, album_id: int, viewer: Optional[User] = None) -> Album:
        """
        Get an album visible to `viewer`.

        Raises:
            NotFoundError: If the album does not exist or is private to someone else
        """
        album = await self._get_album(album_id)
        if album is None or not can_view_album(album, viewer):
            raise NotFoundError("Album not found")
        return album

    async def get_albums_by_user(
        self,
        owner_id: int,
        viewer: Optional[User] = None,
        include_private: bool = False,
        limit: Optional[int] = None,
        cursor: Optional[str] = None,
    ) -> Tuple[List[Album], Optional[str], bool]:
        """
        List a user's albums newest first.

        Private albums are included only when the owner asks for them.
        """
        query = select(Album).where(Album.user_id == owner_id)
        is_owner = viewer is not None and viewer.id == owner_id
        if not (include_private and is_owner):
            query = query.where(Album.is_public.is_(True))
        return await paginate(self.db, query, Album.id, limit, cursor)

    async def get_public_albums(
        self,
        limit: Optional[int] = None,
        cursor: Optional[str] = None,
    ) -> Tuple[List[Album], Optional[str], bool]:
        query = select(Album).where(Album.is_public.is_(True))
        return await paginate(self.db, query, Album.id, limit, cursor)

    async def get_album_count_by_user(self, owner_id: int, viewer: Optional[User] = None) -> int:
        """All albums for the owner, public ones for everyone else."""
        query = select(func.count(Album.id)).where(Album.user_id == owner_id)
        if viewer is None or viewer.id != owner_id:
            query = query.where(Album.is_public.is_(True))
        result = await self.db.execute(query)
        return result.scalar() or 0

    async def search_albums(self, text: str, limit: Optional[int] = None) -> List[Album]:
        """
        Case-insensitive substring search over public album titles and descriptions.

        Scans every public album; results are newest first, unranked.
        """
        needle = (text or "").lower()
        if not needle:
            return []

        search_requests_total.labels(target="albums").inc()
        page_size = clamp_limit(limit)
        result = await self.db.execute(
            select(Album).where(Album.is_public.is_(True)).order_by(Album.id.desc())
        )
        matches = [
            album for album in result.scalars().all()
            if matches_text(needle, album.title, album.description)
        ]
        return matches[:page_size]
