"""
Photo service for managing photos.
Keeps each album's cover photo consistent as photos come and go.
"""
import random
from typing import List, Optional, Tuple

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from memoria.database import utcnow
from memoria.exceptions import NotFoundError, UnauthorizedError
from memoria.models.album import Album
from memoria.models.photo import Photo
from memoria.models.user import User
from memoria.schemas.photo import PhotoCreate, PhotoResponse, PhotoUpdate, PhotoWithUrl
from memoria.services.album import can_view_album, matches_text
from memoria.services.storage import get_storage_service
from memoria.utils.logger import log_info
from memoria.utils.ownership import ensure_owner
from memoria.utils.pagination import clamp_limit, paginate
from memoria.utils.prometheus_metrics import (
    cover_photo_changes_total,
    photo_operations_total,
    search_requests_total,
)


class PhotoService:
    """
    Service for handling photo operations.
    Image bytes live in object storage; this service only manages metadata.
    """

    def __init__(self, db: AsyncSession):
        self.db = db
        self.storage = get_storage_service()

    # ============== Photo CRUD ==============

    async def add_photo(self, album_id: int, user: User, photo_data: PhotoCreate) -> Photo:
        """
        Register an uploaded photo in an album.

        The first photo of an album without a cover becomes its cover.

        Args:
            album_id: Target album
            user: Acting user (must own the album)
            photo_data: Title, storage keys and optional metadata

        Returns:
            Created Photo model

        Raises:
            NotFoundError: If the album does not exist
            UnauthorizedError: If `user` does not own the album
        """
        # Row lock so concurrent first uploads cannot both set the cover
        result = await self.db.execute(
            select(Album).where(Album.id == album_id).with_for_update()
        )
        album = result.scalar_one_or_none()
        if album is None:
            photo_operations_total.labels(operation="add", result="failure").inc()
            raise NotFoundError("Album not found")
        self._ensure_owner(user, album.user_id, "album", album.id, "add")

        now = utcnow()
        photo = Photo(
            album_id=album.id,
            user_id=album.user_id,
            title=photo_data.title,
            storage_id=photo_data.storage_id,
            thumbnail_storage_id=photo_data.thumbnail_storage_id,
            description=photo_data.description,
            tags=photo_data.tags,
            created_at=now,
            updated_at=now,
        )
        self.db.add(photo)
        await self.db.flush()

        if album.cover_photo_id is None:
            album.cover_photo_id = photo.id
            album.updated_at = utcnow()
            await self.db.flush()
            cover_photo_changes_total.labels(reason="first_photo").inc()

        await self.db.refresh(photo)
        photo_operations_total.labels(operation="add", result="success").inc()
        log_info("Photo added", event="photo", user_id=user.id, album_id=album.id, photo_id=photo.id)
        return photo

    async def update_photo(self, photo_id: int, user: User, update_data: PhotoUpdate) -> Photo:
        """
        Apply a partial update to photo metadata.

        Raises:
            NotFoundError: If the photo does not exist
            UnauthorizedError: If `user` does not own the photo
        """
        photo = await self._get_photo(photo_id)
        if photo is None:
            photo_operations_total.labels(operation="update", result="failure").inc()
            raise NotFoundError("Photo not found")
        self._ensure_owner(user, photo.user_id, "photo", photo.id, "update")

        fields = update_data.model_dump(exclude_unset=True)
        for name, value in fields.items():
            setattr(photo, name, value)
        photo.updated_at = utcnow()

        await self.db.flush()
        photo_operations_total.labels(operation="update", result="success").inc()
        log_info("Photo updated", event="photo", photo_id=photo.id, fields=sorted(fields))
        return photo

    async def delete_photo(self, photo_id: int, user: User) -> None:
        """
        Delete a photo.

        If it is its album's cover, the cover moves to the oldest remaining
        photo of the album (or is cleared) and that change is flushed
        before the photo row is removed.

        Raises:
            NotFoundError: If the photo does not exist
            UnauthorizedError: If `user` does not own the photo
        """
        photo = await self._get_photo(photo_id)
        if photo is None:
            photo_operations_total.labels(operation="delete", result="failure").inc()
            raise NotFoundError("Photo not found")
        self._ensure_owner(user, photo.user_id, "photo", photo.id, "delete")

        result = await self.db.execute(select(Album).where(Album.id == photo.album_id))
        album = result.scalar_one_or_none()
        if album is not None and album.cover_photo_id == photo.id:
            result = await self.db.execute(
                select(Photo.id)
                .where(Photo.album_id == album.id, Photo.id != photo.id)
                .order_by(Photo.id.asc())
                .limit(1)
            )
            replacement_id = result.scalar_one_or_none()
            album.cover_photo_id = replacement_id
            album.updated_at = utcnow()
            await self.db.flush()
            cover_photo_changes_total.labels(
                reason="reassigned" if replacement_id is not None else "cleared"
            ).inc()

        await self.db.delete(photo)
        await self.db.flush()
        photo_operations_total.labels(operation="delete", result="success").inc()
        log_info("Photo deleted", event="photo", photo_id=photo_id, album_id=photo.album_id)

    def _ensure_owner(self, user: User, owner_id: int, resource: str, resource_id: int, operation: str) -> None:
        try:
            ensure_owner(user, owner_id, resource, resource_id)
        except UnauthorizedError:
            photo_operations_total.labels(operation=operation, result="failure").inc()
            raise

    async def _get_photo(self, photo_id: int) -> Optional[Photo]:
        result = await self.db.execute(select(Photo).where(Photo.id == photo_id))
        return result.scalar_one_or_none()

    async def _get_visible_album(self, album_id: int, viewer: Optional[User]) -> Optional[Album]:
        result = await self.db.execute(select(Album).where(Album.id == album_id))
        album = result.scalar_one_or_none()
        if album is None or not can_view_album(album, viewer):
            return None
        return album

    # ============== Queries ==============

    async def get_photo_by_id(self, photo_id: int, viewer: Optional[User] = None) -> Photo:
        """
        Get a photo visible to `viewer`.

        Raises:
            NotFoundError: If the photo does not exist or its album is private to someone else
        """
        photo = await self._get_photo(photo_id)
        if photo is None:
            raise NotFoundError("Photo not found")
        result = await self.db.execute(select(Album).where(Album.id == photo.album_id))
        album = result.scalar_one_or_none()
        if album is None or not can_view_album(album, viewer):
            raise NotFoundError("Photo not found")
        return photo

    async def get_photos_by_album(
        self,
        album_id: int,
        viewer: Optional[User] = None,
        limit: Optional[int] = None,
        cursor: Optional[str] = None,
    ) -> Tuple[List[Photo], Optional[str], bool]:
        """Photos of an album newest first; empty when the album is missing or not visible."""
        album = await self._get_visible_album(album_id, viewer)
        if album is None:
            return [], None, True
        query = select(Photo).where(Photo.album_id == album.id)
        return await paginate(self.db, query, Photo.id, limit, cursor)

    async def get_photo_count_by_album(self, album_id: int, viewer: Optional[User] = None) -> int:
        album = await self._get_visible_album(album_id, viewer)
        if album is None:
            return 0
        result = await self.db.execute(
            select(func.count(Photo.id)).where(Photo.album_id == album.id)
        )
        return result.scalar() or 0

    async def get_photos_by_user(
        self,
        owner_id: int,
        viewer: Optional[User] = None,
        limit: Optional[int] = None,
        cursor: Optional[str] = None,
    ) -> Tuple[List[Photo], Optional[str], bool]:
        """List a user's photos newest first; non-owners only see photos in public albums."""
        query = select(Photo).where(Photo.user_id == owner_id)
        if viewer is None or viewer.id != owner_id:
            query = query.join(Album, Album.id == Photo.album_id).where(Album.is_public.is_(True))
        return await paginate(self.db, query, Photo.id, limit, cursor)

    async def search_photos(
        self,
        text: str,
        limit: Optional[int] = None,
        viewer: Optional[User] = None,
    ) -> List[Photo]:
        """
        Case-insensitive substring search over title, description and tags.

        Covers photos of public albums plus the viewer's own photos.
        Full scan, newest first, unranked.
        """
        needle = (text or "").lower()
        if not needle:
            return []

        search_requests_total.labels(target="photos").inc()
        page_size = clamp_limit(limit)

        visible = Album.is_public.is_(True)
        if viewer is not None:
            visible = or_(visible, Photo.user_id == viewer.id)
        result = await self.db.execute(
            select(Photo)
            .join(Album, Album.id == Photo.album_id)
            .where(visible)
            .order_by(Photo.id.desc())
        )
        matches = [
            photo for photo in result.scalars().all()
            if matches_text(needle, photo.title, photo.description, photo.tags)
        ]
        return matches[:page_size]

    async def get_explore_photos(self, limit: Optional[int] = None) -> List[Photo]:
        """Random sample of photos from public albums."""
        search_requests_total.labels(target="explore").inc()
        result = await self.db.execute(
            select(Photo)
            .join(Album, Album.id == Photo.album_id)
            .where(Album.is_public.is_(True))
        )
        photos = list(result.scalars().all())
        random.shuffle(photos)
        return photos[:clamp_limit(limit)]

    # ============== Responses ==============

    def to_response(self, photo: Photo) -> PhotoWithUrl:
        """Attach resolved image URLs to a photo."""
        data = PhotoResponse.model_validate(photo).model_dump()
        return PhotoWithUrl(
            **data,
            image_url=self.storage.get_url(photo.storage_id),
            thumbnail_url=self.storage.get_url(photo.thumbnail_storage_id),
        )
