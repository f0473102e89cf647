"""
Albums router for album management.
"""
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from memoria.database import get_db
from memoria.dependencies.auth import get_current_user, get_optional_current_user
from memoria.middlewares.rate_limit_middleware import search_rate_limit
from memoria.models.user import User
from memoria.schemas.album import (
    AlbumCreate,
    AlbumDeleteResponse,
    AlbumResponse,
    AlbumUpdate,
)
from memoria.schemas.common import CountResponse, Page
from memoria.schemas.photo import PhotoCreate, PhotoWithUrl
from memoria.services.album import AlbumService
from memoria.services.photo import PhotoService

router = APIRouter(prefix="/albums", tags=["Albums"])


@router.post(
    "",
    response_model=AlbumResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a new album",
)
async def create_album(
    album_data: AlbumCreate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> AlbumResponse:
    """
    Create a new photo album.

    - **title**: Album title (required)
    - **description**: Optional album description
    - **category**: Optional free-form category
    - **is_public**: Visibility flag (required)
    """
    album = await AlbumService(db).create_album(current_user, album_data)
    return AlbumResponse.model_validate(album)


@router.get(
    "/public",
    response_model=Page[AlbumResponse],
    summary="List public albums",
)
async def get_public_albums(
    limit: Optional[int] = Query(None, ge=1),
    cursor: Optional[str] = None,
    db: AsyncSession = Depends(get_db),
) -> Page[AlbumResponse]:
    """Public albums, newest first."""
    items, next_cursor, is_done = await AlbumService(db).get_public_albums(limit, cursor)
    return Page[AlbumResponse](
        items=[AlbumResponse.model_validate(a) for a in items],
        next_cursor=next_cursor,
        is_done=is_done,
    )


@router.get(
    "/search",
    response_model=List[AlbumResponse],
    summary="Search public albums",
)
@search_rate_limit()
async def search_albums(
    request: Request,
    q: str = Query("", max_length=200, description="Text to find in title or description"),
    limit: Optional[int] = Query(None, ge=1),
    db: AsyncSession = Depends(get_db),
) -> List[AlbumResponse]:
    """
    Case-insensitive substring search over public albums.
    An empty query returns an empty list.
    """
    albums = await AlbumService(db).search_albums(q, limit)
    return [AlbumResponse.model_validate(a) for a in albums]


@router.get(
    "/{album_id}",
    response_model=AlbumResponse,
    summary="Get album",
)
async def get_album(
    album_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: Optional[User] = Depends(get_optional_current_user),
) -> AlbumResponse:
    """
    Get a specific album.
    Private albums are only visible to their owner.
    """
    album = await AlbumService(db).get_album_by_id(album_id, current_user)
    return AlbumResponse.model_validate(album)


@router.patch(
    "/{album_id}",
    response_model=AlbumResponse,
    summary="Update album",
)
async def update_album(
    album_id: int,
    update_data: AlbumUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> AlbumResponse:
    """
    Update album metadata.

    Only fields present in the body are changed. `cover_photo_id` must be a
    photo of this album; null clears it.
    """
    album = await AlbumService(db).update_album(album_id, current_user, update_data)
    return AlbumResponse.model_validate(album)


@router.delete(
    "/{album_id}",
    response_model=AlbumDeleteResponse,
    summary="Delete album",
)
async def delete_album(
    album_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> AlbumDeleteResponse:
    """
    Delete an album together with all of its photos.
    """
    photos_deleted = await AlbumService(db).delete_album(album_id, current_user)
    return AlbumDeleteResponse(album_id=album_id, photos_deleted=photos_deleted)


# ============== Album photos ==============


@router.post(
    "/{album_id}/photos",
    response_model=PhotoWithUrl,
    status_code=status.HTTP_201_CREATED,
    summary="Add an uploaded photo to an album",
)
async def add_photo(
    album_id: int,
    photo_data: PhotoCreate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> PhotoWithUrl:
    """
    Register a photo whose bytes were uploaded through `/photos/upload-url`.

    The first photo of an album without a cover becomes its cover.
    """
    photo_service = PhotoService(db)
    photo = await photo_service.add_photo(album_id, current_user, photo_data)
    return photo_service.to_response(photo)


@router.get(
    "/{album_id}/photos",
    response_model=Page[PhotoWithUrl],
    summary="List album photos",
)
async def get_album_photos(
    album_id: int,
    limit: Optional[int] = Query(None, ge=1),
    cursor: Optional[str] = None,
    db: AsyncSession = Depends(get_db),
    current_user: Optional[User] = Depends(get_optional_current_user),
) -> Page[PhotoWithUrl]:
    photo_service = PhotoService(db)
    items, next_cursor, is_done = await photo_service.get_photos_by_album(
        album_id, current_user, limit, cursor
    )
    return Page[PhotoWithUrl](
        items=[photo_service.to_response(p) for p in items],
        next_cursor=next_cursor,
        is_done=is_done,
    )


@router.get(
    "/{album_id}/photos/count",
    response_model=CountResponse,
    summary="Count album photos",
)
async def get_album_photo_count(
    album_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: Optional[User] = Depends(get_optional_current_user),
) -> CountResponse:
    count = await PhotoService(db).get_photo_count_by_album(album_id, current_user)
    return CountResponse(count=count)
