"""
Photos router for photo management.

Upload flow:
1. POST /photos/upload-url -> presigned PUT URL + storage_id
2. Client PUTs the file straight to object storage
3. POST /albums/{album_id}/photos with the storage_id
"""
import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from fastapi.responses import Response
from sqlalchemy.ext.asyncio import AsyncSession

from memoria.database import get_db
from memoria.dependencies.auth import get_current_user, get_optional_current_user
from memoria.middlewares.rate_limit_middleware import search_rate_limit
from memoria.models.user import User
from memoria.schemas.photo import (
    PhotoUpdate,
    PhotoWithUrl,
    UploadUrlRequest,
    UploadUrlResponse,
)
from memoria.services.photo import PhotoService
from memoria.services.storage import StorageNotConfiguredError, get_storage_service
from memoria.utils.prometheus_metrics import photo_operations_total

logger = logging.getLogger("memoria.photos")

router = APIRouter(prefix="/photos", tags=["Photos"])


@router.post(
    "/upload-url",
    response_model=UploadUrlResponse,
    summary="Get a presigned URL for direct upload",
)
async def create_upload_url(
    request_data: UploadUrlRequest,
    current_user: User = Depends(get_current_user),
) -> UploadUrlResponse:
    """
    Issue a presigned PUT URL for one image.

    - **filename**: Original filename
    - **content_type**: image/jpeg, image/png, image/webp or image/gif
    - **file_size**: Size in bytes (max 5MB by default)

    The returned `storage_id` is what the add-photo call expects.
    """
    storage = get_storage_service()
    try:
        result = storage.generate_upload_url(
            user=current_user,
            filename=request_data.filename,
            content_type=request_data.content_type,
            file_size=request_data.file_size,
        )
    except StorageNotConfiguredError:
        photo_operations_total.labels(operation="upload_url", result="failure").inc()
        logger.error("Upload URL requested but storage is not configured", extra={"event": "storage"})
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Object storage is not configured",
        )
    except Exception:
        photo_operations_total.labels(operation="upload_url", result="failure").inc()
        raise

    photo_operations_total.labels(operation="upload_url", result="success").inc()
    return UploadUrlResponse(
        storage_id=result["storage_id"],
        upload_url=result["url"],
        upload_method=result["method"],
        upload_headers=result["headers"],
        expires_in=result["expires_in"],
    )


@router.get(
    "/search",
    response_model=List[PhotoWithUrl],
    summary="Search photos",
)
@search_rate_limit()
async def search_photos(
    request: Request,
    q: str = Query("", max_length=200, description="Text to find in title, description or tags"),
    limit: Optional[int] = Query(None, ge=1),
    db: AsyncSession = Depends(get_db),
    current_user: Optional[User] = Depends(get_optional_current_user),
) -> List[PhotoWithUrl]:
    """
    Case-insensitive substring search over photos in public albums and
    the caller's own photos. An empty query returns an empty list.
    """
    photo_service = PhotoService(db)
    photos = await photo_service.search_photos(q, limit, current_user)
    return [photo_service.to_response(p) for p in photos]


@router.get(
    "/explore",
    response_model=List[PhotoWithUrl],
    summary="Random public photos",
)
@search_rate_limit()
async def explore_photos(
    request: Request,
    limit: Optional[int] = Query(None, ge=1),
    db: AsyncSession = Depends(get_db),
) -> List[PhotoWithUrl]:
    photo_service = PhotoService(db)
    photos = await photo_service.get_explore_photos(limit)
    return [photo_service.to_response(p) for p in photos]


@router.get(
    "/{photo_id}",
    response_model=PhotoWithUrl,
    summary="Get photo",
)
async def get_photo(
    photo_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: Optional[User] = Depends(get_optional_current_user),
) -> PhotoWithUrl:
    """
    Get photo metadata with image URLs.
    Photos in private albums are only visible to their owner.
    """
    photo_service = PhotoService(db)
    photo = await photo_service.get_photo_by_id(photo_id, current_user)
    return photo_service.to_response(photo)


@router.patch(
    "/{photo_id}",
    response_model=PhotoWithUrl,
    summary="Update photo",
)
async def update_photo(
    photo_id: int,
    update_data: PhotoUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> PhotoWithUrl:
    """
    Update photo metadata. Only fields present in the body are changed.
    """
    photo_service = PhotoService(db)
    photo = await photo_service.update_photo(photo_id, current_user, update_data)
    return photo_service.to_response(photo)


@router.delete(
    "/{photo_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete photo",
)
async def delete_photo(
    photo_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> Response:
    """
    Delete a photo. If it was the album cover, the cover moves to the
    album's oldest remaining photo or is cleared.
    """
    await PhotoService(db).delete_photo(photo_id, current_user)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
