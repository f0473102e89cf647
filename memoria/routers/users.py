"""
Users router: identity sync, profiles and per-user listings.
"""
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from fastapi.responses import Response
from sqlalchemy.ext.asyncio import AsyncSession

from memoria.database import get_db
from memoria.dependencies.auth import (
    get_current_claims,
    get_current_user,
    get_optional_current_user,
)
from memoria.models.user import User
from memoria.schemas.album import AlbumResponse
from memoria.schemas.common import CountResponse, Page
from memoria.schemas.photo import PhotoWithUrl
from memoria.schemas.user import (
    CurrentUserResponse,
    IdentityClaims,
    UserResponse,
    UserSync,
    UsernameAvailability,
)
from memoria.services.album import AlbumService
from memoria.services.identity import IdentityService
from memoria.services.photo import PhotoService

router = APIRouter(prefix="/users", tags=["Users"])


@router.post(
    "/sync",
    response_model=CurrentUserResponse,
    summary="Create or refresh the caller's user record",
)
async def sync_user(
    profile: UserSync,
    claims: IdentityClaims = Depends(get_current_claims),
    db: AsyncSession = Depends(get_db),
) -> CurrentUserResponse:
    """
    Called by the client after login.

    The identity is the verified token subject; the body only carries
    profile fields. Returns 409 if the username belongs to someone else.
    """
    user = await IdentityService(db).sync_user(
        external_id=claims.sub,
        email=profile.email,
        name=profile.name,
        username=profile.username,
        image_url=profile.image_url,
    )
    return CurrentUserResponse.model_validate(user)


@router.get(
    "/me",
    response_model=CurrentUserResponse,
    summary="Get current user",
)
async def get_me(
    current_user: User = Depends(get_current_user),
) -> CurrentUserResponse:
    return CurrentUserResponse.model_validate(current_user)


@router.delete(
    "/me",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete current user and all their albums and photos",
)
async def delete_me(
    claims: IdentityClaims = Depends(get_current_claims),
    db: AsyncSession = Depends(get_db),
) -> Response:
    await IdentityService(db).delete_user(claims.sub)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get(
    "",
    response_model=Page[UserResponse],
    summary="List users",
)
async def list_users(
    limit: Optional[int] = Query(None, ge=1),
    cursor: Optional[str] = None,
    db: AsyncSession = Depends(get_db),
) -> Page[UserResponse]:
    items, next_cursor, is_done = await IdentityService(db).list_users(limit, cursor)
    return Page[UserResponse](
        items=[UserResponse.model_validate(u) for u in items],
        next_cursor=next_cursor,
        is_done=is_done,
    )


@router.get(
    "/username-available",
    response_model=UsernameAvailability,
    summary="Check username availability",
)
async def username_available(
    username: str = Query(..., max_length=100),
    db: AsyncSession = Depends(get_db),
) -> UsernameAvailability:
    available = await IdentityService(db).is_username_available(username)
    return UsernameAvailability(username=username, available=available)


@router.get(
    "/{user_id}",
    response_model=UserResponse,
    summary="Get user profile",
)
async def get_user(
    user_id: int,
    db: AsyncSession = Depends(get_db),
) -> UserResponse:
    user = await IdentityService(db).get_user_by_id(user_id)
    return UserResponse.model_validate(user)


@router.get(
    "/{user_id}/albums",
    response_model=Page[AlbumResponse],
    summary="List a user's albums",
)
async def get_user_albums(
    user_id: int,
    include_private: bool = False,
    limit: Optional[int] = Query(None, ge=1),
    cursor: Optional[str] = None,
    db: AsyncSession = Depends(get_db),
    current_user: Optional[User] = Depends(get_optional_current_user),
) -> Page[AlbumResponse]:
    """
    Albums of a user, newest first.

    - **include_private**: only honoured when the caller is that user
    """
    await IdentityService(db).get_user_by_id(user_id)
    items, next_cursor, is_done = await AlbumService(db).get_albums_by_user(
        user_id, current_user, include_private, limit, cursor
    )
    return Page[AlbumResponse](
        items=[AlbumResponse.model_validate(a) for a in items],
        next_cursor=next_cursor,
        is_done=is_done,
    )


@router.get(
    "/{user_id}/albums/count",
    response_model=CountResponse,
    summary="Count a user's albums",
)
async def get_user_album_count(
    user_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: Optional[User] = Depends(get_optional_current_user),
) -> CountResponse:
    """All albums for the user themself, public ones for everyone else."""
    await IdentityService(db).get_user_by_id(user_id)
    count = await AlbumService(db).get_album_count_by_user(user_id, current_user)
    return CountResponse(count=count)


@router.get(
    "/{user_id}/photos",
    response_model=Page[PhotoWithUrl],
    summary="List a user's photos",
)
async def get_user_photos(
    user_id: int,
    limit: Optional[int] = Query(None, ge=1),
    cursor: Optional[str] = None,
    db: AsyncSession = Depends(get_db),
    current_user: Optional[User] = Depends(get_optional_current_user),
) -> Page[PhotoWithUrl]:
    await IdentityService(db).get_user_by_id(user_id)
    photo_service = PhotoService(db)
    items, next_cursor, is_done = await photo_service.get_photos_by_user(
        user_id, current_user, limit, cursor
    )
    return Page[PhotoWithUrl](
        items=[photo_service.to_response(p) for p in items],
        next_cursor=next_cursor,
        is_done=is_done,
    )
