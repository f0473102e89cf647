"""
Pydantic schemas package.
All schemas are exported here for easy import.
"""
from memoria.schemas.common import CountResponse, Page
from memoria.schemas.user import (
    CurrentUserResponse,
    IdentityClaims,
    UserResponse,
    UserSync,
    UsernameAvailability,
)
from memoria.schemas.photo import (
    PhotoCreate,
    PhotoResponse,
    PhotoUpdate,
    PhotoWithUrl,
    UploadUrlRequest,
    UploadUrlResponse,
)
from memoria.schemas.album import (
    AlbumCreate,
    AlbumDeleteResponse,
    AlbumResponse,
    AlbumUpdate,
)

__all__ = [
    # Common
    "CountResponse",
    "Page",
    # User schemas
    "CurrentUserResponse",
    "IdentityClaims",
    "UserResponse",
    "UserSync",
    "UsernameAvailability",
    # Photo schemas
    "PhotoCreate",
    "PhotoResponse",
    "PhotoUpdate",
    "PhotoWithUrl",
    "UploadUrlRequest",
    "UploadUrlResponse",
    # Album schemas
    "AlbumCreate",
    "AlbumDeleteResponse",
    "AlbumResponse",
    "AlbumUpdate",
]
