"""
Services package.
Contains business logic and external service integrations.
"""
from memoria.services.storage import ObjectStorageService, get_storage_service
from memoria.services.album import AlbumService
from memoria.services.photo import PhotoService
from memoria.services.identity import IdentityService

__all__ = [
    "ObjectStorageService",
    "get_storage_service",
    "AlbumService",
    "PhotoService",
    "IdentityService",
]
