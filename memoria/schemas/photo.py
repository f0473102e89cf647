"""
Photo-related Pydantic schemas for request/response validation.
"""
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator


class PhotoCreate(BaseModel):
    """Schema for adding an uploaded photo to an album."""

    title: str = Field(..., min_length=1, max_length=255)
    storage_id: str = Field(..., min_length=1, max_length=500)
    thumbnail_storage_id: str = Field(..., min_length=1, max_length=500)
    description: Optional[str] = None
    tags: Optional[List[str]] = None


class PhotoUpdate(BaseModel):
    """Partial photo update; only fields present in the request are applied."""

    title: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    tags: Optional[List[str]] = None

    @model_validator(mode="after")
    def reject_null_title(self):
        if "title" in self.model_fields_set and self.title is None:
            raise ValueError("title cannot be null")
        return self


class PhotoResponse(BaseModel):
    """Schema for photo response."""

    id: int
    album_id: int
    user_id: int
    title: str
    storage_id: str
    thumbnail_storage_id: str
    description: Optional[str] = None
    tags: Optional[List[str]] = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class PhotoWithUrl(PhotoResponse):
    """Photo response with resolved image URLs (None when storage is not configured)."""

    image_url: Optional[str] = None
    thumbnail_url: Optional[str] = None


class UploadUrlRequest(BaseModel):
    """Schema for requesting a direct-upload URL."""

    filename: str = Field(..., description="Original filename", max_length=255)
    content_type: str = Field(..., description="MIME type of the file")
    file_size: int = Field(..., description="File size in bytes", gt=0)


class UploadUrlResponse(BaseModel):
    """Schema for upload URL response."""

    storage_id: str = Field(..., description="Object key to pass to the add-photo call")
    upload_url: str = Field(..., description="Presigned URL to PUT the file to")
    upload_method: str = Field(default="PUT", description="HTTP method")
    upload_headers: dict = Field(default_factory=dict)
    expires_in: int = Field(..., description="URL expiration time in seconds")
