"""
S3-compatible object storage integration.

The API never proxies image bytes: clients PUT files straight to storage
through presigned URLs, then register the returned object key as a photo.

Key layout: photos/{user_id}/{uuid}{ext}
"""
import uuid
from typing import Dict, Optional
from urllib.parse import urlparse

import boto3
from botocore.client import Config
from botocore.exceptions import BotoCoreError, ClientError

from memoria.config import get_settings
from memoria.exceptions import InvalidInputError
from memoria.models.user import User
from memoria.utils.logger import log_error, log_info, log_warning

_EXTENSIONS = {
    "image/jpeg": ".jpg",
    "image/png": ".png",
    "image/webp": ".webp",
    "image/gif": ".gif",
}


class StorageNotConfiguredError(RuntimeError):
    """Raised when S3 credentials are missing."""


class ObjectStorageService:
    """
    Presigned URL generation for direct uploads and image reads.
    """

    def __init__(self):
        self.settings = get_settings()
        self._s3_client = None

    @property
    def is_configured(self) -> bool:
        return bool(self.settings.s3_access_key and self.settings.s3_secret_key)

    def _get_s3_client(self):
        """
        Get or create the S3 client used for presigning.

        Returns:
            Configured boto3 S3 client

        Raises:
            StorageNotConfiguredError: If credentials are not set
        """
        if self._s3_client is not None:
            return self._s3_client

        if not self.is_configured:
            raise StorageNotConfiguredError(
                "S3 API credentials not configured. "
                "Please set S3_ACCESS_KEY and S3_SECRET_KEY environment variables."
            )

        # Host only: a path such as /v1/AUTH_xxx would be read as the bucket name
        endpoint = (self.settings.s3_endpoint_url or "").strip()
        if endpoint:
            parsed = urlparse(endpoint if "://" in endpoint else f"https://{endpoint}")
            endpoint = f"{parsed.scheme or 'https'}://{parsed.netloc or parsed.path.split('/')[0]}"

        self._s3_client = boto3.client(
            "s3",
            aws_access_key_id=self.settings.s3_access_key,
            aws_secret_access_key=self.settings.s3_secret_key,
            endpoint_url=endpoint or None,
            region_name=self.settings.s3_region_name,
            config=Config(
                signature_version="s3v4",
                s3={"addressing_style": "path"},
            ),
        )
        return self._s3_client

    def validate_upload(self, content_type: str, file_size: int) -> None:
        """
        Check content type and size before handing out an upload URL.

        Raises:
            InvalidInputError: If the type is not an allowed image type or the file is too large
        """
        if content_type not in self.settings.allowed_content_types:
            raise InvalidInputError(
                f"Unsupported content type: {content_type}. "
                f"Allowed: {', '.join(self.settings.allowed_content_types)}"
            )
        if file_size > self.settings.max_upload_bytes:
            max_mb = self.settings.max_upload_bytes / (1024 * 1024)
            raise InvalidInputError(f"File too large. Maximum size: {max_mb:g}MB")

    def build_object_key(self, user_id: int, content_type: str) -> str:
        ext = _EXTENSIONS.get(content_type, "")
        return f"photos/{user_id}/{uuid.uuid4().hex}{ext}"

    def generate_upload_url(
        self,
        user: User,
        filename: str,
        content_type: str,
        file_size: int,
        expires_in: Optional[int] = None,
    ) -> Dict[str, object]:
        """
        Validate an upload request and presign a PUT for a fresh object key.

        Args:
            user: Uploading user (owns the key prefix)
            filename: Original filename, logged only
            content_type: MIME type of the file
            file_size: Declared size in bytes
            expires_in: URL expiration time in seconds (default: from settings)

        Returns:
            Dictionary with storage_id, url, method, headers and expires_in

        Raises:
            InvalidInputError: If validation fails
            StorageNotConfiguredError: If credentials are not set
        """
        self.validate_upload(content_type, file_size)

        if expires_in is None:
            expires_in = self.settings.s3_presigned_url_expire_seconds

        object_key = self.build_object_key(user.id, content_type)
        s3_client = self._get_s3_client()

        try:
            url = s3_client.generate_presigned_url(
                ClientMethod="put_object",
                Params={
                    "Bucket": self.settings.storage_bucket,
                    "Key": object_key,
                    "ContentType": content_type,
                },
                ExpiresIn=expires_in,
                HttpMethod="PUT",
            )
        except (BotoCoreError, ClientError):
            log_error("Presigned URL generation failed", exc_info=True, event="storage", object=object_key)
            raise

        log_info(
            "Upload URL issued",
            event="storage",
            user_id=user.id,
            object=object_key,
            original_filename=filename,
            file_size=file_size,
        )
        return {
            "storage_id": object_key,
            "url": url,
            "method": "PUT",
            "headers": {"Content-Type": content_type},
            "expires_in": expires_in,
        }

    def get_url(self, storage_id: Optional[str]) -> Optional[str]:
        """
        Resolve a storage key to a readable URL.

        Public base URL + key when configured, otherwise a presigned GET URL.
        None when storage is not configured.
        """
        if not storage_id:
            return None

        base = (self.settings.storage_public_base_url or "").strip().rstrip("/")
        if base:
            return f"{base}/{storage_id}"

        if not self.is_configured:
            return None

        try:
            return self._get_s3_client().generate_presigned_url(
                ClientMethod="get_object",
                Params={"Bucket": self.settings.storage_bucket, "Key": storage_id},
                ExpiresIn=self.settings.s3_presigned_url_expire_seconds,
            )
        except (BotoCoreError, ClientError) as e:
            log_warning("Presigned GET generation failed", event="storage", object=storage_id, error=str(e))
            return None


# Singleton instance
_storage_service: Optional[ObjectStorageService] = None


def get_storage_service() -> ObjectStorageService:
    """Get the singleton storage service instance."""
    global _storage_service
    if _storage_service is None:
        _storage_service = ObjectStorageService()
    return _storage_service
