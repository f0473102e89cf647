"""
Identity service: maps identity-provider accounts to local users.
"""
import time
from typing import List, Optional, Tuple

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from memoria.config import get_settings
from memoria.database import utcnow
from memoria.exceptions import ConflictError, NotFoundError
from memoria.models.album import Album
from memoria.models.user import User
from memoria.schemas.user import IdentityClaims
from memoria.services.album import AlbumService
from memoria.utils.logger import log_info, log_warning
from memoria.utils.pagination import paginate
from memoria.utils.prometheus_metrics import user_sync_total


def _default_username() -> str:
    return f"user{int(time.time() * 1000)}"


class IdentityService:
    """
    Service for user records keyed by external identity.
    Provides sync on login, token resolution and account deletion.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    async def sync_user(
        self,
        external_id: str,
        email: str,
        name: str = "",
        username: str = "",
        image_url: Optional[str] = None,
    ) -> User:
        """
        Create or refresh the user for an external identity.

        Args:
            external_id: Identity-provider subject
            email: Primary email address
            name: Display name (blank falls back to "User")
            username: Handle (blank falls back to user<unix-millis>)
            image_url: Profile image URL

        Returns:
            Created or updated User

        Raises:
            ConflictError: If the username belongs to another identity
        """
        name = (name or "").strip() or "User"
        username = (username or "").strip() or _default_username()

        holder = await self._get_user_by_username(username)
        if holder is not None and holder.external_id != external_id:
            user_sync_total.labels(result="failure").inc()
            log_warning("User sync failed", event="user", reason="username_taken")
            raise ConflictError("Username already taken")

        user = await self.get_user_by_external_id(external_id)
        if user is None:
            now = utcnow()
            user = User(
                external_id=external_id,
                email=email,
                name=name,
                username=username,
                image_url=image_url,
                created_at=now,
                updated_at=now,
            )
            self.db.add(user)
            await self.db.flush()
            await self.db.refresh(user)
            user_sync_total.labels(result="created").inc()
            log_info("User created", event="user", user_id=user.id)
            return user

        user.email = email
        user.name = name
        user.username = username
        user.image_url = image_url
        user.updated_at = utcnow()
        await self.db.flush()
        user_sync_total.labels(result="updated").inc()
        log_info("User updated", event="user", user_id=user.id)
        return user

    async def delete_user(self, external_id: str) -> int:
        """
        Delete a user and everything they own.

        Albums go through the album cascade (photos first, then album),
        then the user row is removed.

        Returns:
            Number of albums removed

        Raises:
            NotFoundError: If the identity is unknown
        """
        user = await self.get_user_by_external_id(external_id)
        if user is None:
            raise NotFoundError("User not found")

        result = await self.db.execute(select(Album.id).where(Album.user_id == user.id))
        album_ids = list(result.scalars().all())

        album_service = AlbumService(self.db)
        photo_count = 0
        for album_id in album_ids:
            photo_count += await album_service.delete_album(album_id, user)

        await self.db.delete(user)
        await self.db.flush()
        log_info(
            "User deleted",
            event="user",
            user_id=user.id,
            albums_deleted=len(album_ids),
            photos_deleted=photo_count,
        )
        return len(album_ids)

    async def resolve(self, claims: IdentityClaims) -> Optional[User]:
        """
        Map verified token claims to a user.

        Unknown identities are provisioned from the claims when auto
        provisioning is enabled and the token carries an email.

        Returns:
            User, or None if the identity cannot be resolved
        """
        user = await self.get_user_by_external_id(claims.sub)
        if user is not None:
            return user

        if not get_settings().auto_provision_users or not claims.email:
            return None

        return await self.sync_user(
            external_id=claims.sub,
            email=claims.email,
            name=claims.name or "",
            username=claims.username or "",
            image_url=claims.picture,
        )

    async def get_user_by_id(self, user_id: int) -> User:
        """
        Get user by ID.

        Raises:
            NotFoundError: If the user does not exist
        """
        result = await self.db.execute(select(User).where(User.id == user_id))
        user = result.scalar_one_or_none()
        if user is None:
            raise NotFoundError("User not found")
        return user

    async def get_user_by_external_id(self, external_id: str) -> Optional[User]:
        """Get user by identity-provider subject."""
        result = await self.db.execute(
            select(User).where(User.external_id == external_id)
        )
        return result.scalar_one_or_none()

    async def list_users(
        self,
        limit: Optional[int] = None,
        cursor: Optional[str] = None,
    ) -> Tuple[List[User], Optional[str], bool]:
        """List users newest first."""
        return await paginate(self.db, select(User), User.id, limit, cursor)

    async def is_username_available(self, username: str) -> bool:
        username = (username or "").strip()
        if not username:
            return False
        return await self._get_user_by_username(username) is None

    async def _get_user_by_username(self, username: str) -> Optional[User]:
        """Get user by username."""
        result = await self.db.execute(
            select(User).where(User.username == username)
        )
        return result.scalar_one_or_none()
