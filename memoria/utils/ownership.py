"""
Ownership guard shared by every mutation.
"""
import logging

from memoria.exceptions import UnauthorizedError
from memoria.models.user import User

logger = logging.getLogger("memoria.auth")


def ensure_owner(user: User, owner_id: int, resource: str, resource_id: int) -> None:
    """
    Allow the call only when the verified user owns the resource.

    Must run before the first write of a mutation.

    Raises:
        UnauthorizedError: If `user` is not the owner
    """
    if user.id != owner_id:
        logger.warning(
            "Ownership check failed",
            extra={"event": "auth", "user_id": user.id, "resource": resource, "resource_id": resource_id},
        )
        raise UnauthorizedError("Unauthorized access")
