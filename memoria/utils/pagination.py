"""
Keyset pagination over descending primary keys.

Cursors are opaque to clients: url-safe base64 of the last id on the page.
"""
import base64
import binascii
from typing import Any, List, Optional, Tuple

from sqlalchemy import Select
from sqlalchemy.ext.asyncio import AsyncSession

from memoria.config import get_settings
from memoria.exceptions import InvalidInputError


def clamp_limit(limit: Optional[int]) -> int:
    """Apply the default page size and cap at the configured maximum."""
    settings = get_settings()
    if limit is None or limit <= 0:
        return settings.default_page_size
    return min(limit, settings.max_page_size)


def encode_cursor(last_id: int) -> str:
    return base64.urlsafe_b64encode(str(last_id).encode()).decode().rstrip("=")


def decode_cursor(cursor: str) -> int:
    """
    Decode a cursor produced by `encode_cursor`.

    Raises:
        InvalidInputError: If the cursor is malformed
    """
    padded = cursor + "=" * (-len(cursor) % 4)
    try:
        value = int(base64.urlsafe_b64decode(padded.encode()).decode())
    except (binascii.Error, UnicodeDecodeError, ValueError):
        raise InvalidInputError("Invalid cursor")
    if value <= 0:
        raise InvalidInputError("Invalid cursor")
    return value


async def paginate(
    db: AsyncSession,
    query: Select,
    id_column: Any,
    limit: Optional[int] = None,
    cursor: Optional[str] = None,
) -> Tuple[List[Any], Optional[str], bool]:
    """
    Run `query` newest-first, one page at a time.

    Args:
        db: Database session
        query: Select statement returning ORM entities
        id_column: Primary key column the cursor is based on
        limit: Page size (clamped)
        cursor: Cursor returned by the previous page

    Returns:
        (items, next_cursor, is_done)
    """
    page_size = clamp_limit(limit)
    if cursor:
        query = query.where(id_column < decode_cursor(cursor))

    # Fetch one extra row to know whether another page exists
    result = await db.execute(query.order_by(id_column.desc()).limit(page_size + 1))
    rows = list(result.scalars().all())

    is_done = len(rows) <= page_size
    items = rows[:page_size]
    next_cursor = None if is_done else encode_cursor(items[-1].id)
    return items, next_cursor, is_done
