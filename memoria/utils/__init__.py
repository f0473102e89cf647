"""
Utility functions package.
"""
from memoria.utils.security import (
    create_access_token,
    decode_access_token,
)
from memoria.utils.pagination import decode_cursor, encode_cursor, paginate

__all__ = [
    "create_access_token",
    "decode_access_token",
    "decode_cursor",
    "encode_cursor",
    "paginate",
]
