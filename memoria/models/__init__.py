"""
Database models package.
All models are exported here for easy import.
"""
from memoria.models.user import User
from memoria.models.album import Album
from memoria.models.photo import Photo

__all__ = ["User", "Album", "Photo"]
