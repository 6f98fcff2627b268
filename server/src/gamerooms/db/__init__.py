"""Database layer."""

from gamerooms.db.models import Base, Room, RoomPlayer
from gamerooms.db.repositories import RoomRepository
from gamerooms.db.session import get_engine, get_session_factory
from gamerooms.db.store import DatabaseMetadataStore

__all__ = [
    "Base",
    "DatabaseMetadataStore",
    "Room",
    "RoomPlayer",
    "RoomRepository",
    "get_engine",
    "get_session_factory",
]
