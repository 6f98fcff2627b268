"""Database repositories."""

from gamerooms.db.repositories.rooms import RoomRepository

__all__ = ["RoomRepository"]
