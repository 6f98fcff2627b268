"""Metadata store interface and in-memory implementation.

Room transitions are read-modify-write sequences. To keep concurrent
requests against the same room from overwriting each other, stores expose
``transaction(room_id)``: the block gets exclusive access to the room and a
private copy of its record, and whatever it decides (save or delete) is only
applied when the block exits without an exception.

Usage:
    async with store.transaction(room_id) as tx:
        if tx.room is None:
            raise NotFoundError(...)
        tx.room.players[0].name = "Alice"
        tx.save()
"""

import asyncio
import logging
from collections.abc import AsyncIterator
from contextlib import AbstractAsyncContextManager, asynccontextmanager
from datetime import datetime
from enum import Enum
from typing import Any, Protocol

from gamerooms.rooms.models import Room

logger = logging.getLogger(__name__)


class PendingWrite(Enum):
    """What a transaction will do to the room on commit."""

    NONE = "none"
    SAVE = "save"
    DELETE = "delete"


class RoomTransaction:
    """Exclusive access to one room record.

    Attributes:
        room_id: The room this transaction holds
        room: Private copy of the record, or None if the room does not exist
    """

    def __init__(self, room_id: str, room: Room | None) -> None:
        self.room_id = room_id
        self.room = room
        self.pending = PendingWrite.NONE

    def save(self, room: Room | None = None) -> None:
        """Write the room back on commit."""
        if room is not None:
            self.room = room
        if self.room is None:
            raise ValueError(f"Room {self.room_id} has nothing to save")
        self.pending = PendingWrite.SAVE

    def delete(self) -> None:
        """Delete the room on commit."""
        self.pending = PendingWrite.DELETE


class MetadataStore(Protocol):
    """Durable record per room."""

    async def create_room(self, room_id: str, room: Room, initial_state: dict[str, Any]) -> None:
        """Store a new room together with its initial game state."""
        ...

    async def fetch(self, room_id: str) -> Room | None:
        """Get a copy of the room record."""
        ...

    async def fetch_state(self, room_id: str) -> dict[str, Any] | None:
        """Get the game state stored with the room."""
        ...

    async def set_metadata(self, room_id: str, room: Room) -> None:
        """Overwrite the room record. Not serialized against transactions."""
        ...

    async def list_rooms(self, game_name: str | None = None) -> list[str]:
        """List room IDs, optionally only those of one game."""
        ...

    async def delete(self, room_id: str) -> None:
        """Delete a room and its state. Deleting a missing room is a no-op."""
        ...

    def transaction(self, room_id: str) -> AbstractAsyncContextManager[RoomTransaction]:
        """Open an exclusive read-modify-write transaction on one room."""
        ...


class InMemoryMetadataStore:
    """Metadata store keeping rooms in process memory.

    Transactions are serialized per room with an asyncio lock, which is
    enough for a single server process.
    """

    def __init__(self) -> None:
        self._rooms: dict[str, Room] = {}
        self._states: dict[str, dict[str, Any]] = {}
        self._locks: dict[str, asyncio.Lock] = {}

    async def create_room(self, room_id: str, room: Room, initial_state: dict[str, Any]) -> None:
        if room_id in self._rooms:
            raise ValueError(f"Room {room_id} already exists")
        self._rooms[room_id] = room.copy()
        self._states[room_id] = initial_state
        logger.debug(f"Stored room {room_id}")

    async def fetch(self, room_id: str) -> Room | None:
        room = self._rooms.get(room_id)
        return room.copy() if room is not None else None

    async def fetch_state(self, room_id: str) -> dict[str, Any] | None:
        return self._states.get(room_id)

    async def set_metadata(self, room_id: str, room: Room) -> None:
        stored = room.copy()
        stored.updated_at = datetime.now()
        self._rooms[room_id] = stored
        logger.debug(f"Updated room {room_id}")

    async def list_rooms(self, game_name: str | None = None) -> list[str]:
        return [
            room_id
            for room_id, room in self._rooms.items()
            if game_name is None or room.game_name == game_name
        ]

    async def delete(self, room_id: str) -> None:
        self._rooms.pop(room_id, None)
        self._states.pop(room_id, None)
        logger.debug(f"Deleted room {room_id}")

    @asynccontextmanager
    async def transaction(self, room_id: str) -> AsyncIterator[RoomTransaction]:
        lock = self._locks.setdefault(room_id, asyncio.Lock())
        async with lock:
            current = self._rooms.get(room_id)
            tx = RoomTransaction(room_id, current.copy() if current is not None else None)
            yield tx
            if tx.pending is PendingWrite.SAVE:
                await self.set_metadata(room_id, tx.room)
            elif tx.pending is PendingWrite.DELETE:
                await self.delete(room_id)

        if room_id not in self._rooms:
            self._locks.pop(room_id, None)
