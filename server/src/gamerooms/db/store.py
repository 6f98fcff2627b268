"""Metadata store backed by the database."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from gamerooms.db.repositories.rooms import RoomRepository
from gamerooms.rooms.models import Room
from gamerooms.rooms.store import PendingWrite, RoomTransaction

logger = logging.getLogger(__name__)


class DatabaseMetadataStore:
    """Metadata store keeping rooms in SQL tables.

    Each call runs in its own session. Transactions lock the room row with
    SELECT ... FOR UPDATE and commit once, so concurrent transitions on the
    same room are serialized by the database.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        """Initialize the store.

        Args:
            session_factory: SQLAlchemy async session factory
        """
        self._session_factory = session_factory

    async def create_room(self, room_id: str, room: Room, initial_state: dict[str, Any]) -> None:
        async with self._session_factory() as session:
            repository = RoomRepository(session)
            await repository.create(room, initial_state)
            await session.commit()

    async def fetch(self, room_id: str) -> Room | None:
        async with self._session_factory() as session:
            return await RoomRepository(session).get_by_id(room_id)

    async def fetch_state(self, room_id: str) -> dict[str, Any] | None:
        async with self._session_factory() as session:
            return await RoomRepository(session).get_state(room_id)

    async def set_metadata(self, room_id: str, room: Room) -> None:
        async with self._session_factory() as session:
            await RoomRepository(session).save(room)
            await session.commit()

    async def list_rooms(self, game_name: str | None = None) -> list[str]:
        async with self._session_factory() as session:
            return await RoomRepository(session).list_ids(game_name)

    async def delete(self, room_id: str) -> None:
        async with self._session_factory() as session:
            await RoomRepository(session).delete(room_id)
            await session.commit()

    @asynccontextmanager
    async def transaction(self, room_id: str) -> AsyncIterator[RoomTransaction]:
        async with self._session_factory() as session:
            repository = RoomRepository(session)
            try:
                room = await repository.get_by_id(room_id, for_update=True)
                tx = RoomTransaction(room_id, room)
                yield tx

                if tx.pending is PendingWrite.SAVE:
                    await repository.save(tx.room)
                elif tx.pending is PendingWrite.DELETE:
                    await repository.delete(room_id)
                await session.commit()
            except Exception:
                await session.rollback()
                raise
