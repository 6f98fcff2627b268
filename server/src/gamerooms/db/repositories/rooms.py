"""Room repository for database operations."""

import copy
import logging
from datetime import datetime
from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from gamerooms.db.models import Room as RoomModel
from gamerooms.db.models import RoomPlayer as RoomPlayerModel
from gamerooms.rooms.models import PlayerSlot, Room

logger = logging.getLogger(__name__)


class RoomRepository:
    """Repository for managing rooms in the database."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize the repository.

        Args:
            session: The database session to use
        """
        self.session = session

    async def _get_record(self, room_id: str, for_update: bool = False) -> RoomModel | None:
        query = (
            select(RoomModel)
            .where(RoomModel.id == room_id)
            .options(selectinload(RoomModel.players))
        )
        if for_update:
            query = query.with_for_update(of=RoomModel)

        result = await self.session.execute(query)
        return result.scalar_one_or_none()

    async def create(self, room: Room, initial_state: dict[str, Any]) -> RoomModel:
        """Create a room with its slots and initial game state.

        Args:
            room: The room domain object to create
            initial_state: Game state produced by the game's rules

        Returns:
            The created RoomModel record
        """
        record = RoomModel(
            id=room.room_id,
            game_name=room.game_name,
            unlisted=room.unlisted,
            setup_data=copy.deepcopy(room.setup_data),
            next_room_id=room.next_room_id,
            initial_state=initial_state,
            created_at=room.created_at,
            updated_at=room.updated_at,
        )
        record.players = [self._player_to_model(room.room_id, player) for player in room.players.values()]

        self.session.add(record)
        await self.session.flush()

        logger.info(f"Saved room {room.room_id} to database")
        return record

    async def get_by_id(self, room_id: str, for_update: bool = False) -> Room | None:
        """Get a room by ID.

        Args:
            room_id: The room ID
            for_update: Lock the room row until the transaction ends

        Returns:
            Room domain object or None if not found
        """
        record = await self._get_record(room_id, for_update=for_update)
        if record is None:
            return None
        return self._model_to_room(record)

    async def get_state(self, room_id: str) -> dict[str, Any] | None:
        """Get the game state stored with a room."""
        result = await self.session.execute(
            select(RoomModel.initial_state).where(RoomModel.id == room_id)
        )
        return result.scalar_one_or_none()

    async def save(self, room: Room) -> RoomModel:
        """Update an existing room's metadata.

        Slots are fixed at creation, so only their contents are written.

        Args:
            room: The room domain object to save

        Returns:
            The updated RoomModel record

        Raises:
            LookupError: If the room does not exist
        """
        record = await self._get_record(room.room_id)
        if record is None:
            raise LookupError(f"Room {room.room_id} does not exist")

        record.unlisted = room.unlisted
        record.setup_data = copy.deepcopy(room.setup_data)
        record.next_room_id = room.next_room_id
        record.updated_at = datetime.now()

        for player_record in record.players:
            player = room.players.get(player_record.slot)
            if player is None:
                continue
            player_record.name = player.name
            player_record.credentials = player.credentials
            player_record.data = copy.deepcopy(player.data)

        await self.session.flush()
        logger.debug(f"Updated room {room.room_id} in database")
        return record

    async def delete(self, room_id: str) -> bool:
        """Delete a room.

        Args:
            room_id: The room ID

        Returns:
            True if deleted, False if not found
        """
        record = await self._get_record(room_id)
        if record is None:
            return False

        await self.session.delete(record)
        await self.session.flush()

        logger.info(f"Deleted room {room_id} from database")
        return True

    async def list_ids(self, game_name: str | None = None) -> list[str]:
        """List room IDs, oldest first.

        Args:
            game_name: Only rooms of this game

        Returns:
            List of room IDs
        """
        query = select(RoomModel.id).order_by(RoomModel.created_at)
        if game_name is not None:
            query = query.where(RoomModel.game_name == game_name)

        result = await self.session.execute(query)
        return list(result.scalars().all())

    def _player_to_model(self, room_id: str, player: PlayerSlot) -> RoomPlayerModel:
        """Convert a PlayerSlot domain object to a database model."""
        return RoomPlayerModel(
            room_id=room_id,
            slot=player.id,
            name=player.name,
            credentials=player.credentials,
            data=copy.deepcopy(player.data),
        )

    def _model_to_room(self, record: RoomModel) -> Room:
        """Convert a database record to a Room domain object.

        JSON columns are copied so that changes to the domain object are
        only written through save().
        """
        players = {
            player_record.slot: PlayerSlot(
                id=player_record.slot,
                name=player_record.name,
                credentials=player_record.credentials,
                data=copy.deepcopy(player_record.data),
            )
            for player_record in record.players
        }

        return Room(
            room_id=record.id,
            game_name=record.game_name,
            players=players,
            setup_data=copy.deepcopy(record.setup_data),
            next_room_id=record.next_room_id,
            unlisted=record.unlisted,
            created_at=record.created_at,
            updated_at=record.updated_at,
        )
