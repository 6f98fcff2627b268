"""Room lifecycle manager.

This module provides the RoomLifecycleManager, which drives every room
transition: creation, join/leave/update/rejoin, "play again" succession and
team operations. Each transition runs inside one metadata store transaction:
the room is read, every precondition is checked, the private copy is mutated
and only then written back (or deleted).
"""

import copy
import logging
import random
import re
import secrets
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from gamerooms.rooms import teams
from gamerooms.rooms.credentials import (
    CredentialAuthority,
    CredentialContext,
    CredentialGenerator,
    generate_credentials,
)
from gamerooms.rooms.errors import (
    AuthorizationError,
    ConflictError,
    NotFoundError,
    UnknownGameError,
    ValidationError,
)
from gamerooms.rooms.games import GameDefinition, GameRegistry
from gamerooms.rooms.models import TEAM_ASSIGNMENT_KEY, PlayerSlot, Room, Team
from gamerooms.rooms.store import InMemoryMetadataStore, MetadataStore, RoomTransaction

if TYPE_CHECKING:
    from gamerooms.settings import Settings

logger = logging.getLogger(__name__)

DEFAULT_NUM_PLAYERS = 2
MAX_NUM_PLAYERS = 100

SLOT_PATTERN = re.compile(r"-?[0-9]+")

# Team bookkeeping that must not carry over to a successor room
TEAM_SETUP_KEYS = ("teams", "adminIDs", "playerIDs", "leaderIDs")


def _generate_room_id() -> str:
    """Generate a random room ID."""
    return secrets.token_urlsafe(9)


@dataclass
class LobbyConfig:
    """Process-wide configuration handed to the manager.

    Attributes:
        generate_room_id: Produces IDs for new rooms
        generate_credentials: Produces player credentials
        rng: Random source for leader rotation
        default_num_players: Slot count when a request gives none
        max_num_players: Largest slot count a room may be created with
    """

    generate_room_id: Callable[[], str] = _generate_room_id
    generate_credentials: CredentialGenerator = generate_credentials
    rng: random.Random = field(default_factory=random.Random)
    default_num_players: int = DEFAULT_NUM_PLAYERS
    max_num_players: int = MAX_NUM_PLAYERS


def _parse_count(value: Any) -> int | None:
    """Parse a positive count from a number or numeric string."""
    if value is None or isinstance(value, bool):
        return None
    try:
        count = int(value)
    except (TypeError, ValueError):
        return None
    return count if count > 0 else None


def _parse_slot(value: Any) -> int | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str) and SLOT_PATTERN.fullmatch(value.strip()):
        return int(value)
    return None


def _require_slot_field(slot_id: Any) -> None:
    if slot_id is None:
        raise ValidationError("playerID is required")


def _require_room(tx: RoomTransaction) -> Room:
    if tx.room is None:
        raise NotFoundError(f"Room {tx.room_id} not found")
    return tx.room


def _require_player(room: Room, slot_id: Any) -> PlayerSlot:
    slot = _parse_slot(slot_id)
    player = room.get_player(slot) if slot is not None else None
    if player is None:
        raise NotFoundError(f"Player {slot_id} not found")
    return player


def _require_payload(data: Any) -> dict[str, Any] | None:
    if data is None:
        return None
    if not isinstance(data, dict):
        raise ValidationError(f"data must be an object, got {type(data).__name__}")
    # Team assignments are only written by team formation
    return {key: value for key, value in data.items() if key != TEAM_ASSIGNMENT_KEY}


class RoomLifecycleManager:
    """Applies room transitions against a metadata store.

    The manager holds no room state itself; the store is the source of
    truth and every operation is one store transaction.
    """

    def __init__(
        self,
        store: MetadataStore,
        games: GameRegistry,
        config: LobbyConfig | None = None,
    ) -> None:
        """Initialize the manager.

        Args:
            store: Metadata store holding room records
            games: Games rooms can be created for
            config: ID/credential generators and random source
        """
        self.store = store
        self.games = games
        self.config = config or LobbyConfig()
        self.credentials = CredentialAuthority(self.config.generate_credentials)

    def list_games(self) -> list[str]:
        """Get the names of all registered games."""
        return self.games.names()

    def _authorize(self, room: Room, player: PlayerSlot, credentials: Any) -> None:
        if not self.credentials.validate(credentials, player.credentials):
            logger.warning(f"Rejected credentials for slot {player.id} in room {room.room_id}")
            raise AuthorizationError("Invalid credentials")

    def _player_count(self, num_players: Any, default: int) -> int:
        count = _parse_count(num_players) or default
        if count > self.config.max_num_players:
            raise ValidationError(
                f"numPlayers must be at most {self.config.max_num_players}, got {count}"
            )
        return count

    async def _new_room_id(self) -> str:
        room_id = self.config.generate_room_id()
        while await self.store.fetch(room_id) is not None:
            room_id = self.config.generate_room_id()
        return room_id

    async def _create_room(
        self,
        game: GameDefinition,
        num_players: int,
        setup_data: Any,
        unlisted: bool,
    ) -> str:
        room_id = await self._new_room_id()
        room = Room.open(
            room_id=room_id,
            game_name=game.name,
            num_players=num_players,
            setup_data=setup_data,
            unlisted=bool(unlisted),
        )
        initial_state = game.initialize(num_players, setup_data)
        await self.store.create_room(room_id, room, initial_state)

        logger.info(f"Room {room_id} created for {game.name} with {num_players} slots")
        return room_id

    async def create_room(
        self,
        game_name: str,
        num_players: Any = None,
        setup_data: Any = None,
        unlisted: bool = False,
    ) -> str:
        """Create a room with all slots open.

        Args:
            game_name: Registered game to create the room for
            num_players: Slot count; the default is used when missing or invalid
            setup_data: Caller payload passed to the game's initial state
            unlisted: Hide the room from public listings

        Returns:
            The new room ID

        Raises:
            UnknownGameError: If the game is not registered
            ValidationError: If num_players exceeds the configured maximum
        """
        game = self.games.get(game_name)
        if game is None:
            raise UnknownGameError(game_name)

        count = self._player_count(num_players, self.config.default_num_players)
        return await self._create_room(game, count, setup_data, unlisted)

    async def list_rooms(self, game_name: str) -> list[Room]:
        """List the listed rooms of a game."""
        rooms = []
        for room_id in await self.store.list_rooms(game_name):
            room = await self.store.fetch(room_id)
            # Rooms can disappear between listing and fetching
            if room is None or room.unlisted:
                continue
            rooms.append(room)
        return rooms

    async def get_room(self, room_id: str) -> Room:
        """Get a room.

        Raises:
            NotFoundError: If the room does not exist
        """
        room = await self.store.fetch(room_id)
        if room is None:
            raise NotFoundError(f"Room {room_id} not found")
        return room

    async def join_room(
        self,
        room_id: str,
        slot_id: Any,
        player_name: Any,
        data: Any = None,
    ) -> str:
        """Seat a player in an open slot.

        Args:
            room_id: Room to join
            slot_id: Slot to take
            player_name: Display name
            data: Optional player payload

        Returns:
            Credentials for the seat

        Raises:
            ValidationError: If slot or name is missing
            NotFoundError: If the room or slot does not exist
            ConflictError: If the slot is already seated
        """
        _require_slot_field(slot_id)
        if not player_name:
            raise ValidationError("playerName is required")
        if not isinstance(player_name, str):
            raise ValidationError(f"playerName must be a string, got {type(player_name).__name__}")
        payload = _require_payload(data)

        async with self.store.transaction(room_id) as tx:
            room = _require_room(tx)
            player = _require_player(room, slot_id)
            if player.is_seated:
                raise ConflictError(f"Player {slot_id} not available")

            credentials = self.credentials.issue(
                CredentialContext(room_id=room_id, slot=player.id, player_name=player_name)
            )
            player.seat(player_name, credentials, payload or None)
            tx.save()

        logger.info(f"Player {player_name} joined room {room_id} in slot {player.id}")
        return credentials

    async def leave_room(self, room_id: str, slot_id: Any, credentials: Any) -> bool:
        """Open a seated slot again.

        The room is deleted once no slot is seated.

        Returns:
            True if the room was deleted

        Raises:
            ValidationError: If the slot is missing
            NotFoundError: If the room or slot does not exist
            AuthorizationError: If the credentials do not match
        """
        _require_slot_field(slot_id)

        async with self.store.transaction(room_id) as tx:
            room = _require_room(tx)
            player = _require_player(room, slot_id)
            self._authorize(room, player, credentials)

            name = player.name
            teams.remove_player(room, player.id)
            player.vacate()

            deleted = room.is_empty
            if deleted:
                tx.delete()
            else:
                tx.save()

        logger.info(f"Player {name} left room {room_id} (slot {player.id})")
        if deleted:
            logger.info(f"Room {room_id} deleted, no players left")
        return deleted

    async def update_player(
        self,
        room_id: str,
        slot_id: Any,
        credentials: Any,
        new_name: Any = None,
        data: Any = None,
    ) -> None:
        """Rename a seated player and/or replace their payload.

        The team assignment kept on the payload survives a data update.

        Raises:
            ValidationError: If the slot is missing, neither name nor data is
                given, or the name is not a string
            NotFoundError: If the room or slot does not exist
            AuthorizationError: If the credentials do not match
        """
        _require_slot_field(slot_id)
        if data is None and not new_name:
            raise ValidationError("newName or data is required")
        if new_name and not isinstance(new_name, str):
            raise ValidationError(f"newName must be a string, got {type(new_name).__name__}")
        payload = _require_payload(data)

        async with self.store.transaction(room_id) as tx:
            room = _require_room(tx)
            player = _require_player(room, slot_id)
            self._authorize(room, player, credentials)

            if new_name:
                player.name = new_name
            if payload is not None:
                assignment = player.team_assignment
                player.data = dict(payload)
                player.assign_team(assignment)
            tx.save()

        logger.info(f"Player in slot {player.id} of room {room_id} updated")

    async def rejoin_room(self, room_id: str, player_name: Any, credentials: Any) -> int:
        """Confirm a returning player still holds their seat.

        Returns:
            The slot the player is seated in

        Raises:
            ValidationError: If the name is missing
            NotFoundError: If the room does not exist
            ConflictError: If no seated slot has that name
            AuthorizationError: If the credentials do not match
        """
        if not player_name:
            raise ValidationError("playerName is required")

        async with self.store.transaction(room_id) as tx:
            room = _require_room(tx)
            player = room.find_seated_by_name(player_name)
            if player is None:
                raise ConflictError("Player not available")
            self._authorize(room, player, credentials)
            tx.save()

        logger.info(f"Player {player_name} rejoined room {room_id} in slot {player.id}")
        return player.id

    async def request_successor(
        self,
        room_id: str,
        slot_id: Any,
        credentials: Any,
        setup_data: Any = None,
        num_players: Any = None,
        unlisted: bool = False,
    ) -> str:
        """Create the room to "play again" in, once per room.

        Repeated requests return the successor created first, whatever
        arguments they carry.

        Args:
            room_id: The finished room
            slot_id: Requesting player's slot
            credentials: Requesting player's credentials
            setup_data: Setup data for the new room (defaults to the current one)
            num_players: Slot count (defaults to the current seated count)
            unlisted: Hide the new room from public listings

        Returns:
            The successor room ID

        Raises:
            ValidationError: If the slot is missing
            NotFoundError: If the room or slot does not exist
            AuthorizationError: If the credentials do not match
        """
        _require_slot_field(slot_id)

        async with self.store.transaction(room_id) as tx:
            room = _require_room(tx)
            player = _require_player(room, slot_id)
            self._authorize(room, player, credentials)

            if room.next_room_id:
                return room.next_room_id

            game = self.games.get(room.game_name)
            if game is None:
                raise UnknownGameError(room.game_name)

            count = self._player_count(num_players, len(room.seated_players))
            if setup_data is None:
                setup_data = copy.deepcopy(room.setup_data)
                if isinstance(setup_data, dict):
                    for key in TEAM_SETUP_KEYS:
                        setup_data.pop(key, None)

            next_room_id = await self._create_room(game, count, setup_data, unlisted)
            room.next_room_id = next_room_id
            tx.save()

        logger.info(f"Room {room_id} continues in room {next_room_id}")
        return next_room_id

    async def form_teams(self, room_id: str, num_teams: Any) -> list[Team]:
        """Partition the room's eligible players into teams.

        Raises:
            ValidationError: If num_teams is missing or invalid, or the room
                has no setup data
            NotFoundError: If the room does not exist
        """
        if num_teams is None:
            raise ValidationError("Define number of team")

        async with self.store.transaction(room_id) as tx:
            room = _require_room(tx)
            formed = teams.form_teams(room, num_teams)
            tx.save()

        return formed

    async def rotate_leader(self, room_id: str, team_id: Any) -> tuple[teams.LeaderRotation, Room]:
        """Hand a team's leadership to a random other member.

        Returns:
            Tuple of (rotation outcome, room after the rotation)

        Raises:
            ValidationError: If the team is missing
            NotFoundError: If the room or team does not exist
        """
        if team_id is None or team_id == "":
            raise ValidationError("Select the team to update")

        async with self.store.transaction(room_id) as tx:
            room = _require_room(tx)
            rotation = teams.rotate_leader(room, str(team_id), self.config.rng)
            if rotation.rotated:
                tx.save()

        return rotation, room


def build_room_manager(settings: "Settings") -> RoomLifecycleManager:
    """Build a manager from application settings."""
    store: MetadataStore
    if settings.storage_backend == "database":
        from gamerooms.db.session import get_session_factory
        from gamerooms.db.store import DatabaseMetadataStore

        store = DatabaseMetadataStore(get_session_factory())
    elif settings.storage_backend == "memory":
        store = InMemoryMetadataStore()
    else:
        raise ValueError(f"Unknown storage backend: {settings.storage_backend}")

    games = GameRegistry(GameDefinition(name=name) for name in settings.games)
    config = LobbyConfig(
        generate_credentials=lambda _context: secrets.token_urlsafe(settings.credential_bytes),
        default_num_players=settings.default_num_players,
        max_num_players=settings.max_num_players,
    )
    return RoomLifecycleManager(store=store, games=games, config=config)


# Global singleton instance
_room_manager: RoomLifecycleManager | None = None


def get_room_manager() -> RoomLifecycleManager:
    """Get the global room manager instance."""
    global _room_manager
    if _room_manager is None:
        from gamerooms.settings import get_settings

        _room_manager = build_room_manager(get_settings())
    return _room_manager


def init_room_manager(manager: RoomLifecycleManager) -> RoomLifecycleManager:
    """Install a room manager as the global instance."""
    global _room_manager
    _room_manager = manager
    return _room_manager


def reset_room_manager() -> None:
    """Reset the global room manager. Used for testing."""
    global _room_manager
    _room_manager = None
