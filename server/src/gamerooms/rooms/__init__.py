"""Room lifecycle for multiplayer games.

This module provides room creation, player admission, "play again"
succession and team formation in front of a game-rules engine.
"""

from gamerooms.rooms.errors import (
    AuthorizationError,
    ConflictError,
    NotFoundError,
    RoomError,
    UnknownGameError,
    ValidationError,
)
from gamerooms.rooms.games import GameDefinition, GameRegistry
from gamerooms.rooms.manager import (
    LobbyConfig,
    RoomLifecycleManager,
    get_room_manager,
    init_room_manager,
    reset_room_manager,
)
from gamerooms.rooms.models import PlayerRole, PlayerSlot, Room, Team, TeamAssignment
from gamerooms.rooms.store import InMemoryMetadataStore, MetadataStore, RoomTransaction

__all__ = [
    "AuthorizationError",
    "ConflictError",
    "GameDefinition",
    "GameRegistry",
    "InMemoryMetadataStore",
    "LobbyConfig",
    "MetadataStore",
    "NotFoundError",
    "PlayerRole",
    "PlayerSlot",
    "Room",
    "RoomError",
    "RoomLifecycleManager",
    "RoomTransaction",
    "Team",
    "TeamAssignment",
    "UnknownGameError",
    "ValidationError",
    "get_room_manager",
    "init_room_manager",
    "reset_room_manager",
]
