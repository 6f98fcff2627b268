"""Room data models.

A room is a fixed set of player slots created up front. Slots are seated by
joining and opened again by leaving; they are never added or removed after
creation. Everything here is plain data: the rules live in the manager and
the team engine.
"""

import copy
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

TEAM_ASSIGNMENT_KEY = "teamAssignment"


class PlayerRole(Enum):
    """Role carried by a seated player's payload."""

    ADMIN = "admin"
    PLAYER = "player"


@dataclass
class TeamAssignment:
    """Team membership stored on a player's payload."""

    team_id: str
    leader: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {"teamID": self.team_id, "leader": self.leader}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "TeamAssignment":
        return cls(team_id=str(data["teamID"]), leader=bool(data.get("leader", False)))


@dataclass
class Team:
    """A team recorded on the room's setup data.

    Attributes:
        team_id: Identifier, unique within the room
        player_ids: Member slots in order of assignment
    """

    team_id: str
    player_ids: list[int] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {"teamID": self.team_id, "playerIDs": list(self.player_ids)}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Team":
        return cls(
            team_id=str(data["teamID"]),
            player_ids=[int(pid) for pid in data.get("playerIDs", [])],
        )


@dataclass
class PlayerSlot:
    """A fixed player position within a room.

    Attributes:
        id: Slot index, also the key in Room.players
        name: Display name of the seated player (None when the slot is open)
        credentials: Secret token proving control of the slot
        data: Caller-defined payload
    """

    id: int
    name: str | None = None
    credentials: str | None = None
    data: dict[str, Any] | None = None

    @property
    def is_seated(self) -> bool:
        """Check if a player occupies this slot."""
        return bool(self.name)

    @property
    def role(self) -> PlayerRole:
        """Get the role tagged on the payload.

        An explicit ``role`` value wins over the boolean ``admin`` / ``player``
        flags; a payload flagged both ways is an admin, and a payload with no
        role at all is a player.
        """
        payload = self.data or {}
        tag = payload.get("role")
        if tag in (PlayerRole.ADMIN.value, PlayerRole.PLAYER.value):
            return PlayerRole(tag)
        if payload.get("admin"):
            return PlayerRole.ADMIN
        return PlayerRole.PLAYER

    @property
    def team_assignment(self) -> TeamAssignment | None:
        """Get the team assignment, if teams have been formed."""
        raw = (self.data or {}).get(TEAM_ASSIGNMENT_KEY)
        if not isinstance(raw, dict) or "teamID" not in raw:
            return None
        return TeamAssignment.from_dict(raw)

    def assign_team(self, assignment: TeamAssignment | None) -> None:
        """Store or clear the team assignment on the payload."""
        if assignment is None:
            if self.data:
                self.data.pop(TEAM_ASSIGNMENT_KEY, None)
            return
        if self.data is None:
            self.data = {}
        self.data[TEAM_ASSIGNMENT_KEY] = assignment.to_dict()

    def seat(self, name: str, credentials: str, data: dict[str, Any] | None = None) -> None:
        """Seat a player. Name and credentials are always set together."""
        self.name = name
        self.credentials = credentials
        if data is not None:
            self.data = data

    def vacate(self) -> None:
        """Open the slot again, dropping name, credentials and team."""
        self.name = None
        self.credentials = None
        self.assign_team(None)

    def to_dict(self, include_credentials: bool = True) -> dict[str, Any]:
        """Serialize the slot, omitting fields that are not set."""
        result: dict[str, Any] = {"id": self.id}
        if self.name is not None:
            result["name"] = self.name
        if include_credentials and self.credentials is not None:
            result["credentials"] = self.credentials
        if self.data is not None:
            result["data"] = self.data
        return result

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "PlayerSlot":
        return cls(
            id=int(data["id"]),
            name=data.get("name"),
            credentials=data.get("credentials"),
            data=data.get("data"),
        )


@dataclass
class Room:
    """Room metadata as kept by the metadata store.

    Attributes:
        room_id: Unique identifier, assigned at creation
        game_name: Name of the game definition the room was created for
        players: Slot index -> slot, dense from 0 to num_players - 1
        setup_data: Caller payload, also receives team bookkeeping
        next_room_id: Successor room created by "play again"
        unlisted: Whether the room is hidden from public listings
        created_at: When the room was created
        updated_at: When the room was last written
    """

    room_id: str
    game_name: str
    players: dict[int, PlayerSlot] = field(default_factory=dict)
    setup_data: Any = None
    next_room_id: str | None = None
    unlisted: bool = False
    created_at: datetime = field(default_factory=datetime.now)
    updated_at: datetime = field(default_factory=datetime.now)

    @classmethod
    def open(
        cls,
        room_id: str,
        game_name: str,
        num_players: int,
        setup_data: Any = None,
        unlisted: bool = False,
    ) -> "Room":
        """Create a room with ``num_players`` open slots."""
        return cls(
            room_id=room_id,
            game_name=game_name,
            players={slot: PlayerSlot(id=slot) for slot in range(num_players)},
            setup_data=setup_data,
            unlisted=unlisted,
        )

    @property
    def num_players(self) -> int:
        return len(self.players)

    @property
    def seated_players(self) -> list[PlayerSlot]:
        """Get seated slots in slot order."""
        return [self.players[slot] for slot in sorted(self.players) if self.players[slot].is_seated]

    @property
    def is_empty(self) -> bool:
        """Check if no slot is seated."""
        return not any(player.is_seated for player in self.players.values())

    @property
    def teams(self) -> list[Team]:
        """Get the teams recorded on the setup data."""
        if not isinstance(self.setup_data, dict):
            return []
        return [Team.from_dict(t) for t in self.setup_data.get("teams") or []]

    def get_player(self, slot: int) -> PlayerSlot | None:
        return self.players.get(slot)

    def find_seated_by_name(self, name: str) -> PlayerSlot | None:
        """Find the lowest seated slot with the given name."""
        for player in self.seated_players:
            if player.name == name:
                return player
        return None

    def copy(self) -> "Room":
        """Get an independent deep copy."""
        return copy.deepcopy(self)

    def to_dict(self) -> dict[str, Any]:
        """Serialize the full metadata, credentials included."""
        result: dict[str, Any] = {
            "roomID": self.room_id,
            "gameName": self.game_name,
            "players": {str(slot): p.to_dict() for slot, p in sorted(self.players.items())},
            "unlisted": self.unlisted,
            "createdAt": self.created_at.isoformat(),
            "updatedAt": self.updated_at.isoformat(),
        }
        if self.setup_data is not None:
            result["setupData"] = self.setup_data
        if self.next_room_id is not None:
            result["nextRoomID"] = self.next_room_id
        return result

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Room":
        players = {int(slot): PlayerSlot.from_dict(p) for slot, p in data.get("players", {}).items()}
        room = cls(
            room_id=data["roomID"],
            game_name=data["gameName"],
            players=players,
            setup_data=data.get("setupData"),
            next_room_id=data.get("nextRoomID"),
            unlisted=bool(data.get("unlisted", False)),
        )
        if "createdAt" in data:
            room.created_at = datetime.fromisoformat(data["createdAt"])
        if "updatedAt" in data:
            room.updated_at = datetime.fromisoformat(data["updatedAt"])
        return room

    def to_public_dict(self) -> dict[str, Any]:
        """Serialize the room for clients, with credentials stripped."""
        result: dict[str, Any] = {
            "roomID": self.room_id,
            "players": self.public_players(),
        }
        if self.setup_data is not None:
            result["setupData"] = self.setup_data
        if self.next_room_id is not None:
            result["nextRoomID"] = self.next_room_id
        return result

    def public_players(self) -> list[dict[str, Any]]:
        return [p.to_dict(include_credentials=False) for _, p in sorted(self.players.items())]
