"""Game room API endpoints."""

import logging
from typing import Any

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field

from gamerooms.api.rate_limit import create_room_rate_limit, join_room_rate_limit
from gamerooms.rooms.errors import RoomError
from gamerooms.rooms.manager import get_room_manager

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/games", tags=["games"])


class CreateRoomRequest(BaseModel):
    """Request body for creating a room."""

    # Loosely typed: non-numeric values fall back to the default player count
    num_players: Any = Field(default=None, alias="numPlayers")
    setup_data: Any = Field(default=None, alias="setupData")
    unlisted: bool = False

    model_config = {"populate_by_name": True}


class CreateRoomResponse(BaseModel):
    """Response for creating a room."""

    game_id: str = Field(alias="gameID")

    model_config = {"populate_by_name": True}


class JoinRoomRequest(BaseModel):
    """Request body for joining a room."""

    player_id: Any = Field(default=None, alias="playerID")
    player_name: Any = Field(default=None, alias="playerName")
    data: Any = None

    model_config = {"populate_by_name": True}


class JoinRoomResponse(BaseModel):
    """Response for joining a room."""

    player_credentials: str = Field(alias="playerCredentials")

    model_config = {"populate_by_name": True}


class LeaveRoomRequest(BaseModel):
    """Request body for leaving a room."""

    player_id: Any = Field(default=None, alias="playerID")
    credentials: Any = None

    model_config = {"populate_by_name": True}


class UpdatePlayerRequest(BaseModel):
    """Request body for renaming a player or replacing their data."""

    player_id: Any = Field(default=None, alias="playerID")
    credentials: Any = None
    new_name: Any = Field(default=None, alias="newName")
    data: Any = None

    model_config = {"populate_by_name": True}


class PlayAgainRequest(BaseModel):
    """Request body for creating the successor room."""

    player_id: Any = Field(default=None, alias="playerID")
    credentials: Any = None
    num_players: Any = Field(default=None, alias="numPlayers")
    setup_data: Any = Field(default=None, alias="setupData")
    unlisted: bool = False

    model_config = {"populate_by_name": True}


class PlayAgainResponse(BaseModel):
    """Response for creating the successor room."""

    next_room_id: str = Field(alias="nextRoomID")

    model_config = {"populate_by_name": True}


class RejoinRoomRequest(BaseModel):
    """Request body for rejoining a room."""

    player_name: Any = Field(default=None, alias="playerName")
    credentials: Any = None

    model_config = {"populate_by_name": True}


class CreateTeamsRequest(BaseModel):
    """Request body for forming teams."""

    num_of_teams: Any = Field(default=None, alias="numOfTeams")

    model_config = {"populate_by_name": True}


def _http_error(err: RoomError) -> HTTPException:
    return HTTPException(status_code=err.status_code, detail=err.message)


@router.get("")
async def list_games() -> list[str]:
    """List the games rooms can be created for."""
    return get_room_manager().list_games()


@router.post(
    "/{name}/create",
    response_model=CreateRoomResponse,
    dependencies=[Depends(create_room_rate_limit)],
)
async def create_room(name: str, request: CreateRoomRequest | None = None) -> CreateRoomResponse:
    """Create a room with all player slots open."""
    request = request or CreateRoomRequest()
    manager = get_room_manager()

    try:
        room_id = await manager.create_room(
            game_name=name,
            num_players=request.num_players,
            setup_data=request.setup_data,
            unlisted=request.unlisted,
        )
    except RoomError as err:
        logger.warning(f"Room creation failed for {name}: {err.message}")
        raise _http_error(err) from err

    return CreateRoomResponse(game_id=room_id)


@router.get("/{name}")
async def list_rooms(name: str) -> dict[str, Any]:
    """List the public rooms of a game, credentials stripped."""
    rooms = await get_room_manager().list_rooms(name)
    return {"rooms": [room.to_public_dict() for room in rooms]}


@router.get("/{name}/{room_id}")
async def get_room(name: str, room_id: str) -> dict[str, Any]:
    """Get a room by ID, credentials stripped."""
    try:
        room = await get_room_manager().get_room(room_id)
    except RoomError as err:
        raise _http_error(err) from err

    return room.to_public_dict()


@router.post(
    "/{name}/{room_id}/join",
    response_model=JoinRoomResponse,
    dependencies=[Depends(join_room_rate_limit)],
)
async def join_room(
    name: str,
    room_id: str,
    request: JoinRoomRequest | None = None,
) -> JoinRoomResponse:
    """Take an open slot in a room.

    Returns the credentials needed for every later request on the slot.
    """
    request = request or JoinRoomRequest()
    try:
        credentials = await get_room_manager().join_room(
            room_id=room_id,
            slot_id=request.player_id,
            player_name=request.player_name,
            data=request.data,
        )
    except RoomError as err:
        raise _http_error(err) from err

    return JoinRoomResponse(player_credentials=credentials)


@router.post("/{name}/{room_id}/leave")
async def leave_room(
    name: str,
    room_id: str,
    request: LeaveRoomRequest | None = None,
) -> dict[str, Any]:
    """Leave a room. The room is deleted when its last player leaves."""
    request = request or LeaveRoomRequest()
    try:
        await get_room_manager().leave_room(
            room_id=room_id,
            slot_id=request.player_id,
            credentials=request.credentials,
        )
    except RoomError as err:
        raise _http_error(err) from err

    return {}


async def _update_player(room_id: str, request: UpdatePlayerRequest) -> dict[str, Any]:
    try:
        await get_room_manager().update_player(
            room_id=room_id,
            slot_id=request.player_id,
            credentials=request.credentials,
            new_name=request.new_name,
            data=request.data,
        )
    except RoomError as err:
        raise _http_error(err) from err

    return {}


@router.post("/{name}/{room_id}/update")
async def update_player(
    name: str,
    room_id: str,
    request: UpdatePlayerRequest | None = None,
) -> dict[str, Any]:
    """Rename a player and/or replace their data."""
    request = request or UpdatePlayerRequest()
    return await _update_player(room_id, request)


@router.post("/{name}/{room_id}/rename", deprecated=True)
async def rename_player(
    name: str,
    room_id: str,
    request: UpdatePlayerRequest | None = None,
) -> dict[str, Any]:
    """Deprecated alias of /update."""
    request = request or UpdatePlayerRequest()
    logger.warning("This endpoint /rename is deprecated. Please use /update instead.")
    return await _update_player(room_id, request)


@router.post("/{name}/{room_id}/playAgain", response_model=PlayAgainResponse)
async def play_again(
    name: str,
    room_id: str,
    request: PlayAgainRequest | None = None,
) -> PlayAgainResponse:
    """Get the room to play the next game in, creating it on first request."""
    request = request or PlayAgainRequest()
    try:
        next_room_id = await get_room_manager().request_successor(
            room_id=room_id,
            slot_id=request.player_id,
            credentials=request.credentials,
            setup_data=request.setup_data,
            num_players=request.num_players,
            unlisted=request.unlisted,
        )
    except RoomError as err:
        raise _http_error(err) from err

    return PlayAgainResponse(next_room_id=next_room_id)


@router.post("/{name}/{room_id}/rejoin")
async def rejoin_room(
    name: str,
    room_id: str,
    request: RejoinRoomRequest | None = None,
) -> dict[str, Any]:
    """Confirm a returning player's seat by name and credentials."""
    request = request or RejoinRoomRequest()
    try:
        slot = await get_room_manager().rejoin_room(
            room_id=room_id,
            player_name=request.player_name,
            credentials=request.credentials,
        )
    except RoomError as err:
        raise _http_error(err) from err

    return {"rejoined": True, "playerID": slot}


@router.post("/{name}/{room_id}/teams/create")
async def create_teams(
    name: str,
    room_id: str,
    request: CreateTeamsRequest | None = None,
) -> dict[str, Any]:
    """Split the room's players into teams, each with a leader."""
    request = request or CreateTeamsRequest()
    try:
        teams = await get_room_manager().form_teams(room_id, request.num_of_teams)
    except RoomError as err:
        raise _http_error(err) from err

    return {"teams": [team.to_dict() for team in teams]}


@router.post("/{name}/{room_id}/teams/update/leader/{team}")
async def update_leader(name: str, room_id: str, team: str) -> dict[str, Any]:
    """Hand a team's leadership to a random other member."""
    try:
        rotation, room = await get_room_manager().rotate_leader(room_id, team)
    except RoomError as err:
        raise _http_error(err) from err

    new_leader = room.get_player(rotation.new_leader) if rotation.new_leader is not None else None
    return {
        "rotated": rotation.rotated,
        "playerName_newLeader": new_leader.name if new_leader else None,
        "playerID_newLeader": rotation.new_leader,
        "new_leadersID": rotation.leader_ids,
        "new_players": {
            str(slot): player.to_dict(include_credentials=False)
            for slot, player in sorted(room.players.items())
        },
    }
