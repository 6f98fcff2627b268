"""Team formation and leader rotation.

Teams are built from the room's eligible players: seated slots that are not
admins, in slot order. Membership is written in two places, as a
``teamAssignment`` on each member's payload and as aggregate lists on the
room's setup data:

    setupData.teams      [{"teamID": "0", "playerIDs": [0, 1]}, ...]
    setupData.adminIDs   seated admin slots
    setupData.playerIDs  eligible slots at formation time
    setupData.leaderIDs  one leader per non-empty team, in team order

All functions mutate the room passed in and validate before the first write.
"""

import logging
import random
from dataclasses import dataclass
from typing import Any

from gamerooms.rooms.errors import NotFoundError, ValidationError
from gamerooms.rooms.models import PlayerRole, Room, Team, TeamAssignment

logger = logging.getLogger(__name__)


@dataclass
class LeaderRotation:
    """Outcome of a leader rotation.

    Attributes:
        team_id: The rotated team
        previous_leader: Slot that led before the rotation
        new_leader: Slot that leads now (equal to previous_leader if not rotated)
        rotated: False when the team had nobody to hand leadership to
        leader_ids: The room's leader list after the rotation
    """

    team_id: str
    previous_leader: int | None
    new_leader: int | None
    rotated: bool
    leader_ids: list[int]


def _parse_num_teams(num_teams: Any) -> int:
    if num_teams is None:
        raise ValidationError("Define number of team")
    if isinstance(num_teams, bool):
        raise ValidationError(f"Invalid number of teams: {num_teams}")
    try:
        count = int(num_teams)
    except (TypeError, ValueError) as err:
        raise ValidationError(f"Invalid number of teams: {num_teams}") from err
    if count < 1:
        raise ValidationError(f"Invalid number of teams: {num_teams}")
    return count


def partition(player_ids: list[int], num_teams: int) -> list[list[int]]:
    """Split players into ``num_teams`` ordered groups.

    Each group first takes ``len(player_ids) // num_teams`` players in order;
    the leftovers then go one each to the first groups.
    """
    base, remainder = divmod(len(player_ids), num_teams)
    groups: list[list[int]] = []
    cursor = 0
    for _ in range(num_teams):
        groups.append(player_ids[cursor : cursor + base])
        cursor += base
    for group in groups[:remainder]:
        group.append(player_ids[cursor])
        cursor += 1
    return groups


def form_teams(room: Room, num_teams: Any) -> list[Team]:
    """Partition the room's eligible players into teams.

    Args:
        room: The room to form teams in (mutated)
        num_teams: Number of teams to create

    Returns:
        The teams, in team ID order

    Raises:
        ValidationError: If num_teams is missing or not a positive integer,
            or the room has no setup data to record teams on
    """
    count = _parse_num_teams(num_teams)
    if not isinstance(room.setup_data, dict):
        raise ValidationError(f"Room {room.room_id} has no setup data to record teams")

    seated = room.seated_players
    eligible = [p.id for p in seated if p.role is PlayerRole.PLAYER]
    admins = [p.id for p in seated if p.role is PlayerRole.ADMIN]

    teams = [
        Team(team_id=str(team_id), player_ids=group)
        for team_id, group in enumerate(partition(eligible, count))
    ]

    # Assignments from an earlier formation must not survive
    for player in room.players.values():
        player.assign_team(None)

    leader_ids: list[int] = []
    for team in teams:
        for position, slot in enumerate(team.player_ids):
            room.players[slot].assign_team(TeamAssignment(team_id=team.team_id, leader=position == 0))
        if team.player_ids:
            leader_ids.append(team.player_ids[0])

    room.setup_data["teams"] = [team.to_dict() for team in teams]
    room.setup_data["adminIDs"] = admins
    room.setup_data["playerIDs"] = eligible
    room.setup_data["leaderIDs"] = leader_ids

    logger.info(
        f"Formed {count} teams in room {room.room_id} "
        f"from {len(eligible)} players ({len(admins)} admins)"
    )
    return teams


def _find_team(room: Room, team_id: str) -> Team:
    for team in room.teams:
        if team.team_id == str(team_id):
            return team
    raise NotFoundError(f"Team {team_id} not found")


def _current_leader(room: Room, team: Team) -> int | None:
    for slot in team.player_ids:
        player = room.get_player(slot)
        assignment = player.team_assignment if player else None
        if assignment is not None and assignment.leader:
            return slot
    return None


def rotate_leader(room: Room, team_id: str, rng: random.Random) -> LeaderRotation:
    """Hand a team's leadership to a random other member.

    Args:
        room: The room holding the team (mutated)
        team_id: The team to rotate
        rng: Source of randomness for picking the new leader

    Returns:
        The rotation outcome; ``rotated`` is False for teams of one or none

    Raises:
        NotFoundError: If the team is not recorded on the room
    """
    team = _find_team(room, team_id)
    leader_ids: list[int] = room.setup_data.setdefault("leaderIDs", [])
    old_leader = _current_leader(room, team)
    candidates = [slot for slot in team.player_ids if slot != old_leader]

    if old_leader is None or not candidates:
        logger.info(f"Only one player in team {team.team_id} of room {room.room_id}, leader unchanged")
        return LeaderRotation(
            team_id=team.team_id,
            previous_leader=old_leader,
            new_leader=old_leader,
            rotated=False,
            leader_ids=list(leader_ids),
        )

    new_leader = rng.choice(candidates)
    room.players[old_leader].assign_team(TeamAssignment(team_id=team.team_id, leader=False))
    room.players[new_leader].assign_team(TeamAssignment(team_id=team.team_id, leader=True))

    if old_leader in leader_ids:
        leader_ids[leader_ids.index(old_leader)] = new_leader
    else:
        leader_ids.append(new_leader)

    logger.info(
        f"Leader of team {team.team_id} in room {room.room_id} changed "
        f"from slot {old_leader} to slot {new_leader}"
    )
    return LeaderRotation(
        team_id=team.team_id,
        previous_leader=old_leader,
        new_leader=new_leader,
        rotated=True,
        leader_ids=list(leader_ids),
    )


def remove_player(room: Room, slot: int) -> None:
    """Drop a departing player from the room's team bookkeeping.

    If the player led a team, the next member in assignment order takes over.
    Does nothing when teams were never formed.
    """
    if not isinstance(room.setup_data, dict) or "teams" not in room.setup_data:
        return

    teams = room.teams
    leader_ids: list[int] = room.setup_data.setdefault("leaderIDs", [])
    for team in teams:
        if slot not in team.player_ids:
            continue
        team.player_ids.remove(slot)
        if slot in leader_ids:
            index = leader_ids.index(slot)
            if team.player_ids:
                successor = team.player_ids[0]
                leader_ids[index] = successor
                room.players[successor].assign_team(TeamAssignment(team_id=team.team_id, leader=True))
                logger.info(f"Slot {successor} now leads team {team.team_id} in room {room.room_id}")
            else:
                leader_ids.pop(index)

    room.setup_data["teams"] = [team.to_dict() for team in teams]
    for key in ("playerIDs", "adminIDs"):
        slots = room.setup_data.get(key)
        if isinstance(slots, list) and slot in slots:
            slots.remove(slot)
