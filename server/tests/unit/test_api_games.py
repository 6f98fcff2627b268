"""Tests for the game room API endpoints."""

import pytest
from httpx import AsyncClient

from gamerooms.settings import get_settings


async def create_room(client: AsyncClient, game: str = "tic-tac-toe", **body) -> str:
    response = await client.post(f"/games/{game}/create", json=body)
    assert response.status_code == 200
    return response.json()["gameID"]


async def join(client: AsyncClient, room_id: str, slot: int, name: str, **extra) -> str:
    response = await client.post(
        f"/games/tic-tac-toe/{room_id}/join",
        json={"playerID": slot, "playerName": name, **extra},
    )
    assert response.status_code == 200
    return response.json()["playerCredentials"]


class TestGamesListing:
    """Tests for GET /games and GET /games/{name}."""

    @pytest.mark.asyncio
    async def test_list_games(self, client: AsyncClient) -> None:
        response = await client.get("/games")

        assert response.status_code == 200
        assert response.json() == ["tic-tac-toe", "codenames"]

    @pytest.mark.asyncio
    async def test_list_rooms_strips_credentials(self, client: AsyncClient) -> None:
        room_id = await create_room(client, numPlayers=2)
        await join(client, room_id, 0, "Alice")
        await create_room(client, numPlayers=2, unlisted=True)

        response = await client.get("/games/tic-tac-toe")

        assert response.status_code == 200
        rooms = response.json()["rooms"]
        assert [room["roomID"] for room in rooms] == [room_id]
        assert rooms[0]["players"] == [{"id": 0, "name": "Alice"}, {"id": 1}]
        assert "credentials" not in str(rooms)

    @pytest.mark.asyncio
    async def test_list_rooms_unknown_game_is_empty(self, client: AsyncClient) -> None:
        response = await client.get("/games/poker")

        assert response.status_code == 200
        assert response.json() == {"rooms": []}


class TestCreateRoom:
    """Tests for POST /games/{name}/create."""

    @pytest.mark.asyncio
    async def test_create(self, client: AsyncClient) -> None:
        response = await client.post(
            "/games/tic-tac-toe/create", json={"numPlayers": 3, "setupData": {"size": 4}}
        )

        assert response.status_code == 200
        assert response.json() == {"gameID": "room-1"}

        room = (await client.get("/games/tic-tac-toe/room-1")).json()
        assert room["players"] == [{"id": 0}, {"id": 1}, {"id": 2}]
        assert room["setupData"] == {"size": 4}

    @pytest.mark.asyncio
    async def test_create_without_body_fields(self, client: AsyncClient) -> None:
        room_id = await create_room(client, numPlayers="many")

        room = (await client.get(f"/games/tic-tac-toe/{room_id}")).json()
        assert len(room["players"]) == 2
        assert "setupData" not in room

    @pytest.mark.asyncio
    async def test_create_unknown_game(self, client: AsyncClient) -> None:
        response = await client.post("/games/poker/create", json={"numPlayers": 2})

        assert response.status_code == 404
        assert response.json()["detail"] == "Game poker not found"

    @pytest.mark.asyncio
    async def test_create_without_body(self, client: AsyncClient) -> None:
        response = await client.post("/games/tic-tac-toe/create")

        assert response.status_code == 200
        room = (await client.get(f"/games/tic-tac-toe/{response.json()['gameID']}")).json()
        assert len(room["players"]) == 2

    @pytest.mark.asyncio
    async def test_create_too_many_players(self, client: AsyncClient) -> None:
        response = await client.post("/games/tic-tac-toe/create", json={"numPlayers": 10**8})

        assert response.status_code == 403
        assert response.json()["detail"] == "numPlayers must be at most 100, got 100000000"


class TestMissingBody:
    """Tests for POST requests sent without a body."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        ("action", "detail"),
        [
            ("join", "playerID is required"),
            ("leave", "playerID is required"),
            ("update", "playerID is required"),
            ("rename", "playerID is required"),
            ("playAgain", "playerID is required"),
            ("rejoin", "playerName is required"),
            ("teams/create", "Define number of team"),
        ],
    )
    async def test_missing_body_is_rejected(self, client: AsyncClient, action: str, detail: str) -> None:
        room_id = await create_room(client, numPlayers=2)

        response = await client.post(f"/games/tic-tac-toe/{room_id}/{action}")

        assert response.status_code == 403
        assert response.json()["detail"] == detail

    @pytest.mark.asyncio
    @pytest.mark.parametrize("slot", ["--1", "²"])
    async def test_malformed_slot_is_not_found(self, client: AsyncClient, slot: str) -> None:
        room_id = await create_room(client, numPlayers=2)

        response = await client.post(
            f"/games/tic-tac-toe/{room_id}/join", json={"playerID": slot, "playerName": "A"}
        )

        assert response.status_code == 404
        assert response.json()["detail"] == f"Player {slot} not found"


class TestGetRoom:
    """Tests for GET /games/{name}/{room_id}."""

    @pytest.mark.asyncio
    async def test_get_room(self, client: AsyncClient) -> None:
        room_id = await create_room(client, numPlayers=2)
        await join(client, room_id, 1, "Bob", data={"color": "blue"})

        response = await client.get(f"/games/tic-tac-toe/{room_id}")

        assert response.status_code == 200
        assert response.json() == {
            "roomID": room_id,
            "players": [{"id": 0}, {"id": 1, "name": "Bob", "data": {"color": "blue"}}],
        }

    @pytest.mark.asyncio
    async def test_get_missing_room(self, client: AsyncClient) -> None:
        response = await client.get("/games/tic-tac-toe/nope")

        assert response.status_code == 404
        assert response.json()["detail"] == "Room nope not found"


class TestJoinLeave:
    """Tests for join and leave."""

    @pytest.mark.asyncio
    async def test_join(self, client: AsyncClient) -> None:
        room_id = await create_room(client, numPlayers=2)

        credentials = await join(client, room_id, 0, "Alice")

        assert credentials == f"cred-{room_id}-0"

    @pytest.mark.asyncio
    async def test_join_taken_slot(self, client: AsyncClient) -> None:
        room_id = await create_room(client, numPlayers=2)
        await join(client, room_id, 0, "Alice")

        response = await client.post(
            f"/games/tic-tac-toe/{room_id}/join", json={"playerID": 0, "playerName": "Mallory"}
        )

        assert response.status_code == 409
        assert response.json()["detail"] == "Player 0 not available"

    @pytest.mark.asyncio
    async def test_join_missing_fields(self, client: AsyncClient) -> None:
        room_id = await create_room(client, numPlayers=2)

        no_slot = await client.post(f"/games/tic-tac-toe/{room_id}/join", json={"playerName": "A"})
        no_name = await client.post(f"/games/tic-tac-toe/{room_id}/join", json={"playerID": 0})

        assert no_slot.status_code == 403
        assert no_slot.json()["detail"] == "playerID is required"
        assert no_name.status_code == 403
        assert no_name.json()["detail"] == "playerName is required"

    @pytest.mark.asyncio
    async def test_join_missing_room_or_slot(self, client: AsyncClient) -> None:
        room_id = await create_room(client, numPlayers=2)

        missing_room = await client.post(
            "/games/tic-tac-toe/nope/join", json={"playerID": 0, "playerName": "A"}
        )
        missing_slot = await client.post(
            f"/games/tic-tac-toe/{room_id}/join", json={"playerID": 9, "playerName": "A"}
        )

        assert missing_room.status_code == 404
        assert missing_slot.status_code == 404
        assert missing_slot.json()["detail"] == "Player 9 not found"

    @pytest.mark.asyncio
    async def test_leave(self, client: AsyncClient) -> None:
        room_id = await create_room(client, numPlayers=2)
        alice = await join(client, room_id, 0, "Alice")
        await join(client, room_id, 1, "Bob")

        response = await client.post(
            f"/games/tic-tac-toe/{room_id}/leave", json={"playerID": 0, "credentials": alice}
        )

        assert response.status_code == 200
        assert response.json() == {}
        room = (await client.get(f"/games/tic-tac-toe/{room_id}")).json()
        assert room["players"][0] == {"id": 0}

    @pytest.mark.asyncio
    async def test_last_leave_deletes_room(self, client: AsyncClient) -> None:
        room_id = await create_room(client, numPlayers=2)
        alice = await join(client, room_id, 0, "Alice")

        await client.post(
            f"/games/tic-tac-toe/{room_id}/leave", json={"playerID": 0, "credentials": alice}
        )

        response = await client.get(f"/games/tic-tac-toe/{room_id}")
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_leave_wrong_credentials(self, client: AsyncClient) -> None:
        room_id = await create_room(client, numPlayers=2)
        await join(client, room_id, 0, "Alice")

        response = await client.post(
            f"/games/tic-tac-toe/{room_id}/leave", json={"playerID": 0, "credentials": "forged"}
        )

        assert response.status_code == 403
        assert response.json()["detail"] == "Invalid credentials"


class TestUpdatePlayer:
    """Tests for update and the deprecated rename alias."""

    @pytest.mark.asyncio
    async def test_update(self, client: AsyncClient) -> None:
        room_id = await create_room(client, numPlayers=2)
        alice = await join(client, room_id, 0, "Alice")

        response = await client.post(
            f"/games/tic-tac-toe/{room_id}/update",
            json={"playerID": 0, "credentials": alice, "newName": "Alicia", "data": {"x": 1}},
        )

        assert response.status_code == 200
        room = (await client.get(f"/games/tic-tac-toe/{room_id}")).json()
        assert room["players"][0] == {"id": 0, "name": "Alicia", "data": {"x": 1}}

    @pytest.mark.asyncio
    async def test_rename_alias(self, client: AsyncClient) -> None:
        room_id = await create_room(client, numPlayers=2)
        alice = await join(client, room_id, 0, "Alice")

        response = await client.post(
            f"/games/tic-tac-toe/{room_id}/rename",
            json={"playerID": 0, "credentials": alice, "newName": "Al"},
        )

        assert response.status_code == 200
        room = (await client.get(f"/games/tic-tac-toe/{room_id}")).json()
        assert room["players"][0]["name"] == "Al"

    @pytest.mark.asyncio
    async def test_update_requires_change(self, client: AsyncClient) -> None:
        room_id = await create_room(client, numPlayers=2)
        alice = await join(client, room_id, 0, "Alice")

        response = await client.post(
            f"/games/tic-tac-toe/{room_id}/update", json={"playerID": 0, "credentials": alice}
        )

        assert response.status_code == 403
        assert response.json()["detail"] == "newName or data is required"

    @pytest.mark.asyncio
    async def test_update_wrong_credentials(self, client: AsyncClient) -> None:
        room_id = await create_room(client, numPlayers=2)
        await join(client, room_id, 0, "Alice")

        response = await client.post(
            f"/games/tic-tac-toe/{room_id}/update",
            json={"playerID": 0, "credentials": "forged", "newName": "Mallory"},
        )

        assert response.status_code == 403


class TestPlayAgainAndRejoin:
    """Tests for playAgain and rejoin."""

    @pytest.mark.asyncio
    async def test_play_again_is_idempotent(self, client: AsyncClient) -> None:
        room_id = await create_room(client, numPlayers=2)
        alice = await join(client, room_id, 0, "Alice")
        bob = await join(client, room_id, 1, "Bob")

        first = await client.post(
            f"/games/tic-tac-toe/{room_id}/playAgain", json={"playerID": 0, "credentials": alice}
        )
        second = await client.post(
            f"/games/tic-tac-toe/{room_id}/playAgain",
            json={"playerID": 1, "credentials": bob, "numPlayers": 5},
        )

        assert first.status_code == 200
        assert first.json() == {"nextRoomID": "room-2"}
        assert second.json() == first.json()

        room = (await client.get(f"/games/tic-tac-toe/{room_id}")).json()
        assert room["nextRoomID"] == "room-2"
        successor = (await client.get("/games/tic-tac-toe/room-2")).json()
        assert successor["players"] == [{"id": 0}, {"id": 1}]

    @pytest.mark.asyncio
    async def test_play_again_wrong_credentials(self, client: AsyncClient) -> None:
        room_id = await create_room(client, numPlayers=2)
        await join(client, room_id, 0, "Alice")

        response = await client.post(
            f"/games/tic-tac-toe/{room_id}/playAgain", json={"playerID": 0, "credentials": "x"}
        )

        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_rejoin(self, client: AsyncClient) -> None:
        room_id = await create_room(client, numPlayers=2)
        await join(client, room_id, 0, "Alice")
        bob = await join(client, room_id, 1, "Bob")

        response = await client.post(
            f"/games/tic-tac-toe/{room_id}/rejoin", json={"playerName": "Bob", "credentials": bob}
        )

        assert response.status_code == 200
        assert response.json() == {"rejoined": True, "playerID": 1}

    @pytest.mark.asyncio
    async def test_rejoin_unknown_name(self, client: AsyncClient) -> None:
        room_id = await create_room(client, numPlayers=2)
        await join(client, room_id, 0, "Alice")

        response = await client.post(
            f"/games/tic-tac-toe/{room_id}/rejoin", json={"playerName": "Zed", "credentials": "x"}
        )

        assert response.status_code == 409
        assert response.json()["detail"] == "Player not available"


class TestTeams:
    """Tests for the team endpoints."""

    @pytest.mark.asyncio
    async def test_create_and_rotate(self, client: AsyncClient) -> None:
        room_id = await create_room(client, "codenames", numPlayers=4, setupData={})
        for slot, name in enumerate(["A", "B", "C", "D"]):
            await join(client, room_id, slot, name)

        created = await client.post(
            f"/games/codenames/{room_id}/teams/create", json={"numOfTeams": 2}
        )

        assert created.status_code == 200
        assert created.json() == {
            "teams": [
                {"teamID": "0", "playerIDs": [0, 1]},
                {"teamID": "1", "playerIDs": [2, 3]},
            ]
        }

        rotated = await client.post(f"/games/codenames/{room_id}/teams/update/leader/1")

        assert rotated.status_code == 200
        body = rotated.json()
        assert body["rotated"] is True
        assert body["playerID_newLeader"] == 3
        assert body["playerName_newLeader"] == "D"
        assert body["new_leadersID"] == [0, 3]
        assert body["new_players"]["2"]["data"]["teamAssignment"] == {"teamID": "1", "leader": False}
        assert body["new_players"]["3"]["data"]["teamAssignment"] == {"teamID": "1", "leader": True}
        assert "credentials" not in body["new_players"]["3"]

    @pytest.mark.asyncio
    async def test_create_teams_requires_count(self, client: AsyncClient) -> None:
        room_id = await create_room(client, "codenames", numPlayers=2, setupData={})

        response = await client.post(f"/games/codenames/{room_id}/teams/create", json={})

        assert response.status_code == 403
        assert response.json()["detail"] == "Define number of team"

    @pytest.mark.asyncio
    async def test_rotate_unknown_team(self, client: AsyncClient) -> None:
        room_id = await create_room(client, "codenames", numPlayers=2, setupData={})
        await join(client, room_id, 0, "A")
        await join(client, room_id, 1, "B")
        await client.post(f"/games/codenames/{room_id}/teams/create", json={"numOfTeams": 1})

        response = await client.post(f"/games/codenames/{room_id}/teams/update/leader/4")

        assert response.status_code == 404
        assert response.json()["detail"] == "Team 4 not found"

    @pytest.mark.asyncio
    async def test_rotate_single_member_team(self, client: AsyncClient) -> None:
        room_id = await create_room(client, "codenames", numPlayers=2, setupData={})
        await join(client, room_id, 0, "A")
        await join(client, room_id, 1, "B")
        await client.post(f"/games/codenames/{room_id}/teams/create", json={"numOfTeams": 2})

        response = await client.post(f"/games/codenames/{room_id}/teams/update/leader/0")

        assert response.status_code == 200
        assert response.json()["rotated"] is False
        assert response.json()["playerID_newLeader"] == 0


class TestApiSecret:
    """Tests for the shared-secret gate."""

    @pytest.fixture
    def api_secret(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setenv("API_SECRET", "s3cret")
        get_settings.cache_clear()
        yield "s3cret"
        monkeypatch.setenv("API_SECRET", "")
        get_settings.cache_clear()

    @pytest.mark.asyncio
    async def test_missing_secret_rejected(self, client: AsyncClient, api_secret: str) -> None:
        response = await client.get("/games")

        assert response.status_code == 403
        assert response.json() == {"detail": "Invalid API secret"}

    @pytest.mark.asyncio
    async def test_wrong_secret_rejected(self, client: AsyncClient, api_secret: str) -> None:
        response = await client.get("/games", headers={"api-secret": "guess"})

        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_correct_secret_accepted(self, client: AsyncClient, api_secret: str) -> None:
        response = await client.get("/games", headers={"api-secret": api_secret})

        assert response.status_code == 200

    @pytest.mark.asyncio
    async def test_health_is_ungated(self, client: AsyncClient, api_secret: str) -> None:
        response = await client.get("/health")

        assert response.status_code == 200
