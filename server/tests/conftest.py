"""Pytest configuration and fixtures."""

import os

# Disable rate limiting and the shared-secret gate for all tests
os.environ["RATE_LIMITING_ENABLED"] = "false"
os.environ["API_SECRET"] = ""
os.environ["STORAGE_BACKEND"] = "memory"

# Clear the settings cache to pick up the new environment variables
from gamerooms.settings import get_settings

get_settings.cache_clear()

import random  # noqa: E402
from collections.abc import AsyncGenerator  # noqa: E402
from itertools import count  # noqa: E402

import pytest  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402

from gamerooms.main import app  # noqa: E402
from gamerooms.rooms.games import GameDefinition, GameRegistry  # noqa: E402
from gamerooms.rooms.manager import (  # noqa: E402
    LobbyConfig,
    RoomLifecycleManager,
    init_room_manager,
    reset_room_manager,
)
from gamerooms.rooms.store import InMemoryMetadataStore  # noqa: E402


def make_config(seed: int = 7) -> LobbyConfig:
    """Build a deterministic manager configuration.

    Room IDs are "room-1", "room-2", ... and credentials "cred-<room>-<slot>".
    """
    room_ids = count(1)
    return LobbyConfig(
        generate_room_id=lambda: f"room-{next(room_ids)}",
        generate_credentials=lambda ctx: f"cred-{ctx.room_id}-{ctx.slot}",
        rng=random.Random(seed),
    )


def make_games() -> GameRegistry:
    return GameRegistry([GameDefinition(name="tic-tac-toe"), GameDefinition(name="codenames")])


@pytest.fixture
def store() -> InMemoryMetadataStore:
    """Provide an empty in-memory metadata store."""
    return InMemoryMetadataStore()


@pytest.fixture
def manager(store: InMemoryMetadataStore) -> RoomLifecycleManager:
    """Provide a deterministic room manager installed as the global one."""
    manager = RoomLifecycleManager(store=store, games=make_games(), config=make_config())
    init_room_manager(manager)
    yield manager
    reset_room_manager()


@pytest.fixture
async def client(manager: RoomLifecycleManager) -> AsyncGenerator[AsyncClient, None]:
    """Create an async test client backed by the deterministic manager."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
