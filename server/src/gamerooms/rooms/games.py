"""Game definitions served by the room service.

The rules of a game live outside this service. A definition only names the
game and knows how to produce the initial play state a new room is stored
with.
"""

from collections.abc import Callable, Iterable
from dataclasses import dataclass
from typing import Any

InitializeGame = Callable[[int, Any], dict[str, Any]]


def default_initial_state(num_players: int, setup_data: Any) -> dict[str, Any]:
    """Initial state for games without a rules engine of their own."""
    return {
        "numPlayers": num_players,
        "playOrder": [str(slot) for slot in range(num_players)],
        "currentPlayer": "0",
        "turn": 0,
        "setupData": setup_data,
    }


@dataclass(frozen=True)
class GameDefinition:
    """A game rooms can be created for."""

    name: str
    initialize: InitializeGame = default_initial_state


class GameRegistry:
    """Registered games, by name."""

    def __init__(self, games: Iterable[GameDefinition] = ()) -> None:
        self._games: dict[str, GameDefinition] = {}
        for game in games:
            self.register(game)

    def register(self, game: GameDefinition) -> None:
        if game.name in self._games:
            raise ValueError(f"Game {game.name} is already registered")
        self._games[game.name] = game

    def get(self, name: str) -> GameDefinition | None:
        return self._games.get(name)

    def names(self) -> list[str]:
        return list(self._games)

    def __contains__(self, name: object) -> bool:
        return name in self._games
