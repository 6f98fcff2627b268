"""Errors raised by room lifecycle operations.

Every error carries the HTTP status the API layer responds with, so
endpoints can translate them without a lookup table.
"""


class RoomError(Exception):
    """Base class for all room lifecycle errors."""

    status_code: int = 400

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class ValidationError(RoomError):
    """A required field is missing or malformed."""

    status_code = 403


class UnknownGameError(ValidationError):
    """The requested game is not registered."""

    status_code = 404

    def __init__(self, game_name: str) -> None:
        self.game_name = game_name
        super().__init__(f"Game {game_name} not found")


class NotFoundError(RoomError):
    """The room, slot or team does not exist."""

    status_code = 404


class ConflictError(RoomError):
    """The slot is already seated, or no seated slot matches a rejoin."""

    status_code = 409


class AuthorizationError(RoomError):
    """Presented credentials do not match the stored ones."""

    status_code = 403
