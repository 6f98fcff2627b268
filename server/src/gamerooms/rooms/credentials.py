"""Player credential issuing and validation."""

import secrets
from collections.abc import Callable
from dataclasses import dataclass

DEFAULT_CREDENTIAL_BYTES = 16


@dataclass(frozen=True)
class CredentialContext:
    """What a credential is being issued for."""

    room_id: str
    slot: int
    player_name: str


CredentialGenerator = Callable[[CredentialContext], str]


def generate_credentials(context: CredentialContext) -> str:
    """Default generator: a random URL-safe token."""
    return secrets.token_urlsafe(DEFAULT_CREDENTIAL_BYTES)


class CredentialAuthority:
    """Issues and checks player credentials.

    Holds no state of its own: once a token is stored on a slot, the slot is
    the source of truth.
    """

    def __init__(self, generator: CredentialGenerator | None = None) -> None:
        self._generator = generator or generate_credentials

    def issue(self, context: CredentialContext) -> str:
        """Issue a token for a seat."""
        token = self._generator(context)
        if not token:
            raise ValueError("Credential generator returned an empty token")
        return token

    @staticmethod
    def validate(presented: str | None, stored: str | None) -> bool:
        """Check presented credentials against the stored ones.

        An open slot has nothing stored and never validates.
        """
        if presented is None or stored is None:
            return False
        if not isinstance(presented, str):
            return False
        return secrets.compare_digest(presented.encode(), stored.encode())
