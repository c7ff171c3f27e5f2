"""Identity of the shopper driving a cart"""

from datetime import datetime
from typing import Optional
from dataclasses import dataclass
from enum import Enum


class SessionState(str, Enum):
    """Whether the shopper is known to the backend"""
    GUEST = "guest"
    AUTHENTICATED = "authenticated"


@dataclass
class AuthSession:
    """
    Current shopper identity.

    Authenticated only when both a username and a bearer token are present,
    mirroring what the cart API needs to address a user cart.
    """
    username: Optional[str] = None
    auth_token: Optional[str] = None
    authenticated_at: Optional[datetime] = None

    @property
    def is_authenticated(self) -> bool:
        return bool(self.username and self.auth_token)

    @property
    def state(self) -> SessionState:
        if self.is_authenticated:
            return SessionState.AUTHENTICATED
        return SessionState.GUEST

    def authenticate(self, username: str, auth_token: str) -> None:
        """Attach an identity to the session"""
        self.username = username
        self.auth_token = auth_token
        self.authenticated_at = datetime.utcnow()

    def clear(self) -> None:
        """Drop the identity (logout)"""
        self.username = None
        self.auth_token = None
        self.authenticated_at = None
