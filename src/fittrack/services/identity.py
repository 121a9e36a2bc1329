"""Identity provider interfaces."""

from collections.abc import Callable
from typing import Protocol
from uuid import UUID

UserListener = Callable[[UUID | None], None]


class AuthenticationError(RuntimeError):
    """Raised when the identity provider rejects a sign-up or sign-in."""


class IdentityProvider(Protocol):
    """Source of the signed-in user and of session changes."""

    def current_user(self) -> UUID | None:
        """Return the signed-in user id, or None when signed out."""

    def subscribe(self, listener: UserListener) -> Callable[[], None]:
        """Call ``listener`` whenever the current user changes.

        Returns a function that removes the listener.
        """


class SessionProvider(IdentityProvider, Protocol):
    """Identity provider that can also open and close sessions."""

    async def sign_up(self, email: str, password: str) -> None:
        """Register a new account."""

    async def sign_in(self, email: str, password: str) -> None:
        """Open a session with email and password."""

    async def sign_out(self) -> None:
        """Close the current session."""
