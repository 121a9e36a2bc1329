"""Supabase Auth-backed identity provider."""

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from uuid import UUID

from supabase import AsyncClient, AuthError

from fittrack.services.identity import (
    AuthenticationError,
    SessionProvider,
    UserListener,
)

_logger = logging.getLogger(__name__)


@dataclass
class SupabaseIdentityProvider(SessionProvider):
    """Tracks the Supabase Auth session and notifies on user changes."""

    client: AsyncClient
    _user_id: UUID | None = field(default=None, init=False)
    _listeners: list[UserListener] = field(default_factory=list, init=False)
    _subscription: object | None = field(default=None, init=False)

    async def start(self) -> None:
        """Read any persisted session and follow auth state changes."""
        session = await self.client.auth.get_session()
        self._set_user(_session_user_id(session))
        if self._subscription is None:
            self._subscription = self.client.auth.on_auth_state_change(
                self._on_auth_event
            )

    def close(self) -> None:
        """Stop following auth state changes."""
        if self._subscription is not None:
            self._subscription.unsubscribe()
            self._subscription = None

    def current_user(self) -> UUID | None:
        """Return the signed-in user id."""
        return self._user_id

    def subscribe(self, listener: UserListener) -> Callable[[], None]:
        """Register a user-change listener."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    async def sign_up(self, email: str, password: str) -> None:
        """Register a new account."""
        try:
            await self.client.auth.sign_up({"email": email, "password": password})
        except AuthError as exc:
            raise AuthenticationError(exc.message) from exc

    async def sign_in(self, email: str, password: str) -> None:
        """Sign in with email and password."""
        try:
            response = await self.client.auth.sign_in_with_password(
                {"email": email, "password": password}
            )
        except AuthError as exc:
            raise AuthenticationError(exc.message) from exc
        self._set_user(_session_user_id(response.session))

    async def sign_out(self) -> None:
        """Sign out of the current session."""
        await self.client.auth.sign_out()
        self._set_user(None)

    def _on_auth_event(self, event: object, session: object | None) -> None:
        _logger.info("Auth state changed: %s", event)
        self._set_user(_session_user_id(session))

    def _set_user(self, user_id: UUID | None) -> None:
        if user_id == self._user_id:
            return
        self._user_id = user_id
        for listener in list(self._listeners):
            listener(user_id)


def _session_user_id(session: object | None) -> UUID | None:
    user = getattr(session, "user", None)
    raw_id = getattr(user, "id", None)
    if not raw_id:
        return None
    return UUID(str(raw_id))
