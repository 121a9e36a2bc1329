"""Session endpoints backed by the identity provider."""

from __future__ import annotations

from typing import TYPE_CHECKING

from fastapi import APIRouter, Request

from fittrack.api.models import Credentials  # noqa: TC001

if TYPE_CHECKING:
    from fittrack.services.identity import SessionProvider

router = APIRouter(prefix="/auth", tags=["auth"])


def _identity(request: Request) -> SessionProvider:
    return request.app.state.container.identity


@router.post("/sign-up")
async def sign_up(credentials: Credentials, request: Request) -> dict[str, str]:
    """Register a new account."""
    await _identity(request).sign_up(credentials.email, credentials.password)
    return {"status": "ok"}


@router.post("/sign-in")
async def sign_in(credentials: Credentials, request: Request) -> dict[str, str]:
    """Sign in; the store reloads for the new user."""
    await _identity(request).sign_in(credentials.email, credentials.password)
    return {"status": "ok"}


@router.post("/sign-out")
async def sign_out(request: Request) -> dict[str, str]:
    """Sign out; the store falls back to an empty local log."""
    await _identity(request).sign_out()
    return {"status": "ok"}
