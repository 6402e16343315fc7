"""Helpers shared by the classes read paths."""

from datetime import date, datetime, time, timezone, tzinfo
from typing import Optional

from application.ports.auth_provider import AuthProvider
from application.models.classes import AuthUser
from backend.errors import external_call

AUTH_FAILURE_MESSAGE = "No se pudo verificar la sesión"


async def resolve_user(auth: AuthProvider) -> Optional[AuthUser]:
    """Current user, or None for an anonymous view."""
    with external_call(AUTH_FAILURE_MESSAGE):
        return await auth.current_user()


async def resolve_user_id(auth: AuthProvider) -> Optional[str]:
    user = await resolve_user(auth)
    return user.id if user else None


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def start_of_day(day: date, tz: Optional[tzinfo] = None) -> datetime:
    return datetime.combine(day, time.min, tzinfo=tz or timezone.utc)


def end_of_day(day: date, tz: Optional[tzinfo] = None) -> datetime:
    return datetime.combine(day, time.max, tzinfo=tz or timezone.utc)
