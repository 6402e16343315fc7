"""Supabase implementation of AuthProvider."""

import logging
from typing import Optional

from supabase import AsyncClient, AuthApiError

from application.models.classes import AuthUser

logger = logging.getLogger(__name__)


class SupabaseAuthProvider:
    """Resolves the user behind a Supabase access token.

    A token the auth server rejects (expired, revoked) resolves to no user;
    transport failures propagate.
    """

    def __init__(self, client: AsyncClient, access_token: Optional[str] = None) -> None:
        self._client = client
        self._access_token = access_token

    async def current_user(self) -> Optional[AuthUser]:
        try:
            response = await self._client.auth.get_user(self._access_token)
        except AuthApiError as e:
            logger.warning("Rejected access token: %s", e)
            return None

        user = getattr(response, "user", None) if response else None
        if user is None:
            return None
        return AuthUser(
            id=user.id,
            email=getattr(user, "email", None),
            metadata=dict(getattr(user, "user_metadata", None) or {}),
        )


class AnonymousAuthProvider:
    """AuthProvider for requests without credentials."""

    async def current_user(self) -> Optional[AuthUser]:
        return None
