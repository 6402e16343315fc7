"""Port interface for the authentication collaborator."""

from typing import Optional, Protocol

from application.models.classes import AuthUser


class AuthProvider(Protocol):
    """Resolves the identity behind the current request or session."""

    async def current_user(self) -> Optional[AuthUser]:
        """Return the signed-in user, or None for an anonymous caller."""
        ...
