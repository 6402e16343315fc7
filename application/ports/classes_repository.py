"""Port interface for reads over the classes tables.

Rows come back in whatever nested shape the join produces. A related row
may arrive as a dict, a list of one dict, or None; callers pass every row
through backend.services.entity_normalizer before using it.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional, Protocol, Sequence

# Sort keys for list_upcoming_bookings
ORDER_BY_BOOKED_AT = "booked_at"
ORDER_BY_SESSION_START = "session_start"


class ClassesRepository(Protocol):
    """Repository protocol for classes, sessions, bookings and trainers."""

    async def list_classes(
        self,
        search: Optional[str] = None,
        level: Optional[str] = None,
        only_active: bool = True,
    ) -> List[Dict[str, Any]]:
        """List classes ordered by title."""
        ...

    async def get_class_by_slug(self, slug: str) -> Optional[Dict[str, Any]]:
        """Get a single class by its slug, or None."""
        ...

    async def list_sessions(
        self,
        class_ids: Optional[Sequence[str]] = None,
        starts_from: Optional[datetime] = None,
        starts_to: Optional[datetime] = None,
        limit: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        """List sessions with their parent class joined under ``classes``.

        Ordered by ``starts_at`` ascending.
        """
        ...

    async def list_trainer_sessions(
        self,
        trainer_user_id: str,
        starts_from: datetime,
        starts_to: datetime,
    ) -> List[Dict[str, Any]]:
        """List a trainer's sessions with ``classes`` and ``class_bookings``
        (each booking with its member under ``users``) joined."""
        ...

    async def list_session_class_ids(self, class_ids: Sequence[str]) -> List[Dict[str, Any]]:
        """List ``{id, class_id}`` for every session of the given classes."""
        ...

    async def get_booking_counts(self, session_ids: Sequence[str]) -> Dict[str, int]:
        """Active booking count per session id (absent ids mean zero)."""
        ...

    async def list_session_participants(self, session_id: str, limit: int = 12) -> List[Dict[str, Any]]:
        """``{user_id, full_name, avatar_url}`` for members holding a spot.

        Read through a security-definer procedure so members can see who
        else is coming without reading other members' bookings.
        """
        ...

    async def list_user_bookings_for_sessions(
        self, user_id: str, session_ids: Sequence[str]
    ) -> List[Dict[str, Any]]:
        """The user's bookings (any status) for the given sessions."""
        ...

    async def list_upcoming_bookings(
        self,
        user_id: str,
        since: datetime,
        statuses: Sequence[str],
        limit: int,
        class_id: Optional[str] = None,
        order_by: str = ORDER_BY_BOOKED_AT,
        descending: bool = False,
    ) -> List[Dict[str, Any]]:
        """The user's bookings whose session starts at or after ``since``,
        with ``class_sessions`` and ``class_sessions.classes`` joined.

        ``order_by`` is ``ORDER_BY_BOOKED_AT`` or ``ORDER_BY_SESSION_START``
        (the joined session's ``starts_at``). Ordering is applied before
        ``limit``.
        """
        ...

    async def list_recent_bookings(
        self, session_ids: Sequence[str], since: datetime, statuses: Sequence[str]
    ) -> List[Dict[str, Any]]:
        """``{session_id, booked_at, status}`` rows booked at or after ``since``."""
        ...

    async def list_attended_bookings(self, user_id: str, class_id: str) -> List[Dict[str, Any]]:
        """The user's attended bookings for one class, newest first."""
        ...

    async def get_users(self, user_ids: Sequence[str]) -> List[Dict[str, Any]]:
        """Identity rows for the given user ids."""
        ...

    async def list_trainers(self) -> List[Dict[str, Any]]:
        """All users with the trainer role, ordered by name."""
        ...

    async def get_trainer_profile(self, trainer_user_id: str) -> Optional[Dict[str, Any]]:
        """Optional ``specialty``/``rating`` columns for a trainer.

        Raises when the deployment has no such columns.
        """
        ...

    async def count_trainer_classes(self, trainer_user_id: str) -> int:
        """Number of classes assigned to a trainer."""
        ...
