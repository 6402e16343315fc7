"""Port interface for the atomic booking remote procedures.

The procedures own capacity checks and the one-active-booking-per-user rule.
Each call is all-or-nothing and returns the raw result payload, normally
``{success, code, message?, booking_id?}``.
"""

from typing import Any, Protocol

BOOK_PROCEDURE = "book_class_session"
LEGACY_BOOK_PROCEDURE = "book_class"
CANCEL_PROCEDURE = "cancel_class_booking"
ATTENDANCE_PROCEDURE = "mark_class_attendance"


class BookingProcedures(Protocol):
    """Protocol for the booking/cancellation procedures."""

    async def book(self, session_id: str, procedure: str = BOOK_PROCEDURE) -> Any:
        """Book the current user into a session."""
        ...

    async def cancel(self, session_id: str) -> Any:
        """Cancel the current user's booking for a session."""
        ...

    async def mark_attendance(self, booking_id: str, status: str) -> Any:
        """Mark a booking as attended or no_show (trainer only)."""
        ...
