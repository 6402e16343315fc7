"""Async Supabase implementation of BookingProcedures.

The client must carry the caller's JWT: the procedures book for auth.uid().
"""

from typing import Any

from supabase import AsyncClient

from application.ports.booking_procedures import (
    ATTENDANCE_PROCEDURE,
    BOOK_PROCEDURE,
    CANCEL_PROCEDURE,
)


class AsyncSupabaseBookingProcedures:
    """Calls the atomic booking RPCs and returns their raw payload."""

    def __init__(self, client: AsyncClient) -> None:
        self._client = client

    async def book(self, session_id: str, procedure: str = BOOK_PROCEDURE) -> Any:
        result = await self._client.rpc(procedure, {"p_session_id": session_id}).execute()
        return result.data

    async def cancel(self, session_id: str) -> Any:
        result = await self._client.rpc(CANCEL_PROCEDURE, {"p_session_id": session_id}).execute()
        return result.data

    async def mark_attendance(self, booking_id: str, status: str) -> Any:
        result = await self._client.rpc(
            ATTENDANCE_PROCEDURE,
            {"p_booking_id": booking_id, "p_status": status},
        ).execute()
        return result.data
