"""Booking endpoints.

GET  /api/bookings/upcoming             - the caller's upcoming bookings
GET  /api/bookings/today                - today's class and the next few
POST /api/sessions/{id}/book            - book a spot (409 when rejected)
POST /api/sessions/{id}/cancel          - cancel the caller's booking (409 when rejected)
GET  /api/sessions/{id}/participants    - members holding a spot (avatar strip)
POST /api/bookings/{id}/attendance      - trainer marks attended / no_show
GET  /api/trainer/sessions              - the trainer's own sessions for a week
"""

from dataclasses import asdict
from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from api.deps import (
    get_booking_coordinator,
    get_session_participants_use_case,
    get_today_class_use_case,
    get_trainer_sessions_use_case,
    get_upcoming_bookings_use_case,
    require_user,
)
from application.models.classes import (
    AuthUser,
    ClassBooking,
    SessionParticipant,
    SessionWithAvailability,
    TodayClasses,
)
from application.use_cases.my_bookings import GetMyTodayClass, ListMyUpcomingBookings
from application.use_cases.session_participants import ListSessionParticipants
from application.use_cases.trainer_sessions import ListTrainerSessions
from backend.services.booking_coordinator import BookingCoordinator, BookingOutcome

router = APIRouter(tags=["bookings"])


class AttendanceRequest(BaseModel):
    status: str = Field(..., min_length=1, max_length=32)


class TrainerSessionResponse(BaseModel):
    session: SessionWithAvailability
    bookings: List[ClassBooking] = Field(default_factory=list)


def _outcome_response(outcome: BookingOutcome) -> JSONResponse:
    return JSONResponse(status_code=200 if outcome.ok else 409, content=asdict(outcome))


@router.get("/api/bookings/upcoming", response_model=List[ClassBooking])
async def upcoming_bookings(
    class_id: Optional[str] = None,
    use_case: ListMyUpcomingBookings = Depends(get_upcoming_bookings_use_case),
):
    """Upcoming booked/confirmed bookings. Empty for anonymous callers."""
    return await use_case.execute(class_id=class_id)


@router.get("/api/bookings/today", response_model=TodayClasses)
async def today_classes(
    use_case: GetMyTodayClass = Depends(get_today_class_use_case),
):
    return await use_case.execute()


@router.post("/api/sessions/{session_id}/book")
async def book_session(
    session_id: str,
    user: AuthUser = Depends(require_user),
    coordinator: BookingCoordinator = Depends(get_booking_coordinator),
):
    """Book one spot. Capacity is decided by the booking procedure alone."""
    return _outcome_response(await coordinator.book(session_id))


@router.post("/api/sessions/{session_id}/cancel")
async def cancel_session_booking(
    session_id: str,
    user: AuthUser = Depends(require_user),
    coordinator: BookingCoordinator = Depends(get_booking_coordinator),
):
    return _outcome_response(await coordinator.cancel(session_id))


@router.get("/api/sessions/{session_id}/participants", response_model=List[SessionParticipant])
async def session_participants(
    session_id: str,
    use_case: ListSessionParticipants = Depends(get_session_participants_use_case),
):
    return await use_case.execute(session_id)


@router.post("/api/bookings/{booking_id}/attendance")
async def mark_attendance(
    booking_id: str,
    body: AttendanceRequest,
    user: AuthUser = Depends(require_user),
    coordinator: BookingCoordinator = Depends(get_booking_coordinator),
):
    """Mark a booking attended or no_show. 422 for any other status."""
    return _outcome_response(await coordinator.mark_attendance(booking_id, body.status))


@router.get("/api/trainer/sessions", response_model=List[TrainerSessionResponse])
async def trainer_sessions(
    week_start: date,
    week_end: date,
    use_case: ListTrainerSessions = Depends(get_trainer_sessions_use_case),
):
    sessions = await use_case.execute(week_start, week_end)
    return [TrainerSessionResponse(session=s.session, bookings=s.bookings) for s in sessions]
