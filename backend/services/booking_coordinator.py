"""Booking action coordinator.

Wraps the atomic booking procedures with one result contract. The remote
procedure is the only judge of capacity: nothing is checked locally before
calling, and when two callers race for the last spot one of them simply gets
``success=False`` back.
"""

import logging
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Optional

from opentelemetry.trace import SpanKind
from pydantic import ValidationError

from application.models.classes import BookingResult, BookingStatus
from application.ports.booking_procedures import (
    BOOK_PROCEDURE,
    LEGACY_BOOK_PROCEDURE,
    BookingProcedures,
)
from backend.errors import ExternalCallFailure, InvalidAttendanceStatus
from backend.observability import BookingMetrics, get_tracer
from backend.services.booking_events import BookingEventBus
from backend.services.entity_normalizer import one_or_none

logger = logging.getLogger(__name__)

BOOK_FALLBACK_MESSAGE = "No se pudo reservar la clase"
CANCEL_FALLBACK_MESSAGE = "No se pudo cancelar la reserva"
ATTENDANCE_FALLBACK_MESSAGE = "No se pudo registrar la asistencia"

FULL_MESSAGE = "Clase completa. Prueba otro horario."
ALREADY_BOOKED_MESSAGE = "Ya tienes una reserva para esta sesión."

INVALID_RESPONSE_CODE = "INVALID_RESPONSE"

_ATTENDANCE_STATUSES = {BookingStatus.attended.value, BookingStatus.no_show.value}


@dataclass
class BookingOutcome:
    """What the caller renders after a booking action.

    ``ok`` False is an expected rejection (session full, already booked...),
    with ``message`` ready to show.
    """

    ok: bool
    code: str
    message: Optional[str] = None
    booking_id: Optional[str] = None


def parse_result(payload: Any) -> BookingResult:
    """Read the procedure payload. Anything unreadable counts as a failure."""
    data = one_or_none(payload)
    if data is None:
        return BookingResult(success=False, code=INVALID_RESPONSE_CODE)
    try:
        return BookingResult.model_validate(data)
    except ValidationError:
        return BookingResult(success=False, code=INVALID_RESPONSE_CODE)


def _known_rejection(error_text: str) -> Optional[BookingOutcome]:
    # Some procedure versions raise instead of returning success=false
    if "FULL" in error_text:
        return BookingOutcome(ok=False, code="FULL", message=FULL_MESSAGE)
    if "ALREADY" in error_text:
        return BookingOutcome(ok=False, code="ALREADY_BOOKED", message=ALREADY_BOOKED_MESSAGE)
    return None


class BookingCoordinator:
    """Book, cancel and mark attendance through the atomic procedures.

    Every successful mutation publishes the booking-updated pulse before
    returning so other views re-fetch. Each action runs inside a client span
    and is counted and timed by outcome (ok, rejected, error).
    """

    def __init__(self, procedures: BookingProcedures, events: BookingEventBus) -> None:
        self._procedures = procedures
        self._events = events

    async def book(self, session_id: str) -> BookingOutcome:
        return await self._observed("book", {"session.id": session_id}, lambda: self._book(session_id))

    async def cancel(self, session_id: str) -> BookingOutcome:
        return await self._observed("cancel", {"session.id": session_id}, lambda: self._cancel(session_id))

    async def mark_attendance(self, booking_id: str, status: str) -> BookingOutcome:
        if status not in _ATTENDANCE_STATUSES:
            raise InvalidAttendanceStatus(
                f"Invalid attendance status '{status}'. Must be one of: {sorted(_ATTENDANCE_STATUSES)}"
            )
        return await self._observed(
            "attendance",
            {"booking.id": booking_id, "booking.attendance_status": status},
            lambda: self._mark_attendance(booking_id, status),
        )

    async def _observed(
        self,
        action: str,
        attributes: Dict[str, str],
        call: Callable[[], Awaitable[BookingOutcome]],
    ) -> BookingOutcome:
        tracer = get_tracer()
        start_time = time.time()

        with tracer.start_as_current_span(
            f"booking.{action}",
            kind=SpanKind.CLIENT,
            attributes={"booking.action": action, **attributes},
        ) as span:
            try:
                outcome = await call()
            except Exception as e:
                duration = self._record(action, "error", type(e).__name__, start_time)
                span.set_attribute("booking.duration_seconds", duration)
                span.set_attribute("error.type", type(e).__name__)
                raise

            status = "ok" if outcome.ok else "rejected"
            duration = self._record(action, status, outcome.code, start_time)
            span.set_attribute("booking.duration_seconds", duration)
            span.set_attribute("booking.outcome", status)
            span.set_attribute("booking.code", outcome.code)
            return outcome

    def _record(self, action: str, status: str, code: str, start_time: float) -> float:
        duration = time.time() - start_time
        BookingMetrics.booking_actions_total().add(
            1, {"action": action, "outcome": status, "code": code}
        )
        BookingMetrics.booking_action_seconds().record(
            duration, {"action": action, "outcome": status}
        )
        return duration

    async def _book(self, session_id: str) -> BookingOutcome:
        try:
            payload = await self._procedures.book(session_id, procedure=BOOK_PROCEDURE)
        except Exception as first_error:
            logger.info(
                "%s failed for session %s (%s), retrying with %s",
                BOOK_PROCEDURE,
                session_id,
                first_error,
                LEGACY_BOOK_PROCEDURE,
            )
            try:
                payload = await self._procedures.book(session_id, procedure=LEGACY_BOOK_PROCEDURE)
            except Exception as e:
                return self._transport_failure(e, BOOK_FALLBACK_MESSAGE)

        return self._settle("book", session_id, parse_result(payload), BOOK_FALLBACK_MESSAGE)

    async def _cancel(self, session_id: str) -> BookingOutcome:
        try:
            payload = await self._procedures.cancel(session_id)
        except Exception as e:
            return self._transport_failure(e, CANCEL_FALLBACK_MESSAGE)

        return self._settle("cancel", session_id, parse_result(payload), CANCEL_FALLBACK_MESSAGE)

    async def _mark_attendance(self, booking_id: str, status: str) -> BookingOutcome:
        try:
            payload = await self._procedures.mark_attendance(booking_id, status)
        except Exception as e:
            raise ExternalCallFailure(ATTENDANCE_FALLBACK_MESSAGE, str(e)) from e

        return self._settle("attendance", booking_id, parse_result(payload), ATTENDANCE_FALLBACK_MESSAGE)

    def _settle(self, action: str, target_id: str, result: BookingResult, fallback: str) -> BookingOutcome:
        if not result.success:
            logger.info("%s rejected for %s: code=%s", action, target_id, result.code)
            return BookingOutcome(
                ok=False,
                code=result.code,
                message=result.message or fallback,
            )

        logger.info("%s succeeded for %s: code=%s", action, target_id, result.code)
        self._events.publish()
        return BookingOutcome(
            ok=True,
            code=result.code,
            message=result.message,
            booking_id=result.booking_id,
        )

    def _transport_failure(self, error: Exception, fallback: str) -> BookingOutcome:
        text = str(error)
        rejection = _known_rejection(text)
        if rejection is not None:
            return rejection
        raise ExternalCallFailure(fallback, text) from error
