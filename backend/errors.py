"""Error taxonomy for the classes feature.

Only I/O-facing code raises these. Pure computation degrades to neutral
defaults instead. A booking rejected by the atomic procedure is an expected
outcome (``BookingOutcome.ok is False``), not an exception.
"""

from contextlib import contextmanager
from typing import Iterator, Optional


class GymFlowError(Exception):
    """Base error carrying a user-facing message."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class NotFoundError(GymFlowError):
    """A requested class, session or slug has no matching row."""


class ExternalCallFailure(GymFlowError):
    """A persistence, auth or procedure call raised.

    Keeps the collaborator's own text when it has one so the caller can
    render it next to a retry action.
    """

    def __init__(self, fallback: str, detail: Optional[str] = None) -> None:
        self.fallback = fallback
        self.detail = detail or None
        super().__init__(f"{fallback}: {detail}" if detail else fallback)


class AuthenticationRequired(GymFlowError):
    """The operation needs a signed-in user."""


class InvalidAttendanceStatus(GymFlowError):
    """Attendance can only be marked as attended or no_show."""


@contextmanager
def external_call(fallback: str) -> Iterator[None]:
    """Translate any collaborator exception into ExternalCallFailure.

    Usage:
        with external_call("No se pudieron cargar las clases"):
            rows = await repo.list_classes()
    """
    try:
        yield
    except GymFlowError:
        raise
    except Exception as exc:
        raise ExternalCallFailure(fallback, str(exc)) from exc
