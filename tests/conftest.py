from datetime import datetime, timezone

import pytest

from backend.settings import Settings
from tests.fakes import FakeClassesRepository

# Monday
NOW = datetime(2026, 3, 2, 9, 0, tzinfo=timezone.utc)

MEMBER_ID = "m-1"


def _class(class_id, title, slug, trainer, level, duration, capacity, active=True):
    return {
        "id": class_id,
        "title": title,
        "slug": slug,
        "description": None,
        "trainer_user_id": trainer,
        "level": level,
        "duration_min": duration,
        "capacity": capacity,
        "is_active": active,
    }


def _session(session_id, class_id, starts_at, ends_at):
    return {"id": session_id, "class_id": class_id, "starts_at": starts_at, "ends_at": ends_at}


def _booking(booking_id, session_id, user_id, status, booked_at):
    return {
        "id": booking_id,
        "session_id": session_id,
        "user_id": user_id,
        "status": status,
        "booked_at": booked_at,
    }


@pytest.fixture
def repo() -> FakeClassesRepository:
    """Two active classes (yoga, hiit) and one inactive class.

    - yoga: m-1 holds a spot on Tuesday and attended a past session
    - hiit: capacity 4 with 3 bookings, so one spot left
    """
    return FakeClassesRepository(
        classes=[
            _class("c-yoga", "Yoga suave", "yoga-suave", "t-1", "beginner", 60, 10),
            _class("c-hiit", "HIIT", "hiit", "t-2", "advanced", 45, 4),
            _class("c-old", "Aerobic", "aerobic", "t-2", "none", 50, 20, active=False),
        ],
        sessions=[
            _session("s-y1", "c-yoga", "2026-03-03T18:00:00+00:00", "2026-03-03T19:00:00+00:00"),
            _session("s-y2", "c-yoga", "2026-03-05T08:00:00+00:00", "2026-03-05T09:00:00+00:00"),
            _session("s-h1", "c-hiit", "2026-03-03T19:00:00+00:00", "2026-03-03T19:45:00+00:00"),
            _session("s-past", "c-yoga", "2026-02-20T18:00:00+00:00", "2026-02-20T19:00:00+00:00"),
        ],
        bookings=[
            _booking("b-1", "s-y1", MEMBER_ID, "booked", "2026-03-01T10:00:00+00:00"),
            _booking("b-2", "s-h1", "m-2", "booked", "2026-02-28T10:00:00+00:00"),
            _booking("b-3", "s-h1", "m-3", "booked", "2026-02-28T11:00:00+00:00"),
            _booking("b-4", "s-h1", "m-4", "booked", "2026-02-28T12:00:00+00:00"),
            _booking("b-att", "s-past", MEMBER_ID, "attended", "2026-02-19T10:00:00+00:00"),
        ],
        users=[
            {"user_id": "t-1", "name": "Ana", "last_name": "Ruiz", "role": "trainer"},
            {"user_id": "t-2", "name": "Luis", "last_name": "Gómez", "role": "trainer"},
            {"user_id": MEMBER_ID, "name": "Marta", "last_name": "Sanz", "role": "member"},
        ],
    )


@pytest.fixture
def test_settings() -> Settings:
    return Settings(
        environment="test",
        supabase_url="https://test.supabase.co",
        supabase_anon_key="test-anon-key",
        gym_timezone="UTC",
        _env_file=None,
    )
