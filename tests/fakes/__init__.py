"""In-memory fakes for the classes ports.

Rows are kept in the raw shape the database returns, including the
"list of one" form for to-one relations, so the normalizer is exercised
the same way it is against Supabase.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from application.models.classes import AuthUser
from application.ports.booking_procedures import BOOK_PROCEDURE
from application.ports.classes_repository import ORDER_BY_BOOKED_AT, ORDER_BY_SESSION_START

ACTIVE = {"booked", "attended"}


def _at(value: Any) -> datetime:
    return value if isinstance(value, datetime) else datetime.fromisoformat(value)


class FakeClassesRepository:
    """ClassesRepository over plain lists of row dicts.

    ``failures`` maps a method name to the exception it should raise.
    ``calls`` records every method invoked, in order.
    """

    def __init__(
        self,
        classes: Optional[List[Dict[str, Any]]] = None,
        sessions: Optional[List[Dict[str, Any]]] = None,
        bookings: Optional[List[Dict[str, Any]]] = None,
        users: Optional[List[Dict[str, Any]]] = None,
        trainer_profiles: Optional[Dict[str, Dict[str, Any]]] = None,
    ) -> None:
        self.classes = classes or []
        self.sessions = sessions or []
        self.bookings = bookings or []
        self.users = users or []
        self.trainer_profiles = trainer_profiles or {}
        self.failures: Dict[str, Exception] = {}
        self.calls: List[str] = []

    def _enter(self, name: str) -> None:
        self.calls.append(name)
        if name in self.failures:
            raise self.failures[name]

    def _class(self, class_id: str) -> Optional[Dict[str, Any]]:
        return next((c for c in self.classes if c["id"] == class_id), None)

    def _session(self, session_id: str) -> Optional[Dict[str, Any]]:
        return next((s for s in self.sessions if s["id"] == session_id), None)

    def _user(self, user_id: str) -> Optional[Dict[str, Any]]:
        return next((u for u in self.users if u["user_id"] == user_id), None)

    def _session_with_class(self, session: Dict[str, Any]) -> Dict[str, Any]:
        class_row = self._class(session["class_id"])
        return {**session, "classes": [dict(class_row)] if class_row else None}

    async def list_classes(self, search=None, level=None, only_active=True):
        self._enter("list_classes")
        rows = list(self.classes)
        if only_active:
            rows = [c for c in rows if c.get("is_active", True)]
        if search and search.strip():
            rows = [c for c in rows if search.strip().lower() in c["title"].lower()]
        if level and level != "all":
            rows = [c for c in rows if c.get("level") == level]
        return sorted(rows, key=lambda c: c["title"])

    async def get_class_by_slug(self, slug):
        self._enter("get_class_by_slug")
        return next((dict(c) for c in self.classes if c.get("slug") == slug), None)

    async def list_sessions(self, class_ids=None, starts_from=None, starts_to=None, limit=None):
        self._enter("list_sessions")
        rows = []
        for session in self.sessions:
            if class_ids is not None and session["class_id"] not in class_ids:
                continue
            if starts_from is not None and _at(session["starts_at"]) < starts_from:
                continue
            if starts_to is not None and _at(session["starts_at"]) > starts_to:
                continue
            rows.append(self._session_with_class(session))
        rows.sort(key=lambda s: _at(s["starts_at"]))
        return rows[:limit] if limit is not None else rows

    async def list_trainer_sessions(self, trainer_user_id, starts_from, starts_to):
        self._enter("list_trainer_sessions")
        rows = []
        for session in self.sessions:
            class_row = self._class(session["class_id"])
            if not class_row or class_row.get("trainer_user_id") != trainer_user_id:
                continue
            if not starts_from <= _at(session["starts_at"]) <= starts_to:
                continue
            roster = [
                {**b, "users": self._user(b["user_id"])}
                for b in self.bookings
                if b["session_id"] == session["id"]
            ]
            rows.append({**session, "classes": dict(class_row), "class_bookings": roster})
        rows.sort(key=lambda s: _at(s["starts_at"]))
        return rows

    async def list_session_class_ids(self, class_ids):
        self._enter("list_session_class_ids")
        return [
            {"id": s["id"], "class_id": s["class_id"]}
            for s in self.sessions
            if s["class_id"] in class_ids
        ]

    async def get_booking_counts(self, session_ids):
        self._enter("get_booking_counts")
        counts: Dict[str, int] = {}
        for booking in self.bookings:
            if booking["session_id"] in session_ids and booking["status"].lower() in ACTIVE:
                counts[booking["session_id"]] = counts.get(booking["session_id"], 0) + 1
        return counts

    async def list_session_participants(self, session_id, limit=12):
        self._enter("list_session_participants")
        rows = []
        for booking in self.bookings:
            if booking["session_id"] != session_id or booking["status"].lower() not in ACTIVE:
                continue
            member = self._user(booking["user_id"]) or {}
            full_name = " ".join(p for p in (member.get("name"), member.get("last_name")) if p)
            rows.append(
                {
                    "user_id": booking["user_id"],
                    "full_name": full_name or None,
                    "avatar_url": member.get("avatar_url"),
                }
            )
        return rows[:limit]

    async def list_user_bookings_for_sessions(self, user_id, session_ids):
        self._enter("list_user_bookings_for_sessions")
        return [
            dict(b)
            for b in self.bookings
            if b["user_id"] == user_id and b["session_id"] in session_ids
        ]

    async def list_upcoming_bookings(
        self, user_id, since, statuses, limit, class_id=None, order_by=ORDER_BY_BOOKED_AT, descending=False
    ):
        self._enter("list_upcoming_bookings")
        rows = []
        for booking in self.bookings:
            session = self._session(booking["session_id"])
            if booking["user_id"] != user_id or booking["status"] not in statuses or session is None:
                continue
            if _at(session["starts_at"]) < since:
                continue
            if class_id is not None and session["class_id"] != class_id:
                continue
            rows.append({**booking, "class_sessions": self._session_with_class(session)})
        if order_by == ORDER_BY_SESSION_START:
            rows.sort(key=lambda b: _at(b["class_sessions"]["starts_at"]), reverse=descending)
        else:
            rows.sort(key=lambda b: b.get("booked_at") or "", reverse=descending)
        return rows[:limit]

    async def list_recent_bookings(self, session_ids, since, statuses):
        self._enter("list_recent_bookings")
        return [
            {"session_id": b["session_id"], "booked_at": b["booked_at"], "status": b["status"]}
            for b in self.bookings
            if b["session_id"] in session_ids
            and b["status"] in statuses
            and b.get("booked_at")
            and _at(b["booked_at"]) >= since
        ]

    async def list_attended_bookings(self, user_id, class_id):
        self._enter("list_attended_bookings")
        rows = []
        for booking in self.bookings:
            session = self._session(booking["session_id"])
            if booking["user_id"] != user_id or booking["status"] != "attended":
                continue
            if session is None or session["class_id"] != class_id:
                continue
            rows.append(
                {
                    "booked_at": booking.get("booked_at"),
                    "class_sessions": [
                        {"class_id": session["class_id"], "starts_at": session["starts_at"]}
                    ],
                }
            )
        rows.sort(key=lambda r: r["booked_at"] or "", reverse=True)
        return rows

    async def get_users(self, user_ids):
        self._enter("get_users")
        return [dict(u) for u in self.users if u["user_id"] in user_ids]

    async def list_trainers(self):
        self._enter("list_trainers")
        trainers = [dict(u) for u in self.users if u.get("role") == "trainer"]
        return sorted(trainers, key=lambda u: u.get("name") or "")

    async def get_trainer_profile(self, trainer_user_id):
        self._enter("get_trainer_profile")
        return self.trainer_profiles.get(trainer_user_id)

    async def count_trainer_classes(self, trainer_user_id):
        self._enter("count_trainer_classes")
        return sum(1 for c in self.classes if c.get("trainer_user_id") == trainer_user_id)


class FakeBookingProcedures:
    """BookingProcedures returning canned payloads.

    ``responses`` maps a procedure name ("book_class_session", "book_class",
    "cancel", "attendance") to a payload or an exception instance to raise.
    """

    def __init__(self, responses: Optional[Dict[str, Any]] = None) -> None:
        self.responses = responses or {}
        self.calls: List[tuple] = []

    def _respond(self, key: str) -> Any:
        response = self.responses.get(key, {"success": True, "code": "OK"})
        if isinstance(response, Exception):
            raise response
        return response

    async def book(self, session_id: str, procedure: str = BOOK_PROCEDURE) -> Any:
        self.calls.append((procedure, session_id))
        return self._respond(procedure)

    async def cancel(self, session_id: str) -> Any:
        self.calls.append(("cancel", session_id))
        return self._respond("cancel")

    async def mark_attendance(self, booking_id: str, status: str) -> Any:
        self.calls.append(("attendance", booking_id, status))
        return self._respond("attendance")


class FakeAuthProvider:
    def __init__(self, user: Optional[AuthUser] = None, error: Optional[Exception] = None) -> None:
        self.user = user
        self.error = error

    async def current_user(self) -> Optional[AuthUser]:
        if self.error is not None:
            raise self.error
        return self.user


def user(user_id: str = "u-1", **metadata: Any) -> AuthUser:
    return AuthUser(id=user_id, email=f"{user_id}@example.com", metadata=metadata)
