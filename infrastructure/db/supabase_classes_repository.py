"""Async Supabase implementation of ClassesRepository."""

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence

from supabase import AsyncClient

from application.ports.classes_repository import ORDER_BY_BOOKED_AT, ORDER_BY_SESSION_START

logger = logging.getLogger(__name__)

CLASS_COLUMNS = (
    "id,title,slug,description,trainer_user_id,level,duration_min,capacity,"
    "cover_image_url,is_active,created_at,updated_at"
)
# video_url is a later migration; not every deployment has it
CLASS_COLUMNS_WITH_VIDEO = f"{CLASS_COLUMNS},video_url"

SESSION_WITH_CLASS = f"*, classes!inner ({CLASS_COLUMNS})"
BOOKING_WITH_SESSION = f"*, class_sessions!inner (*, classes!inner ({CLASS_COLUMNS}))"
USER_COLUMNS = "user_id,name,last_name,email,avatar_url"

# PostgREST orders by an embedded to-one column as "relation(column)"
_BOOKING_ORDER_COLUMNS = {
    ORDER_BY_BOOKED_AT: "booked_at",
    ORDER_BY_SESSION_START: "class_sessions(starts_at)",
}


def _missing_video_column(error: Exception) -> bool:
    return "video_url" in str(error).lower()


class AsyncSupabaseClassesRepository:
    """Async Supabase-backed reads over classes, sessions and bookings."""

    CLASSES = "classes"
    SESSIONS = "class_sessions"
    BOOKINGS = "class_bookings"
    USERS = "users"

    def __init__(self, client: AsyncClient) -> None:
        self._client = client

    async def list_classes(
        self,
        search: Optional[str] = None,
        level: Optional[str] = None,
        only_active: bool = True,
    ) -> List[Dict[str, Any]]:
        async def run(columns: str):
            query = self._client.table(self.CLASSES).select(columns).order("title")
            if only_active:
                query = query.eq("is_active", True)
            if search and search.strip():
                query = query.ilike("title", f"%{search.strip()}%")
            if level and level != "all":
                query = query.eq("level", level)
            return await query.execute()

        try:
            result = await run(CLASS_COLUMNS_WITH_VIDEO)
        except Exception as e:
            if not _missing_video_column(e):
                raise
            logger.warning("classes.video_url not available, retrying without it")
            result = await run(CLASS_COLUMNS)
        return result.data or []

    async def get_class_by_slug(self, slug: str) -> Optional[Dict[str, Any]]:
        async def run(columns: str):
            return await (
                self._client.table(self.CLASSES)
                .select(columns)
                .eq("slug", slug)
                .limit(1)
                .execute()
            )

        try:
            result = await run(CLASS_COLUMNS_WITH_VIDEO)
        except Exception as e:
            if not _missing_video_column(e):
                raise
            logger.warning("classes.video_url not available, retrying without it")
            result = await run(CLASS_COLUMNS)
        return result.data[0] if result.data else None

    async def list_sessions(
        self,
        class_ids: Optional[Sequence[str]] = None,
        starts_from: Optional[datetime] = None,
        starts_to: Optional[datetime] = None,
        limit: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        query = self._client.table(self.SESSIONS).select(SESSION_WITH_CLASS)
        if class_ids is not None:
            query = query.in_("class_id", list(class_ids))
        if starts_from is not None:
            query = query.gte("starts_at", starts_from.isoformat())
        if starts_to is not None:
            query = query.lte("starts_at", starts_to.isoformat())
        query = query.order("starts_at")
        if limit is not None:
            query = query.limit(limit)
        result = await query.execute()
        return result.data or []

    async def list_trainer_sessions(
        self,
        trainer_user_id: str,
        starts_from: datetime,
        starts_to: datetime,
    ) -> List[Dict[str, Any]]:
        result = await (
            self._client.table(self.SESSIONS)
            .select(f"*, classes!inner (*), class_bookings (*, users:user_id ({USER_COLUMNS}))")
            .eq("classes.trainer_user_id", trainer_user_id)
            .gte("starts_at", starts_from.isoformat())
            .lte("starts_at", starts_to.isoformat())
            .order("starts_at")
            .execute()
        )
        return result.data or []

    async def list_session_class_ids(self, class_ids: Sequence[str]) -> List[Dict[str, Any]]:
        result = await (
            self._client.table(self.SESSIONS)
            .select("id,class_id")
            .in_("class_id", list(class_ids))
            .execute()
        )
        return result.data or []

    async def get_booking_counts(self, session_ids: Sequence[str]) -> Dict[str, int]:
        if not session_ids:
            return {}
        result = await self._client.rpc(
            "get_sessions_booking_counts",
            {"p_session_ids": list(session_ids)},
        ).execute()

        counts: Dict[str, int] = {}
        for row in result.data or []:
            counts[row["session_id"]] = int(row.get("booked_count") or 0)
        return counts

    async def list_session_participants(self, session_id: str, limit: int = 12) -> List[Dict[str, Any]]:
        result = await self._client.rpc(
            "get_class_session_participants",
            {"p_session_id": session_id, "p_limit": limit},
        ).execute()
        return result.data or []

    async def list_user_bookings_for_sessions(
        self, user_id: str, session_ids: Sequence[str]
    ) -> List[Dict[str, Any]]:
        result = await (
            self._client.table(self.BOOKINGS)
            .select("*")
            .eq("user_id", user_id)
            .in_("session_id", list(session_ids))
            .execute()
        )
        return result.data or []

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
        query = (
            self._client.table(self.BOOKINGS)
            .select(BOOKING_WITH_SESSION)
            .eq("user_id", user_id)
            .in_("status", list(statuses))
            .gte("class_sessions.starts_at", since.isoformat())
        )
        if class_id is not None:
            query = query.eq("class_sessions.class_id", class_id)
        result = await (
            query.order(_BOOKING_ORDER_COLUMNS[order_by], desc=descending).limit(limit).execute()
        )
        return result.data or []

    async def list_recent_bookings(
        self, session_ids: Sequence[str], since: datetime, statuses: Sequence[str]
    ) -> List[Dict[str, Any]]:
        result = await (
            self._client.table(self.BOOKINGS)
            .select("session_id,booked_at,status")
            .in_("session_id", list(session_ids))
            .in_("status", list(statuses))
            .gte("booked_at", since.isoformat())
            .execute()
        )
        return result.data or []

    async def list_attended_bookings(self, user_id: str, class_id: str) -> List[Dict[str, Any]]:
        result = await (
            self._client.table(self.BOOKINGS)
            .select("booked_at, class_sessions!inner (class_id, starts_at)")
            .eq("user_id", user_id)
            .eq("status", "attended")
            .eq("class_sessions.class_id", class_id)
            .order("booked_at", desc=True)
            .execute()
        )
        return result.data or []

    async def get_users(self, user_ids: Sequence[str]) -> List[Dict[str, Any]]:
        result = await (
            self._client.table(self.USERS)
            .select(USER_COLUMNS)
            .in_("user_id", list(user_ids))
            .execute()
        )
        return result.data or []

    async def list_trainers(self) -> List[Dict[str, Any]]:
        result = await (
            self._client.table(self.USERS)
            .select("user_id,name,last_name,role")
            .eq("role", "trainer")
            .order("name")
            .execute()
        )
        return result.data or []

    async def get_trainer_profile(self, trainer_user_id: str) -> Optional[Dict[str, Any]]:
        result = await (
            self._client.table(self.USERS)
            .select("specialty,rating")
            .eq("user_id", trainer_user_id)
            .limit(1)
            .execute()
        )
        return result.data[0] if result.data else None

    async def count_trainer_classes(self, trainer_user_id: str) -> int:
        result = await (
            self._client.table(self.CLASSES)
            .select("id", count="exact", head=True)
            .eq("trainer_user_id", trainer_user_id)
            .execute()
        )
        return int(result.count or 0)
