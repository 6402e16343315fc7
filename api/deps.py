"""
FastAPI Dependency Providers for the GymFlow Classes API.

This module provides FastAPI dependency injection functions that return
interface types (Protocols) rather than concrete implementations.

Architecture:
- Settings and the shared async Supabase client are cached per-process
- Requests carrying a Supabase JWT get a client scoped to that user, so
  row-level security and auth.uid() inside the booking procedures apply
- The booking event bus is process-wide; everything else is per-request
- Use cases are wired through dependency chains
"""

import asyncio
import logging
from functools import lru_cache
from typing import AsyncIterator, Optional

from fastapi import Depends, Header, HTTPException
from supabase import AsyncClient, AsyncClientOptions, create_async_client

from application.models.classes import AuthUser
from application.ports.auth_provider import AuthProvider
from application.ports.booking_procedures import BookingProcedures
from application.ports.classes_repository import ClassesRepository
from application.use_cases.class_detail import GetClassDetail
from application.use_cases.class_sessions import ListClassSessions, ListWeekSessions
from application.use_cases.demand_signals import GetDemandSignals
from application.use_cases.list_classes import GetClassBySlug, ListClassesWithSessions
from application.use_cases.my_bookings import (
    GetMyTodayClass,
    GetUserClassStats,
    ListMyUpcomingBookings,
)
from application.use_cases.recommend_classes import RecommendClasses
from application.use_cases.session_participants import ListSessionParticipants
from application.use_cases.trainer_sessions import ListTrainerSessions
from backend.services.booking_coordinator import BookingCoordinator
from backend.services.booking_events import BookingEventBus
from backend.settings import Settings, get_settings as _get_settings
from infrastructure.auth.supabase_auth_provider import AnonymousAuthProvider, SupabaseAuthProvider
from infrastructure.db.supabase_booking_procedures import AsyncSupabaseBookingProcedures
from infrastructure.db.supabase_classes_repository import AsyncSupabaseClassesRepository

logger = logging.getLogger(__name__)


# =============================================================================
# Settings Provider
# =============================================================================


def get_settings() -> Settings:
    """
    Get application settings.

    Returns cached Settings instance from backend.settings.
    Use this as a FastAPI dependency for settings access.
    """
    return _get_settings()


# =============================================================================
# Async Supabase Client Provider
# =============================================================================

# Async singleton state (lru_cache doesn't work with async functions)
_async_supabase_client: Optional[AsyncClient] = None
_async_supabase_lock = asyncio.Lock()


async def get_supabase_async_client() -> Optional[AsyncClient]:
    """
    Get async Supabase client instance (singleton).

    Returns None if credentials are not configured. Uses asyncio.Lock so
    only one client is created under concurrent access.
    """
    global _async_supabase_client

    if _async_supabase_client is not None:
        return _async_supabase_client

    async with _async_supabase_lock:
        # Double-check pattern: another coroutine may have initialized while we waited
        if _async_supabase_client is not None:
            return _async_supabase_client

        settings = _get_settings()
        if not settings.supabase_url or not settings.supabase_key:
            return None

        _async_supabase_client = await create_async_client(
            settings.supabase_url, settings.supabase_key
        )
        return _async_supabase_client


async def get_supabase_async_client_required() -> AsyncClient:
    """
    Get async Supabase client instance, raising if not configured.

    Raises:
        HTTPException: 503 if Supabase is not configured
    """
    client = await get_supabase_async_client()
    if client is None:
        raise HTTPException(
            status_code=503,
            detail="Database not available. Supabase credentials not configured.",
        )
    return client


# =============================================================================
# Authentication
# =============================================================================


def get_access_token(authorization: Optional[str] = Header(None)) -> Optional[str]:
    """Bearer token from the Authorization header, or None."""
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


async def get_request_client(
    token: Optional[str] = Depends(get_access_token),
    client: AsyncClient = Depends(get_supabase_async_client_required),
    settings: Settings = Depends(get_settings),
) -> AsyncIterator[AsyncClient]:
    """
    Supabase client acting as the caller.

    Anonymous requests share the process client; authenticated requests get
    a client that forwards the caller's JWT to PostgREST. That client is
    closed once the response has been sent; the shared one never is.
    """
    if token is None:
        yield client
        return

    request_client = await create_async_client(
        settings.supabase_url,
        settings.supabase_key,
        options=AsyncClientOptions(
            headers={"Authorization": f"Bearer {token}"},
            auto_refresh_token=False,
            persist_session=False,
        ),
    )
    try:
        yield request_client
    finally:
        await close_request_client(request_client)


async def close_request_client(client: AsyncClient) -> None:
    """Release the HTTP connection pools of a per-request client."""
    try:
        await client.postgrest.aclose()
        await client.auth.close()
    except Exception as e:
        logger.warning("Failed to close per-request Supabase client: %s", e)


def get_auth_provider(
    token: Optional[str] = Depends(get_access_token),
    client: AsyncClient = Depends(get_supabase_async_client_required),
) -> AuthProvider:
    """Auth provider for the current request (anonymous without a token)."""
    if token is None:
        return AnonymousAuthProvider()
    return SupabaseAuthProvider(client, access_token=token)


async def require_user(auth: AuthProvider = Depends(get_auth_provider)) -> AuthUser:
    """
    Current user, for endpoints that mutate bookings.

    Raises:
        HTTPException: 401 if the request is anonymous or the token is rejected
    """
    user = await auth.current_user()
    if user is None:
        raise HTTPException(status_code=401, detail="Usuario no autenticado")
    return user


# =============================================================================
# Repository Providers
# =============================================================================


def get_classes_repository(
    client: AsyncClient = Depends(get_request_client),
) -> ClassesRepository:
    """Get classes repository instance."""
    return AsyncSupabaseClassesRepository(client)


def get_booking_procedures(
    client: AsyncClient = Depends(get_request_client),
) -> BookingProcedures:
    """Get booking procedures instance."""
    return AsyncSupabaseBookingProcedures(client)


# =============================================================================
# Service Providers
# =============================================================================


@lru_cache
def get_booking_event_bus() -> BookingEventBus:
    """Process-wide booking-updated pulse."""
    return BookingEventBus()


def get_booking_coordinator(
    procedures: BookingProcedures = Depends(get_booking_procedures),
    events: BookingEventBus = Depends(get_booking_event_bus),
) -> BookingCoordinator:
    return BookingCoordinator(procedures, events)


# =============================================================================
# Use Case Providers
# =============================================================================


def get_list_classes_use_case(
    repo: ClassesRepository = Depends(get_classes_repository),
    auth: AuthProvider = Depends(get_auth_provider),
    settings: Settings = Depends(get_settings),
) -> ListClassesWithSessions:
    return ListClassesWithSessions(repo, auth, tz=settings.tz, days_ahead=settings.classes_days_ahead)


def get_class_by_slug_use_case(
    repo: ClassesRepository = Depends(get_classes_repository),
) -> GetClassBySlug:
    return GetClassBySlug(repo)


def get_demand_signals_use_case(
    repo: ClassesRepository = Depends(get_classes_repository),
) -> GetDemandSignals:
    return GetDemandSignals(repo)


def get_recommend_classes_use_case(
    repo: ClassesRepository = Depends(get_classes_repository),
    auth: AuthProvider = Depends(get_auth_provider),
) -> RecommendClasses:
    return RecommendClasses(repo, auth)


def get_class_sessions_use_case(
    repo: ClassesRepository = Depends(get_classes_repository),
    auth: AuthProvider = Depends(get_auth_provider),
) -> ListClassSessions:
    return ListClassSessions(repo, auth)


def get_week_sessions_use_case(
    repo: ClassesRepository = Depends(get_classes_repository),
    auth: AuthProvider = Depends(get_auth_provider),
    settings: Settings = Depends(get_settings),
) -> ListWeekSessions:
    return ListWeekSessions(repo, auth, tz=settings.tz)


def get_class_detail_use_case(
    repo: ClassesRepository = Depends(get_classes_repository),
    settings: Settings = Depends(get_settings),
) -> GetClassDetail:
    return GetClassDetail(repo, cancellation_policy=settings.cancellation_policy)


def get_user_class_stats_use_case(
    repo: ClassesRepository = Depends(get_classes_repository),
    auth: AuthProvider = Depends(get_auth_provider),
) -> GetUserClassStats:
    return GetUserClassStats(repo, auth)


def get_upcoming_bookings_use_case(
    repo: ClassesRepository = Depends(get_classes_repository),
    auth: AuthProvider = Depends(get_auth_provider),
    settings: Settings = Depends(get_settings),
) -> ListMyUpcomingBookings:
    return ListMyUpcomingBookings(repo, auth, limit=settings.upcoming_bookings_limit)


def get_today_class_use_case(
    repo: ClassesRepository = Depends(get_classes_repository),
    auth: AuthProvider = Depends(get_auth_provider),
    settings: Settings = Depends(get_settings),
) -> GetMyTodayClass:
    return GetMyTodayClass(repo, auth, tz=settings.tz)


def get_session_participants_use_case(
    repo: ClassesRepository = Depends(get_classes_repository),
) -> ListSessionParticipants:
    return ListSessionParticipants(repo)


def get_trainer_sessions_use_case(
    repo: ClassesRepository = Depends(get_classes_repository),
    auth: AuthProvider = Depends(get_auth_provider),
    settings: Settings = Depends(get_settings),
) -> ListTrainerSessions:
    return ListTrainerSessions(repo, auth, tz=settings.tz)
