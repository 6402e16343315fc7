"""Application domain models for the classes feature."""

from .classes import (
    ACTIVE_BOOKING_STATUSES,
    AdvancedClassesFilters,
    AuthUser,
    AvailabilityState,
    BookingResult,
    BookingStatus,
    CalendarClassItem,
    ClassBooking,
    ClassDetail,
    ClassesFilters,
    ClassKind,
    ClassLevel,
    ClassListItem,
    ClassPlan,
    ClassSession,
    DemandSignal,
    DemandTrend,
    DurationBand,
    GymClass,
    RecommendationContext,
    RecommendationResult,
    SessionSummary,
    SessionWithAvailability,
    SortMode,
    TimeBand,
    TodayClasses,
    TrainerProfile,
    UserClassStats,
    UserIdentity,
    WeekSessions,
)

__all__ = [
    "ACTIVE_BOOKING_STATUSES",
    "AdvancedClassesFilters",
    "AuthUser",
    "AvailabilityState",
    "BookingResult",
    "BookingStatus",
    "CalendarClassItem",
    "ClassBooking",
    "ClassDetail",
    "ClassesFilters",
    "ClassKind",
    "ClassLevel",
    "ClassListItem",
    "ClassPlan",
    "ClassSession",
    "DemandSignal",
    "DemandTrend",
    "DurationBand",
    "GymClass",
    "RecommendationContext",
    "RecommendationResult",
    "SessionSummary",
    "SessionWithAvailability",
    "SortMode",
    "TimeBand",
    "TodayClasses",
    "TrainerProfile",
    "UserClassStats",
    "UserIdentity",
    "WeekSessions",
]
