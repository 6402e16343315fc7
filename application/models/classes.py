"""Domain models for the classes feature.

Mirror the rows of the ``classes``, ``class_sessions``, ``class_bookings``
and ``users`` tables, plus the derived (never persisted) availability and
demand views computed on every fetch.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


# ---------------------------------------------------------------------------
# Enums: values mirror the DB CHECK constraints
# ---------------------------------------------------------------------------


class ClassLevel(str, Enum):
    beginner = "beginner"
    intermediate = "intermediate"
    advanced = "advanced"


class BookingStatus(str, Enum):
    booked = "booked"
    confirmed = "confirmed"
    cancelled = "cancelled"
    attended = "attended"
    no_show = "no_show"


# Statuses that hold a spot in a session
ACTIVE_BOOKING_STATUSES = frozenset({BookingStatus.booked, BookingStatus.attended})


class AvailabilityState(str, Enum):
    available = "available"
    few_left = "few_left"
    full = "full"
    booked = "booked"
    cancelled = "cancelled"


class ClassKind(str, Enum):
    strength = "strength"
    cardio = "cardio"
    mobility = "mobility"


class DemandTrend(str, Enum):
    up = "up"
    steady = "steady"
    down = "down"


class TimeBand(str, Enum):
    all = "all"
    morning = "morning"
    afternoon = "afternoon"
    evening = "evening"


class DurationBand(str, Enum):
    all = "all"
    short = "short"
    medium = "medium"
    long = "long"


class SortMode(str, Enum):
    recommended = "recommended"
    popular = "popular"
    closest = "closest"
    least_occupied = "least_occupied"


def _coerce_level(value: Any) -> Optional[str]:
    if isinstance(value, ClassLevel):
        return value.value
    if isinstance(value, str) and value in ClassLevel.__members__:
        return value
    return None


# ---------------------------------------------------------------------------
# Row models
# ---------------------------------------------------------------------------


class _Row(BaseModel):
    model_config = ConfigDict(extra="ignore")


class UserIdentity(_Row):
    """Public identity of a user (trainer or member) from the ``users`` table."""

    user_id: str
    name: str = ""
    last_name: str = ""
    email: Optional[str] = None
    avatar_url: Optional[str] = None

    @field_validator("name", "last_name", mode="before")
    @classmethod
    def _none_to_empty(cls, v: Any) -> Any:
        return "" if v is None else v

    @property
    def full_name(self) -> str:
        return f"{self.name} {self.last_name}".strip()


class GymClass(_Row):
    id: str
    title: str
    slug: str = ""
    description: Optional[str] = None
    trainer_user_id: Optional[str] = None
    level: Optional[ClassLevel] = None
    duration_min: int = 0
    capacity: int = Field(default=0, ge=0)
    cover_image_url: Optional[str] = None
    video_url: Optional[str] = None
    is_active: bool = True
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    trainer: Optional[UserIdentity] = None

    @field_validator("level", mode="before")
    @classmethod
    def _tolerate_unknown_level(cls, v: Any) -> Optional[str]:
        # "none", "" and legacy values all mean "no level"
        return _coerce_level(v)


class ClassSession(_Row):
    id: str
    class_id: str
    starts_at: datetime
    ends_at: datetime
    capacity_override: Optional[int] = Field(default=None, ge=0)
    is_cancelled: bool = False
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    gym_class: Optional[GymClass] = None

    @model_validator(mode="after")
    def _check_window(self) -> ClassSession:
        if self.ends_at <= self.starts_at:
            raise ValueError(f"Session {self.id} must end after it starts")
        return self

    @property
    def effective_capacity(self) -> int:
        if self.capacity_override is not None:
            return self.capacity_override
        return self.gym_class.capacity if self.gym_class else 0


class ClassBooking(_Row):
    id: str
    session_id: str
    user_id: str
    status: BookingStatus
    booked_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    session: Optional[ClassSession] = None
    member: Optional[UserIdentity] = None

    @field_validator("status", mode="before")
    @classmethod
    def _lower_status(cls, v: Any) -> Any:
        # Some legacy rows store CANCELLED in upper case
        return v.lower() if isinstance(v, str) else v

    @property
    def is_active(self) -> bool:
        return self.status in ACTIVE_BOOKING_STATUSES

    @property
    def is_cancelled(self) -> bool:
        return self.status == BookingStatus.cancelled


# ---------------------------------------------------------------------------
# Derived views
# ---------------------------------------------------------------------------


class SessionWithAvailability(ClassSession):
    booked_count: int = 0
    remaining_spots: int = 0
    occupancy_ratio: float = Field(default=0.0, ge=0.0, le=1.0)
    my_booking: Optional[ClassBooking] = None
    availability_state: AvailabilityState = AvailabilityState.available


class DemandSignal(BaseModel):
    class_id: str
    recent_bookings: int = 0
    previous_bookings: int = 0
    trend: DemandTrend = DemandTrend.steady
    label: str = "Estable"


class SessionSummary(BaseModel):
    """Compact upcoming-session view embedded in class list items."""

    id: str
    starts_at: datetime
    ends_at: datetime
    total_spots: int
    booked_spots: int
    remaining_spots: int
    occupancy_ratio: float
    is_cancelled: bool = False
    has_my_booking: bool = False
    my_booking_status: Optional[str] = None
    starts_in_minutes: Optional[int] = None
    starts_today: bool = False
    availability_state: AvailabilityState = AvailabilityState.available


class ClassListItem(GymClass):
    trainer_name: str = ""
    next_sessions: List[SessionSummary] = Field(default_factory=list)
    available_spots: int = 0
    has_my_booking: bool = False
    next_my_session: Optional[SessionSummary] = None

    @property
    def first_session(self) -> Optional[SessionSummary]:
        return self.next_sessions[0] if self.next_sessions else None


class CalendarClassItem(BaseModel):
    session_id: str
    class_id: str
    slug: str
    title: str
    trainer_name: str
    starts_at: datetime
    total_spots: int
    remaining_spots: int
    has_my_booking: bool


class BookingResult(_Row):
    """Result contract of the atomic booking procedures."""

    success: bool = False
    code: str = ""
    message: Optional[str] = None
    booking_id: Optional[str] = None


# ---------------------------------------------------------------------------
# Filters
# ---------------------------------------------------------------------------


class ClassesFilters(BaseModel):
    """Session-level facets (weekly calendar / session list)."""

    search: str = ""
    level: str = "all"
    trainer_user_id: str = "all"
    day: Union[Literal["all"], int] = "all"
    only_available: bool = False
    time_band: TimeBand = TimeBand.all
    duration: DurationBand = DurationBand.all
    class_kind: Union[Literal["all"], ClassKind] = "all"

    @field_validator("level")
    @classmethod
    def _valid_level(cls, v: str) -> str:
        if v != "all" and v not in ClassLevel.__members__:
            raise ValueError(f"Invalid level '{v}'")
        return v

    @field_validator("day", mode="before")
    @classmethod
    def _parse_day(cls, v: Any) -> Any:
        if isinstance(v, str) and v != "all":
            v = int(v)
        if isinstance(v, int) and not 0 <= v <= 6:
            raise ValueError("day must be between 0 (Sunday) and 6 (Saturday)")
        return v


class AdvancedClassesFilters(BaseModel):
    """Class-level facets and ranking (catalog list)."""

    time_band: TimeBand = TimeBand.all
    trainer: str = "all"
    duration: DurationBand = DurationBand.all
    class_kind: Union[Literal["all"], ClassKind] = "all"
    sort_by: SortMode = SortMode.recommended
    only_available: bool = False


# ---------------------------------------------------------------------------
# Read-path results
# ---------------------------------------------------------------------------


class RecommendationContext(BaseModel):
    preferred_level: Optional[ClassLevel] = None
    preferred_kind: Optional[ClassKind] = None
    target_goal: Optional[str] = None


class RecommendationResult(BaseModel):
    recommendations: List[ClassListItem] = Field(default_factory=list)
    fallback_to_popular: bool = True
    context: RecommendationContext = Field(default_factory=RecommendationContext)


class WeekSessions(BaseModel):
    sessions: List[SessionWithAvailability] = Field(default_factory=list)
    trainers: List[UserIdentity] = Field(default_factory=list)


class TodayClasses(BaseModel):
    today_class: Optional[ClassBooking] = None
    upcoming: List[ClassBooking] = Field(default_factory=list)


class UserClassStats(BaseModel):
    attended_count: int = 0
    last_attended_at: Optional[datetime] = None


class SessionParticipant(_Row):
    """A member holding a spot in a session, as shown in the avatar strip."""

    user_id: str
    full_name: Optional[str] = None
    avatar_url: Optional[str] = None


class TrainerProfile(BaseModel):
    specialty: Optional[str] = None
    rating: Optional[float] = Field(default=None, ge=0.0, le=5.0)
    classes_count: int = 0


class ClassPlan(BaseModel):
    warmup_min: int
    main_min: int
    finisher: str
    stretches_min: int


class ClassDetail(BaseModel):
    gym_class: GymClass
    trainer: TrainerProfile = Field(default_factory=TrainerProfile)
    demand_label: Optional[str] = None
    demand_count: int = 0
    cancellation_policy: str
    class_plan: ClassPlan


class AuthUser(BaseModel):
    id: str
    email: Optional[str] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)
