"""Class catalog, sessions and detail endpoints.

GET /api/classes                    - list items with next sessions, filtered and ranked
GET /api/classes/recommended        - up to 4 personalized picks
GET /api/classes/calendar           - next sessions bucketed by weekday
GET /api/classes/week               - all sessions of a week with availability
GET /api/classes/{slug}             - one class
GET /api/classes/{slug}/detail      - trainer profile, demand, plan
GET /api/classes/{slug}/sessions    - sessions of one class
GET /api/classes/{slug}/stats       - the caller's attendance in one class
"""

from datetime import date, datetime
from typing import Dict, List, Optional, Union

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field

from api.deps import (
    get_class_by_slug_use_case,
    get_class_detail_use_case,
    get_class_sessions_use_case,
    get_demand_signals_use_case,
    get_list_classes_use_case,
    get_recommend_classes_use_case,
    get_settings,
    get_user_class_stats_use_case,
    get_week_sessions_use_case,
)
from application.models.classes import (
    AdvancedClassesFilters,
    CalendarClassItem,
    ClassDetail,
    ClassesFilters,
    ClassKind,
    ClassListItem,
    DemandSignal,
    DurationBand,
    GymClass,
    RecommendationResult,
    SessionWithAvailability,
    SortMode,
    TimeBand,
    UserClassStats,
    WeekSessions,
)
from application.use_cases.class_detail import GetClassDetail
from application.use_cases.class_sessions import ListClassSessions, ListWeekSessions
from application.use_cases.demand_signals import GetDemandSignals
from application.use_cases.list_classes import GetClassBySlug, ListClassesWithSessions
from application.use_cases.my_bookings import GetUserClassStats
from application.use_cases.recommend_classes import RecommendClasses
from backend.services.class_filters import filter_and_sort_classes, group_by_weekday
from backend.settings import Settings

router = APIRouter(prefix="/api/classes", tags=["classes"])

ClassKindFacet = Union[ClassKind, str]


class ClassesListResponse(BaseModel):
    classes: List[ClassListItem] = Field(default_factory=list)
    demand: Dict[str, DemandSignal] = Field(default_factory=dict)


def _kind(value: str) -> ClassKindFacet:
    return value if value == "all" else ClassKind(value)


@router.get("", response_model=ClassesListResponse)
async def list_classes(
    search: Optional[str] = Query(None, max_length=200),
    level: Optional[str] = None,
    only_active: bool = True,
    days_ahead: Optional[int] = Query(None, ge=1, le=90),
    time_band: TimeBand = TimeBand.all,
    trainer: str = "all",
    duration: DurationBand = DurationBand.all,
    class_kind: str = Query("all", pattern="^(all|strength|cardio|mobility)$"),
    sort_by: SortMode = SortMode.recommended,
    only_available: bool = False,
    use_case: ListClassesWithSessions = Depends(get_list_classes_use_case),
    demand: GetDemandSignals = Depends(get_demand_signals_use_case),
    settings: Settings = Depends(get_settings),
):
    """List classes with their next sessions, filtered and ranked.

    Classes without an upcoming session are left out.
    """
    items = await use_case.execute(
        search=search, level=level, only_active=only_active, days_ahead=days_ahead
    )
    signals = await demand.execute([item.id for item in items])
    filters = AdvancedClassesFilters(
        time_band=time_band,
        trainer=trainer,
        duration=duration,
        class_kind=_kind(class_kind),
        sort_by=sort_by,
        only_available=only_available,
    )
    ranked = filter_and_sort_classes(items, signals, filters, settings.tz)
    return ClassesListResponse(
        classes=ranked,
        demand={item.id: signals[item.id] for item in ranked if item.id in signals},
    )


@router.get("/recommended", response_model=RecommendationResult)
async def recommended_classes(
    use_case: ListClassesWithSessions = Depends(get_list_classes_use_case),
    demand: GetDemandSignals = Depends(get_demand_signals_use_case),
    recommender: RecommendClasses = Depends(get_recommend_classes_use_case),
):
    items = await use_case.execute()
    signals = await demand.execute([item.id for item in items])
    return await recommender.execute(items, signals)


@router.get("/calendar", response_model=Dict[int, List[CalendarClassItem]])
async def classes_calendar(
    use_case: ListClassesWithSessions = Depends(get_list_classes_use_case),
    settings: Settings = Depends(get_settings),
):
    """Next sessions of every class bucketed by weekday (0 = Sunday)."""
    items = await use_case.execute()
    return group_by_weekday(items, settings.tz)


@router.get("/week", response_model=WeekSessions)
async def week_sessions(
    week_start: date,
    week_end: date,
    search: str = "",
    level: str = Query("all", pattern="^(all|beginner|intermediate|advanced)$"),
    trainer_user_id: str = "all",
    day: str = Query("all", pattern="^(all|[0-6])$"),
    only_available: bool = False,
    time_band: TimeBand = TimeBand.all,
    duration: DurationBand = DurationBand.all,
    class_kind: str = Query("all", pattern="^(all|strength|cardio|mobility)$"),
    use_case: ListWeekSessions = Depends(get_week_sessions_use_case),
):
    filters = ClassesFilters(
        search=search,
        level=level,
        trainer_user_id=trainer_user_id,
        day=day,
        only_available=only_available,
        time_band=time_band,
        duration=duration,
        class_kind=_kind(class_kind),
    )
    return await use_case.execute(week_start, week_end, filters)


@router.get("/{slug}", response_model=GymClass)
async def get_class(
    slug: str,
    use_case: GetClassBySlug = Depends(get_class_by_slug_use_case),
):
    """One class by slug. 404 when it does not exist."""
    return await use_case.execute(slug)


@router.get("/{slug}/detail", response_model=ClassDetail)
async def get_class_detail(
    slug: str,
    by_slug: GetClassBySlug = Depends(get_class_by_slug_use_case),
    use_case: GetClassDetail = Depends(get_class_detail_use_case),
):
    gym_class = await by_slug.execute(slug)
    return await use_case.execute(gym_class)


@router.get("/{slug}/sessions", response_model=List[SessionWithAvailability])
async def get_class_sessions(
    slug: str,
    starts_from: Optional[datetime] = Query(None, alias="from"),
    starts_to: Optional[datetime] = Query(None, alias="to"),
    by_slug: GetClassBySlug = Depends(get_class_by_slug_use_case),
    use_case: ListClassSessions = Depends(get_class_sessions_use_case),
):
    gym_class = await by_slug.execute(slug)
    return await use_case.execute(gym_class.id, starts_from=starts_from, starts_to=starts_to)


@router.get("/{slug}/stats", response_model=UserClassStats)
async def get_class_stats(
    slug: str,
    by_slug: GetClassBySlug = Depends(get_class_by_slug_use_case),
    use_case: GetUserClassStats = Depends(get_user_class_stats_use_case),
):
    """Attendance of the caller in this class. Zeros for anonymous callers."""
    gym_class = await by_slug.execute(slug)
    return await use_case.execute(gym_class.id)
