"""Extended class detail: trainer profile, demand and class plan."""

import logging
import math
import re
from datetime import datetime
from typing import Any, Optional

from application.models.classes import ClassDetail, ClassPlan, GymClass, TrainerProfile
from application.ports.classes_repository import ClassesRepository
from application.use_cases.demand_signals import GetDemandSignals
from backend.errors import external_call
from backend.services.demand import HIGH_DEMAND_THRESHOLD, LABEL_POPULAR
from backend.settings import DEFAULT_CANCELLATION_POLICY

logger = logging.getLogger(__name__)

DETAIL_FAILURE_MESSAGE = "No se pudo cargar el detalle de la clase"
HIGH_DEMAND_DETAIL_LABEL = "Muy demandada esta semana"
DEFAULT_DURATION_MIN = 50

_CARDIO_FINISHER_RE = re.compile(r"(hiit|cardio|spinning|cycle|zumba)")
_MOBILITY_FINISHER_RE = re.compile(r"(movilidad|yoga|pilates|stretch)")


def parse_rating(value: Any) -> Optional[float]:
    """Numeric ratings clamped to [0, 5]; anything else is None."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    if not math.isfinite(value):
        return None
    return max(0.0, min(5.0, float(value)))


def build_class_plan(gym_class: GymClass) -> ClassPlan:
    """Split the class duration into warm-up, main block and stretches."""
    duration = gym_class.duration_min or DEFAULT_DURATION_MIN
    warmup = max(8, round(duration * 0.2))
    stretches = max(8, round(duration * 0.15))
    main = max(15, duration - warmup - stretches)

    text = f"{gym_class.title} {gym_class.description or ''}".lower()
    if _CARDIO_FINISHER_RE.search(text):
        finisher = "Intervalos finales para elevar capacidad cardiovascular."
    elif _MOBILITY_FINISHER_RE.search(text):
        finisher = "Secuencia de control postural y respiración guiada."
    else:
        finisher = "Finisher técnico para consolidar fuerza y control."

    return ClassPlan(warmup_min=warmup, main_min=main, finisher=finisher, stretches_min=stretches)


class GetClassDetail:
    """Trainer profile, demand label, cancellation policy and plan for a class.

    The trainer ``specialty``/``rating`` columns are optional in the schema;
    when they are missing the profile keeps None for both.
    """

    def __init__(
        self,
        repo: ClassesRepository,
        cancellation_policy: str = DEFAULT_CANCELLATION_POLICY,
    ) -> None:
        self._repo = repo
        self._policy = cancellation_policy
        self._demand = GetDemandSignals(repo)

    async def _trainer_extras(self, trainer_id: str) -> dict:
        try:
            profile = await self._repo.get_trainer_profile(trainer_id)
        except Exception as e:
            logger.warning("Trainer profile columns unavailable for %s: %s", trainer_id, e)
            return {}
        return profile or {}

    async def execute(self, gym_class: GymClass, now: Optional[datetime] = None) -> ClassDetail:
        trainer = TrainerProfile()
        trainer_id = gym_class.trainer_user_id

        if trainer_id:
            extras = await self._trainer_extras(trainer_id)
            with external_call(DETAIL_FAILURE_MESSAGE):
                classes_count = await self._repo.count_trainer_classes(trainer_id)
            trainer = TrainerProfile(
                specialty=extras.get("specialty") or None,
                rating=parse_rating(extras.get("rating")),
                classes_count=classes_count,
            )

        signals = await self._demand.execute([gym_class.id], now=now)
        signal = signals.get(gym_class.id)
        demand_label = None
        if signal is not None:
            if signal.recent_bookings >= HIGH_DEMAND_THRESHOLD:
                demand_label = HIGH_DEMAND_DETAIL_LABEL
            elif signal.label == LABEL_POPULAR:
                demand_label = signal.label

        return ClassDetail(
            gym_class=gym_class,
            trainer=trainer,
            demand_label=demand_label,
            demand_count=signal.recent_bookings if signal else 0,
            cancellation_policy=self._policy,
            class_plan=build_class_plan(gym_class),
        )
