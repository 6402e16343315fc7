"""Entity normalizer for classes, sessions and bookings.

The query layer returns a to-one relation as a dict, a list of one dict, or
None depending on how the join was declared. Everything here collapses that
ambiguity right after the read so the rest of the code only ever sees
canonical models.

Trainer identity is backfilled with one batched ``users`` lookup per result
batch, keyed on the distinct trainer ids present in it.
"""

import logging
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence

from application.models.classes import ClassBooking, ClassSession, GymClass, UserIdentity
from application.ports.classes_repository import ClassesRepository

logger = logging.getLogger(__name__)

TrainerMap = Mapping[str, UserIdentity]


def one_or_none(relation: Any) -> Optional[Dict[str, Any]]:
    """Collapse a to-one relation into a single dict or None.

    Accepts a mapping, a list/tuple (first element wins, empty means None)
    or None.
    """
    if relation is None:
        return None
    if isinstance(relation, Mapping):
        return dict(relation)
    if isinstance(relation, (list, tuple)):
        return one_or_none(relation[0]) if relation else None
    return None


def dig(row: Optional[Mapping[str, Any]], path: Sequence[str]) -> Any:
    """Follow ``path`` through nested relations, collapsing each step."""
    current: Any = row
    for key in path:
        current = one_or_none(current)
        if current is None:
            return None
        current = current.get(key)
    return current


def collect_trainer_ids(rows: Iterable[Mapping[str, Any]], path: Sequence[str]) -> List[str]:
    """Distinct, non-empty ids found at ``path`` in first-seen order."""
    ids = (dig(row, path) for row in rows)
    return list(dict.fromkeys(i for i in ids if i))


def _identity(relation: Any) -> Optional[UserIdentity]:
    data = one_or_none(relation)
    if not data or not data.get("user_id"):
        return None
    return UserIdentity.model_validate(data)


def normalize_gym_class(row: Mapping[str, Any], trainers: Optional[TrainerMap] = None) -> GymClass:
    """Build a GymClass from a raw ``classes`` row.

    With ``trainers`` the trainer comes from the batched lookup (missing id
    means no trainer). Without it the embedded ``users`` relation is used.
    """
    data = dict(row)
    if trainers is not None:
        trainer = trainers.get(data.get("trainer_user_id") or "")
    else:
        trainer = _identity(data.get("users"))
    data["trainer"] = trainer
    return GymClass.model_validate(data)


def normalize_class_session(
    row: Mapping[str, Any], trainers: Optional[TrainerMap] = None
) -> ClassSession:
    data = dict(row)
    class_row = one_or_none(data.pop("classes", None))
    data.pop("class_bookings", None)
    data["gym_class"] = normalize_gym_class(class_row, trainers) if class_row else None
    return ClassSession.model_validate(data)


def normalize_class_booking(
    row: Mapping[str, Any], trainers: Optional[TrainerMap] = None
) -> ClassBooking:
    data = dict(row)
    session_row = one_or_none(data.pop("class_sessions", None))
    data["session"] = normalize_class_session(session_row, trainers) if session_row else None
    data["member"] = _identity(data.pop("users", None))
    return ClassBooking.model_validate(data)


class TrainerDirectory:
    """Batched trainer identity lookup over the ``users`` table."""

    def __init__(self, repo: ClassesRepository) -> None:
        self._repo = repo

    async def lookup(self, user_ids: Iterable[Optional[str]]) -> Dict[str, UserIdentity]:
        """Map user id -> identity for the distinct ids given.

        Empty input issues no query. Trainer names are an optional
        collaborator feature: a failing lookup degrades to an empty map so the
        surrounding read still succeeds without them. The surrounding read
        itself raises ExternalCallFailure.
        """
        unique = list(dict.fromkeys(uid for uid in user_ids if uid))
        if not unique:
            return {}

        try:
            rows = await self._repo.get_users(unique)
        except Exception as e:
            logger.warning("Trainer lookup failed for %d ids: %s", len(unique), e)
            return {}

        identities: Dict[str, UserIdentity] = {}
        for row in rows or []:
            identity = _identity(row)
            if identity is not None:
                identities[identity.user_id] = identity
        return identities

    async def enrich_classes(self, rows: Sequence[Mapping[str, Any]]) -> List[GymClass]:
        trainers = await self.lookup(collect_trainer_ids(rows, ("trainer_user_id",)))
        return [normalize_gym_class(row, trainers) for row in rows]

    async def enrich_sessions(self, rows: Sequence[Mapping[str, Any]]) -> List[ClassSession]:
        trainers = await self.lookup(collect_trainer_ids(rows, ("classes", "trainer_user_id")))
        return [normalize_class_session(row, trainers) for row in rows]

    async def enrich_bookings(self, rows: Sequence[Mapping[str, Any]]) -> List[ClassBooking]:
        trainers = await self.lookup(
            collect_trainer_ids(rows, ("class_sessions", "classes", "trainer_user_id"))
        )
        return [normalize_class_booking(row, trainers) for row in rows]
