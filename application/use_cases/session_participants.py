"""Who else is coming to a session."""

from typing import List

from application.models.classes import SessionParticipant
from application.ports.classes_repository import ClassesRepository
from backend.errors import external_call

PARTICIPANTS_FAILURE_MESSAGE = "No se pudieron cargar los participantes"
PARTICIPANTS_LIMIT = 12


class ListSessionParticipants:
    def __init__(self, repo: ClassesRepository, limit: int = PARTICIPANTS_LIMIT) -> None:
        self._repo = repo
        self._limit = limit

    async def execute(self, session_id: str) -> List[SessionParticipant]:
        with external_call(PARTICIPANTS_FAILURE_MESSAGE):
            rows = await self._repo.list_session_participants(session_id, limit=self._limit)
        return [SessionParticipant.model_validate(row) for row in rows if row.get("user_id")]
