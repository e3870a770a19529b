from __future__ import annotations

from typing import Protocol
from uuid import UUID

from certsvc.models.course import Participant


class ParticipantRepo(Protocol):
    async def get_by_id(self, participant_id: UUID) -> Participant | None: ...
    async def add(self, participant: Participant) -> None: ...


class InMemoryParticipantRepo:
    def __init__(self) -> None:
        self._by_id: dict[UUID, Participant] = {}

    async def get_by_id(self, participant_id: UUID) -> Participant | None:
        return self._by_id.get(participant_id)

    async def add(self, participant: Participant) -> None:
        if participant.id in self._by_id:
            raise ValueError("participant already exists")
        self._by_id[participant.id] = participant
