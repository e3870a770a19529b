from __future__ import annotations

from typing import Protocol
from uuid import UUID

from certsvc.models.certificate import ValidationAttempt


class ValidationLogRepo(Protocol):
    async def record(self, attempt: ValidationAttempt) -> None: ...
    async def list_for_certificate(
        self, certificate_id: UUID
    ) -> list[ValidationAttempt]: ...


class InMemoryValidationLogRepo:
    def __init__(self) -> None:
        self._attempts: list[ValidationAttempt] = []

    async def record(self, attempt: ValidationAttempt) -> None:
        self._attempts.append(attempt)

    async def list_for_certificate(
        self, certificate_id: UUID
    ) -> list[ValidationAttempt]:
        return [a for a in self._attempts if a.certificate_id == certificate_id]
