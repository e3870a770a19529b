"""Certificate persistence contract.

The store, not the service, is the authority on uniqueness:
  - one certificate per (course_id, participant_id)
  - one certificate per number

`add` raises CertificateConflictError when either constraint rejects the
insert.  The issuance service turns a pair conflict into "return the
existing certificate" and a number conflict into a retry.
"""

from __future__ import annotations

from dataclasses import replace
from datetime import UTC, datetime
from typing import Literal, Protocol
from uuid import UUID

from certsvc.models.certificate import Certificate, CertificateStatus

ConflictKind = Literal["pair", "number"]


class CertificateConflictError(Exception):
    def __init__(self, kind: ConflictKind) -> None:
        super().__init__(f"certificate {kind} already exists")
        self.kind = kind


class CertificateRepo(Protocol):
    async def get_by_id(self, certificate_id: UUID) -> Certificate | None: ...
    async def get_by_pair(
        self, course_id: UUID, participant_id: UUID
    ) -> Certificate | None: ...
    async def count_issued_in_year(self, year: int) -> int: ...
    async def add(self, certificate: Certificate) -> None: ...
    async def revoke(self, certificate_id: UUID) -> Certificate | None: ...


class InMemoryCertificateRepo:
    def __init__(self) -> None:
        self._by_id: dict[UUID, Certificate] = {}
        self._by_pair: dict[tuple[UUID, UUID], UUID] = {}
        self._by_number: dict[str, UUID] = {}

    async def get_by_id(self, certificate_id: UUID) -> Certificate | None:
        return self._by_id.get(certificate_id)

    async def get_by_pair(
        self, course_id: UUID, participant_id: UUID
    ) -> Certificate | None:
        cert_id = self._by_pair.get((course_id, participant_id))
        return self._by_id.get(cert_id) if cert_id is not None else None

    async def count_issued_in_year(self, year: int) -> int:
        return sum(
            1 for c in self._by_id.values() if c.issued_at.astimezone(UTC).year == year
        )

    async def add(self, certificate: Certificate) -> None:
        pair = (certificate.course_id, certificate.participant_id)
        if pair in self._by_pair:
            raise CertificateConflictError("pair")
        if certificate.number in self._by_number:
            raise CertificateConflictError("number")
        self._by_id[certificate.id] = certificate
        self._by_pair[pair] = certificate.id
        self._by_number[certificate.number] = certificate.id

    async def revoke(self, certificate_id: UUID) -> Certificate | None:
        cert = self._by_id.get(certificate_id)
        if cert is None:
            return None
        if cert.is_revoked:
            return cert
        updated = replace(cert, status=CertificateStatus.REVOKED)
        self._by_id[certificate_id] = updated
        return updated

    # Test/seed helper; not part of the protocol
    def all(self) -> list[Certificate]:
        return list(self._by_id.values())


def year_bounds(year: int) -> tuple[datetime, datetime]:
    """UTC [start, end) of a calendar year, for count queries."""
    return datetime(year, 1, 1, tzinfo=UTC), datetime(year + 1, 1, 1, tzinfo=UTC)
