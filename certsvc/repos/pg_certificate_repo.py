"""PostgreSQL implementations of CertificateRepo and ValidationLogRepo."""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from certsvc.db.tables import CertificateRow, CertificateValidationRow
from certsvc.models.certificate import (
    Certificate,
    CertificateSnapshot,
    CertificateStatus,
    ValidationAttempt,
)
from certsvc.repos.certificate_repo import CertificateConflictError, year_bounds


class PgCertificateRepo:
    """Satisfies the CertificateRepo Protocol using PostgreSQL via SQLAlchemy."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get_by_id(self, certificate_id: UUID) -> Certificate | None:
        stmt = select(CertificateRow).where(CertificateRow.id == certificate_id)
        row = (await self._session.execute(stmt)).scalar_one_or_none()
        if row is None:
            return None
        return _row_to_certificate(row)

    async def get_by_pair(
        self, course_id: UUID, participant_id: UUID
    ) -> Certificate | None:
        stmt = select(CertificateRow).where(
            CertificateRow.course_id == course_id,
            CertificateRow.participant_id == participant_id,
        )
        row = (await self._session.execute(stmt)).scalar_one_or_none()
        if row is None:
            return None
        return _row_to_certificate(row)

    async def count_issued_in_year(self, year: int) -> int:
        start, end = year_bounds(year)
        stmt = (
            select(func.count())
            .select_from(CertificateRow)
            .where(CertificateRow.issued_at >= start, CertificateRow.issued_at < end)
        )
        return int((await self._session.execute(stmt)).scalar_one())

    async def add(self, certificate: Certificate) -> None:
        # SAVEPOINT: a unique violation rolls back only this insert, so the
        # caller can still read the winning row in the same transaction.
        try:
            async with self._session.begin_nested():
                self._session.add(_certificate_to_row(certificate))
        except IntegrityError as e:
            existing = await self.get_by_pair(
                certificate.course_id, certificate.participant_id
            )
            raise CertificateConflictError(
                "pair" if existing is not None else "number"
            ) from e

    async def revoke(self, certificate_id: UUID) -> Certificate | None:
        # Only active rows move; revoked stays revoked.
        stmt = (
            update(CertificateRow)
            .where(
                CertificateRow.id == certificate_id,
                CertificateRow.status == CertificateStatus.ACTIVE.value,
            )
            .values(status=CertificateStatus.REVOKED.value)
        )
        await self._session.execute(stmt)
        return await self.get_by_id(certificate_id)


class PgValidationLogRepo:
    """Satisfies the ValidationLogRepo Protocol using PostgreSQL via SQLAlchemy."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def record(self, attempt: ValidationAttempt) -> None:
        async with self._session.begin_nested():
            self._session.add(
                CertificateValidationRow(
                    id=attempt.id,
                    certificate_id=attempt.certificate_id,
                    outcome=attempt.outcome,
                    occurred_at=attempt.occurred_at,
                    client_ip=attempt.client_ip,
                    user_agent=attempt.user_agent,
                )
            )

    async def list_for_certificate(
        self, certificate_id: UUID
    ) -> list[ValidationAttempt]:
        stmt = (
            select(CertificateValidationRow)
            .where(CertificateValidationRow.certificate_id == certificate_id)
            .order_by(CertificateValidationRow.occurred_at)
        )
        rows = (await self._session.execute(stmt)).scalars().all()
        return [
            ValidationAttempt(
                id=r.id,
                certificate_id=r.certificate_id,
                outcome=r.outcome,
                occurred_at=r.occurred_at,
                client_ip=r.client_ip,
                user_agent=r.user_agent,
            )
            for r in rows
        ]


def _certificate_to_row(cert: Certificate) -> CertificateRow:
    snap = cert.snapshot
    return CertificateRow(
        id=cert.id,
        number=cert.number,
        course_id=cert.course_id,
        participant_id=cert.participant_id,
        issued_at=cert.issued_at,
        expires_at=cert.expires_at,
        validation_token=cert.validation_token,
        template=cert.template,
        status=cert.status.value,
        course_title=snap.course_title,
        course_manufacturer=snap.course_manufacturer,
        course_type=snap.course_type,
        course_start_date=snap.course_start_date,
        course_end_date=snap.course_end_date,
        course_duration_days=snap.course_duration_days,
        course_location=snap.course_location,
        course_trainer=snap.course_trainer,
        participant_first_name=snap.participant_first_name,
        participant_last_name=snap.participant_last_name,
        participant_company=snap.participant_company,
    )


def _row_to_certificate(row: CertificateRow) -> Certificate:
    return Certificate(
        id=row.id,
        number=row.number,
        course_id=row.course_id,
        participant_id=row.participant_id,
        issued_at=row.issued_at,
        expires_at=row.expires_at,
        validation_token=row.validation_token,
        template=row.template,
        status=CertificateStatus(row.status),
        snapshot=CertificateSnapshot(
            course_title=row.course_title,
            course_manufacturer=row.course_manufacturer,
            course_type=row.course_type,
            course_start_date=row.course_start_date,
            course_end_date=row.course_end_date,
            course_duration_days=row.course_duration_days,
            course_location=row.course_location,
            course_trainer=row.course_trainer,
            participant_first_name=row.participant_first_name,
            participant_last_name=row.participant_last_name,
            participant_company=row.participant_company,
        ),
    )
