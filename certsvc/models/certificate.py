from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import date, datetime
from enum import StrEnum
from uuid import UUID, uuid4

from certsvc.models.course import Course, Participant

_TOKEN_RE = re.compile(r"^[0-9a-f]{64}$")


class CertificateStatus(StrEnum):
    ACTIVE = "active"
    REVOKED = "revoked"  # terminal


@dataclass(frozen=True, slots=True)
class CertificateSnapshot:
    """Course and participant display fields frozen at issuance time.

    Validation and PDF re-rendering read only these, so a certificate keeps
    printing the same name and title even if the catalogue entry changes.
    """

    course_title: str
    course_manufacturer: str
    course_type: str
    course_start_date: date
    course_end_date: date
    course_duration_days: int
    participant_first_name: str
    participant_last_name: str
    participant_company: str | None = None
    course_location: str | None = None
    course_trainer: str | None = None

    @property
    def participant_name(self) -> str:
        return f"{self.participant_first_name} {self.participant_last_name}".strip()

    @staticmethod
    def capture(course: Course, participant: Participant) -> CertificateSnapshot:
        return CertificateSnapshot(
            course_title=course.title,
            course_manufacturer=course.manufacturer,
            course_type=course.type,
            course_start_date=course.start_date,
            course_end_date=course.end_date,
            course_duration_days=course.duration_days,
            participant_first_name=participant.first_name,
            participant_last_name=participant.last_name,
            participant_company=participant.company,
            course_location=course.location,
            course_trainer=course.trainer,
        )


@dataclass(frozen=True, slots=True)
class Certificate:
    """An issued certificate ("Zertifikat").

    number, issued_at, expires_at and validation_token are set once at
    creation and never change; status only moves active -> revoked.
    Construction rejects records that break those field contracts, which
    is what keeps half-populated rows out of the store.
    """

    id: UUID
    number: str
    course_id: UUID
    participant_id: UUID
    issued_at: datetime
    expires_at: datetime
    validation_token: str
    template: str
    snapshot: CertificateSnapshot
    status: CertificateStatus = CertificateStatus.ACTIVE

    def __post_init__(self) -> None:
        if not self.number:
            raise ValueError("certificate number must be non-empty")
        if self.issued_at.tzinfo is None or self.expires_at.tzinfo is None:
            raise ValueError("certificate timestamps must be timezone-aware")
        if self.expires_at <= self.issued_at:
            raise ValueError("expires_at must be after issued_at")
        if not _TOKEN_RE.match(self.validation_token):
            raise ValueError("validation_token must be 64 lowercase hex characters")
        # Rows loaded from the DB hand us a plain str
        if not isinstance(self.status, CertificateStatus):
            object.__setattr__(self, "status", CertificateStatus(self.status))

    @property
    def is_revoked(self) -> bool:
        return self.status is CertificateStatus.REVOKED

    @staticmethod
    def new(
        *,
        number: str,
        course_id: UUID,
        participant_id: UUID,
        issued_at: datetime,
        expires_at: datetime,
        validation_token: str,
        template: str,
        snapshot: CertificateSnapshot,
    ) -> Certificate:
        return Certificate(
            id=uuid4(),
            number=number,
            course_id=course_id,
            participant_id=participant_id,
            issued_at=issued_at,
            expires_at=expires_at,
            validation_token=validation_token,
            template=template,
            snapshot=snapshot,
        )


@dataclass(frozen=True, slots=True)
class ValidationAttempt:
    """Audit record of one public validation request.

    The supplied token is not stored: only the outcome is kept.
    """

    id: UUID
    certificate_id: UUID | None
    outcome: str  # valid|expired|revoked|invalid_token|not_found|timeout
    occurred_at: datetime
    client_ip: str | None = None
    user_agent: str | None = None

    @staticmethod
    def new(
        *,
        certificate_id: UUID | None,
        outcome: str,
        occurred_at: datetime,
        client_ip: str | None = None,
        user_agent: str | None = None,
    ) -> ValidationAttempt:
        return ValidationAttempt(
            id=uuid4(),
            certificate_id=certificate_id,
            outcome=outcome,
            occurred_at=occurred_at,
            client_ip=client_ip,
            user_agent=user_agent,
        )
