"""Public certificate validation.

Given a certificate id and the token printed on the certificate, recompute
the expected token from the stored (course_id, participant_id, issued_at)
and compare in constant time.  Order of checks:

  unknown or malformed id   -> NOT_FOUND
  status == revoked         -> REVOKED (valid=False, revoked=True)
  token mismatch            -> INVALID_TOKEN
  otherwise                 -> valid=True, expired = not (now < expires_at)

Revocation is public and is reported whatever token was supplied; every
other detail is reserved for holders of the correct token.  A successful
result carries a CertificateSummary restricted to what the printed
certificate already shows: never the token, ids, or the participant's
e-mail address.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, date, datetime
from enum import StrEnum
from uuid import UUID

from certsvc.core.metrics import CERTIFICATE_VALIDATIONS
from certsvc.models.certificate import Certificate, ValidationAttempt
from certsvc.repos.certificate_repo import CertificateRepo
from certsvc.repos.validation_log_repo import ValidationLogRepo
from certsvc.services.certificate_payload import manufacturer_label, type_label
from certsvc.services.expiry import is_valid
from certsvc.services.token_service import TokenDeriver

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(UTC)


class ValidationFailure(StrEnum):
    NOT_FOUND = "not_found"
    INVALID_TOKEN = "invalid_token"
    REVOKED = "revoked"
    TIMEOUT = "timeout"


@dataclass(frozen=True, slots=True)
class CertificateSummary:
    number: str
    issued_at: datetime
    expires_at: datetime
    course_title: str
    course_type: str
    manufacturer: str
    course_start_date: date
    course_end_date: date
    course_duration_days: int
    participant_name: str
    participant_company: str | None

    @staticmethod
    def from_certificate(cert: Certificate) -> CertificateSummary:
        snap = cert.snapshot
        return CertificateSummary(
            number=cert.number,
            issued_at=cert.issued_at,
            expires_at=cert.expires_at,
            course_title=snap.course_title,
            course_type=type_label(snap.course_type),
            manufacturer=manufacturer_label(snap.course_manufacturer),
            course_start_date=snap.course_start_date,
            course_end_date=snap.course_end_date,
            course_duration_days=snap.course_duration_days,
            participant_name=snap.participant_name,
            participant_company=snap.participant_company,
        )


@dataclass(frozen=True, slots=True)
class ValidationResult:
    valid: bool
    expired: bool | None = None
    revoked: bool = False
    reason: ValidationFailure | None = None
    summary: CertificateSummary | None = None

    @property
    def outcome(self) -> str:
        if self.reason is not None:
            return self.reason.value
        return "expired" if self.expired else "valid"


def _parse_id(certificate_id: UUID | str) -> UUID | None:
    if isinstance(certificate_id, UUID):
        return certificate_id
    try:
        return UUID(certificate_id)
    except (ValueError, TypeError, AttributeError):
        return None


class ValidationService:
    def __init__(
        self,
        *,
        certificates: CertificateRepo,
        deriver: TokenDeriver,
        validation_log: ValidationLogRepo | None = None,
        timeout_seconds: float = 10.0,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._certificates = certificates
        self._deriver = deriver
        self._log = validation_log
        self._timeout = timeout_seconds
        self._clock = clock

    async def validate(
        self,
        certificate_id: UUID | str,
        supplied_token: str,
        *,
        client_ip: str | None = None,
        user_agent: str | None = None,
    ) -> ValidationResult:
        cert_id = _parse_id(certificate_id)
        try:
            async with asyncio.timeout(self._timeout):
                result = await self._check(cert_id, supplied_token)
        except TimeoutError:
            logger.warning("Validation timed out certificate_id=%s", cert_id)
            result = ValidationResult(valid=False, reason=ValidationFailure.TIMEOUT)

        CERTIFICATE_VALIDATIONS.labels(outcome=result.outcome).inc()
        logger.info(
            "Validation certificate_id=%s outcome=%s",
            cert_id,
            result.outcome,
            extra={"certificate_id": str(cert_id) if cert_id else None},
        )

        if self._log is not None:
            # The audit record must not change the answer the caller gets.
            try:
                await self._log.record(
                    ValidationAttempt.new(
                        certificate_id=cert_id,
                        outcome=result.outcome,
                        occurred_at=self._clock(),
                        client_ip=client_ip,
                        user_agent=user_agent,
                    )
                )
            except Exception:
                logger.exception(
                    "Failed to record validation attempt certificate_id=%s", cert_id
                )
        return result

    async def _check(
        self, cert_id: UUID | None, supplied_token: str
    ) -> ValidationResult:
        if cert_id is None:
            return ValidationResult(valid=False, reason=ValidationFailure.NOT_FOUND)

        cert = await self._certificates.get_by_id(cert_id)
        if cert is None:
            return ValidationResult(valid=False, reason=ValidationFailure.NOT_FOUND)

        if cert.is_revoked:
            return ValidationResult(
                valid=False, revoked=True, reason=ValidationFailure.REVOKED
            )

        if not supplied_token or not self._deriver.matches(
            supplied_token, cert.course_id, cert.participant_id, cert.issued_at
        ):
            return ValidationResult(valid=False, reason=ValidationFailure.INVALID_TOKEN)

        expired = not is_valid(cert.expires_at, self._clock())
        return ValidationResult(
            valid=True,
            expired=expired,
            summary=CertificateSummary.from_certificate(cert),
        )
