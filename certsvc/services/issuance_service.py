"""Certificate issuance.

ISSUE SEQUENCE
---------------
  1. load course + participant            -> NOT_FOUND if either is missing
  2. existing certificate for the pair?    -> return it unchanged (re-render PDF)
  3. issued_at = now (UTC)
     token     = HMAC(course, participant, issued_at)
     number    = <PREFIX>-<YYYY>-<count for year + 1>
     expires   = issued_at + validity years
  4. single insert, guarded by the store's unique constraints:
       pair conflict   -> another request won the race; return its row
       number conflict -> take the next sequence number and insert again
  5. render the PDF from the stored fields

Steps 1-4 run under one timeout.  Rendering runs after the insert has
succeeded: a render failure leaves a valid certificate behind, reported as
RENDER_FAILURE together with that certificate, and the PDF can be produced
later by `render_existing`.

Outcomes are returned as values (Issued | IssueFailure), not raised.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime
from enum import StrEnum
from uuid import UUID

from certsvc.core.config import Settings
from certsvc.core.metrics import CERTIFICATES_ISSUED, RENDER_DURATION, RENDER_FAILURES
from certsvc.models.certificate import Certificate, CertificateSnapshot
from certsvc.repos.certificate_repo import CertificateConflictError, CertificateRepo
from certsvc.repos.course_repo import CourseRepo
from certsvc.repos.participant_repo import ParticipantRepo
from certsvc.services.certificate_payload import (
    build_payload,
    certificate_filename,
    determine_template,
)
from certsvc.services.expiry import expiry_of
from certsvc.services.numbering import next_number
from certsvc.services.pdf_renderer import CertificateRenderer
from certsvc.services.token_service import TokenDeriver

logger = logging.getLogger(__name__)

MAX_NUMBER_ATTEMPTS = 5


def _utcnow() -> datetime:
    return datetime.now(UTC)


class IssueError(StrEnum):
    NOT_FOUND = "not_found"
    TIMEOUT = "timeout"
    RENDER_FAILURE = "render_failure"
    NUMBER_EXHAUSTED = "number_exhausted"


@dataclass(frozen=True, slots=True)
class Issued:
    certificate: Certificate
    pdf: bytes
    filename: str
    created: bool  # False when an existing certificate was returned


@dataclass(frozen=True, slots=True)
class IssueFailure:
    error: IssueError
    message: str
    # Set for RENDER_FAILURE: the certificate exists, only the PDF is missing
    certificate: Certificate | None = None


IssueResult = Issued | IssueFailure


@dataclass(frozen=True, slots=True)
class IssuancePolicy:
    number_prefix: str
    validity_years: int
    verify_base_url: str
    timeout_seconds: float

    @staticmethod
    def from_settings(settings: Settings) -> IssuancePolicy:
        return IssuancePolicy(
            number_prefix=settings.certificate_number_prefix,
            validity_years=settings.certificate_validity_years,
            verify_base_url=settings.verify_base_url,
            timeout_seconds=settings.issue_timeout_seconds,
        )


class IssuanceService:
    def __init__(
        self,
        *,
        courses: CourseRepo,
        participants: ParticipantRepo,
        certificates: CertificateRepo,
        deriver: TokenDeriver,
        renderer: CertificateRenderer,
        policy: IssuancePolicy,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._courses = courses
        self._participants = participants
        self._certificates = certificates
        self._deriver = deriver
        self._renderer = renderer
        self._policy = policy
        self._clock = clock

    async def issue(self, course_id: UUID, participant_id: UUID) -> IssueResult:
        try:
            async with asyncio.timeout(self._policy.timeout_seconds):
                outcome = await self._load_or_create(course_id, participant_id)
        except TimeoutError:
            logger.warning(
                "Issuance timed out course=%s participant=%s", course_id, participant_id
            )
            return IssueFailure(IssueError.TIMEOUT, "certificate issuance timed out")

        if isinstance(outcome, IssueFailure):
            return outcome

        certificate, created = outcome
        CERTIFICATES_ISSUED.labels(result="created" if created else "existing").inc()
        return await self._render(certificate, created=created)

    async def render_existing(self, certificate_id: UUID) -> IssueResult:
        """Re-render the PDF of a stored certificate without changing it."""
        try:
            async with asyncio.timeout(self._policy.timeout_seconds):
                certificate = await self._certificates.get_by_id(certificate_id)
        except TimeoutError:
            logger.warning("Certificate lookup timed out id=%s", certificate_id)
            return IssueFailure(IssueError.TIMEOUT, "certificate lookup timed out")

        if certificate is None:
            return IssueFailure(IssueError.NOT_FOUND, "certificate not found")
        return await self._render(certificate, created=False)

    async def _load_or_create(
        self, course_id: UUID, participant_id: UUID
    ) -> tuple[Certificate, bool] | IssueFailure:
        course = await self._courses.get_by_id(course_id)
        if course is None:
            logger.info("Issuance rejected: course=%s not found", course_id)
            return IssueFailure(IssueError.NOT_FOUND, "course not found")

        participant = await self._participants.get_by_id(participant_id)
        if participant is None:
            logger.info("Issuance rejected: participant=%s not found", participant_id)
            return IssueFailure(IssueError.NOT_FOUND, "participant not found")

        existing = await self._certificates.get_by_pair(course_id, participant_id)
        if existing is not None:
            logger.info(
                "Certificate already issued id=%s number=%s",
                existing.id,
                existing.number,
            )
            return existing, False

        issued_at = self._clock()
        token = self._deriver.derive(course_id, participant_id, issued_at)
        expires_at = expiry_of(issued_at, self._policy.validity_years)
        template = determine_template(course.manufacturer, course.type)
        snapshot = CertificateSnapshot.capture(course, participant)

        year = issued_at.astimezone(UTC).year
        prior = await self._certificates.count_issued_in_year(year)
        prefix = self._policy.number_prefix
        for attempt in range(MAX_NUMBER_ATTEMPTS):
            certificate = Certificate.new(
                number=next_number(prior + attempt, issued_at, prefix),
                course_id=course_id,
                participant_id=participant_id,
                issued_at=issued_at,
                expires_at=expires_at,
                validation_token=token,
                template=template,
                snapshot=snapshot,
            )
            try:
                await self._certificates.add(certificate)
            except CertificateConflictError as e:
                if e.kind == "pair":
                    winner = await self._certificates.get_by_pair(
                        course_id, participant_id
                    )
                    if winner is None:
                        raise
                    logger.info(
                        "Concurrent issuance resolved to existing id=%s number=%s",
                        winner.id,
                        winner.number,
                    )
                    return winner, False
                logger.info("Certificate number %s taken, retrying", certificate.number)
                continue

            logger.info(
                "Issued certificate id=%s number=%s course=%s participant=%s",
                certificate.id,
                certificate.number,
                course_id,
                participant_id,
            )
            return certificate, True

        logger.error(
            "No free certificate number after %d attempts (year=%d)",
            MAX_NUMBER_ATTEMPTS,
            year,
        )
        return IssueFailure(
            IssueError.NUMBER_EXHAUSTED, "could not allocate a certificate number"
        )

    async def _render(self, certificate: Certificate, *, created: bool) -> IssueResult:
        payload = build_payload(
            certificate, verify_base_url=self._policy.verify_base_url
        )
        start = time.monotonic()
        try:
            pdf = await asyncio.to_thread(self._renderer.render, payload)
        except Exception:
            RENDER_FAILURES.inc()
            logger.exception(
                "PDF rendering failed for certificate id=%s", certificate.id
            )
            return IssueFailure(
                IssueError.RENDER_FAILURE,
                "certificate was issued but the PDF could not be rendered",
                certificate=certificate,
            )
        finally:
            RENDER_DURATION.observe(time.monotonic() - start)

        return Issued(
            certificate=certificate,
            pdf=pdf,
            filename=certificate_filename(certificate),
            created=created,
        )
