"""Service wiring for the certificate routes.

With DATABASE_URL set, every request gets PostgreSQL repositories bound
to its own session (committed when the request succeeds).  Without it,
the module-level in-memory repositories below are used, which is what
local dev and the test suite run on.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from typing import Annotated

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from certsvc.core.config import SETTINGS
from certsvc.db.engine import get_optional_session
from certsvc.models.course import Course, Participant
from certsvc.repos.certificate_repo import CertificateRepo, InMemoryCertificateRepo
from certsvc.repos.course_repo import CourseRepo, InMemoryCourseRepo
from certsvc.repos.participant_repo import InMemoryParticipantRepo, ParticipantRepo
from certsvc.repos.pg_certificate_repo import PgCertificateRepo, PgValidationLogRepo
from certsvc.repos.pg_course_repo import PgCourseRepo, PgParticipantRepo
from certsvc.repos.validation_log_repo import (
    InMemoryValidationLogRepo,
    ValidationLogRepo,
)
from certsvc.services.issuance_service import IssuancePolicy, IssuanceService
from certsvc.services.pdf_renderer import CertificateRenderer, ReportLabRenderer
from certsvc.services.token_service import TokenDeriver
from certsvc.services.validation_service import ValidationService

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class Repos:
    courses: CourseRepo
    participants: ParticipantRepo
    certificates: CertificateRepo
    validation_log: ValidationLogRepo


in_memory_repos = Repos(
    courses=InMemoryCourseRepo(),
    participants=InMemoryParticipantRepo(),
    certificates=InMemoryCertificateRepo(),
    validation_log=InMemoryValidationLogRepo(),
)

token_deriver = TokenDeriver(SETTINGS.certificate_secret)
renderer: CertificateRenderer = ReportLabRenderer()


def get_repos(
    session: Annotated[AsyncSession | None, Depends(get_optional_session)],
) -> Repos:
    if session is None:
        return in_memory_repos
    return Repos(
        courses=PgCourseRepo(session),
        participants=PgParticipantRepo(session),
        certificates=PgCertificateRepo(session),
        validation_log=PgValidationLogRepo(session),
    )


def get_issuance_service(
    repos: Annotated[Repos, Depends(get_repos)],
) -> IssuanceService:
    return IssuanceService(
        courses=repos.courses,
        participants=repos.participants,
        certificates=repos.certificates,
        deriver=token_deriver,
        renderer=renderer,
        policy=IssuancePolicy.from_settings(SETTINGS),
    )


def get_validation_service(
    repos: Annotated[Repos, Depends(get_repos)],
) -> ValidationService:
    return ValidationService(
        certificates=repos.certificates,
        deriver=token_deriver,
        validation_log=repos.validation_log,
        timeout_seconds=SETTINGS.issue_timeout_seconds,
    )


async def seed_demo_catalog(repos: Repos) -> tuple[Course, Participant]:
    """Add one course and one participant so the dev server can issue
    a certificate straight away."""
    course = Course.new(
        title="KUKA Roboterprogrammierung Grundlagen",
        manufacturer="kuka",
        type="grundlagen",
        start_date=date(2025, 3, 10),
        end_date=date(2025, 3, 14),
        duration_days=5,
        location="Hamburg",
        trainer="M. Schneider",
    )
    participant = Participant.new(
        first_name="Anna",
        last_name="Müller",
        company="Beispiel Automation GmbH",
        email="anna.mueller@example.com",
    )
    await repos.courses.add(course)
    await repos.participants.add(participant)
    logger.info(
        "Seeded demo catalog course_id=%s participant_id=%s",
        course.id,
        participant.id,
    )
    return course, participant
