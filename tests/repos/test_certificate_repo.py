from __future__ import annotations

import asyncio
from dataclasses import replace
from datetime import UTC, date, datetime, timedelta, timezone
from uuid import uuid4

import pytest

from certsvc.db.tables import CourseRow, ParticipantRow
from certsvc.models.certificate import (
    Certificate,
    CertificateSnapshot,
    CertificateStatus,
)
from certsvc.repos.certificate_repo import (
    CertificateConflictError,
    InMemoryCertificateRepo,
    year_bounds,
)
from certsvc.repos.pg_certificate_repo import _certificate_to_row, _row_to_certificate
from certsvc.repos.pg_course_repo import _row_to_course, _row_to_participant

SNAPSHOT = CertificateSnapshot(
    course_title="UR Grundlagen",
    course_manufacturer="universal_robots",
    course_type="grundlagen",
    course_start_date=date(2025, 4, 1),
    course_end_date=date(2025, 4, 2),
    course_duration_days=2,
    participant_first_name="Lena",
    participant_last_name="Schmidt",
    participant_company=None,
    course_location="Berlin",
    course_trainer=None,
)


def _cert(number: str = "ROBTEC-2025-00001", issued_at: datetime | None = None):
    issued = issued_at or datetime(2025, 4, 3, 12, 0, tzinfo=UTC)
    return Certificate.new(
        number=number,
        course_id=uuid4(),
        participant_id=uuid4(),
        issued_at=issued,
        expires_at=issued + timedelta(days=3 * 365),
        validation_token="a" * 64,
        template="ur-grundlagen",
        snapshot=SNAPSHOT,
    )


# ---- model invariants ----


def test_certificate_rejects_naive_timestamps() -> None:
    with pytest.raises(ValueError, match="timezone-aware"):
        _cert(issued_at=datetime(2025, 4, 3, 12, 0))


def test_certificate_rejects_expiry_before_issue() -> None:
    cert = _cert()
    with pytest.raises(ValueError, match="expires_at"):
        replace(cert, expires_at=cert.issued_at)


def test_certificate_rejects_malformed_token() -> None:
    cert = _cert()
    with pytest.raises(ValueError, match="validation_token"):
        replace(cert, validation_token="A" * 64)


def test_certificate_rejects_empty_number() -> None:
    with pytest.raises(ValueError, match="number"):
        _cert(number="")


# ---- in-memory repo ----


def test_add_and_lookup() -> None:
    repo = InMemoryCertificateRepo()
    cert = _cert()
    asyncio.run(repo.add(cert))
    assert asyncio.run(repo.get_by_id(cert.id)) == cert
    assert asyncio.run(repo.get_by_pair(cert.course_id, cert.participant_id)) == cert
    assert asyncio.run(repo.get_by_pair(uuid4(), cert.participant_id)) is None


def test_duplicate_pair_is_a_pair_conflict() -> None:
    repo = InMemoryCertificateRepo()
    cert = _cert()
    asyncio.run(repo.add(cert))
    clash = replace(
        _cert("ROBTEC-2025-00002"),
        course_id=cert.course_id,
        participant_id=cert.participant_id,
    )
    with pytest.raises(CertificateConflictError) as exc:
        asyncio.run(repo.add(clash))
    assert exc.value.kind == "pair"


def test_duplicate_number_is_a_number_conflict() -> None:
    repo = InMemoryCertificateRepo()
    asyncio.run(repo.add(_cert("ROBTEC-2025-00001")))
    with pytest.raises(CertificateConflictError) as exc:
        asyncio.run(repo.add(_cert("ROBTEC-2025-00001")))
    assert exc.value.kind == "number"
    assert len(repo.all()) == 1


def test_count_issued_in_year_uses_utc() -> None:
    repo = InMemoryCertificateRepo()
    asyncio.run(repo.add(_cert("A-1", datetime(2025, 1, 1, 0, 0, tzinfo=UTC))))
    asyncio.run(repo.add(_cert("A-2", datetime(2025, 12, 31, 23, 59, tzinfo=UTC))))
    # 2026-01-01 00:30 at UTC+2 is 2025-12-31 22:30 UTC
    plus_two = timezone(timedelta(hours=2))
    asyncio.run(repo.add(_cert("A-3", datetime(2026, 1, 1, 0, 30, tzinfo=plus_two))))
    asyncio.run(repo.add(_cert("A-4", datetime(2026, 1, 1, 0, 0, tzinfo=UTC))))

    assert asyncio.run(repo.count_issued_in_year(2025)) == 3
    assert asyncio.run(repo.count_issued_in_year(2026)) == 1
    assert asyncio.run(repo.count_issued_in_year(2024)) == 0


def test_revoke_is_terminal_and_idempotent() -> None:
    repo = InMemoryCertificateRepo()
    cert = _cert()
    asyncio.run(repo.add(cert))

    revoked = asyncio.run(repo.revoke(cert.id))
    again = asyncio.run(repo.revoke(cert.id))

    assert revoked is not None and revoked.status is CertificateStatus.REVOKED
    assert again == revoked
    assert revoked.number == cert.number
    assert revoked.validation_token == cert.validation_token


def test_revoke_unknown_returns_none() -> None:
    assert asyncio.run(InMemoryCertificateRepo().revoke(uuid4())) is None


def test_year_bounds() -> None:
    start, end = year_bounds(2025)
    assert start == datetime(2025, 1, 1, tzinfo=UTC)
    assert end == datetime(2026, 1, 1, tzinfo=UTC)


# ---- row mapping ----


def test_row_mapping_preserves_every_field() -> None:
    cert = _cert()
    assert _row_to_certificate(_certificate_to_row(cert)) == cert


def test_row_mapping_restores_status_enum() -> None:
    cert = replace(_cert(), status=CertificateStatus.REVOKED)
    row = _certificate_to_row(cert)
    assert row.status == "revoked"
    assert _row_to_certificate(row).status is CertificateStatus.REVOKED


def test_catalogue_row_mapping() -> None:
    course = CourseRow(
        id=uuid4(),
        title="Mitsubishi Praxis",
        manufacturer="mitsubishi",
        type="praxis",
        start_date=date(2025, 5, 5),
        end_date=date(2025, 5, 7),
        duration_days=3,
        location=None,
        trainer="K. Braun",
    )
    participant = ParticipantRow(
        id=uuid4(),
        first_name="Tom",
        last_name="Becker",
        company=None,
        email="tom@example.com",
    )

    mapped_course = _row_to_course(course)
    mapped_participant = _row_to_participant(participant)

    assert mapped_course.id == course.id
    assert mapped_course.manufacturer == "mitsubishi"
    assert mapped_course.duration_days == 3
    assert mapped_course.trainer == "K. Braun"
    assert mapped_participant.last_name == "Becker"
    assert mapped_participant.email == "tom@example.com"
