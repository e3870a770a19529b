from __future__ import annotations

import asyncio
import logging
from dataclasses import fields
from datetime import UTC, datetime, timedelta
from uuid import UUID, uuid4

import pytest
from prometheus_client import REGISTRY

from certsvc.models.certificate import Certificate
from certsvc.repos.certificate_repo import InMemoryCertificateRepo
from certsvc.repos.course_repo import InMemoryCourseRepo
from certsvc.repos.participant_repo import InMemoryParticipantRepo
from certsvc.repos.validation_log_repo import InMemoryValidationLogRepo
from certsvc.services.issuance_service import IssuancePolicy, IssuanceService, Issued
from certsvc.services.token_service import TokenDeriver
from certsvc.services.validation_service import (
    CertificateSummary,
    ValidationFailure,
    ValidationService,
)
from tests.conftest import make_course, make_participant

ISSUED_AT = datetime(2025, 1, 10, 9, 0, tzinfo=UTC)
EXPIRES_AT = datetime(2028, 1, 10, 9, 0, tzinfo=UTC)
DERIVER = TokenDeriver("validation-test-secret")


class _Renderer:
    def render(self, payload) -> bytes:
        return b"%PDF-fake"


class Harness:
    def __init__(self, now: datetime = ISSUED_AT + timedelta(days=30)) -> None:
        self.now = now
        self.certificates = InMemoryCertificateRepo()
        self.log = InMemoryValidationLogRepo()
        self.courses = InMemoryCourseRepo()
        self.participants = InMemoryParticipantRepo()
        self.issuer = IssuanceService(
            courses=self.courses,
            participants=self.participants,
            certificates=self.certificates,
            deriver=DERIVER,
            renderer=_Renderer(),
            policy=IssuancePolicy(
                number_prefix="ROBTEC",
                validity_years=3,
                verify_base_url="http://verify.test",
                timeout_seconds=5.0,
            ),
            clock=lambda: ISSUED_AT,
        )
        self.service = ValidationService(
            certificates=self.certificates,
            deriver=DERIVER,
            validation_log=self.log,
            clock=lambda: self.now,
        )

    def issue(self) -> Certificate:
        course, participant = make_course(), make_participant()
        asyncio.run(self.courses.add(course))
        asyncio.run(self.participants.add(participant))
        result = asyncio.run(self.issuer.issue(course.id, participant.id))
        assert isinstance(result, Issued)
        return result.certificate

    def validate(self, certificate_id: UUID | str, token: str):
        return asyncio.run(
            self.service.validate(
                certificate_id, token, client_ip="203.0.113.7", user_agent="pytest"
            )
        )


def _flip_first(token: str) -> str:
    return ("0" if token[0] != "0" else "1") + token[1:]


def _sample(name: str, labels: dict) -> float:
    value = REGISTRY.get_sample_value(name, labels=labels)
    return value if value is not None else 0.0


# ---- valid ----


def test_issued_certificate_validates_with_its_token() -> None:
    h = Harness()
    cert = h.issue()

    result = h.validate(cert.id, cert.validation_token)

    assert result.valid is True
    assert result.expired is False
    assert result.revoked is False
    assert result.reason is None
    assert result.summary is not None
    assert result.summary.number == cert.number


def test_string_id_is_accepted() -> None:
    h = Harness()
    cert = h.issue()
    assert h.validate(str(cert.id), cert.validation_token).valid is True


def test_summary_uses_display_labels() -> None:
    h = Harness()
    cert = h.issue()
    summary = h.validate(cert.id, cert.validation_token).summary
    assert summary is not None
    assert summary.manufacturer == "KUKA"
    assert summary.course_type == "Grundlagen"
    assert summary.participant_name == "Anna Müller"
    assert summary.participant_company == "Beispiel Automation GmbH"
    assert summary.issued_at == ISSUED_AT
    assert summary.expires_at == EXPIRES_AT


def test_summary_never_carries_token_ids_or_email() -> None:
    names = {f.name for f in fields(CertificateSummary)}
    assert names.isdisjoint(
        {"validation_token", "id", "course_id", "participant_id", "email"}
    )

    h = Harness()
    cert = h.issue()
    summary = h.validate(cert.id, cert.validation_token).summary
    assert cert.validation_token not in repr(summary)
    assert "anna.mueller@example.com" not in repr(summary)


# ---- expiry ----


def test_expired_certificate_is_valid_but_flagged() -> None:
    h = Harness(now=EXPIRES_AT)
    cert = h.issue()
    result = h.validate(cert.id, cert.validation_token)
    assert result.valid is True
    assert result.expired is True


def test_one_microsecond_before_expiry_is_not_expired() -> None:
    h = Harness(now=EXPIRES_AT - timedelta(microseconds=1))
    cert = h.issue()
    assert h.validate(cert.id, cert.validation_token).expired is False


# ---- rejection ----


def test_tampered_token_is_rejected() -> None:
    h = Harness()
    cert = h.issue()
    result = h.validate(cert.id, _flip_first(cert.validation_token))
    assert result.valid is False
    assert result.reason is ValidationFailure.INVALID_TOKEN
    assert result.summary is None


def test_well_formed_token_for_other_data_is_rejected() -> None:
    h = Harness()
    cert = h.issue()
    forged = DERIVER.derive(uuid4(), cert.participant_id, cert.issued_at)
    result = h.validate(cert.id, forged)
    assert result.reason is ValidationFailure.INVALID_TOKEN


def test_token_from_other_secret_is_rejected() -> None:
    h = Harness()
    cert = h.issue()
    other = TokenDeriver("some-other-secret").derive(
        cert.course_id, cert.participant_id, cert.issued_at
    )
    assert h.validate(cert.id, other).reason is ValidationFailure.INVALID_TOKEN


def test_uppercase_token_is_rejected() -> None:
    h = Harness()
    cert = h.issue()
    token = cert.validation_token.upper()
    assert token != cert.validation_token
    assert h.validate(cert.id, token).reason is ValidationFailure.INVALID_TOKEN


def test_empty_token_is_rejected() -> None:
    h = Harness()
    cert = h.issue()
    assert h.validate(cert.id, "").reason is ValidationFailure.INVALID_TOKEN


def test_unknown_id_is_not_found() -> None:
    h = Harness()
    result = h.validate(uuid4(), "0" * 64)
    assert result.valid is False
    assert result.reason is ValidationFailure.NOT_FOUND


def test_malformed_id_is_not_found() -> None:
    h = Harness()
    assert h.validate("not-a-uuid", "0" * 64).reason is ValidationFailure.NOT_FOUND


# ---- revocation ----


def test_revoked_certificate_with_valid_token() -> None:
    h = Harness()
    cert = h.issue()
    asyncio.run(h.certificates.revoke(cert.id))

    result = h.validate(cert.id, cert.validation_token)

    assert result.valid is False
    assert result.revoked is True
    assert result.reason is ValidationFailure.REVOKED
    assert result.summary is None


def test_revocation_reported_whatever_the_token() -> None:
    h = Harness()
    cert = h.issue()
    asyncio.run(h.certificates.revoke(cert.id))

    result = h.validate(cert.id, _flip_first(cert.validation_token))

    assert result.reason is ValidationFailure.REVOKED
    assert result.revoked is True
    assert result.summary is None


# ---- timeout ----


class _SlowRepo(InMemoryCertificateRepo):
    async def get_by_id(self, certificate_id: UUID) -> Certificate | None:
        await asyncio.sleep(1)
        return None


def test_slow_store_times_out() -> None:
    service = ValidationService(
        certificates=_SlowRepo(), deriver=DERIVER, timeout_seconds=0.05
    )
    result = asyncio.run(service.validate(uuid4(), "0" * 64))
    assert result.valid is False
    assert result.reason is ValidationFailure.TIMEOUT


# ---- audit log / metrics ----


def test_attempts_are_logged_without_token() -> None:
    h = Harness()
    cert = h.issue()
    h.validate(cert.id, cert.validation_token)
    h.validate(cert.id, _flip_first(cert.validation_token))

    attempts = asyncio.run(h.log.list_for_certificate(cert.id))

    assert [a.outcome for a in attempts] == ["valid", "invalid_token"]
    assert all(a.client_ip == "203.0.113.7" for a in attempts)
    assert all(a.user_agent == "pytest" for a in attempts)
    for a in attempts:
        assert cert.validation_token not in repr(a)


def test_malformed_id_logged_without_certificate() -> None:
    h = Harness()
    h.validate("garbage", "0" * 64)
    (attempt,) = h.log._attempts
    assert attempt.certificate_id is None
    assert attempt.outcome == "not_found"


def test_outcomes_are_counted() -> None:
    h = Harness()
    cert = h.issue()
    before = _sample("certificate_validations_total", {"outcome": "valid"})
    h.validate(cert.id, cert.validation_token)
    after = _sample("certificate_validations_total", {"outcome": "valid"})
    assert after - before == 1


class _BrokenLog(InMemoryValidationLogRepo):
    async def record(self, attempt) -> None:
        raise RuntimeError("audit store unavailable")


def test_audit_failure_does_not_change_the_result(
    caplog: pytest.LogCaptureFixture,
) -> None:
    h = Harness()
    cert = h.issue()
    service = ValidationService(
        certificates=h.certificates,
        deriver=DERIVER,
        validation_log=_BrokenLog(),
        clock=lambda: h.now,
    )

    with caplog.at_level(
        logging.ERROR, logger="certsvc.services.validation_service"
    ):
        result = asyncio.run(service.validate(cert.id, cert.validation_token))

    assert result.valid is True
    assert result.expired is False
    assert any(
        "Failed to record validation attempt" in r.getMessage()
        for r in caplog.records
    )
