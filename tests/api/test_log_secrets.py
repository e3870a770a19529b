"""Assert that validation tokens and the signing secret never reach the logs."""

from __future__ import annotations

import asyncio
import logging

import pytest
from fastapi.testclient import TestClient

from certsvc.api.dependencies import in_memory_repos
from certsvc.core.config import SETTINGS
from tests.conftest import TEST_SECRET, make_course, make_participant


def _issue_and_verify(client: TestClient) -> str:
    course, participant = make_course(), make_participant()
    asyncio.run(in_memory_repos.courses.add(course))
    asyncio.run(in_memory_repos.participants.add(participant))
    client.post(
        "/v1/certificates/issue",
        json={"course_id": str(course.id), "participant_id": str(participant.id)},
    )
    (cert,) = in_memory_repos.certificates.all()  # type: ignore[attr-defined]
    client.get(f"/v1/verify/{cert.id}", params={"token": cert.validation_token})
    tampered = ("0" if cert.validation_token[0] != "0" else "1") + (
        cert.validation_token[1:]
    )
    client.get(f"/v1/verify/{cert.id}", params={"token": tampered})
    return cert.validation_token


def test_token_never_logged(
    client: TestClient, caplog: pytest.LogCaptureFixture
) -> None:
    with caplog.at_level(logging.DEBUG):
        token = _issue_and_verify(client)

    all_log_text = " ".join(caplog.messages)
    assert token not in all_log_text, "Validation token found in log output!"
    assert token[1:] not in all_log_text, "Tampered token found in log output!"


def test_secret_never_logged(
    client: TestClient, caplog: pytest.LogCaptureFixture
) -> None:
    with caplog.at_level(logging.DEBUG):
        _issue_and_verify(client)

    assert TEST_SECRET not in " ".join(caplog.messages)


def test_settings_repr_hides_secret() -> None:
    assert SETTINGS.certificate_secret == TEST_SECRET
    assert TEST_SECRET not in repr(SETTINGS)
