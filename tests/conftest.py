from __future__ import annotations

import os
import sys
from datetime import date
from pathlib import Path

# Settings are loaded at import time, so the environment must be in
# place before anything from certsvc is imported.
os.environ["APP_ENV"] = "test"
os.environ["CERTIFICATE_SECRET"] = "test-signing-secret"
os.environ.pop("DATABASE_URL", None)
os.environ.pop("REDIS_URL", None)

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

# Ensure repo root is on sys.path so `import certsvc` works under pytest.
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from certsvc.api.dependencies import in_memory_repos  # noqa: E402
from certsvc.api.ratelimit import _rate_limiter  # noqa: E402
from certsvc.main import app  # noqa: E402
from certsvc.models.course import Course, Participant  # noqa: E402

TEST_SECRET = "test-signing-secret"


@pytest.fixture(autouse=True)
def reset_repos() -> None:
    """Clear the in-memory repositories between tests."""
    in_memory_repos.courses._by_id.clear()  # type: ignore[attr-defined]
    in_memory_repos.participants._by_id.clear()  # type: ignore[attr-defined]
    in_memory_repos.certificates._by_id.clear()  # type: ignore[attr-defined]
    in_memory_repos.certificates._by_pair.clear()  # type: ignore[attr-defined]
    in_memory_repos.certificates._by_number.clear()  # type: ignore[attr-defined]
    in_memory_repos.validation_log._attempts.clear()  # type: ignore[attr-defined]


@pytest.fixture(autouse=True)
def reset_rate_limiter() -> None:
    """Clear rate limit buckets between tests so limits don't bleed."""
    if hasattr(_rate_limiter, "_buckets"):
        _rate_limiter._buckets.clear()  # type: ignore[union-attr]


@pytest.fixture
def client() -> TestClient:
    return TestClient(app)


def make_course(**overrides) -> Course:
    fields = {
        "title": "KUKA Roboterprogrammierung Grundlagen",
        "manufacturer": "kuka",
        "type": "grundlagen",
        "start_date": date(2025, 1, 6),
        "end_date": date(2025, 1, 10),
        "duration_days": 5,
        "location": "Hamburg",
        "trainer": "M. Schneider",
    }
    fields.update(overrides)
    return Course.new(**fields)


def make_participant(**overrides) -> Participant:
    fields = {
        "first_name": "Anna",
        "last_name": "Müller",
        "company": "Beispiel Automation GmbH",
        "email": "anna.mueller@example.com",
    }
    fields.update(overrides)
    return Participant.new(**fields)
