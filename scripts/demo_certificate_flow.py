"""Demo: issue a certificate, validate it, then try a tampered token.

Runs against the in-memory repositories using FastAPI's TestClient:
    CERTIFICATE_SECRET=demo-secret python scripts/demo_certificate_flow.py
"""

from __future__ import annotations

import asyncio
import base64
import os
from pathlib import Path
from uuid import UUID

os.environ.setdefault("CERTIFICATE_SECRET", "demo-secret")
os.environ.setdefault("APP_ENV", "dev")

from fastapi.testclient import TestClient  # noqa: E402

from certsvc.api.dependencies import in_memory_repos, seed_demo_catalog  # noqa: E402
from certsvc.main import app  # noqa: E402

OUT_DIR = Path("demo_output")


def main() -> None:
    client = TestClient(app)
    course, participant = asyncio.run(seed_demo_catalog(in_memory_repos))
    body = {"course_id": str(course.id), "participant_id": str(participant.id)}

    # ── Step 1: issue ───────────────────────────────────────────────
    r = client.post("/v1/certificates/issue", json=body)
    print(f"1. POST /v1/certificates/issue → {r.status_code}  (created)")
    issued = r.json()
    cert = issued["certificate"]
    print(f"   number={cert['number']}  expires_at={cert['expires_at']}")

    OUT_DIR.mkdir(exist_ok=True)
    pdf_path = OUT_DIR / issued["filename"]
    pdf_path.write_bytes(base64.b64decode(issued["pdf_bytes"]))
    print(f"   PDF written to {pdf_path}")

    # ── Step 2: issue again (idempotent) ────────────────────────────
    r = client.post("/v1/certificates/issue", json=body)
    print(f"2. POST /v1/certificates/issue → {r.status_code}  (existing)")
    assert r.json()["certificate"]["number"] == cert["number"]

    # ── Step 3: validate with the printed token ─────────────────────
    stored = asyncio.run(in_memory_repos.certificates.get_by_id(UUID(cert["id"])))
    assert stored is not None
    r = client.get(
        f"/v1/verify/{cert['id']}", params={"token": stored.validation_token}
    )
    print(f"3. GET  /v1/verify (token)     → {r.status_code}  {r.json()}")

    # ── Step 4: tampered token ──────────────────────────────────────
    tampered = ("0" if stored.validation_token[0] != "0" else "1") + (
        stored.validation_token[1:]
    )
    r = client.get(f"/v1/verify/{cert['id']}", params={"token": tampered})
    print(f"4. GET  /v1/verify (tampered)  → {r.status_code}  {r.json()}")


if __name__ == "__main__":
    main()
