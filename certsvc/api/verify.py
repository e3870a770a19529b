"""Public certificate validation endpoint.

GET /v1/verify/{certificate_id}?token=<validation token>

This is the URL encoded in the certificate's QR code.  It needs no
login, so it is rate-limited per client IP.  An unknown id and a wrong
token produce the same 404 body; revocation is the one status reported
without a correct token.  Every response carries `valid`.

  revoked (any token)      200 {"valid": false, "revoked": true}
  valid token, active      200 {"valid": true, "expired": false, ...}
  valid token, expired     200 {"valid": true, "expired": true, ...}
  unknown id / bad token   404 {"valid": false, "error": ...}
  no token                 400 {"valid": false, "error": ...}
  timeout                  504 {"valid": false, "error": ...}
"""

from __future__ import annotations

from datetime import datetime
from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from certsvc.api.dependencies import get_validation_service
from certsvc.api.ratelimit import VERIFY_RATE_LIMIT, client_ip, require_rate_limit
from certsvc.services.certificate_payload import format_date, format_duration
from certsvc.services.validation_service import (
    CertificateSummary,
    ValidationFailure,
    ValidationService,
)

router = APIRouter(prefix="/v1/verify", tags=["verify"])

_NOT_FOUND_ERROR = "certificate not found or token invalid"


class CertificateSummaryOut(BaseModel):
    number: str
    participant_name: str
    participant_company: str | None
    course_title: str
    course_type: str
    manufacturer: str
    course_period: str
    course_duration: str
    issued_at: datetime
    expires_at: datetime

    @staticmethod
    def from_summary(s: CertificateSummary) -> CertificateSummaryOut:
        return CertificateSummaryOut(
            number=s.number,
            participant_name=s.participant_name,
            participant_company=s.participant_company,
            course_title=s.course_title,
            course_type=s.course_type,
            manufacturer=s.manufacturer,
            course_period=(
                f"{format_date(s.course_start_date)} - {format_date(s.course_end_date)}"
            ),
            course_duration=format_duration(s.course_duration_days),
            issued_at=s.issued_at,
            expires_at=s.expires_at,
        )


class VerifyOut(BaseModel):
    valid: bool
    expired: bool | None = None
    revoked: bool = False
    certificate: CertificateSummaryOut | None = None
    error: str | None = None


def _invalid(status_code: int, error: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code, content={"valid": False, "error": error}
    )


@router.get(
    "/{certificate_id}",
    response_model=VerifyOut,
    response_model_exclude_none=True,
    dependencies=[Depends(require_rate_limit("verify", VERIFY_RATE_LIMIT))],
)
async def verify_certificate(
    certificate_id: str,
    request: Request,
    service: Annotated[ValidationService, Depends(get_validation_service)],
    token: Annotated[str | None, Query()] = None,
) -> VerifyOut | JSONResponse:
    if not token:
        return _invalid(
            status.HTTP_400_BAD_REQUEST, "token query parameter is required"
        )

    result = await service.validate(
        certificate_id,
        token,
        client_ip=client_ip(request),
        user_agent=request.headers.get("user-agent"),
    )

    if result.reason in (ValidationFailure.NOT_FOUND, ValidationFailure.INVALID_TOKEN):
        return _invalid(status.HTTP_404_NOT_FOUND, _NOT_FOUND_ERROR)
    if result.reason is ValidationFailure.TIMEOUT:
        return _invalid(status.HTTP_504_GATEWAY_TIMEOUT, "validation timed out")
    if result.reason is ValidationFailure.REVOKED:
        return VerifyOut(valid=False, revoked=True)

    return VerifyOut(
        valid=True,
        expired=result.expired,
        revoked=False,
        certificate=(
            CertificateSummaryOut.from_summary(result.summary)
            if result.summary is not None
            else None
        ),
    )
