"""Certificate issuance endpoints.

- POST /v1/certificates/issue          issue (or return) the certificate
                                       for a course/participant pair
- GET  /v1/certificates/{id}/pdf       re-render a stored certificate

Issuing is idempotent: the first call creates the certificate (201),
every later call for the same pair returns the same one (200).
"""

from __future__ import annotations

import base64
from datetime import datetime
from typing import Annotated, NoReturn
from urllib.parse import quote
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Response, status
from pydantic import BaseModel

from certsvc.api.dependencies import get_issuance_service
from certsvc.models.certificate import Certificate
from certsvc.services.issuance_service import (
    IssueError,
    IssueFailure,
    IssuanceService,
)

router = APIRouter(prefix="/v1/certificates", tags=["certificates"])


class IssueIn(BaseModel):
    course_id: UUID
    participant_id: UUID


class CertificateOut(BaseModel):
    id: UUID
    number: str
    issued_at: datetime
    expires_at: datetime
    status: str

    @staticmethod
    def from_certificate(cert: Certificate) -> CertificateOut:
        return CertificateOut(
            id=cert.id,
            number=cert.number,
            issued_at=cert.issued_at,
            expires_at=cert.expires_at,
            status=cert.status.value,
        )


class IssueOut(BaseModel):
    certificate: CertificateOut
    created: bool
    filename: str
    pdf_bytes: str  # base64


_FAILURE_STATUS: dict[IssueError, int] = {
    IssueError.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    IssueError.TIMEOUT: status.HTTP_504_GATEWAY_TIMEOUT,
    IssueError.NUMBER_EXHAUSTED: status.HTTP_503_SERVICE_UNAVAILABLE,
    IssueError.RENDER_FAILURE: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


def _raise_for(failure: IssueFailure) -> NoReturn:
    detail: dict[str, object] = {
        "error": failure.error.value,
        "message": failure.message,
    }
    if failure.certificate is not None:
        detail["certificate_id"] = str(failure.certificate.id)
        detail["number"] = failure.certificate.number
    raise HTTPException(status_code=_FAILURE_STATUS[failure.error], detail=detail)


@router.post("/issue", response_model=IssueOut)
async def issue_certificate(
    body: IssueIn,
    response: Response,
    service: Annotated[IssuanceService, Depends(get_issuance_service)],
) -> IssueOut:
    result = await service.issue(body.course_id, body.participant_id)
    if isinstance(result, IssueFailure):
        _raise_for(result)
    response.status_code = (
        status.HTTP_201_CREATED if result.created else status.HTTP_200_OK
    )
    return IssueOut(
        certificate=CertificateOut.from_certificate(result.certificate),
        created=result.created,
        filename=result.filename,
        pdf_bytes=base64.b64encode(result.pdf).decode("ascii"),
    )


@router.get("/{certificate_id}/pdf")
async def certificate_pdf(
    certificate_id: UUID,
    service: Annotated[IssuanceService, Depends(get_issuance_service)],
) -> Response:
    result = await service.render_existing(certificate_id)
    if isinstance(result, IssueFailure):
        _raise_for(result)
    return Response(
        content=result.pdf,
        media_type="application/pdf",
        headers={
            "Content-Disposition": (
                f"attachment; filename*=UTF-8''{quote(result.filename)}"
            ),
        },
    )
