"""Render payload for certificate PDFs.

The payload is everything the renderer is allowed to see: display strings
and the public validation URL.  It never carries the signing secret, and
it is built from the certificate's stored fields alone so that a failed
render can be retried later without touching the catalogue.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import UTC, date, datetime
from urllib.parse import urlencode

from certsvc.models.certificate import Certificate

DEFAULT_TEMPLATE = "robtec-standard"

MANUFACTURER_LABELS: dict[str, str] = {
    "kuka": "KUKA",
    "abb": "ABB",
    "mitsubishi": "Mitsubishi",
    "universal_robots": "Universal Robots",
    "sonstige": "Sonstige",
}

TYPE_LABELS: dict[str, str] = {
    "grundlagen": "Grundlagen",
    "praxis": "Praxis",
    "online": "Online",
    "sonstige": "Sonstige",
}

# manufacturer -> template family
_TEMPLATE_FAMILIES: dict[str, str] = {
    "kuka": "kuka",
    "abb": "abb",
    "mitsubishi": "mitsubishi",
    "universal_robots": "ur",
}

_UNSAFE_FILENAME_CHARS = re.compile(r"[^A-Za-z0-9ÄÖÜäöüß._-]+")


def manufacturer_label(manufacturer: str) -> str:
    return MANUFACTURER_LABELS.get(manufacturer, manufacturer)


def type_label(course_type: str) -> str:
    return TYPE_LABELS.get(course_type, course_type)


def determine_template(manufacturer: str, course_type: str) -> str:
    """Pick the certificate template, e.g. ("kuka", "praxis") -> "kuka-praxis".

    Known manufacturers get a grundlagen/praxis variant or their
    "-sonstige" fallback; anything else uses the house template.
    """
    family = _TEMPLATE_FAMILIES.get(manufacturer)
    if family is None:
        return DEFAULT_TEMPLATE
    if course_type in ("grundlagen", "praxis"):
        return f"{family}-{course_type}"
    return f"{family}-sonstige"


def format_date(value: date | datetime) -> str:
    """German display format, DD.MM.YYYY (datetimes are shown in UTC)."""
    if isinstance(value, datetime):
        value = value.astimezone(UTC).date() if value.tzinfo else value.date()
    return value.strftime("%d.%m.%Y")


def format_duration(days: int) -> str:
    return f"{days} Tag" if days == 1 else f"{days} Tage"


def validation_url(base_url: str, certificate: Certificate) -> str:
    query = urlencode({"token": certificate.validation_token})
    return f"{base_url.rstrip('/')}/v1/verify/{certificate.id}?{query}"


def certificate_filename(certificate: Certificate) -> str:
    snap = certificate.snapshot
    parts = [
        "Zertifikat",
        snap.participant_last_name,
        snap.participant_first_name,
        certificate.number,
    ]
    cleaned = [_UNSAFE_FILENAME_CHARS.sub("_", p).strip("_") for p in parts]
    return "_".join(p for p in cleaned if p) + ".pdf"


@dataclass(frozen=True, slots=True)
class CertificatePayload:
    """All display data needed to draw one certificate."""

    number: str
    participant_name: str
    company: str | None
    course_title: str
    course_type: str
    manufacturer: str
    manufacturer_key: str
    start_date: str
    end_date: str
    duration: str
    issued_on: str
    valid_until: str
    template: str
    validation_url: str
    validation_code: str
    trainer: str | None = None
    location: str | None = None


def build_payload(
    certificate: Certificate, *, verify_base_url: str
) -> CertificatePayload:
    snap = certificate.snapshot
    return CertificatePayload(
        number=certificate.number,
        participant_name=snap.participant_name,
        company=snap.participant_company or None,
        course_title=snap.course_title,
        course_type=type_label(snap.course_type),
        manufacturer=manufacturer_label(snap.course_manufacturer),
        manufacturer_key=snap.course_manufacturer,
        start_date=format_date(snap.course_start_date),
        end_date=format_date(snap.course_end_date),
        duration=format_duration(snap.course_duration_days),
        issued_on=format_date(certificate.issued_at),
        valid_until=format_date(certificate.expires_at),
        template=certificate.template,
        validation_url=validation_url(verify_base_url, certificate),
        validation_code=certificate.validation_token,
        trainer=snap.course_trainer or None,
        location=snap.course_location or None,
    )
