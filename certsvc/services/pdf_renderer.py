"""Certificate PDF rendering with ReportLab.

Pure drawing code: takes a CertificatePayload, returns the finished PDF as
bytes.  No DB or FastAPI imports.  Output is a single landscape A4 page
with a QR code (bottom right) pointing at the public validation URL.
"""

from __future__ import annotations

import io
from dataclasses import dataclass
from typing import Protocol

import qrcode
from reportlab.lib import colors
from reportlab.lib.pagesizes import A4, landscape
from reportlab.lib.units import cm
from reportlab.lib.utils import ImageReader
from reportlab.pdfgen import canvas

from certsvc.services.certificate_payload import CertificatePayload

ISSUER_NAME = "ROBTEC GmbH"
ISSUER_TAGLINE = "Schulungszentrum für Roboterprogrammierung"


class RenderError(Exception):
    """Raised when a certificate cannot be drawn."""


class CertificateRenderer(Protocol):
    def render(self, payload: CertificatePayload) -> bytes: ...


@dataclass(frozen=True, slots=True)
class _ColorScheme:
    primary: str
    accent: str
    light_bg: str


_HOUSE_COLORS = _ColorScheme(primary="#2563EB", accent="#333333", light_bg="#EFF6FF")

_MANUFACTURER_COLORS: dict[str, _ColorScheme] = {
    "kuka": _ColorScheme(primary="#FF6600", accent="#333333", light_bg="#FFF5E6"),
    "abb": _ColorScheme(primary="#FF0000", accent="#333333", light_bg="#FFE6E6"),
    "mitsubishi": _ColorScheme(primary="#CC0000", accent="#333333", light_bg="#FFE6E6"),
    "universal_robots": _ColorScheme(
        primary="#0066CC", accent="#333333", light_bg="#E6F2FF"
    ),
}


def _qr_png(url: str) -> io.BytesIO:
    qr = qrcode.QRCode(
        version=None,
        error_correction=qrcode.constants.ERROR_CORRECT_H,
        box_size=6,
        border=2,
    )
    qr.add_data(url)
    qr.make(fit=True)
    img = qr.make_image(fill_color="black", back_color="white")
    buf = io.BytesIO()
    img.save(buf, format="PNG")
    buf.seek(0)
    return buf


def _truncate(text: str, limit: int) -> str:
    return text if len(text) <= limit else text[: limit - 3] + "..."


class ReportLabRenderer:
    """Draws the ROBTEC certificate layout."""

    def render(self, payload: CertificatePayload) -> bytes:
        try:
            return self._draw(payload)
        except RenderError:
            raise
        except Exception as e:
            raise RenderError(f"failed to render certificate {payload.number}") from e

    def _draw(self, data: CertificatePayload) -> bytes:
        scheme = _MANUFACTURER_COLORS.get(data.manufacturer_key, _HOUSE_COLORS)
        primary = colors.HexColor(scheme.primary)
        accent = colors.HexColor(scheme.accent)
        grey = colors.HexColor("#666666")
        text = colors.HexColor("#333333")

        buf = io.BytesIO()
        page_w, page_h = landscape(A4)
        c = canvas.Canvas(buf, pagesize=landscape(A4))
        c.setTitle(f"Zertifikat {data.number}")
        c.setAuthor(ISSUER_NAME)

        # --- Double border ---
        margin = 1.4 * cm
        c.setStrokeColor(primary)
        c.setLineWidth(3)
        c.rect(margin, margin, page_w - 2 * margin, page_h - 2 * margin)
        c.setLineWidth(1)
        inner = margin + 0.2 * cm
        c.rect(inner, inner, page_w - 2 * inner, page_h - 2 * inner)

        center_x = page_w / 2

        # --- Header ---
        c.setFillColor(primary)
        c.setFont("Helvetica-Bold", 22)
        c.drawString(2.2 * cm, page_h - 2.9 * cm, ISSUER_NAME)
        c.setFillColor(grey)
        c.setFont("Helvetica", 10)
        c.drawString(2.2 * cm, page_h - 3.5 * cm, ISSUER_TAGLINE)
        c.drawRightString(
            page_w - 2.2 * cm, page_h - 2.9 * cm, f"Zertifikat-Nr.: {data.number}"
        )

        # --- Title ---
        c.setFillColor(primary)
        c.setFont("Helvetica-Bold", 38)
        c.drawCentredString(center_x, page_h - 5.6 * cm, "ZERTIFIKAT")
        c.setFillColor(text)
        c.setFont("Helvetica", 15)
        c.drawCentredString(
            center_x, page_h - 6.5 * cm, "über die erfolgreiche Teilnahme"
        )

        # --- Participant ---
        c.setFillColor(accent)
        c.setFont("Helvetica-Bold", 26)
        c.drawCentredString(
            center_x, page_h - 8.0 * cm, _truncate(data.participant_name, 50)
        )

        y = page_h - 8.8 * cm
        if data.company:
            c.setFillColor(grey)
            c.setFont("Helvetica-Oblique", 13)
            c.drawCentredString(center_x, y, _truncate(data.company, 70))
            y -= 0.9 * cm

        c.setFillColor(text)
        c.setFont("Helvetica", 13)
        c.drawCentredString(center_x, y, "hat erfolgreich teilgenommen an der Schulung")
        y -= 1.1 * cm

        c.setFillColor(primary)
        c.setFont("Helvetica-Bold", 19)
        c.drawCentredString(center_x, y, _truncate(data.course_title, 60))

        # --- Details box ---
        box_h = 2.6 * cm
        box_y = y - 0.7 * cm - box_h
        box_x = 5.5 * cm
        c.setFillColor(colors.HexColor(scheme.light_bg))
        c.setStrokeColor(primary)
        c.rect(box_x, box_y, page_w - 2 * box_x, box_h, fill=1, stroke=1)

        rows_left = [
            ("Hersteller:", data.manufacturer),
            ("Typ:", data.course_type),
            ("Zeitraum:", f"{data.start_date} - {data.end_date}"),
        ]
        rows_right = [("Dauer:", data.duration)]
        if data.location:
            rows_right.append(("Ort:", data.location))
        if data.trainer:
            rows_right.append(("Trainer:", data.trainer))

        columns = ((box_x + 1.0 * cm, rows_left), (center_x + 1.0 * cm, rows_right))
        for col_x, rows in columns:
            row_y = box_y + box_h - 0.8 * cm
            for label, value in rows:
                c.setFillColor(text)
                c.setFont("Helvetica-Bold", 10.5)
                c.drawString(col_x, row_y, label)
                c.setFont("Helvetica", 10.5)
                c.drawString(col_x + 2.8 * cm, row_y, _truncate(value, 40))
                row_y -= 0.65 * cm

        # --- Issue / expiry (bottom left) ---
        footer_y = 3.6 * cm
        c.setFillColor(text)
        c.setFont("Helvetica-Bold", 10)
        c.drawString(2.5 * cm, footer_y, "Ausgestellt am:")
        c.setFont("Helvetica", 10)
        c.drawString(2.5 * cm, footer_y - 0.5 * cm, data.issued_on)
        c.setFont("Helvetica-Bold", 10)
        c.drawString(2.5 * cm, footer_y - 1.2 * cm, "Gültig bis:")
        c.setFont("Helvetica", 10)
        c.drawString(2.5 * cm, footer_y - 1.7 * cm, data.valid_until)

        # --- Signature line (bottom centre) ---
        sig_y = 3.2 * cm
        c.setStrokeColor(primary)
        c.setLineWidth(0.8)
        c.line(center_x - 3.5 * cm, sig_y, center_x + 3.5 * cm, sig_y)
        c.setFillColor(grey)
        c.setFont("Helvetica", 9)
        c.drawCentredString(
            center_x, sig_y - 0.45 * cm, f"Geschäftsführung {ISSUER_NAME}"
        )

        # --- QR code + validation code (bottom right) ---
        qr_size = 3.0 * cm
        qr_x = page_w - 2.4 * cm - qr_size
        qr_y = 2.4 * cm
        c.drawImage(
            ImageReader(_qr_png(data.validation_url)),
            qr_x,
            qr_y,
            width=qr_size,
            height=qr_size,
        )
        c.setFillColor(grey)
        c.setFont("Helvetica", 7.5)
        c.drawCentredString(
            qr_x + qr_size / 2, qr_y - 0.35 * cm, "Scan zum Verifizieren"
        )
        c.setFont("Helvetica", 6)
        c.drawCentredString(
            center_x, 1.75 * cm, f"Validierungscode: {data.validation_code}"
        )

        c.showPage()
        c.save()
        return buf.getvalue()
