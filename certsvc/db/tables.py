"""SQLAlchemy table definitions.

These map to the frozen dataclass domain models in certsvc/models/.
Repos convert between rows and dataclasses; nothing outside certsvc/repos
touches a Row class.
"""

from __future__ import annotations

import uuid
from datetime import date, datetime

from sqlalchemy import (
    Date,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from certsvc.db.engine import Base

# --- Catalogue (owned by the admin app; read-only here) ---


class CourseRow(Base):
    __tablename__ = "courses"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    title: Mapped[str] = mapped_column(String(500), nullable=False)
    manufacturer: Mapped[str] = mapped_column(
        String(64), nullable=False
    )  # kuka|abb|mitsubishi|universal_robots|sonstige
    type: Mapped[str] = mapped_column(
        String(32), nullable=False
    )  # grundlagen|praxis|online|sonstige
    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    end_date: Mapped[date] = mapped_column(Date, nullable=False)
    duration_days: Mapped[int] = mapped_column(Integer, nullable=False)
    location: Mapped[str | None] = mapped_column(String(255), nullable=True)
    trainer: Mapped[str | None] = mapped_column(String(255), nullable=True)


class ParticipantRow(Base):
    __tablename__ = "participants"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    first_name: Mapped[str] = mapped_column(String(255), nullable=False)
    last_name: Mapped[str] = mapped_column(String(255), nullable=False)
    company: Mapped[str | None] = mapped_column(String(255), nullable=True)
    email: Mapped[str | None] = mapped_column(String(320), nullable=True)


# --- Certificates ---


class CertificateRow(Base):
    __tablename__ = "certificates"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    number: Mapped[str] = mapped_column(String(64), nullable=False)
    course_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("courses.id"), nullable=False
    )
    participant_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("participants.id"), nullable=False
    )
    issued_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, index=True
    )
    expires_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False
    )
    validation_token: Mapped[str] = mapped_column(String(64), nullable=False)
    template: Mapped[str] = mapped_column(String(64), nullable=False)
    status: Mapped[str] = mapped_column(
        String(16), nullable=False, default="active"
    )  # active|revoked

    # Snapshot of display fields at issuance time
    course_title: Mapped[str] = mapped_column(String(500), nullable=False)
    course_manufacturer: Mapped[str] = mapped_column(String(64), nullable=False)
    course_type: Mapped[str] = mapped_column(String(32), nullable=False)
    course_start_date: Mapped[date] = mapped_column(Date, nullable=False)
    course_end_date: Mapped[date] = mapped_column(Date, nullable=False)
    course_duration_days: Mapped[int] = mapped_column(Integer, nullable=False)
    course_location: Mapped[str | None] = mapped_column(String(255), nullable=True)
    course_trainer: Mapped[str | None] = mapped_column(String(255), nullable=True)
    participant_first_name: Mapped[str] = mapped_column(String(255), nullable=False)
    participant_last_name: Mapped[str] = mapped_column(String(255), nullable=False)
    participant_company: Mapped[str | None] = mapped_column(
        String(255), nullable=True
    )

    __table_args__ = (
        UniqueConstraint("course_id", "participant_id", name="uq_certificates_pair"),
        UniqueConstraint("number", name="uq_certificates_number"),
    )


class CertificateValidationRow(Base):
    __tablename__ = "certificate_validations"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    # No FK: attempts against unknown ids are recorded too
    certificate_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), nullable=True, index=True
    )
    outcome: Mapped[str] = mapped_column(String(32), nullable=False)
    occurred_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False
    )
    client_ip: Mapped[str | None] = mapped_column(String(64), nullable=True)
    user_agent: Mapped[str | None] = mapped_column(Text, nullable=True)
