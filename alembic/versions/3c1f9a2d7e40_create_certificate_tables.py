"""create certificate tables

Revision ID: 3c1f9a2d7e40
Revises:
Create Date: 2026-10-19 00:00:00.000000

"""

from collections.abc import Sequence

import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "3c1f9a2d7e40"
down_revision: str | Sequence[str] | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    op.create_table(
        "courses",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("title", sa.String(length=500), nullable=False),
        sa.Column("manufacturer", sa.String(length=64), nullable=False),
        sa.Column("type", sa.String(length=32), nullable=False),
        sa.Column("start_date", sa.Date(), nullable=False),
        sa.Column("end_date", sa.Date(), nullable=False),
        sa.Column("duration_days", sa.Integer(), nullable=False),
        sa.Column("location", sa.String(length=255), nullable=True),
        sa.Column("trainer", sa.String(length=255), nullable=True),
    )
    op.create_table(
        "participants",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("first_name", sa.String(length=255), nullable=False),
        sa.Column("last_name", sa.String(length=255), nullable=False),
        sa.Column("company", sa.String(length=255), nullable=True),
        sa.Column("email", sa.String(length=320), nullable=True),
    )
    op.create_table(
        "certificates",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("number", sa.String(length=64), nullable=False),
        sa.Column(
            "course_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("courses.id"),
            nullable=False,
        ),
        sa.Column(
            "participant_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("participants.id"),
            nullable=False,
        ),
        sa.Column("issued_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("validation_token", sa.String(length=64), nullable=False),
        sa.Column("template", sa.String(length=64), nullable=False),
        sa.Column(
            "status", sa.String(length=16), nullable=False, server_default="active"
        ),
        sa.Column("course_title", sa.String(length=500), nullable=False),
        sa.Column("course_manufacturer", sa.String(length=64), nullable=False),
        sa.Column("course_type", sa.String(length=32), nullable=False),
        sa.Column("course_start_date", sa.Date(), nullable=False),
        sa.Column("course_end_date", sa.Date(), nullable=False),
        sa.Column("course_duration_days", sa.Integer(), nullable=False),
        sa.Column("course_location", sa.String(length=255), nullable=True),
        sa.Column("course_trainer", sa.String(length=255), nullable=True),
        sa.Column("participant_first_name", sa.String(length=255), nullable=False),
        sa.Column("participant_last_name", sa.String(length=255), nullable=False),
        sa.Column("participant_company", sa.String(length=255), nullable=True),
        sa.UniqueConstraint(
            "course_id", "participant_id", name="uq_certificates_pair"
        ),
        sa.UniqueConstraint("number", name="uq_certificates_number"),
    )
    op.create_index("ix_certificates_issued_at", "certificates", ["issued_at"])
    op.create_table(
        "certificate_validations",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("certificate_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("outcome", sa.String(length=32), nullable=False),
        sa.Column("occurred_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("client_ip", sa.String(length=64), nullable=True),
        sa.Column("user_agent", sa.Text(), nullable=True),
    )
    op.create_index(
        "ix_certificate_validations_certificate_id",
        "certificate_validations",
        ["certificate_id"],
    )


def downgrade() -> None:
    op.drop_index(
        "ix_certificate_validations_certificate_id",
        table_name="certificate_validations",
    )
    op.drop_table("certificate_validations")
    op.drop_index("ix_certificates_issued_at", table_name="certificates")
    op.drop_table("certificates")
    op.drop_table("participants")
    op.drop_table("courses")
