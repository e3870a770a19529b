from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from uuid import UUID, uuid4


@dataclass(frozen=True, slots=True)
class Course:
    """A scheduled training offering ("Schulung").

    Owned by the course catalogue; read-only from the certificate side.
    """

    id: UUID
    title: str
    manufacturer: str  # kuka|abb|mitsubishi|universal_robots|sonstige
    type: str  # grundlagen|praxis|online|sonstige
    start_date: date
    end_date: date
    duration_days: int
    location: str | None = None
    trainer: str | None = None

    @staticmethod
    def new(
        *,
        title: str,
        manufacturer: str,
        type: str,
        start_date: date,
        end_date: date,
        duration_days: int,
        location: str | None = None,
        trainer: str | None = None,
    ) -> Course:
        return Course(
            id=uuid4(),
            title=title,
            manufacturer=manufacturer,
            type=type,
            start_date=start_date,
            end_date=end_date,
            duration_days=duration_days,
            location=location,
            trainer=trainer,
        )


@dataclass(frozen=True, slots=True)
class Participant:
    """A person who can be certified on a course ("Teilnehmer")."""

    id: UUID
    first_name: str
    last_name: str
    company: str | None = None
    email: str | None = None

    @staticmethod
    def new(
        *,
        first_name: str,
        last_name: str,
        company: str | None = None,
        email: str | None = None,
    ) -> Participant:
        return Participant(
            id=uuid4(),
            first_name=first_name,
            last_name=last_name,
            company=company,
            email=email,
        )
