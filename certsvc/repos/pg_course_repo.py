"""PostgreSQL implementations of CourseRepo and ParticipantRepo."""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from certsvc.db.tables import CourseRow, ParticipantRow
from certsvc.models.course import Course, Participant


class PgCourseRepo:
    """Satisfies the CourseRepo Protocol using PostgreSQL via SQLAlchemy."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get_by_id(self, course_id: UUID) -> Course | None:
        stmt = select(CourseRow).where(CourseRow.id == course_id)
        row = (await self._session.execute(stmt)).scalar_one_or_none()
        if row is None:
            return None
        return _row_to_course(row)

    async def add(self, course: Course) -> None:
        self._session.add(
            CourseRow(
                id=course.id,
                title=course.title,
                manufacturer=course.manufacturer,
                type=course.type,
                start_date=course.start_date,
                end_date=course.end_date,
                duration_days=course.duration_days,
                location=course.location,
                trainer=course.trainer,
            )
        )
        await self._session.flush()


class PgParticipantRepo:
    """Satisfies the ParticipantRepo Protocol using PostgreSQL via SQLAlchemy."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get_by_id(self, participant_id: UUID) -> Participant | None:
        stmt = select(ParticipantRow).where(ParticipantRow.id == participant_id)
        row = (await self._session.execute(stmt)).scalar_one_or_none()
        if row is None:
            return None
        return _row_to_participant(row)

    async def add(self, participant: Participant) -> None:
        self._session.add(
            ParticipantRow(
                id=participant.id,
                first_name=participant.first_name,
                last_name=participant.last_name,
                company=participant.company,
                email=participant.email,
            )
        )
        await self._session.flush()


def _row_to_course(row: CourseRow) -> Course:
    return Course(
        id=row.id,
        title=row.title,
        manufacturer=row.manufacturer,
        type=row.type,
        start_date=row.start_date,
        end_date=row.end_date,
        duration_days=row.duration_days,
        location=row.location,
        trainer=row.trainer,
    )


def _row_to_participant(row: ParticipantRow) -> Participant:
    return Participant(
        id=row.id,
        first_name=row.first_name,
        last_name=row.last_name,
        company=row.company,
        email=row.email,
    )
