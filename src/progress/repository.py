"""Cassandra repositories for lesson progress and enrollments.

First inserts use lightweight transactions (``IF NOT EXISTS``) so the
(student, lesson) and (student, course) pairs stay unique under concurrent
requests. Later writes are plain upserts.
"""

from typing import TYPE_CHECKING
from uuid import UUID

from cassandra.query import BatchStatement, BatchType

from src.progress.models import Enrollment, LessonProgress


if TYPE_CHECKING:
    from cassandra.cluster import Session


class EnrollmentRepository:
    """Enrollment rows, dual written to ``enrollments`` and ``enrollments_by_user``."""

    def __init__(self, session: "Session", keyspace: str):
        """Initialize with Cassandra session."""
        self.session = session
        self.keyspace = keyspace
        self._prepare_statements()

    def _prepare_statements(self) -> None:
        """Prepare CQL statements."""
        columns = (
            "(course_id, user_id, learning_status, progress_percent, "
            "lessons_completed, lessons_total, is_mandatory, enrolled_at, updated_at)"
        )
        self._get = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.enrollments
            WHERE course_id = ? AND user_id = ?
        """)
        self._insert_if_not_exists = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.enrollments {columns}
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?) IF NOT EXISTS
        """)
        self._upsert = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.enrollments {columns}
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
        """)
        self._upsert_by_user = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.enrollments_by_user {columns}
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
        """)
        self._delete = self.session.prepare(f"""
            DELETE FROM {self.keyspace}.enrollments
            WHERE course_id = ? AND user_id = ?
        """)
        self._delete_by_user = self.session.prepare(f"""
            DELETE FROM {self.keyspace}.enrollments_by_user
            WHERE user_id = ? AND course_id = ?
        """)
        self._list_by_course = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.enrollments WHERE course_id = ?
        """)
        self._list_by_user = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.enrollments_by_user WHERE user_id = ?
        """)

    def _params(self, enrollment: Enrollment) -> list:
        return [
            enrollment.course_id,
            enrollment.user_id,
            enrollment.learning_status,
            enrollment.progress_percent,
            enrollment.lessons_completed,
            enrollment.lessons_total,
            enrollment.is_mandatory,
            enrollment.enrolled_at,
            enrollment.updated_at,
        ]

    def add_upserts(self, batch: BatchStatement, enrollment: Enrollment) -> None:
        """Add both enrollment writes to a batch."""
        params = self._params(enrollment)
        batch.add(self._upsert, params)
        batch.add(self._upsert_by_user, params)

    async def get(self, course_id: UUID, user_id: UUID) -> Enrollment | None:
        """Get enrollment by course and student."""
        result = await self.session.aexecute(self._get, [course_id, user_id])
        row = result.one()
        return Enrollment.from_row(row) if row else None

    async def insert_if_not_exists(self, enrollment: Enrollment) -> bool:
        """Create an enrollment. Returns False when one already exists."""
        result = await self.session.aexecute(
            self._insert_if_not_exists, self._params(enrollment)
        )
        if not result.was_applied:
            return False
        await self.session.aexecute(self._upsert_by_user, self._params(enrollment))
        return True

    async def save(self, enrollment: Enrollment) -> None:
        """Rewrite both enrollment rows."""
        batch = BatchStatement(batch_type=BatchType.LOGGED)
        self.add_upserts(batch, enrollment)
        await self.session.aexecute(batch)

    async def delete(self, course_id: UUID, user_id: UUID) -> None:
        """Delete both enrollment rows."""
        batch = BatchStatement(batch_type=BatchType.LOGGED)
        batch.add(self._delete, [course_id, user_id])
        batch.add(self._delete_by_user, [user_id, course_id])
        await self.session.aexecute(batch)

    async def list_by_course(self, course_id: UUID) -> list[Enrollment]:
        """All enrollments of a course."""
        rows = await self.session.aexecute(self._list_by_course, [course_id])
        return [Enrollment.from_row(row) for row in rows]

    async def list_by_user(self, user_id: UUID) -> list[Enrollment]:
        """All enrollments of a student, newest first."""
        rows = await self.session.aexecute(self._list_by_user, [user_id])
        enrollments = [Enrollment.from_row(row) for row in rows]
        enrollments.sort(key=lambda e: e.enrolled_at, reverse=True)
        return enrollments


class LessonProgressRepository:
    """Lesson progress rows, one partition per (student, course)."""

    def __init__(
        self,
        session: "Session",
        keyspace: str,
        enrollments: EnrollmentRepository,
    ):
        """Initialize with Cassandra session.

        ``enrollments`` contributes its writes to the progress batch.
        """
        self.session = session
        self.keyspace = keyspace
        self.enrollments = enrollments
        self._prepare_statements()

    def _prepare_statements(self) -> None:
        """Prepare CQL statements."""
        self._get = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.lesson_progress
            WHERE user_id = ? AND course_id = ? AND lesson_id = ?
        """)
        self._list_for_course = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.lesson_progress
            WHERE user_id = ? AND course_id = ?
        """)
        self._list_for_lesson = self.session.prepare(f"""
            SELECT user_id, course_id FROM {self.keyspace}.lesson_progress
            WHERE lesson_id = ?
        """)
        self._insert_if_not_exists = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.lesson_progress
            (user_id, course_id, lesson_id, is_completed, current_time_seconds,
             current_page, last_update)
            VALUES (?, ?, ?, ?, ?, ?, ?) IF NOT EXISTS
        """)
        self._upsert = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.lesson_progress
            (user_id, course_id, lesson_id, is_completed, current_time_seconds,
             current_page, last_update)
            VALUES (?, ?, ?, ?, ?, ?, ?)
        """)
        self._delete = self.session.prepare(f"""
            DELETE FROM {self.keyspace}.lesson_progress
            WHERE user_id = ? AND course_id = ? AND lesson_id = ?
        """)
        self._delete_partition = self.session.prepare(f"""
            DELETE FROM {self.keyspace}.lesson_progress
            WHERE user_id = ? AND course_id = ?
        """)

    def _params(self, progress: LessonProgress) -> list:
        return [
            progress.user_id,
            progress.course_id,
            progress.lesson_id,
            progress.is_completed,
            progress.current_time_seconds,
            progress.current_page,
            progress.last_update,
        ]

    async def get(
        self, user_id: UUID, course_id: UUID, lesson_id: UUID
    ) -> LessonProgress | None:
        """Get progress for one lesson."""
        result = await self.session.aexecute(self._get, [user_id, course_id, lesson_id])
        row = result.one()
        return LessonProgress.from_row(row) if row else None

    async def list_for_course(
        self, user_id: UUID, course_id: UUID
    ) -> list[LessonProgress]:
        """All progress records of a student in a course."""
        rows = await self.session.aexecute(self._list_for_course, [user_id, course_id])
        return [LessonProgress.from_row(row) for row in rows]

    async def insert_if_not_exists(self, progress: LessonProgress) -> bool:
        """Create a progress record. Returns False when one already exists."""
        result = await self.session.aexecute(
            self._insert_if_not_exists, self._params(progress)
        )
        return bool(result.was_applied)

    async def save_with_enrollment(
        self, progress: LessonProgress, enrollment: Enrollment
    ) -> None:
        """Write a progress record and its enrollment in one logged batch."""
        batch = BatchStatement(batch_type=BatchType.LOGGED)
        batch.add(self._upsert, self._params(progress))
        self.enrollments.add_upserts(batch, enrollment)
        await self.session.aexecute(batch)

    async def delete_for_lesson(self, lesson_id: UUID) -> int:
        """Delete every student's progress on a lesson. Returns rows deleted."""
        rows = list(await self.session.aexecute(self._list_for_lesson, [lesson_id]))
        for row in rows:
            await self.session.aexecute(
                self._delete, [row.user_id, row.course_id, lesson_id]
            )
        return len(rows)

    async def delete_for_course(self, user_id: UUID, course_id: UUID) -> None:
        """Delete a student's whole progress partition for a course."""
        await self.session.aexecute(self._delete_partition, [user_id, course_id])
