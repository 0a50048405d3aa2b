"""Cassandra repositories for courses and lessons.

All CQL for the catalog lives here. Services never touch the session.
"""

from typing import TYPE_CHECKING
from uuid import UUID

from cassandra.query import BatchStatement, BatchType

from src.courses.models import Course, Lesson


if TYPE_CHECKING:
    from cassandra.cluster import Session


class CourseRepository:
    """Course rows plus the by-status and by-creator lookup tables."""

    def __init__(self, session: "Session", keyspace: str):
        """Initialize with Cassandra session."""
        self.session = session
        self.keyspace = keyspace
        self._prepare_statements()

    def _prepare_statements(self) -> None:
        """Prepare CQL statements."""
        self._get_by_id = self.session.prepare(
            f"SELECT * FROM {self.keyspace}.courses WHERE id = ?"
        )
        self._upsert = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.courses
            (id, title, description, category_id, thumbnail_url, status,
             course_type, registration_start, registration_end, end_date,
             creator_id, created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        """)
        self._delete = self.session.prepare(
            f"DELETE FROM {self.keyspace}.courses WHERE id = ?"
        )

        # Lookup tables
        self._insert_by_status = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.courses_by_status
            (status, created_at, course_id) VALUES (?, ?, ?)
        """)
        self._delete_by_status = self.session.prepare(f"""
            DELETE FROM {self.keyspace}.courses_by_status
            WHERE status = ? AND created_at = ? AND course_id = ?
        """)
        self._list_by_status = self.session.prepare(f"""
            SELECT course_id FROM {self.keyspace}.courses_by_status
            WHERE status = ? LIMIT ?
        """)
        self._insert_by_creator = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.courses_by_creator
            (creator_id, created_at, course_id) VALUES (?, ?, ?)
        """)
        self._delete_by_creator = self.session.prepare(f"""
            DELETE FROM {self.keyspace}.courses_by_creator
            WHERE creator_id = ? AND created_at = ? AND course_id = ?
        """)
        self._list_by_creator = self.session.prepare(f"""
            SELECT course_id FROM {self.keyspace}.courses_by_creator
            WHERE creator_id = ? LIMIT ?
        """)

    def _course_params(self, course: Course) -> list:
        return [
            course.id,
            course.title,
            course.description,
            course.category_id,
            course.thumbnail_url,
            course.status,
            course.course_type,
            course.registration_start,
            course.registration_end,
            course.end_date,
            course.creator_id,
            course.created_at,
            course.updated_at,
        ]

    async def get(self, course_id: UUID) -> Course | None:
        """Get course by ID."""
        result = await self.session.aexecute(self._get_by_id, [course_id])
        row = result.one()
        return Course.from_row(row) if row else None

    async def insert(self, course: Course) -> None:
        """Write a new course and its lookup rows."""
        batch = BatchStatement(batch_type=BatchType.LOGGED)
        batch.add(self._upsert, self._course_params(course))
        batch.add(
            self._insert_by_status, [course.status, course.created_at, course.id]
        )
        batch.add(
            self._insert_by_creator,
            [course.creator_id, course.created_at, course.id],
        )
        await self.session.aexecute(batch)

    async def update(self, course: Course, previous_status: str) -> None:
        """Rewrite a course, moving its status lookup row when status changed."""
        batch = BatchStatement(batch_type=BatchType.LOGGED)
        batch.add(self._upsert, self._course_params(course))
        if previous_status != course.status:
            batch.add(
                self._delete_by_status,
                [previous_status, course.created_at, course.id],
            )
            batch.add(
                self._insert_by_status,
                [course.status, course.created_at, course.id],
            )
        await self.session.aexecute(batch)

    async def delete(self, course: Course) -> None:
        """Delete course row and lookup rows."""
        batch = BatchStatement(batch_type=BatchType.LOGGED)
        batch.add(self._delete, [course.id])
        batch.add(
            self._delete_by_status, [course.status, course.created_at, course.id]
        )
        batch.add(
            self._delete_by_creator,
            [course.creator_id, course.created_at, course.id],
        )
        await self.session.aexecute(batch)

    async def _resolve(self, rows) -> list[Course]:
        courses = []
        for row in rows:
            course = await self.get(row.course_id)
            if course:
                courses.append(course)
        return courses

    async def list_by_status(self, status: str, limit: int = 50) -> list[Course]:
        """List courses with a status, newest first."""
        rows = await self.session.aexecute(self._list_by_status, [status, limit])
        return await self._resolve(rows)

    async def list_by_creator(self, creator_id: UUID, limit: int = 50) -> list[Course]:
        """List courses owned by an instructor, newest first."""
        rows = await self.session.aexecute(self._list_by_creator, [creator_id, limit])
        return await self._resolve(rows)


class LessonRepository:
    """Lesson rows plus the ordered per-course copy."""

    def __init__(self, session: "Session", keyspace: str):
        """Initialize with Cassandra session."""
        self.session = session
        self.keyspace = keyspace
        self._prepare_statements()

    def _prepare_statements(self) -> None:
        """Prepare CQL statements."""
        self._get_by_id = self.session.prepare(
            f"SELECT * FROM {self.keyspace}.lessons WHERE id = ?"
        )
        self._upsert = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.lessons
            (id, course_id, title, description, lesson_type, content_url,
             position, total_duration_seconds, total_pages, created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        """)
        self._delete = self.session.prepare(
            f"DELETE FROM {self.keyspace}.lessons WHERE id = ?"
        )

        # Ordered listing
        self._list_by_course = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.lessons_by_course WHERE course_id = ?
        """)
        self._max_position = self.session.prepare(f"""
            SELECT position FROM {self.keyspace}.lessons_by_course
            WHERE course_id = ? ORDER BY position DESC LIMIT 1
        """)
        self._upsert_by_course = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.lessons_by_course
            (course_id, position, lesson_id, title, description, lesson_type,
             content_url, total_duration_seconds, total_pages, created_at,
             updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        """)
        self._delete_by_course = self.session.prepare(f"""
            DELETE FROM {self.keyspace}.lessons_by_course
            WHERE course_id = ? AND position = ? AND lesson_id = ?
        """)
        self._delete_course_partition = self.session.prepare(f"""
            DELETE FROM {self.keyspace}.lessons_by_course WHERE course_id = ?
        """)

    def _add_upserts(self, batch: BatchStatement, lesson: Lesson) -> None:
        batch.add(
            self._upsert,
            [
                lesson.id,
                lesson.course_id,
                lesson.title,
                lesson.description,
                lesson.lesson_type,
                lesson.content_url,
                lesson.position,
                lesson.total_duration_seconds,
                lesson.total_pages,
                lesson.created_at,
                lesson.updated_at,
            ],
        )
        batch.add(
            self._upsert_by_course,
            [
                lesson.course_id,
                lesson.position,
                lesson.id,
                lesson.title,
                lesson.description,
                lesson.lesson_type,
                lesson.content_url,
                lesson.total_duration_seconds,
                lesson.total_pages,
                lesson.created_at,
                lesson.updated_at,
            ],
        )

    async def get(self, lesson_id: UUID) -> Lesson | None:
        """Get lesson by ID."""
        result = await self.session.aexecute(self._get_by_id, [lesson_id])
        row = result.one()
        return Lesson.from_row(row) if row else None

    async def list_by_course(self, course_id: UUID) -> list[Lesson]:
        """List lessons ascending by position, ties by lesson id."""
        rows = await self.session.aexecute(self._list_by_course, [course_id])
        return [Lesson.from_row(row) for row in rows]

    async def max_position(self, course_id: UUID) -> int | None:
        """Highest position in the course, None when it has no lessons."""
        result = await self.session.aexecute(self._max_position, [course_id])
        row = result.one()
        return row.position if row else None

    async def save(self, lesson: Lesson) -> None:
        """Insert or rewrite a lesson at its current position."""
        batch = BatchStatement(batch_type=BatchType.LOGGED)
        self._add_upserts(batch, lesson)
        await self.session.aexecute(batch)

    async def delete(self, lesson: Lesson) -> None:
        """Delete lesson row and its ordered copy."""
        batch = BatchStatement(batch_type=BatchType.LOGGED)
        batch.add(self._delete, [lesson.id])
        batch.add(self._delete_by_course, [lesson.course_id, lesson.position, lesson.id])
        await self.session.aexecute(batch)

    async def save_positions(self, before: list[Lesson], after: list[Lesson]) -> None:
        """Move lessons from their ``before`` positions to their ``after`` ones.

        Rows whose (position, lesson_id) key survives are rewritten, not
        deleted, since a delete and an insert of one key in the same batch
        share a timestamp and the delete would win.
        """
        new_keys = {(lesson.position, lesson.id) for lesson in after}
        batch = BatchStatement(batch_type=BatchType.LOGGED)
        for lesson in before:
            if (lesson.position, lesson.id) not in new_keys:
                batch.add(
                    self._delete_by_course,
                    [lesson.course_id, lesson.position, lesson.id],
                )
        for lesson in after:
            self._add_upserts(batch, lesson)
        await self.session.aexecute(batch)

    async def delete_by_course(self, course_id: UUID) -> list[Lesson]:
        """Delete every lesson of a course. Returns the deleted lessons."""
        lessons = await self.list_by_course(course_id)
        for lesson in lessons:
            await self.session.aexecute(self._delete, [lesson.id])
        await self.session.aexecute(self._delete_course_partition, [course_id])
        return lessons
