"""Database models for student progress tracking.

Cassandra table definitions for:
- Lesson progress: Consumption position and completion per student and lesson
- Enrollments: Course enrollment with learning status and weighted progress
- Lookup tables: Enrollments by student

Architecture: Dual-write pattern for enrollments so they can be read both
from the course side and from the student side.
"""

from datetime import UTC, datetime
from enum import Enum
from typing import Any
from uuid import UUID


class LearningStatus(str, Enum):
    """Enrollment learning status. Moves forward only."""

    NOT_STARTED = "NOT_STARTED"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"


LEARNING_STATUS_ORDER: dict[str, int] = {
    LearningStatus.NOT_STARTED.value: 0,
    LearningStatus.IN_PROGRESS.value: 1,
    LearningStatus.COMPLETED.value: 2,
}


# ==============================================================================
# Helper Functions
# ==============================================================================


def ensure_utc_aware(dt: datetime | None) -> datetime | None:
    """Ensure datetime is UTC-aware (Cassandra returns naive datetimes)."""
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)
    return dt


# ==============================================================================
# CQL Table Definitions
# ==============================================================================

# Progresso de aula por aluno
# Partition key: (user_id, course_id) para ler o progresso do curso inteiro
LESSON_PROGRESS_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.lesson_progress (
    user_id UUID,
    course_id UUID,
    lesson_id UUID,
    is_completed BOOLEAN,
    current_time_seconds INT,
    current_page INT,
    last_update TIMESTAMP,
    PRIMARY KEY ((user_id, course_id), lesson_id)
)
"""

# Used to cascade lesson deletes
LESSON_PROGRESS_BY_LESSON_INDEX_CQL = """
CREATE INDEX IF NOT EXISTS lesson_progress_lesson_idx
ON {keyspace}.lesson_progress (lesson_id)
"""

# Inscricoes - particionado por course_id
ENROLLMENTS_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.enrollments (
    course_id UUID,
    user_id UUID,
    learning_status TEXT,
    progress_percent DOUBLE,
    lessons_completed INT,
    lessons_total INT,
    is_mandatory BOOLEAN,
    enrolled_at TIMESTAMP,
    updated_at TIMESTAMP,
    PRIMARY KEY (course_id, user_id)
)
"""

# Lookup: cursos por aluno - particionado por user_id
ENROLLMENTS_BY_USER_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.enrollments_by_user (
    user_id UUID,
    course_id UUID,
    learning_status TEXT,
    progress_percent DOUBLE,
    lessons_completed INT,
    lessons_total INT,
    is_mandatory BOOLEAN,
    enrolled_at TIMESTAMP,
    updated_at TIMESTAMP,
    PRIMARY KEY (user_id, course_id)
)
"""

PROGRESS_TABLES_CQL = [
    LESSON_PROGRESS_TABLE_CQL,
    LESSON_PROGRESS_BY_LESSON_INDEX_CQL,
    ENROLLMENTS_TABLE_CQL,
    ENROLLMENTS_BY_USER_TABLE_CQL,
]


# ==============================================================================
# Entity Classes
# ==============================================================================


class LessonProgress:
    """Progress of one student on one lesson.

    Once ``is_completed`` is true the record is never changed again.

    Attributes:
        user_id: Student UUID
        course_id: Course UUID (partition key)
        lesson_id: Lesson UUID
        is_completed: Completion flag
        current_time_seconds: Furthest video position reached
        current_page: Furthest PDF page reached
        last_update: Last applied update
    """

    def __init__(
        self,
        user_id: UUID,
        course_id: UUID,
        lesson_id: UUID,
        is_completed: bool = False,
        current_time_seconds: int | None = None,
        current_page: int | None = None,
        last_update: datetime | None = None,
    ):
        self.user_id = user_id
        self.course_id = course_id
        self.lesson_id = lesson_id
        self.is_completed = is_completed
        self.current_time_seconds = current_time_seconds
        self.current_page = current_page
        self.last_update = ensure_utc_aware(last_update) or datetime.now(UTC)

    @classmethod
    def from_row(cls, row: Any) -> "LessonProgress":
        """Create LessonProgress instance from Cassandra row."""
        return cls(
            user_id=row.user_id,
            course_id=row.course_id,
            lesson_id=row.lesson_id,
            is_completed=bool(row.is_completed),
            current_time_seconds=row.current_time_seconds,
            current_page=row.current_page,
            last_update=row.last_update,
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "user_id": self.user_id,
            "course_id": self.course_id,
            "lesson_id": self.lesson_id,
            "is_completed": self.is_completed,
            "current_time_seconds": self.current_time_seconds,
            "current_page": self.current_page,
            "last_update": self.last_update,
        }

    def __repr__(self) -> str:
        state = "done" if self.is_completed else "open"
        return (
            f"<LessonProgress user={self.user_id} lesson={self.lesson_id} {state} "
            f"t={self.current_time_seconds} p={self.current_page}>"
        )


class Enrollment:
    """Course enrollment entity.

    Attributes:
        course_id: Course UUID
        user_id: Student UUID
        learning_status: NOT_STARTED, IN_PROGRESS or COMPLETED
        progress_percent: Weighted course completion (0-100)
        lessons_completed: Completed lessons of the course
        lessons_total: Lessons in the course at last recompute
        is_mandatory: Assigned by an instructor or admin
        enrolled_at: Enrollment timestamp
        updated_at: Last recompute timestamp
    """

    def __init__(
        self,
        course_id: UUID,
        user_id: UUID,
        learning_status: str = LearningStatus.NOT_STARTED.value,
        progress_percent: float = 0.0,
        lessons_completed: int = 0,
        lessons_total: int = 0,
        is_mandatory: bool = False,
        enrolled_at: datetime | None = None,
        updated_at: datetime | None = None,
    ):
        self.course_id = course_id
        self.user_id = user_id
        self.learning_status = learning_status
        self.progress_percent = progress_percent
        self.lessons_completed = lessons_completed
        self.lessons_total = lessons_total
        self.is_mandatory = is_mandatory
        self.enrolled_at = ensure_utc_aware(enrolled_at) or datetime.now(UTC)
        self.updated_at = ensure_utc_aware(updated_at)

    @property
    def is_completed(self) -> bool:
        """Check if course is completed."""
        return self.learning_status == LearningStatus.COMPLETED.value

    @classmethod
    def from_row(cls, row: Any) -> "Enrollment":
        """Create Enrollment from an ``enrollments`` or ``enrollments_by_user`` row."""
        return cls(
            course_id=row.course_id,
            user_id=row.user_id,
            learning_status=row.learning_status or LearningStatus.NOT_STARTED.value,
            progress_percent=row.progress_percent or 0.0,
            lessons_completed=row.lessons_completed or 0,
            lessons_total=row.lessons_total or 0,
            is_mandatory=bool(row.is_mandatory),
            enrolled_at=row.enrolled_at,
            updated_at=row.updated_at,
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "course_id": self.course_id,
            "user_id": self.user_id,
            "learning_status": self.learning_status,
            "progress_percent": self.progress_percent,
            "lessons_completed": self.lessons_completed,
            "lessons_total": self.lessons_total,
            "is_mandatory": self.is_mandatory,
            "enrolled_at": self.enrolled_at,
            "updated_at": self.updated_at,
        }

    def __repr__(self) -> str:
        return (
            f"<Enrollment user={self.user_id} course={self.course_id} "
            f"{self.learning_status} {self.progress_percent}%>"
        )
