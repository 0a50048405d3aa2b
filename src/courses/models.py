"""Database models for the course and lesson catalog.

Cassandra table definitions for:
- Courses: Main course table
- Lessons: Lessons by id
- Lookup tables: Lessons ordered per course, courses per creator and status

Architecture: lessons_by_course carries a full copy of each lesson clustered
by (position, lesson_id), so an ordered listing is a single partition read.
"""

from datetime import UTC, datetime
from enum import Enum
from typing import Any
from uuid import UUID, uuid4


class CourseStatus(str, Enum):
    """Course publication status."""

    DRAFT = "draft"  # Being authored
    PRIVATE = "private"  # Only assigned students
    PUBLIC = "public"  # Open for self enrollment
    CLOSED = "closed"  # Finished, content frozen


class CourseType(str, Enum):
    """Course scheduling type."""

    OPEN = "open"  # Enroll any time
    FIXED_TIME = "fixed_time"  # Enroll inside the registration window


class LessonType(str, Enum):
    """Lesson content type."""

    VIDEO = "video"
    PDF = "pdf"


# ==============================================================================
# CQL Table Definitions
# ==============================================================================

COURSE_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.courses (
    id UUID PRIMARY KEY,
    title TEXT,
    description TEXT,
    category_id UUID,
    thumbnail_url TEXT,
    status TEXT,
    course_type TEXT,
    registration_start TIMESTAMP,
    registration_end TIMESTAMP,
    end_date TIMESTAMP,
    creator_id UUID,
    created_at TIMESTAMP,
    updated_at TIMESTAMP
)
"""

COURSES_BY_STATUS_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.courses_by_status (
    status TEXT,
    created_at TIMESTAMP,
    course_id UUID,
    PRIMARY KEY (status, created_at, course_id)
) WITH CLUSTERING ORDER BY (created_at DESC, course_id ASC)
"""

COURSES_BY_CREATOR_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.courses_by_creator (
    creator_id UUID,
    created_at TIMESTAMP,
    course_id UUID,
    PRIMARY KEY (creator_id, created_at, course_id)
) WITH CLUSTERING ORDER BY (created_at DESC, course_id ASC)
"""

LESSON_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.lessons (
    id UUID PRIMARY KEY,
    course_id UUID,
    title TEXT,
    description TEXT,
    lesson_type TEXT,
    content_url TEXT,
    position INT,
    total_duration_seconds INT,
    total_pages INT,
    created_at TIMESTAMP,
    updated_at TIMESTAMP
)
"""

# Ties on position are broken by lesson_id
LESSONS_BY_COURSE_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.lessons_by_course (
    course_id UUID,
    position INT,
    lesson_id UUID,
    title TEXT,
    description TEXT,
    lesson_type TEXT,
    content_url TEXT,
    total_duration_seconds INT,
    total_pages INT,
    created_at TIMESTAMP,
    updated_at TIMESTAMP,
    PRIMARY KEY (course_id, position, lesson_id)
) WITH CLUSTERING ORDER BY (position ASC, lesson_id ASC)
"""

COURSES_TABLES_CQL = [
    COURSE_TABLE_CQL,
    COURSES_BY_STATUS_TABLE_CQL,
    COURSES_BY_CREATOR_TABLE_CQL,
    LESSON_TABLE_CQL,
    LESSONS_BY_COURSE_TABLE_CQL,
]


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
# Entity Classes
# ==============================================================================


class Course:
    """Course entity.

    Attributes:
        id: Unique identifier (UUID)
        title: Course title
        description: Course description
        category_id: Optional category reference
        thumbnail_url: Cover image URL
        status: Publication status (draft, private, public, closed)
        course_type: open or fixed_time
        registration_start: Start of the enrollment window (fixed_time only)
        registration_end: End of the enrollment window (fixed_time only)
        end_date: After this moment the course is closed
        creator_id: Instructor who owns the course
        created_at: Creation timestamp
        updated_at: Last update timestamp
    """

    def __init__(
        self,
        id: UUID | None = None,
        title: str = "",
        description: str | None = None,
        category_id: UUID | None = None,
        thumbnail_url: str | None = None,
        status: str = CourseStatus.DRAFT.value,
        course_type: str = CourseType.OPEN.value,
        registration_start: datetime | None = None,
        registration_end: datetime | None = None,
        end_date: datetime | None = None,
        creator_id: UUID | None = None,
        created_at: datetime | None = None,
        updated_at: datetime | None = None,
    ):
        self.id = id or uuid4()
        self.title = title.strip()
        self.description = description
        self.category_id = category_id
        self.thumbnail_url = thumbnail_url
        self.status = status
        self.course_type = course_type
        self.registration_start = ensure_utc_aware(registration_start)
        self.registration_end = ensure_utc_aware(registration_end)
        self.end_date = ensure_utc_aware(end_date)
        self.creator_id = creator_id
        self.created_at = ensure_utc_aware(created_at) or datetime.now(UTC)
        self.updated_at = ensure_utc_aware(updated_at)

    @property
    def is_closed(self) -> bool:
        return self.status == CourseStatus.CLOSED.value

    @property
    def is_public(self) -> bool:
        return self.status == CourseStatus.PUBLIC.value

    @property
    def is_fixed_time(self) -> bool:
        return self.course_type == CourseType.FIXED_TIME.value

    def has_ended(self, now: datetime) -> bool:
        """Check if the course end date has passed."""
        return self.end_date is not None and self.end_date < now

    def is_registration_open(self, now: datetime) -> bool:
        """Check the registration window (always open for open courses)."""
        if not self.is_fixed_time:
            return True
        if self.registration_start and now < self.registration_start:
            return False
        return not (self.registration_end and now > self.registration_end)

    @classmethod
    def from_row(cls, row: Any) -> "Course":
        """Create Course instance from Cassandra row."""
        return cls(
            id=row.id,
            title=row.title or "",
            description=row.description,
            category_id=row.category_id,
            thumbnail_url=row.thumbnail_url,
            status=row.status or CourseStatus.DRAFT.value,
            course_type=row.course_type or CourseType.OPEN.value,
            registration_start=row.registration_start,
            registration_end=row.registration_end,
            end_date=row.end_date,
            creator_id=row.creator_id,
            created_at=row.created_at,
            updated_at=row.updated_at,
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "category_id": self.category_id,
            "thumbnail_url": self.thumbnail_url,
            "status": self.status,
            "course_type": self.course_type,
            "registration_start": self.registration_start,
            "registration_end": self.registration_end,
            "end_date": self.end_date,
            "creator_id": self.creator_id,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }

    def __repr__(self) -> str:
        return f"<Course {self.id} {self.title!r} {self.status}>"


class Lesson:
    """Lesson entity.

    A lesson has one extent matching its type: ``total_duration_seconds`` for
    video lessons, ``total_pages`` for pdf lessons. The other one is always None.

    Attributes:
        id: Unique identifier (UUID)
        course_id: Owning course
        title: Lesson title
        description: Lesson description
        lesson_type: video or pdf
        content_url: Video URL or PDF location
        position: Order inside the course (1-based)
        total_duration_seconds: Video length
        total_pages: PDF page count
        created_at: Creation timestamp
        updated_at: Last update timestamp
    """

    def __init__(
        self,
        course_id: UUID,
        id: UUID | None = None,
        title: str = "",
        description: str | None = None,
        lesson_type: str = LessonType.VIDEO.value,
        content_url: str | None = None,
        position: int = 1,
        total_duration_seconds: int | None = None,
        total_pages: int | None = None,
        created_at: datetime | None = None,
        updated_at: datetime | None = None,
    ):
        self.id = id or uuid4()
        self.course_id = course_id
        self.title = title.strip()
        self.description = description
        self.lesson_type = lesson_type
        self.content_url = content_url
        self.position = position
        self.total_duration_seconds = total_duration_seconds
        self.total_pages = total_pages
        self.created_at = ensure_utc_aware(created_at) or datetime.now(UTC)
        self.updated_at = ensure_utc_aware(updated_at)
        self.normalize_extent()

    @property
    def is_video(self) -> bool:
        return self.lesson_type == LessonType.VIDEO.value

    @property
    def is_pdf(self) -> bool:
        return self.lesson_type == LessonType.PDF.value

    def normalize_extent(self) -> None:
        """Drop the extent that does not belong to the lesson type."""
        if self.is_video:
            self.total_pages = None
        elif self.is_pdf:
            self.total_duration_seconds = None

    @classmethod
    def from_row(cls, row: Any) -> "Lesson":
        """Create Lesson from a ``lessons`` or ``lessons_by_course`` row."""
        lesson_id = getattr(row, "lesson_id", None) or row.id
        return cls(
            id=lesson_id,
            course_id=row.course_id,
            title=row.title or "",
            description=row.description,
            lesson_type=row.lesson_type or LessonType.VIDEO.value,
            content_url=row.content_url,
            position=row.position if row.position is not None else 1,
            total_duration_seconds=row.total_duration_seconds,
            total_pages=row.total_pages,
            created_at=row.created_at,
            updated_at=row.updated_at,
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "id": self.id,
            "course_id": self.course_id,
            "title": self.title,
            "description": self.description,
            "lesson_type": self.lesson_type,
            "content_url": self.content_url,
            "position": self.position,
            "total_duration_seconds": self.total_duration_seconds,
            "total_pages": self.total_pages,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }

    def __repr__(self) -> str:
        return f"<Lesson {self.id} #{self.position} {self.lesson_type}>"
