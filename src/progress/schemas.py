"""Pydantic schemas for progress tracking and enrollments.

Request and response models for:
- Progress updates and manual completion
- Enrollment management
- Learning views (course page, lesson content, dashboard)

Every ``progress_percent`` is the weighted completion measure. The
count-based measure only appears as ``count_based_percent``.
"""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from src.courses.models import CourseStatus, LessonType
from src.progress.calculator import count_based_percent
from src.progress.models import Enrollment, LearningStatus, LessonProgress


# ==============================================================================
# Progress Schemas
# ==============================================================================


class UpdateProgressRequest(BaseModel):
    """Progress event from the player (video time or PDF page)."""

    current_time_seconds: int | None = Field(
        None, ge=0, description="Current video position in seconds"
    )
    current_page: int | None = Field(None, ge=0, description="Current PDF page")
    completed: bool = Field(False, description="Mark the lesson as completed")


class LessonProgressResponse(BaseModel):
    """Lesson progress response."""

    model_config = ConfigDict(from_attributes=True)

    lesson_id: UUID
    course_id: UUID
    is_completed: bool
    current_time_seconds: int | None = None
    current_page: int | None = None
    last_update: datetime | None = None

    @classmethod
    def from_entity(cls, entity: LessonProgress) -> "LessonProgressResponse":
        """Create response from entity."""
        return cls(
            lesson_id=entity.lesson_id,
            course_id=entity.course_id,
            is_completed=entity.is_completed,
            current_time_seconds=entity.current_time_seconds,
            current_page=entity.current_page,
            last_update=entity.last_update,
        )

    @classmethod
    def not_started(cls, lesson_id: UUID, course_id: UUID) -> "LessonProgressResponse":
        """Response for a lesson the student never opened."""
        return cls(lesson_id=lesson_id, course_id=course_id, is_completed=False)


# ==============================================================================
# Enrollment Schemas
# ==============================================================================


class EnrollRequest(BaseModel):
    """Self enrollment request."""

    course_id: UUID = Field(..., description="Course UUID")


class AssignStudentsRequest(BaseModel):
    """Instructor request to enroll students in a course."""

    student_ids: list[UUID] = Field(..., min_length=1, description="Student UUIDs")


class EnrollmentResponse(BaseModel):
    """Enrollment response."""

    model_config = ConfigDict(from_attributes=True)

    course_id: UUID
    user_id: UUID
    learning_status: LearningStatus
    progress_percent: float = Field(description="Weighted completion, 0-100")
    lessons_completed: int
    lessons_total: int
    count_based_percent: float = Field(description="Completed lessons share, 0-100")
    is_mandatory: bool
    enrolled_at: datetime
    updated_at: datetime | None = None

    @classmethod
    def from_entity(cls, entity: Enrollment) -> "EnrollmentResponse":
        """Create response from entity."""
        return cls(
            course_id=entity.course_id,
            user_id=entity.user_id,
            learning_status=LearningStatus(entity.learning_status),
            progress_percent=round(entity.progress_percent, 2),
            lessons_completed=entity.lessons_completed,
            lessons_total=entity.lessons_total,
            count_based_percent=round(
                count_based_percent(entity.lessons_completed, entity.lessons_total), 2
            ),
            is_mandatory=entity.is_mandatory,
            enrolled_at=entity.enrolled_at,
            updated_at=entity.updated_at,
        )


class EnrollmentListResponse(BaseModel):
    """Enrollment list response."""

    items: list[EnrollmentResponse]
    total: int


class AssignStudentsResponse(BaseModel):
    """Result of assigning students to a course."""

    enrolled: list[EnrollmentResponse]
    skipped: list[UUID] = Field(description="Students that were already enrolled")


# ==============================================================================
# Learning Views
# ==============================================================================


class LessonAccessResponse(BaseModel):
    """Lesson entry in a learning sidebar."""

    id: UUID
    title: str
    lesson_type: LessonType
    position: int
    total_duration_seconds: int | None = None
    total_pages: int | None = None
    is_completed: bool
    is_locked: bool


class CourseLearningViewResponse(BaseModel):
    """Course page as seen by an enrolled student."""

    course_id: UUID
    title: str
    description: str | None = None
    status: CourseStatus
    is_course_closed: bool
    learning_status: LearningStatus
    progress_percent: float = Field(description="Weighted completion, 0-100")
    lessons_completed: int
    lessons_total: int
    count_based_percent: float
    lessons: list[LessonAccessResponse]


class LessonContentResponse(BaseModel):
    """Content page of an unlocked lesson."""

    lesson_id: UUID
    course_id: UUID
    title: str
    description: str | None = None
    lesson_type: LessonType
    content_url: str | None = None
    total_duration_seconds: int | None = None
    total_pages: int | None = None
    progress: LessonProgressResponse
    previous_lesson_id: UUID | None = None
    next_lesson_id: UUID | None = None
    lessons: list[LessonAccessResponse]


class DashboardCourseResponse(BaseModel):
    """One course on the student dashboard."""

    course_id: UUID
    title: str
    learning_status: LearningStatus
    progress_percent: float
    lessons_completed: int
    lessons_total: int
    current_lesson_id: UUID | None = Field(
        None, description="First lesson not completed yet, in course order"
    )
    current_lesson_title: str | None = None


class DashboardResponse(BaseModel):
    """Student dashboard."""

    total_courses: int
    completed_courses: int
    overall_progress: float = Field(description="Mean weighted percent, 1 decimal")
    courses: list[DashboardCourseResponse]
