"""Pydantic schemas for the course catalog.

Request and response models for:
- Courses: CRUD operations
- Lessons: CRUD operations
- Reordering
"""

from datetime import datetime
from typing import Self
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, model_validator

from src.courses.models import Course, CourseStatus, CourseType, Lesson, LessonType


# ==============================================================================
# Course Schemas
# ==============================================================================


class CreateCourseRequest(BaseModel):
    """Course creation request."""

    title: str = Field(..., min_length=3, max_length=200, description="Course title")
    description: str | None = Field(
        None, max_length=5000, description="Course description"
    )
    category_id: UUID | None = Field(None, description="Category reference")
    thumbnail_url: str | None = Field(
        None, max_length=500, description="Thumbnail image URL"
    )
    status: CourseStatus = Field(CourseStatus.DRAFT, description="Publication status")
    course_type: CourseType = Field(CourseType.OPEN, description="Scheduling type")
    registration_start: datetime | None = None
    registration_end: datetime | None = None
    end_date: datetime | None = None

    @model_validator(mode="after")
    def validate_registration_window(self) -> Self:
        """Registration window must not end before it starts."""
        if (
            self.registration_start
            and self.registration_end
            and self.registration_end < self.registration_start
        ):
            raise ValueError("Fim das inscricoes deve ser posterior ao inicio")
        return self


class UpdateCourseRequest(BaseModel):
    """Course update request."""

    title: str | None = Field(
        None, min_length=3, max_length=200, description="Course title"
    )
    description: str | None = Field(
        None, max_length=5000, description="Course description"
    )
    category_id: UUID | None = None
    thumbnail_url: str | None = Field(
        None, max_length=500, description="Thumbnail image URL"
    )
    status: CourseStatus | None = Field(None, description="Publication status")
    course_type: CourseType | None = None
    registration_start: datetime | None = None
    registration_end: datetime | None = None
    end_date: datetime | None = None


class CourseResponse(BaseModel):
    """Course response."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    title: str
    description: str | None = None
    category_id: UUID | None = None
    thumbnail_url: str | None = None
    status: CourseStatus
    course_type: CourseType
    registration_start: datetime | None = None
    registration_end: datetime | None = None
    end_date: datetime | None = None
    creator_id: UUID
    created_at: datetime
    updated_at: datetime | None = None
    lesson_count: int = 0

    @classmethod
    def from_entity(cls, course: Course, lesson_count: int = 0) -> "CourseResponse":
        """Create response from entity."""
        return cls(**course.to_dict(), lesson_count=lesson_count)


class CourseListResponse(BaseModel):
    """Course list response."""

    items: list[CourseResponse]
    total: int
    has_more: bool


# ==============================================================================
# Lesson Schemas
# ==============================================================================


class CreateLessonRequest(BaseModel):
    """Lesson creation request.

    Validation rules by lesson_type:
    - VIDEO: content_url is required, total_pages is not allowed
    - PDF: total_duration_seconds is not allowed

    A video duration left empty is looked up on YouTube when possible.
    """

    title: str = Field(..., min_length=3, max_length=200, description="Lesson title")
    description: str | None = Field(
        None, max_length=5000, description="Lesson description"
    )
    lesson_type: LessonType = Field(..., description="Type of content")
    content_url: str | None = Field(None, max_length=1000, description="Content URL")
    position: int | None = Field(
        None, ge=1, description="Position (next free position if None)"
    )
    total_duration_seconds: int | None = Field(
        None, ge=0, description="Video duration in seconds"
    )
    total_pages: int | None = Field(None, ge=0, description="PDF page count")

    @model_validator(mode="after")
    def validate_extent_by_type(self) -> Self:
        """Each lesson type carries only its own extent."""
        if self.lesson_type == LessonType.VIDEO:
            if not self.content_url:
                raise ValueError("URL do video e obrigatoria para aulas do tipo VIDEO")
            if self.total_pages is not None:
                raise ValueError("Aulas do tipo VIDEO nao possuem numero de paginas")
        if self.lesson_type == LessonType.PDF and self.total_duration_seconds is not None:
            raise ValueError("Aulas do tipo PDF nao possuem duracao")
        return self


class UpdateLessonRequest(BaseModel):
    """Lesson update request.

    Extent/type consistency is checked in the service layer since partial
    updates must be merged with the stored lesson first.
    """

    title: str | None = Field(
        None, min_length=3, max_length=200, description="Lesson title"
    )
    description: str | None = Field(
        None, max_length=5000, description="Lesson description"
    )
    lesson_type: LessonType | None = None
    content_url: str | None = Field(None, max_length=1000, description="Content URL")
    total_duration_seconds: int | None = Field(None, ge=0)
    total_pages: int | None = Field(None, ge=0)


class LessonResponse(BaseModel):
    """Lesson response."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    course_id: UUID
    title: str
    description: str | None = None
    lesson_type: LessonType
    content_url: str | None = None
    position: int
    total_duration_seconds: int | None = None
    total_pages: int | None = None
    created_at: datetime
    updated_at: datetime | None = None

    @classmethod
    def from_entity(
        cls, lesson: Lesson, include_content: bool = True
    ) -> "LessonResponse":
        """Create response from entity.

        Without ``include_content`` the content URL is left out; students
        reach it through the learning endpoints, which check the unlock rule.
        """
        data = lesson.to_dict()
        if not include_content:
            data["content_url"] = None
        return cls(**data)


class LessonListResponse(BaseModel):
    """Ordered lessons of a course."""

    items: list[LessonResponse]
    total: int


class ReorderRequest(BaseModel):
    """Request to reorder the lessons of a course."""

    items: list[UUID] = Field(
        ..., min_length=1, description="Every lesson id of the course, in new order"
    )


# ==============================================================================
# Message Response
# ==============================================================================


class MessageResponse(BaseModel):
    """Generic message response."""

    message: str
