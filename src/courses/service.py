"""Course catalog service layer.

Business logic for:
- Course CRUD with automatic closing after the end date
- Lesson CRUD, ordering and reordering
- Lesson extents (YouTube durations, PDF page counts)
- Cascade deletes into enrollments and progress
"""

from datetime import UTC, datetime
from typing import TYPE_CHECKING
from uuid import UUID

import structlog

from src.courses.models import Course, CourseStatus, Lesson, LessonType
from src.courses.schemas import (
    CreateCourseRequest,
    CreateLessonRequest,
    UpdateCourseRequest,
    UpdateLessonRequest,
)
from src.media.service import count_pdf_pages
from src.progress.policy import recompute_enrollment


if TYPE_CHECKING:
    from src.auth.schemas import UserResponse
    from src.courses.repository import CourseRepository, LessonRepository
    from src.media.service import YouTubeClient
    from src.progress.repository import EnrollmentRepository, LessonProgressRepository

logger = structlog.get_logger(__name__)


# ==============================================================================
# Custom Exceptions
# ==============================================================================


class CourseError(Exception):
    """Base course error."""

    def __init__(self, message: str, code: str = "course_error"):
        self.message = message
        self.code = code
        super().__init__(message)


class CourseNotFoundError(CourseError):
    """Course not found."""

    def __init__(self, message: str = "Curso nao encontrado"):
        super().__init__(message, "course_not_found")


class LessonNotFoundError(CourseError):
    """Lesson not found."""

    def __init__(self, message: str = "Aula nao encontrada"):
        super().__init__(message, "lesson_not_found")


class InvalidReorderError(CourseError):
    """Reorder list is not exactly the course's lesson set."""

    def __init__(
        self, message: str = "Lista de IDs nao corresponde as aulas do curso"
    ):
        super().__init__(message, "invalid_reorder")


class InvalidContentError(CourseError):
    """Content is invalid for the lesson type."""

    def __init__(self, message: str = "Conteudo invalido para o tipo de aula"):
        super().__init__(message, "invalid_content")


class NotOwnerError(CourseError):
    """User does not own the course."""

    def __init__(self, message: str = "Voce nao e o responsavel por este curso"):
        super().__init__(message, "not_owner")


# ==============================================================================
# Course Service
# ==============================================================================


class CourseService:
    """Service for courses and their ordered lessons."""

    def __init__(
        self,
        courses: "CourseRepository",
        lessons: "LessonRepository",
        progress: "LessonProgressRepository",
        enrollments: "EnrollmentRepository",
        youtube: "YouTubeClient | None" = None,
    ):
        self.courses = courses
        self.lessons = lessons
        self.progress = progress
        self.enrollments = enrollments
        self.youtube = youtube

    # ==========================================================================
    # Courses
    # ==========================================================================

    async def create_course(self, data: CreateCourseRequest, creator_id: UUID) -> Course:
        """Create a new course owned by ``creator_id``."""
        course = Course(
            title=data.title,
            description=data.description,
            category_id=data.category_id,
            thumbnail_url=data.thumbnail_url,
            status=data.status.value,
            course_type=data.course_type.value,
            registration_start=data.registration_start,
            registration_end=data.registration_end,
            end_date=data.end_date,
            creator_id=creator_id,
        )
        await self.courses.insert(course)
        logger.info("course_created", course_id=str(course.id), status=course.status)
        return course

    async def get_course(self, course_id: UUID) -> Course:
        """Get course by ID, closing it first when its end date has passed.

        Raises:
            CourseNotFoundError: If course doesn't exist
        """
        course = await self.courses.get(course_id)
        if not course:
            raise CourseNotFoundError

        now = datetime.now(UTC)
        if not course.is_closed and course.has_ended(now):
            previous_status = course.status
            course.status = CourseStatus.CLOSED.value
            course.updated_at = now
            await self.courses.update(course, previous_status)
            logger.info("course_auto_closed", course_id=str(course.id))

        return course

    def is_owner(self, course: Course, user: "UserResponse") -> bool:
        """Whether the user owns the course or is admin."""
        return user.is_admin or str(user.id) == str(course.creator_id)

    def ensure_owner(self, course: Course, user: "UserResponse") -> None:
        """Raise NotOwnerError unless the user owns the course or is admin."""
        if not self.is_owner(course, user):
            raise NotOwnerError

    async def list_public_courses(self, limit: int = 50) -> list[Course]:
        """List public courses, newest first."""
        return await self.courses.list_by_status(CourseStatus.PUBLIC.value, limit)

    async def list_courses_by_creator(
        self, creator_id: UUID, limit: int = 50
    ) -> list[Course]:
        """List the courses of an instructor, newest first."""
        return await self.courses.list_by_creator(creator_id, limit)

    async def update_course(self, course_id: UUID, data: UpdateCourseRequest) -> Course:
        """Update course fields that were provided.

        Raises:
            CourseNotFoundError: If course doesn't exist
        """
        course = await self.get_course(course_id)
        previous_status = course.status

        if data.title is not None:
            course.title = data.title.strip()
        if data.description is not None:
            course.description = data.description
        if data.category_id is not None:
            course.category_id = data.category_id
        if data.thumbnail_url is not None:
            course.thumbnail_url = data.thumbnail_url
        if data.status is not None:
            course.status = data.status.value
        if data.course_type is not None:
            course.course_type = data.course_type.value
        if data.registration_start is not None:
            course.registration_start = data.registration_start
        if data.registration_end is not None:
            course.registration_end = data.registration_end
        if data.end_date is not None:
            course.end_date = data.end_date

        course.updated_at = datetime.now(UTC)
        await self.courses.update(course, previous_status)
        logger.info("course_updated", course_id=str(course.id), status=course.status)
        return course

    async def delete_course(self, course_id: UUID) -> None:
        """Delete a course with its lessons, enrollments and progress.

        Raises:
            CourseNotFoundError: If course doesn't exist
        """
        course = await self.courses.get(course_id)
        if not course:
            raise CourseNotFoundError

        enrollments = await self.enrollments.list_by_course(course_id)
        for enrollment in enrollments:
            await self.progress.delete_for_course(enrollment.user_id, course_id)
            await self.enrollments.delete(course_id, enrollment.user_id)

        lessons = await self.lessons.delete_by_course(course_id)
        await self.courses.delete(course)

        logger.info(
            "course_deleted",
            course_id=str(course_id),
            lessons_deleted=len(lessons),
            enrollments_deleted=len(enrollments),
        )

    # ==========================================================================
    # Lesson catalog
    # ==========================================================================

    async def list_lessons(self, course_id: UUID) -> list[Lesson]:
        """Lessons of a course ascending by position, ties by lesson id."""
        lessons = await self.lessons.list_by_course(course_id)
        return sorted(lessons, key=lambda lesson: (lesson.position, str(lesson.id)))

    async def next_order_position(self, course_id: UUID) -> int:
        """``max(position) + 1``, or 1 for a course without lessons."""
        highest = await self.lessons.max_position(course_id)
        return 1 if highest is None else highest + 1

    async def get_lesson(self, lesson_id: UUID) -> Lesson:
        """Get lesson by ID.

        Raises:
            LessonNotFoundError: If lesson doesn't exist
        """
        lesson = await self.lessons.get(lesson_id)
        if not lesson:
            raise LessonNotFoundError
        return lesson

    async def reorder_lessons(
        self, course_id: UUID, lesson_ids: list[UUID]
    ) -> list[Lesson]:
        """Assign positions 1..N following ``lesson_ids``.

        The list must hold every lesson of the course exactly once.

        Raises:
            InvalidReorderError: On omissions, extras or duplicates
        """
        current = await self.lessons.list_by_course(course_id)
        by_id = {lesson.id: lesson for lesson in current}

        if len(lesson_ids) != len(set(lesson_ids)) or set(lesson_ids) != set(by_id):
            raise InvalidReorderError

        before = [Lesson(**lesson.to_dict()) for lesson in current]
        now = datetime.now(UTC)
        after = []
        for position, lesson_id in enumerate(lesson_ids, start=1):
            lesson = by_id[lesson_id]
            if lesson.position != position:
                lesson.position = position
                lesson.updated_at = now
            after.append(lesson)

        await self.lessons.save_positions(before, after)
        logger.info("lessons_reordered", course_id=str(course_id), count=len(after))
        return after

    async def create_lesson(self, course_id: UUID, data: CreateLessonRequest) -> Lesson:
        """Create a lesson at the given or next free position.

        Raises:
            CourseNotFoundError: If course doesn't exist
        """
        await self.get_course(course_id)

        position = data.position or await self.next_order_position(course_id)
        lesson = Lesson(
            course_id=course_id,
            title=data.title,
            description=data.description,
            lesson_type=data.lesson_type.value,
            content_url=data.content_url,
            position=position,
            total_duration_seconds=data.total_duration_seconds,
            total_pages=data.total_pages,
        )
        await self._fill_video_duration(lesson)

        await self.lessons.save(lesson)
        logger.info(
            "lesson_created",
            lesson_id=str(lesson.id),
            course_id=str(course_id),
            position=position,
            lesson_type=lesson.lesson_type,
        )
        return lesson

    async def update_lesson(self, lesson_id: UUID, data: UpdateLessonRequest) -> Lesson:
        """Update lesson fields that were provided.

        Raises:
            LessonNotFoundError: If lesson doesn't exist
            InvalidContentError: If the merged lesson breaks its type rules
        """
        lesson = await self.get_lesson(lesson_id)
        url_changed = False

        if data.title is not None:
            lesson.title = data.title.strip()
        if data.description is not None:
            lesson.description = data.description
        if data.lesson_type is not None:
            lesson.lesson_type = data.lesson_type.value
        if data.content_url is not None:
            url_changed = data.content_url != lesson.content_url
            lesson.content_url = data.content_url
        if data.total_duration_seconds is not None:
            if not lesson.is_video:
                raise InvalidContentError("Aulas do tipo PDF nao possuem duracao")
            lesson.total_duration_seconds = data.total_duration_seconds
        elif url_changed and lesson.is_video:
            lesson.total_duration_seconds = None
        if data.total_pages is not None:
            if not lesson.is_pdf:
                raise InvalidContentError(
                    "Aulas do tipo VIDEO nao possuem numero de paginas"
                )
            lesson.total_pages = data.total_pages

        if lesson.is_video and not lesson.content_url:
            raise InvalidContentError(
                "URL do video e obrigatoria para aulas do tipo VIDEO"
            )

        lesson.normalize_extent()
        await self._fill_video_duration(lesson)
        lesson.updated_at = datetime.now(UTC)

        await self.lessons.save(lesson)
        logger.info("lesson_updated", lesson_id=str(lesson.id))
        return lesson

    async def set_pdf_pages_from_file(self, lesson_id: UUID, data: bytes) -> Lesson:
        """Store the page count of an uploaded PDF as the lesson extent.

        Raises:
            LessonNotFoundError: If lesson doesn't exist
            InvalidContentError: If the lesson is not a PDF lesson
            InvalidPdfError: If the file is not a readable PDF
        """
        lesson = await self.get_lesson(lesson_id)
        if not lesson.is_pdf:
            raise InvalidContentError("A aula nao e do tipo PDF")

        lesson.total_pages = count_pdf_pages(data)
        lesson.updated_at = datetime.now(UTC)
        await self.lessons.save(lesson)
        logger.info(
            "lesson_pdf_pages_set", lesson_id=str(lesson.id), pages=lesson.total_pages
        )
        return lesson

    async def delete_lesson(self, lesson_id: UUID) -> int:
        """Delete a lesson and every progress record on it.

        Every enrollment of the course is recomputed against the remaining
        lessons, so removing the last unfinished lesson completes the course.

        Returns:
            Number of progress records deleted

        Raises:
            LessonNotFoundError: If lesson doesn't exist
        """
        lesson = await self.get_lesson(lesson_id)
        deleted = await self.progress.delete_for_lesson(lesson_id)
        await self.lessons.delete(lesson)
        refreshed = await self._refresh_enrollments(lesson.course_id)

        logger.info(
            "lesson_deleted",
            lesson_id=str(lesson_id),
            course_id=str(lesson.course_id),
            progress_deleted=deleted,
            enrollments_refreshed=refreshed,
        )
        return deleted

    async def _refresh_enrollments(self, course_id: UUID) -> int:
        lessons = await self.list_lessons(course_id)
        enrollments = await self.enrollments.list_by_course(course_id)
        now = datetime.now(UTC)
        for enrollment in enrollments:
            records = await self.progress.list_for_course(
                enrollment.user_id, course_id
            )
            progress_by_lesson = {p.lesson_id: p for p in records}
            recompute_enrollment(enrollment, lessons, progress_by_lesson, now)
            await self.enrollments.save(enrollment)
        return len(enrollments)

    async def _fill_video_duration(self, lesson: Lesson) -> None:
        if (
            lesson.lesson_type != LessonType.VIDEO.value
            or lesson.total_duration_seconds is not None
            or self.youtube is None
            or not self.youtube.is_youtube_url(lesson.content_url)
        ):
            return
        lesson.total_duration_seconds = await self.youtube.get_video_duration_seconds(
            lesson.content_url
        )
