"""Student progress tracking service layer.

Business logic for:
- Progress updates with monotonic positions and auto-completion
- Manual lesson completion
- Course enrollment management
- Sequential unlock enforcement and learning views
"""

from dataclasses import dataclass
from datetime import UTC, datetime
from typing import TYPE_CHECKING
from uuid import UUID

import structlog

from src.courses.models import Course, Lesson
from src.progress.calculator import (
    completed_lesson_count,
    count_based_percent,
    weighted_completion_percent,
)
from src.progress.models import Enrollment, LearningStatus, LessonProgress
from src.progress.policy import (
    LessonAccess,
    derive_lesson_access,
    find_access,
    recompute_enrollment,
)
from src.progress.schemas import (
    CourseLearningViewResponse,
    DashboardCourseResponse,
    DashboardResponse,
    LessonAccessResponse,
    LessonContentResponse,
    LessonProgressResponse,
)
from src.progress.tracker import VIDEO_END_TOLERANCE_SECONDS, apply_update


if TYPE_CHECKING:
    from src.courses.service import CourseService
    from src.progress.repository import EnrollmentRepository, LessonProgressRepository

logger = structlog.get_logger(__name__)


# ==============================================================================
# Custom Exceptions
# ==============================================================================


class ProgressError(Exception):
    """Base progress error."""

    def __init__(self, message: str, code: str = "progress_error"):
        self.message = message
        self.code = code
        super().__init__(message)


class NotEnrolledError(ProgressError):
    """User not enrolled in course."""

    def __init__(self, message: str = "Usuario nao inscrito no curso"):
        super().__init__(message, "not_enrolled")


class AlreadyEnrolledError(ProgressError):
    """User already enrolled."""

    def __init__(self, message: str = "Usuario ja inscrito no curso"):
        super().__init__(message, "already_enrolled")


class EnrollmentNotFoundError(ProgressError):
    """Enrollment not found."""

    def __init__(self, message: str = "Inscricao nao encontrada"):
        super().__init__(message, "enrollment_not_found")


class LessonLockedError(ProgressError):
    """Previous lesson not completed."""

    def __init__(
        self,
        message: str = "Aula bloqueada: conclua a aula anterior para continuar",
    ):
        super().__init__(message, "lesson_locked")


class CourseClosedError(ProgressError):
    """Course is closed for new progress."""

    def __init__(self, message: str = "Curso encerrado"):
        super().__init__(message, "course_closed")


class EnrollmentClosedError(ProgressError):
    """Course does not accept self enrollment right now."""

    def __init__(self, message: str = "Curso nao esta aberto para inscricoes"):
        super().__init__(message, "enrollment_closed")


class MandatoryEnrollmentError(ProgressError):
    """Student tried to drop an assigned course."""

    def __init__(
        self, message: str = "Inscricao obrigatoria nao pode ser cancelada pelo aluno"
    ):
        super().__init__(message, "mandatory_enrollment")


# ==============================================================================
# Helpers
# ==============================================================================


@dataclass
class LessonAccessContext:
    """Everything loaded while authorizing a student on a lesson."""

    lesson: Lesson
    course: Course
    enrollment: Enrollment
    lessons: list[Lesson]
    progress_by_lesson: dict[UUID, LessonProgress]
    accesses: list[LessonAccess]


def _access_to_response(access: LessonAccess) -> LessonAccessResponse:
    lesson = access.lesson
    return LessonAccessResponse(
        id=lesson.id,
        title=lesson.title,
        lesson_type=lesson.lesson_type,
        position=lesson.position,
        total_duration_seconds=lesson.total_duration_seconds,
        total_pages=lesson.total_pages,
        is_completed=access.is_completed,
        is_locked=access.is_locked,
    )


def _completed_ids(progress_by_lesson: dict[UUID, LessonProgress]) -> set[UUID]:
    return {lid for lid, p in progress_by_lesson.items() if p.is_completed}


# ==============================================================================
# Enrollment Service
# ==============================================================================


class EnrollmentService:
    """Service for course enrollments."""

    def __init__(
        self,
        course_service: "CourseService",
        enrollments: "EnrollmentRepository",
        progress: "LessonProgressRepository",
    ):
        self.course_service = course_service
        self.enrollments = enrollments
        self.progress = progress

    async def enroll(self, student_id: UUID, course_id: UUID) -> Enrollment:
        """Self enroll a student in a public course.

        Raises:
            CourseNotFoundError: If course doesn't exist
            EnrollmentClosedError: If the course is not public or the
                registration window of a fixed-time course is not open
            AlreadyEnrolledError: If student already enrolled
        """
        course = await self.course_service.get_course(course_id)
        if not course.is_public:
            raise EnrollmentClosedError

        now = datetime.now(UTC)
        if not course.is_registration_open(now):
            raise EnrollmentClosedError("Fora do periodo de inscricao do curso")

        enrollment = await self._create(course, student_id, is_mandatory=False, now=now)
        if enrollment is None:
            raise AlreadyEnrolledError
        return enrollment

    async def assign_students(
        self, course_id: UUID, student_ids: list[UUID]
    ) -> tuple[list[Enrollment], list[UUID]]:
        """Enroll students on behalf of an instructor (mandatory enrollments).

        Returns:
            Tuple of (created enrollments, ids of students already enrolled)

        Raises:
            CourseNotFoundError: If course doesn't exist
            CourseClosedError: If the course is closed
        """
        course = await self.course_service.get_course(course_id)
        if course.is_closed:
            raise CourseClosedError

        now = datetime.now(UTC)
        created: list[Enrollment] = []
        skipped: list[UUID] = []
        for student_id in dict.fromkeys(student_ids):
            enrollment = await self._create(course, student_id, is_mandatory=True, now=now)
            if enrollment is None:
                skipped.append(student_id)
            else:
                created.append(enrollment)

        logger.info(
            "students_assigned",
            course_id=str(course_id),
            enrolled=len(created),
            skipped=len(skipped),
        )
        return created, skipped

    async def _create(
        self,
        course: Course,
        student_id: UUID,
        is_mandatory: bool,
        now: datetime,
    ) -> Enrollment | None:
        lessons = await self.course_service.list_lessons(course.id)
        enrollment = Enrollment(
            course_id=course.id,
            user_id=student_id,
            learning_status=LearningStatus.NOT_STARTED.value,
            lessons_total=len(lessons),
            is_mandatory=is_mandatory,
            enrolled_at=now,
            updated_at=now,
        )
        if not await self.enrollments.insert_if_not_exists(enrollment):
            return None

        logger.info(
            "user_enrolled",
            user_id=str(student_id),
            course_id=str(course.id),
            is_mandatory=is_mandatory,
        )
        return enrollment

    async def get_enrollment(self, student_id: UUID, course_id: UUID) -> Enrollment:
        """Get enrollment by student and course.

        Raises:
            EnrollmentNotFoundError: If the student is not enrolled
        """
        enrollment = await self.enrollments.get(course_id, student_id)
        if not enrollment:
            raise EnrollmentNotFoundError
        return enrollment

    async def unenroll(
        self,
        student_id: UUID,
        course_id: UUID,
        requested_by_student: bool = True,
    ) -> None:
        """Remove an enrollment and the student's progress in the course.

        Raises:
            EnrollmentNotFoundError: If the student is not enrolled
            MandatoryEnrollmentError: If a student drops an assigned course
        """
        enrollment = await self.get_enrollment(student_id, course_id)
        if enrollment.is_mandatory and requested_by_student:
            raise MandatoryEnrollmentError

        await self.progress.delete_for_course(student_id, course_id)
        await self.enrollments.delete(course_id, student_id)
        logger.info("user_unenrolled", user_id=str(student_id), course_id=str(course_id))

    async def list_student_enrollments(self, student_id: UUID) -> list[Enrollment]:
        """Enrollments of a student, newest first."""
        return await self.enrollments.list_by_user(student_id)

    async def list_course_enrollments(self, course_id: UUID) -> list[Enrollment]:
        """Enrollments of a course (instructor view).

        Raises:
            CourseNotFoundError: If course doesn't exist
        """
        await self.course_service.get_course(course_id)
        return await self.enrollments.list_by_course(course_id)


# ==============================================================================
# Progress Service
# ==============================================================================


class ProgressService:
    """Service for lesson progress, unlocking and learning views."""

    def __init__(
        self,
        course_service: "CourseService",
        enrollments: "EnrollmentRepository",
        progress: "LessonProgressRepository",
        video_end_tolerance_seconds: int = VIDEO_END_TOLERANCE_SECONDS,
    ):
        self.course_service = course_service
        self.enrollments = enrollments
        self.progress = progress
        self.video_end_tolerance_seconds = video_end_tolerance_seconds

    # ==========================================================================
    # Access
    # ==========================================================================

    async def _load_course_state(
        self, student_id: UUID, course_id: UUID
    ) -> tuple[Course, Enrollment, list[Lesson], dict[UUID, LessonProgress]]:
        enrollment = await self.enrollments.get(course_id, student_id)
        if not enrollment:
            raise NotEnrolledError

        course = await self.course_service.get_course(course_id)
        lessons = await self.course_service.list_lessons(course_id)
        records = await self.progress.list_for_course(student_id, course_id)
        return course, enrollment, lessons, {p.lesson_id: p for p in records}

    async def authorize_lesson(
        self, student_id: UUID, lesson_id: UUID
    ) -> LessonAccessContext:
        """Check that a student may work on a lesson.

        Raises:
            LessonNotFoundError: If lesson doesn't exist
            NotEnrolledError: If the student is not enrolled in its course
            CourseClosedError: If the course is closed and the lesson not completed
            LessonLockedError: If the previous lesson is not completed
        """
        lesson = await self.course_service.get_lesson(lesson_id)
        course, enrollment, lessons, progress_by_lesson = await self._load_course_state(
            student_id, lesson.course_id
        )

        accesses = derive_lesson_access(
            lessons, _completed_ids(progress_by_lesson), course.is_closed
        )
        access = find_access(accesses, lesson_id)
        if access is not None and access.is_locked:
            logger.info(
                "lesson_access_denied",
                user_id=str(student_id),
                lesson_id=str(lesson_id),
                course_closed=course.is_closed,
            )
            if course.is_closed and not access.is_completed:
                raise CourseClosedError
            raise LessonLockedError

        return LessonAccessContext(
            lesson=lesson,
            course=course,
            enrollment=enrollment,
            lessons=lessons,
            progress_by_lesson=progress_by_lesson,
            accesses=accesses,
        )

    # ==========================================================================
    # Progress updates
    # ==========================================================================

    async def update_progress(
        self,
        student_id: UUID,
        lesson_id: UUID,
        current_time_seconds: int | None = None,
        current_page: int | None = None,
        explicit_complete: bool = False,
    ) -> LessonProgress:
        """Apply a progress event and refresh the enrollment.

        A completed record is returned unchanged and nothing is written.
        Otherwise positions only move forward, the lesson completes when asked
        to or when its end is reached, and progress plus enrollment are saved
        in one batch.
        """
        ctx = await self.authorize_lesson(student_id, lesson_id)
        lesson = ctx.lesson
        now = datetime.now(UTC)

        progress = ctx.progress_by_lesson.get(lesson_id)
        if progress is None:
            progress = await self._create_progress(student_id, lesson, now)
            ctx.progress_by_lesson[lesson_id] = progress

        if not apply_update(
            progress,
            lesson,
            now,
            current_time_seconds=current_time_seconds,
            current_page=current_page,
            explicit_complete=explicit_complete,
            video_end_tolerance_seconds=self.video_end_tolerance_seconds,
        ):
            return progress

        enrollment = ctx.enrollment
        previous_status = enrollment.learning_status
        recompute_enrollment(enrollment, ctx.lessons, ctx.progress_by_lesson, now)
        await self.progress.save_with_enrollment(progress, enrollment)

        if progress.is_completed:
            logger.info(
                "lesson_completed",
                user_id=str(student_id),
                lesson_id=str(lesson_id),
                explicit=explicit_complete,
            )
        if enrollment.learning_status != previous_status:
            logger.info(
                "learning_status_changed",
                user_id=str(student_id),
                course_id=str(lesson.course_id),
                status=enrollment.learning_status,
                progress_percent=round(enrollment.progress_percent, 2),
            )
        return progress

    async def mark_lesson_complete(
        self, student_id: UUID, lesson_id: UUID
    ) -> LessonProgress:
        """Mark a lesson completed without touching positions. Idempotent."""
        return await self.update_progress(student_id, lesson_id, explicit_complete=True)

    async def _create_progress(
        self, student_id: UUID, lesson: Lesson, now: datetime
    ) -> LessonProgress:
        progress = LessonProgress(
            user_id=student_id,
            course_id=lesson.course_id,
            lesson_id=lesson.id,
            last_update=now,
        )
        if await self.progress.insert_if_not_exists(progress):
            return progress

        # Created by a concurrent request in the meantime
        existing = await self.progress.get(student_id, lesson.course_id, lesson.id)
        return existing or progress

    # ==========================================================================
    # Progress reads
    # ==========================================================================

    async def get_lesson_progress(
        self, student_id: UUID, lesson_id: UUID
    ) -> LessonProgress | None:
        """Stored progress for a lesson (resume position), None if never opened.

        Raises:
            LessonNotFoundError: If lesson doesn't exist
        """
        lesson = await self.course_service.get_lesson(lesson_id)
        return await self.progress.get(student_id, lesson.course_id, lesson_id)

    async def is_lesson_completed(self, student_id: UUID, lesson_id: UUID) -> bool:
        progress = await self.get_lesson_progress(student_id, lesson_id)
        return progress is not None and progress.is_completed

    async def get_completed_lessons_count(self, student_id: UUID, course_id: UUID) -> int:
        """Completed lessons among the course's current lessons."""
        lessons = await self.course_service.list_lessons(course_id)
        records = await self.progress.list_for_course(student_id, course_id)
        return completed_lesson_count(lessons, {p.lesson_id: p for p in records})

    # ==========================================================================
    # Learning views
    # ==========================================================================

    async def get_course_learning_view(
        self, student_id: UUID, course_id: UUID
    ) -> CourseLearningViewResponse:
        """Course page with lesson lock states and progress.

        Raises:
            NotEnrolledError: If the student is not enrolled
            CourseNotFoundError: If course doesn't exist
        """
        course, enrollment, lessons, progress_by_lesson = await self._load_course_state(
            student_id, course_id
        )
        accesses = derive_lesson_access(
            lessons, _completed_ids(progress_by_lesson), course.is_closed
        )
        completed = completed_lesson_count(lessons, progress_by_lesson)

        return CourseLearningViewResponse(
            course_id=course.id,
            title=course.title,
            description=course.description,
            status=course.status,
            is_course_closed=course.is_closed,
            learning_status=LearningStatus(enrollment.learning_status),
            progress_percent=round(
                weighted_completion_percent(lessons, progress_by_lesson), 2
            ),
            lessons_completed=completed,
            lessons_total=len(lessons),
            count_based_percent=round(count_based_percent(completed, len(lessons)), 2),
            lessons=[_access_to_response(a) for a in accesses],
        )

    async def get_lesson_content(
        self, student_id: UUID, lesson_id: UUID
    ) -> LessonContentResponse:
        """Content of an unlocked lesson with resume position and neighbours."""
        ctx = await self.authorize_lesson(student_id, lesson_id)
        lesson = ctx.lesson

        ids = [item.id for item in ctx.lessons]
        index = ids.index(lesson_id) if lesson_id in ids else -1
        previous_id = ids[index - 1] if index > 0 else None
        next_id = ids[index + 1] if 0 <= index < len(ids) - 1 else None

        progress = ctx.progress_by_lesson.get(lesson_id)
        progress_response = (
            LessonProgressResponse.from_entity(progress)
            if progress
            else LessonProgressResponse.not_started(lesson_id, lesson.course_id)
        )

        logger.debug("lesson_content_served", lesson_id=str(lesson_id))
        return LessonContentResponse(
            lesson_id=lesson.id,
            course_id=lesson.course_id,
            title=lesson.title,
            description=lesson.description,
            lesson_type=lesson.lesson_type,
            content_url=lesson.content_url,
            total_duration_seconds=lesson.total_duration_seconds,
            total_pages=lesson.total_pages,
            progress=progress_response,
            previous_lesson_id=previous_id,
            next_lesson_id=next_id,
            lessons=[_access_to_response(a) for a in ctx.accesses],
        )

    async def get_student_dashboard(self, student_id: UUID) -> DashboardResponse:
        """Overview of all enrolled courses of a student."""
        enrollments = await self.enrollments.list_by_user(student_id)

        courses: list[DashboardCourseResponse] = []
        for enrollment in enrollments:
            course = await self.course_service.courses.get(enrollment.course_id)
            if course is None:
                continue
            lessons = await self.course_service.list_lessons(course.id)
            records = await self.progress.list_for_course(student_id, course.id)
            progress_by_lesson = {p.lesson_id: p for p in records}

            current = next(
                (
                    lesson
                    for lesson in lessons
                    if not (
                        (p := progress_by_lesson.get(lesson.id)) and p.is_completed
                    )
                ),
                None,
            )
            courses.append(
                DashboardCourseResponse(
                    course_id=course.id,
                    title=course.title,
                    learning_status=LearningStatus(enrollment.learning_status),
                    progress_percent=round(
                        weighted_completion_percent(lessons, progress_by_lesson), 2
                    ),
                    lessons_completed=completed_lesson_count(
                        lessons, progress_by_lesson
                    ),
                    lessons_total=len(lessons),
                    current_lesson_id=current.id if current else None,
                    current_lesson_title=current.title if current else None,
                )
            )

        overall = (
            round(sum(c.progress_percent for c in courses) / len(courses), 1)
            if courses
            else 0.0
        )
        return DashboardResponse(
            total_courses=len(courses),
            completed_courses=sum(
                1 for c in courses if c.learning_status == LearningStatus.COMPLETED
            ),
            overall_progress=overall,
            courses=courses,
        )
