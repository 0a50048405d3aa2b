"""Student progress tracking API endpoints.

Provides routes for:
- Progress updates from the video/PDF player
- Manual lesson completion
- Course enrollment (self enrollment and instructor assignment)
- Learning views (course page, lesson content, dashboard)
"""

from uuid import UUID

from fastapi import APIRouter, HTTPException, status

from src.auth.dependencies import InstructorUser, StudentUser
from src.courses.dependencies import CourseServiceDep, handle_course_error
from src.courses.schemas import MessageResponse
from src.courses.service import CourseError

from .dependencies import (
    EnrollmentServiceDep,
    ProgressServiceDep,
    handle_progress_error,
)
from .schemas import (
    AssignStudentsRequest,
    AssignStudentsResponse,
    CourseLearningViewResponse,
    DashboardResponse,
    EnrollmentListResponse,
    EnrollmentResponse,
    EnrollRequest,
    LessonContentResponse,
    LessonProgressResponse,
    UpdateProgressRequest,
)
from .service import ProgressError


router = APIRouter(prefix="/v1/progress", tags=["progress"])
enrollments_router = APIRouter(prefix="/v1/enrollments", tags=["enrollments"])
course_enrollments_router = APIRouter(prefix="/v1/courses", tags=["enrollments"])
learning_router = APIRouter(prefix="/v1/learning", tags=["learning"])


def _to_http(error: CourseError | ProgressError) -> HTTPException:
    if isinstance(error, CourseError):
        return handle_course_error(error)
    return handle_progress_error(error)


# ==============================================================================
# Progress Endpoints
# ==============================================================================


@router.put(
    "/lessons/{lesson_id}",
    response_model=LessonProgressResponse,
    summary="Update lesson progress",
)
async def update_lesson_progress(
    lesson_id: UUID,
    data: UpdateProgressRequest,
    progress_service: ProgressServiceDep,
    user: StudentUser,
) -> LessonProgressResponse:
    """Report the player position (seconds or page).

    Positions only move forward. The lesson completes when ``completed`` is
    set or the end of the content is reached. Completed lessons are not
    modified anymore.
    """
    try:
        progress = await progress_service.update_progress(
            student_id=user.id,
            lesson_id=lesson_id,
            current_time_seconds=data.current_time_seconds,
            current_page=data.current_page,
            explicit_complete=data.completed,
        )
    except (CourseError, ProgressError) as e:
        raise _to_http(e) from e
    return LessonProgressResponse.from_entity(progress)


@router.post(
    "/lessons/{lesson_id}/complete",
    response_model=LessonProgressResponse,
    status_code=status.HTTP_200_OK,
    summary="Mark lesson as complete",
)
async def mark_lesson_complete(
    lesson_id: UUID,
    progress_service: ProgressServiceDep,
    user: StudentUser,
) -> LessonProgressResponse:
    """Manually mark a lesson as complete. Repeated calls are harmless."""
    try:
        progress = await progress_service.mark_lesson_complete(user.id, lesson_id)
    except (CourseError, ProgressError) as e:
        raise _to_http(e) from e
    return LessonProgressResponse.from_entity(progress)


@router.get(
    "/lessons/{lesson_id}",
    response_model=LessonProgressResponse,
    summary="Get lesson progress",
)
async def get_lesson_progress(
    lesson_id: UUID,
    progress_service: ProgressServiceDep,
    user: StudentUser,
) -> LessonProgressResponse:
    """Get the resume position of a lesson."""
    try:
        progress = await progress_service.get_lesson_progress(user.id, lesson_id)
        if progress is None:
            lesson = await progress_service.course_service.get_lesson(lesson_id)
            return LessonProgressResponse.not_started(lesson_id, lesson.course_id)
    except CourseError as e:
        raise handle_course_error(e) from e
    return LessonProgressResponse.from_entity(progress)


@router.get(
    "/dashboard",
    response_model=DashboardResponse,
    summary="Get student dashboard",
)
async def get_dashboard(
    progress_service: ProgressServiceDep,
    user: StudentUser,
) -> DashboardResponse:
    """Overview of the current user's courses."""
    return await progress_service.get_student_dashboard(user.id)


# ==============================================================================
# Learning Views
# ==============================================================================


@learning_router.get(
    "/courses/{course_id}",
    response_model=CourseLearningViewResponse,
    summary="Get course learning view",
)
async def get_course_learning_view(
    course_id: UUID,
    progress_service: ProgressServiceDep,
    user: StudentUser,
) -> CourseLearningViewResponse:
    """Course page with lesson lock states and progress."""
    try:
        return await progress_service.get_course_learning_view(user.id, course_id)
    except (CourseError, ProgressError) as e:
        raise _to_http(e) from e


@learning_router.get(
    "/lessons/{lesson_id}",
    response_model=LessonContentResponse,
    summary="Get lesson content",
)
async def get_lesson_content(
    lesson_id: UUID,
    progress_service: ProgressServiceDep,
    user: StudentUser,
) -> LessonContentResponse:
    """Lesson content with resume position. Locked lessons are refused."""
    try:
        return await progress_service.get_lesson_content(user.id, lesson_id)
    except (CourseError, ProgressError) as e:
        raise _to_http(e) from e


# ==============================================================================
# Enrollment Endpoints
# ==============================================================================


@enrollments_router.post(
    "",
    response_model=EnrollmentResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Enroll in course",
)
async def enroll_in_course(
    data: EnrollRequest,
    enrollment_service: EnrollmentServiceDep,
    user: StudentUser,
) -> EnrollmentResponse:
    """Enroll current user in a public course."""
    try:
        enrollment = await enrollment_service.enroll(user.id, data.course_id)
    except (CourseError, ProgressError) as e:
        raise _to_http(e) from e
    return EnrollmentResponse.from_entity(enrollment)


@enrollments_router.get(
    "",
    response_model=EnrollmentListResponse,
    summary="Get my enrollments",
)
async def get_my_enrollments(
    enrollment_service: EnrollmentServiceDep,
    user: StudentUser,
) -> EnrollmentListResponse:
    """Get all course enrollments for current user, newest first."""
    enrollments = await enrollment_service.list_student_enrollments(user.id)
    return EnrollmentListResponse(
        items=[EnrollmentResponse.from_entity(e) for e in enrollments],
        total=len(enrollments),
    )


@enrollments_router.get(
    "/{course_id}",
    response_model=EnrollmentResponse,
    summary="Get enrollment for course",
)
async def get_enrollment(
    course_id: UUID,
    enrollment_service: EnrollmentServiceDep,
    user: StudentUser,
) -> EnrollmentResponse:
    """Get enrollment status for a specific course."""
    try:
        enrollment = await enrollment_service.get_enrollment(user.id, course_id)
    except ProgressError as e:
        raise handle_progress_error(e) from e
    return EnrollmentResponse.from_entity(enrollment)


@enrollments_router.delete(
    "/{course_id}",
    response_model=MessageResponse,
    summary="Cancel enrollment",
)
async def unenroll_from_course(
    course_id: UUID,
    enrollment_service: EnrollmentServiceDep,
    user: StudentUser,
) -> MessageResponse:
    """Leave a course. The progress in the course is discarded."""
    try:
        await enrollment_service.unenroll(user.id, course_id, requested_by_student=True)
    except ProgressError as e:
        raise handle_progress_error(e) from e
    return MessageResponse(message="Inscricao cancelada com sucesso")


# ==============================================================================
# Course Enrollments (instructor)
# ==============================================================================


@course_enrollments_router.get(
    "/{course_id}/enrollments",
    response_model=EnrollmentListResponse,
    summary="List course enrollments",
)
async def list_course_enrollments(
    course_id: UUID,
    enrollment_service: EnrollmentServiceDep,
    course_service: CourseServiceDep,
    user: InstructorUser,
) -> EnrollmentListResponse:
    """List the students of a course (owner or ADMIN)."""
    try:
        course_service.ensure_owner(await course_service.get_course(course_id), user)
        enrollments = await enrollment_service.list_course_enrollments(course_id)
    except (CourseError, ProgressError) as e:
        raise _to_http(e) from e
    return EnrollmentListResponse(
        items=[EnrollmentResponse.from_entity(e) for e in enrollments],
        total=len(enrollments),
    )


@course_enrollments_router.post(
    "/{course_id}/enrollments",
    response_model=AssignStudentsResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Assign students to course",
)
async def assign_students(
    course_id: UUID,
    data: AssignStudentsRequest,
    enrollment_service: EnrollmentServiceDep,
    course_service: CourseServiceDep,
    user: InstructorUser,
) -> AssignStudentsResponse:
    """Enroll students as mandatory. Students already enrolled are skipped."""
    try:
        course_service.ensure_owner(await course_service.get_course(course_id), user)
        created, skipped = await enrollment_service.assign_students(
            course_id, data.student_ids
        )
    except (CourseError, ProgressError) as e:
        raise _to_http(e) from e
    return AssignStudentsResponse(
        enrolled=[EnrollmentResponse.from_entity(e) for e in created],
        skipped=skipped,
    )


@course_enrollments_router.delete(
    "/{course_id}/enrollments/{student_id}",
    response_model=MessageResponse,
    summary="Remove student from course",
)
async def remove_student(
    course_id: UUID,
    student_id: UUID,
    enrollment_service: EnrollmentServiceDep,
    course_service: CourseServiceDep,
    user: InstructorUser,
) -> MessageResponse:
    """Remove a student, including mandatory enrollments."""
    try:
        course_service.ensure_owner(await course_service.get_course(course_id), user)
        await enrollment_service.unenroll(
            student_id, course_id, requested_by_student=False
        )
    except (CourseError, ProgressError) as e:
        raise _to_http(e) from e
    return MessageResponse(message="Aluno removido do curso")
