"""Course catalog API endpoints.

Provides routes for:
- Courses: CRUD, public listing and the instructor's own courses
- Lessons: ordered listing, CRUD and reordering
"""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, File, UploadFile, status

from src.auth.dependencies import CurrentUser, InstructorUser
from src.courses.dependencies import CourseServiceDep, handle_course_error
from src.courses.schemas import (
    CourseListResponse,
    CourseResponse,
    CreateCourseRequest,
    CreateLessonRequest,
    LessonListResponse,
    LessonResponse,
    MessageResponse,
    ReorderRequest,
    UpdateCourseRequest,
    UpdateLessonRequest,
)
from src.courses.service import CourseError
from src.media.dependencies import handle_media_error
from src.media.service import MediaError


# ==============================================================================
# Courses Router
# ==============================================================================

router_courses = APIRouter(prefix="/v1/courses", tags=["courses"])


@router_courses.post(
    "",
    response_model=CourseResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create new course",
)
async def create_course(
    data: CreateCourseRequest,
    course_service: CourseServiceDep,
    user: InstructorUser,
) -> CourseResponse:
    """Create a new course (INSTRUCTOR or ADMIN only)."""
    course = await course_service.create_course(data, user.id)
    return CourseResponse.from_entity(course)


@router_courses.get(
    "",
    response_model=CourseListResponse,
    summary="List public courses",
)
async def list_public_courses(
    course_service: CourseServiceDep,
    user: CurrentUser,
    limit: int = 50,
) -> CourseListResponse:
    """List courses open for self enrollment."""
    courses = await course_service.list_public_courses(limit=limit)
    items = [CourseResponse.from_entity(c) for c in courses]
    return CourseListResponse(items=items, total=len(items), has_more=len(items) >= limit)


@router_courses.get(
    "/mine",
    response_model=CourseListResponse,
    summary="List my courses",
)
async def list_my_courses(
    course_service: CourseServiceDep,
    user: InstructorUser,
    limit: int = 50,
) -> CourseListResponse:
    """List the courses created by the current instructor."""
    courses = await course_service.list_courses_by_creator(user.id, limit=limit)
    items = [CourseResponse.from_entity(c) for c in courses]
    return CourseListResponse(items=items, total=len(items), has_more=len(items) >= limit)


@router_courses.get(
    "/{course_id}",
    response_model=CourseResponse,
    summary="Get course",
)
async def get_course(
    course_id: UUID,
    course_service: CourseServiceDep,
    user: CurrentUser,
) -> CourseResponse:
    """Get a course with its lesson count."""
    try:
        course = await course_service.get_course(course_id)
        lessons = await course_service.list_lessons(course_id)
    except CourseError as e:
        raise handle_course_error(e) from e
    return CourseResponse.from_entity(course, lesson_count=len(lessons))


@router_courses.patch(
    "/{course_id}",
    response_model=CourseResponse,
    summary="Update course",
)
async def update_course(
    course_id: UUID,
    data: UpdateCourseRequest,
    course_service: CourseServiceDep,
    user: InstructorUser,
) -> CourseResponse:
    """Update a course (owner or ADMIN)."""
    try:
        course_service.ensure_owner(await course_service.get_course(course_id), user)
        course = await course_service.update_course(course_id, data)
    except CourseError as e:
        raise handle_course_error(e) from e
    return CourseResponse.from_entity(course)


@router_courses.delete(
    "/{course_id}",
    response_model=MessageResponse,
    summary="Delete course",
)
async def delete_course(
    course_id: UUID,
    course_service: CourseServiceDep,
    user: InstructorUser,
) -> MessageResponse:
    """Delete a course with its lessons, enrollments and progress."""
    try:
        course_service.ensure_owner(await course_service.get_course(course_id), user)
        await course_service.delete_course(course_id)
    except CourseError as e:
        raise handle_course_error(e) from e
    return MessageResponse(message="Curso excluido com sucesso")


# ==============================================================================
# Course Lessons
# ==============================================================================


@router_courses.get(
    "/{course_id}/lessons",
    response_model=LessonListResponse,
    summary="List course lessons",
)
async def list_course_lessons(
    course_id: UUID,
    course_service: CourseServiceDep,
    user: CurrentUser,
) -> LessonListResponse:
    """List lessons in order.

    Content URLs are only returned to the course owner or an ADMIN.
    """
    try:
        course = await course_service.get_course(course_id)
        lessons = await course_service.list_lessons(course_id)
    except CourseError as e:
        raise handle_course_error(e) from e
    include_content = course_service.is_owner(course, user)
    items = [
        LessonResponse.from_entity(lesson, include_content=include_content)
        for lesson in lessons
    ]
    return LessonListResponse(items=items, total=len(items))


@router_courses.post(
    "/{course_id}/lessons",
    response_model=LessonResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create lesson",
)
async def create_lesson(
    course_id: UUID,
    data: CreateLessonRequest,
    course_service: CourseServiceDep,
    user: InstructorUser,
) -> LessonResponse:
    """Create a lesson at the end of the course unless a position is given."""
    try:
        course_service.ensure_owner(await course_service.get_course(course_id), user)
        lesson = await course_service.create_lesson(course_id, data)
    except CourseError as e:
        raise handle_course_error(e) from e
    return LessonResponse.from_entity(lesson)


@router_courses.put(
    "/{course_id}/lessons/reorder",
    response_model=LessonListResponse,
    summary="Reorder lessons",
)
async def reorder_lessons(
    course_id: UUID,
    data: ReorderRequest,
    course_service: CourseServiceDep,
    user: InstructorUser,
) -> LessonListResponse:
    """Assign positions 1..N in the given order. Every lesson must be listed."""
    try:
        course_service.ensure_owner(await course_service.get_course(course_id), user)
        lessons = await course_service.reorder_lessons(course_id, data.items)
    except CourseError as e:
        raise handle_course_error(e) from e
    items = [LessonResponse.from_entity(lesson) for lesson in lessons]
    return LessonListResponse(items=items, total=len(items))


# ==============================================================================
# Lessons Router
# ==============================================================================

router_lessons = APIRouter(prefix="/v1/lessons", tags=["lessons"])


@router_lessons.get(
    "/{lesson_id}",
    response_model=LessonResponse,
    summary="Get lesson",
)
async def get_lesson(
    lesson_id: UUID,
    course_service: CourseServiceDep,
    user: InstructorUser,
) -> LessonResponse:
    """Get lesson metadata (authoring view, students use /v1/learning)."""
    try:
        lesson = await course_service.get_lesson(lesson_id)
        course_service.ensure_owner(
            await course_service.get_course(lesson.course_id), user
        )
    except CourseError as e:
        raise handle_course_error(e) from e
    return LessonResponse.from_entity(lesson)


@router_lessons.patch(
    "/{lesson_id}",
    response_model=LessonResponse,
    summary="Update lesson",
)
async def update_lesson(
    lesson_id: UUID,
    data: UpdateLessonRequest,
    course_service: CourseServiceDep,
    user: InstructorUser,
) -> LessonResponse:
    """Update a lesson (course owner or ADMIN)."""
    try:
        lesson = await course_service.get_lesson(lesson_id)
        course_service.ensure_owner(
            await course_service.get_course(lesson.course_id), user
        )
        lesson = await course_service.update_lesson(lesson_id, data)
    except CourseError as e:
        raise handle_course_error(e) from e
    return LessonResponse.from_entity(lesson)


@router_lessons.put(
    "/{lesson_id}/pdf",
    response_model=LessonResponse,
    summary="Set PDF page count from file",
)
async def set_lesson_pdf(
    lesson_id: UUID,
    file: Annotated[UploadFile, File(description="PDF document")],
    course_service: CourseServiceDep,
    user: InstructorUser,
) -> LessonResponse:
    """Read the page count of an uploaded PDF into the lesson (file not stored)."""
    content = await file.read()
    try:
        lesson = await course_service.get_lesson(lesson_id)
        course_service.ensure_owner(
            await course_service.get_course(lesson.course_id), user
        )
        lesson = await course_service.set_pdf_pages_from_file(lesson_id, content)
    except CourseError as e:
        raise handle_course_error(e) from e
    except MediaError as e:
        raise handle_media_error(e) from e
    return LessonResponse.from_entity(lesson)


@router_lessons.delete(
    "/{lesson_id}",
    response_model=MessageResponse,
    summary="Delete lesson",
)
async def delete_lesson(
    lesson_id: UUID,
    course_service: CourseServiceDep,
    user: InstructorUser,
) -> MessageResponse:
    """Delete a lesson and all progress recorded on it."""
    try:
        lesson = await course_service.get_lesson(lesson_id)
        course_service.ensure_owner(
            await course_service.get_course(lesson.course_id), user
        )
        await course_service.delete_lesson(lesson_id)
    except CourseError as e:
        raise handle_course_error(e) from e
    return MessageResponse(message="Aula excluida com sucesso")
