"""Shared fixtures.

Services are exercised against in-memory repositories with the same async
interface as the Cassandra ones. Repository classes themselves are tested
against a mocked session in their own modules.
"""

import os
import tempfile
from collections.abc import Iterator
from uuid import UUID, uuid4

import pytest
from fastapi.testclient import TestClient


os.environ.setdefault("ENVIRONMENT", "testing")
os.environ.setdefault("LOG_DIR", tempfile.mkdtemp(prefix="courseflow-logs-"))
os.environ.setdefault("LOG_LEVEL", "WARNING")

from src.auth.permissions import UserRole  # noqa: E402
from src.auth.security import create_access_token  # noqa: E402
from src.courses.models import Course, CourseStatus, Lesson, LessonType  # noqa: E402
from src.courses.service import CourseService  # noqa: E402
from src.progress.models import Enrollment, LessonProgress  # noqa: E402
from src.progress.service import EnrollmentService, ProgressService  # noqa: E402


# ==============================================================================
# In-memory repositories
# ==============================================================================


def _copy_course(course: Course) -> Course:
    return Course(**course.to_dict())


def _copy_lesson(lesson: Lesson) -> Lesson:
    return Lesson(**lesson.to_dict())


def _copy_enrollment(enrollment: Enrollment) -> Enrollment:
    return Enrollment(**enrollment.to_dict())


def _copy_progress(progress: LessonProgress) -> LessonProgress:
    return LessonProgress(**progress.to_dict())


class InMemoryCourseRepository:
    def __init__(self) -> None:
        self.rows: dict[UUID, Course] = {}

    async def get(self, course_id: UUID) -> Course | None:
        course = self.rows.get(course_id)
        return _copy_course(course) if course else None

    async def insert(self, course: Course) -> None:
        self.rows[course.id] = _copy_course(course)

    async def update(self, course: Course, previous_status: str) -> None:
        self.rows[course.id] = _copy_course(course)

    async def delete(self, course: Course) -> None:
        self.rows.pop(course.id, None)

    async def list_by_status(self, status: str, limit: int = 50) -> list[Course]:
        courses = [c for c in self.rows.values() if c.status == status]
        courses.sort(key=lambda c: c.created_at, reverse=True)
        return [_copy_course(c) for c in courses[:limit]]

    async def list_by_creator(self, creator_id: UUID, limit: int = 50) -> list[Course]:
        courses = [c for c in self.rows.values() if c.creator_id == creator_id]
        courses.sort(key=lambda c: c.created_at, reverse=True)
        return [_copy_course(c) for c in courses[:limit]]


class InMemoryLessonRepository:
    def __init__(self) -> None:
        self.rows: dict[UUID, Lesson] = {}

    async def get(self, lesson_id: UUID) -> Lesson | None:
        lesson = self.rows.get(lesson_id)
        return _copy_lesson(lesson) if lesson else None

    async def list_by_course(self, course_id: UUID) -> list[Lesson]:
        lessons = [x for x in self.rows.values() if x.course_id == course_id]
        lessons.sort(key=lambda x: (x.position, x.id.bytes))
        return [_copy_lesson(x) for x in lessons]

    async def max_position(self, course_id: UUID) -> int | None:
        positions = [x.position for x in self.rows.values() if x.course_id == course_id]
        return max(positions) if positions else None

    async def save(self, lesson: Lesson) -> None:
        self.rows[lesson.id] = _copy_lesson(lesson)

    async def delete(self, lesson: Lesson) -> None:
        self.rows.pop(lesson.id, None)

    async def save_positions(self, before: list[Lesson], after: list[Lesson]) -> None:
        for lesson in after:
            self.rows[lesson.id] = _copy_lesson(lesson)

    async def delete_by_course(self, course_id: UUID) -> list[Lesson]:
        lessons = await self.list_by_course(course_id)
        for lesson in lessons:
            self.rows.pop(lesson.id, None)
        return lessons


class InMemoryEnrollmentRepository:
    def __init__(self) -> None:
        self.rows: dict[tuple[UUID, UUID], Enrollment] = {}
        self.writes = 0

    async def get(self, course_id: UUID, user_id: UUID) -> Enrollment | None:
        enrollment = self.rows.get((course_id, user_id))
        return _copy_enrollment(enrollment) if enrollment else None

    async def insert_if_not_exists(self, enrollment: Enrollment) -> bool:
        key = (enrollment.course_id, enrollment.user_id)
        if key in self.rows:
            return False
        self.rows[key] = _copy_enrollment(enrollment)
        self.writes += 1
        return True

    async def save(self, enrollment: Enrollment) -> None:
        self.rows[(enrollment.course_id, enrollment.user_id)] = _copy_enrollment(
            enrollment
        )
        self.writes += 1

    async def delete(self, course_id: UUID, user_id: UUID) -> None:
        self.rows.pop((course_id, user_id), None)

    async def list_by_course(self, course_id: UUID) -> list[Enrollment]:
        return [_copy_enrollment(e) for (c, _), e in self.rows.items() if c == course_id]

    async def list_by_user(self, user_id: UUID) -> list[Enrollment]:
        enrollments = [
            _copy_enrollment(e) for (_, u), e in self.rows.items() if u == user_id
        ]
        enrollments.sort(key=lambda e: e.enrolled_at, reverse=True)
        return enrollments


class InMemoryProgressRepository:
    def __init__(self, enrollments: InMemoryEnrollmentRepository) -> None:
        self.enrollments = enrollments
        self.rows: dict[tuple[UUID, UUID, UUID], LessonProgress] = {}
        self.writes = 0

    async def get(
        self, user_id: UUID, course_id: UUID, lesson_id: UUID
    ) -> LessonProgress | None:
        progress = self.rows.get((user_id, course_id, lesson_id))
        return _copy_progress(progress) if progress else None

    async def list_for_course(
        self, user_id: UUID, course_id: UUID
    ) -> list[LessonProgress]:
        return [
            _copy_progress(p)
            for (u, c, _), p in self.rows.items()
            if u == user_id and c == course_id
        ]

    async def insert_if_not_exists(self, progress: LessonProgress) -> bool:
        key = (progress.user_id, progress.course_id, progress.lesson_id)
        if key in self.rows:
            return False
        self.rows[key] = _copy_progress(progress)
        return True

    async def save_with_enrollment(
        self, progress: LessonProgress, enrollment: Enrollment
    ) -> None:
        key = (progress.user_id, progress.course_id, progress.lesson_id)
        self.rows[key] = _copy_progress(progress)
        self.writes += 1
        await self.enrollments.save(enrollment)

    async def delete_for_lesson(self, lesson_id: UUID) -> int:
        keys = [k for k in self.rows if k[2] == lesson_id]
        for key in keys:
            del self.rows[key]
        return len(keys)

    async def delete_for_course(self, user_id: UUID, course_id: UUID) -> None:
        for key in [k for k in self.rows if k[0] == user_id and k[1] == course_id]:
            del self.rows[key]


# ==============================================================================
# Service fixtures
# ==============================================================================


@pytest.fixture
def course_repo() -> InMemoryCourseRepository:
    return InMemoryCourseRepository()


@pytest.fixture
def lesson_repo() -> InMemoryLessonRepository:
    return InMemoryLessonRepository()


@pytest.fixture
def enrollment_repo() -> InMemoryEnrollmentRepository:
    return InMemoryEnrollmentRepository()


@pytest.fixture
def progress_repo(enrollment_repo) -> InMemoryProgressRepository:
    return InMemoryProgressRepository(enrollment_repo)


@pytest.fixture
def course_service(course_repo, lesson_repo, progress_repo, enrollment_repo) -> CourseService:
    """CourseService without YouTube lookups."""
    return CourseService(
        courses=course_repo,
        lessons=lesson_repo,
        progress=progress_repo,
        enrollments=enrollment_repo,
    )


@pytest.fixture
def progress_service(course_service, enrollment_repo, progress_repo) -> ProgressService:
    return ProgressService(
        course_service=course_service,
        enrollments=enrollment_repo,
        progress=progress_repo,
        video_end_tolerance_seconds=5,
    )


@pytest.fixture
def enrollment_service(course_service, enrollment_repo, progress_repo) -> EnrollmentService:
    return EnrollmentService(
        course_service=course_service,
        enrollments=enrollment_repo,
        progress=progress_repo,
    )


@pytest.fixture
def instructor_id() -> UUID:
    return uuid4()


@pytest.fixture
def student_id() -> UUID:
    return uuid4()


# ==============================================================================
# Data builders
# ==============================================================================


@pytest.fixture
def make_course(course_repo, instructor_id):
    """Insert a course directly into the repository."""

    async def _make(status: str = CourseStatus.PUBLIC.value, **kwargs) -> Course:
        course = Course(
            title=kwargs.pop("title", "Curso de Teste"),
            status=status,
            creator_id=kwargs.pop("creator_id", instructor_id),
            **kwargs,
        )
        await course_repo.insert(course)
        return course

    return _make


@pytest.fixture
def add_lesson(lesson_repo):
    """Insert a lesson directly into the repository."""

    async def _add(
        course: Course,
        position: int,
        lesson_type: str = LessonType.VIDEO.value,
        duration: int | None = 100,
        pages: int | None = 10,
        **kwargs,
    ) -> Lesson:
        is_video = lesson_type == LessonType.VIDEO.value
        lesson = Lesson(
            course_id=course.id,
            title=kwargs.pop("title", f"Aula {position}"),
            lesson_type=lesson_type,
            content_url=kwargs.pop(
                "content_url",
                "https://videos.example.com/aula.mp4" if is_video else None,
            ),
            position=position,
            total_duration_seconds=duration if is_video else None,
            total_pages=pages if not is_video else None,
            **kwargs,
        )
        await lesson_repo.save(lesson)
        return lesson

    return _add


@pytest.fixture
def enroll(enrollment_repo):
    """Insert an enrollment directly into the repository."""

    async def _enroll(course: Course, user_id: UUID, **kwargs) -> Enrollment:
        enrollment = Enrollment(course_id=course.id, user_id=user_id, **kwargs)
        await enrollment_repo.insert_if_not_exists(enrollment)
        return enrollment

    return _enroll


# ==============================================================================
# HTTP
# ==============================================================================


@pytest.fixture
def auth_headers():
    """Build an Authorization header with a freshly signed access token."""

    def _headers(user_id: UUID, role: UserRole = UserRole.STUDENT) -> dict[str, str]:
        token = create_access_token(user_id, f"{role.value}@example.com", role.value)
        return {"Authorization": f"Bearer {token}"}

    return _headers


@pytest.fixture
def client(course_service, progress_service, enrollment_service) -> Iterator[TestClient]:
    """Test client wired to in-memory services (lifespan not started)."""
    from src.main import app, app_state

    app_state.course_service = course_service
    app.state.progress_service = progress_service
    app.state.enrollment_service = enrollment_service

    yield TestClient(app)

    app_state.course_service = None
    app.state.progress_service = None
    app.state.enrollment_service = None
