"""Tests for EnrollmentService."""

from datetime import UTC, datetime, timedelta
from uuid import uuid4

import pytest

from src.courses.models import CourseStatus, CourseType
from src.courses.service import CourseNotFoundError
from src.progress.models import LearningStatus
from src.progress.service import (
    AlreadyEnrolledError,
    CourseClosedError,
    EnrollmentClosedError,
    EnrollmentNotFoundError,
    MandatoryEnrollmentError,
)


class TestEnroll:
    """Tests for self enrollment."""

    @pytest.mark.asyncio
    async def test_enroll_public_course(
        self, enrollment_service, make_course, add_lesson, student_id
    ) -> None:
        """Enrollment starts NOT_STARTED with the current lesson total."""
        course = await make_course()
        await add_lesson(course, 1)
        await add_lesson(course, 2)

        enrollment = await enrollment_service.enroll(student_id, course.id)

        assert enrollment.learning_status == LearningStatus.NOT_STARTED.value
        assert enrollment.lessons_total == 2
        assert enrollment.progress_percent == 0.0
        assert enrollment.is_mandatory is False

    @pytest.mark.asyncio
    async def test_duplicate_enrollment(
        self, enrollment_service, make_course, student_id
    ) -> None:
        """A student enrolls once per course."""
        course = await make_course()
        await enrollment_service.enroll(student_id, course.id)

        with pytest.raises(AlreadyEnrolledError):
            await enrollment_service.enroll(student_id, course.id)

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "status",
        [CourseStatus.DRAFT.value, CourseStatus.PRIVATE.value, CourseStatus.CLOSED.value],
    )
    async def test_only_public_courses(
        self, enrollment_service, make_course, student_id, status
    ) -> None:
        """Courses that are not public refuse self enrollment."""
        course = await make_course(status=status)

        with pytest.raises(EnrollmentClosedError):
            await enrollment_service.enroll(student_id, course.id)

    @pytest.mark.asyncio
    async def test_fixed_time_window(
        self, enrollment_service, make_course, student_id
    ) -> None:
        """Fixed-time courses only accept enrollments inside their window."""
        now = datetime.now(UTC)
        upcoming = await make_course(
            course_type=CourseType.FIXED_TIME.value,
            registration_start=now + timedelta(days=1),
            registration_end=now + timedelta(days=10),
        )
        running = await make_course(
            course_type=CourseType.FIXED_TIME.value,
            registration_start=now - timedelta(days=1),
            registration_end=now + timedelta(days=1),
        )

        with pytest.raises(EnrollmentClosedError):
            await enrollment_service.enroll(student_id, upcoming.id)
        enrollment = await enrollment_service.enroll(student_id, running.id)
        assert enrollment.course_id == running.id

    @pytest.mark.asyncio
    async def test_unknown_course(self, enrollment_service, student_id) -> None:
        """Enrolling in a missing course is a not found error."""
        with pytest.raises(CourseNotFoundError):
            await enrollment_service.enroll(student_id, uuid4())

    @pytest.mark.asyncio
    async def test_ended_course_is_closed(
        self, enrollment_service, course_repo, make_course, student_id
    ) -> None:
        """A course past its end date closes on read and refuses enrollments."""
        course = await make_course(end_date=datetime.now(UTC) - timedelta(days=1))

        with pytest.raises(EnrollmentClosedError):
            await enrollment_service.enroll(student_id, course.id)
        stored = await course_repo.get(course.id)
        assert stored.status == CourseStatus.CLOSED.value


class TestAssignStudents:
    """Tests for instructor assignment."""

    @pytest.mark.asyncio
    async def test_assign_marks_mandatory_and_skips_existing(
        self, enrollment_service, make_course, student_id
    ) -> None:
        """Assigned enrollments are mandatory, existing ones are skipped."""
        course = await make_course(status=CourseStatus.PRIVATE.value)
        other = uuid4()
        await enrollment_service.assign_students(course.id, [student_id])

        created, skipped = await enrollment_service.assign_students(
            course.id, [student_id, other, other]
        )

        assert [e.user_id for e in created] == [other]
        assert created[0].is_mandatory is True
        assert skipped == [student_id]

    @pytest.mark.asyncio
    async def test_closed_course(
        self, enrollment_service, make_course, student_id
    ) -> None:
        """Closed courses take no new students."""
        course = await make_course(status=CourseStatus.CLOSED.value)
        with pytest.raises(CourseClosedError):
            await enrollment_service.assign_students(course.id, [student_id])


class TestUnenroll:
    """Tests for unenroll."""

    @pytest.mark.asyncio
    async def test_unenroll_cascades_progress(
        self,
        enrollment_service,
        progress_service,
        progress_repo,
        enrollment_repo,
        make_course,
        add_lesson,
        student_id,
    ) -> None:
        """Leaving a course removes the enrollment and its progress."""
        course = await make_course()
        lesson = await add_lesson(course, 1)
        await enrollment_service.enroll(student_id, course.id)
        await progress_service.mark_lesson_complete(student_id, lesson.id)

        await enrollment_service.unenroll(student_id, course.id)

        assert await enrollment_repo.get(course.id, student_id) is None
        assert progress_repo.rows == {}

    @pytest.mark.asyncio
    async def test_mandatory_enrollment(
        self, enrollment_service, make_course, student_id
    ) -> None:
        """Students cannot drop assigned courses, instructors can remove them."""
        course = await make_course()
        await enrollment_service.assign_students(course.id, [student_id])

        with pytest.raises(MandatoryEnrollmentError):
            await enrollment_service.unenroll(student_id, course.id)
        await enrollment_service.unenroll(
            student_id, course.id, requested_by_student=False
        )
        with pytest.raises(EnrollmentNotFoundError):
            await enrollment_service.get_enrollment(student_id, course.id)

    @pytest.mark.asyncio
    async def test_not_enrolled(self, enrollment_service, make_course, student_id) -> None:
        """Unenrolling without an enrollment is a not found error."""
        course = await make_course()
        with pytest.raises(EnrollmentNotFoundError):
            await enrollment_service.unenroll(student_id, course.id)


class TestListings:
    """Tests for enrollment listings."""

    @pytest.mark.asyncio
    async def test_student_enrollments_newest_first(
        self, enrollment_service, make_course, enroll, student_id
    ) -> None:
        """Student listing is ordered by enrollment date, newest first."""
        older = await make_course(title="Curso Antigo")
        newer = await make_course(title="Curso Novo")
        now = datetime.now(UTC)
        await enroll(older, student_id, enrolled_at=now - timedelta(days=5))
        await enroll(newer, student_id, enrolled_at=now)

        enrollments = await enrollment_service.list_student_enrollments(student_id)

        assert [e.course_id for e in enrollments] == [newer.id, older.id]

    @pytest.mark.asyncio
    async def test_course_enrollments(
        self, enrollment_service, make_course, enroll, student_id
    ) -> None:
        """Instructor listing returns every student of the course."""
        course = await make_course()
        await enroll(course, student_id)
        await enroll(course, uuid4())

        enrollments = await enrollment_service.list_course_enrollments(course.id)

        assert len(enrollments) == 2
