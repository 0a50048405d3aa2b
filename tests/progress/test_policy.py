"""Tests for learning status transitions and lesson unlocking."""

from datetime import UTC, datetime
from uuid import uuid4

import pytest

from src.courses.models import Lesson, LessonType
from src.progress.models import Enrollment, LearningStatus, LessonProgress
from src.progress.policy import (
    derive_lesson_access,
    find_access,
    next_learning_status,
    recompute_enrollment,
)


NOW = datetime(2026, 3, 1, 12, 0, tzinfo=UTC)
COURSE_ID = uuid4()


def lessons(count: int) -> list[Lesson]:
    return [
        Lesson(
            course_id=COURSE_ID,
            title=f"Aula {i}",
            lesson_type=LessonType.PDF.value,
            position=i,
            total_pages=10,
        )
        for i in range(1, count + 1)
    ]


class TestNextLearningStatus:
    """Tests for next_learning_status."""

    def test_first_update_starts_course(self) -> None:
        """NOT_STARTED moves to IN_PROGRESS."""
        assert next_learning_status("NOT_STARTED", 0, 3) == "IN_PROGRESS"

    def test_all_completed(self) -> None:
        """Every lesson completed means COMPLETED."""
        assert next_learning_status("IN_PROGRESS", 3, 3) == "COMPLETED"

    def test_partial_stays_in_progress(self) -> None:
        """Some lessons left keeps IN_PROGRESS."""
        assert next_learning_status("IN_PROGRESS", 2, 3) == "IN_PROGRESS"

    def test_empty_course_never_completes(self) -> None:
        """0 of 0 lessons is not a completion."""
        assert next_learning_status("NOT_STARTED", 0, 0) == "IN_PROGRESS"

    @pytest.mark.parametrize("completed,total", [(0, 3), (1, 4), (0, 0)])
    def test_never_moves_back(self, completed: int, total: int) -> None:
        """COMPLETED is final, even if lessons are added later."""
        assert next_learning_status("COMPLETED", completed, total) == "COMPLETED"


class TestRecomputeEnrollment:
    """Tests for recompute_enrollment."""

    def test_weighted_percent_and_counters(self) -> None:
        """Stores the weighted percent next to the count-based counters."""
        course_lessons = lessons(2)
        user_id = uuid4()
        records = {
            course_lessons[0].id: LessonProgress(
                user_id=user_id,
                course_id=COURSE_ID,
                lesson_id=course_lessons[0].id,
                is_completed=True,
            ),
            course_lessons[1].id: LessonProgress(
                user_id=user_id,
                course_id=COURSE_ID,
                lesson_id=course_lessons[1].id,
                current_page=5,
            ),
        }
        enrollment = Enrollment(course_id=COURSE_ID, user_id=user_id)

        recompute_enrollment(enrollment, course_lessons, records, NOW)

        assert enrollment.learning_status == LearningStatus.IN_PROGRESS.value
        assert enrollment.progress_percent == pytest.approx(75.0)
        assert enrollment.lessons_completed == 1
        assert enrollment.lessons_total == 2
        assert enrollment.updated_at == NOW


class TestDeriveLessonAccess:
    """Tests for derive_lesson_access."""

    def test_first_lesson_always_unlocked(self) -> None:
        """A student with no progress can open the first lesson only."""
        access = derive_lesson_access(lessons(3), set())
        assert [a.is_locked for a in access] == [False, True, True]

    def test_unlock_follows_previous_completion(self) -> None:
        """A lesson is locked iff the one right before it is not completed."""
        course_lessons = lessons(4)
        completed = {course_lessons[0].id, course_lessons[2].id}

        access = derive_lesson_access(course_lessons, completed)

        assert [a.is_locked for a in access] == [False, False, True, False]
        assert [a.is_completed for a in access] == [True, False, True, False]

    def test_closed_course_locks_unfinished_lessons(self) -> None:
        """In a closed course only completed lessons stay open."""
        course_lessons = lessons(3)
        completed = {course_lessons[0].id}

        access = derive_lesson_access(course_lessons, completed, course_closed=True)

        assert [a.is_locked for a in access] == [False, True, True]

    def test_empty_course(self) -> None:
        """No lessons, no entries."""
        assert derive_lesson_access([], set()) == []

    def test_find_access(self) -> None:
        """Looks an entry up by lesson id."""
        course_lessons = lessons(2)
        access = derive_lesson_access(course_lessons, set())
        assert find_access(access, course_lessons[1].id).is_locked is True
        assert find_access(access, uuid4()) is None
