"""Enrollment status transitions and sequential lesson unlocking.

Unlock state is a view: it is derived from the ordered lessons and the
student's completed set on every access and never stored.
"""

from collections.abc import Collection, Mapping, Sequence
from dataclasses import dataclass
from datetime import datetime
from uuid import UUID

from src.courses.models import Lesson
from src.progress.calculator import (
    completed_lesson_count,
    weighted_completion_percent,
)
from src.progress.models import (
    LEARNING_STATUS_ORDER,
    Enrollment,
    LearningStatus,
    LessonProgress,
)


@dataclass
class LessonAccess:
    """Lock state of one lesson for one student."""

    lesson: Lesson
    is_completed: bool
    is_locked: bool


def next_learning_status(
    current: str,
    completed_count: int,
    total_count: int,
) -> str:
    """Status after an applied progress update.

    NOT_STARTED moves to IN_PROGRESS. COMPLETED requires every lesson to be
    individually completed, whatever the weighted percent says. Never moves back.
    """
    if total_count > 0 and completed_count == total_count:
        target = LearningStatus.COMPLETED.value
    else:
        target = LearningStatus.IN_PROGRESS.value

    if LEARNING_STATUS_ORDER.get(current, 0) >= LEARNING_STATUS_ORDER[target]:
        return current
    return target


def recompute_enrollment(
    enrollment: Enrollment,
    lessons: Sequence[Lesson],
    progress_by_lesson: Mapping[UUID, LessonProgress],
    now: datetime,
) -> Enrollment:
    """Refresh status, weighted percent and counters of an enrollment in place."""
    completed = completed_lesson_count(lessons, progress_by_lesson)
    total = len(lessons)

    enrollment.learning_status = next_learning_status(
        enrollment.learning_status, completed, total
    )
    enrollment.progress_percent = weighted_completion_percent(
        lessons, progress_by_lesson
    )
    enrollment.lessons_completed = completed
    enrollment.lessons_total = total
    enrollment.updated_at = now
    return enrollment


def derive_lesson_access(
    lessons: Sequence[Lesson],
    completed_ids: Collection[UUID],
    course_closed: bool = False,
) -> list[LessonAccess]:
    """Lock state for ordered lessons.

    The first lesson is unlocked. Any other lesson is locked iff the lesson
    right before it is not completed. In a closed course every lesson that
    is not completed is locked too.
    """
    result: list[LessonAccess] = []
    previous_completed = True
    for lesson in lessons:
        is_completed = lesson.id in completed_ids
        is_locked = not previous_completed or (course_closed and not is_completed)
        result.append(
            LessonAccess(lesson=lesson, is_completed=is_completed, is_locked=is_locked)
        )
        previous_completed = is_completed
    return result


def find_access(accesses: Sequence[LessonAccess], lesson_id: UUID) -> LessonAccess | None:
    """Pick the entry for a lesson out of ``derive_lesson_access`` output."""
    return next((a for a in accesses if a.lesson.id == lesson_id), None)
