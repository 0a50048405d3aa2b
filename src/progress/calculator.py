"""Course completion measures.

Two measures exist and each has one job:

- ``weighted_completion_percent`` is the progress shown everywhere and stored
  in ``Enrollment.progress_percent``. Partially consumed lessons count with
  their fraction.
- ``count_based_percent`` only counts fully completed lessons. It decides the
  COMPLETED transition and is exposed as ``count_based_percent`` next to the
  ``lessons_completed``/``lessons_total`` counters, never as progress_percent.
"""

from collections.abc import Mapping, Sequence
from uuid import UUID

from src.courses.models import Lesson
from src.progress.models import LessonProgress


def _clamp(value: float) -> float:
    return max(0.0, min(100.0, value))


def lesson_contribution(lesson: Lesson, progress: LessonProgress | None) -> float:
    """Contribution of one lesson to the weighted percent, in [0, 100]."""
    if progress is None:
        return 0.0
    if progress.is_completed:
        return 100.0

    if lesson.is_video:
        duration = lesson.total_duration_seconds or 0
        if duration > 0 and progress.current_time_seconds is not None:
            return _clamp(100.0 * progress.current_time_seconds / duration)
    elif lesson.is_pdf:
        pages = lesson.total_pages or 0
        if pages > 0 and progress.current_page is not None:
            return _clamp(100.0 * progress.current_page / pages)

    return 0.0


def weighted_completion_percent(
    lessons: Sequence[Lesson],
    progress_by_lesson: Mapping[UUID, LessonProgress],
) -> float:
    """Mean lesson contribution over all lessons. 0 for a course with no lessons."""
    if not lessons:
        return 0.0
    total = sum(
        lesson_contribution(lesson, progress_by_lesson.get(lesson.id))
        for lesson in lessons
    )
    return total / len(lessons)


def completed_lesson_count(
    lessons: Sequence[Lesson],
    progress_by_lesson: Mapping[UUID, LessonProgress],
) -> int:
    """Number of the course's lessons the student has completed."""
    return sum(
        1
        for lesson in lessons
        if (p := progress_by_lesson.get(lesson.id)) is not None and p.is_completed
    )


def count_based_percent(completed: int, total: int) -> float:
    """``completed / total * 100``, 0 when the course has no lessons."""
    if total <= 0:
        return 0.0
    return completed / total * 100.0
