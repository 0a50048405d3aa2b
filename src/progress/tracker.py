"""Rules for applying a progress update to a lesson progress record.

No I/O here. The service loads the records, calls ``apply_update`` and
persists the result.
"""

from datetime import datetime

from src.courses.models import Lesson
from src.progress.models import LessonProgress


# Seconds before the end of a video that already count as watched to the end
VIDEO_END_TOLERANCE_SECONDS = 5


def advance(stored: int | None, incoming: int | None) -> int | None:
    """Monotonic position: accept ``incoming`` only if strictly greater.

    A missing stored value counts as 0.
    """
    if incoming is None:
        return stored
    if incoming > (stored or 0):
        return incoming
    return stored


def reaches_end(
    lesson: Lesson,
    progress: LessonProgress,
    video_end_tolerance_seconds: int = VIDEO_END_TOLERANCE_SECONDS,
) -> bool:
    """Check whether the stored position reaches the end of the lesson."""
    if lesson.is_video:
        duration = lesson.total_duration_seconds or 0
        return (
            duration > 0
            and progress.current_time_seconds is not None
            and progress.current_time_seconds >= duration - video_end_tolerance_seconds
        )
    if lesson.is_pdf:
        pages = lesson.total_pages or 0
        return (
            pages > 0
            and progress.current_page is not None
            and progress.current_page >= pages
        )
    return False


def apply_update(
    progress: LessonProgress,
    lesson: Lesson,
    now: datetime,
    current_time_seconds: int | None = None,
    current_page: int | None = None,
    explicit_complete: bool = False,
    video_end_tolerance_seconds: int = VIDEO_END_TOLERANCE_SECONDS,
) -> bool:
    """Apply one update in place.

    Returns False, leaving the record untouched, when it is already completed.
    Otherwise raises positions monotonically, completes explicitly or when the
    end is reached, stamps ``last_update`` and returns True.
    """
    if progress.is_completed:
        return False

    progress.current_time_seconds = advance(
        progress.current_time_seconds, current_time_seconds
    )
    progress.current_page = advance(progress.current_page, current_page)

    if explicit_complete or reaches_end(lesson, progress, video_end_tolerance_seconds):
        progress.is_completed = True

    progress.last_update = now
    return True
