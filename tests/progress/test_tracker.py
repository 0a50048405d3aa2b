"""Tests for progress update rules."""

from datetime import UTC, datetime, timedelta
from uuid import uuid4

import pytest

from src.courses.models import Lesson, LessonType
from src.progress.models import LessonProgress
from src.progress.tracker import advance, apply_update, reaches_end


NOW = datetime(2026, 3, 1, 12, 0, tzinfo=UTC)


@pytest.fixture
def video_lesson() -> Lesson:
    return Lesson(
        course_id=uuid4(),
        title="Video",
        lesson_type=LessonType.VIDEO.value,
        content_url="https://videos.example.com/v.mp4",
        total_duration_seconds=300,
    )


@pytest.fixture
def pdf_lesson() -> Lesson:
    return Lesson(
        course_id=uuid4(),
        title="Apostila",
        lesson_type=LessonType.PDF.value,
        total_pages=12,
    )


def new_progress(lesson: Lesson, **kwargs) -> LessonProgress:
    return LessonProgress(
        user_id=uuid4(),
        course_id=lesson.course_id,
        lesson_id=lesson.id,
        last_update=NOW - timedelta(days=1),
        **kwargs,
    )


class TestAdvance:
    """Tests for the monotonic position rule."""

    @pytest.mark.parametrize(
        "stored,incoming,expected",
        [
            (None, 10, 10),
            (10, 20, 20),
            (20, 10, 20),
            (20, 20, 20),
            (20, None, 20),
            (None, None, None),
            (None, 0, None),
        ],
    )
    def test_only_strictly_greater_wins(self, stored, incoming, expected) -> None:
        """Missing stored value counts as 0, equal values are not updates."""
        assert advance(stored, incoming) == expected


class TestReachesEnd:
    """Tests for automatic completion detection."""

    def test_video_inside_tolerance(self, video_lesson: Lesson) -> None:
        """Watching up to duration - tolerance counts as the end."""
        progress = new_progress(video_lesson, current_time_seconds=295)
        assert reaches_end(video_lesson, progress, 5) is True

    def test_video_before_tolerance(self, video_lesson: Lesson) -> None:
        """One second before the tolerance window is not the end."""
        progress = new_progress(video_lesson, current_time_seconds=294)
        assert reaches_end(video_lesson, progress, 5) is False

    def test_video_without_duration_never_ends(self, video_lesson: Lesson) -> None:
        """Unknown duration never auto completes."""
        video_lesson.total_duration_seconds = None
        progress = new_progress(video_lesson, current_time_seconds=10_000)
        assert reaches_end(video_lesson, progress) is False

    def test_pdf_last_page(self, pdf_lesson: Lesson) -> None:
        """Reaching the last page is the end."""
        assert reaches_end(pdf_lesson, new_progress(pdf_lesson, current_page=12)) is True
        assert reaches_end(pdf_lesson, new_progress(pdf_lesson, current_page=11)) is False


class TestApplyUpdate:
    """Tests for apply_update."""

    def test_completed_record_untouched(self, video_lesson: Lesson) -> None:
        """Completed records are frozen."""
        progress = new_progress(
            video_lesson, is_completed=True, current_time_seconds=100
        )
        before = progress.to_dict()

        applied = apply_update(progress, video_lesson, NOW, current_time_seconds=200)

        assert applied is False
        assert progress.to_dict() == before

    def test_regressive_position_ignored(self, video_lesson: Lesson) -> None:
        """Seeking backwards keeps the furthest position."""
        progress = new_progress(video_lesson, current_time_seconds=120)

        assert apply_update(progress, video_lesson, NOW, current_time_seconds=30)
        assert progress.current_time_seconds == 120
        assert progress.last_update == NOW

    def test_auto_complete_video(self, video_lesson: Lesson) -> None:
        """Reaching the end of the video completes the lesson."""
        progress = new_progress(video_lesson)
        apply_update(progress, video_lesson, NOW, current_time_seconds=296)
        assert progress.is_completed is True

    def test_auto_complete_pdf(self, pdf_lesson: Lesson) -> None:
        """Reaching the last page completes the lesson."""
        progress = new_progress(pdf_lesson, current_page=3)
        apply_update(progress, pdf_lesson, NOW, current_page=12)
        assert progress.is_completed is True
        assert progress.current_page == 12

    def test_explicit_complete_keeps_position(self, video_lesson: Lesson) -> None:
        """Manual completion does not move the position."""
        progress = new_progress(video_lesson, current_time_seconds=40)
        apply_update(progress, video_lesson, NOW, explicit_complete=True)
        assert progress.is_completed is True
        assert progress.current_time_seconds == 40

    def test_custom_tolerance(self, video_lesson: Lesson) -> None:
        """The tolerance is configurable."""
        progress = new_progress(video_lesson)
        apply_update(
            progress,
            video_lesson,
            NOW,
            current_time_seconds=280,
            video_end_tolerance_seconds=30,
        )
        assert progress.is_completed is True
