"""Student progress tracking module.

Provides:
- Video and PDF progress tracking with resume support
- Lesson completion (automatic and manual)
- Weighted course completion
- Course enrollment and sequential lesson unlocking
"""

from .models import (
    PROGRESS_TABLES_CQL,
    Enrollment,
    LearningStatus,
    LessonProgress,
)


__all__ = [
    "PROGRESS_TABLES_CQL",
    "Enrollment",
    "LearningStatus",
    "LessonProgress",
]
