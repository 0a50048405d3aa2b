"""FastAPI dependencies for the course catalog.

Provides dependency injection for:
- Service instances
- Error handlers
"""

from collections.abc import Callable
from typing import Annotated

from fastapi import Depends, HTTPException, status

from src.courses.service import CourseError, CourseService


# ==============================================================================
# Service Getters (set by main.py)
# ==============================================================================

_course_service_getter: Callable[[], CourseService] | None = None


def set_course_service_getter(getter: Callable[[], CourseService]) -> None:
    """Set the course service getter function."""
    global _course_service_getter
    _course_service_getter = getter


def get_course_service() -> CourseService:
    """Get CourseService instance from app state.

    Raises:
        HTTPException(503): If the service was never wired (no database)
    """
    if _course_service_getter is None:
        msg = "CourseService not configured"
        raise RuntimeError(msg)
    try:
        return _course_service_getter()
    except RuntimeError as e:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Servico de cursos nao disponivel",
        ) from e


CourseServiceDep = Annotated[CourseService, Depends(get_course_service)]


def handle_course_error(error: CourseError) -> HTTPException:
    """Convert course errors to HTTP exceptions."""
    status_map = {
        "course_not_found": status.HTTP_404_NOT_FOUND,
        "lesson_not_found": status.HTTP_404_NOT_FOUND,
        "not_owner": status.HTTP_403_FORBIDDEN,
        "invalid_reorder": status.HTTP_400_BAD_REQUEST,
        "invalid_content": status.HTTP_400_BAD_REQUEST,
    }

    status_code = status_map.get(error.code, status.HTTP_500_INTERNAL_SERVER_ERROR)

    return HTTPException(status_code=status_code, detail=error.message)
