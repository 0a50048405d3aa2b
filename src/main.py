"""CourseFlow API - Main Application."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import ORJSONResponse

from src.config import Settings, get_settings
from src.core.database import init_async_cassandra, shutdown_async_cassandra
from src.core.errors import register_exception_handlers
from src.core.logging import configure_structlog, get_logger
from src.core.middleware import RequestContextMiddleware
from src.courses.dependencies import set_course_service_getter
from src.courses.repository import CourseRepository, LessonRepository
from src.courses.router import router_courses, router_lessons
from src.courses.service import CourseService
from src.health import router as health_router
from src.media.router import router as media_router
from src.media.service import YouTubeClient
from src.progress.repository import EnrollmentRepository, LessonProgressRepository
from src.progress.router import course_enrollments_router, enrollments_router, learning_router
from src.progress.router import router as progress_router
from src.progress.service import EnrollmentService, ProgressService


# Configure logging early (before creating logger)
settings = get_settings()
configure_structlog(settings, log_dir=Path(settings.log_dir))

logger = get_logger(__name__)


class AppState:
    """Services shared by every request of this process."""

    cassandra_session: Any = None
    course_service: CourseService | None = None


app_state = AppState()


def get_course_service() -> CourseService:
    """Get CourseService instance from app state."""
    if app_state.course_service is None:
        msg = "CourseService not initialized"
        raise RuntimeError(msg)
    return app_state.course_service


def init_services(app: FastAPI, session: Any, settings: Settings) -> None:
    """Wire repositories and services on top of a Cassandra session.

    The course service is reached through ``set_course_service_getter``; the
    progress and enrollment services and the YouTube client live on
    ``app.state``.
    """
    keyspace = settings.cassandra_keyspace
    courses = CourseRepository(session=session, keyspace=keyspace)
    lessons = LessonRepository(session=session, keyspace=keyspace)
    enrollments = EnrollmentRepository(session=session, keyspace=keyspace)
    progress = LessonProgressRepository(
        session=session, keyspace=keyspace, enrollments=enrollments
    )

    youtube = YouTubeClient(settings)
    course_service = CourseService(
        courses=courses,
        lessons=lessons,
        progress=progress,
        enrollments=enrollments,
        youtube=youtube,
    )

    app_state.course_service = course_service
    app.state.youtube_client = youtube
    app.state.progress_service = ProgressService(
        course_service=course_service,
        enrollments=enrollments,
        progress=progress,
        video_end_tolerance_seconds=settings.progress_video_end_tolerance_seconds,
    )
    app.state.enrollment_service = EnrollmentService(
        course_service=course_service,
        enrollments=enrollments,
        progress=progress,
    )
    logger.info(
        "services_initialized",
        youtube_enabled=youtube.is_configured,
        video_end_tolerance_seconds=settings.progress_video_end_tolerance_seconds,
    )


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Connect to Cassandra on startup, disconnect on shutdown.

    Without a database the API still starts; readiness reports ``degraded``
    and data endpoints answer 503.
    """
    settings = get_settings()
    logger.info(
        "starting_application",
        app_name=settings.app_name,
        version=settings.app_version,
        environment=settings.environment,
    )

    try:
        app_state.cassandra_session = await init_async_cassandra(settings)
        init_services(app, app_state.cassandra_session, settings)
    except ConnectionError as e:
        logger.warning(
            "database_init_skipped",
            error=str(e),
            message="Running without database connection",
        )

    yield

    logger.info("shutting_down_application")
    await shutdown_async_cassandra()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    # Stack traces are never rendered in responses; src.core.errors logs them.
    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="CourseFlow - cursos, aulas e progresso de alunos",
        debug=False,
        lifespan=lifespan,
        default_response_class=ORJSONResponse,
        docs_url="/docs" if settings.is_development else None,
        redoc_url="/redoc" if settings.is_development else None,
        openapi_url="/openapi.json" if settings.is_development else None,
    )

    # Request context middleware (must be added first - outermost)
    app.add_middleware(
        RequestContextMiddleware,
        log_requests=settings.log_requests,
        exclude_paths=settings.log_exclude_paths,
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=settings.cors_allow_credentials,
        allow_methods=settings.cors_allow_methods,
        allow_headers=settings.cors_allow_headers,
        max_age=settings.cors_max_age,
    )

    register_exception_handlers(app)

    for router in (
        health_router,
        router_courses,
        course_enrollments_router,
        router_lessons,
        enrollments_router,
        progress_router,
        learning_router,
        media_router,
    ):
        app.include_router(router)

    @app.get("/", include_in_schema=False)
    async def root(request: Request) -> dict[str, str]:
        return {
            "message": "CourseFlow API",
            "version": settings.app_version,
            "docs": f"{request.url}docs",
        }

    return app


set_course_service_getter(get_course_service)


app = create_app()
